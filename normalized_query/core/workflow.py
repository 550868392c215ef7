from dataclasses import dataclass
from enum import Enum

class GenerationStage(str, Enum):
    RESOLVE_ENTITIES = "RESOLVE_ENTITIES"
    GENERATE_OPERATIONS = "GENERATE_OPERATIONS"
    RECONCILE = "RECONCILE"
    PERSIST = "PERSIST"

class ReconcileState(str, Enum):
    NO_PRIOR_CONTENT = "NO_PRIOR_CONTENT"
    DIFFING = "DIFFING"
    RESOLVED = "RESOLVED"

@dataclass(frozen=True)
class FileResult:
    file_key: str
    state: ReconcileState
    content: str
    declaration_count: int
