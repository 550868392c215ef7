"""Dataclasses for normalized query generation."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional, Union, TYPE_CHECKING
from normalized_query.schemas.graph import GeneratedMethod, GeneratedSchema
from normalized_query.generators.query_gen.constants import (
    QUERY_PART_LIST_EVENTS,
    REACT_QUERY_FN_KEY_PARAMETER_NAME_BY_HOOK_NAME,
    REACT_QUERY_FN_PARAMETER_NAME_BY_HOOK_NAME,
    REACT_QUERY_INFINITE_QUERY_HOOK_NAME,
    REACT_QUERY_MUTATION_HOOK_NAME,
    REACT_QUERY_OPTIONS_TYPE_BY_HOOK_NAME,
    REACT_QUERY_QUERY_HOOK_NAME,
)

if TYPE_CHECKING:
    from normalized_query.generators.query_gen.file_state import PluginFile
    from normalized_query.generators.query_gen.index import SchemaIndex


class OperationKind(str, Enum):
    """Operation classification, valued by the react-query hook that serves it."""
    QUERY = REACT_QUERY_QUERY_HOOK_NAME
    PAGED_QUERY = REACT_QUERY_INFINITE_QUERY_HOOK_NAME
    MUTATION = REACT_QUERY_MUTATION_HOOK_NAME


class DeclarationKind(str, Enum):
    IMPORT = "import"
    COMMENT = "comment"
    VARIABLE = "variable"
    FUNCTION = "function"
    TYPE = "type"
    OTHER = "other"


@dataclass(frozen=True)
class Declaration:
    """One top-level statement of a generated file."""
    text: str
    kind: DeclarationKind = DeclarationKind.OTHER
    name: Optional[str] = None  # None for anonymous declarations (imports, comments)

    @property
    def is_named(self) -> bool:
        return self.name is not None


@dataclass(frozen=True)
class FileKey:
    directory: str
    file_name: str

    @property
    def path(self) -> str:
        directory = self.directory.rstrip("/")
        return f"{directory}/{self.file_name}" if directory else self.file_name

    def __str__(self) -> str:
        return self.path


@dataclass
class PluginFileConfig:
    """Which schemas and methods are generated into one output file."""
    directory: str
    file_name: str
    schema_filter: Callable[[GeneratedSchema], bool] = lambda schema: False
    method_filter: Callable[[GeneratedMethod], bool] = lambda method: False

    @property
    def key(self) -> FileKey:
        return FileKey(self.directory, self.file_name)


@dataclass
class NormalizerEntity:
    """A schema that gets a normalizr declaration.

    Entities carry primary keys; wrapper objects (schemas that only
    reference entities) do not.
    """
    schema: GeneratedSchema
    entity_name: str
    entity_variable_name: str
    file_key: FileKey
    primary_keys: Optional[List[str]] = None
    entity_name_const_name: Optional[str] = None
    references: Dict[str, "EntityReference"] = field(default_factory=dict)

    @property
    def generated_name(self) -> str:
        return self.schema.generated_name

    @property
    def is_entity(self) -> bool:
        return bool(self.primary_keys)


@dataclass
class EntityReferenceDetail:
    entity: NormalizerEntity
    is_array: bool


@dataclass
class NestedReference:
    is_array: bool
    references: Dict[str, "EntityReference"]


EntityReference = Union[EntityReferenceDetail, NestedReference]

ReferenceMap = Dict[str, EntityReference]


@dataclass
class MethodGeneratorConfig:
    """Everything the operation synthesizers need to know about one method."""
    method: GeneratedMethod
    operation_kind: OperationKind
    hook_name: str
    query_key_builder_name: str
    file: "PluginFile"
    index: "SchemaIndex"
    merged_request_schema: Optional[GeneratedSchema] = None
    response_body_schema: Optional[GeneratedSchema] = None
    root_entity_schema: Optional[GeneratedSchema] = None
    related_entity: Optional[NormalizerEntity] = None
    response_entity: Optional[NormalizerEntity] = None
    parameter_name: Optional[str] = None
    undefined_request_for_skip: bool = True
    allow_string_key_references: bool = True

    @property
    def query_options_type_name(self) -> str:
        return REACT_QUERY_OPTIONS_TYPE_BY_HOOK_NAME[self.operation_kind.value]

    @property
    def query_key_parameter_name(self) -> str:
        return REACT_QUERY_FN_KEY_PARAMETER_NAME_BY_HOOK_NAME[self.operation_kind.value]

    @property
    def query_fn_parameter_name(self) -> str:
        return REACT_QUERY_FN_PARAMETER_NAME_BY_HOOK_NAME[self.operation_kind.value]

    @property
    def is_event_method(self) -> bool:
        return self.method.query_part == QUERY_PART_LIST_EVENTS


@dataclass
class GeneratedFile:
    """Represents a generated file."""
    path: str  # Relative path from output directory
    content: str  # File contents
