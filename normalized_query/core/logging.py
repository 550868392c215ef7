"""Logging setup for generation runs.

Every record about generated output carries the output file it concerns
and the GenerationStage that produced it.
"""
import logging
import sys
from typing import Dict, Optional, TextIO

from normalized_query.core.workflow import GenerationStage

CONTEXT_FIELDS = ("file_key", "stage")
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [file=%(file_key)s stage=%(stage)s] - %(message)s"


def log_context(file_key: Optional[object] = None, stage: Optional[GenerationStage] = None) -> Dict[str, str]:
    """``extra`` mapping for a record about one output file at one stage."""
    return {
        "file_key": str(file_key) if file_key is not None else "-",
        "stage": stage.value if stage is not None else "-",
    }


class ContextFormatter(logging.Formatter):
    """Formatter that tolerates records logged without a generation context."""
    def format(self, record):
        for field in CONTEXT_FIELDS:
            if not hasattr(record, field):
                setattr(record, field, "-")
        return super().format(record)


def configure_logging(level: str = "INFO", stream: Optional[TextIO] = None) -> None:
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(ContextFormatter(LOG_FORMAT))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=[handler],
        force=True,
    )
