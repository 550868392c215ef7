"""File access for generated output.

A sink hands out one handle per output file. Handles load the file's
previous declarations (if any) and persist new content.
"""
import logging
from pathlib import Path
from typing import Dict, List, Optional
from normalized_query.core.logging import log_context
from normalized_query.core.workflow import GenerationStage
from normalized_query.generators.query_gen.source import SourceParseError, parse_declarations
from normalized_query.generators.query_gen.types import Declaration, FileKey, GeneratedFile

log = logging.getLogger(__name__)


class FileHandle:
    """Access to one output file."""

    def __init__(self, key: FileKey):
        self.key = key

    def read_existing(self) -> Optional[str]:
        raise NotImplementedError

    def persist(self, content: str) -> None:
        raise NotImplementedError

    def load_existing(self) -> Optional[List[Declaration]]:
        """Previous declarations, or None when there is no usable prior content.

        Unreadable or unparseable files are treated as absent.
        """
        try:
            content = self.read_existing()
        except (OSError, UnicodeDecodeError) as e:
            log.warning("Could not read existing file: %s", e, extra=log_context(self.key, GenerationStage.RECONCILE))
            return None

        if content is None or not content.strip():
            return None

        try:
            return parse_declarations(content)
        except SourceParseError as e:
            log.warning(
                "Existing file could not be parsed, regenerating from scratch: %s",
                e,
                extra=log_context(self.key, GenerationStage.RECONCILE),
            )
            return None


class FileSink:
    """Creates handles for output files."""

    def resolve(self, key: FileKey) -> FileHandle:
        raise NotImplementedError


class FileSystemHandle(FileHandle):
    def __init__(self, key: FileKey, out_dir: Path):
        super().__init__(key)
        self.path = out_dir / key.path

    def read_existing(self) -> Optional[str]:
        if not self.path.exists():
            return None
        return self.path.read_text(encoding="utf-8")

    def persist(self, content: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(content, encoding="utf-8")


class FileSystemSink(FileSink):
    """Reads and writes files below an output directory."""

    def __init__(self, out_dir: Path):
        self.out_dir = Path(out_dir)

    def resolve(self, key: FileKey) -> FileHandle:
        return FileSystemHandle(key, self.out_dir)


class InMemoryHandle(FileHandle):
    def __init__(self, key: FileKey, store: Dict[str, str]):
        super().__init__(key)
        self.store = store

    def read_existing(self) -> Optional[str]:
        return self.store.get(self.key.path)

    def persist(self, content: str) -> None:
        self.store[self.key.path] = content


class InMemorySink(FileSink):
    """Keeps file contents in a dict keyed by relative path."""

    def __init__(self, files: Optional[Dict[str, str]] = None):
        self.files: Dict[str, str] = dict(files or {})

    def resolve(self, key: FileKey) -> FileHandle:
        return InMemoryHandle(key, self.files)


def write_files(files: List[GeneratedFile], sink: FileSink) -> None:
    """
    Persist generated files through a sink.

    Args:
        files: List of GeneratedFile objects to write
        sink: Destination for the files
    """
    for file in files:
        directory, _, file_name = file.path.rpartition("/")
        sink.resolve(FileKey(directory, file_name)).persist(file.content)
