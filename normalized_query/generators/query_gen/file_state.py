"""Per-output-file generation state."""
import logging
from typing import Dict, Iterable, List, Optional, Set, Tuple
from normalized_query.core.logging import log_context
from normalized_query.schemas.graph import GeneratedMethod, GeneratedSchema
from normalized_query.generators.query_gen.constants import NORMALIZED_QUERY_CACHE_IMPORT_PATH, PLUGIN_NAME
from normalized_query.generators.query_gen.types import (
    Declaration,
    DeclarationKind,
    FileKey,
    NormalizerEntity,
    PluginFileConfig,
)
from normalized_query.generators.query_gen.utils import import_path_between, quote
from normalized_query.generators.query_gen.writer import FileHandle

log = logging.getLogger(__name__)

HEADING_COMMENT = f"// @generated by {PLUGIN_NAME}"


class PluginFile:
    """Declarations and imports collected for one output file."""

    normalized_cache_import_path = NORMALIZED_QUERY_CACHE_IMPORT_PATH

    def __init__(self, config: PluginFileConfig, handle: FileHandle):
        self.config = config
        self.handle = handle
        self.declarations: List[Declaration] = []
        # module -> (value names, type-only names)
        self.imports: Dict[str, Tuple[Set[str], Set[str]]] = {}
        self._declared_names: Set[str] = set()
        self._existing_loaded = False
        self._existing: Optional[List[Declaration]] = None

    @property
    def key(self) -> FileKey:
        return self.config.key

    def is_file_for_schema(self, schema: GeneratedSchema) -> bool:
        return bool(self.config.schema_filter(schema))

    def is_file_for_method(self, method: GeneratedMethod) -> bool:
        return bool(self.config.method_filter(method))

    def add_declarations(self, declarations: Iterable[Declaration]) -> None:
        for declaration in declarations:
            if declaration.is_named:
                if declaration.name in self._declared_names:
                    log.debug(
                        "Skipping duplicate declaration %s",
                        declaration.name,
                        extra=log_context(self.key),
                    )
                    continue
                self._declared_names.add(declaration.name)
            self.declarations.append(declaration)

    def add_import(self, module: str, names: Iterable[str], type_only: bool = False) -> None:
        values, types = self.imports.setdefault(module, (set(), set()))
        for name in names:
            if type_only:
                if name not in values:
                    types.add(name)
            else:
                types.discard(name)
                values.add(name)

    def _module_path(self, target: str) -> str:
        if target.startswith("."):
            return import_path_between(self.key.path, target)
        return target

    def add_generated_type_import(self, types_import_path: str, names: Iterable[str]) -> None:
        self.add_import(self._module_path(types_import_path), names, type_only=True)

    def add_client_import(self, client_import_path: str, names: Iterable[str]) -> None:
        self.add_import(self._module_path(client_import_path), names)

    def add_entity_import(self, entity: NormalizerEntity) -> None:
        """Import an entity variable when it is declared in another file."""
        if entity.file_key == self.key:
            return
        self.add_import(import_path_between(self.key.path, entity.file_key.path), [entity.entity_variable_name])

    def has_content(self) -> bool:
        return bool(self.declarations)

    def _render_import(self, module: str, values: Set[str], types: Set[str]) -> str:
        if values:
            names = sorted(list(values) + [f"type {name}" for name in types], key=lambda n: n.replace("type ", "", 1))
            return f"import {{ {', '.join(names)} }} from {quote(module)};"
        return f"import type {{ {', '.join(sorted(types))} }} from {quote(module)};"

    def build_import_declarations(self) -> List[Declaration]:
        external = sorted(module for module in self.imports if not module.startswith("."))
        relative = sorted(module for module in self.imports if module.startswith("."))
        declarations = []
        for module in external + relative:
            values, types = self.imports[module]
            if not values and not types:
                continue
            declarations.append(Declaration(
                text=self._render_import(module, values, types),
                kind=DeclarationKind.IMPORT,
            ))
        return declarations

    def build_declarations(self) -> List[Declaration]:
        """Complete file: heading comment, imports, generated declarations."""
        heading = Declaration(text=HEADING_COMMENT, kind=DeclarationKind.COMMENT)
        return [heading] + self.build_import_declarations() + self.declarations

    def existing_declarations(self) -> Optional[List[Declaration]]:
        """Previously persisted declarations, loaded at most once."""
        if not self._existing_loaded:
            self._existing = self.handle.load_existing()
            self._existing_loaded = True
        return self._existing
