"""Orchestrator for normalized query generation."""
import logging
from typing import Iterable, List, Optional, Set, Tuple
from normalized_query.core.logging import log_context
from normalized_query.core.workflow import FileResult, GenerationStage
from normalized_query.schemas.graph import ApiSource, GeneratedMethod, GeneratedSchema
from normalized_query.generators.query_gen.config import PluginConfig
from normalized_query.generators.query_gen.constants import (
    GENERATED_HOOK_MERGED_REQUEST_PARAMETER_NAME,
    NORMALIZR_IMPORT_PATH,
    NORMALIZR_SCHEMA_NAME,
    REACT_QUERY_IMPORT_PATH,
    REACT_QUERY_INFINITE_DATA_TYPE_NAME,
    REACT_QUERY_QUERY_KEY_TYPE_NAME,
)
from normalized_query.generators.query_gen.file_state import PluginFile
from normalized_query.generators.query_gen.index import SchemaGraphError, SchemaIndex
from normalized_query.generators.query_gen.reconcile import reconcile
from normalized_query.generators.query_gen.render_entity import (
    can_generate_id_attribute,
    generate_id_attribute_accessor,
    get_entity_name,
    get_entity_primary_keys,
    render_entity_declarations,
    render_entity_definition,
    render_wrapper_declaration,
)
from normalized_query.generators.query_gen.render_operation import (
    build_hook,
    build_hook_comment,
    build_preload,
    build_query_options,
    build_request_enabled,
)
from normalized_query.generators.query_gen.resolver import EntityCache, EntityResolver
from normalized_query.generators.query_gen.types import (
    EntityReference,
    EntityReferenceDetail,
    GeneratedFile,
    MethodGeneratorConfig,
    NestedReference,
    NormalizerEntity,
    OperationKind,
    ReferenceMap,
)
from normalized_query.generators.query_gen.writer import FileSink, write_files

log = logging.getLogger(__name__)


class NormalizedQueryGenerator:
    """Generates normalizr entities and react-query helpers for one ApiSource.

    A generator instance is one run: its EntityCache and per-file state
    are not shared with other runs.
    """

    def __init__(self, source: ApiSource, config: PluginConfig, sink: FileSink):
        self.source = source
        self.config = config
        self.sink = sink
        self.index = SchemaIndex(source.schemas)
        self.cache = EntityCache()
        self.resolver = EntityResolver(self.index, self.generate_entity)
        self.files = [PluginFile(file_config, sink.resolve(file_config.key)) for file_config in config.files]
        self._current_file: Optional[PluginFile] = None
        # Entities whose schema.Entity declaration has been emitted
        self._declared_entities: Set[str] = set()
        self._pending_definitions: List[Tuple[PluginFile, NormalizerEntity, ReferenceMap]] = []

    def file_for_schema(self, schema: GeneratedSchema) -> PluginFile:
        """File configured for a schema, else the file currently being generated."""
        for file in self.files:
            if file.is_file_for_schema(schema):
                return file
        if self._current_file is not None:
            return self._current_file
        if self.files:
            return self.files[0]
        raise SchemaGraphError(f"No output file is configured for schema {schema.generated_name!r}")

    def _add_reference_imports(self, file: PluginFile, references: ReferenceMap) -> None:
        for ref in references.values():
            if isinstance(ref, EntityReferenceDetail):
                file.add_entity_import(ref.entity)
            elif isinstance(ref, NestedReference):
                self._add_reference_imports(file, ref.references)

    def _add_entity_imports(self, file: PluginFile, entity: NormalizerEntity) -> None:
        file.add_import(NORMALIZR_IMPORT_PATH, [NORMALIZR_SCHEMA_NAME])
        file.add_generated_type_import(self.config.types_import_path, [entity.generated_name])
        self._add_reference_imports(file, entity.references)

    def _referenced_entity_names(self, reference: EntityReference) -> Set[str]:
        if isinstance(reference, EntityReferenceDetail):
            return {reference.entity.generated_name}
        names: Set[str] = set()
        for nested in reference.references.values():
            names |= self._referenced_entity_names(nested)
        return names

    def _is_declarable(self, references: ReferenceMap) -> bool:
        for reference in references.values():
            if not self._referenced_entity_names(reference) <= self._declared_entities:
                return False
        return True

    def _split_references(self, references: ReferenceMap) -> Tuple[ReferenceMap, ReferenceMap]:
        """Split a reference map into what an initializer may read and what must wait."""
        inline: ReferenceMap = {}
        deferred: ReferenceMap = {}
        for key, reference in references.items():
            if self._is_declarable({key: reference}):
                inline[key] = reference
            else:
                deferred[key] = reference
        return inline, deferred

    def _flush_definitions(self) -> None:
        """Emit define calls whose referenced entities are all declared."""
        remaining = []
        for file, entity, references in self._pending_definitions:
            if self._is_declarable(references):
                file.add_declarations([render_entity_definition(entity, references)])
                log.debug(
                    "Defined late references of %s: %s",
                    entity.entity_variable_name,
                    ", ".join(references),
                    extra=log_context(file.key, GenerationStage.RESOLVE_ENTITIES),
                )
            else:
                remaining.append((file, entity, references))
        self._pending_definitions = remaining

    def generate_entity(self, schema: GeneratedSchema) -> Optional[NormalizerEntity]:
        """Descriptor for an entity schema, created and declared on first use."""
        cached = self.cache.get(schema.generated_name)
        if cached is not None:
            return cached

        primary_keys = get_entity_primary_keys(schema)
        if not can_generate_id_attribute(primary_keys):
            log.debug(
                "Cannot generate id attribute for %s, skipping entity",
                schema.generated_name,
                extra=log_context(stage=GenerationStage.RESOLVE_ENTITIES),
            )
            return None

        file = self.file_for_schema(schema)
        naming = self.config.naming
        entity = NormalizerEntity(
            schema=schema,
            entity_name=get_entity_name(schema),
            entity_variable_name=naming.entity_name_writer(schema),
            file_key=file.key,
            primary_keys=list(primary_keys),
            entity_name_const_name=naming.entity_name_const_name_writer(schema),
        )
        # Registered before its references resolve so cycles end at this entry
        self.cache.add(entity)

        previous_file = self._current_file
        self._current_file = file
        try:
            entity.references = self.resolver.find_entity_references(schema.raw_schema)
        finally:
            self._current_file = previous_file

        # Self and back references would read a const before it is initialized
        inline, deferred = self._split_references(entity.references)
        file.add_declarations(render_entity_declarations(entity, generate_id_attribute_accessor(entity), inline))
        self._declared_entities.add(entity.generated_name)
        if deferred:
            self._pending_definitions.append((file, entity, deferred))
        self._flush_definitions()
        self._add_entity_imports(file, entity)

        log.info(
            "Generated entity %s (%d references)",
            entity.entity_variable_name,
            len(entity.references),
            extra=log_context(file.key, GenerationStage.RESOLVE_ENTITIES),
        )
        return entity

    def generate_response_entity(self, schema: GeneratedSchema) -> Optional[NormalizerEntity]:
        """Normalization schema for a response: the entity itself or a wrapper object."""
        cached = self.cache.get(schema.generated_name)
        if cached is not None:
            return cached

        if can_generate_id_attribute(get_entity_primary_keys(schema)):
            return self.generate_entity(schema)

        references = self.resolver.find_entity_references(schema.raw_schema)
        if not references:
            return None

        file = self.file_for_schema(schema)
        entity = NormalizerEntity(
            schema=schema,
            entity_name=get_entity_name(schema),
            entity_variable_name=self.config.naming.entity_name_writer(schema),
            file_key=file.key,
            references=references,
        )
        self.cache.add(entity)
        file.add_declarations([render_wrapper_declaration(entity)])
        self._add_entity_imports(file, entity)
        return entity

    def _optional_schema(self, name: Optional[str]) -> Optional[GeneratedSchema]:
        return self.index.require(name) if name else None

    def build_generator_config(self, method: GeneratedMethod, file: PluginFile) -> MethodGeneratorConfig:
        for name in method.schema_names():
            self.index.require(name)

        merged_request_schema = self._optional_schema(method.merged_request_schema)
        response_body_schema = self._optional_schema(method.response_body_schema)
        root_entity_schema = self._optional_schema(method.root_entity_schema)
        related_schema = self._optional_schema(method.related_entity)

        related_entity = self.generate_entity(related_schema) if related_schema else None
        response_entity = self.generate_response_entity(response_body_schema) if response_body_schema else None

        naming = self.config.naming
        return MethodGeneratorConfig(
            method=method,
            operation_kind=self.config.hook.operation_kind_getter(method, self.index),
            hook_name=naming.hook_name_writer(method),
            query_key_builder_name=naming.key_builder_name_writer(method),
            file=file,
            index=self.index,
            merged_request_schema=merged_request_schema,
            response_body_schema=response_body_schema,
            root_entity_schema=root_entity_schema,
            related_entity=related_entity,
            response_entity=response_entity,
            parameter_name=GENERATED_HOOK_MERGED_REQUEST_PARAMETER_NAME if merged_request_schema else None,
            undefined_request_for_skip=self.config.hook.undefined_request_for_skip,
            allow_string_key_references=self.config.allow_string_key_references,
        )

    def _add_hook_imports(self, config: MethodGeneratorConfig) -> None:
        file = config.file
        file.add_import(REACT_QUERY_IMPORT_PATH, [config.operation_kind.value])
        file.add_import(REACT_QUERY_IMPORT_PATH, [config.query_options_type_name], type_only=True)
        if config.operation_kind == OperationKind.PAGED_QUERY:
            file.add_import(
                REACT_QUERY_IMPORT_PATH,
                [REACT_QUERY_INFINITE_DATA_TYPE_NAME, REACT_QUERY_QUERY_KEY_TYPE_NAME],
                type_only=True,
            )

        file.add_client_import(self.config.client_import_path, [config.method.generated_name])

        type_names = [
            schema.generated_name
            for schema in (config.merged_request_schema, config.response_body_schema)
            if schema is not None
        ]
        if type_names:
            file.add_generated_type_import(self.config.types_import_path, type_names)

        for entity in (config.related_entity, config.response_entity):
            if entity is not None:
                file.add_entity_import(entity)

    def generate_data_hook(self, method: GeneratedMethod, file: PluginFile) -> MethodGeneratorConfig:
        """Key builder and hook declarations for one method."""
        hook = self.config.hook
        config = self.build_generator_config(method, file)

        key_builder = hook.key_builder_getter(config)
        if key_builder is not None:
            file.add_declarations([key_builder])

        preload = build_preload(config) if config.operation_kind == OperationKind.QUERY else None
        head = hook.head_getter(config, preload)

        enabled = None
        if config.operation_kind != OperationKind.MUTATION:
            enabled = build_request_enabled(config, hook.request_enabled)

        options = build_query_options(
            config,
            hook.key_getter(config, key_builder, None),
            enabled,
            hook.base_url_expression(config),
            hook.request_init_getter(config),
            has_preload=bool(preload) and preload in head,
        )
        options = hook.options_getter(config, options)

        file.add_declarations([build_hook_comment(method), build_hook(config, head, options)])
        self._add_hook_imports(config)

        log.info(
            "Generated %s for %s",
            config.hook_name,
            method.full_grpc_name,
            extra=log_context(file.key, GenerationStage.GENERATE_OPERATIONS),
        )
        return config

    def _generate_entities(self) -> None:
        for file in self.files:
            self._current_file = file
            for schema in self.index:
                if file.is_file_for_schema(schema) and can_generate_id_attribute(get_entity_primary_keys(schema)):
                    self.generate_entity(schema)
        self._current_file = None

    def _generate_operations(self, methods: Iterable[GeneratedMethod]) -> None:
        for file in self.files:
            self._current_file = file
            for method in methods:
                if file.is_file_for_method(method):
                    self.generate_data_hook(method, file)
        self._current_file = None

    def run(self) -> List[FileResult]:
        """
        Generate, reconcile and persist every configured file.

        Nothing is persisted unless every file was generated and reconciled.

        Returns:
            One FileResult per file that received content
        """
        self._generate_entities()
        self._generate_operations(self.source.methods)

        results: List[FileResult] = []
        generated: List[GeneratedFile] = []
        for file in self.files:
            extra = log_context(file.key, GenerationStage.RECONCILE)
            if not file.has_content():
                log.info("No content generated, skipping file", extra=extra)
                continue

            existing = file.existing_declarations()
            if existing is not None:
                log.debug("Diffing against %d existing declarations", len(existing), extra=extra)

            result = reconcile(file.build_declarations(), existing, self.config.conflict_policy)
            log.info("Reconciled file: %s", result.state.value, extra=extra)

            results.append(FileResult(
                file_key=str(file.key),
                state=result.state,
                content=result.content,
                declaration_count=len(result.declarations),
            ))
            generated.append(GeneratedFile(path=file.key.path, content=result.content))

        write_files(generated, self.sink)
        log.info(
            "Wrote %d files",
            len(generated),
            extra=log_context(stage=GenerationStage.PERSIST),
        )
        return results


def generate_normalized_queries(source: ApiSource, config: PluginConfig, sink: FileSink) -> List[FileResult]:
    """Run a full generation pass."""
    return NormalizedQueryGenerator(source, config, sink).run()
