"""Operation classification and react-query hook rendering."""
import logging
from typing import Dict, List, Optional, Union
from normalized_query.core.logging import log_context
from normalized_query.core.workflow import GenerationStage
from normalized_query.schemas.graph import GeneratedMethod
from normalized_query.generators.query_gen.constants import (
    GENERATED_HOOK_META_NORMALIZATION_SCHEMA_PARAMETER_NAME,
    GENERATED_HOOK_QUERY_KEY_GETTER_REST_NAME,
    GENERATED_HOOK_REACT_QUERY_OPTIONS_PARAMETER_NAME,
    GENERATED_KEY_BUILDER_ENTITY_ID_VARIABLE_NAME,
    J5_LIST_PAGE_REQUEST_PAGINATION_TOKEN_PARAM_NAME,
    J5_LIST_PAGE_RESPONSE_PAGINATION_TOKEN_PARAM_NAME,
    J5_LIST_PAGE_RESPONSE_TYPE,
    KEY_SEGMENT_DETAIL,
    KEY_SEGMENT_LIST,
    MUTATION_HTTP_METHODS,
    NORMALIZED_QUERY_CACHE_PRELOAD_DATA_HELPER_NAME,
    NORMALIZR_ENTITY_GET_ID_METHOD_NAME,
    NORMALIZR_SCHEMA_KEY_PARAM,
    PLUGIN_NAME,
    PRELOAD_DATA_VARIABLE_NAME,
    REACT_QUERY_ENABLED_PARAM_NAME,
    REACT_QUERY_INFINITE_DATA_TYPE_NAME,
    REACT_QUERY_INFINITE_QUERY_GET_NEXT_PAGE_FN_RESPONSE_PARAM_NAME,
    REACT_QUERY_INFINITE_QUERY_GET_NEXT_PAGE_PARAM_NAME,
    REACT_QUERY_INFINITE_QUERY_HOOK_PAGE_PARAM_NAME,
    REACT_QUERY_INFINITE_QUERY_INITIAL_PAGE_PARAM_NAME,
    REACT_QUERY_META_PARAM_NAME,
    REACT_QUERY_PLACEHOLDER_DATA_PARAM_NAME,
    REACT_QUERY_QUERY_KEY_TYPE_NAME,
)
from normalized_query.generators.query_gen.helpers import (
    find_entity_property_reference,
    find_matching_property,
    get_page_parameter,
    get_page_response_parameter,
    get_required_request_parameters,
)
from normalized_query.generators.query_gen.index import SchemaIndex
from normalized_query.generators.query_gen.types import (
    Declaration,
    DeclarationKind,
    EntityReferenceDetail,
    MethodGeneratorConfig,
    NormalizerEntity,
    OperationKind,
)
from normalized_query.generators.query_gen.utils import indent, property_key, quote

log = logging.getLogger(__name__)


def classify_operation(method: GeneratedMethod, index: SchemaIndex) -> OperationKind:
    """Pick the react-query hook for a method. First matching rule wins."""
    if method.response_body_schema:
        response = index.get(method.response_body_schema)
        properties = index.properties_of(response.raw_schema) if response else {}
        if find_matching_property(index, properties, J5_LIST_PAGE_RESPONSE_TYPE):
            return OperationKind.PAGED_QUERY

    if method.related_entity:
        related = index.get(method.related_entity)
        entity_info = related.raw_schema.entity if related else None
        if entity_info is not None:
            if method.full_grpc_name in entity_info.query_methods:
                return OperationKind.QUERY
            if method.full_grpc_name in entity_info.command_methods:
                return OperationKind.MUTATION

    if method.http_method.lower() in MUTATION_HTTP_METHODS:
        return OperationKind.MUTATION

    return OperationKind.QUERY


def get_method_entity_name(method: GeneratedMethod, index: SchemaIndex) -> str:
    if method.related_entity:
        related = index.get(method.related_entity)
        if related is not None and related.raw_schema.entity is not None:
            info = related.raw_schema.entity
            return info.state_entity_full_name or info.entity or related.generated_name
    return method.generated_name


def _entity_key_expression(entity: NormalizerEntity) -> str:
    return f"{entity.entity_variable_name}.{NORMALIZR_SCHEMA_KEY_PARAM}"


def _return_as_const(items: List[str]) -> str:
    return f"return [{', '.join(items)}] as const;"


def _nested_object_literal(values: Dict[str, str]) -> str:
    """Build a (possibly nested) object literal from dotted paths."""
    tree: Dict[str, Union[str, dict]] = {}
    for path, expression in values.items():
        node = tree
        parts = path.split(".")
        for part in parts[:-1]:
            node = node.setdefault(part, {})
        node[parts[-1]] = expression

    def render(node) -> str:
        if not node:
            return "{}"
        items = []
        for key, value in node.items():
            items.append(f"{property_key(key)}: {render(value) if isinstance(value, dict) else value}")
        return "{ " + ", ".join(items) + " }"

    return render(tree)


def match_primary_keys(
    config: MethodGeneratorConfig,
    entity: NormalizerEntity,
) -> Dict[str, str]:
    """Primary-key path to request access expression, for every key that matched."""
    if config.merged_request_schema is None or not config.parameter_name:
        return {}
    properties = config.index.properties_of(config.merged_request_schema.raw_schema)
    matches: Dict[str, str] = {}
    for primary_key in entity.primary_keys or []:
        expression = find_entity_property_reference(
            config.index,
            properties,
            config.parameter_name,
            entity,
            primary_key,
            config.allow_string_key_references,
        )
        if expression:
            matches[primary_key] = expression
    return matches


def build_entity_id_statement(config: MethodGeneratorConfig) -> Optional[str]:
    """`const entityId = <entity>.getId({...}, {}, '')` when every primary key maps to a request field."""
    entity = config.related_entity
    if entity is None or not entity.primary_keys:
        return None
    matches = match_primary_keys(config, entity)
    if len(matches) != len(entity.primary_keys):
        return None
    return (
        f"const {GENERATED_KEY_BUILDER_ENTITY_ID_VARIABLE_NAME} = "
        f"{entity.entity_variable_name}.{NORMALIZR_ENTITY_GET_ID_METHOD_NAME}"
        f"({_nested_object_literal(matches)}, {{}}, '');"
    )


def _key_builder_head_expression(config: MethodGeneratorConfig) -> str:
    method = config.method
    if config.operation_kind == OperationKind.MUTATION:
        return quote(method.full_grpc_name or get_method_entity_name(method, config.index))

    if config.is_event_method:
        if config.root_entity_schema is not None:
            return quote(config.root_entity_schema.generated_name)
        return quote(method.full_grpc_name)

    if config.related_entity is not None:
        return _entity_key_expression(config.related_entity)

    return quote(get_method_entity_name(method, config.index))


def build_key_builder(config: MethodGeneratorConfig) -> Declaration:
    """Render `build<Method>Key`, the function returning the query key tuple."""
    head = _key_builder_head_expression(config)
    request = config.parameter_name if config.merged_request_schema is not None else None
    parameters = ""
    statements: List[str] = []

    if config.operation_kind == OperationKind.MUTATION:
        statements.append(_return_as_const([head]))
    elif request is None:
        segment = KEY_SEGMENT_LIST if config.operation_kind == OperationKind.PAGED_QUERY else KEY_SEGMENT_DETAIL
        statements.append(_return_as_const([head, quote(segment)]))
    else:
        parameters = f"{request}?: {config.merged_request_schema.generated_name}"

        if config.operation_kind == OperationKind.PAGED_QUERY:
            list_segment = quote(KEY_SEGMENT_LIST)
            key_name = request
            page_parameter = get_page_parameter(config)
            if page_parameter:
                key_name = GENERATED_HOOK_QUERY_KEY_GETTER_REST_NAME
                statements.append(
                    f"const {{ {page_parameter[0]}, ...{GENERATED_HOOK_QUERY_KEY_GETTER_REST_NAME} }} = {request} || {{}};"
                )
            statements.append(
                f"if ({key_name}) {{\n  {_return_as_const([head, list_segment, key_name])}\n}}"
            )
            statements.append(_return_as_const([head, list_segment]))
        else:
            detail_segment = quote(KEY_SEGMENT_DETAIL)
            entity_id_statement = None
            if not config.is_event_method:
                entity_id_statement = build_entity_id_statement(config)

            if entity_id_statement:
                entity_id = GENERATED_KEY_BUILDER_ENTITY_ID_VARIABLE_NAME
                statements.append(entity_id_statement)
                statements.append(
                    f"if ({entity_id}) {{\n  {_return_as_const([head, detail_segment, entity_id])}\n}}"
                )
            statements.append(_return_as_const([head, detail_segment, request]))

    body = "\n\n".join(statements)
    text = (
        f"export function {config.query_key_builder_name}({parameters}) {{\n"
        f"{indent(body)}\n"
        f"}}"
    )
    return Declaration(text=text, kind=DeclarationKind.FUNCTION, name=config.query_key_builder_name)


def default_key_getter(
    config: MethodGeneratorConfig,
    key_builder: Optional[Declaration],
    default_key: Optional[str],
) -> str:
    """Expression used as queryKey/mutationKey inside the hook."""
    if default_key:
        return default_key

    if key_builder is not None:
        args = ""
        if config.operation_kind != OperationKind.MUTATION and config.merged_request_schema is not None and config.parameter_name:
            args = config.parameter_name
        return f"{config.query_key_builder_name}({args})"

    if config.related_entity is not None:
        return f"[{_entity_key_expression(config.related_entity)}] as const"
    return f"[{quote(get_method_entity_name(config.method, config.index))}] as const"


def build_default_enabled(config: MethodGeneratorConfig, required_parameters: List[str]) -> str:
    if required_parameters:
        return f"Boolean({' && '.join(required_parameters)})"
    return "true"


def build_request_enabled(config: MethodGeneratorConfig, request_enabled_or_getter) -> str:
    """Resolve the `enabled` expression from a bool, an expression string or a getter."""
    required_parameters = get_required_request_parameters(config)
    base_enabled = build_default_enabled(config, required_parameters)

    value = request_enabled_or_getter
    if callable(value):
        value = value(config, base_enabled, required_parameters)

    if value is None:
        return base_enabled
    if isinstance(value, bool):
        return "true" if value else "false"
    return value or "true"


def build_preload(config: MethodGeneratorConfig) -> Optional[str]:
    """`const preloadedData = preloadData<...>(...)` for references the request already identifies."""
    response_entity = config.response_entity
    if config.response_body_schema is None or response_entity is None or not response_entity.references:
        return None
    if config.merged_request_schema is None or not config.parameter_name:
        return None

    ref_keys: List[str] = []
    assignments: List[str] = []

    for key, ref in response_entity.references.items():
        if not isinstance(ref, EntityReferenceDetail):
            continue
        entity = ref.entity
        ref_keys.append(quote(key))
        matches = match_primary_keys(config, entity)

        if len(matches) != len(entity.primary_keys or []):
            log.warning(
                "could not find all primary keys while building preload for request: %s (entity: %s). "
                "Skipping preload for %s. Primary keys: %s, found: %s",
                config.method.generated_name,
                entity.entity_name,
                key,
                entity.primary_keys or [],
                sorted(matches),
                extra=log_context(config.file.key, GenerationStage.GENERATE_OPERATIONS),
            )
            continue

        if len(matches) == 1:
            assignments.append(f"{property_key(key)}: {next(iter(matches.values()))}")
        else:
            assignments.append(
                f"{property_key(key)}: {entity.entity_variable_name}.{NORMALIZR_ENTITY_GET_ID_METHOD_NAME}"
                f"({_nested_object_literal(matches)}, {{}}, '')"
            )

    if not assignments:
        return None

    config.file.add_import(config.file.normalized_cache_import_path, [NORMALIZED_QUERY_CACHE_PRELOAD_DATA_HELPER_NAME])

    return (
        f"const {PRELOAD_DATA_VARIABLE_NAME} = {NORMALIZED_QUERY_CACHE_PRELOAD_DATA_HELPER_NAME}"
        f"<{config.response_body_schema.generated_name}, {' | '.join(ref_keys)}>"
        f"({response_entity.entity_variable_name}, {{ {', '.join(assignments)} }});"
    )


def _request_parameter(config: MethodGeneratorConfig) -> Optional[str]:
    if config.operation_kind == OperationKind.MUTATION or config.merged_request_schema is None:
        return None
    schema = config.merged_request_schema
    properties = config.index.properties_of(schema.raw_schema)
    has_required = any(prop.required for prop in properties.values())
    if not has_required:
        return f"{config.parameter_name}?: {schema.generated_name}"
    if config.undefined_request_for_skip:
        return f"{config.parameter_name}: {schema.generated_name} | undefined"
    return f"{config.parameter_name}: {schema.generated_name}"


def _options_parameter(config: MethodGeneratorConfig) -> str:
    response = config.response_body_schema
    return_type = f"{response.generated_name} | undefined" if response else "undefined"

    if config.operation_kind == OperationKind.MUTATION:
        request_type = config.merged_request_schema.generated_name if config.merged_request_schema else "undefined"
        type_args = [return_type, "Error", request_type, "unknown"]
    elif config.operation_kind == OperationKind.PAGED_QUERY:
        type_args = [
            return_type,
            "Error",
            f"{REACT_QUERY_INFINITE_DATA_TYPE_NAME}<{return_type}>",
            return_type,
            REACT_QUERY_QUERY_KEY_TYPE_NAME,
            "string | undefined",
        ]
    else:
        type_args = [return_type]

    return (
        f"{GENERATED_HOOK_REACT_QUERY_OPTIONS_PARAMETER_NAME}?: "
        f"Partial<{config.query_options_type_name}<{', '.join(type_args)}>>"
    )


def _client_fn_call(config: MethodGeneratorConfig, base_url: str, request_init: Optional[str]) -> str:
    args = [base_url]
    request = config.parameter_name

    if config.merged_request_schema is not None and request:
        if config.operation_kind == OperationKind.PAGED_QUERY:
            page_parameter = get_page_parameter(config)
            if page_parameter:
                page_param = REACT_QUERY_INFINITE_QUERY_HOOK_PAGE_PARAM_NAME
                args.append(
                    f"{{ ...{request}, {page_parameter[0]}: {page_param} ? "
                    f"{{ {J5_LIST_PAGE_REQUEST_PAGINATION_TOKEN_PARAM_NAME}: {page_param} }} : undefined }}"
                )
            else:
                args.append(request)
        else:
            args.append(request)

    if request_init:
        args.append(request_init)

    return f"{config.method.generated_name}({', '.join(args)})"


def _query_fn_args(config: MethodGeneratorConfig) -> str:
    if config.operation_kind == OperationKind.MUTATION:
        if config.merged_request_schema is not None and config.parameter_name:
            return f"{config.parameter_name}: {config.merged_request_schema.generated_name}"
        return ""
    if config.operation_kind == OperationKind.PAGED_QUERY:
        return f"{{ {REACT_QUERY_INFINITE_QUERY_HOOK_PAGE_PARAM_NAME} }}"
    return ""


def build_query_options(
    config: MethodGeneratorConfig,
    query_key: str,
    enabled: Optional[str],
    base_url: str,
    request_init: Optional[str],
    has_preload: bool,
) -> List[str]:
    """The `key: value` entries of the object passed to the react-query hook."""
    options = [
        f"{config.query_key_parameter_name}: {query_key}",
        f"{config.query_fn_parameter_name}: async ({_query_fn_args(config)}) => "
        f"{_client_fn_call(config, base_url, request_init)}",
    ]

    if enabled is not None:
        options.append(f"{REACT_QUERY_ENABLED_PARAM_NAME}: {enabled}")

    if config.response_entity is not None:
        options.append(
            f"{REACT_QUERY_META_PARAM_NAME}: {{ {GENERATED_HOOK_META_NORMALIZATION_SCHEMA_PARAMETER_NAME}: "
            f"{config.response_entity.entity_variable_name} }}"
        )

    if config.operation_kind == OperationKind.PAGED_QUERY:
        page_response = get_page_response_parameter(config)
        if page_response:
            response_arg = REACT_QUERY_INFINITE_QUERY_GET_NEXT_PAGE_FN_RESPONSE_PARAM_NAME
            options.append(
                f"{REACT_QUERY_INFINITE_QUERY_GET_NEXT_PAGE_PARAM_NAME}: ({response_arg}) => "
                f"{response_arg}?.{page_response[0]}?.{J5_LIST_PAGE_RESPONSE_PAGINATION_TOKEN_PARAM_NAME}"
            )
            options.append(f"{REACT_QUERY_INFINITE_QUERY_INITIAL_PAGE_PARAM_NAME}: undefined")

    if has_preload:
        options.append(f"{REACT_QUERY_PLACEHOLDER_DATA_PARAM_NAME}: {PRELOAD_DATA_VARIABLE_NAME}")

    return options


def build_hook(config: MethodGeneratorConfig, head: List[str], options: List[str]) -> Declaration:
    """Render `use<Method>` around the chosen react-query hook."""
    parameters = [p for p in (_request_parameter(config), _options_parameter(config)) if p]
    entries = options + [f"...{GENERATED_HOOK_REACT_QUERY_OPTIONS_PARAMETER_NAME}"]
    call = (
        f"return {config.operation_kind.value}({{\n"
        + indent(",\n".join(entries))
        + ",\n});"
    )
    body = "\n\n".join(head + [call])
    text = (
        f"export function {config.hook_name}({', '.join(parameters)}) {{\n"
        f"{indent(body)}\n"
        f"}}"
    )
    return Declaration(text=text, kind=DeclarationKind.FUNCTION, name=config.hook_name)


def build_hook_comment(method: GeneratedMethod) -> Declaration:
    return Declaration(
        text=f"/** @generated by {PLUGIN_NAME} ({method.http_method.upper()} {method.http_path}) */",
        kind=DeclarationKind.COMMENT,
    )

