"""Request-schema matching helpers shared by the operation renderers."""
from typing import Dict, List, Optional, Tuple
from normalized_query.schemas.graph import PropertyDescriptor, SchemaKind
from normalized_query.generators.query_gen.constants import (
    J5_LIST_PAGE_REQUEST_TYPE,
    J5_LIST_PAGE_RESPONSE_TYPE,
)
from normalized_query.generators.query_gen.index import SchemaIndex
from normalized_query.generators.query_gen.types import MethodGeneratorConfig, NormalizerEntity


def find_matching_property(
    index: SchemaIndex,
    properties: Dict[str, PropertyDescriptor],
    full_name: str,
) -> Optional[Tuple[str, PropertyDescriptor]]:
    """First property whose schema is nominally the given type."""
    for name, prop in properties.items():
        if index.is_type(prop.schema_, full_name):
            return name, prop
    return None


def get_page_parameter(config: MethodGeneratorConfig) -> Optional[Tuple[str, PropertyDescriptor]]:
    if config.merged_request_schema is None:
        return None
    properties = config.index.properties_of(config.merged_request_schema.raw_schema)
    return find_matching_property(config.index, properties, J5_LIST_PAGE_REQUEST_TYPE)


def get_page_response_parameter(config: MethodGeneratorConfig) -> Optional[Tuple[str, PropertyDescriptor]]:
    if config.response_body_schema is None:
        return None
    properties = config.index.properties_of(config.response_body_schema.raw_schema)
    return find_matching_property(config.index, properties, J5_LIST_PAGE_RESPONSE_TYPE)


def get_required_request_parameter_names(config: MethodGeneratorConfig) -> List[str]:
    if config.merged_request_schema is None or not config.parameter_name:
        return []
    properties = config.index.properties_of(config.merged_request_schema.raw_schema)
    return [name for name, prop in properties.items() if prop.required]


def get_required_request_parameters(config: MethodGeneratorConfig) -> List[str]:
    """Property-access expressions for every required top-level request property."""
    accessor = "?." if config.undefined_request_for_skip else "."
    return [
        f"{config.parameter_name}{accessor}{name}"
        for name in get_required_request_parameter_names(config)
    ]


def entity_aliases(entity: NormalizerEntity) -> set:
    """Names a key annotation may use to point at this entity."""
    aliases = {entity.entity_name, entity.generated_name}
    raw = entity.schema.raw_schema
    if raw.full_grpc_name:
        aliases.add(raw.full_grpc_name)
    if raw.entity and raw.entity.entity:
        aliases.add(raw.entity.entity)
    return aliases


def _is_key_for_entity(index: SchemaIndex, prop: PropertyDescriptor, aliases: set, allow_string_keys: bool) -> bool:
    schema = index.deref(prop.schema_)
    if schema is None:
        return False
    if schema.kind == SchemaKind.KEY:
        # A key that names no entity is accepted as a fallback
        return schema.key_entity is None or schema.key_entity in aliases
    return allow_string_keys and schema.kind == SchemaKind.STRING


def find_entity_property_reference(
    index: SchemaIndex,
    properties: Dict[str, PropertyDescriptor],
    access_variable_name: str,
    entity: NormalizerEntity,
    primary_key: str,
    allow_string_keys: bool = True,
) -> Optional[str]:
    """Locate a request property chain that carries one primary-key value.

    Walks the dotted primary-key path through the request properties and
    returns an optional-chained access expression (``request?.a?.b``) when
    the terminal property is a key into the entity.

    A ``key`` property matches when its keyEntity names this entity, and
    also when it names no entity at all; a keyless ``key`` is accepted
    whatever ``allow_string_keys`` says. The flag only governs plain
    ``string`` properties, which match while it is set.
    """
    parts = primary_key.split(".")
    aliases = entity_aliases(entity)
    current = properties
    expression = access_variable_name
    parent_optional = True

    for position, part in enumerate(parts):
        prop = current.get(part)
        if prop is None:
            return None

        expression += ("?." if parent_optional else ".") + part
        parent_optional = not prop.required

        if position == len(parts) - 1:
            if _is_key_for_entity(index, prop, aliases, allow_string_keys):
                return expression
            return None

        current = index.properties_of(prop.schema_)
        if not current:
            return None

    return None
