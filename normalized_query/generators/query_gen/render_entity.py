"""Entity-specific rendering functions for normalizr declarations."""
from typing import List, Optional
from normalized_query.schemas.graph import GeneratedSchema, SchemaKind
from normalized_query.generators.query_gen.constants import (
    NORMALIZR_ENTITY_NAME,
    NORMALIZR_ID_ATTRIBUTE_PARAM,
    NORMALIZR_OBJECT_NAME,
    NORMALIZR_SCHEMA_NAME,
)
from normalized_query.generators.query_gen.types import (
    Declaration,
    DeclarationKind,
    EntityReferenceDetail,
    NestedReference,
    NormalizerEntity,
    ReferenceMap,
)
from normalized_query.generators.query_gen.utils import property_key, quote


def get_entity_name(schema: GeneratedSchema) -> str:
    """Business name of a schema: the state entity name when it has one."""
    raw = schema.raw_schema
    if raw.kind == SchemaKind.OBJECT and raw.full_grpc_name:
        if raw.entity and raw.entity.state_entity_full_name:
            return raw.entity.state_entity_full_name
        return raw.full_grpc_name
    if raw.kind in (SchemaKind.ONE_OF, SchemaKind.ENUM) and raw.full_grpc_name:
        return raw.full_grpc_name
    return schema.generated_name


def get_entity_primary_keys(schema: GeneratedSchema) -> Optional[List[str]]:
    return schema.raw_schema.primary_keys


def can_generate_id_attribute(primary_keys: Optional[List[str]]) -> bool:
    """An accessor needs at least one key and no empty path segments."""
    if not primary_keys:
        return False
    return all(part for key in primary_keys for part in key.split("."))


def generate_id_attribute_accessor(entity: NormalizerEntity) -> Optional[str]:
    """Render the idAttribute value for an entity.

    A single flat key is used as a plain string; composite or dotted keys
    become an arrow function joining the projected values with '-'.
    """
    primary_keys = entity.primary_keys
    if not can_generate_id_attribute(primary_keys):
        return None

    has_dot_separation = any("." in key for key in primary_keys)
    if not has_dot_separation and len(primary_keys) == 1:
        return quote(primary_keys[0])

    arg_name = "entity"
    spans = "-".join(
        "${" + arg_name + "." + "?.".join(key.split(".")) + "}"
        for key in primary_keys
    )
    return f"({arg_name}: {entity.generated_name}) => `{spans}`"


def _indent_continuation(text: str) -> str:
    lines = text.split("\n")
    return "\n".join([lines[0]] + ["  " + line if line else line for line in lines[1:]])


def render_entity_reference_map(references: ReferenceMap) -> str:
    """Render a ReferenceMap as a multi-line object literal."""
    if not references:
        return "{}"

    lines = []
    for key, value in references.items():
        if isinstance(value, EntityReferenceDetail):
            rendered = value.entity.entity_variable_name
        elif isinstance(value, NestedReference):
            rendered = render_normalizr_object(value.references)
        else:
            continue

        if value.is_array:
            rendered = f"[{rendered}]"
        lines.append(f"  {property_key(key)}: " + _indent_continuation(rendered))

    return "{\n" + ",\n".join(lines) + "\n}"


def render_normalizr_object(references: ReferenceMap, schema_name: Optional[str] = None) -> str:
    type_args = f"<{schema_name}>" if schema_name else ""
    return (
        f"new {NORMALIZR_SCHEMA_NAME}.{NORMALIZR_OBJECT_NAME}{type_args}("
        f"{render_entity_reference_map(references)})"
    )


def render_entity_declarations(
    entity: NormalizerEntity,
    id_attribute: str,
    references: Optional[ReferenceMap] = None,
) -> List[Declaration]:
    """Entity-name constant followed by the schema.Entity definition.

    ``references`` overrides the initializer's reference map; references
    to entities that are not declared yet go into a later define call.
    """
    if references is None:
        references = entity.references
    const_name = entity.entity_name_const_name
    name_decl = Declaration(
        text=f"export const {const_name} = {quote(entity.entity_name)};",
        kind=DeclarationKind.VARIABLE,
        name=const_name,
    )

    definition = (
        f"export const {entity.entity_variable_name} = "
        f"new {NORMALIZR_SCHEMA_NAME}.{NORMALIZR_ENTITY_NAME}<{entity.generated_name}>("
        f"{const_name}, {render_entity_reference_map(references)}, "
        f"{{ {NORMALIZR_ID_ATTRIBUTE_PARAM}: {id_attribute} }});"
    )
    entity_decl = Declaration(
        text=definition,
        kind=DeclarationKind.VARIABLE,
        name=entity.entity_variable_name,
    )
    return [name_decl, entity_decl]


def render_entity_definition(entity: NormalizerEntity, references: ReferenceMap) -> Declaration:
    """Late ``define`` call for references that could not be inlined."""
    return Declaration(
        text=f"{entity.entity_variable_name}.define({render_entity_reference_map(references)});",
        kind=DeclarationKind.OTHER,
        name=f"{entity.entity_variable_name}.define",
    )


def render_wrapper_declaration(entity: NormalizerEntity) -> Declaration:
    """schema.Object definition for a non-entity schema that references entities."""
    return Declaration(
        text=(
            f"export const {entity.entity_variable_name} = "
            f"{render_normalizr_object(entity.references, entity.generated_name)};"
        ),
        kind=DeclarationKind.VARIABLE,
        name=entity.entity_variable_name,
    )
