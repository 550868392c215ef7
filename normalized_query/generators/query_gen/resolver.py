"""Entity/reference resolution over the schema graph.

The resolver walks object properties (through arrays and $ref
indirections) and builds a ReferenceMap per schema: which properties
point, directly or through nested objects, at normalizable entities.
Entity descriptors are created lazily through a callback and memoized
in an EntityCache that lives for one generation run.
"""
import logging
from typing import Callable, Dict, Iterator, Optional, Set
from normalized_query.schemas.graph import (
    GeneratedSchema,
    ParsedSchema,
    PropertyDescriptor,
    SchemaKind,
    STRUCTURAL_KINDS,
)
from normalized_query.generators.query_gen.index import SchemaIndex
from normalized_query.generators.query_gen.render_entity import can_generate_id_attribute
from normalized_query.generators.query_gen.types import (
    EntityReferenceDetail,
    NestedReference,
    NormalizerEntity,
    ReferenceMap,
)

log = logging.getLogger(__name__)


class EntityCache:
    """NormalizerEntity per generated schema name, for a single run."""

    def __init__(self):
        self._entities: Dict[str, NormalizerEntity] = {}

    def get(self, generated_name: str) -> Optional[NormalizerEntity]:
        return self._entities.get(generated_name)

    def add(self, entity: NormalizerEntity) -> None:
        self._entities[entity.generated_name] = entity

    def __contains__(self, generated_name: str) -> bool:
        return generated_name in self._entities

    def __iter__(self) -> Iterator[NormalizerEntity]:
        return iter(self._entities.values())

    def __len__(self) -> int:
        return len(self._entities)


class EntityResolver:
    """Builds ReferenceMaps.

    Args:
        index: Schema lookup.
        ensure_entity: Returns the (possibly newly created) descriptor for
            an entity schema, or None when it cannot be generated.
    """

    def __init__(self, index: SchemaIndex, ensure_entity: Callable[[GeneratedSchema], Optional[NormalizerEntity]]):
        self.index = index
        self.ensure_entity = ensure_entity

    def is_entity_schema(self, schema: Optional[ParsedSchema]) -> bool:
        return (
            schema is not None
            and schema.kind == SchemaKind.OBJECT
            and can_generate_id_attribute(schema.primary_keys)
        )

    def get_entity_reference(self, schema: Optional[ParsedSchema]) -> Optional[GeneratedSchema]:
        """The entity a property schema ultimately points at, if any."""
        seen: Set[str] = set()
        current = schema
        while current is not None:
            if current.kind == SchemaKind.ARRAY:
                current = current.item_schema
            elif current.kind == SchemaKind.REF:
                if not current.ref or current.ref in seen:
                    return None
                seen.add(current.ref)
                target = self.index.resolve_ref(current.ref)
                current = target.raw_schema if target else None
            elif self.is_entity_schema(current):
                return self.index.owner_of(current)
            else:
                return None
        return None

    def is_schema_array(self, schema: Optional[ParsedSchema]) -> bool:
        concrete = self.index.deref(schema)
        return concrete is not None and concrete.kind == SchemaKind.ARRAY

    def _structural_schema(self, schema: Optional[ParsedSchema]) -> Optional[ParsedSchema]:
        """Object or union behind refs and arrays; None for scalars."""
        concrete = self.index.deref(schema)
        while concrete is not None and concrete.kind == SchemaKind.ARRAY:
            concrete = self.index.deref(concrete.item_schema)
        if concrete is not None and concrete.kind in STRUCTURAL_KINDS:
            return concrete
        return None

    def _path_key(self, schema: ParsedSchema) -> Optional[str]:
        """Name a structural schema by its owner, so unnamed schemas are tracked too."""
        owner = self.index.owner_of(schema)
        if owner is not None:
            return owner.full_grpc_name
        return schema.full_grpc_name

    def find_entity_references(self, schema: ParsedSchema) -> ReferenceMap:
        """Top-level resolution call for one schema.

        The visited set holds the owning schema names on the current
        resolution path; it is local to this call.
        """
        visited: Set[str] = set()
        root = self._structural_schema(schema)
        if root is None:
            return {}
        root_key = self._path_key(root)
        if root_key:
            visited.add(root_key)
        return self._dig_for_entity_references(root.properties, visited)

    def _dig_for_entity_references(self, properties: Dict[str, PropertyDescriptor], visited: Set[str]) -> ReferenceMap:
        references: ReferenceMap = {}

        for property_name, prop in properties.items():
            is_array = self.is_schema_array(prop.schema_)
            entity_schema = self.get_entity_reference(prop.schema_)

            if entity_schema is not None:
                entity = self.ensure_entity(entity_schema)
                if entity is not None:
                    references[property_name] = EntityReferenceDetail(entity=entity, is_array=is_array)
                else:
                    log.debug("Skipping reference %s to %s", property_name, entity_schema.generated_name)
                continue

            nested = self._structural_schema(prop.schema_)
            if nested is None:
                continue

            path_key = self._path_key(nested)
            if path_key and path_key in visited:
                continue

            if path_key:
                visited.add(path_key)
            nested_references = self._dig_for_entity_references(nested.properties, visited)
            if path_key:
                visited.discard(path_key)

            if nested_references:
                references[property_name] = NestedReference(is_array=is_array, references=nested_references)

        return references
