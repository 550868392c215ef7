"""Read-only lookup over the generated schemas."""
import logging
from typing import Dict, Iterable, Iterator, Optional
from normalized_query.schemas.graph import (
    GeneratedSchema,
    ParsedSchema,
    PropertyDescriptor,
    SchemaKind,
    STRUCTURAL_KINDS,
    clean_ref_name,
)

log = logging.getLogger(__name__)


class SchemaGraphError(RuntimeError):
    """The schema provider broke its contract (e.g. a required schema is missing)."""


class SchemaIndex:
    """Schemas by generated name, with reverse lookup by fully-qualified name."""

    def __init__(self, schemas: Iterable[GeneratedSchema]):
        self._by_name: Dict[str, GeneratedSchema] = {}
        self._by_full_name: Dict[str, GeneratedSchema] = {}
        # id(raw_schema) -> owner, for raw schemas that carry no full name
        self._by_raw_id: Dict[int, GeneratedSchema] = {}
        for schema in schemas:
            self._by_name[schema.generated_name] = schema
            self._by_full_name.setdefault(schema.full_grpc_name, schema)
            self._by_raw_id[id(schema.raw_schema)] = schema

    def __iter__(self) -> Iterator[GeneratedSchema]:
        return iter(self._by_name.values())

    def __len__(self) -> int:
        return len(self._by_name)

    def get(self, name: str) -> Optional[GeneratedSchema]:
        return self._by_name.get(name)

    def require(self, name: str) -> GeneratedSchema:
        schema = self._by_name.get(name)
        if schema is None:
            raise SchemaGraphError(f"Schema {name!r} is referenced but was not supplied by the schema provider")
        return schema

    def resolve_full_name(self, full_name: str) -> Optional[GeneratedSchema]:
        return self._by_full_name.get(full_name) or self._by_name.get(full_name)

    def resolve_ref(self, ref: str) -> Optional[GeneratedSchema]:
        name = clean_ref_name(ref)
        return self._by_name.get(name) or self._by_full_name.get(name)

    def owner_of(self, schema: ParsedSchema) -> Optional[GeneratedSchema]:
        """The top-level schema a (possibly ref) schema stands for."""
        if schema.kind == SchemaKind.REF and schema.ref:
            return self.resolve_ref(schema.ref)
        if schema.full_grpc_name:
            owner = self.resolve_full_name(schema.full_grpc_name)
            if owner is not None:
                return owner
        return self._by_raw_id.get(id(schema))

    def deref(self, schema: Optional[ParsedSchema]) -> Optional[ParsedSchema]:
        """Follow $ref indirections until a concrete schema is reached.

        Returns None for dangling refs and for ref loops.
        """
        seen = set()
        current = schema
        while current is not None and current.kind == SchemaKind.REF:
            if not current.ref or current.ref in seen:
                return None
            seen.add(current.ref)
            target = self.resolve_ref(current.ref)
            if target is None:
                log.debug("Dangling schema reference %s", current.ref)
                return None
            current = target.raw_schema
        return current

    def properties_of(self, schema: Optional[ParsedSchema]) -> Dict[str, PropertyDescriptor]:
        concrete = self.deref(schema)
        if concrete is not None and concrete.kind in STRUCTURAL_KINDS:
            return concrete.properties
        return {}

    def full_name_of(self, schema: Optional[ParsedSchema]) -> Optional[str]:
        if schema is None:
            return None
        if schema.kind == SchemaKind.REF and schema.ref:
            target = self.resolve_ref(schema.ref)
            return target.full_grpc_name if target else clean_ref_name(schema.ref)
        return schema.full_grpc_name

    def is_type(self, schema: Optional[ParsedSchema], full_name: str) -> bool:
        """Nominal type match used for pagination markers."""
        if schema is None:
            return False
        if schema.kind == SchemaKind.REF and schema.ref and clean_ref_name(schema.ref).endswith(full_name):
            return True
        return self.full_name_of(schema) == full_name
