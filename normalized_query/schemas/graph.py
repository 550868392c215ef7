"""Pydantic models describing the parsed API schema graph.

These models are the Schema Provider contract: every generated schema and
client method the generator works from is validated into one of them.
Field aliases follow the camelCase keys of the upstream source document.
"""
import json
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator


class SchemaKind(str, Enum):
    OBJECT = "object"
    ONE_OF = "oneOf"
    ENUM = "enum"
    ARRAY = "array"
    REF = "ref"
    KEY = "key"
    STRING = "string"
    SCALAR = "scalar"


STRUCTURAL_KINDS = {SchemaKind.OBJECT, SchemaKind.ONE_OF}

REF_PREFIXES = ("#/definitions/", "#/components/schemas/")


class EntityInfo(BaseModel):
    """State entity annotation carried by an object schema."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    primary_keys: Optional[List[str]] = Field(None, alias="primaryKeys")
    query_methods: List[str] = Field(default_factory=list, alias="queryMethods")
    command_methods: List[str] = Field(default_factory=list, alias="commandMethods")
    state_entity_full_name: Optional[str] = Field(None, alias="stateEntityFullName")
    entity: Optional[str] = None


class ParsedSchema(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    kind: SchemaKind
    name: Optional[str] = None
    full_grpc_name: Optional[str] = Field(None, alias="fullGrpcName")
    properties: Dict[str, "PropertyDescriptor"] = Field(default_factory=dict)
    entity: Optional[EntityInfo] = None
    item_schema: Optional["ParsedSchema"] = Field(None, alias="itemSchema")
    ref: Optional[str] = Field(None, alias="$ref")
    # Only meaningful for kind == key: the entity the key points at, if declared
    key_entity: Optional[str] = Field(None, alias="keyEntity")

    @field_validator("properties", mode="before")
    @classmethod
    def _properties_from_list(cls, value: Any) -> Any:
        # Source documents list properties in declaration order
        if isinstance(value, list):
            return {item["name"]: item for item in value}
        return value

    @property
    def primary_keys(self) -> Optional[List[str]]:
        if self.kind == SchemaKind.OBJECT and self.entity is not None:
            return self.entity.primary_keys
        return None


class PropertyDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    required: bool = False
    schema_: ParsedSchema = Field(alias="schema")


ParsedSchema.model_rebuild()


class GeneratedSchema(BaseModel):
    """A top-level schema together with the type name the client emits for it."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    generated_name: str = Field(alias="generatedName")
    raw_schema: ParsedSchema = Field(alias="rawSchema")

    @property
    def full_grpc_name(self) -> str:
        return self.raw_schema.full_grpc_name or self.generated_name


class GeneratedMethod(BaseModel):
    """A generated client function and the schemas it reads and returns.

    Schema fields hold generated schema names; they are resolved through
    the SchemaIndex.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    generated_name: str = Field(alias="generatedName")
    full_grpc_name: str = Field(alias="fullGrpcName")
    http_method: str = Field("get", alias="httpMethod")
    http_path: str = Field("", alias="httpPath")
    query_part: Optional[str] = Field(None, alias="queryPart")
    response_body_schema: Optional[str] = Field(None, alias="responseBodySchema")
    merged_request_schema: Optional[str] = Field(None, alias="mergedRequestSchema")
    path_parameters_schema: Optional[str] = Field(None, alias="pathParametersSchema")
    query_parameters_schema: Optional[str] = Field(None, alias="queryParametersSchema")
    request_body_schema: Optional[str] = Field(None, alias="requestBodySchema")
    related_entity: Optional[str] = Field(None, alias="relatedEntity")
    root_entity_schema: Optional[str] = Field(None, alias="rootEntitySchema")

    def schema_names(self) -> List[str]:
        """Every schema the method names; each must be supplied by the provider."""
        names = [
            self.response_body_schema,
            self.merged_request_schema,
            self.request_body_schema,
            self.path_parameters_schema,
            self.query_parameters_schema,
        ]
        return [name for name in names if name]


class ApiSource(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    schemas: List[GeneratedSchema] = Field(default_factory=list)
    methods: List[GeneratedMethod] = Field(default_factory=list)


def clean_ref_name(ref: str) -> str:
    """Strip JSON-pointer style prefixes from a $ref value."""
    for prefix in REF_PREFIXES:
        if ref.startswith(prefix):
            return ref[len(prefix):]
    return ref


def load_api_source(path: Path) -> ApiSource:
    """Load an ApiSource document from a .json, .yaml or .yml file."""
    path = Path(path)
    with open(path, "r", encoding="utf-8") as f:
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(f)
        else:
            data = json.load(f)
    return ApiSource.model_validate(data or {})
