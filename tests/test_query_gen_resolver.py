"""Tests for entity/reference resolution."""
from normalized_query.schemas.graph import ApiSource
from normalized_query.generators.query_gen.config import PluginConfig
from normalized_query.generators.query_gen.generator import NormalizedQueryGenerator
from normalized_query.generators.query_gen.types import (
    EntityReferenceDetail,
    NestedReference,
    PluginFileConfig,
)
from normalized_query.generators.query_gen.writer import InMemorySink


def make_generator(schemas) -> NormalizedQueryGenerator:
    source = ApiSource.model_validate({"schemas": schemas})
    config = PluginConfig(files=[
        PluginFileConfig(directory="", file_name="entities.ts", schema_filter=lambda schema: True),
    ])
    return NormalizedQueryGenerator(source, config, InMemorySink())


def ref(name: str) -> dict:
    return {"kind": "ref", "$ref": f"#/definitions/{name}"}


def entity_schema(name: str, properties: list, primary_keys=None) -> dict:
    return {
        "generatedName": name,
        "rawSchema": {
            "kind": "object",
            "fullGrpcName": f"test.v1.{name}",
            "entity": {"primaryKeys": primary_keys or ["id"]},
            "properties": [{"name": "id", "required": True, "schema": {"kind": "string"}}] + properties,
        },
    }


def object_schema(name: str, properties: list) -> dict:
    return {
        "generatedName": name,
        "rawSchema": {"kind": "object", "fullGrpcName": f"test.v1.{name}", "properties": properties},
    }


def test_self_reference_yields_one_entry():
    """Test that an entity referencing itself terminates with exactly one entry."""
    generator = make_generator([
        entity_schema("Node", [{"name": "parent", "schema": ref("Node")}]),
    ])

    node = generator.generate_entity(generator.index.require("Node"))

    assert list(node.references) == ["parent"]
    parent = node.references["parent"]
    assert isinstance(parent, EntityReferenceDetail)
    assert parent.entity is node
    assert parent.is_array is False
    assert len(generator.cache) == 1


def test_self_reference_through_intermediate_object():
    """Test that an entity reachable through a nested object is found and does not loop."""
    generator = make_generator([
        entity_schema("Folder", [{
            "name": "meta",
            "schema": {
                "kind": "object",
                "fullGrpcName": "test.v1.FolderMeta",
                "properties": [{"name": "parent", "schema": ref("Folder")}],
            },
        }]),
    ])

    folder = generator.generate_entity(generator.index.require("Folder"))

    meta = folder.references["meta"]
    assert isinstance(meta, NestedReference)
    assert meta.is_array is False
    assert meta.references["parent"].entity is folder


def test_mutual_references_terminate():
    """Test that two entities referencing each other both resolve."""
    generator = make_generator([
        entity_schema("Author", [{"name": "books", "schema": {"kind": "array", "itemSchema": ref("Book")}}]),
        entity_schema("Book", [{"name": "author", "schema": ref("Author")}]),
    ])

    author = generator.generate_entity(generator.index.require("Author"))
    book = generator.cache.get("Book")

    assert author.references["books"].entity is book
    assert author.references["books"].is_array is True
    assert book.references["author"].entity is author


def test_non_entity_cycle_terminates():
    """Test that a recursive plain object is not entered twice on the same path."""
    generator = make_generator([
        entity_schema("User", []),
        object_schema("Tree", [
            {"name": "children", "schema": {"kind": "array", "itemSchema": ref("Tree")}},
            {"name": "owner", "schema": ref("User")},
        ]),
    ])

    references = generator.resolver.find_entity_references(generator.index.require("Tree").raw_schema)

    assert list(references) == ["owner"]
    assert references["owner"].entity.generated_name == "User"


def test_unnamed_recursive_objects_terminate():
    """Test that recursion through schemas without a fullGrpcName still stops."""
    generator = make_generator([
        entity_schema("User", []),
        {
            "generatedName": "Tree",
            "rawSchema": {
                "kind": "object",
                "properties": [
                    {"name": "children", "schema": {"kind": "array", "itemSchema": ref("Tree")}},
                    {"name": "branch", "schema": ref("Branch")},
                    {"name": "owner", "schema": ref("User")},
                ],
            },
        },
        {
            "generatedName": "Branch",
            "rawSchema": {"kind": "object", "properties": [{"name": "tree", "schema": ref("Tree")}]},
        },
    ])

    references = generator.resolver.find_entity_references(generator.index.require("Tree").raw_schema)

    assert list(references) == ["owner"]
    assert references["owner"].entity.generated_name == "User"


def test_entity_reached_through_unnamed_cycle():
    """Test that an entity behind an unnamed recursive object resolves once per path."""
    generator = make_generator([
        entity_schema("Folder", [{"name": "meta", "schema": ref("FolderMeta")}]),
        {
            "generatedName": "FolderMeta",
            "rawSchema": {
                "kind": "object",
                "properties": [
                    {"name": "self", "schema": ref("FolderMeta")},
                    {"name": "parent", "schema": ref("Folder")},
                ],
            },
        },
    ])

    folder = generator.generate_entity(generator.index.require("Folder"))

    meta = folder.references["meta"]
    assert isinstance(meta, NestedReference)
    assert list(meta.references) == ["parent"]
    assert meta.references["parent"].entity is folder


def test_shared_entity_is_memoized():
    """Test that an entity referenced from two places gets one descriptor."""
    generator = make_generator([
        entity_schema("Customer", []),
        entity_schema("Order", [{"name": "customer", "schema": ref("Customer")}]),
        entity_schema("Invoice", [{"name": "billTo", "schema": ref("Customer")}]),
    ])

    order = generator.generate_entity(generator.index.require("Order"))
    invoice = generator.generate_entity(generator.index.require("Invoice"))

    assert order.references["customer"].entity is invoice.references["billTo"].entity
    assert len(generator.cache) == 3
    declared = [d.name for d in generator.files[0].declarations]
    assert declared.count("customerEntity") == 1


def test_array_of_entities_is_marked():
    """Test that array-wrapped entity properties record is_array."""
    generator = make_generator([
        entity_schema("LineItem", []),
        object_schema("Cart", [
            {"name": "items", "schema": {"kind": "array", "itemSchema": ref("LineItem")}},
            {"name": "total", "schema": {"kind": "scalar"}},
        ]),
    ])

    references = generator.resolver.find_entity_references(generator.index.require("Cart").raw_schema)

    assert list(references) == ["items"]
    assert references["items"].is_array is True


def test_empty_nested_maps_are_dropped():
    """Test that nested objects without entities do not appear in the map."""
    generator = make_generator([
        object_schema("Address", [{"name": "street", "schema": {"kind": "string"}}]),
        object_schema("Profile", [{"name": "address", "schema": ref("Address")}]),
    ])

    references = generator.resolver.find_entity_references(generator.index.require("Profile").raw_schema)

    assert references == {}


def test_dangling_reference_is_skipped():
    """Test that a ref to an unknown schema is ignored."""
    generator = make_generator([
        entity_schema("Ticket", [{"name": "assignee", "schema": ref("Missing")}]),
    ])

    ticket = generator.generate_entity(generator.index.require("Ticket"))

    assert ticket.references == {}


def test_schema_without_usable_keys_is_a_plain_object():
    """Test that an entity annotation with an empty key path is walked like a plain object."""
    generator = make_generator([
        entity_schema("Tag", []),
        entity_schema("Broken", [{"name": "tag", "schema": ref("Tag")}], primary_keys=["a..b"]),
        object_schema("Holder", [{"name": "broken", "schema": ref("Broken")}]),
    ])

    assert generator.generate_entity(generator.index.require("Broken")) is None

    references = generator.resolver.find_entity_references(generator.index.require("Holder").raw_schema)

    broken = references["broken"]
    assert isinstance(broken, NestedReference)
    assert broken.references["tag"].entity.generated_name == "Tag"
