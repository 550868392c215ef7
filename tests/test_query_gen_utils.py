"""Tests for naming helpers, settings and logging."""
import logging
import tempfile
from pathlib import Path
from normalized_query.core.config import Settings
from normalized_query.core.logging import ContextFormatter, LOG_FORMAT, log_context
from normalized_query.core.workflow import GenerationStage
from normalized_query.schemas.graph import GeneratedMethod, GeneratedSchema, load_api_source
from normalized_query.generators.query_gen.config import (
    PluginConfig,
    default_entity_name_const_name_writer,
    default_entity_name_writer,
    default_hook_name_writer,
    default_key_builder_name_writer,
    generated_wins_policy,
)
from normalized_query.generators.query_gen.utils import (
    import_path_between,
    property_key,
    quote,
    to_camel_case,
    to_constant_case,
)


def test_casing():
    assert to_camel_case("GetOrderResponse-Entity") == "getOrderResponseEntity"
    assert to_constant_case("OrderLine-Entity-Name") == "ORDER_LINE_ENTITY_NAME"


def test_default_naming_policy():
    """Test the default identifiers for schemas and methods."""
    schema = GeneratedSchema.model_validate({"generatedName": "OrderLine", "rawSchema": {"kind": "object"}})
    method = GeneratedMethod.model_validate({"generatedName": "getOrderLine", "fullGrpcName": "x.GetOrderLine"})

    assert default_entity_name_writer(schema) == "orderLineEntity"
    assert default_entity_name_const_name_writer(schema) == "ORDER_LINE_ENTITY_NAME"
    assert default_hook_name_writer(method) == "useGetOrderLine"
    assert default_key_builder_name_writer(method) == "buildGetOrderLineKey"


def test_literals_and_keys():
    assert quote("it's") == "'it\\'s'"
    assert property_key("orderId") == "orderId"
    assert property_key("order-id") == "'order-id'"


def test_import_paths():
    assert import_path_between("generated/hooks.ts", "generated/entities.ts") == "./entities"
    assert import_path_between("generated/hooks.ts", "types/api.ts") == "../types/api"
    assert import_path_between("hooks.ts", "entities.ts") == "./entities"


def test_plugin_config_from_settings():
    """Test that ambient defaults flow from Settings into the plugin config."""
    settings = Settings(
        allow_string_key_references=False,
        undefined_request_for_skip=False,
        base_url="https://api.example.com",
        types_import_path="@acme/types",
    )

    config = PluginConfig.from_settings([], settings)

    assert config.allow_string_key_references is False
    assert config.hook.undefined_request_for_skip is False
    assert config.hook.base_url == "https://api.example.com"
    assert config.types_import_path == "@acme/types"
    assert config.conflict_policy is generated_wins_policy


def test_context_formatter_defaults():
    """Test that records without context fields still format."""
    formatter = ContextFormatter("[file=%(file_key)s stage=%(stage)s] %(message)s")
    record = logging.LogRecord("test", logging.INFO, __file__, 1, "hello", None, None)

    assert formatter.format(record) == "[file=- stage=-] hello"


def test_log_context_fields():
    """Test that the extra mapping names the output file and the generation stage."""
    extra = log_context("generated/hooks.ts", GenerationStage.RECONCILE)
    record = logging.LogRecord("test", logging.INFO, __file__, 1, "done", None, None)
    record.__dict__.update(extra)

    assert extra == {"file_key": "generated/hooks.ts", "stage": "RECONCILE"}
    assert log_context() == {"file_key": "-", "stage": "-"}
    assert ContextFormatter(LOG_FORMAT).format(record).endswith("[file=generated/hooks.ts stage=RECONCILE] - done")


def test_load_api_source_from_yaml():
    """Test that a YAML source document validates into the schema graph."""
    document = """
schemas:
  - generatedName: Customer
    rawSchema:
      kind: object
      fullGrpcName: shop.v1.Customer
      entity:
        primaryKeys: [id]
      properties:
        - name: id
          required: true
          schema: {kind: string}
methods:
  - generatedName: getCustomer
    fullGrpcName: shop.v1.CustomerService.GetCustomer
    responseBodySchema: Customer
"""
    with tempfile.TemporaryDirectory() as temp_dir:
        path = Path(temp_dir) / "api.yaml"
        path.write_text(document, encoding="utf-8")

        source = load_api_source(path)

    customer = source.schemas[0]
    assert customer.full_grpc_name == "shop.v1.Customer"
    assert customer.raw_schema.primary_keys == ["id"]
    assert customer.raw_schema.properties["id"].required is True
    assert source.methods[0].schema_names() == ["Customer"]
