"""Tests for operation classification, key builders and hooks."""
import logging
from normalized_query.schemas.graph import ApiSource, GeneratedMethod, ParsedSchema
from normalized_query.generators.query_gen.config import HookPolicy, PluginConfig
from normalized_query.generators.query_gen.generator import NormalizedQueryGenerator
from normalized_query.generators.query_gen.helpers import find_entity_property_reference
from normalized_query.generators.query_gen.render_operation import (
    build_key_builder,
    build_preload,
    build_request_enabled,
    classify_operation,
)
from normalized_query.generators.query_gen.types import OperationKind, PluginFileConfig
from normalized_query.generators.query_gen.writer import InMemorySink

PAGE_REQUEST = {"kind": "ref", "$ref": "#/definitions/j5.list.v1.PageRequest"}
PAGE_RESPONSE = {"kind": "ref", "$ref": "#/definitions/j5.list.v1.PageResponse"}


def schemas():
    return [
        {
            "generatedName": "Order",
            "rawSchema": {
                "kind": "object",
                "fullGrpcName": "shop.v1.Order",
                "entity": {
                    "primaryKeys": ["id"],
                    "queryMethods": ["shop.v1.OrderService.SearchOrders"],
                    "commandMethods": ["shop.v1.OrderService.ArchiveOrder"],
                },
                "properties": [{"name": "id", "required": True, "schema": {"kind": "string"}}],
            },
        },
        {
            "generatedName": "TenantOrder",
            "rawSchema": {
                "kind": "object",
                "fullGrpcName": "shop.v1.TenantOrder",
                "entity": {"primaryKeys": ["tenantId", "id"]},
                "properties": [
                    {"name": "tenantId", "required": True, "schema": {"kind": "string"}},
                    {"name": "id", "required": True, "schema": {"kind": "string"}},
                ],
            },
        },
        {
            "generatedName": "ListOrdersRequest",
            "rawSchema": {
                "kind": "object",
                "fullGrpcName": "shop.v1.ListOrdersRequest",
                "properties": [{"name": "page", "schema": PAGE_REQUEST}],
            },
        },
        {
            "generatedName": "ListOrdersResponse",
            "rawSchema": {
                "kind": "object",
                "fullGrpcName": "shop.v1.ListOrdersResponse",
                "properties": [
                    {"name": "orders", "schema": {"kind": "array", "itemSchema": {"kind": "ref", "$ref": "#/definitions/Order"}}},
                    {"name": "page", "schema": PAGE_RESPONSE},
                ],
            },
        },
        {
            "generatedName": "OrderRequest",
            "rawSchema": {
                "kind": "object",
                "fullGrpcName": "shop.v1.OrderRequest",
                "properties": [
                    {"name": "id", "required": True, "schema": {"kind": "key", "keyEntity": "shop.v1.TenantOrder"}},
                    {"name": "note", "schema": {"kind": "string"}},
                ],
            },
        },
        {
            "generatedName": "TenantOrderResponse",
            "rawSchema": {
                "kind": "object",
                "fullGrpcName": "shop.v1.TenantOrderResponse",
                "properties": [{"name": "order", "schema": {"kind": "ref", "$ref": "#/definitions/TenantOrder"}}],
            },
        },
    ]


def method(name: str, full_name: str, **fields) -> dict:
    return {"generatedName": name, "fullGrpcName": f"shop.v1.OrderService.{full_name}", **fields}


def make_generator(methods, **config_overrides) -> NormalizedQueryGenerator:
    source = ApiSource.model_validate({"schemas": schemas(), "methods": methods})
    config = PluginConfig(
        files=[PluginFileConfig(directory="", file_name="hooks.ts", method_filter=lambda m: True)],
        **config_overrides,
    )
    return NormalizedQueryGenerator(source, config, InMemorySink())


def build_config(generator: NormalizedQueryGenerator, index: int = 0):
    return generator.build_generator_config(generator.source.methods[index], generator.files[0])


def test_classification_rules():
    """Test that the first matching classification rule wins."""
    generator = make_generator([])
    index = generator.index

    def classify(**fields):
        return classify_operation(GeneratedMethod.model_validate(method("x", "X", **fields)), index)

    # Page response beats everything else
    assert classify(httpMethod="post", responseBodySchema="ListOrdersResponse") == OperationKind.PAGED_QUERY
    # Entity query/command lists beat the HTTP verb
    assert classify(
        fullGrpcName="shop.v1.OrderService.SearchOrders", httpMethod="post", relatedEntity="Order",
    ) == OperationKind.QUERY
    assert classify(
        fullGrpcName="shop.v1.OrderService.ArchiveOrder", httpMethod="get", relatedEntity="Order",
    ) == OperationKind.MUTATION
    assert classify(httpMethod="delete") == OperationKind.MUTATION
    assert classify(httpMethod="PATCH") == OperationKind.MUTATION
    assert classify(httpMethod="get") == OperationKind.QUERY


def test_mutation_key_builder_and_hook():
    """Test that mutations key on the method name and take the request in mutationFn."""
    generator = make_generator([
        method("createOrder", "CreateOrder", httpMethod="post", httpPath="/orders", mergedRequestSchema="OrderRequest"),
    ])
    generator.run()
    hooks = generator.sink.files["hooks.ts"]

    assert (
        "export function buildCreateOrderKey() {\n"
        "  return ['shop.v1.OrderService.CreateOrder'] as const;\n"
        "}"
    ) in hooks
    assert "export function useCreateOrder(options?: Partial<UseMutationOptions<undefined, Error, OrderRequest, unknown>>) {" in hooks
    assert "mutationKey: buildCreateOrderKey()," in hooks
    assert "mutationFn: async (request: OrderRequest) => createOrder('', request)," in hooks
    assert "enabled:" not in hooks
    assert "/** @generated by NormalizedQueryPlugin (POST /orders) */" in hooks


def test_paged_query_key_builder_and_hook():
    """Test that paged queries drop the page parameter from the key and page by token."""
    generator = make_generator([
        method(
            "listOrders", "ListOrders",
            mergedRequestSchema="ListOrdersRequest",
            responseBodySchema="ListOrdersResponse",
            relatedEntity="Order",
        ),
    ])
    generator.run()
    hooks = generator.sink.files["hooks.ts"]

    assert (
        "export function buildListOrdersKey(request?: ListOrdersRequest) {\n"
        "  const { page, ...rest } = request || {};\n"
        "\n"
        "  if (rest) {\n"
        "    return [orderEntity.key, 'list', rest] as const;\n"
        "  }\n"
        "\n"
        "  return [orderEntity.key, 'list'] as const;\n"
        "}"
    ) in hooks
    assert (
        "export function useListOrders(request?: ListOrdersRequest, options?: Partial<UseInfiniteQueryOptions<"
        "ListOrdersResponse | undefined, Error, InfiniteData<ListOrdersResponse | undefined>, "
        "ListOrdersResponse | undefined, QueryKey, string | undefined>>) {"
    ) in hooks
    assert "return useInfiniteQuery({" in hooks
    assert (
        "queryFn: async ({ pageParam }) => listOrders('', { ...request, page: pageParam ? { token: pageParam } : undefined }),"
    ) in hooks
    assert "enabled: true," in hooks
    assert "getNextPageParam: (response) => response?.page?.nextToken," in hooks
    assert "initialPageParam: undefined," in hooks
    assert "meta: { normalizationSchema: listOrdersResponseEntity }," in hooks
    assert "orders: [orderEntity]" in hooks
    assert "import { type InfiniteData, type QueryKey, type UseInfiniteQueryOptions, useInfiniteQuery } from '@tanstack/react-query';" in hooks


def test_event_listing_keys_on_raw_request():
    """Test that ListEvents methods lead with the root entity and use the raw request."""
    generator = make_generator([
        method(
            "listOrderEvents", "ListOrderEvents",
            queryPart="ListEvents",
            mergedRequestSchema="OrderRequest",
            relatedEntity="Order",
            rootEntitySchema="Order",
        ),
    ])

    key_builder = build_key_builder(build_config(generator))

    assert "entityId" not in key_builder.text
    assert "return ['Order', 'detail', request] as const;" in key_builder.text


def test_query_without_request():
    """Test that a query with no request schema keys on the entity alone."""
    generator = make_generator([method("getStats", "GetStats")])

    config = build_config(generator)
    key_builder = build_key_builder(config)

    assert key_builder.text == (
        "export function buildGetStatsKey() {\n"
        "  return ['getStats', 'detail'] as const;\n"
        "}"
    )
    assert build_request_enabled(config, None) == "true"


def test_unmatched_keys_fall_back_to_request():
    """Test that the detail key uses the raw request when keys cannot be derived."""
    generator = make_generator([
        method("getTenantOrder", "GetTenantOrder", mergedRequestSchema="OrderRequest", relatedEntity="TenantOrder"),
    ])

    key_builder = build_key_builder(build_config(generator))

    assert "entityId" not in key_builder.text
    assert "return [tenantOrderEntity.key, 'detail', request] as const;" in key_builder.text


def test_typed_key_matches_only_its_entity():
    """Test that a key annotation naming another entity does not match."""
    generator = make_generator(
        [method("getOrder", "GetOrder", mergedRequestSchema="OrderRequest", relatedEntity="Order")],
        allow_string_key_references=False,
    )

    key_builder = build_key_builder(build_config(generator))

    assert "entityId" not in key_builder.text


def test_request_enabled_overrides():
    """Test boolean, expression and callable overrides of the enabled predicate."""
    generator = make_generator([
        method("getOrder", "GetOrder", mergedRequestSchema="OrderRequest", relatedEntity="Order"),
    ])
    config = build_config(generator)

    assert build_request_enabled(config, None) == "Boolean(request?.id)"
    assert build_request_enabled(config, False) == "false"
    assert build_request_enabled(config, "Boolean(request)") == "Boolean(request)"
    assert build_request_enabled(
        config, lambda cfg, default, required: f"{default} && !!{required[0]}",
    ) == "Boolean(request?.id) && !!request?.id"

    config.undefined_request_for_skip = False
    assert build_request_enabled(config, None) == "Boolean(request.id)"


def test_hook_policy_overrides():
    """Test that base URL and options getters shape the hook body."""
    hook = HookPolicy(
        base_url=lambda cfg: "getBaseUrl()",
        request_init_getter=lambda cfg: "{ credentials: 'include' }",
        options_getter=lambda cfg, options: options + ["staleTime: 1000"],
    )
    generator = make_generator(
        [method("getOrder", "GetOrder", mergedRequestSchema="OrderRequest", relatedEntity="Order")],
        hook=hook,
    )
    generator.run()
    hooks = generator.sink.files["hooks.ts"]

    assert "queryFn: async () => getOrder(getBaseUrl(), request, { credentials: 'include' })," in hooks
    assert "staleTime: 1000,\n    ...options," in hooks


def test_partial_preload_match_is_skipped(caplog):
    """Test that a response entity whose keys are only partly in the request gets no preload."""
    generator = make_generator([
        method(
            "getTenantOrder", "GetTenantOrder",
            mergedRequestSchema="OrderRequest",
            responseBodySchema="TenantOrderResponse",
        ),
    ])
    config = build_config(generator)

    with caplog.at_level(logging.WARNING):
        preload = build_preload(config)

    assert preload is None
    assert "could not find all primary keys" in caplog.text


def test_primary_key_matching_by_property_kind():
    """Test which request property kinds can carry an entity's primary key."""
    generator = make_generator([])
    order = generator.generate_entity(generator.index.require("Order"))

    def match(schema, allow_string_keys):
        properties = ParsedSchema.model_validate({
            "kind": "object",
            "properties": [{"name": "id", "required": True, "schema": schema}],
        }).properties
        return find_entity_property_reference(generator.index, properties, "request", order, "id", allow_string_keys)

    # A key naming no entity matches even with string keys disabled
    assert match({"kind": "key"}, False) == "request?.id"
    assert match({"kind": "key", "keyEntity": "shop.v1.Order"}, False) == "request?.id"
    assert match({"kind": "key", "keyEntity": "shop.v1.TenantOrder"}, True) is None
    assert match({"kind": "string"}, True) == "request?.id"
    assert match({"kind": "string"}, False) is None
