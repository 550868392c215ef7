"""Names used in the emitted TypeScript."""

PLUGIN_NAME = "NormalizedQueryPlugin"

GENERATED_HOOK_MERGED_REQUEST_PARAMETER_NAME = "request"
GENERATED_HOOK_REACT_QUERY_OPTIONS_PARAMETER_NAME = "options"
GENERATED_HOOK_META_NORMALIZATION_SCHEMA_PARAMETER_NAME = "normalizationSchema"
GENERATED_HOOK_QUERY_KEY_GETTER_REST_NAME = "rest"
GENERATED_KEY_BUILDER_ENTITY_ID_VARIABLE_NAME = "entityId"

# @tanstack/react-query
REACT_QUERY_IMPORT_PATH = "@tanstack/react-query"
REACT_QUERY_QUERY_HOOK_NAME = "useQuery"
REACT_QUERY_INFINITE_QUERY_HOOK_NAME = "useInfiniteQuery"
REACT_QUERY_MUTATION_HOOK_NAME = "useMutation"
REACT_QUERY_INFINITE_QUERY_HOOK_PAGE_PARAM_NAME = "pageParam"
REACT_QUERY_META_PARAM_NAME = "meta"
REACT_QUERY_ENABLED_PARAM_NAME = "enabled"
REACT_QUERY_INFINITE_QUERY_INITIAL_PAGE_PARAM_NAME = "initialPageParam"
REACT_QUERY_INFINITE_QUERY_GET_NEXT_PAGE_PARAM_NAME = "getNextPageParam"
REACT_QUERY_INFINITE_QUERY_GET_NEXT_PAGE_FN_RESPONSE_PARAM_NAME = "response"
REACT_QUERY_PLACEHOLDER_DATA_PARAM_NAME = "placeholderData"
REACT_QUERY_INFINITE_DATA_TYPE_NAME = "InfiniteData"
REACT_QUERY_QUERY_KEY_TYPE_NAME = "QueryKey"

REACT_QUERY_OPTIONS_TYPE_BY_HOOK_NAME = {
    REACT_QUERY_QUERY_HOOK_NAME: "UseQueryOptions",
    REACT_QUERY_INFINITE_QUERY_HOOK_NAME: "UseInfiniteQueryOptions",
    REACT_QUERY_MUTATION_HOOK_NAME: "UseMutationOptions",
}

REACT_QUERY_FN_KEY_PARAMETER_NAME_BY_HOOK_NAME = {
    REACT_QUERY_QUERY_HOOK_NAME: "queryKey",
    REACT_QUERY_INFINITE_QUERY_HOOK_NAME: "queryKey",
    REACT_QUERY_MUTATION_HOOK_NAME: "mutationKey",
}

REACT_QUERY_FN_PARAMETER_NAME_BY_HOOK_NAME = {
    REACT_QUERY_QUERY_HOOK_NAME: "queryFn",
    REACT_QUERY_INFINITE_QUERY_HOOK_NAME: "queryFn",
    REACT_QUERY_MUTATION_HOOK_NAME: "mutationFn",
}

# normalizr
NORMALIZR_IMPORT_PATH = "normalizr"
NORMALIZR_SCHEMA_NAME = "schema"
NORMALIZR_ENTITY_NAME = "Entity"
NORMALIZR_OBJECT_NAME = "Object"
NORMALIZR_SCHEMA_KEY_PARAM = "key"
NORMALIZR_ID_ATTRIBUTE_PARAM = "idAttribute"
NORMALIZR_ENTITY_GET_ID_METHOD_NAME = "getId"

# j5 pagination
J5_LIST_PAGE_RESPONSE_TYPE = "j5.list.v1.PageResponse"
J5_LIST_PAGE_REQUEST_TYPE = "j5.list.v1.PageRequest"
J5_LIST_PAGE_REQUEST_PAGINATION_TOKEN_PARAM_NAME = "token"
J5_LIST_PAGE_RESPONSE_PAGINATION_TOKEN_PARAM_NAME = "nextToken"

QUERY_PART_LIST_EVENTS = "ListEvents"

MUTATION_HTTP_METHODS = {"post", "put", "patch", "delete"}

# @pentops/normalized-query-cache
NORMALIZED_QUERY_CACHE_IMPORT_PATH = "@pentops/normalized-query-cache"
NORMALIZED_QUERY_CACHE_PRELOAD_DATA_HELPER_NAME = "preloadData"
PRELOAD_DATA_VARIABLE_NAME = "preloadedData"

KEY_SEGMENT_DETAIL = "detail"
KEY_SEGMENT_LIST = "list"
