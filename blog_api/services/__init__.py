from blog_api.services.query_builder import (
    AllowListEntry,
    AllowListRegistry,
    PageResult,
    QueryBuilder,
    QueryRequest,
)
from blog_api.services.api_response import ApiResponseService, ResourceCollection
