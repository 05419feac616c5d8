"""query_cache: a per-request read cache for document database clients.

Within one unit of work (one request, one task) identical find queries
are answered from memory instead of going back to the server:
- Cache keys derived from the full query shape
- Replay of results that arrived in a single batch
- Unlimited results reused for limited queries over the same shape
- The whole scope cleared ahead of every write
"""

from query_cache.collection import CachingCollection, QueryView
from query_cache.config import QueryCacheConfig, get_config
from query_cache.cursor import CachedCursor, CursorState
from query_cache.errors import (
    CursorExhaustedError,
    InvalidOperationError,
    QueryCacheError,
)
from query_cache.invalidation import (
    MUTATING_OPERATIONS,
    clears_query_cache,
    invalidating,
)
from query_cache.keys import CacheKey, build_key
from query_cache.middleware import QueryCacheMiddleware
from query_cache.protocols import CollectionClient, QueryDescriptor, ResultBatch
from query_cache.query import execute_read, is_system_namespace
from query_cache.scope import (
    ScopeStats,
    ScopeStore,
    cache,
    cache_table,
    clear_cache,
    current_store,
    get_stats,
    is_enabled,
    query_cache_scope,
    set_enabled,
    uncached,
)

__version__ = "0.1.0"

__all__ = [
    "MUTATING_OPERATIONS",
    "CacheKey",
    "CachedCursor",
    "CachingCollection",
    "CollectionClient",
    "CursorExhaustedError",
    "CursorState",
    "InvalidOperationError",
    "QueryCacheConfig",
    "QueryCacheError",
    "QueryCacheMiddleware",
    "QueryDescriptor",
    "QueryView",
    "ResultBatch",
    "ScopeStats",
    "ScopeStore",
    "__version__",
    "build_key",
    "cache",
    "cache_table",
    "clear_cache",
    "clears_query_cache",
    "current_store",
    "execute_read",
    "get_config",
    "get_stats",
    "invalidating",
    "is_enabled",
    "is_system_namespace",
    "query_cache_scope",
    "set_enabled",
    "uncached",
]
