"""Cache-aware execution of find queries."""

from __future__ import annotations

import logging

from query_cache.config import QueryCacheConfig, get_config
from query_cache.cursor import CachedCursor
from query_cache.keys import CacheKey
from query_cache.protocols import CollectionClient, QueryDescriptor
from query_cache.scope import ScopeStore, active_store, current_store, is_enabled

logger = logging.getLogger("query_cache")


def is_system_namespace(namespace: str, config: QueryCacheConfig | None = None) -> bool:
    """Whether ``namespace`` names a reserved collection that is never cached.

    Both bare collection names (``system.users``) and fully qualified ones
    (``admin.system.users``) are recognised.
    """
    prefix = (config or get_config()).system_namespace_prefix
    if namespace.startswith(prefix):
        return True
    _, _, collection = namespace.partition(".")
    return collection.startswith(prefix)


def should_cache(descriptor: QueryDescriptor, config: QueryCacheConfig | None = None) -> bool:
    return is_enabled() and not is_system_namespace(
        descriptor.collection_namespace, config
    )


def _iterable_cached_cursor(
    store: ScopeStore, descriptor: QueryDescriptor
) -> CachedCursor | None:
    # An unlimited result is a superset of any limited one over the same
    # shape, so it is consulted first.
    if descriptor.limit is not None:
        cursor = store.lookup(CacheKey.from_descriptor(descriptor, limit=None))
        if cursor is not None:
            return cursor
    return store.lookup(CacheKey.from_descriptor(descriptor, limit=descriptor.limit))


def execute_read(
    client: CollectionClient,
    descriptor: QueryDescriptor,
    config: QueryCacheConfig | None = None,
) -> CachedCursor:
    """Return a cursor for ``descriptor``, reusing a cached one when possible.

    With caching disabled, or for a system namespace, the query always runs
    and the cursor is not stored. Otherwise a replayable cursor from the
    current scope is returned when one exists; if not, the query runs and
    its cursor is stored under the key for the requested limit. Errors
    from the client propagate unchanged and leave the scope untouched.
    """
    if not should_cache(descriptor, config):
        logger.debug(f"Cache BYPASS for {descriptor.collection_namespace}")
        cursor = CachedCursor(client.execute_query(descriptor), descriptor)
        store = active_store()
        if store is not None:
            store.bypasses += 1
        return cursor

    store = current_store()
    cursor = _iterable_cached_cursor(store, descriptor)
    if cursor is not None:
        store.hits += 1
        logger.debug(
            f"Cache HIT for {descriptor.collection_namespace} (limit={descriptor.limit})"
        )
        return cursor

    logger.debug(
        f"Cache MISS for {descriptor.collection_namespace} (limit={descriptor.limit})"
    )
    try:
        cursor = CachedCursor(client.execute_query(descriptor), descriptor)
    except Exception as e:
        logger.debug(f"Query on {descriptor.collection_namespace} failed: {e!s}")
        raise
    store.store(CacheKey.from_descriptor(descriptor, limit=descriptor.limit), cursor)
    store.misses += 1
    return cursor
