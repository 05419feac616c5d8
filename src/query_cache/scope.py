"""Per unit-of-work state of the query cache.

Both the enabled flag and the table of cached cursors live in context
variables, so each thread and each asyncio task sees its own values.
A unit of work (typically one inbound request) is bracketed with
:func:`query_cache_scope`, which installs a fresh :class:`ScopeStore`
and throws it away when the work is done.
"""

from __future__ import annotations

import functools
import inspect
import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field
from typing import Any, TypeVar

from pydantic import BaseModel, Field

from query_cache.config import get_config
from query_cache.cursor import CachedCursor
from query_cache.keys import CacheKey

logger = logging.getLogger("query_cache")

FuncT = TypeVar("FuncT", bound=Callable[..., Any])

_enabled: ContextVar[bool] = ContextVar("query_cache_enabled", default=False)
_scope_store: ContextVar[ScopeStore | None] = ContextVar(
    "query_cache_store", default=None
)


class ScopeStats(BaseModel):
    """Counters for the cached reads of one scope."""

    hits: int = Field(default=0, description="Reads served from a cached cursor")
    misses: int = Field(default=0, description="Reads executed and stored")
    bypasses: int = Field(default=0, description="Reads executed without caching")
    invalidations: int = Field(default=0, description="Times the table was cleared")
    total_entries: int = Field(default=0, description="Cursors currently cached")

    @property
    def hit_rate(self) -> str:
        """Share of cached reads served from memory, as a percentage string."""
        total = self.hits + self.misses
        if total == 0:
            return "0.00%"
        return f"{(self.hits / total) * 100:.2f}%"


@dataclass
class ScopeStore:
    """Cached cursors of one unit of work, keyed by query shape."""

    entries: dict[CacheKey, CachedCursor] = field(default_factory=dict)
    hits: int = 0
    misses: int = 0
    bypasses: int = 0
    invalidations: int = 0

    def lookup(self, key: CacheKey) -> CachedCursor | None:
        """Return the cursor under ``key`` if it can still be replayed.

        A live cursor that is being read right now is skipped as well, so a
        nested identical query gets its own server cursor.
        """
        cursor = self.entries.get(key)
        if cursor is None or not cursor.is_iterable_again():
            return None
        if cursor.is_in_use():
            return None
        return cursor

    def store(self, key: CacheKey, cursor: CachedCursor) -> None:
        self.entries[key] = cursor

    def clear(self) -> int:
        count = len(self.entries)
        self.entries.clear()
        self.invalidations += 1
        return count

    def stats(self) -> ScopeStats:
        return ScopeStats(
            hits=self.hits,
            misses=self.misses,
            bypasses=self.bypasses,
            invalidations=self.invalidations,
            total_entries=len(self.entries),
        )


def is_enabled() -> bool:
    """Is the query cache enabled in the current context?"""
    return _enabled.get()


def set_enabled(value: bool) -> None:
    """Enable or disable the query cache for the current context only."""
    _enabled.set(bool(value))


def active_store() -> ScopeStore | None:
    """Return the store of the current context without creating one."""
    return _scope_store.get()


def current_store() -> ScopeStore:
    """Return the store of the current context, creating it on first use."""
    store = _scope_store.get()
    if store is None:
        store = ScopeStore()
        _scope_store.set(store)
    return store


def cache_table() -> dict[CacheKey, CachedCursor]:
    """The key to cursor table of the current scope."""
    return current_store().entries


def clear_cache() -> int:
    """Drop every cached cursor of the current scope.

    Returns the number of entries removed. Clearing outside any scope is a
    no-op and does not create a store.
    """
    store = active_store()
    if store is None:
        return 0
    count = store.clear()
    if count:
        logger.debug(f"Cleared {count} cached queries from scope")
    return count


def get_stats() -> dict[str, Any]:
    """Return statistics about the current scope."""
    store = active_store() or ScopeStore()
    return store.stats().model_dump()


class _CachingFlag:
    """Sets the enabled flag for a block and restores it afterwards.

    Works as a ``with`` block and as a decorator. Decorated coroutine
    functions get the flag around the awaited body, not around the call
    that merely creates the coroutine.
    """

    def __init__(self, value: bool) -> None:
        self.value = value
        self._saved: list[bool] = []

    def __enter__(self) -> None:
        self._saved.append(is_enabled())
        set_enabled(self.value)

    def __exit__(self, *exc_info: object) -> None:
        set_enabled(self._saved.pop())

    def __call__(self, func: FuncT) -> FuncT:
        value = self.value

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                with _CachingFlag(value):
                    return await func(*args, **kwargs)

            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            with _CachingFlag(value):
                return func(*args, **kwargs)

        return sync_wrapper  # type: ignore[return-value]


def cache() -> _CachingFlag:
    """Run the body with the query cache enabled.

    The previous flag is restored on exit, also when the body raises, so
    nested blocks never leave caching switched on behind them.
    """
    return _CachingFlag(True)


def uncached() -> _CachingFlag:
    """Run the body with the query cache disabled.

    Reads inside the block always go to the database, which is what a
    reload of an entity from its source needs. Sync and async methods
    can both be decorated:

        class Order:
            @uncached()
            async def reload(self):
                ...
    """
    return _CachingFlag(False)


@contextmanager
def query_cache_scope(enabled: bool | None = None) -> Iterator[ScopeStore]:
    """Bracket one unit of work with its own, empty query cache.

    A fresh store is installed for the duration of the block and caching is
    switched on (unless ``enabled`` or the configuration says otherwise).
    On exit the store is cleared and the previous store and flag are put
    back, whether the body succeeded or not.
    """
    if enabled is None:
        enabled = get_config().enabled

    store = ScopeStore()
    store_token = _scope_store.set(store)
    enabled_token = _enabled.set(enabled)
    logger.debug(f"Opened query cache scope (enabled={enabled})")
    try:
        yield store
    finally:
        count = len(store.entries)
        store.entries.clear()
        _enabled.reset(enabled_token)
        _scope_store.reset(store_token)
        logger.debug(
            f"Closed query cache scope: {store.hits} hits, {store.misses} misses, "
            f"{count} entries discarded"
        )
