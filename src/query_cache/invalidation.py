"""Clear the query cache ahead of every write."""

from __future__ import annotations

import functools
import inspect
import logging
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from query_cache.errors import InvalidOperationError
from query_cache.scope import clear_cache

logger = logging.getLogger("query_cache")

FuncT = TypeVar("FuncT", bound=Callable[..., Any])

MUTATING_OPERATIONS: frozenset[str] = frozenset(
    {
        "insert_one",
        "insert_many",
        "delete_one",
        "delete_many",
        "update_one",
        "update_many",
        "replace_one",
        "find_one_and_delete",
        "find_one_and_update",
        "find_one_and_replace",
    }
)


def clears_query_cache(func: FuncT) -> FuncT:
    """Decorator that empties the current scope's cache before ``func`` runs.

    The whole table is dropped, not just the entries the write could
    affect. Works for both sync and async functions; for coroutines the
    clear happens when the call is awaited, right before the write is sent.
    """
    if inspect.iscoroutinefunction(func):

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            clear_cache()
            return await func(*args, **kwargs)

        return async_wrapper  # type: ignore[return-value]

    @functools.wraps(func)
    def sync_wrapper(*args, **kwargs):
        clear_cache()
        return func(*args, **kwargs)

    return sync_wrapper  # type: ignore[return-value]


class InvalidatingProxy:
    """Wraps a client so its write methods clear the query cache first."""

    def __init__(self, target: Any, operations: Iterable[str]) -> None:
        self._target = target
        self._wrapped: dict[str, Callable[..., Any]] = {}
        for name in operations:
            method = getattr(target, name, None)
            if not callable(method):
                raise InvalidOperationError(name, target)
            self._wrapped[name] = clears_query_cache(method)

    def __getattr__(self, name: str) -> Any:
        wrapped = self.__dict__.get("_wrapped", {})
        if name in wrapped:
            return wrapped[name]
        return getattr(self._target, name)

    def __repr__(self) -> str:
        return f"InvalidatingProxy({self._target!r})"


def invalidating(target: Any, operations: Iterable[str] = MUTATING_OPERATIONS) -> Any:
    """Return ``target`` with each of ``operations`` wrapped by :func:`clears_query_cache`."""
    operations = sorted(operations)
    logger.debug(
        f"Installing query cache invalidation on {type(target).__name__}: {', '.join(operations)}"
    )
    return InvalidatingProxy(target, operations)
