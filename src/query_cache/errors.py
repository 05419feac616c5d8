"""Exceptions raised by the query cache.

Transport and server errors from the database client are never wrapped:
they propagate to the caller unchanged. Only misuse of the cache layer
itself is reported with the types below.
"""


class QueryCacheError(Exception):
    """Base class for errors raised by query_cache."""


class CursorExhaustedError(QueryCacheError):
    """Raised when a live cursor is iterated again after a further batch.

    Once a streaming cursor has fetched a second batch the server-side
    cursor has moved on, so the first batch can no longer be replayed in
    order with the rest of the result.
    """

    def __init__(self, namespace: str, batch_count: int) -> None:
        self.namespace = namespace
        self.batch_count = batch_count
        super().__init__(
            f"Cannot restart iteration of a cursor on {namespace!r} "
            f"which already fetched {batch_count} batches"
        )


class InvalidOperationError(QueryCacheError):
    """Raised when an invalidation hook targets a missing operation."""

    def __init__(self, operation: str, target: object) -> None:
        self.operation = operation
        super().__init__(
            f"{type(target).__name__} has no callable operation {operation!r}"
        )
