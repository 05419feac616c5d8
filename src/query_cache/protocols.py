"""Interfaces consumed from the database client.

The cache never talks to the network itself. It drives any object that
satisfies :class:`CollectionClient`, which is the narrow surface needed
to run a find and to forward writes.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

Document = dict[str, Any]


class QueryDescriptor(BaseModel):
    """Read-only shape of a find query, used verbatim to build cache keys."""

    collection_namespace: str = Field(description="Fully qualified 'db.collection' name")
    selector: dict[str, Any] = Field(default_factory=dict, description="Query filter")
    limit: int | None = Field(default=None, description="Maximum number of documents")
    skip: int = Field(default=0, ge=0, description="Number of documents to skip")
    sort: dict[str, Any] | None = Field(default=None, description="Ordered sort spec")
    projection: dict[str, Any] | None = Field(default=None, description="Field projection")
    collation: dict[str, Any] | None = Field(default=None, description="Collation options")

    model_config = ConfigDict(frozen=True)


class ResultBatch(BaseModel):
    """Documents returned by one network round trip."""

    documents: list[Document] = Field(default_factory=list)
    cursor_id: int = Field(
        default=0,
        description="Server cursor id; 0 means no further batches are pending",
    )

    @property
    def is_final(self) -> bool:
        return self.cursor_id == 0


@runtime_checkable
class CollectionClient(Protocol):
    """A single collection on the database client.

    ``execute_query`` returns an iterator of :class:`ResultBatch`. Pulling
    the first item performs the initial query; every further item is one
    more round trip. Errors raised by either call are transport or server
    errors and are propagated untouched by the cache.
    """

    @property
    def namespace(self) -> str: ...

    def execute_query(self, descriptor: QueryDescriptor) -> Iterator[ResultBatch]: ...

    def execute_mutation(self, operation: str, *args: Any, **kwargs: Any) -> Any: ...
