"""Replayable cursor over a batched find result."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from enum import Enum

from query_cache.errors import CursorExhaustedError
from query_cache.protocols import Document, QueryDescriptor, ResultBatch

logger = logging.getLogger("query_cache")


class CursorState(str, Enum):
    """Where a cursor serves its documents from."""

    STREAMING = "streaming"  # live server cursor, batches fetched on demand
    MATERIALIZED = "materialized"  # single batch held in memory


class CachedCursor:
    """A cursor that keeps its result in memory when it fits one batch.

    Creating the cursor performs the initial query round trip. If the
    server answers with the whole result in that first batch (cursor id
    0) the documents are retained and every later iteration replays them
    without touching the network. Otherwise the cursor behaves like a
    plain live cursor and is excluded from reuse once a second batch has
    been fetched.
    """

    def __init__(
        self, batches: Iterable[ResultBatch], descriptor: QueryDescriptor
    ) -> None:
        self.descriptor = descriptor
        self.documents: list[Document] | None = None
        self.batch_count = 0
        self.cursor_id = 0
        self.active_iterations = 0
        self._batches = iter(batches)
        self._first_batch = self.process(next(self._batches, ResultBatch()))

    @property
    def namespace(self) -> str:
        return self.descriptor.collection_namespace

    @property
    def state(self) -> CursorState:
        if self.documents is not None:
            return CursorState.MATERIALIZED
        return CursorState.STREAMING

    def process(self, batch: ResultBatch) -> list[Document]:
        """Record a batch received from the server and return its documents."""
        documents = list(batch.documents)
        self.batch_count += 1
        self.cursor_id = batch.cursor_id
        if self.cursor_id == 0 and self.batch_count == 1:
            self.documents = documents
            logger.debug(
                f"Materialized {len(documents)} documents from {self.namespace}"
            )
        return documents

    def is_iterable_again(self) -> bool:
        """True while the cursor can still be replayed from its start."""
        return self.batch_count <= 1

    def is_in_use(self) -> bool:
        """True while a consumer is reading a live cursor.

        A second consumer of the same server cursor would see it move
        underneath, so such a cursor is not handed out again until the
        current iteration ends.
        """
        return self.state is CursorState.STREAMING and self.active_iterations > 0

    def __iter__(self) -> Iterator[Document]:
        if self.documents is not None:
            yield from self.documents
            return

        if self.batch_count > 1:
            raise CursorExhaustedError(self.namespace, self.batch_count)

        self.active_iterations += 1
        try:
            yield from self._first_batch
            seen = 1
            while True:
                # another iteration advanced the server cursor underneath us
                if self.batch_count != seen:
                    raise CursorExhaustedError(self.namespace, self.batch_count)
                if self.cursor_id == 0:
                    break
                batch = next(self._batches, None)
                if batch is None:
                    break
                documents = self.process(batch)
                seen += 1
                yield from documents
        finally:
            self.active_iterations -= 1

    def each(self, visit: Callable[[Document], object]) -> None:
        """Call ``visit`` for every document in result order."""
        for document in self:
            visit(document)

    def to_list(self) -> list[Document]:
        return list(self)

    def __repr__(self) -> str:
        return (
            f"<CachedCursor:0x{id(self):x} ns={self.namespace!r} "
            f"selector={self.descriptor.selector!r} state={self.state.value} "
            f"batches={self.batch_count}>"
        )
