"""Pytest configuration and fixtures for query_cache tests."""

from collections.abc import Iterator
from typing import Any

import pytest

from query_cache import CachingCollection, QueryDescriptor, ResultBatch
from query_cache.scope import query_cache_scope


class FakeCollectionClient:
    """In-memory stand-in for a database collection.

    Every batch pulled from ``execute_query`` counts as one round trip.
    Set ``batch_size`` to split results over several batches and
    ``fail_with`` to make the next queries raise.
    """

    def __init__(
        self,
        namespace: str = "app.users",
        documents: list[dict[str, Any]] | None = None,
        batch_size: int | None = None,
    ) -> None:
        self._namespace = namespace
        self.documents = [dict(doc) for doc in documents or []]
        self.batch_size = batch_size
        self.fail_with: Exception | None = None
        self.queries: list[QueryDescriptor] = []
        self.mutations: list[tuple[str, tuple[Any, ...], dict[str, Any]]] = []
        self.round_trips = 0

    @property
    def namespace(self) -> str:
        return self._namespace

    def _matches(self, document: dict[str, Any], selector: dict[str, Any]) -> bool:
        return all(document.get(field) == value for field, value in selector.items())

    def _find(self, descriptor: QueryDescriptor) -> list[dict[str, Any]]:
        found = [dict(doc) for doc in self.documents if self._matches(doc, descriptor.selector)]
        for field, direction in reversed(list((descriptor.sort or {}).items())):
            found.sort(key=lambda doc: doc[field], reverse=direction < 0)
        found = found[descriptor.skip :]
        if descriptor.limit:
            found = found[: abs(descriptor.limit)]
        if descriptor.projection:
            found = [
                {field: doc[field] for field in descriptor.projection if field in doc}
                for doc in found
            ]
        return found

    def _batches(self, descriptor: QueryDescriptor) -> Iterator[ResultBatch]:
        if self.fail_with is not None:
            raise self.fail_with
        found = self._find(descriptor)
        size = self.batch_size or len(found) or 1
        chunks = [found[i : i + size] for i in range(0, len(found), size)] or [[]]
        for index, chunk in enumerate(chunks):
            self.round_trips += 1
            final = index == len(chunks) - 1
            yield ResultBatch(documents=chunk, cursor_id=0 if final else 7001)

    def execute_query(self, descriptor: QueryDescriptor) -> Iterator[ResultBatch]:
        self.queries.append(descriptor)
        return self._batches(descriptor)

    def execute_mutation(self, operation: str, *args: Any, **kwargs: Any) -> Any:
        self.mutations.append((operation, args, kwargs))
        if operation == "insert_one":
            self.documents.append(dict(args[0]))
            return 1
        if operation == "insert_many":
            self.documents.extend(dict(doc) for doc in args[0])
            return len(args[0])
        if operation == "delete_many":
            before = len(self.documents)
            self.documents = [d for d in self.documents if not self._matches(d, args[0])]
            return before - len(self.documents)
        if operation == "update_many":
            count = 0
            for doc in self.documents:
                if self._matches(doc, args[0]):
                    doc.update(args[1].get("$set", {}))
                    count += 1
            return count
        return None


@pytest.fixture(autouse=True)
def isolated_scope() -> Iterator[None]:
    """Give every test a fresh, disabled query cache scope."""
    with query_cache_scope(enabled=False):
        yield


@pytest.fixture
def active_users() -> list[dict[str, Any]]:
    """Sample documents, three of them active."""
    return [
        {"_id": 1, "name": "Ada", "status": "active", "age": 36},
        {"_id": 2, "name": "Grace", "status": "active", "age": 45},
        {"_id": 3, "name": "Linus", "status": "inactive", "age": 28},
        {"_id": 4, "name": "Barbara", "status": "active", "age": 52},
    ]


@pytest.fixture
def client(active_users: list[dict[str, Any]]) -> FakeCollectionClient:
    """Single-batch client over the sample documents."""
    return FakeCollectionClient(documents=active_users)


@pytest.fixture
def batched_client(active_users: list[dict[str, Any]]) -> FakeCollectionClient:
    """Client that returns two documents per batch."""
    return FakeCollectionClient(documents=active_users, batch_size=2)


@pytest.fixture
def collection(client: FakeCollectionClient) -> CachingCollection:
    """Caching collection over the single-batch client."""
    return CachingCollection(client)
