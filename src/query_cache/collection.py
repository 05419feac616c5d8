"""A collection facade that caches reads and invalidates on writes."""

from __future__ import annotations

import itertools
from collections.abc import Iterator
from typing import Any

from query_cache.config import QueryCacheConfig
from query_cache.cursor import CachedCursor
from query_cache.invalidation import clears_query_cache
from query_cache.protocols import CollectionClient, Document, QueryDescriptor
from query_cache.query import execute_read


class QueryView:
    """The not yet executed result of :meth:`CachingCollection.find`.

    Each iteration goes through :func:`execute_read`, so repeating the same
    iteration within a scope is served from memory. The result is cut to
    the requested limit because a cached unlimited cursor may answer a
    limited query.
    """

    def __init__(self, collection: CachingCollection, descriptor: QueryDescriptor) -> None:
        self.collection = collection
        self.descriptor = descriptor

    def cursor(self) -> CachedCursor:
        return execute_read(self.collection.client, self.descriptor, self.collection.config)

    def __iter__(self) -> Iterator[Document]:
        documents: Iterator[Document] = iter(self.cursor())
        # a negative limit asks for a single batch of abs(limit) documents
        if self.descriptor.limit:
            documents = itertools.islice(documents, abs(self.descriptor.limit))
        return documents

    def to_list(self) -> list[Document]:
        return list(self)

    def first(self) -> Document | None:
        return next(iter(self), None)

    def __repr__(self) -> str:
        return f"QueryView(ns={self.descriptor.collection_namespace!r}, selector={self.descriptor.selector!r})"


class CachingCollection:
    """Collection wrapper with a per-scope query cache.

    Reads return :class:`QueryView` objects backed by the current scope's
    cache; every write clears that cache before it is forwarded to the
    client.

    Example:
        ```python
        users = CachingCollection(client)
        with query_cache_scope():
            users.find({"status": "active"}).to_list()  # network
            users.find({"status": "active"}, limit=2).to_list()  # memory
            users.delete_many({"status": "active"})  # clears the scope
        ```
    """

    def __init__(self, client: CollectionClient, config: QueryCacheConfig | None = None) -> None:
        self.client = client
        self.config = config

    @property
    def namespace(self) -> str:
        return self.client.namespace

    def find(
        self,
        selector: dict[str, Any] | None = None,
        *,
        limit: int | None = None,
        skip: int = 0,
        sort: dict[str, Any] | None = None,
        projection: dict[str, Any] | None = None,
        collation: dict[str, Any] | None = None,
    ) -> QueryView:
        descriptor = QueryDescriptor(
            collection_namespace=self.namespace,
            selector=selector or {},
            limit=limit,
            skip=skip,
            sort=sort,
            projection=projection,
            collation=collation,
        )
        return QueryView(self, descriptor)

    def find_one(self, selector: dict[str, Any] | None = None, **kwargs: Any) -> Document | None:
        kwargs["limit"] = 1
        return self.find(selector, **kwargs).first()

    @clears_query_cache
    def insert_one(self, document: Document, **kwargs: Any) -> Any:
        return self.client.execute_mutation("insert_one", document, **kwargs)

    @clears_query_cache
    def insert_many(self, documents: list[Document], **kwargs: Any) -> Any:
        return self.client.execute_mutation("insert_many", documents, **kwargs)

    @clears_query_cache
    def delete_one(self, selector: dict[str, Any], **kwargs: Any) -> Any:
        return self.client.execute_mutation("delete_one", selector, **kwargs)

    @clears_query_cache
    def delete_many(self, selector: dict[str, Any], **kwargs: Any) -> Any:
        return self.client.execute_mutation("delete_many", selector, **kwargs)

    @clears_query_cache
    def update_one(self, selector: dict[str, Any], update: dict[str, Any], **kwargs: Any) -> Any:
        return self.client.execute_mutation("update_one", selector, update, **kwargs)

    @clears_query_cache
    def update_many(self, selector: dict[str, Any], update: dict[str, Any], **kwargs: Any) -> Any:
        return self.client.execute_mutation("update_many", selector, update, **kwargs)

    @clears_query_cache
    def replace_one(self, selector: dict[str, Any], replacement: Document, **kwargs: Any) -> Any:
        return self.client.execute_mutation("replace_one", selector, replacement, **kwargs)

    @clears_query_cache
    def find_one_and_delete(self, selector: dict[str, Any], **kwargs: Any) -> Any:
        return self.client.execute_mutation("find_one_and_delete", selector, **kwargs)

    @clears_query_cache
    def find_one_and_update(
        self, selector: dict[str, Any], update: dict[str, Any], **kwargs: Any
    ) -> Any:
        return self.client.execute_mutation("find_one_and_update", selector, update, **kwargs)

    @clears_query_cache
    def find_one_and_replace(
        self, selector: dict[str, Any], replacement: Document, **kwargs: Any
    ) -> Any:
        return self.client.execute_mutation(
            "find_one_and_replace", selector, replacement, **kwargs
        )

    def __repr__(self) -> str:
        return f"CachingCollection({self.namespace!r})"
