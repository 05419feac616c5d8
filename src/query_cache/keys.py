"""Cache key construction for find queries.

A key captures everything that changes the documents a find returns:
namespace, selector, limit, skip, sort, projection and collation. Nested
selectors are frozen into hashable tuples so that two structurally equal
queries map to the same key no matter which objects they were built from.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from query_cache.protocols import QueryDescriptor

_MAPPING = "$map"
_ORDERED_MAPPING = "$omap"
_SEQUENCE = "$seq"
_SET = "$set"


def freeze(value: Any, *, ordered: bool = False) -> Any:
    """Convert a query component into a hashable, type-tagged value.

    Mappings compare like dicts, regardless of key order. Pass
    ``ordered=True`` for a sort spec, whose top-level key order changes
    the result. Scalars carry their type name so ``1``, ``1.0`` and
    ``True`` never produce the same key.
    """
    if value is None:
        return None
    elif isinstance(value, Mapping):
        items = ((key, freeze(item)) for key, item in value.items())
        if ordered:
            return (_ORDERED_MAPPING, tuple(items))
        return (_MAPPING, frozenset(items))
    elif isinstance(value, (list, tuple)):
        return (_SEQUENCE, tuple(freeze(item) for item in value))
    elif isinstance(value, (set, frozenset)):
        return (_SET, frozenset(freeze(item) for item in value))
    try:
        hash(value)
    except TypeError:
        return (type(value).__qualname__, repr(value))
    return (type(value).__qualname__, value)


class CacheKey(BaseModel):
    """Immutable identity of a find query within one scope."""

    collection_namespace: str = Field(description="Fully qualified 'db.collection' name")
    selector: Any = Field(default=None, description="Frozen query filter")
    limit: int | None = Field(default=None, description="Result limit, None for unlimited")
    skip: int = Field(default=0)
    sort: Any = Field(default=None, description="Frozen sort spec")
    projection: Any = Field(default=None, description="Frozen projection")
    collation: Any = Field(default=None, description="Frozen collation")

    model_config = ConfigDict(frozen=True, strict=True)

    def __str__(self) -> str:
        return f"CacheKey(ns={self.collection_namespace}, limit={self.limit}, skip={self.skip})"

    @classmethod
    def from_descriptor(
        cls, descriptor: QueryDescriptor, *, limit: int | None = None
    ) -> CacheKey:
        """Build the key for ``descriptor`` with ``limit`` substituted."""
        return build_key(
            descriptor.collection_namespace,
            descriptor.selector,
            limit,
            descriptor.skip,
            descriptor.sort,
            descriptor.projection,
            descriptor.collation,
        )


def build_key(
    collection_namespace: str,
    selector: Mapping[str, Any] | None,
    limit: int | None,
    skip: int,
    sort: Mapping[str, Any] | None,
    projection: Mapping[str, Any] | None,
    collation: Mapping[str, Any] | None,
) -> CacheKey:
    """Derive the cache key for a query shape.

    ``limit=None`` and ``limit=0`` stay distinct here; the unlimited
    fallback used during lookup lives in :func:`query_cache.query.execute_read`.
    """
    return CacheKey(
        collection_namespace=collection_namespace,
        selector=freeze(selector),
        limit=limit,
        skip=skip,
        sort=freeze(sort, ordered=True),
        projection=freeze(projection),
        collation=freeze(collation),
    )
