"""Settings for the query cache.

Values are read from the environment with the ``QUERY_CACHE_`` prefix,
e.g. ``QUERY_CACHE_ENABLED=false`` turns the request scope into a no-op.
"""

import functools

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class QueryCacheConfig(BaseSettings):
    """Configuration shared by the read path and the scope hooks."""

    model_config = SettingsConfigDict(
        env_prefix="QUERY_CACHE_",
        case_sensitive=False,
        extra="ignore",
    )

    enabled: bool = Field(
        default=True,
        description="Whether units of work opened by query_cache_scope() cache reads.",
    )
    system_namespace_prefix: str = Field(
        default="system.",
        min_length=1,
        description="Collection prefix identifying reserved namespaces that are never cached.",
    )


@functools.lru_cache(maxsize=1)
def get_config() -> QueryCacheConfig:
    """Return the process-wide configuration, loaded once from the environment."""
    return QueryCacheConfig()
