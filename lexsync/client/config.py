"""Client-side cache and retry policies."""

from pydantic import BaseModel, Field


class CacheConfig(BaseModel):
    """Freshness and size limits of the local cache."""

    max_age: float = Field(default=24 * 60 * 60, gt=0, description="Seconds an entry stays valid")
    max_items: int = Field(default=1000, ge=1)
    schema_version: str = "1.0.0"
    refresh_ratio: float = Field(default=0.8, gt=0, le=1)
    key_prefix: str = "lexsync_"


class RetryPolicy(BaseModel):
    """Linear backoff for retryable failures."""

    max_attempts: int = Field(default=3, ge=1)
    base_delay: float = Field(default=1.0, ge=0)
