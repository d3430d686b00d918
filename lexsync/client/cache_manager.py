"""Local cache of fetched content with expiry, schema versioning and eviction."""

import json
import time
from collections.abc import Callable
from typing import Any, Optional

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from lexsync.client.config import CacheConfig
from lexsync.client.storage import CacheStorage, MemoryStorage
from lexsync.core.errors import StaleCache, StorageQuotaExceeded
from lexsync.core.logging import get_logger

logger = get_logger(__name__)

LAST_CLEANUP = "last_cleanup"


class CacheRecord(BaseModel):
    """Stored wrapper around cached data."""

    data: Any
    timestamp: float
    version: str
    etag: Optional[str] = None


class CacheManager:
    """Cache owning every storage key under ``config.key_prefix``.

    Entries expire ``max_age`` seconds after they were written and are
    discarded when written by another schema version. Reads never raise for
    stale or corrupt entries; they delete them and report a miss. Stale
    entries left by an earlier run are removed on construction.
    """

    def __init__(
        self,
        storage: Optional[CacheStorage] = None,
        config: Optional[CacheConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.storage: CacheStorage = storage if storage is not None else MemoryStorage()
        self.config = config or CacheConfig()
        self._clock = clock
        self.cleanup()

    def key(self, name: str) -> str:
        """Storage key for ``name``, namespaced under the prefix."""
        prefix = self.config.key_prefix
        return name if name.startswith(prefix) else f"{prefix}{name}"

    @property
    def _cleanup_key(self) -> str:
        return self.key(LAST_CLEANUP)

    def _owned_keys(self) -> list[str]:
        prefix = self.config.key_prefix
        return [
            k for k in self.storage.keys()
            if k.startswith(prefix) and k != self._cleanup_key
        ]

    def _is_expired(self, record: CacheRecord) -> bool:
        return self._clock() - record.timestamp > self.config.max_age

    def _read(self, storage_key: str) -> Optional[CacheRecord]:
        """Record at ``storage_key``.

        Raises:
            StaleCache: Entry is corrupt, expired or from another schema
        """
        raw = self.storage.get(storage_key)
        if raw is None:
            return None
        try:
            record = CacheRecord.model_validate_json(raw)
        except PydanticValidationError as e:
            raise StaleCache(f"Corrupt cache entry {storage_key}") from e
        if record.version != self.config.schema_version:
            raise StaleCache(
                f"Cache entry {storage_key} has schema {record.version}, "
                f"expected {self.config.schema_version}"
            )
        if self._is_expired(record):
            raise StaleCache(f"Cache entry {storage_key} expired")
        return record

    def set(self, key: str, data: Any, etag: Optional[str] = None) -> bool:
        """
        Store ``data`` under ``key``.

        A full storage gets one cleanup pass and one more attempt.

        Returns:
            Whether the data was stored
        """
        storage_key = self.key(key)

        def write() -> None:
            record = CacheRecord(
                data=data,
                timestamp=self._clock(),
                version=self.config.schema_version,
                etag=etag,
            )
            self.storage.set(storage_key, record.model_dump_json())

        try:
            write()
            return True
        except StorageQuotaExceeded as e:
            logger.warning("cache_quota_exceeded", key=storage_key, error=str(e))

        self.cleanup()
        try:
            write()
            return True
        except StorageQuotaExceeded as e:
            logger.error("cache_write_failed", key=storage_key, error=str(e))
            return False

    def get_entry(self, key: str) -> Optional[CacheRecord]:
        """Fresh record for ``key``, or None after discarding a stale one."""
        storage_key = self.key(key)
        try:
            return self._read(storage_key)
        except StaleCache as e:
            logger.debug("cache_entry_stale", key=storage_key, reason=e.message)
            self.storage.delete(storage_key)
            return None

    def get(self, key: str) -> Any:
        """Fresh data for ``key``, or None."""
        record = self.get_entry(key)
        return record.data if record is not None else None

    def delete(self, key: str) -> None:
        self.storage.delete(self.key(key))

    def needs_refresh(self, key: str) -> bool:
        """Whether ``key`` is missing or older than the soft-refresh threshold."""
        record = self.get_entry(key)
        if record is None:
            return True
        age = self._clock() - record.timestamp
        return age > self.config.max_age * self.config.refresh_ratio

    def cleanup(self) -> int:
        """
        Remove expired, mismatched and corrupt entries.

        Returns:
            Number of entries removed
        """
        removed = 0
        for storage_key in self._owned_keys():
            try:
                self._read(storage_key)
            except StaleCache:
                self.storage.delete(storage_key)
                removed += 1

        try:
            self.storage.set(self._cleanup_key, str(self._clock()))
        except StorageQuotaExceeded:
            logger.warning("cache_cleanup_marker_skipped")
        logger.info("cache_cleanup_completed", removed=removed)
        return removed

    @property
    def last_cleanup(self) -> Optional[float]:
        raw = self.storage.get(self._cleanup_key)
        try:
            return float(raw) if raw is not None else None
        except ValueError:
            return None

    def optimize(self) -> int:
        """
        Evict the oldest entries, by write time, down to ``max_items``.

        Corrupt entries sort as oldest.

        Returns:
            Number of entries evicted
        """
        keys = self._owned_keys()
        excess = len(keys) - self.config.max_items
        if excess <= 0:
            return 0

        def written_at(storage_key: str) -> float:
            raw = self.storage.get(storage_key)
            try:
                return float(json.loads(raw or "")["timestamp"])
            except (ValueError, KeyError, TypeError):
                return 0.0

        oldest = sorted(keys, key=written_at)[:excess]
        for storage_key in oldest:
            self.storage.delete(storage_key)
        logger.info("cache_optimized", evicted=len(oldest), max_items=self.config.max_items)
        return len(oldest)

    def clear_all(self) -> int:
        """Remove every owned key, including the cleanup marker."""
        keys = self._owned_keys()
        for storage_key in keys:
            self.storage.delete(storage_key)
        self.storage.delete(self._cleanup_key)
        return len(keys)

    def stats(self) -> dict[str, Any]:
        """Size, count and age range of the owned entries."""
        total_size = 0
        count = 0
        oldest: Optional[float] = None
        newest: Optional[float] = None
        for storage_key in self._owned_keys():
            raw = self.storage.get(storage_key)
            if raw is None:
                continue
            total_size += len(raw.encode("utf-8"))
            count += 1
            try:
                timestamp = float(json.loads(raw)["timestamp"])
            except (ValueError, KeyError, TypeError):
                continue
            oldest = timestamp if oldest is None else min(oldest, timestamp)
            newest = timestamp if newest is None else max(newest, timestamp)

        return {
            "total_size": total_size,
            "entry_count": count,
            "oldest_entry": oldest,
            "newest_entry": newest,
            "max_age": self.config.max_age,
        }

    def export(self) -> str:
        """Owned entries as a JSON document keyed by storage key."""
        data: dict[str, Any] = {}
        for storage_key in self._owned_keys():
            raw = self.storage.get(storage_key)
            if raw is None:
                continue
            try:
                data[storage_key] = json.loads(raw)
            except ValueError:
                logger.warning("cache_export_skipped_corrupt", key=storage_key)
        return json.dumps(data, indent=2, ensure_ascii=False)

    def import_(self, payload: str) -> bool:
        """
        Load entries produced by ``export``.

        Keys outside the prefix are ignored.

        Returns:
            False when the payload is not a JSON object or storage is full
        """
        try:
            parsed = json.loads(payload)
        except ValueError as e:
            logger.error("cache_import_failed", error=str(e))
            return False
        if not isinstance(parsed, dict):
            logger.error("cache_import_failed", error="payload is not an object")
            return False

        prefix = self.config.key_prefix
        try:
            for storage_key, value in parsed.items():
                if storage_key.startswith(prefix) and storage_key != self._cleanup_key:
                    self.storage.set(storage_key, json.dumps(value, ensure_ascii=False))
        except StorageQuotaExceeded as e:
            logger.error("cache_import_failed", error=str(e))
            return False
        return True


def format_bytes(size: int) -> str:
    """Human-readable byte count."""
    if size <= 0:
        return "0 Bytes"
    value = float(size)
    for unit in ("Bytes", "KB", "MB"):
        if value < 1024:
            return f"{round(value, 2):g} {unit}"
        value /= 1024
    return f"{round(value, 2):g} GB"
