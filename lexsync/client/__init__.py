"""Client side of content sync: API client, local cache and coordination."""

from lexsync.client.api_client import ApiResult, ContentApiClient
from lexsync.client.cache_manager import CacheManager, CacheRecord
from lexsync.client.config import CacheConfig, RetryPolicy
from lexsync.client.coordinator import SyncCoordinator
from lexsync.client.events import ContentUpdate, EventStreamListener
from lexsync.client.mirror import ContentMirror
from lexsync.client.status import SyncStatus, SyncStatusBus
from lexsync.client.storage import CacheStorage, MemoryStorage, SqliteStorage

__all__ = [
    "ApiResult",
    "CacheConfig",
    "CacheManager",
    "CacheRecord",
    "CacheStorage",
    "ContentApiClient",
    "ContentMirror",
    "ContentUpdate",
    "EventStreamListener",
    "MemoryStorage",
    "RetryPolicy",
    "SqliteStorage",
    "SyncCoordinator",
    "SyncStatus",
    "SyncStatusBus",
]
