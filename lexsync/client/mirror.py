"""Client-side mirror of the server collections."""

from typing import Any, Optional

import httpx

from lexsync.client.api_client import ApiResult, ContentApiClient
from lexsync.client.cache_manager import CacheManager
from lexsync.client.coordinator import SyncCoordinator
from lexsync.client.events import ContentUpdate, EventStreamListener
from lexsync.core.errors import NetworkError, StoreUnavailable
from lexsync.core.logging import get_logger

logger = get_logger(__name__)

COLLECTIONS = ("words", "characters")


class ContentMirror:
    """Cached view of the words and characters collections.

    Reads are served from the cache until the soft-refresh threshold, then
    refetched. A fetched collection replaces the cached one only when its
    content version is at least the cached version, so a slow response can
    never overwrite newer data. When the server cannot be reached the last
    cached copy is served instead.
    """

    def __init__(
        self,
        api: ContentApiClient,
        cache: CacheManager,
        coordinator: SyncCoordinator,
    ):
        self.api = api
        self.cache = cache
        self.coordinator = coordinator

    async def words(self) -> list[dict[str, Any]]:
        return await self.collection("words")

    async def characters(self) -> list[dict[str, Any]]:
        return await self.collection("characters")

    async def collection(self, name: str) -> list[dict[str, Any]]:
        """Cached entries of ``name``, refetched when due."""
        if not self.cache.needs_refresh(name):
            cached = self.cache.get(name)
            if cached is not None:
                return cached
        return await self.refresh(name)

    def cached_version(self, name: str) -> Optional[int]:
        """Content version the cached copy of ``name`` was fetched at."""
        record = self.cache.get_entry(name)
        if record is None or record.etag is None:
            return None
        try:
            return int(record.etag)
        except ValueError:
            return None

    async def refresh(self, name: str) -> list[dict[str, Any]]:
        """Fetch ``name`` from the server and update the cache."""
        try:
            result = await self.coordinator.request(
                lambda: self.coordinator.with_retry(lambda: self.api.list_entries(name))
            )
        except (NetworkError, StoreUnavailable) as e:
            record = self.cache.get_entry(name)
            if record is None:
                raise
            logger.warning("serving_cached_collection", collection=name, error=str(e))
            return record.data
        return self._apply(name, result)

    async def refresh_all(self) -> None:
        for name in COLLECTIONS:
            await self.refresh(name)

    def _apply(self, name: str, result: ApiResult) -> list[dict[str, Any]]:
        record = self.cache.get_entry(name)
        current = self.cached_version(name)
        if (
            record is not None
            and current is not None
            and result.version is not None
            and result.version < current
        ):
            logger.info(
                "stale_response_discarded",
                collection=name,
                response_version=result.version,
                cached_version=current,
            )
            return record.data

        etag = str(result.version) if result.version is not None else None
        self.cache.set(name, result.data, etag=etag)
        return result.data

    async def _refresh_after_write(self, collection: str) -> None:
        # Write already committed: refetch failures are logged, not raised
        try:
            await self.refresh(collection)
        except (NetworkError, StoreUnavailable) as e:
            logger.warning(
                "post_mutation_refresh_failed", collection=collection, error=str(e)
            )

    async def create(self, collection: str, payload: dict[str, Any]) -> dict[str, Any]:
        result = await self.coordinator.mutate(
            lambda: self.coordinator.with_retry(lambda: self.api.create(collection, payload))
        )
        await self._refresh_after_write(collection)
        return result.data

    async def update(
        self,
        collection: str,
        entry_id: str,
        payload: dict[str, Any],
        if_match: Optional[str] = None,
    ) -> dict[str, Any]:
        result = await self.coordinator.mutate(
            lambda: self.coordinator.with_retry(
                lambda: self.api.update(collection, entry_id, payload, if_match=if_match)
            )
        )
        await self._refresh_after_write(collection)
        return result.data

    async def delete(self, collection: str, entry_id: str) -> None:
        await self.coordinator.mutate(
            lambda: self.coordinator.with_retry(lambda: self.api.delete(collection, entry_id))
        )
        await self._refresh_after_write(collection)

    async def handle_event(self, update: ContentUpdate) -> bool:
        """
        React to a broadcast change.

        Returns:
            Whether the collection was refetched
        """
        current = self.cached_version(update.collection)
        if current is not None and update.version <= current:
            logger.debug(
                "event_ignored",
                collection=update.collection,
                event_version=update.version,
                cached_version=current,
            )
            return False
        await self.refresh(update.collection)
        return True

    def listener(self, client: Optional[httpx.AsyncClient] = None) -> EventStreamListener:
        """Event listener wired to this mirror, refetching on every connect."""
        return EventStreamListener(
            self.api.url("/events"),
            on_event=self.handle_event,
            client=client,
            on_connect=self.refresh_all,
        )

    def clear_cache(self) -> None:
        """Drop every cached collection and reset the sync status."""
        self.cache.clear_all()
        self.coordinator.status_bus.reset()
