"""Fan-out of content change notifications to open client channels."""

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Optional
from uuid import uuid4

from lexsync.content_store.models import ENTRY_TYPES
from lexsync.core.logging import get_logger
from lexsync.core.metrics import CHANNELS_PRUNED, EVENTS_PUBLISHED, OPEN_CHANNELS

logger = get_logger(__name__)

EVENT_NAME = "content_updated"


@dataclass(frozen=True)
class ContentEvent:
    """A committed change to one entry."""

    collection: str
    action: str  # "upsert" or "delete"
    entry_id: str
    version: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "type": ENTRY_TYPES.get(self.collection, self.collection),
            "collection": self.collection,
            "action": self.action,
            "id": self.entry_id,
        }

    def to_sse(self) -> str:
        """Event as one server-sent-events frame."""
        return f"event: {EVENT_NAME}\ndata: {json.dumps(self.to_dict())}\n\n"


class ChannelClosed(Exception):
    """Write to a channel that is closed or no longer draining."""


class Channel:
    """Outbound queue for one connected client."""

    def __init__(self, handle: str, maxsize: int = 100):
        self.handle = handle
        self.closed = False
        self._queue: asyncio.Queue[ContentEvent] = asyncio.Queue(maxsize=maxsize)

    def send(self, event: ContentEvent) -> None:
        if self.closed:
            raise ChannelClosed(f"Channel {self.handle} is closed")
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull as e:
            raise ChannelClosed(f"Channel {self.handle} is not draining") from e

    async def receive(self, timeout: Optional[float] = None) -> Optional[ContentEvent]:
        """Next queued event, or None if ``timeout`` elapses first."""
        try:
            return await asyncio.wait_for(self._queue.get(), timeout=timeout)
        except asyncio.TimeoutError:
            return None

    def pending(self) -> int:
        return self._queue.qsize()

    def close(self) -> None:
        self.closed = True


class Broadcaster:
    """Registry of open channels.

    Registration, deregistration and publishing all hold the same lock, so
    the registry is never mutated while a publish is iterating it. Delivery
    is best-effort and at-most-once: a channel whose write fails is pruned and
    its client is expected to refetch on reconnect.
    """

    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._channels: dict[str, Channel] = {}
        self._lock = asyncio.Lock()

    @property
    def channel_count(self) -> int:
        return len(self._channels)

    async def open_channel(self, handle: Optional[str] = None) -> Channel:
        """Register a channel for a newly connected client."""
        channel = Channel(handle or uuid4().hex, maxsize=self.queue_size)
        async with self._lock:
            previous = self._channels.pop(channel.handle, None)
            if previous is not None:
                previous.close()
            self._channels[channel.handle] = channel
            OPEN_CHANNELS.set(len(self._channels))
        logger.debug("channel_opened", handle=channel.handle)
        return channel

    async def close_channel(self, handle: str) -> None:
        """Deregister a channel. Unknown handles are ignored."""
        async with self._lock:
            channel = self._channels.pop(handle, None)
            OPEN_CHANNELS.set(len(self._channels))
        if channel is not None:
            channel.close()
            logger.debug("channel_closed", handle=handle)

    async def publish(self, event: ContentEvent) -> int:
        """Deliver ``event`` to every open channel.

        Returns:
            Number of channels the event was queued on
        """
        delivered = 0
        async with self._lock:
            dead: list[str] = []
            for handle, channel in self._channels.items():
                try:
                    channel.send(event)
                    delivered += 1
                except Exception as e:
                    logger.warning("channel_write_failed", handle=handle, error=str(e))
                    dead.append(handle)

            for handle in dead:
                self._channels.pop(handle).close()
                CHANNELS_PRUNED.inc()
            OPEN_CHANNELS.set(len(self._channels))

        EVENTS_PUBLISHED.labels(collection=event.collection, action=event.action).inc()
        logger.info(
            "content_event_published",
            collection=event.collection,
            action=event.action,
            entry_id=event.entry_id,
            version=event.version,
            delivered=delivered,
        )
        return delivered

    async def close_all(self) -> None:
        """Close every channel, used at shutdown."""
        async with self._lock:
            channels = list(self._channels.values())
            self._channels.clear()
            OPEN_CHANNELS.set(0)
        for channel in channels:
            channel.close()
