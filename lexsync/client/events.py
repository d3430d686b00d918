"""Server-sent event consumer for content change notifications."""

import asyncio
import json
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Literal, Optional

import httpx
from pydantic import BaseModel

from lexsync.core.logging import get_logger

logger = get_logger(__name__)

CONTENT_UPDATED = "content_updated"

# Floor for server retry hints, in seconds
MIN_RECONNECT_DELAY = 0.1


class ContentUpdate(BaseModel):
    """Payload of a ``content_updated`` event."""

    version: int
    type: str
    collection: Literal["words", "characters"]
    action: Literal["upsert", "delete"]
    id: str


@dataclass
class ServerSentEvent:
    event: str = "message"
    data: str = ""
    id: Optional[str] = None
    retry: Optional[int] = None


class SSEParser:
    """Incremental parser turning stream lines into events."""

    def __init__(self) -> None:
        self._event = "message"
        self._data: list[str] = []
        self._id: Optional[str] = None
        self._retry: Optional[int] = None

    def feed(self, line: str) -> Optional[ServerSentEvent]:
        """Consume one line; returns an event when a blank line ends one."""
        line = line.rstrip("\r\n")
        if not line:
            return self._dispatch()
        if line.startswith(":"):
            return None

        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if name == "event":
            self._event = value or "message"
        elif name == "data":
            self._data.append(value)
        elif name == "id":
            self._id = value
        elif name == "retry" and value.isdigit():
            self._retry = int(value)
        return None

    def _dispatch(self) -> Optional[ServerSentEvent]:
        if not self._data and self._retry is None:
            self._event = "message"
            return None
        event = ServerSentEvent(
            event=self._event, data="\n".join(self._data), id=self._id, retry=self._retry
        )
        self._event = "message"
        self._data = []
        self._retry = None
        return event


async def iter_events(lines: AsyncIterator[str]) -> AsyncIterator[ServerSentEvent]:
    """Events parsed from an async iterator of lines."""
    parser = SSEParser()
    async for line in lines:
        event = parser.feed(line)
        if event is not None:
            yield event


class EventStreamListener:
    """Keeps a subscription to ``/events`` open and forwards updates.

    The stream is reopened after any disconnect, waiting
    ``reconnect_delay * attempt`` seconds (capped) between tries. A server
    ``retry:`` hint replaces the base delay. ``on_connect`` runs on every
    successful (re)connect so the caller can refetch whatever it missed.
    """

    def __init__(
        self,
        url: str,
        on_event: Callable[[ContentUpdate], Awaitable[Any]],
        client: Optional[httpx.AsyncClient] = None,
        on_connect: Optional[Callable[[], Awaitable[Any]]] = None,
        reconnect_delay: float = 1.0,
        max_reconnect_delay: float = 30.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.url = url
        self.on_event = on_event
        self.on_connect = on_connect
        self.reconnect_delay = reconnect_delay
        self.max_reconnect_delay = max_reconnect_delay
        self._sleep = sleep
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=httpx.Timeout(10.0, read=None))
        self._task: Optional[asyncio.Task[None]] = None
        self._stopping = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stopping = False
        self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        """Cancel the stream task and close the connection."""
        self._stopping = True
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "EventStreamListener":
        self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()

    async def run(self) -> None:
        """Consume the stream until stopped."""
        attempt = 0
        while not self._stopping:
            try:
                async with self._client.stream(
                    "GET", self.url, headers={"Accept": "text/event-stream"}
                ) as response:
                    response.raise_for_status()
                    attempt = 0
                    logger.info("event_stream_connected", url=self.url)
                    if self.on_connect is not None:
                        await self._call(self.on_connect)
                    async for event in iter_events(response.aiter_lines()):
                        await self._handle(event)
                logger.info("event_stream_ended", url=self.url)
            except (httpx.TransportError, httpx.HTTPStatusError) as e:
                logger.warning("event_stream_failed", url=self.url, error=str(e))

            if self._stopping:
                break
            attempt += 1
            delay = min(self.reconnect_delay * attempt, self.max_reconnect_delay)
            await self._sleep(delay)

    async def _handle(self, event: ServerSentEvent) -> None:
        if event.retry is not None:
            self.reconnect_delay = max(event.retry / 1000, MIN_RECONNECT_DELAY)
        if event.event != CONTENT_UPDATED or not event.data:
            return
        try:
            update = ContentUpdate.model_validate(json.loads(event.data))
        except ValueError as e:
            logger.warning("event_payload_invalid", data=event.data, error=str(e))
            return
        await self._call(lambda: self.on_event(update))

    async def _call(self, callback: Callable[[], Awaitable[Any]]) -> None:
        # Listener errors must not tear down the stream
        try:
            await callback()
        except Exception:
            logger.exception("event_handler_failed")
