"""Server-sent event stream of content changes."""

from collections.abc import AsyncIterator, Awaitable, Callable

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from lexsync.api.v1.utils import get_broadcaster, get_settings
from lexsync.broadcast import Broadcaster, Channel
from lexsync.core.config import Settings
from lexsync.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["events"])

KEEPALIVE_FRAME = ": keepalive\n\n"


async def stream_events(
    channel: Channel,
    broadcaster: Broadcaster,
    is_disconnected: Callable[[], Awaitable[bool]],
    heartbeat: float,
    retry_ms: int,
) -> AsyncIterator[str]:
    """
    Yield SSE frames from ``channel`` until the client goes away.

    Args:
        channel: Channel registered for this client
        broadcaster: Registry the channel is removed from on exit
        is_disconnected: Probe for client disconnect
        heartbeat: Seconds without an event before a keepalive comment
        retry_ms: Reconnect delay hint sent to the client

    Yields:
        Encoded frames: a ``retry:`` hint, then events and keepalives
    """
    try:
        yield f"retry: {retry_ms}\n\n"
        while not channel.closed:
            if await is_disconnected():
                break
            event = await channel.receive(timeout=heartbeat)
            if event is None:
                yield KEEPALIVE_FRAME
            else:
                yield event.to_sse()
    finally:
        await broadcaster.close_channel(channel.handle)
        logger.debug("event_stream_closed", handle=channel.handle)


@router.get("/events")
async def content_events(
    request: Request,
    broadcaster: Broadcaster = Depends(get_broadcaster),
    settings: Settings = Depends(get_settings),
) -> StreamingResponse:
    """Subscribe to ``content_updated`` notifications."""
    channel = await broadcaster.open_channel()
    logger.info("event_stream_opened", handle=channel.handle)
    return StreamingResponse(
        stream_events(
            channel,
            broadcaster,
            request.is_disconnected,
            settings.SSE_HEARTBEAT_SECONDS,
            settings.SSE_RETRY_MS,
        ),
        media_type="text/event-stream",
        headers={"X-Accel-Buffering": "no", "Connection": "keep-alive"},
    )
