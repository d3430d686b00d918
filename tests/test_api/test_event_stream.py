"""Tests for the server-sent event stream."""

import json
from unittest.mock import MagicMock

from fastapi.responses import StreamingResponse

from lexsync.api.v1.events import KEEPALIVE_FRAME, content_events, stream_events
from lexsync.broadcast import Broadcaster, ContentEvent
from lexsync.core.config import Settings

EVENT = ContentEvent(collection="characters", action="delete", entry_id="c1", version=9)


def never_disconnected():
    async def probe() -> bool:
        return False

    return probe


class TestStreamEvents:
    """Test the frame generator behind GET /events."""

    async def test_should_start_with_retry_hint(self):
        broadcaster = Broadcaster()
        channel = await broadcaster.open_channel()
        stream = stream_events(channel, broadcaster, never_disconnected(), 0.01, 2500)

        first = await stream.__anext__()
        await stream.aclose()

        assert first == "retry: 2500\n\n"

    async def test_should_emit_published_events(self):
        broadcaster = Broadcaster()
        channel = await broadcaster.open_channel()
        stream = stream_events(channel, broadcaster, never_disconnected(), 1.0, 1000)
        await stream.__anext__()

        await broadcaster.publish(EVENT)
        frame = await stream.__anext__()
        await stream.aclose()

        assert frame.startswith("event: content_updated\n")
        payload = json.loads(frame.split("data: ", 1)[1])
        assert payload == {
            "version": 9,
            "type": "character",
            "collection": "characters",
            "action": "delete",
            "id": "c1",
        }

    async def test_should_send_keepalive_when_idle(self):
        broadcaster = Broadcaster()
        channel = await broadcaster.open_channel()
        stream = stream_events(channel, broadcaster, never_disconnected(), 0.01, 1000)
        await stream.__anext__()

        frame = await stream.__anext__()
        await stream.aclose()

        assert frame == KEEPALIVE_FRAME

    async def test_should_deregister_channel_on_disconnect(self):
        """A client that went away is removed from the registry."""
        broadcaster = Broadcaster()
        channel = await broadcaster.open_channel()
        calls = []

        async def disconnected() -> bool:
            calls.append(True)
            return True

        frames = [f async for f in stream_events(channel, broadcaster, disconnected, 1.0, 1000)]

        assert frames == ["retry: 1000\n\n"]
        assert calls
        assert broadcaster.channel_count == 0

    async def test_should_stop_when_channel_is_closed(self):
        broadcaster = Broadcaster()
        channel = await broadcaster.open_channel()
        await broadcaster.close_all()

        frames = [
            f async for f in stream_events(channel, broadcaster, never_disconnected(), 1.0, 1000)
        ]

        assert frames == ["retry: 1000\n\n"]

    async def test_should_deregister_when_consumer_closes_stream(self):
        broadcaster = Broadcaster()
        channel = await broadcaster.open_channel()
        stream = stream_events(channel, broadcaster, never_disconnected(), 1.0, 1000)
        await stream.__anext__()

        await stream.aclose()

        assert broadcaster.channel_count == 0


class TestContentEventsEndpoint:
    """Test the endpoint wiring."""

    async def test_should_open_channel_and_stream_event_source(self):
        broadcaster = Broadcaster()
        request = MagicMock()

        response = await content_events(
            request, broadcaster=broadcaster, settings=Settings(SSE_RETRY_MS=500)
        )

        assert isinstance(response, StreamingResponse)
        assert response.media_type == "text/event-stream"
        assert broadcaster.channel_count == 1
