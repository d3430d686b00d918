"""Tests for the server-sent event parser and stream listener."""

import asyncio
import json

import httpx
import pytest
import respx

from lexsync.client.events import (
    MIN_RECONNECT_DELAY,
    ContentUpdate,
    EventStreamListener,
    SSEParser,
    ServerSentEvent,
    iter_events,
)

EVENTS_URL = "http://lexsync.test/api/v1/events"

UPDATE = {"version": 5, "type": "word", "collection": "words", "action": "upsert", "id": "9"}


class StopListening(Exception):
    """Raised from the fake sleep to end ``run()``."""


def sleeper(sleeps: list[float], limit: int):
    async def sleep(delay: float) -> None:
        sleeps.append(delay)
        if len(sleeps) >= limit:
            raise StopListening

    return sleep


def stream_body(*frames: str) -> httpx.Response:
    return httpx.Response(
        200, text="".join(frames), headers={"Content-Type": "text/event-stream"}
    )


def content_frame(payload: dict) -> str:
    return f"event: content_updated\ndata: {json.dumps(payload)}\n\n"


class TestSSEParser:
    """Test line-level parsing."""

    def feed_all(self, text: str) -> list[ServerSentEvent]:
        parser = SSEParser()
        events = [parser.feed(line) for line in text.split("\n")]
        return [e for e in events if e is not None]

    def test_should_parse_named_event(self):
        events = self.feed_all("event: content_updated\ndata: {}\n\n")

        assert events == [ServerSentEvent(event="content_updated", data="{}")]

    def test_should_join_multiline_data(self):
        events = self.feed_all("data: one\ndata: two\n\n")

        assert events[0].data == "one\ntwo"
        assert events[0].event == "message"

    def test_should_skip_comments(self):
        assert self.feed_all(": keepalive\n\n") == []

    def test_should_dispatch_retry_hint_alone(self):
        events = self.feed_all("retry: 3000\n\n")

        assert events == [ServerSentEvent(retry=3000)]

    def test_should_ignore_non_numeric_retry(self):
        assert self.feed_all("retry: soon\n\n") == []

    def test_should_accept_field_without_space(self):
        events = self.feed_all("event:x\ndata:y\nid:7\n\n")

        assert events == [ServerSentEvent(event="x", data="y", id="7")]

    def test_should_reset_event_name_between_events(self):
        events = self.feed_all("event: a\ndata: 1\n\ndata: 2\n\n")

        assert [e.event for e in events] == ["a", "message"]

    async def test_iter_events_over_async_lines(self):
        async def lines():
            for line in ["data: a", "", "data: b", ""]:
                yield line

        events = [e async for e in iter_events(lines())]

        assert [e.data for e in events] == ["a", "b"]


class TestEventStreamListener:
    """Test connection handling and dispatch."""

    @respx.mock
    async def test_should_forward_content_updates(self):
        received: list[ContentUpdate] = []
        connects: list[int] = []
        sleeps: list[float] = []

        async def on_event(update: ContentUpdate) -> None:
            received.append(update)

        async def on_connect() -> None:
            connects.append(1)

        respx.get(EVENTS_URL).mock(
            return_value=stream_body(
                "retry: 2000\n\n",
                ": keepalive\n\n",
                content_frame(UPDATE),
                "event: something_else\ndata: {}\n\n",
                "event: content_updated\ndata: not json\n\n",
            )
        )
        listener = EventStreamListener(
            EVENTS_URL, on_event, on_connect=on_connect, sleep=sleeper(sleeps, 1)
        )

        with pytest.raises(StopListening):
            await listener.run()
        await listener.stop()

        assert received == [ContentUpdate(**UPDATE)]
        assert connects == [1]
        assert listener.reconnect_delay == 2.0
        assert sleeps == [2.0]

    @respx.mock
    async def test_should_back_off_linearly_with_cap(self):
        sleeps: list[float] = []
        respx.get(EVENTS_URL).mock(side_effect=httpx.ConnectError("refused"))
        listener = EventStreamListener(
            EVENTS_URL,
            on_event=lambda _: asyncio.sleep(0),
            reconnect_delay=1.0,
            max_reconnect_delay=2.5,
            sleep=sleeper(sleeps, 4),
        )

        with pytest.raises(StopListening):
            await listener.run()
        await listener.stop()

        assert sleeps == [1.0, 2.0, 2.5, 2.5]

    @respx.mock
    async def test_should_reset_backoff_after_successful_connect(self):
        sleeps: list[float] = []
        responses = iter(
            [
                httpx.ConnectError("refused"),
                httpx.ConnectError("refused"),
                stream_body(": keepalive\n\n"),
                httpx.ConnectError("refused"),
            ]
        )

        def respond(request: httpx.Request) -> httpx.Response:
            outcome = next(responses)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        respx.get(EVENTS_URL).mock(side_effect=respond)
        listener = EventStreamListener(
            EVENTS_URL, on_event=lambda _: asyncio.sleep(0), sleep=sleeper(sleeps, 4)
        )

        with pytest.raises(StopListening):
            await listener.run()
        await listener.stop()

        assert sleeps == [1.0, 2.0, 1.0, 2.0]

    @respx.mock
    async def test_zero_retry_hint_keeps_minimum_delay(self):
        sleeps: list[float] = []
        respx.get(EVENTS_URL).mock(side_effect=lambda request: stream_body("retry: 0\n\n"))
        listener = EventStreamListener(
            EVENTS_URL, on_event=lambda _: asyncio.sleep(0), sleep=sleeper(sleeps, 2)
        )

        with pytest.raises(StopListening):
            await listener.run()
        await listener.stop()

        assert listener.reconnect_delay == MIN_RECONNECT_DELAY
        assert sleeps == [MIN_RECONNECT_DELAY, MIN_RECONNECT_DELAY]

    @respx.mock
    async def test_should_reconnect_after_error_status(self):
        sleeps: list[float] = []
        route = respx.get(EVENTS_URL).mock(return_value=httpx.Response(503))
        listener = EventStreamListener(
            EVENTS_URL, on_event=lambda _: asyncio.sleep(0), sleep=sleeper(sleeps, 2)
        )

        with pytest.raises(StopListening):
            await listener.run()
        await listener.stop()

        assert route.call_count == 2

    @respx.mock
    async def test_handler_failure_does_not_stop_stream(self):
        received: list[str] = []

        async def on_event(update: ContentUpdate) -> None:
            received.append(update.id)
            if update.id == "1":
                raise RuntimeError("handler bug")

        respx.get(EVENTS_URL).mock(
            return_value=stream_body(
                content_frame({**UPDATE, "id": "1"}),
                content_frame({**UPDATE, "id": "2"}),
            )
        )
        listener = EventStreamListener(EVENTS_URL, on_event, sleep=sleeper([], 1))

        with pytest.raises(StopListening):
            await listener.run()
        await listener.stop()

        assert received == ["1", "2"]

    @respx.mock
    async def test_start_and_stop_background_task(self):
        respx.get(EVENTS_URL).mock(side_effect=httpx.ConnectError("refused"))
        never = asyncio.Event()

        async def wait_forever(_: float) -> None:
            await never.wait()

        listener = EventStreamListener(
            EVENTS_URL, on_event=lambda _: asyncio.sleep(0), sleep=wait_forever
        )

        async with listener:
            await asyncio.sleep(0.01)
            assert listener.running

        assert not listener.running
        assert listener._client.is_closed

    async def test_stop_leaves_injected_client_open(self):
        http = httpx.AsyncClient()
        listener = EventStreamListener(
            EVENTS_URL, on_event=lambda _: asyncio.sleep(0), client=http
        )

        await listener.stop()

        assert not http.is_closed
        await http.aclose()
