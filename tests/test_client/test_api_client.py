"""Tests for the content API client."""

import httpx
import pytest
import respx

from lexsync.client.api_client import ContentApiClient
from lexsync.core.errors import (
    Conflict,
    LexSyncError,
    NetworkError,
    NotFound,
    StoreUnavailable,
    ValidationError,
)

BASE_URL = "http://lexsync.test"


@pytest.fixture
async def api():
    client = ContentApiClient(BASE_URL)
    yield client
    await client.aclose()


class TestContentApiClient:
    """Test requests and response mapping."""

    def test_url_joins_prefix(self):
        assert ContentApiClient(BASE_URL + "/").url("/words") == f"{BASE_URL}/api/v1/words"

    @respx.mock
    async def test_should_unwrap_envelope(self, api: ContentApiClient):
        respx.get(f"{BASE_URL}/api/v1/words").mock(
            return_value=httpx.Response(
                200, json={"success": True, "data": [{"id": "1"}], "version": 4}
            )
        )

        result = await api.list_entries("words")

        assert result.data == [{"id": "1"}]
        assert result.version == 4

    @respx.mock
    async def test_should_send_query_and_filters(self, api: ContentApiClient):
        route = respx.get(f"{BASE_URL}/api/v1/characters").mock(
            return_value=httpx.Response(200, json={"success": True, "data": [], "version": 1})
        )

        await api.list_entries("characters", query="ka", type="vowel")

        params = route.calls.last.request.url.params
        assert params["query"] == "ka"
        assert params["type"] == "vowel"

    @respx.mock
    async def test_should_send_if_match_header(self, api: ContentApiClient):
        route = respx.put(f"{BASE_URL}/api/v1/words/1").mock(
            return_value=httpx.Response(200, json={"success": True, "data": {}, "version": 2})
        )

        await api.update("words", "1", {"etymology": "x"}, if_match="2024-01-01T00:00:00+00:00")

        request = route.calls.last.request
        assert request.headers["If-Match"] == "2024-01-01T00:00:00+00:00"

    @respx.mock
    async def test_should_omit_if_match_when_not_given(self, api: ContentApiClient):
        route = respx.put(f"{BASE_URL}/api/v1/words/1").mock(
            return_value=httpx.Response(200, json={"success": True, "data": {}, "version": 2})
        )

        await api.update("words", "1", {"etymology": "x"})

        assert "If-Match" not in route.calls.last.request.headers

    @pytest.mark.parametrize(
        ("status", "error_type"),
        [
            (400, ValidationError),
            (404, NotFound),
            (409, Conflict),
            (500, StoreUnavailable),
            (503, StoreUnavailable),
            (418, LexSyncError),
        ],
    )
    @respx.mock
    async def test_should_map_error_status(
        self, api: ContentApiClient, status: int, error_type: type
    ):
        respx.get(f"{BASE_URL}/api/v1/words/x").mock(
            return_value=httpx.Response(
                status, json={"success": False, "error": "nope", "error_type": "X"}
            )
        )

        with pytest.raises(error_type, match="nope"):
            await api.get("words", "x")

    @respx.mock
    async def test_should_carry_validation_details(self, api: ContentApiClient):
        respx.post(f"{BASE_URL}/api/v1/words").mock(
            return_value=httpx.Response(
                400,
                json={
                    "success": False,
                    "error": "Invalid word",
                    "details": ["english_translation: must not be blank"],
                },
            )
        )

        with pytest.raises(ValidationError) as exc_info:
            await api.create("words", {})

        assert exc_info.value.details == ["english_translation: must not be blank"]

    @respx.mock
    async def test_should_raise_network_error_on_transport_failure(
        self, api: ContentApiClient
    ):
        respx.get(f"{BASE_URL}/api/v1/content").mock(
            side_effect=httpx.ConnectError("connection refused")
        )

        with pytest.raises(NetworkError):
            await api.get_content()

    @respx.mock
    async def test_should_handle_non_json_error_body(self, api: ContentApiClient):
        respx.delete(f"{BASE_URL}/api/v1/words/1").mock(
            return_value=httpx.Response(502, text="Bad Gateway")
        )

        with pytest.raises(StoreUnavailable):
            await api.delete("words", "1")

    @respx.mock
    async def test_health_returns_raw_body(self, api: ContentApiClient):
        respx.get(f"{BASE_URL}/api/v1/health").mock(
            return_value=httpx.Response(200, json={"status": "healthy", "content_version": 3})
        )

        assert (await api.health())["status"] == "healthy"

    async def test_should_not_close_injected_client(self):
        http = httpx.AsyncClient()
        async with ContentApiClient(BASE_URL, client=http):
            pass

        assert not http.is_closed
        await http.aclose()
