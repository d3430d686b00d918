"""Async HTTP client for the content API."""

from dataclasses import dataclass
from typing import Any, Optional

import httpx

from lexsync.core.errors import (
    Conflict,
    LexSyncError,
    NetworkError,
    NotFound,
    StoreUnavailable,
    ValidationError,
)
from lexsync.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ApiResult:
    """Payload of a successful response with the content version it reflects."""

    data: Any
    version: Optional[int] = None


def _error_for(response: httpx.Response) -> LexSyncError:
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    message = str(body.get("error") or response.reason_phrase or response.status_code)

    status = response.status_code
    if status == 400:
        return ValidationError(message, details=body.get("details") or [])
    if status == 404:
        return NotFound(message)
    if status == 409:
        return Conflict(message)
    if status >= 500:
        return StoreUnavailable(message)
    return LexSyncError(message)


class ContentApiClient:
    """Client for the ``/api/v1`` content endpoints.

    Transport failures become ``NetworkError``; error responses are mapped
    onto the same taxonomy the server raises.
    """

    def __init__(
        self,
        base_url: str,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 10.0,
        api_prefix: str = "/api/v1",
    ):
        self.base_url = base_url.rstrip("/")
        self.api_prefix = api_prefix
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    def url(self, path: str) -> str:
        return f"{self.base_url}{self.api_prefix}{path}"

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict[str, Any]] = None,
        json: Any = None,
        headers: Optional[dict[str, str]] = None,
    ) -> ApiResult:
        try:
            response = await self._client.request(
                method, self.url(path), params=params, json=json, headers=headers
            )
        except httpx.TransportError as e:
            logger.warning("api_request_failed", method=method, path=path, error=str(e))
            raise NetworkError(f"{method} {path} failed: {e}") from e

        if response.is_error:
            raise _error_for(response)

        try:
            body = response.json()
        except ValueError as e:
            raise StoreUnavailable(f"{method} {path} returned invalid JSON") from e
        return ApiResult(data=body.get("data"), version=body.get("version"))

    async def get_content(self) -> ApiResult:
        return await self._request("GET", "/content")

    async def list_entries(
        self,
        collection: str,
        query: Optional[str] = None,
        **filters: str,
    ) -> ApiResult:
        """List a collection, optionally searched and filtered."""
        params = {k: v for k, v in {"query": query, **filters}.items() if v}
        return await self._request("GET", f"/{collection}", params=params or None)

    async def get(self, collection: str, entry_id: str) -> ApiResult:
        return await self._request("GET", f"/{collection}/{entry_id}")

    async def create(self, collection: str, payload: dict[str, Any]) -> ApiResult:
        return await self._request("POST", f"/{collection}", json=payload)

    async def update(
        self,
        collection: str,
        entry_id: str,
        payload: dict[str, Any],
        if_match: Optional[str] = None,
    ) -> ApiResult:
        """Update an entry, optionally guarded by the ``updated_at`` last read."""
        headers = {"If-Match": if_match} if if_match else None
        return await self._request(
            "PUT", f"/{collection}/{entry_id}", json=payload, headers=headers
        )

    async def delete(self, collection: str, entry_id: str) -> ApiResult:
        return await self._request("DELETE", f"/{collection}/{entry_id}")

    async def health(self) -> dict[str, Any]:
        try:
            response = await self._client.get(self.url("/health"))
        except httpx.TransportError as e:
            raise NetworkError(f"GET /health failed: {e}") from e
        if response.is_error:
            raise _error_for(response)
        return response.json()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "ContentApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()
