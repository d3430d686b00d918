"""Cache-disabling headers middleware."""

from fastapi import Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.types import ASGIApp

NO_CACHE_HEADERS: dict[str, str] = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
    "Surrogate-Control": "no-store",
}


class NoCacheMiddleware(BaseHTTPMiddleware):
    """Disable HTTP caching on every response.

    Freshness is tracked by content versions in the sync layer, so neither
    browsers nor proxies may serve a stored copy.
    """

    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)
        self.headers = dict(NO_CACHE_HEADERS)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        for header_name, header_value in self.headers.items():
            response.headers[header_name] = header_value
        return response
