"""Request metrics middleware for Prometheus monitoring."""

import time

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from lexsync.core.logging import get_logger
from lexsync.core.metrics import REQUEST_DURATION, REQUESTS_TOTAL, RESPONSES_TOTAL

logger = get_logger(__name__)


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Middleware to collect request/response metrics.

    Records:
    - Total requests by method and path
    - Total responses by status code
    - Request duration histogram
    """

    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        path = str(request.url.path).rstrip("/")
        REQUESTS_TOTAL.labels(method=request.method, path=path).inc()

        try:
            start_time = time.perf_counter()
            response = await call_next(request)
            duration = time.perf_counter() - start_time

            RESPONSES_TOTAL.labels(status_code=str(response.status_code)).inc()
            REQUEST_DURATION.labels(method=request.method).observe(duration)

            logger.info(
                "request_processed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration=duration,
            )
            return response

        except Exception as e:
            logger.error(
                "request_failed",
                method=request.method,
                path=request.url.path,
                error=str(e),
            )
            raise
