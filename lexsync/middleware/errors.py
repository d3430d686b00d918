"""Error handling middleware."""

from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.status import HTTP_400_BAD_REQUEST, HTTP_500_INTERNAL_SERVER_ERROR
from starlette.types import ASGIApp

from lexsync.core.errors import LexSyncError, ValidationError
from lexsync.core.logging import get_logger

logger = get_logger(__name__)


def _correlation_id(request: Request) -> str | None:
    correlation_id = getattr(request.state, "correlation_id", None)
    return str(correlation_id) if correlation_id is not None else None


def error_response(
    request: Request,
    status_code: int,
    message: str,
    error_type: str,
    extra: dict[str, Any] | None = None,
) -> JSONResponse:
    """Build the failure envelope and log the error."""
    correlation_id = _correlation_id(request)
    log = logger.error if status_code >= HTTP_500_INTERNAL_SERVER_ERROR else logger.warning
    log(
        "request_error",
        error_type=error_type,
        error_message=message,
        status_code=status_code,
        path=request.url.path,
        method=request.method,
        correlation_id=correlation_id,
    )

    content: dict[str, Any] = {
        "success": False,
        "error": message,
        "error_type": error_type,
        "correlation_id": correlation_id or "unknown",
    }
    if extra:
        content.update(extra)

    response = JSONResponse(status_code=status_code, content=content)
    if correlation_id:
        response.headers["X-Request-ID"] = correlation_id
    return response


async def handle_lexsync_error(request: Request, exc: LexSyncError) -> JSONResponse:
    extra = {"details": exc.details} if isinstance(exc, ValidationError) and exc.details else None
    return error_response(
        request, exc.status_code, exc.message, exc.__class__.__name__, extra
    )


async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = [
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}"
        for err in exc.errors()
    ]
    return error_response(
        request,
        HTTP_400_BAD_REQUEST,
        "Validation failed",
        "ValidationError",
        {"details": details},
    )


async def handle_http_exception(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return error_response(
        request, exc.status_code, str(exc.detail), "HTTPException"
    )


def register_error_handlers(app: FastAPI) -> None:
    """Render every known error as the ``{success: false, error}`` envelope."""
    app.add_exception_handler(LexSyncError, handle_lexsync_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Catch anything the exception handlers did not, and answer with a 500."""

    def __init__(self, app: ASGIApp) -> None:
        """
        Initialize middleware.

        Args:
        ----
            app: The ASGI application
        """
        super().__init__(app)

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """
        Process the request/response cycle and handle errors.

        Args:
        ----
            request: The incoming request
            call_next: The next handler in the middleware chain

        Returns:
        -------
            The response from downstream handlers or error response
        """
        try:
            return await call_next(request)
        except LexSyncError as exc:
            return await handle_lexsync_error(request, exc)
        except Exception as exc:
            logger.exception("unhandled_error", path=request.url.path)
            return error_response(
                request,
                HTTP_500_INTERNAL_SERVER_ERROR,
                "Internal server error",
                exc.__class__.__name__,
            )
