"""Error taxonomy shared by the server and the client.

Every error carries the HTTP status it maps to and whether the sync layer may
retry it. Terminal errors (validation, not found, conflict) are surfaced
verbatim; retryable ones (store unavailable, network) go through
``SyncCoordinator.with_retry`` first.
"""

from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_503_SERVICE_UNAVAILABLE,
)


class LexSyncError(Exception):
    """Base class for all content sync errors."""

    status_code: int = HTTP_500_INTERNAL_SERVER_ERROR
    retryable: bool = False

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class ValidationError(LexSyncError):
    """Request payload failed schema validation. Never mutates state."""

    status_code = HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "Validation failed", details: list[str] | None = None):
        super().__init__(message)
        self.details = details or []


class NotFound(LexSyncError):
    """Entry id does not exist in its collection."""

    status_code = HTTP_404_NOT_FOUND


class Conflict(LexSyncError):
    """Natural key already taken, or the entry changed under the caller."""

    status_code = HTTP_409_CONFLICT


class StoreUnavailable(LexSyncError):
    """Durable backend read or write failed."""

    status_code = HTTP_503_SERVICE_UNAVAILABLE
    retryable = True


class NetworkError(LexSyncError):
    """Client could not reach the server."""

    status_code = HTTP_503_SERVICE_UNAVAILABLE
    retryable = True


class StaleCache(LexSyncError):
    """Cached entry expired or was written by another schema version."""


class RevisionConflict(LexSyncError):
    """Backend revision token no longer matches the stored record."""

    status_code = HTTP_409_CONFLICT


class StorageQuotaExceeded(LexSyncError):
    """Local cache storage has no room for the write."""


def is_retryable(exc: BaseException) -> bool:
    """Whether ``exc`` belongs to the transport/availability class."""
    return isinstance(exc, LexSyncError) and exc.retryable
