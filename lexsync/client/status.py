"""Observable sync status shared by the coordinator and the UI layer."""

from collections.abc import Callable
from typing import Any, Optional

from pydantic import BaseModel, Field

from lexsync.core.logging import get_logger

logger = get_logger(__name__)

Listener = Callable[["SyncStatus"], None]


class SyncStatus(BaseModel):
    """Loading, error and pending-change state of the client."""

    model_config = {"frozen": True}

    is_loading: bool = False
    last_sync: Optional[float] = None
    error: Optional[str] = None
    pending_changes: int = Field(default=0, ge=0)


class SyncStatusBus:
    """Holds the current ``SyncStatus`` and notifies subscribers of changes.

    Status values are immutable; every update publishes a new one.
    """

    def __init__(self) -> None:
        self._status = SyncStatus()
        self._listeners: list[Listener] = []

    @property
    def status(self) -> SyncStatus:
        return self._status

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; the returned callable unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def update(self, **changes: Any) -> SyncStatus:
        """Apply ``changes`` and notify subscribers."""
        self._status = self._status.model_copy(update=changes)
        self._notify()
        return self._status

    def change_pending(self, delta: int) -> SyncStatus:
        """Adjust the pending-change counter, never below zero."""
        return self.update(pending_changes=max(0, self._status.pending_changes + delta))

    def reset(self) -> None:
        self._status = SyncStatus()
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._status)
            except Exception as e:
                logger.error("sync_status_listener_failed", error=str(e))
