"""Utility functions for API endpoints."""

from typing import Any, Optional

from fastapi import Request

from lexsync.broadcast import Broadcaster
from lexsync.content_store import ContentStore
from lexsync.core.config import Settings
from lexsync.core.config import settings as default_settings


def get_store(request: Request) -> ContentStore:
    """Content store owned by the application."""
    return request.app.state.store


def get_broadcaster(request: Request) -> Broadcaster:
    """Broadcaster owned by the application."""
    return request.app.state.broadcaster


def get_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return getattr(request.app.state, "settings", default_settings)


def envelope(data: Any = None, version: Optional[int] = None) -> dict[str, Any]:
    """
    Wrap a successful result in the response envelope.

    Args:
        data: Response payload
        version: Content version the payload reflects

    Returns:
        ``{"success": True, "data": ..., "version": ...}``
    """
    body: dict[str, Any] = {"success": True, "data": data}
    if version is not None:
        body["version"] = version
    return body
