"""Whole-snapshot and health endpoints."""

from typing import Any

from fastapi import APIRouter, Depends, Request

from lexsync.api.v1.utils import envelope, get_broadcaster, get_settings, get_store
from lexsync.broadcast import Broadcaster
from lexsync.content_store import ContentStore
from lexsync.core.config import Settings
from lexsync.core.errors import StoreUnavailable

router = APIRouter(tags=["content"])


@router.get("/content")
async def get_content(store: ContentStore = Depends(get_store)) -> dict[str, Any]:
    """Full snapshot: both collections plus version and timestamp."""
    snapshot = await store.load()
    return envelope(snapshot.model_dump(mode="json", exclude_none=True), snapshot.version)


@router.get("/health")
async def health_check(
    request: Request,
    store: ContentStore = Depends(get_store),
    broadcaster: Broadcaster = Depends(get_broadcaster),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """
    Report service health.

    A store that cannot be read degrades the status instead of failing the
    probe, so the response always reaches monitoring.
    """
    content_version = None
    status = "healthy"
    try:
        content_version = (await store.load()).version
    except StoreUnavailable:
        status = "degraded"

    return {
        "status": status,
        "version": settings.version,
        "content_version": content_version,
        "open_channels": broadcaster.channel_count,
        "correlation_id": getattr(request.state, "correlation_id", None),
    }
