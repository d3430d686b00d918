"""Application startup and shutdown events."""

from collections.abc import Awaitable, Callable
from typing import Any

from lexsync.broadcast import Broadcaster
from lexsync.content_store.config import create_content_store
from lexsync.core.config import Settings
from lexsync.core.logging import get_logger

logger = get_logger(__name__)


def create_start_app_handler(
    app: Any, settings: Settings
) -> Callable[[], Awaitable[None]]:
    """Create startup handler.

    Builds the content store and broadcaster unless they were injected, then
    loads the snapshot so an empty backend is seeded before the first request.
    """

    async def start_app() -> None:
        if getattr(app.state, "store", None) is None:
            app.state.store = create_content_store(settings)
        if getattr(app.state, "broadcaster", None) is None:
            app.state.broadcaster = Broadcaster(queue_size=settings.BROADCAST_QUEUE_SIZE)

        snapshot = await app.state.store.load()
        logger.info(
            "app_started",
            app_name=settings.app_name,
            content_version=snapshot.version,
        )

    return start_app


def create_stop_app_handler(app: Any) -> Callable[[], Awaitable[None]]:
    """Create shutdown handler closing channels and backend clients."""

    async def stop_app() -> None:
        broadcaster = getattr(app.state, "broadcaster", None)
        if broadcaster is not None:
            await broadcaster.close_all()

        store = getattr(app.state, "store", None)
        if store is not None:
            try:
                await store.close()
            except Exception as e:
                logger.error("store_close_failed", error=str(e))

        logger.info("app_stopped")

    return stop_app
