"""Configuration for content store."""

from pathlib import Path

from lexsync.content_store.backends import (
    ContentBackend,
    LocalFileBackend,
    RevisionedBackend,
)
from lexsync.content_store.revisioned import GitHubFileStore, RedisFileStore
from lexsync.content_store.store import ContentStore
from lexsync.core.config import Settings
from lexsync.core.logging import get_logger

logger = get_logger(__name__)


def resolve_backend_name(settings: Settings) -> str:
    """Pick the backend kind once, from explicit config or the environment.

    ``auto`` prefers a configured GitHub repository, then a Redis URL, and
    falls back to a local file.
    """
    if settings.CONTENT_BACKEND != "auto":
        return settings.CONTENT_BACKEND
    if settings.github_configured:
        return "github"
    if settings.CONTENT_REDIS_URL:
        return "redis"
    return "file"


def select_backend(settings: Settings) -> ContentBackend:
    """Create the content backend described by ``settings``.

    Raises:
        ValueError: If the chosen backend is missing required settings
    """
    name = resolve_backend_name(settings)

    if name == "github":
        if not settings.github_configured:
            raise ValueError(
                "GitHub backend requires GITHUB_TOKEN, GITHUB_REPO_OWNER and GITHUB_REPO_NAME"
            )
        files = GitHubFileStore(
            owner=settings.GITHUB_REPO_OWNER or "",
            repo=settings.GITHUB_REPO_NAME or "",
            token=settings.GITHUB_TOKEN or "",
            branch=settings.GITHUB_BRANCH,
            api_url=settings.GITHUB_API_URL,
            timeout=settings.GITHUB_TIMEOUT,
        )
        backend: ContentBackend = RevisionedBackend(files, settings.GITHUB_CONTENT_PATH)
    elif name == "redis":
        if not settings.CONTENT_REDIS_URL:
            raise ValueError("Redis backend requires CONTENT_REDIS_URL")
        files = RedisFileStore.from_url(
            settings.CONTENT_REDIS_URL, key_prefix=settings.CONTENT_REDIS_KEY
        )
        backend = RevisionedBackend(files, "content.json")
    else:
        backend = LocalFileBackend(Path(settings.CONTENT_FILE_PATH))

    logger.info("content_backend_selected", backend=name)
    return backend


def create_content_store(settings: Settings) -> ContentStore:
    """Build a content store on the backend selected by ``settings``."""
    return ContentStore(
        select_backend(settings),
        conflict_retries=settings.STORE_CONFLICT_RETRIES,
        conflict_base_delay=settings.STORE_CONFLICT_BASE_DELAY,
    )
