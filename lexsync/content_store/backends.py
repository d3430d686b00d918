"""Persistence strategies for the content snapshot."""

import json
import os
from pathlib import Path
from typing import Optional, Protocol

from pydantic import ValidationError as PydanticValidationError

from lexsync.content_store.models import ContentSnapshot, LoadedContent
from lexsync.content_store.revisioned import RevisionedFileStore
from lexsync.core.errors import StoreUnavailable
from lexsync.core.logging import get_logger

logger = get_logger(__name__)


class ContentBackend(Protocol):
    """Where the snapshot lives between requests."""

    async def load(self) -> Optional[LoadedContent]:
        """Read the stored snapshot, or None if nothing was stored yet."""
        ...

    async def save(
        self, snapshot: ContentSnapshot, revision: Optional[str] = None
    ) -> Optional[str]:
        """Persist ``snapshot`` and return the new revision token, if any."""
        ...

    async def close(self) -> None: ...


def _parse_snapshot(raw: str, source: str) -> ContentSnapshot:
    try:
        return ContentSnapshot.model_validate_json(raw)
    except (PydanticValidationError, ValueError) as e:
        raise StoreUnavailable(f"Corrupt content at {source}: {e}") from e


class LocalFileBackend:
    """Snapshot in a JSON file on local disk.

    Single process only: no revision checks, writes go through a temp file and
    an atomic rename so readers never see a half-written file.
    """

    def __init__(self, path: Path):
        self.path = path
        self._cached: Optional[ContentSnapshot] = None

    async def load(self) -> Optional[LoadedContent]:
        if self._cached is not None:
            return LoadedContent(snapshot=self._cached)

        if not self.path.exists():
            return None

        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise StoreUnavailable(f"Cannot read {self.path}: {e}") from e

        self._cached = _parse_snapshot(raw, str(self.path))
        return LoadedContent(snapshot=self._cached)

    async def save(
        self, snapshot: ContentSnapshot, revision: Optional[str] = None
    ) -> Optional[str]:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(
                json.dumps(snapshot.model_dump(mode="json"), indent=2, ensure_ascii=False),
                encoding="utf-8",
            )
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StoreUnavailable(f"Cannot write {self.path}: {e}") from e

        self._cached = snapshot
        return None

    async def close(self) -> None:
        self._cached = None


class RevisionedBackend:
    """Snapshot in a remote file store guarded by revision tokens."""

    def __init__(self, files: RevisionedFileStore, path: str = "content.json"):
        self.files = files
        self.path = path

    async def load(self) -> Optional[LoadedContent]:
        stored = await self.files.read_file(self.path)
        if stored is None:
            return None
        return LoadedContent(
            snapshot=_parse_snapshot(stored.content, self.path),
            revision=stored.revision,
        )

    async def save(
        self, snapshot: ContentSnapshot, revision: Optional[str] = None
    ) -> Optional[str]:
        content = json.dumps(
            snapshot.model_dump(mode="json"), indent=2, ensure_ascii=False
        )
        new_revision = await self.files.write_file(self.path, content, revision)
        logger.debug(
            "snapshot_saved",
            path=self.path,
            version=snapshot.version,
            revision=new_revision,
        )
        return new_revision

    async def close(self) -> None:
        await self.files.close()
