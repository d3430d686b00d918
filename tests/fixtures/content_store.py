"""Content store fixtures for tests."""

from pathlib import Path
from typing import Optional

import pytest

from lexsync.content_store import ContentStore, LocalFileBackend, RevisionedBackend
from lexsync.content_store.revisioned import RevisionedFile
from lexsync.core.errors import RevisionConflict


class MemoryFileStore:
    """Revisioned file store kept in a dict.

    ``conflicts`` makes the next N writes fail as if another instance had
    written first; ``before_write`` runs just before a write is checked.
    """

    def __init__(self) -> None:
        self.files: dict[str, RevisionedFile] = {}
        self.writes = 0
        self.conflicts = 0
        self.closed = False
        self._counter = 0

    async def read_file(self, path: str) -> Optional[RevisionedFile]:
        return self.files.get(path)

    async def write_file(
        self, path: str, content: str, revision: Optional[str] = None
    ) -> str:
        if self.conflicts > 0:
            self.conflicts -= 1
            raise RevisionConflict(f"{path}: injected conflict")

        current = self.files.get(path)
        current_revision = current.revision if current else None
        if current_revision != revision:
            raise RevisionConflict(f"{path}: expected {revision}, found {current_revision}")

        self._counter += 1
        new_revision = f"rev-{self._counter}"
        self.files[path] = RevisionedFile(revision=new_revision, content=content)
        self.writes += 1
        return new_revision

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def content_path(tmp_path: Path) -> Path:
    """Path of a not-yet-created content file."""
    return tmp_path / "content.json"


@pytest.fixture
def store(content_path: Path) -> ContentStore:
    """Content store over a fresh local file."""
    return ContentStore(LocalFileBackend(content_path))


@pytest.fixture
def memory_files() -> MemoryFileStore:
    return MemoryFileStore()


@pytest.fixture
def recorded_sleeps() -> list[float]:
    return []


@pytest.fixture
def revisioned_store(
    memory_files: MemoryFileStore, recorded_sleeps: list[float]
) -> ContentStore:
    """Content store over in-memory revisioned files, with sleeps recorded."""

    async def sleep(delay: float) -> None:
        recorded_sleeps.append(delay)

    return ContentStore(
        RevisionedBackend(memory_files),
        conflict_retries=3,
        conflict_base_delay=0.01,
        sleep=sleep,
    )
