"""Tests for content backends and optimistic concurrency."""

from pathlib import Path

import pytest

from lexsync.content_store import ContentSnapshot, ContentStore, LocalFileBackend
from lexsync.content_store.backends import RevisionedBackend
from lexsync.core.errors import RevisionConflict, StoreUnavailable
from tests.fixtures.content_store import MemoryFileStore


class TestLocalFileBackend:
    """Test the local JSON file backend."""

    async def test_should_return_none_for_missing_file(self, content_path: Path):
        backend = LocalFileBackend(content_path)

        assert await backend.load() is None

    async def test_should_write_atomically_without_leaving_temp_file(
        self, content_path: Path
    ):
        """Saving leaves only the target file behind."""
        backend = LocalFileBackend(content_path)

        await backend.save(ContentSnapshot(version=3))

        assert content_path.exists()
        assert not content_path.with_suffix(".json.tmp").exists()
        loaded = await LocalFileBackend(content_path).load()
        assert loaded.snapshot.version == 3

    async def test_should_raise_store_unavailable_for_corrupt_file(
        self, content_path: Path
    ):
        """A file that is not a snapshot makes the store unavailable."""
        content_path.write_text("{not json", encoding="utf-8")

        with pytest.raises(StoreUnavailable):
            await LocalFileBackend(content_path).load()

    async def test_should_raise_store_unavailable_when_write_fails(self, tmp_path: Path):
        """An unwritable location surfaces as StoreUnavailable."""
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not a directory", encoding="utf-8")
        backend = LocalFileBackend(blocker / "content.json")

        with pytest.raises(StoreUnavailable):
            await backend.save(ContentSnapshot())


class TestRevisionedBackend:
    """Test the revision-guarded backend over a file store."""

    async def test_should_round_trip_with_revision(self, memory_files: MemoryFileStore):
        backend = RevisionedBackend(memory_files, "content.json")

        revision = await backend.save(ContentSnapshot(version=5))
        loaded = await backend.load()

        assert loaded.snapshot.version == 5
        assert loaded.revision == revision

    async def test_should_raise_conflict_for_stale_revision(
        self, memory_files: MemoryFileStore
    ):
        backend = RevisionedBackend(memory_files)
        await backend.save(ContentSnapshot(version=1))

        with pytest.raises(RevisionConflict):
            await backend.save(ContentSnapshot(version=2), revision="rev-0")

    async def test_should_close_file_store(self, memory_files: MemoryFileStore):
        await RevisionedBackend(memory_files).close()

        assert memory_files.closed


class TestContentStoreConflictRetry:
    """Read-modify-write retries on a shared backend."""

    async def test_should_retry_after_revision_conflict(
        self,
        revisioned_store: ContentStore,
        memory_files: MemoryFileStore,
        recorded_sleeps: list[float],
    ):
        """A conflicting write is re-read and re-applied with linear backoff."""
        await revisioned_store.load()
        memory_files.conflicts = 2

        mutation = await revisioned_store.upsert_entry("words", {"term": "ado"})

        assert mutation.snapshot.version == 2
        assert recorded_sleeps == pytest.approx([0.01, 0.02])

    async def test_should_apply_change_on_top_of_concurrent_write(
        self, revisioned_store: ContentStore, memory_files: MemoryFileStore
    ):
        """A write from another instance is not lost when this one retries."""
        await revisioned_store.load()
        other = ContentStore(RevisionedBackend(memory_files))
        await other.upsert_entry("words", {"id": "theirs"})

        mutation = await revisioned_store.upsert_entry("words", {"id": "ours"})

        ids = {w.id for w in mutation.snapshot.words}
        assert {"theirs", "ours"} <= ids
        assert mutation.snapshot.version == 3

    async def test_should_give_up_after_configured_attempts(
        self, revisioned_store: ContentStore, memory_files: MemoryFileStore
    ):
        """Persistent conflicts surface as a retryable StoreUnavailable."""
        await revisioned_store.load()
        memory_files.conflicts = 10

        with pytest.raises(StoreUnavailable) as exc_info:
            await revisioned_store.upsert_entry("words", {"term": "x"})

        assert exc_info.value.retryable
        memory_files.conflicts = 0
        assert (await revisioned_store.load()).version == 1

    async def test_should_use_existing_content_when_seeding_races(
        self, memory_files: MemoryFileStore
    ):
        """Losing the seeding race falls back to the winner's snapshot."""
        winner = ContentStore(RevisionedBackend(memory_files))
        await winner.save({"words": []})

        class RacingFiles(MemoryFileStore):
            """Reports the file missing once, as if read before the winner wrote."""

            def __init__(self, shared: MemoryFileStore):
                super().__init__()
                self.files = shared.files
                self.missed = False

            async def read_file(self, path):
                if not self.missed:
                    self.missed = True
                    return None
                return await super().read_file(path)

        loser = ContentStore(RevisionedBackend(RacingFiles(memory_files)))
        snapshot = await loser.load()

        assert snapshot.version == 2
        assert snapshot.words == []
