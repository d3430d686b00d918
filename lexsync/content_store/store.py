"""Versioned content store: single source of truth for words and characters."""

import asyncio
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any, Optional
from uuid import uuid4

from lexsync.content_store.backends import ContentBackend
from lexsync.content_store.models import (
    COLLECTIONS,
    ENTRY_TYPES,
    Collection,
    ContentSnapshot,
    Entry,
    LoadedContent,
    Mutation,
    utc_now,
)
from lexsync.content_store.seed import load_seed
from lexsync.core.errors import Conflict, NotFound, RevisionConflict, StoreUnavailable
from lexsync.core.logging import get_logger
from lexsync.core.metrics import CONTENT_VERSION, STORE_CONFLICTS

logger = get_logger(__name__)

NaturalKey = Callable[[Entry], Any]


class ContentStore:
    """Read-modify-write access to the content snapshot.

    Every mutation loads the current snapshot, derives the next one and
    persists it. Within a process, mutations are serialized by a lock. When
    the backend is shared between instances, the write carries the revision
    the snapshot was read at; a ``RevisionConflict`` makes the store reload
    and re-apply the change, up to ``conflict_retries`` times.
    """

    def __init__(
        self,
        backend: ContentBackend,
        seed: Callable[[], ContentSnapshot] = load_seed,
        conflict_retries: int = 5,
        conflict_base_delay: float = 0.05,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        id_factory: Callable[[], str] = lambda: uuid4().hex,
        clock: Callable[[], str] = utc_now,
    ):
        self.backend = backend
        self._seed = seed
        self.conflict_retries = conflict_retries
        self.conflict_base_delay = conflict_base_delay
        self._sleep = sleep
        self._id_factory = id_factory
        self._clock = clock
        self._lock = asyncio.Lock()

    async def load(self) -> ContentSnapshot:
        """Current snapshot, seeding version 1 if the backend is empty."""
        async with self._lock:
            loaded = await self._load()
        CONTENT_VERSION.set(loaded.snapshot.version)
        return loaded.snapshot

    async def save(
        self,
        update: Mapping[str, Sequence[Entry | Mapping[str, Any]]],
        bump_version: bool = True,
    ) -> ContentSnapshot:
        """Merge whole collections from ``update`` into the snapshot.

        Args:
            update: Replacement lists keyed by collection name
            bump_version: Increment the version counter

        Returns:
            The persisted snapshot
        """
        unknown = set(update) - set(COLLECTIONS)
        if unknown:
            raise ValueError(f"Unknown collections: {sorted(unknown)}")

        def change(current: ContentSnapshot) -> Mutation:
            replacements = {
                name: [
                    e if isinstance(e, Entry) else Entry.model_validate(e)
                    for e in entries
                ]
                for name, entries in update.items()
            }
            return Mutation(
                snapshot=self._next_snapshot(current, replacements, bump_version)
            )

        mutation = await self._mutate(change)
        return mutation.snapshot

    async def upsert_entry(
        self,
        collection: Collection,
        entry: Entry | Mapping[str, Any],
        *,
        natural_key: Optional[NaturalKey] = None,
        require_existing: bool = False,
        expected_updated_at: Optional[str] = None,
    ) -> Mutation:
        """Replace the entry with the same id, or append a new one.

        Args:
            collection: Target collection
            entry: Entry to store; an empty id gets a generated one
            natural_key: Key function that must stay unique in the collection
            require_existing: Raise ``NotFound`` instead of appending
            expected_updated_at: Raise ``Conflict`` unless the stored entry
                still carries this ``updated_at``

        Returns:
            Mutation holding the new snapshot and the stored entry
        """
        incoming = entry if isinstance(entry, Entry) else Entry.model_validate(entry)
        kind = ENTRY_TYPES[collection]

        def change(current: ContentSnapshot) -> Mutation:
            entries = current.entries(collection)
            index = next(
                (i for i, e in enumerate(entries) if incoming.id and e.id == incoming.id),
                None,
            )

            if index is None and require_existing:
                raise NotFound(f"{kind.capitalize()} {incoming.id} not found")

            if (
                index is not None
                and expected_updated_at is not None
                and entries[index].updated_at != expected_updated_at
            ):
                raise Conflict(
                    f"{kind.capitalize()} {incoming.id} was modified by another editor"
                )

            if natural_key is not None:
                key = natural_key(incoming)
                for other in entries:
                    if other.id != incoming.id and natural_key(other) == key:
                        raise Conflict(f"{kind.capitalize()} {key!r} already exists")

            now = self._clock()
            if index is not None:
                stored = incoming.model_copy(
                    update={
                        "created_at": entries[index].created_at or now,
                        "updated_at": now,
                    }
                )
                next_entries = [*entries[:index], stored, *entries[index + 1 :]]
            else:
                stored = incoming.model_copy(
                    update={
                        "id": incoming.id or self._id_factory(),
                        "created_at": now,
                        "updated_at": now,
                    }
                )
                next_entries = [*entries, stored]

            return Mutation(
                snapshot=self._next_snapshot(current, {collection: next_entries}, True),
                entry=stored,
            )

        mutation = await self._mutate(change)
        logger.info(
            "entry_upserted",
            collection=collection,
            entry_id=mutation.entry.id if mutation.entry else None,
            version=mutation.snapshot.version,
        )
        return mutation

    async def delete_entry(self, collection: Collection, entry_id: str) -> Mutation:
        """Remove an entry. Deleting an absent id changes nothing."""

        def change(current: ContentSnapshot) -> Mutation:
            existing = current.find(collection, entry_id)
            if existing is None:
                return Mutation(snapshot=current, entry=None, changed=False)
            remaining = [e for e in current.entries(collection) if e.id != entry_id]
            return Mutation(
                snapshot=self._next_snapshot(current, {collection: remaining}, True),
                entry=existing,
            )

        mutation = await self._mutate(change)
        if mutation.changed:
            logger.info(
                "entry_deleted",
                collection=collection,
                entry_id=entry_id,
                version=mutation.snapshot.version,
            )
        return mutation

    async def close(self) -> None:
        await self.backend.close()

    async def _load(self) -> LoadedContent:
        loaded = await self.backend.load()
        if loaded is not None:
            return loaded

        initial = self._seed()
        try:
            revision = await self.backend.save(initial, None)
        except RevisionConflict:
            # Another instance seeded first; use theirs
            loaded = await self.backend.load()
            if loaded is None:
                raise StoreUnavailable("Content vanished while seeding")
            return loaded

        logger.info(
            "content_seeded",
            words=len(initial.words),
            characters=len(initial.characters),
            version=initial.version,
        )
        return LoadedContent(snapshot=initial, revision=revision)

    async def _mutate(self, change: Callable[[ContentSnapshot], Mutation]) -> Mutation:
        async with self._lock:
            for attempt in range(1, self.conflict_retries + 1):
                loaded = await self._load()
                mutation = change(loaded.snapshot)
                if not mutation.changed:
                    return mutation

                try:
                    await self.backend.save(mutation.snapshot, loaded.revision)
                except RevisionConflict as e:
                    STORE_CONFLICTS.inc()
                    logger.warning(
                        "store_revision_conflict",
                        attempt=attempt,
                        max_attempts=self.conflict_retries,
                        error=str(e),
                    )
                    if attempt == self.conflict_retries:
                        raise StoreUnavailable(
                            f"Gave up after {attempt} conflicting writes"
                        ) from e
                    await self._sleep(self.conflict_base_delay * attempt)
                    continue

                CONTENT_VERSION.set(mutation.snapshot.version)
                return mutation

        raise StoreUnavailable("Unexpected retry loop exit")

    def _next_snapshot(
        self,
        current: ContentSnapshot,
        replacements: Mapping[str, list[Entry]],
        bump_version: bool,
    ) -> ContentSnapshot:
        return ContentSnapshot(
            words=replacements.get("words", current.words),
            characters=replacements.get("characters", current.characters),
            version=current.version + 1 if bump_version else current.version,
            updated_at=self._clock(),
        )
