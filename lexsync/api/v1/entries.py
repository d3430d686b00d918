"""Shared handlers behind the words and characters endpoints."""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Optional

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from lexsync.broadcast import Broadcaster, ContentEvent
from lexsync.content_store import Collection, ContentStore, Entry, Mutation
from lexsync.core.errors import NotFound, StoreUnavailable, ValidationError
from lexsync.core.logging import get_logger

logger = get_logger(__name__)

# Fields the store owns; clients cannot set them through a payload
MANAGED_FIELDS = frozenset({"id", "created_at", "updated_at"})


def extra_field(entry: Entry, name: str) -> Any:
    """Payload field stored as an extra on ``entry``."""
    return (entry.model_extra or {}).get(name)


@dataclass(frozen=True)
class CollectionDefinition:
    """How one collection validates, keys and searches its entries."""

    name: Collection
    payload_model: type[BaseModel]
    natural_key_field: str
    case_insensitive_key: bool
    search_fields: tuple[str, ...]
    term_list_fields: tuple[str, ...] = ()

    @property
    def label(self) -> str:
        return "Word" if self.name == "words" else "Character"

    def natural_key(self, entry: Entry) -> str:
        value = str(extra_field(entry, self.natural_key_field) or "").strip()
        return value.casefold() if self.case_insensitive_key else value

    def validate(self, data: Mapping[str, Any]) -> dict[str, Any]:
        """Validated payload as a JSON-ready dict.

        Raises:
            ValidationError: Payload does not match the collection schema
        """
        try:
            model = self.payload_model.model_validate(dict(data))
        except PydanticValidationError as e:
            details = [
                f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg', '')}"
                for err in e.errors()
            ]
            raise ValidationError(f"Invalid {self.label.lower()}", details=details) from e
        return model.model_dump(mode="json")

    def matches(self, entry: Entry, query: str) -> bool:
        """Case-insensitive substring match over the searchable fields."""
        needle = query.casefold()
        for field in self.search_fields:
            value = extra_field(entry, field)
            if isinstance(value, str) and needle in value.casefold():
                return True
        for field in self.term_list_fields:
            for term in extra_field(entry, field) or []:
                text = term.get("term") if isinstance(term, Mapping) else None
                if isinstance(text, str) and needle in text.casefold():
                    return True
        return False


def _require_entry(mutation: Mutation) -> Entry:
    """Stored entry of an upsert; a missing one means the write did not land."""
    if mutation.entry is None:
        raise StoreUnavailable("Store did not return the written entry")
    return mutation.entry


def _strip_managed(data: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if k not in MANAGED_FIELDS}


async def list_entries(
    definition: CollectionDefinition,
    store: ContentStore,
    query: Optional[str] = None,
    predicate: Optional[Callable[[Entry], bool]] = None,
) -> tuple[list[dict[str, Any]], int]:
    """Entries matching ``query`` and ``predicate``, with the snapshot version."""
    snapshot = await store.load()
    entries = snapshot.entries(definition.name)
    if query and query.strip():
        entries = [e for e in entries if definition.matches(e, query.strip())]
    if predicate is not None:
        entries = [e for e in entries if predicate(e)]
    return [e.payload() for e in entries], snapshot.version


async def get_entry(
    definition: CollectionDefinition, store: ContentStore, entry_id: str
) -> tuple[dict[str, Any], int]:
    snapshot = await store.load()
    entry = snapshot.find(definition.name, entry_id)
    if entry is None:
        raise NotFound(f"{definition.label} {entry_id} not found")
    return entry.payload(), snapshot.version


async def create_entry(
    definition: CollectionDefinition,
    store: ContentStore,
    broadcaster: Broadcaster,
    data: Mapping[str, Any],
) -> tuple[dict[str, Any], int]:
    """Validate and append a new entry with a generated id."""
    payload = definition.validate(_strip_managed(data))
    mutation = await store.upsert_entry(
        definition.name, payload, natural_key=definition.natural_key
    )
    stored = _require_entry(mutation)
    await broadcaster.publish(
        ContentEvent(definition.name, "upsert", stored.id, mutation.snapshot.version)
    )
    return stored.payload(), mutation.snapshot.version


async def update_entry(
    definition: CollectionDefinition,
    store: ContentStore,
    broadcaster: Broadcaster,
    entry_id: str,
    data: Mapping[str, Any],
    expected_updated_at: Optional[str] = None,
) -> tuple[dict[str, Any], int]:
    """Merge ``data`` onto the stored entry, validate and replace it.

    Args:
        expected_updated_at: When given, the write is rejected with
            ``Conflict`` if the entry changed since the caller read it
    """
    snapshot = await store.load()
    existing = snapshot.find(definition.name, entry_id)
    if existing is None:
        raise NotFound(f"{definition.label} {entry_id} not found")

    merged = {**_strip_managed(existing.payload()), **_strip_managed(data)}
    payload = definition.validate(merged)
    mutation = await store.upsert_entry(
        definition.name,
        {**payload, "id": entry_id},
        natural_key=definition.natural_key,
        require_existing=True,
        expected_updated_at=expected_updated_at,
    )
    stored = _require_entry(mutation)
    await broadcaster.publish(
        ContentEvent(definition.name, "upsert", entry_id, mutation.snapshot.version)
    )
    return stored.payload(), mutation.snapshot.version


async def delete_entry(
    definition: CollectionDefinition,
    store: ContentStore,
    broadcaster: Broadcaster,
    entry_id: str,
) -> int:
    """Remove an entry and return the new version."""
    mutation = await store.delete_entry(definition.name, entry_id)
    if not mutation.changed:
        raise NotFound(f"{definition.label} {entry_id} not found")
    await broadcaster.publish(
        ContentEvent(definition.name, "delete", entry_id, mutation.snapshot.version)
    )
    return mutation.snapshot.version
