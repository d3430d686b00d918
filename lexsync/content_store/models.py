"""Data models for the versioned content store."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

Collection = Literal["words", "characters"]

COLLECTIONS: tuple[Collection, ...] = ("words", "characters")

# Singular names used in broadcast events
ENTRY_TYPES: dict[str, str] = {"words": "word", "characters": "character"}


def utc_now() -> str:
    """Current time as an ISO-8601 UTC string."""
    return datetime.now(timezone.utc).isoformat()


class Entry(BaseModel):
    """One record of a collection.

    Payload fields are opaque to the store and preserved as extras.
    """

    model_config = ConfigDict(extra="allow")

    id: str = ""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def payload(self) -> dict[str, Any]:
        """Entry as a plain JSON-ready dict."""
        return self.model_dump(mode="json", exclude_none=True)


class ContentSnapshot(BaseModel):
    """Full content of the store at one version."""

    words: list[Entry] = Field(default_factory=list)
    characters: list[Entry] = Field(default_factory=list)
    version: int = 0
    updated_at: str = Field(default_factory=utc_now)

    def entries(self, collection: Collection) -> list[Entry]:
        """Entries of ``collection``."""
        return self.words if collection == "words" else self.characters

    def find(self, collection: Collection, entry_id: str) -> Optional[Entry]:
        """Entry with ``entry_id`` or None."""
        for entry in self.entries(collection):
            if entry.id == entry_id:
                return entry
        return None


@dataclass(frozen=True)
class LoadedContent:
    """Snapshot as read from a backend, with the revision it was read at."""

    snapshot: ContentSnapshot
    revision: Optional[str] = None


@dataclass(frozen=True)
class Mutation:
    """Outcome of a store mutation."""

    snapshot: ContentSnapshot
    entry: Optional[Entry] = None
    changed: bool = True
