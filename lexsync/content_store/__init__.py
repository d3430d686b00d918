"""Versioned content store."""

from lexsync.content_store.backends import (
    ContentBackend,
    LocalFileBackend,
    RevisionedBackend,
)
from lexsync.content_store.models import (
    COLLECTIONS,
    Collection,
    ContentSnapshot,
    Entry,
    Mutation,
)
from lexsync.content_store.store import ContentStore

__all__ = [
    "COLLECTIONS",
    "Collection",
    "ContentBackend",
    "ContentSnapshot",
    "ContentStore",
    "Entry",
    "LocalFileBackend",
    "Mutation",
    "RevisionedBackend",
]
