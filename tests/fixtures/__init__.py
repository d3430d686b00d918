"""Test fixture package for lexsync.

Contains fixtures for:
- Content stores over local files and in-memory revisioned files
- FastAPI applications and HTTP clients
- Client cache managers with a controllable clock
"""

from .cache import FakeClock
from .content_store import MemoryFileStore

__all__ = [
    "FakeClock",
    "MemoryFileStore",
]
