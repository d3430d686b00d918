"""Initial dataset used when a backend holds no content yet."""

import json
from pathlib import Path
from typing import Optional

from lexsync.content_store.models import ContentSnapshot, utc_now

SEED_PATH = Path(__file__).resolve().parent / "data" / "seed.json"


def load_seed(path: Optional[Path] = None) -> ContentSnapshot:
    """Build the version 1 snapshot from the bundled sample data."""
    raw = json.loads((path or SEED_PATH).read_text(encoding="utf-8"))
    return ContentSnapshot(
        words=raw.get("words", []),
        characters=raw.get("characters", []),
        version=1,
        updated_at=utc_now(),
    )
