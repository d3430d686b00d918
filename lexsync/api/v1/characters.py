"""Script character endpoints."""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Header, Query, status

from lexsync.api.v1 import entries
from lexsync.api.v1.schemas import CharacterPayload, CharacterType
from lexsync.api.v1.utils import envelope, get_broadcaster, get_store
from lexsync.broadcast import Broadcaster
from lexsync.content_store import ContentStore

router = APIRouter(prefix="/characters", tags=["characters"])

CHARACTERS = entries.CollectionDefinition(
    name="characters",
    payload_model=CharacterPayload,
    natural_key_field="character_script",
    case_insensitive_key=False,
    search_fields=("character_script", "romanized_name", "description"),
)


@router.get("")
async def list_characters(
    query: Optional[str] = Query(None, description="Search text"),
    type: Optional[CharacterType] = Query(None, description="Character type"),
    store: ContentStore = Depends(get_store),
) -> dict[str, Any]:
    """List characters, optionally filtered by search text and type."""
    predicate = None
    if type is not None:
        predicate = lambda e: entries.extra_field(e, "character_type") == type  # noqa: E731
    data, version = await entries.list_entries(CHARACTERS, store, query, predicate)
    return envelope(data, version)


@router.get("/{character_id}")
async def get_character(
    character_id: str, store: ContentStore = Depends(get_store)
) -> dict[str, Any]:
    data, version = await entries.get_entry(CHARACTERS, store, character_id)
    return envelope(data, version)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_character(
    payload: dict[str, Any] = Body(...),
    store: ContentStore = Depends(get_store),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> dict[str, Any]:
    """Create a character. The script form must be unique."""
    data, version = await entries.create_entry(CHARACTERS, store, broadcaster, payload)
    return envelope(data, version)


@router.put("/{character_id}")
async def update_character(
    character_id: str,
    payload: dict[str, Any] = Body(...),
    if_match: Optional[str] = Header(None),
    store: ContentStore = Depends(get_store),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> dict[str, Any]:
    data, version = await entries.update_entry(
        CHARACTERS,
        store,
        broadcaster,
        character_id,
        payload,
        expected_updated_at=if_match,
    )
    return envelope(data, version)


@router.delete("/{character_id}")
async def delete_character(
    character_id: str,
    store: ContentStore = Depends(get_store),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> dict[str, Any]:
    version = await entries.delete_entry(CHARACTERS, store, broadcaster, character_id)
    return envelope({"id": character_id}, version)
