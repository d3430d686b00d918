"""Dictionary word endpoints."""

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Header, Query, status

from lexsync.api.v1 import entries
from lexsync.api.v1.schemas import WordPayload
from lexsync.api.v1.utils import envelope, get_broadcaster, get_store
from lexsync.broadcast import Broadcaster
from lexsync.content_store import ContentStore

router = APIRouter(prefix="/words", tags=["words"])

WORDS = entries.CollectionDefinition(
    name="words",
    payload_model=WordPayload,
    natural_key_field="chakma_word_script",
    case_insensitive_key=True,
    search_fields=(
        "chakma_word_script",
        "romanized_pronunciation",
        "english_translation",
        "example_sentence",
    ),
    term_list_fields=("synonyms", "antonyms"),
)


@router.get("")
async def list_words(
    query: Optional[str] = Query(None, description="Search text"),
    store: ContentStore = Depends(get_store),
) -> dict[str, Any]:
    """
    List words, optionally filtered by a case-insensitive search.

    The query matches the script, romanization, translation, example
    sentence and any synonym or antonym term.
    """
    data, version = await entries.list_entries(WORDS, store, query)
    return envelope(data, version)


@router.get("/{word_id}")
async def get_word(
    word_id: str, store: ContentStore = Depends(get_store)
) -> dict[str, Any]:
    data, version = await entries.get_entry(WORDS, store, word_id)
    return envelope(data, version)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_word(
    payload: dict[str, Any] = Body(...),
    store: ContentStore = Depends(get_store),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> dict[str, Any]:
    """Create a word. The script form must be unique, ignoring case."""
    data, version = await entries.create_entry(WORDS, store, broadcaster, payload)
    return envelope(data, version)


@router.put("/{word_id}")
async def update_word(
    word_id: str,
    payload: dict[str, Any] = Body(...),
    if_match: Optional[str] = Header(None),
    store: ContentStore = Depends(get_store),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> dict[str, Any]:
    """
    Update a word with a partial payload.

    Concurrent edits resolve last-write-wins unless the caller sends
    ``If-Match`` with the ``updated_at`` it last read.
    """
    data, version = await entries.update_entry(
        WORDS, store, broadcaster, word_id, payload, expected_updated_at=if_match
    )
    return envelope(data, version)


@router.delete("/{word_id}")
async def delete_word(
    word_id: str,
    store: ContentStore = Depends(get_store),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> dict[str, Any]:
    version = await entries.delete_entry(WORDS, store, broadcaster, word_id)
    return envelope({"id": word_id}, version)
