"""API v1 router module."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from lexsync.api.v1.characters import router as characters_router
from lexsync.api.v1.content import router as content_router
from lexsync.api.v1.events import router as events_router
from lexsync.api.v1.words import router as words_router

router = APIRouter(default_response_class=JSONResponse)

router.include_router(content_router)
router.include_router(words_router)
router.include_router(characters_router)
router.include_router(events_router)
