"""API v1 router configuration."""

from fastapi import APIRouter

from transcript_relay.api.v1.endpoints import embeddings, realtime, search, sessions

router = APIRouter(prefix="/api/v1")

router.include_router(embeddings.router, prefix="/embeddings", tags=["embeddings"])
router.include_router(realtime.router, prefix="/realtime", tags=["realtime"])
router.include_router(search.router, prefix="/search", tags=["search"])
router.include_router(sessions.router, prefix="/sessions", tags=["sessions"])
