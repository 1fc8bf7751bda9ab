"""Session API endpoints."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from transcript_relay.api.v1.dependencies import Pipeline, rate_limit
from transcript_relay.core.database import DbSession
from transcript_relay.core.exceptions import EmbeddingUnavailableError
from transcript_relay.models.domain.session import (
    SessionCreate,
    SessionDeleteResponse,
    SessionRead,
    SessionRecountResponse,
)
from transcript_relay.models.domain.transcript import (
    FlushResponse,
    LastChunkRead,
    TranscriptChunkRead,
)
from transcript_relay.services.embedding_client import EmbeddingError
from transcript_relay.services.session_service import SessionService

router = APIRouter()


def get_session_service(session: DbSession, pipeline: Pipeline) -> SessionService:
    """Get session service instance bound to the live pipeline."""
    return SessionService(session, pipeline=pipeline)


SessionSvc = Annotated[SessionService, Depends(get_session_service)]


@router.post(
    "",
    response_model=SessionRead,
    status_code=201,
    dependencies=[Depends(rate_limit("session_write"))],
)
async def create_session(
    create: SessionCreate,
    service: SessionSvc,
) -> SessionRead:
    """Create a new transcription session."""
    return await service.create_session(create)


@router.get("", response_model=list[SessionRead])
async def list_sessions(
    service: SessionSvc,
    limit: Annotated[int, Query(ge=1, le=1000, description="Maximum results")] = 100,
    offset: Annotated[int, Query(ge=0, description="Results to skip")] = 0,
) -> list[SessionRead]:
    """List sessions, most recently updated first."""
    return await service.list_sessions(limit=limit, offset=offset)


@router.get("/{session_id}", response_model=SessionRead)
async def get_session(
    session_id: uuid.UUID,
    service: SessionSvc,
) -> SessionRead:
    """Get a session by ID.

    Returns 404 if session not found.
    """
    return await service.get_session(session_id)


@router.delete(
    "/{session_id}",
    response_model=SessionDeleteResponse,
    dependencies=[Depends(rate_limit("session_write"))],
)
async def delete_session(
    session_id: uuid.UUID,
    service: SessionSvc,
) -> SessionDeleteResponse:
    """Delete a session with all of its chunks.

    Unflushed text in the session's buffer is discarded.
    Returns 404 if session not found.
    """
    return await service.delete_session(session_id)


@router.get("/{session_id}/transcripts", response_model=list[TranscriptChunkRead])
async def list_transcripts(
    session_id: uuid.UUID,
    service: SessionSvc,
) -> list[TranscriptChunkRead]:
    """List a session's persisted chunks, newest window first."""
    return await service.list_transcripts(session_id)


@router.post(
    "/{session_id}/flush",
    response_model=FlushResponse,
    dependencies=[Depends(rate_limit("flush"))],
)
async def flush_session(
    session_id: uuid.UUID,
    pipeline: Pipeline,
) -> FlushResponse:
    """Embed a session's buffered text right away.

    Makes a single attempt. On failure the text stays buffered and a
    502 is returned. Returns 404 if session not found.
    """
    try:
        result = await pipeline.flush_now(session_id)
    except EmbeddingError as e:
        raise EmbeddingUnavailableError() from e

    if result.in_progress:
        return FlushResponse(
            session_id=session_id,
            flushed=False,
            in_progress=True,
            message="A flush is already in progress for this session",
        )
    if not result.flushed:
        return FlushResponse(
            session_id=session_id,
            flushed=False,
            message="No pending transcripts to flush",
        )
    return FlushResponse(
        session_id=session_id,
        flushed=True,
        content_length=result.content_length,
        message="Transcripts flushed and embedded successfully",
    )


@router.get("/{session_id}/last-chunk", response_model=LastChunkRead)
async def get_last_chunk(
    session_id: uuid.UUID,
    service: SessionSvc,
    pipeline: Pipeline,
) -> LastChunkRead:
    """Most recent transcript text, from the buffer if it has any.

    Never triggers a flush. Returns 404 if session not found.
    """
    await service.get_session(session_id)
    return await pipeline.get_last_chunk(session_id)


@router.post("/{session_id}/recount", response_model=SessionRecountResponse)
async def recount_transcripts(
    session_id: uuid.UUID,
    service: SessionSvc,
) -> SessionRecountResponse:
    """Reset the session's transcript count to its actual chunk count."""
    return await service.recount(session_id)
