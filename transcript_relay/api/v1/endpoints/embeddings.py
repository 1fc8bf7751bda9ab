"""Embedding (transcript chunk) API endpoints."""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from transcript_relay.api.v1.dependencies import rate_limit
from transcript_relay.api.v1.endpoints.sessions import SessionSvc
from transcript_relay.models.domain.transcript import (
    ChunkDeleteResponse,
    TranscriptChunkRead,
)

router = APIRouter()


@router.get("", response_model=list[TranscriptChunkRead])
async def list_embeddings(
    service: SessionSvc,
    session_id: Annotated[
        uuid.UUID | None, Query(description="Filter by session ID")
    ] = None,
    limit: Annotated[int, Query(ge=1, le=1000, description="Maximum results")] = 100,
) -> list[TranscriptChunkRead]:
    """List recent chunks, newest window first."""
    return await service.list_embeddings(session_id=session_id, limit=limit)


@router.delete(
    "/{chunk_id}",
    response_model=ChunkDeleteResponse,
    dependencies=[Depends(rate_limit("embedding_delete"))],
)
async def delete_embedding(
    chunk_id: uuid.UUID,
    service: SessionSvc,
) -> ChunkDeleteResponse:
    """Delete one chunk and recalculate its session's transcript count.

    Returns 404 if the chunk does not exist.
    """
    return await service.delete_chunk(chunk_id)
