"""Transcript fragment ingestion endpoint."""

from fastapi import APIRouter, Depends

from transcript_relay.api.v1.dependencies import Pipeline, rate_limit
from transcript_relay.models.domain.transcript import IngestRequest, IngestResponse

router = APIRouter()


@router.post(
    "/ingest",
    response_model=IngestResponse,
    dependencies=[Depends(rate_limit("ingest"))],
)
async def ingest(request: IngestRequest, pipeline: Pipeline) -> IngestResponse:
    """Append a finalized transcript fragment to its session's buffer.

    The fragment is held in memory and embedded later by a flush.
    Returns 422 if session_id or text is missing, 404 if the session
    does not exist.
    """
    await pipeline.ingest(request.session_id, request.language, request.text)
    return IngestResponse()
