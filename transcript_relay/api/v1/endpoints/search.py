"""Semantic search endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends

from transcript_relay.api.v1.dependencies import Embedder, rate_limit
from transcript_relay.core.database import DbSession
from transcript_relay.models.domain.transcript import SearchRequest, SearchResponse
from transcript_relay.services.search_service import SearchService

router = APIRouter()


def get_search_service(session: DbSession, embedder: Embedder) -> SearchService:
    """Get search service instance."""
    return SearchService(session, embedder)


SearchSvc = Annotated[SearchService, Depends(get_search_service)]


@router.post(
    "",
    response_model=SearchResponse,
    dependencies=[Depends(rate_limit("search"))],
)
async def search(request: SearchRequest, service: SearchSvc) -> SearchResponse:
    """Find transcript chunks closest in meaning to a query.

    Results are ordered by cosine distance, closest first. Returns an
    empty list when vector search is unavailable, and 502 if the query
    could not be embedded.
    """
    return await service.search(
        query=request.query,
        limit=request.limit,
        session_id=request.session_id,
    )
