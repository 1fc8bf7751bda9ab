"""Semantic search over persisted transcript chunks."""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from transcript_relay.core.config import Settings, get_settings
from transcript_relay.core.exceptions import EmbeddingUnavailableError, ValidationError
from transcript_relay.models.domain.transcript import SearchHit, SearchResponse
from transcript_relay.services.embedding_client import EmbeddingClient, EmbeddingError
from transcript_relay.services.vector_store import VectorStore

logger = logging.getLogger(__name__)


class SearchService:
    """Embeds a query and looks up the nearest transcript chunks."""

    def __init__(
        self,
        db_session: AsyncSession,
        embedding_client: EmbeddingClient,
        settings: Settings | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.embedding_client = embedding_client
        self.vector_store = VectorStore(db_session)

    async def search(
        self,
        query: str,
        limit: int = 5,
        session_id: uuid.UUID | None = None,
    ) -> SearchResponse:
        """Search transcript chunks by meaning.

        Args:
            query: Free-text query
            limit: Maximum number of results
            session_id: Optional session to restrict to

        Returns:
            SearchResponse with hits ordered nearest first

        Raises:
            ValidationError: If the query is blank or too long
            EmbeddingUnavailableError: If the query could not be embedded
        """
        query = query.strip()
        if not query:
            raise ValidationError("Search query is required")
        max_length = self.settings.search_max_query_length
        if len(query) > max_length:
            raise ValidationError(
                f"Search query too long (max {max_length} characters)"
            )

        try:
            vector = await self.embedding_client.embed(query)
        except EmbeddingError as e:
            logger.error(f"Search error: {e}")
            raise EmbeddingUnavailableError("Failed to embed search query") from e

        matches = await self.vector_store.search_similar(
            vector, limit=limit, session_id=session_id
        )
        hits = [
            SearchHit(
                chunk_id=match.chunk.id,
                session_id=match.chunk.session_id,
                content=match.chunk.content,
                distance=max(0.0, match.distance),
            )
            for match in matches
        ]
        return SearchResponse(results=hits, query=query, total_results=len(hits))
