"""Repository for vector similarity search over transcript chunks."""

import uuid
from dataclasses import dataclass

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from transcript_relay.models.db.transcript_chunk import TranscriptChunk


@dataclass
class ChunkSearchResult:
    """Result from a chunk similarity search."""

    chunk: TranscriptChunk
    distance: float  # Cosine distance (0 = identical direction, lower is closer)


class VectorSearchRepository:
    """Repository for semantic search over transcript chunks.

    Uses pgvector's cosine distance operator (``<=>``) for ordering.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def search_similar(
        self,
        query_embedding: list[float],
        top_k: int = 5,
        session_id: uuid.UUID | None = None,
    ) -> list[ChunkSearchResult]:
        """Search for chunks closest to a query embedding.

        Args:
            query_embedding: The embedding vector to search for
            top_k: Maximum number of results to return
            session_id: Optional session to restrict the search to

        Returns:
            List of ChunkSearchResult ordered by distance (nearest first)
        """
        distance_expr = TranscriptChunk.embedding.cosine_distance(
            query_embedding
        ).label("distance")

        query = select(TranscriptChunk, distance_expr)
        if session_id is not None:
            query = query.where(TranscriptChunk.session_id == session_id)
        query = query.order_by(distance_expr).limit(top_k)

        result = await self.session.execute(query)
        return [
            ChunkSearchResult(chunk=row[0], distance=float(row[1]))
            for row in result.all()
        ]

    async def vector_extension_installed(self) -> bool:
        """Check whether the pgvector extension is installed in the database."""
        result = await self.session.execute(
            text("SELECT 1 FROM pg_extension WHERE extname = 'vector'")
        )
        return result.scalar() is not None
