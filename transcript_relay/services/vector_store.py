"""Persistence and similarity search over transcript chunks."""

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from transcript_relay.core.exceptions import NotFoundError, SchemaError
from transcript_relay.models.db.transcript_chunk import (
    EMBEDDING_DIMENSION,
    TranscriptChunk,
)
from transcript_relay.repositories.chunk_repo import ChunkRepository
from transcript_relay.repositories.session_repo import SessionRepository
from transcript_relay.repositories.vector_search_repo import (
    ChunkSearchResult,
    VectorSearchRepository,
)

logger = logging.getLogger(__name__)


@dataclass
class ChunkDeletion:
    """Outcome of deleting a single chunk."""

    session_id: uuid.UUID
    new_transcript_count: int


class VectorStore:
    """Keeps transcript chunks and session counts consistent.

    Wraps the chunk, session and vector search repositories behind the
    operations the ingestion pipeline and search need. All writes happen
    in the caller's transaction.
    """

    def __init__(
        self,
        db_session: AsyncSession,
        dimension: int = EMBEDDING_DIMENSION,
    ) -> None:
        self.db_session = db_session
        self.dimension = dimension
        self.chunk_repo = ChunkRepository(db_session)
        self.session_repo = SessionRepository(db_session)
        self.search_repo = VectorSearchRepository(db_session)

    async def insert(self, chunk: TranscriptChunk) -> TranscriptChunk:
        """Persist a chunk and bump its session's transcript count.

        Args:
            chunk: Unsaved chunk with content and embedding

        Returns:
            The persisted chunk

        Raises:
            SchemaError: If the embedding length does not match the column
            NotFoundError: If the owning session no longer exists
        """
        actual = len(chunk.embedding)
        if actual != self.dimension:
            logger.error(
                f"Embedding dimension mismatch: got {actual}, "
                f"vector column holds {self.dimension}. "
                "Check EMBEDDING_MODEL against the database schema.",
                extra={"session_id": str(chunk.session_id)},
            )
            raise SchemaError(expected=self.dimension, actual=actual)

        # Count first: it doubles as the existence check for the session
        if not await self.session_repo.increment_transcript_count(chunk.session_id):
            raise NotFoundError(resource="Session", resource_id=str(chunk.session_id))

        return await self.chunk_repo.create_chunk(chunk)

    async def search_similar(
        self,
        query_vector: list[float],
        limit: int = 5,
        session_id: uuid.UUID | None = None,
    ) -> list[ChunkSearchResult]:
        """Find the chunks nearest to a query vector.

        Runs inside a savepoint so a missing vector extension degrades to
        an empty result without poisoning the surrounding transaction.

        Args:
            query_vector: The query embedding
            limit: Maximum number of results
            session_id: Optional session to restrict to

        Returns:
            Chunks ordered by ascending cosine distance, or [] if vector
            search is unavailable
        """
        try:
            async with self.db_session.begin_nested():
                return await self.search_repo.search_similar(
                    query_embedding=query_vector,
                    top_k=limit,
                    session_id=session_id,
                )
        except DBAPIError as e:
            logger.warning(f"Vector search unavailable, returning no results: {e}")
            return []

    async def latest_chunk(self, session_id: uuid.UUID) -> TranscriptChunk | None:
        """Most recently ended chunk for a session."""
        return await self.chunk_repo.get_latest_by_session(session_id)

    async def list_chunks(
        self,
        session_id: uuid.UUID | None = None,
        limit: int = 100,
    ) -> list[TranscriptChunk]:
        """Recent chunks, newest window first."""
        return await self.chunk_repo.list_recent(session_id=session_id, limit=limit)

    async def delete_by_session(self, session_id: uuid.UUID) -> int:
        """Delete all chunks for a session and zero its count.

        Returns:
            Number of chunks deleted
        """
        deleted = await self.chunk_repo.delete_chunks_by_session(session_id)
        await self.session_repo.set_transcript_count(session_id, 0)
        return deleted

    async def delete_by_row_id(self, chunk_id: uuid.UUID) -> ChunkDeletion | None:
        """Delete one chunk and recalculate its session's count.

        Returns:
            The owning session and its new count, or None if no such chunk
        """
        chunk = await self.chunk_repo.get_chunk_by_id(chunk_id)
        if chunk is None:
            return None

        session_id = chunk.session_id
        await self.chunk_repo.delete_chunk(chunk_id)
        count = await self.recalculate_count(session_id)
        return ChunkDeletion(session_id=session_id, new_transcript_count=count)

    async def recalculate_count(self, session_id: uuid.UUID) -> int:
        """Reset a session's transcript count to the true chunk count.

        Returns:
            The recalculated count
        """
        count = await self.chunk_repo.count_chunks_by_session(session_id)
        await self.session_repo.set_transcript_count(session_id, count)
        return count
