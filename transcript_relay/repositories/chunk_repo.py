"""Repository for transcript chunk operations."""

import uuid

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from transcript_relay.models.db.transcript_chunk import TranscriptChunk


class ChunkRepository:
    """Repository for transcript chunk database operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create_chunk(self, chunk: TranscriptChunk) -> TranscriptChunk:
        """Create a new transcript chunk.

        Args:
            chunk: The chunk to create

        Returns:
            The created chunk
        """
        self.session.add(chunk)
        await self.session.flush()
        await self.session.refresh(chunk)
        return chunk

    async def get_chunk_by_id(self, chunk_id: uuid.UUID) -> TranscriptChunk | None:
        """Get a chunk by ID.

        Args:
            chunk_id: The chunk ID

        Returns:
            The chunk if found, None otherwise
        """
        result = await self.session.execute(
            select(TranscriptChunk).where(TranscriptChunk.id == chunk_id)
        )
        return result.scalar_one_or_none()

    async def get_chunks_by_session(
        self,
        session_id: uuid.UUID,
    ) -> list[TranscriptChunk]:
        """Get all chunks for a session.

        Args:
            session_id: The session ID

        Returns:
            List of chunks, newest window first
        """
        result = await self.session.execute(
            select(TranscriptChunk)
            .where(TranscriptChunk.session_id == session_id)
            .order_by(TranscriptChunk.started_at.desc())
        )
        return list(result.scalars().all())

    async def list_recent(
        self,
        session_id: uuid.UUID | None = None,
        limit: int = 100,
    ) -> list[TranscriptChunk]:
        """List chunks across sessions (or within one), newest window first.

        Args:
            session_id: Optional session to restrict to
            limit: Maximum number of results

        Returns:
            List of chunks
        """
        query = select(TranscriptChunk)
        if session_id is not None:
            query = query.where(TranscriptChunk.session_id == session_id)
        query = query.order_by(TranscriptChunk.started_at.desc()).limit(limit)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_latest_by_session(
        self, session_id: uuid.UUID
    ) -> TranscriptChunk | None:
        """Get the chunk whose window ended most recently.

        Args:
            session_id: The session ID

        Returns:
            The latest chunk, or None if the session has none
        """
        result = await self.session.execute(
            select(TranscriptChunk)
            .where(TranscriptChunk.session_id == session_id)
            .order_by(TranscriptChunk.ended_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def delete_chunk(self, chunk_id: uuid.UUID) -> bool:
        """Delete a single chunk.

        Args:
            chunk_id: The chunk ID

        Returns:
            True if a chunk was deleted
        """
        cursor_result = await self.session.execute(
            delete(TranscriptChunk).where(TranscriptChunk.id == chunk_id)
        )
        rowcount = getattr(cursor_result, "rowcount", 0)
        return bool(rowcount and rowcount > 0)

    async def delete_chunks_by_session(self, session_id: uuid.UUID) -> int:
        """Delete all chunks for a session.

        Args:
            session_id: The session ID

        Returns:
            Number of chunks deleted
        """
        cursor_result = await self.session.execute(
            delete(TranscriptChunk).where(TranscriptChunk.session_id == session_id)
        )
        rowcount = getattr(cursor_result, "rowcount", 0)
        return rowcount or 0

    async def count_chunks_by_session(self, session_id: uuid.UUID) -> int:
        """Count chunks for a session.

        Args:
            session_id: The session ID

        Returns:
            Number of chunks
        """
        result = await self.session.execute(
            select(func.count(TranscriptChunk.id)).where(
                TranscriptChunk.session_id == session_id
            )
        )
        return result.scalar() or 0
