"""Service for session management."""

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from transcript_relay.core.exceptions import NotFoundError
from transcript_relay.models.db.session import Session
from transcript_relay.models.domain.session import (
    SessionCreate,
    SessionDeleteResponse,
    SessionRead,
    SessionRecountResponse,
)
from transcript_relay.models.domain.transcript import (
    ChunkDeleteResponse,
    TranscriptChunkRead,
)
from transcript_relay.repositories.session_repo import SessionRepository
from transcript_relay.services.ingestion_pipeline import IngestionPipeline
from transcript_relay.services.vector_store import VectorStore

logger = logging.getLogger(__name__)


class SessionService:
    """Service for managing transcription sessions and their chunks."""

    def __init__(
        self,
        db_session: AsyncSession,
        pipeline: IngestionPipeline | None = None,
    ) -> None:
        self.db_session = db_session
        self.session_repo = SessionRepository(db_session)
        self.vector_store = VectorStore(db_session)
        self.pipeline = pipeline

    async def create_session(self, create: SessionCreate) -> SessionRead:
        """Create a new session.

        Args:
            create: Session creation data

        Returns:
            The created session
        """
        session = Session(name=create.name, total_transcripts=0)
        created = await self.session_repo.create(session)
        logger.info("Session created", extra={"session_id": str(created.id)})
        return SessionRead.model_validate(created)

    async def list_sessions(self, limit: int = 100, offset: int = 0) -> list[SessionRead]:
        """List sessions, most recently updated first."""
        sessions = await self.session_repo.list_sessions(limit=limit, offset=offset)
        return [SessionRead.model_validate(s) for s in sessions]

    async def get_session(self, session_id: uuid.UUID) -> SessionRead:
        """Get a session by ID.

        Raises:
            NotFoundError: If session not found
        """
        session = await self._get_or_404(session_id)
        return SessionRead.model_validate(session)

    async def delete_session(self, session_id: uuid.UUID) -> SessionDeleteResponse:
        """Delete a session, its chunks and any live buffer.

        Raises:
            NotFoundError: If session not found
        """
        session = await self._get_or_404(session_id)
        name = session.name

        if self.pipeline is not None:
            self.pipeline.discard(session_id)

        deleted = await self.vector_store.delete_by_session(session_id)
        await self.session_repo.delete(session_id)

        logger.info(
            f"Deleted session: {deleted} transcripts removed",
            extra={"session_id": str(session_id)},
        )
        return SessionDeleteResponse(
            session_id=session_id,
            session_name=name,
            transcripts_deleted=deleted,
        )

    async def list_transcripts(self, session_id: uuid.UUID) -> list[TranscriptChunkRead]:
        """Persisted chunks for a session, newest window first.

        Raises:
            NotFoundError: If session not found
        """
        await self._get_or_404(session_id)
        chunks = await self.vector_store.chunk_repo.get_chunks_by_session(session_id)
        return [TranscriptChunkRead.model_validate(c) for c in chunks]

    async def list_embeddings(
        self,
        session_id: uuid.UUID | None = None,
        limit: int = 100,
    ) -> list[TranscriptChunkRead]:
        """Recent chunks across all sessions, or within one."""
        chunks = await self.vector_store.list_chunks(session_id=session_id, limit=limit)
        return [TranscriptChunkRead.model_validate(c) for c in chunks]

    async def delete_chunk(self, chunk_id: uuid.UUID) -> ChunkDeleteResponse:
        """Delete one chunk and bring its session's count back in line.

        Raises:
            NotFoundError: If chunk not found
        """
        deletion = await self.vector_store.delete_by_row_id(chunk_id)
        if deletion is None:
            raise NotFoundError(resource="Embedding", resource_id=str(chunk_id))

        logger.info(
            f"Deleted embedding {chunk_id}; transcript count now "
            f"{deletion.new_transcript_count}",
            extra={"session_id": str(deletion.session_id)},
        )
        return ChunkDeleteResponse(
            chunk_id=chunk_id,
            session_id=deletion.session_id,
            new_transcript_count=deletion.new_transcript_count,
        )

    async def recount(self, session_id: uuid.UUID) -> SessionRecountResponse:
        """Recalculate a session's transcript count from its chunks.

        Raises:
            NotFoundError: If session not found
        """
        await self._get_or_404(session_id)
        count = await self.vector_store.recalculate_count(session_id)
        return SessionRecountResponse(session_id=session_id, total_transcripts=count)

    async def _get_or_404(self, session_id: uuid.UUID) -> Session:
        session = await self.session_repo.get_by_id(session_id)
        if not session:
            raise NotFoundError(resource="Session", resource_id=str(session_id))
        return session
