"""Transcript ingestion: per-session buffering and flushing into embeddings."""

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import timedelta
from enum import StrEnum

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from transcript_relay.core.config import Settings, get_settings
from transcript_relay.core.database import session_scope
from transcript_relay.core.exceptions import NotFoundError, SchemaError, ValidationError
from transcript_relay.models.db.transcript_chunk import TranscriptChunk
from transcript_relay.models.domain.transcript import LastChunkRead
from transcript_relay.repositories.session_repo import SessionRepository
from transcript_relay.services.embedding_client import EmbeddingClient, EmbeddingError
from transcript_relay.services.retry import retry_with_backoff
from transcript_relay.services.session_buffer import (
    BufferRegistry,
    BufferSnapshot,
    Clock,
    utc_now,
)
from transcript_relay.services.vector_store import VectorStore

logger = logging.getLogger(__name__)

StoreFactory = Callable[[AsyncSession], VectorStore]


class FlushTrigger(StrEnum):
    """What caused a buffer flush."""

    SILENCE = "silence"
    INTERVAL = "interval"
    MANUAL = "manual"


@dataclass
class FlushResult:
    """Outcome of a single buffer flush."""

    flushed: bool
    content_length: int | None = None
    chunk_id: uuid.UUID | None = None
    in_progress: bool = False


class IngestionPipeline:
    """Owns the session buffers and turns them into embedded chunks.

    Fragments are appended by ``ingest``. Three triggers flush buffers:
    the silence sweep, the interval sweep, and ``flush_now``. Every flush
    takes the buffer's lines atomically before embedding, so concurrent
    triggers for the same session never embed the same fragment twice,
    and a failed flush puts the lines back so nothing is lost.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        embedding_client: EmbeddingClient,
        settings: Settings | None = None,
        store_factory: StoreFactory = VectorStore,
        clock: Clock = utc_now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the pipeline.

        Args:
            session_factory: Factory for database sessions used by flushes
            embedding_client: Client used to embed flushed text
            settings: Application settings. If None, loads from environment.
            store_factory: Builds a VectorStore bound to a database session
            clock: Source of the current time
            sleep: Awaitable sleep used between retries
        """
        self.settings = settings or get_settings()
        self.session_factory = session_factory
        self.embedding_client = embedding_client
        self.store_factory = store_factory
        self.buffers = BufferRegistry(clock=clock)
        self._clock = clock
        self._sleep = sleep

    @property
    def active_buffers(self) -> int:
        """Number of sessions currently holding a buffer."""
        return len(self.buffers)

    async def ingest(
        self,
        session_id: uuid.UUID | None,
        language: str | None,
        text: str | None,
    ) -> None:
        """Append a transcript fragment to a session's buffer.

        Args:
            session_id: Target session
            language: Language tag; keeps the buffer's current tag if empty
            text: Fragment text; trimmed before it is stored

        Raises:
            ValidationError: If session_id is missing or text is blank
            NotFoundError: If the session does not exist
        """
        if session_id is None or text is None or not text.strip():
            raise ValidationError("missing sessionId or text")

        # A live buffer means the session existed when it was created and
        # has not been deleted since (deletion discards the buffer).
        if session_id not in self.buffers:
            async with session_scope(self.session_factory) as db:
                if not await SessionRepository(db).exists(session_id):
                    raise NotFoundError(resource="Session", resource_id=str(session_id))

        self.buffers.append(session_id, text.strip(), language)

    async def flush_now(self, session_id: uuid.UUID) -> FlushResult:
        """Flush one session's buffer immediately, with a single attempt.

        Args:
            session_id: The session to flush

        Returns:
            FlushResult; ``flushed`` is False if there was nothing to flush,
            with ``in_progress`` set when another flush holds the buffer

        Raises:
            NotFoundError: If the session does not exist
            EmbeddingError: If embedding failed (content is restored)
            SchemaError: If the embedding does not fit the vector column
        """
        async with session_scope(self.session_factory) as db:
            if not await SessionRepository(db).exists(session_id):
                raise NotFoundError(resource="Session", resource_id=str(session_id))

        return await self._flush(session_id, FlushTrigger.MANUAL, max_attempts=1)

    async def flush_silent(self) -> int:
        """Flush every buffer that has been quiet past the silence threshold.

        Returns:
            Number of buffers flushed
        """
        threshold = timedelta(seconds=self.settings.silence_threshold_seconds)
        session_ids = self.buffers.silent_session_ids(threshold)
        return await self._flush_many(session_ids, FlushTrigger.SILENCE)

    async def flush_all(self) -> int:
        """Flush every non-empty buffer regardless of activity.

        Returns:
            Number of buffers flushed
        """
        session_ids = self.buffers.pending_session_ids()
        return await self._flush_many(session_ids, FlushTrigger.INTERVAL)

    def evict_idle(self) -> int:
        """Drop empty buffers that have been idle past the eviction window.

        Returns:
            Number of buffers removed
        """
        removed = self.buffers.evict_idle(
            timedelta(seconds=self.settings.buffer_idle_seconds)
        )
        if removed:
            logger.info(f"Cleaned up {removed} idle session buffers")
        return removed

    def discard(self, session_id: uuid.UUID) -> bool:
        """Forget a session's buffer, including unflushed lines.

        Returns:
            True if a buffer existed
        """
        discarded = self.buffers.discard(session_id)
        if discarded:
            logger.info("Cleared buffer", extra={"session_id": str(session_id)})
        return discarded

    async def get_last_chunk(self, session_id: uuid.UUID) -> LastChunkRead:
        """Most recent transcript text: the live buffer, else the latest chunk.

        Read-only; never flushes.
        """
        buffer = self.buffers.get(session_id)
        pending = buffer.peek() if buffer is not None else None
        if pending is not None:
            return LastChunkRead(
                source="buffer",
                content=pending.content,
                started_at=pending.started_at,
                ended_at=pending.ended_at,
                language=pending.language,
            )

        async with session_scope(self.session_factory) as db:
            chunk = await self.store_factory(db).latest_chunk(session_id)

        if chunk is None:
            return LastChunkRead(source="none", content="")
        return LastChunkRead(
            source="db",
            content=chunk.content,
            started_at=chunk.started_at,
            ended_at=chunk.ended_at,
            language=chunk.language,
        )

    async def _flush_many(
        self, session_ids: list[uuid.UUID], trigger: FlushTrigger
    ) -> int:
        if not session_ids:
            return 0
        results = await asyncio.gather(
            *(
                self._flush(
                    session_id, trigger, max_attempts=self.settings.flush_max_attempts
                )
                for session_id in session_ids
            )
        )
        return sum(1 for result in results if result.flushed)

    async def _flush(
        self,
        session_id: uuid.UUID,
        trigger: FlushTrigger,
        max_attempts: int,
    ) -> FlushResult:
        """Take a buffer's lines, embed them and persist the chunk.

        Timer triggers log failures and return ``flushed=False``; the
        manual trigger re-raises them. Either way the lines are restored.
        """
        taken = self.buffers.take(session_id)
        if taken is None:
            # Another trigger may hold the snapshot; lines appended since
            # then wait for the next drain
            current = self.buffers.get(session_id)
            in_progress = current is not None and current.is_draining
            return FlushResult(flushed=False, in_progress=in_progress)
        buffer, snapshot = taken

        content = snapshot.content
        if not content:
            buffer.complete(self._clock())
            return FlushResult(flushed=False)

        log_extra = {"session_id": str(session_id), "trigger": trigger.value}
        logger.info(f"Flushing {len(content)} chars ({trigger} flush)", extra=log_extra)

        try:
            chunk = await retry_with_backoff(
                lambda: self._embed_and_store(snapshot),
                max_attempts=max_attempts,
                base_delay=self.settings.flush_base_backoff_seconds,
                retry_on=(EmbeddingError, SQLAlchemyError),
                compensate=lambda _exc: buffer.restore(snapshot),
                sleep=self._sleep,
                label=f"Embedding flush for session {session_id}",
            )
        except NotFoundError:
            # Session was deleted while the flush was in flight
            self.buffers.discard(session_id)
            logger.warning("Session vanished during flush; dropping its buffer", extra=log_extra)
            if trigger is FlushTrigger.MANUAL:
                raise
            return FlushResult(flushed=False)
        except SchemaError:
            logger.critical(
                "Embedding does not fit the vector column; content kept in buffer",
                extra=log_extra,
            )
            if trigger is FlushTrigger.MANUAL:
                raise
            return FlushResult(flushed=False)
        except Exception as e:
            if trigger is FlushTrigger.MANUAL:
                logger.error(f"Error embedding during flush: {e}", extra=log_extra)
                raise
            logger.error(
                f"Failed to flush after {max_attempts} attempts; "
                f"keeping {len(snapshot.lines)} lines in buffer: {e}",
                extra=log_extra,
            )
            return FlushResult(flushed=False)

        buffer.complete(self._clock())
        logger.info(
            f"Embedded {len(content)} chars ({trigger} flush)",
            extra={**log_extra, "chunk_id": str(chunk.id)},
        )
        return FlushResult(flushed=True, content_length=len(content), chunk_id=chunk.id)

    async def _embed_and_store(self, snapshot: BufferSnapshot) -> TranscriptChunk:
        vector = await self.embedding_client.embed(snapshot.content)
        async with session_scope(self.session_factory) as db:
            return await self.store_factory(db).insert(
                TranscriptChunk(
                    session_id=snapshot.session_id,
                    started_at=snapshot.started_at,
                    ended_at=snapshot.ended_at,
                    language=snapshot.language,
                    content=snapshot.content,
                    embedding=vector,
                )
            )
