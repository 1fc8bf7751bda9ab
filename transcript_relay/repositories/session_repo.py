"""Repository for session operations."""

import uuid

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from transcript_relay.models.db.session import Session


class SessionRepository:
    """Repository for session database operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, session_model: Session) -> Session:
        """Create a new session record.

        Args:
            session_model: The session record to create

        Returns:
            The created session record
        """
        self.session.add(session_model)
        await self.session.flush()
        await self.session.refresh(session_model)
        return session_model

    async def get_by_id(self, session_id: uuid.UUID) -> Session | None:
        """Get a session by ID.

        Args:
            session_id: The session ID

        Returns:
            The session if found, None otherwise
        """
        result = await self.session.execute(
            select(Session).where(Session.id == session_id)
        )
        return result.scalar_one_or_none()

    async def exists(self, session_id: uuid.UUID) -> bool:
        """Check whether a session exists without loading it."""
        result = await self.session.execute(
            select(Session.id).where(Session.id == session_id)
        )
        return result.scalar_one_or_none() is not None

    async def list_sessions(self, limit: int = 100, offset: int = 0) -> list[Session]:
        """List sessions, most recently updated first.

        Args:
            limit: Maximum number of results
            offset: Number of results to skip

        Returns:
            List of sessions
        """
        result = await self.session.execute(
            select(Session)
            .order_by(Session.updated_at.desc(), Session.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())

    async def increment_transcript_count(self, session_id: uuid.UUID) -> bool:
        """Bump the denormalized chunk count and touch updated_at.

        Done as a single UPDATE so concurrent flushes for one session
        cannot lose an increment.

        Args:
            session_id: The session ID

        Returns:
            True if session was updated, False if not found
        """
        cursor_result = await self.session.execute(
            update(Session)
            .where(Session.id == session_id)
            .values(
                total_transcripts=Session.total_transcripts + 1,
                updated_at=func.now(),
            )
        )
        rowcount = getattr(cursor_result, "rowcount", 0)
        return bool(rowcount and rowcount > 0)

    async def set_transcript_count(self, session_id: uuid.UUID, count: int) -> bool:
        """Overwrite the denormalized chunk count.

        Args:
            session_id: The session ID
            count: The true number of chunks

        Returns:
            True if session was updated, False if not found
        """
        cursor_result = await self.session.execute(
            update(Session)
            .where(Session.id == session_id)
            .values(total_transcripts=count)
        )
        rowcount = getattr(cursor_result, "rowcount", 0)
        return bool(rowcount and rowcount > 0)

    async def delete(self, session_id: uuid.UUID) -> bool:
        """Delete a session. Chunks go with it via ON DELETE CASCADE.

        Args:
            session_id: The session ID

        Returns:
            True if a session was deleted
        """
        cursor_result = await self.session.execute(
            delete(Session).where(Session.id == session_id)
        )
        rowcount = getattr(cursor_result, "rowcount", 0)
        return bool(rowcount and rowcount > 0)
