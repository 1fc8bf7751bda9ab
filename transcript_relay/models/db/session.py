"""Session database model."""

from typing import TYPE_CHECKING

from sqlalchemy import Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from transcript_relay.models.db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from transcript_relay.models.db.transcript_chunk import TranscriptChunk

SESSION_NAME_MAX_LENGTH = 100


class Session(Base, TimestampMixin):
    """A named container for one continuous transcription interaction.

    ``total_transcripts`` is a denormalized count of the session's
    transcript chunks. It is bumped on every committed chunk and can be
    recalculated from the chunk table after out-of-band deletions.
    """

    __tablename__ = "sessions"

    name: Mapped[str] = mapped_column(
        String(SESSION_NAME_MAX_LENGTH),
        nullable=False,
    )
    total_transcripts: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
    )

    # Relationships
    chunks: Mapped[list["TranscriptChunk"]] = relationship(
        back_populates="session",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="raise",
    )

    __table_args__ = (Index("ix_sessions_updated_at", "updated_at"),)
