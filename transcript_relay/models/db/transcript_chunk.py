"""Transcript chunk database model storing embedded transcript windows."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from pgvector.sqlalchemy import Vector
from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from transcript_relay.models.db.base import Base, TimestampMixin

if TYPE_CHECKING:
    from transcript_relay.models.db.session import Session

# OpenAI text-embedding-3-large produces 3072-dimensional vectors
EMBEDDING_DIMENSION = 3072


class TranscriptChunk(Base, TimestampMixin):
    """One flushed window of transcript text with its embedding.

    Rows are immutable: they are created by a successful buffer flush and
    only ever deleted (individually or with their session).
    """

    __tablename__ = "transcript_chunks"

    session_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    ended_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )
    language: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default="en",
    )
    content: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    # No ANN index: pgvector's ivfflat/hnsw cap out at 2000 dimensions,
    # so similarity queries run as an exact scan.
    embedding: Mapped[list[float]] = mapped_column(
        Vector(EMBEDDING_DIMENSION),  # type: ignore[no-untyped-call]
        nullable=False,
    )

    # Relationships
    session: Mapped["Session"] = relationship(
        back_populates="chunks",
        lazy="raise",
    )

    __table_args__ = (
        CheckConstraint("length(content) > 0", name="ck_transcript_chunks_content"),
        Index("ix_transcript_chunks_session_ended", "session_id", "ended_at"),
    )
