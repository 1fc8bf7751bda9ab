"""Database models package."""

from transcript_relay.models.db.base import Base, TimestampMixin
from transcript_relay.models.db.session import Session
from transcript_relay.models.db.transcript_chunk import EMBEDDING_DIMENSION, TranscriptChunk

__all__ = [
    "Base",
    "EMBEDDING_DIMENSION",
    "Session",
    "TimestampMixin",
    "TranscriptChunk",
]
