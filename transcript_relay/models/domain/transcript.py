"""Pydantic schemas for transcript ingestion, chunks and search."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field


class IngestRequest(BaseModel):
    """A transcript fragment posted by the browser client.

    Presence of ``session_id`` and ``text`` is checked by the pipeline so
    both failures surface as the same validation problem.
    """

    session_id: UUID | None = Field(None, description="Target session")
    language: str | None = Field("en", max_length=16, description="Language tag")
    text: str | None = Field(None, description="Transcript fragment")


class IngestResponse(BaseModel):
    """Acknowledgement for an ingested fragment."""

    ok: bool = True


class FlushResponse(BaseModel):
    """Outcome of a manual flush."""

    session_id: UUID
    flushed: bool
    content_length: int | None = Field(
        None, ge=0, description="Characters embedded, when something was flushed"
    )
    in_progress: bool = Field(
        False, description="Another flush held the buffer, so nothing was taken"
    )
    message: str


class LastChunkRead(BaseModel):
    """Most recent transcript text for a session, buffered or persisted."""

    source: Literal["buffer", "db", "none"]
    content: str = ""
    started_at: datetime | None = None
    ended_at: datetime | None = None
    language: str | None = None


class TranscriptChunkRead(BaseModel):
    """Schema for reading a persisted transcript chunk (without its vector)."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    session_id: UUID
    started_at: datetime
    ended_at: datetime
    language: str
    content: str

    @computed_field  # type: ignore[prop-decorator]
    @property
    def content_length(self) -> int:
        """Number of characters in the chunk."""
        return len(self.content)


class ChunkDeleteResponse(BaseModel):
    """Response after deleting a single transcript chunk."""

    chunk_id: UUID
    session_id: UUID
    new_transcript_count: int = Field(..., ge=0)
    message: str = "Embedding deleted successfully"


class SearchRequest(BaseModel):
    """Semantic search over transcript chunks."""

    query: str = Field(..., min_length=1, description="Search query text")
    limit: int = Field(5, ge=1, le=100, description="Number of results to return")
    session_id: UUID | None = Field(None, description="Restrict search to one session")


class SearchHit(BaseModel):
    """A transcript chunk matching a search query."""

    chunk_id: UUID
    session_id: UUID
    content: str
    distance: float = Field(..., ge=0, description="Cosine distance, lower is closer")


class SearchResponse(BaseModel):
    """Response for a semantic search."""

    results: list[SearchHit]
    query: str
    total_results: int = Field(..., ge=0)
