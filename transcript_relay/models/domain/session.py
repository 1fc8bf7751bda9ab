"""Session Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from transcript_relay.models.db.session import SESSION_NAME_MAX_LENGTH


class SessionCreate(BaseModel):
    """Schema for creating a new session."""

    name: str = Field(
        ...,
        max_length=SESSION_NAME_MAX_LENGTH,
        description="Display name of the session",
    )

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        """Strip the name and reject whitespace-only values."""
        value = value.strip()
        if not value:
            raise ValueError("Session name is required")
        return value


class SessionRead(BaseModel):
    """Schema for reading session data."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(..., description="Session unique identifier")
    name: str = Field(..., description="Display name of the session")
    total_transcripts: int = Field(
        ..., ge=0, description="Number of persisted transcript chunks"
    )
    created_at: datetime = Field(..., description="When the session was created")
    updated_at: datetime = Field(..., description="When a chunk was last committed")


class SessionDeleteResponse(BaseModel):
    """Response after deleting a session."""

    session_id: UUID
    session_name: str
    transcripts_deleted: int = Field(..., ge=0)
    message: str = "Session deleted successfully"


class SessionRecountResponse(BaseModel):
    """Response after recalculating a session's transcript count."""

    session_id: UUID
    total_transcripts: int = Field(..., ge=0)
