"""API v1 endpoints package."""

from transcript_relay.api.v1.endpoints import (
    embeddings,
    ingest,
    realtime,
    search,
    sessions,
)

__all__ = ["embeddings", "ingest", "realtime", "search", "sessions"]
