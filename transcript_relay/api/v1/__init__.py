"""API version 1."""

from transcript_relay.api.v1.router import router

__all__ = ["router"]
