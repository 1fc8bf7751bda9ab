"""Core module containing configuration and shared utilities."""

from transcript_relay.core.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
