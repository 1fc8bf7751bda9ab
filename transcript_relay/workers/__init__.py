"""Workers package for background buffer processing."""

from transcript_relay.workers.flush_scheduler import FlushScheduler

__all__ = ["FlushScheduler"]
