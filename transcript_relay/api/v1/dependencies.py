"""FastAPI dependencies for API v1."""

from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import Depends, Request

from transcript_relay.core.exceptions import RateLimitError
from transcript_relay.services.embedding_client import EmbeddingClient
from transcript_relay.services.ingestion_pipeline import IngestionPipeline
from transcript_relay.services.rate_limiter import RateLimiter, RateLimitExceeded
from transcript_relay.services.realtime_client import RealtimeClient


def get_pipeline(request: Request) -> IngestionPipeline:
    """Get the process-wide ingestion pipeline."""
    pipeline: IngestionPipeline = request.app.state.pipeline
    return pipeline


def get_embedding_client(request: Request) -> EmbeddingClient:
    """Get the shared embedding client."""
    client: EmbeddingClient = request.app.state.embedding_client
    return client


def get_realtime_client(request: Request) -> RealtimeClient:
    """Get the shared realtime session client."""
    client: RealtimeClient = request.app.state.realtime_client
    return client


def get_rate_limiter(request: Request) -> RateLimiter:
    """Get the shared rate limiter."""
    limiter: RateLimiter = request.app.state.rate_limiter
    return limiter


def get_client_id(request: Request) -> str:
    """Identify the caller for rate limiting, by remote address."""
    return request.client.host if request.client else "unknown"


def rate_limit(key_type: str) -> Callable[..., Awaitable[None]]:
    """Build a dependency that counts a request against the caller's window.

    Args:
        key_type: Bucket name, so each route family has its own counter

    Returns:
        Dependency raising RateLimitError when the window is full
    """

    async def check_rate_limit(
        request: Request,
        limiter: Annotated[RateLimiter, Depends(get_rate_limiter)],
    ) -> None:
        try:
            await limiter.check_and_increment(key_type, get_client_id(request))
        except RateLimitExceeded as e:
            raise RateLimitError(
                detail=str(e),
                retry_after=e.reset_time,
            ) from e

    return check_rate_limit


# Type aliases for dependency injection
Pipeline = Annotated[IngestionPipeline, Depends(get_pipeline)]
Embedder = Annotated[EmbeddingClient, Depends(get_embedding_client)]
Realtime = Annotated[RealtimeClient, Depends(get_realtime_client)]
