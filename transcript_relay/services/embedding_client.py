"""OpenAI embeddings client for generating text embeddings."""

import logging
from dataclasses import dataclass

from openai import (
    APIConnectionError,
    APIError,
    APITimeoutError,
    AsyncOpenAI,
    InternalServerError,
    RateLimitError,
)

from transcript_relay.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

# Failures worth another attempt from the caller's retry loop
RETRYABLE_ERRORS = (
    RateLimitError,
    APITimeoutError,
    APIConnectionError,
    InternalServerError,
)


class EmbeddingError(Exception):
    """Error from embedding API."""

    def __init__(self, message: str, is_retryable: bool = False) -> None:
        super().__init__(message)
        self.is_retryable = is_retryable


@dataclass
class EmbeddingResult:
    """Result from embedding generation."""

    text: str
    embedding: list[float]
    model: str
    token_count: int


class EmbeddingClient:
    """Client for OpenAI embeddings API.

    Makes exactly one request per call. The OpenAI SDK's own retries are
    disabled; callers decide whether a failure is retried.
    """

    DEFAULT_MODEL = "text-embedding-3-large"

    def __init__(
        self,
        settings: Settings | None = None,
        model: str | None = None,
    ) -> None:
        """Initialize embedding client.

        Args:
            settings: Application settings. If None, loads from environment.
            model: OpenAI embedding model to use. Defaults to the configured model.
        """
        self.settings = settings or get_settings()
        self.model = model or self.settings.embedding_model or self.DEFAULT_MODEL
        self._client: AsyncOpenAI | None = None

    @property
    def client(self) -> AsyncOpenAI:
        """Get or create OpenAI client (lazy initialization)."""
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.settings.openai_api_key,
                timeout=self.settings.embedding_timeout_seconds,
                max_retries=0,
            )
        return self._client

    async def close(self) -> None:
        """Close the client."""
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def embed(self, text: str) -> list[float]:
        """Generate the embedding vector for a text.

        Args:
            text: Non-empty text to embed

        Returns:
            The embedding vector

        Raises:
            EmbeddingError: If the request fails or the response is malformed
        """
        result = await self.embed_text(text)
        return result.embedding

    async def embed_text(self, text: str) -> EmbeddingResult:
        """Generate embedding for a single text.

        Args:
            text: Non-empty text to embed

        Returns:
            EmbeddingResult with vector and metadata

        Raises:
            ValueError: If text is empty
            EmbeddingError: If the request fails or the response is malformed
        """
        if not text or not text.strip():
            raise ValueError("Cannot embed empty text")

        try:
            response = await self.client.embeddings.create(
                input=text,
                model=self.model,
            )
        except RETRYABLE_ERRORS as e:
            logger.warning(f"Transient embedding failure ({type(e).__name__}): {e}")
            raise EmbeddingError(
                f"Embedding request failed: {e}", is_retryable=True
            ) from e
        except APIError as e:
            raise EmbeddingError(
                f"Embedding request rejected: {e}", is_retryable=False
            ) from e

        if not response.data or not response.data[0].embedding:
            raise EmbeddingError("Embedding response contained no vector")

        usage = getattr(response, "usage", None)
        return EmbeddingResult(
            text=text,
            embedding=list(response.data[0].embedding),
            model=response.model,
            token_count=usage.total_tokens if usage else self.get_token_estimate(text),
        )

    def get_token_estimate(self, text: str) -> int:
        """Estimate token count for text.

        Uses simple heuristic of ~4 characters per token.

        Args:
            text: Text to estimate

        Returns:
            Estimated token count
        """
        return len(text) // 4 + 1
