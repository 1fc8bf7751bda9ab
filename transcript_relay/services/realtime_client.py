"""Client for minting short-lived realtime speech session tokens."""

import logging
from typing import Any

import httpx

from transcript_relay.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


class RealtimeTokenError(Exception):
    """Error from the realtime sessions API."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RealtimeClient:
    """Creates realtime sessions so the browser can connect directly.

    The browser never sees the server's API key; it receives an ephemeral
    client secret scoped to one realtime session.
    """

    BASE_URL = "https://api.openai.com/v1"

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize realtime client.

        Args:
            settings: Application settings. If None, loads from environment.
        """
        self.settings = settings or get_settings()
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create HTTP client (lazy initialization)."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.BASE_URL,
                headers={
                    "Authorization": f"Bearer {self.settings.openai_api_key}",
                    "Content-Type": "application/json",
                },
                timeout=15.0,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def build_session_request(self, language: str = "en") -> dict[str, Any]:
        """Body for a realtime session with server VAD and input transcription.

        Args:
            language: Language the transcription model is pinned to
        """
        return {
            "model": self.settings.realtime_model,
            "voice": self.settings.realtime_voice,
            "turn_detection": {"type": "server_vad"},
            "input_audio_transcription": {
                "model": self.settings.realtime_transcription_model,
                "language": language,
            },
        }

    async def create_session_token(self, language: str = "en") -> dict[str, Any]:
        """Create a realtime session and return the upstream response as-is.

        Args:
            language: Language code (e.g., "en", "es")

        Returns:
            The realtime session object, including its ephemeral client secret

        Raises:
            RealtimeTokenError: If the upstream call fails
        """
        try:
            response = await self.client.post(
                "/realtime/sessions",
                json=self.build_session_request(language),
            )
        except httpx.HTTPError as e:
            raise RealtimeTokenError(f"Realtime session request failed: {e}") from e

        if response.status_code != 200:
            logger.error(f"Realtime API error {response.status_code}: {response.text}")
            raise RealtimeTokenError(
                "Failed to create realtime session",
                status_code=response.status_code,
            )

        data: dict[str, Any] = response.json()
        return data
