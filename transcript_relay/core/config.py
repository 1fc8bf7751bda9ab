"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, PostgresDsn, RedisDsn
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: PostgresDsn = Field(
        default=...,
        description="PostgreSQL connection URL with asyncpg driver",
    )

    # Redis
    redis_url: RedisDsn = Field(
        default=...,
        description="Redis connection URL (rate limit counters)",
    )

    # OpenAI (Embeddings + Realtime)
    openai_api_key: str = Field(
        default=...,
        description="OpenAI API key for embeddings and realtime tokens",
    )
    embedding_model: str = Field(
        default="text-embedding-3-large",
        description="OpenAI embedding model name",
    )
    embedding_dimension: int = Field(
        default=3072,
        ge=1,
        description="Length of the vectors produced by the embedding model",
    )
    embedding_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for a single embedding request",
    )

    # Realtime speech API
    realtime_model: str = Field(
        default="gpt-4o-realtime-preview-2024-12-17",
        description="Realtime model the browser connects to",
    )
    realtime_voice: str = Field(
        default="marin",
        description="Voice used by the realtime assistant",
    )
    realtime_transcription_model: str = Field(
        default="whisper-1",
        description="Model used for input audio transcription",
    )

    # Transcript buffering
    embed_strategy: Literal["interval", "silence_only"] = Field(
        default="interval",
        description="'interval' runs the periodic fallback flush in addition to silence flushes",
    )
    flush_interval_minutes: int = Field(
        default=3,
        ge=1,
        description="Period of the unconditional interval flush",
    )
    silence_threshold_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Idle time after which a non-empty buffer is flushed",
    )
    silence_check_seconds: float = Field(
        default=10.0,
        gt=0,
        description="How often buffers are checked for silence",
    )
    buffer_idle_seconds: float = Field(
        default=3600.0,
        gt=0,
        description="Empty buffers idle for longer than this are evicted",
    )
    buffer_cleanup_seconds: float = Field(
        default=3600.0,
        gt=0,
        description="How often idle buffers are evicted",
    )
    flush_max_attempts: int = Field(
        default=3,
        ge=1,
        description="Embedding attempts per timer-triggered flush",
    )
    flush_base_backoff_seconds: float = Field(
        default=2.0,
        ge=0,
        description="Delay before the first flush retry; doubles on each retry",
    )

    # Application
    app_env: Literal["development", "staging", "production", "test"] = Field(
        default="development",
        description="Application environment",
    )
    app_debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    app_log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # CORS
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins",
    )

    # Rate limits
    rate_limit_per_minute: int = Field(
        default=100,
        ge=1,
        description="Requests per minute per client on rate limited endpoints",
    )

    # Search
    search_max_query_length: int = Field(
        default=1000,
        ge=1,
        description="Maximum length of a search query",
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins into a list."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def interval_flush_enabled(self) -> bool:
        """Check if the periodic interval flush should run."""
        return self.embed_strategy == "interval"

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.app_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance (singleton pattern)."""
    return Settings()
