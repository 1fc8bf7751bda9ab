"""Health check service for monitoring application dependencies."""

import logging
import time
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from redis import Redis
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from transcript_relay.core.config import Settings, get_settings
from transcript_relay.repositories.vector_search_repo import VectorSearchRepository
from transcript_relay.services.ingestion_pipeline import IngestionPipeline

logger = logging.getLogger(__name__)

# Components whose failure makes the service unable to take traffic
CRITICAL_COMPONENTS = frozenset({"database"})


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


@dataclass
class ComponentHealth:
    """Health status for a single component."""

    name: str
    status: HealthStatus
    message: str | None = None
    latency_ms: float | None = None


@dataclass
class HealthCheckResult:
    """Overall health check result."""

    status: HealthStatus
    components: list[ComponentHealth]
    version: str = "0.1.0"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON response."""
        return {
            "status": self.status.value,
            "version": self.version,
            "components": {
                c.name: {
                    "status": c.status.value,
                    "message": c.message,
                    "latency_ms": c.latency_ms,
                }
                for c in self.components
            },
        }


class HealthCheckService:
    """Service for checking health of application dependencies."""

    def __init__(
        self,
        db_session: AsyncSession | None = None,
        settings: Settings | None = None,
        pipeline: IngestionPipeline | None = None,
    ) -> None:
        """Initialize health check service.

        Args:
            db_session: Database session for DB health checks
            settings: Application settings
            pipeline: Ingestion pipeline whose buffers are reported
        """
        self.db_session = db_session
        self.settings = settings or get_settings()
        self.pipeline = pipeline

    async def check_database(self) -> ComponentHealth:
        """Check database connectivity.

        Returns:
            ComponentHealth for database
        """
        if self.db_session is None:
            return ComponentHealth(
                name="database",
                status=HealthStatus.UNHEALTHY,
                message="No database session available",
            )

        start = time.perf_counter()
        try:
            result = await self.db_session.execute(text("SELECT 1"))
            result.scalar()
            latency = (time.perf_counter() - start) * 1000

            return ComponentHealth(
                name="database",
                status=HealthStatus.HEALTHY,
                message="Connected",
                latency_ms=round(latency, 2),
            )
        except Exception as e:
            logger.warning(f"Database health check failed: {e}")
            return ComponentHealth(
                name="database",
                status=HealthStatus.UNHEALTHY,
                message=str(e),
            )

    async def check_vector_extension(self) -> ComponentHealth:
        """Check that the pgvector extension is installed.

        Without it ingestion still buffers but search returns nothing.

        Returns:
            ComponentHealth for the vector extension
        """
        if self.db_session is None:
            return ComponentHealth(
                name="vector",
                status=HealthStatus.UNHEALTHY,
                message="No database session available",
            )

        try:
            installed = await VectorSearchRepository(
                self.db_session
            ).vector_extension_installed()
        except Exception as e:
            logger.warning(f"Vector extension health check failed: {e}")
            return ComponentHealth(
                name="vector",
                status=HealthStatus.UNHEALTHY,
                message=str(e),
            )

        if not installed:
            return ComponentHealth(
                name="vector",
                status=HealthStatus.UNHEALTHY,
                message="pgvector extension is not installed",
            )
        return ComponentHealth(
            name="vector",
            status=HealthStatus.HEALTHY,
            message="Installed",
        )

    async def check_redis(self) -> ComponentHealth:
        """Check Redis connectivity.

        Returns:
            ComponentHealth for Redis
        """
        start = time.perf_counter()
        try:
            redis_client: Redis = Redis.from_url(  # type: ignore[type-arg]
                str(self.settings.redis_url),
                socket_timeout=5,
            )
            redis_client.ping()
            latency = (time.perf_counter() - start) * 1000
            redis_client.close()

            return ComponentHealth(
                name="redis",
                status=HealthStatus.HEALTHY,
                message="Connected",
                latency_ms=round(latency, 2),
            )
        except Exception as e:
            logger.warning(f"Redis health check failed: {e}")
            return ComponentHealth(
                name="redis",
                status=HealthStatus.UNHEALTHY,
                message=str(e),
            )

    def check_buffers(self) -> ComponentHealth:
        """Report how many session buffers are held in memory."""
        if self.pipeline is None:
            return ComponentHealth(
                name="buffers",
                status=HealthStatus.DEGRADED,
                message="Ingestion pipeline not started",
            )
        return ComponentHealth(
            name="buffers",
            status=HealthStatus.HEALTHY,
            message=f"{self.pipeline.active_buffers} active buffers",
        )

    async def check_all(self) -> HealthCheckResult:
        """Check all dependencies and return overall health.

        Returns:
            HealthCheckResult with all component statuses
        """
        components = [
            await self.check_database(),
            await self.check_vector_extension(),
            await self.check_redis(),
            self.check_buffers(),
        ]

        if all(c.status == HealthStatus.HEALTHY for c in components):
            overall_status = HealthStatus.HEALTHY
        elif any(
            c.status == HealthStatus.UNHEALTHY and c.name in CRITICAL_COMPONENTS
            for c in components
        ):
            overall_status = HealthStatus.UNHEALTHY
        else:
            overall_status = HealthStatus.DEGRADED

        return HealthCheckResult(
            status=overall_status,
            components=components,
        )

    async def check_readiness(self) -> HealthCheckResult:
        """Check if application is ready to serve traffic.

        This is the same as check_all - verifies all dependencies.

        Returns:
            HealthCheckResult
        """
        return await self.check_all()
