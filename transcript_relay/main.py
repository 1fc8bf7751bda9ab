"""FastAPI application entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from transcript_relay.api.v1 import router as v1_router
from transcript_relay.api.v1.endpoints import ingest
from transcript_relay.core.config import Settings, get_settings
from transcript_relay.core.database import (
    close_database,
    get_db_session,
    get_session_factory,
    init_database,
)
from transcript_relay.core.exceptions import setup_exception_handlers
from transcript_relay.core.health import HealthCheckService, HealthStatus
from transcript_relay.core.logging import setup_logging, setup_request_logging
from transcript_relay.models.db.transcript_chunk import EMBEDDING_DIMENSION
from transcript_relay.services.embedding_client import EmbeddingClient
from transcript_relay.services.ingestion_pipeline import IngestionPipeline
from transcript_relay.services.rate_limiter import RateLimiter
from transcript_relay.services.realtime_client import RealtimeClient
from transcript_relay.workers.flush_scheduler import FlushScheduler

logger = logging.getLogger("transcript_relay")


def check_embedding_dimension(settings: Settings) -> bool:
    """Compare the configured embedding size with the vector column.

    A mismatch does not stop startup: ingestion keeps buffering, but every
    flush will fail until the model or the schema is changed.
    """
    if settings.embedding_dimension != EMBEDDING_DIMENSION:
        logger.critical(
            f"EMBEDDING_DIMENSION={settings.embedding_dimension} does not match "
            f"the vector column ({EMBEDDING_DIMENSION}); flushes will fail. "
            "Migrate the transcript_chunks.embedding column or change "
            "EMBEDDING_MODEL.",
        )
        return False
    return True


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown."""
    # Startup
    settings = get_settings()
    init_database(settings)
    check_embedding_dimension(settings)

    app.state.embedding_client = EmbeddingClient(settings=settings)
    app.state.realtime_client = RealtimeClient(settings=settings)
    app.state.rate_limiter = RateLimiter(settings=settings)
    app.state.pipeline = IngestionPipeline(
        session_factory=get_session_factory(),
        embedding_client=app.state.embedding_client,
        settings=settings,
    )
    scheduler = FlushScheduler(app.state.pipeline, settings=settings)
    scheduler.start()
    logger.info("Application started", extra={"env": settings.app_env})
    yield
    # Shutdown
    logger.info("Application shutting down")
    await scheduler.stop()
    if app.state.pipeline.buffers.pending_session_ids():
        logger.warning("Shutting down with unflushed transcript buffers")
    await app.state.realtime_client.close()
    await app.state.embedding_client.close()
    await close_database()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # Setup structured logging first
    setup_logging(settings)

    app = FastAPI(
        title="Transcript Relay API",
        description="Live transcript buffering, embedding and semantic search",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Setup request logging middleware (must be added before CORS)
    setup_request_logging(app)

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Setup exception handlers
    setup_exception_handlers(app)

    # Health check endpoints
    @app.get("/health", tags=["health"])
    async def health_check() -> dict[str, str]:
        """Simple health check endpoint for basic liveness probes."""
        return {"status": "healthy"}

    @app.get("/health/live", tags=["health"])
    async def liveness_check() -> dict[str, str]:
        """Kubernetes liveness probe endpoint.

        Returns 200 if the application is running.
        """
        return {"status": "healthy"}

    @app.get("/health/ready", tags=["health"])
    async def readiness_check(
        request: Request,
        db_session: AsyncSession = Depends(get_db_session),
    ) -> Response:
        """Kubernetes readiness probe endpoint.

        Returns 200 if all dependencies are healthy,
        503 if any critical dependency is unhealthy.
        """
        health_service = HealthCheckService(
            db_session=db_session,
            settings=settings,
            pipeline=getattr(request.app.state, "pipeline", None),
        )
        result = await health_service.check_readiness()

        status_code = 200 if result.status != HealthStatus.UNHEALTHY else 503
        return JSONResponse(content=result.to_dict(), status_code=status_code)

    @app.get("/health/detailed", tags=["health"])
    async def detailed_health_check(
        request: Request,
        db_session: AsyncSession = Depends(get_db_session),
    ) -> dict[str, Any]:
        """Detailed health check with all component statuses.

        Useful for debugging and monitoring dashboards.
        """
        health_service = HealthCheckService(
            db_session=db_session,
            settings=settings,
            pipeline=getattr(request.app.state, "pipeline", None),
        )
        result = await health_service.check_all()
        return result.to_dict()

    # Include API routers
    app.include_router(ingest.router, tags=["ingest"])
    app.include_router(v1_router)

    return app


# Create application instance
app = create_app()


def run() -> None:
    """Run the application with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "transcript_relay.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level=settings.app_log_level.lower(),
    )


if __name__ == "__main__":
    run()
