"""Background loops that flush and clean up transcript buffers."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from transcript_relay.core.config import Settings, get_settings
from transcript_relay.services.ingestion_pipeline import IngestionPipeline

logger = logging.getLogger(__name__)


class FlushScheduler:
    """Runs the silence sweep, interval sweep and idle-buffer cleanup.

    Each sweep runs in its own asyncio task on a fixed period. A failing
    sweep is logged and the loop carries on with the next tick.
    """

    def __init__(
        self,
        pipeline: IngestionPipeline,
        settings: Settings | None = None,
    ) -> None:
        """Initialize the scheduler.

        Args:
            pipeline: Pipeline whose buffers are flushed
            settings: Application settings. If None, loads from environment.
        """
        self.pipeline = pipeline
        self.settings = settings or get_settings()
        self._tasks: list[asyncio.Task[None]] = []

    @property
    def running(self) -> bool:
        """Whether any sweep task is alive."""
        return any(not task.done() for task in self._tasks)

    def start(self) -> None:
        """Start the sweep tasks on the running event loop."""
        if self.running:
            return

        self._tasks = [
            asyncio.create_task(
                self._every(self.settings.silence_check_seconds, self.run_silence_sweep),
                name="silence-flush",
            ),
            asyncio.create_task(
                self._every(self.settings.buffer_cleanup_seconds, self.run_cleanup),
                name="buffer-cleanup",
            ),
        ]
        if self.settings.interval_flush_enabled:
            self._tasks.append(
                asyncio.create_task(
                    self._every(
                        self.settings.flush_interval_minutes * 60,
                        self.run_interval_sweep,
                    ),
                    name="interval-flush",
                )
            )

        logger.info(
            "Flush scheduler started",
            extra={
                "silence_threshold_seconds": self.settings.silence_threshold_seconds,
                "flush_interval_minutes": self.settings.flush_interval_minutes,
                "strategy": self.settings.embed_strategy,
            },
        )

    async def stop(self) -> None:
        """Cancel the sweep tasks and wait for them to finish.

        A flush interrupted mid-flight restores its lines to the buffer.
        """
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Flush scheduler stopped")

    async def run_silence_sweep(self) -> int:
        """Flush buffers that have gone quiet."""
        flushed = await self.pipeline.flush_silent()
        if flushed:
            logger.info(f"Silence sweep flushed {flushed} buffers")
        return flushed

    async def run_interval_sweep(self) -> int:
        """Flush every non-empty buffer."""
        flushed = await self.pipeline.flush_all()
        if flushed:
            logger.info(f"Interval sweep flushed {flushed} buffers")
        return flushed

    async def run_cleanup(self) -> int:
        """Evict idle empty buffers."""
        return self.pipeline.evict_idle()

    async def _every(
        self,
        period_seconds: float,
        job: Callable[[], Awaitable[int]],
    ) -> None:
        while True:
            await asyncio.sleep(period_seconds)
            try:
                await job()
            except Exception:
                logger.exception(f"Scheduled job {job.__name__} failed")
