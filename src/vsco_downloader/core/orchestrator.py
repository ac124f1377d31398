"""
Top-level entry point for concurrent downloads: owns the context pool lifecycle
and hands work to the batch scheduler.
"""

import logging
from typing import Any, List, Optional, Sequence

from ..models.config_models import DownloaderConfig
from ..models.download_models import DownloadResult, WorkItem
from .batch_scheduler import BatchScheduler, ResultCallback, Sleep
from .context_pool import ContextPool
from .downloader import Extractor, SingleItemDownloader
from .file_storage import FileSystemStorage
from .stats_tracker import StatsTracker

logger = logging.getLogger(__name__)


class OrchestratorError(Exception):
    """Raised when the orchestrator is used after cleanup."""

    pass


class ConcurrentDownloadOrchestrator:
    """
    Downloads work items concurrently through a pool of browser contexts.

    ``cleanup`` must be called once when the orchestrator is no longer
    needed; using it as an async context manager does this automatically.
    """

    def __init__(
        self,
        config: DownloaderConfig,
        engine: Any,
        storage: FileSystemStorage,
        extractor: Extractor,
        stats: Optional[StatsTracker] = None,
        sleep: Optional[Sleep] = None,
        on_result: Optional[ResultCallback] = None,
        pool: Optional[ContextPool] = None,
    ):
        """
        Initialize orchestrator.

        Args:
            config: Downloader configuration
            engine: Browser engine backing the context pool
            storage: Persistence layer for downloaded files
            extractor: Extraction strategy ``(page, source_url) -> ExtractedMetadata``
            stats: Counters shared with the caller
            sleep: Sleep used for backoff and inter-batch delays
            on_result: Per-item completion callback
            pool: Pre-built context pool, created from ``engine`` if omitted
        """
        self.config = config
        self.stats = stats if stats is not None else StatsTracker()
        self.pool = pool or ContextPool(config, engine)
        self.downloader = SingleItemDownloader(config, storage, extractor, sleep=sleep)
        self.scheduler = BatchScheduler(
            config,
            self.pool,
            self.downloader,
            stats=self.stats,
            sleep=sleep,
            on_result=on_result,
        )
        self._closed = False

    async def __aenter__(self) -> "ConcurrentDownloadOrchestrator":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.cleanup()

    async def initialize(self) -> None:
        """
        Launch the browser and prepare the context pool.

        Raises:
            OrchestratorError: If called after ``cleanup``
            ContextPoolError: If the browser cannot be launched
        """
        if self._closed:
            raise OrchestratorError("Orchestrator has been cleaned up")
        await self.pool.initialize()

    async def download_concurrently(
        self, items: Sequence[WorkItem]
    ) -> List[DownloadResult]:
        """
        Download every item and return one result per item, in input order.

        Item failures are returned as failed results. Only pool initialization
        errors propagate.
        """
        if not items:
            return []

        await self.initialize()

        download = self.config.download
        if download.enable_batching:
            logger.info(
                f"Downloading {len(items)} items in batches of "
                f"{download.effective_batch_size} (concurrency {download.max_concurrency})"
            )
        else:
            logger.info(
                f"Downloading {len(items)} items without batching "
                f"(concurrency {download.max_concurrency})"
            )

        results = await self.scheduler.run(items)

        succeeded = sum(1 for r in results if r.success and not r.skipped)
        skipped = sum(1 for r in results if r.skipped)
        logger.info(
            f"Finished {len(results)} items: {succeeded} downloaded, "
            f"{skipped} skipped, {len(results) - succeeded - skipped} failed"
        )
        return results

    def pool_size(self) -> int:
        return self.pool.pool_size()

    def available_count(self) -> int:
        return self.pool.available_count()

    async def cleanup(self) -> None:
        """Close every browser context and the browser itself."""
        self._closed = True
        await self.pool.cleanup()
