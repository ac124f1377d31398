"""
Batch scheduler: slices the work queue and drives each batch through the
semaphore, context pool and single-item downloader.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from ..models.config_models import DownloaderConfig
from ..models.download_models import BatchJob, DownloadResult, WorkItem
from .context_pool import ContextPool
from .downloader import SingleItemDownloader
from .semaphore import TaskSemaphore
from .stats_tracker import StatsTracker

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]
ResultCallback = Callable[[int, DownloadResult], None]


class BatchScheduler:
    """Runs work items batch by batch with bounded concurrency."""

    def __init__(
        self,
        config: DownloaderConfig,
        pool: ContextPool,
        downloader: SingleItemDownloader,
        stats: Optional[StatsTracker] = None,
        sleep: Optional[Sleep] = None,
        on_result: Optional[ResultCallback] = None,
    ):
        """
        Initialize batch scheduler.

        Args:
            config: Downloader configuration (concurrency and batching)
            pool: Context pool to lease contexts from
            downloader: Per-item downloader
            stats: Counters updated as items finish
            sleep: Inter-batch sleep, defaults to ``asyncio.sleep``
            on_result: Called with ``(index, result)`` as each item finishes
        """
        self.config = config
        self.pool = pool
        self.downloader = downloader
        self.stats = stats if stats is not None else StatsTracker()
        self.max_concurrency = config.download.max_concurrency
        self.enable_batching = config.download.enable_batching
        self.batch_size = config.download.effective_batch_size
        self.delay_between_batches = config.download.delay_between_batches_ms / 1000
        self.on_result = on_result
        self._sleep: Sleep = sleep or asyncio.sleep
        self.peak_concurrency = 0

    def partition(self, items: Sequence[WorkItem]) -> List[BatchJob]:
        """Split ``items`` into consecutive batches, or one batch when batching is off."""
        if not items:
            return []
        if not self.enable_batching:
            return [BatchJob(index=0, start=0, items=list(items))]

        return [
            BatchJob(index=n, start=start, items=list(items[start : start + self.batch_size]))
            for n, start in enumerate(range(0, len(items), self.batch_size))
        ]

    async def run(self, items: Sequence[WorkItem]) -> List[DownloadResult]:
        """
        Process every item and return results index-aligned with ``items``.
        """
        jobs = self.partition(items)
        results: List[DownloadResult] = []

        for job in jobs:
            if len(jobs) > 1:
                logger.info(
                    f"Processing batch {job.index + 1}/{len(jobs)} "
                    f"({len(job)} items, {job.start + 1}-{job.end})"
                )

            results.extend(await self.process_batch(job, total=len(items)))

            is_last = job.index == len(jobs) - 1
            if not is_last and self.delay_between_batches > 0:
                logger.debug(
                    f"Waiting {self.delay_between_batches:.1f}s before next batch"
                )
                await self._sleep(self.delay_between_batches)

        return results

    async def process_batch(
        self, job: BatchJob, total: Optional[int] = None
    ) -> List[DownloadResult]:
        """
        Run one batch through a fresh semaphore and join on every item.

        Returns:
            Results in the batch's item order
        """
        if not job.items:
            return []

        semaphore = TaskSemaphore(min(len(job), self.max_concurrency))
        total = total or job.end

        def gated(offset: int, item: WorkItem) -> Awaitable[DownloadResult]:
            index = job.start + offset
            return semaphore.acquire(lambda: self._run_item(index, total, item))

        results = await asyncio.gather(
            *(gated(offset, item) for offset, item in enumerate(job.items))
        )

        self.peak_concurrency = max(self.peak_concurrency, semaphore.peak_count)
        return list(results)

    async def _run_item(
        self, index: int, total: int, item: WorkItem
    ) -> DownloadResult:
        rc = None
        try:
            rc = await self.pool.get_context()
            logger.info(f"[{index + 1}/{total}] Processing {item.id}")
            result = await self.downloader.download_with_retry(item, rc)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"[{index + 1}/{total}] Failed {item.id}: {e}")
            result = DownloadResult.failure(item, str(e) or type(e).__name__)
        finally:
            if rc is not None:
                try:
                    await self.pool.release_context(rc)
                except Exception as e:
                    logger.warning(f"Failed to release context for {item.id}: {e}")

        self._record(index, total, result)
        return result

    def _record(self, index: int, total: int, result: DownloadResult) -> None:
        self.stats.record(result)

        prefix = f"[{index + 1}/{total}]"
        if not result.success:
            logger.warning(f"{prefix} Failed {result.work_item_id}: {result.error}")
        elif result.skipped:
            logger.info(f"{prefix} Skipped {result.work_item_id} (already exists)")
        elif result.dry_run:
            logger.info(f"{prefix} Would download {result.work_item_id} (dry run)")
        else:
            logger.info(
                f"{prefix} Downloaded {result.filename} ({result.size_bytes or 0} bytes)"
            )

        if self.on_result is not None:
            try:
                self.on_result(index, result)
            except Exception as e:
                logger.warning(f"{prefix} Result callback failed for {result.work_item_id}: {e}")

