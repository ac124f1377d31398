"""
Single-item download with skip detection, dry-run and exponential-backoff retry.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from ..models.config_models import DownloaderConfig
from ..models.download_models import (
    DownloadResult,
    EmptyResourceError,
    ExtractedMetadata,
    ExtractionError,
    ResourceFetchError,
    WorkItem,
)
from ..models.pool_models import ResourceContext
from .file_storage import FileSystemStorage, StorageError

logger = logging.getLogger(__name__)

Extractor = Callable[[Any, str], Awaitable[ExtractedMetadata]]
Sleep = Callable[[float], Awaitable[Any]]


class SingleItemDownloader:
    """Fetches one work item through a leased browser context."""

    def __init__(
        self,
        config: DownloaderConfig,
        storage: FileSystemStorage,
        extractor: Extractor,
        sleep: Optional[Sleep] = None,
    ):
        """
        Initialize downloader.

        Args:
            config: Downloader configuration (retries, timeout, dry-run)
            storage: Persistence layer with ``exists`` and ``save``
            extractor: Coroutine ``(page, source_url) -> ExtractedMetadata``
            sleep: Backoff sleep, defaults to ``asyncio.sleep``
        """
        self.config = config
        self.storage = storage
        self.extractor = extractor
        self.retries = config.download.retries
        self.timeout_ms = config.download.timeout_ms
        self.dry_run = config.download.dry_run
        self._sleep: Sleep = sleep or asyncio.sleep

    @staticmethod
    def backoff_delay(attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        return float(2**attempt)

    async def download_with_retry(
        self, item: WorkItem, rc: ResourceContext
    ) -> DownloadResult:
        """
        Run ``attempt`` up to ``retries`` times, backing off between failures.

        Never raises: the last error is folded into a failed result.
        """
        # An id that cannot map into storage will never succeed
        try:
            self.storage.path_for(item.id, self.storage.extension_for(None))
        except StorageError as e:
            logger.error(f"Rejecting {item.id}: {e}")
            return DownloadResult.failure(item, str(e))

        last_error: Optional[BaseException] = None

        for attempt in range(1, self.retries + 1):
            try:
                logger.debug(f"Attempt {attempt}/{self.retries} for {item.id}")
                return await self.attempt(item, rc)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                last_error = e
                if attempt < self.retries:
                    delay = self.backoff_delay(attempt)
                    logger.warning(
                        f"Attempt {attempt} failed for {item.id}: {e}; "
                        f"retrying in {delay:.0f}s"
                    )
                    await self._sleep(delay)

        message = str(last_error) if last_error else "Unknown error after all retries"
        logger.error(f"Giving up on {item.id} after {self.retries} attempts: {message}")
        return DownloadResult.failure(item, message)

    async def attempt(self, item: WorkItem, rc: ResourceContext) -> DownloadResult:
        """
        Make one download attempt.

        Raises:
            ExtractionError: If no resource URL was found on the page
            ResourceFetchError: If the resource responded with a non-OK status
            EmptyResourceError: If the resource body was empty
        """
        existing = await self.storage.exists(item.id)
        if existing.exists:
            logger.debug(f"{item.id} already saved at {existing.path}")
            return DownloadResult(
                success=True,
                work_item_id=item.id,
                skipped=True,
                size_bytes=existing.size,
                filepath=existing.path,
                author=item.metadata.author,
            )

        if self.dry_run:
            return DownloadResult(
                success=True,
                work_item_id=item.id,
                dry_run=True,
                author=item.metadata.author,
            )

        page = await rc.context.new_page()
        try:
            extracted = await self.extractor(page, item.source_url())
            if not extracted or not extracted.resource_url:
                raise ExtractionError(
                    f"No image URL found for {item.id}", item_id=item.id
                )

            data = await self._fetch(page, item, extracted.resource_url)
            stored = await self.storage.save(
                item.id, data, self.storage.extension_for(extracted.resource_url)
            )
        finally:
            try:
                await page.close()
            except Exception as e:
                logger.debug(f"Error closing page for {item.id}: {e}")

        return DownloadResult(
            success=True,
            work_item_id=item.id,
            size_bytes=stored.size,
            filepath=stored.path,
            retrieved_metadata=extracted,
            author=item.metadata.author,
        )

    async def _fetch(self, page: Any, item: WorkItem, url: str) -> bytes:
        response = await page.goto(
            url, wait_until="domcontentloaded", timeout=self.timeout_ms
        )
        if response is None:
            raise ResourceFetchError(
                f"No response fetching {url}", item_id=item.id
            )
        if not response.ok:
            raise ResourceFetchError(
                f"HTTP {response.status} fetching {url}",
                item_id=item.id,
                status=response.status,
            )

        data = await response.body()
        if not data:
            raise EmptyResourceError(
                f"Empty response body for {url}", item_id=item.id
            )
        return data
