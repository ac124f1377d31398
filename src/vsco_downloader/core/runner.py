"""
End-to-end download run for one VSCO profile.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional

from ..integration.browser_engine import PlaywrightBrowserEngine
from ..integration.profile_scraper import VscoProfileScraper, to_work_items
from ..integration.vsco_extractor import VscoImageExtractor
from ..models.config_models import DownloaderConfig
from ..models.download_models import DownloadResult, ProfileData, WorkItem
from .batch_scheduler import ResultCallback, Sleep
from .file_storage import FileSystemStorage
from .manifest import ManifestWriter
from .orchestrator import ConcurrentDownloadOrchestrator
from .stats_tracker import StatsTracker

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Outcome of a complete profile download."""

    username: str
    results: List[DownloadResult]
    stats: StatsTracker
    profile: Optional[ProfileData] = None
    manifest_path: Optional[Path] = None
    total_storage: int = 0
    failed_results: List[DownloadResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failed_results


class VscoDownloadRunner:
    """Scrapes a profile, downloads its images and writes the manifest."""

    def __init__(
        self,
        config: DownloaderConfig,
        engine: Optional[Any] = None,
        scraper: Optional[VscoProfileScraper] = None,
        extractor: Optional[Any] = None,
        sleep: Optional[Sleep] = None,
        on_result: Optional[ResultCallback] = None,
    ):
        if config.storage.download_dir is None:
            raise ValueError("storage.download_dir must be resolved before running")

        self.config = config
        self.stats = StatsTracker()
        self.storage = FileSystemStorage(
            config.storage.download_dir, config.storage.accepted_extensions
        )
        self.scraper = scraper or VscoProfileScraper(timeout_ms=config.download.timeout_ms)
        self.manifest_writer = ManifestWriter(
            config.storage.download_dir, config.storage.manifest_name
        )
        self.orchestrator = ConcurrentDownloadOrchestrator(
            config,
            engine or PlaywrightBrowserEngine(config),
            self.storage,
            extractor or VscoImageExtractor(timeout_ms=config.download.timeout_ms),
            stats=self.stats,
            sleep=sleep,
            on_result=on_result,
        )

    async def run(self, username: str) -> RunResult:
        """
        Download every image of ``username``.

        Raises:
            ContextPoolError: If the browser cannot be launched
            ProfileScrapeError: If the profile cannot be read
        """
        self.stats.reset()
        self.stats.start_timing()

        try:
            await self.orchestrator.initialize()

            profile = await self._scrape(username)
            items = to_work_items(profile)
            self.stats.set_total(len(items))

            if not items:
                logger.warning(f"No images found for @{username}")

            results = await self.orchestrator.download_concurrently(items)
            self.stats.end_timing()

            manifest_path = await self._write_manifest(results, profile, items)
        finally:
            await self.orchestrator.cleanup()

        return RunResult(
            username=username,
            results=results,
            stats=self.stats,
            profile=profile,
            manifest_path=manifest_path,
            total_storage=FileSystemStorage.calculate_total_storage(results),
            failed_results=[r for r in results if not r.success],
        )

    async def _scrape(self, username: str) -> ProfileData:
        async with self.orchestrator.pool.lease() as rc:
            page = await rc.context.new_page()
            return await self.scraper.scrape_profile(
                page, username, limit=self.config.download.limit
            )

    async def _write_manifest(
        self,
        results: List[DownloadResult],
        profile: ProfileData,
        items: List[WorkItem],
    ) -> Optional[Path]:
        try:
            return await self.manifest_writer.write(results, profile, self.stats, items)
        except Exception as e:
            logger.warning(f"Failed to write manifest: {e}")
            return None
