"""
Run statistics: item counters, timing and derived rates.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from ..models.download_models import DownloadResult


@dataclass
class StatsTracker:
    """Counters for one download run.

    The batch scheduler is the only writer; readers take a snapshot.
    """

    total: int = 0
    downloaded: int = 0
    failed: int = 0
    skipped: int = 0
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)

    def reset(self) -> None:
        self.total = 0
        self.downloaded = 0
        self.failed = 0
        self.skipped = 0
        self.start_time = None
        self.end_time = None

    def start_timing(self) -> None:
        self.start_time = self.clock()
        self.end_time = None

    def end_timing(self) -> None:
        self.end_time = self.clock()

    def set_total(self, total: int) -> None:
        self.total = total

    def record(self, result: DownloadResult) -> None:
        """Count one terminal result. Dry-run results count as downloaded."""
        if not result.success:
            self.failed += 1
        elif result.skipped:
            self.skipped += 1
        else:
            self.downloaded += 1

    @property
    def processed(self) -> int:
        return self.downloaded + self.failed + self.skipped

    @property
    def progress(self) -> int:
        """Processed items as a whole-number percentage of the total."""
        if self.total == 0:
            return 0
        return round(self.processed / self.total * 100)

    @property
    def is_complete(self) -> bool:
        return self.processed >= self.total

    @property
    def success_rate(self) -> int:
        attempted = self.downloaded + self.failed
        if attempted == 0:
            return 0
        return round(self.downloaded / attempted * 100)

    @property
    def elapsed_seconds(self) -> float:
        if self.start_time is None:
            return 0.0
        end = self.end_time if self.end_time is not None else self.clock()
        return end - self.start_time

    @property
    def download_rate(self) -> float:
        """Downloaded items per second."""
        elapsed = self.elapsed_seconds
        if elapsed <= 0:
            return 0.0
        return self.downloaded / elapsed

    def snapshot(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "downloaded": self.downloaded,
            "failed": self.failed,
            "skipped": self.skipped,
        }

    def summary_for_manifest(self) -> Dict[str, Any]:
        return {
            "total_images": self.total,
            "downloaded": self.downloaded,
            "failed": self.failed,
            "skipped": self.skipped,
            "success_rate": self.success_rate,
            "duration_seconds": round(self.elapsed_seconds, 2),
        }
