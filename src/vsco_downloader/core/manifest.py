"""
Manifest generation for a completed download run.
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional, Sequence

from ..models.download_models import (
    VSCO_BASE_URL,
    DownloadResult,
    ImageMetadata,
    ProfileData,
    WorkItem,
)
from .file_storage import atomic_write_bytes
from .stats_tracker import StatsTracker

logger = logging.getLogger(__name__)

MANIFEST_VERSION = "1.0.0-vsco"
MANIFEST_SOURCE = "vsco_profile_scraper"
DOWNLOAD_METHOD = "playwright"


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ManifestWriter:
    """Builds and writes ``manifest.json`` into the download directory."""

    def __init__(
        self,
        download_dir: Path,
        manifest_name: str = "manifest.json",
        base_dir: Optional[Path] = None,
        now: Callable[[], str] = _utc_now,
    ):
        """
        Initialize manifest writer.

        Args:
            download_dir: Directory holding the downloaded files
            manifest_name: File name of the manifest
            base_dir: Directory local paths are made relative to (working directory if omitted)
            now: Timestamp factory returning ISO-8601 strings
        """
        self.download_dir = Path(download_dir)
        self.manifest_path = self.download_dir / manifest_name
        self.base_dir = Path(base_dir or Path.cwd()).resolve()
        self.now = now

    def _local_path(self, path: Optional[Path]) -> Optional[str]:
        if path is None:
            return None
        try:
            relative = Path(path).resolve().relative_to(self.base_dir)
        except ValueError:
            return Path(path).as_posix()
        return f"/{relative.as_posix()}"

    def _image_entry(
        self,
        result: DownloadResult,
        username: str,
        display_name: Optional[str],
        known: Optional[ImageMetadata],
        timestamp: str,
    ) -> Dict[str, Any]:
        image_id = result.work_item_id.partition("/")[2] or result.work_item_id
        extracted = result.retrieved_metadata
        known = known or ImageMetadata()

        width = (extracted.original_width if extracted else None) or known.width
        height = (extracted.original_height if extracted else None) or known.height

        return {
            "local_path": self._local_path(result.filepath),
            "filename": result.filename,
            "file_size_bytes": result.size_bytes or 0,
            "downloaded_at": timestamp,
            "skipped": result.skipped,
            "vsco_image_id": image_id,
            "vsco_image_url": f"{VSCO_BASE_URL}/{username}/media/{image_id}",
            "vsco_profile_url": f"{VSCO_BASE_URL}/{username}",
            "direct_image_url": (extracted.resource_url if extracted else None)
            or known.direct_image_url,
            "thumbnail_url": known.thumbnail_url,
            "width_px": width,
            "height_px": height,
            "dimensions": f"{width} x {height}" if width and height else None,
            "author": result.author or display_name or username,
            "vsco_username": username,
            "upload_date": extracted.upload_date if extracted else None,
            "available_sizes": list(extracted.available_sizes)
            if extracted and extracted.available_sizes
            else None,
            "srcset": extracted.srcset if extracted else None,
            "download_method": DOWNLOAD_METHOD,
            "extracted_at": timestamp,
        }

    def build(
        self,
        results: Sequence[DownloadResult],
        profile: ProfileData,
        stats: StatsTracker,
        items: Iterable[WorkItem] = (),
    ) -> Dict[str, Any]:
        """Manifest as a JSON-ready dictionary. Only successful results are listed."""
        timestamp = self.now()
        known = {item.id: item.metadata for item in items}
        username = profile.username

        images = {
            result.work_item_id: self._image_entry(
                result,
                username,
                profile.display_name,
                known.get(result.work_item_id),
                timestamp,
            )
            for result in results
            if result.success
        }

        return {
            "generated_at": timestamp,
            "version": MANIFEST_VERSION,
            "source": MANIFEST_SOURCE,
            "download_method": DOWNLOAD_METHOD,
            "profile": {
                "username": username,
                "display_name": profile.display_name or username,
                "profile_url": profile.profile_url,
                "total_images_found": profile.image_count or len(results),
            },
            "images": images,
            "stats": stats.summary_for_manifest(),
        }

    async def write(
        self,
        results: Sequence[DownloadResult],
        profile: ProfileData,
        stats: StatsTracker,
        items: Iterable[WorkItem] = (),
    ) -> Path:
        """
        Build the manifest and write it atomically.

        Raises:
            StorageError: If the file cannot be written
        """
        manifest = self.build(results, profile, stats, items)
        data = json.dumps(manifest, indent=2, ensure_ascii=False).encode("utf-8")

        await asyncio.get_running_loop().run_in_executor(
            None, atomic_write_bytes, self.manifest_path, data
        )
        logger.info(
            f"Wrote manifest with {len(manifest['images'])} images to {self.manifest_path}"
        )
        return self.manifest_path
