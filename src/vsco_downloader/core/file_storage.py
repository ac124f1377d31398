"""
Local filesystem persistence for downloaded images.
"""

import asyncio
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Iterable, List, Optional, Sequence
from urllib.parse import urlparse

from ..models.config_models import ACCEPTED_EXTENSIONS
from ..models.download_models import DownloadResult, StoredFile

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION = "jpg"


class StorageError(Exception):
    """Raised when a file cannot be written to local storage."""

    pass


def atomic_write_bytes(target_path: Path, data: bytes) -> int:
    """
    Write ``data`` to ``target_path`` through a temp file in the same directory.

    Returns:
        Size of the written file in bytes

    Raises:
        StorageError: If the write fails or leaves an empty file
    """
    target_path.parent.mkdir(parents=True, exist_ok=True)
    temp_fd, temp_path_str = tempfile.mkstemp(
        dir=target_path.parent, prefix=f".{target_path.name}.", suffix=".tmp"
    )
    temp_path = Path(temp_path_str)

    try:
        with os.fdopen(temp_fd, "wb") as handle:
            handle.write(data)
            handle.flush()
            os.fsync(handle.fileno())

        size = temp_path.stat().st_size
        if size == 0:
            raise StorageError(f"Refusing to write empty file: {target_path}")

        shutil.move(str(temp_path), str(target_path))
        return size

    except Exception as e:
        if temp_path.exists():
            try:
                temp_path.unlink()
            except OSError as cleanup_error:
                logger.warning(
                    f"Failed to clean up temporary file {temp_path}: {cleanup_error}"
                )
        if isinstance(e, StorageError):
            raise
        raise StorageError(f"Failed to write {target_path}: {e}") from e


def extension_from_url(url: Optional[str], accepted: Sequence[str] = ACCEPTED_EXTENSIONS) -> str:
    """
    File extension (without dot) for a resource URL.

    Falls back to the first accepted extension when the URL has no accepted
    suffix, so a saved file is always one ``exists`` can find again.
    """
    normalized = [ext.lower().lstrip(".") for ext in accepted] or [DEFAULT_EXTENSION]
    if not url:
        return normalized[0]

    suffix = Path(urlparse(url).path).suffix.lower().lstrip(".")
    if suffix in normalized:
        return suffix
    return normalized[0]


class FileSystemStorage:
    """Stores one file per work item under ``base_dir/<item id>.<ext>``."""

    def __init__(
        self,
        base_dir: Path,
        accepted_extensions: Optional[Iterable[str]] = None,
    ):
        self.base_dir = Path(base_dir).expanduser().resolve()
        self.accepted_extensions: List[str] = list(
            accepted_extensions or ACCEPTED_EXTENSIONS
        )
        logger.debug(f"Initialized FileSystemStorage at {self.base_dir}")

    def path_for(self, item_id: str, extension: str) -> Path:
        """Deterministic path for an item id and extension."""
        ext = extension if extension.startswith(".") else f".{extension}"
        path = (self.base_dir / f"{item_id}{ext}").resolve()
        if self.base_dir not in path.parents:
            raise StorageError(f"Item id escapes storage directory: {item_id!r}")
        return path

    def extension_for(self, url: Optional[str]) -> str:
        return extension_from_url(url, self.accepted_extensions)

    def _find_existing(self, item_id: str) -> StoredFile:
        for ext in self.accepted_extensions:
            path = self.path_for(item_id, ext)
            if path.is_file():
                return StoredFile(exists=True, path=path, size=path.stat().st_size)
        return StoredFile(exists=False)

    async def exists(self, item_id: str) -> StoredFile:
        """Look for an already-saved file for ``item_id`` under any accepted extension."""
        return await asyncio.get_running_loop().run_in_executor(
            None, self._find_existing, item_id
        )

    async def save(
        self, item_id: str, data: bytes, extension: str = DEFAULT_EXTENSION
    ) -> StoredFile:
        """
        Persist ``data`` for ``item_id`` atomically.

        Raises:
            StorageError: If the data is empty or the write fails
        """
        if not data:
            raise StorageError(f"No data to save for {item_id}")

        path = self.path_for(item_id, extension)
        size = await asyncio.get_running_loop().run_in_executor(
            None, atomic_write_bytes, path, data
        )
        logger.debug(f"Saved {item_id} to {path} ({size} bytes)")
        return StoredFile(exists=True, path=path, size=size)

    def relative_path(self, path: Path, base: Optional[Path] = None) -> str:
        """Path as a POSIX string relative to ``base`` (defaults to the storage root)."""
        root = Path(base).resolve() if base else self.base_dir
        try:
            return Path(path).resolve().relative_to(root).as_posix()
        except ValueError:
            return Path(path).as_posix()

    @staticmethod
    def calculate_total_storage(results: Iterable[DownloadResult]) -> int:
        """Total bytes across successful results."""
        return sum(r.size_bytes or 0 for r in results if r.success)
