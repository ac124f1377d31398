"""
Data models for work items, download outcomes and related errors.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

VSCO_BASE_URL = "https://vsco.co"


class DownloadError(Exception):
    """Base exception for a single download attempt."""

    def __init__(self, message: str, item_id: Optional[str] = None):
        super().__init__(message)
        self.item_id = item_id


class ExtractionError(DownloadError):
    """Raised when no resource URL could be extracted from a page."""

    pass


class ResourceFetchError(DownloadError):
    """Raised when fetching the resource returns a non-OK status."""

    def __init__(
        self,
        message: str,
        item_id: Optional[str] = None,
        status: Optional[int] = None,
    ):
        super().__init__(message, item_id=item_id)
        self.status = status


class EmptyResourceError(DownloadError):
    """Raised when a fetched resource body is empty."""

    pass


@dataclass(frozen=True)
class ImageMetadata:
    """Metadata known about an image before it is downloaded."""

    author: Optional[str] = None
    username: Optional[str] = None
    image_id: Optional[str] = None
    page_url: Optional[str] = None
    direct_image_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class WorkItem:
    """One unit of work: a single image to fetch."""

    id: str
    metadata: ImageMetadata = field(default_factory=ImageMetadata)

    def source_url(self) -> str:
        """Page URL to open for this item, derived from its id if not given."""
        if self.metadata.page_url:
            return self.metadata.page_url

        username, _, image_id = self.id.partition("/")
        if username and image_id:
            return f"{VSCO_BASE_URL}/{username}/media/{image_id}"
        return f"{VSCO_BASE_URL}/{username or self.id}"


@dataclass(frozen=True)
class ExtractedMetadata:
    """Result of running an extraction strategy against an item page."""

    resource_url: str
    upload_date: Optional[str] = None
    srcset: Optional[str] = None
    available_sizes: Tuple[str, ...] = ()
    original_width: Optional[int] = None
    original_height: Optional[int] = None


@dataclass(frozen=True)
class StoredFile:
    """Answer from the persistence layer about a stored artifact."""

    exists: bool
    path: Optional[Path] = None
    size: int = 0

    @property
    def filename(self) -> Optional[str]:
        return self.path.name if self.path else None


@dataclass(frozen=True)
class DownloadResult:
    """Terminal outcome for one work item."""

    success: bool
    work_item_id: str
    skipped: bool = False
    dry_run: bool = False
    error: Optional[str] = None
    size_bytes: Optional[int] = None
    filepath: Optional[Path] = None
    retrieved_metadata: Optional[ExtractedMetadata] = None
    author: Optional[str] = None

    @property
    def filename(self) -> Optional[str]:
        return self.filepath.name if self.filepath else None

    @classmethod
    def failure(
        cls, item: WorkItem, error: str
    ) -> "DownloadResult":
        return cls(
            success=False,
            work_item_id=item.id,
            error=error,
            author=item.metadata.author,
        )


@dataclass(frozen=True)
class BatchJob:
    """A contiguous slice of the work queue."""

    index: int
    start: int
    items: List[WorkItem]

    @property
    def end(self) -> int:
        return self.start + len(self.items)

    def __len__(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class ProfileData:
    """What the profile scraper found for one username."""

    username: str
    display_name: Optional[str] = None
    images: List[ImageMetadata] = field(default_factory=list)

    @property
    def profile_url(self) -> str:
        return f"{VSCO_BASE_URL}/{self.username}"

    @property
    def image_count(self) -> int:
        return len(self.images)
