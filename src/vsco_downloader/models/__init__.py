"""
Data models for the VSCO downloader.
"""

from .config_models import (
    BrowserConfig,
    DownloadConfig,
    DownloaderConfig,
    LoggingConfig,
    PoolConfig,
    StorageConfig,
)
from .download_models import (
    BatchJob,
    DownloadError,
    DownloadResult,
    EmptyResourceError,
    ExtractedMetadata,
    ExtractionError,
    ImageMetadata,
    ProfileData,
    ResourceFetchError,
    StoredFile,
    WorkItem,
)
from .pool_models import ResourceContext

__all__ = [
    "BrowserConfig",
    "DownloadConfig",
    "DownloaderConfig",
    "LoggingConfig",
    "PoolConfig",
    "StorageConfig",
    "BatchJob",
    "DownloadError",
    "DownloadResult",
    "EmptyResourceError",
    "ExtractedMetadata",
    "ExtractionError",
    "ImageMetadata",
    "ProfileData",
    "ResourceFetchError",
    "StoredFile",
    "WorkItem",
    "ResourceContext",
]
