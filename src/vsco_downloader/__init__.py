"""
VSCO Downloader

Concurrent, browser-driven image downloads for public VSCO profiles, built
around a bounded pool of Playwright browser contexts.
"""

__version__ = "1.0.0"

from .core.config_manager import ConfigurationManager
from .core.orchestrator import ConcurrentDownloadOrchestrator
from .core.runner import VscoDownloadRunner
from .models.config_models import DownloaderConfig

__all__ = [
    "ConfigurationManager",
    "ConcurrentDownloadOrchestrator",
    "DownloaderConfig",
    "VscoDownloadRunner",
]
