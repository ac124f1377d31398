"""
Core download orchestration for the VSCO downloader.
"""

from .batch_scheduler import BatchScheduler
from .config_manager import ConfigurationError, ConfigurationManager
from .context_pool import ContextPool, ContextPoolError, PoolExhaustedError
from .downloader import SingleItemDownloader
from .environment_manager import EnvironmentManager
from .file_storage import FileSystemStorage, StorageError
from .manifest import ManifestWriter
from .orchestrator import ConcurrentDownloadOrchestrator, OrchestratorError
from .runner import RunResult, VscoDownloadRunner
from .semaphore import TaskSemaphore
from .stats_tracker import StatsTracker
from .yaml_parser import YAMLConfigParser

__all__ = [
    # Orchestration
    "ConcurrentDownloadOrchestrator",
    "OrchestratorError",
    "BatchScheduler",
    "SingleItemDownloader",
    "TaskSemaphore",
    "ContextPool",
    "ContextPoolError",
    "PoolExhaustedError",
    "StatsTracker",
    # Persistence
    "FileSystemStorage",
    "StorageError",
    "ManifestWriter",
    # Configuration
    "ConfigurationManager",
    "ConfigurationError",
    "EnvironmentManager",
    "YAMLConfigParser",
    # Runs
    "RunResult",
    "VscoDownloadRunner",
]
