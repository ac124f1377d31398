"""
Pydantic configuration models for the VSCO downloader.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

ACCEPTED_EXTENSIONS = [".jpg", ".jpeg", ".png", ".webp"]


class BrowserConfig(BaseModel):
    """Browser launch and context settings."""

    headless: bool = True
    debug: bool = Field(default=False, description="Open DevTools and log extra detail")
    user_agent: str = DEFAULT_USER_AGENT
    viewport_width: int = Field(default=1920, ge=320, le=7680)
    viewport_height: int = Field(default=1080, ge=240, le=4320)


class DownloadConfig(BaseModel):
    """Concurrency, batching and retry policy."""

    max_concurrency: int = Field(default=3, ge=1, le=10)
    batch_size: Optional[int] = Field(default=None, ge=1)
    delay_between_batches_ms: int = Field(default=1000, ge=0)
    enable_batching: bool = True
    retries: int = Field(default=3, ge=1, le=10)
    timeout_ms: int = Field(default=30000, gt=0)
    dry_run: bool = False
    limit: Optional[int] = Field(default=None, ge=1)

    @property
    def effective_batch_size(self) -> int:
        """Batch size, falling back to the concurrency limit."""
        return self.batch_size or self.max_concurrency


class PoolConfig(BaseModel):
    """Browser context pool sizing and recycling policy."""

    max_pool_size: Optional[int] = Field(default=None, ge=1, le=50)
    context_lifetime_ms: int = Field(default=300000, gt=0)
    max_context_uses: int = Field(default=100, ge=1)


class StorageConfig(BaseModel):
    """Local storage layout."""

    download_dir: Optional[Path] = None
    manifest_name: str = "manifest.json"
    accepted_extensions: List[str] = Field(
        default_factory=lambda: list(ACCEPTED_EXTENSIONS)
    )

    @field_validator("accepted_extensions")
    @classmethod
    def normalize_extensions(cls, value: List[str]) -> List[str]:
        if not value:
            raise ValueError("At least one accepted extension is required")
        return [ext if ext.startswith(".") else f".{ext}" for ext in value]


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = "WARNING"

    @field_validator("level")
    @classmethod
    def validate_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {value}")
        return level


class DownloaderConfig(BaseModel):
    """Root configuration for a download run."""

    username: Optional[str] = None
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    download: DownloadConfig = Field(default_factory=DownloadConfig)
    pool: PoolConfig = Field(default_factory=PoolConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    config_version: str = "1.0"

    @model_validator(mode="after")
    def check_pool_capacity(self) -> "DownloaderConfig":
        # Every admitted task must be able to lease its own context.
        pool_size = self.pool.max_pool_size
        if pool_size is not None and pool_size < self.download.max_concurrency:
            raise ValueError(
                f"pool.max_pool_size ({pool_size}) must be >= "
                f"download.max_concurrency ({self.download.max_concurrency})"
            )
        return self

    @property
    def max_pool_size(self) -> int:
        return self.pool.max_pool_size or self.download.max_concurrency

    def context_options(self) -> Dict[str, Any]:
        """Keyword arguments for ``Browser.new_context``."""
        return {
            "user_agent": self.browser.user_agent,
            "viewport": {
                "width": self.browser.viewport_width,
                "height": self.browser.viewport_height,
            },
            "accept_downloads": True,
        }

    @property
    def navigation_timeout_ms(self) -> int:
        return self.download.timeout_ms

    @property
    def action_timeout_ms(self) -> int:
        return self.download.timeout_ms // 2
