"""
Configuration loading, validation and persistence.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from ..models.config_models import DownloaderConfig
from .environment_manager import EnvironmentManager, resolve_download_dir
from .yaml_parser import YAMLConfigParser

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".vsco-downloader"


class ConfigurationError(Exception):
    """Base exception for configuration-related errors."""

    pass


def deep_merge(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``overrides`` into a copy of ``base``. ``None`` values are ignored."""
    merged = dict(base)
    for key, value in overrides.items():
        if value is None:
            continue
        if isinstance(value, dict):
            current = merged.get(key)
            merged[key] = deep_merge(current if isinstance(current, dict) else {}, value)
        else:
            merged[key] = value
    return merged


class ConfigurationManager:
    """Builds a validated ``DownloaderConfig`` from defaults, YAML, environment and CLI."""

    def __init__(self, working_dir: Optional[Path] = None) -> None:
        self.yaml_parser = YAMLConfigParser()
        self.env_manager = EnvironmentManager()
        self.working_dir = working_dir
        self.current_config: Optional[DownloaderConfig] = None
        self.config_path: Optional[Path] = None

    async def load_config(
        self,
        config_path: Optional[Path] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ) -> DownloaderConfig:
        """
        Load and validate configuration.

        Args:
            config_path: YAML file to read; must exist when given explicitly
            overrides: Nested values that win over every other source

        Raises:
            ConfigurationError: If the file is unreadable or values are invalid
        """
        explicit = config_path is not None
        config_path = config_path or self.get_default_config_path()
        self.config_path = config_path

        config_data: Dict[str, Any] = {}
        if config_path.exists():
            try:
                config_data = await self.yaml_parser.load_yaml_config(config_path)
            except Exception as e:
                logger.error(f"Failed to read configuration: {e}")
                raise ConfigurationError(f"Configuration loading failed: {e}") from e
        elif explicit:
            raise ConfigurationError(f"Configuration file not found: {config_path}")
        else:
            logger.debug(f"No configuration file at {config_path}, using defaults")

        config = self.validate_config(config_data, overrides)
        self.current_config = config
        logger.debug(f"Configuration loaded (download dir {config.storage.download_dir})")
        return config

    def validate_config(
        self,
        config_data: Dict[str, Any],
        overrides: Optional[Dict[str, Any]] = None,
    ) -> DownloaderConfig:
        """Apply environment and explicit overrides, then validate with pydantic."""
        try:
            data = deep_merge({}, config_data)
            self.env_manager.apply_overrides(data)
            if overrides:
                data = deep_merge(data, overrides)

            config = DownloaderConfig(**data)
        except (ValidationError, ValueError, TypeError) as e:
            raise ConfigurationError(f"Configuration validation failed: {e}") from e

        if config.storage.download_dir is None:
            config.storage.download_dir = resolve_download_dir(self.working_dir)
        else:
            config.storage.download_dir = (
                Path(config.storage.download_dir).expanduser().resolve()
            )

        return config

    async def save_config(
        self, config: DownloaderConfig, config_path: Optional[Path] = None
    ) -> Path:
        """Write ``config`` as commented YAML and return the path written."""
        config_path = config_path or self.config_path or self.get_default_config_path()

        try:
            config_dict = config.model_dump(mode="json", exclude={"username"})
            await self.yaml_parser.save_yaml_config(config_dict, config_path)
        except Exception as e:
            logger.error(f"Failed to save configuration: {e}")
            raise ConfigurationError(f"Configuration saving failed: {e}") from e

        logger.info(f"Configuration saved to {config_path}")
        return config_path

    async def generate_default_config(
        self, config_path: Optional[Path] = None, force: bool = False
    ) -> Path:
        """
        Write a documented default configuration file.

        Raises:
            ConfigurationError: If the file exists and ``force`` is not set
        """
        config_path = config_path or self.get_default_config_path()

        if config_path.exists() and not force:
            raise ConfigurationError(
                f"Configuration file already exists at {config_path}"
            )

        return await self.save_config(DownloaderConfig(), config_path)

    def get_default_config_path(self) -> Path:
        """Configuration path from ``VSCO_CONFIG_PATH`` or the home directory default."""
        return self.env_manager.get_config_path() or DEFAULT_CONFIG_DIR / "config.yaml"
