"""
Environment variable handling for configuration overrides.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

TRUE_VALUES = ("true", "1", "yes", "on")
FALSE_VALUES = ("false", "0", "no", "off")

OVERRIDE_VARS = [
    "VSCO_CONFIG_PATH",
    "VSCO_DOWNLOAD_DIR",
    "VSCO_HEADLESS",
    "VSCO_MAX_CONCURRENCY",
    "VSCO_LOG_LEVEL",
    "VSCO_DEBUG",
]

DOWNLOAD_DIR_CANDIDATES = [
    ("public", "images", "vsco"),
    ("downloads", "vsco"),
    ("images", "vsco"),
    ("assets", "images", "vsco"),
]


def parse_bool(value: str) -> bool:
    """Parse an environment flag, raising ``ValueError`` on anything unrecognised."""
    lowered = value.strip().lower()
    if lowered in TRUE_VALUES:
        return True
    if lowered in FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean value: {value!r}")


def resolve_download_dir(working_dir: Optional[Path] = None) -> Path:
    """
    Pick a default download directory under ``working_dir``.

    The first candidate whose parent directory already exists wins;
    otherwise ``downloads/vsco``.
    """
    base = Path(working_dir or Path.cwd()).resolve()
    for parts in DOWNLOAD_DIR_CANDIDATES:
        candidate = base.joinpath(*parts)
        if candidate.parent.exists():
            return candidate
    return base / "downloads" / "vsco"


class EnvironmentManager:
    """Reads ``VSCO_*`` environment variables."""

    def get_optional_config_overrides(self) -> Dict[str, str]:
        """Environment variables that are set, by name."""
        values = {name: os.getenv(name) for name in OVERRIDE_VARS}
        return {k: v for k, v in values.items() if v is not None}

    def get_config_path(self) -> Optional[Path]:
        value = os.getenv("VSCO_CONFIG_PATH")
        return Path(value).expanduser() if value else None

    def apply_overrides(self, config_data: Dict[str, Any]) -> None:
        """
        Merge environment overrides into raw configuration data in place.

        Raises:
            ValueError: If a variable holds a value of the wrong type
        """
        overrides = self.get_optional_config_overrides()

        if "VSCO_DOWNLOAD_DIR" in overrides:
            config_data.setdefault("storage", {})["download_dir"] = overrides[
                "VSCO_DOWNLOAD_DIR"
            ]

        if "VSCO_HEADLESS" in overrides:
            config_data.setdefault("browser", {})["headless"] = parse_bool(
                overrides["VSCO_HEADLESS"]
            )

        if "VSCO_MAX_CONCURRENCY" in overrides:
            try:
                concurrency = int(overrides["VSCO_MAX_CONCURRENCY"])
            except ValueError as e:
                raise ValueError(
                    f"VSCO_MAX_CONCURRENCY must be an integer, "
                    f"got {overrides['VSCO_MAX_CONCURRENCY']!r}"
                ) from e
            config_data.setdefault("download", {})["max_concurrency"] = concurrency

        if "VSCO_LOG_LEVEL" in overrides:
            config_data.setdefault("logging", {})["level"] = overrides[
                "VSCO_LOG_LEVEL"
            ].upper()

        if "VSCO_DEBUG" in overrides and parse_bool(overrides["VSCO_DEBUG"]):
            config_data.setdefault("browser", {})["debug"] = True
            config_data.setdefault("logging", {})["level"] = "DEBUG"

        if overrides:
            logger.debug(f"Applied environment overrides: {sorted(overrides)}")
