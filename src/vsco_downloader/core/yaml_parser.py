"""
YAML configuration parser with environment variable substitution.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

SECTION_COMMENTS: Dict[str, Dict[str, str]] = {
    "browser": {
        "_section_comment": "Browser settings",
        "headless": "Run Chromium without a visible window",
        "debug": "Open DevTools and enable debug logging",
        "user_agent": "User agent sent with every request",
        "viewport_width": "Viewport width in pixels",
        "viewport_height": "Viewport height in pixels",
    },
    "download": {
        "_section_comment": "Download scheduling",
        "max_concurrency": "Maximum simultaneous downloads (1-10)",
        "batch_size": "Items per batch (empty = same as max_concurrency)",
        "delay_between_batches_ms": "Pause between batches in milliseconds",
        "enable_batching": "Process items in batches with a pause between them",
        "retries": "Attempts per image before giving up (1-10)",
        "timeout_ms": "Navigation timeout in milliseconds",
        "dry_run": "Resolve work without saving any files",
        "limit": "Maximum number of images to download (empty = all)",
    },
    "pool": {
        "_section_comment": "Browser context pool",
        "max_pool_size": "Maximum browser contexts (empty = max_concurrency)",
        "context_lifetime_ms": "Replace idle contexts older than this",
        "max_context_uses": "Replace a context after this many downloads",
    },
    "storage": {
        "_section_comment": "Local storage",
        "download_dir": "Download directory (empty = detect from working directory)",
        "manifest_name": "Manifest file name inside the download directory",
        "accepted_extensions": "File extensions recognised as already downloaded",
    },
    "logging": {
        "_section_comment": "Logging",
        "level": "Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    },
}


class YAMLConfigParser:
    """YAML configuration parser with environment variable substitution."""

    def __init__(self) -> None:
        self.env_var_pattern = re.compile(r"\$\{([^}]+)\}")

    async def load_yaml_config(self, config_path: Path) -> Dict[str, Any]:
        """Load and parse a YAML file, substituting ``${VAR}`` references."""

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            yaml_content = config_path.read_text(encoding="utf-8")
            substituted_content = self._substitute_environment_variables(yaml_content)
            config_data = yaml.safe_load(substituted_content)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}") from e

        if config_data is None:
            return {}
        if not isinstance(config_data, dict):
            raise ValueError("Configuration file must contain a YAML dictionary")

        logger.debug(f"Loaded configuration from {config_path}")
        return config_data

    async def save_yaml_config(
        self, config_data: Dict[str, Any], config_path: Path
    ) -> None:
        """Write configuration data as commented YAML, atomically."""

        config_path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = config_path.with_suffix(".tmp")

        try:
            temp_path.write_text(
                self._generate_commented_yaml(config_data), encoding="utf-8"
            )
            temp_path.replace(config_path)
        except Exception as e:
            temp_path.unlink(missing_ok=True)
            raise RuntimeError(f"Failed to save configuration file: {e}") from e

        logger.debug(f"Saved configuration to {config_path}")

    def _substitute_environment_variables(self, content: str) -> str:
        """Replace ``${VAR}`` and ``${VAR:default}`` outside comment lines."""

        def replace_env_var(match: Any) -> str:
            var_name = match.group(1)

            if ":" in var_name:
                var_name, default_value = var_name.split(":", 1)
                return os.getenv(var_name, default_value)

            env_value = os.getenv(var_name)
            if env_value is None:
                raise ValueError(f"Environment variable '{var_name}' is not set")
            return env_value

        processed_lines = []
        for line in content.split("\n"):
            if line.strip().startswith("#"):
                processed_lines.append(line)
                continue
            processed_lines.append(self.env_var_pattern.sub(replace_env_var, line))

        return "\n".join(processed_lines)

    def _format_value(self, value: Any) -> str:
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return str(value)
        if isinstance(value, str):
            return (
                yaml.safe_dump(value, default_style=None, width=float("inf"))
                .strip()
                .removesuffix("...")
                .strip()
            )
        return yaml.safe_dump(value, default_flow_style=True, width=float("inf")).strip()

    def _generate_commented_yaml(self, config_data: Dict[str, Any]) -> str:
        """Render configuration data with a comment above each known key."""

        lines = [
            "# VSCO downloader configuration",
            "# Environment variables can be substituted using ${VAR_NAME} "
            "or ${VAR_NAME:default}",
            "",
        ]

        for section_name, section_data in config_data.items():
            comments = SECTION_COMMENTS.get(section_name)

            if not isinstance(section_data, dict):
                lines.append(f"{section_name}: {self._format_value(section_data)}")
                lines.append("")
                continue

            section_comment: Optional[str] = (comments or {}).get("_section_comment")
            lines.append(f"# {section_comment or section_name}")
            lines.append(f"{section_name}:")

            for key, value in section_data.items():
                comment = (comments or {}).get(key)
                if comment:
                    lines.append(f"  # {comment}")
                rendered = self._format_value(value)
                lines.append(f"  {key}: {rendered}" if rendered else f"  {key}:")

            lines.append("")

        return "\n".join(lines)
