"""
Configuration management commands
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

import click
from rich.console import Console

from ...core.config_manager import ConfigurationError, ConfigurationManager
from ...models.config_models import DownloaderConfig
from ..ui.display import create_config_table, create_error_display
from ..utils.async_runner import async_command

ENV_SOURCES = {
    "storage.download_dir": "VSCO_DOWNLOAD_DIR",
    "browser.headless": "VSCO_HEADLESS",
    "browser.debug": "VSCO_DEBUG",
    "download.max_concurrency": "VSCO_MAX_CONCURRENCY",
    "logging.level": "VSCO_LOG_LEVEL",
}


@click.group()
def config() -> None:
    """
    Configuration management commands.

    Settings are read from ~/.vsco-downloader/config.yaml (or the file named
    by VSCO_CONFIG_PATH) and can be overridden with VSCO_* environment
    variables and command-line options.
    """
    pass


@config.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Configuration file to show",
)
@click.pass_context
@async_command
async def show(ctx: click.Context, config_path: Optional[Path]) -> None:
    """
    Display the effective configuration with the source of each value.
    """
    console: Console = ctx.obj["console"]
    config_manager = ConfigurationManager()

    try:
        loaded = await config_manager.load_config(config_path)
    except ConfigurationError as e:
        console.print(create_error_display(e, "Configuration Error"))
        ctx.exit(1)

    file_path = config_manager.config_path
    file_exists = bool(file_path and file_path.exists())

    table = create_config_table(
        _describe(loaded, file_exists), "VSCO Downloader Configuration"
    )
    console.print(table)
    console.print(f"\n[dim]Configuration file: {file_path}[/dim]")

    if not file_exists:
        console.print(
            "[yellow]Configuration file does not exist. "
            "Run 'vsco-downloader config init' to create one.[/yellow]"
        )


@config.command()
@click.option(
    "--path",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Where to write the file (defaults to ~/.vsco-downloader/config.yaml)",
)
@click.option("--force", is_flag=True, help="Overwrite an existing file")
@click.pass_context
@async_command
async def init(ctx: click.Context, config_path: Optional[Path], force: bool) -> None:
    """
    Write a documented default configuration file.
    """
    console: Console = ctx.obj["console"]

    try:
        written = await ConfigurationManager().generate_default_config(
            config_path, force=force
        )
    except ConfigurationError as e:
        console.print(create_error_display(e, "Configuration Error"))
        ctx.exit(1)

    console.print(f"[green]✓ Configuration written to {written}[/green]")


def _describe(config: DownloaderConfig, file_exists: bool) -> Dict[str, Dict[str, Any]]:
    defaults = DownloaderConfig().model_dump()
    current = config.model_dump(exclude={"username"})
    rows: Dict[str, Dict[str, Any]] = {}

    for section, values in current.items():
        if not isinstance(values, dict):
            continue
        for key, value in values.items():
            name = f"{section}.{key}"
            rows[name] = {
                "value": value,
                "source": _get_value_source(
                    name, value, defaults[section].get(key), file_exists
                ),
            }

    return rows


def _get_value_source(name: str, value: Any, default: Any, file_exists: bool) -> str:
    env_var = ENV_SOURCES.get(name)
    if env_var and os.getenv(env_var) is not None:
        return f"environment ({env_var})"
    if name == "storage.download_dir" and default is None:
        return "detected" if not file_exists else "config file / detected"
    if value == default:
        return "default"
    return "config file" if file_exists else "default"
