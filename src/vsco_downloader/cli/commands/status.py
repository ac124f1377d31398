"""
Status and health check command
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import click
import httpx
from rich.columns import Columns
from rich.console import Console

from ...core.config_manager import ConfigurationManager
from ...integration.browser_engine import PlaywrightBrowserEngine
from ...models.config_models import DownloaderConfig
from ...models.download_models import VSCO_BASE_URL
from ..ui.display import create_status_panel
from ..utils.async_runner import async_command


@click.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Configuration file to check",
)
@click.option("--skip-network", is_flag=True, help="Do not contact vsco.co")
@click.pass_context
@async_command
async def status(
    ctx: click.Context, config_path: Optional[Path], skip_network: bool
) -> None:
    """
    Check that everything needed for a download is in place.

    Verifies:
    - Configuration validity
    - Playwright Chromium can be launched
    - vsco.co is reachable
    - The download directory is writable
    """
    console: Console = ctx.obj["console"]

    console.print("[cyan]Checking system status...[/cyan]")

    with console.status("Running health checks..."):
        config_status, config = await _check_configuration_health(config_path)
        browser_status = await _check_browser_health(config or DownloaderConfig())
        network_status = (
            {"healthy": True, "details": "Skipped"}
            if skip_network
            else await _check_vsco_connectivity()
        )
        storage_status = _check_storage_health(config)

    statuses = {
        "Configuration": config_status,
        "Browser": browser_status,
        "VSCO": network_status,
        "Storage": storage_status,
    }

    console.print(
        Columns(
            [create_status_panel(name, info) for name, info in statuses.items()],
            equal=True,
        )
    )

    if all(info.get("healthy", False) for info in statuses.values()):
        console.print("\n[bold green]✓ All checks passed[/bold green]")
        return

    console.print("\n[bold yellow]⚠ Some checks failed[/bold yellow]")
    ctx.exit(1)


async def _check_configuration_health(
    config_path: Optional[Path],
) -> Tuple[Dict[str, Any], Optional[DownloaderConfig]]:
    """Load configuration and report where it came from"""
    manager = ConfigurationManager()
    try:
        config = await manager.load_config(config_path)
    except Exception as e:
        return {
            "healthy": False,
            "error": str(e),
            "details": "Configuration file is invalid",
        }, None

    path = manager.config_path
    source = f"Loaded from {path}" if path and path.exists() else "Using defaults"
    return {"healthy": True, "details": source}, config


async def _check_browser_health(config: DownloaderConfig) -> Dict[str, Any]:
    """Launch and close Chromium once"""
    engine = PlaywrightBrowserEngine(config)
    try:
        await engine.launch()
        context = await engine.new_context()
        await engine.close_context(context)
    except Exception as e:
        return {
            "healthy": False,
            "error": str(e).splitlines()[0] if str(e) else type(e).__name__,
            "details": "Run 'playwright install chromium'",
        }
    finally:
        await engine.close()

    return {"healthy": True, "details": "Chromium launched successfully"}


async def _check_vsco_connectivity() -> Dict[str, Any]:
    """Check that vsco.co answers"""
    try:
        async with httpx.AsyncClient(timeout=10.0, follow_redirects=True) as client:
            response = await client.head(VSCO_BASE_URL)
    except httpx.HTTPError as e:
        return {
            "healthy": False,
            "error": str(e) or type(e).__name__,
            "details": "vsco.co is not reachable",
        }

    if response.status_code >= 500:
        return {
            "healthy": False,
            "error": f"HTTP {response.status_code}",
            "details": "vsco.co returned a server error",
        }

    return {"healthy": True, "details": f"vsco.co responded ({response.status_code})"}


def _check_storage_health(config: Optional[DownloaderConfig]) -> Dict[str, Any]:
    """Check the download directory can be created and written"""
    if config is None or config.storage.download_dir is None:
        return {"healthy": False, "details": "No download directory configured"}

    path = Path(config.storage.download_dir)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        return {"healthy": False, "error": str(e), "details": str(path)}

    if not os.access(path, os.W_OK):
        return {"healthy": False, "error": "Not writable", "details": str(path)}

    return {"healthy": True, "details": str(path)}
