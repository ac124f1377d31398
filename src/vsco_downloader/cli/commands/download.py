"""
Download command: fetch every image of a VSCO profile
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

import click
from rich.console import Console

from ...core.config_manager import ConfigurationError, ConfigurationManager
from ...core.runner import VscoDownloadRunner
from ...models.config_models import DownloaderConfig
from ...models.download_models import DownloadResult
from ..ui.display import (
    create_error_display,
    create_failures_table,
    create_results_panel,
    format_size,
)
from ..utils.async_runner import async_command
from ..utils.validation import (
    get_validation_suggestions,
    show_validation_error,
    validate_concurrency_limit,
    validate_download_directory,
    validate_username,
)


@click.command()
@click.argument("username", required=True)
@click.option(
    "--download-dir",
    "-o",
    type=click.Path(file_okay=False),
    help="Directory to save images in (detected from the working directory if omitted)",
)
@click.option(
    "--headless/--no-headless", default=None, help="Run the browser without a window"
)
@click.option("--debug", is_flag=True, help="Open DevTools and log debug output")
@click.option("--timeout", type=click.IntRange(min=1), help="Navigation timeout in milliseconds")
@click.option("--retries", type=click.IntRange(1, 10), help="Attempts per image (1-10)")
@click.option("--limit", type=click.IntRange(min=1), help="Maximum number of images")
@click.option(
    "--dry-run", is_flag=True, help="Resolve images without saving files"
)
@click.option("--concurrency", "-c", type=int, help="Simultaneous downloads (1-10)")
@click.option("--batch-size", type=click.IntRange(min=1), help="Images per batch")
@click.option(
    "--delay-between-batches",
    type=click.IntRange(min=0),
    help="Pause between batches in milliseconds",
)
@click.option(
    "--no-batching",
    is_flag=True,
    default=False,
    help="Process all images as a single batch",
)
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Configuration file to use",
)
@click.pass_context
@async_command
async def download(
    ctx: click.Context,
    username: str,
    download_dir: Optional[str],
    headless: Optional[bool],
    debug: bool,
    timeout: Optional[int],
    retries: Optional[int],
    limit: Optional[int],
    dry_run: bool,
    concurrency: Optional[int],
    batch_size: Optional[int],
    delay_between_batches: Optional[int],
    no_batching: bool,
    config_path: Optional[Path],
) -> None:
    """
    Download every image from a VSCO profile.

    USERNAME may be a plain username, '@username' or a profile URL.

    Images already present in the download directory are skipped, and a
    manifest.json describing the run is written next to them.

    Examples:
      vsco-downloader download someuser
      vsco-downloader download @someuser --limit 20 --dry-run
      vsco-downloader download https://vsco.co/someuser -c 5 --batch-size 10
    """
    console: Console = ctx.obj["console"]
    verbose: bool = ctx.obj.get("verbose", False)
    quiet: bool = ctx.obj.get("quiet", False)

    is_valid, error_msg, cleaned = validate_username(username)
    if not is_valid:
        show_validation_error(
            console, error_msg or "", get_validation_suggestions("username", username)
        )
        ctx.exit(2)

    if concurrency is not None:
        is_valid, error_msg = validate_concurrency_limit(concurrency)
        if not is_valid:
            show_validation_error(
                console,
                error_msg or "",
                get_validation_suggestions("concurrency", str(concurrency)),
            )
            ctx.exit(2)

    resolved_dir: Optional[Path] = None
    if download_dir:
        is_valid, error_msg, resolved_dir = validate_download_directory(download_dir)
        if not is_valid:
            show_validation_error(
                console,
                error_msg or "",
                get_validation_suggestions("download_directory", download_dir),
            )
            ctx.exit(2)

    overrides: Dict[str, Any] = {
        "username": cleaned,
        "browser": {"headless": headless, "debug": debug or None},
        "download": {
            "timeout_ms": timeout,
            "retries": retries,
            "limit": limit,
            "dry_run": dry_run or None,
            "max_concurrency": concurrency,
            "batch_size": batch_size,
            "delay_between_batches_ms": delay_between_batches,
            "enable_batching": False if no_batching else None,
        },
        "storage": {"download_dir": str(resolved_dir) if resolved_dir else None},
    }

    try:
        config = await ConfigurationManager().load_config(config_path, overrides)
    except ConfigurationError as e:
        console.print(create_error_display(e, "Configuration Error"))
        ctx.exit(1)

    if not (verbose or quiet):
        logging.getLogger("vsco_downloader").setLevel(config.logging.level)

    _show_run_settings(console, config)

    def report(index: int, result: DownloadResult) -> None:
        if not result.success:
            console.print(f"  [red]✗[/red] {result.work_item_id}: {result.error}")
        elif result.skipped:
            console.print(f"  [dim]- {result.work_item_id} (already exists)[/dim]")
        elif result.dry_run:
            console.print(f"  [cyan]~[/cyan] {result.work_item_id} (dry run)")
        elif verbose:
            console.print(
                f"  [green]✓[/green] {result.filename} "
                f"({format_size(result.size_bytes or 0)})"
            )

    try:
        runner = VscoDownloadRunner(config, on_result=report)
        run = await runner.run(config.username or cleaned)
    except KeyboardInterrupt:
        console.print("\n[yellow]Download interrupted by user[/yellow]")
        ctx.exit(130)
    except Exception as e:
        console.print(create_error_display(e, "Download Error"))
        if verbose:
            console.print_exception()
        ctx.exit(1)

    console.print()
    console.print(create_results_panel(run))
    if run.failed_results:
        console.print(create_failures_table(run.failed_results))


def _show_run_settings(console: Console, config: DownloaderConfig) -> None:
    download = config.download
    batching = (
        f"batches of {download.effective_batch_size}, "
        f"{download.delay_between_batches_ms}ms apart"
        if download.enable_batching
        else "disabled"
    )

    console.print(f"[cyan]Downloading VSCO profile @{config.username}[/cyan]")
    console.print(f"  Download directory: {config.storage.download_dir}")
    console.print(
        f"  Concurrency: {download.max_concurrency} | Batching: {batching} | "
        f"Retries: {download.retries}"
    )
    if download.limit:
        console.print(f"  Limit: {download.limit} images")
    if download.dry_run:
        console.print("  [yellow]Dry run: no files will be saved[/yellow]")
