"""
Main CLI entry point for the VSCO downloader
"""

import logging
import sys

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.traceback import install

from .. import __version__

install(show_locals=True)

console = Console()

PACKAGE_LOGGER = "vsco_downloader"
NOISY_LOGGERS = ("httpx", "httpcore", "asyncio")


def configure_logging(level: int = logging.WARNING) -> None:
    """
    Route log records through Rich and set the package log level.

    Third-party loggers stay at WARNING whatever the package level is.
    """
    root = logging.getLogger()
    if not any(isinstance(h, RichHandler) for h in root.handlers):
        logging.basicConfig(
            level=logging.WARNING,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        )

    logging.getLogger(PACKAGE_LOGGER).setLevel(level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


configure_logging()


@click.group()
@click.version_option(version=__version__, prog_name="vsco-downloader")
@click.option("--verbose", "-v", is_flag=True, help="Log every step at DEBUG level")
@click.option("--quiet", "-q", is_flag=True, help="Only log errors")
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, quiet: bool, no_color: bool) -> None:
    """
    VSCO Downloader

    Downloads every image from a public VSCO profile using a pool of
    headless browser contexts, with batching, retries and a JSON manifest.

    Examples:
      vsco-downloader download someuser                 # Download a profile
      vsco-downloader download someuser -c 5 --limit 50 # Five at a time, first 50
      vsco-downloader config init                       # Write a default config file
      vsco-downloader status                            # Check browser and network
    """
    if verbose and quiet:
        raise click.UsageError("--verbose and --quiet cannot be combined")

    ctx.ensure_object(dict)
    ctx.obj["console"] = (
        Console(force_terminal=False, no_color=True) if no_color else console
    )
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet

    if verbose:
        configure_logging(logging.DEBUG)
    elif quiet:
        configure_logging(logging.ERROR)


# Registered at import time so tests can invoke ``cli`` directly
from .commands import config, download, status  # noqa: E402

cli.add_command(download.download)
cli.add_command(config.config)
cli.add_command(status.status)


def main() -> None:
    """Console script entry point"""
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[red]Unexpected error: {e}[/red]")
        if "--verbose" in sys.argv or "-v" in sys.argv:
            console.print_exception()
        sys.exit(1)


if __name__ == "__main__":
    main()
