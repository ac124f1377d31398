"""
Async execution utilities for CLI commands
"""

import asyncio
import sys
from functools import wraps
from typing import Any, Awaitable, Callable, TypeVar

import click
from rich.console import Console

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])


def async_command(f: F) -> Callable[..., Any]:
    """
    Decorator to run async click commands with asyncio.run

    Click's own exit and abort exceptions pass through untouched so that
    ``ctx.exit(code)`` inside a command keeps its exit code.
    """

    @wraps(f)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return asyncio.run(f(*args, **kwargs))
        except (click.exceptions.Exit, click.ClickException, click.Abort):
            raise
        except KeyboardInterrupt:
            Console().print("\n[yellow]Operation interrupted by user[/yellow]")
            sys.exit(130)
        except Exception as e:
            Console().print(f"[red]Operation failed: {e}[/red]")
            sys.exit(1)

    return wrapper
