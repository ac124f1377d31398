"""
Input validation utilities for CLI commands
"""

import os
from pathlib import Path
from typing import List, Optional, Tuple

from rich.console import Console

from ...integration.profile_scraper import clean_username


def validate_username(value: str) -> Tuple[bool, Optional[str], Optional[str]]:
    """
    Validate a VSCO username, ``@username`` or profile URL

    Returns:
        (is_valid, error_message, cleaned_username)
    """
    if not value or not value.strip():
        return False, "Username cannot be empty", None

    username = clean_username(value)
    if username is None:
        return (
            False,
            f"Invalid VSCO username: {value!r} "
            "(2-50 characters: letters, numbers, '-' and '_')",
            None,
        )

    return True, None, username


def validate_download_directory(
    download_dir: str,
) -> Tuple[bool, Optional[str], Optional[Path]]:
    """
    Validate and create the download directory if needed

    Returns:
        (is_valid, error_message, resolved_path)
    """
    path = Path(download_dir).expanduser().resolve()

    if path.exists() and not path.is_dir():
        return False, f"Path exists but is not a directory: {path}", None

    try:
        path.mkdir(parents=True, exist_ok=True)
    except PermissionError:
        return False, f"Cannot create directory (permission denied): {path}", None
    except OSError as e:
        return False, f"Cannot create directory: {e}", None

    if not os.access(path, os.W_OK):
        return False, f"No write permission for directory: {path}", None

    return True, None, path


def validate_concurrency_limit(max_concurrency: int) -> Tuple[bool, Optional[str]]:
    """
    Validate concurrency limit

    Returns:
        (is_valid, error_message)
    """
    if max_concurrency < 1:
        return False, "Concurrency must be at least 1"

    if max_concurrency > 10:
        return False, "Concurrency cannot exceed 10"

    return True, None


def show_validation_error(
    console: Console, error_message: str, suggestions: Optional[List[str]] = None
) -> None:
    """
    Display validation error with helpful suggestions
    """
    console.print(f"[red]Validation Error:[/red] {error_message}")

    if suggestions:
        console.print("\n[yellow]Suggestions:[/yellow]")
        for suggestion in suggestions:
            console.print(f"  • {suggestion}")


def get_validation_suggestions(error_type: str, value: str) -> List[str]:
    """
    Get validation suggestions based on error type
    """
    suggestions = []

    if error_type == "username":
        suggestions.extend(
            [
                "Pass the username as it appears in the profile URL",
                "Both '@name' and 'https://vsco.co/name' are accepted",
            ]
        )

    elif error_type == "download_directory":
        suggestions.extend(
            [
                "Check that you have write permissions",
                "Use absolute paths to avoid confusion",
                f"Try creating the directory manually: mkdir -p {value}",
            ]
        )

    elif error_type == "concurrency":
        suggestions.extend(
            [
                "Use a value between 1 and 10",
                "Higher values may trigger rate limiting",
            ]
        )

    return suggestions
