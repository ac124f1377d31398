"""
Rich display components for results, status and configuration
"""

from typing import Any, Dict, List, Optional, Sequence

from rich.panel import Panel
from rich.table import Table

from ...core.runner import RunResult
from ...models.download_models import DownloadResult


def create_config_table(
    config_data: Dict[str, Any], title: str = "Configuration"
) -> Table:
    """
    Create a Rich table for configuration display
    """
    table = Table(title=title, show_header=True, header_style="bold blue")
    table.add_column("Setting", style="cyan", no_wrap=True)
    table.add_column("Value", style="green")
    table.add_column("Source", style="yellow")

    for key, value_info in config_data.items():
        if isinstance(value_info, dict):
            value = value_info.get("value")
            source = value_info.get("source", "unknown")
        else:
            value = value_info
            source = "config file"

        table.add_row(key, "not set" if value is None else str(value), source)

    return table


def create_status_panel(component: str, status_info: Dict[str, Any]) -> Panel:
    """
    Create a status panel for a system component
    """
    is_healthy = status_info.get("healthy", False)

    if is_healthy:
        color = "green"
        status_text = "✓ Healthy"
    else:
        color = "red"
        status_text = "✗ Unhealthy"

    content_lines = [f"[{color}]{status_text}[/{color}]"]

    if status_info.get("details"):
        content_lines.append("")
        content_lines.append(status_info["details"])

    if not is_healthy and "error" in status_info:
        content_lines.append("")
        content_lines.append(f"[red]Error: {status_info['error']}[/red]")

    return Panel(
        "\n".join(content_lines), title=component, border_style=color, padding=(0, 1)
    )


def create_results_panel(run: RunResult) -> Panel:
    """
    Create the end-of-run summary panel
    """
    stats = run.stats
    lines = [
        f"Profile: @{run.username}",
        f"Total images: {stats.total}",
        f"[green]Downloaded: {stats.downloaded}[/green]",
        f"[dim]Skipped: {stats.skipped}[/dim]",
        f"[red]Failed: {stats.failed}[/red]",
        "",
        f"Duration: {format_duration(stats.elapsed_seconds)}",
        f"Rate: {stats.download_rate:.2f} images/s",
        f"Success rate: {stats.success_rate}%",
        f"Storage: {run.total_storage / (1024 * 1024):.2f} MB",
    ]

    if run.manifest_path:
        lines.append("")
        lines.append(f"Manifest: {run.manifest_path}")

    border = "green" if run.success else "yellow"
    return Panel("\n".join(lines), title="Download Results", border_style=border)


def create_failures_table(
    failures: Sequence[DownloadResult], limit: int = 20
) -> Table:
    """
    Create a table of failed items
    """
    table = Table(title="Failed Downloads", show_header=True, header_style="bold red")
    table.add_column("Image", style="cyan", no_wrap=True)
    table.add_column("Error", style="red")

    for result in failures[:limit]:
        table.add_row(result.work_item_id, result.error or "Unknown error")

    if len(failures) > limit:
        table.add_row(f"... and {len(failures) - limit} more", "")

    return table


def create_error_display(error: Exception, context: Optional[str] = None) -> Panel:
    """
    Create formatted error display with suggestions
    """
    error_lines = []

    if context:
        error_lines.append(f"Context: {context}")
        error_lines.append("")

    error_lines.append(f"Error: {str(error)}")
    error_lines.append("")

    error_type = type(error).__name__.lower()
    message = str(error).lower()
    suggestions: List[str] = []

    if "notfound" in error_type or "not found" in message:
        suggestions.extend(
            [
                "Check the spelling of the username",
                "Open https://vsco.co/<username> in a browser to confirm it exists",
            ]
        )

    elif "private" in error_type or "private" in message:
        suggestions.append("Private profiles cannot be downloaded")

    elif "pool" in error_type or "executable" in message or "browser" in message:
        suggestions.extend(
            [
                "Install the Chromium build used by Playwright: playwright install chromium",
                "Check system status: vsco-downloader status",
            ]
        )

    elif "config" in error_type or "config" in message:
        suggestions.extend(
            [
                "Check configuration file: vsco-downloader config show",
                "Regenerate defaults: vsco-downloader config init --force",
                "Verify VSCO_* environment variables",
            ]
        )

    elif "permission" in message:
        suggestions.extend(
            [
                "Check write permissions for the download directory",
                "Try with a different --download-dir",
            ]
        )

    elif "timeout" in message:
        suggestions.extend(
            [
                "Try with reduced concurrency: --concurrency 1",
                "Increase the timeout: --timeout 60000",
                "Check network stability",
            ]
        )

    else:
        suggestions.extend(
            [
                "Run with --verbose for detailed error information",
                "Check system status: vsco-downloader status",
            ]
        )

    error_lines.append("Suggestions:")
    for suggestion in suggestions:
        error_lines.append(f"  • {suggestion}")

    return Panel(
        "\n".join(error_lines),
        title="[red]Error[/red]",
        border_style="red",
        padding=(1, 2),
    )


def format_duration(seconds: float) -> str:
    """Format duration in a human-readable way"""
    if seconds < 60:
        return f"{seconds:.1f}s"
    elif seconds < 3600:
        minutes = int(seconds // 60)
        secs = seconds % 60
        return f"{minutes}m {secs:.0f}s"
    else:
        hours = int(seconds // 3600)
        minutes = int((seconds % 3600) // 60)
        return f"{hours}h {minutes}m"


def format_size(bytes_size: int) -> str:
    """Format file size in a human-readable way"""
    size_float = float(bytes_size)
    for unit in ["B", "KB", "MB", "GB"]:
        if size_float < 1024:
            return f"{size_float:.1f} {unit}"
        size_float /= 1024
    return f"{size_float:.1f} TB"
