"""Rich console output helpers for the CLI.

This module provides user-friendly console output using Rich library
with progress bars, tables, and formatted messages.
"""


from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table
from rich.text import Text

from chainoffset.domain import ChainOffsetResult

console = Console()

# Unicode symbols for consistent visual language
SYM_STEP = "▸"  # Step indicator
SYM_OK = "✓"  # Success
SYM_ERR = "✗"  # Error
SYM_DOT = "·"  # Separator/secondary info


def create_progress() -> Progress:
    """Create a rich progress bar for chain processing.

    Returns:
        Configured Progress instance with bar and time elapsed.
    """
    return Progress(
        TextColumn("  "),
        BarColumn(bar_width=40, complete_style="green", finished_style="green"),
        TaskProgressColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=False,
    )


def print_header(version: str) -> None:
    """Print application header.

    Args:
        version: Application version string
    """
    console.print(f"\n[bold]chainoffset[/bold] v{version}")
    console.print("─" * 44)


def print_step(message: str) -> None:
    """Print a processing step indicator.

    Args:
        message: Step description message
    """
    console.print(f"\n{SYM_STEP} {message}")


def print_file_info(path: str, chain_count: int, distance: float) -> None:
    """Print chain file information.

    Args:
        path: Path to the chain file
        chain_count: Number of chains in the file
        distance: Offset distance
    """
    # Use Text to safely handle paths with special characters
    line = Text("  ")
    line.append(path)
    console.print(line)
    console.print(f"  {chain_count:,} chains {SYM_DOT} distance {distance:g}")


def _format_time(seconds: float) -> str:
    """Format seconds into human-readable time string."""
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    elif seconds < 60:
        return f"{seconds:.1f}s"
    else:
        mins = int(seconds // 60)
        secs = seconds % 60
        return f"{mins}m {secs:.1f}s"


def print_processing_info(workers: int, is_auto: bool = False) -> None:
    """Print processing configuration.

    Args:
        workers: Number of parallel workers
        is_auto: Whether the count was auto-detected
    """
    auto_suffix = " (auto)" if is_auto else ""
    console.print(f"  {workers} workers{auto_suffix} {SYM_DOT} Ctrl+C to cancel")


def build_results_table(results: list[tuple[str, ChainOffsetResult]]) -> Table:
    """Build a per-chain summary table.

    Args:
        results: (chain id, result) pairs in file order

    Returns:
        Rich table with one row per chain
    """
    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("Chain")
    table.add_column("Shapes", justify="right")
    table.add_column("Gaps", justify="right")
    table.add_column("Trims", justify="right")
    table.add_column("Sides")
    table.add_column("Status")

    for chain_id, result in results:
        sides = [c for c in (result.inner_chain, result.outer_chain) if c is not None]
        side_labels = " ".join(
            c.side.value if c.continuous else f"[yellow]{c.side.value}*[/yellow]" for c in sides
        )
        if not result.success:
            status = f"[red]{SYM_ERR} failed[/red]"
        elif result.warnings:
            status = f"[yellow]{len(result.warnings)} warnings[/yellow]"
        else:
            status = f"[green]{SYM_OK}[/green]"
        table.add_row(
            chain_id,
            str(result.metrics.total_shapes),
            str(result.metrics.gaps_filled),
            str(result.metrics.trims_applied),
            side_labels or "-",
            status,
        )
    return table


def print_results_table(results: list[tuple[str, ChainOffsetResult]]) -> None:
    """Print the per-chain summary table."""
    console.print()
    console.print(build_results_table(results))


def print_success(
    output_path: str,
    total_time_s: float,
    processed: int,
    gaps_filled: int,
    errors: int,
    discontinuous: int = 0,
    avg_time_ms: float | None = None,
    min_time_ms: float | None = None,
    max_time_ms: float | None = None,
) -> None:
    """Print success message with summary.

    Args:
        output_path: Path to output file
        total_time_s: Total processing time in seconds
        processed: Number of chains offset
        gaps_filled: Total number of gaps filled
        errors: Number of errors encountered
        discontinuous: Number of chains with a discontinuous side
        avg_time_ms: Average processing time per chain in milliseconds
        min_time_ms: Minimum processing time per chain in milliseconds
        max_time_ms: Maximum processing time per chain in milliseconds
    """
    time_str = _format_time(total_time_s)

    console.print(f"\n[bold green]{SYM_OK} Complete[/bold green] in {time_str}")

    line = Text("  ")
    line.append(output_path, style="bold")
    console.print(line)

    error_style = "red" if errors > 0 else "green"
    console.print(
        f"  {processed} chains {SYM_DOT} {gaps_filled} gaps filled {SYM_DOT} "
        f"[{error_style}]{errors} errors[/{error_style}]"
    )
    if discontinuous:
        console.print(f"  [yellow]{discontinuous} chains not continuous[/yellow]")

    if avg_time_ms is not None:
        timing_str = f"{avg_time_ms:.1f}ms avg"
        if min_time_ms is not None and max_time_ms is not None:
            timing_str += f" ({min_time_ms:.1f}–{max_time_ms:.1f}ms range)"
        console.print(f"  {timing_str}")


def print_error(message: str, details: str | None = None) -> None:
    """Print error message.

    Args:
        message: Main error message
        details: Optional detailed error information
    """
    console.print(f"\n[bold red]{SYM_ERR} Error:[/bold red] {message}")
    if details:
        console.print(f"  {details}")


def print_cancellation_notice() -> None:
    """Print cancellation acknowledgment."""
    console.print(f"\n{SYM_DOT} Cancelling... waiting for in-progress chains")


def print_cancellation_summary(processed: int, cancelled: int) -> None:
    """Print cancellation summary.

    Args:
        processed: Number of chains offset before cancellation
        cancelled: Number of pending tasks that were cancelled
    """
    console.print(f"\n{SYM_DOT} [bold]Cancelled[/bold]")
    console.print(f"  {processed} chains completed {SYM_DOT} {cancelled} tasks cancelled")
    console.print("  No output file created")
