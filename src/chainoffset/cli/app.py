"""CLI application entry point for chainoffset.

This module provides the main CLI interface using Typer.
"""

import os
from pathlib import Path
from typing import Annotated

import typer

from chainoffset import __version__
from chainoffset.cli.output import (
    console,
    create_progress,
    print_cancellation_notice,
    print_cancellation_summary,
    print_error,
    print_file_info,
    print_header,
    print_processing_info,
    print_results_table,
    print_step,
    print_success,
)
from chainoffset.config import (
    ChainOffsetSettings,
    LoggingConfig,
    OffsetConfig,
    ProcessingConfig,
)
from chainoffset.core import OffsetProcessor
from chainoffset.exceptions import ChainLoadError, ChainOffsetError, ResultSaveError
from chainoffset.io import ChainReader, ResultWriter

# Create the Typer app
app = typer.Typer(
    name="chainoffset",
    help="Compute inner/outer offset toolpaths for 2D geometry chains.",
    add_completion=False,
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold blue]chainoffset[/bold blue] v{__version__}")
        raise typer.Exit()


@app.command()
def offset(
    input_file: Annotated[
        Path,
        typer.Argument(
            help="Path to input chain file (JSON)",
            show_default=False,
        ),
    ],
    distance: Annotated[
        float,
        typer.Option(
            "--distance",
            "-d",
            help="Offset distance (both sides are produced)",
            show_default=False,
        ),
    ],
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Output path (default: {name}-offset.json)",
        ),
    ] = None,
    tolerance: Annotated[
        float,
        typer.Option(
            "--tolerance",
            "-t",
            help="Geometric tolerance",
            min=1e-12,
        ),
    ] = 1e-3,
    max_extension: Annotated[
        float,
        typer.Option(
            "--max-extension",
            help="Longest extension allowed when filling a gap",
            min=1e-12,
        ),
    ] = 100.0,
    snap_threshold: Annotated[
        float,
        typer.Option(
            "--snap-threshold",
            help="Distance below which endpoints are merged",
            min=1e-12,
        ),
    ] = 1e-2,
    workers: Annotated[
        int | None,
        typer.Option(
            "--workers",
            "-j",
            help="Number of parallel workers (default: auto, 1 runs inline)",
            min=1,
        ),
    ] = None,
    keep_failed: Annotated[
        bool,
        typer.Option(
            "--keep-failed",
            help="Write failure entries for chains that could not be offset",
        ),
    ] = False,
    log_file: Annotated[
        Path | None,
        typer.Option(
            "--log-file",
            help="Write detailed logs to file",
        ),
    ] = None,
    log_level: Annotated[
        str,
        typer.Option(
            "--log-level",
            help="Logging level (DEBUG|INFO|WARNING|ERROR)",
        ),
    ] = "WARNING",
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Verbose console output (per-chain table)",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Minimal console output",
        ),
    ] = False,
    _version: Annotated[  # noqa: ARG001
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Offset every chain in a chain file on both sides.

    Closed chains produce an inner and an outer offset; open chains produce a
    left and a right offset. Corners are trimmed where offsets overlap and
    extended where they fall short.

    Example:
        chainoffset part.json --distance 2.5

    This will create part-offset.json with the offset chains of every chain
    in part.json.
    """
    if verbose and quiet:
        print_error("Cannot use --verbose and --quiet together")
        raise typer.Exit(code=1)

    if not input_file.exists():
        print_error(
            f"Input file not found: {input_file}",
            details=f"The file '{input_file}' does not exist or is not accessible.",
        )
        raise typer.Exit(code=1)

    if not input_file.is_file():
        print_error(
            f"Input path is not a file: {input_file}",
            details="Please provide a path to a JSON chain file.",
        )
        raise typer.Exit(code=1)

    if distance == 0:
        print_error("Offset distance must be non-zero")
        raise typer.Exit(code=1)

    if not quiet:
        print_header(__version__)

    settings = ChainOffsetSettings(
        offset=OffsetConfig(
            tolerance=tolerance,
            max_extension=max_extension,
            snap_threshold=snap_threshold,
        ),
        processing=ProcessingConfig(
            max_workers=workers,
            skip_failed_chains=not keep_failed,
        ),
        logging=LoggingConfig(
            log_file=log_file,
            log_level=log_level if not quiet else "ERROR",
        ),
    )

    try:
        if not quiet:
            print_step("Loading chains")

        reader = ChainReader(input_file)
        try:
            reader.load()
        except FileNotFoundError as e:
            raise ChainLoadError(str(input_file), str(e)) from e
        chain_count = reader.chain_count

        if not quiet:
            print_file_info(str(input_file), chain_count, distance)

        if chain_count == 0:
            if not quiet:
                console.print("\nNo chains found. Nothing to process.")
            raise typer.Exit(code=0)

        if not quiet:
            actual_workers = workers if workers else os.cpu_count() or 1
            print_step("Offsetting")
            print_processing_info(actual_workers, is_auto=(workers is None))

        actual_output_path = output if output is not None else ResultWriter.get_output_path(input_file)

        processor = OffsetProcessor(settings)
        stats = None

        try:
            if not quiet:
                with create_progress() as progress:
                    task_id = progress.add_task(
                        f"Offsetting {chain_count} chains",
                        total=chain_count,
                    )

                    def update_progress(completed: int, *_: object) -> None:
                        progress.update(task_id, completed=completed)

                    stats = processor.process(
                        chain_path=input_file,
                        distance=distance,
                        output_path=actual_output_path,
                        max_workers=workers,
                        progress_callback=update_progress,
                    )
            else:
                stats = processor.process(
                    chain_path=input_file,
                    distance=distance,
                    output_path=actual_output_path,
                    max_workers=workers,
                )
        except KeyboardInterrupt:
            if not quiet:
                live = processor.processing_logger.stats
                print_cancellation_notice()
                print_cancellation_summary(
                    processed=live.processed_count,
                    cancelled=live.cancelled_count,
                )
            raise typer.Exit(code=130) from None  # Standard Unix SIGINT exit code

        if verbose:
            print_results_table(processor.results)

        if not quiet:
            print_success(
                output_path=str(actual_output_path),
                total_time_s=stats.duration_seconds,
                processed=stats.processed_count,
                gaps_filled=stats.gaps_filled,
                errors=stats.error_count,
                discontinuous=stats.discontinuous_count,
                avg_time_ms=stats.avg_chain_time_ms,
                min_time_ms=stats.min_chain_time_ms,
                max_time_ms=stats.max_chain_time_ms,
            )

    except ChainLoadError as e:
        print_error(f"Could not load chains: {e.reason}")
        raise typer.Exit(code=1)
    except ResultSaveError as e:
        print_error(f"Could not save results: {e.reason}")
        raise typer.Exit(code=1)
    except ChainOffsetError as e:
        print_error(str(e))
        raise typer.Exit(code=1)
    except typer.Exit:
        # Re-raise typer.Exit to allow clean exits
        raise


def cli() -> None:
    """Entry point for the CLI application."""
    app()


def main() -> None:
    """Entry point for the CLI application (alias for cli)."""
    cli()


if __name__ == "__main__":
    cli()
