"""Command-line interface for chainoffset.

This module provides the CLI using Typer with rich output for
user-friendly feedback and progress reporting.

Key features:
- Progress bars for chain processing
- Verbose/quiet output modes
- Per-chain summary table
- Detailed error reporting
"""

from chainoffset.cli.app import cli, main

__all__ = ["cli", "main"]
