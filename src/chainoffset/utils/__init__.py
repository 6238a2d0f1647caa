"""Utility functions for chainoffset.

This module provides:

- Logging setup and configuration
- Batch processing statistics
"""

from chainoffset.utils.logging import (
    ProcessingLogger,
    ProcessingStats,
    configure_logging,
    default_log_path,
)

__all__ = [
    "ProcessingLogger",
    "ProcessingStats",
    "configure_logging",
    "default_log_path",
]
