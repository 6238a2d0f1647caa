"""Configuration management for chainoffset.

This module provides configuration management using Pydantic models.
Configuration can be provided via CLI arguments or defaults.

Key classes:
- OffsetConfig: Tolerances and extension limits passed to every operation
- GeometryConfig: Scale-relative tolerances for chain offsetting
- ProcessingConfig: Batch processing settings
- LoggingConfig: Logging settings
- ChainOffsetSettings: Main application settings
"""

from chainoffset.config.settings import (
    ChainOffsetSettings,
    ExtendDirection,
    GeometryConfig,
    LoggingConfig,
    OffsetConfig,
    ProcessingConfig,
    get_default_settings,
)

__all__ = [
    "ChainOffsetSettings",
    "ExtendDirection",
    "GeometryConfig",
    "LoggingConfig",
    "OffsetConfig",
    "ProcessingConfig",
    "get_default_settings",
]
