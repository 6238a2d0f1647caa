"""Configuration settings for chainoffset."""

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from chainoffset.domain import Point


class ExtendDirection(str, Enum):
    """Which end of a shape an extension is applied to."""

    START = "start"
    END = "end"
    AUTO = "auto"


class GeometryConfig(BaseModel):
    """Scale-relative tolerances used by the chain offset orchestrator.

    The working tolerance for a chain is derived from its bounding box so that
    very large drawings are not held to sub-micron precision.
    """

    model_config = ConfigDict(frozen=True)

    absolute_epsilon: float = Field(
        default=1e-6,
        gt=0.0,
        le=1.0,
        description="Smallest tolerance ever used, regardless of scale",
    )
    relative_epsilon: float = Field(
        default=1e-8,
        ge=0.0,
        le=1e-3,
        description="Tolerance as a fraction of the chain's bounding box diagonal",
    )
    snap_multiplier: float = Field(
        default=10.0,
        ge=1.0,
        le=1000.0,
        description="Snap threshold as a multiple of the working tolerance",
    )
    resolution_passes: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Maximum joint re-check passes after trimming and filling",
    )
    max_neighborhood: int = Field(
        default=4,
        ge=2,
        le=16,
        description="Largest index distance searched for non-adjacent overlaps",
    )
    validation_samples: int = Field(
        default=8,
        ge=2,
        le=64,
        description="Samples per offset shape used by validation",
    )

    def epsilon_for(self, diagonal: float, tolerance: float) -> float:
        """Working tolerance for a chain with the given bounding box diagonal.

        Args:
            diagonal: Bounding box diagonal of the chain
            tolerance: Caller-supplied tolerance

        Returns:
            The largest of the caller tolerance, the absolute floor and the
            scale-relative tolerance
        """
        return max(tolerance, self.absolute_epsilon, diagonal * self.relative_epsilon)

    def snap_for(self, epsilon: float, snap_threshold: float) -> float:
        """Snap threshold for a given working tolerance."""
        return max(snap_threshold, epsilon * self.snap_multiplier)


class OffsetConfig(BaseModel):
    """Immutable options passed to every geometry operation.

    Instances are constructed by the caller and never mutated; use
    ``model_copy(update=...)`` to derive per-call variants.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    tolerance: float = Field(
        default=1e-3,
        gt=0.0,
        description="Distance below which two geometric quantities are equal",
    )
    max_extension: float = Field(
        default=100.0,
        gt=0.0,
        description="Longest extension allowed when closing a gap",
    )
    snap_threshold: float = Field(
        default=1e-2,
        gt=0.0,
        description="Distance below which endpoints are merged instead of bridged",
    )
    extend_direction: ExtendDirection = Field(
        default=ExtendDirection.AUTO,
        description="End of the shape to extend",
    )
    preferred_intersection: Point | None = Field(
        default=None,
        description="Hint used to choose among several intersection candidates",
    )
    geometry: GeometryConfig = Field(default_factory=GeometryConfig)

    def to_dict(self) -> dict:
        """Serialize to a plain dictionary for worker processes."""
        data = self.model_dump(exclude={"preferred_intersection"})
        data["extend_direction"] = self.extend_direction.value
        data["preferred_intersection"] = (
            self.preferred_intersection.to_dict()
            if self.preferred_intersection is not None
            else None
        )
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "OffsetConfig":
        """Rebuild a configuration serialized with ``to_dict``."""
        values = dict(data)
        hint = values.pop("preferred_intersection", None)
        return cls(
            **values,
            preferred_intersection=Point.from_dict(hint) if hint is not None else None,
        )


class ProcessingConfig(BaseModel):
    """Configuration for batch chain processing."""

    max_workers: int | None = Field(
        default=None,
        description="Max worker processes (None = auto, 1 = run inline)",
    )
    skip_failed_chains: bool = Field(
        default=True,
        description="Leave failed chains out of the output file",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    log_file: Path | None = Field(
        default=None,
        description="Path to log file",
    )
    log_level: str = Field(
        default="WARNING",
        description="Console log level",
    )
    file_log_level: str = Field(
        default="DEBUG",
        description="File log level (more verbose)",
    )


class ChainOffsetSettings(BaseModel):
    """Main application settings."""

    offset: OffsetConfig = Field(default_factory=OffsetConfig)
    processing: ProcessingConfig = Field(default_factory=ProcessingConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


def get_default_settings() -> ChainOffsetSettings:
    """Get default application settings."""
    return ChainOffsetSettings()
