"""Result value objects returned by the geometry operations.

No public operation raises on geometric failure; each returns one of these
objects carrying ``success``, ``warnings`` and ``errors``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from chainoffset.domain.chain import OffsetChain
from chainoffset.domain.shapes import Point, Shape


class IntersectionType(str, Enum):
    """How an intersection was obtained."""

    EXACT = "exact"
    APPROXIMATE = "approximate"
    TANGENT = "tangent"
    COINCIDENT = "coincident"


class KeepSide(str, Enum):
    """Which part of a shape survives a trim.

    BEFORE is an alias of START and AFTER of END, used at joints where the
    first shape keeps the part before the corner and the second the part after.
    """

    START = "start"
    END = "end"
    BEFORE = "before"
    AFTER = "after"

    @property
    def keeps_start(self) -> bool:
        return self in (KeepSide.START, KeepSide.BEFORE)


class ExtensionType(str, Enum):
    """Unit of an extension amount."""

    LINEAR = "linear"
    ANGULAR = "angular"


class FillStrategy(str, Enum):
    """Strategy chosen for closing a gap."""

    SNAP_ENDPOINTS = "snap-endpoints"
    EXTEND_BOTH = "extend-both"


@dataclass(frozen=True, slots=True)
class IntersectionResult:
    """An intersection between two shapes.

    Attributes:
        point: Intersection location
        param1: Normalized position along the first shape (outside [0, 1] on an extension)
        param2: Normalized position along the second shape
        distance: Separation between the two shapes at the solution
        type: How the solution was obtained
        confidence: Numerical certainty in [0, 1]
        on_extension: Whether either parameter lies outside [0, 1]
    """

    point: Point
    param1: float
    param2: float
    distance: float = 0.0
    type: IntersectionType = IntersectionType.EXACT
    confidence: float = 1.0
    on_extension: bool = False

    def swapped(self) -> "IntersectionResult":
        """Same intersection with the roles of the two shapes exchanged."""
        return IntersectionResult(
            point=self.point,
            param1=self.param2,
            param2=self.param1,
            distance=self.distance,
            type=self.type,
            confidence=self.confidence,
            on_extension=self.on_extension,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "point": self.point.to_dict(),
            "param1": self.param1,
            "param2": self.param2,
            "distance": self.distance,
            "type": self.type.value,
            "confidence": self.confidence,
            "on_extension": self.on_extension,
        }


@dataclass(frozen=True, slots=True)
class TrimResult:
    """Outcome of trimming a shape."""

    success: bool
    shape: Shape | None = None
    warnings: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()
    confidence: float = 1.0

    @classmethod
    def failure(cls, error: str, warnings: tuple[str, ...] = ()) -> "TrimResult":
        return cls(success=False, warnings=warnings, errors=(error,), confidence=0.0)


@dataclass(frozen=True, slots=True)
class ShapeExtension:
    """Description of how a shape was lengthened.

    Attributes:
        type: Whether ``amount`` is a length or an angle in radians
        amount: Extension amount
        direction: End that was extended ("start" or "end")
        original_shape: The shape before extension
        extension_start: Where the added portion begins
        extension_end: Where the added portion ends
    """

    type: ExtensionType
    amount: float
    direction: str
    original_shape: Shape
    extension_start: Point
    extension_end: Point

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "amount": self.amount,
            "direction": self.direction,
            "original_shape": self.original_shape.to_dict(),
            "extension_start": self.extension_start.to_dict(),
            "extension_end": self.extension_end.to_dict(),
        }


@dataclass(frozen=True, slots=True)
class FillResult:
    """Outcome of extending a shape to a point."""

    success: bool
    shape: Shape | None = None
    extension: ShapeExtension | None = None
    intersection_point: Point | None = None
    warnings: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()
    confidence: float = 1.0

    @classmethod
    def failure(cls, error: str, warnings: tuple[str, ...] = ()) -> "FillResult":
        return cls(success=False, warnings=warnings, errors=(error,), confidence=0.0)


@dataclass(frozen=True, slots=True)
class GapLocation:
    """The two endpoints that bound a gap."""

    point1: Point
    point2: Point

    @property
    def midpoint(self) -> Point:
        return Point((self.point1.x + self.point2.x) / 2, (self.point1.y + self.point2.y) / 2)


@dataclass(frozen=True, slots=True)
class GapContext:
    """Input to the fill engine for one joint.

    Attributes:
        shape1: Shape whose end bounds the gap
        shape2: Shape whose start bounds the gap
        gap_size: Distance between the two endpoints
        gap_location: The two endpoints
        shape1_index: Index of shape1 in its chain
        shape2_index: Index of shape2 in its chain
        is_closed_chain: Whether the chain is closed
    """

    shape1: Shape
    shape2: Shape
    gap_size: float
    gap_location: GapLocation
    shape1_index: int = 0
    shape2_index: int = 1
    is_closed_chain: bool = False


@dataclass(frozen=True, slots=True)
class GapFillResult:
    """Outcome of filling a gap: one result per shape."""

    shape1_result: FillResult
    shape2_result: FillResult
    strategy: FillStrategy = FillStrategy.EXTEND_BOTH
    intersection_point: Point | None = None

    @property
    def success(self) -> bool:
        return self.shape1_result.success and self.shape2_result.success

    @property
    def errors(self) -> tuple[str, ...]:
        return self.shape1_result.errors + self.shape2_result.errors

    @property
    def warnings(self) -> tuple[str, ...]:
        return self.shape1_result.warnings + self.shape2_result.warnings


@dataclass(frozen=True, slots=True)
class OffsetMetrics:
    """Counters describing one chain offset run."""

    total_shapes: int = 0
    gaps_filled: int = 0
    trims_applied: int = 0
    intersections_found: int = 0
    deviations: int = 0
    crossings: int = 0
    processing_time_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_shapes": self.total_shapes,
            "gaps_filled": self.gaps_filled,
            "trims_applied": self.trims_applied,
            "intersections_found": self.intersections_found,
            "deviations": self.deviations,
            "crossings": self.crossings,
            "processing_time_ms": self.processing_time_ms,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OffsetMetrics":
        return cls(**{k: data[k] for k in cls.__dataclass_fields__ if k in data})


@dataclass(frozen=True, slots=True)
class ChainOffsetResult:
    """Outcome of offsetting a whole chain.

    For open chains ``inner_chain`` holds the left side and ``outer_chain``
    the right side.
    """

    success: bool
    inner_chain: OffsetChain | None = None
    outer_chain: OffsetChain | None = None
    metrics: OffsetMetrics = field(default_factory=OffsetMetrics)
    warnings: tuple[str, ...] = ()
    errors: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for IPC."""
        return {
            "success": self.success,
            "inner_chain": self.inner_chain.to_dict() if self.inner_chain else None,
            "outer_chain": self.outer_chain.to_dict() if self.outer_chain else None,
            "metrics": self.metrics.to_dict(),
            "warnings": list(self.warnings),
            "errors": list(self.errors),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ChainOffsetResult":
        """Deserialize from dictionary."""
        inner = data.get("inner_chain")
        outer = data.get("outer_chain")
        return cls(
            success=bool(data["success"]),
            inner_chain=OffsetChain.from_dict(inner) if inner else None,
            outer_chain=OffsetChain.from_dict(outer) if outer else None,
            metrics=OffsetMetrics.from_dict(data.get("metrics", {})),
            warnings=tuple(data.get("warnings", [])),
            errors=tuple(data.get("errors", [])),
        )
