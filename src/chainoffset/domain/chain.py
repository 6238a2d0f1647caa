"""Chains and offset chains.

A Chain is an ordered sequence of shapes where each shape ends where the
next begins. An OffsetChain is the resolved result for one side, together
with records of the joints that were trimmed or filled.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from chainoffset.domain.shapes import Point, Shape, new_shape_id


class OffsetSide(str, Enum):
    """Side of the original chain an offset lies on.

    Closed chains use INNER/OUTER; open chains use LEFT/RIGHT relative to the
    direction of travel.
    """

    INNER = "inner"
    OUTER = "outer"
    LEFT = "left"
    RIGHT = "right"


class CornerType(str, Enum):
    """How two trimmed shapes meet."""

    SHARP = "sharp"
    TANGENT = "tangent"


@dataclass(frozen=True, slots=True)
class Chain:
    """An ordered, connected sequence of shapes.

    Attributes:
        shapes: Shapes in traversal order
        closed: Whether the last shape's end meets the first shape's start
        id: Chain identifier
    """

    shapes: tuple[Shape, ...]
    closed: bool = False
    id: str = field(default_factory=new_shape_id)

    def __len__(self) -> int:
        return len(self.shapes)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for IPC."""
        return {
            "id": self.id,
            "closed": self.closed,
            "shapes": [s.to_dict() for s in self.shapes],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Chain":
        """Deserialize from dictionary."""
        return cls(
            shapes=tuple(Shape.from_dict(s) for s in data["shapes"]),
            closed=bool(data.get("closed", False)),
            id=str(data.get("id") or new_shape_id()),
        )


@dataclass(frozen=True, slots=True)
class TrimPoint:
    """Record of a joint resolved by trimming both shapes."""

    point: Point
    shape1_index: int
    shape2_index: int
    corner_type: CornerType = CornerType.SHARP

    def to_dict(self) -> dict[str, Any]:
        return {
            "point": self.point.to_dict(),
            "shape1_index": self.shape1_index,
            "shape2_index": self.shape2_index,
            "corner_type": self.corner_type.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TrimPoint":
        return cls(
            point=Point.from_dict(data["point"]),
            shape1_index=int(data["shape1_index"]),
            shape2_index=int(data["shape2_index"]),
            corner_type=CornerType(data.get("corner_type", "sharp")),
        )


@dataclass(frozen=True, slots=True)
class GapFillLocation:
    """Where in an offset chain a gap was filled."""

    shape1_index: int
    shape2_index: int
    point: Point

    def to_dict(self) -> dict[str, Any]:
        return {
            "shape1_index": self.shape1_index,
            "shape2_index": self.shape2_index,
            "point": self.point.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GapFillLocation":
        return cls(
            shape1_index=int(data["shape1_index"]),
            shape2_index=int(data["shape2_index"]),
            point=Point.from_dict(data["point"]),
        )


@dataclass(frozen=True, slots=True)
class GapFill:
    """Record of a joint closed by extending one or both shapes.

    Attributes:
        gap_size: Distance between the endpoints before filling
        modified_shapes: (original, modified) pairs for every changed shape
        gap_location: Joint indices and the midpoint of the original gap
        method: Fill method, always "extend"
    """

    gap_size: float
    modified_shapes: tuple[tuple[Shape, Shape], ...]
    gap_location: GapFillLocation
    method: str = "extend"

    def to_dict(self) -> dict[str, Any]:
        return {
            "method": self.method,
            "gap_size": self.gap_size,
            "modified_shapes": [
                {"original": original.to_dict(), "modified": modified.to_dict()}
                for original, modified in self.modified_shapes
            ],
            "gap_location": self.gap_location.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GapFill":
        return cls(
            gap_size=float(data["gap_size"]),
            modified_shapes=tuple(
                (Shape.from_dict(m["original"]), Shape.from_dict(m["modified"]))
                for m in data["modified_shapes"]
            ),
            gap_location=GapFillLocation.from_dict(data["gap_location"]),
            method=data.get("method", "extend"),
        )


@dataclass(frozen=True, slots=True)
class ValidationReport:
    """Outcome of checking an offset chain against its original.

    Attributes:
        samples: Number of points sampled
        deviations: Samples whose distance to the original deviates beyond tolerance
        max_deviation: Largest deviation seen
        crossings: Offset/original shape pairs that intersect
        winding_consistent: Whether a closed offset keeps the original winding
    """

    samples: int = 0
    deviations: int = 0
    max_deviation: float = 0.0
    crossings: int = 0
    winding_consistent: bool = True

    @property
    def is_valid(self) -> bool:
        return self.deviations == 0 and self.crossings == 0 and self.winding_consistent

    def to_dict(self) -> dict[str, Any]:
        return {
            "samples": self.samples,
            "deviations": self.deviations,
            "max_deviation": self.max_deviation,
            "crossings": self.crossings,
            "winding_consistent": self.winding_consistent,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ValidationReport":
        return cls(
            samples=int(data.get("samples", 0)),
            deviations=int(data.get("deviations", 0)),
            max_deviation=float(data.get("max_deviation", 0.0)),
            crossings=int(data.get("crossings", 0)),
            winding_consistent=bool(data.get("winding_consistent", True)),
        )


@dataclass(frozen=True, slots=True)
class OffsetChain:
    """One resolved side of a chain offset.

    Attributes:
        original_chain_id: Id of the chain that was offset
        side: Side of the original chain
        shapes: Offset shapes in traversal order
        closed: Whether the offset chain is closed
        continuous: Whether every joint was resolved within tolerance
        gap_fills: Joints closed by extension
        trim_points: Joints closed by trimming
        validation: Distance, crossing and winding checks
        id: Offset chain identifier
    """

    original_chain_id: str
    side: OffsetSide
    shapes: tuple[Shape, ...]
    closed: bool
    continuous: bool
    gap_fills: tuple[GapFill, ...] = ()
    trim_points: tuple[TrimPoint, ...] = ()
    validation: ValidationReport = field(default_factory=ValidationReport)
    id: str = field(default_factory=new_shape_id)

    def to_chain(self) -> Chain:
        """View this offset as a plain chain (e.g. to offset it again)."""
        return Chain(shapes=self.shapes, closed=self.closed, id=self.id)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for IPC."""
        return {
            "id": self.id,
            "original_chain_id": self.original_chain_id,
            "side": self.side.value,
            "shapes": [s.to_dict() for s in self.shapes],
            "closed": self.closed,
            "continuous": self.continuous,
            "gap_fills": [g.to_dict() for g in self.gap_fills],
            "trim_points": [t.to_dict() for t in self.trim_points],
            "validation": self.validation.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OffsetChain":
        """Deserialize from dictionary."""
        return cls(
            original_chain_id=data["original_chain_id"],
            side=OffsetSide(data["side"]),
            shapes=tuple(Shape.from_dict(s) for s in data["shapes"]),
            closed=bool(data["closed"]),
            continuous=bool(data["continuous"]),
            gap_fills=tuple(GapFill.from_dict(g) for g in data.get("gap_fills", [])),
            trim_points=tuple(TrimPoint.from_dict(t) for t in data.get("trim_points", [])),
            validation=ValidationReport.from_dict(data.get("validation", {})),
            id=str(data.get("id") or new_shape_id()),
        )
