"""Geometric primitives and the tagged Shape wrapper.

This module defines the immutable value types every operation works on:
- Point: A 2D point (also used as a vector)
- Line, Arc, Circle, Polyline, Ellipse, Spline: geometry variants
- ShapeType: Enum tag derived from the geometry variant
- Shape: An identified geometry payload

Angles are in radians. Arcs sweep from ``start_angle`` to ``end_angle`` in
their rotational sense; circles and elliptical arcs run counter-clockwise.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeAlias, assert_never


class ShapeType(str, Enum):
    """Type tag of a shape's geometry."""

    LINE = "line"
    ARC = "arc"
    CIRCLE = "circle"
    POLYLINE = "polyline"
    ELLIPSE = "ellipse"
    SPLINE = "spline"


@dataclass(frozen=True, slots=True)
class Point:
    """A point in 2D space.

    Immutable and hashable. Also used for direction vectors.

    Attributes:
        x: X coordinate
        y: Y coordinate
    """

    x: float
    y: float

    def to_tuple(self) -> tuple[float, float]:
        """Convert to simple (x, y) tuple."""
        return (self.x, self.y)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for IPC."""
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Point":
        """Deserialize from dictionary."""
        return cls(x=float(data["x"]), y=float(data["y"]))


@dataclass(frozen=True, slots=True)
class Line:
    """A straight segment from ``start`` to ``end``."""

    start: Point
    end: Point

    def to_dict(self) -> dict[str, Any]:
        return {"start": self.start.to_dict(), "end": self.end.to_dict()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Line":
        return cls(start=Point.from_dict(data["start"]), end=Point.from_dict(data["end"]))


@dataclass(frozen=True, slots=True)
class Arc:
    """A circular arc.

    Attributes:
        center: Arc center
        radius: Radius, strictly positive
        start_angle: Angle of the start point in radians
        end_angle: Angle of the end point in radians
        clockwise: Rotational sense from start to end
    """

    center: Point
    radius: float
    start_angle: float
    end_angle: float
    clockwise: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "center": self.center.to_dict(),
            "radius": self.radius,
            "start_angle": self.start_angle,
            "end_angle": self.end_angle,
            "clockwise": self.clockwise,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Arc":
        return cls(
            center=Point.from_dict(data["center"]),
            radius=float(data["radius"]),
            start_angle=float(data["start_angle"]),
            end_angle=float(data["end_angle"]),
            clockwise=bool(data.get("clockwise", False)),
        )


@dataclass(frozen=True, slots=True)
class Circle:
    """A full circle, traversed counter-clockwise from angle 0."""

    center: Point
    radius: float

    def to_dict(self) -> dict[str, Any]:
        return {"center": self.center.to_dict(), "radius": self.radius}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Circle":
        return cls(center=Point.from_dict(data["center"]), radius=float(data["radius"]))


@dataclass(frozen=True, slots=True)
class PolylineVertex:
    """A polyline vertex with the bulge of the segment that starts at it."""

    x: float
    y: float
    bulge: float = 0.0

    @property
    def point(self) -> Point:
        return Point(self.x, self.y)

    def to_dict(self) -> dict[str, Any]:
        return {"x": self.x, "y": self.y, "bulge": self.bulge}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PolylineVertex":
        return cls(x=float(data["x"]), y=float(data["y"]), bulge=float(data.get("bulge", 0.0)))


@dataclass(frozen=True, slots=True)
class Polyline:
    """A sequence of straight segments between vertices.

    Bulge values are carried as data only; every segment is treated as the
    chord between its two vertices.
    """

    vertices: tuple[PolylineVertex, ...]
    closed: bool = False

    @property
    def points(self) -> list[Point]:
        """Vertex positions, repeating the first vertex when closed."""
        pts = [v.point for v in self.vertices]
        if self.closed and pts:
            pts.append(pts[0])
        return pts

    @classmethod
    def from_points(cls, points: list[Point], closed: bool = False) -> "Polyline":
        """Build a polyline without bulges from plain points."""
        return cls(vertices=tuple(PolylineVertex(p.x, p.y) for p in points), closed=closed)

    def to_dict(self) -> dict[str, Any]:
        return {"vertices": [v.to_dict() for v in self.vertices], "closed": self.closed}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Polyline":
        return cls(
            vertices=tuple(PolylineVertex.from_dict(v) for v in data["vertices"]),
            closed=bool(data.get("closed", False)),
        )


@dataclass(frozen=True, slots=True)
class Ellipse:
    """A full ellipse or a counter-clockwise elliptical arc.

    Attributes:
        center: Ellipse center
        major_axis_endpoint: Vector from the center to the end of the major axis
        minor_to_major_ratio: Minor radius divided by major radius, in (0, 1]
        start_param: Start parametric angle of an arc (None for a full ellipse)
        end_param: End parametric angle of an arc (None for a full ellipse)
    """

    center: Point
    major_axis_endpoint: Point
    minor_to_major_ratio: float
    start_param: float | None = None
    end_param: float | None = None

    @property
    def is_arc(self) -> bool:
        return self.start_param is not None and self.end_param is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "center": self.center.to_dict(),
            "major_axis_endpoint": self.major_axis_endpoint.to_dict(),
            "minor_to_major_ratio": self.minor_to_major_ratio,
            "start_param": self.start_param,
            "end_param": self.end_param,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Ellipse":
        start = data.get("start_param")
        end = data.get("end_param")
        return cls(
            center=Point.from_dict(data["center"]),
            major_axis_endpoint=Point.from_dict(data["major_axis_endpoint"]),
            minor_to_major_ratio=float(data["minor_to_major_ratio"]),
            start_param=float(start) if start is not None else None,
            end_param=float(end) if end is not None else None,
        )


@dataclass(frozen=True, slots=True)
class Spline:
    """A (rational) NURBS curve.

    Attributes:
        control_points: Control polygon
        knots: Non-decreasing knot vector, ``len(control_points) + degree + 1`` long
        weights: One positive weight per control point
        degree: Polynomial degree
        closed: Whether the curve is closed (informational)
    """

    control_points: tuple[Point, ...]
    knots: tuple[float, ...]
    weights: tuple[float, ...]
    degree: int = 3
    closed: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "control_points": [p.to_dict() for p in self.control_points],
            "knots": list(self.knots),
            "weights": list(self.weights),
            "degree": self.degree,
            "closed": self.closed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Spline":
        points = tuple(Point.from_dict(p) for p in data["control_points"])
        weights = data.get("weights") or [1.0] * len(points)
        return cls(
            control_points=points,
            knots=tuple(float(k) for k in data["knots"]),
            weights=tuple(float(w) for w in weights),
            degree=int(data.get("degree", 3)),
            closed=bool(data.get("closed", False)),
        )


Geometry: TypeAlias = Line | Arc | Circle | Polyline | Ellipse | Spline

_GEOMETRY_CLASSES: dict[ShapeType, type] = {
    ShapeType.LINE: Line,
    ShapeType.ARC: Arc,
    ShapeType.CIRCLE: Circle,
    ShapeType.POLYLINE: Polyline,
    ShapeType.ELLIPSE: Ellipse,
    ShapeType.SPLINE: Spline,
}


def new_shape_id() -> str:
    """Generate a fresh shape identifier."""
    return uuid.uuid4().hex[:12]


def shape_type_of(geometry: Geometry) -> ShapeType:
    """Type tag for a geometry variant."""
    match geometry:
        case Line():
            return ShapeType.LINE
        case Arc():
            return ShapeType.ARC
        case Circle():
            return ShapeType.CIRCLE
        case Polyline():
            return ShapeType.POLYLINE
        case Ellipse():
            return ShapeType.ELLIPSE
        case Spline():
            return ShapeType.SPLINE
        case _:
            assert_never(geometry)


@dataclass(frozen=True, slots=True)
class Shape:
    """An identified geometric primitive.

    The type tag is derived from the geometry payload, so the two can never
    disagree.

    Attributes:
        geometry: One of the geometry variants
        id: Stable identifier
    """

    geometry: Geometry
    id: str = field(default_factory=new_shape_id)

    @property
    def type(self) -> ShapeType:
        return shape_type_of(self.geometry)

    def with_geometry(self, geometry: Geometry) -> "Shape":
        """Copy of this shape with new geometry and the same id."""
        return Shape(geometry=geometry, id=self.id)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for IPC.

        Returns:
            Dictionary with id, type and geometry fields
        """
        return {
            "id": self.id,
            "type": self.type.value,
            "geometry": self.geometry.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Shape":
        """Deserialize from dictionary.

        Args:
            data: Dictionary with id, type and geometry fields

        Returns:
            Shape instance

        Raises:
            ValueError: If the type tag is unknown
        """
        shape_type = ShapeType(data["type"])
        geometry = _GEOMETRY_CLASSES[shape_type].from_dict(data["geometry"])
        return cls(geometry=geometry, id=str(data.get("id") or new_shape_id()))
