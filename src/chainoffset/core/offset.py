"""Per-shape offsets.

Offsets a single shape by a signed distance measured along the right-hand
normal of its direction of travel. Lines are translated, arcs and circles
change radius, polylines offset each segment and mitre the corners, and
ellipses and splines are sampled along their true normals and re-fitted with
an interpolating spline.

Key functions:
- offset_shape: Offset one shape by a signed distance
"""

import math
from typing import assert_never

from chainoffset.core.curves import CurveEvaluator, interpolate_points
from chainoffset.core.geometry import (
    EPSILON,
    add,
    cross,
    distance,
    ellipse_derivative,
    ellipse_frame,
    ellipse_start_param,
    ellipse_sweep,
    ellipse_point,
    normal_at,
    normalize,
    point_at,
    right_normal,
    scale,
    sub,
)
from chainoffset.domain import (
    Arc,
    Circle,
    Ellipse,
    Line,
    Point,
    Polyline,
    PolylineVertex,
    Shape,
    Spline,
)
from chainoffset.exceptions import ValidationError

MIN_CURVE_SAMPLES = 32
MAX_CURVE_SAMPLES = 200
SAMPLES_PER_CONTROL_POINT = 12
ELLIPSE_SAMPLE_STEP = math.pi / 32


def _offset_line(line: Line, d: float) -> Line:
    shift = scale(right_normal(normalize(sub(line.end, line.start))), d)
    return Line(add(line.start, shift), add(line.end, shift))


def _offset_arc(arc: Arc, d: float) -> Arc:
    # The right side of a counter-clockwise arc faces away from the centre
    radius = arc.radius - d if arc.clockwise else arc.radius + d
    if radius <= EPSILON:
        raise ValidationError("Offset distance collapses arc radius")
    return Arc(arc.center, radius, arc.start_angle, arc.end_angle, arc.clockwise)


def _offset_circle(circle: Circle, d: float) -> Circle:
    radius = circle.radius + d
    if radius <= EPSILON:
        raise ValidationError("Offset distance collapses circle radius")
    return Circle(circle.center, radius)


def _miter(a_start: Point, a_end: Point, b_start: Point, b_end: Point) -> Point:
    """Intersection of two offset segment lines, or their meeting point if parallel."""
    da = sub(a_end, a_start)
    db = sub(b_end, b_start)
    denom = cross(da, db)
    if abs(denom) < EPSILON * max(1.0, math.hypot(da.x, da.y) * math.hypot(db.x, db.y)):
        return Point((a_end.x + b_start.x) / 2, (a_end.y + b_start.y) / 2)
    s = cross(sub(b_start, a_start), db) / denom
    return add(a_start, scale(da, s))


def _offset_polyline(polyline: Polyline, d: float) -> tuple[Polyline, tuple[str, ...]]:
    points: list[Point] = []
    for v in polyline.vertices:
        if not points or distance(points[-1], v.point) > EPSILON:
            points.append(v.point)
    if polyline.closed and len(points) > 2 and distance(points[0], points[-1]) <= EPSILON:
        points.pop()
    if len(points) < 2:
        raise ValidationError("Polyline has fewer than two distinct points")

    count = len(points)
    segment_count = count if polyline.closed else count - 1
    segments = [
        _offset_line(Line(points[i], points[(i + 1) % count]), d) for i in range(segment_count)
    ]

    if polyline.closed:
        new_points = [
            _miter(segments[i - 1].start, segments[i - 1].end, segments[i].start, segments[i].end)
            for i in range(segment_count)
        ]
    else:
        new_points = [segments[0].start]
        for i in range(1, segment_count):
            new_points.append(
                _miter(segments[i - 1].start, segments[i - 1].end, segments[i].start, segments[i].end)
            )
        new_points.append(segments[-1].end)

    warnings: tuple[str, ...] = ()
    if any(v.bulge != 0.0 for v in polyline.vertices):
        warnings = ("Polyline bulges were offset as straight segments",)
    vertices = tuple(PolylineVertex(p.x, p.y) for p in new_points)
    return Polyline(vertices, closed=polyline.closed), warnings


def _offset_ellipse(ellipse: Ellipse, d: float) -> tuple[Spline, tuple[str, ...]]:
    rx, ry, _ = ellipse_frame(ellipse)
    sweep = ellipse_sweep(ellipse)
    start = ellipse_start_param(ellipse)
    samples = max(MIN_CURVE_SAMPLES, math.ceil(sweep / ELLIPSE_SAMPLE_STEP))
    count = samples if ellipse.is_arc else samples - 1

    points = []
    for i in range(count + 1):
        theta = start + sweep * i / samples
        normal = right_normal(normalize(ellipse_derivative(ellipse, theta)))
        points.append(add(ellipse_point(ellipse, theta), scale(normal, d)))
    if not ellipse.is_arc:
        points.append(points[0])

    warnings = ["Ellipse offset approximated by interpolating spline"]
    if d < 0 and -d >= ry * ry / rx:
        warnings.append("Ellipse offset exceeds minimum radius of curvature")
    return interpolate_points(points, 3, closed=not ellipse.is_arc), tuple(warnings)


def _offset_spline(shape: Shape, spline: Spline, d: float, evaluator: CurveEvaluator | None) -> Spline:
    samples = min(MAX_CURVE_SAMPLES, max(MIN_CURVE_SAMPLES, SAMPLES_PER_CONTROL_POINT * len(spline.control_points)))
    points = [
        add(point_at(shape, i / samples, evaluator), scale(normal_at(shape, i / samples, evaluator), d))
        for i in range(samples + 1)
    ]
    return interpolate_points(points, min(3, spline.degree), closed=spline.closed)


def offset_shape(
    shape: Shape,
    distance_: float,
    evaluator: CurveEvaluator | None = None,
) -> tuple[Shape, tuple[str, ...]]:
    """Offset a shape by a signed distance.

    Positive distances move the shape to the right of its direction of
    travel. The result keeps the original shape's id.

    Args:
        shape: Shape to offset
        distance_: Signed offset distance
        evaluator: Spline evaluator (default NURBS evaluator if None)

    Returns:
        Tuple of (offset shape, warnings)

    Raises:
        ValidationError: If the offset collapses the shape
        ValueError: If a curve offset cannot be re-fitted
    """
    geometry = shape.geometry
    match geometry:
        case Line():
            return shape.with_geometry(_offset_line(geometry, distance_)), ()
        case Arc():
            return shape.with_geometry(_offset_arc(geometry, distance_)), ()
        case Circle():
            return shape.with_geometry(_offset_circle(geometry, distance_)), ()
        case Polyline():
            polyline, warnings = _offset_polyline(geometry, distance_)
            return shape.with_geometry(polyline), warnings
        case Ellipse():
            spline, warnings = _offset_ellipse(geometry, distance_)
            return shape.with_geometry(spline), warnings
        case Spline():
            return shape.with_geometry(_offset_spline(shape, geometry, distance_, evaluator)), (
                "Spline offset approximated by interpolating spline",
            )
        case _:
            assert_never(geometry)
