"""Geometric operations shared by the offset engines.

This module provides core mathematical utilities for:
- Vector and angle arithmetic
- Signed area and point-in-polygon tests for tessellated chains
- Shape validation
- Evaluating any shape at a normalized parameter, and the inverse
- Tangents, lengths, tessellation, bounding boxes and distances

Every shape is parameterized on [0, 1] from its start to its end. Lines,
arcs, elliptical arcs and polylines also accept parameters outside [0, 1],
which address their natural extensions. Circles and full ellipses start at
angle 0 and run counter-clockwise.

All functions are pure, stateless, and designed for use in parallel processing.
"""

import math
from typing import assert_never

from chainoffset.core.curves import CurveEvaluator, NurbsEvaluator, spline_domain
from chainoffset.domain import (
    Arc,
    Circle,
    Ellipse,
    Line,
    Point,
    Polyline,
    Shape,
    Spline,
)
from chainoffset.exceptions import ValidationError

EPSILON = 1e-10
ANGLE_EPSILON = 1e-9
TWO_PI = 2.0 * math.pi

DEFAULT_EVALUATOR: CurveEvaluator = NurbsEvaluator()


def _evaluator(evaluator: CurveEvaluator | None) -> CurveEvaluator:
    return evaluator if evaluator is not None else DEFAULT_EVALUATOR


# Vectors


def distance(a: Point, b: Point) -> float:
    """Euclidean distance between two points."""
    return math.hypot(b.x - a.x, b.y - a.y)


def sub(a: Point, b: Point) -> Point:
    return Point(a.x - b.x, a.y - b.y)


def add(a: Point, b: Point) -> Point:
    return Point(a.x + b.x, a.y + b.y)


def scale(v: Point, s: float) -> Point:
    return Point(v.x * s, v.y * s)


def dot(a: Point, b: Point) -> float:
    return a.x * b.x + a.y * b.y


def cross(a: Point, b: Point) -> float:
    return a.x * b.y - a.y * b.x


def length(v: Point) -> float:
    return math.hypot(v.x, v.y)


def normalize(v: Point) -> Point:
    """Unit vector in the direction of ``v``.

    Raises:
        ValueError: If ``v`` has zero length
    """
    n = math.hypot(v.x, v.y)
    if n < EPSILON:
        raise ValueError("Cannot normalize a zero-length vector")
    return Point(v.x / n, v.y / n)


def lerp(a: Point, b: Point, t: float) -> Point:
    return Point(a.x + (b.x - a.x) * t, a.y + (b.y - a.y) * t)


def midpoint(a: Point, b: Point) -> Point:
    return Point((a.x + b.x) / 2, (a.y + b.y) / 2)


def right_normal(tangent: Point) -> Point:
    """Unit vector 90 degrees clockwise from a direction of travel."""
    return Point(tangent.y, -tangent.x)


def perpendicular_direction(p1: Point, p2: Point) -> tuple[float, float]:
    """Calculate the unit perpendicular vector to a line from p1 to p2.

    The perpendicular is rotated 90 degrees counter-clockwise from the
    direction vector (p2 - p1), i.e. it points to the left of travel.

    Args:
        p1: Start point of line
        p2: End point of line

    Returns:
        Tuple (px, py) representing the unit perpendicular vector

    Raises:
        ValueError: If p1 and p2 are the same point (zero-length line)
    """
    dx = p2.x - p1.x
    dy = p2.y - p1.y
    n = math.hypot(dx, dy)
    if n < EPSILON:
        raise ValueError("Cannot calculate perpendicular of zero-length line")
    return -dy / n, dx / n


# Angles


def normalize_angle(angle: float) -> float:
    """Map an angle to [0, 2π)."""
    result = math.fmod(angle, TWO_PI)
    if result < 0:
        result += TWO_PI
    if result >= TWO_PI:
        result = 0.0
    return result


def angular_distance(from_angle: float, to_angle: float, clockwise: bool) -> float:
    """Rotation in [0, 2π) needed to go from one angle to another.

    Args:
        from_angle: Starting angle
        to_angle: Target angle
        clockwise: Direction of rotation

    Returns:
        Non-negative angular distance
    """
    if clockwise:
        return normalize_angle(from_angle - to_angle)
    return normalize_angle(to_angle - from_angle)


def _sweep(start: float, end: float, clockwise: bool) -> float:
    sweep = angular_distance(start, end, clockwise)
    if sweep < ANGLE_EPSILON and abs(end - start) > ANGLE_EPSILON:
        # start and end differ by a whole turn
        return TWO_PI
    return sweep


def arc_sweep(arc: Arc) -> float:
    """Angular extent of an arc in its own rotational sense."""
    return _sweep(arc.start_angle, arc.end_angle, arc.clockwise)


def arc_point(center: Point, radius: float, angle: float) -> Point:
    return Point(center.x + radius * math.cos(angle), center.y + radius * math.sin(angle))


def arc_angle_at(arc: Arc, t: float) -> float:
    """Angle reached after travelling fraction ``t`` of the sweep."""
    delta = t * arc_sweep(arc)
    return arc.start_angle - delta if arc.clockwise else arc.start_angle + delta


def _signed_sweep_param(start: float, sweep: float, angle: float, clockwise: bool) -> float:
    offset = angular_distance(start, angle, clockwise)
    if offset <= sweep + ANGLE_EPSILON:
        return offset / sweep
    after_end = offset - sweep
    before_start = TWO_PI - offset
    if after_end <= before_start:
        return offset / sweep
    return -before_start / sweep


def arc_param_of_angle(arc: Arc, angle: float) -> float:
    """Normalized parameter of an angle on an arc.

    Angles outside the sweep map below 0 or above 1, whichever end is nearer.
    """
    return _signed_sweep_param(arc.start_angle, arc_sweep(arc), angle, arc.clockwise)


def is_angle_in_sweep(arc: Arc, angle: float, angle_tolerance: float = ANGLE_EPSILON) -> bool:
    offset = angular_distance(arc.start_angle, angle, arc.clockwise)
    sweep = arc_sweep(arc)
    return offset <= sweep + angle_tolerance or offset >= TWO_PI - angle_tolerance


# Ellipses


def ellipse_frame(ellipse: Ellipse) -> tuple[float, float, float]:
    """Return ``(major_radius, minor_radius, rotation)`` of an ellipse."""
    rx = length(ellipse.major_axis_endpoint)
    ry = rx * ellipse.minor_to_major_ratio
    rotation = math.atan2(ellipse.major_axis_endpoint.y, ellipse.major_axis_endpoint.x)
    return rx, ry, rotation


def ellipse_point(ellipse: Ellipse, theta: float) -> Point:
    """Point at parametric angle ``theta``."""
    rx, ry, rotation = ellipse_frame(ellipse)
    lx = rx * math.cos(theta)
    ly = ry * math.sin(theta)
    cos_r, sin_r = math.cos(rotation), math.sin(rotation)
    return Point(
        ellipse.center.x + lx * cos_r - ly * sin_r,
        ellipse.center.y + lx * sin_r + ly * cos_r,
    )


def ellipse_derivative(ellipse: Ellipse, theta: float) -> Point:
    """Derivative of the ellipse position with respect to ``theta``."""
    rx, ry, rotation = ellipse_frame(ellipse)
    lx = -rx * math.sin(theta)
    ly = ry * math.cos(theta)
    cos_r, sin_r = math.cos(rotation), math.sin(rotation)
    return Point(lx * cos_r - ly * sin_r, lx * sin_r + ly * cos_r)


def to_ellipse_local(ellipse: Ellipse, point: Point) -> Point:
    """Express a point in the ellipse's unrotated frame centred at the origin."""
    _, _, rotation = ellipse_frame(ellipse)
    dx = point.x - ellipse.center.x
    dy = point.y - ellipse.center.y
    cos_r, sin_r = math.cos(-rotation), math.sin(-rotation)
    return Point(dx * cos_r - dy * sin_r, dx * sin_r + dy * cos_r)


def ellipse_local_angle(ellipse: Ellipse, point: Point) -> float:
    """Parametric angle of a point in the ellipse's unit-circle frame."""
    rx, ry, _ = ellipse_frame(ellipse)
    local = to_ellipse_local(ellipse, point)
    return math.atan2(local.y / ry, local.x / rx)


def ellipse_point_distance(ellipse: Ellipse, point: Point) -> float:
    """Approximate distance from a point to the full ellipse."""
    rx, ry, _ = ellipse_frame(ellipse)
    local = to_ellipse_local(ellipse, point)
    value = math.sqrt((local.x / rx) ** 2 + (local.y / ry) ** 2)
    return abs(value - 1.0) * min(rx, ry)


def ellipse_sweep(ellipse: Ellipse) -> float:
    if not ellipse.is_arc:
        return TWO_PI
    return _sweep(ellipse.start_param, ellipse.end_param, False)


def ellipse_start_param(ellipse: Ellipse) -> float:
    return ellipse.start_param if ellipse.start_param is not None else 0.0


# Polygons


def signed_area(points: list[Point]) -> float:
    """Calculate signed area of a polygon using the shoelace formula.

    The sign of the area indicates winding direction:
    - Positive area: counter-clockwise winding
    - Negative area: clockwise winding

    Args:
        points: List of points forming the polygon boundary

    Returns:
        Signed area in square units. Returns 0.0 for degenerate polygons.
    """
    n = len(points)
    if n < 3:
        return 0.0

    area = 0.0
    for i in range(n):
        j = (i + 1) % n
        area += points[i].x * points[j].y
        area -= points[j].x * points[i].y

    return area / 2.0


def point_in_polygon(point: Point, polygon: list[Point]) -> bool:
    """Determine if a point is inside a polygon using ray casting algorithm.

    Casts a horizontal ray from the point to the right and counts intersections
    with polygon edges. Odd number of intersections = inside, even = outside.

    Args:
        point: The point to test
        polygon: List of points forming the polygon boundary

    Returns:
        True if point is inside polygon, False otherwise
    """
    n = len(polygon)
    if n < 3:
        return False

    inside = False
    x, y = point.x, point.y
    j = n - 1

    for i in range(n):
        xi, yi = polygon[i].x, polygon[i].y
        xj, yj = polygon[j].x, polygon[j].y

        if ((yi > y) != (yj > y)) and (x < (xj - xi) * (y - yi) / (yj - yi) + xi):
            inside = not inside

        j = i

    return inside


def nearest_point_on_segment(point: Point, seg_start: Point, seg_end: Point) -> tuple[Point, float]:
    """Find the closest point on a line segment to a given point.

    Projects the point onto the infinite line, then clamps to the segment endpoints.

    Args:
        point: The point to project
        seg_start: Start point of line segment
        seg_end: End point of line segment

    Returns:
        Tuple of (nearest_point, distance)
    """
    dx = seg_end.x - seg_start.x
    dy = seg_end.y - seg_start.y

    segment_length_sq = dx * dx + dy * dy
    if segment_length_sq < EPSILON:
        return seg_start, distance(point, seg_start)

    t = ((point.x - seg_start.x) * dx + (point.y - seg_start.y) * dy) / segment_length_sq
    t = max(0.0, min(1.0, t))

    nearest = Point(seg_start.x + t * dx, seg_start.y + t * dy)
    return nearest, distance(point, nearest)


def line_parameter(point: Point, start: Point, end: Point) -> float:
    """Parameter of the projection of a point onto the infinite line."""
    dx = end.x - start.x
    dy = end.y - start.y
    length_sq = dx * dx + dy * dy
    if length_sq < EPSILON * EPSILON:
        return 0.0
    return ((point.x - start.x) * dx + (point.y - start.y) * dy) / length_sq


def perpendicular_distance(point: Point, start: Point, end: Point) -> float:
    """Distance from a point to the infinite line through two points."""
    seg = sub(end, start)
    n = length(seg)
    if n < EPSILON:
        return distance(point, start)
    return abs(cross(seg, sub(point, start))) / n


# Polylines


def polyline_segments(polyline: Polyline) -> list[tuple[Point, Point]]:
    pts = polyline.points
    return [(pts[i], pts[i + 1]) for i in range(len(pts) - 1)]


def _cumulative_lengths(segments: list[tuple[Point, Point]]) -> list[float]:
    cumulative = [0.0]
    for a, b in segments:
        cumulative.append(cumulative[-1] + distance(a, b))
    return cumulative


def polyline_param(polyline: Polyline, segment_index: int, local_t: float) -> float:
    """Polyline parameter of a position given as (segment, segment parameter)."""
    segments = polyline_segments(polyline)
    cumulative = _cumulative_lengths(segments)
    total = cumulative[-1]
    seg_len = cumulative[segment_index + 1] - cumulative[segment_index]
    return (cumulative[segment_index] + local_t * seg_len) / total


# Validation


def _finite(*values: float) -> bool:
    return all(math.isfinite(v) for v in values)


def validate_shape(shape: Shape) -> None:
    """Reject malformed or degenerate geometry.

    Raises:
        ValidationError: If the shape has non-finite values, a non-positive
            radius, zero length or zero sweep, or an inconsistent spline
    """
    geometry = shape.geometry
    match geometry:
        case Line(start=start, end=end):
            if not _finite(start.x, start.y, end.x, end.y):
                raise ValidationError("Line has non-finite coordinates")
            if distance(start, end) < EPSILON:
                raise ValidationError("Line has zero length")
        case Arc():
            if not _finite(geometry.center.x, geometry.center.y, geometry.radius,
                           geometry.start_angle, geometry.end_angle):
                raise ValidationError("Arc has non-finite values")
            if geometry.radius <= EPSILON:
                raise ValidationError("Arc radius must be positive")
            if arc_sweep(geometry) < ANGLE_EPSILON:
                raise ValidationError("Arc has zero sweep")
        case Circle():
            if not _finite(geometry.center.x, geometry.center.y, geometry.radius):
                raise ValidationError("Circle has non-finite values")
            if geometry.radius <= EPSILON:
                raise ValidationError("Circle radius must be positive")
        case Polyline():
            if len(geometry.vertices) < 2:
                raise ValidationError("Polyline needs at least two vertices")
            if not all(_finite(v.x, v.y, v.bulge) for v in geometry.vertices):
                raise ValidationError("Polyline has non-finite coordinates")
            if _cumulative_lengths(polyline_segments(geometry))[-1] < EPSILON:
                raise ValidationError("Polyline has zero length")
        case Ellipse():
            rx = length(geometry.major_axis_endpoint)
            if not _finite(geometry.center.x, geometry.center.y, rx, geometry.minor_to_major_ratio):
                raise ValidationError("Ellipse has non-finite values")
            if rx <= EPSILON:
                raise ValidationError("Ellipse major axis must be positive")
            if not 0.0 < geometry.minor_to_major_ratio <= 1.0:
                raise ValidationError("Ellipse minor-to-major ratio must be in (0, 1]")
            if (geometry.start_param is None) != (geometry.end_param is None):
                raise ValidationError("Elliptical arc needs both start and end parameters")
            if geometry.is_arc and ellipse_sweep(geometry) < ANGLE_EPSILON:
                raise ValidationError("Elliptical arc has zero sweep")
        case Spline():
            n = len(geometry.control_points)
            p = geometry.degree
            if p < 1:
                raise ValidationError("Spline degree must be at least 1")
            if n < p + 1:
                raise ValidationError(f"Spline of degree {p} needs at least {p + 1} control points")
            if len(geometry.knots) != n + p + 1:
                raise ValidationError(
                    f"Spline knot vector must have {n + p + 1} entries, got {len(geometry.knots)}"
                )
            if len(geometry.weights) != n:
                raise ValidationError("Spline must have one weight per control point")
            if any(w <= 0 for w in geometry.weights):
                raise ValidationError("Spline weights must be positive")
            if any(b < a for a, b in zip(geometry.knots, geometry.knots[1:], strict=False)):
                raise ValidationError("Spline knots must be non-decreasing")
            u_min, u_max = spline_domain(geometry)
            if u_max - u_min < EPSILON:
                raise ValidationError("Spline has an empty knot domain")
            if not all(_finite(q.x, q.y) for q in geometry.control_points):
                raise ValidationError("Spline has non-finite control points")
        case _:
            assert_never(geometry)


# Evaluation


def point_at(shape: Shape, t: float, evaluator: CurveEvaluator | None = None) -> Point:
    """Point at normalized parameter ``t``.

    Lines, arcs, elliptical arcs and open polylines are evaluated on their
    extensions for ``t`` outside [0, 1]; splines are clamped to their domain.
    """
    geometry = shape.geometry
    match geometry:
        case Line(start=start, end=end):
            return lerp(start, end, t)
        case Arc():
            return arc_point(geometry.center, geometry.radius, arc_angle_at(geometry, t))
        case Circle():
            return arc_point(geometry.center, geometry.radius, TWO_PI * t)
        case Polyline():
            segments = polyline_segments(geometry)
            cumulative = _cumulative_lengths(segments)
            target = t * cumulative[-1]
            if t <= 0.0:
                a, b = segments[0]
                seg_len = distance(a, b)
                return lerp(a, b, target / seg_len) if seg_len > EPSILON else a
            if t >= 1.0:
                a, b = segments[-1]
                seg_len = distance(a, b)
                excess = target - cumulative[-2]
                return lerp(a, b, excess / seg_len) if seg_len > EPSILON else b
            for i, (a, b) in enumerate(segments):
                if target <= cumulative[i + 1] or i == len(segments) - 1:
                    seg_len = cumulative[i + 1] - cumulative[i]
                    if seg_len < EPSILON:
                        return a
                    return lerp(a, b, (target - cumulative[i]) / seg_len)
            return segments[-1][1]
        case Ellipse():
            theta = ellipse_start_param(geometry) + t * ellipse_sweep(geometry)
            return ellipse_point(geometry, theta)
        case Spline():
            return _evaluator(evaluator).point_at(geometry, t)
        case _:
            assert_never(geometry)


def start_point(shape: Shape, evaluator: CurveEvaluator | None = None) -> Point:
    return point_at(shape, 0.0, evaluator)


def end_point(shape: Shape, evaluator: CurveEvaluator | None = None) -> Point:
    return point_at(shape, 1.0, evaluator)


def closing_joint(
    first: Shape, second: Shape, tolerance: float, evaluator: CurveEvaluator | None = None
) -> Point | None:
    """Point where ``second`` ends on ``first``'s start, if it does.

    For the joint from ``first``'s end to ``second``'s start this is the other
    joint of the pair, which only exists when the two shapes close a loop on
    their own.
    """
    start = start_point(first, evaluator)
    return start if distance(start, end_point(second, evaluator)) <= tolerance else None


def tangent_at(shape: Shape, t: float, evaluator: CurveEvaluator | None = None) -> Point:
    """Unit direction of travel at normalized parameter ``t``.

    Raises:
        ValueError: If the tangent vanishes
    """
    geometry = shape.geometry
    match geometry:
        case Line(start=start, end=end):
            return normalize(sub(end, start))
        case Arc():
            angle = arc_angle_at(geometry, t)
            if geometry.clockwise:
                return Point(math.sin(angle), -math.cos(angle))
            return Point(-math.sin(angle), math.cos(angle))
        case Circle():
            angle = TWO_PI * t
            return Point(-math.sin(angle), math.cos(angle))
        case Polyline():
            segments = [s for s in polyline_segments(geometry) if distance(*s) > EPSILON]
            cumulative = _cumulative_lengths(segments)
            target = min(max(t, 0.0), 1.0) * cumulative[-1]
            for i, (a, b) in enumerate(segments):
                if target <= cumulative[i + 1]:
                    return normalize(sub(b, a))
            a, b = segments[-1]
            return normalize(sub(b, a))
        case Ellipse():
            theta = ellipse_start_param(geometry) + t * ellipse_sweep(geometry)
            return normalize(ellipse_derivative(geometry, theta))
        case Spline():
            t_clamped = min(max(t, 0.0), 1.0)
            derivative = _evaluator(evaluator).derivative_at(geometry, t_clamped, 1)[1]
            if length(derivative) > EPSILON:
                return normalize(derivative)
            # Cusp or degenerate span: fall back to a short chord
            h = 1e-4 if t_clamped < 0.5 else -1e-4
            chord = sub(point_at(shape, t_clamped + h, evaluator), point_at(shape, t_clamped, evaluator))
            return normalize(chord if h > 0 else scale(chord, -1.0))
        case _:
            assert_never(geometry)


def normal_at(shape: Shape, t: float, evaluator: CurveEvaluator | None = None) -> Point:
    """Unit normal pointing to the right of the direction of travel."""
    return right_normal(tangent_at(shape, t, evaluator))


def default_segments(shape: Shape) -> int:
    """Number of chords used to tessellate a shape."""
    geometry = shape.geometry
    match geometry:
        case Line():
            return 1
        case Arc():
            return max(4, math.ceil(arc_sweep(geometry) / (math.pi / 36)))
        case Circle():
            return 72
        case Polyline():
            return len(polyline_segments(geometry))
        case Ellipse():
            return max(8, math.ceil(ellipse_sweep(geometry) / (math.pi / 48)))
        case Spline():
            return min(256, max(32, 8 * len(geometry.control_points)))
        case _:
            assert_never(geometry)


def tessellate_with_params(
    shape: Shape,
    evaluator: CurveEvaluator | None = None,
    segments: int | None = None,
) -> list[tuple[float, Point]]:
    """Sample a shape into ``(parameter, point)`` pairs from start to end.

    Polylines always yield their own vertices; other shapes are sampled at
    evenly spaced parameters.
    """
    geometry = shape.geometry
    if isinstance(geometry, Polyline):
        segs = polyline_segments(geometry)
        cumulative = _cumulative_lengths(segs)
        total = cumulative[-1]
        pts = geometry.points
        return [(cumulative[i] / total, pts[i]) for i in range(len(pts))]

    count = segments if segments is not None else default_segments(shape)
    return [(i / count, point_at(shape, i / count, evaluator)) for i in range(count + 1)]


def tessellate(
    shape: Shape,
    evaluator: CurveEvaluator | None = None,
    segments: int | None = None,
) -> list[Point]:
    """Sample a shape into points from start to end."""
    return [p for _, p in tessellate_with_params(shape, evaluator, segments)]


def tessellate_chain(shapes: list[Shape] | tuple[Shape, ...], evaluator: CurveEvaluator | None = None) -> list[Point]:
    """Concatenate shape tessellations, dropping repeated joint points."""
    points: list[Point] = []
    for shape in shapes:
        for p in tessellate(shape, evaluator):
            if not points or distance(points[-1], p) > EPSILON:
                points.append(p)
    if len(points) > 1 and distance(points[0], points[-1]) <= EPSILON:
        points.pop()
    return points


def shape_length(shape: Shape, evaluator: CurveEvaluator | None = None) -> float:
    """Length of a shape (exact for lines, arcs, circles and polylines)."""
    geometry = shape.geometry
    match geometry:
        case Line(start=start, end=end):
            return distance(start, end)
        case Arc():
            return geometry.radius * arc_sweep(geometry)
        case Circle():
            return TWO_PI * geometry.radius
        case Polyline():
            return _cumulative_lengths(polyline_segments(geometry))[-1]
        case Ellipse() | Spline():
            pts = tessellate(shape, evaluator, max(default_segments(shape), 128))
            return sum(distance(a, b) for a, b in zip(pts, pts[1:], strict=False))
        case _:
            assert_never(geometry)


def bounding_box(
    shapes: list[Shape] | tuple[Shape, ...], evaluator: CurveEvaluator | None = None
) -> tuple[float, float, float, float]:
    """Bounding box ``(min_x, min_y, max_x, max_y)`` of one or more shapes."""
    xs: list[float] = []
    ys: list[float] = []
    for shape in shapes:
        for p in tessellate(shape, evaluator):
            xs.append(p.x)
            ys.append(p.y)
    if not xs:
        return (0.0, 0.0, 0.0, 0.0)
    return (min(xs), min(ys), max(xs), max(ys))


def boxes_overlap(
    a: tuple[float, float, float, float], b: tuple[float, float, float, float], margin: float
) -> bool:
    return not (
        a[2] + margin < b[0] or b[2] + margin < a[0] or a[3] + margin < b[1] or b[3] + margin < a[1]
    )


def _nearest_on_polyline(point: Point, pts: list[tuple[float, Point]]) -> tuple[float, float]:
    """Nearest ``(parameter, distance)`` over a tessellation."""
    best_param = pts[0][0]
    best_dist = math.inf
    for (ta, a), (tb, b) in zip(pts, pts[1:], strict=False):
        local = min(max(line_parameter(point, a, b), 0.0), 1.0)
        candidate = lerp(a, b, local)
        d = distance(point, candidate)
        if d < best_dist:
            best_dist = d
            best_param = ta + (tb - ta) * local
    return best_param, best_dist


def distance_to_shape(point: Point, shape: Shape, evaluator: CurveEvaluator | None = None) -> float:
    """Distance from a point to the bounded shape."""
    geometry = shape.geometry
    match geometry:
        case Line(start=start, end=end):
            return nearest_point_on_segment(point, start, end)[1]
        case Arc():
            angle = math.atan2(point.y - geometry.center.y, point.x - geometry.center.x)
            if is_angle_in_sweep(geometry, angle):
                return abs(distance(point, geometry.center) - geometry.radius)
            return min(distance(point, start_point(shape)), distance(point, end_point(shape)))
        case Circle():
            return abs(distance(point, geometry.center) - geometry.radius)
        case Polyline():
            return min(nearest_point_on_segment(point, a, b)[1] for a, b in polyline_segments(geometry))
        case Ellipse() | Spline():
            samples = tessellate_with_params(shape, evaluator, 256)
            return _nearest_on_polyline(point, samples)[1]
        case _:
            assert_never(geometry)


def parameter_of(shape: Shape, point: Point, evaluator: CurveEvaluator | None = None) -> float:
    """Normalized parameter of the position on a shape nearest to ``point``.

    Points beyond an open end of a line, arc, elliptical arc, polyline or
    spline yield parameters below 0 or above 1.
    """
    geometry = shape.geometry
    match geometry:
        case Line(start=start, end=end):
            return line_parameter(point, start, end)
        case Arc():
            angle = math.atan2(point.y - geometry.center.y, point.x - geometry.center.x)
            return arc_param_of_angle(geometry, angle)
        case Circle():
            angle = math.atan2(point.y - geometry.center.y, point.x - geometry.center.x)
            return normalize_angle(angle) / TWO_PI
        case Polyline():
            segments = polyline_segments(geometry)
            cumulative = _cumulative_lengths(segments)
            total = cumulative[-1]
            best_index, best_t, best_dist = 0, 0.0, math.inf
            for i, (a, b) in enumerate(segments):
                t = line_parameter(point, a, b)
                d = distance(point, lerp(a, b, min(max(t, 0.0), 1.0)))
                if d < best_dist:
                    best_index, best_t, best_dist = i, t, d
            if not geometry.closed:
                if best_index != 0:
                    best_t = max(best_t, 0.0)
                if best_index != len(segments) - 1:
                    best_t = min(best_t, 1.0)
            else:
                best_t = min(max(best_t, 0.0), 1.0)
            seg_len = cumulative[best_index + 1] - cumulative[best_index]
            return (cumulative[best_index] + best_t * seg_len) / total
        case Ellipse():
            theta = ellipse_local_angle(geometry, point)
            if not geometry.is_arc:
                return normalize_angle(theta) / TWO_PI
            return _signed_sweep_param(geometry.start_param, ellipse_sweep(geometry), theta, False)
        case Spline():
            return _spline_parameter(shape, geometry, point, evaluator)
        case _:
            assert_never(geometry)


def _spline_parameter(
    shape: Shape, spline: Spline, point: Point, evaluator: CurveEvaluator | None
) -> float:
    samples = tessellate_with_params(shape, evaluator)
    t, _ = _nearest_on_polyline(point, samples)

    # Golden-section refinement around the coarse estimate
    step = 1.0 / (len(samples) - 1)
    lo, hi = max(0.0, t - step), min(1.0, t + step)
    ratio = (math.sqrt(5) - 1) / 2
    for _ in range(40):
        m1 = hi - ratio * (hi - lo)
        m2 = lo + ratio * (hi - lo)
        if distance(point_at(shape, m1, evaluator), point) < distance(point_at(shape, m2, evaluator), point):
            hi = m2
        else:
            lo = m1
    t = (lo + hi) / 2

    # Beyond an open end: measure along the end tangent
    if t <= 1e-9 or t >= 1.0 - 1e-9:
        at_end = t > 0.5
        anchor = end_point(shape, evaluator) if at_end else start_point(shape, evaluator)
        tangent = tangent_at(shape, 1.0 if at_end else 0.0, evaluator)
        along = dot(sub(point, anchor), tangent)
        total = shape_length(shape, evaluator)
        if at_end and along > 0:
            return 1.0 + along / total
        if not at_end and along < 0:
            return along / total
    return t
