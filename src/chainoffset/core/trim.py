"""Shape trimming.

Cuts a shape at a point and keeps the part on one side of it. Also picks the
best intersection for a joint between two consecutive shapes and trims both
shapes at it.

Key functions:
- trim: Cut a shape at a point
- select_trim_point: Choose the intersection used to close a joint
- trim_consecutive: Trim two neighbouring shapes at a shared point
"""

import math
from collections.abc import Sequence
from typing import assert_never

import structlog

from chainoffset.config import ExtendDirection, OffsetConfig
from chainoffset.core.curves import CurveEvaluator
from chainoffset.core.extend import extend_to_point
from chainoffset.core.geometry import (
    ANGLE_EPSILON,
    EPSILON,
    TWO_PI,
    angular_distance,
    arc_sweep,
    distance,
    ellipse_frame,
    ellipse_local_angle,
    ellipse_point_distance,
    ellipse_sweep,
    is_angle_in_sweep,
    line_parameter,
    nearest_point_on_segment,
    perpendicular_distance,
    validate_shape,
)
from chainoffset.domain import (
    Arc,
    Circle,
    Ellipse,
    IntersectionResult,
    IntersectionType,
    KeepSide,
    Line,
    Point,
    Polyline,
    PolylineVertex,
    Shape,
    Spline,
    TrimResult,
)
from chainoffset.exceptions import GeometricMismatchError, GeometryError, ValidationError

logger = structlog.get_logger(__name__)

TOLERANCE_RELAXATION = 10.0
MICRO_TOLERANCE = 1e-6
CIRCLE_TRIM_GAP = 0.05
PARAM_EPSILON = 1e-9
EXTENDED_TRIM_CONFIDENCE = 0.9

# Trim point scoring
CONFIDENCE_FLOOR = 0.5
ENDPOINT_CONFIDENCE = 0.9
DISTANCE_WEIGHT = 40.0
DISTANCE_SCALE = 100.0
CONFIDENCE_WEIGHT = 30.0
PARAMETER_WEIGHT = 5.0
TYPE_BONUS = {
    IntersectionType.EXACT: 20.0,
    IntersectionType.TANGENT: 15.0,
    IntersectionType.APPROXIMATE: 10.0,
    IntersectionType.COINCIDENT: 5.0,
}


def _trim_line(shape: Shape, line: Line, point: Point, side: KeepSide, tolerance: float) -> TrimResult:
    if perpendicular_distance(point, line.start, line.end) > tolerance:
        raise GeometricMismatchError("Trim point is not on line")

    seg_len = distance(line.start, line.end)
    t = line_parameter(point, line.start, line.end)
    slack = tolerance * TOLERANCE_RELAXATION / seg_len
    if t < -slack or t > 1.0 + slack:
        raise GeometricMismatchError("Trim point is outside line bounds")

    trimmed = Line(line.start, point) if side.keeps_start else Line(point, line.end)
    if distance(trimmed.start, trimmed.end) < EPSILON:
        raise ValidationError("Trimmed line is degenerate")
    return TrimResult(success=True, shape=shape.with_geometry(trimmed))


def _trim_arc(
    shape: Shape,
    arc: Arc,
    point: Point,
    side: KeepSide,
    tolerance: float,
    evaluator: CurveEvaluator | None,
) -> TrimResult:
    if abs(distance(point, arc.center) - arc.radius) > tolerance:
        raise GeometricMismatchError("Trim point is not on arc circle")

    angle = math.atan2(point.y - arc.center.y, point.x - arc.center.x)
    if not is_angle_in_sweep(arc, angle, tolerance / arc.radius):
        # Grow the kept end to the point; the result ends exactly there
        config = OffsetConfig(
            tolerance=tolerance,
            max_extension=TWO_PI * arc.radius,
            extend_direction=ExtendDirection.END if side.keeps_start else ExtendDirection.START,
        )
        extended = extend_to_point(shape, point, config, evaluator)
        if not extended.success:
            return TrimResult.failure(extended.errors[0], extended.warnings)
        return TrimResult(
            success=True,
            shape=extended.shape,
            warnings=extended.warnings + ("Arc was extended to reach trim point",),
            confidence=EXTENDED_TRIM_CONFIDENCE,
        )

    sweep = arc_sweep(arc)
    offset = angular_distance(arc.start_angle, angle, arc.clockwise)
    if offset >= TWO_PI - tolerance / arc.radius:
        offset = 0.0
    offset = min(offset, sweep)
    kept = offset if side.keeps_start else sweep - offset
    if kept < ANGLE_EPSILON:
        raise ValidationError("Trimmed arc is degenerate")

    sign = -1.0 if arc.clockwise else 1.0
    cut = arc.start_angle + sign * offset
    if side.keeps_start:
        trimmed = Arc(arc.center, arc.radius, arc.start_angle, cut, arc.clockwise)
    else:
        trimmed = Arc(arc.center, arc.radius, cut, arc.start_angle + sign * sweep, arc.clockwise)
    return TrimResult(success=True, shape=shape.with_geometry(trimmed))


def _trim_circle(shape: Shape, circle: Circle, point: Point, tolerance: float) -> TrimResult:
    if abs(distance(point, circle.center) - circle.radius) > tolerance:
        raise GeometricMismatchError("Trim point is not on circle")

    angle = math.atan2(point.y - circle.center.y, point.x - circle.center.x)
    half_gap = CIRCLE_TRIM_GAP / 2
    arc = Arc(circle.center, circle.radius, angle + half_gap, angle + TWO_PI - half_gap, clockwise=False)
    return TrimResult(
        success=True,
        shape=shape.with_geometry(arc),
        warnings=("Circle converted to arc for trimming",),
    )


def _locate_on_polyline(
    points: list[Point], point: Point, tolerance: float
) -> tuple[int, float, bool] | None:
    """Find the segment holding ``point``.

    Returns:
        Tuple of (segment index, local parameter, found only by relaxed
        matching), or None
    """
    best: tuple[int, float, float] | None = None
    for i in range(len(points) - 1):
        a, b = points[i], points[i + 1]
        seg_len = distance(a, b)
        if seg_len < EPSILON:
            continue
        t = line_parameter(point, a, b)
        slack = tolerance / seg_len
        if -slack <= t <= 1.0 + slack:
            perp = perpendicular_distance(point, a, b)
            if perp <= tolerance and (best is None or perp < best[2]):
                best = (i, min(max(t, 0.0), 1.0), perp)
    if best is not None:
        return best[0], best[1], False

    relaxed = tolerance * TOLERANCE_RELAXATION
    nearest: tuple[int, float, float] | None = None
    for i in range(len(points) - 1):
        a, b = points[i], points[i + 1]
        if distance(a, b) < EPSILON:
            continue
        _, d = nearest_point_on_segment(point, a, b)
        if d <= relaxed and (nearest is None or d < nearest[2]):
            nearest = (i, min(max(line_parameter(point, a, b), 0.0), 1.0), d)
    if nearest is not None:
        return nearest[0], nearest[1], True
    return None


def _trim_polyline(shape: Shape, polyline: Polyline, point: Point, side: KeepSide, tolerance: float) -> TrimResult:
    vertices = list(polyline.vertices)
    if polyline.closed:
        vertices.append(vertices[0])
    points = [v.point for v in vertices]

    located = _locate_on_polyline(points, point, tolerance)
    if located is None:
        raise GeometricMismatchError("Trim point is not on any polyline segment")
    idx, t, relaxed = located

    cut = PolylineVertex(point.x, point.y, 0.0)
    if side.keeps_start:
        if t > PARAM_EPSILON:
            head = vertices[: idx + 1]
            head[-1] = PolylineVertex(head[-1].x, head[-1].y, 0.0)
            kept = head + [cut]
        else:
            kept = vertices[:idx] + [cut]
    else:
        kept = [cut] + (vertices[idx + 1:] if t < 1.0 - PARAM_EPSILON else vertices[idx + 2:])

    if len(kept) < 2:
        raise ValidationError("Trimmed polyline has fewer than two points")

    warnings = ("Polyline trim point found via relaxed closest segment matching",) if relaxed else ()
    return TrimResult(
        success=True,
        shape=shape.with_geometry(Polyline(tuple(kept), closed=False)),
        warnings=warnings,
    )


def _trim_ellipse(shape: Shape, ellipse: Ellipse, point: Point, side: KeepSide, tolerance: float) -> TrimResult:
    if ellipse_point_distance(ellipse, point) > tolerance:
        raise GeometricMismatchError("Trim point is not on ellipse")

    rx, ry, _ = ellipse_frame(ellipse)
    theta = ellipse_local_angle(ellipse, point)

    if not ellipse.is_arc:
        half_gap = CIRCLE_TRIM_GAP / 2
        trimmed = Ellipse(
            ellipse.center, ellipse.major_axis_endpoint, ellipse.minor_to_major_ratio,
            theta + half_gap, theta + TWO_PI - half_gap,
        )
        return TrimResult(
            success=True,
            shape=shape.with_geometry(trimmed),
            warnings=("Ellipse converted to elliptical arc for trimming",),
        )

    angle_tolerance = tolerance / min(rx, ry)
    sweep = ellipse_sweep(ellipse)
    offset = angular_distance(ellipse.start_param, theta, False)
    if offset >= TWO_PI - angle_tolerance:
        offset = 0.0
    elif offset > sweep + angle_tolerance:
        raise GeometricMismatchError("Trim point is outside elliptical arc range")
    offset = min(offset, sweep)

    kept = offset if side.keeps_start else sweep - offset
    if kept < ANGLE_EPSILON:
        raise ValidationError("Trimmed elliptical arc is degenerate")

    cut = ellipse.start_param + offset
    if side.keeps_start:
        trimmed = Ellipse(
            ellipse.center, ellipse.major_axis_endpoint, ellipse.minor_to_major_ratio,
            ellipse.start_param, cut,
        )
    else:
        trimmed = Ellipse(
            ellipse.center, ellipse.major_axis_endpoint, ellipse.minor_to_major_ratio,
            cut, ellipse.start_param + sweep,
        )
    return TrimResult(success=True, shape=shape.with_geometry(trimmed))


def trim(
    shape: Shape,
    point: Point,
    keep_side: KeepSide | str,
    tolerance: float,
    evaluator: CurveEvaluator | None = None,
) -> TrimResult:
    """Cut a shape at ``point`` and keep one side.

    Circles and full ellipses become arcs with a small gap centred on the
    cut. Arcs whose sweep does not reach the point are extended to it.
    Splines are returned unchanged with a warning.

    Args:
        shape: Shape to trim
        point: Cut location
        keep_side: Part to keep ("start"/"before" or "end"/"after")
        tolerance: Maximum distance between the point and the shape
        evaluator: Spline evaluator (default NURBS evaluator if None)

    Returns:
        TrimResult with the trimmed shape (same id), or a failure result
    """
    try:
        try:
            side = KeepSide(keep_side)
        except ValueError as e:
            raise ValidationError(f"Invalid keep side: {keep_side}") from e
        validate_shape(shape)

        geometry = shape.geometry
        match geometry:
            case Line():
                return _trim_line(shape, geometry, point, side, tolerance)
            case Arc():
                return _trim_arc(shape, geometry, point, side, tolerance, evaluator)
            case Circle():
                return _trim_circle(shape, geometry, point, tolerance)
            case Polyline():
                return _trim_polyline(shape, geometry, point, side, tolerance)
            case Ellipse():
                return _trim_ellipse(shape, geometry, point, side, tolerance)
            case Spline():
                return TrimResult(
                    success=True,
                    shape=shape,
                    warnings=("Spline trimming is not supported; shape returned unchanged",),
                )
            case _:
                assert_never(geometry)
    except GeometryError as e:
        return TrimResult.failure(str(e))
    except (ArithmeticError, ValueError) as e:
        logger.warning("Trim failed", shape=shape.id, error=str(e))
        return TrimResult.failure(f"Trim failed: {e}")


def _acceptable(result: IntersectionResult, tolerance: float) -> bool:
    if result.confidence < CONFIDENCE_FLOOR:
        return False
    for param in (result.param1, result.param2):
        if param < -tolerance or param > 1.0 + tolerance:
            return False
        near_end = abs(param) <= tolerance or abs(param - 1.0) <= tolerance
        if near_end and (result.distance >= tolerance or result.confidence <= ENDPOINT_CONFIDENCE):
            return False
    return True


def _score(result: IntersectionResult, joint_point: Point) -> float:
    gap = distance(result.point, joint_point)
    score = DISTANCE_WEIGHT * max(0.0, 1.0 - gap / DISTANCE_SCALE)
    score += result.confidence * CONFIDENCE_WEIGHT
    score += TYPE_BONUS[result.type]
    centrality = max(0.0, min(result.param1, 1.0 - result.param1))
    centrality += max(0.0, min(result.param2, 1.0 - result.param2))
    return score + PARAMETER_WEIGHT * centrality


def select_trim_point(
    intersections: Sequence[IntersectionResult],
    joint_point: Point,
    tolerance: float,
) -> IntersectionResult | None:
    """Choose the intersection used to close a joint.

    Candidates are filtered for bounds and confidence, then scored by
    closeness to the joint, confidence, intersection type and distance from
    either shape's ends. When no candidate passes the filter the full list is
    scored instead.

    Args:
        intersections: Candidate intersections between the two shapes
        joint_point: The original corner the joint replaces
        tolerance: Parameter and distance tolerance for the filter

    Returns:
        The highest scoring intersection (earliest wins ties), or None
    """
    if not intersections:
        return None
    pool = [r for r in intersections if _acceptable(r, tolerance)] or list(intersections)

    best = pool[0]
    best_score = _score(best, joint_point)
    for candidate in pool[1:]:
        score = _score(candidate, joint_point)
        if score > best_score:
            best, best_score = candidate, score
    return best


def trim_consecutive(
    shape1: Shape,
    shape2: Shape,
    intersection: IntersectionResult,
    tolerance: float,
    evaluator: CurveEvaluator | None = None,
) -> tuple[TrimResult, TrimResult]:
    """Trim two neighbouring shapes at their shared intersection.

    The first shape keeps the part before the point and the second the part
    after it. A relaxed tolerance absorbs solver error in the point.

    Returns:
        Tuple of (first shape result, second shape result)
    """
    relaxed = max(tolerance * TOLERANCE_RELAXATION, MICRO_TOLERANCE)
    first = trim(shape1, intersection.point, KeepSide.BEFORE, relaxed, evaluator)
    second = trim(shape2, intersection.point, KeepSide.AFTER, relaxed, evaluator)
    return first, second
