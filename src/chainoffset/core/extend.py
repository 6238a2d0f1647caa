"""Shape extension.

Lengthens a single shape so that one of its ends reaches a target point.
Lines move an endpoint along their direction, arcs and elliptical arcs grow
their sweep in their own rotational sense, polylines move their end vertex
along the end segment, and splines receive a short tangent tail. Circles,
full ellipses and closed polylines have no end to extend.

Key functions:
- extend_to_point: Extend a shape to a target point
"""

import math
from typing import assert_never

import structlog

from chainoffset.config import ExtendDirection, OffsetConfig
from chainoffset.core.curves import CurveEvaluator, clamped_knots, is_clamped, spline_domain
from chainoffset.core.geometry import (
    ANGLE_EPSILON,
    EPSILON,
    add,
    angular_distance,
    arc_point,
    distance,
    ellipse_frame,
    ellipse_local_angle,
    ellipse_point,
    ellipse_point_distance,
    ellipse_sweep,
    end_point,
    is_angle_in_sweep,
    lerp,
    line_parameter,
    normalize,
    perpendicular_distance,
    scale,
    shape_length,
    start_point,
    sub,
    validate_shape,
)
from chainoffset.core.geometry import (
    _evaluator as resolve_evaluator,
)
from chainoffset.domain import (
    Arc,
    Circle,
    Ellipse,
    ExtensionType,
    FillResult,
    Line,
    Point,
    Polyline,
    PolylineVertex,
    Shape,
    ShapeExtension,
    Spline,
)
from chainoffset.exceptions import (
    GeometricMismatchError,
    GeometryError,
    LimitExceededError,
    UnsupportedOperationError,
    ValidationError,
)

logger = structlog.get_logger(__name__)

SPLINE_INTERMEDIATE_FRACTION = 0.3
SPLINE_TANGENT_CONFIDENCE = 0.8
SPLINE_SECANT_CONFIDENCE = 0.7
SPLINE_REKNOT_CONFIDENCE = 0.6
ARC_RADIUS_PRECISION = 1e-9

SPLINE_WARNING = "Spline extended using linear approximation from end tangent"


def _already_reached(shape: Shape, target: Point) -> FillResult:
    return FillResult(
        success=True,
        shape=shape,
        intersection_point=target,
        warnings=("Target point already lies on the shape",),
    )


def _check_limit(amount: float, config: OffsetConfig, unit: str = "") -> None:
    if amount > config.max_extension + EPSILON:
        raise LimitExceededError(amount, config.max_extension, unit)


# Lines


def _line_direction(t: float, config: OffsetConfig) -> ExtendDirection:
    if config.extend_direction is not ExtendDirection.AUTO:
        return config.extend_direction
    if t < 0.0:
        return ExtendDirection.START
    if t > 1.0:
        return ExtendDirection.END
    return ExtendDirection.START if t < 0.5 else ExtendDirection.END


def _extend_line(shape: Shape, line: Line, target: Point, config: OffsetConfig) -> FillResult:
    if perpendicular_distance(target, line.start, line.end) > config.tolerance:
        raise GeometricMismatchError("Target point is not on line extension")

    seg_len = distance(line.start, line.end)
    t = line_parameter(target, line.start, line.end)
    slack = config.tolerance / seg_len
    if -slack <= t <= 1.0 + slack:
        return _already_reached(shape, target)

    direction = _line_direction(t, config)
    if direction is ExtendDirection.END:
        if t < 1.0:
            raise GeometricMismatchError("Target point is not beyond the end of the line")
        anchor = line.end
        extended = Line(line.start, target)
    else:
        if t > 0.0:
            raise GeometricMismatchError("Target point is not beyond the start of the line")
        anchor = line.start
        extended = Line(target, line.end)

    amount = distance(anchor, target)
    _check_limit(amount, config)

    return FillResult(
        success=True,
        shape=shape.with_geometry(extended),
        extension=ShapeExtension(
            type=ExtensionType.LINEAR,
            amount=amount,
            direction=direction.value,
            original_shape=shape,
            extension_start=anchor,
            extension_end=target,
        ),
        intersection_point=target,
    )


# Arcs and elliptical arcs


def _angular_plan(
    start: float,
    end: float,
    clockwise: bool,
    angle: float,
    config: OffsetConfig,
) -> tuple[ExtendDirection, float]:
    """Choose the end to grow and the angle to add.

    The end grows along the arc's sense, the start against it.
    """
    beyond_end = angular_distance(end, angle, clockwise)
    before_start = angular_distance(start, angle, not clockwise)
    if config.extend_direction is ExtendDirection.END:
        return ExtendDirection.END, beyond_end
    if config.extend_direction is ExtendDirection.START:
        return ExtendDirection.START, before_start
    if beyond_end <= before_start:
        return ExtendDirection.END, beyond_end
    return ExtendDirection.START, before_start


def _extend_arc(shape: Shape, arc: Arc, target: Point, config: OffsetConfig) -> FillResult:
    radial = distance(target, arc.center)
    if abs(radial - arc.radius) > max(config.tolerance, arc.radius * ARC_RADIUS_PRECISION):
        raise GeometricMismatchError("Intersection point is not on arc circle")

    angle = math.atan2(target.y - arc.center.y, target.x - arc.center.x)
    if is_angle_in_sweep(arc, angle, config.tolerance / arc.radius):
        return _already_reached(shape, target)

    direction, amount = _angular_plan(arc.start_angle, arc.end_angle, arc.clockwise, angle, config)
    _check_limit(amount * arc.radius, config)

    sign = -1.0 if arc.clockwise else 1.0
    if direction is ExtendDirection.END:
        anchor = arc_point(arc.center, arc.radius, arc.end_angle)
        extended = Arc(arc.center, arc.radius, arc.start_angle, arc.end_angle + sign * amount, arc.clockwise)
    else:
        anchor = arc_point(arc.center, arc.radius, arc.start_angle)
        extended = Arc(arc.center, arc.radius, arc.start_angle - sign * amount, arc.end_angle, arc.clockwise)

    return FillResult(
        success=True,
        shape=shape.with_geometry(extended),
        extension=ShapeExtension(
            type=ExtensionType.ANGULAR,
            amount=amount,
            direction=direction.value,
            original_shape=shape,
            extension_start=anchor,
            extension_end=target,
        ),
        intersection_point=target,
    )


def _extend_ellipse(shape: Shape, ellipse: Ellipse, target: Point, config: OffsetConfig) -> FillResult:
    if not ellipse.is_arc:
        raise UnsupportedOperationError("Full ellipse cannot be extended")
    if ellipse_point_distance(ellipse, target) > config.tolerance:
        raise GeometricMismatchError("Intersection point is not on ellipse")

    rx, ry, _ = ellipse_frame(ellipse)
    theta = ellipse_local_angle(ellipse, target)
    as_arc = Arc(Point(0.0, 0.0), 1.0, ellipse.start_param, ellipse.end_param, False)
    if is_angle_in_sweep(as_arc, theta, config.tolerance / min(rx, ry)):
        return _already_reached(shape, target)

    direction, amount = _angular_plan(ellipse.start_param, ellipse.end_param, False, theta, config)
    _check_limit(amount * (rx + ry) / 2, config)

    if direction is ExtendDirection.END:
        anchor = ellipse_point(ellipse, ellipse.end_param)
        extended = Ellipse(
            ellipse.center, ellipse.major_axis_endpoint, ellipse.minor_to_major_ratio,
            ellipse.start_param, ellipse.end_param + amount,
        )
    else:
        anchor = ellipse_point(ellipse, ellipse.start_param)
        extended = Ellipse(
            ellipse.center, ellipse.major_axis_endpoint, ellipse.minor_to_major_ratio,
            ellipse.start_param - amount, ellipse.end_param,
        )
    if ellipse_sweep(extended) < ANGLE_EPSILON:
        raise ValidationError("Extended elliptical arc is degenerate")

    return FillResult(
        success=True,
        shape=shape.with_geometry(extended),
        extension=ShapeExtension(
            type=ExtensionType.ANGULAR,
            amount=amount,
            direction=direction.value,
            original_shape=shape,
            extension_start=anchor,
            extension_end=target,
        ),
        intersection_point=target,
    )


# Polylines


def _extend_polyline(shape: Shape, polyline: Polyline, target: Point, config: OffsetConfig) -> FillResult:
    if polyline.closed:
        raise UnsupportedOperationError("Closed polyline cannot be extended")

    vertices = list(polyline.vertices)
    first, last = vertices[0].point, vertices[-1].point
    direction = config.extend_direction
    if direction is ExtendDirection.AUTO:
        direction = ExtendDirection.END if distance(last, target) <= distance(first, target) else ExtendDirection.START

    if direction is ExtendDirection.END:
        segment = Line(vertices[-2].point, last)
    else:
        segment = Line(first, vertices[1].point)
    if distance(segment.start, segment.end) < EPSILON:
        raise ValidationError("Polyline end segment has zero length")

    segment_config = config.model_copy(update={"extend_direction": direction})
    result = _extend_line(Shape(geometry=segment, id=shape.id), segment, target, segment_config)
    if result.extension is None:
        return _already_reached(shape, target)

    if direction is ExtendDirection.END:
        vertices[-1] = PolylineVertex(target.x, target.y, vertices[-1].bulge)
    else:
        vertices[0] = PolylineVertex(target.x, target.y, vertices[0].bulge)

    extension = result.extension
    return FillResult(
        success=True,
        shape=shape.with_geometry(Polyline(tuple(vertices), closed=False)),
        extension=ShapeExtension(
            type=extension.type,
            amount=extension.amount,
            direction=extension.direction,
            original_shape=shape,
            extension_start=extension.extension_start,
            extension_end=extension.extension_end,
        ),
        intersection_point=target,
    )


# Splines


def _reverse_spline(spline: Spline) -> Spline:
    low, high = spline.knots[0], spline.knots[-1]
    return Spline(
        control_points=tuple(reversed(spline.control_points)),
        knots=tuple(low + high - k for k in reversed(spline.knots)),
        weights=tuple(reversed(spline.weights)),
        degree=spline.degree,
        closed=spline.closed,
    )


def spline_end_tangent(
    spline: Spline, at_end: bool, evaluator: CurveEvaluator | None = None
) -> tuple[Point, float]:
    """Outward unit tangent at one end of a spline, with the tier's confidence.

    The evaluator's derivative is used when it is available and non-zero;
    otherwise the secant through the two outermost control points is used,
    which is reported with a lower confidence.

    Args:
        spline: Spline to inspect
        at_end: True for the end, False for the start
        evaluator: Curve evaluator (default NURBS evaluator if None)

    Returns:
        Tuple of (outward unit tangent, confidence)
    """
    t = 1.0 if at_end else 0.0
    derivative: Point | None = None
    try:
        derivative = resolve_evaluator(evaluator).derivative_at(spline, t, 1)[1]
    except (ArithmeticError, ValueError, IndexError) as e:
        logger.debug("Spline derivative unavailable, using secant", error=str(e))

    if derivative is not None and math.hypot(derivative.x, derivative.y) > EPSILON:
        tangent = normalize(derivative)
        return (tangent if at_end else scale(tangent, -1.0)), SPLINE_TANGENT_CONFIDENCE

    ctrl = spline.control_points
    secant = sub(ctrl[-1], ctrl[-2]) if at_end else sub(ctrl[0], ctrl[1])
    return normalize(secant), SPLINE_SECANT_CONFIDENCE


def _tail_points(intermediate: Point, target: Point, degree: int) -> list[Point]:
    """Control points of a Bézier tail from the curve end to the target."""
    if degree == 1:
        return [target]
    return [intermediate] + [lerp(intermediate, target, k / (degree - 1)) for k in range(1, degree)]


def _append_tail(
    spline: Spline, intermediate: Point, target: Point, gap: float, curve_length: float
) -> tuple[Spline, bool]:
    """Append a tail at the end of the spline.

    When the end is clamped, the end knot multiplicity is lowered by one and a
    new Bézier span is appended, which leaves the original curve untouched.
    Otherwise the control polygon is extended and re-knotted.

    Returns:
        Tuple of (extended spline, whether the original curve was preserved)
    """
    p = spline.degree
    if is_clamped(spline, at_end=True):
        u_min, u_max = spline_domain(spline)
        step = (u_max - u_min) * max(gap / curve_length, 1e-3)
        tail = _tail_points(intermediate, target, p)
        knots = list(spline.knots[:-1]) + [u_max + step] * (p + 1)
        return (
            Spline(
                control_points=spline.control_points + tuple(tail),
                knots=tuple(knots),
                weights=spline.weights + tuple(1.0 for _ in tail),
                degree=p,
                closed=False,
            ),
            True,
        )

    points = spline.control_points + (intermediate, target)
    return (
        Spline(
            control_points=points,
            knots=clamped_knots(len(points), p),
            weights=spline.weights + (1.0, 1.0),
            degree=p,
            closed=False,
        ),
        False,
    )


def _extend_spline(
    shape: Shape,
    spline: Spline,
    target: Point,
    config: OffsetConfig,
    evaluator: CurveEvaluator | None,
) -> FillResult:
    first = start_point(shape, evaluator)
    last = end_point(shape, evaluator)
    direction = config.extend_direction
    if direction is ExtendDirection.AUTO:
        direction = ExtendDirection.END if distance(last, target) <= distance(first, target) else ExtendDirection.START
    at_end = direction is ExtendDirection.END
    anchor = last if at_end else first

    gap = distance(anchor, target)
    if gap <= config.tolerance:
        return _already_reached(shape, target)
    _check_limit(gap, config)

    tangent, confidence = spline_end_tangent(spline, at_end, evaluator)
    intermediate = add(anchor, scale(tangent, SPLINE_INTERMEDIATE_FRACTION * gap))
    curve_length = max(shape_length(shape, evaluator), EPSILON)

    working = spline if at_end else _reverse_spline(spline)
    extended, preserved = _append_tail(working, intermediate, target, gap, curve_length)
    if not at_end:
        extended = _reverse_spline(extended)

    warnings = [SPLINE_WARNING]
    if not preserved:
        confidence = min(confidence, SPLINE_REKNOT_CONFIDENCE)
        warnings.append("Spline is not clamped at the extended end; curve was re-knotted")

    return FillResult(
        success=True,
        shape=shape.with_geometry(extended),
        extension=ShapeExtension(
            type=ExtensionType.LINEAR,
            amount=gap,
            direction=direction.value,
            original_shape=shape,
            extension_start=anchor,
            extension_end=target,
        ),
        intersection_point=target,
        warnings=tuple(warnings),
        confidence=confidence,
    )


def extend_to_point(
    shape: Shape,
    target: Point,
    config: OffsetConfig,
    evaluator: CurveEvaluator | None = None,
) -> FillResult:
    """Extend a shape so that one of its ends reaches ``target``.

    Args:
        shape: Shape to extend
        target: Point the extended end must reach
        config: Tolerance, maximum extension and preferred end
        evaluator: Spline evaluator (default NURBS evaluator if None)

    Returns:
        FillResult with the extended shape and a description of the
        extension, or a failure result naming the reason
    """
    try:
        validate_shape(shape)
        geometry = shape.geometry
        match geometry:
            case Line():
                return _extend_line(shape, geometry, target, config)
            case Arc():
                return _extend_arc(shape, geometry, target, config)
            case Circle():
                raise UnsupportedOperationError("Circle cannot be extended; trim it to an arc first")
            case Polyline():
                return _extend_polyline(shape, geometry, target, config)
            case Ellipse():
                return _extend_ellipse(shape, geometry, target, config)
            case Spline():
                return _extend_spline(shape, geometry, target, config, evaluator)
            case _:
                assert_never(geometry)
    except GeometryError as e:
        return FillResult.failure(str(e))
    except (ArithmeticError, ValueError) as e:
        logger.warning("Extension failed", shape=shape.id, error=str(e))
        return FillResult.failure(f"Extension failed: {e}")
