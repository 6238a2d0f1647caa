"""Intersection engine.

Finds where two shapes meet, optionally on their natural extensions
(infinite lines, full circles and ellipses, tangent continuations of
splines and the end segments of polylines).

Every solver works on the underlying unbounded curve and reports, per
candidate, how far each shape would need to be extended to reach it. A
single filtering step then applies the in-bounds, extension-limit and
parameter snapping rules, so all shape pairs follow the same policy.

Key functions:
- intersect: Intersections between any two shapes
- intersect_segments: Segment-position-aware line/line intersection
"""

import math
from dataclasses import dataclass
from enum import Enum

import structlog

from chainoffset.core.curves import CurveEvaluator
from chainoffset.core.geometry import (
    EPSILON,
    TWO_PI,
    arc_param_of_angle,
    arc_sweep,
    cross,
    distance,
    dot,
    ellipse_frame,
    ellipse_sweep,
    end_point,
    is_angle_in_sweep,
    lerp,
    line_parameter,
    normalize_angle,
    perpendicular_distance,
    point_at,
    polyline_segments,
    shape_length,
    start_point,
    sub,
    tangent_at,
    tessellate_with_params,
    to_ellipse_local,
    validate_shape,
)
from chainoffset.domain import (
    Arc,
    Circle,
    Ellipse,
    IntersectionResult,
    IntersectionType,
    Line,
    Point,
    Polyline,
    Shape,
    ShapeType,
    Spline,
)
from chainoffset.exceptions import ValidationError

logger = structlog.get_logger(__name__)

PARAM_EPSILON = 1e-9

CONFIDENCE_EXACT = 1.0
CONFIDENCE_TANGENT = 0.9
CONFIDENCE_EXTENDED = 0.85
CONFIDENCE_REFINED = 0.9
CONFIDENCE_APPROXIMATE = 0.7
CONFIDENCE_APPROXIMATE_EXTENDED = 0.6

_TYPE_ORDER = [
    ShapeType.LINE,
    ShapeType.ARC,
    ShapeType.CIRCLE,
    ShapeType.POLYLINE,
    ShapeType.ELLIPSE,
    ShapeType.SPLINE,
]


class SegmentPosition(str, Enum):
    """Position of a segment within a multi-segment shape.

    Only the open ends of a shape may be extended: the first segment
    backwards, the last segment forwards, a lone segment both ways.
    """

    ONLY = "only"
    FIRST = "first"
    INTERMEDIATE = "intermediate"
    LAST = "last"

    def accepts(self, t: float, tolerance: float) -> bool:
        if self is SegmentPosition.ONLY:
            return True
        if self is SegmentPosition.FIRST:
            return t <= 1.0 + tolerance
        if self is SegmentPosition.LAST:
            return t >= -tolerance
        return -tolerance <= t <= 1.0 + tolerance


@dataclass(slots=True)
class _Candidate:
    """Unfiltered intersection on the underlying curves."""

    point: Point
    param1: float
    param2: float
    ext1: float = 0.0
    ext2: float = 0.0
    type: IntersectionType = IntersectionType.EXACT
    confidence: float = CONFIDENCE_EXACT
    distance: float = 0.0

    def swapped(self) -> "_Candidate":
        return _Candidate(
            self.point, self.param2, self.param1, self.ext2, self.ext1,
            self.type, self.confidence, self.distance,
        )


def _snap(t: float) -> float:
    if 0.0 <= t < PARAM_EPSILON:
        return 0.0
    if 1.0 - PARAM_EPSILON < t <= 1.0:
        return 1.0
    return t


def _in_bounds(t: float) -> bool:
    return -PARAM_EPSILON <= t <= 1.0 + PARAM_EPSILON


def _linear_extension(t: float, length: float) -> float:
    if t < 0.0:
        return -t * length
    if t > 1.0:
        return (t - 1.0) * length
    return 0.0


# Line / line


def _line_line(a: Line, b: Line, tolerance: float) -> list[_Candidate]:
    d1 = sub(a.end, a.start)
    d2 = sub(b.end, b.start)
    len1 = math.hypot(d1.x, d1.y)
    len2 = math.hypot(d2.x, d2.y)

    # Degenerate operands reduce to point containment
    if len1 < EPSILON or len2 < EPSILON:
        if len1 < EPSILON and len2 < EPSILON:
            if distance(a.start, b.start) <= tolerance:
                return [_Candidate(a.start, 0.0, 0.0)]
            return []
        if len1 < EPSILON:
            if perpendicular_distance(a.start, b.start, b.end) <= tolerance:
                u = line_parameter(a.start, b.start, b.end)
                return [_Candidate(a.start, 0.0, u, 0.0, _linear_extension(u, len2))]
            return []
        if perpendicular_distance(b.start, a.start, a.end) <= tolerance:
            t = line_parameter(b.start, a.start, a.end)
            return [_Candidate(b.start, t, 0.0, _linear_extension(t, len1), 0.0)]
        return []

    denom = cross(d1, d2)
    if abs(denom) < EPSILON * len1 * len2:
        return _collinear_overlap(a, b, len1, tolerance)

    w = sub(b.start, a.start)
    t = cross(w, d2) / denom
    u = cross(w, d1) / denom
    point = lerp(a.start, a.end, t)
    return [_Candidate(point, t, u, _linear_extension(t, len1), _linear_extension(u, len2))]


def _collinear_overlap(a: Line, b: Line, len1: float, tolerance: float) -> list[_Candidate]:
    if perpendicular_distance(b.start, a.start, a.end) > tolerance:
        return []

    ts = line_parameter(b.start, a.start, a.end)
    te = line_parameter(b.end, a.start, a.end)
    lo = max(0.0, min(ts, te))
    hi = min(1.0, max(ts, te))
    if lo > hi + tolerance / len1:
        return []

    params = [lo] if (hi - lo) * len1 <= tolerance else [lo, hi]
    candidates = []
    for t in params:
        point = lerp(a.start, a.end, t)
        u = line_parameter(point, b.start, b.end)
        candidates.append(_Candidate(point, t, u, type=IntersectionType.COINCIDENT))
    return candidates


def intersect_segments(
    line_a: Line,
    line_b: Line,
    position_a: SegmentPosition,
    position_b: SegmentPosition,
    tolerance: float,
) -> list[IntersectionResult]:
    """Intersect two line segments that belong to larger shapes.

    Each segment may only accept an out-of-bounds (extended) parameter at the
    ends its position allows.

    Args:
        line_a: First segment
        line_b: Second segment
        position_a: Position of the first segment in its shape
        position_b: Position of the second segment in its shape
        tolerance: Distance tolerance

    Returns:
        Intersections whose parameters satisfy both positions
    """
    len_a = max(distance(line_a.start, line_a.end), EPSILON)
    len_b = max(distance(line_b.start, line_b.end), EPSILON)
    results = []
    for c in _line_line(line_a, line_b, tolerance):
        t, u = _snap(c.param1), _snap(c.param2)
        if not position_a.accepts(t, tolerance / len_a):
            continue
        if not position_b.accepts(u, tolerance / len_b):
            continue
        results.append(
            IntersectionResult(
                point=c.point,
                param1=t,
                param2=u,
                type=c.type,
                confidence=c.confidence,
                on_extension=not (_in_bounds(t) and _in_bounds(u)),
            )
        )
    return results


# Circles and arcs


def _circle_of(geometry: Arc | Circle) -> tuple[Point, float]:
    return geometry.center, geometry.radius


def _circular_param(geometry: Arc | Circle, angle: float) -> float:
    if isinstance(geometry, Circle):
        return normalize_angle(angle) / TWO_PI
    return arc_param_of_angle(geometry, angle)


def _circular_extension(geometry: Arc | Circle, param: float) -> float:
    if isinstance(geometry, Circle):
        return 0.0
    return _linear_extension(param, arc_sweep(geometry) * geometry.radius)


def _tangent_epsilon(tolerance: float) -> float:
    return max(1e-9, tolerance * 1e-3)


def _line_circular(line: Line, other: Arc | Circle, tolerance: float) -> list[_Candidate]:
    center, radius = _circle_of(other)
    d = sub(line.end, line.start)
    seg_len = math.hypot(d.x, d.y)
    a = dot(d, d)
    if a < EPSILON:
        return []

    h = perpendicular_distance(center, line.start, line.end)
    if h > radius + tolerance:
        return []

    t_foot = line_parameter(center, line.start, line.end)
    if abs(h - radius) <= _tangent_epsilon(tolerance) or h > radius:
        ts = [(t_foot, IntersectionType.TANGENT, CONFIDENCE_TANGENT)]
    else:
        half_chord = math.sqrt(radius * radius - h * h) / seg_len
        ts = [
            (t_foot - half_chord, IntersectionType.EXACT, CONFIDENCE_EXACT),
            (t_foot + half_chord, IntersectionType.EXACT, CONFIDENCE_EXACT),
        ]

    candidates = []
    for t, kind, confidence in ts:
        point = lerp(line.start, line.end, t)
        angle = math.atan2(point.y - center.y, point.x - center.x)
        param2 = _circular_param(other, angle)
        candidates.append(
            _Candidate(
                point, t, param2,
                _linear_extension(t, seg_len), _circular_extension(other, param2),
                kind, confidence,
            )
        )
    return candidates


def _circular_circular(a: Arc | Circle, b: Arc | Circle, tolerance: float) -> list[_Candidate]:
    c1, r1 = _circle_of(a)
    c2, r2 = _circle_of(b)
    dv = sub(c2, c1)
    d = math.hypot(dv.x, dv.y)

    if d < EPSILON:
        if abs(r1 - r2) <= tolerance:
            return _concentric_overlap(a, b)
        return []
    if d > r1 + r2 + tolerance or d < abs(r1 - r2) - tolerance:
        return []

    along = (d * d + r1 * r1 - r2 * r2) / (2 * d)
    h_sq = r1 * r1 - along * along
    ux, uy = dv.x / d, dv.y / d
    base = Point(c1.x + along * ux, c1.y + along * uy)

    if h_sq <= 0.0 or math.sqrt(h_sq) <= _tangent_epsilon(tolerance):
        points = [(base, IntersectionType.TANGENT, CONFIDENCE_TANGENT)]
    else:
        h = math.sqrt(h_sq)
        points = [
            (Point(base.x - h * uy, base.y + h * ux), IntersectionType.EXACT, CONFIDENCE_EXACT),
            (Point(base.x + h * uy, base.y - h * ux), IntersectionType.EXACT, CONFIDENCE_EXACT),
        ]

    candidates = []
    for point, kind, confidence in points:
        p1 = _circular_param(a, math.atan2(point.y - c1.y, point.x - c1.x))
        p2 = _circular_param(b, math.atan2(point.y - c2.y, point.x - c2.x))
        candidates.append(
            _Candidate(
                point, p1, p2,
                _circular_extension(a, p1), _circular_extension(b, p2),
                kind, confidence,
            )
        )
    return candidates


def _concentric_overlap(a: Arc | Circle, b: Arc | Circle) -> list[_Candidate]:
    """Endpoints of each arc that lie on the other, for coincident circles."""
    candidates = []
    center = a.center
    if isinstance(b, Arc):
        for param2, angle in ((0.0, b.start_angle), (1.0, b.end_angle)):
            if isinstance(a, Circle) or is_angle_in_sweep(a, angle):
                point = Point(center.x + a.radius * math.cos(angle), center.y + a.radius * math.sin(angle))
                candidates.append(
                    _Candidate(point, _circular_param(a, angle), param2, type=IntersectionType.COINCIDENT)
                )
    if isinstance(a, Arc):
        for param1, angle in ((0.0, a.start_angle), (1.0, a.end_angle)):
            if isinstance(b, Circle) or is_angle_in_sweep(b, angle):
                point = Point(center.x + a.radius * math.cos(angle), center.y + a.radius * math.sin(angle))
                candidates.append(
                    _Candidate(point, param1, _circular_param(b, angle), type=IntersectionType.COINCIDENT)
                )
    return candidates


# Ellipses


def _ellipse_param(ellipse: Ellipse, theta: float) -> float:
    if not ellipse.is_arc:
        return normalize_angle(theta) / TWO_PI
    equivalent = Arc(Point(0.0, 0.0), 1.0, ellipse.start_param, ellipse.end_param, False)
    return arc_param_of_angle(equivalent, theta)


def _ellipse_extension(ellipse: Ellipse, param: float) -> float:
    if not ellipse.is_arc:
        return 0.0
    rx, ry, _ = ellipse_frame(ellipse)
    return _linear_extension(param, ellipse_sweep(ellipse) * (rx + ry) / 2)


def _line_ellipse(line: Line, ellipse: Ellipse, tolerance: float) -> list[_Candidate]:
    """Solve in the ellipse's frame scaled to a unit circle.

    The line parameter is invariant under that affine map.
    """
    rx, ry, _ = ellipse_frame(ellipse)
    ls = to_ellipse_local(ellipse, line.start)
    le = to_ellipse_local(ellipse, line.end)
    s = Point(ls.x / rx, ls.y / ry)
    e = Point(le.x / rx, le.y / ry)
    unit = _line_circular(Line(s, e), Circle(Point(0.0, 0.0), 1.0), tolerance / min(rx, ry))

    seg_len = distance(line.start, line.end)
    candidates = []
    for c in unit:
        point = lerp(line.start, line.end, c.param1)
        theta = math.atan2(c.point.y, c.point.x)
        param2 = _ellipse_param(ellipse, theta)
        candidates.append(
            _Candidate(
                point, c.param1, param2,
                _linear_extension(c.param1, seg_len), _ellipse_extension(ellipse, param2),
                c.type, c.confidence,
            )
        )
    return candidates


# Polylines


def _segment_positions(polyline: Polyline) -> list[SegmentPosition]:
    count = len(polyline_segments(polyline))
    if polyline.closed:
        return [SegmentPosition.INTERMEDIATE] * count
    if count == 1:
        return [SegmentPosition.ONLY]
    positions = [SegmentPosition.INTERMEDIATE] * count
    positions[0] = SegmentPosition.FIRST
    positions[-1] = SegmentPosition.LAST
    return positions


def _polyline_candidates(
    poly_shape: Shape,
    polyline: Polyline,
    other: Shape,
    tolerance: float,
    reach: float,
    evaluator: CurveEvaluator | None,
) -> list[_Candidate]:
    segments = polyline_segments(polyline)
    positions = _segment_positions(polyline)
    total = sum(distance(a, b) for a, b in segments)

    candidates = []
    offset = 0.0
    for (a, b), position in zip(segments, positions, strict=True):
        seg_len = distance(a, b)
        if seg_len < EPSILON:
            continue
        segment = Shape(geometry=Line(a, b), id=poly_shape.id)
        for c in _raw_candidates(segment, other, tolerance, reach, evaluator):
            t = c.param1
            if not position.accepts(t, tolerance / seg_len):
                continue
            if position is SegmentPosition.INTERMEDIATE:
                t = min(max(t, 0.0), 1.0)
            ext = _linear_extension(t, seg_len)
            candidates.append(
                _Candidate(
                    c.point, (offset + t * seg_len) / total, c.param2,
                    ext, c.ext2, c.type, c.confidence, c.distance,
                )
            )
        offset += seg_len
    return candidates


# Tessellation fallback


def _is_open(shape: Shape) -> bool:
    geometry = shape.geometry
    match geometry:
        case Circle():
            return False
        case Ellipse():
            return geometry.is_arc
        case Polyline():
            return not geometry.closed
        case _:
            return True


def _extended_samples(
    shape: Shape, reach: float, evaluator: CurveEvaluator | None
) -> list[tuple[float, Point]]:
    """Tessellation including the shape's natural extensions up to ``reach``."""
    geometry = shape.geometry
    samples = tessellate_with_params(shape, evaluator)
    if reach <= 0.0 or not _is_open(shape):
        return samples

    if isinstance(geometry, Arc | Ellipse):
        if isinstance(geometry, Arc):
            sweep = arc_sweep(geometry)
            mean_radius = geometry.radius
        else:
            sweep = ellipse_sweep(geometry)
            rx, ry, _ = ellipse_frame(geometry)
            mean_radius = (rx + ry) / 2
        extra = min(reach / mean_radius, (TWO_PI - sweep) / 2) / sweep
        if extra <= 0.0:
            return samples
        count = len(samples) - 1
        steps = max(2, math.ceil(count * extra))
        before = [(-extra * (steps - i) / steps, point_at(shape, -extra * (steps - i) / steps)) for i in range(steps)]
        after = [(1.0 + extra * (i + 1) / steps, point_at(shape, 1.0 + extra * (i + 1) / steps)) for i in range(steps)]
        return before + samples + after

    total = shape_length(shape, evaluator)
    start, end = start_point(shape, evaluator), end_point(shape, evaluator)
    t0, t1 = tangent_at(shape, 0.0, evaluator), tangent_at(shape, 1.0, evaluator)
    head = (-reach / total, Point(start.x - t0.x * reach, start.y - t0.y * reach))
    tail = (1.0 + reach / total, Point(end.x + t1.x * reach, end.y + t1.y * reach))
    return [head, *samples, tail]


def _segment_hit(a0: Point, a1: Point, b0: Point, b1: Point) -> tuple[float, float] | None:
    d1 = sub(a1, a0)
    d2 = sub(b1, b0)
    denom = cross(d1, d2)
    if abs(denom) < EPSILON:
        return None
    w = sub(b0, a0)
    s = cross(w, d2) / denom
    u = cross(w, d1) / denom
    slack = 1e-9
    if -slack <= s <= 1.0 + slack and -slack <= u <= 1.0 + slack:
        return s, u
    return None


def _refine(
    a: Shape, b: Shape, s: float, u: float, evaluator: CurveEvaluator | None
) -> tuple[float, float, float]:
    """Newton iteration on ``A(s) - B(u) = 0``; returns ``(s, u, residual)``."""
    h = 1e-7
    residual = math.inf
    for _ in range(20):
        pa = point_at(a, s, evaluator)
        pb = point_at(b, u, evaluator)
        fx, fy = pa.x - pb.x, pa.y - pb.y
        residual = math.hypot(fx, fy)
        if residual < 1e-12:
            break
        qa = point_at(a, s + h, evaluator)
        qb = point_at(b, u + h, evaluator)
        jax, jay = (qa.x - pa.x) / h, (qa.y - pa.y) / h
        jbx, jby = (qb.x - pb.x) / h, (qb.y - pb.y) / h
        # [ja, -jb] [ds, du]^T = -f
        det = -jax * jby + jbx * jay
        if abs(det) < 1e-14:
            break
        ds = (-fx * -jby - -jbx * -fy) / det
        du = (jax * -fy - jay * -fx) / det
        s += ds
        u += du
    return s, u, residual


def _evaluable_at(shape: Shape, t: float) -> bool:
    """Whether ``point_at`` is exact at ``t`` (splines clamp outside [0, 1])."""
    return not isinstance(shape.geometry, Spline) or _in_bounds(t)


def _approximate(
    a: Shape,
    b: Shape,
    tolerance: float,
    reach: float,
    evaluator: CurveEvaluator | None,
) -> list[_Candidate]:
    samples_a = _extended_samples(a, reach, evaluator)
    samples_b = _extended_samples(b, reach, evaluator)
    len_a = shape_length(a, evaluator)
    len_b = shape_length(b, evaluator)

    boxes_b = [
        (min(p.x, q.x), min(p.y, q.y), max(p.x, q.x), max(p.y, q.y))
        for (_, p), (_, q) in zip(samples_b, samples_b[1:], strict=False)
    ]

    candidates = []
    for (ta0, a0), (ta1, a1) in zip(samples_a, samples_a[1:], strict=False):
        box_a = (min(a0.x, a1.x), min(a0.y, a1.y), max(a0.x, a1.x), max(a0.y, a1.y))
        for j, box_b in enumerate(boxes_b):
            if box_a[2] < box_b[0] or box_b[2] < box_a[0] or box_a[3] < box_b[1] or box_b[3] < box_a[1]:
                continue
            (tb0, b0), (tb1, b1) = samples_b[j], samples_b[j + 1]
            hit = _segment_hit(a0, a1, b0, b1)
            if hit is None:
                continue
            s = ta0 + (ta1 - ta0) * hit[0]
            u = tb0 + (tb1 - tb0) * hit[1]
            point = lerp(a0, a1, hit[0])
            confidence = CONFIDENCE_APPROXIMATE
            gap = 0.0

            if _evaluable_at(a, s) and _evaluable_at(b, u):
                rs, ru, residual = _refine(a, b, s, u, evaluator)
                if residual <= max(tolerance * 1e-3, 1e-9) and _evaluable_at(a, rs) and _evaluable_at(b, ru):
                    s = rs if _is_open(a) else rs % 1.0
                    u = ru if _is_open(b) else ru % 1.0
                    pa, pb = point_at(a, s, evaluator), point_at(b, u, evaluator)
                    point = Point((pa.x + pb.x) / 2, (pa.y + pb.y) / 2)
                    gap = residual
                    confidence = CONFIDENCE_REFINED

            candidates.append(
                _Candidate(
                    point, s, u,
                    _linear_extension(s, len_a), _linear_extension(u, len_b),
                    IntersectionType.APPROXIMATE, confidence, gap,
                )
            )
    return candidates


# Dispatch


def _raw_candidates(
    first: Shape,
    second: Shape,
    tolerance: float,
    reach: float,
    evaluator: CurveEvaluator | None,
) -> list[_Candidate]:
    """Candidates on the underlying curves; ``first`` must not sort after ``second``."""
    match (first.geometry, second.geometry):
        case (Line() as a, Line() as b):
            return _line_line(a, b, tolerance)
        case (Line() as a, Arc() | Circle() as b):
            return _line_circular(a, b, tolerance)
        case (Line() as a, Ellipse() as b):
            return _line_ellipse(a, b, tolerance)
        case (Arc() | Circle() as a, Arc() | Circle() as b):
            return _circular_circular(a, b, tolerance)
        case (Line() | Arc() | Circle(), Polyline() as b):
            return [c.swapped() for c in _polyline_candidates(second, b, first, tolerance, reach, evaluator)]
        case (Polyline() as a, Polyline() | Ellipse() | Spline()):
            return _polyline_candidates(first, a, second, tolerance, reach, evaluator)
        case (Line() | Arc() | Circle() | Ellipse(), Ellipse() | Spline()) | (Spline(), Spline()):
            return _approximate(first, second, tolerance, reach, evaluator)
        case _:
            return [c.swapped() for c in _raw_candidates(second, first, tolerance, reach, evaluator)]


def _finalize(
    candidates: list[_Candidate],
    allow_extensions: bool,
    max_extension_length: float,
) -> list[IntersectionResult]:
    in_bounds: list[IntersectionResult] = []
    extended: list[IntersectionResult] = []
    for c in candidates:
        if not (math.isfinite(c.point.x) and math.isfinite(c.point.y)):
            continue
        t, u = _snap(c.param1), _snap(c.param2)
        inside = _in_bounds(t) and _in_bounds(u)
        if inside:
            in_bounds.append(
                IntersectionResult(c.point, t, u, c.distance, c.type, c.confidence, False)
            )
        elif allow_extensions and c.ext1 <= max_extension_length and c.ext2 <= max_extension_length:
            if c.type is IntersectionType.APPROXIMATE:
                confidence = min(c.confidence, CONFIDENCE_APPROXIMATE_EXTENDED)
            else:
                confidence = min(c.confidence, CONFIDENCE_EXTENDED)
            extended.append(IntersectionResult(c.point, t, u, c.distance, c.type, confidence, True))
    if in_bounds or not allow_extensions:
        return in_bounds
    return extended


def _cluster(results: list[IntersectionResult], tolerance: float) -> list[IntersectionResult]:
    """Merge results closer than ``tolerance``, keeping the most confident."""
    kept: list[IntersectionResult] = []
    for r in sorted(results, key=lambda r: -r.confidence):
        if all(distance(r.point, k.point) > tolerance for k in kept):
            kept.append(r)
    return sorted(kept, key=lambda r: (r.param1, r.param2))


def intersect(
    shape_a: Shape,
    shape_b: Shape,
    tolerance: float,
    allow_extensions: bool = False,
    max_extension_length: float = 0.0,
    evaluator: CurveEvaluator | None = None,
    exclude: Point | None = None,
) -> list[IntersectionResult]:
    """Find the intersections between two shapes.

    Args:
        shape_a: First shape (``param1`` refers to it)
        shape_b: Second shape (``param2`` refers to it)
        tolerance: Distance below which points coincide
        allow_extensions: Also search the shapes' natural extensions
        max_extension_length: Longest extension allowed on either shape
        evaluator: Spline evaluator (default NURBS evaluator if None)
        exclude: Point whose hits are dropped before in-bounds hits take
            precedence, e.g. a joint the two shapes already share

    Returns:
        Intersections sorted by ``param1``. In-bounds intersections take
        precedence; extended ones are only returned when none exist. An empty
        list means the shapes do not meet, or that one of them is degenerate.
    """
    try:
        validate_shape(shape_a)
        validate_shape(shape_b)
    except ValidationError as e:
        logger.debug("Skipping intersection with invalid shape", error=str(e))
        return []

    reach = max_extension_length if allow_extensions else 0.0
    swap = _TYPE_ORDER.index(shape_a.type) > _TYPE_ORDER.index(shape_b.type)
    first, second = (shape_b, shape_a) if swap else (shape_a, shape_b)

    try:
        candidates = _raw_candidates(first, second, tolerance, reach, evaluator)
    except (ArithmeticError, ValueError) as e:
        logger.warning(
            "Intersection failed",
            shape_a=shape_a.type.value,
            shape_b=shape_b.type.value,
            error=str(e),
        )
        return []

    if swap:
        candidates = [c.swapped() for c in candidates]
    if exclude is not None:
        candidates = [c for c in candidates if distance(c.point, exclude) > tolerance]
    results = _finalize(candidates, allow_extensions, max_extension_length)
    return _cluster(results, tolerance)
