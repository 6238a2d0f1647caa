"""Chain offset orchestration.

Offsets every shape of a chain in both directions, sorts the raw offsets onto
the sides of the chain, and joins each side into a continuous offset chain:

1. Raw offsets at ``+|d|`` and ``-|d|`` for every shape
2. Geometric side classification (inner/outer or left/right)
3. Joint resolution: tangential joints are kept, overlaps are trimmed and
   gaps are filled by extension
4. Bounded re-check passes, then removal of local loops between nearby
   non-adjacent shapes
5. Validation against the original chain (distance, crossings, winding)

Key functions:
- offset_chain: Offset a whole chain
"""

import math
import time
from dataclasses import dataclass, field

import structlog

from chainoffset.config import ExtendDirection, OffsetConfig
from chainoffset.core.curves import CurveEvaluator
from chainoffset.core.fill import fill_gap
from chainoffset.core.geometry import (
    EPSILON,
    bounding_box,
    closing_joint,
    distance,
    distance_to_shape,
    end_point,
    nearest_point_on_segment,
    perpendicular_distance,
    point_at,
    shape_length,
    signed_area,
    start_point,
    tessellate,
    tessellate_chain,
    validate_shape,
)
from chainoffset.core.intersect import intersect
from chainoffset.core.offset import offset_shape
from chainoffset.core.sides import ClassifiedOffset, classify_offset, enforce_opposite_sides
from chainoffset.core.trim import TOLERANCE_RELAXATION, select_trim_point, trim, trim_consecutive
from chainoffset.domain import (
    Arc,
    Chain,
    ChainOffsetResult,
    Circle,
    CornerType,
    Ellipse,
    GapContext,
    GapFill,
    GapFillLocation,
    GapLocation,
    IntersectionResult,
    IntersectionType,
    KeepSide,
    Line,
    OffsetChain,
    OffsetMetrics,
    OffsetSide,
    Point,
    Shape,
    Spline,
    TrimPoint,
    ValidationReport,
)
from chainoffset.exceptions import GeometryError, ValidationError

logger = structlog.get_logger(__name__)

REACH_FRACTION = 0.25
INTERIOR_MARGIN = 1e-6
VALIDATION_RELAXATION = 10.0


@dataclass
class _SideState:
    """Mutable working state for one side while its joints are resolved."""

    side: OffsetSide
    shapes: list[Shape] = field(default_factory=list)
    sources: list[int] = field(default_factory=list)
    gap_fills: list[GapFill] = field(default_factory=list)
    trim_points: list[TrimPoint] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    joint_warnings: dict[tuple[int, int], list[str]] = field(default_factory=dict)
    intersections_found: int = 0

    def add(self, offset: ClassifiedOffset) -> None:
        self.shapes.append(Shape(geometry=offset.shape.geometry, id=f"{offset.shape.id}-{self.side.value}"))
        self.sources.append(offset.source_index)

    def joint_failed(self, src1: int, src2: int, message: str) -> None:
        self.joint_warnings.setdefault((src1, src2), []).append(message)


@dataclass(frozen=True)
class _ChainContext:
    """Per-chain values shared by every step."""

    originals: tuple[Shape, ...]
    closed: bool
    magnitude: float
    epsilon: float
    snap: float
    config: OffsetConfig
    evaluator: CurveEvaluator | None


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


def _joints(count: int, closed: bool) -> list[tuple[int, int]]:
    pairs = [(k, k + 1) for k in range(count - 1)]
    if closed and count > 1:
        pairs.append((count - 1, 0))
    return pairs


# Raw offsets and side classification


def _classify_all(
    ctx: _ChainContext, polygon: list[Point] | None
) -> tuple[dict[OffsetSide, _SideState], list[str]]:
    sides = (OffsetSide.INNER, OffsetSide.OUTER) if ctx.closed else (OffsetSide.LEFT, OffsetSide.RIGHT)
    states = {side: _SideState(side) for side in sides}
    warnings: list[str] = []
    reach = min(ctx.magnitude, max(ctx.epsilon * 10, ctx.magnitude * REACH_FRACTION))

    for index, original in enumerate(ctx.originals):
        classified: list[ClassifiedOffset] = []
        for sign in (1.0, -1.0):
            try:
                raw, raw_warnings = offset_shape(original, sign * ctx.magnitude, ctx.evaluator)
            except (ValidationError, ValueError, ArithmeticError) as e:
                warnings.append(f"Shape {index} has no offset on one side: {e}")
                continue
            warnings.extend(raw_warnings)
            classified.append(
                classify_offset(original, index, sign, raw, reach, polygon, ctx.evaluator)
            )
        if len(classified) == 2:
            classified = list(enforce_opposite_sides(classified[0], classified[1]))
        for offset in classified:
            states[offset.side].add(offset)
    return states, warnings


# Joint resolution


def _trim_joint(
    state: _SideState, a: int, b: int, hits: list[IntersectionResult], vertex: Point, ctx: _ChainContext
) -> bool:
    s1, s2 = state.shapes[a], state.shapes[b]
    src1, src2 = state.sources[a], state.sources[b]
    choice = select_trim_point(hits, vertex, ctx.epsilon)
    if choice is None:
        return False

    first, second = trim_consecutive(s1, s2, choice, ctx.epsilon, ctx.evaluator)
    if not (first.success and second.success):
        reasons = "; ".join(first.errors + second.errors)
        state.joint_failed(src1, src2, f"Trim failed at joint {src1}-{src2}: {reasons}")
        return False
    state.warnings.extend(first.warnings + second.warnings)
    if first.shape == s1 and second.shape == s2:
        return False

    state.shapes[a] = first.shape
    state.shapes[b] = second.shape
    corner = CornerType.TANGENT if choice.type is IntersectionType.TANGENT else CornerType.SHARP
    state.trim_points.append(TrimPoint(choice.point, src1, src2, corner))
    logger.debug("Joint trimmed", side=state.side.value, joint=(src1, src2), corner=corner.value)
    return True


def _fill_joint(
    state: _SideState, a: int, b: int, gap: float, target: IntersectionResult, ctx: _ChainContext
) -> bool:
    s1, s2 = state.shapes[a], state.shapes[b]
    src1, src2 = state.sources[a], state.sources[b]
    context = GapContext(
        shape1=s1,
        shape2=s2,
        gap_size=gap,
        gap_location=GapLocation(end_point(s1, ctx.evaluator), start_point(s2, ctx.evaluator)),
        shape1_index=src1,
        shape2_index=src2,
        is_closed_chain=ctx.closed,
    )
    fill_config = ctx.config.model_copy(
        update={
            "tolerance": ctx.epsilon,
            "preferred_intersection": target.point,
            "extend_direction": ExtendDirection.AUTO,
        }
    )
    result = fill_gap(context, fill_config, ctx.evaluator)
    if not result.success:
        state.joint_failed(src1, src2, f"Gap fill failed at joint {src1}-{src2}: {'; '.join(result.errors)}")
        return False
    state.warnings.extend(result.warnings)

    new1, new2 = result.shape1_result.shape, result.shape2_result.shape
    state.shapes[a] = new1
    state.shapes[b] = new2
    state.gap_fills.append(
        GapFill(
            gap_size=gap,
            modified_shapes=((s1, new1), (s2, new2)),
            gap_location=GapFillLocation(src1, src2, context.gap_location.midpoint),
        )
    )
    logger.debug("Gap filled", side=state.side.value, joint=(src1, src2), gap=gap)
    return True


def _resolve_joint(state: _SideState, a: int, b: int, ctx: _ChainContext) -> bool:
    """Resolve one joint; returns whether any shape changed."""
    s1, s2 = state.shapes[a], state.shapes[b]
    gap = distance(end_point(s1, ctx.evaluator), start_point(s2, ctx.evaluator))
    if gap <= ctx.epsilon:
        return False

    src1, src2 = state.sources[a], state.sources[b]
    vertex = end_point(ctx.originals[src1], ctx.evaluator)
    hits = intersect(
        s1,
        s2,
        ctx.epsilon,
        allow_extensions=True,
        max_extension_length=ctx.config.max_extension,
        evaluator=ctx.evaluator,
        exclude=closing_joint(s1, s2, ctx.epsilon, ctx.evaluator),
    )
    state.intersections_found += len(hits)
    if not hits:
        state.joint_failed(src1, src2, f"No intersection found between offset shapes {src1} and {src2}")
        return False

    nearest = min(hits, key=lambda h: distance(h.point, vertex))
    if not nearest.on_extension:
        return _trim_joint(state, a, b, hits, vertex, ctx)
    return _fill_joint(state, a, b, gap, nearest, ctx)


def _resolve_joints(state: _SideState, ctx: _ChainContext) -> None:
    for _ in range(ctx.config.geometry.resolution_passes):
        changed = False
        for a, b in _joints(len(state.shapes), ctx.closed):
            changed = _resolve_joint(state, a, b, ctx) or changed
        if not changed:
            break


# Loop removal


def _interior_crossing(s1: Shape, s2: Shape, ctx: _ChainContext) -> IntersectionResult | None:
    hits = [
        h
        for h in intersect(s1, s2, ctx.epsilon, evaluator=ctx.evaluator)
        if INTERIOR_MARGIN < h.param1 < 1.0 - INTERIOR_MARGIN and INTERIOR_MARGIN < h.param2 < 1.0 - INTERIOR_MARGIN
    ]
    if not hits:
        return None
    return max(hits, key=lambda h: (h.param1, -h.param2))


def _cut_loop(state: _SideState, i: int, j: int, k: int, hit: IntersectionResult, ctx: _ChainContext) -> bool:
    tolerance = ctx.epsilon * TOLERANCE_RELAXATION
    first = trim(state.shapes[i], hit.point, KeepSide.START, tolerance, ctx.evaluator)
    second = trim(state.shapes[j], hit.point, KeepSide.END, tolerance, ctx.evaluator)
    if not (first.success and second.success):
        return False
    if first.shape == state.shapes[i] and second.shape == state.shapes[j]:
        return False

    count = len(state.shapes)
    removed = {(i + m) % count for m in range(1, k)}
    state.trim_points.append(TrimPoint(hit.point, state.sources[i], state.sources[j], CornerType.SHARP))
    state.shapes[i] = first.shape
    state.shapes[j] = second.shape
    state.shapes = [s for n, s in enumerate(state.shapes) if n not in removed]
    state.sources = [s for n, s in enumerate(state.sources) if n not in removed]
    logger.debug("Local loop removed", side=state.side.value, removed=len(removed))
    return True


def _neighborhood(ctx: _ChainContext) -> int:
    lengths = [shape_length(s, ctx.evaluator) for s in ctx.originals]
    mean_length = sum(lengths) / len(lengths)
    if mean_length < EPSILON:
        return ctx.config.geometry.max_neighborhood
    return min(ctx.config.geometry.max_neighborhood, 1 + math.ceil(ctx.magnitude / mean_length))


def _remove_loops(state: _SideState, ctx: _ChainContext) -> None:
    reach = _neighborhood(ctx)
    if reach < 2:
        return

    removed_any = True
    while removed_any and len(state.shapes) >= 3:
        removed_any = False
        count = len(state.shapes)
        for i in range(count):
            for k in range(2, reach + 1):
                j = i + k
                if j >= count:
                    if not ctx.closed:
                        break
                    j %= count
                if j == i or count - (k - 1) < 2:
                    break
                hit = _interior_crossing(state.shapes[i], state.shapes[j], ctx)
                if hit is not None and _cut_loop(state, i, j, k, hit, ctx):
                    removed_any = True
                    break
            if removed_any:
                break


# Validation


def _carrier_deviation(point: Point, original: Shape, offset: Shape, magnitude: float) -> float | None:
    """Deviation from the offset distance, measured to the original's carrier curve.

    Only analytic pairs have a carrier: a line offset stays on a parallel
    line and an arc or circle offset on a concentric circle, including any
    extension added while filling gaps.
    """
    o, g = original.geometry, offset.geometry
    if isinstance(o, Line) and isinstance(g, Line):
        return abs(perpendicular_distance(point, o.start, o.end) - magnitude)
    if isinstance(o, Arc | Circle) and isinstance(g, Arc | Circle):
        return abs(abs(distance(point, o.center) - o.radius) - magnitude)
    return None


class _ChainDistance:
    """Distance from a point to the original chain, with curve samples cached."""

    def __init__(self, originals: tuple[Shape, ...], evaluator: CurveEvaluator | None):
        self._analytic = [s for s in originals if not isinstance(s.geometry, Ellipse | Spline)]
        self._sampled = [tessellate(s, evaluator, 256) for s in originals if isinstance(s.geometry, Ellipse | Spline)]
        self._evaluator = evaluator

    def __call__(self, point: Point) -> float:
        best = math.inf
        for shape in self._analytic:
            best = min(best, distance_to_shape(point, shape, self._evaluator))
        for pts in self._sampled:
            for a, b in zip(pts, pts[1:], strict=False):
                best = min(best, nearest_point_on_segment(point, a, b)[1])
        return best


def _validate(state: _SideState, ctx: _ChainContext, polygon: list[Point] | None) -> ValidationReport:
    samples_per_shape = ctx.config.geometry.validation_samples
    limit = max(ctx.config.tolerance, ctx.epsilon) * VALIDATION_RELAXATION
    to_chain = _ChainDistance(ctx.originals, ctx.evaluator)

    samples = deviations = 0
    max_deviation = 0.0
    for shape, source in zip(state.shapes, state.sources, strict=True):
        original = ctx.originals[source]
        for k in range(samples_per_shape):
            p = point_at(shape, (k + 0.5) / samples_per_shape, ctx.evaluator)
            samples += 1
            deviation = max(0.0, ctx.magnitude - to_chain(p))
            carrier = _carrier_deviation(p, original, shape, ctx.magnitude)
            if carrier is not None:
                deviation = max(deviation, carrier)
            max_deviation = max(max_deviation, deviation)
            if deviation > limit:
                deviations += 1

    crossings = 0
    for shape in state.shapes:
        for original in ctx.originals:
            crossings += len(intersect(shape, original, ctx.epsilon, evaluator=ctx.evaluator))

    winding_consistent = True
    if polygon is not None and len(polygon) >= 3:
        offset_polygon = tessellate_chain(state.shapes, ctx.evaluator)
        if len(offset_polygon) >= 3:
            original_area = signed_area(polygon)
            offset_area = signed_area(offset_polygon)
            winding_consistent = abs(offset_area) > EPSILON and (offset_area > 0) == (original_area > 0)
        else:
            winding_consistent = False

    return ValidationReport(
        samples=samples,
        deviations=deviations,
        max_deviation=max_deviation,
        crossings=crossings,
        winding_consistent=winding_consistent,
    )


def _report_open_joints(state: _SideState, ctx: _ChainContext) -> None:
    """Keep failure warnings only for joints that survive loop removal and are still open."""
    for a, b in _joints(len(state.shapes), ctx.closed):
        gap = distance(end_point(state.shapes[a], ctx.evaluator), start_point(state.shapes[b], ctx.evaluator))
        if gap > ctx.epsilon:
            state.warnings.extend(state.joint_warnings.get((state.sources[a], state.sources[b]), ()))


def _is_continuous(state: _SideState, ctx: _ChainContext) -> bool:
    return all(
        distance(end_point(state.shapes[a], ctx.evaluator), start_point(state.shapes[b], ctx.evaluator)) <= ctx.snap
        for a, b in _joints(len(state.shapes), ctx.closed)
    )


def _build_side(
    state: _SideState, chain: Chain, ctx: _ChainContext, polygon: list[Point] | None
) -> OffsetChain | None:
    if not state.shapes:
        return None
    _resolve_joints(state, ctx)
    _remove_loops(state, ctx)
    _report_open_joints(state, ctx)
    report = _validate(state, ctx, polygon)

    continuous = _is_continuous(state, ctx)
    if not continuous:
        state.warnings.append(f"{state.side.value.capitalize()} offset chain is not continuous")
    if report.crossings:
        state.warnings.append(f"{state.side.value.capitalize()} offset chain crosses the original chain")
    if not report.winding_consistent:
        state.warnings.append(f"{state.side.value.capitalize()} offset chain winding differs from the original")

    return OffsetChain(
        original_chain_id=chain.id,
        side=state.side,
        shapes=tuple(state.shapes),
        closed=ctx.closed,
        continuous=continuous,
        gap_fills=tuple(state.gap_fills),
        trim_points=tuple(state.trim_points),
        validation=report,
    )


def _offset_chain(
    chain: Chain, distance_: float, config: OffsetConfig, evaluator: CurveEvaluator | None, started: float
) -> ChainOffsetResult:
    if not chain.shapes:
        raise ValidationError("Chain has no shapes")
    if not math.isfinite(distance_) or abs(distance_) < EPSILON:
        raise ValidationError("Offset distance must be non-zero and finite")
    for index, shape in enumerate(chain.shapes):
        try:
            validate_shape(shape)
        except ValidationError as e:
            raise ValidationError(f"Shape {index}: {e}") from e

    min_x, min_y, max_x, max_y = bounding_box(chain.shapes, evaluator)
    epsilon = config.geometry.epsilon_for(math.hypot(max_x - min_x, max_y - min_y), config.tolerance)
    first, last = chain.shapes[0], chain.shapes[-1]
    closed = chain.closed or distance(start_point(first, evaluator), end_point(last, evaluator)) <= epsilon

    ctx = _ChainContext(
        originals=chain.shapes,
        closed=closed,
        magnitude=abs(distance_),
        epsilon=epsilon,
        snap=config.geometry.snap_for(epsilon, config.snap_threshold),
        config=config,
        evaluator=evaluator,
    )
    polygon = tessellate_chain(chain.shapes, evaluator) if closed else None

    states, warnings = _classify_all(ctx, polygon)
    first_side, second_side = states.values()
    inner = _build_side(first_side, chain, ctx, polygon)
    outer = _build_side(second_side, chain, ctx, polygon)

    for state in (first_side, second_side):
        warnings.extend(state.warnings)
    reports = [c.validation for c in (inner, outer) if c is not None]
    metrics = OffsetMetrics(
        total_shapes=len(chain.shapes),
        gaps_filled=len(first_side.gap_fills) + len(second_side.gap_fills),
        trims_applied=len(first_side.trim_points) + len(second_side.trim_points),
        intersections_found=first_side.intersections_found + second_side.intersections_found,
        deviations=sum(r.deviations for r in reports),
        crossings=sum(r.crossings for r in reports),
        processing_time_ms=_elapsed_ms(started),
    )

    errors: tuple[str, ...] = ()
    if inner is None and outer is None:
        errors = ("No offset could be produced on either side of the chain",)

    logger.info(
        "Chain offset complete",
        chain=chain.id,
        closed=closed,
        shapes=metrics.total_shapes,
        gaps_filled=metrics.gaps_filled,
        trims=metrics.trims_applied,
        duration_ms=round(metrics.processing_time_ms, 1),
    )
    return ChainOffsetResult(
        success=not errors,
        inner_chain=inner,
        outer_chain=outer,
        metrics=metrics,
        warnings=tuple(dict.fromkeys(warnings)),
        errors=errors,
    )


def offset_chain(
    chain: Chain,
    distance: float,
    config: OffsetConfig,
    evaluator: CurveEvaluator | None = None,
) -> ChainOffsetResult:
    """Offset a chain on both sides.

    Positive and negative distances give the same pair of chains; the sign
    only matters for single-shape offsets. For closed chains ``inner_chain``
    and ``outer_chain`` hold the two sides; for open chains they hold the
    left and right sides respectively.

    A side whose joints could not all be resolved is still returned, with
    ``continuous=False`` and a warning per failed joint.

    Args:
        chain: Chain to offset
        distance: Offset distance (its magnitude is used for both sides)
        config: Tolerances and extension limits
        evaluator: Spline evaluator (default NURBS evaluator if None)

    Returns:
        ChainOffsetResult; never raises for geometric failures
    """
    started = time.perf_counter()
    try:
        return _offset_chain(chain, distance, config, evaluator, started)
    except GeometryError as e:
        error = str(e)
    except (ArithmeticError, ValueError) as e:
        logger.warning("Chain offset failed", chain=chain.id, error=str(e))
        error = f"Chain offset failed: {e}"
    return ChainOffsetResult(
        success=False,
        metrics=OffsetMetrics(total_shapes=len(chain.shapes), processing_time_ms=_elapsed_ms(started)),
        errors=(error,),
    )
