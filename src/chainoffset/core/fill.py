"""Gap filling between consecutive shapes.

Closes the gap at a joint by moving both shapes to the intersection of their
natural extensions: the first shape's end and the second shape's start are
each extended to the point, or trimmed back to it when the point already lies
inside the shape.

Key functions:
- fill_gap: Close the gap described by a GapContext
"""

import structlog

from chainoffset.config import ExtendDirection, OffsetConfig
from chainoffset.core.curves import CurveEvaluator
from chainoffset.core.extend import extend_to_point
from chainoffset.core.geometry import closing_joint, distance, end_point, start_point, validate_shape
from chainoffset.core.intersect import PARAM_EPSILON, intersect
from chainoffset.core.trim import TOLERANCE_RELAXATION, trim
from chainoffset.domain import (
    FillResult,
    FillStrategy,
    GapContext,
    GapFillResult,
    IntersectionResult,
    KeepSide,
    Point,
    Shape,
)
from chainoffset.exceptions import GeometricMismatchError, GeometryError, ValidationError

logger = structlog.get_logger(__name__)

CONFIDENCE_THRESHOLD = 0.5


def choose_fill_target(
    hits: list[IntersectionResult], preferred: Point | None = None
) -> IntersectionResult | None:
    """Pick the intersection a gap is closed at.

    The hit nearest the preferred point wins when one is given; otherwise the
    first sufficiently confident hit, falling back to the first hit.
    """
    if not hits:
        return None
    if preferred is not None:
        return min(hits, key=lambda h: distance(h.point, preferred))
    for hit in hits:
        if hit.confidence > CONFIDENCE_THRESHOLD:
            return hit
    return hits[0]


def _trimmed_to(shape: Shape, point: Point, side: KeepSide, config: OffsetConfig,
                evaluator: CurveEvaluator | None) -> FillResult:
    result = trim(shape, point, side, config.tolerance * TOLERANCE_RELAXATION, evaluator)
    if not result.success:
        return FillResult.failure(result.errors[0], result.warnings)
    return FillResult(
        success=True,
        shape=result.shape,
        intersection_point=point,
        warnings=result.warnings + ("Shape trimmed to reach gap intersection",),
        confidence=result.confidence,
    )


def _reach(
    shape: Shape,
    param: float,
    point: Point,
    at_end: bool,
    config: OffsetConfig,
    evaluator: CurveEvaluator | None,
) -> FillResult:
    """Move one end of ``shape`` to ``point``.

    ``at_end`` selects the end that bounds the gap. The point is trimmed to
    when it lies strictly inside the shape and extended to otherwise.
    """
    anchor = end_point(shape, evaluator) if at_end else start_point(shape, evaluator)
    interior = -PARAM_EPSILON <= param <= 1.0 + PARAM_EPSILON
    if interior and distance(anchor, point) > config.tolerance:
        side = KeepSide.START if at_end else KeepSide.END
        return _trimmed_to(shape, point, side, config, evaluator)

    direction = config.extend_direction
    if direction is ExtendDirection.AUTO:
        direction = ExtendDirection.END if at_end else ExtendDirection.START
    return extend_to_point(
        shape, point, config.model_copy(update={"extend_direction": direction}), evaluator
    )


def _validate(context: GapContext, config: OffsetConfig) -> None:
    if context.gap_size < 0:
        raise ValidationError("Gap size must be non-negative")
    if config.max_extension <= 0:
        raise ValidationError("Maximum extension must be positive")
    validate_shape(context.shape1)
    validate_shape(context.shape2)


def fill_gap(
    context: GapContext,
    config: OffsetConfig,
    evaluator: CurveEvaluator | None = None,
) -> GapFillResult:
    """Close the gap between two consecutive shapes.

    Gaps smaller than ``tolerance * snap_multiplier`` are reported with the
    snap strategy; both strategies move the shapes to the intersection of
    their extensions. ``config.preferred_intersection`` picks among several
    candidate intersections.

    Args:
        context: The two shapes and the gap between them
        config: Tolerance, extension limit and intersection hint
        evaluator: Spline evaluator (default NURBS evaluator if None)

    Returns:
        GapFillResult with one FillResult per shape
    """
    strategy = FillStrategy.EXTEND_BOTH
    try:
        _validate(context, config)
        if context.gap_size < config.tolerance * config.geometry.snap_multiplier:
            strategy = FillStrategy.SNAP_ENDPOINTS

        hits = intersect(
            context.shape1,
            context.shape2,
            config.tolerance,
            allow_extensions=True,
            max_extension_length=config.max_extension,
            evaluator=evaluator,
            exclude=closing_joint(context.shape1, context.shape2, config.tolerance, evaluator),
        )
        target = choose_fill_target(hits, config.preferred_intersection)
        if target is None:
            raise GeometricMismatchError("No intersection found with extended shapes")
    except GeometryError as e:
        failed = FillResult.failure(str(e))
        return GapFillResult(failed, failed, strategy)

    logger.debug(
        "Filling gap",
        shape1=context.shape1_index,
        shape2=context.shape2_index,
        gap=context.gap_size,
        strategy=strategy.value,
    )
    first = _reach(context.shape1, target.param1, target.point, True, config, evaluator)
    second = _reach(context.shape2, target.param2, target.point, False, config, evaluator)
    return GapFillResult(first, second, strategy, target.point)
