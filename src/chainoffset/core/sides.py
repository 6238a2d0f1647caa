"""Geometric side classification of raw offsets.

Each raw offset is assigned to a side of the original chain by sampling a
point just off the original shape's midpoint in the offset's direction.
Closed chains test a sample point against the chain's polygon (inner/outer);
open chains test which side of the shape's direction of travel it falls on
(left/right). Side metadata carried by the input is never consulted.
"""

from dataclasses import dataclass, replace

from chainoffset.core.curves import CurveEvaluator
from chainoffset.core.geometry import (
    add,
    cross,
    normal_at,
    point_at,
    point_in_polygon,
    scale,
    sub,
    tangent_at,
)
from chainoffset.domain import OffsetSide, Point, Shape

AGREEMENT_SAMPLES = 10

_OPPOSITE = {
    OffsetSide.INNER: OffsetSide.OUTER,
    OffsetSide.OUTER: OffsetSide.INNER,
    OffsetSide.LEFT: OffsetSide.RIGHT,
    OffsetSide.RIGHT: OffsetSide.LEFT,
}


@dataclass(frozen=True, slots=True)
class ClassifiedOffset:
    """A raw offset with the side it was assigned to.

    Attributes:
        source_index: Index of the original shape in the chain
        sign: +1 for the right-hand offset, -1 for the left-hand one
        shape: The offset shape
        side: Assigned side
        confidence: Fraction of offset samples agreeing with the sample point
    """

    source_index: int
    sign: float
    shape: Shape
    side: OffsetSide
    confidence: float


def _side_of(point: Point, original: Shape, t: float, polygon: list[Point] | None,
             evaluator: CurveEvaluator | None) -> OffsetSide:
    if polygon is not None:
        return OffsetSide.INNER if point_in_polygon(point, polygon) else OffsetSide.OUTER
    base = point_at(original, t, evaluator)
    turn = cross(tangent_at(original, t, evaluator), sub(point, base))
    return OffsetSide.LEFT if turn > 0 else OffsetSide.RIGHT


def classify_offset(
    original: Shape,
    source_index: int,
    sign: float,
    offset: Shape,
    reach: float,
    polygon: list[Point] | None,
    evaluator: CurveEvaluator | None = None,
) -> ClassifiedOffset:
    """Assign one raw offset to a side of the original chain.

    Args:
        original: The shape that was offset
        source_index: Index of ``original`` in its chain
        sign: Direction of the offset (+1 right of travel, -1 left)
        offset: The raw offset shape
        reach: Distance of the sample point from the original midpoint
        polygon: Tessellated closed chain, or None for open chains
        evaluator: Spline evaluator (default NURBS evaluator if None)

    Returns:
        The classified offset
    """
    mid = point_at(original, 0.5, evaluator)
    sample_point = add(mid, scale(normal_at(original, 0.5, evaluator), sign * reach))
    side = _side_of(sample_point, original, 0.5, polygon, evaluator)

    agree = 0
    for k in range(AGREEMENT_SAMPLES):
        t = (k + 0.5) / AGREEMENT_SAMPLES
        if _side_of(point_at(offset, t, evaluator), original, t, polygon, evaluator) is side:
            agree += 1

    return ClassifiedOffset(
        source_index=source_index,
        sign=sign,
        shape=offset,
        side=side,
        confidence=agree / AGREEMENT_SAMPLES,
    )


def enforce_opposite_sides(
    first: ClassifiedOffset, second: ClassifiedOffset
) -> tuple[ClassifiedOffset, ClassifiedOffset]:
    """Make the two offsets of one shape land on opposite sides.

    When both were classified to the same side, the less confident one is
    moved to the other side.
    """
    if first.side is not second.side:
        return first, second
    if first.confidence < second.confidence:
        return replace(first, side=_OPPOSITE[first.side]), second
    return first, replace(second, side=_OPPOSITE[second.side])
