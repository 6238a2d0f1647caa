"""Core geometry algorithms for chainoffset.

This module contains the algorithms for:

- Shape evaluation, sampling and measurement
- Intersection of any two shapes, including their natural extensions
- Trimming, extending and gap filling
- Side classification and chain offset orchestration
- Batch processing of chain files

All operations are designed to be:
- Pure (inputs are never modified; results are new value objects)
- Safe for use in worker processes
- Non-raising at their public boundary (failures are reported in results)

Key functions:
- intersect: Intersections between two shapes
- trim: Cut a shape at a point
- select_trim_point: Choose the intersection that closes a joint
- extend_to_point: Extend a shape to a target point
- fill_gap: Close the gap between two consecutive shapes
- offset_shape: Raw offset of a single shape
- offset_chain: Offset a whole chain on both sides

Key classes:
- CurveEvaluator: Capability protocol for spline evaluation
- NurbsEvaluator: Default rational B-spline evaluator
- OffsetProcessor: Batch processor for chain files
"""

from chainoffset.core.chain_offset import offset_chain
from chainoffset.core.curves import CurveEvaluator, NurbsEvaluator, interpolate_points
from chainoffset.core.extend import extend_to_point
from chainoffset.core.fill import fill_gap
from chainoffset.core.intersect import SegmentPosition, intersect, intersect_segments
from chainoffset.core.offset import offset_shape
from chainoffset.core.processor import OffsetProcessor, process_chain
from chainoffset.core.trim import select_trim_point, trim, trim_consecutive

__all__ = [
    # Evaluation
    "CurveEvaluator",
    "NurbsEvaluator",
    "interpolate_points",
    # Operations
    "SegmentPosition",
    "extend_to_point",
    "fill_gap",
    "intersect",
    "intersect_segments",
    "offset_chain",
    "offset_shape",
    "select_trim_point",
    "trim",
    "trim_consecutive",
    # Processing
    "OffsetProcessor",
    "process_chain",
]
