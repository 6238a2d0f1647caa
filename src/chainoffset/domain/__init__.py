"""Domain models for chainoffset.

This module contains the value types for shapes, chains, and the results of
intersection, trim, fill and chain offset operations. All models are:

- Immutable (frozen dataclasses with tuple fields)
- Serializable for inter-process communication (parallel processing)
- Independent of any curve library

Key classes:
- Point: A 2D point
- Line, Arc, Circle, Polyline, Ellipse, Spline: Geometry variants
- Shape: An identified geometry payload
- Chain: An ordered, connected sequence of shapes
- OffsetChain: One resolved side of a chain offset
- IntersectionResult, TrimResult, FillResult: Operation results
"""

from chainoffset.domain.chain import (
    Chain,
    CornerType,
    GapFill,
    GapFillLocation,
    OffsetChain,
    OffsetSide,
    TrimPoint,
    ValidationReport,
)
from chainoffset.domain.results import (
    ChainOffsetResult,
    ExtensionType,
    FillResult,
    FillStrategy,
    GapContext,
    GapFillResult,
    GapLocation,
    IntersectionResult,
    IntersectionType,
    KeepSide,
    OffsetMetrics,
    ShapeExtension,
    TrimResult,
)
from chainoffset.domain.shapes import (
    Arc,
    Circle,
    Ellipse,
    Geometry,
    Line,
    Point,
    Polyline,
    PolylineVertex,
    Shape,
    ShapeType,
    Spline,
    new_shape_id,
)

__all__: list[str] = [
    # Enums
    "ShapeType",
    "OffsetSide",
    "CornerType",
    "IntersectionType",
    "KeepSide",
    "ExtensionType",
    "FillStrategy",
    # Geometry
    "Point",
    "Line",
    "Arc",
    "Circle",
    "PolylineVertex",
    "Polyline",
    "Ellipse",
    "Spline",
    "Geometry",
    "Shape",
    "new_shape_id",
    # Chains
    "Chain",
    "OffsetChain",
    "GapFill",
    "GapFillLocation",
    "TrimPoint",
    "ValidationReport",
    # Results
    "IntersectionResult",
    "TrimResult",
    "FillResult",
    "ShapeExtension",
    "GapContext",
    "GapLocation",
    "GapFillResult",
    "OffsetMetrics",
    "ChainOffsetResult",
]
