"""Tests for domain models to verify they work correctly."""

import math

import pytest

from chainoffset.domain import (
    Arc,
    Chain,
    ChainOffsetResult,
    Circle,
    CornerType,
    Ellipse,
    GapFill,
    GapFillLocation,
    GapLocation,
    IntersectionResult,
    KeepSide,
    Line,
    OffsetChain,
    OffsetMetrics,
    OffsetSide,
    Point,
    Polyline,
    PolylineVertex,
    Shape,
    ShapeType,
    Spline,
    TrimPoint,
    ValidationReport,
)


class TestPoint:
    """Tests for Point class."""

    def test_point_creation(self) -> None:
        """Test basic point creation."""
        p = Point(100.0, 200.0)
        assert p.x == 100.0
        assert p.y == 200.0

    def test_point_to_tuple(self) -> None:
        """Test point to tuple conversion."""
        assert Point(1.5, -2.0).to_tuple() == (1.5, -2.0)

    def test_point_serialization(self) -> None:
        """Test point serialization and deserialization."""
        p1 = Point(100.0, 200.0)
        p2 = Point.from_dict(p1.to_dict())
        assert p2 == p1

    def test_point_immutable(self) -> None:
        """Test that point is immutable."""
        p = Point(100.0, 200.0)
        with pytest.raises(AttributeError):
            p.x = 300.0  # type: ignore


class TestShape:
    """Tests for Shape and the geometry variants."""

    def test_type_follows_geometry(self) -> None:
        """Test the type tag is derived from the geometry payload."""
        assert Shape(Line(Point(0, 0), Point(1, 0))).type == ShapeType.LINE
        assert Shape(Arc(Point(0, 0), 1.0, 0.0, 1.0)).type == ShapeType.ARC
        assert Shape(Circle(Point(0, 0), 1.0)).type == ShapeType.CIRCLE
        assert Shape(Polyline.from_points([Point(0, 0), Point(1, 1)])).type == ShapeType.POLYLINE
        assert Shape(Ellipse(Point(0, 0), Point(2, 0), 0.5)).type == ShapeType.ELLIPSE

    def test_generated_ids_are_unique(self) -> None:
        """Test shapes get distinct ids when none is given."""
        a = Shape(Line(Point(0, 0), Point(1, 0)))
        b = Shape(Line(Point(0, 0), Point(1, 0)))
        assert a.id != b.id

    def test_with_geometry_keeps_id(self) -> None:
        """Test replacing geometry preserves the shape id."""
        shape = Shape(Line(Point(0, 0), Point(1, 0)), id="edge")
        moved = shape.with_geometry(Line(Point(0, 1), Point(1, 1)))
        assert moved.id == "edge"
        assert moved.geometry.start == Point(0, 1)
        assert shape.geometry.start == Point(0, 0)

    def test_line_serialization(self) -> None:
        """Test a line shape survives a dictionary round trip."""
        shape = Shape(Line(Point(0, 0), Point(10, 5)), id="l1")
        data = shape.to_dict()
        assert data["type"] == "line"
        assert data["id"] == "l1"
        assert Shape.from_dict(data) == shape

    def test_arc_serialization_keeps_sense(self) -> None:
        """Test clockwise arcs keep their rotational sense."""
        shape = Shape(Arc(Point(1, 2), 5.0, math.pi, 0.0, clockwise=True), id="a1")
        restored = Shape.from_dict(shape.to_dict())
        assert restored.geometry.clockwise is True
        assert restored == shape

    def test_polyline_points_repeat_first_when_closed(self) -> None:
        """Test closed polylines repeat their first vertex."""
        pts = [Point(0, 0), Point(1, 0), Point(1, 1)]
        closed = Polyline.from_points(pts, closed=True)
        assert closed.points == pts + [pts[0]]
        assert Polyline.from_points(pts).points == pts

    def test_polyline_bulge_serialization(self) -> None:
        """Test polyline vertices carry their bulge."""
        poly = Polyline((PolylineVertex(0, 0, 0.5), PolylineVertex(1, 0)), closed=False)
        restored = Shape.from_dict(Shape(poly).to_dict()).geometry
        assert restored.vertices[0].bulge == 0.5
        assert restored.vertices[1].bulge == 0.0

    def test_ellipse_arc_flag(self) -> None:
        """Test an ellipse is an arc only when both parameters are set."""
        assert not Ellipse(Point(0, 0), Point(2, 0), 0.5).is_arc
        assert Ellipse(Point(0, 0), Point(2, 0), 0.5, 0.0, math.pi).is_arc

    def test_spline_default_weights(self) -> None:
        """Test a spline without weights deserializes with unit weights."""
        data = {
            "type": "spline",
            "geometry": {
                "control_points": [{"x": 0, "y": 0}, {"x": 1, "y": 1}],
                "knots": [0, 0, 1, 1],
                "degree": 1,
            },
        }
        spline = Shape.from_dict(data).geometry
        assert isinstance(spline, Spline)
        assert spline.weights == (1.0, 1.0)

    def test_unknown_type_rejected(self) -> None:
        """Test an unknown type tag raises ValueError."""
        with pytest.raises(ValueError):
            Shape.from_dict({"type": "hyperbola", "geometry": {}})


class TestChain:
    """Tests for Chain and OffsetChain."""

    def test_chain_length(self) -> None:
        """Test len() counts shapes."""
        chain = Chain(shapes=(Shape(Line(Point(0, 0), Point(1, 0))),))
        assert len(chain) == 1
        assert len(Chain(shapes=())) == 0

    def test_chain_serialization(self) -> None:
        """Test chain serialization and deserialization."""
        chain = Chain(
            shapes=(
                Shape(Line(Point(0, 0), Point(10, 0)), id="a"),
                Shape(Arc(Point(10, 5), 5.0, -math.pi / 2, math.pi / 2), id="b"),
            ),
            closed=False,
            id="chain-1",
        )
        assert Chain.from_dict(chain.to_dict()) == chain

    def test_chain_immutable(self) -> None:
        """Test that chain is immutable."""
        chain = Chain(shapes=())
        with pytest.raises(AttributeError):
            chain.closed = True  # type: ignore

    def test_offset_chain_serialization(self) -> None:
        """Test an offset chain keeps its joint records."""
        original = Shape(Line(Point(0, 0), Point(8, 0)), id="s")
        modified = original.with_geometry(Line(Point(0, 0), Point(10, 0)))
        offset = OffsetChain(
            original_chain_id="chain-1",
            side=OffsetSide.LEFT,
            shapes=(modified,),
            closed=False,
            continuous=True,
            gap_fills=(
                GapFill(
                    gap_size=2.0,
                    modified_shapes=((original, modified),),
                    gap_location=GapFillLocation(0, 1, Point(9, 1)),
                ),
            ),
            trim_points=(TrimPoint(Point(10, 0), 0, 1, CornerType.SHARP),),
            validation=ValidationReport(samples=8),
            id="off-1",
        )
        restored = OffsetChain.from_dict(offset.to_dict())
        assert restored == offset
        assert restored.gap_fills[0].method == "extend"

    def test_offset_chain_as_chain(self) -> None:
        """Test an offset chain can be viewed as a plain chain."""
        shape = Shape(Line(Point(0, 0), Point(1, 0)))
        offset = OffsetChain("c", OffsetSide.OUTER, (shape,), closed=True, continuous=True, id="o")
        chain = offset.to_chain()
        assert chain.shapes == (shape,)
        assert chain.closed is True
        assert chain.id == "o"

    def test_validation_report_validity(self) -> None:
        """Test a report is valid only without deviations, crossings or winding flips."""
        assert ValidationReport().is_valid
        assert not ValidationReport(deviations=1).is_valid
        assert not ValidationReport(crossings=2).is_valid
        assert not ValidationReport(winding_consistent=False).is_valid


class TestResults:
    """Tests for operation result models."""

    def test_keep_side_aliases(self) -> None:
        """Test BEFORE and AFTER behave like START and END."""
        assert KeepSide.START.keeps_start
        assert KeepSide.BEFORE.keeps_start
        assert not KeepSide.END.keeps_start
        assert not KeepSide.AFTER.keeps_start
        assert KeepSide("before") is KeepSide.BEFORE

    def test_intersection_swapped(self) -> None:
        """Test swapping exchanges the parameters only."""
        hit = IntersectionResult(Point(1, 2), 0.25, 0.75, confidence=0.85, on_extension=True)
        swapped = hit.swapped()
        assert swapped.param1 == 0.75
        assert swapped.param2 == 0.25
        assert swapped.point == hit.point
        assert swapped.confidence == 0.85
        assert swapped.on_extension

    def test_gap_location_midpoint(self) -> None:
        """Test the midpoint of a gap."""
        assert GapLocation(Point(0, 0), Point(4, 2)).midpoint == Point(2, 1)

    def test_chain_offset_result_serialization(self) -> None:
        """Test a chain offset result survives a dictionary round trip."""
        inner = OffsetChain(
            "c", OffsetSide.INNER, (Shape(Circle(Point(0, 0), 8.0), id="c-inner"),),
            closed=True, continuous=True, id="i",
        )
        result = ChainOffsetResult(
            success=True,
            inner_chain=inner,
            metrics=OffsetMetrics(total_shapes=1, processing_time_ms=1.5),
            warnings=("note",),
        )
        restored = ChainOffsetResult.from_dict(result.to_dict())
        assert restored == result
        assert restored.outer_chain is None

    def test_failed_result_serialization(self) -> None:
        """Test failure results keep their errors."""
        data = ChainOffsetResult(success=False, errors=("Chain has no shapes",)).to_dict()
        assert data["inner_chain"] is None
        restored = ChainOffsetResult.from_dict(data)
        assert not restored.success
        assert restored.errors == ("Chain has no shapes",)
