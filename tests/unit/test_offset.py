"""Tests for per-shape offsets."""

import math

import pytest

from chainoffset.core.geometry import point_at, start_point
from chainoffset.core.offset import offset_shape
from chainoffset.domain import (
    Arc,
    Circle,
    Ellipse,
    Line,
    Point,
    Polyline,
    PolylineVertex,
    Shape,
    Spline,
)
from chainoffset.exceptions import ValidationError


class TestAnalyticOffsets:
    """Tests for lines, arcs and circles."""

    def test_line_positive_is_right_of_travel(self) -> None:
        """Test a positive distance moves a line to the right of its direction."""
        shape, warnings = offset_shape(Shape(Line(Point(0, 0), Point(10, 0)), id="l"), 2.0)
        assert shape.geometry.start.y == pytest.approx(-2.0)
        assert shape.geometry.end.y == pytest.approx(-2.0)
        assert shape.geometry.end.x == pytest.approx(10.0)
        assert shape.id == "l"
        assert warnings == ()

    def test_line_negative_is_left_of_travel(self) -> None:
        """Test a negative distance moves a line to the left of its direction."""
        shape, _ = offset_shape(Shape(Line(Point(0, 0), Point(0, 10))), -3.0)
        assert shape.geometry.start.x == pytest.approx(-3.0)

    def test_counter_clockwise_arc_grows(self) -> None:
        """Test the right side of a counter-clockwise arc is outside it."""
        shape, _ = offset_shape(Shape(Arc(Point(0, 0), 10.0, 0.0, math.pi)), 2.0)
        assert shape.geometry.radius == pytest.approx(12.0)
        assert shape.geometry.start_angle == 0.0
        assert shape.geometry.end_angle == math.pi

    def test_clockwise_arc_shrinks(self) -> None:
        """Test the right side of a clockwise arc is inside it."""
        shape, _ = offset_shape(Shape(Arc(Point(0, 0), 10.0, math.pi, 0.0, clockwise=True)), 2.0)
        assert shape.geometry.radius == pytest.approx(8.0)

    def test_arc_collapse(self) -> None:
        """Test an offset that consumes the radius raises."""
        with pytest.raises(ValidationError):
            offset_shape(Shape(Arc(Point(0, 0), 10.0, 0.0, math.pi)), -10.0)

    def test_circle(self) -> None:
        """Test circles change radius."""
        grown, _ = offset_shape(Shape(Circle(Point(1, 1), 5.0)), 1.5)
        shrunk, _ = offset_shape(Shape(Circle(Point(1, 1), 5.0)), -1.5)
        assert grown.geometry.radius == pytest.approx(6.5)
        assert shrunk.geometry.radius == pytest.approx(3.5)
        with pytest.raises(ValidationError):
            offset_shape(Shape(Circle(Point(0, 0), 5.0)), -6.0)


class TestPolylineOffsets:
    """Tests for polylines."""

    def test_open_polyline_mitres_corners(self) -> None:
        """Test offset segments meet at mitred corners."""
        poly = Polyline.from_points([Point(0, 0), Point(10, 0), Point(10, 10)])
        shape, warnings = offset_shape(Shape(poly), 1.0)
        points = shape.geometry.points
        assert len(points) == 3
        assert points[0].x == pytest.approx(0.0)
        assert points[0].y == pytest.approx(-1.0)
        assert points[1].x == pytest.approx(11.0)
        assert points[1].y == pytest.approx(-1.0)
        assert points[2].x == pytest.approx(11.0)
        assert points[2].y == pytest.approx(10.0)
        assert warnings == ()

    def test_closed_polyline(self) -> None:
        """Test every vertex of a closed polyline is mitred."""
        square = Polyline.from_points(
            [Point(0, 0), Point(10, 0), Point(10, 10), Point(0, 10)], closed=True
        )
        shape, _ = offset_shape(Shape(square), 1.0)
        vertices = shape.geometry.vertices
        assert shape.geometry.closed
        assert len(vertices) == 4
        assert (vertices[0].x, vertices[0].y) == pytest.approx((-1.0, -1.0))
        assert (vertices[2].x, vertices[2].y) == pytest.approx((11.0, 11.0))

    def test_bulges_warned(self) -> None:
        """Test bulged segments are offset as chords with a warning."""
        poly = Polyline((PolylineVertex(0, 0, 0.5), PolylineVertex(10, 0)))
        shape, warnings = offset_shape(Shape(poly), 1.0)
        assert warnings == ("Polyline bulges were offset as straight segments",)
        assert all(v.bulge == 0.0 for v in shape.geometry.vertices)


class TestCurveOffsets:
    """Tests for ellipses and splines."""

    def test_full_ellipse(self) -> None:
        """Test an ellipse offset is an interpolating spline through offset samples."""
        ellipse = Shape(Ellipse(Point(0, 0), Point(10, 0), 0.5), id="e")
        shape, warnings = offset_shape(ellipse, 2.0)
        assert isinstance(shape.geometry, Spline)
        assert shape.id == "e"
        assert "Ellipse offset approximated by interpolating spline" in warnings
        start = start_point(shape)
        assert start.x == pytest.approx(12.0, abs=1e-6)
        assert start.y == pytest.approx(0.0, abs=1e-6)

    def test_ellipse_curvature_warning(self) -> None:
        """Test inward offsets beyond the tightest curvature are flagged."""
        ellipse = Shape(Ellipse(Point(0, 0), Point(10, 0), 0.5))
        _, warnings = offset_shape(ellipse, -3.0)
        assert "Ellipse offset exceeds minimum radius of curvature" in warnings

    def test_spline(self) -> None:
        """Test a straight spline offsets to a parallel curve."""
        spline = Shape(
            Spline(
                control_points=(Point(0, 0), Point(5, 0), Point(10, 0)),
                knots=(0.0, 0.0, 0.0, 1.0, 1.0, 1.0),
                weights=(1.0, 1.0, 1.0),
                degree=2,
            )
        )
        shape, warnings = offset_shape(spline, 1.0)
        assert warnings == ("Spline offset approximated by interpolating spline",)
        for t in (0.0, 0.3, 0.7, 1.0):
            assert point_at(shape, t).y == pytest.approx(-1.0, abs=1e-6)
