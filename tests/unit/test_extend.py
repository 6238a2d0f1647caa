"""Tests for shape extension."""

import math

import pytest

from chainoffset.config import ExtendDirection, OffsetConfig
from chainoffset.core.extend import extend_to_point, spline_end_tangent
from chainoffset.core.geometry import end_point, start_point
from chainoffset.domain import (
    Arc,
    Circle,
    Ellipse,
    ExtensionType,
    Line,
    Point,
    Polyline,
    Shape,
    Spline,
)


@pytest.fixture
def config() -> OffsetConfig:
    """Default extension configuration."""
    return OffsetConfig(tolerance=1e-3, max_extension=100.0)


@pytest.fixture
def line_shape() -> Shape:
    """Line from (0, 0) to (10, 0)."""
    return Shape(Line(Point(0, 0), Point(10, 0)), id="line")


@pytest.fixture
def quarter_arc() -> Shape:
    """Counter-clockwise quarter arc of radius 10 from 0 to pi/2."""
    return Shape(Arc(Point(0, 0), 10.0, 0.0, math.pi / 2), id="arc")


@pytest.fixture
def cubic_spline() -> Shape:
    """Clamped cubic spline from (0, 0) to (4, 0)."""
    return Shape(
        Spline(
            control_points=(Point(0, 0), Point(1, 2), Point(3, 2), Point(4, 0)),
            knots=(0.0, 0.0, 0.0, 0.0, 1.0, 1.0, 1.0, 1.0),
            weights=(1.0, 1.0, 1.0, 1.0),
            degree=3,
        ),
        id="spline",
    )


class TestLineExtension:
    """Tests for extending lines."""

    def test_extend_end(self, line_shape: Shape, config: OffsetConfig) -> None:
        """Test a target beyond the end moves the end point."""
        result = extend_to_point(line_shape, Point(15, 0), config)
        assert result.success
        assert result.shape.geometry == Line(Point(0, 0), Point(15, 0))
        assert result.shape.id == "line"
        assert result.extension.type == ExtensionType.LINEAR
        assert result.extension.amount == pytest.approx(5.0)
        assert result.extension.direction == "end"
        assert result.extension.extension_start == Point(10, 0)
        assert result.intersection_point == Point(15, 0)

    def test_extend_start(self, line_shape: Shape, config: OffsetConfig) -> None:
        """Test a target before the start moves the start point."""
        result = extend_to_point(line_shape, Point(-3, 0), config)
        assert result.success
        assert result.shape.geometry == Line(Point(-3, 0), Point(10, 0))
        assert result.extension.amount == pytest.approx(3.0)
        assert result.extension.direction == "start"

    def test_target_off_line(self, line_shape: Shape, config: OffsetConfig) -> None:
        """Test a target off the line's extension is rejected."""
        result = extend_to_point(line_shape, Point(15, 1), config)
        assert not result.success
        assert result.shape is None
        assert "not on line extension" in result.errors[0]

    def test_limit_exceeded(self, line_shape: Shape) -> None:
        """Test extensions longer than the maximum fail."""
        config = OffsetConfig(tolerance=1e-3, max_extension=2.0)
        result = extend_to_point(line_shape, Point(15, 0), config)
        assert not result.success
        assert "exceeds maximum" in result.errors[0]

    def test_target_already_on_line(self, line_shape: Shape, config: OffsetConfig) -> None:
        """Test a target inside the line leaves it unchanged."""
        result = extend_to_point(line_shape, Point(5, 0), config)
        assert result.success
        assert result.shape == line_shape
        assert result.extension is None
        assert result.warnings

    def test_explicit_direction_mismatch(self, line_shape: Shape) -> None:
        """Test an explicit start extension cannot reach a target past the end."""
        config = OffsetConfig(extend_direction=ExtendDirection.START)
        result = extend_to_point(line_shape, Point(15, 0), config)
        assert not result.success
        assert "beyond the start" in result.errors[0]


class TestArcExtension:
    """Tests for extending arcs."""

    def test_extend_end_angle(self, quarter_arc: Shape, config: OffsetConfig) -> None:
        """Test a counter-clockwise arc grows its end angle."""
        angle = 3 * math.pi / 4
        target = Point(10 * math.cos(angle), 10 * math.sin(angle))
        result = extend_to_point(quarter_arc, target, config)
        assert result.success
        arc = result.shape.geometry
        assert arc.start_angle == pytest.approx(0.0)
        assert arc.end_angle == pytest.approx(angle)
        assert result.extension.type == ExtensionType.ANGULAR
        assert result.extension.amount == pytest.approx(math.pi / 4)
        assert result.extension.direction == "end"

    def test_extend_start_angle(self, quarter_arc: Shape, config: OffsetConfig) -> None:
        """Test a target just before the start grows the arc backwards."""
        target = Point(10 * math.cos(-0.2), 10 * math.sin(-0.2))
        result = extend_to_point(quarter_arc, target, config)
        assert result.success
        assert result.shape.geometry.start_angle == pytest.approx(-0.2)
        assert result.extension.direction == "start"

    def test_clockwise_arc(self, config: OffsetConfig) -> None:
        """Test a clockwise arc grows its end angle clockwise."""
        shape = Shape(Arc(Point(0, 0), 10.0, math.pi / 2, 0.0, clockwise=True))
        target = Point(10 * math.cos(-math.pi / 4), 10 * math.sin(-math.pi / 4))
        result = extend_to_point(shape, target, config)
        assert result.success
        assert result.shape.geometry.end_angle == pytest.approx(-math.pi / 4)
        assert result.shape.geometry.clockwise

    def test_target_off_circle(self, quarter_arc: Shape, config: OffsetConfig) -> None:
        """Test a target off the arc's circle is rejected."""
        result = extend_to_point(quarter_arc, Point(20, 20), config)
        assert not result.success
        assert result.errors == ("Intersection point is not on arc circle",)

    def test_arc_limit_uses_arc_length(self, quarter_arc: Shape) -> None:
        """Test the extension limit applies to the added arc length."""
        config = OffsetConfig(tolerance=1e-3, max_extension=5.0)
        angle = 3 * math.pi / 4
        result = extend_to_point(quarter_arc, Point(10 * math.cos(angle), 10 * math.sin(angle)), config)
        assert not result.success
        assert "exceeds maximum" in result.errors[0]


class TestUnsupported:
    """Tests for shapes without an end to extend."""

    def test_circle(self, config: OffsetConfig) -> None:
        """Test circles cannot be extended."""
        result = extend_to_point(Shape(Circle(Point(0, 0), 5.0)), Point(5, 0), config)
        assert not result.success
        assert "Circle" in result.errors[0]

    def test_full_ellipse(self, config: OffsetConfig) -> None:
        """Test full ellipses cannot be extended."""
        shape = Shape(Ellipse(Point(0, 0), Point(10, 0), 0.5))
        result = extend_to_point(shape, Point(10, 0), config)
        assert not result.success
        assert "Full ellipse" in result.errors[0]

    def test_closed_polyline(self, config: OffsetConfig) -> None:
        """Test closed polylines cannot be extended."""
        shape = Shape(Polyline.from_points([Point(0, 0), Point(10, 0), Point(10, 10)], closed=True))
        result = extend_to_point(shape, Point(20, 0), config)
        assert not result.success
        assert "Closed polyline" in result.errors[0]

    def test_invalid_shape(self, config: OffsetConfig) -> None:
        """Test degenerate shapes fail validation."""
        result = extend_to_point(Shape(Line(Point(1, 1), Point(1, 1))), Point(2, 2), config)
        assert not result.success


class TestPolylineAndCurves:
    """Tests for polylines, elliptical arcs and splines."""

    def test_polyline_end_segment(self, config: OffsetConfig) -> None:
        """Test a polyline extends along its last segment."""
        shape = Shape(Polyline.from_points([Point(0, 0), Point(10, 0), Point(10, 10)]), id="p")
        result = extend_to_point(shape, Point(10, 15), config)
        assert result.success
        assert result.shape.geometry.points[-1] == Point(10, 15)
        assert len(result.shape.geometry.vertices) == 3
        assert result.extension.amount == pytest.approx(5.0)
        assert result.extension.direction == "end"
        assert result.extension.original_shape == shape

    def test_polyline_start_segment(self, config: OffsetConfig) -> None:
        """Test a polyline extends along its first segment."""
        shape = Shape(Polyline.from_points([Point(0, 0), Point(10, 0), Point(10, 10)]))
        result = extend_to_point(shape, Point(-4, 0), config)
        assert result.success
        assert result.shape.geometry.points[0] == Point(-4, 0)
        assert result.extension.direction == "start"

    def test_elliptical_arc(self, config: OffsetConfig) -> None:
        """Test an elliptical arc grows its end parameter."""
        shape = Shape(Ellipse(Point(0, 0), Point(10, 0), 0.5, 0.0, math.pi / 2))
        theta = 3 * math.pi / 4
        target = Point(10 * math.cos(theta), 5 * math.sin(theta))
        result = extend_to_point(shape, target, config)
        assert result.success
        assert result.shape.geometry.end_param == pytest.approx(theta)

    def test_spline_end(self, cubic_spline: Shape, config: OffsetConfig) -> None:
        """Test a clamped spline gains a tail ending at the target."""
        target = Point(5, -2)
        result = extend_to_point(cubic_spline, target, config)
        assert result.success
        spline = result.shape.geometry
        assert spline.control_points[:4] == cubic_spline.geometry.control_points
        assert len(spline.knots) == len(spline.control_points) + spline.degree + 1
        end = end_point(result.shape)
        assert end.x == pytest.approx(5.0, abs=1e-6)
        assert end.y == pytest.approx(-2.0, abs=1e-6)
        assert result.confidence == pytest.approx(0.8)
        assert "Spline extended using linear approximation from end tangent" in result.warnings

    def test_spline_start(self, cubic_spline: Shape, config: OffsetConfig) -> None:
        """Test a spline can be extended backwards from its start."""
        target = Point(-1, -2)
        result = extend_to_point(cubic_spline, target, config)
        assert result.success
        start = start_point(result.shape)
        assert start.x == pytest.approx(-1.0, abs=1e-6)
        assert start.y == pytest.approx(-2.0, abs=1e-6)
        assert result.extension.direction == "start"

    def test_spline_end_tangent(self, cubic_spline: Shape) -> None:
        """Test the outward end tangents of a clamped cubic."""
        tangent, confidence = spline_end_tangent(cubic_spline.geometry, at_end=True)
        assert tangent.x == pytest.approx(1 / math.sqrt(5))
        assert tangent.y == pytest.approx(-2 / math.sqrt(5))
        assert confidence == pytest.approx(0.8)
        tangent, _ = spline_end_tangent(cubic_spline.geometry, at_end=False)
        assert tangent.x == pytest.approx(-1 / math.sqrt(5))
        assert tangent.y == pytest.approx(-2 / math.sqrt(5))
