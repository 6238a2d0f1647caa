"""Tests for shape trimming and trim point selection."""

import math

import pytest

from chainoffset.core.intersect import intersect
from chainoffset.core.trim import select_trim_point, trim, trim_consecutive
from chainoffset.domain import (
    Arc,
    Circle,
    Ellipse,
    IntersectionResult,
    IntersectionType,
    KeepSide,
    Line,
    Point,
    Polyline,
    Shape,
    Spline,
)

TOL = 1e-3


@pytest.fixture
def line_shape() -> Shape:
    """Line from (0, 0) to (10, 0)."""
    return Shape(Line(Point(0, 0), Point(10, 0)), id="line")


@pytest.fixture
def half_arc() -> Shape:
    """Counter-clockwise half arc of radius 10 from 0 to pi."""
    return Shape(Arc(Point(0, 0), 10.0, 0.0, math.pi), id="arc")


@pytest.fixture
def elbow() -> Shape:
    """Open polyline (0, 0) -> (10, 0) -> (10, 10)."""
    return Shape(Polyline.from_points([Point(0, 0), Point(10, 0), Point(10, 10)]), id="poly")


class TestTrimLine:
    """Tests for trimming lines."""

    def test_keep_start(self, line_shape: Shape) -> None:
        """Test keeping the part before the cut."""
        result = trim(line_shape, Point(5, 0), KeepSide.START, TOL)
        assert result.success
        assert result.shape.geometry == Line(Point(0, 0), Point(5, 0))
        assert result.shape.id == "line"

    def test_keep_end(self, line_shape: Shape) -> None:
        """Test keeping the part after the cut."""
        result = trim(line_shape, Point(5, 0), KeepSide.END, TOL)
        assert result.success
        assert result.shape.geometry == Line(Point(5, 0), Point(10, 0))

    def test_keep_side_names_the_kept_portion(self, line_shape: Shape) -> None:
        """Test cutting at (3, 0) keeps the named side of the line."""
        kept_end = trim(line_shape, Point(3, 0), "end", TOL)
        kept_start = trim(line_shape, Point(3, 0), "start", TOL)
        assert kept_end.shape.geometry == Line(Point(3, 0), Point(10, 0))
        assert kept_start.shape.geometry == Line(Point(0, 0), Point(3, 0))

    def test_string_keep_sides(self, line_shape: Shape) -> None:
        """Test keep sides may be given by value, including the aliases."""
        before = trim(line_shape, Point(4, 0), "before", TOL)
        after = trim(line_shape, Point(4, 0), "after", TOL)
        assert before.shape.geometry.end == Point(4, 0)
        assert after.shape.geometry.start == Point(4, 0)

    def test_point_outside_bounds(self, line_shape: Shape) -> None:
        """Test a cut beyond the end of the line fails."""
        result = trim(line_shape, Point(15, 0), KeepSide.START, TOL)
        assert not result.success
        assert result.errors == ("Trim point is outside line bounds",)

    def test_point_off_line(self, line_shape: Shape) -> None:
        """Test a cut away from the line fails."""
        result = trim(line_shape, Point(5, 1), KeepSide.START, TOL)
        assert not result.success

    def test_invalid_keep_side(self, line_shape: Shape) -> None:
        """Test an unknown keep side is a validation error."""
        result = trim(line_shape, Point(5, 0), "middle", TOL)
        assert not result.success
        assert result.errors == ("Invalid keep side: middle",)

    def test_degenerate_result(self, line_shape: Shape) -> None:
        """Test cutting at the start and keeping the start fails."""
        result = trim(line_shape, Point(0, 0), KeepSide.START, TOL)
        assert not result.success


class TestTrimArcs:
    """Tests for trimming arcs and circles."""

    def test_arc_keep_start(self, half_arc: Shape) -> None:
        """Test the kept arc ends at the cut angle."""
        result = trim(half_arc, Point(0, 10), KeepSide.START, TOL)
        assert result.success
        arc = result.shape.geometry
        assert arc.start_angle == pytest.approx(0.0)
        assert arc.end_angle == pytest.approx(math.pi / 2)

    def test_arc_keep_end(self, half_arc: Shape) -> None:
        """Test the kept arc starts at the cut angle."""
        result = trim(half_arc, Point(0, 10), KeepSide.END, TOL)
        arc = result.shape.geometry
        assert arc.start_angle == pytest.approx(math.pi / 2)
        assert arc.end_angle == pytest.approx(math.pi)

    def test_clockwise_arc(self) -> None:
        """Test a clockwise arc is cut along its own sense."""
        shape = Shape(Arc(Point(0, 0), 10.0, math.pi, 0.0, clockwise=True))
        result = trim(shape, Point(0, 10), KeepSide.START, TOL)
        arc = result.shape.geometry
        assert arc.start_angle == pytest.approx(math.pi)
        assert arc.end_angle == pytest.approx(math.pi / 2)
        assert arc.clockwise

    def test_arc_extended_to_point(self, half_arc: Shape) -> None:
        """Test a cut outside the sweep extends the kept end."""
        angle = -math.pi / 4
        result = trim(half_arc, Point(10 * math.cos(angle), 10 * math.sin(angle)), KeepSide.START, TOL)
        assert result.success
        assert result.shape.geometry.end_angle == pytest.approx(7 * math.pi / 4)
        assert "Arc was extended to reach trim point" in result.warnings
        assert result.confidence == pytest.approx(0.9)

    def test_point_off_arc_circle(self, half_arc: Shape) -> None:
        """Test a cut away from the circle fails."""
        result = trim(half_arc, Point(0, 5), KeepSide.START, TOL)
        assert not result.success

    def test_circle_becomes_arc(self) -> None:
        """Test trimming a circle leaves an arc with a small gap at the cut."""
        shape = Shape(Circle(Point(0, 0), 10.0), id="c")
        result = trim(shape, Point(10, 0), KeepSide.START, TOL)
        assert result.success
        arc = result.shape.geometry
        assert isinstance(arc, Arc)
        assert arc.start_angle == pytest.approx(0.025)
        assert arc.end_angle == pytest.approx(2 * math.pi - 0.025)
        assert result.shape.id == "c"
        assert "Circle converted to arc for trimming" in result.warnings

    def test_full_ellipse_becomes_arc(self) -> None:
        """Test trimming a full ellipse leaves an elliptical arc."""
        shape = Shape(Ellipse(Point(0, 0), Point(10, 0), 0.5))
        result = trim(shape, Point(10, 0), KeepSide.START, TOL)
        assert result.success
        assert result.shape.geometry.is_arc
        assert result.warnings

    def test_elliptical_arc(self) -> None:
        """Test an elliptical arc is cut at the parametric angle of the point."""
        shape = Shape(Ellipse(Point(0, 0), Point(10, 0), 0.5, 0.0, math.pi))
        result = trim(shape, Point(0, 5), KeepSide.START, TOL)
        assert result.success
        assert result.shape.geometry.end_param == pytest.approx(math.pi / 2)


class TestTrimPolyline:
    """Tests for trimming polylines."""

    def test_keep_start(self, elbow: Shape) -> None:
        """Test vertices after the cut are dropped."""
        result = trim(elbow, Point(10, 5), KeepSide.START, TOL)
        assert result.success
        assert result.shape.geometry.points == [Point(0, 0), Point(10, 0), Point(10, 5)]

    def test_keep_end(self, elbow: Shape) -> None:
        """Test vertices before the cut are dropped."""
        result = trim(elbow, Point(5, 0), KeepSide.END, TOL)
        assert result.shape.geometry.points == [Point(5, 0), Point(10, 0), Point(10, 10)]

    def test_point_not_on_polyline(self, elbow: Shape) -> None:
        """Test a cut away from every segment fails."""
        result = trim(elbow, Point(20, 20), KeepSide.START, TOL)
        assert not result.success
        assert result.errors == ("Trim point is not on any polyline segment",)

    def test_relaxed_matching(self, elbow: Shape) -> None:
        """Test a slightly-off cut is accepted with a warning."""
        result = trim(elbow, Point(5, 0.005), KeepSide.START, TOL)
        assert result.success
        assert result.warnings == ("Polyline trim point found via relaxed closest segment matching",)
        assert len(result.shape.geometry.vertices) == 2


def test_spline_passes_through() -> None:
    """Test splines are returned unchanged with a warning."""
    shape = Shape(
        Spline(
            control_points=(Point(0, 0), Point(10, 0)),
            knots=(0.0, 0.0, 1.0, 1.0),
            weights=(1.0, 1.0),
            degree=1,
        )
    )
    result = trim(shape, Point(5, 0), KeepSide.START, TOL)
    assert result.success
    assert result.shape == shape
    assert result.warnings


class TestSelectTrimPoint:
    """Tests for choosing the intersection that closes a joint."""

    def test_empty(self) -> None:
        """Test no candidates gives no choice."""
        assert select_trim_point([], Point(0, 0), TOL) is None

    def test_prefers_point_near_joint(self) -> None:
        """Test the candidate nearest the original corner wins."""
        near = IntersectionResult(Point(5, 0), 0.5, 0.5)
        far = IntersectionResult(Point(80, 0), 0.5, 0.5)
        assert select_trim_point([far, near], Point(5, 1), TOL) is near

    def test_rejects_low_confidence(self) -> None:
        """Test candidates below the confidence floor lose to acceptable ones."""
        shaky = IntersectionResult(Point(5, 0), 0.5, 0.5, confidence=0.4)
        solid = IntersectionResult(Point(6, 0), 0.5, 0.5)
        assert select_trim_point([shaky, solid], Point(5, 0), TOL) is solid

    def test_falls_back_to_all_candidates(self) -> None:
        """Test a choice is still made when nothing passes the filter."""
        only = IntersectionResult(Point(5, 0), 2.0, 0.5, confidence=0.3)
        assert select_trim_point([only], Point(5, 0), TOL) is only

    def test_exact_beats_approximate(self) -> None:
        """Test the intersection type breaks otherwise equal candidates."""
        approx = IntersectionResult(Point(5, 0), 0.5, 0.5, type=IntersectionType.APPROXIMATE, confidence=0.9)
        exact = IntersectionResult(Point(5, 0), 0.5, 0.5, type=IntersectionType.EXACT, confidence=0.9)
        assert select_trim_point([approx, exact], Point(5, 0), TOL) is exact

    def test_ties_keep_first(self) -> None:
        """Test equal scores resolve to the earliest candidate, every time."""
        a = IntersectionResult(Point(5, 0), 0.5, 0.5)
        b = IntersectionResult(Point(5, 0), 0.5, 0.5)
        for _ in range(3):
            assert select_trim_point([a, b], Point(5, 0), TOL) is a


def test_trim_consecutive() -> None:
    """Test two overlapping neighbours are cut back to their crossing."""
    first = Shape(Line(Point(0, 0), Point(12, 0)), id="a")
    second = Shape(Line(Point(10, -2), Point(10, 10)), id="b")
    hit = intersect(first, second, TOL)[0]
    r1, r2 = trim_consecutive(first, second, hit, TOL)
    assert r1.success and r2.success
    assert r1.shape.geometry.end.x == pytest.approx(10.0)
    assert r1.shape.geometry.start == Point(0, 0)
    assert r2.shape.geometry.start.y == pytest.approx(0.0)
    assert r2.shape.geometry.end == Point(10, 10)
