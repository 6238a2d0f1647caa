"""Tests for spline evaluation and interpolation."""

import numpy as np
import pytest

from chainoffset.core import curves
from chainoffset.core.curves import (
    NurbsEvaluator,
    clamped_knots,
    interpolate_points,
    is_clamped,
    spline_domain,
)
from chainoffset.domain import Point, Spline


@pytest.fixture
def evaluator() -> NurbsEvaluator:
    """Default NURBS evaluator."""
    return NurbsEvaluator()


@pytest.fixture
def quadratic() -> Spline:
    """Clamped quadratic Bézier through (0, 0), (1, 2), (2, 0)."""
    return Spline(
        control_points=(Point(0, 0), Point(1, 2), Point(2, 0)),
        knots=(0.0, 0.0, 0.0, 1.0, 1.0, 1.0),
        weights=(1.0, 1.0, 1.0),
        degree=2,
    )


class TestNurbsEvaluator:
    """Tests for NurbsEvaluator."""

    def test_endpoints(self, evaluator: NurbsEvaluator, quadratic: Spline) -> None:
        """Test a clamped curve passes through its end control points."""
        start = evaluator.point_at(quadratic, 0.0)
        assert (start.x, start.y) == pytest.approx((0.0, 0.0))
        end = evaluator.point_at(quadratic, 1.0)
        assert (end.x, end.y) == pytest.approx((2.0, 0.0))

    def test_midpoint(self, evaluator: NurbsEvaluator, quadratic: Spline) -> None:
        """Test the Bézier midpoint."""
        mid = evaluator.point_at(quadratic, 0.5)
        assert (mid.x, mid.y) == pytest.approx((1.0, 1.0))

    def test_derivative(self, evaluator: NurbsEvaluator, quadratic: Spline) -> None:
        """Test first derivatives at the ends of a quadratic Bézier."""
        start = evaluator.derivative_at(quadratic, 0.0, 1)
        assert (start[0].x, start[0].y) == pytest.approx((0.0, 0.0))
        assert (start[1].x, start[1].y) == pytest.approx((2.0, 4.0))
        end = evaluator.derivative_at(quadratic, 1.0, 1)[1]
        assert (end.x, end.y) == pytest.approx((2.0, -4.0))

    def test_rational_weights(self, evaluator: NurbsEvaluator) -> None:
        """Test a weighted quadratic reproduces a quarter circle."""
        w = 2 ** 0.5 / 2
        arc = Spline(
            control_points=(Point(1, 0), Point(1, 1), Point(0, 1)),
            knots=(0.0, 0.0, 0.0, 1.0, 1.0, 1.0),
            weights=(1.0, w, 1.0),
            degree=2,
        )
        for t in (0.25, 0.5, 0.75):
            p = evaluator.point_at(arc, t)
            assert (p.x ** 2 + p.y ** 2) == pytest.approx(1.0)

    def test_parameter_is_normalized(self, evaluator: NurbsEvaluator) -> None:
        """Test parameters map onto the knot domain, whatever its range."""
        scaled = Spline(
            control_points=(Point(0, 0), Point(10, 0)),
            knots=(2.0, 2.0, 6.0, 6.0),
            weights=(1.0, 1.0),
            degree=1,
        )
        assert spline_domain(scaled) == (2.0, 6.0)
        assert evaluator.point_at(scaled, 0.25).x == pytest.approx(2.5)


class TestKnots:
    """Tests for knot helpers."""

    def test_clamped_knots(self) -> None:
        """Test open-uniform knot vectors."""
        assert clamped_knots(4, 3) == (0.0, 0.0, 0.0, 0.0, 1.0, 1.0, 1.0, 1.0)
        assert clamped_knots(5, 2) == (0.0, 0.0, 0.0, 1 / 3, 2 / 3, 1.0, 1.0, 1.0)

    def test_is_clamped(self, quadratic: Spline) -> None:
        """Test clamping is detected per end."""
        assert is_clamped(quadratic, at_end=True)
        assert is_clamped(quadratic, at_end=False)
        unclamped = Spline(
            control_points=(Point(0, 0), Point(1, 1), Point(2, 0)),
            knots=(0.0, 1.0, 2.0, 3.0, 4.0, 5.0),
            weights=(1.0, 1.0, 1.0),
            degree=2,
        )
        assert not is_clamped(unclamped, at_end=True)


class TestInterpolatePoints:
    """Tests for interpolate_points."""

    def test_passes_through_points(self, evaluator: NurbsEvaluator) -> None:
        """Test the fitted curve passes through its first and last points."""
        points = [Point(0, 0), Point(1, 1), Point(2, 0), Point(3, 1), Point(4, 0)]
        spline = interpolate_points(points, 3)
        assert spline.degree == 3
        assert len(spline.control_points) == len(points)
        assert len(spline.knots) == len(points) + 4
        start = evaluator.point_at(spline, 0.0)
        end = evaluator.point_at(spline, 1.0)
        assert (start.x, start.y) == pytest.approx((0.0, 0.0))
        assert (end.x, end.y) == pytest.approx((4.0, 0.0))

    def test_degree_lowered_for_few_points(self) -> None:
        """Test two points give a straight degree-one spline."""
        spline = interpolate_points([Point(0, 0), Point(5, 5)], 3)
        assert spline.degree == 1
        assert spline.control_points == (Point(0, 0), Point(5, 5))

    def test_duplicates_dropped(self) -> None:
        """Test consecutive duplicates are removed before fitting."""
        spline = interpolate_points([Point(0, 0), Point(0, 0), Point(1, 0)], 3)
        assert len(spline.control_points) == 2

    def test_too_few_points(self) -> None:
        """Test a single distinct point cannot be interpolated."""
        with pytest.raises(ValueError):
            interpolate_points([Point(1, 1), Point(1, 1)])

    def test_passes_through_interior_points(self, evaluator: NurbsEvaluator) -> None:
        """Test the fitted curve hits every point at its chord-length parameter."""
        points = [Point(0, 0), Point(3, 4), Point(6, 0)]
        spline = interpolate_points(points, 3)
        assert spline.degree == 2
        assert all(type(c.x) is float and type(c.y) is float for c in spline.control_points)
        mid = evaluator.point_at(spline, 0.5)
        assert (mid.x, mid.y) == pytest.approx((3.0, 4.0))

    def test_singular_system(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test a singular collocation matrix surfaces as ArithmeticError."""

        def singular(*_: object) -> None:
            raise np.linalg.LinAlgError("Singular matrix")

        monkeypatch.setattr(curves.np.linalg, "solve", singular)
        with pytest.raises(ArithmeticError, match="Singular interpolation matrix"):
            interpolate_points([Point(0, 0), Point(1, 1), Point(2, 0)])
