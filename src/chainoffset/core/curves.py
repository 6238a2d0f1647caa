"""NURBS curve evaluation and fitting.

The offset engine only needs two things from a spline library: a point at a
parameter and derivatives at a parameter. That capability is expressed by the
CurveEvaluator protocol so any conforming evaluator can be plugged in.
NurbsEvaluator is the default implementation (rational De Boor evaluation and
basis-function derivatives). Parameters are normalized: ``t = 0`` is the start
of the curve's knot domain and ``t = 1`` its end.

Key functions:
- clamped_knots: Open-uniform knot vector for a control polygon
- interpolate_points: Global cubic interpolation through sampled points
"""

import math
from typing import Protocol, runtime_checkable

import numpy as np

from chainoffset.domain import Point, Spline


@runtime_checkable
class CurveEvaluator(Protocol):
    """Capability required from a spline library."""

    def point_at(self, spline: Spline, t: float) -> Point:
        """Point on the curve at normalized parameter ``t``."""
        ...

    def derivative_at(self, spline: Spline, t: float, order: int) -> list[Point]:
        """Point and derivatives with respect to ``t``.

        Returns a list of ``order + 1`` vectors: the point, the first
        derivative, and so on.
        """
        ...


def spline_domain(spline: Spline) -> tuple[float, float]:
    """Knot-domain bounds ``(u_min, u_max)`` of a spline."""
    p = spline.degree
    n = len(spline.control_points)
    return spline.knots[p], spline.knots[n]


def _find_span(knots: tuple[float, ...], degree: int, n_ctrl: int, u: float) -> int:
    """Knot span index ``k`` with ``knots[k] <= u < knots[k+1]``."""
    n = n_ctrl - 1
    if u >= knots[n + 1]:
        return n
    if u <= knots[degree]:
        return degree

    low, high = degree, n + 1
    mid = (low + high) // 2
    while u < knots[mid] or u >= knots[mid + 1]:
        if u < knots[mid]:
            high = mid
        else:
            low = mid
        mid = (low + high) // 2
    return mid


def _basis_derivatives(
    span: int, u: float, degree: int, knots: tuple[float, ...], count: int
) -> list[list[float]]:
    """Non-zero basis functions and their derivatives at ``u``.

    Returns ``ders[k][j]``: the k-th derivative of basis function
    ``span - degree + j``.
    """
    p = degree
    ndu = [[0.0] * (p + 1) for _ in range(p + 1)]
    ndu[0][0] = 1.0
    left = [0.0] * (p + 1)
    right = [0.0] * (p + 1)

    for j in range(1, p + 1):
        left[j] = u - knots[span + 1 - j]
        right[j] = knots[span + j] - u
        saved = 0.0
        for r in range(j):
            ndu[j][r] = right[r + 1] + left[j - r]
            temp = ndu[r][j - 1] / ndu[j][r] if ndu[j][r] != 0.0 else 0.0
            ndu[r][j] = saved + right[r + 1] * temp
            saved = left[j - r] * temp
        ndu[j][j] = saved

    n = min(count, p)
    ders = [[0.0] * (p + 1) for _ in range(count + 1)]
    for j in range(p + 1):
        ders[0][j] = ndu[j][p]

    a = [[0.0] * (p + 1) for _ in range(2)]
    for r in range(p + 1):
        s1, s2 = 0, 1
        a[0][0] = 1.0
        for k in range(1, n + 1):
            d = 0.0
            rk = r - k
            pk = p - k
            if r >= k:
                a[s2][0] = a[s1][0] / ndu[pk + 1][rk]
                d = a[s2][0] * ndu[rk][pk]
            j1 = 1 if rk >= -1 else -rk
            j2 = k - 1 if r - 1 <= pk else p - r
            for j in range(j1, j2 + 1):
                a[s2][j] = (a[s1][j] - a[s1][j - 1]) / ndu[pk + 1][rk + j]
                d += a[s2][j] * ndu[rk + j][pk]
            if r <= pk:
                a[s2][k] = -a[s1][k - 1] / ndu[pk + 1][r]
                d += a[s2][k] * ndu[r][pk]
            ders[k][r] = d
            s1, s2 = s2, s1

    factor = float(p)
    for k in range(1, n + 1):
        for j in range(p + 1):
            ders[k][j] *= factor
        factor *= p - k
    return ders


class NurbsEvaluator:
    """Default rational B-spline evaluator.

    Points are computed with De Boor's algorithm in homogeneous coordinates;
    derivatives use basis-function derivatives and the quotient rule for
    rational curves. Parameters outside [0, 1] are clamped to the domain.
    """

    def _knot_param(self, spline: Spline, t: float) -> float:
        u_min, u_max = spline_domain(spline)
        t = min(max(t, 0.0), 1.0)
        return u_min + t * (u_max - u_min)

    def point_at(self, spline: Spline, t: float) -> Point:
        p = spline.degree
        knots = spline.knots
        ctrl = spline.control_points
        weights = spline.weights
        u = self._knot_param(spline, t)
        k = _find_span(knots, p, len(ctrl), u)

        d = [
            (
                ctrl[j + k - p].x * weights[j + k - p],
                ctrl[j + k - p].y * weights[j + k - p],
                weights[j + k - p],
            )
            for j in range(p + 1)
        ]
        for r in range(1, p + 1):
            for j in range(p, r - 1, -1):
                i = j + k - p
                denom = knots[i + p + 1 - r] - knots[i]
                alpha = (u - knots[i]) / denom if denom != 0.0 else 0.0
                prev, cur = d[j - 1], d[j]
                d[j] = (
                    (1.0 - alpha) * prev[0] + alpha * cur[0],
                    (1.0 - alpha) * prev[1] + alpha * cur[1],
                    (1.0 - alpha) * prev[2] + alpha * cur[2],
                )

        wx, wy, w = d[p]
        return Point(wx / w, wy / w)

    def derivative_at(self, spline: Spline, t: float, order: int) -> list[Point]:
        p = spline.degree
        knots = spline.knots
        ctrl = spline.control_points
        weights = spline.weights
        u = self._knot_param(spline, t)
        k = _find_span(knots, p, len(ctrl), u)
        ders = _basis_derivatives(k, u, p, knots, order)

        # Homogeneous derivatives A(k) and w(k)
        a_ders: list[tuple[float, float]] = []
        w_ders: list[float] = []
        for kk in range(order + 1):
            ax = ay = aw = 0.0
            for j in range(p + 1):
                idx = k - p + j
                b = ders[kk][j] * weights[idx]
                ax += b * ctrl[idx].x
                ay += b * ctrl[idx].y
                aw += b
            a_ders.append((ax, ay))
            w_ders.append(aw)

        result: list[tuple[float, float]] = []
        for kk in range(order + 1):
            vx, vy = a_ders[kk]
            for i in range(1, kk + 1):
                c = math.comb(kk, i) * w_ders[i]
                vx -= c * result[kk - i][0]
                vy -= c * result[kk - i][1]
            result.append((vx / w_ders[0], vy / w_ders[0]))

        # Chain rule for the normalized parameter
        u_min, u_max = spline_domain(spline)
        span = u_max - u_min
        return [Point(vx * span**i, vy * span**i) for i, (vx, vy) in enumerate(result)]


def clamped_knots(n_ctrl: int, degree: int) -> tuple[float, ...]:
    """Open-uniform knot vector on [0, 1] for ``n_ctrl`` control points."""
    interior = n_ctrl - degree - 1
    knots = [0.0] * (degree + 1)
    knots.extend((i + 1) / (interior + 1) for i in range(interior))
    knots.extend([1.0] * (degree + 1))
    return tuple(knots)


def is_clamped(spline: Spline, at_end: bool) -> bool:
    """Whether the curve passes through its first (or last) control point."""
    p = spline.degree
    knots = spline.knots
    if at_end:
        tail = knots[-(p + 1):]
        return all(k == tail[0] for k in tail)
    head = knots[: p + 1]
    return all(k == head[0] for k in head)


def interpolate_points(
    points: list[Point], degree: int = 3, closed: bool = False
) -> Spline:
    """Fit a non-rational B-spline passing through every point.

    Uses chord-length parameters and knot averaging. Consecutive duplicate
    points are dropped first.

    Args:
        points: Points to interpolate, in order
        degree: Requested degree (lowered when too few points are given)
        closed: Value for the resulting spline's ``closed`` flag

    Returns:
        Interpolating spline

    Raises:
        ValueError: If fewer than two distinct points are given
        ArithmeticError: If the collocation matrix is singular
    """
    pts: list[Point] = []
    for p in points:
        if not pts or math.hypot(p.x - pts[-1].x, p.y - pts[-1].y) > 1e-12:
            pts.append(p)
    if len(pts) < 2:
        raise ValueError("At least two distinct points are required for interpolation")

    n = len(pts) - 1
    p = min(degree, n)

    chords = [math.hypot(pts[i].x - pts[i - 1].x, pts[i].y - pts[i - 1].y) for i in range(1, n + 1)]
    total = sum(chords)
    params = [0.0]
    for c in chords:
        params.append(params[-1] + c / total)
    params[-1] = 1.0

    knots = [0.0] * (p + 1)
    for j in range(1, n - p + 1):
        knots.append(sum(params[j:j + p]) / p)
    knots.extend([1.0] * (p + 1))
    knot_tuple = tuple(knots)

    matrix = np.zeros((n + 1, n + 1))
    for k, u in enumerate(params):
        span = _find_span(knot_tuple, p, n + 1, u)
        basis = _basis_derivatives(span, u, p, knot_tuple, 0)[0]
        for j in range(p + 1):
            matrix[k, span - p + j] = basis[j]

    rhs = np.array([[q.x, q.y] for q in pts])
    try:
        solution = np.linalg.solve(matrix, rhs)
    except np.linalg.LinAlgError as e:
        raise ArithmeticError(f"Singular interpolation matrix: {e}") from e
    return Spline(
        control_points=tuple(Point(float(x), float(y)) for x, y in solution),
        knots=knot_tuple,
        weights=(1.0,) * len(solution),
        degree=p,
        closed=closed,
    )
