"""
B-spline and NURBS basis function evaluation.

B-splines are piecewise polynomial functions defined by:
1. A knot vector (non-decreasing sequence of parametric values)
2. A polynomial degree p

The i-th B-spline basis function of degree p is defined recursively:

    N_{i,0}(xi) = 1 if xi_i <= xi < xi_{i+1}, else 0

    N_{i,p}(xi) = (xi - xi_i)/(xi_{i+p} - xi_i) * N_{i,p-1}(xi)
                + (xi_{i+p+1} - xi)/(xi_{i+p+1} - xi_{i+1}) * N_{i+1,p-1}(xi)

with the convention that a term whose denominator is zero contributes zero.

Rational (NURBS) basis functions weight each N_i by w_i and normalize:

    R_i(xi) = N_i(xi) * w_i / sum_j N_j(xi) * w_j

Properties:
- Partition of unity: sum of the p+1 non-zero basis functions = 1
- Non-negativity: N_{i,p}(xi) >= 0
- Local support: N_{i,p} is non-zero only on [xi_i, xi_{i+p+1})
- Smoothness: C^{p-k} at a knot of multiplicity k

Two implementations are kept on purpose:
- basis_function: the naive recursion, exponential in p, used as a
  correctness oracle
- basis_functions / basis_derivatives: the triangular-table algorithms
  (Piegl & Tiller A2.2 / A2.3), O(p^2), used for evaluation

None of the functions here validate their (span, degree, knots) inputs;
an inconsistent triple may raise IndexError or return meaningless values.
Results are NumPy arrays whose dtype follows the knots and parameter
(float64 for ordinary floats, object for exact scalars such as Fraction).
"""

import math
import numpy as np
from typing import Optional, Sequence

from ..discretization.knot_vector import KnotVector, as_knot_array, scalar_dtype


def _is_zero(value) -> bool:
    return value == 0


def _safe_div(numerator, denominator):
    """numerator / denominator, or zero when the denominator is zero."""
    if _is_zero(denominator):
        return 0
    return numerator / denominator


def basis_function(i: int, degree: int, t, knots: Sequence):
    """
    Evaluate a single basis function N_{i,p}(t) by Cox-de Boor recursion.

    The degree-0 functions use half-open intervals [knots[i], knots[i+1]),
    except the last non-empty interval of the knot vector which is closed,
    so that t equal to the final knot still evaluates to 1 there.

    Parameters:
        i: Basis function index
        degree: Polynomial degree p
        t: Parameter value
        knots: Knot values

    Returns:
        N_{i,p}(t)
    """
    return _cox_de_boor(i, degree, t, as_knot_array(knots))


def _cox_de_boor(i, degree, t, knots):
    if degree == 0:
        if i >= len(knots) - 1:
            return 0
        if knots[i] <= t < knots[i + 1]:
            return 1
        # Last non-empty interval is closed on the right
        if t == knots[-1] and knots[i] < knots[i + 1] == knots[-1]:
            return 1
        return 0

    left_term = 0
    left_denom = knots[i + degree] - knots[i]
    if not _is_zero(left_denom):
        left_term = (t - knots[i]) / left_denom * _cox_de_boor(i, degree - 1, t, knots)

    right_term = 0
    if i + degree + 1 < len(knots):
        right_denom = knots[i + degree + 1] - knots[i + 1]
        if not _is_zero(right_denom):
            right_term = ((knots[i + degree + 1] - t) / right_denom
                          * _cox_de_boor(i + 1, degree - 1, t, knots))

    return left_term + right_term


def basis_functions(span: int, degree: int, t, knots: Sequence) -> np.ndarray:
    """
    Evaluate the p+1 non-zero B-spline basis functions at t.

    Uses the triangular left/right table (Piegl & Tiller A2.2).

    Parameters:
        span: Knot span index containing t (see find_span)
        degree: Polynomial degree p
        t: Parameter value
        knots: Knot values

    Returns:
        Array of shape (p+1,) containing N_{span-p,p}(t) to N_{span,p}(t)
    """
    knots = as_knot_array(knots)
    p = degree
    dtype = scalar_dtype(knots, t)

    # Initialize with degree 0
    N = np.zeros(p + 1, dtype=dtype)
    N[0] = 1

    left = np.zeros(p + 1, dtype=dtype)
    right = np.zeros(p + 1, dtype=dtype)

    # Build up to degree p
    for j in range(1, p + 1):
        left[j] = t - knots[span + 1 - j]
        right[j] = knots[span + j] - t

        saved = 0
        for r in range(j):
            temp = _safe_div(N[r], right[r + 1] + left[j - r])
            N[r] = saved + right[r + 1] * temp
            saved = left[j - r] * temp
        N[j] = saved

    return N


def basis_derivatives(span: int, degree: int, t, knots: Sequence,
                      derivative_order: int) -> np.ndarray:
    """
    Evaluate B-spline basis functions and their derivatives at t.

    Uses the algorithm from Piegl & Tiller "The NURBS Book" (Algorithm A2.3),
    where any zero knot-difference denominator contributes zero.

    Parameters:
        span: Knot span index containing t
        degree: Polynomial degree p
        t: Parameter value
        knots: Knot values
        derivative_order: Highest derivative to compute (0 = just values)

    Returns:
        Array of shape (derivative_order+1, p+1) where result[k, j] is the
        k-th derivative of N_{span-p+j, p}. Rows k > p are zero.
    """
    knots = as_knot_array(knots)
    p = degree
    dtype = scalar_dtype(knots, t)

    ders = np.zeros((derivative_order + 1, p + 1), dtype=dtype)
    if derivative_order == 0:
        ders[0] = basis_functions(span, degree, t, knots)
        return ders

    # ndu[j][r]: basis functions in the upper triangle, knot differences in the lower
    ndu = np.zeros((p + 1, p + 1), dtype=dtype)
    ndu[0, 0] = 1

    left = np.zeros(p + 1, dtype=dtype)
    right = np.zeros(p + 1, dtype=dtype)

    for j in range(1, p + 1):
        left[j] = t - knots[span + 1 - j]
        right[j] = knots[span + j] - t

        saved = 0
        for r in range(j):
            ndu[j, r] = right[r + 1] + left[j - r]
            temp = _safe_div(ndu[r, j - 1], ndu[j, r])

            ndu[r, j] = saved + right[r + 1] * temp
            saved = left[j - r] * temp

        ndu[j, j] = saved

    # Load basis functions
    for j in range(p + 1):
        ders[0, j] = ndu[j, p]

    # Derivatives of order > p vanish
    n_ders = min(derivative_order, p)

    a = np.zeros((2, p + 1), dtype=dtype)

    for r in range(p + 1):  # Loop over basis functions
        s1, s2 = 0, 1
        a[0, 0] = 1

        for k in range(1, n_ders + 1):
            d = 0
            rk = r - k
            pk = p - k

            if r >= k:
                a[s2, 0] = _safe_div(a[s1, 0], ndu[pk + 1, rk])
                d = a[s2, 0] * ndu[rk, pk]

            j1 = 1 if rk >= -1 else -rk
            j2 = k - 1 if r - 1 <= pk else p - r

            for j in range(j1, j2 + 1):
                a[s2, j] = _safe_div(a[s1, j] - a[s1, j - 1], ndu[pk + 1, rk + j])
                d += a[s2, j] * ndu[rk + j, pk]

            if r <= pk:
                a[s2, k] = _safe_div(-a[s1, k - 1], ndu[pk + 1, r])
                d += a[s2, k] * ndu[r, pk]

            ders[k, r] = d
            s1, s2 = s2, s1

    # Multiply by p! / (p-k)!
    factor = p
    for k in range(1, n_ders + 1):
        for j in range(p + 1):
            ders[k, j] = ders[k, j] * factor
        factor *= (p - k)

    return ders


def _window_weights(span: int, degree: int, weights: Sequence, dtype) -> np.ndarray:
    """Weights of the p+1 control points active on span (0 past the end)."""
    w = np.zeros(degree + 1, dtype=dtype)
    for i in range(degree + 1):
        idx = span - degree + i
        if 0 <= idx < len(weights):
            w[i] = weights[idx]
    return w


def _rational_dtype(basis: np.ndarray, weights: Sequence):
    weights = np.asarray(weights)
    if basis.dtype == object or weights.dtype == object:
        return object
    return np.result_type(basis.dtype, weights.dtype, np.float64)


def rational_basis_functions(span: int, degree: int, t, knots: Sequence,
                             weights: Sequence) -> np.ndarray:
    """
    Evaluate the p+1 non-zero NURBS (rational) basis functions at t.

    R_i = N_i * w_i / sum_j N_j * w_j over the active window. If that sum is
    zero (all active weights zero) every value is left at zero. Equal
    weights cancel exactly, so the polynomial values are returned unchanged.

    Parameters:
        span: Knot span index containing t
        degree: Polynomial degree p
        t: Parameter value
        knots: Knot values
        weights: Weights of all control points (indexed globally)

    Returns:
        Array of shape (p+1,) of rational basis values
    """
    N = basis_functions(span, degree, t, knots)
    dtype = _rational_dtype(N, weights)
    w = _window_weights(span, degree, weights, dtype)

    R = np.zeros(degree + 1, dtype=dtype)

    weight_sum = 0
    for i in range(degree + 1):
        weight_sum += N[i] * w[i]

    if _is_zero(weight_sum):
        return R

    if all(w[i] == w[0] for i in range(degree + 1)):
        R[:] = N
        return R

    for i in range(degree + 1):
        R[i] = N[i] * w[i] / weight_sum

    return R


def rational_basis_derivatives(span: int, degree: int, t, knots: Sequence,
                               weights: Sequence, derivative_order: int) -> np.ndarray:
    """
    Evaluate NURBS basis functions and their derivatives at t.

    With A_i^(k) = N_i^(k) * w_i and W^(k) = sum_i A_i^(k), the quotient
    rule generalizes to

        R_i^(k) = (A_i^(k) - sum_{j=1}^{k} C(k,j) * W^(j) * R_i^(k-j)) / W

    which for k = 1 is (f'g - fg') / g^2. Rows k >= 2 are the true k-th
    derivatives and therefore differ from reapplying the single-step
    quotient rule to the k-th polynomial derivatives. A zero weight sum
    leaves every row at zero.

    Parameters:
        span: Knot span index containing t
        degree: Polynomial degree p
        t: Parameter value
        knots: Knot values
        weights: Weights of all control points (indexed globally)
        derivative_order: Highest derivative to compute

    Returns:
        Array of shape (derivative_order+1, p+1); row 0 equals
        rational_basis_functions(...)
    """
    ders = basis_derivatives(span, degree, t, knots, derivative_order)
    dtype = _rational_dtype(ders, weights)
    w = _window_weights(span, degree, weights, dtype)

    R = np.zeros((derivative_order + 1, degree + 1), dtype=dtype)
    R[0] = rational_basis_functions(span, degree, t, knots, weights)

    if derivative_order == 0:
        return R

    # Weighted basis derivatives and their sums
    A = np.zeros((derivative_order + 1, degree + 1), dtype=dtype)
    W = [0] * (derivative_order + 1)
    for k in range(derivative_order + 1):
        for i in range(degree + 1):
            A[k, i] = ders[k, i] * w[i]
            W[k] += A[k, i]

    if _is_zero(W[0]):
        return R

    for k in range(1, derivative_order + 1):
        for i in range(degree + 1):
            v = A[k, i]
            for j in range(1, k + 1):
                v = v - math.comb(k, j) * W[j] * R[k - j, i]
            R[k, i] = v / W[0]

    return R


class BSplineBasis:
    """
    Encapsulates a univariate B-spline basis.

    This class bundles a knot vector with methods for basis evaluation,
    providing a cleaner interface for curve and surface code. The span is
    looked up when not given.

    Attributes:
        knot_vector: The underlying KnotVector
        degree: Polynomial degree
        n_basis: Number of basis functions
    """

    def __init__(self, knot_vector: KnotVector):
        self.knot_vector = knot_vector

    @property
    def degree(self) -> int:
        return self.knot_vector.degree

    @property
    def n_basis(self) -> int:
        return self.knot_vector.n_basis

    def find_span(self, xi) -> int:
        return self.knot_vector.find_span(xi)

    def eval(self, xi, span: Optional[int] = None) -> np.ndarray:
        """Evaluate non-zero basis functions at xi."""
        if span is None:
            span = self.find_span(xi)
        return basis_functions(span, self.degree, xi, self.knot_vector.knots)

    def eval_ders(self, xi, n_ders: int, span: Optional[int] = None) -> np.ndarray:
        """Evaluate basis functions and derivatives at xi."""
        if span is None:
            span = self.find_span(xi)
        return basis_derivatives(span, self.degree, xi, self.knot_vector.knots, n_ders)

    def eval_rational(self, xi, weights: Sequence, n_ders: int = 0,
                      span: Optional[int] = None) -> np.ndarray:
        """
        Evaluate rational basis functions (and derivatives) at xi.

        Returns:
            Array of shape (p+1,) when n_ders == 0, else (n_ders+1, p+1)
        """
        if span is None:
            span = self.find_span(xi)
        if n_ders == 0:
            return rational_basis_functions(span, self.degree, xi,
                                            self.knot_vector.knots, weights)
        return rational_basis_derivatives(span, self.degree, xi,
                                          self.knot_vector.knots, weights, n_ders)
