"""
NURBS curve in arbitrary dimensional space.

A NURBS curve point is computed as:

    C(t) = sum_i (N_i(t) * w_i * P_i) / sum_i (N_i(t) * w_i)

where:
- N_i are B-spline basis functions of degree p
- w_i are weights (positive real numbers)
- P_i are control points

Without weights the curve is a plain (polynomial) B-spline. Structural
edits (knot insertion, degree elevation, splitting, control point and
weight changes) return new curves; a NURBSCurve is never modified after
construction.
"""

import math
import numpy as np
from loguru import logger
from scipy import integrate, optimize
from typing import Optional, Sequence, Tuple

from ..config import Tolerances
from ..contracts import (
    NurbsCurveOperations, ParametricGeometry, WeightedGeometry, as_3d
)
from ..discretization.knot_vector import (
    KnotVector, create_uniform_knot_vector
)
from ..errors import NurbsError
from . import operations, transforms
from .basis import BSplineBasis
from .weights import WeightStorage


class NURBSCurve(NurbsCurveOperations, WeightedGeometry, ParametricGeometry):
    """
    NURBS curve C(t) defined by:
    - A clamped knot vector and degree
    - Control points P_i in R^d (d = physical dimension)
    - Optional weights w_i > 0 (rational curve when given)
    """

    def __init__(self, knot_vector: KnotVector,
                 control_points: np.ndarray,
                 weights: Optional[np.ndarray] = None):
        """
        Initialize a NURBS curve.

        Parameters:
            knot_vector: KnotVector defining the basis
            control_points: Array of shape (n, d)
            weights: Array of shape (n,); None gives a polynomial B-spline

        Raises:
            NurbsError: if the knot vector does not fit the control points,
                        there are fewer than p+1 control points or the weights
                        are malformed
        """
        self._control_points = np.atleast_2d(np.asarray(control_points, dtype=np.float64))
        n = self._control_points.shape[0]

        if n < knot_vector.degree + 1:
            raise NurbsError.insufficient_control_points(n, knot_vector.degree)
        knot_vector.validate(knot_vector.degree, n)

        self._knot_vector = knot_vector
        self._basis = BSplineBasis(knot_vector)
        self._weights = WeightStorage.from_optional(weights, n)

    @classmethod
    def from_knots(cls, knots: Sequence, degree: int, control_points: np.ndarray,
                   weights: Optional[np.ndarray] = None) -> "NURBSCurve":
        """Build a curve from a raw knot sequence and degree."""
        return cls(KnotVector(knots, degree), control_points, weights)

    def __repr__(self) -> str:
        kind = "rational" if self.is_rational() else "polynomial"
        return (f"NURBSCurve(degree={self.degree}, control_points={self.control_point_count}, "
                f"dim={self.dimension}, {kind})")

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def degree(self) -> int:
        return self._knot_vector.degree

    @property
    def control_point_count(self) -> int:
        return self._control_points.shape[0]

    @property
    def dimension(self) -> int:
        """Physical dimension d of the control points."""
        return self._control_points.shape[1]

    @property
    def knot_vector(self) -> KnotVector:
        return self._knot_vector

    @property
    def knots(self) -> np.ndarray:
        return self._knot_vector.knots.copy()

    @property
    def basis(self) -> BSplineBasis:
        return self._basis

    @property
    def control_points(self) -> np.ndarray:
        return self._control_points.copy()

    @property
    def weights(self) -> np.ndarray:
        """Weights as (n,) array, ones for a polynomial curve."""
        return self._weights.as_array()

    def parameter_domain(self) -> Tuple[float, float]:
        return self._knot_vector.parameter_domain()

    def is_rational(self) -> bool:
        return not self._weights.is_uniform

    def is_closed(self, tolerance: float = Tolerances.CLOSED_GEOMETRY) -> bool:
        """True when the first and last control points coincide within tolerance."""
        gap = self._control_points[0] - self._control_points[-1]
        return float(np.linalg.norm(gap)) <= tolerance

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def evaluate_at(self, parameter) -> np.ndarray:
        """
        Evaluate curve at parameter value.

        The parameter is clamped to the domain first.

        Parameters:
            parameter: Parameter value

        Returns:
            Point coordinates as (d,) array
        """
        t = self.clamp_parameter(parameter)
        span = self._basis.find_span(t)

        if self.is_rational():
            R = self._basis.eval_rational(t, self._weights.values, span=span)
        else:
            R = self._basis.eval(t, span)

        start = span - self.degree
        P_local = self._control_points[start:start + self.degree + 1]
        return np.dot(np.asarray(R, dtype=np.float64), P_local)

    def derivatives_at(self, parameter, order: int = 1) -> np.ndarray:
        """
        Evaluate curve and derivatives at parameter value.

        Uses the formula for rational derivatives (Piegl & Tiller, Eq. 4.8):

            C^(k) = (A^(k) - sum_{j=1}^{k} C(k,j) * w^(j) * C^(k-j)) / w^(0)

        Parameters:
            parameter: Parameter value (clamped to the domain)
            order: Highest derivative

        Returns:
            Array of shape (order+1, d); row k is the k-th derivative
        """
        t = self.clamp_parameter(parameter)
        span = self._basis.find_span(t)
        Nders = np.asarray(self._basis.eval_ders(t, order, span), dtype=np.float64)

        start = span - self.degree
        P_local = self._control_points[start:start + self.degree + 1]
        w_local = self._weights.as_array()[start:start + self.degree + 1]

        # A^(k) = sum_i N_i^(k) * w_i * P_i and w^(k) = sum_i N_i^(k) * w_i
        A_ders = np.zeros((order + 1, self.dimension))
        w_ders = np.zeros(order + 1)
        for k in range(order + 1):
            Nkw = Nders[k, :] * w_local
            A_ders[k] = np.dot(Nkw, P_local)
            w_ders[k] = np.sum(Nkw)

        C_ders = np.zeros((order + 1, self.dimension))
        if w_ders[0] == 0:
            logger.warning(f"Zero weight sum at t={t}; curve derivatives left at zero")
            return C_ders

        for k in range(order + 1):
            v = A_ders[k].copy()
            for j in range(1, k + 1):
                v -= math.comb(k, j) * w_ders[j] * C_ders[k - j]
            C_ders[k] = v / w_ders[0]

        return C_ders

    def derivative_at(self, parameter) -> np.ndarray:
        return self.derivatives_at(parameter, 1)[1]

    def curvature_at(self, parameter) -> float:
        """
        Curvature |C' x C''| / |C'|^3.

        Zero where the first derivative vanishes.
        """
        ders = self.derivatives_at(parameter, 2)
        d1 = as_3d(ders[1])
        d2 = as_3d(ders[2])
        speed = float(np.linalg.norm(d1))
        if speed < Tolerances.DEGENERATE_NORMAL:
            return 0.0
        return float(np.linalg.norm(np.cross(d1, d2))) / speed ** 3

    def arc_length(self, t_start=None, t_end=None) -> float:
        """
        Length of the curve between two parameters by adaptive quadrature.

        The speed |C'(t)| is integrated span by span with scipy.integrate.quad,
        so knots of reduced continuity do not spoil the accuracy.
        """
        t_min, t_max = self.parameter_domain()
        a = t_min if t_start is None else self.clamp_parameter(t_start)
        b = t_max if t_end is None else self.clamp_parameter(t_end)
        if b <= a:
            return 0.0

        breaks = [a] + [k for k in self._knot_vector.unique_knots if a < k < b] + [b]
        total = 0.0
        for lo, hi in zip(breaks[:-1], breaks[1:]):
            value, _ = integrate.quad(self._speed, float(lo), float(hi),
                                      epsabs=Tolerances.ARC_LENGTH,
                                      epsrel=Tolerances.ARC_LENGTH, limit=100)
            total += value
        return total

    def _speed(self, t: float) -> float:
        return float(np.linalg.norm(self.derivative_at(t)))

    def parameter_from_arc_length(self, arc_length) -> Optional[float]:
        """
        Parameter at which the length measured from the domain start equals arc_length.

        Returns None when arc_length is negative or exceeds the curve length.
        """
        t_min, t_max = self.parameter_domain()
        total = self.arc_length()
        if arc_length < 0 or arc_length > total + Tolerances.ARC_LENGTH:
            return None
        if arc_length <= Tolerances.ARC_LENGTH:
            return t_min
        if arc_length >= total - Tolerances.ARC_LENGTH:
            return t_max

        return optimize.brentq(lambda t: self.arc_length(t_min, t) - arc_length,
                               t_min, t_max, xtol=Tolerances.ARC_LENGTH)

    # -------------------------------------------------------------------------
    # Structural operations
    # -------------------------------------------------------------------------

    def _homogeneous(self) -> np.ndarray:
        return operations.to_homogeneous(self._control_points, self._weights.as_array())

    def _from_homogeneous(self, knots: np.ndarray, degree: int, Pw: np.ndarray) -> "NURBSCurve":
        control_points, weights = operations.from_homogeneous(Pw)
        return NURBSCurve(KnotVector(knots, degree), control_points,
                          weights if self.is_rational() else None)

    def _rebuild(self, control_points: np.ndarray, weights: Optional[np.ndarray]) -> "NURBSCurve":
        """New curve over the same domain with a regenerated uniform knot vector."""
        n = control_points.shape[0]
        if n < self.degree + 1:
            raise NurbsError.insufficient_control_points(n, self.degree)
        t_min, t_max = self.parameter_domain()
        knots = create_uniform_knot_vector(self.degree, n, t_min, t_max)
        return NURBSCurve(KnotVector(knots, self.degree), control_points, weights)

    def _check_point(self, point) -> np.ndarray:
        point = np.asarray(point, dtype=np.float64).reshape(-1)
        if point.shape[0] != self.dimension:
            raise NurbsError.degenerate_geometry(
                f"point has dimension {point.shape[0]}, curve has {self.dimension}"
            )
        return point

    def insert_knot(self, parameter, multiplicity: int = 1) -> "NURBSCurve":
        """
        Insert a knot without changing the curve's shape.

        Raises:
            NurbsError: parameter outside the domain, non-positive multiplicity,
                        or a resulting multiplicity above p+1
        """
        t_min, t_max = self.parameter_domain()
        if not t_min <= parameter <= t_max:
            raise NurbsError.parameter_out_of_range(parameter, (t_min, t_max))
        if multiplicity <= 0:
            raise NurbsError.invalid_knot_vector(
                f"insertion multiplicity must be positive, got {multiplicity}"
            )
        existing = self._knot_vector.multiplicity(parameter)
        if existing + multiplicity > self.degree + 1:
            raise NurbsError.invalid_knot_vector(
                f"multiplicity of {parameter} would be {existing + multiplicity}, "
                f"at most {self.degree + 1} allowed"
            )

        knots, Pw = operations.insert_knot(self._knot_vector.knots, self.degree,
                                           self._homogeneous(), parameter, multiplicity)
        logger.debug(f"Inserted knot {parameter} x{multiplicity}: "
                     f"{self.control_point_count} -> {Pw.shape[0]} control points")
        return self._from_homogeneous(knots, self.degree, Pw)

    def elevate_degree(self, target_degree: int) -> "NURBSCurve":
        """Raise the degree to target_degree; the shape is unchanged."""
        if target_degree <= self.degree:
            raise NurbsError.invalid_degree(
                f"target degree {target_degree} must exceed current degree {self.degree}"
            )
        knots, Pw = operations.elevate_degree(self._knot_vector.knots, self.degree,
                                              self._homogeneous(), target_degree)
        logger.debug(f"Elevated curve degree {self.degree} -> {target_degree}: "
                     f"{self.control_point_count} -> {Pw.shape[0]} control points")
        return self._from_homogeneous(knots, target_degree, Pw)

    def split_at(self, parameter) -> Tuple["NURBSCurve", "NURBSCurve"]:
        """
        Split into two curves meeting at parameter.

        The left curve keeps the domain [t_min, parameter], the right one
        [parameter, t_max].

        Raises:
            NurbsError: if parameter is not strictly inside the domain
        """
        t_min, t_max = self.parameter_domain()
        if not t_min < parameter < t_max:
            raise NurbsError.parameter_out_of_range(parameter, (t_min, t_max))

        (left_knots, left_Pw), (right_knots, right_Pw) = operations.split(
            self._knot_vector.knots, self.degree, self._homogeneous(), parameter
        )
        logger.debug(f"Split curve at t={parameter}: "
                     f"{left_Pw.shape[0]} + {right_Pw.shape[0]} control points")
        return (self._from_homogeneous(left_knots, self.degree, left_Pw),
                self._from_homogeneous(right_knots, self.degree, right_Pw))

    def reverse(self) -> "NURBSCurve":
        """Same point set traversed in the opposite direction."""
        knots, Pw = operations.reverse(self._knot_vector.knots, self._homogeneous())
        return self._from_homogeneous(knots, self.degree, Pw)

    def transform(self, matrix) -> "NURBSCurve":
        """
        Apply a homogeneous transformation to the control points.

        Parameters:
            matrix: (d+1)x(d+1) matrix, see geometry.transforms

        Returns:
            New curve over the same knot vector. Affine matrices keep the
            weights; a non-rational curve stays non-rational.

        Raises:
            NurbsError: if the matrix does not match the curve dimension
        """
        Pw = transforms.transform_homogeneous(self._homogeneous(), matrix)
        control_points, weights = operations.from_homogeneous(Pw)
        if not self.is_rational() and np.all(weights == 1.0):
            weights = None
        return NURBSCurve(self._knot_vector, control_points, weights)

    def bounding_box(self) -> Tuple[np.ndarray, np.ndarray]:
        """(min, max) corners of the control polygon; the curve lies inside."""
        return self._control_points.min(axis=0), self._control_points.max(axis=0)

    def add_control_point(self, point, weight=None) -> "NURBSCurve":
        """Append a control point; the knot vector is regenerated uniformly."""
        return self.insert_control_point(self.control_point_count, point, weight)

    def insert_control_point(self, index: int, point, weight=None) -> "NURBSCurve":
        """
        Insert a control point before index (index == count appends).

        A weight makes the result rational; a rational curve gets weight 1
        for the new point when none is given. The knot vector is regenerated
        as a uniform clamped vector over the same domain, so the shape
        changes.
        """
        n = self.control_point_count
        if index < 0 or index > n:
            raise NurbsError.index_out_of_range(index, n + 1)
        point = self._check_point(point)

        control_points = np.insert(self._control_points, index, point, axis=0)
        weights = None
        if self.is_rational() or weight is not None:
            weights = np.insert(self._weights.as_array(), index,
                                1.0 if weight is None else weight)

        curve = self._rebuild(control_points, weights)
        logger.debug(f"Inserted control point at index {index} ({n} -> {n + 1})")
        return curve

    def remove_control_point(self, index: int) -> "NURBSCurve":
        """
        Remove the control point at index.

        Raises:
            NurbsError: on an invalid index or when fewer than p+1 points would remain
        """
        n = self.control_point_count
        if index < 0 or index >= n:
            raise NurbsError.index_out_of_range(index, n)

        control_points = np.delete(self._control_points, index, axis=0)
        weights = None
        if self.is_rational():
            weights = np.delete(self._weights.as_array(), index)

        curve = self._rebuild(control_points, weights)
        logger.debug(f"Removed control point {index} ({n} -> {n - 1})")
        return curve

    # -------------------------------------------------------------------------
    # Weights
    # -------------------------------------------------------------------------

    def weight_at(self, index: int) -> float:
        return self._weights.weight_at(index)

    def is_uniform_weight(self) -> bool:
        return self._weights.is_uniform or bool(np.all(self._weights.values == 1.0))

    def make_non_rational(self) -> "NURBSCurve":
        """Drop the weights; the result is a polynomial B-spline on the same control points."""
        return NURBSCurve(self._knot_vector, self._control_points)

    def make_rational(self, weights: Sequence) -> "NURBSCurve":
        return NURBSCurve(self._knot_vector, self._control_points, weights)

    def set_weight(self, index: int, weight) -> "NURBSCurve":
        n = self.control_point_count
        if index < 0 or index >= n:
            raise NurbsError.index_out_of_range(index, n)
        weights = self._weights.as_array()
        weights[index] = weight
        curve = NURBSCurve(self._knot_vector, self._control_points, weights)
        logger.debug(f"Set weight {index} to {weight}")
        return curve

    def set_weights(self, weights: Sequence) -> "NURBSCurve":
        return NURBSCurve(self._knot_vector, self._control_points, weights)

    def normalize_weights(self) -> "NURBSCurve":
        """Scale weights so the largest is 1; rational curves are invariant under this."""
        if not self.is_rational():
            return self
        weights = self._weights.as_array()
        return NURBSCurve(self._knot_vector, self._control_points, weights / np.max(weights))

    def weight_statistics(self) -> Tuple[float, float, float]:
        return self._weights.statistics()
