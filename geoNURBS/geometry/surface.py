"""
NURBS surface in 3D (or 2D) space.

A NURBS surface S(u, v) is defined by:
- Two knot vectors (u and v directions) with independent degrees
- Control points P_{i,j} arranged in an (n_u, n_v) grid
- Optional weights w_{i,j} > 0

The surface point is:

    S(u, v) = sum_{i,j} N_i(u) N_j(v) w_{i,j} P_{i,j} / sum_{i,j} N_i(u) N_j(v) w_{i,j}

Evaluation runs in homogeneous coordinates: the tensor-product B-spline
of (w*P, w) is evaluated and projected. Derivatives use the rational
correction of Piegl & Tiller (Algorithm A4.4).

Control points in flat form are stored row-major: index i * n_v + j
holds P_{i,j}, so v varies fastest.
"""

import math
import numpy as np
from loguru import logger
from typing import Optional, Sequence, Tuple

from ..config import Tolerances
from ..contracts import (
    BiParametricGeometry, NurbsSurfaceOperations, WeightedGeometry, as_3d
)
from ..discretization.knot_vector import KnotVector
from ..errors import NurbsError
from . import operations, transforms
from .basis import BSplineBasis
from .curve import NURBSCurve
from .weights import WeightStorage


class NURBSSurface(NurbsSurfaceOperations, WeightedGeometry, BiParametricGeometry):
    """
    Tensor-product NURBS surface.

    Structural edits in either direction return new surfaces.
    """

    def __init__(self,
                 u_knot_vector: KnotVector,
                 v_knot_vector: KnotVector,
                 control_points: np.ndarray,
                 weights: Optional[np.ndarray] = None):
        """
        Initialize a NURBS surface.

        Parameters:
            u_knot_vector: KnotVector for u direction
            v_knot_vector: KnotVector for v direction
            control_points: Array of shape (n_u, n_v, d), or (n_u * n_v, d)
                            in row-major order
            weights: Array of shape (n_u, n_v) or (n_u * n_v,); None gives a
                     polynomial surface

        Raises:
            NurbsError: on a knot vector/grid mismatch, too few control points
                        in a direction, or malformed weights
        """
        control_points = np.asarray(control_points, dtype=np.float64)
        if control_points.ndim == 3:
            grid = control_points
        else:
            n_u, n_v = u_knot_vector.n_basis, v_knot_vector.n_basis
            if control_points.ndim != 2 or control_points.shape[0] != n_u * n_v:
                raise NurbsError.degenerate_geometry(
                    f"control points of shape {control_points.shape} do not form "
                    f"a {n_u} x {n_v} grid"
                )
            grid = control_points.reshape(n_u, n_v, -1)

        n_u, n_v = grid.shape[:2]
        for kv, n in ((u_knot_vector, n_u), (v_knot_vector, n_v)):
            if n < kv.degree + 1:
                raise NurbsError.insufficient_control_points(n, kv.degree)
            kv.validate(kv.degree, n)

        self._grid = grid
        self._kv_u = u_knot_vector
        self._kv_v = v_knot_vector
        self._basis_u = BSplineBasis(u_knot_vector)
        self._basis_v = BSplineBasis(v_knot_vector)
        self._weights = WeightStorage.from_optional(weights, n_u * n_v)

    @classmethod
    def from_knots(cls, u_knots: Sequence, u_degree: int, v_knots: Sequence, v_degree: int,
                   control_points: np.ndarray,
                   weights: Optional[np.ndarray] = None) -> "NURBSSurface":
        """Build a surface from raw knot sequences and degrees."""
        return cls(KnotVector(u_knots, u_degree), KnotVector(v_knots, v_degree),
                   control_points, weights)

    def __repr__(self) -> str:
        kind = "rational" if self.is_rational() else "polynomial"
        return (f"NURBSSurface(degrees=({self.u_degree}, {self.v_degree}), "
                f"grid={self.grid_size}, {kind})")

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def u_degree(self) -> int:
        return self._kv_u.degree

    @property
    def v_degree(self) -> int:
        return self._kv_v.degree

    @property
    def grid_size(self) -> Tuple[int, int]:
        return (self._grid.shape[0], self._grid.shape[1])

    @property
    def dimension(self) -> int:
        return self._grid.shape[2]

    @property
    def knot_vectors(self) -> Tuple[KnotVector, KnotVector]:
        return (self._kv_u, self._kv_v)

    @property
    def control_points(self) -> np.ndarray:
        """Control points as (n_u * n_v, d) array, row-major."""
        return self._grid.reshape(-1, self.dimension).copy()

    @property
    def control_points_grid(self) -> np.ndarray:
        """Control points as (n_u, n_v, d) grid."""
        return self._grid.copy()

    @property
    def weights(self) -> np.ndarray:
        return self._weights.as_array()

    @property
    def weights_grid(self) -> np.ndarray:
        """Weights as (n_u, n_v) grid."""
        return self._weights.as_array().reshape(self.grid_size)

    def parameter_domain(self) -> Tuple[Tuple[float, float], Tuple[float, float]]:
        return (self._kv_u.parameter_domain(), self._kv_v.parameter_domain())

    def is_rational(self) -> bool:
        return not self._weights.is_uniform

    def is_u_closed(self, tolerance: float = Tolerances.CLOSED_GEOMETRY) -> bool:
        """True when the first and last rows along u coincide."""
        gaps = np.linalg.norm(self._grid[0] - self._grid[-1], axis=-1)
        return float(np.max(gaps)) <= tolerance

    def is_v_closed(self, tolerance: float = Tolerances.CLOSED_GEOMETRY) -> bool:
        """True when the first and last columns along v coincide."""
        gaps = np.linalg.norm(self._grid[:, 0] - self._grid[:, -1], axis=-1)
        return float(np.max(gaps)) <= tolerance

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def _homogeneous(self) -> np.ndarray:
        return operations.to_homogeneous(self._grid, self.weights_grid)

    def evaluate_at(self, u, v) -> np.ndarray:
        """
        Evaluate surface at parameter values (clamped to the domain).

        Returns:
            Point coordinates as (d,) array
        """
        u, v = self.clamp_parameters(u, v)
        span_u = self._basis_u.find_span(u)
        span_v = self._basis_v.find_span(v)

        N_u = np.asarray(self._basis_u.eval(u, span_u), dtype=np.float64)
        N_v = np.asarray(self._basis_v.eval(v, span_v), dtype=np.float64)

        block = self._homogeneous()[span_u - self.u_degree:span_u + 1,
                                    span_v - self.v_degree:span_v + 1]
        Sw = np.einsum('i,j,ijk->k', N_u, N_v, block)
        if Sw[-1] == 0:
            logger.warning(f"Zero weight sum at (u={u}, v={v})")
            return np.zeros(self.dimension)
        return Sw[:-1] / Sw[-1]

    def derivatives_at(self, u, v, order: int = 1) -> np.ndarray:
        """
        Surface derivatives up to total order `order`.

        Parameters:
            u, v: Parameter values (clamped to the domain)
            order: Highest total derivative order

        Returns:
            Array SKL of shape (order+1, order+1, d) where SKL[k, l] is
            d^(k+l) S / du^k dv^l for k + l <= order (other entries zero)
        """
        u, v = self.clamp_parameters(u, v)
        span_u = self._basis_u.find_span(u)
        span_v = self._basis_v.find_span(v)

        Nders_u = np.asarray(self._basis_u.eval_ders(u, order, span_u), dtype=np.float64)
        Nders_v = np.asarray(self._basis_v.eval_ders(v, order, span_v), dtype=np.float64)

        block = self._homogeneous()[span_u - self.u_degree:span_u + 1,
                                    span_v - self.v_degree:span_v + 1]
        Aw = np.einsum('ki,lj,ijm->klm', Nders_u, Nders_v, block)
        A = Aw[..., :-1]
        w = Aw[..., -1]

        SKL = np.zeros((order + 1, order + 1, self.dimension))
        if w[0, 0] == 0:
            logger.warning(f"Zero weight sum at (u={u}, v={v}); derivatives left at zero")
            return SKL

        for k in range(order + 1):
            for l in range(order - k + 1):
                value = A[k, l].copy()
                for j in range(1, l + 1):
                    value -= math.comb(l, j) * w[0, j] * SKL[k, l - j]
                for i in range(1, k + 1):
                    value -= math.comb(k, i) * w[i, 0] * SKL[k - i, l]
                    mixed = np.zeros(self.dimension)
                    for j in range(1, l + 1):
                        mixed += math.comb(l, j) * w[i, j] * SKL[k - i, l - j]
                    value -= math.comb(k, i) * mixed
                SKL[k, l] = value / w[0, 0]

        return SKL

    def u_derivative_at(self, u, v) -> np.ndarray:
        return self.derivatives_at(u, v, 1)[1, 0]

    def v_derivative_at(self, u, v) -> np.ndarray:
        return self.derivatives_at(u, v, 1)[0, 1]

    def fundamental_forms_at(self, u, v) -> Tuple[Tuple[float, float, float],
                                                  Tuple[float, float, float]]:
        """
        First and second fundamental form coefficients ((E, F, G), (L, M, N)).

        The second form uses the unit normal of normal_at; at degenerate
        points it is zero.
        """
        SKL = self.derivatives_at(u, v, 2)
        Su, Sv = as_3d(SKL[1, 0]), as_3d(SKL[0, 1])
        Suu, Suv, Svv = as_3d(SKL[2, 0]), as_3d(SKL[1, 1]), as_3d(SKL[0, 2])
        n = self.normal_at(u, v)

        first = (float(Su @ Su), float(Su @ Sv), float(Sv @ Sv))
        second = (float(Suu @ n), float(Suv @ n), float(Svv @ n))
        return first, second

    def principal_curvatures_at(self, u, v) -> Tuple[float, float]:
        """
        Principal curvatures (k_max, k_min) from the fundamental forms.

        With K = (LN - M^2) / (EG - F^2) and H = (EN - 2FM + GL) / (2(EG - F^2))
        the curvatures are H +/- sqrt(H^2 - K). Signs follow the orientation
        of normal_at. Degenerate points give (0, 0).
        """
        (E, F, G), (L, M, N) = self.fundamental_forms_at(u, v)
        det = E * G - F * F
        if det < Tolerances.DEGENERATE_NORMAL:
            return (0.0, 0.0)

        K = (L * N - M * M) / det
        H = (E * N - 2.0 * F * M + G * L) / (2.0 * det)
        root = math.sqrt(max(H * H - K, 0.0))
        return (H + root, H - root)

    # -------------------------------------------------------------------------
    # Structural operations
    # -------------------------------------------------------------------------

    def _from_homogeneous(self, u_kv: KnotVector, v_kv: KnotVector,
                          Pw: np.ndarray) -> "NURBSSurface":
        control_points, weights = operations.from_homogeneous(Pw)
        return NURBSSurface(u_kv, v_kv, control_points,
                            weights if self.is_rational() else None)

    def _directional(self, direction: str):
        """Knot vector and homogeneous net with the edited direction on axis 0."""
        Pw = self._homogeneous()
        if direction == "u":
            return self._kv_u, Pw
        return self._kv_v, Pw.transpose(1, 0, 2)

    def _assemble(self, direction: str, knots: np.ndarray, degree: int,
                  Pw: np.ndarray) -> "NURBSSurface":
        kv = KnotVector(knots, degree)
        if direction == "u":
            return self._from_homogeneous(kv, self._kv_v, Pw)
        return self._from_homogeneous(self._kv_u, kv, Pw.transpose(1, 0, 2))

    def _insert_knot(self, direction: str, parameter, multiplicity: int) -> "NURBSSurface":
        kv, Pw = self._directional(direction)
        t_min, t_max = kv.parameter_domain()
        if not t_min <= parameter <= t_max:
            raise NurbsError.parameter_out_of_range(parameter, (t_min, t_max))
        if multiplicity <= 0:
            raise NurbsError.invalid_knot_vector(
                f"insertion multiplicity must be positive, got {multiplicity}"
            )
        existing = kv.multiplicity(parameter)
        if existing + multiplicity > kv.degree + 1:
            raise NurbsError.invalid_knot_vector(
                f"multiplicity of {parameter} would be {existing + multiplicity}, "
                f"at most {kv.degree + 1} allowed"
            )

        knots, Pw = operations.insert_knot(kv.knots, kv.degree, Pw, parameter, multiplicity)
        logger.debug(f"Inserted {direction}-knot {parameter} x{multiplicity}")
        return self._assemble(direction, knots, kv.degree, Pw)

    def _elevate_degree(self, direction: str, target_degree: int) -> "NURBSSurface":
        kv, Pw = self._directional(direction)
        if target_degree <= kv.degree:
            raise NurbsError.invalid_degree(
                f"target {direction}-degree {target_degree} must exceed "
                f"current degree {kv.degree}"
            )
        knots, Pw = operations.elevate_degree(kv.knots, kv.degree, Pw, target_degree)
        logger.debug(f"Elevated {direction}-degree {kv.degree} -> {target_degree}")
        return self._assemble(direction, knots, target_degree, Pw)

    def _split(self, direction: str, parameter) -> Tuple["NURBSSurface", "NURBSSurface"]:
        kv, Pw = self._directional(direction)
        t_min, t_max = kv.parameter_domain()
        if not t_min < parameter < t_max:
            raise NurbsError.parameter_out_of_range(parameter, (t_min, t_max))

        (left_knots, left_Pw), (right_knots, right_Pw) = operations.split(
            kv.knots, kv.degree, Pw, parameter
        )
        logger.debug(f"Split surface along {direction} at {parameter}")
        return (self._assemble(direction, left_knots, kv.degree, left_Pw),
                self._assemble(direction, right_knots, kv.degree, right_Pw))

    def insert_u_knot(self, parameter, multiplicity: int = 1) -> "NURBSSurface":
        return self._insert_knot("u", parameter, multiplicity)

    def insert_v_knot(self, parameter, multiplicity: int = 1) -> "NURBSSurface":
        return self._insert_knot("v", parameter, multiplicity)

    def elevate_u_degree(self, target_degree: int) -> "NURBSSurface":
        return self._elevate_degree("u", target_degree)

    def elevate_v_degree(self, target_degree: int) -> "NURBSSurface":
        return self._elevate_degree("v", target_degree)

    def split_u_at(self, parameter) -> Tuple["NURBSSurface", "NURBSSurface"]:
        return self._split("u", parameter)

    def split_v_at(self, parameter) -> Tuple["NURBSSurface", "NURBSSurface"]:
        return self._split("v", parameter)

    def reverse(self, reverse_u: bool = True, reverse_v: bool = False) -> "NURBSSurface":
        """Reverse the parameter direction(s); the point set is unchanged."""
        surface = self
        for direction, flag in (("u", reverse_u), ("v", reverse_v)):
            if flag:
                kv, Pw = surface._directional(direction)
                knots, Pw = operations.reverse(kv.knots, Pw)
                surface = surface._assemble(direction, knots, kv.degree, Pw)
        return surface

    def transform(self, matrix) -> "NURBSSurface":
        """
        Apply a (d+1)x(d+1) homogeneous matrix to the control net.

        Both knot vectors are kept, and the weights too for affine matrices.
        """
        Pw = transforms.transform_homogeneous(self._homogeneous(), matrix)
        control_points, weights = operations.from_homogeneous(Pw)
        if not self.is_rational() and np.all(weights == 1.0):
            weights = None
        return NURBSSurface(self._kv_u, self._kv_v, control_points, weights)

    def bounding_box(self) -> Tuple[np.ndarray, np.ndarray]:
        """(min, max) corners of the control net; the surface lies inside."""
        points = self._grid.reshape(-1, self.dimension)
        return points.min(axis=0), points.max(axis=0)

    def _isocurve(self, direction: str, parameter) -> NURBSCurve:
        kv, Pw = self._directional(direction)
        other_kv = self._kv_v if direction == "u" else self._kv_u
        t = min(max(parameter, kv.parameter_domain()[0]), kv.parameter_domain()[1])

        span = kv.find_span(t)
        N = np.asarray(BSplineBasis(kv).eval(t, span), dtype=np.float64)
        Cw = np.tensordot(N, Pw[span - kv.degree:span + 1], axes=(0, 0))

        control_points, weights = operations.from_homogeneous(Cw)
        return NURBSCurve(other_kv, control_points, weights if self.is_rational() else None)

    def extract_u_curve(self, u_parameter) -> NURBSCurve:
        """Curve S(u_parameter, v) over the v domain."""
        return self._isocurve("u", u_parameter)

    def extract_v_curve(self, v_parameter) -> NURBSCurve:
        """Curve S(u, v_parameter) over the u domain."""
        return self._isocurve("v", v_parameter)

    # -------------------------------------------------------------------------
    # Weights (flat row-major indexing)
    # -------------------------------------------------------------------------

    def _with_weights(self, weights: Optional[np.ndarray]) -> "NURBSSurface":
        return NURBSSurface(self._kv_u, self._kv_v, self._grid, weights)

    def weight_at(self, index: int) -> float:
        return self._weights.weight_at(index)

    def is_uniform_weight(self) -> bool:
        return self._weights.is_uniform or bool(np.all(self._weights.values == 1.0))

    def make_non_rational(self) -> "NURBSSurface":
        return self._with_weights(None)

    def make_rational(self, weights: Sequence) -> "NURBSSurface":
        return self._with_weights(weights)

    def set_weight(self, index: int, weight) -> "NURBSSurface":
        n = self._weights.count
        if index < 0 or index >= n:
            raise NurbsError.index_out_of_range(index, n)
        weights = self._weights.as_array()
        weights[index] = weight
        surface = self._with_weights(weights)
        logger.debug(f"Set surface weight {index} to {weight}")
        return surface

    def set_weights(self, weights: Sequence) -> "NURBSSurface":
        return self._with_weights(weights)

    def normalize_weights(self) -> "NURBSSurface":
        if not self.is_rational():
            return self
        weights = self._weights.as_array()
        return self._with_weights(weights / np.max(weights))

    def weight_statistics(self) -> Tuple[float, float, float]:
        return self._weights.statistics()
