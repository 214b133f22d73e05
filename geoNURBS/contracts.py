"""
Abstract contracts for NURBS geometry.

These abstract base classes define the public surface that concrete
curve/surface types implement, independently of physical dimension
(2D/3D) or point representation. Points and vectors are opaque to the
contracts; the concrete types in geoNURBS.geometry use NumPy arrays.

Contracts:
- KnotVectorLike: knot access, domain, validation, span search
- NurbsCurve / NurbsCurveOperations: curve evaluation and structural edits
- NurbsSurface / NurbsSurfaceOperations: surface evaluation and structural edits
- WeightedGeometry: per-control-point weight management
- ParametricGeometry / BiParametricGeometry: parameter normalization and clamping

Structural edits (knot insertion, degree elevation, splitting, weight
changes) always return new, independently valid objects; no contract
method mutates its receiver.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from .config import Tolerances


class KnotVectorLike(ABC):
    """Abstraction over a knot sequence."""

    @abstractmethod
    def __len__(self) -> int:
        pass

    def is_empty(self) -> bool:
        return len(self) == 0

    @abstractmethod
    def knot_at(self, index: int):
        """Knot value at index."""
        pass

    @abstractmethod
    def parameter_domain(self, degree: int) -> Tuple:
        """(knots[degree], knots[len - degree - 1])."""
        pass

    @abstractmethod
    def validate(self, degree: int, control_point_count: int) -> None:
        """Raise NurbsError if the knots cannot serve the given degree/count."""
        pass

    @abstractmethod
    def find_span(self, parameter, degree: int) -> int:
        """Span index containing parameter."""
        pass


class NurbsCurve(ABC):
    """
    Common interface of NURBS curves.

    evaluate_at must go through the span search and must use the rational
    basis when is_rational() is true, the polynomial basis otherwise.
    """

    @property
    @abstractmethod
    def degree(self) -> int:
        pass

    @property
    @abstractmethod
    def control_point_count(self) -> int:
        pass

    @abstractmethod
    def parameter_domain(self) -> Tuple:
        pass

    @abstractmethod
    def evaluate_at(self, parameter) -> np.ndarray:
        """Point on the curve."""
        pass

    @abstractmethod
    def derivative_at(self, parameter) -> np.ndarray:
        """First derivative vector."""
        pass

    def tangent_at(self, parameter) -> np.ndarray:
        """Tangent vector; the unnormalized first derivative."""
        return self.derivative_at(parameter)

    @abstractmethod
    def is_rational(self) -> bool:
        pass

    @abstractmethod
    def is_closed(self, tolerance: float = Tolerances.CLOSED_GEOMETRY) -> bool:
        pass

    def approximate_length(self, subdivisions: int = Tolerances.DEFAULT_LENGTH_SUBDIVISIONS):
        """
        Chord-length approximation of the curve length.

        Sums the distances between consecutive points at subdivisions + 1
        equally spaced parameters across the domain. Not adaptive and not
        analytically exact.
        """
        if subdivisions <= 0:
            return 0.0

        t_min, t_max = self.parameter_domain()
        dt = (t_max - t_min) / subdivisions

        total_length = 0.0
        prev_point = self.evaluate_at(t_min)
        for i in range(1, subdivisions + 1):
            point = self.evaluate_at(t_min + dt * i)
            total_length += float(np.linalg.norm(np.asarray(point - prev_point, dtype=float)))
            prev_point = point

        return total_length

    def measure(self) -> float:
        """Length of the curve by the default chord approximation."""
        return self.approximate_length(Tolerances.DEFAULT_LENGTH_SUBDIVISIONS)


class NurbsCurveOperations(NurbsCurve):
    """
    Structural operations on NURBS curves.

    Every method returns new curve instances and raises NurbsError when the
    request is outside the domain, requests a non-increasing degree or
    addresses a control point that does not exist.
    """

    @abstractmethod
    def insert_knot(self, parameter, multiplicity: int = 1) -> "NurbsCurveOperations":
        pass

    @abstractmethod
    def elevate_degree(self, target_degree: int) -> "NurbsCurveOperations":
        pass

    @abstractmethod
    def split_at(self, parameter) -> Tuple["NurbsCurveOperations", "NurbsCurveOperations"]:
        pass

    @abstractmethod
    def add_control_point(self, point, weight=None) -> "NurbsCurveOperations":
        pass

    @abstractmethod
    def insert_control_point(self, index: int, point, weight=None) -> "NurbsCurveOperations":
        pass

    @abstractmethod
    def remove_control_point(self, index: int) -> "NurbsCurveOperations":
        pass

    @abstractmethod
    def reverse(self) -> "NurbsCurveOperations":
        pass

    @abstractmethod
    def curvature_at(self, parameter) -> float:
        pass

    def uniform_parameters(self, num_segments: int) -> List:
        """num_segments + 1 equally spaced parameters spanning the domain."""
        t_min, t_max = self.parameter_domain()
        if num_segments <= 0:
            return [t_min]
        step = (t_max - t_min) / num_segments
        return [t_min + step * i for i in range(num_segments)] + [t_max]

    @abstractmethod
    def parameter_from_arc_length(self, arc_length) -> Optional[float]:
        pass


class NurbsSurface(ABC):
    """Common interface of NURBS surfaces."""

    @property
    @abstractmethod
    def u_degree(self) -> int:
        pass

    @property
    @abstractmethod
    def v_degree(self) -> int:
        pass

    @property
    @abstractmethod
    def grid_size(self) -> Tuple[int, int]:
        """Control point grid size (u_count, v_count)."""
        pass

    @abstractmethod
    def parameter_domain(self) -> Tuple[Tuple, Tuple]:
        """((u_min, u_max), (v_min, v_max))."""
        pass

    @abstractmethod
    def evaluate_at(self, u, v) -> np.ndarray:
        pass

    @abstractmethod
    def u_derivative_at(self, u, v) -> np.ndarray:
        pass

    @abstractmethod
    def v_derivative_at(self, u, v) -> np.ndarray:
        pass

    def normal_at(self, u, v) -> np.ndarray:
        """
        Unit normal: normalized cross product of the partial derivatives.

        At degenerate points (a zero partial or parallel partials) the
        result is the zero vector; callers must treat a near-zero-length
        normal as undefined.
        """
        su = as_3d(self.u_derivative_at(u, v))
        sv = as_3d(self.v_derivative_at(u, v))
        normal = np.cross(su, sv)
        length = float(np.linalg.norm(normal))
        if length < Tolerances.DEGENERATE_NORMAL:
            logger.warning(f"Degenerate surface normal at (u={u}, v={v})")
            return np.zeros(3)
        return normal / length

    @abstractmethod
    def is_rational(self) -> bool:
        pass

    @abstractmethod
    def is_u_closed(self, tolerance: float = Tolerances.CLOSED_GEOMETRY) -> bool:
        pass

    @abstractmethod
    def is_v_closed(self, tolerance: float = Tolerances.CLOSED_GEOMETRY) -> bool:
        pass

    def approximate_area(self, u_subdivisions: int = Tolerances.DEFAULT_AREA_SUBDIVISIONS,
                         v_subdivisions: int = Tolerances.DEFAULT_AREA_SUBDIVISIONS) -> float:
        """
        Area approximation from two triangles per parameter-grid cell.
        """
        if u_subdivisions <= 0 or v_subdivisions <= 0:
            return 0.0

        (u_min, u_max), (v_min, v_max) = self.parameter_domain()
        us = [u_min + (u_max - u_min) * i / u_subdivisions for i in range(u_subdivisions + 1)]
        vs = [v_min + (v_max - v_min) * j / v_subdivisions for j in range(v_subdivisions + 1)]
        grid = [[as_3d(self.evaluate_at(u, v)) for v in vs] for u in us]

        total_area = 0.0
        for i in range(u_subdivisions):
            for j in range(v_subdivisions):
                p00 = grid[i][j]
                p10 = grid[i + 1][j]
                p01 = grid[i][j + 1]
                p11 = grid[i + 1][j + 1]
                total_area += 0.5 * float(np.linalg.norm(np.cross(p10 - p00, p01 - p00)))
                total_area += 0.5 * float(np.linalg.norm(np.cross(p11 - p10, p01 - p10)))

        return total_area

    def measure(self) -> float:
        """Area of the surface by the default triangulation."""
        return self.approximate_area(Tolerances.DEFAULT_AREA_SUBDIVISIONS,
                                     Tolerances.DEFAULT_AREA_SUBDIVISIONS)


class NurbsSurfaceOperations(NurbsSurface):
    """Structural operations on NURBS surfaces; all return new instances."""

    @abstractmethod
    def insert_u_knot(self, parameter, multiplicity: int = 1) -> "NurbsSurfaceOperations":
        pass

    @abstractmethod
    def insert_v_knot(self, parameter, multiplicity: int = 1) -> "NurbsSurfaceOperations":
        pass

    @abstractmethod
    def elevate_u_degree(self, target_degree: int) -> "NurbsSurfaceOperations":
        pass

    @abstractmethod
    def elevate_v_degree(self, target_degree: int) -> "NurbsSurfaceOperations":
        pass

    @abstractmethod
    def split_u_at(self, parameter) -> Tuple["NurbsSurfaceOperations", "NurbsSurfaceOperations"]:
        pass

    @abstractmethod
    def split_v_at(self, parameter) -> Tuple["NurbsSurfaceOperations", "NurbsSurfaceOperations"]:
        pass

    @abstractmethod
    def extract_u_curve(self, u_parameter) -> NurbsCurve:
        """Isoparametric curve at fixed u, running along v."""
        pass

    @abstractmethod
    def extract_v_curve(self, v_parameter) -> NurbsCurve:
        """Isoparametric curve at fixed v, running along u."""
        pass

    def boundary_curves(self) -> Tuple[NurbsCurve, NurbsCurve, NurbsCurve, NurbsCurve]:
        """Boundary curves at u_min, u_max, v_min, v_max."""
        (u_min, u_max), (v_min, v_max) = self.parameter_domain()
        return (self.extract_u_curve(u_min), self.extract_u_curve(u_max),
                self.extract_v_curve(v_min), self.extract_v_curve(v_max))

    @abstractmethod
    def principal_curvatures_at(self, u, v) -> Tuple[float, float]:
        """(k_max, k_min) at (u, v)."""
        pass

    def gaussian_curvature_at(self, u, v) -> float:
        k1, k2 = self.principal_curvatures_at(u, v)
        return k1 * k2

    def mean_curvature_at(self, u, v) -> float:
        k1, k2 = self.principal_curvatures_at(u, v)
        return 0.5 * (k1 + k2)

    @abstractmethod
    def reverse(self, reverse_u: bool = True, reverse_v: bool = False) -> "NurbsSurfaceOperations":
        pass

    def uniform_parameters(self, u_segments: int, v_segments: int) -> List[List[Tuple]]:
        """Grid of (u, v) pairs, u_segments + 1 rows by v_segments + 1 columns."""
        (u_min, u_max), (v_min, v_max) = self.parameter_domain()
        us = [u_min + (u_max - u_min) * i / max(u_segments, 1) for i in range(u_segments + 1)]
        vs = [v_min + (v_max - v_min) * j / max(v_segments, 1) for j in range(v_segments + 1)]
        return [[(u, v) for v in vs] for u in us]


class WeightedGeometry(ABC):
    """
    Per-control-point weight management (uniform vs rational).

    Weight edits return new geometry objects; the receiver is unchanged.
    """

    @abstractmethod
    def weight_at(self, index: int):
        pass

    @abstractmethod
    def is_uniform_weight(self) -> bool:
        """True when all weights are 1 (polynomial B-spline)."""
        pass

    @abstractmethod
    def make_non_rational(self) -> "WeightedGeometry":
        pass

    @abstractmethod
    def make_rational(self, weights: Sequence) -> "WeightedGeometry":
        pass

    @abstractmethod
    def set_weight(self, index: int, weight) -> "WeightedGeometry":
        pass

    @abstractmethod
    def set_weights(self, weights: Sequence) -> "WeightedGeometry":
        pass

    @abstractmethod
    def normalize_weights(self) -> "WeightedGeometry":
        """Scale weights so that the largest is 1 (shape unchanged)."""
        pass

    @abstractmethod
    def weight_statistics(self) -> Tuple[float, float, float]:
        """(min, max, mean) weight."""
        pass


class ParametricGeometry:
    """Parameter normalization and clamping for single-parameter geometry."""

    def normalize_parameter(self, parameter):
        t_min, t_max = self.parameter_domain()
        return (parameter - t_min) / (t_max - t_min)

    def denormalize_parameter(self, normalized_parameter):
        t_min, t_max = self.parameter_domain()
        return t_min + normalized_parameter * (t_max - t_min)

    def is_parameter_valid(self, parameter) -> bool:
        t_min, t_max = self.parameter_domain()
        return t_min <= parameter <= t_max

    def clamp_parameter(self, parameter):
        t_min, t_max = self.parameter_domain()
        return min(max(parameter, t_min), t_max)


class BiParametricGeometry:
    """Parameter normalization and clamping for (u, v) geometry."""

    def normalize_u_parameter(self, u):
        (u_min, u_max), _ = self.parameter_domain()
        return (u - u_min) / (u_max - u_min)

    def normalize_v_parameter(self, v):
        _, (v_min, v_max) = self.parameter_domain()
        return (v - v_min) / (v_max - v_min)

    def denormalize_u_parameter(self, normalized_u):
        (u_min, u_max), _ = self.parameter_domain()
        return u_min + normalized_u * (u_max - u_min)

    def denormalize_v_parameter(self, normalized_v):
        _, (v_min, v_max) = self.parameter_domain()
        return v_min + normalized_v * (v_max - v_min)

    def are_parameters_valid(self, u, v) -> bool:
        (u_min, u_max), (v_min, v_max) = self.parameter_domain()
        return u_min <= u <= u_max and v_min <= v <= v_max

    def clamp_parameters(self, u, v) -> Tuple:
        (u_min, u_max), (v_min, v_max) = self.parameter_domain()
        return (min(max(u, u_min), u_max), min(max(v, v_min), v_max))


def as_3d(vector) -> np.ndarray:
    """Pad a 2D point/vector with z = 0 for cross products."""
    vector = np.asarray(vector, dtype=float)
    if vector.shape[0] == 3:
        return vector
    padded = np.zeros(3)
    padded[:vector.shape[0]] = vector
    return padded
