"""
Knot vector utilities.

A knot vector is a non-decreasing sequence of real numbers that defines
the parametric domain and basis function support for B-splines/NURBS.

Mathematical background:
- Clamped (open) knot vectors have p+1 repeated knots at each end, so the
  curve interpolates its first and last control points
- The number of basis functions n = len(knots) - p - 1
- Breakpoints are the distinct knot values; non-empty spans lie between them
- The parametric domain is [knots[p], knots[n]]

Two layers are provided:
- Plain functions over array-likes (validate_knot_vector, find_span, ...),
  used directly by the basis engine
- The KnotVector dataclass bundling knots with a degree for higher-level code

Knot values are not tied to float64: integer input is promoted to float64,
floating input keeps its dtype, and any other numeric type (for example
fractions.Fraction) is kept in an object array so that arithmetic stays exact.
"""

import numpy as np
from typing import Sequence, Tuple
from dataclasses import dataclass

from ..config import Tolerances
from ..contracts import KnotVectorLike
from ..errors import NurbsError


def as_knot_array(values) -> np.ndarray:
    """
    Convert knot values to a 1-D array without losing exactness.

    Parameters:
        values: Sequence of knot values

    Returns:
        float64 array for integer input, the same floating dtype for
        floating input, object array for any other scalar type
    """
    arr = np.asarray(values)
    if arr.dtype.kind in "biu":
        return arr.astype(np.float64)
    if arr.dtype.kind == "f":
        return arr
    return np.asarray(values, dtype=object)


def scalar_dtype(knots: np.ndarray, *values):
    """
    Pick the array dtype for computations mixing knots and parameter values.

    Object arrays are used as soon as the knots or any value is not a
    built-in/NumPy real number.
    """
    if knots.dtype == object:
        return object
    for value in values:
        if not isinstance(value, (float, int, np.floating, np.integer)):
            return object
    return knots.dtype


def count_multiplicity_at_start(knots: Sequence) -> int:
    """Number of leading knots equal to the first knot."""
    if len(knots) == 0:
        return 0
    first = knots[0]
    count = 0
    for knot in knots:
        if knot != first:
            break
        count += 1
    return count


def count_multiplicity_at_end(knots: Sequence) -> int:
    """Number of trailing knots equal to the last knot."""
    if len(knots) == 0:
        return 0
    last = knots[-1]
    count = 0
    for knot in reversed(knots):
        if knot != last:
            break
        count += 1
    return count


def validate_knot_vector(knots: Sequence, degree: int, control_point_count: int) -> None:
    """
    Validate a knot vector for use with a given degree and control point count.

    Checks run in order and the first failure is raised:
    1. len(knots) == control_point_count + degree + 1
    2. knots are non-decreasing
    3. first and last knots each repeat at least degree + 1 times

    Parameters:
        knots: Knot values
        degree: Polynomial degree p
        control_point_count: Number of control points

    Raises:
        NurbsError: if any check fails
    """
    required_length = control_point_count + degree + 1
    if len(knots) != required_length:
        raise NurbsError.invalid_knot_vector(
            f"length is {len(knots)}, {required_length} required "
            f"({control_point_count} control points, degree {degree})"
        )

    for i in range(1, len(knots)):
        if knots[i] < knots[i - 1]:
            raise NurbsError.invalid_knot_vector(
                f"not non-decreasing: knots[{i}]={knots[i]} < knots[{i - 1}]={knots[i - 1]}"
            )

    start_multiplicity = count_multiplicity_at_start(knots)
    if start_multiplicity < degree + 1:
        raise NurbsError.invalid_knot_vector(
            f"start multiplicity is {start_multiplicity}, at least {degree + 1} required"
        )

    end_multiplicity = count_multiplicity_at_end(knots)
    if end_multiplicity < degree + 1:
        raise NurbsError.invalid_knot_vector(
            f"end multiplicity is {end_multiplicity}, at least {degree + 1} required"
        )


def create_uniform_knot_vector(degree: int, n_control_points: int,
                               start=0.0, end=1.0) -> np.ndarray:
    """
    Create a clamped knot vector with uniformly spaced interior knots.

    Layout: degree+1 copies of start, the interior knots
    start + i * (end - start) / (n_internal + 1) for i = 1..n_internal,
    then degree+1 copies of end. When the combination of degree and
    control point count leaves no room for interior knots none are emitted;
    such vectors are rejected later by validate_knot_vector.

    Parameters:
        degree: Polynomial degree p
        n_control_points: Number of control points
        start: First parameter value
        end: Last parameter value

    Returns:
        Knot array of length max(n_control_points + degree + 1, 2 * (degree + 1))
    """
    total_knots = n_control_points + degree + 1
    n_internal = total_knots - 2 * (degree + 1)

    knots = [start] * (degree + 1)
    if n_internal > 0:
        interval = (end - start) / (n_internal + 1)
        for i in range(1, n_internal + 1):
            knots.append(start + interval * i)
    knots.extend([end] * (degree + 1))

    return as_knot_array(knots)


def create_clamped_knot_vector(degree: int, n_control_points: int) -> np.ndarray:
    """Clamped uniform knot vector on [0, 1]."""
    return create_uniform_knot_vector(degree, n_control_points, 0.0, 1.0)


def create_open_knot_vector(degree: int, n_control_points: int) -> np.ndarray:
    """
    Create a fully open (unclamped) knot vector on [0, 1].

    All n_control_points + degree + 1 knots are evenly spaced, with no
    repeated end knots. The usable parametric domain is therefore
    [knots[degree], knots[-degree-1]], strictly inside [0, 1].
    """
    total_knots = n_control_points + degree + 1
    divisor = max(total_knots - 1, 1)
    return as_knot_array([i / divisor for i in range(total_knots)])


def parameter_domain(knots: Sequence, degree: int) -> Tuple:
    """
    Parametric domain (knots[p], knots[len - p - 1]).

    Evaluation outside this interval is a caller error.
    """
    return (knots[degree], knots[len(knots) - degree - 1])


def find_span(t, knots: Sequence, degree: int) -> int:
    """
    Find the knot span index containing parameter value t.

    For t in [knots[i], knots[i+1]), returns i. Parameters at or beyond the
    domain ends are clamped to the first/last span, so the last span is
    treated as closed: [knots[n-1], knots[n]].

    Parameters:
        t: Parameter value
        knots: Knot values
        degree: Polynomial degree p

    Returns:
        Span index in [p, n-1] where n = len(knots) - p - 1
    """
    n = len(knots) - degree - 1

    # Handle boundary cases
    if t >= knots[n]:
        return n - 1
    if t <= knots[degree]:
        return degree

    # Binary search: t < knots[mid] moves high, otherwise low moves past mid
    low = degree
    high = n
    while low < high:
        mid = (low + high) // 2
        if t < knots[mid]:
            high = mid
        else:
            low = mid + 1

    return low - 1


def knot_multiplicity(knots: Sequence, value, tol: float = Tolerances.KNOT_EQUALITY) -> int:
    """
    Number of knots equal to value within tol.

    Parameters:
        knots: Knot values
        value: Knot value to count
        tol: Tolerance for equality

    Returns:
        Multiplicity of value (0 if absent)
    """
    return int(sum(1 for knot in knots if abs(knot - value) < tol))


def greville_abscissae(knots: Sequence, degree: int) -> np.ndarray:
    """
    Greville abscissae (nodal parameters of the basis functions).

    The i-th abscissa is the average of the p knots following knot i:
    g_i = (xi_{i+1} + ... + xi_{i+p}) / p. For p = 0 the knot span
    midpoints are used instead.
    """
    knots = as_knot_array(knots)
    p = degree
    n = len(knots) - p - 1
    greville = np.zeros(n, dtype=knots.dtype)

    for i in range(n):
        if p == 0:
            greville[i] = (knots[i] + knots[i + 1]) / 2
        else:
            greville[i] = sum(knots[i + 1:i + p + 1]) / p

    return greville


def knot_insertion_matrix(knots: Sequence, degree: int, xi) -> Tuple[np.ndarray, np.ndarray]:
    """
    Boehm knot insertion operator for a single knot.

    When a knot is inserted, (homogeneous) control points are updated by a
    linear transformation P_new = A @ P_old.

    Parameters:
        knots: Original knot values
        degree: Polynomial degree p
        xi: Knot value to insert

    Returns:
        Tuple of (new_knots, A) where A has shape (n_old + 1, n_old)
    """
    knots = as_knot_array(knots)
    p = degree
    n_old = len(knots) - p - 1
    dtype = scalar_dtype(knots, xi)

    # Find span containing xi
    k = find_span(xi, knots, p)

    # New knot vector
    new_knots = np.empty(len(knots) + 1, dtype=dtype)
    new_knots[:k + 1] = knots[:k + 1]
    new_knots[k + 1] = xi
    new_knots[k + 2:] = knots[k + 1:]

    n_new = n_old + 1
    A = np.zeros((n_new, n_old), dtype=dtype)

    for i in range(n_new):
        if i <= k - p:
            # Control points before affected region
            A[i, i] = 1
        elif i >= k + 1:
            # Control points after affected region
            A[i, i - 1] = 1
        else:
            # alpha_i = (xi - knots[i]) / (knots[i+p] - knots[i])
            denom = knots[i + p] - knots[i]
            alpha = (xi - knots[i]) / denom if denom != 0 else 0
            A[i, i - 1] = 1 - alpha
            A[i, i] = alpha

    return new_knots, A


@dataclass
class KnotVector(KnotVectorLike):
    """
    Represents a univariate knot vector bound to a degree.

    Construction only performs sanity checks (enough knots for the degree,
    non-decreasing order) so that unclamped vectors can be represented;
    call validate() for the full clamped-vector check used by curves and
    surfaces.

    Attributes:
        knots: The knot values (non-decreasing sequence)
        degree: Polynomial degree p

    Properties computed:
        n_basis: Number of basis functions
        unique_knots: Distinct knot values (breakpoints)
    """
    knots: np.ndarray
    degree: int

    def __post_init__(self):
        self.knots = as_knot_array(self.knots)
        self._check()
        self._unique_knots = as_knot_array(
            [knot for i, knot in enumerate(self.knots) if i == 0 or knot != self.knots[i - 1]]
        )

    def _check(self):
        if self.degree < 0:
            raise NurbsError.invalid_degree(f"degree must be non-negative, got {self.degree}")
        if len(self.knots) < 2 * (self.degree + 1):
            raise NurbsError.invalid_knot_vector(
                f"too short for degree {self.degree}: "
                f"need at least {2 * (self.degree + 1)} knots, got {len(self.knots)}"
            )
        for i in range(1, len(self.knots)):
            if self.knots[i] < self.knots[i - 1]:
                raise NurbsError.invalid_knot_vector(
                    f"not non-decreasing: knots[{i}]={self.knots[i]} < "
                    f"knots[{i - 1}]={self.knots[i - 1]}"
                )

    def __len__(self) -> int:
        return len(self.knots)

    def knot_at(self, index: int):
        return self.knots[index]

    @property
    def n_basis(self) -> int:
        """Number of basis functions."""
        return len(self.knots) - self.degree - 1

    @property
    def unique_knots(self) -> np.ndarray:
        """Unique knot values (breakpoints)."""
        return self._unique_knots.copy()

    def parameter_domain(self, degree: int = None) -> Tuple:
        return parameter_domain(self.knots, self.degree if degree is None else degree)

    def validate(self, degree: int = None, control_point_count: int = None) -> None:
        """
        Run the full knot vector validation.

        Parameters:
            degree: Degree to validate against (defaults to own degree)
            control_point_count: Expected number of control points
                                 (defaults to n_basis for that degree)

        Raises:
            NurbsError: on length mismatch, non-monotonic order or
                        insufficient end multiplicity
        """
        if degree is None:
            degree = self.degree
        if control_point_count is None:
            control_point_count = len(self.knots) - degree - 1
        validate_knot_vector(self.knots, degree, control_point_count)

    def find_span(self, xi, degree: int = None) -> int:
        """
        Find the knot span index containing parameter value xi.

        Parameters:
            xi: Parameter value
            degree: Degree override (defaults to own degree)

        Returns:
            Span index i such that xi in [xi_i, xi_{i+1})
        """
        return find_span(xi, self.knots, self.degree if degree is None else degree)

    def multiplicity(self, xi, tol: float = Tolerances.KNOT_EQUALITY) -> int:
        """Number of times xi appears in the knot vector."""
        return knot_multiplicity(self.knots, xi, tol)

    def greville_abscissae(self) -> np.ndarray:
        """Greville abscissae of the basis functions."""
        return greville_abscissae(self.knots, self.degree)


def make_open_knot_vector(n_basis: int, degree: int,
                          domain: Tuple[float, float] = (0.0, 1.0)) -> KnotVector:
    """
    Create a clamped uniform knot vector object.

    The first and last knot are repeated p+1 times, so the basis
    interpolates the first and last control points.

    Parameters:
        n_basis: Number of basis functions desired
        degree: Polynomial degree p
        domain: Parametric domain (start, end)

    Returns:
        KnotVector with uniform internal knots

    Raises:
        NurbsError: if n_basis < degree + 1
    """
    if n_basis < degree + 1:
        raise NurbsError.insufficient_control_points(n_basis, degree)

    a, b = domain
    return KnotVector(create_uniform_knot_vector(degree, n_basis, a, b), degree)

