"""
Structural operations on NURBS control nets.

All operations act on homogeneous control points Pw = (w*P, w) along the
first array axis, so the same code serves curves (shape (n, d+1)) and one
direction of a surface net (shape (n_u, n_v, d+1)). Working in homogeneous
space makes every operation exact for rational geometry: the projective
curve is a polynomial B-spline and only its coefficients change.

Operations:
- knot insertion (Boehm), repeated for multiplicity
- degree elevation by collocation at Greville abscissae
- splitting by inserting a knot to full multiplicity
- parameter reversal

Inputs are assumed valid (clamped knot vector, parameter inside the
domain); the curve/surface classes check requests before calling in.
"""

import numpy as np
from scipy import linalg
from typing import Tuple

from ..discretization.knot_vector import (
    as_knot_array, find_span, greville_abscissae, knot_insertion_matrix,
    knot_multiplicity
)
from ..config import Tolerances
from ..errors import NurbsError
from .basis import basis_functions


def to_homogeneous(control_points: np.ndarray, weights: np.ndarray) -> np.ndarray:
    """
    Map control points and weights to homogeneous coordinates.

    Parameters:
        control_points: Array of shape (..., d)
        weights: Array of shape (...)

    Returns:
        Array of shape (..., d+1) holding (w*P, w)
    """
    control_points = np.asarray(control_points, dtype=np.float64)
    weights = np.asarray(weights, dtype=np.float64)
    Pw = np.empty(control_points.shape[:-1] + (control_points.shape[-1] + 1,))
    Pw[..., :-1] = control_points * weights[..., None]
    Pw[..., -1] = weights
    return Pw


def from_homogeneous(Pw: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Inverse of to_homogeneous: (control_points, weights)."""
    weights = Pw[..., -1].copy()
    control_points = Pw[..., :-1] / weights[..., None]
    return control_points, weights


def insert_knot(knots: np.ndarray, degree: int, Pw: np.ndarray,
                xi, times: int = 1) -> Tuple[np.ndarray, np.ndarray]:
    """
    Insert xi into the knot vector `times` times.

    Parameters:
        knots: Knot values
        degree: Polynomial degree p
        Pw: Homogeneous control points, first axis indexes basis functions
        xi: Knot value to insert
        times: Number of insertions

    Returns:
        (new_knots, new_Pw) with len(new_knots) == len(knots) + times
    """
    knots = as_knot_array(knots)
    for _ in range(times):
        knots, A = knot_insertion_matrix(knots, degree, xi)
        Pw = np.tensordot(A.astype(np.float64), Pw, axes=(1, 0))
    return knots, Pw


def split(knots: np.ndarray, degree: int, Pw: np.ndarray,
          xi) -> Tuple[Tuple[np.ndarray, np.ndarray], Tuple[np.ndarray, np.ndarray]]:
    """
    Split at an interior parameter xi.

    xi is inserted until its multiplicity is p+1; the left piece keeps the
    knots up to and including those p+1 copies, the right piece starts
    with them.

    Returns:
        ((left_knots, left_Pw), (right_knots, right_Pw))
    """
    p = degree
    knots = as_knot_array(knots)
    s = knot_multiplicity(knots, xi)
    if p + 1 - s > 0:
        knots, Pw = insert_knot(knots, p, Pw, xi, p + 1 - s)

    a = next(i for i, knot in enumerate(knots)
             if knot == xi or abs(knot - xi) < Tolerances.KNOT_EQUALITY)

    left_knots = knots[:a + p + 1].copy()
    left_knots[-(p + 1):] = xi
    right_knots = knots[a:].copy()
    right_knots[:p + 1] = xi

    return (left_knots, Pw[:a].copy()), (right_knots, Pw[a:].copy())


def reverse(knots: np.ndarray, Pw: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Reverse the parameter direction.

    New knots are knots[0] + knots[-1] - knots[::-1], so the domain of a
    clamped vector is unchanged; control points are reversed.
    """
    knots = as_knot_array(knots)
    new_knots = knots[0] + knots[-1] - knots[::-1]
    return new_knots, Pw[::-1].copy()


def elevated_knot_vector(knots: np.ndarray, increment: int) -> np.ndarray:
    """Raise the multiplicity of every distinct knot value by increment."""
    knots = as_knot_array(knots)
    new_knots = []
    for i, knot in enumerate(knots):
        new_knots.append(knot)
        if i == len(knots) - 1 or knots[i + 1] != knot:
            new_knots.extend([knot] * increment)
    return as_knot_array(new_knots)


def _collocation_span(j: int, site, knots: np.ndarray, degree: int) -> int:
    """
    Non-empty knot span used to evaluate basis function j at its site.

    The span must lie in the support of N_j and in the domain. When the
    site sits on a breakpoint the span to its right is preferred, the span
    to its left is used when N_j does not reach past the breakpoint.
    """
    n = len(knots) - degree - 1
    chosen = None
    for s in range(max(j, degree), min(j + degree, n - 1) + 1):
        if knots[s] < knots[s + 1] and knots[s] <= site <= knots[s + 1]:
            chosen = s
            if site < knots[s + 1]:
                break
    if chosen is None:
        raise NurbsError.degenerate_geometry(
            f"no knot span supports basis function {j} at {site}"
        )
    return chosen


def elevate_degree(knots: np.ndarray, degree: int, Pw: np.ndarray,
                   target_degree: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Raise the degree to target_degree without changing the shape.

    The elevated spline lives on the knot vector whose distinct values each
    gain target_degree - degree copies. Its coefficients are found by
    interpolating the original (homogeneous) curve at the Greville
    abscissae of the new basis; since the original curve lies in the new
    spline space the interpolant reproduces it exactly.

    Parameters:
        knots: Knot values
        degree: Current degree p
        Pw: Homogeneous control points, first axis indexes basis functions
        target_degree: New degree (> p)

    Returns:
        (new_knots, new_Pw)
    """
    knots = as_knot_array(knots).astype(np.float64)
    new_degree = target_degree
    new_knots = elevated_knot_vector(knots, target_degree - degree)
    n_new = len(new_knots) - new_degree - 1

    sites = greville_abscissae(new_knots, new_degree)
    tail_shape = Pw.shape[1:]
    flat_Pw = Pw.reshape(Pw.shape[0], -1)

    B = np.zeros((n_new, n_new))
    rhs = np.zeros((n_new, flat_Pw.shape[1]))

    for j, site in enumerate(sites):
        s = _collocation_span(j, site, new_knots, new_degree)
        B[j, s - new_degree:s + 1] = basis_functions(s, new_degree, site, new_knots)

        # Same polynomial piece of the original curve
        mid = 0.5 * (new_knots[s] + new_knots[s + 1])
        s_old = find_span(mid, knots, degree)
        N_old = basis_functions(s_old, degree, site, knots)
        rhs[j] = N_old @ flat_Pw[s_old - degree:s_old + 1]

    new_Pw = linalg.solve(B, rhs)
    return new_knots, new_Pw.reshape((n_new,) + tail_shape)
