"""
Primitive geometry factory functions.

This module provides factory functions for common NURBS geometries:
- Bezier curves (single span)
- Circles and circular arcs (exact, rational quadratic)
- Plane patches: unit square and rectangles
- Cylinder patches (arc swept along the axis)

These are the building blocks for tests and for more complex geometries.
"""

import numpy as np
from typing import Optional, Sequence, Tuple

from ..discretization.knot_vector import (
    KnotVector, create_clamped_knot_vector, make_open_knot_vector
)
from ..errors import NurbsError
from .curve import NURBSCurve
from .surface import NURBSSurface


def make_bezier_curve(control_points: Sequence,
                      weights: Optional[Sequence] = None) -> NURBSCurve:
    """
    Create a single-span Bezier curve of degree n - 1 on [0, 1].

    Parameters:
        control_points: (n, d) control points
        weights: Optional (n,) weights for a rational Bezier curve
    """
    control_points = np.atleast_2d(np.asarray(control_points, dtype=np.float64))
    degree = control_points.shape[0] - 1
    if degree < 0:
        raise NurbsError.insufficient_control_points(0, 0)
    kv = KnotVector(create_clamped_knot_vector(degree, degree + 1), degree)
    return NURBSCurve(kv, control_points, weights)


def make_nurbs_unit_square(p: int = 2, n_elem_u: int = 4, n_elem_v: int = 4,
                           physical_dim: int = 3) -> NURBSSurface:
    """
    Create a NURBS surface representing the unit square [0,1]².

    Control points sit at the Greville abscissae, so the mapping is the
    identity: parametric coordinates equal physical coordinates.

    Parameters:
        p: Polynomial degree in both directions
        n_elem_u: Number of knot spans in u direction
        n_elem_v: Number of knot spans in v direction
        physical_dim: 2 for a planar domain, 3 for the z=0 plane in 3D

    Returns:
        NURBSSurface representing the unit square
    """
    n_basis_u = n_elem_u + p
    n_basis_v = n_elem_v + p

    kv_u = make_open_knot_vector(n_basis_u, p, domain=(0.0, 1.0))
    kv_v = make_open_knot_vector(n_basis_v, p, domain=(0.0, 1.0))

    greville_u = kv_u.greville_abscissae()
    greville_v = kv_v.greville_abscissae()

    control_points = np.zeros((n_basis_u, n_basis_v, physical_dim))
    for i in range(n_basis_u):
        for j in range(n_basis_v):
            control_points[i, j, 0] = greville_u[i]
            control_points[i, j, 1] = greville_v[j]

    return NURBSSurface(kv_u, kv_v, control_points)


def make_nurbs_rectangle(x_range: Tuple[float, float] = (0.0, 1.0),
                         y_range: Tuple[float, float] = (0.0, 1.0),
                         p: int = 2,
                         n_elem_u: int = 4,
                         n_elem_v: int = 4,
                         z: float = 0.0) -> NURBSSurface:
    """
    Create a planar NURBS patch covering a rectangle at height z.

    Parameters:
        x_range: (x_min, x_max)
        y_range: (y_min, y_max)
        p: Polynomial degree
        n_elem_u: Number of knot spans in u direction
        n_elem_v: Number of knot spans in v direction
        z: Height of the plane

    Returns:
        NURBSSurface representing the rectangle
    """
    surface = make_nurbs_unit_square(p, n_elem_u, n_elem_v, physical_dim=3)

    x_min, x_max = x_range
    y_min, y_max = y_range

    control_points = surface.control_points_grid
    control_points[..., 0] = x_min + (x_max - x_min) * control_points[..., 0]
    control_points[..., 1] = y_min + (y_max - y_min) * control_points[..., 1]
    control_points[..., 2] = z

    kv_u, kv_v = surface.knot_vectors
    return NURBSSurface(kv_u, kv_v, control_points)


def make_nurbs_circle(radius: float = 1.0,
                      center: Tuple[float, float] = (0.0, 0.0)) -> NURBSCurve:
    """
    Create a NURBS curve representing a full circle.

    Uses the standard 9-control-point representation with degree 2.
    The circle is parameterized from 0 to 1, going counterclockwise
    starting from the positive x-axis.

    Parameters:
        radius: Circle radius
        center: Center coordinates (x, y)

    Returns:
        NURBSCurve representing the circle
    """
    p = 2
    knots = np.array([0, 0, 0, 0.25, 0.25, 0.5, 0.5, 0.75, 0.75, 1, 1, 1])
    kv = KnotVector(knots, p)

    # Corners of the circumscribed square carry weight cos(45°)
    w = 1.0 / np.sqrt(2.0)
    weights = np.array([1, w, 1, w, 1, w, 1, w, 1])

    angles = np.arange(9) * np.pi / 4
    distances = np.where(np.arange(9) % 2 == 1, radius * np.sqrt(2.0), radius)

    control_points = np.zeros((9, 2))
    control_points[:, 0] = center[0] + distances * np.cos(angles)
    control_points[:, 1] = center[1] + distances * np.sin(angles)

    return NURBSCurve(kv, control_points, weights)


def make_nurbs_arc(radius: float = 1.0,
                   center: Tuple[float, float] = (0.0, 0.0),
                   start_angle: float = 0.0,
                   end_angle: float = np.pi / 2) -> NURBSCurve:
    """
    Create a NURBS curve representing a circular arc.

    The sweep is divided into pieces of at most 90 degrees; each piece is
    a rational quadratic with middle weight cos(sweep/2), joined at double
    knots. The parameter domain is [0, 1].

    Parameters:
        radius: Arc radius
        center: Center coordinates (x, y)
        start_angle: Starting angle in radians
        end_angle: Ending angle in radians (|sweep| <= 2*pi)

    Returns:
        NURBSCurve representing the arc

    Raises:
        NurbsError: for a zero sweep or a sweep beyond a full turn
    """
    sweep = end_angle - start_angle
    if abs(sweep) < 1e-12 or abs(sweep) > 2 * np.pi + 1e-10:
        raise NurbsError.degenerate_geometry(f"arc sweep {sweep} must be in (0, 2*pi]")

    n_pieces = max(1, int(np.ceil(abs(sweep) / (np.pi / 2) - 1e-10)))
    piece = sweep / n_pieces
    w_mid = np.cos(piece / 2)
    d_mid = radius / np.cos(piece / 2)

    n_basis = 2 * n_pieces + 1
    control_points = np.zeros((n_basis, 2))
    weights = np.ones(n_basis)

    for k in range(n_pieces + 1):
        angle = start_angle + k * piece
        control_points[2 * k] = (center[0] + radius * np.cos(angle),
                                 center[1] + radius * np.sin(angle))
    for k in range(n_pieces):
        # Middle control point: intersection of the end tangents
        angle = start_angle + (k + 0.5) * piece
        control_points[2 * k + 1] = (center[0] + d_mid * np.cos(angle),
                                     center[1] + d_mid * np.sin(angle))
        weights[2 * k + 1] = w_mid

    knots = [0.0] * 3
    for k in range(1, n_pieces):
        knots += [k / n_pieces] * 2
    knots += [1.0] * 3

    return NURBSCurve(KnotVector(np.array(knots), 2), control_points, weights)


def make_nurbs_cylinder(radius: float = 1.0,
                        height: float = 1.0,
                        center: Tuple[float, float, float] = (0.0, 0.0, 0.0),
                        start_angle: float = 0.0,
                        end_angle: float = 2 * np.pi) -> NURBSSurface:
    """
    Create a cylindrical patch around the z axis through center.

    u runs along the arc (rational quadratic), v along the axis (linear).

    Parameters:
        radius: Cylinder radius
        height: Extent along +z from center
        center: Center of the base circle
        start_angle, end_angle: Angular extent in radians

    Returns:
        NURBSSurface with grid (2 * pieces + 1, 2)
    """
    arc = make_nurbs_arc(radius, center[:2], start_angle, end_angle)
    arc_points = arc.control_points
    n_u = arc.control_point_count

    control_points = np.zeros((n_u, 2, 3))
    control_points[:, :, :2] = arc_points[:, None, :]
    control_points[:, 0, 2] = center[2]
    control_points[:, 1, 2] = center[2] + height

    weights = np.repeat(arc.weights[:, None], 2, axis=1)
    kv_v = KnotVector(np.array([0.0, 0.0, 1.0, 1.0]), 1)

    return NURBSSurface(arc.knot_vector, kv_v, control_points, weights)
