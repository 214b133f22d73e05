"""
geoNURBS - B-spline/NURBS evaluation engine

The numerical core of a CAD geometry kernel: basis functions, their
derivatives and rational (weighted) basis functions computed from a knot
vector, abstract curve/surface contracts, and concrete NURBS curves and
surfaces with exact structural edits.

Key modules:
- discretization: Knot vectors (validation, generation, span search)
- geometry: Basis functions, NURBS curves/surfaces, primitives, transforms
- contracts: Abstract interfaces for curves, surfaces and weights
- errors / config: NurbsError and tolerance constants

Quick start:
    import numpy as np
    from geoNURBS import KnotVector, NURBSCurve, make_nurbs_circle

    kv = KnotVector(np.array([0, 0, 0, 1, 1, 1]), 2)
    curve = NURBSCurve(kv, [[0, 0], [1, 2], [2, 0]])
    curve.evaluate_at(0.5)               # -> array([1., 1.])

    circle = make_nurbs_circle(radius=2.0)
    left, right = circle.split_at(0.5)   # two half circles
    cubic = circle.elevate_degree(3)     # same shape, degree 3
"""

__version__ = "0.1.0"

# Core imports for convenience
from .errors import NurbsError
from .config import Tolerances
from .discretization.knot_vector import (
    KnotVector, make_open_knot_vector, validate_knot_vector,
    create_uniform_knot_vector, create_clamped_knot_vector, create_open_knot_vector,
    parameter_domain, find_span
)
from .geometry.basis import (
    basis_function, basis_functions, basis_derivatives,
    rational_basis_functions, rational_basis_derivatives
)
from .geometry.curve import NURBSCurve
from .geometry.surface import NURBSSurface
from .geometry.primitives import (
    make_bezier_curve, make_nurbs_circle, make_nurbs_arc,
    make_nurbs_unit_square, make_nurbs_rectangle, make_nurbs_cylinder
)
from .geometry.transforms import (
    rotation_matrix_2d, rotation_matrix_3d, scale_matrix,
    translation_matrix, composite_transform
)
