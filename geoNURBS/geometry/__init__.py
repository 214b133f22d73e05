"""
Geometry module: basis functions, NURBS curves and surfaces.
"""

from .basis import BSplineBasis
from .curve import NURBSCurve
from .surface import NURBSSurface
from .weights import WeightStorage
from .primitives import (
    make_bezier_curve,
    make_nurbs_unit_square,
    make_nurbs_rectangle,
    make_nurbs_circle,
    make_nurbs_arc,
    make_nurbs_cylinder,
)
from .transforms import (
    rotation_matrix_2d,
    rotation_matrix_3d,
    scale_matrix,
    translation_matrix,
    composite_transform,
)
