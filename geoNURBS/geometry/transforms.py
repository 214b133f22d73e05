"""
Homogeneous transformation matrices for NURBS control nets.

Matrices are (d+1) x (d+1) and act on column vectors (x, 1). They are
applied to the homogeneous control points (w*P, w), so an affine matrix
maps every control point and leaves the weights untouched; the transformed
geometry is exactly the transformed point set because NURBS are invariant
under affine maps. A projective last row rescales the weights as well.

Builders:
- rotation_matrix_2d(angle, center): 3x3 rotation about a point
- rotation_matrix_3d(axis, angle, center): 4x4 rotation about an axis
- scale_matrix(factors, dimension): per-axis or uniform scaling
- translation_matrix(offset)
- composite_transform(translation, rotation, scale): scale, then rotate,
  then translate
"""

import numpy as np
from typing import Optional, Sequence

from ..errors import NurbsError


def _about_center(matrix: np.ndarray, center: Optional[Sequence]) -> np.ndarray:
    """Conjugate matrix by a translation so that it acts about center."""
    if center is None:
        return matrix
    center = np.asarray(center, dtype=np.float64)
    return translation_matrix(center) @ matrix @ translation_matrix(-center)


def rotation_matrix_2d(angle: float, center: Optional[Sequence] = None) -> np.ndarray:
    """
    Counterclockwise rotation in the plane.

    Parameters:
        angle: Rotation angle in radians
        center: Optional (x, y) fixed point (defaults to the origin)

    Returns:
        3x3 homogeneous matrix
    """
    c, s = np.cos(angle), np.sin(angle)
    matrix = np.array([
        [c, -s, 0.0],
        [s, c, 0.0],
        [0.0, 0.0, 1.0],
    ])
    return _about_center(matrix, center)


def rotation_matrix_3d(axis: Sequence, angle: float,
                       center: Optional[Sequence] = None) -> np.ndarray:
    """
    Right-handed rotation about an axis (Rodrigues' formula).

    Parameters:
        axis: Axis direction (x, y, z), normalized internally
        angle: Rotation angle in radians
        center: Optional point on the axis (defaults to the origin)

    Returns:
        4x4 homogeneous matrix

    Raises:
        NurbsError: for a zero-length axis
    """
    axis = np.asarray(axis, dtype=np.float64)
    length = float(np.linalg.norm(axis))
    if axis.shape != (3,) or length == 0:
        raise NurbsError.degenerate_geometry(f"rotation axis {axis} has no direction")
    x, y, z = axis / length

    K = np.array([
        [0.0, -z, y],
        [z, 0.0, -x],
        [-y, x, 0.0],
    ])
    R = np.eye(3) + np.sin(angle) * K + (1.0 - np.cos(angle)) * (K @ K)

    matrix = np.eye(4)
    matrix[:3, :3] = R
    return _about_center(matrix, center)


def scale_matrix(factors, dimension: int = 3) -> np.ndarray:
    """
    Scaling about the origin.

    Parameters:
        factors: A scalar for uniform scaling, or one factor per axis
                 (its length then sets the dimension)
        dimension: Physical dimension for a scalar factor

    Returns:
        (d+1)x(d+1) homogeneous matrix

    Raises:
        NurbsError: if any factor is zero
    """
    factors = np.asarray(factors, dtype=np.float64)
    if factors.ndim == 0:
        factors = np.full(dimension, float(factors))
    if np.any(factors == 0):
        raise NurbsError.degenerate_geometry(f"scale factors {factors} collapse an axis")

    matrix = np.eye(len(factors) + 1)
    matrix[:-1, :-1] = np.diag(factors)
    return matrix


def translation_matrix(offset: Sequence) -> np.ndarray:
    """(d+1)x(d+1) homogeneous translation by offset."""
    offset = np.asarray(offset, dtype=np.float64).reshape(-1)
    matrix = np.eye(len(offset) + 1)
    matrix[:-1, -1] = offset
    return matrix


def composite_transform(translation: Optional[Sequence] = None,
                        rotation=None,
                        scale=None,
                        dimension: int = 3) -> np.ndarray:
    """
    Compose scaling, rotation and translation, applied in that order.

    Parameters:
        translation: Offset vector, or None
        rotation: Angle in radians for dimension 2, (axis, angle) for
                  dimension 3, or None
        scale: Scalar or per-axis factors, or None
        dimension: Physical dimension (2 or 3)

    Returns:
        (d+1)x(d+1) homogeneous matrix M = T @ R @ S
    """
    if dimension not in (2, 3):
        raise NurbsError.degenerate_geometry(
            f"composite transforms are defined in 2D and 3D, got dimension {dimension}"
        )

    result = np.eye(dimension + 1)
    if scale is not None:
        result = _checked(scale_matrix(scale, dimension), dimension) @ result
    if rotation is not None:
        if dimension == 2:
            R = rotation_matrix_2d(rotation)
        else:
            axis, angle = rotation
            R = rotation_matrix_3d(axis, angle)
        result = R @ result
    if translation is not None:
        result = _checked(translation_matrix(translation), dimension) @ result
    return result


def _checked(matrix: np.ndarray, dimension: int) -> np.ndarray:
    if matrix.shape != (dimension + 1, dimension + 1):
        raise NurbsError.degenerate_geometry(
            f"transform of shape {matrix.shape} does not act on {dimension}D points"
        )
    return matrix


def transform_homogeneous(Pw: np.ndarray, matrix) -> np.ndarray:
    """
    Apply a homogeneous matrix to homogeneous control points.

    Parameters:
        Pw: Array of shape (..., d+1) holding (w*P, w)
        matrix: (d+1)x(d+1) transformation

    Returns:
        Transformed array of the same shape

    Raises:
        NurbsError: for a matrix of the wrong size, or a projective matrix
                    that leaves a weight non-positive
    """
    matrix = _checked(np.asarray(matrix, dtype=np.float64), Pw.shape[-1] - 1)
    result = Pw @ matrix.T
    if np.any(result[..., -1] <= 0):
        raise NurbsError.degenerate_geometry("transform sends a control point to a non-positive weight")
    return result
