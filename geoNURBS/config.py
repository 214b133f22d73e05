"""
Central tolerance and default configuration.

The basis engine itself compares denominators against exact zero; the
values below are used by the knot vector and concrete curve/surface layer
(knot multiplicity, closedness checks, degenerate normals, arc-length
integration, default sampling densities).

Usage:
    from geoNURBS.config import Tolerances

    tol = Tolerances.CLOSED_GEOMETRY
"""


class Tolerances:
    """
    Tolerance constants and sampling defaults.

    Categories:
    - KNOT_*: knot value comparisons
    - CLOSED_* / DEGENERATE_*: geometric predicates
    - ARC_LENGTH: arc-length accuracy
    - DEFAULT_*: sampling densities for approximations
    """

    # =========================================================================
    # Knot vectors
    # =========================================================================

    # Two knots closer than this count as the same breakpoint for multiplicity
    KNOT_EQUALITY = 1e-14

    # =========================================================================
    # Geometric predicates
    # =========================================================================

    # Max distance between end control points of a closed curve/surface
    CLOSED_GEOMETRY = 1e-9

    # Cross products shorter than this give no usable normal
    DEGENERATE_NORMAL = 1e-12

    # Absolute accuracy for arc length integration and inversion
    ARC_LENGTH = 1e-10

    # =========================================================================
    # Sampling defaults
    # =========================================================================

    DEFAULT_LENGTH_SUBDIVISIONS = 100
    DEFAULT_AREA_SUBDIVISIONS = 50
