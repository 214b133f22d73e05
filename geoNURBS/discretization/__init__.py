"""
Discretization module.

Provides:
- KnotVector: Knot vector representation bound to a degree
- Knot vector generation, validation and span search
- Knot insertion operators
"""

from .knot_vector import (
    KnotVector,
    make_open_knot_vector,
    validate_knot_vector,
    create_uniform_knot_vector,
    create_clamped_knot_vector,
    create_open_knot_vector,
    parameter_domain,
    find_span,
)
