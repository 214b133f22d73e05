"""
Error type for NURBS construction and structural edits.

Every failure category has a named constructor so that messages stay
consistent across knot vectors, curves and surfaces:

    raise NurbsError.invalid_knot_vector("knot vector is not non-decreasing")

NurbsError derives from ValueError: malformed geometry is a bad value,
and callers that already guard with ``except ValueError`` keep working.

Purely numerical degeneracies (zero denominators in the basis recurrences,
zero weight sums) are never reported through this type; they are absorbed
as zero contributions by the basis engine.
"""

from typing import Optional


class NurbsError(ValueError):
    """
    Raised when a knot vector, curve or surface cannot be built or edited.

    Attributes:
        category: Name of the failure category (matches the constructor used)
        message: Human-readable description
    """

    def __init__(self, message: str, category: str = "nurbs"):
        super().__init__(message)
        self.message = message
        self.category = category

    def __repr__(self) -> str:
        return f"NurbsError(category={self.category!r}, message={self.message!r})"

    @classmethod
    def invalid_knot_vector(cls, message: str) -> "NurbsError":
        return cls(f"Invalid knot vector: {message}", "invalid_knot_vector")

    @classmethod
    def invalid_degree(cls, message: str) -> "NurbsError":
        return cls(f"Invalid degree: {message}", "invalid_degree")

    @classmethod
    def index_out_of_range(cls, index: int, size: int) -> "NurbsError":
        return cls(
            f"Index {index} out of range for {size} control points",
            "index_out_of_range",
        )

    @classmethod
    def parameter_out_of_range(cls, parameter, domain) -> "NurbsError":
        return cls(
            f"Parameter {parameter} outside domain [{domain[0]}, {domain[1]}]",
            "parameter_out_of_range",
        )

    @classmethod
    def insufficient_control_points(cls, actual: int, degree: int) -> "NurbsError":
        return cls(
            f"{actual} control points given, degree {degree} needs at least {degree + 1}",
            "insufficient_control_points",
        )

    @classmethod
    def weight_count_mismatch(cls, actual: int, expected: int) -> "NurbsError":
        return cls(
            f"Weights array length ({actual}) must match number of control points ({expected})",
            "weight_count_mismatch",
        )

    @classmethod
    def invalid_weight(cls, weight, index: Optional[int] = None) -> "NurbsError":
        where = "" if index is None else f" at index {index}"
        return cls(f"Weight {weight}{where} must be positive", "invalid_weight")

    @classmethod
    def degenerate_geometry(cls, reason: str) -> "NurbsError":
        return cls(f"Degenerate geometry: {reason}", "degenerate_geometry")
