"""
Weight storage for NURBS control points.

A geometry is either polynomial (all weights 1, nothing stored) or
rational (one weight per control point). WeightStorage keeps that
distinction explicit so is_rational() does not depend on inspecting
weight values.
"""

import numpy as np
from typing import Optional, Sequence, Tuple

from ..errors import NurbsError


class WeightStorage:
    """
    Uniform or individual per-control-point weights.

    Attributes:
        count: Number of control points covered
        values: Individual weights, or None for uniform storage
    """

    def __init__(self, count: int, values: Optional[np.ndarray] = None):
        self.count = count
        self.values = values

    @classmethod
    def uniform(cls, count: int) -> "WeightStorage":
        return cls(count)

    @classmethod
    def individual(cls, weights: Sequence, count: Optional[int] = None) -> "WeightStorage":
        """
        Rational storage, validating length and positivity.

        Parameters:
            weights: One weight per control point (any shape, flattened)
            count: Expected number of weights (defaults to len(weights))

        Raises:
            NurbsError: on length mismatch or a non-positive weight
        """
        values = np.asarray(weights, dtype=np.float64).reshape(-1)
        if count is None:
            count = len(values)
        if len(values) != count:
            raise NurbsError.weight_count_mismatch(len(values), count)
        for i, w in enumerate(values):
            if not w > 0:
                raise NurbsError.invalid_weight(w, i)
        return cls(count, values)

    @classmethod
    def from_optional(cls, weights: Optional[Sequence], count: int) -> "WeightStorage":
        """Uniform storage for None, individual storage otherwise."""
        if weights is None:
            return cls.uniform(count)
        return cls.individual(weights, count)

    @property
    def is_uniform(self) -> bool:
        return self.values is None

    def weight_at(self, index: int) -> float:
        if index < 0 or index >= self.count:
            raise NurbsError.index_out_of_range(index, self.count)
        if self.values is None:
            return 1.0
        return float(self.values[index])

    def as_array(self) -> np.ndarray:
        """All weights as a float array (ones for uniform storage)."""
        if self.values is None:
            return np.ones(self.count)
        return self.values.copy()

    def statistics(self) -> Tuple[float, float, float]:
        """(min, max, mean) weight."""
        w = self.as_array()
        return (float(np.min(w)), float(np.max(w)), float(np.mean(w)))
