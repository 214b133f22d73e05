"""
Pytest configuration and shared fixtures for geoNURBS tests.
"""

import pytest
import numpy as np
import sys
from pathlib import Path
from loguru import logger

# Add the parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from geoNURBS.discretization.knot_vector import KnotVector, make_open_knot_vector
from geoNURBS.geometry.curve import NURBSCurve


@pytest.fixture
def tolerance():
    """Default tolerance for floating point comparisons."""
    return 1e-12


@pytest.fixture
def loose_tolerance():
    """Looser tolerance for iterative/numerical integration results."""
    return 1e-8


@pytest.fixture
def knot_vectors():
    """A handful of clamped knot vectors with their degrees."""
    return [
        (np.array([0.0, 1.0]), 0),
        (np.array([0.0, 0.0, 1.0, 1.0]), 1),
        (np.array([0.0, 0.0, 0.0, 1.0, 1.0, 1.0]), 2),
        (np.array([0.0, 0.0, 0.0, 0.5, 1.0, 1.0, 1.0]), 2),
        (np.array([0.0, 0.0, 0.0, 0.3, 0.3, 0.7, 1.0, 1.0, 1.0]), 2),
        (np.array([0.0, 0.0, 0.0, 0.0, 0.25, 0.5, 0.75, 1.0, 1.0, 1.0, 1.0]), 3),
        (np.array([0.0] * 5 + [0.4, 0.6] + [1.0] * 5), 4),
        (np.array([-1.0, -1.0, -1.0, 0.0, 2.0, 2.0, 3.0, 3.0, 3.0]), 2),
    ]


@pytest.fixture
def cubic_curve():
    """Polynomial cubic B-spline in 3D with two interior knots."""
    kv = make_open_knot_vector(n_basis=6, degree=3, domain=(0.0, 1.0))
    control_points = np.array([
        [0.0, 0.0, 0.0],
        [1.0, 2.0, 0.5],
        [2.0, -1.0, 1.0],
        [3.0, 3.0, 0.0],
        [4.0, 0.5, -1.0],
        [5.0, 1.0, 0.0],
    ])
    return NURBSCurve(kv, control_points)


@pytest.fixture
def rational_curve():
    """Rational quadratic curve in 2D with non-uniform weights."""
    kv = KnotVector(np.array([0.0, 0.0, 0.0, 0.4, 0.7, 1.0, 1.0, 1.0]), 2)
    control_points = np.array([
        [0.0, 0.0],
        [1.0, 2.0],
        [2.0, 2.5],
        [3.0, 0.5],
        [4.0, 1.0],
    ])
    weights = np.array([1.0, 2.0, 0.5, 1.5, 1.0])
    return NURBSCurve(kv, control_points, weights)


@pytest.fixture
def log_messages():
    """Collect loguru messages (DEBUG and above) emitted during a test."""
    messages = []
    handler_id = logger.add(lambda message: messages.append(message.record["message"]),
                            level="DEBUG")
    yield messages
    logger.remove(handler_id)
