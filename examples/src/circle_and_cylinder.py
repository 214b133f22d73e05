#!/usr/bin/env python3
"""
Example: exact conics and structural edits with NURBS.

This example walks through the evaluation engine:
1. Build an exact circle and check radius, curvature and circumference
2. Refine, elevate and split it without changing its shape
3. Sweep a quarter arc into a cylinder patch and query its curvature

Usage:
    ./examples/src/circle_and_cylinder.py
"""

import numpy as np
import sys
from pathlib import Path

# Add project root to path (two levels up from examples/src/)
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from geoNURBS.geometry.primitives import make_nurbs_circle, make_nurbs_cylinder


def max_radius_error(curve, radius: float, n_samples: int = 200) -> float:
    """Largest deviation of |C(t)| from radius over a uniform sample."""
    t_min, t_max = curve.parameter_domain()
    ts = np.linspace(t_min, t_max, n_samples)
    return max(abs(np.linalg.norm(curve.evaluate_at(t)) - radius) for t in ts)


def run(radius: float = 2.0, height: float = 3.0, verbose: bool = True):
    """
    Run the circle/cylinder example.

    Parameters:
        radius: Circle and cylinder radius
        height: Cylinder height
        verbose: Print progress information

    Returns:
        Dictionary with the computed quantities
    """
    if verbose:
        print("=" * 60)
        print("NURBS Circle and Cylinder Example")
        print("=" * 60)
        print(f"Radius: {radius}")
        print()

    # =========================================================================
    # Circle
    # =========================================================================
    circle = make_nurbs_circle(radius=radius)
    circumference = circle.arc_length()

    if verbose:
        print("Circle:")
        print(f"  {circle}")
        print(f"  Max radius error: {max_radius_error(circle, radius):.3e}")
        print(f"  Curvature at t=0.3: {circle.curvature_at(0.3):.12f} (1/r = {1 / radius})")
        print(f"  Circumference: {circumference:.12f} (2*pi*r = {2 * np.pi * radius:.12f})")
        print()

    # =========================================================================
    # Structural edits
    # =========================================================================
    refined = circle.insert_knot(0.1, multiplicity=2)
    elevated = circle.elevate_degree(4)
    first_half, second_half = circle.split_at(0.5)

    if verbose:
        print("Structural edits:")
        for name, curve in (("refined", refined), ("elevated", elevated),
                            ("first half", first_half), ("second half", second_half)):
            print(f"  {name:12s} {curve}  radius error {max_radius_error(curve, radius):.3e}")
        print(f"  Half lengths: {first_half.arc_length():.12f} + {second_half.arc_length():.12f}")
        print()

    # =========================================================================
    # Cylinder
    # =========================================================================
    cylinder = make_nurbs_cylinder(radius=radius, height=height,
                                   start_angle=0.0, end_angle=np.pi / 2)
    k_max, k_min = cylinder.principal_curvatures_at(0.5, 0.5)
    area = cylinder.approximate_area()

    if verbose:
        print("Quarter cylinder:")
        print(f"  {cylinder}")
        print(f"  S(0.5, 0.5) = {cylinder.evaluate_at(0.5, 0.5)}")
        print(f"  Normal      = {cylinder.normal_at(0.5, 0.5)}")
        print(f"  Principal curvatures: ({k_max:.6f}, {k_min:.6f})")
        print(f"  Area: {area:.6f} (exact {0.5 * np.pi * radius * height:.6f})")
        print()

    return {
        'circumference': circumference,
        'principal_curvatures': (k_max, k_min),
        'area': area,
    }


if __name__ == "__main__":
    run()
