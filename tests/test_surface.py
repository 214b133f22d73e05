"""
Unit tests for NURBS surfaces.
"""

import pytest
import numpy as np
from numpy.testing import assert_array_almost_equal

from geoNURBS.errors import NurbsError
from geoNURBS.discretization.knot_vector import KnotVector, make_open_knot_vector
from geoNURBS.geometry.curve import NURBSCurve
from geoNURBS.geometry.surface import NURBSSurface
from geoNURBS.geometry.primitives import (
    make_nurbs_unit_square, make_nurbs_rectangle, make_nurbs_cylinder
)


PARAMS = [(0.0, 0.0), (0.1, 0.8), (0.35, 0.5), (0.5, 0.25), (0.77, 0.9), (1.0, 1.0)]


@pytest.fixture
def bumpy_surface():
    """Rational surface with degrees (2, 3) on a 4 x 5 grid."""
    kv_u = make_open_knot_vector(n_basis=4, degree=2)
    kv_v = make_open_knot_vector(n_basis=5, degree=3)
    control_points = np.zeros((4, 5, 3))
    for i in range(4):
        for j in range(5):
            control_points[i, j] = [i, j, np.sin(i + 0.5 * j)]
    weights = 1.0 + 0.25 * np.arange(20).reshape(4, 5) % 3
    return NURBSSurface(kv_u, kv_v, control_points, weights)


@pytest.fixture
def paraboloid():
    """Bezier patch of z = x^2 + y^2 over [0,1]^2."""
    kv = KnotVector(np.array([0.0, 0.0, 0.0, 1.0, 1.0, 1.0]), 2)
    a = [0.0, 0.0, 1.0]
    xy = [0.0, 0.5, 1.0]
    control_points = np.array([[[xy[i], xy[j], a[i] + a[j]] for j in range(3)] for i in range(3)])
    return NURBSSurface(kv, kv, control_points)


def assert_same_surface(s1, s2, params=PARAMS, decimal=10):
    for u, v in params:
        assert_array_almost_equal(s1.evaluate_at(u, v), s2.evaluate_at(u, v), decimal=decimal)


class TestNURBSSurface:
    """Construction and queries."""

    def test_unit_square(self):
        surface = make_nurbs_unit_square(p=2, n_elem_u=4, n_elem_v=4)

        assert surface.u_degree == 2
        assert surface.v_degree == 2
        assert surface.grid_size == (6, 6)
        assert surface.parameter_domain() == ((0.0, 1.0), (0.0, 1.0))
        assert not surface.is_rational()

    def test_unit_square_identity_mapping(self):
        """Greville control points reproduce the identity."""
        surface = make_nurbs_unit_square(p=3, n_elem_u=3, n_elem_v=5)
        for u, v in PARAMS:
            assert_array_almost_equal(surface.evaluate_at(u, v), [u, v, 0.0])

    def test_rectangle(self):
        surface = make_nurbs_rectangle(x_range=(1.0, 3.0), y_range=(-1.0, 2.0), z=0.5)
        assert_array_almost_equal(surface.evaluate_at(0.5, 0.5), [2.0, 0.5, 0.5])
        assert_array_almost_equal(surface.evaluate_at(1.0, 0.0), [3.0, -1.0, 0.5])

    def test_flat_control_points(self, bumpy_surface):
        """Row-major flat input equals the grid input."""
        kv_u, kv_v = bumpy_surface.knot_vectors
        flat = NURBSSurface(kv_u, kv_v, bumpy_surface.control_points,
                            bumpy_surface.weights)
        assert_same_surface(flat, bumpy_surface)
        assert_array_almost_equal(flat.control_points_grid, bumpy_surface.control_points_grid)

    def test_grid_mismatch(self):
        kv = make_open_knot_vector(n_basis=3, degree=2)
        with pytest.raises(NurbsError):
            NURBSSurface(kv, kv, np.zeros((8, 3)))
        with pytest.raises(NurbsError) as exc_info:
            NURBSSurface(kv, kv, np.zeros((3, 4, 3)))
        assert exc_info.value.category == "invalid_knot_vector"

    def test_too_few_control_points(self):
        kv = KnotVector(np.array([0.0, 0.0, 0.0, 1.0, 1.0, 1.0]), 2)
        with pytest.raises(NurbsError) as exc_info:
            NURBSSurface(kv, kv, np.zeros((2, 3, 3)))
        assert exc_info.value.category == "insufficient_control_points"

    def test_weight_validation(self):
        kv = make_open_knot_vector(n_basis=3, degree=2)
        with pytest.raises(NurbsError):
            NURBSSurface(kv, kv, np.zeros((3, 3, 3)), weights=np.ones(8))
        with pytest.raises(NurbsError):
            NURBSSurface(kv, kv, np.zeros((3, 3, 3)), weights=-np.ones((3, 3)))

    def test_corner_interpolation(self, bumpy_surface):
        grid = bumpy_surface.control_points_grid
        assert_array_almost_equal(bumpy_surface.evaluate_at(0.0, 0.0), grid[0, 0])
        assert_array_almost_equal(bumpy_surface.evaluate_at(1.0, 0.0), grid[-1, 0])
        assert_array_almost_equal(bumpy_surface.evaluate_at(0.0, 1.0), grid[0, -1])
        assert_array_almost_equal(bumpy_surface.evaluate_at(1.0, 1.0), grid[-1, -1])

    def test_parameters_clamped(self, bumpy_surface):
        assert_array_almost_equal(bumpy_surface.evaluate_at(-1.0, 2.0),
                                  bumpy_surface.evaluate_at(0.0, 1.0))
        assert bumpy_surface.clamp_parameters(-1.0, 0.5) == (0.0, 0.5)
        assert bumpy_surface.are_parameters_valid(0.5, 0.5)
        assert not bumpy_surface.are_parameters_valid(0.5, 1.5)
        assert bumpy_surface.normalize_u_parameter(0.25) == pytest.approx(0.25)
        assert bumpy_surface.denormalize_v_parameter(0.5) == pytest.approx(0.5)

    def test_is_closed(self):
        cylinder = make_nurbs_cylinder(radius=1.0, height=2.0)
        assert cylinder.is_u_closed()
        assert not cylinder.is_v_closed()

        square = make_nurbs_unit_square()
        assert not square.is_u_closed()
        assert not square.is_v_closed()


class TestSurfaceDerivatives:
    """Partial derivatives, normals and curvature."""

    def test_plane_derivatives(self):
        surface = make_nurbs_rectangle(x_range=(0.0, 2.0), y_range=(0.0, 3.0))
        for u, v in PARAMS:
            assert_array_almost_equal(surface.u_derivative_at(u, v), [2.0, 0.0, 0.0])
            assert_array_almost_equal(surface.v_derivative_at(u, v), [0.0, 3.0, 0.0])

    def test_plane_normal_constant(self):
        surface = make_nurbs_rectangle(x_range=(0.0, 2.0), y_range=(0.0, 3.0))
        for u, v in PARAMS:
            assert_array_almost_equal(surface.normal_at(u, v), [0.0, 0.0, 1.0])
            assert surface.principal_curvatures_at(u, v) == pytest.approx((0.0, 0.0), abs=1e-10)

    def test_planar_2d_surface(self):
        """Surfaces with 2D control points get a +z normal."""
        surface = make_nurbs_unit_square(physical_dim=2)
        assert_array_almost_equal(surface.normal_at(0.3, 0.6), [0.0, 0.0, 1.0])

    def test_first_derivatives_finite_differences(self, bumpy_surface):
        h = 1e-6
        for u, v in [(0.2, 0.3), (0.6, 0.45), (0.8, 0.8)]:
            Su = (bumpy_surface.evaluate_at(u + h, v) - bumpy_surface.evaluate_at(u - h, v)) / (2 * h)
            Sv = (bumpy_surface.evaluate_at(u, v + h) - bumpy_surface.evaluate_at(u, v - h)) / (2 * h)
            assert_array_almost_equal(bumpy_surface.u_derivative_at(u, v), Su, decimal=6)
            assert_array_almost_equal(bumpy_surface.v_derivative_at(u, v), Sv, decimal=6)

    def test_second_derivatives_finite_differences(self, bumpy_surface):
        h = 1e-4
        S = bumpy_surface.evaluate_at
        for u, v in [(0.2, 0.3), (0.6, 0.45)]:
            SKL = bumpy_surface.derivatives_at(u, v, 2)
            Suu = (S(u + h, v) - 2 * S(u, v) + S(u - h, v)) / h ** 2
            Svv = (S(u, v + h) - 2 * S(u, v) + S(u, v - h)) / h ** 2
            Suv = (S(u + h, v + h) - S(u + h, v - h) - S(u - h, v + h) + S(u - h, v - h)) / (4 * h ** 2)

            assert_array_almost_equal(SKL[0, 0], S(u, v))
            assert_array_almost_equal(SKL[2, 0], Suu, decimal=3)
            assert_array_almost_equal(SKL[0, 2], Svv, decimal=3)
            assert_array_almost_equal(SKL[1, 1], Suv, decimal=3)

    def test_paraboloid_curvature(self, paraboloid):
        """At the apex of z = x^2 + y^2 both principal curvatures are 2."""
        k1, k2 = paraboloid.principal_curvatures_at(0.0, 0.0)
        assert k1 == pytest.approx(2.0)
        assert k2 == pytest.approx(2.0)
        assert paraboloid.gaussian_curvature_at(0.0, 0.0) == pytest.approx(4.0)
        assert paraboloid.mean_curvature_at(0.0, 0.0) == pytest.approx(2.0)

    def test_fundamental_forms(self, paraboloid):
        (E, F, G), (L, M, N) = paraboloid.fundamental_forms_at(0.0, 0.0)
        assert (E, F, G) == pytest.approx((1.0, 0.0, 1.0))
        assert (L, M, N) == pytest.approx((2.0, 0.0, 2.0))

    def test_cylinder_curvature(self):
        cylinder = make_nurbs_cylinder(radius=2.0, height=3.0)
        for u, v in [(0.1, 0.5), (0.4, 0.2), (0.9, 0.7)]:
            k_max, k_min = cylinder.principal_curvatures_at(u, v)
            assert k_max == pytest.approx(0.0, abs=1e-9)
            assert k_min == pytest.approx(-0.5, rel=1e-9)
            assert cylinder.gaussian_curvature_at(u, v) == pytest.approx(0.0, abs=1e-9)
            assert cylinder.mean_curvature_at(u, v) == pytest.approx(-0.25, rel=1e-9)

    def test_cylinder_normal_radial(self):
        cylinder = make_nurbs_cylinder(radius=2.0, height=3.0)
        for u, v in [(0.1, 0.5), (0.4, 0.2), (0.9, 0.7)]:
            point = cylinder.evaluate_at(u, v)
            normal = cylinder.normal_at(u, v)
            assert_array_almost_equal(normal, [point[0] / 2.0, point[1] / 2.0, 0.0])

    def test_degenerate_normal(self, log_messages):
        """A collapsed boundary row has no normal."""
        kv = KnotVector(np.array([0.0, 0.0, 0.0, 1.0, 1.0, 1.0]), 2)
        control_points = np.array([[[i, i * j, 0.0] for j in range(3)] for i in range(3)],
                                  dtype=float)
        surface = NURBSSurface(kv, kv, control_points)

        assert_array_almost_equal(surface.normal_at(0.0, 0.5), [0.0, 0.0, 0.0])
        assert any("Degenerate surface normal" in message for message in log_messages)
        assert surface.principal_curvatures_at(0.0, 0.5) == (0.0, 0.0)
        assert_array_almost_equal(surface.normal_at(0.5, 0.5), [0.0, 0.0, 1.0])

    def test_approximate_area(self):
        rectangle = make_nurbs_rectangle(x_range=(0.0, 2.0), y_range=(0.0, 3.0))
        assert rectangle.approximate_area(10, 10) == pytest.approx(6.0)
        assert rectangle.approximate_area(0, 10) == 0.0

        cylinder = make_nurbs_cylinder(radius=1.0, height=2.0)
        assert cylinder.approximate_area() == pytest.approx(4 * np.pi, rel=1e-2)


class TestSurfaceOperations:
    """Structural operations keep the surface unchanged."""

    def test_insert_u_knot(self, bumpy_surface):
        refined = bumpy_surface.insert_u_knot(0.3, multiplicity=2)
        assert refined.grid_size == (6, 5)
        assert_same_surface(refined, bumpy_surface)

    def test_insert_v_knot(self, bumpy_surface):
        refined = bumpy_surface.insert_v_knot(0.45)
        assert refined.grid_size == (4, 6)
        assert refined.is_rational()
        assert_same_surface(refined, bumpy_surface)

    def test_insert_knot_errors(self, bumpy_surface):
        with pytest.raises(NurbsError):
            bumpy_surface.insert_u_knot(1.2)
        with pytest.raises(NurbsError):
            bumpy_surface.insert_v_knot(0.0)
        with pytest.raises(NurbsError):
            bumpy_surface.insert_u_knot(0.5, multiplicity=0)

    def test_elevate_u_degree(self, bumpy_surface):
        elevated = bumpy_surface.elevate_u_degree(3)
        assert elevated.u_degree == 3
        assert elevated.v_degree == 3
        assert elevated.grid_size == (4 + 2, 5)
        assert_same_surface(elevated, bumpy_surface)

    def test_elevate_v_degree(self, bumpy_surface):
        elevated = bumpy_surface.elevate_v_degree(4)
        assert elevated.v_degree == 4
        assert elevated.grid_size == (4, 5 + 2)
        assert_same_surface(elevated, bumpy_surface)

        with pytest.raises(NurbsError):
            bumpy_surface.elevate_v_degree(3)

    def test_split_u(self, bumpy_surface):
        lower, upper = bumpy_surface.split_u_at(0.4)
        assert lower.parameter_domain() == ((0.0, 0.4), (0.0, 1.0))
        assert upper.parameter_domain() == ((0.4, 1.0), (0.0, 1.0))
        for u, v in [(0.1, 0.2), (0.3, 0.9), (0.4, 0.5)]:
            assert_array_almost_equal(lower.evaluate_at(u, v), bumpy_surface.evaluate_at(u, v))
        for u, v in [(0.4, 0.5), (0.7, 0.1), (1.0, 1.0)]:
            assert_array_almost_equal(upper.evaluate_at(u, v), bumpy_surface.evaluate_at(u, v))

    def test_split_v(self, bumpy_surface):
        left, right = bumpy_surface.split_v_at(0.6)
        assert left.parameter_domain()[1] == (0.0, 0.6)
        assert_array_almost_equal(left.evaluate_at(0.3, 0.2), bumpy_surface.evaluate_at(0.3, 0.2))
        assert_array_almost_equal(right.evaluate_at(0.3, 0.8), bumpy_surface.evaluate_at(0.3, 0.8))

        with pytest.raises(NurbsError):
            bumpy_surface.split_v_at(1.0)

    def test_reverse(self, bumpy_surface):
        reversed_u = bumpy_surface.reverse()
        reversed_both = bumpy_surface.reverse(reverse_u=True, reverse_v=True)
        reversed_v = bumpy_surface.reverse(reverse_u=False, reverse_v=True)
        for u, v in PARAMS:
            S = bumpy_surface.evaluate_at(u, v)
            assert_array_almost_equal(reversed_u.evaluate_at(1.0 - u, v), S)
            assert_array_almost_equal(reversed_v.evaluate_at(u, 1.0 - v), S)
            assert_array_almost_equal(reversed_both.evaluate_at(1.0 - u, 1.0 - v), S)

    def test_extract_curves(self, bumpy_surface):
        u_curve = bumpy_surface.extract_u_curve(0.3)
        v_curve = bumpy_surface.extract_v_curve(0.7)

        assert isinstance(u_curve, NURBSCurve)
        assert u_curve.degree == bumpy_surface.v_degree
        assert v_curve.degree == bumpy_surface.u_degree
        assert u_curve.is_rational()
        for t in np.linspace(0.0, 1.0, 9):
            assert_array_almost_equal(u_curve.evaluate_at(t), bumpy_surface.evaluate_at(0.3, t))
            assert_array_almost_equal(v_curve.evaluate_at(t), bumpy_surface.evaluate_at(t, 0.7))

    def test_cylinder_cross_section(self):
        cylinder = make_nurbs_cylinder(radius=1.5, height=2.0)
        section = cylinder.extract_v_curve(0.5)
        for t in np.linspace(0.0, 1.0, 17):
            point = section.evaluate_at(t)
            assert np.hypot(point[0], point[1]) == pytest.approx(1.5)
            assert point[2] == pytest.approx(1.0)

    def test_boundary_curves(self, bumpy_surface):
        u_min, u_max, v_min, v_max = bumpy_surface.boundary_curves()
        grid = bumpy_surface.control_points_grid
        assert_array_almost_equal(u_min.evaluate_at(0.0), grid[0, 0])
        assert_array_almost_equal(u_max.evaluate_at(1.0), grid[-1, -1])
        assert_array_almost_equal(v_min.evaluate_at(1.0), grid[-1, 0])
        assert_array_almost_equal(v_max.evaluate_at(0.0), grid[0, -1])

    def test_uniform_parameters(self, bumpy_surface):
        grid = bumpy_surface.uniform_parameters(2, 4)
        assert len(grid) == 3
        assert len(grid[0]) == 5
        assert grid[1][2] == pytest.approx((0.5, 0.5))


class TestSurfaceWeights:
    """Weight management on surfaces."""

    def test_weight_queries(self, bumpy_surface):
        assert bumpy_surface.is_rational()
        assert not bumpy_surface.is_uniform_weight()
        assert bumpy_surface.weight_at(0) == 1.0
        assert bumpy_surface.weights_grid.shape == (4, 5)

    def test_set_weight(self, bumpy_surface, log_messages):
        surface = bumpy_surface.set_weight(7, 3.0)
        assert surface.weight_at(7) == 3.0
        assert surface.weights_grid[1, 2] == 3.0
        assert log_messages == ["Set surface weight 7 to 3.0"]

        with pytest.raises(NurbsError):
            bumpy_surface.set_weight(20, 1.0)
        with pytest.raises(NurbsError):
            bumpy_surface.set_weight(3, -2.0)
        assert len(log_messages) == 1

    def test_make_non_rational(self, bumpy_surface):
        surface = bumpy_surface.make_non_rational()
        assert not surface.is_rational()
        assert surface.is_uniform_weight()

    def test_normalize_weights(self, bumpy_surface):
        surface = bumpy_surface.normalize_weights()
        assert surface.weight_statistics()[1] == pytest.approx(1.0)
        assert_same_surface(surface, bumpy_surface)

    def test_make_rational(self):
        square = make_nurbs_unit_square()
        rational = square.make_rational(np.full(36, 2.0))
        assert rational.is_rational()
        assert_same_surface(rational, square)
        assert rational.set_weights(np.ones((6, 6))).is_uniform_weight()
