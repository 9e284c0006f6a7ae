"""Tests for the energy-sampling (SRI) shell element."""

import numpy as np
import pytest

from facet_shell.core.fields import NDOF, RX, RY, RZ, UX, UY, UZ, dof_index
from facet_shell.core.integration import tri_rule
from facet_shell.core.material import FieldMaterial, IsotropicMaterial
from facet_shell.core.mesh import ElementSet, ElementType
from facet_shell.elements import ShellFEMM, ShellSRI, Stabilization, blend_factor


def rotation_matrix(axis, angle):
    axis = np.asarray(axis, dtype=float)
    axis /= np.linalg.norm(axis)
    K = np.array([[0, -axis[2], axis[1]], [axis[2], 0, -axis[0]], [-axis[1], axis[0], 0]])
    return np.eye(3) + np.sin(angle) * K + (1 - np.cos(angle)) * K @ K


@pytest.fixture
def steel():
    return IsotropicMaterial(name="steel", E=210e9, nu=0.3, rho=7850)


@pytest.fixture
def unit_square():
    return np.array([[0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0]], dtype=float)


@pytest.fixture
def quad_set():
    return ElementSet([[0, 1, 2, 3]], ElementType.Q4)


@pytest.fixture
def tri_set():
    return ElementSet([[0, 1, 2]], ElementType.T3)


@pytest.fixture
def warped_quad():
    return np.array([[0.0, 0.0, 0.0], [1.2, 0.1, 0.05], [1.1, 0.9, -0.04], [-0.1, 1.0, 0.02]])


def eigenvalues(K):
    return np.linalg.eigvalsh(0.5 * (K + K.T))


class TestBlendFactor:
    def test_balanced(self):
        assert blend_factor(np.sqrt(2.0), 1.0) == pytest.approx(0.5)

    def test_thin_limit(self):
        assert blend_factor(1e-4, 1.0) < 1e-8

    def test_thick_limit(self):
        assert blend_factor(100.0, 1.0) == pytest.approx(1.0, abs=1e-3)

    def test_monotonic_in_thickness(self):
        values = [blend_factor(t, 1.0) for t in (0.01, 0.1, 1.0, 10.0)]
        assert values == sorted(values)


class TestElementStiffness:
    def test_is_shell_femm(self, quad_set, steel):
        femm = ShellSRI(quad_set, steel, 0.1)
        assert isinstance(femm, ShellFEMM)
        assert femm.stabilization is Stabilization.ENERGY_SAMPLING

    @pytest.mark.parametrize("fixture, fes_fixture", [("warped_quad", "quad_set"), ("unit_square", "tri_set")])
    def test_symmetric_positive_semidefinite(self, fixture, fes_fixture, steel, request):
        coords = request.getfixturevalue(fixture)
        fes = request.getfixturevalue(fes_fixture)
        K = ShellSRI(fes, steel, 0.05).element_stiffness(coords, 0)
        assert K.shape == (NDOF * fes.nodes_per_elem(),) * 2
        assert np.allclose(K, K.T, rtol=1e-12, atol=1e-12 * np.abs(K).max())
        ev = eigenvalues(K)
        assert ev.min() > -1e-9 * ev.max()

    def test_flat_quad_has_only_rigid_body_modes(self, unit_square, quad_set, steel):
        # The in-plane spin carries the drilling rotation along and is held
        # only by the small drilling spring.
        K = ShellSRI(quad_set, steel, 0.1).element_stiffness(unit_square, 0)
        ev = eigenvalues(K)
        n_zero = np.count_nonzero(np.abs(ev) < 1e-10 * ev.max())
        assert n_zero == 5

    def test_in_plane_spin_loads_only_drilling_springs(self, unit_square, quad_set, steel):
        K = ShellSRI(quad_set, steel, 0.1).element_stiffness(unit_square, 0)
        theta = 0.01
        u = np.zeros(24)
        for k, (x, y, _) in enumerate(unit_square):
            u[dof_index(k, UX)] = -theta * y
            u[dof_index(k, UY)] = theta * x
            u[dof_index(k, RZ)] = theta
        f = K @ u
        rz = [dof_index(k, RZ) for k in range(4)]
        rx = K[dof_index(0, RX), dof_index(0, RX)]
        ry = K[dof_index(0, RY), dof_index(0, RY)]
        assert np.allclose(np.delete(f, rz), 0.0, atol=1e-12 * np.abs(K).max())
        assert np.allclose(f[rz], (rx + ry) * 1e-5 * theta)

    def test_spin_without_drilling_rotation_is_resisted(self, unit_square, quad_set, steel):
        t = 0.1
        K = ShellSRI(quad_set, steel, t).element_stiffness(unit_square, 0)
        theta = 0.01
        u = np.zeros(24)
        for k, (x, y, _) in enumerate(unit_square):
            u[dof_index(k, UX)] = -theta * y
            u[dof_index(k, UY)] = theta * x
        G = steel.E / (2 * (1 + steel.nu))
        assert u @ K @ u == pytest.approx(G * t * 1.0 * theta**2)

    def test_rigid_body_motion_has_no_energy(self, quad_set, steel):
        R = rotation_matrix([1.0, 0.5, -0.7], 0.9)
        x0 = np.array([[0.0, 0.0, 0.0], [1.2, 0.1, 0.0], [1.1, 0.9, 0.0], [-0.1, 1.0, 0.0]])
        coords = x0 @ R.T
        K = ShellSRI(quad_set, steel, 0.1).element_stiffness(coords, 0)
        # Rotation axis in the plane of the element: no drilling component.
        theta = R @ np.array([0.3, -0.2, 0.0])
        u = np.zeros(24)
        for k, x in enumerate(coords):
            u[NDOF * k:NDOF * k + 3] = np.array([1.0, 2.0, -0.5]) + np.cross(theta, x)
            u[NDOF * k + 3:NDOF * k + 6] = theta
        assert np.linalg.norm(K @ u) < 1e-9 * np.abs(K).max()

    def test_new_array_on_every_call(self, unit_square, quad_set, steel):
        femm = ShellSRI(quad_set, steel, 0.1)
        K1 = femm.element_stiffness(unit_square, 0)
        K2 = femm.element_stiffness(unit_square, 0)
        assert K1 is not K2
        assert np.array_equal(K1, K2)

    def test_drilling_scale_only_touches_drilling_diagonal(self, unit_square, quad_set, steel):
        K1 = ShellSRI(quad_set, steel, 0.1).element_stiffness(unit_square, 0)
        K10 = ShellSRI(quad_set, steel, 0.1, drilling_stiffness_scale=10.0).element_stiffness(
            unit_square, 0
        )
        diff = K10 - K1
        rz = [dof_index(k, RZ) for k in range(4)]
        mask = np.zeros_like(diff, dtype=bool)
        mask[rz, rz] = True
        assert np.allclose(diff[~mask], 0.0, atol=1e-12 * np.abs(K1).max())
        rx = K1[dof_index(0, RX), dof_index(0, RX)]
        ry = K1[dof_index(0, RY), dof_index(0, RY)]
        assert np.allclose(diff[rz, rz], 9.0 * (rx + ry) * 1e-5)

    def test_drilling_diagonal(self, unit_square, quad_set, steel):
        # Spring on the bending diagonals plus the centre-sampled coupling
        # to the membrane spin, G t A N^2 with N = 1/4.
        t = 0.1
        K = ShellSRI(quad_set, steel, t).element_stiffness(unit_square, 0)
        rx = K[dof_index(0, RX), dof_index(0, RX)]
        ry = K[dof_index(0, RY), dof_index(0, RY)]
        rz = K[dof_index(0, RZ), dof_index(0, RZ)]
        G = steel.E / (2 * (1 + steel.nu))
        assert rz == pytest.approx((rx + ry) * 1e-5 + G * t / 16)

    def test_rotated_element(self, warped_quad, quad_set, steel):
        femm = ShellSRI(quad_set, steel, 0.1)
        R = rotation_matrix([0.3, 1.0, -0.4], 1.1)
        K0 = femm.element_stiffness(warped_quad, 0)
        K1 = femm.element_stiffness(warped_quad @ R.T + [5.0, -1.0, 2.0], 0)
        Tb = ShellFEMM.transformation(R, 4)
        assert np.allclose(K1, Tb @ K0 @ Tb.T, rtol=1e-9, atol=1e-9 * np.abs(K0).max())

    def test_constant_shear_energy_independent_of_blend(self, unit_square, quad_set, steel):
        # Constant transverse shear w = gamma * x is sampled identically by
        # both shear terms, so its energy does not depend on the blend.
        u = np.zeros(24)
        for k, x in enumerate(unit_square):
            u[dof_index(k, UZ)] = 1e-3 * x[0]
        energies = []
        for t in (0.01, 2.0):
            K = ShellSRI(quad_set, steel, t).element_stiffness(unit_square, 0)
            energies.append(u @ K @ u / t)
        assert energies[0] == pytest.approx(energies[1], rel=1e-8)

    def test_callable_thickness(self, warped_quad, quad_set, steel):
        K1 = ShellSRI(quad_set, steel, 0.1).element_stiffness(warped_quad, 0)
        K2 = ShellSRI(quad_set, steel, lambda loc: 0.1).element_stiffness(warped_quad, 0)
        assert np.allclose(K1, K2)

    def test_field_material_matches_homogeneous(self, warped_quad, quad_set, steel):
        field = FieldMaterial(name="field", moduli=lambda t, loc: steel.tangent_moduli(), rho=steel.rho)
        K1 = ShellSRI(quad_set, steel, 0.1).element_stiffness(warped_quad, 0)
        K2 = ShellSRI(quad_set, field, 0.1).element_stiffness(warped_quad, 0)
        assert np.allclose(K1, K2, rtol=1e-12, atol=1e-12 * np.abs(K1).max())

    def test_thickness_must_be_positive_at_points(self, unit_square, quad_set, steel):
        femm = ShellSRI(quad_set, steel, lambda loc: 0.1 - loc[0])
        with pytest.raises(ValueError):
            femm.element_stiffness(unit_square, 0)


class TestConstruction:
    def test_rule_family_mismatch(self, quad_set, steel):
        with pytest.raises(ValueError):
            ShellSRI(quad_set, steel, 0.1, integration_rule=tri_rule(3))

    @pytest.mark.parametrize(
        "kwargs",
        [
            dict(thickness=0.0),
            dict(thickness=0.1, drilling_stiffness_scale=0.0),
            dict(thickness=0.1, shear_correction=1.5),
        ],
    )
    def test_invalid_options(self, quad_set, steel, kwargs):
        with pytest.raises(ValueError):
            ShellSRI(quad_set, steel, **kwargs)

    def test_one_point_triangle_rule(self, unit_square, tri_set, steel):
        K = ShellSRI(tri_set, steel, 0.1, integration_rule=tri_rule(1)).element_stiffness(unit_square, 0)
        assert np.allclose(K, K.T, atol=1e-12 * np.abs(K).max())


class TestElementMass:
    def test_lumped_masses(self, unit_square, quad_set, steel):
        t = 0.1
        M = ShellSRI(quad_set, steel, t).element_mass(unit_square, 0)
        assert np.count_nonzero(M - np.diag(np.diag(M))) == 0
        m = np.diag(M).reshape(4, NDOF)
        assert np.allclose(m[:, :3], steel.rho * t / 4)
        assert np.allclose(m[:, 3:5], steel.rho * t**3 / 12 / 4)
        assert np.allclose(m[:, 5], steel.rho * t**3 / 12 / 4 * 1e-6)

    def test_total_mass_of_rotated_triangle(self, tri_set, steel):
        x = np.array([[0, 0, 0], [2, 0, 0], [0, 1, 0]], dtype=float)
        R = rotation_matrix([1.0, 1.0, 0.0], 0.6)
        M = ShellSRI(tri_set, steel, 0.02).element_mass(x @ R.T, 0)
        translations = [dof_index(k, d) for k in range(3) for d in range(3)]
        assert M[np.ix_(translations, translations)].sum() == pytest.approx(3 * steel.rho * 0.02 * 1.0)
