"""
Raasch hook.

Based on:
- Knight, N.F. (1997). "Raasch challenge for shell elements." AIAA Journal,
  35(2), 375-381.

A curved strip made of two tangent arcs is clamped at one end and loaded at
the free end by a shear force distributed along the width. The reference
deflection in the direction of the load is 5.02.

The faceted surface relies on the drilling rotations to carry the twist
between neighbouring facets, so the energy-sampling results must not depend
on the drilling stiffness scale over most of its range. Linear triangles
with energy sampling lock and are only checked for a sound, stiff answer.
"""

import numpy as np
import pytest

from facet_shell.core.bc import DirichletCondition, apply_dirichlet, nodal_load_vector
from facet_shell.core.fields import NDOF, UZ, DofField
from facet_shell.core.material import IsotropicMaterial
from facet_shell.core.mesh import RaaschHookMesh
from facet_shell.elements import make_femm
from facet_shell.solvers import solve_static

THICKNESS = 2.0
WIDTH = 20.0
MATERIAL = IsotropicMaterial(name="Raasch_Hook", E=3300.0, nu=0.35, rho=1.0)
SHEAR_LOAD = 0.05  # per unit width
TIP = (97.9615, -16.0)
REFERENCE_DEFLECTION = 5.02
# Elements along the length and across the width.
MESHES = [(9, 1), (18, 3), (36, 5), (72, 10)]


def _run_hook(nl, nw, stabilization, triangular=False, drilling_stiffness_scale=1.0):
    """Return the deflection in the load direction at the tip node on z = 0."""
    mesh = RaaschHookMesh(nl, nw, triangular=triangular).generate()
    tol = THICKNESS / 2
    clamped = mesh.select_nodes([0, 0, -np.inf, np.inf, -np.inf, np.inf], inflate=tol)
    tip = mesh.select_nodes([TIP[0], TIP[0], TIP[1], TIP[1], -np.inf, np.inf], inflate=tol)
    tip = tip[np.argsort(mesh.coords[tip, 2])]

    dchi = DofField(mesh.node_count)
    apply_dirichlet(dchi, [DirichletCondition(clamped, range(NDOF))])
    dchi.number_dofs()

    femm = make_femm(
        mesh.element_sets[0],
        MATERIAL,
        THICKNESS,
        stabilization,
        drilling_stiffness_scale=drilling_stiffness_scale,
    )
    femm.associate_geometry(mesh.coords)
    K = femm.stiffness(mesh.coords, None, None, dchi, n_workers=2)

    # Consistent nodal forces of a uniform edge traction.
    dz = WIDTH / (tip.size - 1)
    F = np.zeros(dchi.nfreedofs)
    for i, node in enumerate(tip):
        share = 0.5 if i in (0, tip.size - 1) else 1.0
        F += nodal_load_vector(dchi, node, [0.0, 0.0, SHEAR_LOAD * dz * share, 0.0, 0.0, 0.0])
    assert F.sum() == pytest.approx(SHEAR_LOAD * WIDTH)

    solve_static(K, F, dchi)
    return dchi.values[tip[0], UZ]


class TestRaaschHookEnergySampling:
    @pytest.fixture(scope="class")
    def convergence(self):
        return [_run_hook(nl, nw, "energy_sampling") / REFERENCE_DEFLECTION for nl, nw in MESHES]

    def test_converges_with_refinement(self, convergence):
        assert np.all(np.isfinite(convergence))
        assert all(r > 0 for r in convergence)
        assert 0.85 < convergence[-1] < 1.1
        assert 0.6 < convergence[-2] < 1.15
        assert abs(convergence[-1] - convergence[-2]) < 0.1

    def test_not_softer_than_reference_when_coarse(self, convergence):
        assert convergence[0] < 1.3

    @pytest.mark.parametrize("scale", [1e-6, 1e-3, 1e1])
    def test_insensitive_to_drilling_stiffness(self, scale):
        reference = _run_hook(24, 4, "energy_sampling")
        deflection = _run_hook(24, 4, "energy_sampling", drilling_stiffness_scale=scale)
        assert deflection == pytest.approx(reference, rel=0.03)

    def test_large_drilling_stiffness_still_solves(self):
        # At this end of the range the drilling springs start to stiffen the
        # hook; only a sound solution is required.
        ratio = _run_hook(24, 4, "energy_sampling", drilling_stiffness_scale=1e3) / REFERENCE_DEFLECTION
        assert np.isfinite(ratio)
        assert 0.0 < ratio < 1.1

    def test_triangles_are_too_stiff(self):
        # The averaged shear of a linear triangle is its one-point shear,
        # which does not relieve locking.
        ratio = _run_hook(48, 8, "energy_sampling", triangular=True) / REFERENCE_DEFLECTION
        assert 0.0 < ratio < 1.05


class TestRaaschHookProjectedNormal:
    @pytest.mark.parametrize("triangular", [False, True])
    def test_drilling_stiffness_does_not_affect_translations(self, triangular):
        # Rotations about the nodal normals are decoupled from all other
        # unknowns, so the clamped hook deflects identically for any scale.
        deflections = [
            _run_hook(24, 4, "projected_normal", triangular, scale) for scale in (1e-6, 1.0, 1e3)
        ]
        assert deflections[0] > 0
        assert np.allclose(deflections, deflections[1], rtol=1e-5)

    def test_refined_quadrilaterals(self):
        ratio = _run_hook(72, 10, "projected_normal") / REFERENCE_DEFLECTION
        assert 0.9 < ratio < 1.05
