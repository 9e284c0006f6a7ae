"""
Energy-sampling selective reduced integration (SRI) shell formulation.

Membrane and bending energies are integrated with the full rule. The
transverse shear energy is blended between the fully integrated term and a
term built on the volume-averaged shear operator,

    alpha = Phi / (1 + Phi),    Phi = (t / he / sqrt(2))^2,

so thin elements (``Phi -> 0``) sample the locking-free averaged shear and
thick elements (``Phi -> 1``) recover the fully integrated shear.

The drilling rotation is tied to the in-plane rotation of the membrane field
by a penalty ``G t`` sampled at the element centre (Hughes and Brezzi). On
faceted curved surfaces this keeps the nodal rotation about a facet normal
from acting as a free twist of the neighbouring facets. A small diagonal
stiffness proportional to the bending rotation diagonals, multiplied by
``drilling_stiffness_scale``, removes the remaining spurious drilling modes.

References
----------
- Hughes, T.J.R. and Brezzi, F. (1989). "On drilling degrees of freedom."
  Computer Methods in Applied Mechanics and Engineering, 72(1), 105-121.
"""

from typing import Optional

import numpy as np

from facet_shell.core.fields import RX, RY, RZ, dof_index
from facet_shell.core.integration import centroid_data
from facet_shell.elements.frames import element_size
from facet_shell.elements.operators import (
    add_btdb_ut_only,
    bb_matrix,
    bd_matrix,
    bm_matrix,
    bs_matrix,
    complete_lt,
    local_gradients,
)
from facet_shell.elements.shell import Moduli, ShellFEMM, Stabilization, surface_jacobian
from facet_shell.elements.workspace import ElementWorkspace

# Drilling stiffness relative to the mean bending rotation diagonal.
DRILLING_STIFFNESS_FACTOR = 1e-5


def blend_factor(thickness: float, he: float) -> float:
    """
    Weight of the fully integrated shear term.

    Parameters
    ----------
    thickness : float
        Shell thickness at the element centre.
    he : float
        Characteristic element size.

    Returns
    -------
    float
        ``Phi / (1 + Phi)`` with ``Phi = (thickness / he / sqrt(2))**2``.
    """
    Phi = (thickness / he / np.sqrt(2.0)) ** 2
    return Phi / (1.0 + Phi)


class ShellSRI(ShellFEMM):
    """
    Shell formulation with energy-sampling stabilization of transverse shear.

    Notes
    -----
    The averaged shear operator of a linear triangle is its one-point shear
    operator, which still locks; T3 elements are supported but are much too
    stiff for thin shells. Use Q4 elements with this formulation.
    """

    stabilization = Stabilization.ENERGY_SAMPLING

    def _local_stiffness(
        self, conn: np.ndarray, ws: ElementWorkspace, moduli: Optional[Moduli]
    ) -> None:
        element_type = self.element_set.element_type
        Nc, gradNparamc = centroid_data(element_type)
        xc = Nc @ ws.ecoords
        tc = self.thickness_at(xc)
        alpha = blend_factor(tc, element_size(ws.J0, element_type))

        volume = 0.0
        area = 0.0
        for N, gradNparam, w in self.integration_rule:
            Jac = surface_jacobian(ws.ecoords, gradNparam)
            gradN, _ = local_gradients(ws.lecoords, gradNparam, out=ws.gradN)
            loc = N @ ws.ecoords
            t = self.thickness_at(loc)
            Dps, Dt = self.moduli_at(moduli, t, loc)
            bm_matrix(gradN, out=ws.Bm)
            bb_matrix(gradN, out=ws.Bb)
            bs_matrix(gradN, N, out=ws.Bs)
            add_btdb_ut_only(ws.elmat, ws.Bm, t * Jac * w, Dps)
            add_btdb_ut_only(ws.elmat, ws.Bb, t**3 / 12 * Jac * w, Dps)
            add_btdb_ut_only(ws.elmat, ws.Bs, alpha * t * Jac * w, Dt)
            ws.Bsavg += (t * Jac * w) * ws.Bs
            volume += t * Jac * w
            area += Jac * w

        ws.Bsavg /= volume
        Dpsc, Dtc = self.moduli_at(moduli, tc, xc)
        add_btdb_ut_only(ws.elmat, ws.Bsavg, (1.0 - alpha) * volume, Dtc)

        gradN, _ = local_gradients(ws.lecoords, gradNparamc, out=ws.gradN)
        bd_matrix(gradN, Nc, out=ws.Bd)
        add_btdb_ut_only(ws.elmat, ws.Bd, tc * area, Dpsc[2:3, 2:3])

        nn = ws.nodes_per_elem
        kx = np.mean([ws.elmat[dof_index(k, RX), dof_index(k, RX)] for k in range(nn)])
        ky = np.mean([ws.elmat[dof_index(k, RY), dof_index(k, RY)] for k in range(nn)])
        kavg = (kx + ky) * DRILLING_STIFFNESS_FACTOR * self.drilling_stiffness_scale
        for k in range(nn):
            ws.elmat[dof_index(k, RZ), dof_index(k, RZ)] += kavg
        complete_lt(ws.elmat)
