"""
Shell formulation with projected-normal drilling control.

Membrane, bending and transverse shear are integrated with the full rule.
The raw element matrix is then projected so that rotations about the
averaged nodal normal carry no stiffness, and an artificial stiffness is
attached along that normal. Nodal normals are shared between elements, so
they must be computed for the whole mesh by :meth:`ShellIsoP.associate_geometry`
before any stiffness is requested.
"""

import logging
from typing import Optional, Union

import numpy as np

from facet_shell.core.errors import GeometryNotAssociatedError
from facet_shell.core.fields import NDOF, RX, RY, NodalField, dof_index
from facet_shell.elements.frames import nodal_normals
from facet_shell.elements.operators import (
    add_btdb_ut_only,
    bb_matrix,
    bm_matrix,
    bs_matrix,
    complete_lt,
    local_gradients,
)
from facet_shell.elements.shell import (
    Moduli,
    ShellFEMM,
    Stabilization,
    as_nodal_field,
    surface_jacobian,
)
from facet_shell.elements.workspace import ElementWorkspace

logger = logging.getLogger(__name__)

# The drilling stiffness is the sum of the bending rotation diagonals divided by this.
DRILLING_STIFFNESS_DIVISOR = 1e-4


def normal_projector(ln: np.ndarray) -> np.ndarray:
    """``I - ln ln^T``: removes the component along the unit vector ``ln``."""
    return np.eye(3) - np.outer(ln, ln)


class ShellIsoP(ShellFEMM):
    """Shell formulation with drilling rotations controlled along nodal normals."""

    stabilization = Stabilization.PROJECTED_NORMAL

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.normals: Optional[np.ndarray] = None
        self._associated_coords: Optional[np.ndarray] = None

    @property
    def associated(self) -> bool:
        return self.normals is not None

    def associate_geometry(self, geom: Union[NodalField, np.ndarray]) -> "ShellIsoP":
        """
        Compute the area-weighted nodal normals of the element set.

        Calling again with the same coordinates is a no-op; calling with new
        coordinates recomputes the normals.

        Returns
        -------
        ShellIsoP
            ``self``, to allow chaining.
        """
        coords = as_nodal_field(geom).values
        if self.associated and np.array_equal(coords, self._associated_coords):
            return self
        self.normals = nodal_normals(coords, [self.element_set])
        self._associated_coords = coords.copy()
        logger.info(
            "Associated geometry: %d nodal normals for %d elements",
            coords.shape[0],
            self.element_set.count(),
        )
        return self

    def _check_ready(self, coords: np.ndarray) -> None:
        if not self.associated:
            raise GeometryNotAssociatedError(
                "associate_geometry() must be called before computing the stiffness"
            )
        if not np.array_equal(coords, self._associated_coords):
            raise GeometryNotAssociatedError(
                "Geometry differs from the one associated; call associate_geometry() again"
            )

    def _local_stiffness(
        self, conn: np.ndarray, ws: ElementWorkspace, moduli: Optional[Moduli]
    ) -> None:
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
            add_btdb_ut_only(ws.elmat, ws.Bs, t * Jac * w, Dt)
        complete_lt(ws.elmat)

        # Project out rotations about the nodal normals (drilling).
        nn = ws.nodes_per_elem
        ln = ws.normals_local
        np.matmul(self.normals[conn], ws.F, out=ln)
        P = np.eye(NDOF * nn)
        for k in range(nn):
            r = slice(dof_index(k, RX), dof_index(k, RX) + 3)
            P[r, r] = normal_projector(ln[k])
        ws.elmat[:, :] = P @ ws.elmat @ P.T

        kavg = sum(
            ws.elmat[dof_index(k, RX), dof_index(k, RX)] + ws.elmat[dof_index(k, RY), dof_index(k, RY)]
            for k in range(nn)
        )
        kavg = kavg / DRILLING_STIFFNESS_DIVISOR * self.drilling_stiffness_scale
        for k in range(nn):
            r = slice(dof_index(k, RX), dof_index(k, RX) + 3)
            ws.elmat[r, r] += kavg * np.outer(ln[k], ln[k])
        complete_lt(ws.elmat)
