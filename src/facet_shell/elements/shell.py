"""
Shared machinery of the flat-facet shell formulations.

A formulation (FEMM, finite element model machine) owns one element set,
its material, thickness and integration rule. It computes element matrices
in the local frame of each facet, rotates them to global coordinates and
scatters them into a sparse assembler. The stabilization variants subclass
:class:`ShellFEMM` and provide the local stiffness kernel.
"""

import logging
from concurrent import futures
from enum import Enum
from numbers import Real
from typing import Callable, List, Optional, Tuple, Union

import numpy as np

from facet_shell.core.assembler import SysmatAssemblerSparseSymm
from facet_shell.core.errors import AssemblyError, DofFieldError, GeometryError, ShellError
from facet_shell.core.fields import NDOF, RX, RY, RZ, TRANSLATIONS, DofField, NodalField, dof_index
from facet_shell.core.integration import IntegrationRule, rule_for
from facet_shell.core.material import SHEAR_CORRECTION_FACTOR, Material, shell_material_stiffness
from facet_shell.core.mesh.entities import ElementSet
from facet_shell.elements.frames import compute_j0, local_frame
from facet_shell.elements.workspace import ElementWorkspace

logger = logging.getLogger(__name__)

# Drilling rotational mass relative to the bending rotational mass.
DRILLING_MASS_FACTOR = 1e-6

Thickness = Union[float, Callable[[np.ndarray], float]]
Moduli = Tuple[np.ndarray, np.ndarray]


class Stabilization(str, Enum):
    """Available stabilization strategies."""

    ENERGY_SAMPLING = "energy_sampling"
    PROJECTED_NORMAL = "projected_normal"


def as_nodal_field(field: Union[NodalField, np.ndarray]) -> NodalField:
    return field if isinstance(field, NodalField) else NodalField(field)


def surface_jacobian(ecoords: np.ndarray, gradNparam: np.ndarray) -> float:
    """Area scale of the map from the parametric domain to the element surface."""
    J = ecoords.T @ gradNparam
    return float(np.linalg.norm(np.cross(J[:, 0], J[:, 1])))


class ShellFEMM:
    """
    Base shell formulation: geometry, material, transformation and assembly.

    Parameters
    ----------
    element_set : ElementSet
        Elements handled by this formulation (T3 or Q4).
    material : Material
        Material provider.
    thickness : float or Callable[[np.ndarray], float]
        Shell thickness, constant or evaluated at a point.
    integration_rule : IntegrationRule, optional
        Quadrature rule, by default the family default from
        :func:`facet_shell.core.integration.rule_for`.
    drilling_stiffness_scale : float, optional
        Multiplier of the artificial drilling stiffness, by default 1.
    shear_correction : float, optional
        Transverse shear correction factor, by default 5/6.
    """

    stabilization: Optional[Stabilization] = None

    def __init__(
        self,
        element_set: ElementSet,
        material: Material,
        thickness: Thickness,
        integration_rule: Optional[IntegrationRule] = None,
        drilling_stiffness_scale: float = 1.0,
        shear_correction: float = SHEAR_CORRECTION_FACTOR,
    ):
        if integration_rule is None:
            integration_rule = rule_for(element_set.element_type)
        if integration_rule.element_type != element_set.element_type:
            raise ValueError(
                f"Integration rule for {integration_rule.element_type.name} cannot integrate "
                f"{element_set.element_type.name} elements"
            )
        if not callable(thickness) and not (isinstance(thickness, Real) and thickness > 0):
            raise ValueError(f"Thickness must be positive or callable, got {thickness!r}")
        if not drilling_stiffness_scale > 0:
            raise ValueError("drilling_stiffness_scale must be positive")
        if not 0 < shear_correction <= 1:
            raise ValueError("shear_correction must be in (0, 1]")
        self.element_set = element_set
        self.material = material
        self.thickness = thickness
        self.integration_rule = integration_rule
        self.drilling_stiffness_scale = float(drilling_stiffness_scale)
        self.shear_correction = float(shear_correction)

    @property
    def nodes_per_elem(self) -> int:
        return self.element_set.nodes_per_elem()

    def associate_geometry(self, geom: Union[NodalField, np.ndarray]) -> "ShellFEMM":
        """Prepare geometry-dependent data. Nothing to do for purely local formulations."""
        return self

    def thickness_at(self, loc: np.ndarray) -> float:
        """Thickness at ``loc``; raises GeometryError unless positive and finite."""
        t = self.thickness(loc) if callable(self.thickness) else self.thickness
        t = float(t)
        if not (np.isfinite(t) and t > 0.0):
            raise GeometryError(f"Thickness must be positive and finite, got {t}")
        return t

    def homogeneous_moduli(self) -> Optional[Moduli]:
        """Reduced material blocks shared by all points, or None for inhomogeneous materials."""
        if not self.material.homogeneous:
            return None
        return shell_material_stiffness(self.material, shear_correction=self.shear_correction)

    def moduli_at(self, moduli: Optional[Moduli], t: float, loc: np.ndarray) -> Moduli:
        if moduli is not None:
            return moduli
        return shell_material_stiffness(self.material, t, loc, self.shear_correction)

    @staticmethod
    def transformation(F: np.ndarray, nn: int, out: np.ndarray = None) -> np.ndarray:
        """
        Block-diagonal local-to-global transformation.

        Parameters
        ----------
        F : np.ndarray
            3x3 local frame (columns are the local axes in global coordinates).
        nn : int
            Number of element nodes.

        Returns
        -------
        np.ndarray
            ``(6 nn, 6 nn)`` matrix holding ``2 nn`` copies of ``F`` on its
            diagonal; a local element matrix ``K`` becomes ``T K T^T``.
        """
        T = np.zeros((NDOF * nn, NDOF * nn)) if out is None else out
        if out is not None:
            T.fill(0.0)
        for b in range(2 * nn):
            r = slice(3 * b, 3 * b + 3)
            T[r, r] = F
        return T

    def _prepare_element(self, coords: np.ndarray, e: int, ws: ElementWorkspace) -> np.ndarray:
        """Load element ``e`` into the workspace: coordinates, J0, frame and local coordinates."""
        conn = self.element_set.conn[e]
        ws.reset()
        ws.ecoords[:, :] = coords[conn]
        ws.J0[:, :] = compute_j0(ws.ecoords, self.element_set.element_type)
        local_frame(ws.J0, out=ws.F)
        np.matmul(ws.ecoords, ws.F[:, :2], out=ws.lecoords)
        return conn

    def _to_global(self, ws: ElementWorkspace) -> np.ndarray:
        T = self.transformation(ws.F, ws.nodes_per_elem, out=ws.T)
        return T @ ws.elmat @ T.T

    def _local_stiffness(
        self, conn: np.ndarray, ws: ElementWorkspace, moduli: Optional[Moduli]
    ) -> None:
        raise NotImplementedError

    def _check_ready(self, coords: np.ndarray) -> None:
        """Hook for formulations that need geometry-dependent preparation."""

    def _stiffness_kernel(
        self, coords: np.ndarray, e: int, ws: ElementWorkspace, moduli: Optional[Moduli]
    ) -> np.ndarray:
        conn = self._prepare_element(coords, e, ws)
        self._local_stiffness(conn, ws, moduli)
        return self._to_global(ws)

    def _mass_kernel(self, coords: np.ndarray, e: int, ws: ElementWorkspace) -> np.ndarray:
        self._prepare_element(coords, e, ws)
        rho = self.material.mass_density()
        nn = ws.nodes_per_elem
        tmass = np.zeros(nn)
        rmass = np.zeros(nn)
        for N, gradNparam, w in self.integration_rule:
            Jac = surface_jacobian(ws.ecoords, gradNparam)
            t = self.thickness_at(N @ ws.ecoords)
            tmass += rho * t * N * Jac * w
            rmass += rho * t**3 / 12 * N * Jac * w
        for k in range(nn):
            for d in TRANSLATIONS:
                ws.elmat[dof_index(k, d), dof_index(k, d)] = tmass[k]
            ws.elmat[dof_index(k, RX), dof_index(k, RX)] = rmass[k]
            ws.elmat[dof_index(k, RY), dof_index(k, RY)] = rmass[k]
            ws.elmat[dof_index(k, RZ), dof_index(k, RZ)] = rmass[k] * DRILLING_MASS_FACTOR
        return self._to_global(ws)

    def element_stiffness(
        self,
        geom0: Union[NodalField, np.ndarray],
        e: int,
        ws: Optional[ElementWorkspace] = None,
    ) -> np.ndarray:
        """
        Global-frame stiffness matrix of element ``e``.

        Returns
        -------
        np.ndarray
            Symmetric ``(6 nn, 6 nn)`` matrix; a new array on every call.
        """
        coords = as_nodal_field(geom0).values
        self._check_ready(coords)
        if ws is None:
            ws = ElementWorkspace(self.nodes_per_elem)
        return self._stiffness_kernel(coords, e, ws, self.homogeneous_moduli())

    def element_mass(
        self, geom0: Union[NodalField, np.ndarray], e: int, ws: Optional[ElementWorkspace] = None
    ) -> np.ndarray:
        """
        Global-frame mass matrix of element ``e``.

        Translational and rotational masses are lumped to the nodes with the
        shape functions; the drilling rotation gets a small artificial mass.
        """
        coords = as_nodal_field(geom0).values
        if ws is None:
            ws = ElementWorkspace(self.nodes_per_elem)
        return self._mass_kernel(coords, e, ws)

    def _check_fields(self, nnodes: int, dchi: DofField, *fields) -> None:
        if self.element_set.max_node() >= nnodes:
            raise DofFieldError(
                f"Element set references node {self.element_set.max_node()}, "
                f"geometry has {nnodes} nodes"
            )
        dchi.check_compatible(nnodes)
        for field in fields:
            if field is not None and as_nodal_field(field).nnodes != nnodes:
                raise DofFieldError(
                    f"Field has {as_nodal_field(field).nnodes} nodes, geometry has {nnodes}"
                )

    def _element_matrices(
        self, kernel: Callable[[int, ElementWorkspace], np.ndarray], chunk: np.ndarray, dchi: DofField
    ) -> List[Tuple[np.ndarray, np.ndarray]]:
        """Evaluate ``kernel`` on a contiguous chunk of elements with a private workspace."""
        ws = ElementWorkspace(self.nodes_per_elem)
        conn = self.element_set.conn
        out = []
        for e in chunk:
            try:
                elmat = kernel(int(e), ws)
            except (ShellError, ValueError, ArithmeticError) as exc:
                raise AssemblyError(int(e), str(exc)) from exc
            if not np.all(np.isfinite(elmat)):
                raise AssemblyError(int(e), "element matrix has non-finite entries")
            out.append((dchi.gather_dofnums(conn[e]), elmat))
        return out

    def _assemble(self, kernel, dchi: DofField, assembler, n_workers: int, what: str):
        if not isinstance(n_workers, int) or n_workers < 1:
            raise ValueError(f"n_workers must be a positive integer, got {n_workers!r}")
        nelem = self.element_set.count()
        elem_size = NDOF * self.nodes_per_elem
        assembler = assembler if assembler is not None else SysmatAssemblerSparseSymm()
        assembler.start_assembly(elem_size, nelem, dchi.nfreedofs)
        n_workers = max(1, min(n_workers, nelem))
        chunks = np.array_split(np.arange(nelem), n_workers)
        logger.debug(
            "Assembling %s: %d %s elements, %d workers, %d free dofs",
            what,
            nelem,
            self.element_set.element_type.name,
            n_workers,
            dchi.nfreedofs,
        )
        if n_workers == 1:
            parts = [self._element_matrices(kernel, chunks[0], dchi)]
        else:
            with futures.ThreadPoolExecutor(max_workers=n_workers) as executor:
                parts = list(
                    executor.map(lambda chunk: self._element_matrices(kernel, chunk, dchi), chunks)
                )
        # Scatter serially in element order.
        for part in parts:
            for dofnums, elmat in part:
                assembler.assemble(elmat, dofnums)
        return assembler.make_matrix()

    def stiffness(
        self,
        geom0: Union[NodalField, np.ndarray],
        u1: Optional[Union[NodalField, np.ndarray]],
        rfield1: Optional[Union[NodalField, np.ndarray]],
        dchi: DofField,
        assembler=None,
        n_workers: int = 1,
    ):
        """
        Assemble the global stiffness matrix.

        Parameters
        ----------
        geom0 : NodalField or np.ndarray
            Undeformed node coordinates.
        u1, rfield1 : NodalField or np.ndarray, optional
            Current displacement and rotation fields. The kernel is linear,
            so they only have to be consistent with the geometry.
        dchi : DofField
            Numbered degree-of-freedom field.
        assembler : optional
            Assembly target, by default a fresh
            :class:`~facet_shell.core.assembler.SysmatAssemblerSparseSymm`.
        n_workers : int, optional
            Number of worker threads computing element matrices.

        Returns
        -------
        scipy.sparse.csr_matrix or PETSc.Mat
            The finalized matrix of the assembler, restricted to free dofs.

        Raises
        ------
        DofFieldError
            If the fields are inconsistent with the geometry or not numbered.
        AssemblyError
            If any element fails; no partial matrix is returned.
        """
        coords = as_nodal_field(geom0).values
        self._check_fields(coords.shape[0], dchi, u1, rfield1)
        self._check_ready(coords)
        moduli = self.homogeneous_moduli()

        def kernel(e, ws):
            return self._stiffness_kernel(coords, e, ws, moduli)

        return self._assemble(kernel, dchi, assembler, n_workers, "stiffness")

    def mass(
        self,
        geom0: Union[NodalField, np.ndarray],
        dchi: DofField,
        assembler=None,
        n_workers: int = 1,
    ):
        """Assemble the global (lumped) mass matrix."""
        coords = as_nodal_field(geom0).values
        self._check_fields(coords.shape[0], dchi)

        def kernel(e, ws):
            return self._mass_kernel(coords, e, ws)

        return self._assemble(kernel, dchi, assembler, n_workers, "mass")

    def nonzero_ebc_loads(self, geom0: Union[NodalField, np.ndarray], dchi: DofField) -> np.ndarray:
        """
        Load vector of the nonzero prescribed values.

        The assembled stiffness only couples free degrees of freedom, so the
        effect of a constrained value ``u_c`` enters the free equations as the
        load ``-K_fc u_c``. Add this vector to the applied loads before
        solving whenever a constraint prescribes a nonzero value.

        Parameters
        ----------
        geom0 : NodalField or np.ndarray
            Undeformed node coordinates.
        dchi : DofField
            Numbered degree-of-freedom field carrying the prescribed values.

        Returns
        -------
        np.ndarray
            Vector of length ``dchi.nfreedofs``.
        """
        coords = as_nodal_field(geom0).values
        self._check_fields(coords.shape[0], dchi)
        self._check_ready(coords)
        F = np.zeros(dchi.nfreedofs)
        prescribed = np.where(dchi.is_fixed, dchi.fixed_values, 0.0)
        conn = self.element_set.conn
        elements = np.nonzero(np.any(prescribed[conn] != 0.0, axis=(1, 2)))[0]
        if elements.size == 0:
            return F
        moduli = self.homogeneous_moduli()
        ws = ElementWorkspace(self.nodes_per_elem)
        for e in elements:
            try:
                Ke = self._stiffness_kernel(coords, int(e), ws, moduli)
            except (ShellError, ValueError, ArithmeticError) as exc:
                raise AssemblyError(int(e), str(exc)) from exc
            fe = -Ke @ prescribed[conn[e]].reshape(-1)
            dofnums = dchi.gather_dofnums(conn[e])
            free = dofnums >= 0
            np.add.at(F, dofnums[free], fe[free])
        logger.debug("Prescribed values load %d elements", elements.size)
        return F

    def __repr__(self):
        return (
            f"<{type(self).__name__} type={self.element_set.element_type.name} "
            f"elements={self.element_set.count()}>"
        )
