"""
Boundary conditions and nodal loads for shell models.

Dirichlet conditions are applied to the degree-of-freedom field before
numbering, so constrained unknowns never enter the global system.
"""

from typing import Iterable, Sequence, Union

import numpy as np

from facet_shell.core.errors import DofFieldError
from facet_shell.core.fields import NDOF, DofField


class DirichletCondition:
    """Represents a Dirichlet boundary condition (fixed DOFs) on a set of nodes.

    Parameters
    ----------
    nodes : Iterable[int]
        Node indices (0-based) where the condition is applied.
    components : Iterable[int]
        Degrees of freedom within each node, e.g. ``(UX, RY, RZ)``.
    value : float, optional
        Prescribed value, by default 0.

    Attributes
    ----------
    nodes : tuple[int]
        Sorted unique node indices.
    components : tuple[int]
        Sorted unique components.
    value : float
        Prescribed value of every constrained unknown.

    Examples
    --------
    >>> bc = DirichletCondition([0, 1], [UX, UY, UZ])  # Pin nodes 0 and 1
    """

    def __init__(self, nodes: Iterable[int], components: Iterable[int], value: float = 0.0):
        self.nodes = tuple(sorted(set(int(n) for n in nodes)))
        self.components = tuple(sorted(set(int(c) for c in components)))
        self.value = float(value)

    def __repr__(self):
        return (
            f"<DirichletCondition nodes={len(self.nodes)} "
            f"components={self.components} value={self.value}>"
        )


def apply_dirichlet(dchi: DofField, conditions: Iterable[DirichletCondition]) -> DofField:
    """Apply Dirichlet boundary conditions to the degree-of-freedom field.

    Parameters
    ----------
    dchi : DofField
        Field to constrain; modified in place.
    conditions : Iterable[DirichletCondition]
        Boundary conditions to apply.

    Returns
    -------
    DofField
        The same field, for chaining with :meth:`DofField.number_dofs`.

    Raises
    ------
    DofFieldError
        If nodes or components are out of range, or if two conditions
        prescribe different values to the same unknown.
    """
    for bc in conditions:
        for comp in bc.components:
            if not 0 <= comp < dchi.ncomponents:
                raise DofFieldError(f"Component {comp} out of range [0, {dchi.ncomponents - 1}]")
            nodes = np.asarray(bc.nodes, dtype=np.int64)
            if nodes.size and (nodes.min() < 0 or nodes.max() >= dchi.nnodes):
                raise DofFieldError(f"Node index out of range [0, {dchi.nnodes - 1}]")
            already = nodes[dchi.is_fixed[nodes, comp]]
            conflicting = already[~np.isclose(dchi.fixed_values[already, comp], bc.value)]
            if conflicting.size:
                raise DofFieldError(
                    f"Conflicting values for component {comp} of node {conflicting[0]}: "
                    f"{dchi.fixed_values[conflicting[0], comp]} vs {bc.value}"
                )
            dchi.set_ebc(nodes, comp, bc.value)
    return dchi


def nodal_load_vector(
    dchi: DofField,
    nodes: Union[int, Sequence[int]],
    force: Sequence[float],
) -> np.ndarray:
    """Global load vector from a force applied at each of ``nodes``.

    Parameters
    ----------
    dchi : DofField
        Numbered degree-of-freedom field.
    nodes : int or Sequence[int]
        Loaded nodes.
    force : Sequence[float]
        Six generalized force components ``[Fx, Fy, Fz, Mx, My, Mz]`` applied
        at every node; components on constrained unknowns are dropped.

    Returns
    -------
    np.ndarray
        Load vector of length ``dchi.nfreedofs``.
    """
    if not dchi.numbered:
        raise DofFieldError("Degrees of freedom must be numbered before building loads")
    force = np.asarray(force, dtype=float).reshape(-1)
    if force.size != NDOF:
        raise ValueError(f"Nodal force needs {NDOF} components, got {force.size}")
    F = np.zeros(dchi.nfreedofs)
    for node in np.atleast_1d(np.asarray(nodes, dtype=np.int64)):
        if not 0 <= node < dchi.nnodes:
            raise DofFieldError(f"Node index {node} out of range [0, {dchi.nnodes - 1}]")
        dofs = dchi.dofnums[node]
        free = dofs >= 0
        np.add.at(F, dofs[free], force[free])
    return F
