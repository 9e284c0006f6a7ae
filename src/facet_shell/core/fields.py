"""
Nodal fields and the degree-of-freedom field.

Every shell node carries six unknowns: three translations and three
rotations. Within an element the unknowns are laid out node by node,

    [u1, v1, w1, rx1, ry1, rz1, u2, v2, ...]

and :func:`dof_index` is the only place where that layout is spelled out.
"""

from typing import Iterable, Sequence, Union

import numpy as np

from facet_shell.core.errors import DofFieldError

NDOF = 6

UX, UY, UZ, RX, RY, RZ = range(NDOF)
TRANSLATIONS = (UX, UY, UZ)


def dof_index(node: int, dof: int) -> int:
    """
    Flat index of ``dof`` of local node ``node`` inside an element matrix.

    Parameters
    ----------
    node : int
        Local (within the element) node number, 0-based.
    dof : int
        Degree of freedom within the node, one of ``UX .. RZ``.
    """
    if not 0 <= dof < NDOF:
        raise IndexError(f"DOF {dof} out of range [0, {NDOF - 1}]")
    return NDOF * node + dof


class NodalField:
    """
    Values attached to the nodes of a mesh.

    Parameters
    ----------
    values : array_like
        Array of shape ``(nnodes, ncomponents)``.
    """

    def __init__(self, values: Union[Sequence, np.ndarray]):
        values = np.array(values, dtype=float)
        if values.ndim == 1:
            values = values.reshape(-1, 1)
        self.values = values

    @property
    def nnodes(self) -> int:
        return self.values.shape[0]

    @property
    def ncomponents(self) -> int:
        return self.values.shape[1]

    def gather_values(self, conn: Sequence[int], out: np.ndarray = None) -> np.ndarray:
        """Values of the nodes in ``conn`` as a ``(len(conn), ncomponents)`` array."""
        if out is None:
            return self.values[np.asarray(conn)]
        out[:, :] = self.values[np.asarray(conn)]
        return out

    def __repr__(self):
        return f"<NodalField nnodes={self.nnodes} ncomponents={self.ncomponents}>"


class DofField(NodalField):
    """
    Degree-of-freedom field with essential boundary conditions and numbering.

    Constrained degrees of freedom carry ``dofnums == -1``; free ones are
    numbered contiguously from zero by :meth:`number_dofs`, node by node.

    Parameters
    ----------
    nnodes : int
        Number of nodes.
    ndofs : int, optional
        Degrees of freedom per node, by default 6.

    Attributes
    ----------
    is_fixed : np.ndarray
        Boolean array ``(nnodes, ndofs)`` of constrained flags.
    fixed_values : np.ndarray
        Prescribed values of the constrained degrees of freedom.
    dofnums : np.ndarray
        Integer equation numbers, ``-1`` for constrained entries.
    nfreedofs : int
        Number of free (numbered) degrees of freedom.
    """

    def __init__(self, nnodes: int, ndofs: int = NDOF):
        super().__init__(np.zeros((nnodes, ndofs)))
        self.is_fixed = np.zeros((nnodes, ndofs), dtype=bool)
        self.fixed_values = np.zeros((nnodes, ndofs))
        self.dofnums = np.full((nnodes, ndofs), -1, dtype=np.int64)
        self.nfreedofs = 0
        self._numbered = False

    @property
    def numbered(self) -> bool:
        return self._numbered

    def set_ebc(self, nodes: Iterable[int], comp: int, value: float = 0.0) -> None:
        """
        Constrain component ``comp`` of ``nodes`` to ``value``.

        Setting a constraint invalidates any previous numbering.
        """
        nodes = np.asarray(list(nodes), dtype=np.int64)
        if nodes.size and (nodes.min() < 0 or nodes.max() >= self.nnodes):
            raise DofFieldError(f"Node index out of range [0, {self.nnodes - 1}]")
        if not 0 <= comp < self.ncomponents:
            raise DofFieldError(f"Component {comp} out of range [0, {self.ncomponents - 1}]")
        self.is_fixed[nodes, comp] = True
        self.fixed_values[nodes, comp] = value
        self.values[nodes, comp] = value
        self._numbered = False

    def number_dofs(self) -> int:
        """Number the free degrees of freedom node-major; return their count."""
        free = ~self.is_fixed
        self.dofnums[:, :] = -1
        self.nfreedofs = int(np.count_nonzero(free))
        self.dofnums[free] = np.arange(self.nfreedofs, dtype=np.int64)
        self._numbered = True
        return self.nfreedofs

    def gather_dofnums(self, conn: Sequence[int], out: np.ndarray = None) -> np.ndarray:
        """Equation numbers of the element with connectivity ``conn``, flattened node by node."""
        if not self._numbered:
            raise DofFieldError("Degrees of freedom must be numbered before gathering")
        dofnums = self.dofnums[np.asarray(conn)].reshape(-1)
        if out is None:
            return dofnums
        out[:] = dofnums
        return out

    def scatter_sysvec(self, U: np.ndarray) -> None:
        """Distribute a vector of free-dof values into :attr:`values`."""
        U = np.asarray(U, dtype=float).reshape(-1)
        if U.size != self.nfreedofs:
            raise DofFieldError(f"System vector has {U.size} entries, expected {self.nfreedofs}")
        free = self.dofnums >= 0
        self.values[free] = U[self.dofnums[free]]
        self.values[self.is_fixed] = self.fixed_values[self.is_fixed]

    def check_compatible(self, nnodes: int) -> None:
        """Raise unless the field has exactly ``nnodes`` nodes and is numbered."""
        if self.nnodes != nnodes:
            raise DofFieldError(f"DOF field has {self.nnodes} nodes, geometry has {nnodes}")
        if self.ncomponents != NDOF:
            raise DofFieldError(f"Shell DOF field needs {NDOF} components, got {self.ncomponents}")
        if not self._numbered:
            raise DofFieldError("Degrees of freedom must be numbered before assembly")

    def __repr__(self):
        return f"<DofField nnodes={self.nnodes} nfreedofs={self.nfreedofs}>"
