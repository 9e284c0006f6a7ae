"""
PETSc assembly target with the same interface as the scipy assembler.

Requires ``petsc4py`` and ``mpi4py`` (the ``petsc`` extra).
"""

import logging
from typing import List, Optional, Sequence, Tuple

import numpy as np
from mpi4py import MPI
from petsc4py import PETSc
from scipy import sparse

logger = logging.getLogger(__name__)


class PETScAssembler:
    """
    Sparse assembler producing a PETSc AIJ matrix.

    Element blocks are buffered until :meth:`make_matrix`, where the exact
    non-zero pattern is computed for preallocation and the blocks are
    inserted with ``ADD_VALUES``. The scipy solvers in
    :mod:`facet_shell.solvers` need the result converted with
    :func:`petsc_to_scipy`.

    Parameters
    ----------
    comm : MPI.Comm, optional
        Communicator of the matrix, by default ``MPI.COMM_SELF``.
    """

    def __init__(self, comm=None):
        self.comm = comm if comm is not None else MPI.COMM_SELF
        self.nrows: int = 0
        self.ncols: int = 0
        self._blocks: Optional[List[Tuple[np.ndarray, np.ndarray]]] = None
        self._triplets: List[Tuple[np.ndarray, np.ndarray, np.ndarray]] = []

    def start_assembly(self, elem_size: int, nelem: int, nrows: int, ncols: Optional[int] = None):
        self.nrows = int(nrows)
        self.ncols = int(nrows if ncols is None else ncols)
        self._blocks = []
        self._triplets = []
        return self

    def _ensure_started(self):
        if self._blocks is None:
            raise RuntimeError("start_assembly() must be called before assembling")

    def assemble(self, elmat: np.ndarray, dofnums: Sequence[int]) -> None:
        self._ensure_started()
        dofnums = np.asarray(dofnums, dtype=np.int64)
        keep = np.nonzero(dofnums >= 0)[0]
        if keep.size == 0:
            return
        block = np.asarray(elmat, dtype=np.float64)[np.ix_(keep, keep)]
        self._blocks.append((dofnums[keep], block))

    def extend(self, rows: np.ndarray, cols: np.ndarray, vals: np.ndarray) -> None:
        self._ensure_started()
        rows = np.asarray(rows, dtype=np.int64).reshape(-1)
        cols = np.asarray(cols, dtype=np.int64).reshape(-1)
        vals = np.asarray(vals, dtype=np.float64).reshape(-1)
        mask = (rows >= 0) & (cols >= 0)
        self._triplets.append((rows[mask], cols[mask], vals[mask]))

    def _compute_sparsity_pattern(self) -> np.ndarray:
        """Number of non-zeros per row, from the buffered blocks and triplets."""
        nnz = [set() for _ in range(self.nrows)]
        for dofs, _ in self._blocks:
            for dof_i in dofs:
                nnz[dof_i].update(dofs)
        for rows, cols, _ in self._triplets:
            for i, j in zip(rows, cols):
                nnz[i].add(j)
        return np.array([max(len(s), 1) for s in nnz], dtype=PETSc.IntType)

    def _create_petsc_matrix(self) -> PETSc.Mat:
        mat = PETSc.Mat().create(self.comm)
        mat.setType("aij")
        mat.setSizes([self.nrows, self.ncols])
        mat.setPreallocationNNZ(self._compute_sparsity_pattern())
        mat.setUp()
        mat.setOption(PETSc.Mat.Option.NEW_NONZERO_ALLOCATION_ERR, False)
        return mat

    def make_matrix(self) -> PETSc.Mat:
        """
        Insert all buffered contributions and assemble the matrix.

        Returns
        -------
        PETSc.Mat
            Assembled AIJ matrix, flagged symmetric.
        """
        self._ensure_started()
        K = self._create_petsc_matrix()
        for dofs, block in self._blocks:
            idx = dofs.astype(PETSc.IntType)
            K.setValues(idx, idx, block.flatten(order="C"), addv=PETSc.InsertMode.ADD_VALUES)
        for rows, cols, vals in self._triplets:
            for i, j, v in zip(rows, cols, vals):
                K.setValue(int(i), int(j), float(v), addv=PETSc.InsertMode.ADD_VALUES)
        K.assemble()
        if self.nrows == self.ncols:
            K.setOption(PETSc.Mat.Option.SYMMETRIC, True)
        logger.debug("Assembled PETSc %dx%d matrix from %d blocks", self.nrows, self.ncols, len(self._blocks))
        self._blocks = None
        self._triplets = []
        return K


def petsc_to_scipy(mat: PETSc.Mat) -> sparse.csr_matrix:
    """Copy an assembled sequential AIJ matrix into a scipy CSR matrix."""
    indptr, indices, data = mat.getValuesCSR()
    return sparse.csr_matrix((data, indices, indptr), shape=mat.getSize())
