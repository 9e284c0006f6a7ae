import logging
from typing import Optional, Sequence

import numpy as np
from scipy import sparse

logger = logging.getLogger(__name__)


class SysmatAssemblerSparseSymm:
    """
    Sparse assembler of symmetric global matrices backed by ``scipy.sparse``.

    Element matrices are accumulated as coordinate triplets into buffers
    sized at :meth:`start_assembly`; duplicates are summed when the matrix
    is finalized. Rows and columns with negative equation numbers (constrained
    degrees of freedom) are dropped.

    Parameters
    ----------
    symmetrize : bool, optional
        Replace the finalized matrix by ``(K + K^T) / 2`` to remove round-off
        asymmetry, by default True.

    Attributes
    ----------
    nrows, ncols : int
        Size of the global matrix.
    buffer_pointer : int
        Number of triplets stored so far.
    """

    def __init__(self, symmetrize: bool = True):
        self.symmetrize = symmetrize
        self.nrows: int = 0
        self.ncols: int = 0
        self.buffer_pointer: int = 0
        self._rows: Optional[np.ndarray] = None
        self._cols: Optional[np.ndarray] = None
        self._vals: Optional[np.ndarray] = None

    def start_assembly(self, elem_size: int, nelem: int, nrows: int, ncols: Optional[int] = None):
        """
        Allocate the triplet buffers for a fresh assembly.

        Parameters
        ----------
        elem_size : int
            Number of rows (and columns) of one element matrix.
        nelem : int
            Number of element matrices expected.
        nrows : int
            Number of rows of the global matrix.
        ncols : int, optional
            Number of columns of the global matrix, defaults to ``nrows``.
        """
        self.nrows = int(nrows)
        self.ncols = int(nrows if ncols is None else ncols)
        capacity = max(int(elem_size) ** 2 * int(nelem), 1)
        self._rows = np.zeros(capacity, dtype=np.int64)
        self._cols = np.zeros(capacity, dtype=np.int64)
        self._vals = np.zeros(capacity, dtype=np.float64)
        self.buffer_pointer = 0
        return self

    def _ensure_started(self):
        if self._vals is None:
            raise RuntimeError("start_assembly() must be called before assembling")

    def _grow(self, needed: int):
        capacity = self._vals.size
        if self.buffer_pointer + needed <= capacity:
            return
        new_capacity = max(2 * capacity, self.buffer_pointer + needed)
        self._rows = np.resize(self._rows, new_capacity)
        self._cols = np.resize(self._cols, new_capacity)
        self._vals = np.resize(self._vals, new_capacity)

    def assemble(self, elmat: np.ndarray, dofnums: Sequence[int]) -> None:
        """
        Add one square element matrix at the equation numbers ``dofnums``.

        Entries whose row or column number is negative are skipped.
        """
        self._ensure_started()
        dofnums = np.asarray(dofnums, dtype=np.int64)
        elmat = np.asarray(elmat, dtype=np.float64)
        if elmat.shape != (dofnums.size, dofnums.size):
            raise ValueError(
                f"Element matrix shape {elmat.shape} does not match {dofnums.size} dof numbers"
            )
        keep = np.nonzero(dofnums >= 0)[0]
        if keep.size == 0:
            return
        d = dofnums[keep]
        block = elmat[np.ix_(keep, keep)]
        self.extend(np.repeat(d, d.size), np.tile(d, d.size), block.reshape(-1))

    def extend(self, rows: np.ndarray, cols: np.ndarray, vals: np.ndarray) -> None:
        """Append coordinate triplets, skipping those with negative indices."""
        self._ensure_started()
        rows = np.asarray(rows, dtype=np.int64).reshape(-1)
        cols = np.asarray(cols, dtype=np.int64).reshape(-1)
        vals = np.asarray(vals, dtype=np.float64).reshape(-1)
        if not rows.size == cols.size == vals.size:
            raise ValueError("rows, cols and vals must have the same length")
        mask = (rows >= 0) & (cols >= 0)
        if not np.all(mask):
            rows, cols, vals = rows[mask], cols[mask], vals[mask]
        if rows.size and (rows.max() >= self.nrows or cols.max() >= self.ncols):
            raise IndexError(f"Triplet index out of range for a {self.nrows}x{self.ncols} matrix")
        n = rows.size
        self._grow(n)
        p = self.buffer_pointer
        self._rows[p:p + n] = rows
        self._cols[p:p + n] = cols
        self._vals[p:p + n] = vals
        self.buffer_pointer += n

    def make_matrix(self) -> sparse.csr_matrix:
        """
        Finalize the accumulated triplets into a CSR matrix.

        Returns
        -------
        scipy.sparse.csr_matrix
            Global matrix of shape ``(nrows, ncols)`` with duplicates summed.
        """
        self._ensure_started()
        p = self.buffer_pointer
        K = sparse.coo_matrix(
            (self._vals[:p], (self._rows[:p], self._cols[:p])),
            shape=(self.nrows, self.ncols),
        ).tocsr()
        K.sum_duplicates()
        if self.symmetrize and self.nrows == self.ncols:
            K = ((K + K.T) * 0.5).tocsr()
        logger.debug("Assembled %dx%d matrix with %d stored entries", self.nrows, self.ncols, K.nnz)
        self._rows = self._cols = self._vals = None
        self.buffer_pointer = 0
        return K
