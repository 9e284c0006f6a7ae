import logging
import warnings

import numpy as np
from scipy import sparse
from scipy.sparse.linalg import MatrixRankWarning, spsolve

from facet_shell.core.errors import SolverError
from facet_shell.core.fields import DofField

logger = logging.getLogger(__name__)


def solve_static(K: sparse.spmatrix, F: np.ndarray, dchi: DofField = None) -> np.ndarray:
    """
    Solve the linear static system ``K U = F`` on the free degrees of freedom.

    ``F`` must already hold the loads of nonzero prescribed values, see
    :meth:`facet_shell.elements.ShellFEMM.nonzero_ebc_loads`. A PETSc matrix
    from the ``petsc`` assembly backend has to be converted with
    :func:`facet_shell.core.petsc_assembler.petsc_to_scipy` first.

    Parameters
    ----------
    K : scipy.sparse matrix
        Assembled stiffness matrix.
    F : np.ndarray
        Load vector.
    dchi : DofField, optional
        When given, the solution is scattered into ``dchi.values``; the
        constrained entries take their prescribed values.

    Returns
    -------
    np.ndarray
        Solution vector of the free degrees of freedom.

    Raises
    ------
    SolverError
        If the system is singular or the solution is not finite.
    """
    F = np.asarray(F, dtype=float).reshape(-1)
    if K.shape[0] != K.shape[1]:
        raise ValueError("Stiffness matrix must be square")
    if K.shape[0] != F.size:
        raise ValueError("Stiffness and load dimensions mismatch")

    with warnings.catch_warnings():
        warnings.simplefilter("error", MatrixRankWarning)
        try:
            U = spsolve(sparse.csc_matrix(K), F)
        except (MatrixRankWarning, RuntimeError) as exc:
            raise SolverError("Stiffness matrix is singular; check the constraints") from exc
    U = np.atleast_1d(U)
    if not np.all(np.isfinite(U)):
        raise SolverError("Static solution contains non-finite values")

    residual = np.linalg.norm(K @ U - F)
    logger.debug("Static solve: %d equations, residual %.3e", F.size, residual)
    if dchi is not None:
        dchi.scatter_sysvec(U)
    return U
