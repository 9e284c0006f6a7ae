import logging
from typing import Tuple

import numpy as np
from scipy import sparse
from scipy.sparse.linalg import ArpackNoConvergence, eigsh

from facet_shell.core.errors import SolverError

logger = logging.getLogger(__name__)


def solve_modal(
    K: sparse.spmatrix, M: sparse.spmatrix, num_modes: int = 6
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Lowest natural frequencies of the generalized problem ``K x = w^2 M x``.

    Eigenpairs are computed by shift-and-invert around zero, so ``K`` must
    be non-singular (the model needs enough constraints).

    Parameters
    ----------
    K, M : scipy.sparse matrix
        Assembled stiffness and mass matrices on the free degrees of freedom.
    num_modes : int, optional
        Number of modes requested, by default 6.

    Returns
    -------
    Tuple[np.ndarray, np.ndarray]
        Frequencies in Hz (ascending) and mode shapes as columns.
    """
    n = K.shape[0]
    if K.shape != M.shape:
        raise ValueError("Mass matrix must match stiffness dimensions")
    if not 0 < num_modes < n:
        raise ValueError(f"num_modes must be in [1, {n - 1}], got {num_modes}")

    eff_num_modes = min(num_modes + 5, n - 1)
    try:
        eigvals, eigvecs = eigsh(
            sparse.csc_matrix(K), k=eff_num_modes, M=sparse.csc_matrix(M), sigma=0.0, which="LM"
        )
    except (ArpackNoConvergence, RuntimeError) as exc:
        raise SolverError(f"Modal solve failed: {exc}") from exc

    # Drop rigid-body and spurious near-zero modes.
    valid = eigvals > 1e-8
    eigvals = eigvals[valid]
    eigvecs = eigvecs[:, valid]
    idx = np.argsort(eigvals)
    eigvals = eigvals[idx]
    eigvecs = eigvecs[:, idx]
    if eigvals.size < num_modes:
        raise SolverError(f"Only {eigvals.size} of {num_modes} requested modes converged")

    frequencies = np.sqrt(eigvals) / (2 * np.pi)
    logger.debug("Modal solve: first frequency %.6g Hz", frequencies[0])
    return frequencies[:num_modes], eigvecs[:, :num_modes]
