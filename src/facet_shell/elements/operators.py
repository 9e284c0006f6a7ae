"""
Strain-displacement operators of the flat shell element.

All operators act on the element displacement vector laid out node by node
as ``[u, v, w, rx, ry, rz]`` in the local frame of the element. The drilling
rotation ``rz`` enters only the drilling operator, which compares it with
the in-plane rotation of the membrane field.
"""

from typing import Tuple

import numpy as np

from facet_shell.core.errors import GeometryError
from facet_shell.core.fields import NDOF, RX, RY, RZ, UX, UY, UZ


def local_gradients(
    lecoords: np.ndarray, gradNparam: np.ndarray, out: np.ndarray = None
) -> Tuple[np.ndarray, float]:
    """
    Shape function gradients with respect to the local in-plane coordinates.

    Parameters
    ----------
    lecoords : np.ndarray
        Nodal coordinates projected on the local in-plane axes, ``(nn, 2)``.
    gradNparam : np.ndarray
        Parametric gradients, ``(nn, 2)``.
    out : np.ndarray, optional
        Buffer ``(nn, 2)`` for the result.

    Returns
    -------
    Tuple[np.ndarray, float]
        ``(gradN, detJ)``.

    Raises
    ------
    GeometryError
        If the in-plane Jacobian is not positive (inverted or collapsed element).
    """
    J = lecoords.T @ gradNparam
    detJ = J[0, 0] * J[1, 1] - J[0, 1] * J[1, 0]
    if not detJ > 0.0:
        raise GeometryError(f"Non-positive Jacobian determinant {detJ:.3e} (inverted element)")
    Jinv = np.array([[J[1, 1], -J[0, 1]], [-J[1, 0], J[0, 0]]]) / detJ
    if out is None:
        return gradNparam @ Jinv, float(detJ)
    np.matmul(gradNparam, Jinv, out=out)
    return out, float(detJ)


def bm_matrix(gradN: np.ndarray, out: np.ndarray = None) -> np.ndarray:
    """Membrane operator: ``eps_xx = u,x``, ``eps_yy = v,y``, ``gamma_xy = u,y + v,x``."""
    nn = gradN.shape[0]
    B = np.zeros((3, NDOF * nn)) if out is None else out
    if out is not None:
        B.fill(0.0)
    for i in range(nn):
        c = NDOF * i
        B[0, c + UX] = gradN[i, 0]
        B[1, c + UY] = gradN[i, 1]
        B[2, c + UX] = gradN[i, 1]
        B[2, c + UY] = gradN[i, 0]
    return B


def bb_matrix(gradN: np.ndarray, out: np.ndarray = None) -> np.ndarray:
    """Bending operator: ``k_xx = ry,x``, ``k_yy = -rx,y``, ``k_xy = ry,y - rx,x``."""
    nn = gradN.shape[0]
    B = np.zeros((3, NDOF * nn)) if out is None else out
    if out is not None:
        B.fill(0.0)
    for i in range(nn):
        c = NDOF * i
        B[0, c + RY] = gradN[i, 0]
        B[1, c + RX] = -gradN[i, 1]
        B[2, c + RX] = -gradN[i, 0]
        B[2, c + RY] = gradN[i, 1]
    return B


def bs_matrix(gradN: np.ndarray, N: np.ndarray, out: np.ndarray = None) -> np.ndarray:
    """Transverse shear operator: ``gamma_xz = w,x + ry``, ``gamma_yz = w,y - rx``."""
    nn = gradN.shape[0]
    B = np.zeros((2, NDOF * nn)) if out is None else out
    if out is not None:
        B.fill(0.0)
    for i in range(nn):
        c = NDOF * i
        B[0, c + UZ] = gradN[i, 0]
        B[0, c + RY] = N[i]
        B[1, c + UZ] = gradN[i, 1]
        B[1, c + RX] = -N[i]
    return B


def bd_matrix(gradN: np.ndarray, N: np.ndarray, out: np.ndarray = None) -> np.ndarray:
    """
    Drilling operator: ``rz - (v,x - u,y) / 2``.

    The difference between the drilling rotation and the in-plane rotation
    of the membrane displacement field. It vanishes for rigid body motion.
    """
    nn = gradN.shape[0]
    B = np.zeros((1, NDOF * nn)) if out is None else out
    if out is not None:
        B.fill(0.0)
    for i in range(nn):
        c = NDOF * i
        B[0, c + UX] = 0.5 * gradN[i, 1]
        B[0, c + UY] = -0.5 * gradN[i, 0]
        B[0, c + RZ] = N[i]
    return B


def add_btdb_ut_only(K: np.ndarray, B: np.ndarray, factor: float, D: np.ndarray) -> np.ndarray:
    """Accumulate the upper triangle of ``factor * B^T D B`` into ``K`` in place."""
    K += np.triu(factor * (B.T @ (D @ B)))
    return K


def complete_lt(K: np.ndarray) -> np.ndarray:
    """Mirror the upper triangle of ``K`` into its strict lower triangle, in place."""
    lower = np.tril_indices(K.shape[0], -1)
    K[lower] = K.T[lower]
    return K
