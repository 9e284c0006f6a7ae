"""
Element geometry: constant Jacobian, local frame, size and nodal normals.

The local frame of an element is a 3x3 orthonormal matrix whose columns are
the two in-plane axes and the normal. Its definition depends only on the
undeformed nodal coordinates, so repeated evaluations of the same element
always give the same frame.
"""

import logging
from typing import Iterable

import numpy as np

from facet_shell.core.errors import GeometryError
from facet_shell.core.mesh.entities import ElementSet, ElementType

logger = logging.getLogger(__name__)

# Relative tolerance on |a x b| / (|a| |b|) below which an element is degenerate.
DEGENERATE_TOL = 1e-12


def compute_j0(ecoords: np.ndarray, element_type: ElementType) -> np.ndarray:
    """
    Constant Jacobian of a flat facet.

    Parameters
    ----------
    ecoords : np.ndarray
        Element nodal coordinates, ``(nn, 3)``.
    element_type : ElementType
        T3 or Q4.

    Returns
    -------
    np.ndarray
        ``(3, 2)`` matrix whose columns are the two tangent vectors. Triangles
        use the edges 1-2 and 1-3; quadrilaterals use half the vectors joining
        the midpoints of opposite edges.
    """
    x = np.asarray(ecoords, dtype=float)
    J0 = np.empty((3, 2))
    if element_type == ElementType.T3:
        J0[:, 0] = x[1] - x[0]
        J0[:, 1] = x[2] - x[0]
    else:
        J0[:, 0] = ((x[2] + x[1]) / 2 - (x[3] + x[0]) / 2) / 2
        J0[:, 1] = ((x[2] + x[3]) / 2 - (x[1] + x[0]) / 2) / 2
    return J0


def local_frame(J0: np.ndarray, out: np.ndarray = None) -> np.ndarray:
    """
    Orthonormal local frame from the constant Jacobian.

    ``e3`` is the normalized cross product of the two tangent vectors, ``e1``
    is the first tangent vector normalized and ``e2 = e3 x e1``.

    Raises
    ------
    GeometryError
        If the tangent vectors are not finite or are (nearly) parallel.
    """
    a = J0[:, 0]
    b = J0[:, 1]
    if not (np.all(np.isfinite(a)) and np.all(np.isfinite(b))):
        raise GeometryError("Element coordinates are not finite")
    n = np.cross(a, b)
    na = np.linalg.norm(a)
    nb = np.linalg.norm(b)
    nn = np.linalg.norm(n)
    if na == 0.0 or nb == 0.0 or nn <= DEGENERATE_TOL * na * nb:
        raise GeometryError("Degenerate element: local frame is undefined (zero area)")
    F = np.empty((3, 3)) if out is None else out
    F[:, 2] = n / nn
    F[:, 0] = a / na
    F[:, 1] = np.cross(F[:, 2], F[:, 0])
    return F


def element_size(J0: np.ndarray, element_type: ElementType) -> float:
    """
    Characteristic element size.

    For a quadrilateral this is the square root of the area of the
    parallelogram spanned by the full bisectors; for a triangle the square
    root of twice its area (the leg of the equivalent right isosceles
    triangle).
    """
    area2 = np.linalg.norm(np.cross(J0[:, 0], J0[:, 1]))
    if element_type == ElementType.Q4:
        return float(np.sqrt(4.0 * area2))
    return float(np.sqrt(area2))


def nodal_normals(coords: np.ndarray, element_sets: Iterable[ElementSet]) -> np.ndarray:
    """
    Area-weighted average normal at each node.

    Each element adds its unnormalized normal (the cross product of its
    constant Jacobian columns) to its nodes; sums are normalized at the end.
    Elements are visited in order, so the result is deterministic.

    Returns
    -------
    np.ndarray
        Unit normals ``(nnodes, 3)``; nodes not connected to any element keep
        a zero vector.
    """
    coords = np.asarray(coords, dtype=float)
    normals = np.zeros_like(coords)
    for fes in element_sets:
        for conn in fes.conn:
            J0 = compute_j0(coords[conn], fes.element_type)
            normals[conn] += np.cross(J0[:, 0], J0[:, 1])
    lengths = np.linalg.norm(normals, axis=1)
    connected = lengths > 0.0
    normals[connected] /= lengths[connected, None]
    n_isolated = int(np.count_nonzero(~connected))
    if n_isolated:
        logger.warning("%d nodes are not connected to any element; their normals are zero", n_isolated)
    return normals
