"""
Structured mesh generators.

These produce the small analytic geometries used by the examples and the
benchmark tests. General meshing and mesh import are left to external tools.
"""

from typing import Tuple

import numpy as np

from facet_shell.core.mesh.entities import ElementSet, ElementType
from facet_shell.core.mesh.model import MeshModel


def q4_block(width: float, height: float, nx: int, ny: int) -> Tuple[np.ndarray, np.ndarray]:
    """
    Structured grid of quadrilaterals on ``[0, width] x [0, height]``.

    Node ``i + j * (nx + 1)`` sits at column ``i``, row ``j``; elements are
    numbered row by row and oriented counter-clockwise.

    Returns
    -------
    Tuple[np.ndarray, np.ndarray]
        ``(coords (nnodes, 3), conn (nx * ny, 4))``.
    """
    if nx < 1 or ny < 1:
        raise ValueError("nx and ny must be positive")
    x = np.linspace(0.0, width, nx + 1)
    y = np.linspace(0.0, height, ny + 1)
    X, Y = np.meshgrid(x, y)
    coords = np.column_stack([X.ravel(), Y.ravel(), np.zeros(X.size)])
    conn = []
    for j in range(ny):
        for i in range(nx):
            n0 = i + j * (nx + 1)
            conn.append((n0, n0 + 1, n0 + nx + 2, n0 + nx + 1))
    return coords, np.array(conn, dtype=np.int64)


def q4_to_t3(conn: np.ndarray) -> np.ndarray:
    """Split every quadrilateral (a, b, c, d) into triangles (a, b, c) and (a, c, d)."""
    conn = np.asarray(conn, dtype=np.int64)
    tris = np.empty((2 * conn.shape[0], 3), dtype=np.int64)
    tris[0::2] = conn[:, [0, 1, 2]]
    tris[1::2] = conn[:, [0, 2, 3]]
    return tris


def _element_set(conn: np.ndarray, triangular: bool, label: str) -> ElementSet:
    if triangular:
        return ElementSet(q4_to_t3(conn), ElementType.T3, label)
    return ElementSet(conn, ElementType.Q4, label)


class RectangleMesh:
    """
    Flat rectangular plate in the x-y plane.

    Parameters
    ----------
    width, height : float
        Plate dimensions along x and y.
    nx, ny : int
        Number of element divisions along x and y.
    triangular : bool, optional
        Split each quadrilateral into two triangles.
    """

    def __init__(self, width: float, height: float, nx: int, ny: int, triangular: bool = False):
        self.width = width
        self.height = height
        self.nx = nx
        self.ny = ny
        self.triangular = triangular

    def generate(self) -> MeshModel:
        coords, conn = q4_block(self.width, self.height, self.nx, self.ny)
        return MeshModel(coords, [_element_set(conn, self.triangular, "plate")])

    @classmethod
    def create_rectangle(
        cls, width: float, height: float, nx: int, ny: int, triangular: bool = False
    ) -> MeshModel:
        return cls(width, height, nx, ny, triangular).generate()


class HemisphereMesh:
    """
    Quarter of a hemisphere with a hole at the pole (MacNeal-Harder).

    The patch covers the first octant: longitude 0..90 degrees and latitude
    0..(90 - hole_angle) degrees. The equator lies in the plane z = 0; node 0
    is at (R, 0, 0) and node ``n`` is at (0, R, 0).

    Parameters
    ----------
    radius : float
        Sphere radius.
    n : int
        Element divisions along each parametric direction.
    hole_angle : float, optional
        Half-angle of the polar hole in degrees, by default 18.
    triangular : bool, optional
        Split each quadrilateral into two triangles.
    """

    def __init__(self, radius: float, n: int, hole_angle: float = 18.0, triangular: bool = False):
        self.radius = radius
        self.n = n
        self.hole_angle = hole_angle
        self.triangular = triangular

    def generate(self) -> MeshModel:
        coords, conn = q4_block(90.0, 90.0 - self.hole_angle, self.n, self.n)
        phi = np.radians(coords[:, 0])
        psi = np.radians(coords[:, 1])
        xyz = self.radius * np.column_stack([
            np.cos(psi) * np.cos(phi),
            np.cos(psi) * np.sin(phi),
            np.sin(psi),
        ])
        return MeshModel(xyz, [_element_set(conn, self.triangular, "hemisphere")])


class RaaschHookMesh:
    """
    Raasch hook: a strip made of two tangent circular arcs curving in opposite senses.

    The clamped end lies at x = 0. The first arc (radius ``r1``) spans 60
    degrees, the second (radius ``r2``) spans 150 degrees and ends at the free
    edge, x = 97.9615, y = -16 for the default dimensions. The strip extends
    along z from 0 to ``width``.

    Parameters
    ----------
    nl : int
        Element divisions along the arcs.
    nw : int
        Element divisions across the width.
    triangular : bool, optional
        Split each quadrilateral into two triangles.
    r1, r2 : float, optional
        Arc radii, by default 14 and 46 (inches).
    width : float, optional
        Strip width, by default 20 (inches).
    """

    def __init__(
        self,
        nl: int,
        nw: int,
        triangular: bool = False,
        r1: float = 14.0,
        r2: float = 46.0,
        width: float = 20.0,
    ):
        self.nl = nl
        self.nw = nw
        self.triangular = triangular
        self.r1 = r1
        self.r2 = r2
        self.width = width

    def _centerline(self) -> np.ndarray:
        a1 = np.radians(60.0)
        a2 = np.radians(150.0)
        length1 = self.r1 * a1
        length2 = self.r2 * a2
        n1 = max(1, int(round(self.nl * length1 / (length1 + length2))))
        n2 = max(1, self.nl - n1)

        # First arc: starts at the origin heading +x, turning counter-clockwise.
        t1 = np.linspace(0.0, a1, n1 + 1)
        arc1 = np.column_stack([self.r1 * np.sin(t1), self.r1 * (1.0 - np.cos(t1))])
        # Second arc: continues from the tangent point, turning clockwise.
        tangent_point = arc1[-1]
        center2 = tangent_point + self.r2 * np.array([np.sin(a1), -np.cos(a1)])
        t2 = np.linspace(np.radians(150.0), np.radians(150.0) - a2, n2 + 1)[1:]
        arc2 = center2 + self.r2 * np.column_stack([np.cos(t2), np.sin(t2)])
        return np.vstack([arc1, arc2])

    def generate(self) -> MeshModel:
        line = self._centerline()
        nl = line.shape[0] - 1
        z = np.linspace(0.0, self.width, self.nw + 1)
        coords = np.array([[p[0], p[1], zj] for zj in z for p in line])
        conn = []
        for j in range(self.nw):
            for i in range(nl):
                n0 = i + j * (nl + 1)
                conn.append((n0, n0 + 1, n0 + nl + 2, n0 + nl + 1))
        conn = np.array(conn, dtype=np.int64)
        return MeshModel(coords, [_element_set(conn, self.triangular, "hook")])
