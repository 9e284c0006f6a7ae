"""
Mesh model: node coordinates plus element sets.
"""

from typing import Dict, Iterable, List, Optional, Sequence, Union

import numpy as np

from facet_shell.core.mesh.entities import ElementSet


class MeshModel:
    """
    Shell mesh made of node coordinates and element sets.

    The mesh is owned by the caller and treated as read-only by the assembly
    routines.

    Parameters
    ----------
    coords : array_like
        Node coordinates ``(nnodes, 3)``. Two-column input is padded with z = 0.
    element_sets : Iterable[ElementSet], optional
        Element blocks of the mesh.

    Attributes
    ----------
    coords : np.ndarray
        Node coordinates.
    element_sets : List[ElementSet]
        Element blocks.
    """

    def __init__(
        self,
        coords: Union[Sequence[Sequence[float]], np.ndarray],
        element_sets: Optional[Iterable[ElementSet]] = None,
    ):
        coords = np.array(coords, dtype=float)
        if coords.ndim != 2 or coords.shape[1] not in (2, 3):
            raise ValueError(f"Coordinates must have shape (nnodes, 2|3), got {coords.shape}")
        if coords.shape[1] == 2:
            coords = np.column_stack([coords, np.zeros(coords.shape[0])])
        self.coords = coords
        self.element_sets: List[ElementSet] = []
        for fes in element_sets or []:
            self.add_element_set(fes)

    @property
    def node_count(self) -> int:
        return self.coords.shape[0]

    @property
    def element_count(self) -> int:
        return sum(fes.count() for fes in self.element_sets)

    def add_element_set(self, fes: ElementSet) -> None:
        if fes.max_node() >= self.node_count:
            raise ValueError(
                f"Element set references node {fes.max_node()}, mesh has {self.node_count} nodes"
            )
        self.element_sets.append(fes)

    def get_element_set(self, label: str) -> ElementSet:
        for fes in self.element_sets:
            if fes.label == label:
                return fes
        raise KeyError(f"Element set '{label}' not found")

    def select_nodes(self, box: Sequence[float], inflate: float = 0.0) -> np.ndarray:
        """
        Indices of nodes inside an axis-aligned box.

        Parameters
        ----------
        box : Sequence[float]
            ``[xmin, xmax, ymin, ymax, zmin, zmax]``. Infinite bounds are allowed.
        inflate : float, optional
            Amount by which the box is enlarged on every side.
        """
        box = np.asarray(box, dtype=float).reshape(3, 2)
        lo = box[:, 0] - inflate
        hi = box[:, 1] + inflate
        inside = np.all((self.coords >= lo) & (self.coords <= hi), axis=1)
        return np.nonzero(inside)[0]

    def nearest_node(self, point: Sequence[float]) -> int:
        """Index of the node closest to ``point``."""
        d = np.linalg.norm(self.coords - np.asarray(point, dtype=float), axis=1)
        return int(np.argmin(d))

    def summary(self) -> Dict[str, int]:
        return {
            "nodes": self.node_count,
            "elements": self.element_count,
            "element_sets": len(self.element_sets),
        }

    def __repr__(self):
        return f"<MeshModel nodes={self.node_count} elements={self.element_count}>"
