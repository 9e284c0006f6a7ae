"""
Mesh entities module.

This module contains the building blocks of a shell mesh:
- ElementType: the supported flat-facet element families
- ElementSet: a block of elements of one family with integer connectivity
"""

from enum import IntEnum
from typing import Optional, Sequence, Union

import numpy as np


class ElementType(IntEnum):
    """Enumeration of supported shell element families.

    Values are the number of nodes per element.
    """

    T3 = 3
    Q4 = 4

    @property
    def nodes_per_elem(self) -> int:
        return int(self.value)

    @property
    def meshio_name(self) -> str:
        return "triangle" if self == ElementType.T3 else "quad"


# Mapping from node count to element type (for automatic element type detection)
ELEMENT_NODES_MAP = {3: ElementType.T3, 4: ElementType.Q4}


class ElementSet:
    """
    A set of shell elements of one family.

    Parameters
    ----------
    conn : array_like
        Connectivity of shape ``(nelem, nodes_per_elem)``, 0-based node indices.
    element_type : ElementType, optional
        Family of the elements. Detected from the number of columns if omitted.
    label : str, optional
        Name of the set.

    Raises
    ------
    ValueError
        If the connectivity does not match the element family.
    """

    def __init__(
        self,
        conn: Union[Sequence[Sequence[int]], np.ndarray],
        element_type: Optional[ElementType] = None,
        label: Optional[str] = None,
    ):
        conn = np.array(conn, dtype=np.int64)
        if conn.ndim != 2:
            raise ValueError(f"Connectivity must be two-dimensional, got shape {conn.shape}")
        if element_type is None:
            try:
                element_type = ELEMENT_NODES_MAP[conn.shape[1]]
            except KeyError:
                raise ValueError(f"No shell element with {conn.shape[1]} nodes") from None
        if conn.shape[1] != element_type.nodes_per_elem:
            raise ValueError(
                f"{element_type.name} elements need {element_type.nodes_per_elem} nodes, "
                f"connectivity has {conn.shape[1]}"
            )
        if conn.size and conn.min() < 0:
            raise ValueError("Connectivity contains negative node indices")
        conn.setflags(write=False)
        self.conn = conn
        self.element_type = element_type
        self.label = label

    def count(self) -> int:
        return self.conn.shape[0]

    def nodes_per_elem(self) -> int:
        return self.element_type.nodes_per_elem

    def max_node(self) -> int:
        return int(self.conn.max()) if self.conn.size else -1

    def subset(self, indices: Sequence[int]) -> "ElementSet":
        return ElementSet(self.conn[np.asarray(indices)], self.element_type, self.label)

    def __len__(self):
        return self.count()

    def __repr__(self):
        return f"<ElementSet type={self.element_type.name} count={self.count()} label={self.label}>"
