"""
Mesh package for facet_shell.

This package provides the thin mesh layer the shell kernel consumes:
- Mesh entities (ElementType, ElementSet)
- Mesh model (MeshModel)
- Structured generators for plates and the classic shell benchmarks

Usage
-----
>>> from facet_shell.core.mesh import RectangleMesh, HemisphereMesh

Creating a simple rectangular mesh:

>>> mesh = RectangleMesh.create_rectangle(width=1.0, height=2.0, nx=10, ny=20)

Creating the quarter-hemisphere benchmark with triangles:

>>> mesh = HemisphereMesh(radius=10.0, n=8, triangular=True).generate()
"""

# Core entities
from facet_shell.core.mesh.entities import ELEMENT_NODES_MAP, ElementSet, ElementType

# Mesh generators
from facet_shell.core.mesh.generators import (
    HemisphereMesh,
    RaaschHookMesh,
    RectangleMesh,
    q4_block,
    q4_to_t3,
)

# Main mesh model
from facet_shell.core.mesh.model import MeshModel

__all__ = [
    # Entities
    "ElementSet",
    "ElementType",
    "ELEMENT_NODES_MAP",
    # Model
    "MeshModel",
    # Generators
    "RectangleMesh",
    "HemisphereMesh",
    "RaaschHookMesh",
    "q4_block",
    "q4_to_t3",
]
