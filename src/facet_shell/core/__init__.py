"""
Core module for facet-shell.

Provides the mesh layer, integration rules, materials, degree-of-freedom
fields, boundary conditions and sparse assembly targets.
"""

from .assembler import SysmatAssemblerSparseSymm
from .bc import DirichletCondition, apply_dirichlet, nodal_load_vector
from .errors import (
    AssemblyError,
    DofFieldError,
    GeometryError,
    GeometryNotAssociatedError,
    MaterialError,
    ShellError,
    SolverError,
)
from .fields import NDOF, RX, RY, RZ, UX, UY, UZ, DofField, NodalField, dof_index
from .material import FieldMaterial, IsotropicMaterial, OrthotropicMaterial, reduce_moduli

__all__ = [
    "SysmatAssemblerSparseSymm",
    "DirichletCondition",
    "apply_dirichlet",
    "nodal_load_vector",
    "AssemblyError",
    "DofFieldError",
    "GeometryError",
    "GeometryNotAssociatedError",
    "MaterialError",
    "ShellError",
    "SolverError",
    "NDOF",
    "UX",
    "UY",
    "UZ",
    "RX",
    "RY",
    "RZ",
    "DofField",
    "NodalField",
    "dof_index",
    "FieldMaterial",
    "IsotropicMaterial",
    "OrthotropicMaterial",
    "reduce_moduli",
]
