"""
Shell Model Configuration Module.

This module provides a YAML-based configuration system for shell models,
allowing users to describe the material, the element formulation and the
assembly options without writing Python code.

Example YAML configuration:
    mesh:
      type: "HemisphereMesh"
      params:
        radius: 10.0
        n: 8
        triangular: true

    material:
      type: "isotropic"
      name: "steel"
      E: 2.1e11
      nu: 0.3
      rho: 7850.0

    elements:
      type: "T3"
      thickness: 0.01
      stabilization: "projected_normal"
      integration_order: 3
      drilling_stiffness_scale: 1.0

    assembly:
      n_workers: 1
      backend: "scipy"
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from facet_shell.core.integration import rule_for
from facet_shell.core.material import (
    SHEAR_CORRECTION_FACTOR,
    IsotropicMaterial,
    Material,
    OrthotropicMaterial,
)
from facet_shell.core.mesh import ElementSet, ElementType, HemisphereMesh, MeshModel
from facet_shell.core.mesh import RaaschHookMesh, RectangleMesh
from facet_shell.elements import ShellFEMM, Stabilization, make_femm

logger = logging.getLogger(__name__)


class MaterialType(str, Enum):
    """Type of material model."""

    ISOTROPIC = "isotropic"
    ORTHOTROPIC = "orthotropic"


class AssemblyBackend(str, Enum):
    """Sparse matrix library receiving the assembled system."""

    SCIPY = "scipy"
    PETSC = "petsc"


class MeshGeneratorType(str, Enum):
    """Available mesh generators."""

    RECTANGLE = "RectangleMesh"
    HEMISPHERE = "HemisphereMesh"
    RAASCH_HOOK = "RaaschHookMesh"


_GENERATORS = {
    MeshGeneratorType.RECTANGLE: RectangleMesh,
    MeshGeneratorType.HEMISPHERE: HemisphereMesh,
    MeshGeneratorType.RAASCH_HOOK: RaaschHookMesh,
}


# =============================================================================
# Configuration Data Classes
# =============================================================================


@dataclass
class MeshGeneratorConfig:
    """Structured mesh generator and its parameters."""

    type: str
    params: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        valid = [g.value for g in MeshGeneratorType]
        if self.type not in valid:
            raise ValueError(f"Invalid mesh generator: {self.type}. Valid options: {valid}")

    def generate(self) -> MeshModel:
        return _GENERATORS[MeshGeneratorType(self.type)](**self.params).generate()


@dataclass
class MaterialConfig:
    """Complete material configuration."""

    type: str
    name: str = "Material"
    # Isotropic properties
    E: Optional[Union[float, List[float]]] = None
    nu: Optional[Union[float, List[float]]] = None
    rho: Optional[float] = None
    # Orthotropic additional property
    G: Optional[List[float]] = None

    def __post_init__(self):
        if self.type not in (MaterialType.ISOTROPIC.value, MaterialType.ORTHOTROPIC.value):
            raise ValueError(f"Invalid material type: {self.type}")
        if self.E is None or self.nu is None or self.rho is None:
            raise ValueError(f"Material '{self.name}' requires E, nu, and rho")
        if self.type == MaterialType.ORTHOTROPIC.value and self.G is None:
            raise ValueError("Orthotropic material requires G")

    def build(self) -> Material:
        """Create the material object described by this configuration."""
        if self.type == MaterialType.ISOTROPIC.value:
            return IsotropicMaterial(
                name=self.name,
                E=float(self.E) if not isinstance(self.E, list) else self.E[0],
                nu=float(self.nu) if not isinstance(self.nu, list) else self.nu[0],
                rho=float(self.rho),
            )
        return OrthotropicMaterial(
            name=self.name,
            E=tuple(self.E) if isinstance(self.E, list) else (self.E, self.E, self.E),
            G=tuple(self.G),
            nu=tuple(self.nu) if isinstance(self.nu, list) else (self.nu, self.nu, self.nu),
            rho=float(self.rho),
        )


@dataclass
class ElementConfig:
    """Element formulation configuration."""

    type: str
    thickness: float
    stabilization: str = Stabilization.ENERGY_SAMPLING.value
    integration_order: Optional[int] = None
    drilling_stiffness_scale: float = 1.0
    shear_correction: float = SHEAR_CORRECTION_FACTOR

    def __post_init__(self):
        if self.type not in ElementType.__members__:
            raise ValueError(f"Invalid element type: {self.type}")
        if self.thickness is None or self.thickness <= 0:
            raise ValueError(f"Shell thickness must be positive: {self.thickness}")
        valid = [s.value for s in Stabilization]
        if self.stabilization not in valid:
            raise ValueError(f"Invalid stabilization: {self.stabilization}. Valid options: {valid}")
        if self.drilling_stiffness_scale <= 0:
            raise ValueError("drilling_stiffness_scale must be positive")

    @property
    def element_type(self) -> ElementType:
        return ElementType[self.type]


@dataclass
class AssemblyConfig:
    """Assembly options."""

    n_workers: int = 1
    backend: str = AssemblyBackend.SCIPY.value

    def __post_init__(self):
        if not isinstance(self.n_workers, int) or self.n_workers < 1:
            raise ValueError(f"n_workers must be a positive integer: {self.n_workers}")
        valid = [b.value for b in AssemblyBackend]
        if self.backend not in valid:
            raise ValueError(f"Invalid assembly backend: {self.backend}. Valid options: {valid}")

    def make_assembler(self):
        """
        Create a fresh assembler for the configured backend.

        PETSc matrices must go through
        :func:`~facet_shell.core.petsc_assembler.petsc_to_scipy` before
        :func:`~facet_shell.solvers.solve_static`.
        """
        if self.backend == AssemblyBackend.PETSC.value:
            from facet_shell.core.petsc_assembler import PETScAssembler

            return PETScAssembler()
        from facet_shell.core.assembler import SysmatAssemblerSparseSymm

        return SysmatAssemblerSparseSymm()


@dataclass
class ShellModelConfig:
    """Complete shell model configuration."""

    material: MaterialConfig
    elements: ElementConfig
    assembly: AssemblyConfig = field(default_factory=AssemblyConfig)
    mesh: Optional[MeshGeneratorConfig] = None

    @classmethod
    def from_yaml(cls, yaml_path: Union[str, Path]) -> "ShellModelConfig":
        """Load configuration from YAML file.

        Parameters
        ----------
        yaml_path : str or Path
            Path to the YAML configuration file.

        Returns
        -------
        ShellModelConfig
            Validated configuration object.

        Raises
        ------
        FileNotFoundError
            If the YAML file does not exist.
        ValueError
            If the configuration is invalid.
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

        with open(yaml_path, "r") as f:
            data = yaml.safe_load(f)

        config = cls.from_dict(data or {})
        logger.info("Loaded shell model configuration from %s", yaml_path)
        return config

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ShellModelConfig":
        """Create configuration from dictionary.

        Parameters
        ----------
        data : dict
            Configuration dictionary.

        Returns
        -------
        ShellModelConfig
            Validated configuration object.
        """
        if "material" not in data or "elements" not in data:
            raise ValueError("Configuration requires 'material' and 'elements' sections")

        mat_data = data["material"]
        material_config = MaterialConfig(
            type=mat_data.get("type", "isotropic"),
            name=mat_data.get("name", "Material"),
            E=mat_data.get("E"),
            nu=mat_data.get("nu"),
            rho=mat_data.get("rho"),
            G=mat_data.get("G"),
        )

        elem_data = data["elements"]
        element_config = ElementConfig(
            type=elem_data.get("type", "Q4"),
            thickness=elem_data.get("thickness"),
            stabilization=elem_data.get("stabilization", Stabilization.ENERGY_SAMPLING.value),
            integration_order=elem_data.get("integration_order"),
            drilling_stiffness_scale=elem_data.get("drilling_stiffness_scale", 1.0),
            shear_correction=elem_data.get("shear_correction", SHEAR_CORRECTION_FACTOR),
        )

        asm_data = data.get("assembly", {})
        assembly_config = AssemblyConfig(
            n_workers=asm_data.get("n_workers", 1),
            backend=asm_data.get("backend", AssemblyBackend.SCIPY.value),
        )

        mesh_config = None
        if data.get("mesh"):
            mesh_config = MeshGeneratorConfig(
                type=data["mesh"].get("type"),
                params=data["mesh"].get("params", {}),
            )

        return cls(
            material=material_config,
            elements=element_config,
            assembly=assembly_config,
            mesh=mesh_config,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary for serialization."""
        result = {
            "material": {
                "type": self.material.type,
                "name": self.material.name,
                "E": self.material.E,
                "nu": self.material.nu,
                "rho": self.material.rho,
            },
            "elements": {
                "type": self.elements.type,
                "thickness": self.elements.thickness,
                "stabilization": self.elements.stabilization,
                "drilling_stiffness_scale": self.elements.drilling_stiffness_scale,
                "shear_correction": self.elements.shear_correction,
            },
            "assembly": {
                "n_workers": self.assembly.n_workers,
                "backend": self.assembly.backend,
            },
        }

        if self.material.G:
            result["material"]["G"] = self.material.G

        if self.elements.integration_order is not None:
            result["elements"]["integration_order"] = self.elements.integration_order

        if self.mesh:
            result["mesh"] = {"type": self.mesh.type, "params": dict(self.mesh.params)}

        return result

    def save_yaml(self, yaml_path: Union[str, Path]) -> None:
        """Save configuration to YAML file.

        Parameters
        ----------
        yaml_path : str or Path
            Path to the output YAML file.
        """
        with open(yaml_path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    def build_femm(self, element_set: ElementSet) -> ShellFEMM:
        """Create the configured shell formulation for ``element_set``.

        Raises
        ------
        ValueError
            If the element set family differs from the configured one.
        """
        if element_set.element_type != self.elements.element_type:
            raise ValueError(
                f"Configuration is for {self.elements.type} elements, "
                f"element set holds {element_set.element_type.name}"
            )
        rule = rule_for(self.elements.element_type, self.elements.integration_order)
        return make_femm(
            element_set,
            self.material.build(),
            self.elements.thickness,
            self.elements.stabilization,
            integration_rule=rule,
            drilling_stiffness_scale=self.elements.drilling_stiffness_scale,
            shear_correction=self.elements.shear_correction,
        )

    def build_mesh(self) -> MeshModel:
        """Generate the configured mesh."""
        if self.mesh is None:
            raise ValueError("Configuration has no 'mesh' section")
        return self.mesh.generate()
