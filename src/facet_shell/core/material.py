"""
Materials and the shell material reduction.

Every material exposes ``tangent_moduli(thickness, loc)`` returning the 6x6
three-dimensional elastic tangent tensor in the component ordering

    [xx, yy, zz, xy, xz, yz]

(three normal components, the in-plane shear, the two transverse shears),
with engineering shear strains, and ``mass_density()``.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Union

import numpy as np

from facet_shell.core.errors import MaterialError

SHEAR_CORRECTION_FACTOR = 5.0 / 6.0

# Rows of the 3D tensor that carry the in-plane (plane-stress) response.
_IN_PLANE = (0, 1, 3)
_TRANSVERSE_SHEAR = (4, 5)


@dataclass
class IsotropicMaterial:
    """
    Class representing an isotropic material with uniform properties in all directions.

    Parameters
    ----------
    name : str
        The name of the material.
    E : float
        Young's Modulus of the material.
    nu : float
        Poisson's ratio of the material.
    rho : float
        Density of the material.
    """

    name: str
    E: float
    nu: float
    rho: float

    def __post_init__(self):
        if self.E <= 0:
            raise MaterialError(f"Young's modulus must be positive: {self.E}")
        if not -1 < self.nu < 0.5:
            raise MaterialError(f"Poisson's ratio must be in (-1, 0.5): {self.nu}")
        if self.rho < 0:
            raise MaterialError(f"Density must be non-negative: {self.rho}")

    @property
    def homogeneous(self) -> bool:
        return True

    def mass_density(self) -> float:
        return float(self.rho)

    def tangent_moduli(self, thickness: float = 0.0, loc: Optional[np.ndarray] = None) -> np.ndarray:
        lam = self.E * self.nu / ((1 + self.nu) * (1 - 2 * self.nu))
        mu = self.E / (2 * (1 + self.nu))
        D = np.zeros((6, 6))
        D[0:3, 0:3] = lam
        D[0:3, 0:3] += 2 * mu * np.eye(3)
        D[3, 3] = D[4, 4] = D[5, 5] = mu
        return D


@dataclass
class OrthotropicMaterial:
    """
    Class representing an orthotropic material with different properties in three orthogonal directions.

    The material axes are assumed to coincide with the element local frame.

    Parameters
    ----------
    name : str
        The name of the material.
    E : Tuple[float, float, float]
        Young's Modulus in three directions (E1, E2, E3).
    G : Tuple[float, float, float]
        Shear Modulus in three planes (G12, G23, G31).
    nu : Tuple[float, float, float]
        Poisson's ratio in three planes (nu12, nu23, nu31).
    rho : float
        Density of the material.
    """

    name: str
    E: Tuple[float, float, float]
    G: Tuple[float, float, float]
    nu: Tuple[float, float, float]
    rho: float

    def __post_init__(self):
        if len(self.E) != 3 or len(self.G) != 3 or len(self.nu) != 3:
            raise MaterialError("E, G and nu must have 3 components")
        if min(self.E) <= 0 or min(self.G) <= 0:
            raise MaterialError("Moduli must be positive")

    @property
    def homogeneous(self) -> bool:
        return True

    def mass_density(self) -> float:
        return float(self.rho)

    def tangent_moduli(self, thickness: float = 0.0, loc: Optional[np.ndarray] = None) -> np.ndarray:
        E1, E2, E3 = self.E
        G12, G23, G31 = self.G
        nu12, nu23, nu31 = self.nu
        S = np.zeros((6, 6))
        S[0, 0] = 1 / E1
        S[1, 1] = 1 / E2
        S[2, 2] = 1 / E3
        S[0, 1] = S[1, 0] = -nu12 / E1
        S[1, 2] = S[2, 1] = -nu23 / E2
        S[0, 2] = S[2, 0] = -nu31 / E3
        S[3, 3] = 1 / G12
        S[4, 4] = 1 / G31
        S[5, 5] = 1 / G23
        try:
            return np.linalg.inv(S)
        except np.linalg.LinAlgError as exc:
            raise MaterialError(f"Compliance of material '{self.name}' is singular") from exc


@dataclass
class FieldMaterial:
    """
    Material whose tangent tensor varies with thickness and position.

    Parameters
    ----------
    name : str
        The name of the material.
    moduli : Callable[[float, np.ndarray], np.ndarray]
        Returns the 6x6 tangent tensor at ``(thickness, loc)``.
    rho : float
        Density of the material.
    """

    name: str
    moduli: Callable[[float, np.ndarray], np.ndarray]
    rho: float

    @property
    def homogeneous(self) -> bool:
        return False

    def mass_density(self) -> float:
        return float(self.rho)

    def tangent_moduli(self, thickness: float = 0.0, loc: Optional[np.ndarray] = None) -> np.ndarray:
        try:
            D = self.moduli(thickness, loc)
        except Exception as exc:
            raise MaterialError(f"Evaluation of material '{self.name}' failed: {exc}") from exc
        return np.asarray(D, dtype=float)


Material = Union[IsotropicMaterial, OrthotropicMaterial, FieldMaterial]


def reduce_moduli(
    D: np.ndarray, shear_correction: float = SHEAR_CORRECTION_FACTOR
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Reduce a 3D tangent tensor to the shell constitutive blocks.

    The through-thickness normal stress is condensed out of the normal block
    (Schur complement against row/column ``zz``), and the in-plane shear row
    and column are merged in to form the plane-stress matrix. The transverse
    shear block is the diagonal of the two transverse shear moduli scaled by
    the shear correction factor.

    Parameters
    ----------
    D : np.ndarray
        6x6 tangent tensor, ordering [xx, yy, zz, xy, xz, yz].
    shear_correction : float, optional
        Transverse shear correction factor, by default 5/6.

    Returns
    -------
    Tuple[np.ndarray, np.ndarray]
        (Dps, Dt): 3x3 plane-stress block and 2x2 transverse shear block.

    Raises
    ------
    MaterialError
        If the tensor is not a finite symmetric 6x6 matrix with positive
        through-thickness stiffness.
    """
    D = np.asarray(D, dtype=float)
    if D.shape != (6, 6):
        raise MaterialError(f"Tangent tensor must be 6x6, got {D.shape}")
    if not np.all(np.isfinite(D)):
        raise MaterialError("Tangent tensor contains non-finite entries")
    if not np.allclose(D, D.T, rtol=1e-10, atol=1e-12 * np.max(np.abs(D))):
        raise MaterialError("Tangent tensor must be symmetric")
    if D[2, 2] <= 0.0:
        raise MaterialError("Through-thickness stiffness must be positive")

    Dps = np.zeros((3, 3))
    Dps[0:2, 0:2] = D[0:2, 0:2] - np.outer(D[0:2, 2], D[2, 0:2]) / D[2, 2]
    for i, ix in enumerate(_IN_PLANE):
        Dps[2, i] = Dps[i, 2] = D[3, ix]

    Dt = np.zeros((2, 2))
    for i, ix in enumerate(_TRANSVERSE_SHEAR):
        Dt[i, i] = D[ix, ix]
    Dt *= shear_correction
    return Dps, Dt


def shell_material_stiffness(
    material: Material,
    thickness: float = 0.0,
    loc: Optional[np.ndarray] = None,
    shear_correction: float = SHEAR_CORRECTION_FACTOR,
) -> Tuple[np.ndarray, np.ndarray]:
    """Evaluate the material and reduce it to ``(Dps, Dt)``."""
    return reduce_moduli(material.tangent_moduli(thickness, loc), shear_correction)
