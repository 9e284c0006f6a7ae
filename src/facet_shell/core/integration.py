"""
Integration rules for the shell element families.

A rule bundles, for every quadrature point, the parametric location, the
shape function values ``N`` (shape ``(nn,)``), the parametric gradients
``gradNparam`` (shape ``(nn, 2)``) and the weight. Rules are shared
read-only between all elements of a family.
"""

from dataclasses import dataclass
from typing import Iterator, Tuple

import numpy as np

from facet_shell.core.mesh.entities import ElementType


def shape_t3(r: float, s: float) -> Tuple[np.ndarray, np.ndarray]:
    """Linear triangle on the unit triangle, nodes (0,0), (1,0), (0,1)."""
    N = np.array([1.0 - r - s, r, s])
    gradN = np.array([[-1.0, -1.0], [1.0, 0.0], [0.0, 1.0]])
    return N, gradN


def shape_q4(xi: float, eta: float) -> Tuple[np.ndarray, np.ndarray]:
    """
    Bilinear Q4 shape functions on [-1,1]^2 with node ordering:
      1(-1,-1), 2(1,-1), 3(1,1), 4(-1,1).
    """
    N = 0.25 * np.array([
        (1.0 - xi) * (1.0 - eta),
        (1.0 + xi) * (1.0 - eta),
        (1.0 + xi) * (1.0 + eta),
        (1.0 - xi) * (1.0 + eta),
    ])
    gradN = 0.25 * np.array([
        [-(1.0 - eta), -(1.0 - xi)],
        [(1.0 - eta), -(1.0 + xi)],
        [(1.0 + eta), (1.0 + xi)],
        [-(1.0 + eta), (1.0 - xi)],
    ])
    return N, gradN


_SHAPE = {ElementType.T3: shape_t3, ElementType.Q4: shape_q4}


@dataclass(frozen=True, eq=False)
class IntegrationRule:
    """
    Quadrature data for one element family.

    Attributes
    ----------
    element_type : ElementType
        Family the shape functions belong to.
    param_coords : np.ndarray
        Parametric coordinates of the points, ``(npts, 2)``.
    weights : np.ndarray
        Quadrature weights, ``(npts,)``.
    Ns : Tuple[np.ndarray, ...]
        Shape function values at each point.
    gradNparams : Tuple[np.ndarray, ...]
        Parametric shape function gradients at each point.
    """

    element_type: ElementType
    param_coords: np.ndarray
    weights: np.ndarray
    Ns: Tuple[np.ndarray, ...]
    gradNparams: Tuple[np.ndarray, ...]

    @classmethod
    def from_points(cls, element_type: ElementType, points, weights) -> "IntegrationRule":
        shape = _SHAPE[element_type]
        points = np.array(points, dtype=float).reshape(-1, 2)
        weights = np.array(weights, dtype=float).reshape(-1)
        Ns, gradNs = zip(*(shape(*p) for p in points))
        for a in (points, weights, *Ns, *gradNs):
            a.setflags(write=False)
        return cls(element_type, points, weights, tuple(Ns), tuple(gradNs))

    @property
    def npts(self) -> int:
        return len(self.weights)

    def __iter__(self) -> Iterator[Tuple[np.ndarray, np.ndarray, float]]:
        for N, gradN, w in zip(self.Ns, self.gradNparams, self.weights):
            yield N, gradN, float(w)

    def __repr__(self):
        return f"<IntegrationRule {self.element_type.name} npts={self.npts}>"


def tri_rule(npts: int = 1) -> IntegrationRule:
    """Triangle rule over the unit triangle; weights sum to 1/2."""
    if npts == 1:
        return IntegrationRule.from_points(ElementType.T3, [[1 / 3, 1 / 3]], [0.5])
    if npts == 3:
        return IntegrationRule.from_points(
            ElementType.T3,
            [[1 / 6, 1 / 6], [2 / 3, 1 / 6], [1 / 6, 2 / 3]],
            [1 / 6, 1 / 6, 1 / 6],
        )
    raise ValueError(f"Unsupported triangle rule with {npts} points (use 1 or 3)")


def gauss_rule(order: int = 2) -> IntegrationRule:
    """Tensor-product Gauss rule over [-1,1]^2 for quadrilaterals."""
    if order == 1:
        return IntegrationRule.from_points(ElementType.Q4, [[0.0, 0.0]], [4.0])
    if order == 2:
        gp = 1 / np.sqrt(3)
        points = [(-gp, -gp), (gp, -gp), (gp, gp), (-gp, gp)]
        return IntegrationRule.from_points(ElementType.Q4, points, [1.0, 1.0, 1.0, 1.0])
    raise ValueError(f"Unsupported Gauss rule of order {order} (use 1 or 2)")


def rule_for(element_type: ElementType, order: int = None) -> IntegrationRule:
    """
    Default rule of a family.

    Triangles use the 3-point rule and quadrilaterals the 2x2 Gauss rule,
    both exact for the stiffness of a flat element.
    """
    if element_type == ElementType.T3:
        return tri_rule(3 if order is None else order)
    return gauss_rule(2 if order is None else order)


def centroid_shape(element_type: ElementType) -> np.ndarray:
    """Shape function values at the element center."""
    return centroid_data(element_type)[0]


def centroid_data(element_type: ElementType) -> Tuple[np.ndarray, np.ndarray]:
    """Shape function values and parametric gradients at the element center."""
    if element_type == ElementType.T3:
        return shape_t3(1 / 3, 1 / 3)
    return shape_q4(0.0, 0.0)
