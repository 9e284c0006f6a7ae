import numpy as np

from facet_shell.core.fields import NDOF


class ElementWorkspace:
    """
    Scratch buffers for the evaluation of one element at a time.

    A workspace is allocated once per worker and handed by exclusive
    reference to the per-element routines, which overwrite its contents on
    every visit. It carries no state from one element to the next and must
    never be shared between concurrent workers.

    Parameters
    ----------
    nodes_per_elem : int
        Number of nodes of the element family.
    """

    def __init__(self, nodes_per_elem: int):
        nn = int(nodes_per_elem)
        ndofs = NDOF * nn
        self.nodes_per_elem = nn
        self.ndofs = ndofs
        self.ecoords = np.zeros((nn, 3))
        self.lecoords = np.zeros((nn, 2))
        self.J0 = np.zeros((3, 2))
        self.F = np.zeros((3, 3))
        self.gradN = np.zeros((nn, 2))
        self.Bm = np.zeros((3, ndofs))
        self.Bb = np.zeros((3, ndofs))
        self.Bs = np.zeros((2, ndofs))
        self.Bsavg = np.zeros((2, ndofs))
        self.Bd = np.zeros((1, ndofs))
        self.normals_local = np.zeros((nn, 3))
        self.elmat = np.zeros((ndofs, ndofs))
        self.T = np.zeros((ndofs, ndofs))

    def reset(self) -> None:
        """Zero the accumulators that the element routines add into."""
        self.Bsavg.fill(0.0)
        self.elmat.fill(0.0)

    def __repr__(self):
        return f"<ElementWorkspace nodes_per_elem={self.nodes_per_elem}>"
