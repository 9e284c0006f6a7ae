"""
Exception hierarchy for facet_shell.

All failures raised by the assembly kernel derive from :class:`ShellError` and
additionally from the builtin exception a caller would naturally expect
(``ValueError`` for bad input, ``RuntimeError`` for misuse of the API).
"""


class ShellError(Exception):
    """Base class for all facet_shell errors."""


class GeometryError(ShellError, ValueError):
    """Degenerate, inverted or non-finite element geometry."""


class DofFieldError(ShellError, ValueError):
    """Degree-of-freedom field inconsistent with the mesh or not numbered."""


class MaterialError(ShellError, ValueError):
    """Invalid material data or failing material evaluation."""


class GeometryNotAssociatedError(ShellError, RuntimeError):
    """Stiffness requested before nodal normals were associated with the geometry."""


class AssemblyError(ShellError, RuntimeError):
    """
    Failure while computing the matrix of one element.

    Parameters
    ----------
    element : int
        Index of the failing element within its element set.
    message : str
        Description of the failure.
    """

    def __init__(self, element: int, message: str):
        super().__init__(f"Element {element}: {message}")
        self.element = element


class SolverError(ShellError, RuntimeError):
    """Sparse solve produced no usable solution."""
