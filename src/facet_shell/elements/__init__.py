from .elements import ElementFactory, make_femm
from .isop import ShellIsoP
from .shell import ShellFEMM, Stabilization
from .sri import ShellSRI, blend_factor
from .workspace import ElementWorkspace

__all__ = [
    "ElementFactory",
    "ElementWorkspace",
    "ShellFEMM",
    "ShellIsoP",
    "ShellSRI",
    "Stabilization",
    "blend_factor",
    "make_femm",
]
