from .linear import solve_static
from .modal import solve_modal

__all__ = ["solve_static", "solve_modal"]
