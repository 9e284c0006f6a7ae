"""
facet-shell: flat-facet T3/Q4 shell elements.

Element stiffness and mass matrices with energy-sampling or projected-normal
stabilization, assembled into sparse global systems.
"""

__version__ = "0.1.0"
