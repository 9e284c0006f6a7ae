"""
Export of meshes and nodal results through meshio.
"""

import logging
from pathlib import Path
from typing import Dict, Optional, Union

import meshio
import numpy as np

from facet_shell.core.fields import NodalField
from facet_shell.core.mesh.model import MeshModel

logger = logging.getLogger(__name__)


def to_meshio(
    mesh: MeshModel,
    dchi: Optional[NodalField] = None,
    point_data: Optional[Dict[str, np.ndarray]] = None,
) -> meshio.Mesh:
    """
    Convert a mesh, and optionally a six-component nodal field, to ``meshio.Mesh``.

    The field is split into ``displacement`` (first three components) and
    ``rotation`` (last three) point vectors.
    """
    cells = [(fes.element_type.meshio_name, np.asarray(fes.conn)) for fes in mesh.element_sets]
    data = {}
    if dchi is not None:
        if dchi.nnodes != mesh.node_count:
            raise ValueError(f"Field has {dchi.nnodes} nodes, mesh has {mesh.node_count}")
        data["displacement"] = np.ascontiguousarray(dchi.values[:, 0:3])
        if dchi.ncomponents >= 6:
            data["rotation"] = np.ascontiguousarray(dchi.values[:, 3:6])
    for name, values in (point_data or {}).items():
        data[name] = np.asarray(values)
    return meshio.Mesh(points=mesh.coords, cells=cells, point_data=data)


def write_vtk(
    filename: Union[str, Path],
    mesh: MeshModel,
    dchi: Optional[NodalField] = None,
    point_data: Optional[Dict[str, np.ndarray]] = None,
    **kwargs,
) -> None:
    """
    Write the mesh and nodal results to a VTK (or any meshio-supported) file.

    Parameters
    ----------
    filename : str or Path
        Output file; the format is deduced from the extension unless
        ``file_format`` is passed.
    mesh : MeshModel
        Mesh to write.
    dchi : NodalField, optional
        Nodal field with translations and rotations, e.g. a solved
        :class:`~facet_shell.core.fields.DofField`.
    point_data : dict, optional
        Additional named nodal arrays.
    """
    meshio.write(str(filename), to_meshio(mesh, dchi, point_data), **kwargs)
    logger.info("Mesh written to %s", filename)
