import logging
import os
import pathlib

import gustaf as gus
import numpy as np
import torch
import vtk

from MarchingMetaballs.grid import SampleGrid
import MarchingMetaballs

logger = logging.getLogger(MarchingMetaballs.__name__)


class TriangleSoup:
    """Unwelded triangle list as handed to the rendering side.

    Every triangle owns its three vertices; vertices shared between
    neighbouring cells are duplicated, not merged.
    """

    def __init__(self, triangles: torch.Tensor):
        if triangles.ndim != 3 or triangles.shape[1:] != (3, 3):
            raise ValueError(
                f"Expected triangles of shape (T, 3, 3), got {tuple(triangles.shape)}"
            )
        self.triangles = triangles

    def __len__(self):
        return self.triangles.shape[0]

    @property
    def vertices(self) -> torch.Tensor:
        return self.triangles.reshape(-1, 3)

    @property
    def faces(self) -> torch.Tensor:
        return torch.arange(
            self.vertices.shape[0], device=self.triangles.device
        ).reshape(-1, 3)

    def to_gus(self):
        return gus.Faces(
            self.vertices.detach().cpu().numpy(), self.faces.detach().cpu().numpy()
        )


def _export_surface_mesh_vtk(verts, faces, filename):
    """
    verts: (N, 3) array
    faces: (M, 3) array
    """
    vtk_points = vtk.vtkPoints()
    for v in verts:
        vtk_points.InsertNextPoint(v.tolist())

    vtk_cells = vtk.vtkCellArray()
    for f in faces:
        triangle = vtk.vtkTriangle()
        triangle.GetPointIds().SetId(0, int(f[0]))
        triangle.GetPointIds().SetId(1, int(f[1]))
        triangle.GetPointIds().SetId(2, int(f[2]))
        vtk_cells.InsertNextCell(triangle)

    polydata = vtk.vtkPolyData()
    polydata.SetPoints(vtk_points)
    polydata.SetPolys(vtk_cells)

    writer = vtk.vtkPolyDataWriter()
    writer.SetFileName(str(filename))
    writer.SetInputData(polydata)
    writer.Write()
    logger.info(f"Mesh saved to {filename}")


def export_surface_mesh(
    filename: str | bytes | os.PathLike[str] | os.PathLike[bytes],
    mesh: gus.Faces | TriangleSoup,
):
    export_filename = pathlib.Path(filename)
    if not os.path.isdir(export_filename.parent):
        os.makedirs(export_filename.parent)
    ext = export_filename.suffix.lower()
    if isinstance(mesh, TriangleSoup):
        mesh = mesh.to_gus()
    logger.debug(
        f"Exporting mesh with {len(mesh.faces)} faces, "
        f"{len(mesh.vertices)} vertices to {export_filename}"
    )
    match ext:
        case ".vtk":
            _export_surface_mesh_vtk(mesh.vertices, mesh.faces, export_filename)
        case _:
            gus.io.meshio.export(export_filename, mesh)


def export_sample_grid_vtk(grid: SampleGrid, filename):
    """Write the cell centers and their cached center samples as a
    structured grid. Run after :meth:`SampleGrid.resample`."""
    filepath = pathlib.Path(filename)
    if not os.path.isdir(filepath.parent):
        os.makedirs(filepath.parent)
    points = grid.centers.detach().cpu().numpy()
    values = grid.center_samples.detach().cpu().numpy().astype(np.float64)

    vtk_points = vtk.vtkPoints()
    for pt in points:
        vtk_points.InsertNextPoint(pt.tolist())

    # flat index runs x fastest, which matches vtk's point ordering
    vtk_grid = vtk.vtkStructuredGrid()
    vtk_grid.SetDimensions(grid.res, grid.res, grid.res)
    vtk_grid.SetPoints(vtk_points)

    vtk_array = vtk.vtkDoubleArray()
    vtk_array.SetName("field")
    vtk_array.SetNumberOfValues(len(values))
    for i, val in enumerate(values):
        vtk_array.SetValue(i, val)
    vtk_grid.GetPointData().SetScalars(vtk_array)

    writer = vtk.vtkStructuredGridWriter()
    writer.SetFileName(str(filepath))
    writer.SetInputData(vtk_grid)
    writer.Write()
    logger.info(f"Sample grid saved to {filepath}")
