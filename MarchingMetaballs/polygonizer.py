"""
Cell Polygonizer
================

Marching cubes polygonization of grid cells. Each cell is processed in four
stages that keep no state between calls:

1. **Classify**: corner ``i`` is *above* if ``sample[i] > isolevel``. The
   8 booleans are combined into the cube index by a weighted sum with
   :data:`MarchingMetaballs.tables.CORNER_WEIGHTS` (corner ``i`` is bit
   ``i``).
2. **Find crossed edges**: ``EDGE_TABLE[cube_index]`` has bit ``e`` set for
   every edge ``e`` the surface crosses.
3. **Interpolate**: the crossing on edge ``(v0, v1)`` is
   ``(1 - t) * p0 + t * p1`` with ``t = (isolevel - s0) / (s1 - s0)``.
4. **Triangulate**: ``TRI_TABLE[cube_index]`` lists the triangles as
   triples of edge indices, in the order that fixes their winding.

Vertex normals are not computed.
"""

import logging
from typing import NamedTuple

import torch

from MarchingMetaballs.grid import SampleGrid
from MarchingMetaballs.tables import (
    CORNER_WEIGHTS,
    CUBE_EDGES,
    EDGE_TABLE,
    MAX_TRIANGLES,
    NUM_TRIANGLES_TABLE,
    TRI_TABLE,
)
import MarchingMetaballs

logger = logging.getLogger(MarchingMetaballs.__name__)

__all__ = ["CellPolygonizer", "CellTriangles"]


class CellTriangles(NamedTuple):
    """Polygonization result of a single cell.

    ``triangles`` has shape (T, 3, 3) with ``T <= 5``; ``normals`` is always
    empty with shape (0, 3).
    """

    triangles: torch.Tensor
    normals: torch.Tensor


class CellPolygonizer:
    """
    Table-driven marching cubes for single cells and for whole grids.

    The topology tables are converted to tensors once on the given device.
    The batched path (:meth:`__call__`) emits triangles in ascending flat
    cell index and, within a cell, in table order, which is exactly the
    concatenation of :meth:`polygonize` over all cells.

    Attributes:
        edge_table (torch.Tensor): (256,) crossed-edge masks.
        num_triangles_table (torch.Tensor): (256,) triangle count per case.
        tri_table (torch.Tensor): (256, 5, 3) edge triples. Entries beyond
            ``num_triangles_table[i]`` are filler and masked out by count.
        cube_corners_idx (torch.Tensor): Weight ``2**i`` of corner ``i``.
        cube_edges (torch.Tensor): (12, 2) corner pairs of the cell edges.
    """

    def __init__(self, device="cpu"):
        self.device = device
        self.edge_table = torch.tensor(
            EDGE_TABLE, dtype=torch.long, device=device, requires_grad=False
        )
        self.num_triangles_table = torch.tensor(
            NUM_TRIANGLES_TABLE, dtype=torch.long, device=device, requires_grad=False
        )
        filled_rows = [
            list(row) + [(0, 0, 0)] * (MAX_TRIANGLES - len(row)) for row in TRI_TABLE
        ]
        self.tri_table = torch.tensor(
            filled_rows, dtype=torch.long, device=device, requires_grad=False
        )
        self.cube_corners_idx = torch.tensor(
            CORNER_WEIGHTS, dtype=torch.long, device=device
        )
        self.cube_edges = torch.tensor(CUBE_EDGES, dtype=torch.long, device=device)

    def classify(
        self, samples: torch.Tensor, isolevel: float
    ) -> tuple[torch.Tensor, torch.Tensor]:
        """Classify corners against the isolevel.

        Args:
            samples (torch.Tensor): Corner samples of shape (..., 8).
            isolevel (float): Surface threshold.

        Returns:
            (torch.Tensor, torch.Tensor): Boolean ``corner_above`` of shape
            (..., 8) and the long cube index of shape (...), in [0, 256).
        """
        corner_above = samples > isolevel
        cube_index = (corner_above.to(torch.long) * self.cube_corners_idx).sum(dim=-1)
        return corner_above, cube_index

    @staticmethod
    def interpolate(isolevel, p0, p1, s0, s1) -> torch.Tensor:
        """Linear estimate of the isosurface crossing between ``p0`` and ``p1``.

        Exact at both ends: ``isolevel == s0`` gives ``p0`` and
        ``isolevel == s1`` gives ``p1``. If ``s0 == s1`` the crossing is
        undefined and ``p0`` is returned.

        Args:
            isolevel (float): Surface threshold.
            p0, p1 (torch.Tensor): End points of shape (..., 3).
            s0, s1 (torch.Tensor or float): Samples at the end points, of
                shape (...).
        """
        s0 = torch.as_tensor(s0, dtype=p0.dtype, device=p0.device)
        s1 = torch.as_tensor(s1, dtype=p0.dtype, device=p0.device)
        denominator = s1 - s0
        degenerate = denominator == 0
        t = (isolevel - s0) / torch.where(
            degenerate, torch.ones_like(denominator), denominator
        )
        t = torch.where(degenerate, torch.zeros_like(t), t).unsqueeze(-1)
        return (1 - t) * p0 + t * p1

    def polygonize(
        self, corners: torch.Tensor, samples: torch.Tensor, isolevel: float
    ) -> CellTriangles:
        """Polygonize a single cell.

        Args:
            corners (torch.Tensor): Corner positions (8, 3) in the order of
                :data:`MarchingMetaballs.tables.CORNER_OFFSETS`.
            samples (torch.Tensor): Corner samples (8,).
            isolevel (float): Surface threshold.

        Returns:
            CellTriangles: Triangles (T, 3, 3) in table order and an empty
            normal tensor.
        """
        _, cube_index = self.classify(samples, isolevel)
        cube_index = int(cube_index)
        edge_mask = EDGE_TABLE[cube_index]

        crossings = {}
        for edge, (v0, v1) in enumerate(CUBE_EDGES):
            if edge_mask & (1 << edge):
                crossings[edge] = self.interpolate(
                    isolevel, corners[v0], corners[v1], samples[v0], samples[v1]
                )

        triangles = [
            torch.stack([crossings[edge] for edge in triangle])
            for triangle in TRI_TABLE[cube_index]
        ]
        factory = {"dtype": corners.dtype, "device": corners.device}
        if triangles:
            triangles = torch.stack(triangles)
        else:
            triangles = torch.zeros((0, 3, 3), **factory)
        normals = torch.zeros((0, 3), **factory)
        return CellTriangles(triangles, normals)

    def polygonize_cells(
        self, corners: torch.Tensor, samples: torch.Tensor, isolevel: float
    ) -> torch.Tensor:
        """Polygonize a batch of cells.

        Args:
            corners (torch.Tensor): Corner positions (C, 8, 3).
            samples (torch.Tensor): Corner samples (C, 8).
            isolevel (float): Surface threshold.

        Returns:
            torch.Tensor: Triangles (T, 3, 3), cell by cell in batch order.
        """
        _, cube_index = self.classify(samples, isolevel)
        n_triangles = self.num_triangles_table[cube_index]
        surf_cells = n_triangles > 0
        if not surf_cells.any():
            return torch.zeros((0, 3, 3), dtype=corners.dtype, device=corners.device)

        corners = corners[surf_cells]
        samples = samples[surf_cells]
        cube_index = cube_index[surf_cells]
        n_triangles = n_triangles[surf_cells]

        # crossings on all 12 edges; only those of crossed edges are read below
        v0, v1 = self.cube_edges[:, 0], self.cube_edges[:, 1]
        crossings = self.interpolate(
            isolevel, corners[:, v0], corners[:, v1], samples[:, v0], samples[:, v1]
        )

        valid = (
            torch.arange(MAX_TRIANGLES, device=corners.device)[None, :]
            < n_triangles[:, None]
        )
        tri_edges = self.tri_table[cube_index][valid]
        cell_ids = torch.arange(corners.shape[0], device=corners.device)
        cell_ids = cell_ids[:, None].expand(-1, MAX_TRIANGLES)[valid]
        triangles = crossings[cell_ids[:, None], tri_edges]

        logger.debug(
            f"Polygonized {int(surf_cells.sum())} surface cells "
            f"into {triangles.shape[0]} triangles"
        )
        return triangles

    def __call__(self, grid: SampleGrid, isolevel: float) -> torch.Tensor:
        """Polygonize every cell of a resampled grid, see :meth:`polygonize_cells`."""
        return self.polygonize_cells(grid.corners, grid.samples, isolevel)
