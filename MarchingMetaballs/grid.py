"""
Sample Grid
===========

A uniform lattice of ``resolution**3`` cubic cells covering the cubic domain
``[origin, origin + cell_width * resolution]``. Cell geometry (center and the
8 corners, see :mod:`MarchingMetaballs.tables` for the corner layout) is
computed once at construction; the corner and center samples are cached and
overwritten by every :meth:`SampleGrid.resample`.

Cells are addressed either by a flat index in ``[0, resolution**3)`` or by
an index triple ``(ix, iy, iz)`` with x varying fastest::

    index = ix + iy * resolution + iz * resolution**2
"""

from dataclasses import dataclass
import logging

import torch

from MarchingMetaballs.config import (
    check_grid_dimensions,
    require_positive,
    require_positive_int,
)
from MarchingMetaballs.field import FieldBase
from MarchingMetaballs.tables import CORNER_OFFSETS, CUBE_EDGES
from MarchingMetaballs.utils import as_point_tensor
import MarchingMetaballs

logger = logging.getLogger(MarchingMetaballs.__name__)


@dataclass
class Cell:
    """Snapshot of one grid cell and its cached samples."""

    index: int
    coords: tuple[int, int, int]
    center: torch.Tensor
    corners: torch.Tensor
    samples: torch.Tensor
    center_sample: float
    edges: tuple = CUBE_EDGES


class SampleGrid:
    """Uniform grid of cubic cells with cached field samples.

    Parameters
    ----------
    origin : array-like, default (0, 0, 0)
        Lower corner of the domain.
    cell_width : float, default 1.0
        Side length of one cell.
    resolution : int, default 1
        Number of cells per axis.
    grid_width : float, optional
        Expected side length of the domain. If given, it is checked against
        ``cell_width * resolution``.

    Attributes
    ----------
    centers : torch.Tensor
        Cell centers of shape (resolution**3, 3).
    corners : torch.Tensor
        Cell corners of shape (resolution**3, 8, 3).
    samples : torch.Tensor
        Corner samples of shape (resolution**3, 8), zero until resampled.
    center_samples : torch.Tensor
        Center samples of shape (resolution**3,), zero until resampled.
    """

    def __init__(
        self,
        origin=(0.0, 0.0, 0.0),
        cell_width: float = 1.0,
        resolution: int = 1,
        grid_width: float | None = None,
        dtype=torch.float32,
        device="cpu",
    ):
        require_positive_int("resolution", resolution)
        require_positive("cell_width", cell_width)
        if grid_width is not None:
            require_positive("grid_width", grid_width)
            check_grid_dimensions(grid_width, cell_width, resolution)

        self.dtype = dtype
        self.device = device
        self.origin = as_point_tensor(origin, dtype=dtype, device=device).reshape(3)
        self.cell_width = cell_width
        self.half_cell_width = cell_width / 2.0
        self.res = resolution
        self.res2 = resolution * resolution
        self.res3 = resolution * resolution * resolution

        coords = self.index_to_coords(torch.arange(self.res3, device=device))
        self.centers = self.coords_to_position(coords)
        offsets = (
            torch.tensor(CORNER_OFFSETS, dtype=dtype, device=device)
            * self.half_cell_width
        )
        self.corners = self.centers[:, None, :] + offsets[None, :, :]
        self.edges = torch.tensor(CUBE_EDGES, dtype=torch.long, device=device)

        self.samples = torch.zeros((self.res3, 8), dtype=dtype, device=device)
        self.center_samples = torch.zeros(self.res3, dtype=dtype, device=device)
        logger.info(
            f"Allocated {self.res3} cells ({resolution}^3) of width {cell_width}"
        )

    @classmethod
    def from_specs(cls, specs):
        return cls(
            origin=specs["origin"],
            cell_width=specs["grid_cell_width"],
            resolution=specs["grid_res"],
            grid_width=specs["grid_width"],
            device=specs["device"],
        )

    @property
    def grid_width(self) -> float:
        return self.cell_width * self.res

    def __len__(self):
        return self.res3

    def index_to_coords(self, index):
        """Convert a flat cell index to its index triple ``(ix, iy, iz)``.

        Accepts an int, returning a tuple of ints, or a tensor of indices,
        returning a long tensor of shape (N, 3).
        """
        if isinstance(index, torch.Tensor):
            index = index.to(torch.long).reshape(-1)
            return torch.stack(
                [
                    index % self.res,
                    torch.div(index % self.res2, self.res, rounding_mode="floor"),
                    torch.div(index, self.res2, rounding_mode="floor"),
                ],
                dim=1,
            )
        if not 0 <= index < self.res3:
            raise IndexError(f"Cell index {index} out of range [0, {self.res3})")
        return (index % self.res, (index % self.res2) // self.res, index // self.res2)

    def coords_to_index(self, ix, iy, iz):
        """Convert an index triple to the flat cell index.

        Components are ints or equally shaped integer tensors.
        """
        if not any(isinstance(i, torch.Tensor) for i in (ix, iy, iz)):
            for name, i in zip("xyz", (ix, iy, iz)):
                if not 0 <= i < self.res:
                    raise IndexError(
                        f"Cell coordinate i{name}={i} out of range [0, {self.res})"
                    )
        return ix + iy * self.res + iz * self.res2

    def coords_to_position(self, coords) -> torch.Tensor:
        """Return the world-space center of the cell(s) at ``coords``.

        ``coords`` is a triple, returning a (3,) tensor, or an (N, 3) tensor,
        returning an (N, 3) tensor.
        """
        coords = torch.as_tensor(coords, device=self.device)
        single = coords.ndim == 1
        coords = coords.reshape(-1, 3)
        positions = (
            coords.to(self.dtype) * self.cell_width
            + self.origin
            + self.half_cell_width
        )
        return positions[0] if single else positions

    def position_to_coords(self, position):
        """Return the index triple of the cell containing ``position``.

        The inverse of :meth:`coords_to_position`. A (3,) input returns a
        tuple of ints, an (N, 3) input a long tensor of shape (N, 3).
        """
        position = torch.as_tensor(position, dtype=self.dtype, device=self.device)
        single = position.ndim == 1
        position = position.reshape(-1, 3)
        coords = torch.floor((position - self.origin) / self.cell_width).to(torch.long)
        # the upper faces of the domain belong to the last cell
        on_upper_face = position == self.origin + self.grid_width
        coords = torch.where(on_upper_face, coords - 1, coords)
        if (coords < 0).any() or (coords >= self.res).any():
            raise ValueError("Position outside of the grid domain")
        if single:
            return tuple(int(c) for c in coords[0])
        return coords

    def resample(self, field: FieldBase):
        """Overwrite all corner and center samples with values of ``field``.

        The field is evaluated once for the 8 corners of every cell and once
        for every center; nothing is carried over from the previous samples.
        """
        queries = torch.cat([self.corners.reshape(-1, 3), self.centers], dim=0)
        with torch.no_grad():
            values = field(queries).reshape(-1).to(self.dtype)
        n_corner_samples = self.res3 * 8
        self.samples = values[:n_corner_samples].reshape(self.res3, 8)
        self.center_samples = values[n_corner_samples:]

    def visible_cells(self, isolevel: float) -> torch.Tensor:
        """Boolean mask of cells whose center sample exceeds ``isolevel``."""
        return self.center_samples > isolevel

    def cell(self, index: int) -> Cell:
        return Cell(
            index=index,
            coords=self.index_to_coords(index),
            center=self.centers[index],
            corners=self.corners[index],
            samples=self.samples[index],
            center_sample=self.center_samples[index].item(),
        )
