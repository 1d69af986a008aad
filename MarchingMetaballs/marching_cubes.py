"""
Frame Driver
============

:class:`MarchingCubes` ties the pipeline together. An external frame loop
calls :meth:`MarchingCubes.step` once per tick; each call advances the
metaballs, resamples the grid and polygonizes every cell, returning the
triangles of the frame. Nothing is cached between frames besides the ball
state and the grid samples, which are overwritten on every step. The cost of
a frame is ``O(grid_res**3 * num_metaballs)``.
"""

import logging
from typing import Protocol

import torch

from MarchingMetaballs.config import SimulationSpecifications
from MarchingMetaballs.field import FieldBase
from MarchingMetaballs.grid import SampleGrid
from MarchingMetaballs.mesh import TriangleSoup
from MarchingMetaballs.metaballs import MetaballField
from MarchingMetaballs.polygonizer import CellPolygonizer
import MarchingMetaballs

logger = logging.getLogger(MarchingMetaballs.__name__)


class Visualizer(Protocol):
    """Collaborator receiving debug views when ``visual_debug`` is enabled."""

    def update(
        self, grid: SampleGrid, visible_cells: torch.Tensor, triangles: torch.Tensor
    ): ...

    def show(self): ...

    def hide(self): ...


class MarchingCubes:
    """Per-frame isosurface reconstruction of a metaball field.

    Parameters
    ----------
    specs : SimulationSpecifications or dict
        Simulation options, validated on construction.
    visualizer : Visualizer, optional
        Debug collaborator. Receives ``update`` calls after every frame when
        ``specs["visual_debug"]`` is True and ``show``/``hide`` calls always.
    field : FieldBase, optional
        Field to mesh. Defaults to :meth:`MetaballField.random` seeded from
        ``specs``.

    Examples
    --------
    >>> mc = MarchingCubes(specs)
    >>> triangles = mc.step(1.0)  # (T, 3, 3)
    >>> mc.pause()
    >>> mc.step(1.0) is None
    True
    """

    def __init__(
        self,
        specs: SimulationSpecifications | dict,
        visualizer: Visualizer | None = None,
        field: FieldBase | None = None,
    ):
        if not isinstance(specs, SimulationSpecifications):
            specs = SimulationSpecifications(specs)
        self.specs = specs
        self.isolevel = specs["isolevel"]
        self.visual_debug = specs["visual_debug"]
        self.visualizer = visualizer
        self.is_paused = False

        self.grid = SampleGrid.from_specs(specs)
        self.field = field if field is not None else MetaballField.random(specs)
        self.polygonizer = CellPolygonizer(device=specs["device"])
        self.triangles = torch.zeros(
            (0, 3, 3), dtype=self.grid.dtype, device=self.grid.device
        )
        self.frame = 0

    def step(self, dt: float) -> torch.Tensor | None:
        """Advance the simulation by ``dt`` and mesh the new field.

        Returns
        -------
        torch.Tensor or None
            Triangles of shape (T, 3, 3) in world space, or None while paused.
        """
        if self.is_paused:
            return None

        self.field.step(dt)
        self.grid.resample(self.field)
        self.triangles = self.polygonizer(self.grid, self.isolevel)
        self.frame += 1
        logger.debug(f"Frame {self.frame}: {self.triangles.shape[0]} triangles")

        if self.visual_debug and self.visualizer is not None:
            self.visualizer.update(
                self.grid, self.grid.visible_cells(self.isolevel), self.triangles
            )
        return self.triangles

    def pause(self):
        self.is_paused = True

    def resume(self):
        self.is_paused = False

    def show(self):
        if self.visualizer is not None:
            self.visualizer.show()

    def hide(self):
        if self.visualizer is not None:
            self.visualizer.hide()

    def mesh(self) -> TriangleSoup:
        """Triangles of the last computed frame."""
        return TriangleSoup(self.triangles)
