"""
Metaball Field
==============

A fixed population of moving point sources. Each ball radiates an
inverse-square influence and the field value at a point is the sum

.. math::

    f(q) = \\sum_i \\frac{r_i^2}{\\lVert q - p_i \\rVert^2}

so a single ball of radius ``r`` reaches the value 1 exactly on the sphere of
radius ``r`` around its center. Balls move with constant velocity and bounce
elastically off the six faces of the cubic domain.

Constants
---------
MIN_SQUARED_DISTANCE
    Squared distances below this value are clamped to it, so a query on a
    ball center yields ``r**2 / MIN_SQUARED_DISTANCE`` instead of infinity.
"""

from dataclasses import dataclass
import logging

import torch

from MarchingMetaballs.config import require_positive
from MarchingMetaballs.field import FieldBase
from MarchingMetaballs.utils import as_point_tensor
import MarchingMetaballs

logger = logging.getLogger(MarchingMetaballs.__name__)

MIN_SQUARED_DISTANCE = 1e-10


@dataclass
class Metaball:
    position: torch.Tensor
    velocity: torch.Tensor
    radius: float

    @property
    def radius2(self) -> float:
        return self.radius**2


class MetaballField(FieldBase):
    """Sum of inverse-square influences of moving metaballs.

    Ball state is stored as tensors: ``positions`` (M, 3), ``velocities``
    (M, 3) and ``radii`` (M,). The population is fixed for the lifetime of
    the field; only positions and velocities change in :meth:`step`.

    Parameters
    ----------
    positions : array-like
        Initial ball centers of shape (M, 3), inside the domain.
    velocities : array-like
        Ball velocities of shape (M, 3).
    radii : array-like
        Positive ball radii of shape (M,).
    grid_width : float
        Side length of the cubic domain the balls bounce in.
    origin : array-like, default (0, 0, 0)
        Lower corner of the domain.
    max_batch : int, default 32**3
        Number of query points evaluated at once.

    Notes
    -----
    Balls bounce at the raw domain boundary: a ball center stays inside
    ``[origin, origin + grid_width]`` on every axis, while the visible part
    of a ball near a face may extend beyond it.
    """

    def __init__(
        self,
        positions,
        velocities,
        radii,
        grid_width: float,
        origin=(0.0, 0.0, 0.0),
        dtype=torch.float32,
        device="cpu",
        max_batch=32**3,
    ):
        super().__init__()
        self.positions = as_point_tensor(positions, dtype=dtype, device=device)
        self.velocities = as_point_tensor(velocities, dtype=dtype, device=device)
        self.radii = torch.as_tensor(radii, dtype=dtype, device=device).reshape(-1)
        self.origin = torch.as_tensor(origin, dtype=dtype, device=device)
        self.grid_width = grid_width
        self.max_batch = max_batch

        n_balls = self.positions.shape[0]
        if n_balls == 0:
            raise ValueError("A metaball field needs at least one ball")
        if self.positions.shape != (n_balls, 3):
            raise ValueError(
                f"positions must have shape (M, 3), got {tuple(self.positions.shape)}"
            )
        if self.velocities.shape != self.positions.shape:
            raise ValueError(
                f"velocities shape {tuple(self.velocities.shape)} does not match "
                f"positions shape {tuple(self.positions.shape)}"
            )
        if self.radii.shape[0] != n_balls:
            raise ValueError(
                f"Expected {n_balls} radii, got {self.radii.shape[0]}"
            )
        if not (self.radii > 0).all() or not torch.isfinite(self.radii).all():
            raise ValueError("All radii must be finite and > 0")
        if not torch.isfinite(self.positions).all():
            raise ValueError("All ball positions must be finite")
        if not torch.isfinite(self.velocities).all():
            raise ValueError("All ball velocities must be finite")
        require_positive("grid_width", grid_width)
        lower, upper = self._get_domain_bounds()
        if (self.positions < lower).any() or (self.positions > upper).any():
            raise ValueError("All ball positions must lie inside the domain")

    @classmethod
    def random(cls, specs, generator: torch.Generator | None = None):
        """Create a field with randomized balls from simulation specifications.

        Radii are drawn uniformly from ``[min_radius, max_radius]`` and every
        velocity component uniformly from ``[-max_speed, max_speed]``. With
        ``spawn == "center"`` all balls start at the domain center, with
        ``"random"`` they are placed uniformly inside the domain.
        """
        if generator is None:
            generator = torch.Generator()
            if specs["seed"] is not None:
                generator.manual_seed(specs["seed"])
            else:
                generator.seed()

        n = specs["num_metaballs"]
        width = specs["grid_width"]
        origin = torch.tensor(specs["origin"], dtype=torch.float32)
        min_r, max_r = specs["min_radius"], specs["max_radius"]

        radii = torch.rand(n, generator=generator) * (max_r - min_r) + min_r
        velocities = (
            torch.rand((n, 3), generator=generator) * 2 - 1
        ) * specs["max_speed"]
        if specs["spawn"] == "center":
            positions = (origin + width / 2).expand(n, 3).clone()
        else:
            positions = origin + torch.rand((n, 3), generator=generator) * width

        logger.info(
            f"Seeded {n} metaballs with radii in [{min_r}, {max_r}] "
            f"and max speed {specs['max_speed']}"
        )
        return cls(
            positions,
            velocities,
            radii,
            grid_width=width,
            origin=specs["origin"],
            device=specs["device"],
        )

    def __len__(self):
        return self.positions.shape[0]

    def __getitem__(self, i) -> Metaball:
        return Metaball(
            position=self.positions[i],
            velocity=self.velocities[i],
            radius=self.radii[i].item(),
        )

    @property
    def balls(self) -> list[Metaball]:
        return [self[i] for i in range(len(self))]

    def _get_domain_bounds(self) -> torch.Tensor:
        return torch.stack([self.origin, self.origin + self.grid_width], dim=0)

    def _compute(self, queries: torch.Tensor) -> torch.Tensor:
        orig_dtype = queries.dtype
        queries = queries.to(device=self.positions.device, dtype=self.positions.dtype)
        radii2 = self.radii**2
        n_queries = queries.shape[0]
        values = torch.zeros(n_queries, dtype=queries.dtype, device=queries.device)

        head = 0
        while head < n_queries:
            end = min(head + self.max_batch, n_queries)
            # (B, M, 3) differences, every axis against its own coordinate
            diff = queries[head:end, None, :] - self.positions[None, :, :]
            squared_distance = (diff**2).sum(dim=-1)
            squared_distance = torch.clamp(squared_distance, min=MIN_SQUARED_DISTANCE)
            values[head:end] = (radii2 / squared_distance).sum(dim=1)
            head = end

        return values.to(orig_dtype).reshape(-1, 1)

    def step(self, dt: float):
        """Move every ball by ``velocity * dt`` and bounce off the domain faces.

        Per axis, a ball that would leave the domain is clamped to the face it
        crossed and the corresponding velocity component is negated.
        """
        lower, upper = self._get_domain_bounds()
        positions = self.positions + self.velocities * dt

        below = positions < lower
        above = positions > upper
        outside = below | above

        positions = torch.where(below, lower.expand_as(positions), positions)
        positions = torch.where(above, upper.expand_as(positions), positions)
        self.positions = positions
        self.velocities = torch.where(outside, -self.velocities, self.velocities)
        if outside.any():
            logger.debug(f"{int(outside.any(dim=1).sum())} metaballs bounced")
