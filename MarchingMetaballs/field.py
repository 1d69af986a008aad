from abc import ABC, abstractmethod

import torch

from MarchingMetaballs.plotting import plot_slice
from MarchingMetaballs.utils import as_point_tensor


class FieldBase(ABC):
    """Abstract base class for implicit scalar fields in 3D.

    A field maps every point in space to a scalar density. The isosurface
    extracted by the marching cubes pipeline is the set of points where the
    field equals a chosen isolevel; points with a higher value lie inside
    the surface.

    Subclasses must implement:
    - ``_compute(queries)``: Calculate field values for query points
    - ``_get_domain_bounds()``: Return the bounding box of the field

    Fields can be combined with ``+``, which sums their values.

    Examples
    --------
    >>> import torch
    >>> from MarchingMetaballs.metaballs import MetaballField
    >>>
    >>> field = MetaballField(
    ...     positions=[[2.0, 2.0, 2.0]],
    ...     velocities=[[0.0, 0.0, 0.0]],
    ...     radii=[1.5],
    ...     grid_width=4.0,
    ... )
    >>> field(torch.tensor([[2.0, 2.0, 3.0]]))
    tensor([[2.2500]])
    """

    def __call__(self, queries: torch.Tensor) -> torch.Tensor:
        """Evaluate the field at given query points.

        Parameters
        ----------
        queries : torch.Tensor
            Query points of shape (N, 3).

        Returns
        -------
        torch.Tensor
            Field values of shape (N, 1).

        Raises
        ------
        ValueError
            If queries have invalid shape.
        RuntimeError
            If the field computation returns invalid output.
        """
        self._validate_input(queries)
        values = self._compute(queries)
        if values is None:
            raise RuntimeError("Invalid field output")
        return values

    def _validate_input(self, queries: torch.Tensor):
        if not isinstance(queries, torch.Tensor):
            raise ValueError(f"Expected a torch.Tensor, got {type(queries)}")
        if queries.ndim != 2 or queries.shape[1] != 3:
            raise ValueError(f"Expected input of shape (N, 3), got {queries.shape}")

    def evaluate(self, point) -> float:
        """Evaluate the field at a single point and return a Python float."""
        queries = as_point_tensor(point)
        if queries.shape[0] != 1:
            raise ValueError(f"Expected a single point, got {queries.shape[0]}")
        return self(queries).item()

    @abstractmethod
    def _compute(self, queries: torch.Tensor) -> torch.Tensor:
        """Compute field values of shape (N, 1) for query points (N, 3)."""
        pass

    @abstractmethod
    def _get_domain_bounds(self) -> torch.Tensor:
        """Return a (2, 3) tensor ``[[xmin, ymin, zmin], [xmax, ymax, zmax]]``."""
        pass

    def step(self, dt: float):
        """Advance the field by ``dt``. Static fields do not change."""
        pass

    def plot_slice(self, *args, **kwargs):
        return plot_slice(self, *args, **kwargs)

    def __add__(self, other):
        return SummedField(self, other)


class SummedField(FieldBase):
    def __init__(self, obj1: FieldBase, obj2: FieldBase):
        super().__init__()
        self.obj1 = obj1
        self.obj2 = obj2

    def step(self, dt: float):
        self.obj1.step(dt)
        self.obj2.step(dt)

    def _compute(self, queries):
        return self.obj1._compute(queries) + self.obj2._compute(queries)

    def _get_domain_bounds(self):
        bounds1 = self.obj1._get_domain_bounds()
        bounds2 = self.obj2._get_domain_bounds()

        lower = torch.minimum(bounds1[0], bounds2[0])
        upper = torch.maximum(bounds1[1], bounds2[1])

        return torch.stack([lower, upper], dim=0)
