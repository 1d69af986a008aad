"""
Simulation Specifications
=========================

Construction-time configuration of a metaball simulation. Every option is
validated eagerly; a violation raises with a message naming the option, so
a simulation never runs on a degenerate grid.

Required options
----------------
isolevel : float
    Threshold scalar for surface extraction.
min_radius, max_radius : float
    Bounds of the random ball radii, ``0 < min_radius <= max_radius``.
grid_cell_width : float
    Side length of one cell, ``> 0``.
grid_width : float
    Side length of the cubic domain, equal to
    ``grid_cell_width * grid_res``.
grid_res : int
    Number of cells per axis, ``> 0``.
max_speed : float
    Bound of the random initial velocity per axis, ``>= 0``.
num_metaballs : int
    Size of the ball population, ``> 0``.
visual_debug : bool
    Enables the visualization collaborator hooks.

Optional options
----------------
origin : list of float, default [0, 0, 0]
    Lower corner of the domain.
seed : int, optional
    Seed of the generator used to initialise the balls.
device : str, default "cpu"
    Torch device for all tensors.
spawn : str, default "center"
    ``"center"`` starts every ball at the domain center, ``"random"``
    places them uniformly inside the domain.
"""

import copy
import json
import logging
import math
import numbers
from typing import Any, Dict, Union

import MarchingMetaballs

logger = logging.getLogger(MarchingMetaballs.__name__)

REQUIRED_KEYS = (
    "isolevel",
    "min_radius",
    "max_radius",
    "grid_cell_width",
    "grid_width",
    "grid_res",
    "max_speed",
    "num_metaballs",
    "visual_debug",
)

DEFAULTS = {
    "origin": [0.0, 0.0, 0.0],
    "seed": None,
    "device": "cpu",
    "spawn": "center",
}

SPAWN_MODES = ("center", "random")

# relative tolerance for grid_width == grid_cell_width * grid_res
GRID_WIDTH_RTOL = 1e-9


def _is_real(value) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def is_integer(value) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def _require_real(name, value):
    if not _is_real(value):
        raise TypeError(f"{name} must be a real number, got {value!r}")
    if not math.isfinite(value):
        raise ValueError(f"{name} must be finite, got {value!r}")


def require_positive(name, value):
    _require_real(name, value)
    if value <= 0:
        raise ValueError(f"{name} must be > 0, got {value!r}")


def require_positive_int(name, value):
    if not is_integer(value):
        raise TypeError(f"{name} must be an integer, got {value!r}")
    if value <= 0:
        raise ValueError(f"{name} must be > 0, got {value!r}")


def check_grid_dimensions(grid_width, cell_width, resolution):
    """Raise ValueError unless ``cell_width * resolution == grid_width``."""
    expected = cell_width * resolution
    if not math.isclose(grid_width, expected, rel_tol=GRID_WIDTH_RTOL):
        raise ValueError(
            f"grid_width ({grid_width}) must equal grid_cell_width * grid_res "
            f"({cell_width} * {resolution} = {expected})"
        )


class SimulationSpecifications(dict):
    """
    A dictionary-like class holding the validated options of a simulation.
    Can be initialized from a dictionary or loaded from a JSON file.
    Optional options missing from the input are filled with their defaults.
    """

    def __init__(self, specs: Union[Dict[str, Any], str, None] = None):
        if isinstance(specs, str):
            specs = self._load_from_file(specs)
        merged = copy.deepcopy(DEFAULTS)
        merged.update(copy.deepcopy(specs) if specs else {})
        super().__init__(merged)
        self.validate()

    @staticmethod
    def _load_from_file(filename: str) -> Dict[str, Any]:
        with open(filename, "r") as f:
            if filename.endswith(".json"):
                return json.load(f)
            else:
                raise ValueError("Unsupported file format. Use .json")

    def save(self, filename: str) -> None:
        """
        Save current specifications to a JSON file.
        """
        if not filename.endswith(".json"):
            raise ValueError("Unsupported file format. Use .json")
        with open(filename, "w") as f:
            json.dump(self, f, indent=4)

    def update(self, updates: Dict[str, Any]) -> None:
        """
        Update the specifications and validate the result. On failure the
        previous values are restored before the error propagates.
        """
        previous = dict(self)
        super().update(updates)
        try:
            self.validate()
        except (TypeError, ValueError):
            self.clear()
            super().update(previous)
            raise

    def copy(self):
        """Return a deep copy of the specifications."""
        return SimulationSpecifications(copy.deepcopy(dict(self)))

    def validate(self) -> None:
        missing = [key for key in REQUIRED_KEYS if key not in self]
        if missing:
            raise ValueError(f"Missing required options: {', '.join(missing)}")
        unknown = set(self) - set(REQUIRED_KEYS) - set(DEFAULTS)
        if unknown:
            logger.warning(f"Ignoring unknown options: {sorted(unknown)}")

        _require_real("isolevel", self["isolevel"])

        require_positive("min_radius", self["min_radius"])
        require_positive("max_radius", self["max_radius"])
        if self["min_radius"] > self["max_radius"]:
            raise ValueError(
                f"min_radius ({self['min_radius']}) must not exceed "
                f"max_radius ({self['max_radius']})"
            )

        require_positive("grid_cell_width", self["grid_cell_width"])
        require_positive("grid_width", self["grid_width"])
        require_positive_int("grid_res", self["grid_res"])
        check_grid_dimensions(
            self["grid_width"], self["grid_cell_width"], self["grid_res"]
        )

        _require_real("max_speed", self["max_speed"])
        if self["max_speed"] < 0:
            raise ValueError(f"max_speed must be >= 0, got {self['max_speed']!r}")

        require_positive_int("num_metaballs", self["num_metaballs"])

        if not isinstance(self["visual_debug"], bool):
            raise TypeError(
                f"visual_debug must be a boolean, got {self['visual_debug']!r}"
            )

        origin = self["origin"]
        if len(origin) != 3:
            raise ValueError(f"origin must have 3 components, got {origin!r}")
        for component in origin:
            _require_real("origin", component)

        if self["seed"] is not None and not is_integer(self["seed"]):
            raise TypeError(f"seed must be an integer or None, got {self['seed']!r}")

        if self["spawn"] not in SPAWN_MODES:
            raise ValueError(
                f"spawn must be one of {SPAWN_MODES}, got {self['spawn']!r}"
            )

    def __repr__(self):
        return f"SimulationSpecifications({dict(self)})"
