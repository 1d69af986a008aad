import logging

import pytest

from MarchingMetaballs.config import SimulationSpecifications


@pytest.fixture
def options():
    return {
        "isolevel": 1.0,
        "min_radius": 0.5,
        "max_radius": 1.0,
        "grid_cell_width": 0.5,
        "grid_width": 10.0,
        "grid_res": 20,
        "max_speed": 0.1,
        "num_metaballs": 5,
        "visual_debug": False,
    }


def test_defaults_are_filled(options):
    specs = SimulationSpecifications(options)
    assert specs["origin"] == [0.0, 0.0, 0.0]
    assert specs["seed"] is None
    assert specs["device"] == "cpu"
    assert specs["spawn"] == "center"
    assert specs["grid_res"] == 20


def test_missing_option(options):
    del options["grid_res"]
    with pytest.raises(ValueError, match="grid_res"):
        SimulationSpecifications(options)


@pytest.mark.parametrize(
    "key, value, error",
    [
        ("grid_res", 0, ValueError),
        ("grid_res", 20.0, TypeError),
        ("grid_cell_width", 0.0, ValueError),
        ("grid_cell_width", -0.5, ValueError),
        ("grid_width", 9.0, ValueError),
        ("min_radius", 0.0, ValueError),
        ("min_radius", 2.0, ValueError),
        ("max_speed", -1.0, ValueError),
        ("num_metaballs", 0, ValueError),
        ("isolevel", float("nan"), ValueError),
        ("isolevel", "1.0", TypeError),
        ("visual_debug", 1, TypeError),
        ("spawn", "corner", ValueError),
        ("origin", [0.0, 0.0], ValueError),
        ("seed", 1.5, TypeError),
    ],
)
def test_invalid_option(options, key, value, error):
    options[key] = value
    with pytest.raises(error, match=key):
        SimulationSpecifications(options)


def test_grid_width_tolerance(options):
    options["grid_cell_width"] = 0.1
    options["grid_res"] = 3
    options["grid_width"] = 0.3
    # 0.1 * 3 != 0.3 in floating point, but within tolerance
    SimulationSpecifications(options)


def test_unknown_option_warns(options, caplog):
    options["gridRes"] = 20
    with caplog.at_level(logging.WARNING, logger="MarchingMetaballs"):
        SimulationSpecifications(options)
    assert "gridRes" in caplog.text


def test_failed_update_restores_previous_values(options):
    specs = SimulationSpecifications(options)
    with pytest.raises(ValueError):
        specs.update({"grid_res": 10})
    assert specs["grid_res"] == 20

    specs.update({"grid_res": 10, "grid_cell_width": 1.0})
    assert specs["grid_res"] == 10


def test_copy_is_independent(options):
    specs = SimulationSpecifications(options)
    other = specs.copy()
    other["origin"][0] = 5.0
    assert specs["origin"][0] == 0.0
    assert isinstance(other, SimulationSpecifications)


def test_json_round_trip(options, tmp_path):
    options["seed"] = 42
    specs = SimulationSpecifications(options)
    filename = str(tmp_path / "specs.json")
    specs.save(filename)
    loaded = SimulationSpecifications(filename)
    assert loaded == specs

    with pytest.raises(ValueError):
        specs.save(str(tmp_path / "specs.yaml"))
