import itertools

import pytest
import torch

from MarchingMetaballs.grid import SampleGrid
from MarchingMetaballs.polygonizer import CellPolygonizer, CellTriangles
from MarchingMetaballs.tables import (
    CORNER_OFFSETS,
    CUBE_EDGES,
    MAX_TRIANGLES,
    NUM_TRIANGLES_TABLE,
    TRI_TABLE,
)


@pytest.fixture
def polygonizer():
    return CellPolygonizer()


@pytest.fixture
def unit_cell():
    """Corners of the cell [0, 1]^3."""
    return (torch.tensor(CORNER_OFFSETS, dtype=torch.float32) + 1.0) / 2.0


@pytest.mark.parametrize("corner", range(8))
def test_classification_bit_per_corner(polygonizer, corner):
    samples = torch.zeros(8)
    samples[corner] = 2.0
    corner_above, cube_index = polygonizer.classify(samples, 1.0)
    assert corner_above.tolist() == [i == corner for i in range(8)]
    assert int(cube_index) == 2**corner


def test_sample_on_isolevel_is_below(polygonizer):
    _, cube_index = polygonizer.classify(torch.ones(8), 1.0)
    assert int(cube_index) == 0


@pytest.mark.parametrize("corner", range(8))
def test_single_corner_triangle(polygonizer, unit_cell, corner):
    samples = torch.zeros(8)
    samples[corner] = 2.0
    triangles, normals = polygonizer.polygonize(unit_cell, samples, 1.0)
    assert triangles.shape == (1, 3, 3)
    assert normals.shape == (0, 3)

    neighbours = [
        v1 if v0 == corner else v0 for v0, v1 in CUBE_EDGES if corner in (v0, v1)
    ]
    midpoints = (unit_cell[neighbours] + unit_cell[corner]) / 2.0
    for vertex in triangles[0]:
        assert torch.isclose(midpoints, vertex).all(dim=1).any()


@pytest.mark.parametrize("cube_index", [3, 7, 30, 60, 105, 129])
def test_vertices_follow_table_order(polygonizer, unit_cell, cube_index):
    samples = torch.tensor(
        [float(cube_index >> i & 1) for i in range(8)], dtype=torch.float32
    )
    expected = torch.stack(
        [
            torch.stack(
                [
                    (unit_cell[CUBE_EDGES[edge][0]] + unit_cell[CUBE_EDGES[edge][1]])
                    / 2.0
                    for edge in triangle
                ]
            )
            for triangle in TRI_TABLE[cube_index]
        ]
    )
    assert expected.shape[0] > 1

    triangles, _ = polygonizer.polygonize(unit_cell, samples, 0.5)
    torch.testing.assert_close(triangles, expected)
    batched = polygonizer.polygonize_cells(unit_cell[None], samples[None], 0.5)
    torch.testing.assert_close(batched, expected)


def test_all_cube_indices(polygonizer, unit_cell):
    for above in itertools.product([False, True], repeat=8):
        samples = torch.tensor(above, dtype=torch.float32)
        _, cube_index = polygonizer.classify(samples, 0.5)
        assert 0 <= int(cube_index) < 256

        triangles, _ = polygonizer.polygonize(unit_cell, samples, 0.5)
        assert triangles.shape[0] == NUM_TRIANGLES_TABLE[int(cube_index)]
        assert triangles.shape[0] <= MAX_TRIANGLES
        assert (triangles >= 0.0).all() and (triangles <= 1.0).all()


@pytest.mark.parametrize("value", [-3.0, 0.0, 0.99, 1.0, 1.01, 5.0, 1e10])
def test_uniform_sign_cells_are_empty(polygonizer, unit_cell, value):
    torch.manual_seed(0)
    # jitter away from the isolevel so every corner keeps the sign of value
    jitter = torch.rand(8) * 0.001
    samples = value + jitter if value > 1.0 else value - jitter
    result = polygonizer.polygonize(unit_cell, samples, 1.0)
    assert isinstance(result, CellTriangles)
    assert result.triangles.shape == (0, 3, 3)
    assert result.normals.shape == (0, 3)


def test_interpolation_boundaries():
    p0 = torch.tensor([0.1, 0.2, 0.3])
    p1 = torch.tensor([0.7, 0.9, 1.3])
    interpolate = CellPolygonizer.interpolate
    assert torch.equal(interpolate(0.25, p0, p1, 0.25, 3.0), p0)
    assert torch.equal(interpolate(3.0, p0, p1, 0.25, 3.0), p1)
    torch.testing.assert_close(
        interpolate(1.0, p0, p1, 0.0, 4.0), 0.75 * p0 + 0.25 * p1
    )


def test_interpolation_of_equal_samples_returns_first_point():
    p0 = torch.tensor([0.0, 0.0, 0.0])
    p1 = torch.tensor([1.0, 0.0, 0.0])
    result = CellPolygonizer.interpolate(1.0, p0, p1, 2.0, 2.0)
    assert torch.equal(result, p0)
    assert torch.isfinite(result).all()


def test_batched_interpolation():
    p0 = torch.zeros(4, 3)
    p1 = torch.ones(4, 3)
    s0 = torch.tensor([0.0, 0.0, 2.0, 1.0])
    s1 = torch.tensor([2.0, 4.0, 0.0, 1.0])
    result = CellPolygonizer.interpolate(1.0, p0, p1, s0, s1)
    expected = torch.tensor([0.5, 0.25, 0.5, 0.0])[:, None].expand(4, 3)
    torch.testing.assert_close(result, expected)


def test_batched_matches_per_cell(polygonizer):
    grid = SampleGrid(origin=(-1.0, 0.0, 2.0), cell_width=0.5, resolution=3)
    torch.manual_seed(7)
    grid.samples = torch.rand(len(grid), 8) * 2.0

    triangles = polygonizer(grid, 1.0)
    per_cell = torch.cat(
        [
            polygonizer.polygonize(grid.corners[i], grid.samples[i], 1.0).triangles
            for i in range(len(grid))
        ]
    )
    assert triangles.shape[0] > 0
    torch.testing.assert_close(triangles, per_cell)


def test_empty_grid_has_no_triangles(polygonizer):
    grid = SampleGrid(cell_width=1.0, resolution=2)
    triangles = polygonizer(grid, 1.0)
    assert triangles.shape == (0, 3, 3)
