import pytest
import torch

from MarchingMetaballs.config import SimulationSpecifications
from MarchingMetaballs.marching_cubes import MarchingCubes
from MarchingMetaballs.mesh import TriangleSoup
from MarchingMetaballs.metaballs import MIN_SQUARED_DISTANCE, MetaballField


class RecordingVisualizer:
    def __init__(self):
        self.calls = []

    def update(self, grid, visible_cells, triangles):
        self.calls.append(("update", visible_cells.clone(), triangles.clone()))

    def show(self):
        self.calls.append(("show",))

    def hide(self):
        self.calls.append(("hide",))


@pytest.fixture
def specs():
    return SimulationSpecifications(
        {
            "isolevel": 1.0,
            "min_radius": 1.5,
            "max_radius": 1.5,
            "grid_cell_width": 1.0,
            "grid_width": 4.0,
            "grid_res": 4,
            "max_speed": 0.0,
            "num_metaballs": 1,
            "visual_debug": False,
        }
    )


@pytest.fixture
def moving_field():
    return MetaballField(
        positions=[[2.0, 2.0, 2.0]],
        velocities=[[0.3, 0.1, -0.2]],
        radii=[1.5],
        grid_width=4.0,
    )


def vertex_distances(triangles, center=(2.0, 2.0, 2.0)):
    return torch.linalg.norm(triangles.reshape(-1, 3) - torch.tensor(center), dim=1)


def test_sphere_is_reconstructed(specs):
    mc = MarchingCubes(specs)
    triangles = mc.step(1.0)
    assert triangles.ndim == 3 and triangles.shape[1:] == (3, 3)
    assert triangles.shape[0] > 0
    # linear interpolation of 1/d^2 is off by less than half a cell
    distances = vertex_distances(triangles)
    assert ((distances - 1.5).abs() < 0.5 * specs["grid_cell_width"]).all()
    assert (triangles >= 0.0).all() and (triangles <= 4.0).all()


def test_isolevel_above_radius_squared(specs):
    specs.update({"isolevel": 3.0})
    triangles = MarchingCubes(specs).step(1.0)
    # only the ball center itself, a corner shared by 8 cells, exceeds R^2
    assert triangles.shape == (8, 3, 3)
    distances = vertex_distances(triangles)
    assert (distances <= 1.0 + 1e-4).all()


def test_isolevel_above_clamped_peak(specs):
    specs.update({"isolevel": 2.0 * 2.25 / MIN_SQUARED_DISTANCE})
    triangles = MarchingCubes(specs).step(1.0)
    assert triangles.shape == (0, 3, 3)


def test_ball_off_the_lattice(specs):
    def ball_at_cell_center():
        return MetaballField(
            positions=[[2.5, 2.5, 2.5]],
            velocities=[[0.0, 0.0, 0.0]],
            radii=[1.5],
            grid_width=4.0,
        )

    mc = MarchingCubes(specs, field=ball_at_cell_center())
    assert mc.step(1.0).shape[0] > 0
    # the nearest samples are the corners of the enclosing cell
    peak = mc.grid.samples.max().item()
    assert peak == pytest.approx(2.25 / 0.75)

    specs.update({"isolevel": peak * 1.001})
    triangles = MarchingCubes(specs, field=ball_at_cell_center()).step(1.0)
    assert triangles.shape == (0, 3, 3)


def test_isolevel_above_radius_squared_without_close_samples(specs):
    # every sample is at least sqrt(3) away from the ball center
    specs.update({"grid_cell_width": 2.0, "grid_res": 2})
    field = MetaballField(
        positions=[[1.0, 1.0, 1.0]],
        velocities=[[0.0, 0.0, 0.0]],
        radii=[1.5],
        grid_width=4.0,
    )
    mc = MarchingCubes(specs, field=field)
    mc.isolevel = 0.5
    assert mc.step(1.0).shape[0] > 0

    mc.isolevel = 2.25 * 1.001
    assert mc.step(1.0).shape == (0, 3, 3)


def test_frames_are_deterministic(specs):
    specs.update({"num_metaballs": 3, "max_speed": 0.5, "seed": 5})
    first = MarchingCubes(specs)
    second = MarchingCubes(specs)
    for _ in range(5):
        torch.testing.assert_close(first.step(0.5), second.step(0.5))


def test_pause_and_resume(specs, moving_field):
    mc = MarchingCubes(specs, field=moving_field)
    triangles = mc.step(1.0)
    positions = moving_field.positions.clone()

    mc.pause()
    mc.pause()
    assert mc.is_paused
    assert mc.step(1.0) is None
    torch.testing.assert_close(moving_field.positions, positions)
    torch.testing.assert_close(mc.triangles, triangles)

    mc.resume()
    mc.resume()
    assert not mc.is_paused
    assert mc.step(1.0) is not None
    torch.testing.assert_close(
        moving_field.positions, positions + moving_field.velocities
    )


def test_visualizer_receives_frames(specs):
    specs.update({"visual_debug": True})
    visualizer = RecordingVisualizer()
    mc = MarchingCubes(specs, visualizer=visualizer)
    triangles = mc.step(1.0)

    assert len(visualizer.calls) == 1
    name, visible_cells, shown_triangles = visualizer.calls[0]
    assert name == "update"
    assert visible_cells.shape == (64,)
    assert visible_cells.dtype == torch.bool
    assert visible_cells.sum() == 8
    torch.testing.assert_close(shown_triangles, triangles)


def test_visualizer_is_silent_without_debug(specs):
    visualizer = RecordingVisualizer()
    mc = MarchingCubes(specs, visualizer=visualizer)
    mc.step(1.0)
    assert visualizer.calls == []


def test_show_and_hide_do_not_change_frames(specs):
    specs.update({"visual_debug": True})
    visualizer = RecordingVisualizer()
    mc = MarchingCubes(specs, visualizer=visualizer)
    reference = MarchingCubes(specs).step(1.0)

    mc.hide()
    hidden = mc.step(1.0)
    mc.show()
    shown = mc.step(1.0)

    torch.testing.assert_close(hidden, reference)
    torch.testing.assert_close(shown, reference)
    assert [call[0] for call in visualizer.calls] == [
        "hide",
        "update",
        "show",
        "update",
    ]

    # without a visualizer both are no-ops
    MarchingCubes(specs).hide()
    MarchingCubes(specs).show()


def test_mesh_hand_off(specs):
    mc = MarchingCubes(specs)
    assert len(mc.mesh()) == 0
    triangles = mc.step(1.0)
    mesh = mc.mesh()
    assert isinstance(mesh, TriangleSoup)
    assert len(mesh) == triangles.shape[0]


def test_specs_from_dict(specs):
    mc = MarchingCubes(dict(specs))
    assert isinstance(mc.specs, SimulationSpecifications)
    with pytest.raises(ValueError):
        MarchingCubes({"isolevel": 1.0})
