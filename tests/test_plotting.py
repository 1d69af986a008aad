import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402
import pytest  # noqa: E402
import torch  # noqa: E402

from MarchingMetaballs.grid import SampleGrid  # noqa: E402
from MarchingMetaballs.metaballs import MetaballField  # noqa: E402
from MarchingMetaballs.plotting import (  # noqa: E402
    MatplotlibVisualizer,
    generate_plane_points,
    plot_triangles,
)
from MarchingMetaballs.polygonizer import CellPolygonizer  # noqa: E402


@pytest.fixture
def field():
    return MetaballField(
        positions=[[2.0, 2.0, 2.0], [1.0, 1.5, 2.5]],
        velocities=[[0.0, 0.0, 0.0], [0.0, 0.0, 0.0]],
        radii=[1.0, 0.75],
        grid_width=4.0,
    )


@pytest.mark.parametrize(
    "normal, constant_axis", [((0, 0, 1), 2), ((0, 1, 0), 1), ((1, 0, 0), 0)]
)
def test_plane_points(normal, constant_axis):
    points, u, v = generate_plane_points(
        (1.0, 2.0, 3.0), normal, (5, 4), (-1, 1), (0, 2)
    )
    assert points.shape == (20, 3)
    assert u.shape == v.shape == (20,)
    origin_component = (1.0, 2.0, 3.0)[constant_axis]
    np.testing.assert_allclose(points[:, constant_axis], origin_component)


def test_plane_points_oblique_normal():
    with pytest.raises(NotImplementedError):
        generate_plane_points((0, 0, 0), (1, 1, 0), (5, 5), (-1, 1), (-1, 1))


def test_plot_slice(field):
    fig, ax = field.plot_slice(
        origin=(2.0, 2.0, 2.0), res=(20, 20), xlim=(-2, 2), ylim=(-2, 2)
    )
    assert ax.figure is fig
    plt.close(fig)


def test_visualizer(field):
    grid = SampleGrid(cell_width=0.5, resolution=8)
    grid.resample(field)
    triangles = CellPolygonizer()(grid, 1.0)

    visualizer = MatplotlibVisualizer()
    visualizer.update(grid, grid.visible_cells(1.0), triangles)
    visualizer.hide()
    assert not visualizer.show_grid
    visualizer.update(grid, grid.visible_cells(1.0), triangles[:0])
    visualizer.show()
    assert visualizer.show_grid

    ax = plot_triangles(triangles)
    assert ax.name == "3d"
    plt.close("all")


def test_field_accepts_torch_queries_only(field):
    with pytest.raises(ValueError):
        field(np.zeros((3, 3)))
    assert field(torch.zeros(3, 3)).shape == (3, 1)
