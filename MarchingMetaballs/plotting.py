"""
Visualization and Plotting Utilities
=====================================

This module provides the visualization side of the simulation: slices
through a scalar field, previews of the extracted triangles and a debug
visualizer that the frame driver feeds when ``visual_debug`` is enabled.

Functions
---------
plot_slice
    Create a contour plot of a field on an axis-aligned plane.
generate_plane_points
    Generate a regular grid of points on a plane in 3D space.
plot_triangles
    Draw a triangle list with matplotlib's 3D toolkit.

Classes
-------
MatplotlibVisualizer
    Debug view of the grid cells gated by their center sample and of the
    current surface.
"""

import matplotlib.pyplot as plt
import numpy as np
import torch
from mpl_toolkits.mplot3d.art3d import Poly3DCollection


def plot_slice(
    fun,
    origin=(0, 0, 0),
    normal=(0, 0, 1),
    res=(100, 100),
    ax=None,
    xlim=(-1, 1),
    ylim=(-1, 1),
    clim=(0, 2),
    cmap="viridis",
    isolevel=1.0,
    show=False,
):
    """Plot a 2D slice through a field as a contour plot.

    Parameters
    ----------
    fun : callable
        The field to visualize. Should accept a torch.Tensor of shape
        (N, 3) and return values of shape (N, 1).
    origin : tuple of float, default (0, 0, 0)
        A point on the slice plane.
    normal : tuple of float, default (0, 0, 1)
        Normal vector of the slice plane. Only axis-aligned planes are
        supported: (1,0,0), (0,1,0), or (0,0,1).
    res : tuple of int, default (100, 100)
        Resolution of the slice grid (num_points_u, num_points_v).
    ax : matplotlib.axes.Axes, optional
        Axes to plot on. If None, creates a new figure.
    xlim, ylim : tuple of float
        Ranges along the two plane axes, relative to ``origin``.
    clim : tuple of float, default (0, 2)
        Color map limits. Field values are clipped to this range before
        plotting, which hides the singular peaks at the ball centers.
    cmap : str, default 'viridis'
        Matplotlib colormap name.
    isolevel : float or None, default 1.0
        If not None, draws a black contour line at this level.
    show : bool, default False
        Call ``plt.show()`` after drawing.

    Returns
    -------
    fig, ax : matplotlib.figure.Figure, matplotlib.axes.Axes
    """
    if ax is None:
        fig, ax = plt.subplots()
    else:
        fig = ax.figure

    points, u, v = generate_plane_points(origin, normal, res, xlim, ylim)

    points = torch.from_numpy(points).to(torch.float32)
    values = fun(points).reshape((res[0], res[1]))
    X = u.reshape((res[0], res[1]))
    Y = v.reshape((res[0], res[1]))
    if isinstance(values, torch.Tensor):
        values = values.detach().cpu().numpy()
    values = np.clip(values, clim[0], clim[1])

    cbar = ax.contourf(X, Y, values, cmap=cmap, levels=10)
    if isolevel is not None and values.min() < isolevel < values.max():
        ax.contour(X, Y, values, levels=[isolevel], colors="black", linewidths=0.5)
    cbar.set_clim(clim[0], clim[1])
    ax.set_xticks([])
    ax.set_yticks([])
    ax.set_aspect(1)
    if show:
        plt.show()
    return fig, ax


def generate_plane_points(origin, normal, res, xlim, ylim):
    """Generate evenly spaced points on a plane in 3D space.

    Parameters
    ----------
    origin : array-like of shape (3,)
        A point on the plane.
    normal : array-like of shape (3,)
        Normal vector of the plane, one of [1,0,0], [0,1,0] or [0,0,1].
    res : tuple of int
        Grid resolution (num_points_u, num_points_v).
    xlim, ylim : tuple of float
        Ranges along the first and second plane axis.

    Returns
    -------
    points : np.ndarray of shape (num_points_u * num_points_v, 3)
    u : np.ndarray of shape (num_points_u * num_points_v,)
    v : np.ndarray of shape (num_points_u * num_points_v,)

    Notes
    -----
    - Normal [0,0,1] (XY plane): u=[1,0,0], v=[0,1,0]
    - Normal [0,1,0] (XZ plane): u=[1,0,0], v=[0,0,1]
    - Normal [1,0,0] (YZ plane): u=[0,1,0], v=[0,0,1]
    """
    normal = np.array(normal, dtype=float)
    normal = normal / np.linalg.norm(normal)
    origin = np.array(origin, dtype=float)
    if np.allclose(normal, [0, 0, 1]):
        u_axis = np.array([1.0, 0.0, 0.0])
        v_axis = np.array([0.0, 1.0, 0.0])
    elif np.allclose(normal, [0, 1, 0]):
        u_axis = np.array([1.0, 0.0, 0.0])
        v_axis = np.array([0.0, 0.0, 1.0])
    elif np.allclose(normal, [1, 0, 0]):
        u_axis = np.array([0.0, 1.0, 0.0])
        v_axis = np.array([0.0, 0.0, 1.0])
    else:
        raise NotImplementedError(
            "Normal vector other than [1,0,0], [0,1,0] and [0,0,1] not supported yet."
        )

    u_coords = np.linspace(xlim[0], xlim[1], res[0])
    v_coords = np.linspace(ylim[0], ylim[1], res[1])
    uu, vv = np.meshgrid(u_coords, v_coords, indexing="ij")
    u = uu.reshape(-1)
    v = vv.reshape(-1)
    points = origin + u[:, None] * u_axis + v[:, None] * v_axis

    return points, u, v


def plot_triangles(triangles, ax=None, color="tab:orange", alpha=0.8):
    """Draw a triangle list of shape (T, 3, 3) on a 3D axes."""
    if ax is None:
        fig = plt.figure()
        ax = fig.add_subplot(projection="3d")
    if isinstance(triangles, torch.Tensor):
        triangles = triangles.detach().cpu().numpy()
    collection = Poly3DCollection(triangles, facecolor=color, alpha=alpha)
    collection.set_edgecolor("black")
    collection.set_linewidth(0.1)
    ax.add_collection3d(collection)
    return ax


class MatplotlibVisualizer:
    """Debug view for :class:`MarchingMetaballs.marching_cubes.MarchingCubes`.

    Every update redraws the surface and, while the grid is shown, the
    centers of the cells whose center sample exceeds the isolevel.
    """

    def __init__(self, ax=None):
        if ax is None:
            fig = plt.figure()
            ax = fig.add_subplot(projection="3d")
        self.ax = ax
        self.show_grid = True

    def update(self, grid, visible_cells: torch.Tensor, triangles: torch.Tensor):
        self.ax.cla()
        lower = grid.origin.detach().cpu().numpy()
        upper = lower + grid.grid_width
        self.ax.set_xlim(lower[0], upper[0])
        self.ax.set_ylim(lower[1], upper[1])
        self.ax.set_zlim(lower[2], upper[2])
        if self.show_grid:
            centers = grid.centers[visible_cells].detach().cpu().numpy()
            self.ax.scatter(
                centers[:, 0], centers[:, 1], centers[:, 2], color="tab:green", s=4
            )
        if triangles.shape[0] > 0:
            plot_triangles(triangles, ax=self.ax)

    def show(self):
        self.show_grid = True

    def hide(self):
        self.show_grid = False
