"""
MarchingMetaballs - Isosurface Meshing of Moving Metaballs
==========================================================

MarchingMetaballs reconstructs a triangle mesh approximating the isosurface
of a dynamic scalar field generated by a set of moving point sources
("metaballs"). The field is sampled on a uniform grid of cubic cells and each
cell is polygonized with the table-driven marching cubes algorithm. All point
sets, samples and triangles are held in PyTorch tensors.

Key Components
--------------

Field
    - ``MarchingMetaballs.field``: Abstract scalar field base class
    - ``MarchingMetaballs.metaballs``: Moving inverse-square point sources

Sampling and Meshing
    - ``MarchingMetaballs.grid``: Uniform sample grid with cached samples
    - ``MarchingMetaballs.tables``: Marching cubes topology tables
    - ``MarchingMetaballs.polygonizer``: Per-cell and batched polygonization
    - ``MarchingMetaballs.marching_cubes``: Frame driver

Configuration and Output
    - ``MarchingMetaballs.config``: Validated simulation specifications
    - ``MarchingMetaballs.mesh``: Triangle soup hand-off and export
    - ``MarchingMetaballs.plotting``: Visualization tools
    - ``MarchingMetaballs.utils``: General utility functions

Examples
--------
Run a few frames and export the surface::

    from MarchingMetaballs.config import SimulationSpecifications
    from MarchingMetaballs.marching_cubes import MarchingCubes
    from MarchingMetaballs.mesh import export_surface_mesh

    specs = SimulationSpecifications(
        {
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
    )
    mc = MarchingCubes(specs)
    for _ in range(10):
        triangles = mc.step(1.0)
    export_surface_mesh("metaballs.obj", mc.mesh())
"""

import MarchingMetaballs.utils

MarchingMetaballs.utils.configure_logging()

__version__ = "0.2.0"
__author__ = "Michael Kofler"
