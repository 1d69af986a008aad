from MarchingMetaballs.config import SimulationSpecifications
from MarchingMetaballs.marching_cubes import MarchingCubes
from MarchingMetaballs.mesh import export_surface_mesh
from MarchingMetaballs.plotting import MatplotlibVisualizer
from tqdm import tqdm
import matplotlib.pyplot as plt

specs = SimulationSpecifications(
    {
        "isolevel": 1.0,
        "min_radius": 0.75,
        "max_radius": 1.5,
        "grid_cell_width": 0.25,
        "grid_width": 10.0,
        "grid_res": 40,
        "max_speed": 0.1,
        "num_metaballs": 6,
        "visual_debug": True,
        "seed": 1,
        "spawn": "random",
    }
)

mc = MarchingCubes(specs, visualizer=MatplotlibVisualizer())
mc.field.plot_slice(
    origin=(5.0, 5.0, 5.0), xlim=(-5, 5), ylim=(-5, 5), isolevel=specs["isolevel"]
)

for _ in tqdm(range(100), desc="Frames"):
    mc.step(1.0)

export_surface_mesh("outputs/metaballs.obj", mc.mesh())
mc.hide()
mc.step(1.0)
plt.show()
