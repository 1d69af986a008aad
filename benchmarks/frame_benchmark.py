import time
import torch
import pandas as pd
from MarchingMetaballs.config import SimulationSpecifications
from MarchingMetaballs.marching_cubes import MarchingCubes


def run_benchmark():
    grid_resolutions = [16, 32, 64]
    ball_counts = [1, 8, 32]
    n_frames = 10
    results = []

    print(f"{'Res':<6} | {'Balls':<6} | {'Triangles':<10} | {'Time/frame (s)':<10}")
    print("-" * 50)

    for grid_res in grid_resolutions:
        for num_metaballs in ball_counts:
            specs = SimulationSpecifications(
                {
                    "isolevel": 1.0,
                    "min_radius": 0.5,
                    "max_radius": 1.0,
                    "grid_cell_width": 8.0 / grid_res,
                    "grid_width": 8.0,
                    "grid_res": grid_res,
                    "max_speed": 0.2,
                    "num_metaballs": num_metaballs,
                    "visual_debug": False,
                    "seed": 0,
                    "spawn": "random",
                    "device": "cuda" if torch.cuda.is_available() else "cpu",
                }
            )
            mc = MarchingCubes(specs)
            mc.step(1.0)

            start_time = time.perf_counter()
            for _ in range(n_frames):
                triangles = mc.step(1.0)
            end_time = time.perf_counter()

            elapsed = (end_time - start_time) / n_frames
            results.append(
                {
                    "Resolution": grid_res,
                    "Balls": num_metaballs,
                    "Triangles": triangles.shape[0],
                    "Time": elapsed,
                }
            )
            print(
                f"{grid_res:<6} | {num_metaballs:<6} | {triangles.shape[0]:<10} "
                f"| {elapsed:.4f}"
            )

    return pd.DataFrame(results)


df = run_benchmark()
summary = df.pivot_table(index="Resolution", columns="Balls", values="Time")
print("\nFrames per second:")
print(1.0 / summary)
