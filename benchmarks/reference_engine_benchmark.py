import time
import trimesh
import numpy as np
import pandas as pd
from SDFQueryBench.engines import build_engine, list_available_engines
from SDFQueryBench.SDF import normalize_mesh_to_unit_cube


def run_benchmark():
    mesh_configs = {
        "Sphere (Low)": trimesh.creation.icosphere(subdivisions=2),
        "Sphere (Med)": trimesh.creation.icosphere(subdivisions=4),
        "Torus (High)": trimesh.creation.torus(
            major_radius=1.0, minor_radius=0.3, major_sections=128, minor_sections=64
        ),
    }

    query_sizes = [10**2, 10**3, 10**4]
    results = []
    rng = np.random.default_rng(0)

    print(f"{'Mesh':<15} | {'Points':<10} | {'Engine':<10} | {'us/query':<10}")
    print("-" * 55)

    for name, mesh in mesh_configs.items():
        mesh = normalize_mesh_to_unit_cube(mesh)
        for n_points in query_sizes:
            queries = rng.uniform(-1.0, 1.0, size=(n_points, 3))

            for engine_name in list_available_engines():
                engine = build_engine(engine_name, mesh)

                start_time = time.perf_counter()
                for query in queries:
                    _ = engine.distance(query)
                end_time = time.perf_counter()

                us_per_query = (end_time - start_time) * 1e6 / n_points
                results.append(
                    {
                        "Mesh": name,
                        "Faces": len(mesh.faces),
                        "Points": n_points,
                        "Engine": engine_name,
                        "Time": us_per_query,
                    }
                )
                print(
                    f"{name:<15} | {n_points:<10} | {engine_name:<10} | {us_per_query:.2f}"
                )

    return pd.DataFrame(results)


if __name__ == "__main__":
    df = run_benchmark()
    summary = df.pivot_table(index=["Mesh", "Points"], columns="Engine", values="Time")
    print("\nSpeedup (igl vs trimesh):")
    summary["Speedup (x)"] = summary["trimesh"] / summary["igl"]
    print(summary)
