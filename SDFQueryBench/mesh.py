import logging
import pathlib
import numpy as np
import torch as _torch
import trimesh

from SDFQueryBench.SDF import SDFBase
import SDFQueryBench

logger = logging.getLogger(SDFQueryBench.__name__)


def load_mesh(filepath) -> trimesh.Trimesh:
    """
    Load a triangle mesh with trimesh.

    Scenes with multiple geometries are concatenated into a single mesh.

    Args:
        filepath: Path to mesh file (PLY, OBJ, STL, GLTF, etc.)

    Returns:
        trimesh.Trimesh object

    Raises:
        ValueError: If no valid mesh geometry found
    """
    mesh = trimesh.load(filepath)
    if isinstance(mesh, trimesh.Scene):
        meshes = [g for g in mesh.geometry.values() if isinstance(g, trimesh.Trimesh)]
        if not meshes:
            raise ValueError(f"No valid mesh geometry found in {filepath}")
        mesh = trimesh.util.concatenate(meshes)
    if not isinstance(mesh, trimesh.Trimesh) or len(mesh.faces) == 0:
        raise ValueError(f"No valid mesh geometry found in {filepath}")
    logger.info(
        f"Loaded {pathlib.Path(filepath).name} with {len(mesh.vertices)} vertices "
        f"and {len(mesh.faces)} triangles"
    )
    return mesh


def export_sdf_grid_npz(sdf: SDFBase, filename, N=64, bounds=None, device="cpu"):
    """Sample an SDF on a regular N^3 grid and store it as ``.npz``.

    The file holds ``bounds`` (2, 3) and ``values`` (N, N, N) and can be read
    back with :class:`SDFQueryBench.SDF.GridSDF`.
    """
    if bounds is None:
        bounds = sdf._get_domain_bounds()
    bounds = np.asarray(bounds, dtype=np.float64)
    x = np.linspace(bounds[0, 0], bounds[1, 0], N)
    y = np.linspace(bounds[0, 1], bounds[1, 1], N)
    z = np.linspace(bounds[0, 2], bounds[1, 2], N)
    xx, yy, zz = np.meshgrid(x, y, z, indexing="ij")
    points = np.vstack([xx.ravel(), yy.ravel(), zz.ravel()]).T

    with _torch.no_grad():
        sdf_vals = sdf(_torch.tensor(points, device=device))
    if isinstance(sdf_vals, _torch.Tensor):
        sdf_vals = sdf_vals.detach().cpu().numpy()
    sdf_vals = np.asarray(sdf_vals).reshape(N, N, N)

    np.savez(filename, bounds=bounds, values=sdf_vals)
    logger.info(f"SDF grid of resolution {N} saved to {filename}")
