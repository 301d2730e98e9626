from abc import ABC, abstractmethod
import pathlib
import numpy as np
import torch
import torch.nn.functional as F
import igl
import trimesh

import SDFQueryBench

import logging

logger = logging.getLogger(SDFQueryBench.__name__)


class SDFBase(ABC):
    """Abstract base class for Signed Distance Functions.

    SDFs represent geometry as an implicit function that returns the signed
    distance from any query point to the nearest surface. Negative values
    indicate points inside the geometry, positive values indicate points
    outside, and zero indicates points on the surface.

    In SDFQueryBench an SDF is the candidate evaluator of a benchmark run.
    Its domain bounds define the volume through which the sampling plane
    is laid.

    Notes
    -----
    Subclasses must implement:
    - ``_compute(queries)``: Calculate SDF values for query points
    - ``_get_domain_bounds()``: Return the bounding box of the geometry

    Examples
    --------
    >>> from SDFQueryBench.sdf_primitives import SphereSDF
    >>> import torch
    >>>
    >>> sphere = SphereSDF(center=[0, 0, 0], radius=1.0)
    >>> points = torch.tensor([[0.0, 0.0, 0.0], [2.0, 0.0, 0.0]])
    >>> distances = sphere(points)
    >>> print(distances)  # [-1.0, 1.0] (inside, outside)
    """

    def __call__(self, queries: torch.Tensor) -> torch.Tensor:
        """Evaluate the SDF at given query points.

        Parameters
        ----------
        queries : torch.Tensor
            Query points of shape (N, 3).

        Returns
        -------
        torch.Tensor
            Signed distance values of shape (N, 1).

        Raises
        ------
        ValueError
            If queries have invalid shape.
        RuntimeError
            If SDF computation returns invalid output.
        """
        self._validate_input(queries)
        sdf_values = self._compute(queries)
        if sdf_values is None:
            raise RuntimeError("Invalid SDF output")
        return sdf_values

    def _validate_input(self, queries: torch.Tensor):
        if queries.ndim != 2 or queries.shape[1] != 3:
            raise ValueError(f"Expected input of shape (N, 3), got {queries.shape}")

    @abstractmethod
    def _compute(self, queries: torch.Tensor) -> torch.Tensor:
        """Compute SDF values for query points.

        Parameters
        ----------
        queries : torch.Tensor
            Query points of shape (N, 3).

        Returns
        -------
        torch.Tensor
            Signed distance values of shape (N, 1).
        """
        pass

    @abstractmethod
    def _get_domain_bounds(self) -> np.ndarray:
        """Return the bounding box of the SDF's domain.

        This is the sample area of the SDF; the benchmark derives its
        sampling plane from it.

        Returns
        -------
        np.ndarray
            Array of shape (2, 3) where the first row contains minimum
            coordinates and the second row contains maximum coordinates.
        """
        pass


class GridSDF(SDFBase):
    """SDF stored as distance samples on a regular voxel grid.

    Values in between grid nodes are reconstructed by trilinear
    interpolation. Queries outside of the bounds are clamped to the border
    of the grid.

    Parameters
    ----------
    values : array-like of shape (nx, ny, nz)
        Signed distances at the grid nodes, ``values[i, j, k]`` belongs to
        the node ``(x_i, y_j, z_k)`` (``ij`` indexing).
    bounds : array-like of shape (2, 3)
        Positions of the first and the last grid node along every axis.
    """

    def __init__(self, values, bounds):
        super().__init__()
        values = torch.as_tensor(values)
        if not torch.is_floating_point(values):
            values = values.to(torch.float32)
        bounds = np.asarray(bounds, dtype=np.float64)
        if values.ndim != 3 or min(values.shape) < 2:
            raise ValueError(
                f"Grid values must have shape (nx, ny, nz) with at least two "
                f"nodes per axis, got {tuple(values.shape)}"
            )
        if bounds.shape != (2, 3):
            raise ValueError(f"Bounds should be of shape (2,3), got {bounds.shape}")
        if np.any(bounds[0] > bounds[1]):
            raise ValueError(f"Lower bounds {bounds[0]} exceed upper bounds {bounds[1]}")
        self.values = values
        self.bounds = bounds
        # grid_sample expects (N, C, D, H, W) with the last axis being x
        self._volume = values.permute(2, 1, 0)[None, None]

    @classmethod
    def from_file(cls, filename):
        """Load a grid SDF written by
        :func:`SDFQueryBench.mesh.export_sdf_grid_npz`."""
        with np.load(filename) as data:
            missing = {"bounds", "values"} - set(data.files)
            if missing:
                raise ValueError(
                    f"SDF file {filename} is missing the arrays {sorted(missing)}"
                )
            values, bounds = data["values"], data["bounds"]
        logger.debug(f"Loaded grid SDF of shape {values.shape} from {filename}")
        return cls(values, bounds)

    def _get_domain_bounds(self):
        return self.bounds

    def _compute(self, queries: torch.Tensor) -> torch.Tensor:
        dtype = self.values.dtype
        lower = torch.as_tensor(self.bounds[0], dtype=dtype)
        extent = torch.as_tensor(self.bounds[1] - self.bounds[0], dtype=dtype)
        # flat axes map onto the first node
        extent = torch.where(extent > 0, extent, torch.ones_like(extent))
        grid = 2.0 * (queries.to(dtype) - lower) / extent - 1.0
        sdf_values = F.grid_sample(
            self._volume,
            grid.reshape(1, -1, 1, 1, 3),
            mode="bilinear",
            padding_mode="border",
            align_corners=True,
        )
        return sdf_values.reshape(-1, 1).to(queries.dtype)


class SDFfromMesh(SDFBase):
    """Create an SDF from a triangle mesh using closest-point queries.

    The unsigned distance comes from libigl's closest point query, the sign
    from an inside test of the mesh (negative inside). Results are returned
    in the dtype and on the device of the queries.

    Parameters
    ----------
    mesh : trimesh.Trimesh
        The input triangle mesh.
    scale : bool, default True
        If True, normalizes the mesh to fit within [-1, 1]^3.

    Examples
    --------
    >>> import trimesh
    >>> from SDFQueryBench.SDF import SDFfromMesh
    >>> import torch
    >>>
    >>> mesh = trimesh.creation.box(extents=[1, 1, 1])
    >>> sdf = SDFfromMesh(mesh, scale=True)
    >>> points = torch.tensor([[0.0, 0.0, 0.0], [2.0, 0.0, 0.0]])
    >>> distances = sdf(points)
    """

    def __init__(self, mesh, scale=True):
        super().__init__()
        if scale:
            mesh = normalize_mesh_to_unit_cube(mesh)
        self.mesh = mesh

    def _get_domain_bounds(self):
        return self.mesh.bounds

    def _compute(self, queries: torch.Tensor):
        queries_np = queries.detach().cpu().numpy().astype(np.float64)

        squared_distance, _, _ = igl.point_mesh_squared_distance(
            queries_np,
            np.asarray(self.mesh.vertices, dtype=np.float64),
            np.array(self.mesh.faces, dtype=np.int32),
        )
        distances = np.sqrt(np.maximum(squared_distance, 0.0))

        # negative inside
        distances[self.mesh.contains(queries_np)] *= -1.0

        return torch.tensor(
            distances.reshape(-1, 1), device=queries.device, dtype=queries.dtype
        )


def normalize_mesh_to_unit_cube(mesh: trimesh.Trimesh):
    """
    Transform mesh coordinates uniformly to [-1, 1] in all axes.
    Keeps aspect ratio of original mesh.
    """
    logger.debug(f"Scaling mesh from {mesh.bounds.flatten()}")
    bbox_min = mesh.bounds[0]
    bbox_max = mesh.bounds[1]

    center = (bbox_max + bbox_min) / 2.0

    # divide by 2 because [-1,1] spans 2 units
    scale = np.max(bbox_max - bbox_min) / 2.0
    if scale <= 0:
        raise ValueError("Cannot normalize a mesh with an empty bounding box")

    matrix = np.eye(4)
    matrix[:3, 3] = -center
    mesh.apply_transform(matrix)

    scale_matrix = np.eye(4)
    scale_matrix[:3, :3] *= 1.0 / scale
    mesh.apply_transform(scale_matrix)
    logger.debug(f"to {mesh.bounds.flatten()}")
    return mesh


def load_sdf(path, scale=True) -> SDFBase:
    """Load the SDF that is benchmarked.

    ``.npz`` files are read as :class:`GridSDF`. Any mesh format trimesh can
    read is wrapped in :class:`SDFfromMesh`; ``scale`` controls whether that
    mesh is normalized to [-1, 1]^3.
    """
    # avoids a circular import, mesh.py needs SDFBase
    from SDFQueryBench.mesh import load_mesh

    path = pathlib.Path(path)
    suffix = path.suffix.lower().lstrip(".")
    if suffix == "npz":
        return GridSDF.from_file(path)
    if suffix in trimesh.available_formats():
        return SDFfromMesh(load_mesh(path), scale=scale)
    raise ValueError(f"Unsupported SDF file format: {path.suffix}")
