"""
Distance Query Engines
======================

Every evaluator taking part in a benchmark is a :class:`DistanceEngine`: an
object answering ``distance(point) -> float`` for a single 3D point. The scan
only talks to this interface, so the SDF under test and the mesh based
references are interchangeable.

Reference engines are registered by name and built from a triangle mesh:

``igl``
    Closest point on the mesh via libigl's AABB tree. Unsigned.
``trimesh``
    trimesh's ``ProximityQuery`` on top of its r-tree of triangles.
    Signed, negative inside (trimesh itself reports positive inside).

New engines are added by subclassing :class:`DistanceEngine` and adding an
entry to ``ReferenceEngines`` and the registry.
"""

from abc import ABC, abstractmethod
from enum import Enum
import logging

import igl
import numpy as np
import torch
import trimesh

from SDFQueryBench.SDF import SDFBase
import SDFQueryBench

logger = logging.getLogger(SDFQueryBench.__name__)


class DistanceEngine(ABC):
    name = "engine"

    @abstractmethod
    def distance(self, point) -> float:
        """Distance from a single point of shape (3,) to the geometry."""
        pass

    def distances(self, points) -> np.ndarray:
        points = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        return np.array([self.distance(p) for p in points], dtype=np.float64)


class SDFEngine(DistanceEngine):
    """Wraps an :class:`SDFBase` so it can be queried point by point."""

    name = "sdf"

    def __init__(self, sdf: SDFBase, dtype=torch.float64, device="cpu"):
        self.sdf = sdf
        self.dtype = dtype
        self.device = device

    def distance(self, point) -> float:
        query = torch.as_tensor(point, dtype=self.dtype, device=self.device)
        with torch.no_grad():
            value = self.sdf(query.reshape(1, 3))
        return float(value.reshape(-1)[0])

    def distances(self, points) -> np.ndarray:
        queries = torch.as_tensor(
            np.asarray(points, dtype=np.float64).reshape(-1, 3),
            dtype=self.dtype,
            device=self.device,
        )
        with torch.no_grad():
            values = self.sdf(queries)
        if isinstance(values, torch.Tensor):
            values = values.detach().cpu().numpy()
        return np.asarray(values, dtype=np.float64).reshape(-1)


class IglAABBEngine(DistanceEngine):
    """Unsigned distance to the closest triangle, found with libigl's AABB
    tree. The tree is built once in the constructor."""

    name = "igl"

    def __init__(self, mesh: trimesh.Trimesh):
        self.vertices = np.ascontiguousarray(mesh.vertices, dtype=np.float64)
        self.faces = np.ascontiguousarray(mesh.faces, dtype=np.int32)
        self._tree = igl.AABB()
        self._tree.init(self.vertices, self.faces)

    def _squared_distances(self, points):
        squared, _, _ = self._tree.squared_distance(self.vertices, self.faces, points)
        return np.maximum(np.asarray(squared, dtype=np.float64).reshape(-1), 0.0)

    def distance(self, point) -> float:
        query = np.asarray(point, dtype=np.float64).reshape(1, 3)
        return float(np.sqrt(self._squared_distances(query)[0]))

    def distances(self, points) -> np.ndarray:
        queries = np.ascontiguousarray(points, dtype=np.float64).reshape(-1, 3)
        return np.sqrt(self._squared_distances(queries))


class TrimeshProximityEngine(DistanceEngine):
    """Signed distance from trimesh's proximity query, negative inside."""

    name = "trimesh"

    def __init__(self, mesh: trimesh.Trimesh):
        self.mesh = mesh
        self._query = trimesh.proximity.ProximityQuery(mesh)
        # builds and caches the triangle r-tree before any query is timed
        _ = mesh.triangles_tree

    def distance(self, point) -> float:
        query = np.asarray(point, dtype=np.float64).reshape(1, 3)
        return -float(self._query.signed_distance(query)[0])

    def distances(self, points) -> np.ndarray:
        queries = np.asarray(points, dtype=np.float64).reshape(-1, 3)
        return -np.asarray(self._query.signed_distance(queries), dtype=np.float64)


class ReferenceEngines(Enum):
    IGL = "igl"
    TRIMESH = "trimesh"


_ENGINE_REGISTRY = {
    ReferenceEngines.IGL: IglAABBEngine,
    ReferenceEngines.TRIMESH: TrimeshProximityEngine,
}


def build_engine(
    engine: str | ReferenceEngines, mesh: trimesh.Trimesh
) -> DistanceEngine:
    """
    Build a reference engine by name or enum.

    Args:
        engine (str | ReferenceEngines): engine identifier
        mesh (trimesh.Trimesh): mesh the engine answers queries for

    Returns:
        DistanceEngine ready to be queried
    """
    if isinstance(engine, str):
        try:
            engine_enum = ReferenceEngines(engine)
        except ValueError:
            raise ValueError(
                f"Unknown reference engine: {engine}. "
                f"Available engines: {', '.join(list_available_engines())}"
            )
    else:
        engine_enum = engine

    engine_cls = _ENGINE_REGISTRY.get(engine_enum)
    if engine_cls is None:
        raise ValueError(f"Engine not registered for: {engine_enum.name}")
    logger.debug(f"Building {engine_enum.value} engine for {len(mesh.faces)} faces")
    return engine_cls(mesh)


def list_available_engines():
    return [engine.value for engine in ReferenceEngines]
