import math

import igl
import numpy as np
import pytest
import torch
import trimesh

from SDFQueryBench.engines import (
    IglAABBEngine,
    ReferenceEngines,
    SDFEngine,
    TrimeshProximityEngine,
    build_engine,
    list_available_engines,
)
from SDFQueryBench.sdf_primitives import SphereSDF


@pytest.fixture(scope="module")
def icosphere():
    return trimesh.creation.icosphere(subdivisions=5, radius=1.0)


@pytest.fixture
def points():
    return np.array(
        [
            [0.0, 0.0, 0.0],
            [0.5, 0.0, 0.0],
            [1.5, 0.0, 0.0],
            [2.0, 2.0, 2.0],
        ]
    )


def test_available_engines():
    assert list_available_engines() == ["igl", "trimesh"]


def test_build_engine(icosphere):
    assert isinstance(build_engine("igl", icosphere), IglAABBEngine)
    assert isinstance(build_engine(ReferenceEngines.TRIMESH, icosphere), TrimeshProximityEngine)
    with pytest.raises(ValueError, match="Available engines"):
        build_engine("cgal", icosphere)


def test_igl_engine_is_unsigned(icosphere, points):
    engine = build_engine("igl", icosphere)
    expected = [1.0, 0.5, 0.5, math.sqrt(12.0) - 1.0]
    distances = [engine.distance(p) for p in points]
    np.testing.assert_allclose(distances, expected, atol=1e-3)
    np.testing.assert_allclose(engine.distances(points), distances)


def test_trimesh_engine_is_signed(icosphere, points):
    engine = build_engine("trimesh", icosphere)
    expected = [-1.0, -0.5, 0.5, math.sqrt(12.0) - 1.0]
    distances = [engine.distance(p) for p in points]
    np.testing.assert_allclose(distances, expected, atol=1e-3)
    np.testing.assert_allclose(engine.distances(points), distances)


def test_sdf_engine(points):
    sphere = SphereSDF(center=[0.0, 0.0, 0.0], radius=1.0)
    engine = SDFEngine(sphere)
    distances = [engine.distance(p) for p in points]
    expected = sphere(torch.tensor(points)).reshape(-1).numpy()
    np.testing.assert_allclose(distances, expected)
    np.testing.assert_allclose(engine.distances(points), expected)
    assert isinstance(engine.distance(points[0]), float)


def test_igl_engine_queries_prebuilt_tree(icosphere, points, monkeypatch):
    engine = IglAABBEngine(icosphere)
    assert isinstance(engine._tree, igl.AABB)

    def rebuild_per_query(*args, **kwargs):
        raise AssertionError("queries must not rebuild the tree")

    monkeypatch.setattr(igl, "point_mesh_squared_distance", rebuild_per_query)
    np.testing.assert_allclose(engine.distance(points[2]), 0.5, atol=1e-3)
