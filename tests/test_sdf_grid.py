import numpy as np
import pytest
import torch
import trimesh

from SDFQueryBench.SDF import GridSDF, SDFfromMesh, load_sdf
from SDFQueryBench.mesh import export_sdf_grid_npz, load_mesh
from SDFQueryBench.sdf_primitives import PlaneSDF, SphereSDF


def _linear_field(points):
    return points[..., 0] + 2.0 * points[..., 1] - 0.5 * points[..., 2] + 0.1


@pytest.fixture
def linear_grid():
    bounds = np.array([[-1.0, -2.0, 0.0], [1.0, 2.0, 1.0]])
    x = np.linspace(bounds[0, 0], bounds[1, 0], 5)
    y = np.linspace(bounds[0, 1], bounds[1, 1], 7)
    z = np.linspace(bounds[0, 2], bounds[1, 2], 3)
    grid = np.stack(np.meshgrid(x, y, z, indexing="ij"), axis=-1)
    return GridSDF(_linear_field(grid), bounds)


def test_grid_sdf_trilinear_is_exact_for_linear_fields(linear_grid):
    torch.manual_seed(42)
    lower = torch.tensor([-1.0, -2.0, 0.0], dtype=torch.float64)
    size = torch.tensor([2.0, 4.0, 1.0], dtype=torch.float64)
    queries = lower + torch.rand(20, 3, dtype=torch.float64) * size
    expected = _linear_field(queries).reshape(-1, 1)
    torch.testing.assert_close(linear_grid(queries), expected)


def test_grid_sdf_clamps_outside_queries(linear_grid):
    queries = torch.tensor([[5.0, 0.0, 0.5]], dtype=torch.float64)
    border = torch.tensor([[1.0, 0.0, 0.5]], dtype=torch.float64)
    torch.testing.assert_close(linear_grid(queries), linear_grid(border))


def test_grid_sdf_rejects_invalid_input(linear_grid):
    with pytest.raises(ValueError):
        GridSDF(np.zeros((4, 4)), [[0, 0, 0], [1, 1, 1]])
    with pytest.raises(ValueError):
        GridSDF(np.zeros((4, 4, 4)), [[0, 0], [1, 1]])
    with pytest.raises(ValueError):
        GridSDF(np.zeros((4, 4, 4)), [[1, 0, 0], [0, 1, 1]])
    with pytest.raises(ValueError):
        linear_grid(torch.zeros(3, 2))


def test_export_and_load_grid(tmp_path):
    plane = PlaneSDF(point=[0.0, 0.0, 0.2], normal=[1.0, 1.0, 1.0])
    filename = tmp_path / "plane.npz"
    export_sdf_grid_npz(plane, filename, N=9)

    sdf = load_sdf(filename)
    assert isinstance(sdf, GridSDF)
    np.testing.assert_array_equal(sdf._get_domain_bounds(), [[-1, -1, -1], [1, 1, 1]])

    queries = torch.tensor([[0.1, -0.3, 0.7], [-0.9, 0.2, 0.0]], dtype=torch.float64)
    torch.testing.assert_close(sdf(queries), plane(queries))


def test_load_sdf_errors(tmp_path):
    filename = tmp_path / "broken.npz"
    np.savez(filename, values=np.zeros((2, 2, 2)))
    with pytest.raises(ValueError, match="bounds"):
        load_sdf(filename)
    with pytest.raises(ValueError):
        load_sdf(tmp_path / "sdf.unknown")


def test_sdf_from_mesh_file(tmp_path):
    filename = tmp_path / "sphere.ply"
    trimesh.creation.icosphere(subdivisions=5, radius=2.0).export(filename)

    mesh = load_mesh(filename)
    assert len(mesh.faces) > 0

    sdf = load_sdf(filename)
    assert isinstance(sdf, SDFfromMesh)
    np.testing.assert_allclose(sdf._get_domain_bounds(), [[-1] * 3, [1] * 3], atol=1e-6)

    points = torch.tensor([[0.0, 0.0, 0.0], [0.5, 0.0, 0.0], [2.0, 0.0, 0.0]])
    analytical = SphereSDF(center=[0, 0, 0], radius=1.0)
    torch.testing.assert_close(sdf(points), analytical(points), atol=2e-3, rtol=0)


def test_sdf_from_mesh_keeps_query_dtype():
    mesh = trimesh.creation.box(extents=[2.0, 2.0, 2.0])
    sdf = SDFfromMesh(mesh, scale=False)
    points = torch.tensor([[0.0, 0.0, 0.0], [2.0, 0.0, 0.0]], dtype=torch.float64)

    distances = sdf(points)
    assert distances.dtype == torch.float64
    assert distances.shape == (2, 1)
    torch.testing.assert_close(
        distances, torch.tensor([[-1.0], [1.0]], dtype=torch.float64)
    )
