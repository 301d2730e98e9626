from SDFQueryBench.SDF import SDFBase
import numpy as np
import torch

_UNIT_BOUNDS = [[-1, -1, -1], [1, 1, 1]]


class SphereSDF(SDFBase):
    def __init__(self, center, radius, bounds=_UNIT_BOUNDS):
        super().__init__()
        self.center = torch.tensor(center, dtype=torch.float64)
        self.r = radius
        self.bounds = np.asarray(bounds, dtype=np.float64)

    def _compute(self, queries: torch.Tensor) -> torch.Tensor:
        center = self.center.to(queries.dtype)
        return (torch.linalg.norm(queries - center, dim=1) - self.r).reshape(-1, 1)

    def _get_domain_bounds(self) -> np.ndarray:
        return self.bounds


class PlaneSDF(SDFBase):
    def __init__(self, point, normal, bounds=_UNIT_BOUNDS):
        super().__init__()
        self.point = torch.tensor(point, dtype=torch.float64)
        self.normal = torch.tensor(normal, dtype=torch.float64)
        self.normal = self.normal / torch.linalg.norm(self.normal)
        self.bounds = np.asarray(bounds, dtype=np.float64)

    def _compute(self, queries: torch.Tensor) -> torch.Tensor:
        point = self.point.to(queries.dtype)
        normal = self.normal.to(queries.dtype)
        return torch.matmul(queries - point, normal).reshape(-1, 1)

    def _get_domain_bounds(self) -> np.ndarray:
        return self.bounds


class ConstantSDF(SDFBase):
    """Returns the same distance everywhere, useful to exercise the scanner."""

    def __init__(self, value, bounds=_UNIT_BOUNDS):
        super().__init__()
        self.value = value
        self.bounds = np.asarray(bounds, dtype=np.float64)

    def _compute(self, queries: torch.Tensor) -> torch.Tensor:
        return torch.full(
            (queries.shape[0], 1), self.value, dtype=queries.dtype, device=queries.device
        )

    def _get_domain_bounds(self) -> np.ndarray:
        return self.bounds
