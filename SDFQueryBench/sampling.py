"""
Sampling Plane
==============

The benchmark samples a planar quad that cuts through the sample volume of
the SDF at a fixed depth. Pixels of a square image map onto the quad by
bilinear interpolation of its corners, each pixel being sampled at its
center.

Corner layout of a :class:`SamplingPlane` (image row 0 is the top edge)::

    quad[0] = (min.x, max.y, z) ---- quad[1] = (max.x, max.y, z)
       |                                |
    quad[2] = (min.x, min.y, z) ---- quad[3] = (max.x, min.y, z)
"""

from dataclasses import dataclass
import numpy as np

#: Depth of the sampling plane used when none is given.
DEFAULT_DEPTH = 0.163


def lerp(a, b, t):
    return (1.0 - t) * a + t * b


@dataclass(frozen=True)
class BoundingVolume:
    """Axis-aligned box with ``min`` <= ``max`` componentwise."""

    min: np.ndarray
    max: np.ndarray

    def __post_init__(self):
        lower = np.asarray(self.min, dtype=np.float64).reshape(3)
        upper = np.asarray(self.max, dtype=np.float64).reshape(3)
        if np.any(lower > upper):
            raise ValueError(f"Bounding volume min {lower} exceeds max {upper}")
        object.__setattr__(self, "min", lower)
        object.__setattr__(self, "max", upper)

    @classmethod
    def from_bounds(cls, bounds):
        """Build from an array of shape (2, 3) as returned by
        ``SDFBase._get_domain_bounds``."""
        bounds = np.asarray(bounds, dtype=np.float64)
        if bounds.shape != (2, 3):
            raise ValueError(f"Bounds should be of shape (2,3), got {bounds.shape}")
        return cls(bounds[0], bounds[1])

    @property
    def center(self) -> np.ndarray:
        return (self.min + self.max) / 2.0

    @property
    def size(self) -> np.ndarray:
        return self.max - self.min

    @property
    def diagonal(self) -> float:
        return float(np.linalg.norm(self.size))


@dataclass(frozen=True)
class SamplingPlane:
    """Planar quad with corners ``quad[0..3]``, see the module docstring."""

    quad: tuple

    def __post_init__(self):
        corners = tuple(np.asarray(c, dtype=np.float64).reshape(3) for c in self.quad)
        if len(corners) != 4:
            raise ValueError(f"A sampling plane needs 4 corners, got {len(corners)}")
        object.__setattr__(self, "quad", corners)

    @property
    def diagonal(self) -> float:
        """Length of the diagonal from the top left to the bottom right."""
        return float(np.linalg.norm(self.quad[3] - self.quad[0]))

    def position(self, tx, ty) -> np.ndarray:
        """World position at normalized plane coordinates (tx, ty).

        The top and the bottom edge are interpolated along x by ``tx`` first,
        the results are then interpolated by ``ty``.
        """
        top = lerp(self.quad[0], self.quad[1], tx)
        bottom = lerp(self.quad[2], self.quad[3], tx)
        return lerp(top, bottom, ty)


def plane_from_volume(volume: BoundingVolume, z=DEFAULT_DEPTH) -> SamplingPlane:
    """Quad spanning the x and y extent of ``volume`` at depth ``z``."""
    return SamplingPlane(
        (
            (volume.min[0], volume.max[1], z),
            (volume.max[0], volume.max[1], z),
            (volume.min[0], volume.min[1], z),
            (volume.max[0], volume.min[1], z),
        )
    )


def pixel_coordinates(i, j, image_width):
    """Normalized coordinates of the center of pixel (i, j).

    Both values lie strictly inside (0, 1).
    """
    if image_width < 1:
        raise ValueError(f"Image width must be positive, got {image_width}")
    inv_width = 1.0 / image_width
    return inv_width * (0.5 + i), inv_width * (0.5 + j)


def pixel_positions(plane: SamplingPlane, image_width) -> np.ndarray:
    """World positions of all pixel centers.

    Returns
    -------
    np.ndarray of shape (image_width, image_width, 3)
        ``positions[j, i]`` is the sample position of pixel (i, j), rows
        are indexed by ``j``.
    """
    if image_width < 1:
        raise ValueError(f"Image width must be positive, got {image_width}")
    t = (np.arange(image_width, dtype=np.float64) + 0.5) / image_width
    tx = t[None, :, None]
    ty = t[:, None, None]
    quad = plane.quad
    top = lerp(quad[0], quad[1], tx)
    bottom = lerp(quad[2], quad[3], tx)
    return lerp(top, bottom, ty)
