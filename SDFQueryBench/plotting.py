"""
Visualization and Plotting Utilities
=====================================

This module turns the per-pixel timings of a scan into false-color images
and plots the timing histogram.

Functions
---------
map_colors
    Map scalar values onto the color palette.
pack_rgba, unpack_rgba
    Convert colors to packed 32 bit pixels and back.
encode_image
    Map and pack a whole array of values.
write_images
    Write one PNG per method of a scan.
plot_histogram
    Plot the mean query time per distance bucket.

Pixels are packed as ``0xAABBGGRR``: alpha in the highest byte and red in
the lowest, which is RGBA byte order in little-endian memory.
"""

from dataclasses import dataclass
import logging

import matplotlib.pyplot as plt
import numpy as np

import SDFQueryBench

logger = logging.getLogger(SDFQueryBench.__name__)

#: Distance kept from the last palette index so that an upper neighbour
#: always exists for interpolation.
PALETTE_EPSILON = 1e-3


@dataclass(frozen=True)
class ColorPalette:
    """Ordered RGB colors with channels in [0, 1]."""

    colors: tuple

    def __post_init__(self):
        if len(self.colors) < 2:
            raise ValueError("A color palette needs at least two colors")

    def __len__(self):
        return len(self.colors)

    def as_array(self) -> np.ndarray:
        return np.asarray(self.colors, dtype=np.float64)


DEFAULT_PALETTE = ColorPalette(
    (
        (1.0, 0.0, 1.0),  # magenta
        (0.0, 0.0, 1.0),  # blue
        (0.0, 1.0, 0.0),  # green
        (1.0, 1.0, 0.0),  # yellow
        (1.0, 0.0, 0.0),  # red
    )
)


def map_colors(values, min_interval, max_interval, palette=DEFAULT_PALETTE):
    """Map values onto a color gradient.

    Values are normalized against ``[min_interval, max_interval]``, scaled
    to the palette index range and clamped to
    ``[0, len(palette) - 1 - PALETTE_EPSILON]``. The color is interpolated
    linearly between the two palette entries around the index.

    Parameters
    ----------
    values : array-like
        Scalar values of any shape.
    min_interval, max_interval : float
        Values at or below ``min_interval`` get the first color, values at
        or above ``max_interval`` (almost) the last one. If both are equal
        every value gets the first color.
    palette : ColorPalette

    Raises
    ------
    ValueError
        If ``min_interval`` is larger than ``max_interval``.
    palette : ColorPalette

    Returns
    -------
    np.ndarray of shape values.shape + (3,)
    """
    values = np.asarray(values, dtype=np.float64)
    span = max_interval - min_interval
    if span < 0:
        raise ValueError(
            f"Color interval is inverted: min {min_interval} > max {max_interval}"
        )
    if span > 0:
        normalized = (values - min_interval) / span
    else:
        normalized = np.zeros_like(values)

    colors = palette.as_array()
    n = len(palette)
    index = np.clip(normalized * (n - 1), 0.0, (n - 1) - PALETTE_EPSILON)
    lower = index.astype(np.int64)
    fraction = (index - lower)[..., None]
    return (1.0 - fraction) * colors[lower] + fraction * colors[lower + 1]


def map_color(value, min_interval, max_interval, palette=DEFAULT_PALETTE):
    return map_colors(np.array([value]), min_interval, max_interval, palette)[0]


def pack_rgba(colors) -> np.ndarray:
    """Pack RGB colors in [0, 1] into uint32 words with full opacity."""
    channels = (255.0 * np.clip(np.asarray(colors, dtype=np.float64), 0.0, 1.0)).astype(
        np.uint32
    )
    return (
        np.uint32(255 << 24)
        | (channels[..., 2] << 16)
        | (channels[..., 1] << 8)
        | channels[..., 0]
    ).astype(np.uint32)


def unpack_rgba(words) -> np.ndarray:
    """Inverse of :func:`pack_rgba`, returns uint8 channels (R, G, B, A)."""
    words = np.asarray(words, dtype=np.uint32)
    return np.stack(
        [(words >> shift) & 0xFF for shift in (0, 8, 16, 24)], axis=-1
    ).astype(np.uint8)


def encode_image(values, min_interval, max_interval, palette=DEFAULT_PALETTE):
    """Color code a 2D array of values into packed RGBA pixels."""
    return pack_rgba(map_colors(values, min_interval, max_interval, palette))


def write_image(filename, packed: np.ndarray):
    """Write packed pixels of shape (height, width) as a PNG file."""
    height, width = packed.shape
    rgba = (
        np.ascontiguousarray(packed, dtype="<u4").view(np.uint8).reshape(height, width, 4)
    )
    plt.imsave(filename, rgba)
    logger.debug(f"Image of size {width}x{height} saved to {filename}")


def write_images(
    result, prefix="time", min_interval=0.0, max_interval=None, palette=DEFAULT_PALETTE
):
    """Write the timings of both methods of a scan as images.

    Both images share the same color interval. By default it ranges from
    ``min_interval`` to the slowest query of either method. The files are
    called ``{prefix}1.png`` (candidate) and ``{prefix}2.png`` (reference).

    Returns
    -------
    list of str
        Paths of the written images.
    """
    if max_interval is None:
        max_interval = max(interval.max for interval in result.stats.timing)

    filenames = []
    for number, timings in enumerate(
        (result.candidate_times, result.reference_times), start=1
    ):
        filename = f"{prefix}{number}.png"
        write_image(filename, encode_image(timings, min_interval, max_interval, palette))
        filenames.append(filename)
    logger.info(
        f"Timing images saved to {', '.join(filenames)} "
        f"(color interval {min_interval} to {max_interval} us)"
    )
    return filenames


def plot_histogram(
    stats, ax=None, labels=("Our method", "Reference"), filename=None
):
    """Plot the mean query time per distance bucket of both methods.

    Buckets without samples are left out.

    Parameters
    ----------
    stats : SDFQueryBench.benchmark.RunningStats
    ax : matplotlib.axes.Axes, optional
        Axes to plot on. If None, creates a new figure.
    labels : tuple of str
        Legend entries of the candidate and the reference.
    filename : str, optional
        If given, the figure is saved there and closed.

    Returns
    -------
    fig, ax : matplotlib.figure.Figure, matplotlib.axes.Axes
    """
    if ax is None:
        fig, ax = plt.subplots()
    else:
        fig = ax.figure

    half = stats.n_buckets // 2
    for method, label in enumerate(labels):
        means = stats.bucket_mean_times(method)
        buckets = [b for b, mean in enumerate(means) if mean is not None]
        percent = [(b - half) * 100 / half for b in buckets]
        ax.plot(percent, [means[b] for b in buckets], marker="o", label=label)

    ax.set_xlabel("Signed distance [% of plane diagonal]")
    ax.set_ylabel("Mean query time [us]")
    ax.grid(True, alpha=0.3)
    ax.legend()

    if filename is not None:
        fig.savefig(filename, dpi=150, bbox_inches="tight")
        plt.close(fig)
        logger.info(f"Histogram saved to {filename}")
    return fig, ax
