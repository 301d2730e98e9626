import numpy as np
import pytest
import matplotlib.image

from SDFQueryBench.benchmark import scan
from SDFQueryBench.engines import DistanceEngine
from SDFQueryBench.plotting import (
    DEFAULT_PALETTE,
    ColorPalette,
    encode_image,
    map_color,
    map_colors,
    pack_rgba,
    plot_histogram,
    unpack_rgba,
    write_images,
)
from SDFQueryBench.sampling import BoundingVolume, plane_from_volume


def _palette_rgba8(index):
    return np.append(np.array(DEFAULT_PALETTE.colors[index]) * 255, 255)


def test_interval_endpoints_map_to_first_and_last_color():
    np.testing.assert_array_equal(map_color(2.0, 2.0, 10.0), DEFAULT_PALETTE.colors[0])
    np.testing.assert_allclose(
        map_color(10.0, 2.0, 10.0), DEFAULT_PALETTE.colors[-1], atol=1e-2
    )


def test_values_outside_interval_clamp():
    np.testing.assert_array_equal(map_color(-5.0, 0.0, 1.0), DEFAULT_PALETTE.colors[0])
    np.testing.assert_allclose(map_color(5.0, 0.0, 1.0), map_color(1.0, 0.0, 1.0))


def test_interpolates_between_neighbours():
    # halfway between blue and green
    np.testing.assert_allclose(map_color(0.375, 0.0, 1.0), [0.0, 0.5, 0.5])
    # exactly on the third stop
    np.testing.assert_allclose(map_color(0.5, 0.0, 1.0), [0.0, 1.0, 0.0])


def test_zero_width_interval_maps_to_first_color():
    colors = map_colors(np.array([0.0, 3.0, 7.0]), 3.0, 3.0)
    np.testing.assert_array_equal(colors, np.tile(DEFAULT_PALETTE.colors[0], (3, 1)))


def test_inverted_interval_raises():
    with pytest.raises(ValueError, match="inverted"):
        map_colors(np.array([0.0, 3.0]), 5.0, 2.0)
    with pytest.raises(ValueError, match="inverted"):
        map_color(1.0, 1.0, 0.5)


def test_pack_channel_order():
    word = pack_rgba([1.0, 0.0, 0.0])
    assert word == 0xFF0000FF
    word = pack_rgba([0.0, 0.0, 1.0])
    assert word == 0xFFFF0000
    np.testing.assert_array_equal(unpack_rgba(0xFF204080), [0x80, 0x40, 0x20, 0xFF])


def test_endpoints_survive_packing():
    packed = encode_image(np.array([[0.0, 1.0]]), 0.0, 1.0)
    assert packed.dtype == np.uint32
    channels = unpack_rgba(packed)
    np.testing.assert_allclose(channels[0, 0], _palette_rgba8(0), atol=1)
    np.testing.assert_allclose(channels[0, 1], _palette_rgba8(-1), atol=1)


def test_custom_palette():
    palette = ColorPalette(((0.0, 0.0, 0.0), (1.0, 1.0, 1.0)))
    np.testing.assert_allclose(map_color(0.25, 0.0, 1.0, palette), [0.25] * 3)
    with pytest.raises(ValueError):
        ColorPalette(((0.0, 0.0, 0.0),))


class ConstantEngine(DistanceEngine):
    def __init__(self, value):
        self.value = value

    def distance(self, point):
        return self.value


@pytest.fixture
def scan_result():
    plane = plane_from_volume(BoundingVolume.from_bounds([[-1, -1, -1], [1, 1, 1]]))
    return scan(ConstantEngine(0.1), ConstantEngine(0.1), plane, 4)


def test_write_images(tmp_path, scan_result):
    prefix = str(tmp_path / "time")
    filenames = write_images(scan_result, prefix=prefix)
    assert filenames == [prefix + "1.png", prefix + "2.png"]

    image = matplotlib.image.imread(filenames[0])
    assert image.shape == (4, 4, 4)
    np.testing.assert_allclose(image[..., 3], 1.0)

    # an interval far above every timing gives the first palette color
    write_images(scan_result, prefix=prefix, min_interval=1e9, max_interval=2e9)
    image = matplotlib.image.imread(filenames[1])
    np.testing.assert_allclose(image[..., :3], np.broadcast_to([1.0, 0.0, 1.0], (4, 4, 3)))


def test_plot_histogram(tmp_path, scan_result):
    filename = tmp_path / "histogram.png"
    fig, ax = plot_histogram(scan_result.stats, filename=str(filename))
    assert filename.exists()
    assert len(ax.lines) == 2


def test_write_images_rejects_color_min_above_timings(tmp_path, scan_result):
    with pytest.raises(ValueError, match="inverted"):
        write_images(scan_result, prefix=str(tmp_path / "time"), min_interval=1e9)
