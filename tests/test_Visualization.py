import cv2
import numpy as np
import pytest

from TRIImageTool import ColorMap, ROI, draw_roi, normalize_to_u8, to_display_image
from TRIImageTool import pixel_value_histogram


def test_colorize_matches_opencv():
    color_map = ColorMap("jet")
    color_map.bake()
    gray = np.random.default_rng(3).integers(0, 256, (40, 50), dtype=np.uint8)

    assert np.array_equal(color_map.colorize(gray),
                          cv2.applyColorMap(gray, cv2.COLORMAP_JET))


def test_jet_runs_blue_to_red():
    table = ColorMap("jet").bake()
    blue, green, red = table[0]
    assert blue > red and blue > green
    blue, green, red = table[255]
    assert red > blue and red > green


def test_table_requires_bake():
    color_map = ColorMap()
    assert not color_map.is_baked
    with pytest.raises(RuntimeError):
        color_map.colorize(np.zeros((2, 2), np.uint8))


def test_colorize_rejects_float():
    color_map = ColorMap()
    color_map.bake()
    with pytest.raises(ValueError):
        color_map.colorize(np.zeros((2, 2), np.float32))


def test_unknown_color_map():
    with pytest.raises(ValueError):
        ColorMap("plasma-ish")


def test_normalize_is_idempotent_on_full_range():
    ramp = np.tile(np.arange(256, dtype=np.uint8), (4, 1))
    assert np.array_equal(normalize_to_u8(ramp), ramp)


def test_normalize_float():
    src = np.array([[-1.0, 0.0, 3.0]], dtype=np.float32)
    assert normalize_to_u8(src).tolist() == [[0, 64, 255]]


def test_normalize_constant_is_zero():
    assert not normalize_to_u8(np.full((3, 3), 7.5, np.float32)).any()


def test_draw_roi_on_bgr():
    image = np.zeros((20, 20, 3), np.uint8)
    draw_roi(image, ROI(x=5, y=5, width=10, height=10), (0, 0, 255), 1)
    assert list(image[5, 5]) == [0, 0, 255]
    assert list(image[14, 14]) == [0, 0, 255]
    assert list(image[10, 10]) == [0, 0, 0]
    assert list(image[4, 4]) == [0, 0, 0]


def test_draw_roi_on_gray():
    image = np.zeros((20, 20), np.float32)
    draw_roi(image, ROI(x=0, y=0, width=30, height=30), (0, 0, 200), 1)
    assert image[0, 0] == 200
    assert image[19, 19] == 200


@pytest.mark.parametrize("image, mode", [
    (np.zeros((4, 5, 3), np.uint8), "RGB"),
    (np.zeros((4, 5, 4), np.uint8), "RGBA"),
    (np.zeros((4, 5), np.uint8), "L"),
    (np.linspace(-1, 1, 20, dtype=np.float32).reshape(4, 5), "L"),
])
def test_display_image_modes(image, mode):
    display = to_display_image(image)
    assert display.mode == mode
    assert display.size == (5, 4)


def test_display_image_swaps_channels():
    bgr = np.zeros((1, 1, 3), np.uint8)
    bgr[0, 0] = (255, 0, 0)
    assert to_display_image(bgr).getpixel((0, 0)) == (0, 0, 255)


def test_histogram_sums_to_hundred():
    frame = np.random.default_rng(4).integers(0, 256, (30, 40, 4), dtype=np.uint8)
    histogram = pixel_value_histogram(frame)
    assert histogram.shape == (256,)
    assert histogram.sum() == pytest.approx(100.0)


def test_histogram_counts_red_channel():
    frame = np.zeros((10, 10, 4), np.uint8)
    frame[..., 2] = 9
    frame[:5, :, 2] = 200
    histogram = pixel_value_histogram(frame)
    assert histogram[9] == pytest.approx(50.0)
    assert histogram[200] == pytest.approx(50.0)
    assert histogram[0] == 0


def test_histogram_rejects_float():
    with pytest.raises(ValueError):
        pixel_value_histogram(np.zeros((2, 2), np.float32))
