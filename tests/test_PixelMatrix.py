import numpy as np
import PIL.Image
import pytest
from pydantic import ValidationError

from TRIImageTool import FrameBufferConfig, PixelMatrix, PixelMatrixFactory
from TRIImageTool.Errors import GeometryMismatchError


def test_pixel_matrix_geometry():
    mat = PixelMatrix(data=np.zeros((48, 64, 4), dtype=np.uint8))
    assert (mat.height, mat.width, mat.channels) == (48, 64, 4)
    assert mat.geometry == (48, 64, 4)

    gray = PixelMatrix(data=np.zeros((48, 64), dtype=np.float32))
    assert gray.channels == 1
    assert not mat.same_geometry(gray)


def test_pixel_matrix_rejects_unsupported_dtype():
    with pytest.raises(ValidationError):
        PixelMatrix(data=np.zeros((4, 4), dtype=np.uint16))


def test_pixel_matrix_does_not_copy():
    data = np.zeros((4, 4, 4), dtype=np.uint8)
    mat = PixelMatrix(data=data)
    assert mat.data is data


def test_require_geometry_raises():
    mat = PixelMatrix(data=np.zeros((4, 4, 4), dtype=np.uint8))
    with pytest.raises(GeometryMismatchError):
        mat.require_geometry((4, 5, 4))


def test_gray_array_becomes_bgra():
    gray = np.full((10, 12), 77, dtype=np.uint8)
    mat = PixelMatrixFactory.create(gray)
    assert mat.geometry == (10, 12, 4)
    assert mat.dtype == np.uint8
    assert np.all(mat.data[..., :3] == 77)
    assert np.all(mat.data[..., 3] == 255)


def test_bgra_array_is_kept():
    bgra = np.zeros((6, 6, 4), dtype=np.uint8)
    bgra[..., 0] = 200
    mat = PixelMatrixFactory.create(bgra)
    assert np.array_equal(mat.data, bgra)


def test_float_array_rejected():
    with pytest.raises(ValueError):
        PixelMatrixFactory.create(np.zeros((4, 4), dtype=np.float32))


def test_buffer_with_row_padding():
    # 3x2 BGR image, each row padded from 9 to 12 bytes
    rows = [
        bytes([1, 2, 3, 4, 5, 6, 7, 8, 9, 0, 0, 0]),
        bytes([10, 11, 12, 13, 14, 15, 16, 17, 18, 0, 0, 0]),
    ]
    config = FrameBufferConfig(width=3, height=2, pixel_format="bgr24", stride=12)
    mat = PixelMatrixFactory.create(b"".join(rows), config)

    assert mat.geometry == (2, 3, 4)
    assert list(mat.data[0, 0]) == [1, 2, 3, 255]
    assert list(mat.data[1, 2]) == [16, 17, 18, 255]


def test_rgb_buffer_is_swapped_to_bgr():
    config = FrameBufferConfig(width=1, height=1, pixel_format="rgb24")
    mat = PixelMatrixFactory.create(bytes([10, 20, 30]), config)
    assert list(mat.data[0, 0]) == [30, 20, 10, 255]


def test_short_buffer_rejected():
    config = FrameBufferConfig(width=4, height=4, pixel_format="bgra32")
    with pytest.raises(ValueError):
        PixelMatrixFactory.create(bytes(10), config)


def test_raw_buffer_needs_config():
    with pytest.raises(ValueError):
        PixelMatrixFactory.create(bytes(16))


def test_stride_shorter_than_row_is_invalid():
    with pytest.raises(ValidationError):
        FrameBufferConfig(width=10, height=2, pixel_format="bgr24", stride=20)


def test_pil_image():
    image = PIL.Image.new("RGB", (5, 3), color=(255, 0, 0))
    mat = PixelMatrixFactory.create(image)
    assert mat.geometry == (3, 5, 4)
    assert list(mat.data[1, 1]) == [0, 0, 255, 255]
