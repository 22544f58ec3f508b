import cv2
import numpy as np
import PIL.Image

from .PixelMatrix import PixelMatrix
from .FrameBufferConfig import FrameBufferConfig

CANONICAL_CHANNELS = 4

# cvtColor codes taking each source layout to canonical BGRA
_TO_BGRA = {
    "gray8": cv2.COLOR_GRAY2BGRA,
    "bgr24": cv2.COLOR_BGR2BGRA,
    "rgb24": cv2.COLOR_RGB2BGRA,
    "rgba32": cv2.COLOR_RGBA2BGRA,
    "bgra32": None,
}

_PIL_MODES = {
    "L": "gray8",
    "RGB": "rgb24",
    "RGBA": "rgba32",
}


class PixelMatrixFactory:
    """
    Factory for creating canonical ``PixelMatrix`` objects.

    Whatever the capture source delivers (raw bytes with a stride, a numpy
    array, a Pillow image or an existing ``PixelMatrix``), callers always
    receive a contiguous 4-channel 8-bit BGRA matrix, so every later
    arithmetic step can assume one layout.

    Methods
    -------
    create(image, config=None)
        Dispatch on the type of *image* and return a canonical matrix.
    create_from_buffer(buffer, config)
        Decode a raw 8-bit buffer described by a ``FrameBufferConfig``.
    create_from_array(array)
        Convert an ``(rows, cols)`` / ``(rows, cols, 3|4)`` uint8 array.
    create_from_pil(image)
        Convert a Pillow image.

    Examples
    --------
    >>> config = FrameBufferConfig(width=640, height=480, pixel_format="bgr24")
    >>> mat = PixelMatrixFactory.create_from_buffer(raw_bytes, config)
    >>> mat.geometry
    (480, 640, 4)
    """

    @staticmethod
    def create(image, config: FrameBufferConfig = None) -> PixelMatrix:
        """
        Normalise *image* into the canonical BGRA layout.

        Parameters
        ----------
        image : PixelMatrix, np.ndarray, PIL.Image.Image, bytes or memoryview
            Source frame.  Raw buffers need *config*.
        config : FrameBufferConfig, optional
            Layout of a raw buffer.  Ignored for the other input types.

        Returns
        -------
        PixelMatrix
            ``uint8`` matrix of shape ``(rows, cols, 4)``.

        Raises
        ------
        ValueError
            If the input type, dtype or channel count is not supported, or a
            raw buffer is passed without a config.
        """
        if isinstance(image, PixelMatrix):
            return PixelMatrixFactory.create_from_array(image.data)

        if isinstance(image, np.ndarray):
            return PixelMatrixFactory.create_from_array(image)

        if isinstance(image, PIL.Image.Image):
            return PixelMatrixFactory.create_from_pil(image)

        if isinstance(image, (bytes, bytearray, memoryview)):
            if config is None:
                raise ValueError("A FrameBufferConfig is required for raw buffers")
            return PixelMatrixFactory.create_from_buffer(image, config)

        raise ValueError(f"Unsupported frame type: {type(image)}")

    @staticmethod
    def create_from_buffer(buffer, config: FrameBufferConfig) -> PixelMatrix:
        """
        Decode a raw 8-bit buffer honouring its row stride.

        Parameters
        ----------
        buffer : bytes, bytearray or memoryview
            Pixel rows, each ``config.row_bytes`` long.
        config : FrameBufferConfig
            Validated layout description.

        Returns
        -------
        PixelMatrix
            Canonical BGRA matrix owning a copy of the pixels.

        Raises
        ------
        ValueError
            If *buffer* is shorter than ``height * row_bytes``.
        """
        needed = config.height * config.row_bytes
        flat = np.frombuffer(buffer, dtype=np.uint8)
        if flat.size < needed:
            raise ValueError(
                f"Buffer holds {flat.size} bytes, {needed} required for "
                f"{config.width}x{config.height} {config.pixel_format}")

        bpp = config.bytes_per_pixel
        rows = flat[:needed].reshape(config.height, config.row_bytes)
        pixels = rows[:, :config.width * bpp]
        if bpp > 1:
            pixels = pixels.reshape(config.height, config.width, bpp)

        return PixelMatrix(
            data=PixelMatrixFactory._to_bgra(pixels, config.pixel_format))

    @staticmethod
    def create_from_array(array: np.ndarray) -> PixelMatrix:
        """
        Convert a uint8 array, assuming OpenCV channel order (BGR / BGRA).
        """
        array = np.asarray(array)
        if array.dtype != np.uint8:
            raise ValueError(
                f"Frames must be 8-bit, got element type {array.dtype}")

        if array.ndim == 2:
            pixel_format = "gray8"
        elif array.ndim == 3 and array.shape[2] == 1:
            array = array[:, :, 0]
            pixel_format = "gray8"
        elif array.ndim == 3 and array.shape[2] == 3:
            pixel_format = "bgr24"
        elif array.ndim == 3 and array.shape[2] == 4:
            pixel_format = "bgra32"
        else:
            raise ValueError(f"Unsupported frame shape {array.shape}")

        return PixelMatrix(
            data=PixelMatrixFactory._to_bgra(array, pixel_format))

    @staticmethod
    def create_from_pil(image: PIL.Image.Image) -> PixelMatrix:
        if image.mode not in _PIL_MODES:
            image = image.convert("RGB")
        pixel_format = _PIL_MODES[image.mode]
        return PixelMatrix(data=PixelMatrixFactory._to_bgra(
            np.asarray(image, dtype=np.uint8), pixel_format))

    @staticmethod
    def _to_bgra(pixels: np.ndarray, pixel_format: str) -> np.ndarray:
        code = _TO_BGRA[pixel_format]
        if code is None:
            return np.ascontiguousarray(pixels)
        return cv2.cvtColor(np.ascontiguousarray(pixels), code)
