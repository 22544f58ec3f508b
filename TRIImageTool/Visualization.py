import cv2
import numpy as np
import PIL.Image

from .FrameRequest import ROI
from .MatrixOps import saturate_u8

COLOR_MAPS = {
    "jet": cv2.COLORMAP_JET,
    "inferno": cv2.COLORMAP_INFERNO,
    "hot": cv2.COLORMAP_HOT,
    "rainbow": cv2.COLORMAP_RAINBOW,
    "viridis": cv2.COLORMAP_VIRIDIS,
}


class ColorMap:
    """
    256-entry false-colour lookup table.

    The table is baked once with ``bake()`` (OpenCV's palette applied to a
    0..255 ramp) and every frame is then coloured by a plain table lookup.

    Parameters
    ----------
    name : str, optional
        One of ``COLOR_MAPS``.  Default is ``'jet'`` (blue, cyan, yellow,
        red).
    """

    def __init__(self, name: str = "jet"):
        if name not in COLOR_MAPS:
            raise ValueError(f"Unknown colour map: {name}")
        self.name = name
        self._table = None

    @property
    def is_baked(self) -> bool:
        return self._table is not None

    @property
    def table(self) -> np.ndarray:
        """``(256, 3)`` BGR table.  Raises ``RuntimeError`` before ``bake()``."""
        if self._table is None:
            raise RuntimeError(
                "Colour map not baked; call preprocess() before processing frames")
        return self._table

    def bake(self) -> np.ndarray:
        ramp = np.arange(256, dtype=np.uint8).reshape(1, 256)
        self._table = cv2.applyColorMap(ramp, COLOR_MAPS[self.name]).reshape(256, 3)
        return self._table

    def colorize(self, gray: np.ndarray, out: np.ndarray = None) -> np.ndarray:
        """
        Map a single-channel uint8 image to a 3-channel BGR image.

        Parameters
        ----------
        gray : np.ndarray
            ``(rows, cols)`` uint8 buffer.
        out : np.ndarray, optional
            ``(rows, cols, 3)`` uint8 destination.

        Returns
        -------
        np.ndarray
        """
        if gray.ndim != 2 or gray.dtype != np.uint8:
            raise ValueError("colorize() expects a single-channel uint8 image")
        if out is None:
            out = np.empty(gray.shape + (3,), dtype=np.uint8)
        np.take(self.table, gray, axis=0, out=out)
        return out


def normalize_to_u8(src: np.ndarray, out: np.ndarray = None) -> np.ndarray:
    """
    Linearly stretch a single-channel buffer to the full 0-255 range.

    A constant buffer maps to all zeros.  A uint8 buffer already spanning
    0-255 is returned unchanged.
    """
    if out is None:
        out = np.empty(src.shape, dtype=np.uint8)
    result = cv2.normalize(src, out, 0, 255, cv2.NORM_MINMAX, cv2.CV_8U)
    if result is not out:
        np.copyto(out, result)
    return out


def draw_roi(image: np.ndarray, roi: ROI, color=(0, 0, 255), thickness=2):
    """
    Outline *roi* on *image* in place.

    The rectangle is clipped to the image first; empty rectangles are not
    drawn.  On single-channel images the brightest colour component is
    used.
    """
    if roi is None:
        return image
    height, width = image.shape[:2]
    clipped = roi.clip(width, height)
    if clipped.is_empty:
        return image

    if image.ndim == 2:
        color = (float(max(color)),)
    elif image.shape[2] == 4:
        color = tuple(color) + (255,)

    top_left = (clipped.x, clipped.y)
    bottom_right = (clipped.x + clipped.width - 1, clipped.y + clipped.height - 1)
    cv2.rectangle(image, top_left, bottom_right, color, thickness)
    return image


def to_display_image(image: np.ndarray) -> PIL.Image.Image:
    """
    Convert a pipeline output into a toolkit-neutral Pillow image.

    BGR becomes ``RGB``, BGRA becomes ``RGBA``, single-channel uint8
    becomes ``L``.  Float buffers are min-max stretched to 8 bits first.
    """
    if image.dtype != np.uint8:
        if image.ndim == 2:
            image = normalize_to_u8(image)
        else:
            image = saturate_u8(image)

    if image.ndim == 2:
        return PIL.Image.fromarray(image)
    if image.shape[2] == 3:
        return PIL.Image.fromarray(cv2.cvtColor(image, cv2.COLOR_BGR2RGB))
    if image.shape[2] == 4:
        return PIL.Image.fromarray(cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA))
    raise ValueError(f"Cannot display image of shape {image.shape}")
