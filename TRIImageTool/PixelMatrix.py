from pydantic import BaseModel, ConfigDict, field_validator
import numpy as np

from .Errors import GeometryMismatchError

SUPPORTED_DTYPES = (np.dtype(np.uint8), np.dtype(np.float32))


class PixelMatrix(BaseModel):
    """
    Container for a single 2-D pixel buffer.

    Attributes
    ----------
    data : np.ndarray
        Pixel samples, shape ``(rows, cols)`` for single-channel buffers or
        ``(rows, cols, channels)`` otherwise.  Element type is either
        ``uint8`` or ``float32``; anything else is rejected on construction.

    Notes
    -----
    The array is held by reference, never copied.  Pipeline buffers are
    mutated in place every frame, so a ``PixelMatrix`` handed to the
    reference store or to a ``FrameRequest`` must not be modified by the
    caller afterwards.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    data: np.ndarray

    @field_validator("data")
    @classmethod
    def validate_data(cls, v):
        if v.ndim not in (2, 3):
            raise ValueError(
                f"Pixel data must be 2-D or 3-D, got {v.ndim} dimensions")
        if v.dtype not in SUPPORTED_DTYPES:
            raise ValueError(
                f"Unsupported element type {v.dtype}; expected uint8 or float32")
        return v

    @property
    def height(self) -> int:
        return self.data.shape[0]

    @property
    def width(self) -> int:
        return self.data.shape[1]

    @property
    def channels(self) -> int:
        return 1 if self.data.ndim == 2 else self.data.shape[2]

    @property
    def dtype(self):
        return self.data.dtype

    @property
    def geometry(self):
        """``(height, width, channels)`` of the buffer."""
        return (self.height, self.width, self.channels)

    def same_geometry(self, other: "PixelMatrix") -> bool:
        return self.geometry == other.geometry

    def require_geometry(self, geometry, context=None):
        """
        Raise ``GeometryMismatchError`` unless the buffer has *geometry*.
        """
        if self.geometry != tuple(geometry):
            raise GeometryMismatchError(geometry, self.geometry, context)

    def copy(self) -> "PixelMatrix":
        return PixelMatrix(data=self.data.copy())
