from pydantic import BaseModel, Field, model_validator
from typing import Literal, Optional

PixelFormat = Literal["gray8", "bgr24", "bgra32", "rgb24", "rgba32"]

BYTES_PER_PIXEL = {
    "gray8": 1,
    "bgr24": 3,
    "bgra32": 4,
    "rgb24": 3,
    "rgba32": 4,
}


class FrameBufferConfig(BaseModel):
    """
    Layout metadata for a raw 8-bit frame buffer delivered by a capture
    source.

    Pass an instance of this class together with the raw bytes to
    ``PixelMatrixFactory.create_from_buffer()``.

    Parameters
    ----------
    width : int
        Number of pixel columns.  Must be >= 1.
    height : int
        Number of pixel rows.  Must be >= 1.
    pixel_format : {'gray8', 'bgr24', 'bgra32', 'rgb24', 'rgba32'}, optional
        Channel order of the source buffer.  Default is ``'bgra32'``, the
        layout of 32 bpp camera bitmaps.
    stride : int or None, optional
        Bytes per row including any padding.  ``None`` means rows are tightly
        packed (``width * bytes_per_pixel``).  Must be at least the packed
        row length when given.
    """
    width: int = Field(..., ge=1, description="Pixel columns")
    height: int = Field(..., ge=1, description="Pixel rows")
    pixel_format: PixelFormat = Field(
        default="bgra32",
        description="Channel order of the raw buffer"
    )
    stride: Optional[int] = Field(
        default=None,
        ge=1,
        description="Bytes per row including padding"
    )

    @property
    def bytes_per_pixel(self) -> int:
        return BYTES_PER_PIXEL[self.pixel_format]

    @property
    def row_bytes(self) -> int:
        return self.stride if self.stride is not None else (
            self.width * self.bytes_per_pixel)

    @model_validator(mode="after")
    def validate_stride(self):
        if self.stride is not None and (
                self.stride < self.width * self.bytes_per_pixel):
            raise ValueError(
                f"Stride {self.stride} is shorter than a packed row of "
                f"{self.width * self.bytes_per_pixel} bytes")
        return self
