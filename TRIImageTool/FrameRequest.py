from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional

from .PixelMatrix import PixelMatrix
from .PixelMatrixFactory import PixelMatrixFactory


class ROI(BaseModel):
    """
    Rectangular region of interest in full-resolution pixel coordinates.

    Attributes
    ----------
    x, y : int
        Top-left corner.  May lie outside the image; use ``clip()``.
    width, height : int
        Extent in pixels, >= 0.
    """
    x: int = 0
    y: int = 0
    width: int = Field(default=0, ge=0)
    height: int = Field(default=0, ge=0)

    @classmethod
    def full_image(cls, width: int, height: int) -> "ROI":
        return cls(x=0, y=0, width=width, height=height)

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0

    def clip(self, width: int, height: int) -> "ROI":
        """Intersect with a ``width`` x ``height`` image."""
        x0 = min(max(self.x, 0), width)
        y0 = min(max(self.y, 0), height)
        x1 = min(max(self.x + self.width, 0), width)
        y1 = min(max(self.y + self.height, 0), height)
        return ROI(x=x0, y=y0, width=max(x1 - x0, 0), height=max(y1 - y0, 0))

    def as_slices(self):
        """``(rows, cols)`` slices for numpy indexing."""
        return (slice(self.y, self.y + self.height),
                slice(self.x, self.x + self.width))


class ProcessingFlags(BaseModel):
    """
    Per-frame configuration snapshot supplied by the UI layer.

    Every stage flag is independently optional; stages always run in the
    fixed order subtract, divide, temperature scale, grayscale, normalize,
    colorize.

    Attributes
    ----------
    hot_frame_rolling : bool
        When ``False`` the live frame is passed through unchanged.
    subtract_dark : bool
        Subtract Dark from the live frame and compare against Cold-prime.
    track_roi : bool
        Register the dark-subtracted live frame onto Cold-prime before
        subtracting.
    divide_by_cold : bool
        Divide the change by Cold-prime.
    scale_by_temperature : bool
        Multiply by ``ad_hoc_factor / coefficient``.
    normalize_before_map : bool
        Min-max stretch to 0-255 before colour mapping.
    apply_color_map : bool
        Map through the baked false-colour lookup table.
    coefficient, ad_hoc_factor : float
        Linear temperature-scale parameters.
    roi : ROI or None
        Rectangle drawn on the output.
    """
    hot_frame_rolling: bool = False
    subtract_dark: bool = False
    track_roi: bool = False
    divide_by_cold: bool = False
    scale_by_temperature: bool = False
    normalize_before_map: bool = True
    apply_color_map: bool = True
    coefficient: float = 1.0
    ad_hoc_factor: float = 1.0
    roi: Optional[ROI] = None


class FrameRequest(BaseModel):
    """
    One incoming frame plus everything needed to process it.

    The request owns its frame; ``dispose()`` releases it once the pipeline
    has consumed it.

    Attributes
    ----------
    frame : PixelMatrix or None
        Live frame in canonical BGRA layout.  ``None`` after ``dispose()``.
    capture_time : datetime
    recent_temperature : float or None
        Most recent instrument temperature reading [°C].
    cold_frame_temperature : float or None
        Reading stored with the Cold reference.  Carried for the
        temperature-scale stage but not applied: no calibration formula
        relating it to the change image exists yet.
    flags : ProcessingFlags
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    frame: Optional[PixelMatrix] = None
    capture_time: datetime = Field(default_factory=datetime.now)
    recent_temperature: Optional[float] = None
    cold_frame_temperature: Optional[float] = None
    flags: ProcessingFlags = Field(default_factory=ProcessingFlags)

    @classmethod
    def from_image(cls, image, flags: ProcessingFlags = None,
                   buffer_config=None, **kwargs) -> "FrameRequest":
        """
        Build a request from any frame type ``PixelMatrixFactory`` accepts.
        """
        return cls(frame=PixelMatrixFactory.create(image, buffer_config),
                   flags=flags or ProcessingFlags(),
                   **kwargs)

    @property
    def disposed(self) -> bool:
        return self.frame is None

    def dispose(self):
        self.frame = None
