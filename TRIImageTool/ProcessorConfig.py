### ProcessorConfig Classes ###
# File : ProcessorConfig.py

from pydantic import BaseModel, Field, field_validator
from typing import Literal, Tuple

ColorMapName = Literal["jet", "inferno", "hot", "rainbow", "viridis"]


class RegistrationConfig(BaseModel):
    """
    Configuration for phase-correlation registration.

    Fields are read on every call, so they may be changed while frames are
    being processed; the Hann window follows the new processing size on the
    next correlation.

    Parameters
    ----------
    process_width, process_height : int, optional
        Reduced resolution both frames are resampled to before correlation.
        Chosen once, independent of the camera resolution.  Defaults are
        ``813`` x ``618``.
    vertical_offset : float, optional
        Fixed correction in full-resolution pixels added to the vertical
        translation of the warp when registering at reduced resolution
        (negative moves the image up).  Default is ``-1.0``.
    min_response : float, optional
        Phase-correlation peak response below which the estimate is treated
        as degenerate and the unregistered frame is used.  Must be in
        ``[0, 1]``.  Default is ``0.02``.
    """
    process_width: int = Field(default=813, ge=8, description="Processing width [px]")
    process_height: int = Field(default=618, ge=8, description="Processing height [px]")
    vertical_offset: float = Field(default=-1.0, description="Vertical correction [px]")
    min_response: float = Field(default=0.02, ge=0.0, le=1.0)

    @property
    def process_size(self) -> Tuple[int, int]:
        """``(width, height)`` in OpenCV size order."""
        return (self.process_width, self.process_height)


class VisualizationConfig(BaseModel):
    """
    Display options for the false-colour output.

    Parameters
    ----------
    color_map : {'jet', 'inferno', 'hot', 'rainbow', 'viridis'}, optional
        Palette baked into the lookup table.  Default is ``'jet'``.
    roi_color : tuple of int, optional
        BGR colour of the ROI outline.  Default is red ``(0, 0, 255)``.
    roi_thickness : int, optional
        Outline thickness in pixels.  Default is ``2``.
    """
    color_map: ColorMapName = "jet"
    roi_color: Tuple[int, int, int] = (0, 0, 255)
    roi_thickness: int = Field(default=2, ge=1)

    @field_validator("roi_color")
    @classmethod
    def validate_roi_color(cls, v):
        if any(c < 0 or c > 255 for c in v):
            raise ValueError("ROI colour components must be within 0-255")
        return v


class ProcessorConfig(BaseModel):
    """
    Top-level configuration for an ``ImageProcessor`` and its ``FrameWorker``.

    Parameters
    ----------
    registration : RegistrationConfig, optional
        Registration settings.
    visualization : VisualizationConfig, optional
        Palette and overlay settings.
    division_sentinel : float, optional
        Value substituted wherever a division is singular (zero reference
        pixel, zero temperature coefficient, zero temperature delta).
        Default is ``0.0``.
    dark_warmup_frames : int, optional
        Number of delivered frames after which the worker captures a Dark
        reference automatically if none exists.  ``0`` disables the
        automatic capture.  Default is ``10``.
    queue_size : int, optional
        Frames the worker may hold before the oldest queued frame is
        dropped.  Must be >= 1.  Default is ``2``.
    """
    registration: RegistrationConfig = Field(default_factory=RegistrationConfig)
    visualization: VisualizationConfig = Field(default_factory=VisualizationConfig)

    division_sentinel: float = 0.0
    dark_warmup_frames: int = Field(default=10, ge=0)
    queue_size: int = Field(default=2, ge=1)
