### DifferencingPipeline Class ###
# File : DifferencingPipeline.py

import logging
import time
from datetime import datetime
from typing import Literal, Optional, Tuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from . import Errors
from .FrameRequest import FrameRequest, ProcessingFlags
from .MatrixOps import divide, fill, saturate_u8, scale, subtract, to_gray
from .ProcessorConfig import ProcessorConfig
from .ReferenceFrameStore import ReferenceFrameStore
from .RegistrationEngine import AlignmentResult, RegistrationEngine
from .Visualization import ColorMap, draw_roi, normalize_to_u8, to_display_image

logger = logging.getLogger(__name__)

Stage = Literal["passthrough", "gray", "normalized", "color_map"]


class PipelineBuffers:
    """
    Arena of reusable buffers for one frame geometry.

    Allocated once and written in place every frame, so steady-state
    processing does not allocate per stage.  Each stage owns its own buffer;
    a skipped stage forwards the previous stage's buffer instead of
    reassigning any of these fields.

    Parameters
    ----------
    height, width : int
        Frame size.
    channels : int, optional
        Channel count of the canonical layout.  Default is ``4`` (BGRA).
    """

    def __init__(self, height: int, width: int, channels: int = 4):
        shape = (height, width, channels)
        self.geometry = shape

        self.hot = np.zeros(shape, dtype=np.uint8)
        self.hot_prime = np.zeros(shape, dtype=np.float32)
        self.aligned = np.zeros(shape, dtype=np.float32)
        self.subtracted = np.zeros(shape, dtype=np.float32)
        self.divided = np.zeros(shape, dtype=np.float32)
        self.scaled = np.zeros(shape, dtype=np.float32)
        # Colour channels only; alpha never takes part in division
        self.nonzero = np.zeros((height, width, min(channels, 3)), dtype=bool)

        self.gray = np.zeros((height, width), dtype=np.float32)
        self.gray_u8 = np.zeros((height, width), dtype=np.uint8)
        self.normalized = np.zeros((height, width), dtype=np.uint8)
        self.color_map = np.zeros((height, width, 3), dtype=np.uint8)

    def matches(self, geometry) -> bool:
        return self.geometry == tuple(geometry)

    def arrays(self):
        return [value for value in vars(self).values()
                if isinstance(value, np.ndarray)]


class FrameResult(BaseModel):
    """
    Output of one ``DifferencingPipeline.process()`` call.

    Attributes
    ----------
    image : np.ndarray
        Displayable output, a copy owned by the caller: BGR uint8 after
        colour mapping, uint8 single channel after normalization, float32
        single channel otherwise, or the BGRA live frame in pass-through.
    stage : {'passthrough', 'gray', 'normalized', 'color_map'}
        Last stage that produced *image*.
    capture_time : datetime
        Capture time of the processed frame.
    alignment : AlignmentResult or None
        Registration outcome when ``track_roi`` was active.
    warnings : tuple of str
        Warning codes from ``Errors`` raised while processing this frame.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    image: np.ndarray
    stage: Stage
    capture_time: datetime = Field(default_factory=datetime.now)
    alignment: Optional[AlignmentResult] = None
    warnings: Tuple[str, ...] = ()

    def to_display_image(self):
        return to_display_image(self.image)


class DifferencingPipeline:
    """
    Per-frame orchestration turning a live frame into a change image.

    Stages run in a fixed order, each gated by its own flag in
    ``ProcessingFlags``: subtract (optionally registered), divide by
    Cold-prime, temperature scale, grayscale, normalize, colorize, ROI
    overlay.

    Numeric singularities are replaced with the configured sentinel and
    reported as warning codes on the ``FrameResult``; registration failures
    fall back to the unregistered frame.  Only a geometry mismatch between
    the live frame and the stored references raises.

    Not safe for concurrent use.  One instance processes frames in delivery
    order.

    Parameters
    ----------
    registration : RegistrationEngine
    color_map : ColorMap
        Must be baked before the first colour-mapped frame.
    config : ProcessorConfig, optional
    """

    def __init__(self, registration: RegistrationEngine, color_map: ColorMap,
                 config: ProcessorConfig = None):
        self.registration = registration
        self.color_map = color_map
        self.config = config or ProcessorConfig()
        self.buffers = None

    def process(self, request: FrameRequest,
                store: ReferenceFrameStore) -> FrameResult:
        """
        Run one frame through the pipeline.

        Parameters
        ----------
        request : FrameRequest
            Live frame and flag snapshot.  Not modified.
        store : ReferenceFrameStore
            Reference frames; missing ones read as zeros.

        Returns
        -------
        FrameResult

        Raises
        ------
        ValueError
            If the request has already been disposed.
        GeometryMismatchError
            If the live frame does not match the stored references while the
            hot frame is rolling.
        RuntimeError
            If colour mapping is requested before the colour map was baked.
        """
        if request.disposed:
            raise ValueError("FrameRequest has already been disposed")

        started = time.perf_counter()
        frame = request.frame.data
        flags = request.flags

        if flags.hot_frame_rolling:
            store.require_geometry(frame.shape, context="live frame")

        buffers = self._buffers_for(frame.shape)
        np.copyto(buffers.hot, frame)

        if not flags.hot_frame_rolling:
            return self._finish(buffers.hot, "passthrough", request, None, [])

        warnings = []
        alignment = None
        shape = buffers.geometry

        # Subtract
        if flags.subtract_dark:
            subtract(buffers.hot, store.dark_or_zeros(shape), out=buffers.hot_prime)
            cold_prime = store.cold_prime_or_zeros(shape)
            source = buffers.hot_prime
            if flags.track_roi:
                source, alignment = self.registration.align(
                    buffers.hot_prime, cold_prime, out=buffers.aligned)
                if alignment.fallback:
                    warnings.append(Errors.REGISTRATION_FALLBACK)
            subtract(source, cold_prime, out=buffers.subtracted)
        else:
            subtract(buffers.hot, store.cold_or_zeros(shape), out=buffers.subtracted)
        result = buffers.subtracted

        # Divide
        if flags.divide_by_cold:
            cold_prime = store.cold_prime_or_zeros(shape)
            _, zero_count = divide(
                result[..., :3], cold_prime[..., :3],
                out=buffers.divided[..., :3],
                sentinel=self.config.division_sentinel,
                mask=buffers.nonzero)
            if zero_count:
                warnings.append(Errors.ZERO_DIVISION)
                logger.debug("%d zero-valued Cold-prime pixels set to %s",
                             zero_count, self.config.division_sentinel)
            result = buffers.divided

        # Temperature scale.  The cold-frame temperature reading is not
        # applied here: there is no calibration formula for it yet.
        if flags.scale_by_temperature:
            if flags.coefficient == 0:
                fill(buffers.scaled, self.config.division_sentinel)
                warnings.append(Errors.ZERO_COEFFICIENT)
            else:
                scale(result, flags.ad_hoc_factor / flags.coefficient,
                      out=buffers.scaled)
            result = buffers.scaled

        to_gray(result, out=buffers.gray)
        output, stage = buffers.gray, "gray"

        if flags.normalize_before_map:
            normalize_to_u8(buffers.gray, out=buffers.normalized)
            output, stage = buffers.normalized, "normalized"

        if flags.apply_color_map:
            if stage == "gray":
                output = saturate_u8(buffers.gray, out=buffers.gray_u8)
            self.color_map.colorize(output, out=buffers.color_map)
            output, stage = buffers.color_map, "color_map"

        frame_result = self._finish(output, stage, request, alignment, warnings)
        logger.debug("Frame processed in %.1f ms (stage=%s)",
                     (time.perf_counter() - started) * 1000.0, stage)
        return frame_result

    def _finish(self, output, stage, request: FrameRequest,
                alignment, warnings) -> FrameResult:
        image = output.copy()
        flags: ProcessingFlags = request.flags
        if flags.roi is not None:
            visual = self.config.visualization
            draw_roi(image, flags.roi, visual.roi_color, visual.roi_thickness)
        return FrameResult(image=image,
                           stage=stage,
                           capture_time=request.capture_time,
                           alignment=alignment,
                           warnings=tuple(warnings))

    def _buffers_for(self, geometry) -> PipelineBuffers:
        if len(geometry) != 3:
            raise ValueError(f"Expected a canonical (rows, cols, channels) frame, got {geometry}")
        if self.buffers is None or not self.buffers.matches(geometry):
            logger.info("Allocating pipeline buffers for %dx%d frames",
                        geometry[1], geometry[0])
            self.buffers = PipelineBuffers(*geometry)
        return self.buffers
