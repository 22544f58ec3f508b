### RegistrationEngine Class ###
# File : RegistrationEngine.py

import logging
import math
import time

import cv2
import numpy as np
from pydantic import BaseModel

from .MatrixOps import require_same_geometry, to_gray
from .ProcessorConfig import RegistrationConfig

logger = logging.getLogger(__name__)


class AlignmentResult(BaseModel):
    """
    Outcome of one registration.

    Attributes
    ----------
    dx, dy : float
        Displacement of the live frame relative to the reference in
        full-resolution pixels.  The aligned frame is the live frame
        translated by ``(-dx, -dy)``.  At processing resolution ``dy`` has
        ``vertical_offset`` subtracted, so the applied vertical translation
        is ``-measured + vertical_offset``.
    response : float
        Phase-correlation peak response, roughly ``0`` (no match) to ``1``.
    scale_x, scale_y : float
        Full-resolution / processing-resolution ratios.
    fallback : bool
        ``True`` when the estimate was degenerate and the unregistered frame
        was returned instead.
    """
    dx: float = 0.0
    dy: float = 0.0
    response: float = 0.0
    scale_x: float = 1.0
    scale_y: float = 1.0
    fallback: bool = False


class RegistrationEngine:
    """
    Aligns a live frame onto a reference by phase correlation.

    Both frames are reduced to grayscale, resampled to the configured
    processing resolution, windowed with a cached Hann window and correlated
    in the frequency domain.  The sub-pixel shift is rescaled to full
    resolution and undone with an affine translation of the live frame.

    Not safe for concurrent use: the Hann window cache is shared between
    calls.
    """

    def __init__(self, config: RegistrationConfig = None):
        self.config = config or RegistrationConfig()
        self._window = None

    @property
    def hann_window(self):
        """The cached window, ``None`` before the first correlation."""
        return self._window

    def estimate(self, current: np.ndarray, reference: np.ndarray,
                 native: bool = False) -> AlignmentResult:
        """
        Measure the translation of *current* relative to *reference*.

        Parameters
        ----------
        current, reference : np.ndarray
            Frames of identical geometry (BGRA, BGR or single channel,
            uint8 or float32 in 8-bit units).
        native : bool, optional
            Correlate at full resolution instead of the configured
            processing size.  No vertical correction is applied then.
            Default is ``False``.

        Returns
        -------
        AlignmentResult
            ``fallback`` is set when the frames are featureless, the peak
            response is below ``min_response`` or OpenCV fails.

        Raises
        ------
        GeometryMismatchError
            If the two frames differ in size or channel count.
        """
        require_same_geometry(current, reference, context="registration")
        started = time.perf_counter()

        height, width = current.shape[:2]
        size = (width, height) if native else self.config.process_size
        scale_x = width / size[0]
        scale_y = height / size[1]

        current_small = self._prepare(current, size)
        reference_small = self._prepare(reference, size)

        if np.ptp(current_small) == 0 or np.ptp(reference_small) == 0:
            logger.warning("Registration skipped: featureless frame")
            return AlignmentResult(scale_x=scale_x, scale_y=scale_y,
                                   fallback=True)

        window = self._window_for(size)

        try:
            (shift_x, shift_y), response = cv2.phaseCorrelate(
                reference_small, current_small, window)
        except cv2.error as e:
            logger.warning("Phase correlation failed: %s", e)
            return AlignmentResult(scale_x=scale_x, scale_y=scale_y,
                                   fallback=True)

        finite = all(math.isfinite(v) for v in (shift_x, shift_y, response))
        if not finite or response < self.config.min_response:
            logger.warning(
                "Registration degenerate (response=%s), using unregistered frame",
                response)
            return AlignmentResult(response=float(response) if finite else 0.0,
                                   scale_x=scale_x, scale_y=scale_y,
                                   fallback=True)

        dx = shift_x * scale_x
        dy = shift_y * scale_y
        if not native:
            # The warp translates by -dy, so the correction lands on it unchanged
            dy -= self.config.vertical_offset

        logger.debug(
            "Vibration detected: X=%.2fpx, Y=%.2fpx upscaled X=%.2fpx, Y=%.2fpx "
            "(%.1f ms)", shift_x, shift_y, dx, dy,
            (time.perf_counter() - started) * 1000.0)

        return AlignmentResult(dx=dx, dy=dy, response=float(response),
                               scale_x=scale_x, scale_y=scale_y)

    def align(self, current: np.ndarray, reference: np.ndarray,
              out: np.ndarray = None, native: bool = False):
        """
        Translate *current* so that it lines up with *reference*.

        Parameters
        ----------
        current, reference : np.ndarray
            Frames of identical geometry.
        out : np.ndarray, optional
            Destination buffer with the geometry and dtype of *current*.
            A new array is allocated when omitted.
        native : bool, optional
            See ``estimate()``.

        Returns
        -------
        aligned : np.ndarray
            The translated frame, or an unmodified copy of *current* when
            the registration fell back.  Never aliases *current*.
        result : AlignmentResult
        """
        result = self.estimate(current, reference, native=native)

        if out is None:
            out = np.empty_like(current)
        else:
            require_same_geometry(current, out, context="aligned output")

        if result.fallback:
            np.copyto(out, current)
            return out, result

        height, width = current.shape[:2]
        matrix = np.float32([[1.0, 0.0, -result.dx],
                             [0.0, 1.0, -result.dy]])
        aligned = cv2.warpAffine(current, matrix, (width, height), dst=out,
                                 flags=cv2.INTER_LINEAR)
        if aligned is not out:
            np.copyto(out, aligned)
        return out, result

    def _window_for(self, size):
        # Rebuilt whenever the processing size changed since the last call
        if self._window is None or self._window.shape != (size[1], size[0]):
            logger.debug("Building %dx%d Hann window", size[0], size[1])
            self._window = cv2.createHanningWindow(size, cv2.CV_32F)
        return self._window

    @staticmethod
    def _prepare(frame, size):
        gray = to_gray(frame)
        if gray.dtype != np.float32:
            gray = gray.astype(np.float32)
        if (gray.shape[1], gray.shape[0]) != size:
            gray = cv2.resize(gray, size, interpolation=cv2.INTER_AREA)
        # 8-bit units to 0.0 - 1.0
        return np.multiply(gray, np.float32(1.0 / 255.0), dtype=np.float32)
