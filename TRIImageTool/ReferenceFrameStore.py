### ReferenceFrameStore Class ###
# File : ReferenceFrameStore.py

import logging
from datetime import datetime
from typing import Optional

import numpy as np

from .Errors import GeometryMismatchError
from .FrameBufferConfig import FrameBufferConfig
from .MatrixOps import subtract
from .PixelMatrix import PixelMatrix
from .PixelMatrixFactory import PixelMatrixFactory
from .ReferenceFrame import ReferenceFrame

logger = logging.getLogger(__name__)


class ReferenceFrameStore:
    """
    Owns the Dark, Cold and Hot reference frames and their dark-subtracted
    "prime" forms.

    Cold-prime and Hot-prime are recomputed whenever Dark or the respective
    reference changes, so they never reflect a stale Dark.  All references
    share one geometry; a frame of a different size or channel count is
    rejected before anything is replaced.

    The store itself is not synchronised.  ``ImageProcessor`` guards it with
    the same lock as the differencing pipeline.
    """

    def __init__(self):
        self._frames = {"dark": None, "cold": None, "hot": None}
        self._primes = {"cold": None, "hot": None}
        self._zeros = {}

    @property
    def dark(self) -> Optional[ReferenceFrame]:
        return self._frames["dark"]

    @property
    def cold(self) -> Optional[ReferenceFrame]:
        return self._frames["cold"]

    @property
    def hot(self) -> Optional[ReferenceFrame]:
        return self._frames["hot"]

    @property
    def cold_prime(self) -> Optional[PixelMatrix]:
        return self._primes["cold"]

    @property
    def hot_prime(self) -> Optional[PixelMatrix]:
        return self._primes["hot"]

    @property
    def geometry(self):
        """Shared ``(height, width, channels)`` of stored references, or ``None``."""
        for frame in self._frames.values():
            if frame is not None:
                return frame.matrix.geometry
        return None

    def set_dark(self, image, capture_time: datetime = None,
                 temperature: float = None,
                 buffer_config: FrameBufferConfig = None) -> ReferenceFrame:
        """
        Replace the Dark reference and recompute both primes from the stored
        raw Cold and Hot frames.  The raw Cold and Hot are left untouched.
        """
        frame = self._replace("dark", image, capture_time, temperature,
                              buffer_config)
        self._recompute_prime("cold")
        self._recompute_prime("hot")
        return frame

    def set_cold(self, image, capture_time: datetime = None,
                 temperature: float = None,
                 buffer_config: FrameBufferConfig = None) -> ReferenceFrame:
        """Replace the raw Cold reference; Cold-prime = Cold - Dark."""
        frame = self._replace("cold", image, capture_time, temperature,
                              buffer_config)
        self._recompute_prime("cold")
        return frame

    def set_hot(self, image, capture_time: datetime = None,
                temperature: float = None,
                buffer_config: FrameBufferConfig = None) -> ReferenceFrame:
        """Replace the raw Hot reference; Hot-prime = Hot - Dark."""
        frame = self._replace("hot", image, capture_time, temperature,
                              buffer_config)
        self._recompute_prime("hot")
        return frame

    def clear(self):
        """Drop every reference, e.g. after the camera geometry changed."""
        self._frames = {"dark": None, "cold": None, "hot": None}
        self._primes = {"cold": None, "hot": None}
        self._zeros.clear()
        logger.info("Reference frames cleared")

    def require_geometry(self, geometry, context=None):
        """
        Raise ``GeometryMismatchError`` if stored references do not have
        *geometry*.  An empty store accepts any geometry.
        """
        stored = self.geometry
        if stored is not None and stored != tuple(geometry):
            raise GeometryMismatchError(stored, geometry, context)

    def dark_or_zeros(self, shape) -> np.ndarray:
        return self._raw_or_zeros("dark", shape)

    def cold_or_zeros(self, shape) -> np.ndarray:
        return self._raw_or_zeros("cold", shape)

    def cold_prime_or_zeros(self, shape) -> np.ndarray:
        return self._prime_or_zeros("cold", shape)

    def hot_prime_or_zeros(self, shape) -> np.ndarray:
        return self._prime_or_zeros("hot", shape)

    def _replace(self, kind, image, capture_time, temperature, buffer_config):
        matrix = PixelMatrixFactory.create(image, buffer_config)

        for other, frame in self._frames.items():
            if other != kind and frame is not None:
                matrix.require_geometry(frame.matrix.geometry,
                                        context=f"{kind} vs stored {other}")

        self._frames[kind] = ReferenceFrame(
            kind=kind,
            matrix=matrix,
            capture_time=capture_time or datetime.now(),
            temperature=temperature)
        logger.info("%s reference set: %dx%d, temperature=%s", kind,
                    matrix.width, matrix.height, temperature)
        return self._frames[kind]

    def _recompute_prime(self, kind):
        frame = self._frames[kind]
        if frame is None:
            self._primes[kind] = None
            return
        data = frame.matrix.data
        prime = subtract(data, self.dark_or_zeros(data.shape))
        self._primes[kind] = PixelMatrix(data=prime)

    def _raw_or_zeros(self, kind, shape):
        frame = self._frames[kind]
        if frame is not None:
            return frame.matrix.data
        return self._zeros_for(tuple(shape), np.uint8)

    def _prime_or_zeros(self, kind, shape):
        prime = self._primes[kind]
        if prime is not None:
            return prime.data
        return self._zeros_for(tuple(shape), np.float32)

    def _zeros_for(self, shape, dtype):
        # Shared zero buffers stand in for missing references; never written
        key = (shape, np.dtype(dtype))
        zeros = self._zeros.get(key)
        if zeros is None:
            zeros = np.zeros(shape, dtype=dtype)
            self._zeros[key] = zeros
        return zeros
