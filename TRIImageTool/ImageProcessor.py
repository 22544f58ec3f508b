### ImageProcessor Class ###
# File : ImageProcessor.py

import logging
import math
import threading
from datetime import datetime

from .CTREngine import CTREngine, ROIResult
from .DifferencingPipeline import DifferencingPipeline, FrameResult
from .FrameBufferConfig import FrameBufferConfig
from .FrameRequest import FrameRequest, ROI
from .PixelHistogram import pixel_value_histogram
from .PixelMatrixFactory import PixelMatrixFactory
from .ProcessorConfig import ProcessorConfig
from .ReferenceFrame import ReferenceFrame, ReferenceKind
from .ReferenceFrameStore import ReferenceFrameStore
from .RegistrationEngine import RegistrationEngine
from .Visualization import ColorMap

logger = logging.getLogger(__name__)


class ImageProcessor:
    """
    Entry point of the thermoreflectance imaging core.

    Wires the reference store, registration engine, differencing pipeline
    and CTR engine together and serialises access to their shared buffers
    with a single lock.  Reference replacement is mutually exclusive with
    frame processing; frame conversion happens outside the lock.

    Parameters
    ----------
    config : ProcessorConfig, optional
        Validated configuration.  Defaults are used when omitted.

    Examples
    --------
    >>> processor = ImageProcessor()
    >>> processor.preprocess()
    >>> processor.set_dark(dark_frame)
    >>> processor.set_cold(cold_frame, temperature=24.8)
    >>> flags = ProcessingFlags(hot_frame_rolling=True, subtract_dark=True)
    >>> result = processor.process_frame(FrameRequest.from_image(live, flags))
    >>> result.stage
    'color_map'
    """

    def __init__(self, config: ProcessorConfig = None):
        self.config = config or ProcessorConfig()
        self.store = ReferenceFrameStore()
        self.registration = RegistrationEngine(self.config.registration)
        self.color_map = ColorMap(self.config.visualization.color_map)
        self.pipeline = DifferencingPipeline(self.registration, self.color_map,
                                             self.config)
        self.ctr_engine = CTREngine(self.registration,
                                    self.config.division_sentinel)
        self._lock = threading.Lock()

    def preprocess(self):
        """Bake the false-colour lookup table.  Run once before processing."""
        self.color_map.bake()
        logger.info("Baked %s colour map", self.color_map.name)

    @property
    def is_preprocessed(self) -> bool:
        return self.color_map.is_baked

    def set_dark(self, image, capture_time: datetime = None,
                 temperature: float = None,
                 buffer_config: FrameBufferConfig = None) -> ReferenceFrame:
        matrix = PixelMatrixFactory.create(image, buffer_config)
        with self._lock:
            return self.store.set_dark(matrix, capture_time, temperature)

    def set_cold(self, image, capture_time: datetime = None,
                 temperature: float = None,
                 buffer_config: FrameBufferConfig = None) -> ReferenceFrame:
        matrix = PixelMatrixFactory.create(image, buffer_config)
        with self._lock:
            return self.store.set_cold(matrix, capture_time, temperature)

    def set_hot(self, image, capture_time: datetime = None,
                temperature: float = None,
                buffer_config: FrameBufferConfig = None) -> ReferenceFrame:
        matrix = PixelMatrixFactory.create(image, buffer_config)
        with self._lock:
            return self.store.set_hot(matrix, capture_time, temperature)

    def clear_references(self):
        with self._lock:
            self.store.clear()

    def reference(self, kind: ReferenceKind):
        """The stored *kind* reference, or ``None``."""
        if kind not in ("dark", "cold", "hot"):
            raise ValueError(f"Unknown reference kind: {kind}")
        with self._lock:
            return getattr(self.store, kind)

    def reference_temperature(self, kind: ReferenceKind):
        """Temperature stored with the *kind* reference, or ``None``."""
        frame = self.reference(kind)
        return frame.temperature if frame is not None else None

    def peek_reference_temperature(self, kind: ReferenceKind):
        """
        ``reference_temperature()`` without taking the lock, for callers
        that must not wait on frame processing.  References are replaced
        by a single assignment, so the reading is never torn.
        """
        if kind not in ("dark", "cold", "hot"):
            raise ValueError(f"Unknown reference kind: {kind}")
        frame = getattr(self.store, kind)
        return frame.temperature if frame is not None else None

    def process_frame(self, request: FrameRequest) -> FrameResult:
        """
        Process one live frame.  See ``DifferencingPipeline.process()``.
        """
        with self._lock:
            return self.pipeline.process(request, self.store)

    def compute_ctr(self, temperature_delta: float, roi: ROI = None) -> ROIResult:
        """
        Compute the CTR means from the stored Hot and Cold references.
        See ``CTREngine.compute()``.
        """
        with self._lock:
            return self.ctr_engine.compute(self.store, temperature_delta, roi)

    def compute_ctr_from_references(self, roi: ROI = None) -> ROIResult:
        """
        ``compute_ctr()`` with the temperature delta taken from the readings
        stored with the Hot and Cold references.  A missing reading gives an
        undefined delta and therefore a sentinel result.
        """
        hot = self.reference_temperature("hot")
        cold = self.reference_temperature("cold")
        delta = math.nan if hot is None or cold is None else hot - cold
        return self.compute_ctr(delta, roi)

    @staticmethod
    def pixel_value_histogram(image):
        return pixel_value_histogram(image)
