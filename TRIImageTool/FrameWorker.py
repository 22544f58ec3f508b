### FrameWorker Class ###
# File : FrameWorker.py

import logging
import queue
import threading
import time
from collections import deque
from datetime import datetime
from typing import Callable, Optional

from .DifferencingPipeline import FrameResult
from .Errors import GeometryMismatchError
from .FrameRequest import FrameRequest, ProcessingFlags
from .ImageProcessor import ImageProcessor
from .PixelMatrixFactory import PixelMatrixFactory

logger = logging.getLogger(__name__)


class FrameWorker(threading.Thread):
    """
    Dedicated processing thread between a frame source and the display.

    The capture side calls ``on_frame()`` for every raw frame; the worker
    builds a ``FrameRequest`` from the current flag snapshot and temperature
    reading, queues it, and processes queued frames strictly in delivery
    order on its own thread.  When the queue is full the oldest waiting frame
    is dropped.  Only the finished ``FrameResult`` crosses back, through
    ``latest_output`` and the optional ``on_output`` callback (called on the
    worker thread).

    Once ``dark_warmup_frames`` frames have been processed and no Dark
    reference exists, the most recent raw frame is stored as Dark.

    Parameters
    ----------
    processor : ImageProcessor
    flags_source : callable, optional
        Returns the ``ProcessingFlags`` snapshot for a new frame.  Defaults
        to ``ProcessingFlags()`` (pass-through).
    temperature_source : callable, optional
        Returns the most recent instrument temperature [°C] or ``None``.
    on_output : callable, optional
        Called as ``on_output(result)`` after every processed frame.
    """

    def __init__(self, processor: ImageProcessor,
                 flags_source: Optional[Callable[[], ProcessingFlags]] = None,
                 temperature_source: Optional[Callable[[], float]] = None,
                 on_output: Optional[Callable[[FrameResult], None]] = None):
        super().__init__(name="FrameWorker")
        self.daemon = True
        self.processor = processor
        self.flags_source = flags_source or ProcessingFlags
        self.temperature_source = temperature_source
        self.on_output = on_output

        self.frame_count = 0
        self.dropped_count = 0

        self._queue = queue.Queue(maxsize=processor.config.queue_size)
        self._state_lock = threading.Lock()
        self._running = threading.Event()
        self._latest_raw = None
        self._latest_output = None
        self._frame_times = deque(maxlen=240)

    @property
    def latest_output(self) -> Optional[FrameResult]:
        with self._state_lock:
            return self._latest_output

    @property
    def running(self) -> bool:
        return self._running.is_set()

    def start(self):
        if not self.processor.is_preprocessed:
            self.processor.preprocess()
        self._running.set()
        super().start()
        logger.info("Frame worker started")

    def stop(self, timeout: float = None):
        """Stop processing; frames still queued are discarded."""
        self._running.clear()
        if self.is_alive():
            self.join(timeout)
        while True:
            try:
                self._queue.get_nowait().dispose()
            except queue.Empty:
                break
        logger.info("Frame worker stopped after %d frames (%d dropped)",
                    self.frame_count, self.dropped_count)

    def on_frame(self, image, capture_time: datetime = None, buffer_config=None):
        """
        Raw-frame delivery callback for the capture source.  Never blocks:
        the processor lock is not taken and a full queue drops its oldest
        frame.
        """
        matrix = PixelMatrixFactory.create(image, buffer_config)
        with self._state_lock:
            self._latest_raw = matrix

        request = FrameRequest(
            frame=matrix,
            capture_time=capture_time or datetime.now(),
            recent_temperature=self._read_temperature(),
            cold_frame_temperature=self.processor.peek_reference_temperature("cold"),
            flags=self.flags_source())

        while True:
            try:
                self._queue.put_nowait(request)
                return
            except queue.Full:
                try:
                    self._queue.get_nowait().dispose()
                except queue.Empty:
                    continue
                with self._state_lock:
                    self.dropped_count += 1

    def run(self):
        while self._running.is_set():
            try:
                request = self._queue.get(timeout=0.1)
            except queue.Empty:
                continue

            try:
                result = self.processor.process_frame(request)
            except GeometryMismatchError as e:
                logger.error("Frame rejected: %s", e)
                continue
            finally:
                request.dispose()

            with self._state_lock:
                self._latest_output = result
                self.frame_count += 1
                self._frame_times.append(time.monotonic())
                frame_count = self.frame_count

            if self.on_output is not None:
                try:
                    self.on_output(result)
                except Exception:
                    logger.exception("Output callback failed")

            warmup = self.processor.config.dark_warmup_frames
            if warmup and frame_count >= warmup and (
                    self.processor.reference("dark") is None):
                self.capture_dark()

    def capture_dark(self):
        return self._capture("dark")

    def capture_cold(self):
        return self._capture("cold")

    def capture_hot(self):
        return self._capture("hot")

    def fps(self, window: float = 1.0) -> float:
        """Frames processed per second over the last *window* seconds."""
        now = time.monotonic()
        with self._state_lock:
            recent = [t for t in self._frame_times if now - t <= window]
        return len(recent) / window

    def _capture(self, kind):
        with self._state_lock:
            matrix = self._latest_raw
        if matrix is None:
            raise RuntimeError(f"No frame available to capture as {kind}")

        setter = getattr(self.processor, f"set_{kind}")
        return setter(matrix.copy(), temperature=self._read_temperature())

    def _read_temperature(self):
        if self.temperature_source is None:
            return None
        return self.temperature_source()
