# TRIImageTool/__init__.py

from .PixelMatrix import PixelMatrix
from .FrameBufferConfig import FrameBufferConfig
from .PixelMatrixFactory import PixelMatrixFactory
from .ReferenceFrame import ReferenceFrame
from .ReferenceFrameStore import ReferenceFrameStore

from .ProcessorConfig import ProcessorConfig, RegistrationConfig, VisualizationConfig
from .RegistrationEngine import RegistrationEngine, AlignmentResult
from .FrameRequest import FrameRequest, ProcessingFlags, ROI
from .DifferencingPipeline import DifferencingPipeline, FrameResult, PipelineBuffers
from .CTREngine import CTREngine, ROIResult
from .Visualization import ColorMap, normalize_to_u8, draw_roi, to_display_image
from .PixelHistogram import pixel_value_histogram
from .ImageProcessor import ImageProcessor
from .FrameWorker import FrameWorker
from .Errors import GeometryMismatchError

__all__ = [
    "PixelMatrix", "FrameBufferConfig", "PixelMatrixFactory", "ReferenceFrame",
    "ReferenceFrameStore", "ProcessorConfig", "RegistrationConfig",
    "VisualizationConfig", "RegistrationEngine", "AlignmentResult",
    "FrameRequest", "ProcessingFlags", "ROI", "DifferencingPipeline",
    "FrameResult", "PipelineBuffers", "CTREngine", "ROIResult", "ColorMap",
    "normalize_to_u8", "draw_roi", "to_display_image", "pixel_value_histogram",
    "ImageProcessor", "FrameWorker", "GeometryMismatchError"
]
