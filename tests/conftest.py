import cv2
import numpy as np
import pytest

from TRIImageTool import ImageProcessor, ProcessorConfig, RegistrationConfig


def _texture(height, width, seed=0, sigma=2.0):
    rng = np.random.default_rng(seed)
    noise = rng.random((height, width)).astype(np.float32)
    blurred = cv2.GaussianBlur(noise, (0, 0), sigma)
    return cv2.normalize(blurred, None, 0, 255, cv2.NORM_MINMAX, cv2.CV_8U)


@pytest.fixture
def make_texture():
    """Smooth random 8-bit grayscale texture, good for phase correlation."""
    return _texture


@pytest.fixture
def constant():
    def _constant(value, height=100, width=100):
        return np.full((height, width), value, dtype=np.uint8)
    return _constant


@pytest.fixture
def processor():
    config = ProcessorConfig(
        registration=RegistrationConfig(process_width=100,
                                        process_height=100,
                                        vertical_offset=0.0))
    processor = ImageProcessor(config)
    processor.preprocess()
    return processor
