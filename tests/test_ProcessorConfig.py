import pytest
from pydantic import ValidationError

from TRIImageTool import (FrameRequest, ImageProcessor, ProcessingFlags,
                          ProcessorConfig, RegistrationConfig, ROI,
                          VisualizationConfig)


def test_defaults():
    config = ProcessorConfig()
    assert config.registration.process_size == (813, 618)
    assert config.registration.vertical_offset == -1.0
    assert config.visualization.color_map == "jet"
    assert config.division_sentinel == 0.0
    assert config.dark_warmup_frames == 10


def test_default_flags():
    flags = ProcessingFlags()
    assert not flags.hot_frame_rolling
    assert flags.normalize_before_map
    assert flags.apply_color_map
    assert flags.coefficient == 1.0
    assert flags.roi is None


@pytest.mark.parametrize("kwargs", [
    dict(process_width=4),
    dict(process_height=0),
    dict(min_response=1.5),
])
def test_invalid_registration(kwargs):
    with pytest.raises(ValidationError):
        RegistrationConfig(**kwargs)


@pytest.mark.parametrize("kwargs", [
    dict(color_map="sepia"),
    dict(roi_color=(0, 0, 300)),
    dict(roi_thickness=0),
])
def test_invalid_visualization(kwargs):
    with pytest.raises(ValidationError):
        VisualizationConfig(**kwargs)


def test_invalid_queue_size():
    with pytest.raises(ValidationError):
        ProcessorConfig(queue_size=0)


def test_registration_config_shared_with_engine():
    processor = ImageProcessor()
    processor.config.registration.process_width = 400
    assert processor.registration.config.process_size == (400, 618)


def test_color_map_choice():
    processor = ImageProcessor(ProcessorConfig(
        visualization=VisualizationConfig(color_map="inferno")))
    processor.preprocess()
    assert processor.is_preprocessed
    assert processor.color_map.name == "inferno"


def test_roi_rejects_negative_size():
    with pytest.raises(ValidationError):
        ROI(x=0, y=0, width=-1, height=3)


def test_unknown_reference_kind():
    with pytest.raises(ValueError):
        ImageProcessor().reference("warm")


def test_clear_references_accepts_new_geometry(constant):
    processor = ImageProcessor()
    processor.set_cold(constant(50), temperature=25.0)
    assert processor.reference_temperature("cold") == 25.0

    processor.clear_references()
    assert processor.reference("cold") is None
    assert processor.reference_temperature("cold") is None
    processor.set_cold(constant(50, 40, 60))
    assert processor.store.geometry == (40, 60, 4)


def test_histogram_on_facade(constant):
    histogram = ImageProcessor.pixel_value_histogram(constant(7, 4, 4))
    assert histogram[7] == 100.0


def test_request_dispose(constant):
    request = FrameRequest.from_image(constant(1))
    assert not request.disposed
    request.dispose()
    assert request.disposed
    assert request.frame is None
