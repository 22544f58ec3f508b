from datetime import datetime

import numpy as np
import pytest

from TRIImageTool import ReferenceFrameStore
from TRIImageTool.Errors import GeometryMismatchError


def test_primes_follow_dark(constant):
    store = ReferenceFrameStore()
    store.set_dark(constant(0))
    store.set_cold(constant(50))
    store.set_hot(constant(60))

    assert np.all(store.cold_prime.data[..., :3] == 50)
    assert np.all(store.hot_prime.data[..., :3] == 60)

    store.set_dark(constant(10))

    assert np.all(store.cold_prime.data[..., :3] == 40)
    assert np.all(store.hot_prime.data[..., :3] == 50)
    # Raw references are untouched
    assert np.all(store.cold.matrix.data[..., :3] == 50)
    assert np.all(store.hot.matrix.data[..., :3] == 60)


def test_prime_without_dark_equals_raw(constant):
    store = ReferenceFrameStore()
    store.set_cold(constant(50))
    assert store.cold_prime.dtype == np.float32
    assert np.all(store.cold_prime.data[..., :3] == 50)


def test_prime_is_signed(constant):
    store = ReferenceFrameStore()
    store.set_dark(constant(80))
    store.set_cold(constant(50))
    assert np.all(store.cold_prime.data[..., :3] == -30)


def test_references_use_canonical_layout(constant):
    store = ReferenceFrameStore()
    frame = store.set_cold(constant(50, height=12, width=16), temperature=24.5)
    assert frame.kind == "cold"
    assert frame.temperature == 24.5
    assert frame.matrix.geometry == (12, 16, 4)
    assert store.geometry == (12, 16, 4)


def test_capture_time_kept():
    store = ReferenceFrameStore()
    when = datetime(2026, 3, 1, 12, 0, 0)
    frame = store.set_dark(np.zeros((4, 4), np.uint8), capture_time=when)
    assert frame.capture_time == when


def test_mismatched_geometry_is_rejected(constant):
    store = ReferenceFrameStore()
    store.set_cold(constant(50))

    with pytest.raises(GeometryMismatchError):
        store.set_hot(constant(60, height=50, width=50))
    assert store.hot is None
    assert store.hot_prime is None

    with pytest.raises(GeometryMismatchError):
        store.set_dark(constant(0, height=50, width=50))
    assert store.dark is None
    assert np.all(store.cold_prime.data[..., :3] == 50)


def test_missing_references_read_as_zeros():
    store = ReferenceFrameStore()
    shape = (8, 8, 4)

    dark = store.dark_or_zeros(shape)
    cold_prime = store.cold_prime_or_zeros(shape)

    assert dark.shape == shape and dark.dtype == np.uint8
    assert cold_prime.shape == shape and cold_prime.dtype == np.float32
    assert not dark.any()
    assert not cold_prime.any()
    assert store.geometry is None


def test_require_geometry(constant):
    store = ReferenceFrameStore()
    store.require_geometry((5, 5, 4))

    store.set_cold(constant(1))
    store.require_geometry((100, 100, 4))
    with pytest.raises(GeometryMismatchError):
        store.require_geometry((100, 100, 3))


def test_clear(constant):
    store = ReferenceFrameStore()
    store.set_dark(constant(0))
    store.set_cold(constant(50))
    store.clear()

    assert store.dark is None
    assert store.cold is None
    assert store.cold_prime is None
    # A new geometry is accepted after clearing
    store.set_cold(constant(50, height=20, width=20))
    assert store.geometry == (20, 20, 4)
