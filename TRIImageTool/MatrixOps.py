import cv2
import numpy as np

from .Errors import GeometryMismatchError


def require_same_geometry(*arrays, context=None):
    """
    Check that every array has the same shape.

    Parameters
    ----------
    *arrays : np.ndarray
        Buffers taking part in one element-wise operation.
    context : str, optional
        Label included in the error message.

    Raises
    ------
    GeometryMismatchError
        On the first array whose shape differs from the first one.
    """
    expected = arrays[0].shape
    for array in arrays[1:]:
        if array.shape != expected:
            raise GeometryMismatchError(expected, array.shape, context)


def _into(out, result):
    # OpenCV may hand back a fresh array when dst cannot be reused
    if out is None:
        return result
    if result is not out:
        np.copyto(out, result, casting="unsafe")
    return out


def subtract(minuend, subtrahend, out=None):
    """
    Signed element-wise ``minuend - subtrahend`` in float32.

    Unlike 8-bit saturating subtraction, negative changes survive.

    Parameters
    ----------
    minuend, subtrahend : np.ndarray
        Buffers of identical geometry (uint8 or float32).
    out : np.ndarray, optional
        float32 destination of the same geometry, written in place.

    Returns
    -------
    np.ndarray
        *out*, or a new float32 array when *out* is ``None``.
    """
    require_same_geometry(minuend, subtrahend, context="subtract")
    if out is not None:
        require_same_geometry(minuend, out, context="subtract output")
    return np.subtract(minuend, subtrahend, out=out, dtype=np.float32)


def divide(numerator, denominator, out=None, sentinel=0.0, mask=None):
    """
    Element-wise ``numerator / denominator`` guarded against zero divisors.

    Pixels whose divisor is exactly zero receive *sentinel* instead of
    ``inf``/``nan``.

    Parameters
    ----------
    numerator, denominator : np.ndarray
        Buffers of identical geometry.
    out : np.ndarray, optional
        float32 destination, written in place.
    sentinel : float, optional
        Value stored where the divisor is zero.  Default is ``0.0``.
    mask : np.ndarray, optional
        Reusable boolean scratch buffer of the same geometry.

    Returns
    -------
    out : np.ndarray
        The quotient buffer.
    zero_count : int
        Number of pixels that received the sentinel.
    """
    require_same_geometry(numerator, denominator, context="divide")
    if out is None:
        out = np.empty(numerator.shape, dtype=np.float32)
    if mask is None:
        mask = np.empty(numerator.shape, dtype=bool)
    require_same_geometry(numerator, out, mask, context="divide output")

    np.not_equal(denominator, 0, out=mask)
    out[...] = sentinel
    np.divide(numerator, denominator, out=out, where=mask)
    zero_count = int(mask.size - np.count_nonzero(mask))
    return out, zero_count


def scale(src, factor, out=None):
    """Multiply every element by a scalar *factor* (float32 result)."""
    if out is not None:
        require_same_geometry(src, out, context="scale output")
    return np.multiply(src, np.float32(factor), out=out, dtype=np.float32)


def fill(out, value):
    out[...] = value
    return out


def to_gray(src, out=None):
    """
    Reduce a BGRA, BGR or single-channel buffer to one luma channel.

    Alpha is ignored.  The element type is preserved (uint8 stays uint8,
    float32 stays float32).
    """
    if src.ndim == 2:
        if out is None:
            return src.copy()
        np.copyto(out, src, casting="unsafe")
        return out

    channels = src.shape[2]
    if channels == 4:
        code = cv2.COLOR_BGRA2GRAY
    elif channels == 3:
        code = cv2.COLOR_BGR2GRAY
    elif channels == 1:
        return to_gray(src[:, :, 0], out)
    else:
        raise ValueError(f"Cannot reduce {channels} channels to grayscale")

    if out is not None and out.shape != src.shape[:2]:
        raise GeometryMismatchError(src.shape[:2], out.shape, "grayscale output")
    if out is not None and out.dtype == src.dtype:
        return _into(out, cv2.cvtColor(src, code, dst=out))
    return _into(out, cv2.cvtColor(src, code))


def saturate_u8(src, out=None):
    """Clip to ``[0, 255]`` and round into a uint8 buffer."""
    if out is None:
        out = np.empty(src.shape, dtype=np.uint8)
    np.copyto(out, np.clip(np.rint(src), 0, 255), casting="unsafe")
    return out
