import numpy as np

from .PixelMatrix import PixelMatrix


def pixel_value_histogram(image):
    """
    Percentage of pixels at each 8-bit value.

    Parameters
    ----------
    image : PixelMatrix or np.ndarray
        uint8 frame.  For BGR/BGRA frames the red channel is counted; a
        single-channel frame is counted as is.

    Returns
    -------
    np.ndarray
        ``(256,)`` float64 array summing to 100.

    Raises
    ------
    ValueError
        If the frame is not 8-bit.

    Examples
    --------
    >>> hist = pixel_value_histogram(np.full((4, 4), 7, dtype=np.uint8))
    >>> hist[7]
    100.0
    """
    data = image.data if isinstance(image, PixelMatrix) else np.asarray(image)
    if data.dtype != np.uint8:
        raise ValueError(f"Histogram needs an 8-bit frame, got {data.dtype}")

    if data.ndim == 3 and data.shape[2] >= 3:
        channel = data[:, :, 2]
    elif data.ndim == 3:
        channel = data[:, :, 0]
    else:
        channel = data

    counts = np.bincount(channel.ravel(), minlength=256)
    return counts * (100.0 / channel.size)
