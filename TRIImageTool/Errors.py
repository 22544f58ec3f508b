### Errors ###
# File : Errors.py


class GeometryMismatchError(ValueError):
    """
    Raised when matrices taking part in one arithmetic operation do not share
    height, width and channel count.

    Matrices are never resized to make them fit; the caller has to supply
    frames of matching geometry.
    """

    def __init__(self, expected, actual, context=None):
        self.expected = tuple(expected)
        self.actual = tuple(actual)
        where = f" ({context})" if context else ""
        super().__init__(
            f"Geometry mismatch{where}: expected {self.expected}, "
            f"got {self.actual}")


# Per-call warning codes attached to FrameResult / ROIResult
ZERO_DIVISION = "zero_division"
ZERO_COEFFICIENT = "zero_coefficient"
ZERO_TEMPERATURE_DELTA = "zero_temperature_delta"
REGISTRATION_FALLBACK = "registration_fallback"
EMPTY_ROI = "empty_roi"
MISSING_REFERENCE = "missing_reference"
