### CTREngine Class ###
# File : CTREngine.py

import logging
import math
from typing import Optional, Tuple

import numpy as np
from pydantic import BaseModel

from . import Errors
from .FrameRequest import ROI
from .MatrixOps import divide, subtract
from .ReferenceFrameStore import ReferenceFrameStore
from .RegistrationEngine import AlignmentResult, RegistrationEngine

logger = logging.getLogger(__name__)


class ROIResult(BaseModel):
    """
    Change-in-Temperature-Response statistics.

    Attributes
    ----------
    image_mean : float
        Mean CTR coefficient over the whole image.
    roi_mean : float
        Mean CTR coefficient inside ``roi``.
    roi : ROI
        The rectangle actually used, clipped to the image.
    temperature_delta : float
        Hot minus cold temperature difference the field was divided by.
    valid : bool
        ``False`` when a sentinel replaced an undefined mean or the Hot or
        Cold reference was missing.
    warnings : tuple of str
        Warning codes from ``Errors``.
    alignment : AlignmentResult or None
    """
    image_mean: float
    roi_mean: float
    roi: ROI
    temperature_delta: float
    valid: bool = True
    warnings: Tuple[str, ...] = ()
    alignment: Optional[AlignmentResult] = None


class CTREngine:
    """
    Computes the per-pixel calibration coefficient field

        CTR(x, y) = (Hot'' - Cold') / Cold' / dT

    from the stored Hot-prime and Cold-prime references, where Hot'' is
    Hot-prime registered onto Cold-prime at full resolution, and reduces it
    to a whole-image mean and an ROI mean.

    Means are taken over the colour channels; alpha is ignored.
    """

    def __init__(self, registration: RegistrationEngine, sentinel: float = 0.0):
        self.registration = registration
        self.sentinel = float(sentinel)

    def compute(self, store: ReferenceFrameStore, temperature_delta: float,
                roi: ROI = None) -> ROIResult:
        """
        Parameters
        ----------
        store : ReferenceFrameStore
            Must hold at least one reference; Hot and Cold are the meaningful
            ones.
        temperature_delta : float
            Hot minus cold temperature [°C].  Zero or non-finite values give
            sentinel means and ``valid=False``; no exception is raised.
        roi : ROI, optional
            Region for the restricted mean.  ``None`` means the whole image.

        Returns
        -------
        ROIResult
        """
        warnings = []
        delta = float(temperature_delta)
        geometry = store.geometry

        if geometry is None:
            logger.warning("CTR requested with no reference frames stored")
            return ROIResult(image_mean=self.sentinel, roi_mean=self.sentinel,
                             roi=roi or ROI(), temperature_delta=delta,
                             valid=False,
                             warnings=(Errors.MISSING_REFERENCE,))
        if store.hot is None or store.cold is None:
            logger.warning("CTR computed with a missing Hot or Cold reference")
            warnings.append(Errors.MISSING_REFERENCE)

        height, width = geometry[:2]
        hot_prime = store.hot_prime_or_zeros(geometry)
        cold_prime = store.cold_prime_or_zeros(geometry)

        # Ih'' : registration is mandatory here
        aligned, alignment = self.registration.align(hot_prime, cold_prime,
                                                     native=True)
        if alignment.fallback:
            warnings.append(Errors.REGISTRATION_FALLBACK)

        # Ih'' - Ic' = Irs
        subtracted = subtract(aligned, cold_prime)

        # Irs / Ic' = Ird
        divided, zero_count = divide(subtracted[..., :3], cold_prime[..., :3],
                                     sentinel=self.sentinel)
        if zero_count:
            warnings.append(Errors.ZERO_DIVISION)

        clipped = (roi or ROI.full_image(width, height)).clip(width, height)

        # Ird / dT = CTR(x, y)
        if delta == 0 or not math.isfinite(delta):
            logger.warning("CTR undefined for temperature delta %s", delta)
            warnings.append(Errors.ZERO_TEMPERATURE_DELTA)
            return ROIResult(image_mean=self.sentinel, roi_mean=self.sentinel,
                             roi=clipped, temperature_delta=delta, valid=False,
                             warnings=tuple(warnings), alignment=alignment)

        ctr = np.divide(divided, np.float32(delta), dtype=np.float32)
        image_mean = float(np.mean(ctr))

        valid = Errors.MISSING_REFERENCE not in warnings
        if clipped.is_empty:
            warnings.append(Errors.EMPTY_ROI)
            roi_mean = self.sentinel
            valid = False
        else:
            roi_mean = float(np.mean(ctr[clipped.as_slices()]))

        logger.info("CTR image mean %.6g, ROI mean %.6g (dT=%.3f)",
                    image_mean, roi_mean, delta)
        return ROIResult(image_mean=image_mean, roi_mean=roi_mean, roi=clipped,
                         temperature_delta=delta, valid=valid,
                         warnings=tuple(warnings), alignment=alignment)
