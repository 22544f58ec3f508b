from pydantic import BaseModel, Field
from datetime import datetime
from typing import Literal, Optional

from .PixelMatrix import PixelMatrix

ReferenceKind = Literal["dark", "cold", "hot"]


class ReferenceFrame(BaseModel):
    """
    A stored reference capture.

    Attributes
    ----------
    kind : {'dark', 'cold', 'hot'}
        Which reference this is.
    matrix : PixelMatrix
        Canonical BGRA uint8 pixels.
    capture_time : datetime
        When the frame was captured.
    temperature : float or None
        Instrument temperature reading [°C] at capture time, ``None`` when no
        reading was available.
    """
    kind: ReferenceKind
    matrix: PixelMatrix
    capture_time: datetime = Field(default_factory=datetime.now)
    temperature: Optional[float] = None
