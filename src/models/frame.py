"""
Decoded camera frame handed to the detector and classifier.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np


@dataclass(eq=False)
class FrameData:
    """
    One decoded frame from the live camera.

    Width and height are read from the decoded array. A camera is asked for
    a preferred resolution but may deliver another one, and the overlay and
    charts have to follow what actually arrived.

    Attributes:
        frame: BGR pixels, shape (height, width, 3).
        timestamp: Wall-clock time the frame was decoded.
        frame_index: 1-based count of frames delivered since the device opened.
        source: Source id of the camera that produced it.
    """
    frame: np.ndarray
    timestamp: float
    frame_index: int = 0
    source: Optional[str] = None

    @property
    def width(self) -> int:
        return int(self.frame.shape[1])

    @property
    def height(self) -> int:
        return int(self.frame.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height), the order overlay surfaces are sized in."""
        return (self.width, self.height)
