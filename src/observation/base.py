"""
Camera device contract used by the live frame source.

A device is asked for a facing and a resolution; both are preferences the
hardware may ignore. Implementations hand back decoded frames one at a
time and FrameSource decides which one the inference loop sees.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from models.frame import FrameData

FACINGS = ("environment", "user")


@dataclass
class ObservationConfig:
    """
    What to ask the camera for.

    Attributes:
        source_id: Name used in logs and stamped on every frame.
        facing: "environment" (rear) or "user" (front).
        resolution: Preferred (width, height); None keeps the device default.
        fps: Preferred capture rate; None keeps the device default.
    """
    source_id: str = "default"
    facing: str = "environment"
    resolution: Optional[Tuple[int, int]] = None
    fps: Optional[int] = None

    def __post_init__(self):
        if self.facing not in FACINGS:
            raise ValueError(f"facing must be one of {FACINGS}, got {self.facing!r}")


class ObservationSource(ABC):
    """
    A camera that can be acquired, read and released.

    open() raises when the device is denied or missing; read() returns None
    when no frame is ready yet and raises when the device went away.

        with OpenCVSource(config) as camera:
            frame_data = camera.read()
    """

    def __init__(self, config: ObservationConfig):
        self._config = config
        self._is_open = False
        self._frame_index = 0

    @property
    def source_id(self) -> str:
        return self._config.source_id

    @property
    def facing(self) -> str:
        return self._config.facing

    @property
    def is_open(self) -> bool:
        return self._is_open

    @abstractmethod
    def open(self) -> None:
        """Acquire the device. Raises if it is denied or unavailable."""

    @abstractmethod
    def read(self) -> Optional[FrameData]:
        """Return the next decoded frame, or None if none is ready."""

    @abstractmethod
    def close(self) -> None:
        """Release the device. Safe to call more than once."""

    def _stamp(self, frame: np.ndarray) -> FrameData:
        """Wrap a decoded array as the next FrameData from this camera."""
        self._frame_index += 1
        return FrameData(
            frame=frame,
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=self.source_id,
        )

    def __enter__(self) -> "ObservationSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
