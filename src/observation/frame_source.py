"""
Live frame source.

Acquires a capture device through an ObservationSource and keeps the most
recently decoded frame available, the way a live video element does. A
background reader thread pulls frames continuously; the inference loop only
ever looks at the latest one.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from typing import Callable, List, Optional, Tuple

from models.frame import FrameData
from models.status import ComponentStatus
from .base import ObservationSource

CAMERA_ERROR_MESSAGE = "Unable to access camera"

FrameListener = Callable[[FrameData], None]


class CameraAccessError(RuntimeError):
    """Raised when the camera is denied, missing, or never delivers a frame."""


class FrameSource:
    """
    Latest-frame view over an ObservationSource.

    Readiness means the first frame has been decoded, so the actual frame
    dimensions are known (the requested resolution is only a preference).
    If the device fails after that, the status turns to error and the last
    frame is kept only for display; consumers check the status.

    Example:
        frames = FrameSource(OpenCVSource(cfg), ready_timeout_s=10)
        width, height = await frames.start()
        frame_data = frames.current_frame()
    """

    def __init__(
        self,
        source: ObservationSource,
        ready_timeout_s: float = 10.0,
        max_fps: Optional[float] = None,
    ):
        self._source = source
        self._ready_timeout_s = ready_timeout_s
        self._min_interval = 1.0 / max_fps if max_fps else 0.0
        self.status = ComponentStatus()
        self.width: Optional[int] = None
        self.height: Optional[int] = None
        self._latest: Optional[FrameData] = None
        self._lock = threading.Lock()
        self._first_frame = threading.Event()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._listeners: List[FrameListener] = []

    @property
    def source_id(self) -> str:
        return self._source.source_id

    @property
    def size(self) -> Optional[Tuple[int, int]]:
        if self.width is None or self.height is None:
            return None
        return (self.width, self.height)

    def add_listener(self, listener: FrameListener) -> None:
        """Register a callback invoked (on the reader thread) for every new frame."""
        self._listeners.append(listener)

    async def start(self) -> Tuple[int, int]:
        """
        Acquire the device and wait for the first decodable frame.

        Returns:
            The actual (width, height) of the stream.

        Raises:
            CameraAccessError: If the device cannot be opened or no frame
                arrives within the ready timeout.
        """
        try:
            await asyncio.to_thread(self._source.open)
        except Exception as e:
            logging.error(f"Camera acquisition failed for {self.source_id}: {e}")
            self.status.set_error(CAMERA_ERROR_MESSAGE)
            raise CameraAccessError(CAMERA_ERROR_MESSAGE) from e

        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._reader, name=f"frame-reader-{self.source_id}", daemon=True
        )
        self._thread.start()

        got_frame = await asyncio.to_thread(self._first_frame.wait, self._ready_timeout_s)
        if not got_frame:
            logging.error(f"No frame from {self.source_id} within {self._ready_timeout_s}s")
            self.status.set_error(CAMERA_ERROR_MESSAGE)
            await self.stop()
            raise CameraAccessError(CAMERA_ERROR_MESSAGE)

        frame_data = self.current_frame()
        self.width, self.height = frame_data.width, frame_data.height
        with self._lock:
            lost = self.status.is_error
            if not lost:
                self.status.set_ready()
        if lost:
            await self.stop()
            raise CameraAccessError(CAMERA_ERROR_MESSAGE)
        logging.info(f"Frame source ready: {self.width}x{self.height}")
        return self.width, self.height

    def current_frame(self) -> Optional[FrameData]:
        """Return the most recently decoded frame (None before the first one)."""
        with self._lock:
            return self._latest

    def _reader(self) -> None:
        while not self._stop_event.is_set():
            started = time.monotonic()
            try:
                frame_data = self._source.read()
            except Exception as e:
                logging.error(f"Frame read error on {self.source_id}: {e}")
                with self._lock:
                    self.status.set_error(CAMERA_ERROR_MESSAGE)
                break

            if frame_data is None:
                time.sleep(0.01)
                continue

            with self._lock:
                self._latest = frame_data
            self._first_frame.set()

            for listener in list(self._listeners):
                try:
                    listener(frame_data)
                except Exception as e:
                    logging.warning(f"Frame listener error: {e}")

            if self._min_interval:
                remaining = self._min_interval - (time.monotonic() - started)
                if remaining > 0:
                    self._stop_event.wait(remaining)

    async def stop(self) -> None:
        """Stop the reader thread and release the device."""
        await asyncio.to_thread(self.close)

    def close(self) -> None:
        self._stop_event.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=2.0)
        self._thread = None
        try:
            self._source.close()
        except Exception as e:
            logging.warning(f"Error closing source: {e}")
