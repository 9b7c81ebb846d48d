import asyncio
import threading
import time
from typing import Any, Dict, Optional

import numpy as np

from analytics.aggregator import DashboardSnapshot
from pipeline.stages.annotate import composite


class SharedState:
    """
    Singleton class to share state between the inference runtime and the
    FastAPI routes.

    Frames arrive on the camera reader thread and are read from the MJPEG
    generator's threadpool, so frame slots are lock-protected. Snapshots and
    status changes are published from the event loop and bump a version
    counter that streaming clients wait on.
    """
    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super(SharedState, cls).__new__(cls)
                    cls._instance._reset()
        return cls._instance

    def _reset(self):
        self.frame = None
        self.overlay = None
        self.frame_lock = threading.Lock()
        self.runtime = None
        self.snapshot = DashboardSnapshot()
        self.version = 0
        self._changed = asyncio.Event()
        self.last_frame_ts: Optional[float] = None

    def set_runtime(self, runtime):
        self.runtime = runtime

    def set_frame(self, frame: Optional[np.ndarray]):
        """Update the current video frame."""
        with self.frame_lock:
            if frame is not None:
                self.frame = frame
                self.last_frame_ts = time.time()

    def get_frame(self) -> Optional[np.ndarray]:
        with self.frame_lock:
            if self.frame is None:
                return None
            return self.frame.copy()

    def set_overlay(self, overlay: Optional[np.ndarray]):
        """Update the transparent overlay surface for the latest cycle."""
        with self.frame_lock:
            self.overlay = None if overlay is None else overlay.copy()

    def get_overlay(self) -> Optional[np.ndarray]:
        with self.frame_lock:
            if self.overlay is None:
                return None
            return self.overlay.copy()

    def get_composite_frame(self) -> Optional[np.ndarray]:
        """Latest frame with the latest overlay blended on top."""
        with self.frame_lock:
            if self.frame is None:
                return None
            return composite(self.frame, self.overlay)

    def publish_snapshot(self, snapshot: DashboardSnapshot):
        self.snapshot = snapshot
        self.notify()

    def get_snapshot(self) -> DashboardSnapshot:
        return self.snapshot

    def notify(self):
        """Wake every client waiting for a change."""
        self.version += 1
        changed, self._changed = self._changed, asyncio.Event()
        changed.set()

    async def wait_for_change(self, since_version: int, timeout: Optional[float] = None) -> int:
        """
        Wait until the version moves past `since_version` and return it.

        Raises asyncio.TimeoutError if nothing changed within `timeout`.
        """
        while self.version == since_version:
            event = self._changed
            if timeout is None:
                await event.wait()
            else:
                await asyncio.wait_for(event.wait(), timeout)
        return self.version

    def get_status(self) -> Dict[str, Any]:
        if self.runtime is None:
            return {"state": "loading", "message": None, "phase": "idle"}
        return self.runtime.status_dict()

    def last_frame_age(self) -> Optional[float]:
        """Seconds since the camera last delivered a frame, None before the first."""
        if self.last_frame_ts is None:
            return None
        return time.time() - self.last_frame_ts


# Global instance
state = SharedState()
