"""
Pytest configuration and shared fixtures.
"""

import asyncio
import os
import sys
import time
from typing import List, Optional

import numpy as np
import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from inference.backend import Classifier, Detector
from models.detection import BoundingBox, Classification, Detection
from models.frame import FrameData
from observation.base import ObservationConfig, ObservationSource


class StaticDetector(Detector):
    """Detector returning a canned result, optionally after a delay."""

    def __init__(self, detections: Optional[List[Detection]] = None, delay: float = 0.0):
        self.detections = list(detections or [])
        self.delay = delay
        self.calls = 0

    async def detect(self, frame: np.ndarray) -> List[Detection]:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return list(self.detections)


class StaticClassifier(Classifier):
    """Classifier returning a canned result, optionally after a delay."""

    def __init__(self, classifications: Optional[List[Classification]] = None, delay: float = 0.0):
        self.classifications = list(classifications or [])
        self.delay = delay
        self.calls = 0

    async def classify(self, frame: np.ndarray) -> List[Classification]:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        return list(self.classifications)


class MockObservationSource(ObservationSource):
    """Mock camera producing blank frames of a fixed size."""

    def __init__(self, config: ObservationConfig = None, size=(640, 480), fail_open: bool = False,
                 deliver_frames: bool = True, fail_after: Optional[int] = None):
        super().__init__(config or ObservationConfig(source_id="mock-camera"))
        self._size = size
        self._fail_open = fail_open
        self._deliver_frames = deliver_frames
        self._fail_after = fail_after
        self.closed = False

    def open(self) -> None:
        if self._fail_open:
            raise RuntimeError("Permission denied")
        self._is_open = True
        self._frame_index = 0

    def read(self) -> Optional[FrameData]:
        if not self._is_open or not self._deliver_frames:
            return None
        time.sleep(0.005)
        if self._fail_after is not None and self._frame_index >= self._fail_after:
            raise RuntimeError("device unplugged")
        w, h = self._size
        return self._stamp(np.zeros((h, w, 3), dtype=np.uint8))

    def close(self) -> None:
        self._is_open = False
        self.closed = True


def make_detection(label: str, confidence: float, bbox=(10, 40, 50, 30)) -> Detection:
    return Detection(
        label=label,
        confidence=confidence,
        bbox=BoundingBox.from_xywh(*bbox) if bbox is not None else None,
    )


@pytest.fixture
def temp_config_dir(tmp_path):
    """Create a temporary config directory with default.yaml."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text("""
camera:
  backend: "opencv"
  device_id: 0
  facing: "environment"
  resolution: [640, 480]

models:
  detector:
    model: "yolov8n.pt"
    conf_threshold: 0.5
  classifier:
    model: "yolov8n-cls.pt"
    top_k: 3

loop:
  refresh_hz: 60

log_path: "logs/test.log"
log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config():
    """Return a valid configuration dictionary."""
    return {
        "camera": {
            "backend": "opencv",
            "device_id": 0,
            "facing": "environment",
            "devices": {"environment": 0, "user": 1},
            "resolution": [1280, 720],
            "fps": 30,
        },
        "models": {
            "detector": {"model": "yolov8n.pt", "conf_threshold": 0.5, "max_detections": 20},
            "classifier": {"model": "yolov8n-cls.pt", "top_k": 3},
        },
        "loop": {"refresh_hz": 60, "inference_timeout_s": 10, "fps_window_ms": 1000},
        "aggregator": {"window_size": 60},
        "log_path": "logs/test.log",
        "log_level": "INFO",
    }


@pytest.fixture
def cat_dog_detections():
    return [make_detection("cat", 0.92), make_detection("dog", 0.75, bbox=(100, 120, 40, 40))]
