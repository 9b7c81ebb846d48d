"""
Observation layer for pluggable video sources.

This layer abstracts the capture device from the processing pipeline. Each
source implements the ObservationSource interface and returns FrameData
objects; FrameSource keeps the latest frame of a live source available.
"""

from typing import Any, Dict

from .base import ObservationSource, ObservationConfig
from .opencv_source import OpenCVSource, OpenCVSourceConfig
from .frame_source import CameraAccessError, FrameSource


def create_source_from_config(camera_cfg: Dict[str, Any], source_id: str = "main-camera") -> ObservationSource:
    """Build the configured camera backend from the camera config dict."""
    backend = camera_cfg.get("backend", "opencv")
    if backend != "opencv":
        raise ValueError(f"Unsupported camera backend: {backend}")
    return OpenCVSource(OpenCVSourceConfig.from_camera_config(camera_cfg, source_id=source_id))


__all__ = [
    "ObservationSource",
    "ObservationConfig",
    "OpenCVSource",
    "OpenCVSourceConfig",
    "CameraAccessError",
    "FrameSource",
    "create_source_from_config",
]
