"""
Typed models for the vision dashboard.

These models provide strong typing for inference results, frames, load state
and configuration. Use the from_dict/to_dict adapters at the YAML and JSON
boundaries.
"""

from .frame import FrameData
from .detection import (
    BoundingBox,
    Classification,
    ClassificationResult,
    Detection,
    DetectionResult,
)
from .status import ComponentStatus, LoadState
from .config import (
    Config,
    CameraConfig,
    DetectorConfig,
    ClassifierConfig,
    ModelsConfig,
    LoopConfig,
    AggregatorConfig,
    OverlayConfig,
    WebConfig,
)

__all__ = [
    # Frame
    "FrameData",
    # Inference results
    "BoundingBox",
    "Detection",
    "DetectionResult",
    "Classification",
    "ClassificationResult",
    # Status
    "ComponentStatus",
    "LoadState",
    # Config
    "Config",
    "CameraConfig",
    "DetectorConfig",
    "ClassifierConfig",
    "ModelsConfig",
    "LoopConfig",
    "AggregatorConfig",
    "OverlayConfig",
    "WebConfig",
]
