"""
Pipeline module for the vision dashboard.

The pipeline orchestrates the per-frame processing flow:
- Frame acquisition from the frame source
- Concurrent detection and classification
- Aggregation of rolling statistics
- Overlay annotation (via the annotate stage)
"""

from .engine import FrameRateMeter, InferenceLoop, InferenceStallError
from .scheduler import IntervalScheduler, ManualScheduler, RefreshScheduler
from .stages.annotate import OverlayRenderer, composite

__all__ = [
    "FrameRateMeter",
    "InferenceLoop",
    "InferenceStallError",
    "IntervalScheduler",
    "ManualScheduler",
    "RefreshScheduler",
    "OverlayRenderer",
    "composite",
]
