"""
Per-cycle statistics over a single detection result.

Everything here is recomputed from the current cycle only; nothing is merged
with earlier cycles.
"""

from __future__ import annotations

import math
from typing import Dict, Sequence

from models.detection import Detection


def class_histogram(detections: Sequence[Detection]) -> Dict[str, int]:
    """Count detections per label, in first-seen order."""
    counts: Dict[str, int] = {}
    for det in detections:
        counts[det.label] = counts.get(det.label, 0) + 1
    return counts


def mean_confidence(detections: Sequence[Detection]) -> float:
    """Average confidence of the cycle; 0.0 when there are no detections."""
    total = sum(det.confidence for det in detections)
    return total / (len(detections) or 1)


def confidence_bucket(confidence: float, clamp_top: bool = True) -> str:
    """
    Map a confidence to its 10-point bucket label, e.g. 0.83 -> "80-90%".

    A confidence of exactly 1.0 falls into "100-110%" unless clamp_top is set,
    in which case it joins "90-100%".
    """
    low = int(math.floor(confidence * 10)) * 10
    if clamp_top:
        low = min(max(low, 0), 90)
    return f"{low}-{low + 10}%"


def confidence_histogram(detections: Sequence[Detection], clamp_top: bool = True) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for det in detections:
        bucket = confidence_bucket(det.confidence, clamp_top=clamp_top)
        counts[bucket] = counts.get(bucket, 0) + 1
    return counts
