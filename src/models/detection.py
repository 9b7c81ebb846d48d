"""
Detection and classification models for inference results.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up (62.5 -> 63)."""
    return int(math.floor(value + 0.5))


def to_percent(fraction: float) -> int:
    """Express a 0-1 score as a whole percentage."""
    return round_half_up(fraction * 100)


@dataclass(frozen=True)
class BoundingBox:
    """
    A bounding box in pixel coordinates.

    Attributes:
        x1: Left edge x coordinate.
        y1: Top edge y coordinate.
        x2: Right edge x coordinate.
        y2: Bottom edge y coordinate.
    """
    x1: float
    y1: float
    x2: float
    y2: float

    @property
    def width(self) -> float:
        return self.x2 - self.x1

    @property
    def height(self) -> float:
        return self.y2 - self.y1

    def as_xywh(self) -> Tuple[float, float, float, float]:
        """Return as (x, y, width, height) tuple."""
        return (self.x1, self.y1, self.width, self.height)

    @classmethod
    def from_xywh(cls, x: float, y: float, w: float, h: float) -> "BoundingBox":
        """Create from (x, y, width, height) format."""
        return cls(x1=x, y1=y, x2=x + w, y2=y + h)

    @classmethod
    def from_xyxy(cls, x1: float, y1: float, x2: float, y2: float) -> "BoundingBox":
        return cls(x1=x1, y1=y1, x2=x2, y2=y2)


@dataclass(frozen=True)
class Detection:
    """
    A single labeled region from the object detector.

    Attributes:
        label: Class name reported by the detector.
        confidence: Detection confidence score (0-1).
        bbox: Optional bounding box in pixel coordinates. Entries without a
            box have no spatial placement and are not drawn.
    """
    label: str
    confidence: float
    bbox: Optional[BoundingBox] = None

    @property
    def confidence_pct(self) -> int:
        """Confidence rounded to a whole percentage."""
        return to_percent(self.confidence)

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "label": self.label,
            "confidence": self.confidence,
        }
        d["bbox"] = list(self.bbox.as_xywh()) if self.bbox is not None else None
        return d


@dataclass(frozen=True)
class Classification:
    """
    A whole-frame class probability from the image classifier.

    Attributes:
        label: Class name.
        probability: Class probability (0-1).
    """
    label: str
    probability: float

    @property
    def probability_pct(self) -> int:
        return to_percent(self.probability)

    def to_dict(self) -> Dict[str, Any]:
        return {"label": self.label, "probability": self.probability}


# One result of each capability per inference cycle
DetectionResult = List[Detection]
ClassificationResult = List[Classification]
