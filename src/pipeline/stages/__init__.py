"""
Pipeline stages for the vision dashboard.

- annotate: Bounding box and label overlay drawing
"""

from .annotate import OverlayRenderer, composite, hue_for_confidence

__all__ = ["OverlayRenderer", "composite", "hue_for_confidence"]
