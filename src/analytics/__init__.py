"""
Dashboard analytics: per-cycle statistics and the rolling Aggregator.
"""

from .aggregator import Aggregator, CycleResult, DashboardSnapshot, WindowEntry
from .statistics import class_histogram, confidence_bucket, confidence_histogram, mean_confidence

__all__ = [
    "Aggregator",
    "CycleResult",
    "DashboardSnapshot",
    "WindowEntry",
    "class_histogram",
    "confidence_bucket",
    "confidence_histogram",
    "mean_confidence",
]
