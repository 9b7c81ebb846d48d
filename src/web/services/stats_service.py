from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict

from analytics.aggregator import DashboardSnapshot


@dataclass
class StatsService:
    snapshot: DashboardSnapshot

    def get_summary(self) -> Dict[str, Any]:
        snap = self.snapshot
        return {
            "fps": int(snap.fps),
            "processing_time_ms": round(snap.processing_time_ms, 1),
            "total_detections": snap.total_detections,
            "average_confidence_pct": round(snap.average_confidence * 100, 1),
            "cycle_count": snap.cycle_count,
            "updated_at": snap.updated_at,
            "detections": [
                {**d.to_dict(), "confidence_pct": d.confidence_pct}
                for d in snap.detections
            ],
            "classifications": [
                {**c.to_dict(), "probability_pct": c.probability_pct}
                for c in snap.classifications
            ],
            "class_data": [
                {"name": name, "count": count}
                for name, count in snap.class_histogram.items()
            ],
            "confidence_data": [
                {"range": bucket, "count": count}
                for bucket, count in snap.confidence_histogram.items()
            ],
            "time_series": [
                {
                    "time": time.strftime("%H:%M:%S", time.localtime(entry.timestamp)),
                    "timestamp": entry.timestamp,
                    "detections": entry.detection_count,
                    "avg_confidence": round(entry.average_confidence * 100, 1),
                }
                for entry in snap.rolling_window
            ],
        }
