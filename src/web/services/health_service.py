from __future__ import annotations

import os
import platform
import shutil
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass
class HealthService:
    cfg: Dict[str, Any]

    def get_health_summary(self) -> Dict[str, Any]:
        models = self.cfg.get("models", {}) or {}
        return {
            "timestamp": time.time(),
            "platform": platform.platform(),
            "python": platform.python_version(),
            "cwd": os.getcwd(),
            "detector_model": (models.get("detector") or {}).get("model"),
            "classifier_model": (models.get("classifier") or {}).get("model"),
            "log_path": self.cfg.get("log_path"),
            "disk": self.disk_usage(),
            "temp_c": self.read_cpu_temp_c(),
        }

    @staticmethod
    def disk_usage(path: Optional[str] = None) -> Dict[str, Any]:
        """
        Lightweight disk stats for the health endpoint.
        """
        target = path or "."
        try:
            usage = shutil.disk_usage(target)
        except OSError:
            return {
                "total_bytes": None,
                "free_bytes": None,
                "pct_free": None,
                "error": "disk_usage_failed",
            }
        pct_free = (usage.free / usage.total * 100) if usage.total else None
        return {
            "total_bytes": usage.total,
            "free_bytes": usage.free,
            "pct_free": pct_free,
        }

    @staticmethod
    def read_cpu_temp_c() -> Optional[float]:
        """
        Best-effort CPU temperature read; returns None if unavailable.
        """
        candidates = [
            "/sys/class/thermal/thermal_zone0/temp",
            "/sys/class/hwmon/hwmon0/temp1_input",
        ]
        for path in candidates:
            if not os.path.exists(path):
                continue
            try:
                with open(path, "r") as f:
                    raw = f.read().strip()
                return float(raw) / 1000.0 if len(raw) > 3 else float(raw)
            except (OSError, ValueError):
                continue
        return None
