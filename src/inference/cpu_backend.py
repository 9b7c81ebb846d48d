"""
Ultralytics inference backends.

Wraps a YOLO detection model and a YOLO classification model behind the
async Detector/Classifier interfaces. Predictions are blocking, so each call
runs in a worker thread; this lets the inference loop keep both models in
flight at once.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List

import numpy as np

from models.config import ClassifierConfig, DetectorConfig
from models.detection import BoundingBox, Classification, Detection
from .backend import Classifier, Detector


def _to_numpy(value: Any) -> np.ndarray:
    return value.cpu().numpy() if hasattr(value, "cpu") else np.asarray(value)


def _load_yolo(model: str):
    try:
        from ultralytics import YOLO  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError(
            "Ultralytics is not installed. Install with `pip install ultralytics`."
        ) from e
    return YOLO(model)


def prepare_runtime() -> str:
    """
    Import and initialise the inference runtime.

    Returns the Ultralytics version string. Raises ImportError when the
    runtime is unavailable.
    """
    try:
        import ultralytics  # type: ignore
    except Exception as e:
        raise ImportError("Ultralytics is not installed") from e
    version = getattr(ultralytics, "__version__", "unknown")
    logging.info(f"Inference runtime ready: ultralytics {version}")
    return version


class UltralyticsDetector(Detector):
    def __init__(self, cfg: DetectorConfig):
        self.cfg = cfg
        self._model = _load_yolo(cfg.model)
        logging.info(f"Detector loaded: {cfg.model}")

    async def detect(self, frame: np.ndarray) -> List[Detection]:
        return await asyncio.to_thread(self.predict, frame)

    def predict(self, frame: np.ndarray) -> List[Detection]:
        kwargs: Dict[str, Any] = {
            "source": frame,
            "conf": self.cfg.conf_threshold,
            "iou": self.cfg.iou_threshold,
            "max_det": self.cfg.max_detections,
            "classes": list(self.cfg.classes) if self.cfg.classes is not None else None,
            "verbose": False,
        }
        if self.cfg.device:
            kwargs["device"] = self.cfg.device
        results = self._model.predict(**kwargs)
        if not results:
            return []

        r0 = results[0]
        names = getattr(r0, "names", None) or {}
        boxes = getattr(r0, "boxes", None)
        if boxes is None:
            return []

        xyxy = _to_numpy(boxes.xyxy)
        conf = _to_numpy(boxes.conf)
        cls = _to_numpy(boxes.cls)

        out: List[Detection] = []
        for (x1, y1, x2, y2), c, k in zip(xyxy, conf, cls):
            class_id = int(k)
            out.append(
                Detection(
                    label=names.get(class_id) or str(class_id),
                    confidence=float(c),
                    bbox=BoundingBox.from_xyxy(float(x1), float(y1), float(x2), float(y2)),
                )
            )
        return out


class UltralyticsClassifier(Classifier):
    def __init__(self, cfg: ClassifierConfig):
        self.cfg = cfg
        self._model = _load_yolo(cfg.model)
        logging.info(f"Classifier loaded: {cfg.model}")

    async def classify(self, frame: np.ndarray) -> List[Classification]:
        return await asyncio.to_thread(self.predict, frame)

    def predict(self, frame: np.ndarray) -> List[Classification]:
        kwargs: Dict[str, Any] = {"source": frame, "verbose": False}
        if self.cfg.device:
            kwargs["device"] = self.cfg.device
        results = self._model.predict(**kwargs)
        if not results:
            return []

        r0 = results[0]
        names = getattr(r0, "names", None) or {}
        probs = getattr(r0, "probs", None)
        if probs is None:
            return []

        data = _to_numpy(probs.data).ravel()
        top = np.argsort(data)[::-1][: max(0, self.cfg.top_k)]
        return [
            Classification(
                label=names.get(int(i)) or str(int(i)),
                probability=float(data[i]),
            )
            for i in top
        ]
