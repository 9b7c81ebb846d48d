"""
Tests for the Ultralytics wrappers with the YOLO models mocked out.
"""

import asyncio
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from inference.cpu_backend import UltralyticsClassifier, UltralyticsDetector
from models.config import ClassifierConfig, DetectorConfig


def _detect_result(xyxy, conf, cls, names):
    boxes = MagicMock()
    boxes.xyxy = np.array(xyxy, dtype=np.float32)
    boxes.conf = np.array(conf, dtype=np.float32)
    boxes.cls = np.array(cls, dtype=np.float32)
    result = MagicMock()
    result.boxes = boxes
    result.names = names
    return result


def _classify_result(probs, names):
    result = MagicMock()
    result.probs.data = np.array(probs, dtype=np.float32)
    result.names = names
    return result


@pytest.fixture
def frame():
    return np.zeros((48, 64, 3), dtype=np.uint8)


class TestUltralyticsDetector:
    def test_maps_boxes_to_detections(self, frame):
        model = MagicMock()
        model.predict.return_value = [
            _detect_result([[10, 20, 40, 60], [0, 0, 5, 5]], [0.92, 0.75], [15, 16], {15: "cat", 16: "dog"})
        ]
        with patch("inference.cpu_backend._load_yolo", return_value=model):
            detector = UltralyticsDetector(DetectorConfig())

        dets = asyncio.run(detector.detect(frame))

        assert [d.label for d in dets] == ["cat", "dog"]
        assert dets[0].confidence == pytest.approx(0.92)
        assert dets[0].bbox.as_xywh() == (10, 20, 30, 40)

    def test_passes_thresholds(self, frame):
        model = MagicMock()
        model.predict.return_value = []
        cfg = DetectorConfig(conf_threshold=0.5, iou_threshold=0.4, max_detections=20, device="cpu")
        with patch("inference.cpu_backend._load_yolo", return_value=model):
            detector = UltralyticsDetector(cfg)

        assert detector.predict(frame) == []
        kwargs = model.predict.call_args.kwargs
        assert kwargs["conf"] == 0.5
        assert kwargs["iou"] == 0.4
        assert kwargs["max_det"] == 20
        assert kwargs["device"] == "cpu"
        assert kwargs["verbose"] is False

    def test_unknown_class_id_uses_number(self, frame):
        model = MagicMock()
        model.predict.return_value = [_detect_result([[0, 0, 1, 1]], [0.6], [99], {})]
        with patch("inference.cpu_backend._load_yolo", return_value=model):
            detector = UltralyticsDetector(DetectorConfig())
        assert detector.predict(frame)[0].label == "99"


class TestUltralyticsClassifier:
    def test_top_k_sorted_by_probability(self, frame):
        model = MagicMock()
        model.predict.return_value = [
            _classify_result([0.05, 0.6, 0.1, 0.25], {0: "sofa", 1: "tabby", 2: "lamp", 3: "tiger_cat"})
        ]
        with patch("inference.cpu_backend._load_yolo", return_value=model):
            classifier = UltralyticsClassifier(ClassifierConfig(top_k=3))

        out = asyncio.run(classifier.classify(frame))

        assert [c.label for c in out] == ["tabby", "tiger_cat", "lamp"]
        assert out[0].probability == pytest.approx(0.6)

    def test_no_probs(self, frame):
        model = MagicMock()
        result = MagicMock()
        result.probs = None
        model.predict.return_value = [result]
        with patch("inference.cpu_backend._load_yolo", return_value=model):
            classifier = UltralyticsClassifier(ClassifierConfig())
        assert classifier.predict(frame) == []
