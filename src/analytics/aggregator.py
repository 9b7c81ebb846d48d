"""
Rolling aggregate state derived from the inference loop.

The Aggregator owns all dashboard statistics and is the only writer. Each
cycle replaces the per-cycle values wholesale, appends to the rolling window
and adds to the running total; subscribers then receive an immutable
DashboardSnapshot.

Note the two "running" metrics differ on purpose: total_detections is
cumulative for the session while average_confidence is the mean of the most
recent cycle only.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, List, Optional, Tuple

from models.config import AggregatorConfig
from models.detection import Classification, Detection
from .statistics import class_histogram, confidence_histogram, mean_confidence


@dataclass(frozen=True)
class WindowEntry:
    """One per-cycle summary in the rolling window."""
    timestamp: float
    detection_count: int
    average_confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "detections": self.detection_count,
            "avg_confidence": self.average_confidence,
        }


@dataclass(frozen=True)
class CycleResult:
    """
    Output of one inference cycle.

    Attributes:
        detections: Detector output for the cycle.
        classifications: Classifier output for the cycle.
        latency_ms: Time from cycle start until both results arrived.
        fps: Frame rate, set only on cycles that closed an FPS window.
        frame_index: Index of the frame that was processed.
    """
    detections: List[Detection]
    classifications: List[Classification]
    latency_ms: float
    fps: Optional[int] = None
    frame_index: int = 0


@dataclass(frozen=True)
class DashboardSnapshot:
    """Immutable copy of the aggregate state published to subscribers."""
    detections: Tuple[Detection, ...] = ()
    classifications: Tuple[Classification, ...] = ()
    class_histogram: Dict[str, int] = field(default_factory=dict)
    confidence_histogram: Dict[str, int] = field(default_factory=dict)
    rolling_window: Tuple[WindowEntry, ...] = ()
    total_detections: int = 0
    average_confidence: float = 0.0
    fps: int = 0
    processing_time_ms: float = 0.0
    cycle_count: int = 0
    updated_at: Optional[float] = None


SnapshotListener = Callable[[DashboardSnapshot], None]


class Aggregator:
    """
    Maintains per-class counts, the rolling window, the confidence histogram,
    running totals and performance figures.

    Example:
        aggregator = Aggregator(AggregatorConfig(window_size=60))
        unsubscribe = aggregator.subscribe(on_snapshot)
        aggregator.update(cycle_result)
    """

    def __init__(
        self,
        config: Optional[AggregatorConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or AggregatorConfig()
        self._clock = clock
        self._listeners: List[SnapshotListener] = []
        self._window: Deque[WindowEntry] = deque(maxlen=max(1, self.config.window_size))
        self.reset()

    def reset(self) -> None:
        """Drop all accumulated state."""
        self._window.clear()
        self._detections: List[Detection] = []
        self._classifications: List[Classification] = []
        self._class_histogram: Dict[str, int] = {}
        self._confidence_histogram: Dict[str, int] = {}
        self._total_detections = 0
        self._average_confidence = 0.0
        self._fps = 0
        self._processing_time_ms = 0.0
        self._cycle_count = 0
        self._updated_at: Optional[float] = None

    @property
    def total_detections(self) -> int:
        return self._total_detections

    @property
    def rolling_window(self) -> List[WindowEntry]:
        return list(self._window)

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """
        Register a listener for published snapshots.

        Returns a callable that removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def update(self, cycle: CycleResult) -> DashboardSnapshot:
        """Fold one cycle into the aggregate state and notify subscribers."""
        detections = list(cycle.detections)
        count = len(detections)
        avg = mean_confidence(detections)

        now = self._clock()
        if self._window and now < self._window[-1].timestamp:
            now = self._window[-1].timestamp
        self._window.append(WindowEntry(timestamp=now, detection_count=count, average_confidence=avg))

        self._detections = detections
        self._classifications = list(cycle.classifications)
        self._class_histogram = class_histogram(detections)
        self._confidence_histogram = confidence_histogram(
            detections, clamp_top=self.config.clamp_top_bucket
        )
        self._total_detections += count
        self._average_confidence = avg
        if cycle.fps is not None:
            self._fps = cycle.fps
        self._processing_time_ms = cycle.latency_ms
        self._cycle_count += 1
        self._updated_at = now

        snapshot = self.snapshot()
        self._publish(snapshot)
        return snapshot

    def snapshot(self) -> DashboardSnapshot:
        return DashboardSnapshot(
            detections=tuple(self._detections),
            classifications=tuple(self._classifications),
            class_histogram=dict(self._class_histogram),
            confidence_histogram=dict(self._confidence_histogram),
            rolling_window=tuple(self._window),
            total_detections=self._total_detections,
            average_confidence=self._average_confidence,
            fps=self._fps,
            processing_time_ms=self._processing_time_ms,
            cycle_count=self._cycle_count,
            updated_at=self._updated_at,
        )

    def _publish(self, snapshot: DashboardSnapshot) -> None:
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logging.warning(f"Snapshot listener error: {e}")
