"""
Tests for the inference loop, frame-rate meter and refresh schedulers.
"""

import asyncio
import time
from typing import List
from unittest.mock import MagicMock

import numpy as np
import pytest

from analytics.aggregator import Aggregator
from inference.backend import Classifier, Detector
from models.config import LoopConfig
from models.detection import Classification, Detection
from models.frame import FrameData
from models.status import ComponentStatus, LoadState
from observation.frame_source import CameraAccessError
from pipeline.engine import FrameRateMeter, InferenceLoop, InferenceStallError
from pipeline.scheduler import IntervalScheduler, ManualScheduler
from pipeline.stages.annotate import OverlayRenderer
from conftest import StaticClassifier, StaticDetector, make_detection


class StubFrameSource:
    """Latest-frame provider with a fixed frame."""

    source_id = "stub-camera"

    def __init__(self, frame_data=None):
        self.frame_data = frame_data
        self.status = ComponentStatus(LoadState.READY)

    def current_frame(self):
        return self.frame_data


def _frame(width=64, height=48):
    return FrameData(np.zeros((height, width, 3), dtype=np.uint8), timestamp=time.time(), frame_index=1)


def _build_loop(detector=None, classifier=None, frame_data="default", scheduler=None, config=None):
    if frame_data == "default":
        frame_data = _frame()
    return InferenceLoop(
        frame_source=StubFrameSource(frame_data),
        detector=detector or StaticDetector(),
        classifier=classifier or StaticClassifier(),
        aggregator=Aggregator(),
        renderer=OverlayRenderer(),
        scheduler=scheduler or ManualScheduler(),
        config=config or LoopConfig(inference_timeout_s=1.0),
    )


class RendezvousDetector(Detector):
    """Completes only once the classifier call has also started."""

    def __init__(self, started: asyncio.Event, peer_started: asyncio.Event):
        self.started = started
        self.peer_started = peer_started

    async def detect(self, frame: np.ndarray) -> List[Detection]:
        self.started.set()
        await self.peer_started.wait()
        return [make_detection("cat", 0.9)]


class RendezvousClassifier(Classifier):
    def __init__(self, started: asyncio.Event, peer_started: asyncio.Event):
        self.started = started
        self.peer_started = peer_started

    async def classify(self, frame: np.ndarray) -> List[Classification]:
        self.started.set()
        await self.peer_started.wait()
        return [Classification("tabby", 0.8)]


class HangingDetector(Detector):
    async def detect(self, frame: np.ndarray) -> List[Detection]:
        await asyncio.Event().wait()
        return []


class FailingDetector(Detector):
    async def detect(self, frame: np.ndarray) -> List[Detection]:
        raise RuntimeError("model crashed")


class SlowClassifier(Classifier):
    def __init__(self):
        self.cancelled = False

    async def classify(self, frame: np.ndarray) -> List[Classification]:
        try:
            await asyncio.sleep(5)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return []


class TestFrameRateMeter:
    def test_thirty_cycles_in_one_second(self):
        meter = FrameRateMeter(window_ms=1000)
        meter.reset(now_ms=0.0)
        for i in range(1, 30):
            assert meter.tick(now_ms=i * 1000.0 / 30) is None
        assert meter.tick(now_ms=1000.0) == 30
        assert meter.fps == 30

    def test_window_restarts(self):
        meter = FrameRateMeter(window_ms=1000)
        meter.reset(now_ms=0.0)
        for i in range(1, 11):
            meter.tick(now_ms=i * 100.0)
        assert meter.fps == 10
        for i in range(1, 6):
            meter.tick(now_ms=1000.0 + i * 200.0)
        assert meter.fps == 5

    def test_rounds_to_nearest(self):
        meter = FrameRateMeter(window_ms=1000)
        meter.reset(now_ms=0.0)
        for i in range(1, 14):
            meter.tick(now_ms=i * 80.0)
        # 13 frames over 1040ms = 12.5 fps
        assert meter.fps == 13

    def test_injected_clock(self):
        now = [0.0]
        meter = FrameRateMeter(window_ms=500, clock=lambda: now[0])
        meter.reset()
        now[0] = 250.0
        assert meter.tick() is None
        now[0] = 500.0
        assert meter.tick() == 4


class TestRunCycle:
    def test_no_frame_skips_cycle(self):
        loop = _build_loop(frame_data=None)
        assert asyncio.run(loop.run_cycle()) is None
        assert loop.cycle_count == 0

    def test_cycle_forwards_results(self, cat_dog_detections):
        detector = StaticDetector(cat_dog_detections)
        classifier = StaticClassifier([Classification("tabby", 0.7)])
        loop = _build_loop(detector, classifier)

        cycle = asyncio.run(loop.run_cycle())

        assert [d.label for d in cycle.detections] == ["cat", "dog"]
        assert [c.label for c in cycle.classifications] == ["tabby"]
        assert cycle.latency_ms >= 0
        assert loop.aggregator.total_detections == 2
        assert loop.renderer.surface.shape == (48, 64, 4)

    def test_capabilities_run_concurrently(self):
        async def scenario():
            det_started, cls_started = asyncio.Event(), asyncio.Event()
            loop = _build_loop(
                RendezvousDetector(det_started, cls_started),
                RendezvousClassifier(cls_started, det_started),
            )
            # Sequential submission would never complete
            return await asyncio.wait_for(loop.run_cycle(), timeout=2.0)

        cycle = asyncio.run(scenario())
        assert len(cycle.detections) == 1
        assert len(cycle.classifications) == 1

    def test_stall_raises(self):
        loop = _build_loop(HangingDetector(), config=LoopConfig(inference_timeout_s=0.05))
        with pytest.raises(InferenceStallError):
            asyncio.run(loop.run_cycle())
        assert loop.cycle_count == 0

    def test_failed_capability_cancels_the_other(self):
        classifier = SlowClassifier()
        loop = _build_loop(FailingDetector(), classifier)

        async def scenario():
            with pytest.raises(RuntimeError, match="model crashed"):
                await loop.run_cycle()
            await asyncio.sleep(0.01)
            return classifier.cancelled

        assert asyncio.run(scenario()) is True
        assert loop.cycle_count == 0

    def test_lost_camera_raises_instead_of_reusing_frame(self):
        loop = _build_loop()
        loop.frame_source.status.set_error("Unable to access camera")
        with pytest.raises(CameraAccessError, match="Unable to access camera"):
            asyncio.run(loop.run_cycle())
        assert loop.cycle_count == 0
        assert loop.detector.calls == 0

    def test_callbacks_receive_cycle(self):
        loop = _build_loop(StaticDetector([make_detection("cat", 0.9)]))
        seen = []
        loop.add_callback(lambda frame_data, cycle: seen.append((frame_data.frame_index, len(cycle.detections))))
        asyncio.run(loop.run_cycle())
        assert seen == [(1, 1)]

    def test_failing_callback_not_fatal(self):
        loop = _build_loop()
        loop.add_callback(MagicMock(side_effect=RuntimeError("boom")))
        assert asyncio.run(loop.run_cycle()) is not None
        assert loop.cycle_count == 1


class TestLoopLifecycle:
    def test_single_step(self):
        async def scenario():
            scheduler = ManualScheduler()
            loop = _build_loop(scheduler=scheduler)
            loop.start()
            await asyncio.sleep(0.05)
            first = loop.cycle_count
            scheduler.step()
            await asyncio.sleep(0.05)
            second = loop.cycle_count
            scheduler.step(2)
            await asyncio.sleep(0.05)
            third = loop.cycle_count
            await loop.stop()
            return first, second, third, loop.is_running

        first, second, third, running = asyncio.run(scenario())
        assert (first, second, third) == (1, 2, 4)
        assert running is False

    def test_pause_and_resume(self):
        async def scenario():
            scheduler = ManualScheduler()
            loop = _build_loop(scheduler=scheduler)
            loop.start()
            await asyncio.sleep(0.05)
            loop.pause()
            scheduler.step()
            await asyncio.sleep(0.05)
            paused_count = loop.cycle_count
            loop.resume()
            await asyncio.sleep(0.05)
            resumed_count = loop.cycle_count
            await loop.stop()
            return paused_count, resumed_count

        assert asyncio.run(scenario()) == (1, 2)

    def test_stop_is_deterministic(self):
        async def scenario():
            loop = _build_loop(scheduler=IntervalScheduler(refresh_hz=200))
            loop.start()
            await asyncio.sleep(0.05)
            await loop.stop()
            count = loop.cycle_count
            await asyncio.sleep(0.05)
            return count, loop.cycle_count, loop.is_running

        before, after, running = asyncio.run(scenario())
        assert before > 0
        assert before == after
        assert running is False

    def test_start_twice_raises(self):
        async def scenario():
            loop = _build_loop()
            loop.start()
            try:
                with pytest.raises(RuntimeError):
                    loop.start()
            finally:
                await loop.stop()

        asyncio.run(scenario())

    def test_stall_terminates_and_reports_once(self):
        async def scenario():
            scheduler = ManualScheduler()
            loop = _build_loop(HangingDetector(), scheduler=scheduler,
                               config=LoopConfig(inference_timeout_s=0.05))
            handler = MagicMock()
            loop.on_error(handler)
            loop.start()
            await asyncio.sleep(0.2)
            scheduler.step(3)
            await asyncio.sleep(0.05)
            return loop, handler

        loop, handler = asyncio.run(scenario())
        handler.assert_called_once()
        assert isinstance(handler.call_args[0][0], InferenceStallError)
        assert isinstance(loop.error, InferenceStallError)
        assert loop.is_running is False


class TestSchedulers:
    def test_interval_resumes_at_next_boundary(self):
        now = [1.005]
        scheduler = IntervalScheduler(refresh_hz=100, clock=lambda: now[0])
        assert scheduler.delay_until_next_refresh() == pytest.approx(0.005)
        now[0] = 1.0199
        assert scheduler.delay_until_next_refresh() == pytest.approx(0.0001)

    def test_interval_rejects_non_positive_rate(self):
        with pytest.raises(ValueError):
            IntervalScheduler(refresh_hz=0)

    def test_manual_releases_one_per_step(self):
        async def scenario():
            scheduler = ManualScheduler()
            waiter = asyncio.create_task(scheduler.wait_for_refresh())
            await asyncio.sleep(0.01)
            pending_before = waiter.done()
            scheduler.step()
            await asyncio.sleep(0.01)
            return pending_before, waiter.done()

        assert asyncio.run(scenario()) == (False, True)
