"""
Inference loop for the vision dashboard.

Each cycle takes the latest frame from the FrameSource, submits it to the
detector and the classifier at the same time, waits for both, and forwards
the results to the Aggregator and the OverlayRenderer. The loop runs as an
asyncio task that can be started, paused, single-stepped and stopped.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, List, Optional, Tuple

from analytics.aggregator import Aggregator, CycleResult
from inference.backend import Classifier, Detector
from models.config import LoopConfig
from models.detection import Classification, Detection, round_half_up
from models.frame import FrameData
from observation.frame_source import CAMERA_ERROR_MESSAGE, CameraAccessError, FrameSource
from pipeline.scheduler import RefreshScheduler
from pipeline.stages.annotate import OverlayRenderer

CycleCallback = Callable[[FrameData, CycleResult], None]
ErrorHandler = Callable[[Exception], None]


def _monotonic_ms() -> float:
    return time.perf_counter() * 1000.0


class InferenceStallError(RuntimeError):
    """Raised when a capability call does not complete within the timeout."""


class FrameRateMeter:
    """
    Frames-per-second over rolling windows.

    Every tick counts one processed frame. Once at least `window_ms` has
    elapsed since the window opened, fps = frames * 1000 / elapsed and the
    window restarts.
    """

    def __init__(self, window_ms: float = 1000.0, clock: Callable[[], float] = _monotonic_ms):
        self.window_ms = window_ms
        self._clock = clock
        self.fps = 0
        self.reset()

    def reset(self, now_ms: Optional[float] = None) -> None:
        self._frames = 0
        self._window_start = self._clock() if now_ms is None else now_ms

    def tick(self, now_ms: Optional[float] = None) -> Optional[int]:
        """Count a frame; return the new fps if this tick closed a window."""
        now = self._clock() if now_ms is None else now_ms
        self._frames += 1
        elapsed = now - self._window_start
        if elapsed < self.window_ms:
            return None
        self.fps = round_half_up(self._frames * 1000.0 / elapsed)
        self._frames = 0
        self._window_start = now
        return self.fps


class InferenceLoop:
    """
    Continuously rescheduled detect+classify cycle.

    Example:
        loop = InferenceLoop(frames, detector, classifier, aggregator, renderer,
                             IntervalScheduler(60), LoopConfig())
        loop.start()
        ...
        await loop.stop()
    """

    def __init__(
        self,
        frame_source: FrameSource,
        detector: Detector,
        classifier: Classifier,
        aggregator: Aggregator,
        renderer: OverlayRenderer,
        scheduler: RefreshScheduler,
        config: Optional[LoopConfig] = None,
        clock: Callable[[], float] = _monotonic_ms,
    ):
        self.frame_source = frame_source
        self.detector = detector
        self.classifier = classifier
        self.aggregator = aggregator
        self.renderer = renderer
        self.scheduler = scheduler
        self.config = config or LoopConfig()
        self._clock = clock
        self.meter = FrameRateMeter(self.config.fps_window_ms, clock=clock)
        self.cycle_count = 0
        self.error: Optional[Exception] = None
        self._task: Optional[asyncio.Task] = None
        self._resumed = asyncio.Event()
        self._resumed.set()
        self._callbacks: List[CycleCallback] = []
        self._error_handlers: List[ErrorHandler] = []

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def is_paused(self) -> bool:
        return not self._resumed.is_set()

    def add_callback(self, callback: CycleCallback) -> None:
        """Add a callback taking (frame_data, cycle_result), called after each cycle."""
        self._callbacks.append(callback)

    def on_error(self, handler: ErrorHandler) -> None:
        """Add a handler called once when the loop terminates on an error."""
        self._error_handlers.append(handler)

    async def run_cycle(self) -> Optional[CycleResult]:
        """
        Process the current frame once.

        Returns None when no frame is available yet.

        Raises:
            CameraAccessError: If the frame source lost its device; the last
                frame it holds is stale and is not inferred again.
            InferenceStallError: If the joined inference exceeds the timeout.
        """
        if self.frame_source.status.is_error:
            raise CameraAccessError(self.frame_source.status.message or CAMERA_ERROR_MESSAGE)

        frame_data = self.frame_source.current_frame()
        if frame_data is None:
            return None

        started = self._clock()
        detections, classifications = await self._infer(frame_data)
        latency_ms = self._clock() - started
        fps = self.meter.tick()

        cycle = CycleResult(
            detections=list(detections),
            classifications=list(classifications),
            latency_ms=latency_ms,
            fps=fps,
            frame_index=frame_data.frame_index,
        )
        self.cycle_count += 1

        self.aggregator.update(cycle)
        self.renderer.render(cycle.detections, frame_data.size)

        for callback in self._callbacks:
            try:
                callback(frame_data, cycle)
            except Exception as e:
                logging.warning(f"Cycle callback error: {e}")

        if self.cycle_count % 100 == 0:
            logging.debug(
                f"[LOOP] cycle={self.cycle_count} fps={self.meter.fps} "
                f"latency_ms={latency_ms:.1f} detections={len(cycle.detections)}"
            )
        return cycle

    async def _infer(self, frame_data: FrameData) -> Tuple[List[Detection], List[Classification]]:
        tasks = [
            asyncio.ensure_future(self.detector.detect(frame_data.frame)),
            asyncio.ensure_future(self.classifier.classify(frame_data.frame)),
        ]
        joined = asyncio.gather(*tasks)
        timeout = self.config.inference_timeout_s
        try:
            if timeout is None:
                return await joined
            return await asyncio.wait_for(joined, timeout)
        except asyncio.TimeoutError as e:
            raise InferenceStallError(f"Inference did not complete within {timeout:g}s") from e
        finally:
            # gather does not cancel the sibling when one call raises
            for task in tasks:
                if not task.done():
                    task.cancel()

    async def run(self) -> None:
        """Run cycles until cancelled or an inference error occurs."""
        self.meter.reset()
        logging.info(f"Inference loop started: source={self.frame_source.source_id}")
        try:
            while True:
                await self._resumed.wait()
                await self.run_cycle()
                await self.scheduler.wait_for_refresh()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.error = e
            logging.error(f"Inference loop error: {e}")
            for handler in self._error_handlers:
                try:
                    handler(e)
                except Exception as handler_error:
                    logging.warning(f"Error handler failed: {handler_error}")
        finally:
            logging.info(f"Inference loop stopped after {self.cycle_count} cycles")

    def start(self) -> asyncio.Task:
        """Schedule the loop on the running event loop."""
        if self.is_running:
            raise RuntimeError("Inference loop already running")
        self.error = None
        self._task = asyncio.create_task(self.run(), name="inference-loop")
        return self._task

    def pause(self) -> None:
        """Hold the loop before its next cycle."""
        self._resumed.clear()

    def resume(self) -> None:
        self._resumed.set()

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish."""
        task, self._task = self._task, None
        if task is None:
            return
        if not task.done():
            task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
