from __future__ import annotations

import asyncio
import logging
import time
from enum import Enum
from typing import Any, Dict, Optional

from analytics.aggregator import CycleResult
from inference.loader import ModelLoadError
from models.frame import FrameData
from models.status import ComponentStatus, LoadState
from observation.frame_source import CameraAccessError
from pipeline.engine import InferenceLoop, InferenceStallError
from runtime.context import RuntimeContext


class RuntimePhase(str, Enum):
    IDLE = "idle"
    LOADING_MODELS = "loading_models"
    STARTING_CAMERA = "starting_camera"
    RUNNING = "running"
    ERROR = "error"
    STOPPED = "stopped"


class DashboardRuntime:
    """
    Sequences startup and shutdown of the dashboard components.

    Startup order is models, then camera, then the inference loop; the camera
    is not requested while the models are still downloading. Every failure is
    terminal: it is logged, recorded as the dashboard status and reported to
    the web state once.
    """

    def __init__(self, ctx: RuntimeContext):
        self.ctx = ctx
        self.phase = RuntimePhase.IDLE
        self.error_message: Optional[str] = None
        self.started_at: Optional[float] = None
        self._unsubscribe = None

    @property
    def status(self) -> ComponentStatus:
        """
        Overall dashboard status.

        Loading until both models are ready; the dashboard itself renders
        while the camera is still starting.
        """
        if self.error_message is not None:
            return ComponentStatus(LoadState.ERROR, self.error_message)
        if self.ctx.loader.status.is_ready:
            return ComponentStatus(LoadState.READY)
        return ComponentStatus(LoadState.LOADING)

    def status_dict(self) -> Dict[str, Any]:
        status = self.status
        size = self.ctx.frame_source.size
        loop = self.ctx.loop
        return {
            "state": status.state.value,
            "message": status.message,
            "phase": self.phase.value,
            "models": self.ctx.loader.status.to_dict(),
            "camera": self.ctx.frame_source.status.to_dict(),
            "loop_running": bool(loop and loop.is_running),
            "frame_width": size[0] if size else None,
            "frame_height": size[1] if size else None,
            "uptime_seconds": int(time.time() - self.started_at) if self.started_at else None,
        }

    async def start(self) -> None:
        """Load models, acquire the camera, then start the inference loop."""
        ctx = self.ctx
        self.started_at = time.time()
        if self._unsubscribe is None:
            self._unsubscribe = ctx.aggregator.subscribe(ctx.web_state.publish_snapshot)
            ctx.frame_source.add_listener(ctx.update_frame)

        self._set_phase(RuntimePhase.LOADING_MODELS)
        try:
            detector, classifier = await ctx.loader.load()
        except ModelLoadError as e:
            self._fail(str(e))
            return

        self._set_phase(RuntimePhase.STARTING_CAMERA)
        try:
            await ctx.frame_source.start()
        except CameraAccessError as e:
            self._fail(str(e))
            return

        loop = InferenceLoop(
            frame_source=ctx.frame_source,
            detector=detector,
            classifier=classifier,
            aggregator=ctx.aggregator,
            renderer=ctx.renderer,
            scheduler=ctx.scheduler,
            config=ctx.config.loop,
        )
        loop.add_callback(self._on_cycle)
        loop.on_error(self._on_loop_error)
        ctx.loop = loop
        loop.start()
        self._set_phase(RuntimePhase.RUNNING)

    async def stop(self) -> None:
        """Stop the loop, then release the camera."""
        ctx = self.ctx
        if ctx.loop is not None:
            await ctx.loop.stop()
        await ctx.frame_source.stop()
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self.phase != RuntimePhase.ERROR:
            self._set_phase(RuntimePhase.STOPPED)
        logging.info("Vision dashboard runtime stopped")

    def _on_cycle(self, frame_data: FrameData, cycle: CycleResult) -> None:
        self.ctx.update_overlay(self.ctx.renderer.surface)

    def _on_loop_error(self, error: Exception) -> None:
        if isinstance(error, (InferenceStallError, CameraAccessError)):
            self._fail(str(error))
        else:
            self._fail(f"Inference failed: {error}")

    def _set_phase(self, phase: RuntimePhase) -> None:
        self.phase = phase
        logging.info(f"Runtime phase: {phase.value}")
        self._notify()

    def _fail(self, message: str) -> None:
        if self.error_message is not None:
            return
        self.error_message = message
        self.phase = RuntimePhase.ERROR
        logging.error(f"Vision dashboard error: {message}")
        self._notify()

    def _notify(self) -> None:
        self.ctx.web_state.notify()


async def cancel_startup(task: "asyncio.Task") -> None:
    """Cancel a still-running startup task (e.g. models still downloading)."""
    if task.done():
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
