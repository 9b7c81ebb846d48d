from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

import numpy as np

from analytics.aggregator import Aggregator
from inference.loader import ModelLoader
from models.config import Config
from models.frame import FrameData
from observation import create_source_from_config
from observation.frame_source import FrameSource
from pipeline.engine import InferenceLoop
from pipeline.scheduler import IntervalScheduler, RefreshScheduler
from pipeline.stages.annotate import OverlayRenderer


@dataclass
class RuntimeContext:
    """Holds runtime components and service references; avoids global singletons."""

    config: Config
    loader: ModelLoader
    frame_source: FrameSource
    aggregator: Aggregator
    renderer: OverlayRenderer
    scheduler: RefreshScheduler
    web_state: Any
    loop: Optional[InferenceLoop] = None

    @classmethod
    def from_config(cls, config: Config, web_state: Any) -> "RuntimeContext":
        """Build the production components (Ultralytics models, OpenCV camera)."""
        source = create_source_from_config(config.camera.to_dict(), source_id="main-camera")
        return cls(
            config=config,
            loader=ModelLoader.from_config(config.models),
            frame_source=FrameSource(
                source,
                ready_timeout_s=config.camera.ready_timeout_s,
                max_fps=config.camera.fps,
            ),
            aggregator=Aggregator(config.aggregator),
            renderer=OverlayRenderer(config.overlay),
            scheduler=IntervalScheduler(config.loop.refresh_hz),
            web_state=web_state,
        )

    def update_frame(self, frame_data: FrameData):
        self.web_state.set_frame(frame_data.frame)

    def update_overlay(self, overlay: Optional[np.ndarray]):
        self.web_state.set_overlay(overlay)
