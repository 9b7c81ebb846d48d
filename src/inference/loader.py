"""
Model loader for the detector and classifier capabilities.

Both models are built in worker threads in parallel once the inference
runtime is initialised. The loader exposes loading/error/ready; a failure is
terminal and is not retried.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Tuple

from models.config import ModelsConfig
from models.status import ComponentStatus
from .backend import Classifier, Detector
from .cpu_backend import UltralyticsClassifier, UltralyticsDetector, prepare_runtime

MODEL_LOAD_ERROR_MESSAGE = "Failed to load the detection models"


class ModelLoadError(RuntimeError):
    """Raised when either model capability fails to initialise."""


class ModelLoader:
    """
    Loads both inference capabilities once at startup.

    Example:
        loader = ModelLoader.from_config(config.models)
        detector, classifier = await loader.load()
    """

    def __init__(
        self,
        detector_factory: Callable[[], Detector],
        classifier_factory: Callable[[], Classifier],
        runtime_init: Optional[Callable[[], object]] = prepare_runtime,
    ):
        self._detector_factory = detector_factory
        self._classifier_factory = classifier_factory
        self._runtime_init = runtime_init
        self.status = ComponentStatus()
        self.detector: Optional[Detector] = None
        self.classifier: Optional[Classifier] = None

    @classmethod
    def from_config(cls, cfg: ModelsConfig) -> "ModelLoader":
        return cls(
            detector_factory=lambda: UltralyticsDetector(cfg.detector),
            classifier_factory=lambda: UltralyticsClassifier(cfg.classifier),
        )

    async def load(self) -> Tuple[Detector, Classifier]:
        """
        Initialise the runtime, then build both capabilities in parallel.

        Raises:
            ModelLoadError: If the runtime or either model fails to load.
        """
        if self.status.is_ready and self.detector and self.classifier:
            return self.detector, self.classifier
        if self.status.is_error:
            raise ModelLoadError(self.status.message)

        logging.info("Loading inference models")
        try:
            if self._runtime_init is not None:
                await asyncio.to_thread(self._runtime_init)
            detector, classifier = await asyncio.gather(
                asyncio.to_thread(self._detector_factory),
                asyncio.to_thread(self._classifier_factory),
            )
        except Exception as e:
            logging.error(f"Model loading failed: {e}")
            self.status.set_error(MODEL_LOAD_ERROR_MESSAGE)
            raise ModelLoadError(MODEL_LOAD_ERROR_MESSAGE) from e

        self.detector = detector
        self.classifier = classifier
        self.status.set_ready()
        logging.info("Inference models ready")
        return detector, classifier
