"""
Tests for the model loader.
"""

import asyncio
import threading
from unittest.mock import MagicMock

import pytest

from inference.loader import MODEL_LOAD_ERROR_MESSAGE, ModelLoader, ModelLoadError
from models.config import ModelsConfig
from models.status import LoadState
from conftest import StaticClassifier, StaticDetector


class TestModelLoader:
    def test_starts_loading(self):
        loader = ModelLoader(StaticDetector, StaticClassifier, runtime_init=None)
        assert loader.status.state == LoadState.LOADING

    def test_load_success(self):
        runtime_init = MagicMock(return_value="8.0.0")
        loader = ModelLoader(StaticDetector, StaticClassifier, runtime_init=runtime_init)

        detector, classifier = asyncio.run(loader.load())

        runtime_init.assert_called_once()
        assert isinstance(detector, StaticDetector)
        assert isinstance(classifier, StaticClassifier)
        assert loader.status.is_ready
        assert loader.detector is detector

    def test_models_built_in_parallel(self):
        barrier = threading.Barrier(2, timeout=2.0)

        def detector_factory():
            barrier.wait()
            return StaticDetector()

        def classifier_factory():
            barrier.wait()
            return StaticClassifier()

        loader = ModelLoader(detector_factory, classifier_factory, runtime_init=None)
        asyncio.run(loader.load())
        assert loader.status.is_ready

    def test_detector_failure_is_terminal(self):
        def broken():
            raise OSError("download failed")

        loader = ModelLoader(broken, StaticClassifier, runtime_init=None)
        with pytest.raises(ModelLoadError) as exc:
            asyncio.run(loader.load())
        assert str(exc.value) == MODEL_LOAD_ERROR_MESSAGE
        assert loader.status.is_error
        assert loader.status.message == MODEL_LOAD_ERROR_MESSAGE

        # No retry: a second attempt fails without calling the factory again
        classifier_factory = MagicMock()
        loader._classifier_factory = classifier_factory
        with pytest.raises(ModelLoadError):
            asyncio.run(loader.load())
        classifier_factory.assert_not_called()

    def test_runtime_failure_skips_models(self):
        detector_factory = MagicMock()
        loader = ModelLoader(
            detector_factory,
            StaticClassifier,
            runtime_init=MagicMock(side_effect=ImportError("Ultralytics is not installed")),
        )
        with pytest.raises(ModelLoadError):
            asyncio.run(loader.load())
        detector_factory.assert_not_called()
        assert loader.status.is_error

    def test_load_is_idempotent_when_ready(self):
        detector_factory = MagicMock(return_value=StaticDetector())
        loader = ModelLoader(detector_factory, StaticClassifier, runtime_init=None)
        first = asyncio.run(loader.load())
        second = asyncio.run(loader.load())
        assert first == second
        detector_factory.assert_called_once()

    def test_from_config_is_lazy(self):
        loader = ModelLoader.from_config(ModelsConfig())
        assert loader.detector is None
        assert loader.status.state == LoadState.LOADING
