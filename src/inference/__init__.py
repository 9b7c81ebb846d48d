"""
Inference layer: black-box detector/classifier capabilities and their loader.
"""

from .backend import Classifier, Detector
from .loader import ModelLoadError, ModelLoader

__all__ = [
    "Classifier",
    "Detector",
    "ModelLoadError",
    "ModelLoader",
]
