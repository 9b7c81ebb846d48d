"""
Inference capability interfaces.

The dashboard treats both pre-trained models as black boxes behind these two
seams, so real models can be swapped for canned test doubles. Detectors return
pixel-space regions in the input frame coordinate system; classifiers
return whole-frame class probabilities.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

import numpy as np

from models.detection import Classification, Detection


class Detector(ABC):
    """Asynchronous object detection capability."""

    @abstractmethod
    async def detect(self, frame: np.ndarray) -> List[Detection]:
        ...


class Classifier(ABC):
    """Asynchronous whole-frame classification capability."""

    @abstractmethod
    async def classify(self, frame: np.ndarray) -> List[Classification]:
        ...
