"""
Inference backend interface.

Backends return raw detections in normalized coordinates; scaling to pixels,
filtering and clamping happen in the detector loop.
"""

from __future__ import annotations

from typing import List, Protocol

import numpy as np

from models.detection import RawDetection


class InferenceBackend(Protocol):
    def infer(self, frame: np.ndarray) -> List[RawDetection]:
        ...

    def close(self) -> None:
        ...


class MalformedOutputError(ValueError):
    """The network produced an output tensor that cannot be decoded."""
