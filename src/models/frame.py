"""
A single image grabbed from the video source.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np


@dataclass(frozen=True)
class CapturedFrame:
    """
    BGR image plus where and when it came from.

    Width and height are read off the image itself so they can never
    disagree with the pixels handed to the detector.
    """
    image: np.ndarray
    index: int
    captured_at: float
    source: str = ""

    @property
    def width(self) -> int:
        return int(self.image.shape[1])

    @property
    def height(self) -> int:
        return int(self.image.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        """(width, height) in pixels."""
        return self.width, self.height
