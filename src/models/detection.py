"""
Detection models for face detection results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, NamedTuple, Tuple


class RawDetection(NamedTuple):
    """
    One detector output row before filtering and clamping.

    Coordinates are normalized to [0, 1] relative to the frame, but the
    network is free to return values outside that range.
    """
    confidence: float
    x1: float
    y1: float
    x2: float
    y2: float


@dataclass(frozen=True)
class Rect:
    """
    An integer bounding box in pixel coordinates of the captured frame.

    Attributes:
        x: Left edge.
        y: Top edge.
        width: Box width (never negative once clamped).
        height: Box height (never negative once clamped).
    """
    x: int
    y: int
    width: int
    height: int

    @property
    def x2(self) -> int:
        return self.x + self.width

    @property
    def y2(self) -> int:
        return self.y + self.height

    @property
    def area(self) -> int:
        return self.width * self.height

    def as_xyxy(self) -> Tuple[int, int, int, int]:
        """Return as (x1, y1, x2, y2) tuple."""
        return (self.x, self.y, self.x2, self.y2)

    @classmethod
    def from_xyxy(cls, x1: int, y1: int, x2: int, y2: int) -> "Rect":
        """Create from corner coordinates (x1, y1, x2, y2)."""
        return cls(x=x1, y=y1, width=x2 - x1, height=y2 - y1)

    def to_dict(self) -> Dict[str, int]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}


@dataclass(frozen=True)
class Landmark:
    """A single facial landmark in pixel coordinates."""
    x: int
    y: int


@dataclass(frozen=True)
class Detection:
    """
    A single published face detection.

    Attributes:
        id: Position of this detection within its snapshot. Only unique
            inside one snapshot; it does not follow a face across frames.
        bbox: Clamped bounding box in pixel coordinates.
        score: Detector confidence (0-1).
        timestamp: UTC instant the detection was produced.
        landmarks: Optional landmark points (empty for Res10).
    """
    id: int
    bbox: Rect
    score: float
    timestamp: datetime
    landmarks: Tuple[Landmark, ...] = field(default_factory=tuple)
