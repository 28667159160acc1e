"""
Snapshot model: the atomic unit published by the detector loop.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Tuple

from .detection import Detection

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class Snapshot:
    """
    Result of one detection cycle.

    Attributes:
        source: Label of the video source the frame came from.
        frame: Tick counter, increases by one per published snapshot.
        frame_width: Width of the captured frame (0 if no frame was read).
        frame_height: Height of the captured frame (0 if no frame was read).
        detections: Detections kept for this frame.
        generated_at: UTC instant the snapshot was built.
    """
    source: str = ""
    frame: int = 0
    frame_width: int = 0
    frame_height: int = 0
    detections: Tuple[Detection, ...] = field(default_factory=tuple)
    generated_at: datetime = EPOCH

    @classmethod
    def empty(cls) -> "Snapshot":
        """The zero-value snapshot held before anything is published."""
        return cls()

    @property
    def size(self) -> Tuple[int, int]:
        """Return (width, height)."""
        return (self.frame_width, self.frame_height)
