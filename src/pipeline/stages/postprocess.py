"""
Post-processing stage: raw normalized detections -> clamped pixel boxes.

Boxes that come out negative or inverted are collapsed to a zero-area box at
the clamped corner instead of being dropped, so renderers never receive
negative dimensions.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple

from models.detection import Detection, RawDetection, Rect


@dataclass
class PostprocessConfig:
    """
    Attributes:
        confidence_threshold: Minimum confidence a detection needs to be kept.
    """
    confidence_threshold: float = 0.5


def clamp_box(
    x1n: float,
    y1n: float,
    x2n: float,
    y2n: float,
    frame_w: int,
    frame_h: int,
) -> Rect:
    """
    Scale normalized corners to pixels and clamp them into the frame.

    Pixel values are truncated toward zero before clamping. Afterwards
    0 <= x1 <= x2 <= frame_w and 0 <= y1 <= y2 <= frame_h.
    """
    x1 = int(x1n * frame_w)
    y1 = int(y1n * frame_h)
    x2 = int(x2n * frame_w)
    y2 = int(y2n * frame_h)

    x1 = min(max(x1, 0), frame_w)
    y1 = min(max(y1, 0), frame_h)
    x2 = min(max(x2, x1), frame_w)
    y2 = min(max(y2, y1), frame_h)

    return Rect.from_xyxy(x1, y1, x2, y2)


def filter_by_confidence(raw: Iterable[RawDetection], threshold: float) -> List[RawDetection]:
    return [r for r in raw if r.confidence >= threshold]


def _is_finite(r: RawDetection) -> bool:
    return all(math.isfinite(v) for v in (r.x1, r.y1, r.x2, r.y2))


class PostprocessStage:
    """
    Turns one frame's raw detector output into published Detections.

    Example:
        stage = PostprocessStage(PostprocessConfig(confidence_threshold=0.5))
        detections = stage.process(raw, 640, 480)
    """

    def __init__(self, config: PostprocessConfig):
        self._config = config

    @property
    def threshold(self) -> float:
        return self._config.confidence_threshold

    def process(
        self,
        raw: Iterable[RawDetection],
        frame_w: int,
        frame_h: int,
        now: Optional[datetime] = None,
    ) -> Tuple[Detection, ...]:
        """
        Filter, scale and clamp raw detections.

        ids are assigned by position in the kept list (0, 1, 2, ...), so
        they are dense within a snapshot regardless of how many raw rows
        were discarded.
        """
        ts = now or datetime.now(timezone.utc)
        kept = [r for r in filter_by_confidence(raw, self.threshold) if _is_finite(r)]

        return tuple(
            Detection(
                id=idx,
                bbox=clamp_box(r.x1, r.y1, r.x2, r.y2, frame_w, frame_h),
                score=min(max(float(r.confidence), 0.0), 1.0),
                timestamp=ts,
            )
            for idx, r in enumerate(kept)
        )


def create_postprocess_stage(confidence_threshold: float) -> PostprocessStage:
    return PostprocessStage(PostprocessConfig(confidence_threshold=confidence_threshold))
