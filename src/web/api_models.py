from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from models.detection import Detection
from models.snapshot import Snapshot


class RectModel(BaseModel):
    x: int
    y: int
    width: int
    height: int


class PointModel(BaseModel):
    x: int
    y: int


class DetectionModel(BaseModel):
    id: int = Field(..., description="Position within this snapshot; not stable across frames")
    bbox: RectModel
    landmarks: Optional[List[PointModel]] = Field(
        None, description="Omitted when the backend reports no landmarks"
    )
    score: float
    ts: datetime

    @classmethod
    def from_detection(cls, det: Detection) -> "DetectionModel":
        return cls(
            id=det.id,
            bbox=RectModel(**det.bbox.to_dict()),
            landmarks=[PointModel(x=p.x, y=p.y) for p in det.landmarks] or None,
            score=det.score,
            ts=det.timestamp,
        )


class SnapshotResponse(BaseModel):
    """
    Body of GET /faces. Field names are the wire contract for the display
    clients; do not rename.
    """
    source: str
    frame: int
    frame_width: int
    frame_height: int
    detections: List[DetectionModel] = Field(default_factory=list)
    generated_at: datetime

    @classmethod
    def from_snapshot(cls, snap: Snapshot) -> "SnapshotResponse":
        return cls(
            source=snap.source,
            frame=snap.frame,
            frame_width=snap.frame_width,
            frame_height=snap.frame_height,
            detections=[DetectionModel.from_detection(d) for d in snap.detections],
            generated_at=snap.generated_at,
        )


def serialize_snapshot(snap: Snapshot) -> str:
    """Render a snapshot as indented JSON with a trailing newline."""
    body = SnapshotResponse.from_snapshot(snap).model_dump_json(indent=2, exclude_none=True)
    return body + "\n"
