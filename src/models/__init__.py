"""
Typed models for the face position service.

Snapshots and detections are immutable so they can be shared between the
detector thread and HTTP handlers without copying.
"""

from .frame import CapturedFrame
from .detection import Detection, Landmark, RawDetection, Rect
from .snapshot import Snapshot
from .config import (
    Config,
    DetectorConfig,
    ModelConfig,
    ServerConfig,
    SourceConfig,
)

__all__ = [
    # Frame
    "CapturedFrame",
    # Detection
    "Detection",
    "Landmark",
    "RawDetection",
    "Rect",
    # Snapshot
    "Snapshot",
    # Config
    "Config",
    "DetectorConfig",
    "ModelConfig",
    "ServerConfig",
    "SourceConfig",
]
