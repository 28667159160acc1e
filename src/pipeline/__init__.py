"""
Pipeline module for the face position service.

The pipeline orchestrates the detection flow:
- Frame acquisition and inference through the detection port
- Confidence filtering and box clamping (PostprocessStage)
- Publication of one Snapshot per tick to the store
"""

from .engine import DetectorLoop, DetectorLoopConfig, LoopState, create_loop_from_config
from .stages.postprocess import PostprocessStage, PostprocessConfig, create_postprocess_stage

__all__ = [
    "DetectorLoop",
    "DetectorLoopConfig",
    "LoopState",
    "create_loop_from_config",
    "PostprocessStage",
    "PostprocessConfig",
    "create_postprocess_stage",
]
