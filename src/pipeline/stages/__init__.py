"""
Pipeline stages for the face position service.

Each stage handles a specific part of the processing pipeline:
- postprocess: confidence filtering, pixel scaling and box clamping
"""

from .postprocess import PostprocessStage, PostprocessConfig

__all__ = ["PostprocessStage", "PostprocessConfig"]
