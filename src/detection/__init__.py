"""
Face Position Service - Detection Module

The detection port wraps the video source and the face detector network.
"""

from .port import DetectionPort, InitError, open_port

__all__ = ['DetectionPort', 'InitError', 'open_port']
