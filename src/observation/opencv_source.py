"""
cv2.VideoCapture-backed frame source.

The configured device string decides the capture kind: digits are a local
camera index, rtsp:// and http(s):// are network streams, anything else is
opened as a file path.
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import cv2

from models.config import SourceConfig
from models.frame import CapturedFrame
from .base import ObservationConfig, ObservationSource
from .rtsp_utils import is_rtsp, parse_device, sanitize_url

# Warn on the first miss, then only every Nth so a dead feed doesn't flood the log
MISS_LOG_EVERY = 50


@dataclass
class OpenCVSourceConfig(ObservationConfig):
    """
    Attributes:
        device_id: Camera index, stream URL or file path as cv2.VideoCapture takes it.
        rtsp_transport: "tcp" or "udp"; only applied to rtsp:// sources.
        buffer_size: Driver-side queue depth for local cameras. 1 keeps frames fresh.
    """
    device_id: Union[int, str] = 0
    rtsp_transport: str = "tcp"
    buffer_size: int = 1

    @classmethod
    def from_source_config(cls, source_cfg: SourceConfig) -> "OpenCVSourceConfig":
        return cls(
            source_id=source_cfg.device,
            device_id=parse_device(source_cfg.device),
            rtsp_transport=source_cfg.rtsp_transport,
            buffer_size=source_cfg.buffer_size,
        )


class OpenCVSource(ObservationSource):
    """
    Example:
        with OpenCVSource(OpenCVSourceConfig(device_id=0)) as source:
            frame = source.read()
    """

    def __init__(self, config: OpenCVSourceConfig):
        super().__init__(config)
        self._cv_config = config
        self._capture: Optional[cv2.VideoCapture] = None
        self._misses = 0

    @property
    def device_id(self) -> Union[int, str]:
        return self._cv_config.device_id

    @property
    def consecutive_failures(self) -> int:
        return self._misses

    def _is_local_file(self) -> bool:
        return isinstance(self.device_id, str) and os.path.isfile(self.device_id)

    def open(self) -> None:
        if self._is_open:
            return

        if is_rtsp(self.device_id):
            # Read by the FFmpeg backend when the capture is created
            os.environ["OPENCV_FFMPEG_CAPTURE_OPTIONS"] = f"rtsp_transport;{self._cv_config.rtsp_transport}"
            logging.info(f"[source] rtsp transport={self._cv_config.rtsp_transport}")

        capture = cv2.VideoCapture(self.device_id)
        if not capture.isOpened():
            capture.release()
            raise RuntimeError(f"video source not opened: {sanitize_url(self.device_id)}")

        if isinstance(self.device_id, int):
            capture.set(cv2.CAP_PROP_BUFFERSIZE, self._cv_config.buffer_size)
            if self._cv_config.resolution:
                req_w, req_h = self._cv_config.resolution
                capture.set(cv2.CAP_PROP_FRAME_WIDTH, req_w)
                capture.set(cv2.CAP_PROP_FRAME_HEIGHT, req_h)

        self._capture = capture
        self._is_open = True
        self._frames_read = 0
        self._misses = 0
        logging.info(f"[source] opened {sanitize_url(self.source_id)} {self.get_video_info()}")

    def read(self) -> Optional[CapturedFrame]:
        if self._capture is None:
            return None

        ok, image = self._capture.read()
        if not ok or image is None or image.size == 0:
            self._misses += 1
            if self._misses == 1 or self._misses % MISS_LOG_EVERY == 0:
                logging.warning(
                    f"[source] no frame from {sanitize_url(self.source_id)} "
                    f"({self._misses} in a row)"
                )
            return None

        self._misses = 0
        self._frames_read += 1
        return CapturedFrame(
            image=image,
            index=self._frames_read,
            captured_at=time.time(),
            source=self.source_id,
        )

    def close(self) -> None:
        capture, self._capture = self._capture, None
        self._is_open = False
        if capture is not None:
            capture.release()
            logging.info(f"[source] closed {sanitize_url(self.source_id)}")

    def get_video_info(self) -> Dict[str, Any]:
        """Size, nominal fps and (for files) frame count of the open capture."""
        if self._capture is None:
            return {}
        cap = self._capture
        info = {
            "width": int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            "height": int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            "fps": cap.get(cv2.CAP_PROP_FPS),
        }
        if self._is_local_file():
            info["frame_count"] = int(cap.get(cv2.CAP_PROP_FRAME_COUNT))
        return info


def create_source_from_config(source_cfg: SourceConfig) -> OpenCVSource:
    """Build an unopened source; the detection port opens it."""
    return OpenCVSource(OpenCVSourceConfig.from_source_config(source_cfg))
