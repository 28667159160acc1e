"""
Detection port: the boundary over the capture handle and the loaded network.

The port owns both native resources for its whole lifetime. Whoever opens it
is responsible for closing it; the detector loop does so on shutdown.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from inference.backend import InferenceBackend, MalformedOutputError
from inference.caffe_backend import load_backend, missing_artifacts
from models.config import Config
from models.detection import RawDetection
from observation.base import ObservationSource
from observation.opencv_source import create_source_from_config
from observation.rtsp_utils import sanitize_url

DetectResult = Tuple[str, List[RawDetection], int, int]


class InitError(RuntimeError):
    """The port could not be opened: missing/corrupt model or unopenable source."""


class DetectionPort:
    """
    Pairs an opened observation source with an inference backend.

    detect() performs one frame-read attempt and one forward pass. It never
    retries and never sleeps.
    """

    def __init__(self, source: ObservationSource, backend: InferenceBackend, label: Optional[str] = None):
        self._source = source
        self._backend = backend
        self._label = label if label is not None else source.source_id
        self._closed = False

    @property
    def label(self) -> str:
        return self._label

    @property
    def closed(self) -> bool:
        return self._closed

    def detect(self) -> DetectResult:
        """
        Grab one frame and run the detector on it.

        Returns (source_label, raw_detections, frame_width, frame_height).
        With no frame available the list is empty and the size is 0x0. With
        a malformed network output the list is empty but the real frame size
        is reported.
        """
        if self._closed:
            return self._label, [], 0, 0

        frame = self._source.read()
        if frame is None:
            return self._label, [], 0, 0

        try:
            raw = self._backend.infer(frame.image)
        except MalformedOutputError as e:
            logging.warning(f"[detector] malformed network output: {e}")
            raw = []
        return self._label, raw, frame.width, frame.height

    def close(self) -> None:
        """Release capture and network. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            self._source.close()
        finally:
            self._backend.close()


def open_port(config: Config) -> DetectionPort:
    """
    Load the model and open the video source described by config.

    Raises InitError on any failure; nothing stays open in that case.
    """
    missing = missing_artifacts([config.model.prototxt, config.model.weights])
    if missing:
        raise InitError(f"model artifacts not found: {', '.join(missing)}")

    source = create_source_from_config(config.source)
    try:
        source.open()
    except RuntimeError as e:
        raise InitError(f"open video source {sanitize_url(config.source.device)}: {e}") from e

    try:
        backend = load_backend(config.model)
    except Exception as e:
        source.close()
        raise InitError(
            f"failed to load DNN model (prototxt={config.model.prototxt}, "
            f"model={config.model.weights}): {e}"
        ) from e

    return DetectionPort(source, backend, label=config.source.device)
