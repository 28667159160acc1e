"""
OpenCV DNN backend for the Res10 SSD face detector (Caffe).

The network output is a [1, 1, N, 7] tensor whose rows are
(image_id, class_id, confidence, x1, y1, x2, y2) with normalized corners.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import cv2
import numpy as np

from models.config import ModelConfig
from models.detection import RawDetection
from .backend import InferenceBackend, MalformedOutputError

ROW_WIDTH = 7


@dataclass(frozen=True)
class CaffeSsdConfig:
    prototxt: str
    weights: str
    input_size: Tuple[int, int] = (300, 300)
    mean: Tuple[float, float, float] = (104.0, 177.0, 123.0)
    scale: float = 1.0
    swap_rb: bool = False
    crop: bool = False

    @classmethod
    def from_model_config(cls, model_cfg: ModelConfig) -> "CaffeSsdConfig":
        w, h = model_cfg.input_size
        return cls(
            prototxt=model_cfg.prototxt,
            weights=model_cfg.weights,
            input_size=(int(w) or 300, int(h) or 300),
            mean=tuple(float(m) for m in model_cfg.mean),
            scale=model_cfg.scale,
            swap_rb=model_cfg.swap_rb,
            crop=model_cfg.crop,
        )


def decode_ssd_output(out: np.ndarray) -> List[RawDetection]:
    """
    Decode an SSD detection tensor into raw detections.

    Raises MalformedOutputError when the tensor holds fewer than one row or
    its size is not a multiple of the row width.
    """
    if out is None or out.size < ROW_WIDTH or out.size % ROW_WIDTH != 0:
        raise MalformedOutputError(
            f"unexpected SSD output shape {getattr(out, 'shape', None)}"
        )

    rows = np.asarray(out, dtype=np.float32).reshape(-1, ROW_WIDTH)
    return [
        RawDetection(
            confidence=float(row[2]),
            x1=float(row[3]),
            y1=float(row[4]),
            x2=float(row[5]),
            y2=float(row[6]),
        )
        for row in rows
    ]


class CaffeSsdBackend(InferenceBackend):
    def __init__(self, cfg: CaffeSsdConfig):
        self.cfg = cfg
        for path in (cfg.prototxt, cfg.weights):
            if not os.path.isfile(path):
                raise FileNotFoundError(f"model artifact not found: {path}")

        self._net = cv2.dnn.readNetFromCaffe(cfg.prototxt, cfg.weights)
        if self._net.empty():
            raise RuntimeError(
                f"failed to load DNN model (prototxt={cfg.prototxt}, model={cfg.weights})"
            )
        self._net.setPreferableBackend(cv2.dnn.DNN_BACKEND_OPENCV)
        self._net.setPreferableTarget(cv2.dnn.DNN_TARGET_CPU)
        logging.info(f"Loaded Res10 SSD model: {cfg.weights} (input={cfg.input_size})")

    def infer(self, frame: np.ndarray) -> List[RawDetection]:
        blob = cv2.dnn.blobFromImage(
            frame,
            self.cfg.scale,
            self.cfg.input_size,
            self.cfg.mean,
            self.cfg.swap_rb,
            self.cfg.crop,
        )
        self._net.setInput(blob)
        return decode_ssd_output(self._net.forward())

    def close(self) -> None:
        # cv2.dnn.Net has no explicit release; drop the reference.
        self._net = None


def load_backend(model_cfg: ModelConfig) -> CaffeSsdBackend:
    return CaffeSsdBackend(CaffeSsdConfig.from_model_config(model_cfg))


def missing_artifacts(paths: Sequence[str]) -> List[str]:
    """Return the subset of model artifact paths that do not exist."""
    return [p for p in paths if not p or not os.path.isfile(p)]

