"""
Contract between the detection port and whatever produces frames.

Sources are polled, never pushed: the detector loop asks for one frame per
tick and a source answers with a frame or with None.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from models.frame import CapturedFrame


@dataclass
class ObservationConfig:
    """
    Settings shared by every source.

    Attributes:
        source_id: Label reported in published snapshots ("0", a file path, a URL).
        resolution: Requested (width, height) for local cameras; None keeps the driver default.
    """
    source_id: str = "default"
    resolution: Optional[tuple[int, int]] = None


class ObservationSource(ABC):
    """
    open() once, read() once per tick, close() once (or more; it is idempotent).

    Usable as a context manager:
        with OpenCVSource(config) as source:
            frame = source.read()
    """

    def __init__(self, config: ObservationConfig):
        self._config = config
        self._is_open = False
        self._frames_read = 0

    @property
    def source_id(self) -> str:
        return self._config.source_id

    @property
    def is_open(self) -> bool:
        return self._is_open

    @property
    def frames_read(self) -> int:
        """Frames successfully read since the last open()."""
        return self._frames_read

    @abstractmethod
    def open(self) -> None:
        """Acquire the device/stream. Raises RuntimeError when it cannot be opened."""

    @abstractmethod
    def read(self) -> Optional[CapturedFrame]:
        """
        One attempt at the next frame; None when nothing is available.

        No retries, reconnects or sleeps here: pacing belongs to the caller.
        """

    @abstractmethod
    def close(self) -> None:
        """Release the device/stream."""

    def __enter__(self) -> "ObservationSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
