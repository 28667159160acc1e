"""
Detector loop for the face position service.

A single background thread runs the detection port at a fixed interval,
post-processes the raw output and publishes one Snapshot per tick to the
SnapshotStore. HTTP handlers only ever read from the store.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, Optional, Tuple

from detection.port import DetectionPort
from models.detection import RawDetection
from models.snapshot import Snapshot
from pipeline.stages.postprocess import PostprocessStage, create_postprocess_stage
from runtime.lifecycle import ShutdownSignal
from runtime.store import SnapshotStore


class LoopState(str, Enum):
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


@dataclass
class DetectorLoopConfig:
    """
    Configuration for the detector loop.

    Attributes:
        interval_s: Seconds between ticks.
        stats_log_interval_s: Seconds between status log messages.
    """
    interval_s: float = 0.2
    stats_log_interval_s: float = 60.0


@dataclass
class LoopStats:
    """Runtime statistics for the detector loop."""
    ticks: int = 0
    detections: int = 0
    failed_ticks: int = 0
    dropped_ticks: int = 0
    start_time: float = field(default_factory=time.time)
    last_stats_log_time: float = field(default_factory=time.time)


class DetectorLoop:
    """
    Runs detect -> filter/clamp -> publish on a fixed schedule.

    States: STARTING -> RUNNING -> STOPPING -> STOPPED.

    start() opens the port in the calling thread so that an InitError
    surfaces before anything else is started, then hands the port to the
    worker thread which owns it until the loop stops.

    Ticks missed because a cycle overran the interval are dropped, never
    queued. Cancellation is observed while waiting for the next tick; a
    cycle already in progress always completes and publishes.

    Example:
        loop = DetectorLoop(lambda: open_port(cfg), store, stage, loop_cfg, shutdown)
        loop.start()
        ...
        shutdown.trigger("SIGTERM")
        loop.join()
    """

    def __init__(
        self,
        port_factory: Callable[[], DetectionPort],
        store: SnapshotStore,
        stage: PostprocessStage,
        config: DetectorLoopConfig,
        shutdown: Optional[ShutdownSignal] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._port_factory = port_factory
        self._store = store
        self._stage = stage
        self.config = config
        self._shutdown = shutdown or ShutdownSignal()
        self._clock = clock
        self._port: Optional[DetectionPort] = None
        self._thread: Optional[threading.Thread] = None
        self._state = LoopState.STARTING
        self._frame = 0
        self.stats = LoopStats()

    @property
    def state(self) -> LoopState:
        return self._state

    @property
    def frame(self) -> int:
        return self._frame

    def start(self) -> None:
        """
        Open the detection port and start the worker thread.

        Raises whatever the port factory raises (InitError for a missing
        model or unopenable source); the loop is STOPPED in that case.
        """
        if self._state != LoopState.STARTING:
            raise RuntimeError(f"detector loop cannot start from state {self._state.value}")

        try:
            self._port = self._port_factory()
        except Exception:
            self._state = LoopState.STOPPED
            raise

        self._state = LoopState.RUNNING
        self.stats = LoopStats()
        self._thread = threading.Thread(target=self._run, name="detector-loop", daemon=True)
        self._thread.start()
        logging.info(
            f"[detector] started (interval={self.config.interval_s * 1000:.0f}ms, "
            f"source={self._port.label}, threshold={self._stage.threshold})"
        )

    def stop(self) -> None:
        """Ask the loop to stop after the current cycle."""
        self._shutdown.trigger("detector stop")

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the worker thread; returns True once the loop is STOPPED."""
        if self._thread is not None:
            self._thread.join(timeout)
        return self._state == LoopState.STOPPED

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def tick(self) -> Snapshot:
        """
        Run one detect/publish cycle and return the published snapshot.

        A failing detect() is treated as an empty tick with a 0x0 frame.
        """
        self._frame += 1
        label = self._port.label if self._port is not None else ""

        try:
            label, raw, frame_w, frame_h = self._detect()
            detections = self._stage.process(raw, frame_w, frame_h)
        except Exception as e:
            self.stats.failed_ticks += 1
            logging.warning(f"[detector] frame={self._frame} detection failed: {e}")
            detections, frame_w, frame_h = (), 0, 0

        snapshot = Snapshot(
            source=label,
            frame=self._frame,
            frame_width=frame_w,
            frame_height=frame_h,
            detections=detections,
            generated_at=datetime.now(timezone.utc),
        )
        self._store.set(snapshot)

        self.stats.ticks += 1
        self.stats.detections += len(detections)
        logging.debug(
            f"[detector] frame={self._frame} faces={len(detections)} ({frame_w}x{frame_h})"
        )
        return snapshot

    def _detect(self) -> Tuple[str, List[RawDetection], int, int]:
        if self._port is None:
            raise RuntimeError("detection port is not open")
        return self._port.detect()

    def _run(self) -> None:
        interval = self.config.interval_s
        next_tick = self._clock() + interval
        try:
            while True:
                delay = max(next_tick - self._clock(), 0.0)
                if self._shutdown.wait(delay):
                    break

                self.tick()
                self._log_stats_if_due()

                next_tick += interval
                now = self._clock()
                if now >= next_tick:
                    missed = int((now - next_tick) // interval) + 1
                    next_tick += missed * interval
                    self.stats.dropped_ticks += missed
        except Exception:
            logging.exception("[detector] loop crashed")
        finally:
            self._state = LoopState.STOPPING
            logging.info("[detector] stopping")
            self._release_port()
            self._state = LoopState.STOPPED
            logging.info(
                f"[detector] stopped: ticks={self.stats.ticks}, "
                f"detections={self.stats.detections}, failed={self.stats.failed_ticks}"
            )

    def _release_port(self) -> None:
        if self._port is None:
            return
        try:
            self._port.close()
        except Exception as e:
            logging.warning(f"[detector] error closing detection port: {e}")

    def _log_stats_if_due(self) -> None:
        now = time.time()
        if now - self.stats.last_stats_log_time < self.config.stats_log_interval_s:
            return
        logging.info(
            f"[detector] stats: ticks={self.stats.ticks}, "
            f"detections={self.stats.detections}, "
            f"failed={self.stats.failed_ticks}, dropped={self.stats.dropped_ticks}"
        )
        self.stats.last_stats_log_time = now


def create_loop_from_config(
    config,
    store: SnapshotStore,
    port_factory: Callable[[], DetectionPort],
    shutdown: Optional[ShutdownSignal] = None,
) -> DetectorLoop:
    """
    Factory function to create a DetectorLoop from the typed Config.

    Args:
        config: models.config.Config instance.
        store: Store the loop publishes into.
        port_factory: Callable that opens the detection port.
        shutdown: Shared cancellation signal.
    """
    stage = create_postprocess_stage(config.detector.confidence)
    loop_config = DetectorLoopConfig(
        interval_s=config.detector.interval_s,
        stats_log_interval_s=config.detector.stats_log_interval_s,
    )
    return DetectorLoop(port_factory, store, stage, loop_config, shutdown=shutdown)
