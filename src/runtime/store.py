"""
Versioned latest-value store shared by the detector loop and HTTP handlers.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator, Tuple

from models.snapshot import Snapshot


class ReadWriteLock:
    """
    Many concurrent readers or one writer.

    Writers are preferred: once a writer is waiting, new readers queue
    behind it so a steady stream of polls cannot starve the detector.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class SnapshotStore:
    """
    Holds the most recent Snapshot and a version counter.

    The version advances by exactly one per set() and is only meant for
    cache validation. get() returns the snapshot and the version it was
    stored with as a single observation.
    """

    def __init__(self):
        self._lock = ReadWriteLock()
        self._snapshot = Snapshot.empty()
        self._version = 0

    def set(self, snapshot: Snapshot) -> int:
        """Replace the held snapshot; returns the new version."""
        with self._lock.write_locked():
            self._snapshot = snapshot
            self._version += 1
            return self._version

    def get(self) -> Tuple[Snapshot, int]:
        with self._lock.read_locked():
            return self._snapshot, self._version

    @property
    def version(self) -> int:
        return self.get()[1]
