"""
Tests for the versioned snapshot store and its readers/writer lock.
"""

import threading
import time
from datetime import datetime, timezone

from models.detection import Detection, Rect
from models.snapshot import Snapshot
from runtime.store import ReadWriteLock, SnapshotStore


def make_snapshot(frame: int, n_faces: int = 0, source: str = "0") -> Snapshot:
    ts = datetime.now(timezone.utc)
    return Snapshot(
        source=source,
        frame=frame,
        frame_width=640,
        frame_height=480,
        detections=tuple(
            Detection(id=i, bbox=Rect(i, i, 10, 10), score=0.9, timestamp=ts)
            for i in range(n_faces)
        ),
        generated_at=ts,
    )


class TestSnapshotStore:
    def test_empty_before_first_set(self):
        store = SnapshotStore()

        snap, version = store.get()

        assert version == 0
        assert snap == Snapshot.empty()

    def test_version_increments_by_one_per_set(self):
        store = SnapshotStore()
        for i in range(1, 6):
            assert store.set(make_snapshot(i)) == i
            assert store.get()[1] == i

    def test_empty_snapshot_still_advances_version(self):
        store = SnapshotStore()
        store.set(make_snapshot(1, n_faces=2))
        store.set(Snapshot(source="0", frame=2))

        snap, version = store.get()

        assert version == 2
        assert snap.detections == ()

    def test_get_returns_latest(self):
        store = SnapshotStore()
        first = make_snapshot(1)
        second = make_snapshot(2, n_faces=3)
        store.set(first)
        store.set(second)

        snap, _ = store.get()

        assert snap is second

    def test_version_property(self):
        store = SnapshotStore()
        store.set(make_snapshot(1))
        assert store.version == 1

    def test_concurrent_readers_see_whole_snapshots(self):
        """100 readers racing one writer each see the old or new snapshot in full."""
        store = SnapshotStore()
        old = make_snapshot(1, n_faces=1, source="old")
        new = make_snapshot(2, n_faces=4, source="new")
        store.set(old)

        barrier = threading.Barrier(101)
        results = []
        results_lock = threading.Lock()

        def reader():
            barrier.wait()
            snap, version = store.get()
            with results_lock:
                results.append((snap, version))

        def writer():
            barrier.wait()
            store.set(new)

        threads = [threading.Thread(target=reader) for _ in range(100)]
        threads.append(threading.Thread(target=writer))
        for t in threads:
            t.start()
        for t in threads:
            t.join(5)

        assert len(results) == 100
        for snap, version in results:
            assert (snap, version) in ((old, 1), (new, 2))
            if snap is new:
                assert snap.source == "new" and len(snap.detections) == 4
            else:
                assert snap.source == "old" and len(snap.detections) == 1

    def test_many_writers_keep_count(self):
        store = SnapshotStore()

        def writer(base):
            for i in range(50):
                store.set(make_snapshot(base + i))

        threads = [threading.Thread(target=writer, args=(k * 100,)) for k in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(5)

        assert store.version == 200


class TestReadWriteLock:
    def test_readers_share(self):
        lock = ReadWriteLock()
        inside = threading.Event()
        release = threading.Event()

        def hold_read():
            with lock.read_locked():
                inside.set()
                release.wait(2)

        t = threading.Thread(target=hold_read)
        t.start()
        assert inside.wait(2)

        acquired = threading.Event()

        def second_reader():
            with lock.read_locked():
                acquired.set()

        t2 = threading.Thread(target=second_reader)
        t2.start()
        assert acquired.wait(2)

        release.set()
        t.join(2)
        t2.join(2)

    def test_writer_excludes_readers(self):
        lock = ReadWriteLock()
        writing = threading.Event()
        release = threading.Event()
        read_done = threading.Event()

        def hold_write():
            with lock.write_locked():
                writing.set()
                release.wait(2)

        def reader():
            with lock.read_locked():
                read_done.set()

        w = threading.Thread(target=hold_write)
        w.start()
        assert writing.wait(2)

        r = threading.Thread(target=reader)
        r.start()
        time.sleep(0.05)
        assert not read_done.is_set()

        release.set()
        assert read_done.wait(2)
        w.join(2)
        r.join(2)

    def test_writer_waits_for_active_reader(self):
        lock = ReadWriteLock()
        reading = threading.Event()
        release = threading.Event()
        wrote = threading.Event()

        def hold_read():
            with lock.read_locked():
                reading.set()
                release.wait(2)

        def writer():
            with lock.write_locked():
                wrote.set()

        r = threading.Thread(target=hold_read)
        r.start()
        assert reading.wait(2)

        w = threading.Thread(target=writer)
        w.start()
        time.sleep(0.05)
        assert not wrote.is_set()

        release.set()
        assert wrote.wait(2)
        r.join(2)
        w.join(2)
