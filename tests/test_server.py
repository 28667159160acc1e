"""
Tests for the background HTTP server and its shutdown path.
"""

import logging
import socket

import httpx

from runtime.lifecycle import ShutdownSignal
from runtime.store import SnapshotStore
from web.app import create_app
from web.server import ApiServer


def free_port():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


def test_serves_until_shutdown(tmp_path):
    port = free_port()
    shutdown = ShutdownSignal()
    server = ApiServer(
        create_app(SnapshotStore(), static_dir=str(tmp_path)),
        host="127.0.0.1",
        port=port,
        shutdown=shutdown,
        grace_s=1.0,
    )

    server.start()
    try:
        assert server.wait_started(5.0)
        resp = httpx.get(f"http://127.0.0.1:{port}/healthz", timeout=2.0)
        assert resp.status_code == 200
        assert resp.text == "ok"
    finally:
        shutdown.trigger("test")

    assert server.join(5.0)
    assert not server.failed


def test_bind_failure_marks_failed_and_triggers_shutdown():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
        blocker.bind(("127.0.0.1", 0))
        blocker.listen(1)
        port = blocker.getsockname()[1]

        shutdown = ShutdownSignal()
        server = ApiServer(create_app(SnapshotStore()), "127.0.0.1", port, shutdown)
        server.start()

        assert server.join(5.0)

    assert server.failed
    assert shutdown.is_set()


def test_address():
    server = ApiServer(create_app(SnapshotStore()), "0.0.0.0", 8080, ShutdownSignal())
    assert server.address == "0.0.0.0:8080"


def test_listening_logged_only_once_bound(caplog):
    port = free_port()
    shutdown = ShutdownSignal()
    server = ApiServer(create_app(SnapshotStore()), "127.0.0.1", port, shutdown, grace_s=1.0)

    with caplog.at_level(logging.INFO):
        server.start()
        starting = [r.getMessage() for r in caplog.records]
        try:
            assert server.wait_started(5.0)
        finally:
            shutdown.trigger("test")
        server.join(5.0)

    assert any("starting on" in m for m in starting)
    assert not any("listening on" in m for m in starting)
    listening = [r.getMessage() for r in caplog.records if "listening on" in r.getMessage()]
    assert listening == [f"[http] listening on 127.0.0.1:{port}"]


def test_wait_started_false_when_bind_fails():
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
        blocker.bind(("127.0.0.1", 0))
        blocker.listen(1)
        port = blocker.getsockname()[1]

        shutdown = ShutdownSignal()
        server = ApiServer(create_app(SnapshotStore()), "127.0.0.1", port, shutdown)
        server.start()

        assert server.wait_started(5.0) is False
        server.join(5.0)
