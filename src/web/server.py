"""
uvicorn server running in a background thread.

The server stops accepting connections when the shared ShutdownSignal fires,
drains in-flight requests for up to the configured grace period, then
force-closes whatever is left.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Optional

import uvicorn
from fastapi import FastAPI

from runtime.lifecycle import ShutdownSignal


class ApiServer:
    def __init__(
        self,
        app: FastAPI,
        host: str,
        port: int,
        shutdown: ShutdownSignal,
        grace_s: float = 5.0,
    ):
        self._shutdown = shutdown
        self._config = uvicorn.Config(
            app,
            host=host,
            port=port,
            log_level="warning",
            access_log=False,
            log_config=None,
            timeout_graceful_shutdown=max(int(round(grace_s)), 1),
        )
        self._server = uvicorn.Server(self._config)
        self._thread: Optional[threading.Thread] = None
        self.failed = False

    @property
    def address(self) -> str:
        return f"{self._config.host}:{self._config.port}"

    @property
    def started(self) -> bool:
        return self._server.started

    def start(self) -> None:
        self._thread = threading.Thread(target=self._run, name="http-server", daemon=True)
        self._thread.start()
        self._shutdown.on_trigger(self.request_stop, name="http-shutdown-watcher")
        logging.info(f"[http] starting on {self.address}")

    def wait_started(self, timeout: float = 10.0) -> bool:
        """
        Block until uvicorn has bound the port.

        Returns False if the server thread exited first (e.g. the port is
        taken) or the timeout passed.
        """
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if self._server.started:
                logging.info(f"[http] listening on {self.address}")
                return True
            if not self.is_alive():
                return False
            time.sleep(0.05)
        return self._server.started

    def request_stop(self) -> None:
        """Stop accepting connections and begin the graceful drain."""
        self._server.should_exit = True

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the server thread; returns True once it has exited."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        try:
            self._server.run()
        except SystemExit as e:
            # uvicorn exits this way when it cannot bind
            self.failed = True
            logging.error(f"[http] server exited during startup (code={e.code})")
        except Exception:
            self.failed = True
            logging.exception("[http] server crashed")
        finally:
            if not self._shutdown.is_set():
                self._shutdown.trigger("http server stopped")
            logging.info("[http] server stopped")
