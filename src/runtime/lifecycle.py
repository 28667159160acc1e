"""
Process-wide cancellation signal driven by SIGINT/SIGTERM.

Both the detector loop and the HTTP server watch the same ShutdownSignal and
stop on their own; neither waits for the other.
"""

from __future__ import annotations

import logging
import signal
import threading
from typing import Callable, Dict, Iterable, Optional

DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownSignal:
    """A one-shot cancellation flag that OS signals can set."""

    def __init__(self):
        self._event = threading.Event()
        self._reason: Optional[str] = None
        self._lock = threading.RLock()
        self._previous: Dict[int, object] = {}

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def trigger(self, reason: str = "requested") -> None:
        """Set the flag. Only the first reason is kept."""
        with self._lock:
            if self._event.is_set():
                return
            self._reason = reason
            self._event.set()
        logging.info(f"[lifecycle] shutdown requested ({reason})")

    def is_set(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until triggered or timeout; returns True if triggered."""
        return self._event.wait(timeout)

    def install(self, signals: Iterable[int] = DEFAULT_SIGNALS) -> None:
        """
        Route the given OS signals to trigger(). Must be called from the
        main thread.
        """
        for sig in signals:
            self._previous[sig] = signal.signal(sig, self._handle)

    def uninstall(self) -> None:
        """Restore the handlers that were active before install()."""
        for sig, handler in self._previous.items():
            signal.signal(sig, handler)
        self._previous.clear()

    def _handle(self, signum, _frame) -> None:
        self.trigger(signal.Signals(signum).name)

    def on_trigger(self, callback: Callable[[], None], name: str = "shutdown-watcher") -> threading.Thread:
        """Run callback in a daemon thread once the flag is set."""
        def _watch():
            self._event.wait()
            callback()

        thread = threading.Thread(target=_watch, name=name, daemon=True)
        thread.start()
        return thread
