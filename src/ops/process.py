"""
Process management utilities for single-instance enforcement.

This module provides:
- PID file management (write on start, check for existing, cleanup)
- Stopping a running instance with SIGTERM, escalating to SIGKILL
"""

from __future__ import annotations

import atexit
import logging
import os
import signal
import time
from pathlib import Path
from typing import Optional

DEFAULT_PID_FILE = "data/face_pos.pid"


def get_pid_file_path(pid_file: Optional[str] = None) -> Path:
    return Path(pid_file or DEFAULT_PID_FILE)


def read_pid_file(pid_file: Optional[str] = None) -> Optional[int]:
    """Return the PID stored in the PID file, or None if absent/invalid."""
    path = get_pid_file_path(pid_file)
    if not path.exists():
        return None
    try:
        return int(path.read_text().strip())
    except (ValueError, OSError):
        return None


def is_process_running(pid: int) -> bool:
    """Signal 0 checks for existence without affecting the process."""
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists but owned by someone else
        return True
    return True


def kill_process(pid: int, force: bool = False) -> bool:
    """
    Send SIGTERM (or SIGKILL when force=True) to pid.

    Returns True if the signal was delivered or the process is already gone.
    """
    if pid <= 0 or not is_process_running(pid):
        return True
    try:
        os.kill(pid, signal.SIGKILL if force else signal.SIGTERM)
        return True
    except OSError as e:
        logging.warning(f"Failed to signal process {pid}: {e}")
        return False


def write_pid_file(pid_file: Optional[str] = None) -> None:
    """Write our PID and remove the file again at interpreter exit."""
    path = get_pid_file_path(pid_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(str(os.getpid()))
    logging.debug(f"Wrote PID {os.getpid()} to {path}")
    atexit.register(remove_pid_file, pid_file)


def remove_pid_file(pid_file: Optional[str] = None) -> None:
    path = get_pid_file_path(pid_file)
    try:
        if path.exists() and read_pid_file(pid_file) in (None, os.getpid()):
            path.unlink()
            logging.debug(f"Removed PID file: {path}")
    except OSError as e:
        logging.warning(f"Failed to remove PID file: {e}")


def wait_for_exit(pid: int, timeout_s: float, poll_s: float = 0.25) -> bool:
    """Poll until pid is gone or timeout_s elapses; True if it exited."""
    deadline = time.monotonic() + timeout_s
    while time.monotonic() < deadline:
        if not is_process_running(pid):
            return True
        time.sleep(poll_s)
    return not is_process_running(pid)


def ensure_single_instance(pid_file: Optional[str] = None, kill_existing: bool = False) -> bool:
    """
    Ensure only one instance of the service is running.

    Returns True if we can proceed (no other instance, or it was stopped),
    False if another instance is running and kill_existing is False.
    Writes the PID file for the current process on success.
    """
    existing_pid = read_pid_file(pid_file)

    if existing_pid is not None and existing_pid != os.getpid():
        if is_process_running(existing_pid):
            if not kill_existing:
                logging.error(
                    f"Another instance is already running (PID {existing_pid}). "
                    f"Use --kill-existing to replace it, or stop it with --stop."
                )
                return False
            logging.info(f"Stopping existing instance (PID {existing_pid})...")
            if not stop_existing_instance(pid_file):
                logging.error(f"Failed to stop existing instance (PID {existing_pid})")
                return False
        else:
            logging.info(f"Removing stale PID file (PID {existing_pid} not running)")
            get_pid_file_path(pid_file).unlink(missing_ok=True)

    write_pid_file(pid_file)
    return True


def stop_existing_instance(pid_file: Optional[str] = None, grace_s: float = 10.0) -> bool:
    """
    Stop the instance recorded in the PID file.

    SIGTERM first so the service can drain HTTP requests and release the
    camera; SIGKILL if it is still alive after grace_s.
    """
    existing_pid = read_pid_file(pid_file)
    if existing_pid is None:
        logging.info("No PID file found - no instance to stop.")
        return True

    path = get_pid_file_path(pid_file)
    if not is_process_running(existing_pid):
        logging.info(f"PID file exists but process {existing_pid} is not running. Cleaning up.")
        path.unlink(missing_ok=True)
        return True

    logging.info(f"Stopping instance (PID {existing_pid})...")
    if not kill_process(existing_pid):
        return False

    if not wait_for_exit(existing_pid, grace_s):
        logging.warning(f"Process {existing_pid} didn't stop gracefully, force killing...")
        kill_process(existing_pid, force=True)
        wait_for_exit(existing_pid, 2.0)

    path.unlink(missing_ok=True)
    logging.info(f"Instance stopped (PID {existing_pid})")
    return True
