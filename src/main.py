"""
Face position service.

Samples a video source at a fixed interval, runs the Res10 SSD face
detector and serves the latest result over HTTP for overlay clients.

Usage:
    python src/main.py --config config/config.yaml

Arguments:
    --config: Path to configuration file (layered over config/default.yaml)
    --log-level: Override the configured log level
    --kill-existing: Stop a running instance before starting
    --stop: Stop a running instance and exit
"""

import argparse
import logging
import os
import re
import sys
from typing import Any, Callable, Dict, Optional, Tuple

import yaml

from detection.port import InitError, open_port
from inference.caffe_backend import missing_artifacts
from models.config import Config
from ops.logging import setup_logging
from ops.process import ensure_single_instance, stop_existing_instance
from pipeline.engine import create_loop_from_config
from runtime.lifecycle import ShutdownSignal
from runtime.store import SnapshotStore
from web.app import create_app
from web.server import ApiServer

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def _read_yaml(path: str) -> Dict[str, Any]:
    if not os.path.exists(path):
        return {}
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def parse_duration(text: str) -> Optional[float]:
    """
    Parse a Go-style duration ("200ms", "1.5s", "1m30s") into seconds.

    Returns None if text is not a valid duration.
    """
    text = (text or "").strip()
    if not text:
        return None
    sign = 1.0
    if text[0] in "+-":
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]
    if text == "0":
        return 0.0

    total = 0.0
    pos = 0
    while pos < len(text):
        m = _DURATION_PART.match(text, pos)
        if m is None:
            return None
        total += float(m.group(1)) * _DURATION_UNITS[m.group(2)]
        pos = m.end()
    return sign * total if pos else None


def parse_listen_addr(addr: str) -> Optional[Tuple[str, int]]:
    """Parse "host:port" or ":port" (all interfaces) into (host, port)."""
    host, sep, port = (addr or "").strip().rpartition(":")
    if not sep or not port.isdigit():
        return None
    host = host.strip("[]") or "0.0.0.0"
    return host, int(port)


def _env_override(
    config: Dict[str, Any],
    env_key: str,
    path: Tuple[str, ...],
    convert: Callable[[str], Any] = str,
) -> None:
    raw = os.environ.get(env_key)
    if raw is None or raw == "":
        return
    try:
        value = convert(raw)
    except (TypeError, ValueError):
        value = None
    if value is None:
        logging.warning(f"Ignoring invalid {env_key}={raw!r}")
        return

    node = config
    for key in path[:-1]:
        if not isinstance(node.get(key), dict):
            node[key] = {}
        node = node[key]
    node[path[-1]] = value


def _duration_or_error(raw: str) -> float:
    seconds = parse_duration(raw)
    if seconds is None:
        raise ValueError(raw)
    return seconds


def apply_env_overrides(config: Dict[str, Any]) -> Dict[str, Any]:
    """Apply FACE_* environment variables on top of the file config."""
    _env_override(config, "FACE_SOURCE", ("source", "device"))
    _env_override(config, "FACE_RTSP_TRANSPORT", ("source", "rtsp_transport"))
    _env_override(config, "FACE_PROTOTXT", ("model", "prototxt"))
    _env_override(config, "FACE_MODEL", ("model", "weights"))
    _env_override(config, "FACE_INTERVAL", ("detector", "interval_s"), _duration_or_error)
    _env_override(config, "FACE_CONF", ("detector", "confidence"), float)
    _env_override(config, "FACE_STATIC", ("server", "static_dir"))
    _env_override(config, "FACE_SHUTDOWN_GRACE", ("server", "shutdown_grace_s"), _duration_or_error)
    _env_override(config, "FACE_LOG_LEVEL", ("log_level",), str.upper)
    _env_override(config, "FACE_LOG_PATH", ("log_path",))

    addr = os.environ.get("FACE_ADDR")
    if addr:
        parsed = parse_listen_addr(addr)
        if parsed is None:
            logging.warning(f"Ignoring invalid FACE_ADDR={addr!r}")
        else:
            server = config.setdefault("server", {})
            server["host"], server["port"] = parsed

    for env_key, index in (("FACE_INPUT_W", 0), ("FACE_INPUT_H", 1)):
        raw = os.environ.get(env_key)
        if not raw:
            continue
        try:
            value = int(raw)
        except ValueError:
            logging.warning(f"Ignoring invalid {env_key}={raw!r}")
            continue
        model = config.setdefault("model", {})
        size = list(model.get("input_size") or [300, 300])
        size[index] = value
        model["input_size"] = size

    return config


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    - FACE_* environment variables (highest priority)
    """
    try:
        config_dir = os.path.dirname(config_path)
        merged = _read_yaml(os.path.join(config_dir, "default.yaml"))

        local_overrides_path = os.path.join(config_dir, "config.yaml")
        merged = _deep_merge(merged, _read_yaml(local_overrides_path))

        if os.path.exists(config_path) and os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            merged = _deep_merge(merged, _read_yaml(config_path))
    except (OSError, yaml.YAMLError) as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)

    return apply_env_overrides(merged)


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration structure and values.

    Model artifacts must exist on disk: a missing model is a startup error,
    reported here so the process exits before the listener starts.

    Returns:
        Tuple of (is_valid, error_message)
    """
    for section in ('source', 'model', 'detector', 'server'):
        if not isinstance(config.get(section), dict):
            return False, f"Missing required configuration section: {section}"

    source = config['source']
    if 'device' not in source or str(source['device']).strip() == "":
        return False, "Missing source.device"
    if source.get('rtsp_transport', 'tcp') not in ('tcp', 'udp'):
        return False, "source.rtsp_transport must be one of: tcp, udp"

    model = config['model']
    for key in ('prototxt', 'weights'):
        if not isinstance(model.get(key), str) or not model.get(key):
            return False, f"model.{key} is required"
    missing = missing_artifacts([model['prototxt'], model['weights']])
    if missing:
        return False, f"model artifacts not found on disk: {', '.join(missing)}"
    size = model.get('input_size', [300, 300])
    if not isinstance(size, list) or len(size) != 2:
        return False, "model.input_size must be a list of [width, height]"
    if not all(isinstance(x, int) and x > 0 for x in size):
        return False, "model.input_size values must be positive integers"

    detector = config['detector']
    interval = detector.get('interval_s', 0.2)
    if not isinstance(interval, (int, float)) or interval <= 0:
        return False, "detector.interval_s must be a positive number"
    conf = detector.get('confidence', 0.5)
    if not isinstance(conf, (int, float)) or not (0 <= conf <= 1):
        return False, "detector.confidence must be between 0 and 1"

    server = config['server']
    port = server.get('port', 8080)
    if not isinstance(port, int) or not (0 < port < 65536):
        return False, "server.port must be an integer between 1 and 65535"
    grace = server.get('shutdown_grace_s', 5.0)
    if not isinstance(grace, (int, float)) or grace < 0:
        return False, "server.shutdown_grace_s must be a non-negative number"

    log_level = config.get('log_level', 'INFO')
    if log_level not in VALID_LOG_LEVELS:
        return False, f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}"

    return True, None


def ensure_static_dir(static_dir: str) -> None:
    if static_dir and not os.path.isdir(static_dir):
        logging.warning(f"static directory {static_dir!r} not found, creating it")
        os.makedirs(static_dir, exist_ok=True)


def run(cfg: Config, kill_existing: bool = False) -> int:
    """
    Start the detector loop and HTTP server and block until shutdown.

    Returns the process exit code.
    """
    if not ensure_single_instance(cfg.pid_file, kill_existing=kill_existing):
        return 1

    ensure_static_dir(cfg.server.static_dir)

    shutdown = ShutdownSignal()
    shutdown.install()
    try:
        return _serve(cfg, shutdown)
    finally:
        shutdown.uninstall()


def _serve(cfg: Config, shutdown: ShutdownSignal) -> int:
    store = SnapshotStore()
    loop = create_loop_from_config(cfg, store, lambda: open_port(cfg), shutdown=shutdown)
    try:
        loop.start()
    except InitError as e:
        logging.error(f"[detector] init error: {e}")
        return 1
    except Exception:
        logging.exception("[detector] failed to start")
        return 1

    server = ApiServer(
        create_app(store, cfg.server.static_dir),
        host=cfg.server.host,
        port=cfg.server.port,
        shutdown=shutdown,
        grace_s=cfg.server.shutdown_grace_s,
    )
    server.start()
    server.wait_started()

    while not shutdown.wait(0.5):
        if not loop.is_alive():
            shutdown.trigger("detector loop exited")

    # Both components react to the same signal; wait for each to finish.
    server_stopped = server.join(cfg.server.shutdown_grace_s + 2.0)
    loop_stopped = loop.join(cfg.detector.interval_s + 5.0)

    if not server_stopped:
        logging.warning("[http] server did not stop within the grace period")
    if not loop_stopped:
        logging.warning("[detector] loop did not stop in time")

    logging.info(f"Shutdown complete ({shutdown.reason})")
    return 1 if server.failed else 0


def main():
    """Main application function."""
    parser = argparse.ArgumentParser(description='Face position service')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--log-level', type=str, choices=VALID_LOG_LEVELS,
                        help='Override the configured log level')
    parser.add_argument('--kill-existing', action='store_true',
                        help='Stop a running instance before starting')
    parser.add_argument('--stop', action='store_true',
                        help='Stop a running instance and exit')
    args = parser.parse_args()

    config = load_config(args.config)
    if args.log_level:
        config['log_level'] = args.log_level

    log_level = config.get('log_level', 'INFO')
    setup_logging(config.get('log_path'), log_level if log_level in VALID_LOG_LEVELS else 'INFO')

    if args.stop:
        sys.exit(0 if stop_existing_instance(config.get('pid_file')) else 1)

    is_valid, error_msg = validate_config(config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        sys.exit(1)

    logging.info("Starting face position service")
    sys.exit(run(Config.from_dict(config), kill_existing=args.kill_existing))


if __name__ == "__main__":
    main()
