"""
Pytest configuration and shared fixtures.
"""

import os
import sys

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

FACE_ENV_VARS = [
    "FACE_SOURCE",
    "FACE_RTSP_TRANSPORT",
    "FACE_PROTOTXT",
    "FACE_MODEL",
    "FACE_INTERVAL",
    "FACE_CONF",
    "FACE_STATIC",
    "FACE_SHUTDOWN_GRACE",
    "FACE_LOG_LEVEL",
    "FACE_LOG_PATH",
    "FACE_ADDR",
    "FACE_INPUT_W",
    "FACE_INPUT_H",
]


@pytest.fixture(autouse=True)
def clean_face_env(monkeypatch):
    """Keep FACE_* variables from the developer's shell out of tests."""
    for key in FACE_ENV_VARS:
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def model_files(tmp_path):
    """Placeholder model artifacts that exist on disk."""
    models_dir = tmp_path / "models"
    models_dir.mkdir()
    prototxt = models_dir / "deploy.prototxt"
    weights = models_dir / "res10.caffemodel"
    prototxt.write_text("name: \"test\"\n")
    weights.write_bytes(b"\x00" * 16)
    return str(prototxt), str(weights)


@pytest.fixture
def temp_config_dir(tmp_path, model_files):
    """Create a temporary config directory with default.yaml."""
    prototxt, weights = model_files
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    default_yaml = config_dir / "default.yaml"
    default_yaml.write_text(f"""
source:
  device: "0"
  rtsp_transport: "tcp"

model:
  prototxt: "{prototxt}"
  weights: "{weights}"
  input_size: [300, 300]

detector:
  interval_s: 0.2
  confidence: 0.5

server:
  host: "0.0.0.0"
  port: 8080
  static_dir: "public"
  shutdown_grace_s: 5

log_level: "INFO"
""")

    return config_dir


@pytest.fixture
def valid_config(model_files):
    """Return a valid configuration dictionary."""
    prototxt, weights = model_files
    return {
        "source": {
            "device": "0",
            "rtsp_transport": "tcp",
        },
        "model": {
            "prototxt": prototxt,
            "weights": weights,
            "input_size": [300, 300],
        },
        "detector": {
            "interval_s": 0.2,
            "confidence": 0.5,
        },
        "server": {
            "host": "0.0.0.0",
            "port": 8080,
            "static_dir": "public",
            "shutdown_grace_s": 5,
        },
        "log_level": "INFO",
    }
