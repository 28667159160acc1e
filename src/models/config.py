"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class SourceConfig:
    """Video source configuration."""
    device: str = "0"
    rtsp_transport: str = "tcp"
    buffer_size: int = 1

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "SourceConfig":
        return cls(
            device=str(d.get("device", "0")),
            rtsp_transport=d.get("rtsp_transport", "tcp"),
            buffer_size=d.get("buffer_size", 1),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "device": self.device,
            "rtsp_transport": self.rtsp_transport,
            "buffer_size": self.buffer_size,
        }


@dataclass
class ModelConfig:
    """Res10 SSD (Caffe) model artifacts and input geometry."""
    prototxt: str = "models/deploy.prototxt"
    weights: str = "models/res10_300x300_ssd_iter_140000.caffemodel"
    input_size: List[int] = field(default_factory=lambda: [300, 300])
    mean: List[float] = field(default_factory=lambda: [104.0, 177.0, 123.0])
    scale: float = 1.0
    swap_rb: bool = False
    crop: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ModelConfig":
        return cls(
            prototxt=d.get("prototxt", "models/deploy.prototxt"),
            weights=d.get("weights", "models/res10_300x300_ssd_iter_140000.caffemodel"),
            input_size=list(d.get("input_size", [300, 300])),
            mean=list(d.get("mean", [104.0, 177.0, 123.0])),
            scale=float(d.get("scale", 1.0)),
            swap_rb=d.get("swap_rb", False),
            crop=d.get("crop", False),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prototxt": self.prototxt,
            "weights": self.weights,
            "input_size": self.input_size,
            "mean": self.mean,
            "scale": self.scale,
            "swap_rb": self.swap_rb,
            "crop": self.crop,
        }


@dataclass
class DetectorConfig:
    """Detector loop cadence and filtering."""
    interval_s: float = 0.2
    confidence: float = 0.5
    stats_log_interval_s: float = 60.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DetectorConfig":
        return cls(
            interval_s=float(d.get("interval_s", 0.2)),
            confidence=float(d.get("confidence", 0.5)),
            stats_log_interval_s=float(d.get("stats_log_interval_s", 60.0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "interval_s": self.interval_s,
            "confidence": self.confidence,
            "stats_log_interval_s": self.stats_log_interval_s,
        }


@dataclass
class ServerConfig:
    """HTTP listener configuration."""
    host: str = "0.0.0.0"
    port: int = 8080
    static_dir: str = "public"
    shutdown_grace_s: float = 5.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ServerConfig":
        return cls(
            host=d.get("host", "0.0.0.0"),
            port=int(d.get("port", 8080)),
            static_dir=d.get("static_dir", "public"),
            shutdown_grace_s=float(d.get("shutdown_grace_s", 5.0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "static_dir": self.static_dir,
            "shutdown_grace_s": self.shutdown_grace_s,
        }


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the merged YAML + environment config.
    """
    source: SourceConfig = field(default_factory=SourceConfig)
    model: ModelConfig = field(default_factory=ModelConfig)
    detector: DetectorConfig = field(default_factory=DetectorConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    log_path: Optional[str] = None
    log_level: str = "INFO"
    pid_file: str = "data/face_pos.pid"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            source=SourceConfig.from_dict(d.get("source", {}) or {}),
            model=ModelConfig.from_dict(d.get("model", {}) or {}),
            detector=DetectorConfig.from_dict(d.get("detector", {}) or {}),
            server=ServerConfig.from_dict(d.get("server", {}) or {}),
            log_path=d.get("log_path") or None,
            log_level=d.get("log_level", "INFO"),
            pid_file=d.get("pid_file", "data/face_pos.pid"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source.to_dict(),
            "model": self.model.to_dict(),
            "detector": self.detector.to_dict(),
            "server": self.server.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
            "pid_file": self.pid_file,
        }
