"""
Typed configuration models matching the YAML config structure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


@dataclass
class CameraConfig:
    """Camera configuration."""
    backend: str = "opencv"
    device_id: Union[int, str] = 0
    facing: str = "environment"
    devices: Dict[str, Union[int, str]] = field(default_factory=dict)
    resolution: List[int] = field(default_factory=lambda: [1920, 1080])
    fps: Optional[int] = None
    ready_timeout_s: float = 10.0
    swap_rb: bool = False
    rotate: int = 0
    flip_horizontal: bool = False
    flip_vertical: bool = False

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CameraConfig":
        """Adapter: Create from config dictionary."""
        return cls(
            backend=d.get("backend", "opencv"),
            device_id=d.get("device_id", 0),
            facing=d.get("facing", "environment"),
            devices=dict(d.get("devices") or {}),
            resolution=d.get("resolution", [1920, 1080]),
            fps=d.get("fps"),
            ready_timeout_s=float(d.get("ready_timeout_s", 10.0)),
            swap_rb=d.get("swap_rb", False),
            rotate=d.get("rotate", 0) or 0,
            flip_horizontal=d.get("flip_horizontal", False),
            flip_vertical=d.get("flip_vertical", False),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "backend": self.backend,
            "device_id": self.device_id,
            "facing": self.facing,
            "devices": dict(self.devices),
            "resolution": self.resolution,
            "fps": self.fps,
            "ready_timeout_s": self.ready_timeout_s,
            "swap_rb": self.swap_rb,
            "rotate": self.rotate,
            "flip_horizontal": self.flip_horizontal,
            "flip_vertical": self.flip_vertical,
        }


@dataclass
class DetectorConfig:
    """YOLO detector configuration."""
    model: str = "yolov8n.pt"
    conf_threshold: float = 0.5
    iou_threshold: float = 0.45
    max_detections: int = 20
    classes: Optional[List[int]] = None
    device: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "DetectorConfig":
        return cls(
            model=d.get("model", "yolov8n.pt"),
            conf_threshold=float(d.get("conf_threshold", 0.5)),
            iou_threshold=float(d.get("iou_threshold", 0.45)),
            max_detections=int(d.get("max_detections", 20)),
            classes=d.get("classes"),
            device=d.get("device"),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "model": self.model,
            "conf_threshold": self.conf_threshold,
            "iou_threshold": self.iou_threshold,
            "max_detections": self.max_detections,
        }
        if self.classes is not None:
            d["classes"] = self.classes
        if self.device is not None:
            d["device"] = self.device
        return d


@dataclass
class ClassifierConfig:
    """YOLO classification model configuration."""
    model: str = "yolov8n-cls.pt"
    top_k: int = 3
    device: Optional[str] = None

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ClassifierConfig":
        return cls(
            model=d.get("model", "yolov8n-cls.pt"),
            top_k=int(d.get("top_k", 3)),
            device=d.get("device"),
        )

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {"model": self.model, "top_k": self.top_k}
        if self.device is not None:
            d["device"] = self.device
        return d


@dataclass
class ModelsConfig:
    """Both pre-trained model capabilities."""
    detector: DetectorConfig = field(default_factory=DetectorConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ModelsConfig":
        return cls(
            detector=DetectorConfig.from_dict(d.get("detector") or {}),
            classifier=ClassifierConfig.from_dict(d.get("classifier") or {}),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "detector": self.detector.to_dict(),
            "classifier": self.classifier.to_dict(),
        }


@dataclass
class LoopConfig:
    """Inference loop pacing and stall detection."""
    refresh_hz: float = 60.0
    inference_timeout_s: Optional[float] = 10.0
    fps_window_ms: float = 1000.0

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LoopConfig":
        timeout = d.get("inference_timeout_s", 10.0)
        return cls(
            refresh_hz=float(d.get("refresh_hz", 60.0)),
            inference_timeout_s=float(timeout) if timeout is not None else None,
            fps_window_ms=float(d.get("fps_window_ms", 1000.0)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "refresh_hz": self.refresh_hz,
            "inference_timeout_s": self.inference_timeout_s,
            "fps_window_ms": self.fps_window_ms,
        }


@dataclass
class AggregatorConfig:
    """Rolling statistics configuration."""
    window_size: int = 60
    clamp_top_bucket: bool = True

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "AggregatorConfig":
        return cls(
            window_size=int(d.get("window_size", 60)),
            clamp_top_bucket=bool(d.get("clamp_top_bucket", True)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "window_size": self.window_size,
            "clamp_top_bucket": self.clamp_top_bucket,
        }


@dataclass
class OverlayConfig:
    """Bounding box and label tag drawing parameters."""
    line_width: int = 2
    padding: int = 4
    label_height: int = 25
    text_offset: int = 8
    font_scale: float = 0.5
    stroke_alpha: float = 0.8
    fill_alpha: float = 0.7

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "OverlayConfig":
        return cls(
            line_width=int(d.get("line_width", 2)),
            padding=int(d.get("padding", 4)),
            label_height=int(d.get("label_height", 25)),
            text_offset=int(d.get("text_offset", 8)),
            font_scale=float(d.get("font_scale", 0.5)),
            stroke_alpha=float(d.get("stroke_alpha", 0.8)),
            fill_alpha=float(d.get("fill_alpha", 0.7)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "line_width": self.line_width,
            "padding": self.padding,
            "label_height": self.label_height,
            "text_offset": self.text_offset,
            "font_scale": self.font_scale,
            "stroke_alpha": self.stroke_alpha,
            "fill_alpha": self.fill_alpha,
        }


@dataclass
class WebConfig:
    """Dashboard server configuration."""
    host: str = "0.0.0.0"
    port: int = 5000
    stream_fps: int = 15

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "WebConfig":
        return cls(
            host=d.get("host", "0.0.0.0"),
            port=int(d.get("port", 5000)),
            stream_fps=int(d.get("stream_fps", 15)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"host": self.host, "port": self.port, "stream_fps": self.stream_fps}


@dataclass
class Config:
    """
    Complete application configuration.

    This is a typed representation of the YAML config structure.
    """
    camera: CameraConfig = field(default_factory=CameraConfig)
    models: ModelsConfig = field(default_factory=ModelsConfig)
    loop: LoopConfig = field(default_factory=LoopConfig)
    aggregator: AggregatorConfig = field(default_factory=AggregatorConfig)
    overlay: OverlayConfig = field(default_factory=OverlayConfig)
    web: WebConfig = field(default_factory=WebConfig)
    log_path: str = "logs/vision_dashboard.log"
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Config":
        """Adapter: Create Config from raw dictionary (e.g., from load_config)."""
        return cls(
            camera=CameraConfig.from_dict(d.get("camera") or {}),
            models=ModelsConfig.from_dict(d.get("models") or {}),
            loop=LoopConfig.from_dict(d.get("loop") or {}),
            aggregator=AggregatorConfig.from_dict(d.get("aggregator") or {}),
            overlay=OverlayConfig.from_dict(d.get("overlay") or {}),
            web=WebConfig.from_dict(d.get("web") or {}),
            log_path=d.get("log_path", "logs/vision_dashboard.log"),
            log_level=d.get("log_level", "INFO"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to dictionary."""
        return {
            "camera": self.camera.to_dict(),
            "models": self.models.to_dict(),
            "loop": self.loop.to_dict(),
            "aggregator": self.aggregator.to_dict(),
            "overlay": self.overlay.to_dict(),
            "web": self.web.to_dict(),
            "log_path": self.log_path,
            "log_level": self.log_level,
        }
