from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class DetectionModel(BaseModel):
    label: str
    confidence: float
    confidence_pct: int
    bbox: Optional[List[float]] = Field(None, description="[x, y, width, height] in frame pixels")


class ClassificationModel(BaseModel):
    label: str
    probability: float
    probability_pct: int


class ClassCount(BaseModel):
    name: str
    count: int


class ConfidenceRange(BaseModel):
    range: str
    count: int


class TimePoint(BaseModel):
    """One rolling-window entry, formatted for the line chart."""
    time: str
    timestamp: float
    detections: int
    avg_confidence: float


class StatsResponse(BaseModel):
    """
    Latest aggregate snapshot formatted for the dashboard charts.
    Percentages are rounded for display; raw values stay in the lists.
    """
    fps: int = 0
    processing_time_ms: float = Field(0.0, description="Latency of the last cycle, one decimal")
    total_detections: int = 0
    average_confidence_pct: float = Field(0.0, description="Mean confidence of the last cycle, one decimal")
    cycle_count: int = 0
    updated_at: Optional[float] = None
    detections: List[DetectionModel] = Field(default_factory=list)
    classifications: List[ClassificationModel] = Field(default_factory=list)
    class_data: List[ClassCount] = Field(default_factory=list)
    confidence_data: List[ConfidenceRange] = Field(default_factory=list)
    time_series: List[TimePoint] = Field(default_factory=list)


class StatusResponse(BaseModel):
    state: str = Field(..., description="loading|error|ready")
    message: Optional[str] = None
    phase: str = Field("idle", description="idle|loading_models|starting_camera|running|error|stopped")
    models: Optional[Dict[str, Any]] = None
    camera: Optional[Dict[str, Any]] = None
    loop_running: bool = False
    frame_width: Optional[int] = None
    frame_height: Optional[int] = None
    uptime_seconds: Optional[int] = None
    last_frame_age_s: Optional[float] = None
