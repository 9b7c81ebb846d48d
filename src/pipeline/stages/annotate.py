"""
Annotate stage: draws detection boxes and label tags.

Drawing happens on a transparent RGBA surface the size of the video frame
rather than on the frame itself, so the overlay can be shown on top of the
live video or composited for the MJPEG preview. The surface is cleared every
cycle; only the latest detection result is ever visible.
"""

from __future__ import annotations

import colorsys
from typing import Optional, Sequence, Tuple

import cv2
import numpy as np

from models.config import OverlayConfig
from models.detection import Detection, to_percent

FONT = cv2.FONT_HERSHEY_SIMPLEX
TEXT_COLOR = (255, 255, 255, 255)


def hue_for_confidence(confidence: float) -> float:
    """Map 0-100% confidence onto a 0-120 degree hue (red to green)."""
    return to_percent(confidence) * 1.2


def hsl_to_bgr(hue: float, saturation: float = 1.0, lightness: float = 0.5) -> Tuple[int, int, int]:
    r, g, b = colorsys.hls_to_rgb((hue % 360) / 360.0, lightness, saturation)
    return (int(round(b * 255)), int(round(g * 255)), int(round(r * 255)))


def label_text(det: Detection) -> str:
    return f"{det.label} {det.confidence_pct}%"


class OverlayRenderer:
    """
    Renders the latest DetectionResult onto a transparent surface.

    Example:
        renderer = OverlayRenderer(OverlayConfig())
        surface = renderer.render(detections, (width, height))
        preview = composite(frame, surface)
    """

    def __init__(self, config: Optional[OverlayConfig] = None):
        self.config = config or OverlayConfig()
        self._surface: Optional[np.ndarray] = None

    @property
    def surface(self) -> Optional[np.ndarray]:
        """The most recently rendered RGBA surface (BGRA channel order)."""
        return self._surface

    def render(self, detections: Sequence[Detection], frame_size: Tuple[int, int]) -> np.ndarray:
        """
        Clear the surface and draw every detection that has a bounding box.

        Args:
            detections: The current cycle's detection result.
            frame_size: (width, height) of the video frame.
        """
        width, height = frame_size
        if self._surface is None or self._surface.shape[:2] != (height, width):
            self._surface = np.zeros((height, width, 4), dtype=np.uint8)
        else:
            self._surface[:] = 0

        for det in detections:
            if det.bbox is None:
                continue
            self._draw_detection(det)
        return self._surface

    def _draw_detection(self, det: Detection) -> None:
        cfg = self.config
        surface = self._surface
        x, y, w, h = (int(round(v)) for v in det.bbox.as_xywh())

        b, g, r = hsl_to_bgr(hue_for_confidence(det.confidence))
        stroke = (b, g, r, int(round(cfg.stroke_alpha * 255)))
        fill = (b, g, r, int(round(cfg.fill_alpha * 255)))

        cv2.rectangle(surface, (x, y), (x + w, y + h), stroke, cfg.line_width)

        text = label_text(det)
        (text_w, _), _ = cv2.getTextSize(text, FONT, cfg.font_scale, 1)
        bg_x = x - cfg.padding
        bg_y = y - cfg.label_height
        bg_w = text_w + cfg.padding * 2
        cv2.rectangle(surface, (bg_x, bg_y), (bg_x + bg_w - 1, bg_y + cfg.label_height - 1), fill, -1)

        cv2.putText(surface, text, (x, y - cfg.text_offset), FONT, cfg.font_scale, TEXT_COLOR, 1)


def composite(frame: np.ndarray, overlay: Optional[np.ndarray]) -> np.ndarray:
    """Alpha-blend an overlay surface onto a BGR frame, returning a new frame."""
    if overlay is None:
        return frame.copy()
    if overlay.shape[:2] != frame.shape[:2]:
        overlay = cv2.resize(overlay, (frame.shape[1], frame.shape[0]), interpolation=cv2.INTER_NEAREST)

    alpha = overlay[..., 3:4].astype(np.float32) / 255.0
    blended = frame.astype(np.float32) * (1.0 - alpha) + overlay[..., :3].astype(np.float32) * alpha
    return np.clip(blended + 0.5, 0, 255).astype(np.uint8)
