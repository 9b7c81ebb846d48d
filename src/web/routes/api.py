from __future__ import annotations

import asyncio
import json
import logging
import time
from typing import Optional

import cv2
from fastapi import APIRouter, HTTPException
from fastapi.responses import Response, StreamingResponse

from ..api_models import StatsResponse, StatusResponse
from ..services.health_service import HealthService
from ..services.stats_service import StatsService
from ..state import state

router = APIRouter()

KEEPALIVE_INTERVAL_S = 15.0


def _stats_payload() -> dict:
    return StatsService(snapshot=state.get_snapshot()).get_summary()


def _status_payload() -> dict:
    payload = dict(state.get_status())
    payload["last_frame_age_s"] = state.last_frame_age()
    return payload


def _sse_event(event: str, data: dict) -> str:
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"


@router.get("/status", response_model=StatusResponse)
def status():
    """
    Loader, camera and loop state.
    - state: loading|error|ready (drives the full-screen views)
    - message: error text when state is error
    - phase: startup phase of the runtime
    """
    return _status_payload()


@router.get("/stats", response_model=StatsResponse)
def stats():
    """Latest aggregate snapshot formatted for the charts."""
    return _stats_payload()


async def stats_events(since_version: Optional[int] = None, keepalive_s: float = KEEPALIVE_INTERVAL_S):
    """
    Yield one server-sent event per published change.

    The first event carries the current state; a comment line is sent when
    nothing changed within `keepalive_s` so proxies keep the connection.
    """
    version = state.version if since_version is None else since_version
    yield _sse_event("status", _status_payload())
    yield _sse_event("stats", _stats_payload())
    while True:
        try:
            version = await state.wait_for_change(version, timeout=keepalive_s)
        except asyncio.TimeoutError:
            yield ": keep-alive\n\n"
            continue
        yield _sse_event("status", _status_payload())
        yield _sse_event("stats", _stats_payload())


@router.get("/stats/stream")
async def stats_stream():
    return StreamingResponse(
        stats_events(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-store", "X-Accel-Buffering": "no"},
    )


@router.get("/camera/live.mjpg")
def camera_live(fps: int = 15):
    """MJPEG of the latest camera frame with the detection overlay blended on top."""
    fps = max(1, min(int(fps), 30))
    interval = 1.0 / fps

    def gen():
        while True:
            frame = state.get_composite_frame()
            if frame is None:
                time.sleep(0.1)
                continue
            ok, buf = cv2.imencode(".jpg", frame)
            if not ok:
                logging.warning("MJPEG encode failed")
                time.sleep(interval)
                continue
            yield (
                b"--frame\r\n"
                b"Content-Type: image/jpeg\r\n\r\n" + buf.tobytes() + b"\r\n"
            )
            time.sleep(interval)

    return StreamingResponse(
        gen(),
        media_type="multipart/x-mixed-replace; boundary=frame",
        headers={"Cache-Control": "no-store"},
    )


@router.get("/overlay.png")
def overlay_png():
    """Transparent overlay surface of the latest cycle."""
    overlay = state.get_overlay()
    if overlay is None:
        raise HTTPException(status_code=503, detail="No overlay rendered yet")
    ok, buf = cv2.imencode(".png", overlay)
    if not ok:
        raise HTTPException(status_code=500, detail="Overlay encode failed")
    return Response(content=buf.tobytes(), media_type="image/png", headers={"Cache-Control": "no-store"})


@router.get("/health")
def health():
    runtime = state.runtime
    cfg = runtime.ctx.config.to_dict() if runtime is not None else {}
    return HealthService(cfg=cfg).get_health_summary()
