"""
Page routes for the vision dashboard.

A single server-rendered page; live updates arrive over /api/stats/stream.
"""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from ..services.stats_service import StatsService
from ..state import state

router = APIRouter()
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parents[1] / "templates"))

TITLE = "Advanced AI Vision Analytics"
CHART_COLORS = ["#00FFFF", "#FF00FF", "#FFFF00", "#00FF00", "#FF0000", "#0000FF", "#FFA500", "#800080"]


def _stream_fps() -> int:
    runtime = state.runtime
    if runtime is None:
        return 15
    return runtime.ctx.config.web.stream_fps


@router.get("/", response_class=HTMLResponse)
def dashboard(request: Request):
    """Dashboard page: loading, error or the live dashboard depending on status."""
    stats = StatsService(snapshot=state.get_snapshot()).get_summary()
    return templates.TemplateResponse(
        request,
        "dashboard.html",
        {
            "title": TITLE,
            "status": state.get_status(),
            "stats": stats,
            "colors": CHART_COLORS,
            "stream_fps": _stream_fps(),
        },
    )
