"""
FastAPI application factory for the vision dashboard.

Routes:
- / -> Jinja2 dashboard page
- /api/* -> status, stats (JSON and server-sent events), live MJPEG, overlay PNG, health
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from runtime.services import cancel_startup

from .routes import api, pages
from .state import state


def create_app(runtime=None) -> FastAPI:
    """
    Create the FastAPI app and wire routes.

    When a runtime is given, its startup runs as a background task in the
    server's event loop so the page can show "loading" while models download;
    it is stopped again on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        startup: Optional[asyncio.Task] = None
        if runtime is not None:
            state.set_runtime(runtime)
            startup = asyncio.create_task(runtime.start(), name="runtime-startup")
            logging.info("Vision dashboard runtime starting")
        try:
            yield
        finally:
            if runtime is not None:
                await cancel_startup(startup)
                await runtime.stop()

    app = FastAPI(
        title="Vision Dashboard",
        version="0.1.0",
        description="Real-time object detection and classification dashboard",
        lifespan=lifespan,
    )

    app.include_router(api.router, prefix="/api")
    app.include_router(pages.router)
    return app
