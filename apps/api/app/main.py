"""FastAPI application for the watch-together signaling relay."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response
from fastapi.staticfiles import StaticFiles

from .core.config import Settings, settings as default_settings
from .core.logging import setup_logging
from .routers import rooms as rooms_router
from .routers import signaling as signaling_router
from .services.signaling import SignalingHub

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, hub: Optional[SignalingHub] = None) -> FastAPI:
    """Build an application with its own signaling hub."""

    settings = settings or default_settings
    hub = hub or SignalingHub(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        hub.start()
        try:
            yield
        finally:
            await hub.stop()

    app = FastAPI(title="Watch Together Signaling Relay", version="0.1.0", lifespan=lifespan)
    app.state.hub = hub
    app.state.settings = settings

    if settings.cors_allow_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_allow_origins,
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.get("/api/health", tags=["meta"])
    async def health() -> dict[str, str]:
        """Simple liveness probe."""

        return {"status": "ok"}

    @app.head("/api/health", tags=["meta"])
    async def health_head() -> Response:
        """Allow HEAD for uptime monitors that only need the status code."""

        return Response(status_code=200)

    app.include_router(rooms_router.router, prefix="/api", tags=["rooms"])
    app.include_router(signaling_router.router, tags=["signaling"])

    if settings.static_dir:
        static_path = Path(settings.static_dir)
        if static_path.is_dir():
            app.mount("/", StaticFiles(directory=static_path, html=True), name="static")
        else:
            logger.warning("Static directory %s does not exist; front end not served", static_path)

    return app


setup_logging(default_settings.log_level)

app = create_app()
