"""Command-line entrypoint that serves the relay with uvicorn."""
from __future__ import annotations

import logging

import uvicorn

from .core.config import settings
from .core.logging import setup_logging

logger = logging.getLogger(__name__)


def main() -> None:
    setup_logging(settings.log_level)
    logger.info("Starting signaling relay on %s:%d (%s)", settings.host, settings.port, settings.app_env)
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        ws_ping_interval=settings.heartbeat_interval_seconds,
        ws_ping_timeout=settings.heartbeat_interval_seconds,
        reload=settings.app_env == "development",
    )


if __name__ == "__main__":
    main()
