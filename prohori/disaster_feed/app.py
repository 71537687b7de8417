#!/usr/bin/env python3
"""
Prohori Disaster Feed - FastAPI Entrypoint

Builds the HTTP application for the disaster feed. The lifespan starts the
refresh scheduler on startup and drains it on shutdown.

Run with ``prohori-disaster-feed`` or ``python -m prohori.disaster_feed.app``.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from prohori import __version__
from prohori.disaster_feed.config import DisasterFeedConfig, get_config
from prohori.disaster_feed.setup import DisasterFeedService, configure_disaster_feed

logger = logging.getLogger(__name__)


def create_app(
    config: Optional[DisasterFeedConfig] = None,
    service: Optional[DisasterFeedService] = None,
    refresh_interval: Optional[float] = None,
    refresh_view: Optional[str] = None,
) -> FastAPI:
    """Create the FastAPI application with the disaster feed mounted.

    Args:
        config: Configuration; loaded from the environment when None.
        service: Pre-built service (tests inject one with fake stores).
        refresh_interval: Scheduler period; overrides ``refresh_view``.
        refresh_view: Refresh preset (``list``, ``map`` or ``default``);
            defaults to the configured view.
    """
    if service is None:
        service = DisasterFeedService(config=config or get_config())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await service.startup(refresh_interval, refresh_view)
        try:
            yield
        finally:
            await service.shutdown()

    app = FastAPI(
        title="Prohori Disaster Feed",
        description="Aggregated disaster feed and geospatial risk estimates",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    _cors_origins = os.getenv("CORS_ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:5173")
    _allowed_origins = [origin.strip() for origin in _cors_origins.split(",") if origin.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    )

    configure_disaster_feed(app, service=service)
    return app


def main() -> None:
    config = get_config()
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    host = os.getenv("SERVER_HOST", "0.0.0.0")
    port = int(os.getenv("SERVER_PORT", "8000"))

    logger.info("Starting Prohori Disaster Feed on %s:%d", host, port)

    uvicorn.run(
        create_app(config),
        host=host,
        port=port,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
