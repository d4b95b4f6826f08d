"""
FilePath: "/colloquium/server.py"
Project: Colloquium Bot Framework
Component: HTTP Server
Description: FastAPI application factory. The lifespan builds the bot runtime,
             loads plugins and installs default bots, and tears everything down on exit.
Author: "Colloquium Contributors"
Date created: "19/10/2026"
Version: "1.0.0"
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request

from . import __version__
from .api import bots_router, manuscripts_router, storage_router
from .runtime import BotRuntime
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, runtime: Optional[BotRuntime] = None) -> FastAPI:
    settings = settings or (runtime.settings if runtime else get_settings())

    # ==========================================
    # App Lifecycle
    # ==========================================
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {settings.APP_NAME} in {settings.COLLOQUIUM_ENV} mode...")
        bot_runtime = runtime or BotRuntime(settings)
        await bot_runtime.startup()
        app.state.runtime = bot_runtime

        yield

        logger.info(f"Shutting down {settings.APP_NAME}...")
        await bot_runtime.shutdown()

    app = FastAPI(
        title=settings.APP_NAME,
        version=__version__,
        description="Colloquium - Bot command & plugin framework",
        lifespan=lifespan,
    )

    # ==========================================
    # Include API Routers
    # ==========================================
    app.include_router(bots_router)
    app.include_router(storage_router)
    app.include_router(manuscripts_router)

    # ==========================================
    # Root & Health Endpoints
    # ==========================================
    @app.get("/")
    async def root(request: Request):
        bot_runtime = request.app.state.runtime
        return {
            "system": settings.APP_NAME,
            "status": "running",
            "bots": len(bot_runtime.registry),
            "docs": "/docs",
        }

    @app.get("/health/live")
    async def health_check():
        """Liveness check for Kubernetes/Docker."""
        return {"status": "healthy"}

    return app
