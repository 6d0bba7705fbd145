# Rentaly API - Car Rental Marketplace Backend
# Copyright (C) 2025 Rentaly Authors
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU Affero General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU Affero General Public License for more details.
#
# You should have received a copy of the GNU Affero General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

"""Main FastAPI application entry point."""

import logging
import os
import time
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from rentaly import __version__
from rentaly.config import configure_logging, get_settings, init_settings
from rentaly.database import init_database
from rentaly.routes import api_router
from rentaly.services.scheduler import start_scheduler, stop_scheduler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    settings = init_settings(os.environ.get("RENTALY_CONFIG"))
    configure_logging(settings)
    logger.info("Starting Rentaly API v%s (%s)", __version__, settings.app.environment)

    Path(settings.uploads.directory, "cars").mkdir(parents=True, exist_ok=True)
    init_database()

    if settings.scheduler.enabled:
        start_scheduler()
        logger.info("Scheduler started")

    yield

    # Shutdown
    stop_scheduler()
    logger.info("Scheduler stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Rentaly API",
        description="Car rental marketplace backend",
        version=__version__,
        license_info={
            "name": "AGPL-3.0-or-later",
            "url": "https://www.gnu.org/licenses/agpl-3.0.html",
        },
        docs_url="/api-docs",
        lifespan=lifespan,
    )

    # CORS middleware
    origins = ["*"] if settings.app.debug else [settings.app.frontend_url, "http://localhost:5173"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=not settings.app.debug,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s %d %.1fms",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        return response

    # Include API routes
    app.include_router(api_router)

    # Uploaded images
    app.mount(
        "/uploads",
        StaticFiles(directory=settings.uploads.directory, check_dir=False),
        name="uploads",
    )

    @app.exception_handler(StarletteHTTPException)
    async def not_found_handler(request: Request, exc: StarletteHTTPException):
        """JSON body for unknown routes; other HTTP errors keep the default shape."""
        if exc.status_code == 404 and exc.detail == "Not Found":
            return JSONResponse(
                status_code=404,
                content={"success": False, "error": "Route not found", "path": request.url.path},
            )
        return await http_exception_handler(request, exc)

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle uncaught exceptions."""
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        if get_settings().expose_errors:
            return JSONResponse(
                status_code=500,
                content={"detail": str(exc), "type": type(exc).__name__},
            )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    # Health check endpoint
    @app.get("/api/health", tags=["Health"])
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "OK",
            "message": f"{get_settings().app.name} is running",
            "timestamp": datetime.utcnow().isoformat(),
            "version": __version__,
        }

    return app


# Create the app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "rentaly.main:app",
        host=settings.app.host,
        port=settings.app.port,
        reload=settings.app.debug,
    )
