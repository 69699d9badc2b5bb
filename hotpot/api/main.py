"""
Hotpot API - Main Entry Point

FastAPI application that runs the heating controller and exposes its state,
logs, requests and calendars over HTTP.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from hotpot import __version__
from hotpot.api.routes import api_router
from hotpot.config import get_settings
from hotpot.core.controller import Controller
from hotpot.core.exceptions import HotpotError
from hotpot.models.schemas import ControllerConfig
from hotpot.services.notification_service import NotificationService

# Configure logging
settings_instance = get_settings()
logging.basicConfig(
    level=(
        logging.DEBUG
        if settings_instance.debug
        else getattr(logging, settings_instance.log_level.upper(), logging.INFO)
    ),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


# ============================================================================
# Application State
# ============================================================================


class AppState:
    """Centralized application state container."""

    def __init__(self) -> None:
        self.controller: Controller | None = None
        self.notifier: NotificationService | None = None
        self.startup_time: datetime | None = None


app_state = AppState()


# ============================================================================
# Lifespan
# ============================================================================


async def build_controller() -> Controller:
    """Create and initialise the controller described by the configuration file."""

    config = ControllerConfig.from_file(settings_instance.config_file)
    notifier = NotificationService(webhook_url=str(settings_instance.alert_webhook_url) or None)
    app_state.notifier = notifier
    controller = Controller.from_config(
        config,
        simulate=settings_instance.simulate,
        notifier=notifier,
        alarm_after_ms=settings_instance.sensor_alarm_s * 1000,
    )
    return await controller.initialise()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """
    Application lifespan manager for startup and shutdown.
    """
    logger.info("Starting Hotpot %s...", __version__)
    if settings_instance.simulate:
        logger.info("Simulating sensors and pins")

    controller = await build_controller()
    controller.start()
    app_state.controller = controller
    app_state.startup_time = datetime.now(UTC)
    app.state.controller = controller
    logger.info("Hotpot listening on %s:%d", settings_instance.host, settings_instance.port)

    try:
        yield
    finally:
        logger.info("Shutting down Hotpot...")
        await controller.stop()
        app_state.controller = None
        app.state.controller = None


# ============================================================================
# FastAPI Application
# ============================================================================

settings = settings_instance

app = FastAPI(
    title="Hotpot API",
    description="Y-plan central heating and hot water controller.",
    version=__version__,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    openapi_url="/openapi.json" if settings.debug else None,
    lifespan=lifespan,
)

app.include_router(api_router)


# ============================================================================
# Health Check Endpoints
# ============================================================================


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Basic health check."""
    return {
        "status": "healthy",
        "timestamp": datetime.now(UTC).isoformat(),
    }


# ============================================================================
# Exception Handlers
# ============================================================================


@app.exception_handler(HotpotError)
async def hotpot_exception_handler(request: Request, exc: HotpotError) -> JSONResponse:
    """Report controller errors that escaped a route."""
    logger.error("Hotpot error on %s: %s", request.url.path, exc)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": {"code": 500, "type": type(exc).__name__, "message": str(exc)}},
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unexpected exceptions."""
    logger.error("Unhandled exception: %s", exc, exc_info=True)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": 500,
                "message": "An internal error occurred" if not settings.debug else str(exc),
            },
        },
    )


# ============================================================================
# CLI Entry Point
# ============================================================================


def run() -> None:
    import uvicorn

    uvicorn.run(
        "hotpot.api.main:app",
        host=settings.host,
        port=settings.port,
        loop="asyncio",
        reload=settings.debug,
        log_level="debug" if settings.debug else "info",
        access_log=True,
    )


if __name__ == "__main__":
    run()
