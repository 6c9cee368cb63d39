"""
Main FastAPI application.
"""

import asyncio
import logging
import random
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response, status
from fastapi.middleware.cors import CORSMiddleware

from flood_mitigation.api.v1.api import api_router
from flood_mitigation.core.config import settings
from flood_mitigation.core.constants import API_DESCRIPTION
from flood_mitigation.core.logging_config import setup_logging
from flood_mitigation.core.middleware import (
    ErrorHandlingMiddleware,
    LoggingMiddleware,
    register_exception_handlers,
)
from flood_mitigation.services.alert_evaluator import AlertEvaluator
from flood_mitigation.services.dashboard_consumer import DashboardConsumer
from flood_mitigation.services.mqtt_client import MQTTClient, make_client_id
from flood_mitigation.services.notification_service import TelegramNotifier
from flood_mitigation.services.publisher import SimulationRunner
from flood_mitigation.simulation.profiles import get_profile

setup_logging()

logger = logging.getLogger(__name__)


def _start_simulator(app: FastAPI) -> None:
    profile = get_profile(settings.deployment_profile)
    client = MQTTClient(client_id=make_client_id(settings.mqtt_client_prefix))
    client.connect()

    runner = SimulationRunner(
        client,
        profile,
        mode=settings.scenario,
        rng=random.Random(settings.simulation_seed),
        device_id=client.client_id,
    )
    runner.start()

    app.state.simulator_client = client
    app.state.runner = runner


def _start_consumer(app: FastAPI) -> None:
    evaluator = None
    if settings.alert_telegram_chat_id:
        evaluator = AlertEvaluator(
            TelegramNotifier(),
            settings.alert_telegram_chat_id,
            cooldown_minutes=settings.alert_cooldown_minutes,
            critical_only=settings.critical_alert_only,
        )
        logger.info(
            f"Automatic alerts enabled (cooldown {settings.alert_cooldown_minutes} min)"
        )

    consumer = DashboardConsumer(alert_evaluator=evaluator)
    client = MQTTClient(client_id=make_client_id("dashboard"))
    client.subscribe(
        consumer.topics, consumer.handle_message, loop=asyncio.get_running_loop()
    )
    client.connect()

    app.state.consumer_client = client
    app.state.consumer = consumer
    app.state.alert_evaluator = evaluator


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    logger.info("Starting Flood Mitigation Monitor API...")
    app.state.runner = None
    app.state.consumer = None
    app.state.alert_evaluator = None
    app.state.simulator_client = None
    app.state.consumer_client = None

    if settings.consumer_enabled:
        _start_consumer(app)
    if settings.simulator_enabled:
        _start_simulator(app)

    app.state.startup_complete = True
    logger.info("Application is now fully healthy and ready.")

    yield

    logger.info("Shutting down Flood Mitigation Monitor API...")
    if app.state.runner is not None:
        await app.state.runner.stop()
    for client in (app.state.simulator_client, app.state.consumer_client):
        if client is not None:
            client.disconnect()


app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    description=API_DESCRIPTION,
    openapi_url=f"{settings.api_prefix}/openapi.json",
    docs_url=f"{settings.api_prefix}/docs",
    redoc_url=f"{settings.api_prefix}/redoc",
    lifespan=lifespan,
)


@app.get("/health", tags=["General"])
async def health_check(response: Response):
    """
    ## Health Check

    Returns:
    - **200 OK**: Service is up.
    - **503 Service Unavailable**: Service is still initializing.
    """
    if not getattr(app.state, "startup_complete", False):
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return {
            "status": "initializing",
            "app_name": settings.app_name,
            "timestamp": time.time(),
        }

    return {
        "status": "healthy",
        "app_name": settings.app_name,
        "version": settings.version,
        "simulator": app.state.runner is not None,
        "consumer": app.state.consumer is not None,
        "timestamp": time.time(),
    }


@app.get("/", tags=["General"])
async def root():
    """
    ## Welcome to the Flood Mitigation Monitor API
    """
    return {
        "message": settings.app_name,
        "version": settings.version,
        "status": "running",
        "documentation": {
            "swagger_ui": f"{settings.api_prefix}/docs",
            "redoc": f"{settings.api_prefix}/redoc",
            "openapi_json": f"{settings.api_prefix}/openapi.json",
        },
        "endpoints": {
            "dashboard": f"{settings.api_prefix}/dashboard/",
            "simulation": f"{settings.api_prefix}/simulation/",
            "notifications": f"{settings.api_prefix}/notifications/",
            "alerts": f"{settings.api_prefix}/alerts/",
            "health": "/health",
        },
    }


# Middleware Stack (Executed Top to Bottom)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(ErrorHandlingMiddleware)
app.add_middleware(LoggingMiddleware)
register_exception_handlers(app)

app.include_router(api_router, prefix=settings.api_prefix)


def run():
    import uvicorn

    uvicorn.run(
        "flood_mitigation.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
