"""
Chat Bridge - Main Application Entry Point

This module provides the FastAPI application that bridges a chat front-end
to the conversational engine.

The lifespan creates the long-lived objects on app.state:
- http_client: shared httpx.AsyncClient for every engine session
- directory: DirectoryClient for sender profiles (None if not configured)
- registry: SessionRegistry building one EngineClient per session
- bridge_service: BridgeService used by the messages route

On shutdown every live session is expired, pending engine endsession calls
are awaited and the HTTP client is closed.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

import httpx
from fastapi import FastAPI

from chat_bridge.api.routes.health import router as health_router
from chat_bridge.api.routes.messages import router as messages_router
from chat_bridge.clients.directory import DirectoryClient
from chat_bridge.clients.engine import EngineClient
from chat_bridge.clients.http import create_http_client
from chat_bridge.core.config import Settings, get_settings
from chat_bridge.observability.logging import configure_logging
from chat_bridge.observability.metrics import MetricsMiddleware, get_metrics_app
from chat_bridge.services.bridge import BridgeService
from chat_bridge.sessions.registry import SessionRegistry

logger = logging.getLogger(__name__)

APP_NAME = "Chat Bridge"
APP_VERSION = "1.0.0"
APP_DESCRIPTION = "Bridge between a chat front-end and a conversational engine"


def create_app(
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings override (default: get_settings())
        transport: httpx transport override for the outbound client
            (e.g. httpx.MockTransport in tests)

    Returns:
        FastAPI: Configured application
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        # =====================================================================
        # STARTUP
        # =====================================================================
        configure_logging(level=settings.log_level)
        logger.info("%s v%s starting in %s mode", APP_NAME, APP_VERSION, settings.environment)

        http_client = create_http_client(
            connect_timeout_seconds=settings.engine_connect_timeout_seconds,
            response_timeout_seconds=settings.engine_response_timeout_seconds,
            transport=transport,
        )
        directory: Optional[DirectoryClient] = None
        if settings.directory_enabled:
            directory = DirectoryClient(settings, http_client=http_client)
        else:
            logger.info("Directory lookup is not configured, profile attributes are not sent")

        registry = SessionRegistry(
            client_factory=lambda: EngineClient(settings, http_client),
            ttl_seconds=settings.session_timeout_seconds,
            max_sessions=settings.max_parallel_sessions,
        )

        app.state.settings = settings
        app.state.http_client = http_client
        app.state.directory = directory
        app.state.registry = registry
        app.state.bridge_service = BridgeService(
            registry, directory, explicit_data=settings.explicit_data
        )

        yield

        # =====================================================================
        # SHUTDOWN
        # =====================================================================
        logger.info("%s shutting down", APP_NAME)
        await registry.shutdown()
        await http_client.aclose()
        app.state.bridge_service = None
        app.state.registry = None

    app = FastAPI(
        title=APP_NAME,
        description=APP_DESCRIPTION,
        version=APP_VERSION,
        docs_url="/docs" if settings.environment != "production" else None,
        redoc_url="/redoc" if settings.environment != "production" else None,
        lifespan=lifespan,
    )

    app.add_middleware(MetricsMiddleware)
    app.mount("/metrics", get_metrics_app())

    app.include_router(health_router)
    app.include_router(messages_router)

    @app.get("/", tags=["Info"])
    async def root() -> dict[str, Any]:
        """Root endpoint returning basic service information."""
        return {
            "service": APP_NAME,
            "version": APP_VERSION,
            "docs": "/docs" if settings.environment != "production" else "disabled",
        }

    return app


app = create_app()
