"""
API Dependencies

FastAPI dependency functions for the API layer. The long-lived objects are
created by the application lifespan and stored on app.state; these
functions hand them to route handlers and can be replaced in tests through
app.dependency_overrides.
"""

from typing import Optional

from fastapi import HTTPException, Request

from chat_bridge.core.config import Settings, get_settings as _get_settings
from chat_bridge.services.bridge import BridgeService
from chat_bridge.sessions.registry import SessionRegistry


def get_settings() -> Settings:
    """Application settings (cached singleton from core.config)."""
    return _get_settings()


def get_registry(request: Request) -> Optional[SessionRegistry]:
    """The session registry, or None before startup has completed."""
    return getattr(request.app.state, "registry", None)


def get_bridge_service(request: Request) -> BridgeService:
    """
    The bridge service created at startup.

    Raises:
        HTTPException: 503 if the application has not finished starting.
    """
    service = getattr(request.app.state, "bridge_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Bridge service is not initialized")
    return service
