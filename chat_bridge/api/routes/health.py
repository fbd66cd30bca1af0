"""
Liveness and readiness probes.

/health answers as long as the process serves requests. /health/ready
answers 200 only while the bridge can open another conversation: the
registry exists and still has a free slot.
"""

import logging
import os
from typing import Optional

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from chat_bridge.api.deps import get_registry
from chat_bridge.sessions.registry import SessionRegistry

logger = logging.getLogger(__name__)

APP_VERSION = os.getenv("CHAT_BRIDGE_VERSION", "1.0.0")


class HealthResponse(BaseModel):
    status: str
    version: str


class ReadinessResponse(BaseModel):
    """Readiness verdict with the registry's current load."""

    status: str
    checks: dict[str, bool]
    active_sessions: int = 0
    max_sessions: int = 0


router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    return HealthResponse(status="healthy", version=APP_VERSION)


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check(
    response: Response,
    registry: Optional[SessionRegistry] = Depends(get_registry),
) -> ReadinessResponse:
    """503 until startup has built the registry, and again whenever it is full."""
    if registry is None:
        response.status_code = 503
        return ReadinessResponse(status="not_ready", checks={"registry": False, "capacity": False})

    in_use, limit = registry.size(), registry.max_sessions
    has_room = in_use < limit
    if not has_room:
        logger.warning("Not ready: %d of %d sessions in use", in_use, limit)
        response.status_code = 503

    return ReadinessResponse(
        status="ready" if has_room else "not_ready",
        checks={"registry": True, "capacity": has_room},
        active_sessions=in_use,
        max_sessions=limit,
    )
