"""
API Routes Package.

Routers:
- health: liveness and readiness probes
- messages: chat front-end message endpoint
"""

from chat_bridge.api.routes.health import router as health_router
from chat_bridge.api.routes.messages import router as messages_router

__all__ = ["health_router", "messages_router"]
