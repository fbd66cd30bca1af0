"""
Messages Router - chat front-end endpoint.

POST /api/messages accepts one activity and answers with the activities to
send back. Only "message" activities are relayed to the engine; other
activity types (conversation updates, typing) are acknowledged with an
empty list.
"""

import logging
import uuid

from fastapi import APIRouter, Depends

from chat_bridge.api.deps import get_bridge_service
from chat_bridge.models.activity import ActivitiesResponse, InboundTurn
from chat_bridge.observability.logging import correlation_id_context
from chat_bridge.services.bridge import BridgeService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Messages"])


@router.post("/messages", response_model=ActivitiesResponse, response_model_exclude_none=True)
async def post_message(
    turn: InboundTurn,
    service: BridgeService = Depends(get_bridge_service),
) -> ActivitiesResponse:
    """
    Relay one chat activity to the engine.

    Args:
        turn: The inbound activity
        service: Injected bridge service

    Returns:
        ActivitiesResponse: Messages to show to the user
    """
    if turn.type != "message":
        logger.debug("Ignoring activity of type %s", turn.type)
        return ActivitiesResponse()

    with correlation_id_context(turn.id or uuid.uuid4().hex):
        messages = await service.handle_turn(turn)
    return ActivitiesResponse(activities=messages)
