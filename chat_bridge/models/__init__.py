"""
Models Package - chat activities and engine replies.
"""

from chat_bridge.models.activity import (
    ADAPTIVE_CARD_CONTENT_TYPE,
    ActivitiesResponse,
    Attachment,
    ChannelAccount,
    InboundTurn,
    OutboundMessage,
)
from chat_bridge.models.reply import (
    ParsedReply,
    ReplyOutput,
    ReplyStatus,
    ResponseParser,
    json_type,
)

__all__ = [
    "ADAPTIVE_CARD_CONTENT_TYPE",
    "ActivitiesResponse",
    "Attachment",
    "ChannelAccount",
    "InboundTurn",
    "OutboundMessage",
    "ParsedReply",
    "ReplyOutput",
    "ReplyStatus",
    "ResponseParser",
    "json_type",
]
