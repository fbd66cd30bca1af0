"""
Chat activity models.

Pydantic models for the chat front-end messages the bridge receives and
sends. Field aliases follow the front-end's camelCase JSON; Python code uses
the snake_case names.
"""

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

ADAPTIVE_CARD_CONTENT_TYPE = "application/vnd.microsoft.card.adaptive"


# =============================================================================
# Inbound
# =============================================================================


class ChannelAccount(BaseModel):
    """
    Sender of an activity.

    Attributes:
        id: Channel-specific id of the sender.
        aad_object_id: Directory object id of the sender.
        name: Display name.
    """

    id: Optional[str] = None
    aad_object_id: Optional[str] = Field(default=None, alias="aadObjectId")
    name: Optional[str] = None

    model_config = {"populate_by_name": True}


class InboundTurn(BaseModel):
    """
    One user message received from the chat front-end.

    Attributes:
        type: Activity type; only "message" activities are relayed.
        id: Activity id, used as the log correlation id.
        text: Free text typed by the user.
        value: Structured values (e.g. adaptive card submissions).
        sender: The sender account (JSON "from").
    """

    type: str = "message"
    id: Optional[str] = None
    text: Optional[str] = None
    value: Optional[Any] = None
    sender: ChannelAccount = Field(default_factory=ChannelAccount, alias="from")

    model_config = {"populate_by_name": True}

    @property
    def value_map(self) -> dict[str, Any]:
        """The value payload when it is a JSON object, else empty."""
        if isinstance(self.value, dict):
            return self.value
        return {}


# =============================================================================
# Outbound
# =============================================================================


class Attachment(BaseModel):
    """Rich attachment of an outbound message."""

    content_type: str = Field(..., alias="contentType")
    content: Any = None

    model_config = {"populate_by_name": True}


class OutboundMessage(BaseModel):
    """
    One message bubble sent back to the chat front-end.

    Example:
        >>> OutboundMessage.text_message("hi there").model_dump(by_alias=True, exclude_none=True)
        {'type': 'message', 'text': 'hi there', 'attachments': []}
    """

    type: Literal["message"] = "message"
    text: Optional[str] = None
    attachments: list[Attachment] = Field(default_factory=list)

    @classmethod
    def text_message(cls, text: str) -> "OutboundMessage":
        return cls(text=text)

    @classmethod
    def card_message(cls, card: Any) -> "OutboundMessage":
        return cls(attachments=[Attachment(content_type=ADAPTIVE_CARD_CONTENT_TYPE, content=card)])


class ActivitiesResponse(BaseModel):
    """Response body of POST /api/messages."""

    activities: list[OutboundMessage] = Field(default_factory=list)
