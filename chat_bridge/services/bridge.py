"""
Bridge Service - relays chat turns to the conversational engine.

For each inbound turn the service:
1. acquires the sender's bridge session (or answers with the session-limit
   text when the registry is full);
2. looks up the sender's directory profile;
3. builds the engine parameters and sends them through the session's
   EngineClient;
4. renders the parsed reply as outbound chat messages;
5. ends the engine session if the bridge session expired while the turn
   was in flight.

Pattern: Service Layer (orchestrates registry, directory and engine client)
Pattern: Dependency Injection (registry, directory)
"""

import json
import logging
from typing import Any, Optional

from chat_bridge.clients.directory import DirectoryClient, profile_params
from chat_bridge.core.exceptions import (
    AdmissionRejectedError,
    InvalidArgumentError,
    ProtocolError,
    TransportError,
)
from chat_bridge.models.activity import InboundTurn, OutboundMessage
from chat_bridge.models.reply import ParsedReply, ResponseParser
from chat_bridge.sessions.registry import SessionIdentity, SessionRegistry

logger = logging.getLogger(__name__)

VIEWTYPE = "tieapi"
CHANNEL = "Teams"

SESSION_LIMIT_TEXT = "Session limit for the bridge has been reached"
ENGINE_FAILURE_TEXT = "The engine failed to respond"


class BridgeService:
    """
    Service layer turning chat turns into engine requests and back.

    Args:
        registry: Registry of live bridge sessions.
        directory: Optional directory client for sender profiles.
        explicit_data: Show diagnostic error details to users.

    Example:
        >>> service = BridgeService(registry, directory, explicit_data=False)
        >>> messages = await service.handle_turn(InboundTurn(text="hello"))
    """

    def __init__(
        self,
        registry: SessionRegistry,
        directory: Optional[DirectoryClient] = None,
        explicit_data: bool = False,
    ) -> None:
        self._registry = registry
        self._directory = directory
        self._explicit_data = explicit_data

    @property
    def registry(self) -> SessionRegistry:
        return self._registry

    async def handle_turn(self, turn: InboundTurn) -> list[OutboundMessage]:
        """
        Relay one turn to the engine.

        Args:
            turn: The inbound chat message.

        Returns:
            Messages to send back, possibly none.
        """
        identity = SessionIdentity(turn.sender.aad_object_id, turn.sender.id)
        try:
            session = self._registry.acquire(identity)
        except AdmissionRejectedError:
            return [OutboundMessage.text_message(SESSION_LIMIT_TEXT)]

        profile = await self._lookup_profile(turn.sender.aad_object_id)
        self._log_turn(turn, profile)
        params = self.build_params(turn, profile)

        try:
            document = await session.client.send(params)
        except (TransportError, ProtocolError, InvalidArgumentError) as e:
            logger.error("Engine response failure for session %s: %s", identity, e)
            text = f"Engine response failure: {e}" if self._explicit_data else ENGINE_FAILURE_TEXT
            messages = [OutboundMessage.text_message(text)]
        else:
            messages = self.render_reply(ResponseParser.parse(document))

        if session.expired:
            logger.debug("Session %s expired during the turn, forcing engine endsession", identity)
            self._registry.terminate(session)
        return messages

    # =========================================================================
    # Request Building
    # =========================================================================

    def build_params(self, turn: InboundTurn, profile: dict[str, Any]) -> dict[str, Any]:
        """
        Engine parameters for a turn.

        Fixed markers first, then the user input, the structured values of
        the turn and finally the present profile attributes; later entries
        win on name clashes.
        """
        params: dict[str, Any] = {"viewtype": VIEWTYPE, "channel": CHANNEL}
        if turn.text is not None:
            params["userinput"] = turn.text
        params.update(turn.value_map)
        if self._directory is not None:
            params.update(profile_params(profile, self._directory.attributes))
        return params

    async def _lookup_profile(self, user_id: Optional[str]) -> dict[str, Any]:
        if self._directory is None or not self._directory.enabled:
            return {}
        return await self._directory.get_user(user_id)

    def _log_turn(self, turn: InboundTurn, profile: dict[str, Any]) -> None:
        if self._explicit_data:
            logger.info("New activity: user [%s] sent new request", profile.get("userPrincipalName"))
            logger.info("userinput: [%s], value: [%s]", turn.text, turn.value)
        else:
            logger.info("New activity")

    # =========================================================================
    # Reply Rendering
    # =========================================================================

    def render_reply(self, reply: ParsedReply) -> list[OutboundMessage]:
        """
        Outbound messages for a parsed engine reply.

        Engine-reported errors are shown verbatim. Other parse failures are
        logged and shown only when explicit data is enabled; otherwise the
        user gets the generic failure text.
        """
        error = reply.error()
        if error is not None:
            if error.backend_origin:
                logger.debug("Submitting engine error message to the chat")
                return [OutboundMessage.text_message(error.message)]
            logger.error("%s; response: %s", error.message, reply.document)
            text = error.message if self._explicit_data else ENGINE_FAILURE_TEXT
            return [OutboundMessage.text_message(text)]

        output = reply.output
        messages = [OutboundMessage.text_message(segment) for segment in output.segments()]
        if output.card_json is not None:
            try:
                card = json.loads(output.card_json)
            except ValueError as e:
                logger.error("Failure parsing adaptive card JSON: %s", e)
            else:
                messages.append(OutboundMessage.card_message(card))
        return messages
