"""
Engine reply models and parser.

The engine answers a turn with a JSON object:

    {"status": 0, "output": {"text": "...", "parameters": {...}}}   success
    {"status": -1, "message": "..."}                                  engine error

ResponseParser.parse() turns the decoded object into a ParsedReply. It never
raises: every shape problem becomes a failed ReplyStatus whose message names
the offending property, its actual JSON type and the expected one. Parsing
stops at the first problem.
"""

import json
import logging
from typing import Any, Optional

from pydantic import BaseModel, Field

from chat_bridge.core.exceptions import ProtocolError

logger = logging.getLogger(__name__)


# =============================================================================
# JSON Type Names
# =============================================================================

OBJECT = "OBJECT"
ARRAY = "ARRAY"
STRING = "STRING"
NUMBER = "NUMBER"
BOOLEAN = "BOOLEAN"
NULL = "NULL"


def json_type(value: Any) -> str:
    """Name of the JSON type of a decoded value."""
    if value is None:
        return NULL
    if isinstance(value, bool):
        return BOOLEAN
    if isinstance(value, (int, float)):
        return NUMBER
    if isinstance(value, str):
        return STRING
    if isinstance(value, (list, tuple)):
        return ARRAY
    if isinstance(value, dict):
        return OBJECT
    return type(value).__name__.upper()


# =============================================================================
# Reply Models
# =============================================================================


class ReplyStatus(BaseModel):
    """
    Outcome of parsing an engine reply.

    Attributes:
        failed: True if the reply cannot be rendered as a normal answer.
        backend_error: True if the error message was produced by the engine
            (status -1) and may be shown to the user verbatim.
        error_message: Description of the failure.
    """

    failed: bool = False
    backend_error: bool = False
    error_message: Optional[str] = None

    model_config = {"frozen": True}


class ReplyOutput(BaseModel):
    """
    The answer part of a successful engine reply.

    Attributes:
        text: Answer text.
        card_json: Adaptive card JSON text (parameters.msbotframework).
        segment_indexes: JSON text of [start, end] pairs splitting the text
            into separate bubbles (parameters.outputTextSegmentIndexes).
    """

    text: str
    card_json: Optional[str] = None
    segment_indexes: Optional[str] = None

    model_config = {"frozen": True}

    def segments(self) -> list[str]:
        """
        Split the text into bubbles.

        Returns the whole text as one segment when no indexes are present or
        the indexes are malformed (the latter is logged).
        """
        if self.segment_indexes is None:
            return [self.text]
        try:
            pairs = json.loads(self.segment_indexes)
            if not isinstance(pairs, list):
                raise ValueError(f"expected an array, got {json_type(pairs)}")
            segments = []
            for pair in pairs:
                start, end = _index_pair(pair, len(self.text))
                segments.append(self.text[start:end])
        except ValueError as e:
            logger.error(
                "Failure parsing outputTextSegmentIndexes %s: %s", self.segment_indexes, e
            )
            return [self.text]
        return segments


def _index_pair(pair: Any, length: int) -> tuple[int, int]:
    if not isinstance(pair, list) or len(pair) < 2:
        raise ValueError(f"segment index {pair!r} is not a [start, end] pair")
    start, end = pair[0], pair[1]
    if isinstance(start, bool) or isinstance(end, bool):
        raise ValueError(f"segment index {pair!r} is not numeric")
    if not isinstance(start, int) or not isinstance(end, int):
        raise ValueError(f"segment index {pair!r} is not numeric")
    if not 0 <= start <= end <= length:
        raise ValueError(f"segment index {pair!r} is out of range for text of length {length}")
    return start, end


class ParsedReply(BaseModel):
    """
    An engine reply after parsing.

    Attributes:
        document: The decoded JSON object as received.
        status: Parse outcome.
        output: The answer, present only if status.failed is False.
    """

    document: dict[str, Any] = Field(default_factory=dict)
    status: ReplyStatus = Field(default_factory=ReplyStatus)
    output: Optional[ReplyOutput] = None

    model_config = {"frozen": True}

    def error(self) -> Optional[ProtocolError]:
        """
        The parse failure as a ProtocolError, or None for a usable reply.

        Errors reported by the engine itself (status -1) have
        backend_origin set.
        """
        if not self.status.failed:
            return None
        return ProtocolError(
            self.status.error_message or "Unknown engine response error",
            backend_origin=self.status.backend_error,
        )


# =============================================================================
# ResponseParser
# =============================================================================


class _ShapeError(Exception):
    """Internal signal carrying a parse failure message."""


class ResponseParser:
    """
    Parser for decoded engine replies.

    Example:
        >>> reply = ResponseParser.parse({"status": 0, "output": {"text": "hi there"}})
        >>> reply.output.segments()
        ['hi there']
    """

    @staticmethod
    def parse(document: Any) -> ParsedReply:
        """
        Parse a decoded engine reply.

        Args:
            document: The decoded JSON body (normally a dict).

        Returns:
            ParsedReply; never raises.
        """
        if not isinstance(document, dict):
            return ParsedReply(
                status=ReplyStatus(
                    failed=True,
                    error_message=f"Engine response is of type {json_type(document)}, should be {OBJECT}",
                ),
            )

        try:
            status = _required(document, "status", NUMBER)
            if status == 0:
                return ParsedReply(document=document, output=_parse_output(document))
            if status == -1:
                message = _required(document, "message", STRING)
                return ParsedReply(
                    document=document,
                    status=ReplyStatus(failed=True, backend_error=True, error_message=message),
                )
            raise _ShapeError(
                "Engine response has an unexpected value of the [status] property "
                f"for a regular request: {status}"
            )
        except _ShapeError as e:
            return ParsedReply(
                document=document,
                status=ReplyStatus(failed=True, error_message=str(e)),
            )


def _parse_output(document: dict[str, Any]) -> ReplyOutput:
    output = _required(document, "output", OBJECT)
    text = _required(output, "text", STRING)
    parameters = _optional(output, "parameters", OBJECT)
    card_json = None
    segment_indexes = None
    if parameters is not None:
        card_json = _optional(parameters, "msbotframework", STRING)
        segment_indexes = _optional(parameters, "outputTextSegmentIndexes", STRING)
    return ReplyOutput(text=text, card_json=card_json, segment_indexes=segment_indexes)


def _required(parent: dict[str, Any], name: str, expected: str) -> Any:
    if name not in parent:
        raise _ShapeError(f"Engine response has no [{name}] property")
    return _checked(parent[name], name, expected)


def _optional(parent: dict[str, Any], name: str, expected: str) -> Any:
    if name not in parent:
        return None
    return _checked(parent[name], name, expected)


def _checked(value: Any, name: str, expected: str) -> Any:
    actual = json_type(value)
    if actual != expected:
        raise _ShapeError(f"Engine response has [{name}] of type {actual}, should be {expected}")
    return value
