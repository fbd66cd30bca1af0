"""
Custom exceptions for the chat bridge.

This module provides the exception hierarchy for the bridge. All exceptions
inherit from BridgeError and carry an error code for consistent handling
and logging.

Taxonomy:
- AdmissionRejectedError: session capacity exceeded (user visible)
- TransportError: non-200 status, empty body, network or timeout failure
- ProtocolError: malformed engine reply, or an engine-reported error when
  backend_origin is True
- InvalidArgumentError: a call contract was violated by the caller
"""

from enum import Enum
from typing import Any


# =============================================================================
# Error Codes Enum
# =============================================================================


class ErrorCode(str, Enum):
    """Stable identifiers for bridge failures, as they appear in logs."""

    BRIDGE_ERROR = "BRIDGE_ERROR"
    ADMISSION_REJECTED = "ADMISSION_REJECTED"
    TRANSPORT_ERROR = "TRANSPORT_ERROR"
    PROTOCOL_ERROR = "PROTOCOL_ERROR"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"


# =============================================================================
# Base Exception
# =============================================================================


class BridgeError(Exception):
    """
    Root of the bridge exception hierarchy.

    Extra keyword arguments become attributes of the instance.
    """

    def __init__(
        self,
        message: str,
        error_code: str = ErrorCode.BRIDGE_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code

        for key, value in kwargs.items():
            setattr(self, key, value)


# =============================================================================
# AdmissionRejectedError
# =============================================================================


class AdmissionRejectedError(BridgeError):
    """
    Raised when a new session cannot be admitted because the registry
    already holds the configured maximum of parallel sessions.

    Attributes:
        limit: The configured session capacity.
    """

    def __init__(
        self,
        message: str,
        limit: int | None = None,
        error_code: str = ErrorCode.ADMISSION_REJECTED,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)
        self.limit = limit


# =============================================================================
# TransportError
# =============================================================================


class TransportError(BridgeError):
    """
    The engine could not be reached or answered unusably at the HTTP level:
    non-200 responses, empty bodies, connection failures and
    timeouts. Never retried by the bridge.

    Attributes:
        status_code: HTTP status code of the engine response (if any).
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_code: str = ErrorCode.TRANSPORT_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)
        self.status_code = status_code


# =============================================================================
# ProtocolError
# =============================================================================


class ProtocolError(BridgeError):
    """
    Exception for engine replies that cannot be used.

    A backend-origin protocol error is a legitimate conversational error
    message reported by the engine itself (status -1) and is shown to the
    user verbatim. Any other protocol error is a diagnostic about the shape
    of the reply.

    Attributes:
        backend_origin: True if the message was produced by the engine.
    """

    def __init__(
        self,
        message: str,
        backend_origin: bool = False,
        error_code: str = ErrorCode.PROTOCOL_ERROR,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)
        self.backend_origin = backend_origin


# =============================================================================
# InvalidArgumentError
# =============================================================================


class InvalidArgumentError(BridgeError, ValueError):
    """
    Exception for violated call contracts.

    Also a ValueError.

    Attributes:
        argument: Name of the offending argument.
    """

    def __init__(
        self,
        message: str,
        argument: str | None = None,
        error_code: str = ErrorCode.INVALID_ARGUMENT,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, error_code, **kwargs)
        self.argument = argument
