"""
Core module for the chat bridge.

This module contains configuration, exceptions, and shared utilities.
"""

from chat_bridge.core.config import Settings, get_settings
from chat_bridge.core.exceptions import (
    AdmissionRejectedError,
    BridgeError,
    ErrorCode,
    InvalidArgumentError,
    ProtocolError,
    TransportError,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Exceptions
    "ErrorCode",
    "BridgeError",
    "AdmissionRejectedError",
    "TransportError",
    "ProtocolError",
    "InvalidArgumentError",
]
