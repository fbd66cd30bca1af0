"""
Services Package - business logic layer.
"""

from chat_bridge.services.bridge import BridgeService

__all__ = ["BridgeService"]
