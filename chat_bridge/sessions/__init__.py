"""
Sessions Package - bridge session lifecycle.

Components:
- timer: one-shot cancellable SessionTimer
- registry: SessionRegistry with TTL expiry and admission control
"""

from chat_bridge.sessions.registry import BridgeSession, SessionIdentity, SessionRegistry
from chat_bridge.sessions.timer import SessionTimer, TimerState

__all__ = [
    "BridgeSession",
    "SessionIdentity",
    "SessionRegistry",
    "SessionTimer",
    "TimerState",
]
