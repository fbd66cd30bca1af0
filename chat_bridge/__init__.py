"""
Chat Bridge - relays chat conversations to a stateful conversational engine.
"""

__version__ = "1.0.0"
