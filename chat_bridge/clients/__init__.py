"""
Clients Package - outbound HTTP clients.

Components:
- http: shared httpx.AsyncClient factory
- cookie_auth: httpx Auth flow backed by a session CookieJar
- engine: session-affine conversational engine client
- directory: user profile lookup
"""

from chat_bridge.clients.cookie_auth import CookieJarAuth
from chat_bridge.clients.directory import (
    DirectoryClient,
    ProfileAttribute,
    parse_profile_attributes,
    profile_params,
)
from chat_bridge.clients.engine import EngineClient, encode_params
from chat_bridge.clients.http import create_http_client

__all__ = [
    "CookieJarAuth",
    "DirectoryClient",
    "EngineClient",
    "ProfileAttribute",
    "create_http_client",
    "encode_params",
    "parse_profile_attributes",
    "profile_params",
]
