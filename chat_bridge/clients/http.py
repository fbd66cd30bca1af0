"""
The shared httpx.AsyncClient.

One pooled client serves every engine session and the directory lookup.
It never stores cookies itself: its jar has a policy that accepts no
domain, and each engine session brings its own cookies through
CookieJarAuth.
"""

from http.cookiejar import CookieJar as _StdlibCookieJar
from http.cookiejar import DefaultCookiePolicy
from typing import Optional

import httpx


DEFAULT_CONNECT_TIMEOUT_SECONDS: float = 5.0
"""Time allowed to open a connection."""

DEFAULT_RESPONSE_TIMEOUT_SECONDS: float = 30.0
"""Time allowed to read, write, or wait for a pooled connection."""

POOL_LIMITS = httpx.Limits(max_connections=100, max_keepalive_connections=20)

USER_AGENT: str = "chat-bridge/1.0"


def create_http_client(
    connect_timeout_seconds: Optional[float] = None,
    response_timeout_seconds: Optional[float] = None,
    headers: Optional[dict[str, str]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """
    Build the pooled client shared by all engine sessions.

    Args:
        connect_timeout_seconds: Connect timeout (default 5s)
        response_timeout_seconds: Read, write and pool timeout (default 30s)
        headers: Sent on every request in addition to User-Agent and Accept
        transport: Replaces the pooled transport, e.g. httpx.MockTransport

    Example:
        >>> async with create_http_client(response_timeout_seconds=10) as client:
        ...     response = await client.post(url, content=body)
    """
    if connect_timeout_seconds is None:
        connect_timeout_seconds = DEFAULT_CONNECT_TIMEOUT_SECONDS
    if response_timeout_seconds is None:
        response_timeout_seconds = DEFAULT_RESPONSE_TIMEOUT_SECONDS

    return httpx.AsyncClient(
        timeout=httpx.Timeout(response_timeout_seconds, connect=connect_timeout_seconds),
        headers={"User-Agent": USER_AGENT, "Accept": "application/json", **(headers or {})},
        transport=transport or httpx.AsyncHTTPTransport(limits=POOL_LIMITS),
        follow_redirects=True,
        # Accepts no domain, so the client-level jar stays empty
        cookies=_StdlibCookieJar(policy=DefaultCookiePolicy(allowed_domains=[])),
    )
