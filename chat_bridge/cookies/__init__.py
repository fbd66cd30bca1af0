"""
Cookies Package - per-session cookie storage for engine affinity.

Components:
- model: Cookie value object and Set-Cookie parsing
- matching: Netscape and RFC 2965 domain matching, origin reduction
- jar: CookieJar with URI- and domain-scoped indices
"""

from chat_bridge.cookies.jar import CookieJar
from chat_bridge.cookies.matching import (
    domain_matches,
    effective_origin,
    netscape_domain_matches,
    rfc_domain_matches,
)
from chat_bridge.cookies.model import Cookie, parse_set_cookie

__all__ = [
    "Cookie",
    "CookieJar",
    "parse_set_cookie",
    "domain_matches",
    "effective_origin",
    "netscape_domain_matches",
    "rfc_domain_matches",
]
