"""
Cookie value object and Set-Cookie parsing.

A Cookie is identified by (name, domain, path) with name and domain compared
case-insensitively; its value and attributes do not take part in equality.
That identity is what the jar uses to replace, remove and de-duplicate
cookies.
"""

import logging
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from http.cookies import CookieError, Morsel, SimpleCookie
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class Cookie:
    """
    An HTTP cookie as received from the engine.

    Attributes:
        name: Cookie name.
        value: Cookie value.
        domain: Declared Domain attribute, or None for a host-only cookie.
        path: Path attribute, or None.
        secure: Only sent over https when True.
        http_only: HttpOnly attribute.
        version: 0 for Netscape-style cookies, 1 for RFC 2965 cookies.
        max_age: Lifetime in seconds counted from created_at. None means a
            session cookie, 0 means already expired.
        port_list: Port attribute of RFC 2965 cookies.
        comment: Comment attribute.
        created_at: time.monotonic() reading taken at construction.
    """

    name: str
    value: str
    domain: Optional[str] = None
    path: Optional[str] = None
    secure: bool = False
    http_only: bool = False
    version: int = 0
    max_age: Optional[float] = None
    port_list: Optional[str] = None
    comment: Optional[str] = None
    created_at: float = field(default_factory=time.monotonic)

    @property
    def identity(self) -> tuple[str, Optional[str], Optional[str]]:
        """Key used to tell whether two cookies are the same cookie."""
        domain = self.domain.lower() if self.domain is not None else None
        return (self.name.lower(), domain, self.path)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Cookie):
            return NotImplemented
        return self.identity == other.identity

    def __hash__(self) -> int:
        return hash(self.identity)

    def has_expired(self, now: Optional[float] = None) -> bool:
        """Check whether the cookie's max-age has elapsed."""
        if self.max_age is None:
            return False
        if self.max_age <= 0:
            return True
        elapsed = (now if now is not None else time.monotonic()) - self.created_at
        return elapsed > self.max_age

    def max_age_remaining(self, now: Optional[float] = None) -> Optional[float]:
        """Seconds left before expiry, None for session cookies."""
        if self.max_age is None:
            return None
        elapsed = (now if now is not None else time.monotonic()) - self.created_at
        return max(0.0, self.max_age - elapsed)

    def with_defaults(self, domain: Optional[str], path: Optional[str]) -> "Cookie":
        """Return a copy whose missing domain/path are filled in."""
        return replace(
            self,
            domain=self.domain if self.domain is not None else domain,
            path=self.path if self.path is not None else path,
        )

    def header_value(self) -> str:
        """Render the cookie as a name=value pair for a Cookie request header."""
        return f"{self.name}={self.value}"

    def __repr__(self) -> str:
        return (
            f"Cookie(name={self.name!r}, domain={self.domain!r}, path={self.path!r}, "
            f"secure={self.secure}, version={self.version}, max_age={self.max_age})"
        )


# =============================================================================
# Set-Cookie Parsing
# =============================================================================


def _max_age_from_morsel(morsel: Morsel) -> Optional[float]:
    raw_max_age = morsel["max-age"]
    if raw_max_age:
        try:
            return float(int(raw_max_age))
        except ValueError:
            logger.warning("Ignoring malformed Max-Age %r for cookie %s", raw_max_age, morsel.key)

    raw_expires = morsel["expires"]
    if raw_expires:
        try:
            expires = parsedate_to_datetime(raw_expires)
        except (TypeError, ValueError):
            logger.warning("Ignoring malformed Expires %r for cookie %s", raw_expires, morsel.key)
            return None
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        return max(0.0, (expires - datetime.now(timezone.utc)).total_seconds())

    return None


def cookie_from_morsel(morsel: Morsel) -> Cookie:
    """Build a Cookie from a parsed http.cookies Morsel."""
    raw_version = morsel["version"]
    try:
        version = int(raw_version) if raw_version else 0
    except ValueError:
        version = 0

    return Cookie(
        name=morsel.key,
        value=morsel.value,
        domain=morsel["domain"] or None,
        path=morsel["path"] or None,
        secure=bool(morsel["secure"]),
        http_only=bool(morsel["httponly"]),
        version=version,
        max_age=_max_age_from_morsel(morsel),
        comment=morsel["comment"] or None,
    )


def parse_set_cookie(header: str) -> list[Cookie]:
    """
    Parse one Set-Cookie header value.

    Malformed headers are logged and yield an empty list.

    Args:
        header: Raw Set-Cookie header value.

    Returns:
        The cookies the header declares (normally exactly one).
    """
    parsed: SimpleCookie = SimpleCookie()
    try:
        parsed.load(header)
    except CookieError as e:
        logger.warning("Ignoring malformed Set-Cookie header: %s", e)
        return []
    return [cookie_from_morsel(morsel) for morsel in parsed.values()]
