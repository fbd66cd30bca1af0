"""
In-memory cookie jar for one engine session.

Cookies are kept in two indices:
- a URI index mapping an effective origin ("http://<host>") to the cookies
  received from that origin;
- a domain index holding every cookie that declared a Domain attribute.

A cookie added with both a URI and a domain is stored once, as an entry
referenced from both indices. The entry carries a generated link id so that
removing it through one index also removes the image in the other index
when, and only when, both images came from the same add() call.

Expired cookies are never returned; they are purged from whichever index a
read touches, and URI buckets are dropped once empty.
"""

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

from chat_bridge.cookies.matching import (
    domain_matches,
    effective_origin,
    is_secure_uri,
    uri_host,
)
from chat_bridge.cookies.model import Cookie
from chat_bridge.core.exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class _Entry:
    """A stored cookie image; the same instance may sit in both indices."""

    cookie: Cookie
    link_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def __repr__(self) -> str:
        return f"{self.cookie!r}#{self.link_id[:8]}"


def _find_last(entries: list[_Entry], cookie: Cookie) -> int:
    for index in range(len(entries) - 1, -1, -1):
        if entries[index].cookie == cookie:
            return index
    return -1


def _add_replace(entries: list[_Entry], entry: _Entry) -> None:
    index = _find_last(entries, entry.cookie)
    if index == -1:
        entries.append(entry)
    else:
        entries[index] = entry


def _remove_cookie(entries: list[_Entry], cookie: Cookie) -> Optional[_Entry]:
    index = _find_last(entries, cookie)
    if index == -1:
        return None
    return entries.pop(index)


def _remove_link(entries: list[_Entry], link_id: str) -> bool:
    for index in range(len(entries) - 1, -1, -1):
        if entries[index].link_id == link_id:
            del entries[index]
            return True
    return False


class CookieJar:
    """
    Thread-safe cookie store with URI- and domain-scoped indices.

    Example:
        >>> jar = CookieJar()
        >>> jar.add("https://engine.example.com/bot", Cookie("JSESSIONID", "abc"))
        >>> [c.value for c in jar.get("https://engine.example.com/other")]
        ['abc']
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._uri_index: dict[str, list[_Entry]] = {}
        self._domain_index: list[_Entry] = []

    # =========================================================================
    # Writes
    # =========================================================================

    def add(self, uri: Optional[str], cookie: Cookie) -> None:
        """
        Store a cookie, or delete it if it has already expired.

        Args:
            uri: URI the cookie was received from, or None for a cookie
                that is only domain-scoped.
            cookie: The cookie to store.

        Raises:
            InvalidArgumentError: If cookie is None, or if uri is None and
                the cookie declares no domain (it could never be found).
        """
        if cookie is None:
            raise InvalidArgumentError("cookie must not be None", argument="cookie")
        if uri is None and cookie.domain is None:
            raise InvalidArgumentError(
                "uri must not be None for a cookie without a domain", argument="uri"
            )
        if cookie.domain is not None and uri is not None:
            if not domain_matches(cookie.domain, cookie.version, uri_host(uri)):
                logger.warning("Cookie %r does not domain-match URI %s", cookie, uri)

        expired = cookie.has_expired()
        with self._lock:
            if expired:
                self._delete(uri, cookie)
            else:
                entry = _Entry(cookie)
                if cookie.domain is not None:
                    _add_replace(self._domain_index, entry)
                if uri is not None:
                    origin = effective_origin(uri)
                    bucket = self._uri_index.setdefault(origin, [])
                    _add_replace(bucket, entry)
            logger.debug(
                "add() for URI %s and %s cookie %r, URI index: %s, domain index: %s",
                uri,
                "expired" if expired else "valid",
                cookie,
                self._uri_index,
                self._domain_index,
            )

    def _delete(self, uri: Optional[str], cookie: Cookie) -> None:
        if cookie.domain is not None:
            _remove_cookie(self._domain_index, cookie)
        if uri is not None:
            origin = effective_origin(uri)
            bucket = self._uri_index.get(origin)
            if bucket is not None:
                _remove_cookie(bucket, cookie)
                if not bucket:
                    del self._uri_index[origin]

    def remove(self, uri: Optional[str], cookie: Cookie) -> bool:
        """
        Remove a cookie.

        With a URI the cookie is removed from that URI's bucket together
        with its linked domain image. Without a URI it is removed from the
        domain index together with its linked URI image.

        Returns:
            True if anything was removed.
        """
        with self._lock:
            removed: Optional[_Entry]
            if uri is not None:
                origin = effective_origin(uri)
                bucket = self._uri_index.get(origin)
                if bucket is None:
                    return False
                removed = _remove_cookie(bucket, cookie)
                if not bucket:
                    del self._uri_index[origin]
                if removed is not None and cookie.domain is not None:
                    _remove_link(self._domain_index, removed.link_id)
            else:
                removed = _remove_cookie(self._domain_index, cookie)
                if removed is not None:
                    for origin in list(self._uri_index):
                        bucket = self._uri_index[origin]
                        if _remove_link(bucket, removed.link_id):
                            if not bucket:
                                del self._uri_index[origin]
                            break
            logger.debug("remove() for URI %s and cookie %r, removed: %s", uri, cookie, removed is not None)
            return removed is not None

    def remove_all(self) -> bool:
        """Drop every cookie. Returns True if the jar was not empty."""
        with self._lock:
            changed = bool(self._uri_index) or bool(self._domain_index)
            self._uri_index.clear()
            self._domain_index.clear()
            return changed

    # =========================================================================
    # Reads
    # =========================================================================

    def get(self, uri: str) -> list[Cookie]:
        """
        Cookies applicable to a URI.

        Returns the union of domain-scoped cookies matching the URI's host
        and cookies stored under the URI's effective origin. Secure cookies
        are left out unless the URI scheme is https.

        Raises:
            InvalidArgumentError: If uri is None.
        """
        if uri is None:
            raise InvalidArgumentError("uri must not be None", argument="uri")
        secure_link = is_secure_uri(uri)
        host = uri_host(uri)
        now = time.monotonic()
        cookies: list[Cookie] = []

        with self._lock:
            for index in range(len(self._domain_index) - 1, -1, -1):
                cookie = self._domain_index[index].cookie
                if cookie.has_expired(now):
                    del self._domain_index[index]
                elif (
                    (secure_link or not cookie.secure)
                    and domain_matches(cookie.domain, cookie.version, host)
                    and cookie not in cookies
                ):
                    cookies.append(cookie)

            origin = effective_origin(uri)
            bucket = self._uri_index.get(origin)
            if bucket is not None:
                for index in range(len(bucket) - 1, -1, -1):
                    cookie = bucket[index].cookie
                    if cookie.has_expired(now):
                        del bucket[index]
                    elif (secure_link or not cookie.secure) and cookie not in cookies:
                        cookies.append(cookie)
                if not bucket:
                    del self._uri_index[origin]

        logger.debug("get() for URI %s obtained %d cookies: %s", uri, len(cookies), cookies)
        return cookies

    def get_all(self) -> list[Cookie]:
        """Every non-expired cookie in the jar, without duplicates."""
        now = time.monotonic()
        cookies: list[Cookie] = []
        with self._lock:
            for index in range(len(self._domain_index) - 1, -1, -1):
                cookie = self._domain_index[index].cookie
                if cookie.has_expired(now):
                    del self._domain_index[index]
                elif cookie not in cookies:
                    cookies.append(cookie)
            for origin in list(self._uri_index):
                bucket = self._uri_index[origin]
                for index in range(len(bucket) - 1, -1, -1):
                    cookie = bucket[index].cookie
                    if cookie.has_expired(now):
                        del bucket[index]
                    elif cookie not in cookies:
                        cookies.append(cookie)
                if not bucket:
                    del self._uri_index[origin]
        return cookies

    def get_uris(self) -> list[str]:
        """Effective origins that still hold at least one live cookie."""
        now = time.monotonic()
        with self._lock:
            for origin in list(self._uri_index):
                bucket = self._uri_index[origin]
                bucket[:] = [entry for entry in bucket if not entry.cookie.has_expired(now)]
                if not bucket:
                    del self._uri_index[origin]
            return list(self._uri_index)

    def __len__(self) -> int:
        return len(self.get_all())

    def __repr__(self) -> str:
        with self._lock:
            return f"CookieJar(uri_index={self._uri_index}, domain_index={self._domain_index})"
