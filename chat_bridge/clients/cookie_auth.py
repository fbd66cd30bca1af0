"""
Cookie integration between httpx and a session's CookieJar.

httpx runs an Auth flow around every request it sends, including the
responses of followed redirects (available as response.history). The flow
below uses that hook to:

1. attach the session jar's cookies for the request URL as a Cookie header;
2. record every Set-Cookie of the final response and its redirect chain.

Recording follows the usual cookie-manager rules: a missing Path defaults to
the directory of the request path, a missing Domain defaults to the request
host (single-label hosts get ".local" appended), and a cookie whose domain
does not match the originating host is rejected.
"""

import logging
from typing import Generator

import httpx

from chat_bridge.cookies.jar import CookieJar
from chat_bridge.cookies.matching import (
    LOCAL_DOMAIN,
    default_path,
    path_matches,
    rfc_domain_matches,
)
from chat_bridge.cookies.model import Cookie, parse_set_cookie

logger = logging.getLogger(__name__)


def default_domain(host: str) -> str:
    """Domain assigned to a cookie that declared none."""
    if "." not in host:
        return host + LOCAL_DOMAIN
    return host


def should_accept(cookie: Cookie, host: str) -> bool:
    """Accept only cookies that come from the server they name."""
    return rfc_domain_matches(cookie.domain, host)


class CookieJarAuth(httpx.Auth):
    """
    httpx Auth flow backed by a per-session CookieJar.

    Args:
        jar: The jar cookies are read from and recorded into.

    Example:
        >>> auth = CookieJarAuth(CookieJar())
        >>> await client.post(url, content=body, auth=auth)
    """

    def __init__(self, jar: CookieJar) -> None:
        self.jar = jar

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        cookies = [
            cookie
            for cookie in self.jar.get(str(request.url))
            if path_matches(cookie.path, request.url.path)
        ]
        if cookies:
            request.headers["Cookie"] = "; ".join(cookie.header_value() for cookie in cookies)

        response = yield request

        for received in (*response.history, response):
            self.record(received)

    def record(self, response: httpx.Response) -> int:
        """
        Store the Set-Cookie headers of one response in the jar.

        Returns:
            Number of cookies stored (expired delete signals included).
        """
        url = response.request.url
        host = url.host
        if not host:
            return 0

        stored = 0
        for header in response.headers.get_list("set-cookie"):
            for cookie in parse_set_cookie(header):
                cookie = cookie.with_defaults(default_domain(host), default_path(url.path))
                if not should_accept(cookie, host):
                    logger.warning("Rejecting cookie %r set by foreign host %s", cookie, host)
                    continue
                self.jar.add(str(url), cookie)
                stored += 1
        return stored
