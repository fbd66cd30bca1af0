"""
Engine Client - session-affine async client for the conversational engine.

One EngineClient belongs to one bridge session. It keeps the state that
pins the conversation to one engine node:

- the engine session id, echoed as a ";jsessionid=" path tag;
- the values of the routing response header, echoed back in the routing
  request header as "JSESSIONID=<id>; <value>";
- a per-session CookieJar, applied through CookieJarAuth.

The session id, routing values and target URL are read together under one
short lock when a request is built, and written together under the same
lock when a successful response is applied. Failed requests never touch
them.

All sessions share one httpx.AsyncClient (see create_http_client).
"""

import json
import logging
import threading
import time
from typing import Any, Mapping, Optional
from urllib.parse import quote, quote_plus, urlencode, urlsplit, urlunsplit

import httpx

from chat_bridge.clients.cookie_auth import CookieJarAuth
from chat_bridge.core.config import Settings
from chat_bridge.core.exceptions import InvalidArgumentError, ProtocolError, TransportError
from chat_bridge.cookies.jar import CookieJar
from chat_bridge.observability.metrics import record_engine_request

logger = logging.getLogger(__name__)


CONTENT_TYPE = "application/x-www-form-urlencoded;charset=UTF-8"
SESSION_ID_FIELD = "sessionId"
ENDSESSION_PARAMS = ("viewname", "viewtype")

MAX_PAYLOAD_LOG_LENGTH = 1024
MAX_BODY_LOG_LENGTH = 256

# InvalidURL is not an HTTPError subclass
HTTP_FAILURES = (httpx.HTTPError, httpx.InvalidURL)


# =============================================================================
# URL Construction
# =============================================================================


def session_tagged_url(base_url: str, session_id: str) -> str:
    """
    Tag the endpoint path with the engine session id.

    Example:
        >>> session_tagged_url("https://engine.example.com/bot/?a=1", "ABC")
        'https://engine.example.com/bot/;jsessionid=ABC?a=1'
    """
    parts = urlsplit(base_url)
    tag = ";jsessionid=" + quote(session_id, safe="")
    path = (parts.path or "/") + tag
    return urlunsplit((parts.scheme, parts.netloc, path, parts.query, parts.fragment))


def endsession_url(base_url: str, session_id: Optional[str]) -> str:
    """
    The "endsession" sibling of the endpoint, tagged with the session id.

    Example:
        >>> endsession_url("https://engine.example.com/bot", "ABC")
        'https://engine.example.com/bot/endsession;jsessionid=ABC'
    """
    parts = urlsplit(base_url)
    path = parts.path
    if not path:
        path = "/endsession"
    elif path.endswith("/"):
        path += "endsession"
    else:
        path += "/endsession"
    if session_id:
        path += ";jsessionid=" + quote(session_id, safe="")
    return urlunsplit((parts.scheme, parts.netloc, path, parts.query, parts.fragment))


# =============================================================================
# Payload Encoding
# =============================================================================


def render_value(value: Any) -> str:
    """Render one parameter value as the scalar sent in the form body."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False, default=str)
    return str(value)


def encode_params(params: Mapping[str, Any]) -> str:
    """
    Encode parameters as an application/x-www-form-urlencoded body.

    None values are skipped. Dicts, lists and tuples are sent as compact
    JSON text.

    Raises:
        InvalidArgumentError: If a parameter with a value has an empty name.
    """
    pairs: list[tuple[str, str]] = []
    for name, value in params.items():
        if value is None:
            continue
        if not name:
            raise InvalidArgumentError("null or empty param name", argument="params")
        pairs.append((name, render_value(value)))
    return urlencode(pairs)


def _abbreviate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


def payload_for_log(params: Mapping[str, Any]) -> str:
    """Human readable rendering of the parameters, cut at 1024 characters."""
    shown = "\n&\n".join(
        f"{name}={render_value(value)}" for name, value in params.items() if value is not None
    )
    return _abbreviate(shown, MAX_PAYLOAD_LOG_LENGTH)


# =============================================================================
# EngineClient
# =============================================================================


class EngineClient:
    """
    Client for one engine conversation.

    Args:
        settings: Application settings (endpoint URL and routing header names).
        http_client: Shared httpx.AsyncClient.
        log_sensitive: Log request payloads and response bodies
            (default: settings.explicit_data).

    Example:
        >>> client = EngineClient(settings, http_client)
        >>> reply = await client.send({"viewtype": "tieapi", "userinput": "hello"})
        >>> await client.end_session()
    """

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient,
        log_sensitive: Optional[bool] = None,
    ) -> None:
        self._base_url = settings.engine_endpoint_url
        self._routing_response_header = settings.routing_response_header
        self._routing_request_header = settings.routing_request_header
        self._http_client = http_client
        self._log_sensitive = settings.explicit_data if log_sensitive is None else log_sensitive

        self._jar = CookieJar()
        self._auth = CookieJarAuth(self._jar)

        self._lock = threading.Lock()
        self._session_id: Optional[str] = None
        self._routing_values: Optional[list[str]] = None
        self._target_url = self._base_url
        self._endsession_params: dict[str, Any] = {}

    # =========================================================================
    # Accessors
    # =========================================================================

    @property
    def session_id(self) -> Optional[str]:
        with self._lock:
            return self._session_id

    @property
    def target_url(self) -> str:
        with self._lock:
            return self._target_url

    @property
    def routing_values(self) -> Optional[list[str]]:
        with self._lock:
            return list(self._routing_values) if self._routing_values is not None else None

    @property
    def cookie_jar(self) -> CookieJar:
        return self._jar

    # =========================================================================
    # Requests
    # =========================================================================

    async def send(self, params: Mapping[str, Any]) -> dict[str, Any]:
        """
        Send one turn to the engine.

        Args:
            params: Request parameters, encoded as a form body.

        Returns:
            The decoded JSON object of the engine reply.

        Raises:
            InvalidArgumentError: If a parameter name is empty.
            TransportError: Network failure, timeout, non-200 status or
                empty body.
            ProtocolError: The body is not a JSON object.
        """
        body = encode_params(params)
        with self._lock:
            self._endsession_params = {name: params.get(name) for name in ENDSESSION_PARAMS}
            target_url = self._target_url
            headers = self._request_headers(self._session_id, self._routing_values)

        shown = payload_for_log(params) if self._log_sensitive else "<hidden>"
        started = time.perf_counter()
        logger.debug("Engine request start, URI [%s], cookies %s, query [%s]", target_url, self._jar, shown)

        try:
            response = await self._http_client.post(
                target_url, content=body.encode("utf-8"), headers=headers, auth=self._auth
            )
        except HTTP_FAILURES as e:
            record_engine_request("send", "transport_error", time.perf_counter() - started)
            logger.warning("Engine request error, URI [%s]: %s", target_url, e)
            raise TransportError(f"Engine request failed: {e}") from e

        duration = time.perf_counter() - started
        text = response.text
        logger.debug(
            "Engine request end, URI [%s], duration %.3fs, status code %d, response body [%s]",
            target_url,
            duration,
            response.status_code,
            _abbreviate(text, MAX_BODY_LOG_LENGTH) if self._log_sensitive else "<hidden>",
        )

        if response.status_code != 200:
            record_engine_request("send", "transport_error", duration)
            logger.error(
                "Engine request error, URI [%s], status code %d, query [%s]",
                target_url,
                response.status_code,
                shown,
            )
            raise TransportError(
                f"Engine request error, status code {response.status_code}",
                status_code=response.status_code,
            )
        if not text:
            record_engine_request("send", "transport_error", duration)
            logger.error("Engine request no body error, URI [%s]", target_url)
            raise TransportError("Engine request error, empty response body", status_code=200)

        try:
            document = json.loads(text)
        except ValueError as e:
            record_engine_request("send", "protocol_error", duration)
            logger.error(
                "Engine response parsing error, URI [%s], response body [%s]",
                target_url,
                _abbreviate(text, MAX_BODY_LOG_LENGTH) if self._log_sensitive else "<hidden>",
            )
            raise ProtocolError(f"Engine response is not valid JSON: {e}") from e
        if not isinstance(document, dict):
            record_engine_request("send", "protocol_error", duration)
            raise ProtocolError("Engine response is not a JSON object")

        self._apply_response(response.headers, document)
        record_engine_request("send", "success", duration)
        return document

    async def end_session(self) -> None:
        """
        End the engine session, best effort.

        Posts to the "endsession" sibling endpoint and then forgets the
        session id, routing values, target URL and cookies whatever the
        outcome. Failures are logged and never raised.
        """
        with self._lock:
            session_id = self._session_id
            headers = self._request_headers(session_id, self._routing_values)
            body = encode_params(self._endsession_params)
        url = endsession_url(self._base_url, session_id)

        started = time.perf_counter()
        outcome = "success"
        logger.debug("Engine endsession request start, URI [%s], cookies %s", url, self._jar)
        try:
            response = await self._http_client.post(
                url, content=body.encode("utf-8"), headers=headers, auth=self._auth
            )
            if response.status_code != 200:
                outcome = "transport_error"
                logger.error(
                    "Engine endsession request error, URI [%s], status code %d",
                    url,
                    response.status_code,
                )
            else:
                logger.debug("Engine endsession request success, URI [%s]", url)
        except HTTP_FAILURES as e:
            outcome = "transport_error"
            logger.warning("Engine endsession request error, URI [%s]: %s", url, e)
        finally:
            record_engine_request("endsession", outcome, time.perf_counter() - started)
            self._reset()

    # =========================================================================
    # Session State
    # =========================================================================

    def _request_headers(
        self, session_id: Optional[str], routing_values: Optional[list[str]]
    ) -> list[tuple[str, str]]:
        headers = [("Content-Type", CONTENT_TYPE)]
        for value in routing_values or ():
            if session_id is not None:
                value = f"JSESSIONID={quote_plus(session_id)}; {value}"
            headers.append((self._routing_request_header, value))
        return headers

    def _apply_response(self, headers: httpx.Headers, document: dict[str, Any]) -> None:
        raw_session_id = document.get(SESSION_ID_FIELD)
        session_id = str(raw_session_id) if raw_session_id not in (None, "") else None
        routing_values = headers.get_list(self._routing_response_header) or None

        with self._lock:
            if session_id is None:
                self._session_id = None
                self._target_url = self._base_url
            elif session_id != self._session_id:
                self._session_id = session_id
                self._target_url = session_tagged_url(self._base_url, session_id)
            self._routing_values = routing_values

    def _reset(self) -> None:
        with self._lock:
            self._session_id = None
            self._routing_values = None
            self._target_url = self._base_url
        self._jar.remove_all()

    def __repr__(self) -> str:
        return f"EngineClient(target_url={self._target_url!r}, session_id={self._session_id!r})"
