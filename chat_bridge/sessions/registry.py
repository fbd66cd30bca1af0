"""
Session Registry - concurrent, TTL-evicted, capacity-bounded session map.

Maps a SessionIdentity (account object id + channel id) to the
BridgeSession holding that conversation's EngineClient.

Locking:
    The registry map is guarded by the registry lock. Each session's
    expired flag and timer are guarded by the session's own lock, which is
    only ever taken while the registry lock is held. Every code path takes
    them in that order: registry lock, then session lock.

Admission:
    A lookup miss creates a session only while fewer than
    max_parallel_sessions are live. Capacity is never reclaimed by evicting
    an existing session.

Expiry:
    Every hit cancels the session's timer and schedules a fresh one. When a
    timer fires without an intervening hit the session is marked expired,
    removed from the map, and its engine session is ended in the
    background. expire() is idempotent.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Optional

from chat_bridge.core.exceptions import AdmissionRejectedError
from chat_bridge.observability.metrics import (
    record_admission,
    record_expiration,
    set_active_sessions,
)
from chat_bridge.sessions.timer import SessionTimer

if TYPE_CHECKING:
    from chat_bridge.clients.engine import EngineClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionIdentity:
    """
    Registry key of a bridge session.

    Attributes:
        account_object_id: Directory object id of the user (may be None).
        channel_id: Chat-platform id of the sender (may be None).
    """

    account_object_id: Optional[str]
    channel_id: Optional[str]

    def __str__(self) -> str:
        return f"{self.account_object_id}/{self.channel_id}"


class BridgeSession:
    """
    One user's conversation with the engine.

    The expired flag is set exactly once and never cleared. At most one
    timer is pending per session.
    """

    def __init__(self, identity: SessionIdentity, client: "EngineClient") -> None:
        self.identity = identity
        self.client = client
        self._lock = threading.Lock()
        self._expired = False
        self._timer: Optional[SessionTimer] = None

    @property
    def expired(self) -> bool:
        with self._lock:
            return self._expired

    @property
    def timer(self) -> Optional[SessionTimer]:
        with self._lock:
            return self._timer

    def _clear_timer(self) -> None:
        # Caller holds self._lock.
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def __repr__(self) -> str:
        return f"BridgeSession(identity={self.identity}, expired={self._expired})"


class SessionRegistry:
    """
    Registry of live bridge sessions.

    Args:
        client_factory: Builds a fresh EngineClient for each new session.
        ttl_seconds: Inactivity period after which a session expires.
        max_sessions: Maximum number of simultaneously live sessions.

    Example:
        >>> registry = SessionRegistry(lambda: EngineClient(settings, http_client), 600, 1000)
        >>> session = registry.acquire(SessionIdentity("aad-1", "29:abc"))
    """

    def __init__(
        self,
        client_factory: Callable[[], "EngineClient"],
        ttl_seconds: float,
        max_sessions: int,
    ) -> None:
        if max_sessions < 1:
            raise ValueError("max_sessions must be at least 1")
        self._client_factory = client_factory
        self._ttl_seconds = ttl_seconds
        self._max_sessions = max_sessions
        self._lock = threading.Lock()
        self._sessions: dict[SessionIdentity, BridgeSession] = {}
        self._background: set[asyncio.Task] = set()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl_seconds

    @property
    def max_sessions(self) -> int:
        return self._max_sessions

    def size(self) -> int:
        with self._lock:
            return len(self._sessions)

    def get(self, identity: SessionIdentity) -> Optional[BridgeSession]:
        """Look up a live session without touching its timer."""
        with self._lock:
            return self._sessions.get(identity)

    # =========================================================================
    # Admission
    # =========================================================================

    def acquire(self, identity: SessionIdentity) -> BridgeSession:
        """
        Return the live session for an identity, creating one if needed.

        A hit resets the session's inactivity timer. A miss creates a new
        session if capacity allows. Performs no I/O. Must be called from
        the event loop thread since it schedules the expiry timer there.

        Raises:
            AdmissionRejectedError: If a new session would exceed capacity.
        """
        with self._lock:
            session = self._sessions.get(identity)
            created = False
            if session is None and len(self._sessions) < self._max_sessions:
                session = BridgeSession(identity, self._client_factory())
                self._touch(session)
                self._sessions[identity] = session
                created = True
            elif session is not None:
                self._touch(session)
            count = len(self._sessions)

        if session is None:
            logger.warning(
                "Failing to add new session because the session limit %d is exceeded",
                self._max_sessions,
            )
            record_admission("rejected")
            raise AdmissionRejectedError(
                f"Session limit of {self._max_sessions} parallel sessions reached",
                limit=self._max_sessions,
            )

        record_admission("created" if created else "reused")
        set_active_sessions(count)
        logger.debug(
            "%s session %s; simultaneous sessions: %d",
            "Adding new" if created else "Getting existing",
            identity,
            count,
        )
        return session

    def _touch(self, session: BridgeSession) -> None:
        # Caller holds self._lock; the session lock nests inside it.
        with session._lock:
            session._clear_timer()
            timer = SessionTimer(
                self._ttl_seconds,
                lambda: self.expire(session),
                name=f"session-timeout[{session.identity}]",
            )
            timer.start()
            session._timer = timer

    # =========================================================================
    # Expiry
    # =========================================================================

    def expire(self, session: BridgeSession) -> bool:
        """
        Expire a session and end its engine session in the background.

        Safe to call any number of times and from a timer callback that
        races with acquire(); only the first call has an effect.

        Returns:
            True if this call expired the session.
        """
        with self._lock:
            with session._lock:
                first = not session._expired
                session._clear_timer()
                session._expired = True
                if self._sessions.get(session.identity) is session:
                    del self._sessions[session.identity]
            count = len(self._sessions)

        if not first:
            return False

        record_expiration()
        set_active_sessions(count)
        logger.debug("Expiring and removing session %s; simultaneous sessions: %d", session.identity, count)
        self.terminate(session)
        return True

    def terminate(self, session: BridgeSession) -> Optional[asyncio.Task]:
        """
        Schedule the end of the session's engine session.

        Fire and forget; the returned task is tracked so shutdown() can
        wait for it. Failures are logged, never raised.
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop; engine session of %s is not ended", session.identity)
            return None
        task = loop.create_task(session.client.end_session())
        self._background.add(task)
        task.add_done_callback(self._on_terminated)
        return task

    def _on_terminated(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning("Failure ending engine session", exc_info=task.exception())

    async def shutdown(self) -> None:
        """Expire every live session and wait for pending engine terminations."""
        with self._lock:
            sessions = list(self._sessions.values())
        for session in sessions:
            self.expire(session)
        pending = list(self._background)
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        logger.info("Session registry shut down, %d sessions expired", len(sessions))
