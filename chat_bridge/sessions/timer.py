"""
One-shot cancellable timer used for session inactivity expiry.

The timer is backed by an asyncio call_later handle and guarded by an
explicit state machine:

    INITIAL -> WAITING -> RUNNING -> FIRED
          \\         \\
           +---------+--> CANCELLED

cancel() succeeds only from INITIAL or WAITING. Once the delay has elapsed
and the state has moved to RUNNING it is too late: cancel() returns False
and the callback runs to completion. The state is checked under the
timer's own lock both when the delay elapses and when cancel() is called,
so a callback never starts after a successful cancel().
"""

import asyncio
import logging
import threading
from enum import Enum
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class TimerState(Enum):
    """Lifecycle states of a SessionTimer."""

    INITIAL = "initial"
    WAITING = "waiting"
    RUNNING = "running"
    FIRED = "fired"
    CANCELLED = "cancelled"


class SessionTimer:
    """
    Deferred, cancellable, run-at-most-once callback.

    Args:
        delay: Seconds to wait before running the callback.
        callback: Zero-argument callable. Exceptions it raises are logged
            and never propagated.
        name: Optional label used in log messages.

    Example:
        >>> async def touch():
        ...     timer = SessionTimer(30.0, lambda: print("expired"))
        ...     timer.start()
        ...     return timer.cancel()
    """

    def __init__(
        self,
        delay: float,
        callback: Callable[[], Any],
        name: Optional[str] = None,
    ) -> None:
        if delay < 0:
            raise ValueError("delay must not be negative")
        self._delay = delay
        self._callback = callback
        self._name = name or "session-timer"
        self._lock = threading.Lock()
        self._state = TimerState.INITIAL
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._handle: Optional[asyncio.TimerHandle] = None

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def state(self) -> TimerState:
        with self._lock:
            return self._state

    @property
    def is_pending(self) -> bool:
        """True while the callback may still run (INITIAL or WAITING)."""
        return self.state in (TimerState.INITIAL, TimerState.WAITING)

    def start(self) -> None:
        """
        Start waiting. Must be called from a running event loop.

        Raises:
            RuntimeError: If the timer was already started or cancelled,
                or no event loop is running.
        """
        loop = asyncio.get_running_loop()
        with self._lock:
            if self._state is not TimerState.INITIAL:
                raise RuntimeError(f"{self._name} was already started")
            self._state = TimerState.WAITING
            self._loop = loop
            self._handle = loop.call_later(self._delay, self._fire)

    def cancel(self) -> bool:
        """
        Cancel the timer.

        Returns:
            True if the callback neither ran nor will run, False if it is
            running or has already run.
        """
        with self._lock:
            if self._state in (TimerState.RUNNING, TimerState.FIRED):
                return False
            if self._state is TimerState.CANCELLED:
                return True
            self._state = TimerState.CANCELLED
            handle, loop = self._handle, self._loop
            self._handle = None

        if handle is not None and loop is not None:
            self._release_handle(handle, loop)
        return True

    @staticmethod
    def _release_handle(handle: asyncio.TimerHandle, loop: asyncio.AbstractEventLoop) -> None:
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            handle.cancel()
        elif not loop.is_closed():
            loop.call_soon_threadsafe(handle.cancel)

    def _fire(self) -> None:
        with self._lock:
            if self._state is not TimerState.WAITING:
                return
            self._state = TimerState.RUNNING
            self._handle = None

        try:
            self._callback()
        except Exception:
            logger.warning("Failure running %s callback", self._name, exc_info=True)
        finally:
            with self._lock:
                self._state = TimerState.FIRED

    def __repr__(self) -> str:
        return f"SessionTimer(name={self._name!r}, delay={self._delay}, state={self._state.value})"
