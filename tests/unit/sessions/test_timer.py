"""
Tests for SessionTimer.

Covers the state machine INITIAL -> WAITING -> RUNNING -> FIRED / CANCELLED
and the rule that cancel() fails once the callback has started.
"""

import asyncio

import pytest

from chat_bridge.sessions.timer import SessionTimer, TimerState


class TestSessionTimerConstruction:
    """Tests for construction and start()."""

    def test_initial_state(self) -> None:
        timer = SessionTimer(1.0, lambda: None)
        assert timer.state is TimerState.INITIAL
        assert timer.is_pending is True
        assert timer.delay == 1.0

    def test_negative_delay_rejected(self) -> None:
        with pytest.raises(ValueError):
            SessionTimer(-1.0, lambda: None)

    def test_start_requires_running_loop(self) -> None:
        with pytest.raises(RuntimeError):
            SessionTimer(1.0, lambda: None).start()

    @pytest.mark.asyncio
    async def test_start_twice_rejected(self) -> None:
        timer = SessionTimer(10.0, lambda: None)
        timer.start()
        try:
            with pytest.raises(RuntimeError):
                timer.start()
        finally:
            timer.cancel()


class TestSessionTimerFiring:
    """Tests for the callback run."""

    @pytest.mark.asyncio
    async def test_fires_once_after_delay(self) -> None:
        calls = []
        timer = SessionTimer(0.01, lambda: calls.append(1))
        timer.start()
        assert timer.state is TimerState.WAITING

        await asyncio.sleep(0.05)

        assert calls == [1]
        assert timer.state is TimerState.FIRED
        assert timer.is_pending is False

    @pytest.mark.asyncio
    async def test_cancel_after_fire_returns_false(self) -> None:
        timer = SessionTimer(0.0, lambda: None)
        timer.start()
        await asyncio.sleep(0.01)

        assert timer.cancel() is False
        assert timer.state is TimerState.FIRED

    @pytest.mark.asyncio
    async def test_cancel_from_inside_callback_returns_false(self) -> None:
        results = []
        timer = SessionTimer(0.0, lambda: results.append(timer.cancel()))
        timer.start()
        await asyncio.sleep(0.01)

        assert results == [False]
        assert timer.state is TimerState.FIRED

    @pytest.mark.asyncio
    async def test_callback_exception_is_swallowed(self) -> None:
        def boom() -> None:
            raise RuntimeError("boom")

        timer = SessionTimer(0.0, boom)
        timer.start()
        await asyncio.sleep(0.01)

        assert timer.state is TimerState.FIRED


class TestSessionTimerCancel:
    """Tests for cancel()."""

    def test_cancel_before_start(self) -> None:
        timer = SessionTimer(1.0, lambda: None)
        assert timer.cancel() is True
        assert timer.state is TimerState.CANCELLED

    @pytest.mark.asyncio
    async def test_cancelled_timer_never_fires(self) -> None:
        calls = []
        timer = SessionTimer(0.01, lambda: calls.append(1))
        timer.start()

        assert timer.cancel() is True
        await asyncio.sleep(0.05)

        assert calls == []
        assert timer.state is TimerState.CANCELLED

    @pytest.mark.asyncio
    async def test_cancel_is_idempotent(self) -> None:
        timer = SessionTimer(10.0, lambda: None)
        timer.start()

        assert timer.cancel() is True
        assert timer.cancel() is True

    @pytest.mark.asyncio
    async def test_cancel_from_another_thread(self) -> None:
        calls = []
        timer = SessionTimer(0.05, lambda: calls.append(1))
        timer.start()

        assert await asyncio.to_thread(timer.cancel) is True
        await asyncio.sleep(0.1)

        assert calls == []
