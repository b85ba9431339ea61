from __future__ import annotations

import logging
from unittest.mock import patch

import pytest

from streamviz.throttling import ThrottledNotifier


class _FakeThreadTimer:
    created: list["_FakeThreadTimer"] = []

    def __init__(self, delay: float, callback):
        self.delay = delay
        self.callback = callback
        self.daemon = False
        self.started = False
        self.cancelled = False
        _FakeThreadTimer.created.append(self)

    def start(self) -> None:
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True


class _FakeLoopHandle:
    def __init__(self, callback):
        self._callback = callback

    def fire(self) -> None:
        self._callback()


class _FakeAsyncLoop:
    def __init__(self) -> None:
        self.handles: list[_FakeLoopHandle] = []
        self.delays: list[float] = []

    def call_later(self, delay: float, callback):
        handle = _FakeLoopHandle(callback)
        self.handles.append(handle)
        self.delays.append(delay)
        return handle


def test_zero_interval_fires_synchronously_every_call() -> None:
    calls: list[int] = []
    notifier = ThrottledNotifier(lambda: calls.append(1), 0)
    notifier()
    notifier()
    notifier()
    assert len(calls) == 3


def test_negative_interval_is_rejected() -> None:
    with pytest.raises(ValueError):
        ThrottledNotifier(lambda: None, -5)


def test_leading_fire_then_single_trailing_fire_threading() -> None:
    state = {"value": 0, "seen": []}

    def _callback():
        state["seen"].append(state["value"])

    _FakeThreadTimer.created.clear()

    with patch("streamviz.throttling.threading.Timer", _FakeThreadTimer):
        notifier = ThrottledNotifier(_callback, 100)
        state["value"] = 1
        notifier()
        assert state["seen"] == [1]
        assert len(_FakeThreadTimer.created) == 1
        assert _FakeThreadTimer.created[0].delay == pytest.approx(0.1)
        assert _FakeThreadTimer.created[0].daemon is True

        for value in (2, 3, 4):
            state["value"] = value
            notifier()
        assert state["seen"] == [1]
        assert notifier.pending

        state["value"] = 5
        _FakeThreadTimer.created[0].callback()
        assert state["seen"] == [1, 5]
        assert len(_FakeThreadTimer.created) == 2
        assert not notifier.pending

        _FakeThreadTimer.created[1].callback()
        assert state["seen"] == [1, 5]
        assert len(_FakeThreadTimer.created) == 2

        notifier()
        assert state["seen"] == [1, 5, 5]


def test_cancel_drops_pending_fire() -> None:
    calls: list[int] = []
    _FakeThreadTimer.created.clear()

    with patch("streamviz.throttling.threading.Timer", _FakeThreadTimer):
        notifier = ThrottledNotifier(lambda: calls.append(1), 50)
        notifier()
        notifier()
        notifier.cancel()
        assert _FakeThreadTimer.created[0].cancelled
        assert not notifier.pending

        notifier()
        assert len(calls) == 2
        assert len(_FakeThreadTimer.created) == 2


def test_uses_running_loop_when_available() -> None:
    calls: list[int] = []
    fake_loop = _FakeAsyncLoop()

    with patch("streamviz.throttling.asyncio.get_running_loop", return_value=fake_loop):
        notifier = ThrottledNotifier(lambda: calls.append(1), 250)
        notifier()
        notifier()
        assert calls == [1]
        assert fake_loop.delays == [pytest.approx(0.25)]

        fake_loop.handles[0].fire()
        assert calls == [1, 1]
        assert len(fake_loop.handles) == 2


def test_notifier_logs_and_keeps_firing_after_callback_error_threading(caplog) -> None:
    state = {"n": 0}

    def _callback():
        state["n"] += 1
        if state["n"] == 1:
            raise RuntimeError("boom")

    _FakeThreadTimer.created.clear()

    with patch("streamviz.throttling.threading.Timer", _FakeThreadTimer):
        notifier = ThrottledNotifier(_callback, 1)
        with caplog.at_level(logging.ERROR, logger="streamviz.throttling"):
            notifier()
            notifier()
            _FakeThreadTimer.created[0].callback()

    assert state["n"] == 2
    assert "ThrottledNotifier callback failed" in caplog.text


def test_notifier_logs_and_keeps_firing_after_callback_error_asyncio(caplog) -> None:
    state = {"n": 0}

    def _callback():
        state["n"] += 1
        if state["n"] == 1:
            raise RuntimeError("boom")

    fake_loop = _FakeAsyncLoop()

    with patch("streamviz.throttling.asyncio.get_running_loop", return_value=fake_loop):
        notifier = ThrottledNotifier(_callback, 1)
        with caplog.at_level(logging.ERROR, logger="streamviz.throttling"):
            notifier()
            notifier()
            fake_loop.handles[0].fire()

    assert state["n"] == 2
    assert "ThrottledNotifier callback failed" in caplog.text


def test_reset_window_throttles_the_next_call_without_firing() -> None:
    calls: list[int] = []
    _FakeThreadTimer.created.clear()

    with patch("streamviz.throttling.threading.Timer", _FakeThreadTimer):
        notifier = ThrottledNotifier(lambda: calls.append(1), 100)
        notifier()
        notifier()
        notifier.reset_window()
        assert calls == [1]
        assert _FakeThreadTimer.created[0].cancelled
        assert len(_FakeThreadTimer.created) == 2
        assert not notifier.pending

        notifier()
        assert calls == [1]
        assert notifier.pending

        _FakeThreadTimer.created[1].callback()
        assert calls == [1, 1]


def test_stale_timer_tick_is_ignored_after_reset() -> None:
    calls: list[int] = []
    _FakeThreadTimer.created.clear()

    with patch("streamviz.throttling.threading.Timer", _FakeThreadTimer):
        notifier = ThrottledNotifier(lambda: calls.append(1), 100)
        notifier()
        notifier.reset_window()
        notifier()
        assert notifier.pending

        _FakeThreadTimer.created[0].callback()
        assert calls == [1]
        assert notifier.pending
        assert len(_FakeThreadTimer.created) == 2


def test_reset_window_is_a_no_op_without_throttling() -> None:
    calls: list[int] = []
    notifier = ThrottledNotifier(lambda: calls.append(1), 0)
    notifier.reset_window()
    notifier()
    assert calls == [1]
