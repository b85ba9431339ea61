"""Leading-edge throttling of render notifications."""

from __future__ import annotations

import asyncio
import logging
import threading
from functools import partial
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)
logger.addHandler(logging.NullHandler())


class ThrottledNotifier:
    """Invoke ``callback`` at most once per ``interval_ms`` window.

    The first call while idle fires immediately and opens a window. Calls made
    while the window is open collapse into a single trailing fire when it
    closes; the trailing fire opens a new window. ``callback`` takes no
    arguments, so a trailing fire always observes state as of fire time.

    Timers come from the running asyncio loop when there is one, otherwise
    from a daemon :class:`threading.Timer`.

    Parameters
    ----------
    callback:
        Zero-argument callable to invoke.
    interval_ms:
        Window length in milliseconds. ``0`` fires synchronously on every call.
    """

    def __init__(self, callback: Callable[[], Any], interval_ms: float = 0.0) -> None:
        if interval_ms < 0:
            raise ValueError("interval_ms must be >= 0")
        self._callback = callback
        self._interval_s = float(interval_ms) / 1000.0
        self._lock = threading.Lock()
        self._timer: Optional[Any] = None
        self._pending = False
        self._generation = 0

    @property
    def interval_ms(self) -> float:
        return self._interval_s * 1000.0

    @property
    def pending(self) -> bool:
        """Whether a trailing fire is scheduled."""
        with self._lock:
            return self._pending

    def __call__(self) -> None:
        if self._interval_s == 0:
            self._fire()
            return
        with self._lock:
            if self._timer is not None:
                self._pending = True
                return
            self._schedule_next_locked()
        self._fire()

    def cancel(self) -> None:
        """Drop any pending trailing fire and close the current window."""
        with self._lock:
            timer = self._drop_window_locked()
        _cancel_timer(timer)

    def reset_window(self) -> None:
        """Drop any pending trailing fire and start a fresh window without firing.

        For callers that just delivered a notification themselves: the next
        call is then throttled instead of firing a leading edge at once.
        """
        if self._interval_s == 0:
            return
        with self._lock:
            timer = self._drop_window_locked()
            self._schedule_next_locked()
        _cancel_timer(timer)

    def _drop_window_locked(self) -> Optional[Any]:
        timer, self._timer = self._timer, None
        self._pending = False
        # A timer that already started running its callback cannot be
        # cancelled; the generation bump turns that tick into a no-op.
        self._generation += 1
        return timer

    def _schedule_next_locked(self) -> None:
        delay_s = self._interval_s
        tick = partial(self._on_tick, self._generation)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            timer = threading.Timer(delay_s, tick)
            timer.daemon = True
            self._timer = timer
            timer.start()
            return

        self._timer = loop.call_later(delay_s, tick)

    def _on_tick(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._timer = None
            if not self._pending:
                return
            self._pending = False
            self._schedule_next_locked()
        self._fire()

    def _fire(self) -> None:
        try:
            self._callback()
        except Exception:
            logger.exception("ThrottledNotifier callback failed")


def _cancel_timer(timer: Optional[Any]) -> None:
    cancel = getattr(timer, "cancel", None)
    if cancel is not None:
        cancel()


__all__ = ["ThrottledNotifier"]
