"""Adaptive scan scheduling.

The scheduler paces scan requests while a view needs live data.  It runs
FAST after entering the view or after any manual scan, and drops to SLOW
once several consecutive scans came back non-empty.  Leaving the view, or
switching scanning off, cancels the single pending timer.

Timers never call back into the scheduler from their own thread: they post
a :class:`~wifitui.messages.ScanTick` carrying the generation they were
armed with, and the consumer hands it back via :meth:`ScanScheduler.handle_tick`.
Ticks from a cancelled or superseded timer carry an old generation and are
ignored.
"""

from __future__ import annotations

import enum
import logging
import threading
from collections.abc import Callable
from typing import Any, Protocol

from wifitui.messages import ScanTick

logger = logging.getLogger(__name__)

FAST_INTERVAL = 2.0
SLOW_INTERVAL = 10.0
SLOW_AFTER = 3


class ScanState(enum.Enum):
    OFF = "off"
    FAST = "fast"
    SLOW = "slow"


class Timer(Protocol):
    def start(self) -> None: ...  # pragma: no cover

    def cancel(self) -> None: ...  # pragma: no cover


TimerFactory = Callable[[float, Callable[[], Any]], Timer]


def _daemon_timer(interval: float, function: Callable[[], Any]) -> Timer:
    timer = threading.Timer(interval, function)
    timer.daemon = True
    return timer


class ScanScheduler:
    """Three-state (OFF / FAST / SLOW) scan pacing.

    Args:
        on_scan: Called on the consumer thread whenever a scan is due.
        post: Delivers a :class:`ScanTick` to the consumer inbox; called
            from the timer thread.
        fast_interval: Seconds between scans in FAST.
        slow_interval: Seconds between scans in SLOW.
        slow_after: Consecutive non-empty results before FAST becomes SLOW.
        timer_factory: Builds a startable, cancellable timer (testing seam).
    """

    def __init__(
        self,
        on_scan: Callable[[], None],
        post: Callable[[ScanTick], None],
        *,
        fast_interval: float = FAST_INTERVAL,
        slow_interval: float = SLOW_INTERVAL,
        slow_after: int = SLOW_AFTER,
        timer_factory: TimerFactory = _daemon_timer,
    ) -> None:
        self._on_scan = on_scan
        self._post = post
        self.fast_interval = fast_interval
        self.slow_interval = slow_interval
        self.slow_after = slow_after
        self._timer_factory = timer_factory

        self._state = ScanState.OFF
        self._enabled = True
        self._wants_data = False
        self._streak = 0
        self._generation = 0
        self._timer: Timer | None = None

    @property
    def state(self) -> ScanState:
        return self._state

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def interval(self) -> float | None:
        """Seconds until the next scheduled scan, or None when OFF."""
        if self._state == ScanState.FAST:
            return self.fast_interval
        if self._state == ScanState.SLOW:
            return self.slow_interval
        return None

    # -- timer management ---------------------------------------------------

    def _cancel_timer(self) -> None:
        self._generation += 1
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _arm(self) -> None:
        self._cancel_timer()
        interval = self.interval
        if interval is None:
            return
        generation = self._generation
        self._timer = self._timer_factory(interval, lambda: self._post(ScanTick(generation)))
        self._timer.start()

    def _start_fast(self) -> None:
        if self._state != ScanState.FAST:
            logger.debug("scan schedule: %s -> fast", self._state.value)
        self._state = ScanState.FAST
        self._streak = 0
        self._on_scan()
        self._arm()

    def _stop(self) -> None:
        if self._state != ScanState.OFF:
            logger.debug("scan schedule: %s -> off", self._state.value)
        self._state = ScanState.OFF
        self._streak = 0
        self._cancel_timer()

    # -- transitions --------------------------------------------------------

    def enter_view(self) -> None:
        """A view needing live data became visible: scan now, then run FAST."""
        self._wants_data = True
        if self._enabled:
            self._start_fast()

    def leave_view(self) -> None:
        """The view went away: stop and cancel the pending timer."""
        self._wants_data = False
        self._stop()

    def request_scan(self) -> None:
        """Manual scan: always scans; resets a running schedule to FAST."""
        if self._state == ScanState.OFF:
            self._on_scan()
            return
        self._start_fast()

    def set_enabled(self, enabled: bool) -> None:
        """Manual switch; OFF overrides a view that wants data."""
        self._enabled = enabled
        if not enabled:
            self._stop()
        elif self._wants_data and self._state == ScanState.OFF:
            self._start_fast()

    def toggle(self) -> bool:
        """Flip the manual switch and return the new setting."""
        self.set_enabled(not self._enabled)
        return self._enabled

    def handle_tick(self, tick: ScanTick) -> bool:
        """Act on a timer tick.  Returns False if the tick was stale."""
        if tick.generation != self._generation or self._state == ScanState.OFF:
            return False
        self._timer = None
        self._on_scan()
        self._arm()
        return True

    def record_result(self, non_empty: bool) -> None:
        """Feed back whether a scheduled scan found anything."""
        if self._state != ScanState.FAST:
            return
        if not non_empty:
            self._streak = 0
            return
        self._streak += 1
        if self._streak >= self.slow_after:
            logger.debug("scan schedule: fast -> slow after %d results", self._streak)
            self._state = ScanState.SLOW
