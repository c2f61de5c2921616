from __future__ import annotations

import itertools
from collections.abc import Callable


class Interval:
    """Handle for a repeating callback registered on a Scheduler."""

    __slots__ = ("interval_ms", "callback", "next_due_ms", "seq", "active", "_scheduler")

    def __init__(self, scheduler: Scheduler, interval_ms: float, callback: Callable[[], None], start_ms: float, seq: int) -> None:
        self._scheduler = scheduler
        self.interval_ms = interval_ms
        self.callback = callback
        self.next_due_ms = start_ms + interval_ms
        self.seq = seq
        self.active = True

    def cancel(self) -> None:
        if self.active:
            self.active = False
            self._scheduler._intervals.discard(self)


class Scheduler:
    """Virtual-time tick source.

    Nothing here reads the wall clock: the host pumps elapsed time with
    `advance()` (a frame loop passes real deltas, tests pass fixed steps).
    Due callbacks fire in due-time order, ties broken by registration order.
    A callback may cancel intervals or register new ones; new intervals are
    timed from the moment they were registered.
    """

    def __init__(self, *, start_ms: float = 0.0) -> None:
        self._now_ms = float(start_ms)
        self._intervals: set[Interval] = set()
        self._seq = itertools.count()

    @property
    def now_ms(self) -> float:
        return self._now_ms

    @property
    def active_count(self) -> int:
        return len(self._intervals)

    def every(self, interval_ms: float, callback: Callable[[], None]) -> Interval:
        if interval_ms <= 0:
            raise ValueError("interval_ms must be > 0")
        handle = Interval(self, float(interval_ms), callback, self._now_ms, next(self._seq))
        self._intervals.add(handle)
        return handle

    def cancel_all(self) -> None:
        for handle in list(self._intervals):
            handle.cancel()

    def _next_due(self, until_ms: float) -> Interval | None:
        due = [h for h in self._intervals if h.next_due_ms <= until_ms]
        if not due:
            return None
        return min(due, key=lambda h: (h.next_due_ms, h.seq))

    def advance(self, delta_ms: float) -> None:
        if delta_ms < 0:
            raise ValueError("delta_ms must be >= 0")
        self.advance_to(self._now_ms + delta_ms)

    def advance_to(self, target_ms: float) -> None:
        if target_ms < self._now_ms:
            return
        while True:
            handle = self._next_due(target_ms)
            if handle is None:
                break
            self._now_ms = handle.next_due_ms
            handle.next_due_ms += handle.interval_ms
            handle.callback()
        self._now_ms = target_ms
