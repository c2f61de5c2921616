from __future__ import annotations

from collections.abc import Callable
from enum import StrEnum

from flagquiz.core.clock import Interval, Scheduler

DEFAULT_IDLE_THRESHOLD_MS = 3_000
DEFAULT_CHECK_INTERVAL_MS = 500


class Activity(StrEnum):
    active = "active"
    idle = "idle"


class IdleMonitor:
    """Pointer-inactivity detector.

    Starts ACTIVE. A periodic check flips to IDLE once nothing has been recorded
    for `threshold_ms` and fires idle listeners once per idle episode. Recording
    activity while IDLE flips back and fires activity listeners.

    Listeners receive the idle time in ms (idle) or nothing (activity).
    """

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        threshold_ms: float = DEFAULT_IDLE_THRESHOLD_MS,
        check_interval_ms: float = DEFAULT_CHECK_INTERVAL_MS,
    ) -> None:
        self._scheduler = scheduler
        self.threshold_ms = threshold_ms
        self.check_interval_ms = check_interval_ms
        self.state = Activity.active
        self._last_activity_ms = scheduler.now_ms
        self._check: Interval | None = None
        self._idle_listeners: list[Callable[[float], None]] = []
        self._activity_listeners: list[Callable[[], None]] = []

    @property
    def running(self) -> bool:
        return self._check is not None

    @property
    def is_idle(self) -> bool:
        return self.state == Activity.idle

    def on_idle(self, listener: Callable[[float], None]) -> None:
        self._idle_listeners.append(listener)

    def on_activity(self, listener: Callable[[], None]) -> None:
        self._activity_listeners.append(listener)

    def clear_listeners(self) -> None:
        self._idle_listeners.clear()
        self._activity_listeners.clear()

    def start(self) -> None:
        if self._check is not None:
            return
        self._last_activity_ms = self._scheduler.now_ms
        self.state = Activity.active
        self._check = self._scheduler.every(self.check_interval_ms, self._poll)

    def stop(self) -> None:
        if self._check is not None:
            self._check.cancel()
            self._check = None

    def reset(self) -> None:
        self._last_activity_ms = self._scheduler.now_ms
        self.state = Activity.active

    def record_activity(self) -> None:
        self._last_activity_ms = self._scheduler.now_ms
        if self.state == Activity.idle:
            self.state = Activity.active
            for listener in list(self._activity_listeners):
                listener()

    def idle_time_ms(self) -> float:
        """Time since the last activity; 0 unless currently idle."""
        if self.state != Activity.idle:
            return 0.0
        return self._scheduler.now_ms - self._last_activity_ms

    def _poll(self) -> None:
        if self._check is None or self.state == Activity.idle:
            return
        elapsed = self._scheduler.now_ms - self._last_activity_ms
        if elapsed >= self.threshold_ms:
            self.state = Activity.idle
            for listener in list(self._idle_listeners):
                listener(elapsed)
