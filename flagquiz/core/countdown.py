"""
Round countdown.

The countdown owns only its own timing state. It does not touch the session,
score, or hints: the session passes `on_expire` and reacts when it fires.

Usage:
    countdown = Countdown(scheduler, duration_ms=30_000, on_expire=session.submit)
    countdown.start()
    ...
    countdown.stop()           # freezes elapsed time
    countdown.elapsed_ms       # value handed to the score engine
"""

from __future__ import annotations

from collections.abc import Callable

from flagquiz.core.clock import Interval, Scheduler


class Countdown:
    """Fixed-length countdown driven by a Scheduler.

    Attributes:
        duration_ms: Total time allowed for the round.
        tick_ms:     How often expiry is checked.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        duration_ms: float = 30_000,
        tick_ms: float = 100,
        on_expire: Callable[[], None] | None = None,
    ) -> None:
        self._scheduler = scheduler
        self.duration_ms = float(duration_ms)
        self.tick_ms = float(tick_ms)
        self.on_expire = on_expire
        self._started_at: float | None = None
        self._elapsed = 0.0
        self._handle: Interval | None = None

    @property
    def running(self) -> bool:
        return self._handle is not None

    def start(self) -> None:
        """Start (or restart) from zero."""
        self.stop()
        self._started_at = self._scheduler.now_ms
        self._elapsed = 0.0
        self._handle = self._scheduler.every(self.tick_ms, self._tick)

    def _measure(self) -> float:
        if self._started_at is None:
            return self._elapsed
        return min(self.duration_ms, self._scheduler.now_ms - self._started_at)

    def _tick(self) -> None:
        self._elapsed = self._measure()
        if self._elapsed >= self.duration_ms:
            self.stop()
            if self.on_expire is not None:
                self.on_expire()

    def stop(self) -> None:
        """Stop without resetting elapsed time."""
        if self._handle is None:
            return
        self._elapsed = self._measure()
        self._handle.cancel()
        self._handle = None

    def reset(self) -> None:
        self.stop()
        self._started_at = None
        self._elapsed = 0.0

    @property
    def elapsed_ms(self) -> float:
        return self._measure() if self.running else self._elapsed

    @property
    def remaining_ms(self) -> float:
        return max(0.0, self.duration_ms - self.elapsed_ms)

    @property
    def progress(self) -> float:
        """Fraction of the round used, 0.0 to 1.0."""
        if self.duration_ms <= 0:
            return 1.0
        return min(1.0, self.elapsed_ms / self.duration_ms)

    @property
    def expired(self) -> bool:
        return self.elapsed_ms >= self.duration_ms
