from __future__ import annotations

import pytest

from flagquiz.core.clock import Scheduler
from flagquiz.core.countdown import Countdown


def test_intervals_fire_in_due_order() -> None:
    sched = Scheduler()
    calls: list[tuple[str, float]] = []
    sched.every(300, lambda: calls.append(("slow", sched.now_ms)))
    sched.every(100, lambda: calls.append(("fast", sched.now_ms)))

    sched.advance(300)

    assert calls == [("fast", 100.0), ("fast", 200.0), ("slow", 300.0), ("fast", 300.0)]
    assert sched.now_ms == 300.0


def test_cancel_stops_an_interval() -> None:
    sched = Scheduler()
    calls: list[float] = []
    handle = sched.every(100, lambda: calls.append(sched.now_ms))
    sched.advance(250)
    handle.cancel()
    handle.cancel()
    sched.advance(1000)
    assert calls == [100.0, 200.0]
    assert sched.active_count == 0


def test_callback_can_cancel_itself_and_register_new_work() -> None:
    sched = Scheduler()
    calls: list[str] = []

    def _once() -> None:
        calls.append(f"once@{sched.now_ms:.0f}")
        handle.cancel()
        sched.every(50, lambda: calls.append(f"child@{sched.now_ms:.0f}"))

    handle = sched.every(100, _once)
    sched.advance(200)
    assert calls == ["once@100", "child@150", "child@200"]


def test_cancel_all_and_bad_arguments() -> None:
    sched = Scheduler()
    sched.every(10, lambda: None)
    sched.every(20, lambda: None)
    assert sched.active_count == 2
    sched.cancel_all()
    assert sched.active_count == 0

    with pytest.raises(ValueError):
        sched.every(0, lambda: None)
    with pytest.raises(ValueError):
        sched.advance(-1)


def test_advance_to_the_past_is_a_no_op() -> None:
    sched = Scheduler(start_ms=500)
    sched.advance_to(100)
    assert sched.now_ms == 500.0


def test_countdown_expires_once_at_duration() -> None:
    sched = Scheduler()
    expired: list[float] = []
    cd = Countdown(sched, duration_ms=1_000, tick_ms=100, on_expire=lambda: expired.append(sched.now_ms))
    cd.start()

    sched.advance(450)
    assert cd.running
    assert cd.elapsed_ms == 450.0
    assert cd.remaining_ms == 550.0
    assert cd.progress == pytest.approx(0.45)

    sched.advance(5_000)
    assert expired == [1_000.0]
    assert not cd.running
    assert cd.expired
    assert cd.elapsed_ms == 1_000.0
    assert cd.remaining_ms == 0.0
    assert sched.active_count == 0


def test_countdown_stop_freezes_elapsed() -> None:
    sched = Scheduler()
    cd = Countdown(sched, duration_ms=30_000)
    cd.start()
    sched.advance(1_234)
    cd.stop()
    sched.advance(10_000)
    assert cd.elapsed_ms == 1_234.0
    assert not cd.expired
    assert sched.active_count == 0


def test_countdown_restart_and_reset() -> None:
    sched = Scheduler()
    cd = Countdown(sched, duration_ms=1_000)
    cd.start()
    sched.advance(700)
    cd.start()
    assert sched.active_count == 1
    assert cd.elapsed_ms == 0.0
    sched.advance(300)
    assert cd.elapsed_ms == 300.0

    cd.reset()
    assert not cd.running
    assert cd.elapsed_ms == 0.0
    assert cd.remaining_ms == 1_000.0
