from __future__ import annotations

import logging
from collections.abc import Callable, Container, Sequence
from dataclasses import dataclass, replace
from typing import Any, Literal

from statemachine import State, StateMachine

from flagquiz.api.models import Country, HintStage, RoundTarget
from flagquiz.core.clock import Interval, Scheduler
from flagquiz.core.events import EventBus, EventType, GameEvent
from flagquiz.core.geometry import BBox
from flagquiz.core.rng import RandomSource

logger = logging.getLogger(__name__)

NextHint = Literal["continent", "candidates", "elimination"]

CONTINENT_WEIGHT = 0.2
CANDIDATES_WEIGHT = 0.3
ELIMINATION_WEIGHT = 0.5


@dataclass(slots=True)
class HintState:
    continent_revealed: bool = False
    candidates_revealed: bool = False
    elimination_started: bool = False
    eliminated_count: int = 0
    total_candidates: int = 0

    def progress(self) -> float:
        """Share of the available hints used, 0.0 (none) to 1.0 (everything)."""

        p = 0.0
        if self.continent_revealed:
            p += CONTINENT_WEIGHT
        if self.candidates_revealed:
            p += CANDIDATES_WEIGHT
        if self.elimination_started and self.total_candidates > 1:
            p += ELIMINATION_WEIGHT * (self.eliminated_count / (self.total_candidates - 1))
        return min(1.0, max(0.0, p))


class HintFSM(StateMachine):
    """One-way hint stages for a single round."""

    hidden = State(HintStage.none.value, value=HintStage.none.value, initial=True)
    continent = State(HintStage.continent.value, value=HintStage.continent.value)
    candidates = State(HintStage.candidates.value, value=HintStage.candidates.value)
    eliminating = State(HintStage.eliminating.value, value=HintStage.eliminating.value)
    exhausted = State(HintStage.exhausted.value, value=HintStage.exhausted.value, final=True)

    reveal_continent = hidden.to(continent)
    reveal_candidates = continent.to(candidates)
    start_elimination = candidates.to(eliminating)
    eliminate = eliminating.to.itself()
    exhaust = eliminating.to(exhausted)

    @property
    def stage(self) -> HintStage:
        return HintStage(str(self.current_state.value))


def build_shortlist(
    *,
    target: RoundTarget,
    countries: Sequence[Country],
    rng: RandomSource,
    size: int = 10,
    available: Container[str] | None = None,
) -> tuple[list[str], list[str]]:
    """Return (continent_codes, shortlist).

    The shortlist is the target plus up to `size - 1` same-continent decoys, in
    shuffled order. Decoys are limited to `available` codes (countries that can
    actually be highlighted) when given.
    """

    continent_codes = [
        c.code
        for c in countries
        if c.continent == target.continent and (available is None or c.code in available)
    ]
    others = [code for code in continent_codes if code != target.code]
    rng.shuffle(others)
    shortlist = [target.code, *others[: max(0, size - 1)]]
    rng.shuffle(shortlist)
    return continent_codes, shortlist


class HintEngine:
    """Drives hint stages from idle/activity signals for the current round.

    - An idle signal performs one step right away, then keeps stepping every
      `hint_interval_ms` while the player stays idle.
    - Steps are never closer together than `min_interval_ms`.
    - Activity cancels the repeating step and the wrong-area check; stages
      already reached stay reached.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        bus: EventBus,
        *,
        min_interval_ms: float = 3_000,
        hint_interval_ms: float = 3_000,
        wrong_area_threshold_ms: float = 3_000,
        wrong_area_check_ms: float = 500,
        shortlist_size: int = 10,
        enabled: bool = True,
        target_bbox: Callable[[str], BBox | None] | None = None,
    ) -> None:
        self._scheduler = scheduler
        self._bus = bus
        self.min_interval_ms = min_interval_ms
        self.hint_interval_ms = hint_interval_ms
        self.wrong_area_threshold_ms = wrong_area_threshold_ms
        self.wrong_area_check_ms = wrong_area_check_ms
        self.shortlist_size = shortlist_size
        self.enabled = enabled
        self._target_bbox = target_bbox

        self._fsm = HintFSM()
        self._state = HintState()
        self.target: RoundTarget | None = None
        self.round_number = 0
        self.continent_codes: list[str] = []
        self.shortlist: list[str] = []
        self.eliminated: list[str] = []
        self.active = False

        self._last_step_ms: float | None = None
        self._repeat: Interval | None = None
        self._wrong_area_check: Interval | None = None
        self._wrong_area_ms = 0.0
        self._viewport: BBox | None = None
        self.user_moved_view = False

    # ── Round lifecycle ───────────────────────────────────────────────────────

    def set_target(
        self,
        target: RoundTarget,
        *,
        countries: Sequence[Country],
        rng: RandomSource,
        round_number: int,
        available: Container[str] | None = None,
    ) -> None:
        self.stop()
        self.target = target
        self.round_number = round_number
        self.continent_codes, self.shortlist = build_shortlist(
            target=target,
            countries=countries,
            rng=rng,
            size=self.shortlist_size,
            available=available,
        )
        self.eliminated = []
        self._fsm = HintFSM()
        self._state = HintState(total_candidates=len(self.shortlist))
        self._last_step_ms = None
        self._viewport = None
        self.user_moved_view = False

    def start(self) -> None:
        self.active = True

    def stop(self) -> None:
        self.active = False
        self.clear_timers()

    def clear_timers(self) -> None:
        if self._repeat is not None:
            self._repeat.cancel()
            self._repeat = None
        if self._wrong_area_check is not None:
            self._wrong_area_check.cancel()
            self._wrong_area_check = None
        self._wrong_area_ms = 0.0

    def set_enabled(self, enabled: bool) -> None:
        self.enabled = enabled
        if not enabled:
            self.clear_timers()

    # ── Reads ─────────────────────────────────────────────────────────────────

    @property
    def stage(self) -> HintStage:
        return self._fsm.stage

    @property
    def state(self) -> HintState:
        return replace(self._state)

    def progress(self) -> float:
        return self._state.progress()

    def remaining_candidates(self) -> list[str]:
        return [c for c in self.shortlist if c not in self.eliminated]

    def next_hint(self) -> NextHint | None:
        stage = self.stage
        if stage == HintStage.none:
            return "continent"
        if stage == HintStage.continent:
            return "candidates"
        if stage in (HintStage.candidates, HintStage.eliminating):
            return "elimination"
        return None

    def has_more_hints(self) -> bool:
        return self.next_hint() is not None

    # ── Signals ───────────────────────────────────────────────────────────────

    def on_idle(self, idle_ms: float = 0.0) -> None:
        if not self.active or not self.enabled or self.target is None:
            return
        self.advance()
        if self._repeat is None and self.has_more_hints():
            self._repeat = self._scheduler.every(self.hint_interval_ms, self._on_repeat)
        if self._wrong_area_check is None:
            self._wrong_area_ms = 0.0
            self._wrong_area_check = self._scheduler.every(self.wrong_area_check_ms, self._on_wrong_area_check)

    def on_activity(self) -> None:
        self.clear_timers()

    def update_viewport(self, view: BBox, *, manual: bool = True) -> None:
        self._viewport = view
        if manual:
            self.user_moved_view = True

    def reset_view(self) -> None:
        """Player is back at the world view: auto-zoom resumes, wrong-area counting stops."""

        self._viewport = None
        self.user_moved_view = False
        self._wrong_area_ms = 0.0

    def _on_repeat(self) -> None:
        if not self.active:
            self.clear_timers()
            return
        self.advance()
        if not self.has_more_hints() and self._repeat is not None:
            self._repeat.cancel()
            self._repeat = None

    # ── Stepping ──────────────────────────────────────────────────────────────

    def advance(self) -> NextHint | None:
        """Perform the next hint step if the minimum interval allows it."""

        nxt = self.next_hint()
        if nxt is None or self.target is None:
            return None

        now = self._scheduler.now_ms
        if self._last_step_ms is not None and now - self._last_step_ms < self.min_interval_ms:
            logger.debug("round %d: hint step held back (%.0fms since last)", self.round_number, now - self._last_step_ms)
            return None
        self._last_step_ms = now

        if nxt == "continent":
            self._fsm.reveal_continent()
            self._state.continent_revealed = True
            self._emit(
                "HINT_REVEALED",
                {
                    "stage": HintStage.continent.value,
                    "continent": self.target.continent,
                    "codes": list(self.continent_codes),
                    "auto_zoom": not self.user_moved_view,
                },
            )
        elif nxt == "candidates":
            self._fsm.reveal_candidates()
            self._state.candidates_revealed = True
            self._emit(
                "HINT_REVEALED",
                {
                    "stage": HintStage.candidates.value,
                    "codes": list(self.shortlist),
                    "auto_zoom": not self.user_moved_view,
                },
            )
        else:
            if self.stage == HintStage.candidates:
                self._fsm.start_elimination()
                self._state.elimination_started = True
            self._eliminate_next()
        return nxt

    def _eliminate_next(self) -> None:
        assert self.target is not None
        decoys = [c for c in self.remaining_candidates() if c != self.target.code]
        if decoys:
            code = decoys[0]
            self.eliminated.append(code)
            self._state.eliminated_count += 1
            self._fsm.eliminate()
            self._emit(
                "CANDIDATE_ELIMINATED",
                {"code": code, "remaining": self.remaining_candidates()},
            )
        if len(decoys) <= 1:
            # Only the target is left highlighted.
            self._fsm.exhaust()

    # ── Wrong area ────────────────────────────────────────────────────────────

    def _on_wrong_area_check(self) -> None:
        if not self.active or not self.user_moved_view or self.target is None:
            self._wrong_area_ms = 0.0
            return
        if self._target_in_view():
            self._wrong_area_ms = 0.0
            return
        self._wrong_area_ms += self.wrong_area_check_ms
        if self._wrong_area_ms >= self.wrong_area_threshold_ms:
            self._wrong_area_ms = 0.0
            self._emit("WRONG_AREA", {"target_code": self.target.code})

    def _target_in_view(self) -> bool:
        if self._viewport is None or self._target_bbox is None or self.target is None:
            return True
        bbox = self._target_bbox(self.target.code)
        if bbox is None:
            return True
        return self._viewport.intersects(bbox)

    def _emit(self, type: EventType, payload: dict[str, Any]) -> None:
        self._bus.emit(
            GameEvent(type=type, round_number=self.round_number, payload=payload, at_ms=self._scheduler.now_ms)
        )
