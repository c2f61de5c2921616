from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from statemachine import State, StateMachine

from flagquiz.api.models import (
    DailyResult,
    GameMode,
    RoundOutcome,
    RoundRecord,
    RoundTarget,
    SessionPhase,
)
from flagquiz.config import QuizSettings
from flagquiz.core.clock import Scheduler
from flagquiz.core.countdown import Countdown
from flagquiz.core.events import EventBus, EventType, GameEvent
from flagquiz.core.geometry import BBox, haversine_m
from flagquiz.core.hints import HintEngine, HintState
from flagquiz.core.idle import IdleMonitor
from flagquiz.core.rng import RandomSource, SeededRandom, UnseededRandom
from flagquiz.core.scoring import SessionScore, score_round
from flagquiz.core.seeds import challenge_id_to_seed, daily_puzzle_date, date_to_seed, is_valid_challenge_id
from flagquiz.core.sequencer import Sequencer
from flagquiz.dataset.registry import CountryCatalog

logger = logging.getLogger(__name__)

# Spreads per-round shortlist seeds away from the sequence seed.
_ROUND_SEED_STEP = 0x9E3779B9


class SessionFSM(StateMachine):
    """Session phases: idle -> round_active -> round_result -> (round_active | session_end)."""

    idle = State(SessionPhase.idle.value, value=SessionPhase.idle.value, initial=True)
    round_active = State(SessionPhase.round_active.value, value=SessionPhase.round_active.value)
    round_result = State(SessionPhase.round_result.value, value=SessionPhase.round_result.value)
    session_end = State(SessionPhase.session_end.value, value=SessionPhase.session_end.value, final=True)

    begin_round = idle.to(round_active) | round_result.to(round_active)
    resolve = round_active.to(round_result)
    finish = idle.to(session_end) | round_active.to(session_end) | round_result.to(session_end)

    @property
    def phase(self) -> SessionPhase:
        return SessionPhase(str(self.current_state.value))


@dataclass(frozen=True, slots=True)
class Selection:
    """Pending answer for the current round. `code` is None for an ocean click."""

    code: str | None
    lat: float
    lon: float
    via_panel: bool = False


class QuizSession:
    """One player's session: ten timed rounds over a country catalog.

    Everything the session needs is passed in (catalog, settings, tick source,
    event bus); nothing is shared between sessions.

    Flow per round:
      - `next_round()` picks the target, resets hints/idle, starts the countdown
      - `select_at()` / `select_from_panel()` set or replace the pending answer
      - `submit()` or countdown expiry resolves the round exactly once
    """

    def __init__(
        self,
        catalog: CountryCatalog,
        *,
        mode: GameMode = GameMode.free,
        seed: int | None = None,
        continent: str | None = None,
        settings: QuizSettings | None = None,
        scheduler: Scheduler | None = None,
        bus: EventBus | None = None,
        date: str | None = None,
        challenge_id: str | None = None,
    ) -> None:
        if mode != GameMode.free and seed is None:
            raise ValueError(f"{mode.value} sessions need a seed")

        self.catalog = catalog
        self.mode = mode
        self.seed = seed
        self.continent = continent
        self.settings = settings or QuizSettings()
        self.scheduler = scheduler or Scheduler()
        self.bus = bus or EventBus()
        self.date = date
        self.challenge_id = challenge_id

        s = self.settings
        self.score = SessionScore()
        self.countdown = Countdown(
            self.scheduler,
            duration_ms=s.round_duration_ms,
            tick_ms=s.countdown_tick_ms,
            on_expire=self._on_countdown_expired,
        )
        self.idle = IdleMonitor(
            self.scheduler,
            threshold_ms=s.idle_threshold_ms,
            check_interval_ms=s.idle_check_interval_ms,
        )
        self.hints = HintEngine(
            self.scheduler,
            self.bus,
            min_interval_ms=s.hint_interval_ms,
            hint_interval_ms=s.hint_interval_ms,
            wrong_area_threshold_ms=s.wrong_area_threshold_ms,
            wrong_area_check_ms=s.idle_check_interval_ms,
            shortlist_size=s.shortlist_size,
            enabled=s.hints_enabled,
            target_bbox=self._bbox_for,
        )
        self.idle.on_idle(self._on_idle)
        self.idle.on_activity(self._on_activity)

        self._fsm = SessionFSM()
        self._rng: RandomSource = self._make_rng()
        self._sequencer = Sequencer(catalog.countries, rng=self._rng, continent=continent)
        self.round_number = 0
        self.target: RoundTarget | None = None
        self.selection: Selection | None = None
        self.completed = False
        self._resolved = False

    # ── Constructors ──────────────────────────────────────────────────────────

    @classmethod
    def free_play(cls, catalog: CountryCatalog, **kwargs: Any) -> QuizSession:
        return cls(catalog, mode=GameMode.free, **kwargs)

    @classmethod
    def daily(
        cls,
        catalog: CountryCatalog,
        *,
        date: str | None = None,
        now: datetime | None = None,
        settings: QuizSettings | None = None,
        **kwargs: Any,
    ) -> QuizSession:
        s = settings or QuizSettings()
        day = date or daily_puzzle_date(now=now, tz=s.daily_timezone, reset_hour=s.daily_reset_hour)
        return cls(catalog, mode=GameMode.daily, seed=date_to_seed(day), date=day, settings=s, **kwargs)

    @classmethod
    def challenge(cls, catalog: CountryCatalog, *, challenge_id: str, **kwargs: Any) -> QuizSession:
        if not is_valid_challenge_id(challenge_id):
            raise ValueError(f"Invalid challenge id: {challenge_id!r}")
        return cls(
            catalog,
            mode=GameMode.challenge,
            seed=challenge_id_to_seed(challenge_id),
            challenge_id=challenge_id,
            **kwargs,
        )

    def _make_rng(self) -> RandomSource:
        if self.seed is None:
            return UnseededRandom()
        return SeededRandom(self.seed)

    def _shortlist_rng(self) -> RandomSource:
        if self.seed is None:
            return self._rng
        return SeededRandom(self.seed + self.round_number * _ROUND_SEED_STEP)

    # ── Reads ─────────────────────────────────────────────────────────────────

    @property
    def phase(self) -> SessionPhase:
        return self._fsm.phase

    @property
    def round_count(self) -> int:
        return self.settings.round_count

    @property
    def remaining_ms(self) -> float:
        return self.countdown.remaining_ms

    @property
    def hint_state(self) -> HintState:
        return self.hints.state

    @property
    def history(self) -> list[RoundRecord]:
        return list(self.score.history)

    # ── Session lifecycle ─────────────────────────────────────────────────────

    def start(self) -> RoundTarget | None:
        """(Re)start the session from round 1."""

        self._cancel_round_timers()
        self._fsm = SessionFSM()
        self._rng = self._make_rng()
        self._sequencer = Sequencer(self.catalog.countries, rng=self._rng, continent=self.continent)
        self.score.reset()
        self.round_number = 0
        self.target = None
        self.selection = None
        self.completed = False
        self._resolved = False

        logger.info("session started: mode=%s seed=%s continent=%s", self.mode.value, self.seed, self.continent)
        self._emit(
            "SESSION_STARTED",
            {
                "mode": self.mode.value,
                "date": self.date,
                "challenge_id": self.challenge_id,
                "continent": self.continent,
                "round_count": self.round_count,
            },
        )
        return self.next_round()

    def next_round(self) -> RoundTarget | None:
        """Start the next round, or end the session when none is left."""

        if self.phase not in (SessionPhase.idle, SessionPhase.round_result):
            raise ValueError(f"Cannot start a round while {self.phase.value}")

        self._cancel_round_timers()

        if self.round_number >= self.round_count:
            self._end(completed=True)
            return None

        pick = self._sequencer.next_pick(self.round_number)
        if pick is None:
            logger.info("country set exhausted after %d rounds", self.round_number)
            self._end(completed=True)
            return None

        self.round_number += 1
        self.target = RoundTarget(code=pick.code, continent=pick.continent)
        self.selection = None
        self._resolved = False

        self.hints.set_target(
            self.target,
            countries=self.catalog.countries,
            rng=self._shortlist_rng(),
            round_number=self.round_number,
            available=self.catalog.hit_tester if len(self.catalog.hit_tester) else None,
        )
        self.hints.start()
        self.idle.reset()
        self.idle.start()
        self.countdown.start()
        self._fsm.begin_round()

        self._emit(
            "TARGET_SET",
            {
                "code": pick.code,
                "continent": pick.continent,
                "flag": pick.flag,
                "round_count": self.round_count,
            },
        )
        return self.target

    def leave(self) -> None:
        """Abandon the session; cancels every pending timer."""

        if self.phase == SessionPhase.session_end:
            return
        self._cancel_round_timers()
        self._end(completed=False)

    def _end(self, *, completed: bool) -> None:
        self.completed = completed
        self._fsm.finish()
        logger.info(
            "session ended: rounds=%d score=%d correct=%d completed=%s",
            self.round_number,
            self.score.total,
            self.score.correct_count,
            completed,
        )
        payload: dict[str, Any] = {
            "completed": completed,
            "score": self.score.total,
            "correct_count": self.score.correct_count,
            "rounds_played": len(self.score.history),
        }
        daily = self.daily_result()
        if daily is not None:
            payload["daily_result"] = daily.model_dump(mode="json")
        self._emit("SESSION_ENDED", payload)

    def _cancel_round_timers(self) -> None:
        self.countdown.stop()
        self.idle.stop()
        self.hints.stop()

    # ── Player input ──────────────────────────────────────────────────────────

    def record_activity(self) -> None:
        if self.phase == SessionPhase.round_active:
            self.idle.record_activity()

    def report_viewport(self, view: BBox, *, manual: bool = True) -> None:
        """Map view changed; `manual` is False for engine-driven auto-zoom."""

        if self.phase == SessionPhase.round_active:
            self.hints.update_viewport(view, manual=manual)

    def report_world_view(self) -> None:
        if self.phase == SessionPhase.round_active:
            self.hints.reset_view()

    def set_hints_enabled(self, enabled: bool) -> None:
        self.hints.set_enabled(enabled)

    def select_at(self, lat: float, lon: float) -> Selection | None:
        """Map click. An ocean click is a legal (wrong) answer."""

        if self.phase != SessionPhase.round_active:
            logger.debug("ignoring click outside an active round (%s)", self.phase.value)
            return None
        self.idle.record_activity()
        code = self.catalog.hit_tester.resolve(lat, lon)
        return self._place(Selection(code=code, lat=lat, lon=lon, via_panel=False))

    def select_from_panel(self, code: str) -> Selection | None:
        """Shortlist pick; the marker goes to the country's bounding-box centre."""

        if self.phase != SessionPhase.round_active:
            logger.debug("ignoring panel pick outside an active round (%s)", self.phase.value)
            return None
        feature = self.catalog.hit_tester.get(code)
        if feature is None or feature.bbox is None:
            raise ValueError(f"Unknown country code: {code}")
        self.idle.record_activity()
        lat, lon = feature.bbox.center()
        return self._place(Selection(code=code, lat=lat, lon=lon, via_panel=True))

    def _place(self, selection: Selection) -> Selection:
        self.selection = selection
        self._emit(
            "SELECTION_PLACED",
            {"code": selection.code, "lat": selection.lat, "lon": selection.lon, "via_panel": selection.via_panel},
        )
        return selection

    # ── Resolution ────────────────────────────────────────────────────────────

    def submit(self) -> RoundRecord | None:
        return self._resolve(timed_out=False)

    def _on_countdown_expired(self) -> None:
        self._resolve(timed_out=True)

    def _resolve(self, *, timed_out: bool) -> RoundRecord | None:
        if self.phase != SessionPhase.round_active or self._resolved or self.target is None:
            logger.debug("ignoring late submission in round %d (%s)", self.round_number, self.phase.value)
            return None
        self._resolved = True

        self._cancel_round_timers()
        elapsed = self.countdown.elapsed_ms
        hint_progress = self.hints.progress()

        target = self.target
        country = self.catalog.get(target.code)
        selection = self.selection
        guessed = selection.code if selection is not None else None
        is_correct = guessed is not None and guessed == target.code

        distance: float | None = None
        if selection is not None and country is not None and country.capital_coords is not None:
            distance = haversine_m((selection.lat, selection.lon), country.capital_coords)

        outcome = RoundOutcome(
            is_correct=is_correct,
            time_elapsed_ms=elapsed,
            hint_progress=hint_progress,
            distance_to_capital_m=distance,
            used_shortlist_panel=bool(selection and selection.via_panel),
        )
        breakdown = score_round(outcome, round_duration_ms=self.settings.round_duration_ms)

        guessed_country = self.catalog.get(guessed) if guessed else None
        record = RoundRecord(
            round_number=self.round_number,
            target_code=target.code,
            target_name=country.display_name() if country else target.code,
            target_flag=country.flag if country else None,
            guessed_code=guessed,
            guessed_name=guessed_country.display_name() if guessed_country else None,
            is_correct=is_correct,
            timed_out=timed_out,
            used_shortlist_panel=outcome.used_shortlist_panel,
            time_elapsed_ms=elapsed,
            hint_progress=hint_progress,
            score=breakdown,
        )
        self.score.add_round(record)
        self._fsm.resolve()

        self._emit("ROUND_RESOLVED", {"record": record.model_dump(mode="json"), "total_score": self.score.total})
        self._emit("TARGET_SHOWN", {"code": target.code})
        return record

    # ── Persistence boundary ──────────────────────────────────────────────────

    def daily_result(self) -> DailyResult | None:
        if self.mode != GameMode.daily or self.date is None or self.phase != SessionPhase.session_end:
            return None
        return DailyResult(
            date=self.date,
            completed=self.completed,
            score=self.score.total,
            correct_count=self.score.correct_count,
            round_history=self.history,
        )

    # ── Internals ─────────────────────────────────────────────────────────────

    def _on_idle(self, idle_ms: float) -> None:
        if self.phase == SessionPhase.round_active:
            self.hints.on_idle(idle_ms)

    def _on_activity(self) -> None:
        self.hints.on_activity()

    def _bbox_for(self, code: str) -> BBox | None:
        feature = self.catalog.hit_tester.get(code)
        return feature.bbox if feature is not None else None

    def _emit(self, type: EventType, payload: dict[str, Any]) -> None:
        self.bus.emit(GameEvent(type=type, round_number=self.round_number, payload=payload, at_ms=self.scheduler.now_ms))
