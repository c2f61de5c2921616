from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal

logger = logging.getLogger(__name__)

EventType = Literal[
    "SESSION_STARTED",
    "TARGET_SET",
    "HINT_REVEALED",
    "CANDIDATE_ELIMINATED",
    "WRONG_AREA",
    "SELECTION_PLACED",
    "ROUND_RESOLVED",
    "TARGET_SHOWN",
    "SESSION_ENDED",
]


@dataclass(frozen=True, slots=True)
class GameEvent:
    type: EventType
    round_number: int
    payload: dict[str, Any]
    # Scheduler time, not wall clock, so replays are deterministic.
    at_ms: float


Listener = Callable[[GameEvent], None]


class EventBus:
    """Synchronous observer channel from the engine to its renderer.

    Contract:
      - events are emitted after the state change they describe;
      - listeners run in subscription order, on the caller's stack;
      - one event per transition (the engine never re-emits a stage).

    A listener that raises is logged and skipped so one broken renderer
    cannot wedge round state.
    """

    def __init__(self) -> None:
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def emit(self, event: GameEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("event listener failed for %s", event.type)


class EventRecorder:
    """Listener that keeps every event; handy for tests and replays."""

    def __init__(self) -> None:
        self.events: list[GameEvent] = []

    def __call__(self, event: GameEvent) -> None:
        self.events.append(event)

    def of_type(self, type: EventType) -> list[GameEvent]:
        return [e for e in self.events if e.type == type]

    def types(self) -> list[str]:
        return [e.type for e in self.events]
