from __future__ import annotations

import math

from flagquiz.api.models import RoundOutcome, RoundRecord, ScoreBreakdown

MAX_TIME_BONUS = 1000
MAX_HINT_BONUS = 500
CAPITAL_BONUS = 200
CAPITAL_THRESHOLD_M = 50_000
ROUND_DURATION_MS = 30_000


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def score_round(outcome: RoundOutcome, *, round_duration_ms: float = ROUND_DURATION_MS) -> ScoreBreakdown:
    """Points for one round.

    - time: up to 1000, linear down to 0 over the round duration
    - hints: up to 500, scaled down by hint progress
    - capital: 200 when the click is within 50 km of the capital, never for panel picks
      (a panel pick drops the marker on the country's centre, not where the player aimed)
    - panel picks halve the time and hint bonuses; `panel_penalty` is what was halved away
    """

    if not outcome.is_correct:
        return ScoreBreakdown()

    time_bonus = round_half_up(MAX_TIME_BONUS * max(0.0, 1 - outcome.time_elapsed_ms / round_duration_ms))
    hint_bonus = round_half_up(MAX_HINT_BONUS * max(0.0, 1 - outcome.hint_progress))

    distance = outcome.distance_to_capital_m
    near_capital = distance is not None and distance <= CAPITAL_THRESHOLD_M
    capital_bonus = CAPITAL_BONUS if near_capital and not outcome.used_shortlist_panel else 0

    panel_penalty = 0
    if outcome.used_shortlist_panel:
        halved_time = round_half_up(time_bonus * 0.5)
        halved_hint = round_half_up(hint_bonus * 0.5)
        # Sum of the two halving losses, so time + hint + penalty is the unhalved total.
        # Rounding (time + hint) / 2 as one value would be a point higher when either is odd.
        panel_penalty = (time_bonus - halved_time) + (hint_bonus - halved_hint)
        time_bonus, hint_bonus = halved_time, halved_hint

    return ScoreBreakdown(
        time_bonus=time_bonus,
        hint_bonus=hint_bonus,
        capital_bonus=capital_bonus,
        panel_penalty=panel_penalty,
        total=time_bonus + hint_bonus + capital_bonus,
    )


class SessionScore:
    """Running score for one session: total, correct answers, and the round recap."""

    def __init__(self) -> None:
        self.total = 0
        self.correct_count = 0
        self.history: list[RoundRecord] = []

    def add_round(self, record: RoundRecord) -> None:
        self.history.append(record)
        self.total += record.score.total
        if record.is_correct:
            self.correct_count += 1

    def reset(self) -> None:
        self.total = 0
        self.correct_count = 0
        self.history = []
