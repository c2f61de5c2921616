from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class QuizSettings:
    round_count: int = 10
    round_duration_ms: int = 30_000
    countdown_tick_ms: int = 100

    idle_threshold_ms: int = 3_000
    idle_check_interval_ms: int = 500
    hint_interval_ms: int = 3_000
    wrong_area_threshold_ms: int = 3_000
    shortlist_size: int = 10
    hints_enabled: bool = True

    # Daily puzzle rolls over at 09:00 Paris time.
    daily_timezone: str = "Europe/Paris"
    daily_reset_hour: int = 9
    daily_history_days: int = 7


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes"}


def settings_from_env() -> QuizSettings:
    d = QuizSettings()
    return QuizSettings(
        round_count=_env_int("FLAGQUIZ_ROUND_COUNT", d.round_count),
        round_duration_ms=_env_int("FLAGQUIZ_ROUND_DURATION_MS", d.round_duration_ms),
        countdown_tick_ms=_env_int("FLAGQUIZ_COUNTDOWN_TICK_MS", d.countdown_tick_ms),
        idle_threshold_ms=_env_int("FLAGQUIZ_IDLE_THRESHOLD_MS", d.idle_threshold_ms),
        idle_check_interval_ms=_env_int("FLAGQUIZ_IDLE_CHECK_INTERVAL_MS", d.idle_check_interval_ms),
        hint_interval_ms=_env_int("FLAGQUIZ_HINT_INTERVAL_MS", d.hint_interval_ms),
        wrong_area_threshold_ms=_env_int("FLAGQUIZ_WRONG_AREA_THRESHOLD_MS", d.wrong_area_threshold_ms),
        shortlist_size=_env_int("FLAGQUIZ_SHORTLIST_SIZE", d.shortlist_size),
        hints_enabled=_env_bool("FLAGQUIZ_HINTS_ENABLED", d.hints_enabled),
        daily_timezone=os.environ.get("FLAGQUIZ_DAILY_TIMEZONE", d.daily_timezone),
        daily_reset_hour=_env_int("FLAGQUIZ_DAILY_RESET_HOUR", d.daily_reset_hour),
        daily_history_days=_env_int("FLAGQUIZ_DAILY_HISTORY_DAYS", d.daily_history_days),
    )
