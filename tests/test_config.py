from __future__ import annotations

import pytest

from flagquiz.config import QuizSettings, settings_from_env


def test_defaults() -> None:
    s = QuizSettings()
    assert s.round_count == 10
    assert s.round_duration_ms == 30_000
    assert s.idle_threshold_ms == 3_000
    assert s.shortlist_size == 10
    assert s.daily_timezone == "Europe/Paris"
    assert s.daily_reset_hour == 9
    assert s.daily_history_days == 7


def test_settings_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FLAGQUIZ_ROUND_COUNT", "5")
    monkeypatch.setenv("FLAGQUIZ_HINTS_ENABLED", "false")
    monkeypatch.setenv("FLAGQUIZ_DAILY_TIMEZONE", "UTC")
    monkeypatch.setenv("FLAGQUIZ_SHORTLIST_SIZE", "  ")

    s = settings_from_env()
    assert s.round_count == 5
    assert s.hints_enabled is False
    assert s.daily_timezone == "UTC"
    assert s.shortlist_size == 10


def test_bad_integer_in_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FLAGQUIZ_ROUND_DURATION_MS", "thirty")
    with pytest.raises(ValueError, match="FLAGQUIZ_ROUND_DURATION_MS"):
        settings_from_env()
