from __future__ import annotations

import fakeredis
import pytest

from flagquiz.api.models import DailyResult, RoundRecord
from flagquiz.daily_store import (
    DAILY_KEY_PREFIX,
    get_daily_result,
    has_completed,
    last_played,
    list_daily_results,
    save_daily_result,
)


@pytest.fixture()
def r() -> fakeredis.FakeRedis:
    return fakeredis.FakeRedis(decode_responses=True)


def _result(date: str, score: int = 1000, completed: bool = True) -> DailyResult:
    return DailyResult(
        date=date,
        completed=completed,
        score=score,
        correct_count=1,
        round_history=[RoundRecord(round_number=1, target_code="FR", target_name="France", is_correct=True)],
    )


def test_save_and_get(r: fakeredis.FakeRedis) -> None:
    save_daily_result(r=r, player_id="p1", result=_result("2024-01-15", score=1234))

    got = get_daily_result(r=r, player_id="p1", date="2024-01-15")
    assert got is not None
    assert got.score == 1234
    assert got.round_history[0].target_code == "FR"
    assert has_completed(r=r, player_id="p1", date="2024-01-15")
    assert last_played(r=r, player_id="p1") == "2024-01-15"
    assert r.hget(f"{DAILY_KEY_PREFIX}p1", "2024-01-15") is not None


def test_missing_results(r: fakeredis.FakeRedis) -> None:
    assert get_daily_result(r=r, player_id="p1", date="2024-01-15") is None
    assert not has_completed(r=r, player_id="p1", date="2024-01-15")
    assert last_played(r=r, player_id="p1") is None
    assert list_daily_results(r=r, player_id="p1") == []


def test_abandoned_daily_is_not_completed(r: fakeredis.FakeRedis) -> None:
    save_daily_result(r=r, player_id="p1", result=_result("2024-01-15", completed=False))
    assert not has_completed(r=r, player_id="p1", date="2024-01-15")


def test_history_is_pruned_to_seven_dates(r: fakeredis.FakeRedis) -> None:
    for day in range(1, 11):
        save_daily_result(r=r, player_id="p1", result=_result(f"2024-01-{day:02d}", score=day))

    results = list_daily_results(r=r, player_id="p1")
    assert [x.date for x in results] == [f"2024-01-{d:02d}" for d in range(10, 3, -1)]
    assert get_daily_result(r=r, player_id="p1", date="2024-01-03") is None
    assert last_played(r=r, player_id="p1") == "2024-01-10"


def test_custom_history_length(r: fakeredis.FakeRedis) -> None:
    for day in range(1, 5):
        save_daily_result(r=r, player_id="p1", result=_result(f"2024-02-{day:02d}"), max_history_days=2)
    assert [x.date for x in list_daily_results(r=r, player_id="p1")] == ["2024-02-04", "2024-02-03"]


def test_players_are_isolated(r: fakeredis.FakeRedis) -> None:
    save_daily_result(r=r, player_id="p1", result=_result("2024-01-15"))
    assert get_daily_result(r=r, player_id="p2", date="2024-01-15") is None


def test_unreadable_entry_is_discarded(r: fakeredis.FakeRedis) -> None:
    save_daily_result(r=r, player_id="p1", result=_result("2024-01-15"))
    r.hset(f"{DAILY_KEY_PREFIX}p1", "2024-01-14", "{not json")

    assert get_daily_result(r=r, player_id="p1", date="2024-01-14") is None
    assert [x.date for x in list_daily_results(r=r, player_id="p1")] == ["2024-01-15"]


@pytest.mark.parametrize("player_id", ["", "   ", "x" * 65])
def test_invalid_player_id(r: fakeredis.FakeRedis, player_id: str) -> None:
    with pytest.raises(ValueError):
        save_daily_result(r=r, player_id=player_id, result=_result("2024-01-15"))
