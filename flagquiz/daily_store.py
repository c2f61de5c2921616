from __future__ import annotations

import logging

import redis
from pydantic import ValidationError

from flagquiz.api.models import DailyResult

logger = logging.getLogger(__name__)

DAILY_KEY_PREFIX = "flagquiz:daily:"  # + {player_id}
LAST_PLAYED_FIELD = "_last_played"
MAX_HISTORY_DAYS = 7


def _daily_key(player_id: str) -> str:
    return f"{DAILY_KEY_PREFIX}{player_id}"


def validate_player_id(player_id: str) -> None:
    if not player_id or not player_id.strip():
        raise ValueError("player_id is required")
    if len(player_id) > 64:
        raise ValueError("player_id must be at most 64 characters")


def save_daily_result(
    *,
    r: redis.Redis,
    player_id: str,
    result: DailyResult,
    max_history_days: int = MAX_HISTORY_DAYS,
) -> DailyResult:
    """Store a player's result for `result.date` and prune to the newest dates.

    One hash per player: field = YYYY-MM-DD, value = DailyResult JSON, plus a
    `_last_played` field. Dates sort lexically, so pruning keeps the last N.
    """

    validate_player_id(player_id)
    key = _daily_key(player_id)

    r.hset(key, mapping={result.date: result.model_dump_json(), LAST_PLAYED_FIELD: result.date})

    dates = sorted((f for f in r.hkeys(key) if f != LAST_PLAYED_FIELD), reverse=True)
    stale = dates[max_history_days:]
    if stale:
        r.hdel(key, *stale)

    logger.info("saved daily result for %s on %s (score=%d)", player_id, result.date, result.score)
    return result


def get_daily_result(*, r: redis.Redis, player_id: str, date: str) -> DailyResult | None:
    validate_player_id(player_id)
    raw = r.hget(_daily_key(player_id), date)
    if raw is None:
        return None
    try:
        return DailyResult.model_validate_json(raw)
    except ValidationError:
        logger.warning("discarding unreadable daily result for %s on %s", player_id, date)
        return None


def has_completed(*, r: redis.Redis, player_id: str, date: str) -> bool:
    result = get_daily_result(r=r, player_id=player_id, date=date)
    return result is not None and result.completed


def last_played(*, r: redis.Redis, player_id: str) -> str | None:
    validate_player_id(player_id)
    return r.hget(_daily_key(player_id), LAST_PLAYED_FIELD)


def list_daily_results(*, r: redis.Redis, player_id: str) -> list[DailyResult]:
    """All stored results, newest first."""

    validate_player_id(player_id)
    stored = r.hgetall(_daily_key(player_id))
    out: list[DailyResult] = []
    for date in sorted((f for f in stored if f != LAST_PLAYED_FIELD), reverse=True):
        try:
            out.append(DailyResult.model_validate_json(stored[date]))
        except ValidationError:
            logger.warning("discarding unreadable daily result for %s on %s", player_id, date)
    return out
