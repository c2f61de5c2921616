from __future__ import annotations

import re

import redis
from fastapi import APIRouter, Depends, HTTPException, Query, status

from flagquiz.api.deps import get_country_catalog, get_redis, get_settings
from flagquiz.api.models import (
    ChallengeResponse,
    DailyPuzzleResponse,
    DailyResult,
    DailyResultListResponse,
    RoundOutcome,
    ScoreBreakdown,
)
from flagquiz.config import QuizSettings
from flagquiz.core.rng import SeededRandom
from flagquiz.core.scoring import score_round
from flagquiz.core.seeds import (
    build_challenge_query,
    challenge_id_to_seed,
    daily_puzzle_date,
    date_to_seed,
    generate_challenge_id,
    is_valid_challenge_id,
    normalize_region,
)
from flagquiz.core.sequencer import select_sequence
from flagquiz.daily_store import get_daily_result, last_played, list_daily_results, save_daily_result
from flagquiz.dataset.registry import CountryCatalog

router = APIRouter()

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def _sequence_codes(*, catalog: CountryCatalog, seed: int, region: str | None, rounds: int) -> list[str]:
    picks = select_sequence(catalog.countries, rng=SeededRandom(seed), continent=region, rounds=rounds)
    return [c.code for c in picks]


@router.get("/healthcheck")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/daily", response_model=DailyPuzzleResponse)
async def daily_puzzle_route(
    region: str | None = Query(default=None),
    date: str | None = Query(default=None),
    catalog: CountryCatalog = Depends(get_country_catalog),
    settings: QuizSettings = Depends(get_settings),
) -> DailyPuzzleResponse:
    if date is not None and not _DATE_RE.match(date):
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="date must be YYYY-MM-DD")

    day = date or daily_puzzle_date(tz=settings.daily_timezone, reset_hour=settings.daily_reset_hour)
    seed = date_to_seed(day)
    continent = normalize_region(region)
    codes = _sequence_codes(catalog=catalog, seed=seed, region=continent, rounds=settings.round_count)
    return DailyPuzzleResponse(date=day, seed=seed, region=continent, codes=codes)


def _challenge_response(*, catalog: CountryCatalog, settings: QuizSettings, challenge_id: str, region: str | None) -> ChallengeResponse:
    continent = normalize_region(region)
    seed = challenge_id_to_seed(challenge_id)
    return ChallengeResponse(
        challenge_id=challenge_id,
        seed=seed,
        region=continent,
        query=build_challenge_query(challenge_id, continent),
        codes=_sequence_codes(catalog=catalog, seed=seed, region=continent, rounds=settings.round_count),
    )


@router.post("/challenges", response_model=ChallengeResponse, status_code=status.HTTP_201_CREATED)
async def create_challenge_route(
    region: str | None = Query(default=None),
    catalog: CountryCatalog = Depends(get_country_catalog),
    settings: QuizSettings = Depends(get_settings),
) -> ChallengeResponse:
    return _challenge_response(catalog=catalog, settings=settings, challenge_id=generate_challenge_id(), region=region)


@router.get("/challenges/{challenge_id}", response_model=ChallengeResponse)
async def get_challenge_route(
    challenge_id: str,
    region: str | None = Query(default=None),
    catalog: CountryCatalog = Depends(get_country_catalog),
    settings: QuizSettings = Depends(get_settings),
) -> ChallengeResponse:
    if not is_valid_challenge_id(challenge_id):
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="Invalid challenge id")
    return _challenge_response(catalog=catalog, settings=settings, challenge_id=challenge_id, region=region)


@router.post("/score", response_model=ScoreBreakdown)
async def score_route(payload: RoundOutcome, settings: QuizSettings = Depends(get_settings)) -> ScoreBreakdown:
    return score_round(payload, round_duration_ms=settings.round_duration_ms)


@router.put("/players/{player_id}/daily/{date}", response_model=DailyResult)
async def save_daily_result_route(
    player_id: str,
    date: str,
    payload: DailyResult,
    r: redis.Redis = Depends(get_redis),
    settings: QuizSettings = Depends(get_settings),
) -> DailyResult:
    if payload.date != date:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail="date in path and body differ")
    try:
        return save_daily_result(r=r, player_id=player_id, result=payload, max_history_days=settings.daily_history_days)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e


@router.get("/players/{player_id}/daily/{date}", response_model=DailyResult)
async def get_daily_result_route(player_id: str, date: str, r: redis.Redis = Depends(get_redis)) -> DailyResult:
    try:
        result = get_daily_result(r=r, player_id=player_id, date=date)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No result for that date")
    return result


@router.get("/players/{player_id}/daily", response_model=DailyResultListResponse)
async def list_daily_results_route(player_id: str, r: redis.Redis = Depends(get_redis)) -> DailyResultListResponse:
    try:
        results = list_daily_results(r=r, player_id=player_id)
        last = last_played(r=r, player_id=player_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)) from e
    return DailyResultListResponse(last_played=last, results=results)
