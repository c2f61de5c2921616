from __future__ import annotations

import random
import re
import string
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta
from urllib.parse import parse_qs, urlencode
from zoneinfo import ZoneInfo

from flagquiz.core.rng import string_to_seed

CHALLENGE_ID_ALPHABET = string.ascii_lowercase + string.digits
CHALLENGE_ID_LENGTH = 8

_CHALLENGE_ID_RE = re.compile(r"^[a-z0-9]{8}$")

ALL_REGIONS = "all"


def daily_puzzle_date(
    *,
    now: datetime | None = None,
    tz: str = "Europe/Paris",
    reset_hour: int = 9,
) -> str:
    """Return the current daily puzzle date as YYYY-MM-DD.

    The puzzle rolls over at `reset_hour` local time in `tz`; before that hour
    the previous day's puzzle is still the current one.
    """

    if now is None:
        now = datetime.now(tz=UTC)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=UTC)

    local = now.astimezone(ZoneInfo(tz))
    day: date = local.date()
    if local.hour < reset_hour:
        day = day - timedelta(days=1)
    return day.isoformat()


def date_to_seed(date_string: str) -> int:
    return string_to_seed(date_string)


def generate_challenge_id(rng: random.Random | None = None) -> str:
    rng = rng or random.Random()
    return "".join(rng.choice(CHALLENGE_ID_ALPHABET) for _ in range(CHALLENGE_ID_LENGTH))


def is_valid_challenge_id(challenge_id: str) -> bool:
    return bool(_CHALLENGE_ID_RE.match(challenge_id))


def challenge_id_to_seed(challenge_id: str) -> int:
    return string_to_seed(challenge_id)


def normalize_region(region: str | None) -> str | None:
    """Map the share-link region value to a continent filter ("all" means no filter)."""

    if region is None:
        return None
    region = region.strip()
    if not region or region.casefold() == ALL_REGIONS:
        return None
    return region


@dataclass(frozen=True, slots=True)
class ChallengeLink:
    challenge_id: str
    continent: str | None = None

    @property
    def seed(self) -> int:
        return challenge_id_to_seed(self.challenge_id)


def build_challenge_query(challenge_id: str, continent: str | None = None) -> str:
    params = {"challenge": challenge_id}
    region = normalize_region(continent)
    if region is not None:
        params["region"] = region
    return urlencode(params)


def parse_challenge_query(query: str) -> ChallengeLink | None:
    """Parse `challenge=...&region=...`; returns None when no challenge is present."""

    params = parse_qs(query.lstrip("?"))
    values = params.get("challenge")
    if not values or not values[0]:
        return None
    region = (params.get("region") or [ALL_REGIONS])[0]
    return ChallengeLink(challenge_id=values[0], continent=normalize_region(region))
