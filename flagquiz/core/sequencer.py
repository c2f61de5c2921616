from __future__ import annotations

import logging
from collections.abc import Sequence

from flagquiz.api.models import Country
from flagquiz.core.rng import RandomSource

logger = logging.getLogger(__name__)

DEFAULT_ROUNDS = 10

# Max difficulty allowed per round (0-based index). Rounds past the table use the last value.
DIFFICULTY_CEILINGS: tuple[int, ...] = (1, 1, 1, 2, 2, 2, 3, 3, 3, 3)


def difficulty_ceiling(round_index: int) -> int:
    if round_index < 0:
        raise ValueError("round_index must be >= 0")
    if round_index >= len(DIFFICULTY_CEILINGS):
        return DIFFICULTY_CEILINGS[-1]
    return DIFFICULTY_CEILINGS[round_index]


class Sequencer:
    """Difficulty-aware, reproducible country picker for one session.

    Each pick builds the round's pool, Fisher-Yates shuffles it with the
    sequencer's random source, and takes the first entry. Pools are tried in
    order until one is non-empty:

    1. unused, matching the continent filter, difficulty <= the round's ceiling
    2. unused, matching the continent filter
    3. unused

    The random source is consumed only by these shuffles, so the same seed and
    the same input ordering always give the same sequence.
    """

    def __init__(self, countries: Sequence[Country], *, rng: RandomSource, continent: str | None = None) -> None:
        self._countries = tuple(countries)
        self._rng = rng
        self.continent = continent
        self.used: set[str] = set()
        self.fallbacks: list[int] = []

    def _matches_filter(self, c: Country) -> bool:
        return self.continent is None or c.continent == self.continent

    def _pools(self, ceiling: int):
        unused = [c for c in self._countries if c.code not in self.used]
        yield [c for c in unused if self._matches_filter(c) and c.difficulty <= ceiling]
        yield [c for c in unused if self._matches_filter(c)]
        yield unused

    def next_pick(self, round_index: int) -> Country | None:
        ceiling = difficulty_ceiling(round_index)
        for level, pool in enumerate(self._pools(ceiling)):
            if not pool:
                continue
            if level:
                self.fallbacks.append(round_index)
                logger.debug("round %d: difficulty fallback level %d", round_index, level)
            self._rng.shuffle(pool)
            pick = pool[0]
            self.used.add(pick.code)
            return pick
        return None


def select_sequence(
    countries: Sequence[Country],
    *,
    rng: RandomSource,
    continent: str | None = None,
    rounds: int = DEFAULT_ROUNDS,
) -> list[Country]:
    """Return up to `rounds` distinct countries; shorter when the set runs out."""

    if rounds < 0:
        raise ValueError("rounds must be >= 0")

    seq = Sequencer(countries, rng=rng, continent=continent)
    out: list[Country] = []
    for i in range(rounds):
        pick = seq.next_pick(i)
        if pick is None:
            break
        out.append(pick)
    return out
