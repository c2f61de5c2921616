from __future__ import annotations

import pytest

from flagquiz.api.models import Country
from flagquiz.core.rng import SeededRandom
from flagquiz.core.sequencer import DIFFICULTY_CEILINGS, Sequencer, difficulty_ceiling, select_sequence


def _codes(countries: list[Country]) -> list[str]:
    return [c.code for c in countries]


def test_difficulty_ceilings_table() -> None:
    assert [difficulty_ceiling(i) for i in range(10)] == [1, 1, 1, 2, 2, 2, 3, 3, 3, 3]
    assert difficulty_ceiling(25) == DIFFICULTY_CEILINGS[-1]
    with pytest.raises(ValueError):
        difficulty_ceiling(-1)


def test_same_seed_same_sequence(catalog) -> None:
    a = select_sequence(catalog.countries, rng=SeededRandom(20240115))
    b = select_sequence(catalog.countries, rng=SeededRandom(20240115))
    assert _codes(a) == _codes(b)
    assert len(a) == 10


def test_different_seeds_usually_differ(catalog) -> None:
    seqs = {tuple(_codes(select_sequence(catalog.countries, rng=SeededRandom(s)))) for s in range(20)}
    assert len(seqs) > 1


def test_no_duplicates_and_ceilings_respected(catalog) -> None:
    for seed in range(30):
        seq = Sequencer(catalog.countries, rng=SeededRandom(seed))
        picks = [seq.next_pick(i) for i in range(10)]
        assert all(p is not None for p in picks)
        codes = [p.code for p in picks]
        assert len(set(codes)) == 10
        # The fixture has plenty of easy countries, so no round needs to fall back.
        assert seq.fallbacks == []
        for i, p in enumerate(picks):
            assert p.difficulty <= difficulty_ceiling(i)


def test_continent_filter_falls_back_within_continent_first(catalog) -> None:
    # Europe has three difficulty-1 countries; round 4 onward may need harder ones.
    picks = select_sequence(catalog.countries, rng=SeededRandom(5), continent="Europe", rounds=6)
    assert len(picks) == 6
    assert {p.continent for p in picks} == {"Europe"}
    assert [p.difficulty for p in picks[:3]] == [1, 1, 1]


def test_fallback_to_unfiltered_when_continent_runs_out(catalog) -> None:
    seq = Sequencer(catalog.countries, rng=SeededRandom(11), continent="Oceania")
    picks = [seq.next_pick(i) for i in range(5)]
    assert all(p is not None for p in picks)
    assert {p.continent for p in picks[:3]} == {"Oceania"}
    assert all(p.continent != "Oceania" for p in picks[3:])
    assert 3 in seq.fallbacks and 4 in seq.fallbacks


def test_fallback_when_no_country_is_easy_enough() -> None:
    hard = [Country(code=c, name=c, continent="Asia", difficulty=3) for c in ("AA", "BB", "CC")]
    seq = Sequencer(hard, rng=SeededRandom(1))
    pick = seq.next_pick(0)
    assert pick is not None
    assert seq.fallbacks == [0]


def test_sequence_stops_when_set_is_exhausted() -> None:
    rows = [Country(code=c, name=c, continent="Europe", difficulty=1) for c in ("AA", "BB", "CC")]
    picks = select_sequence(rows, rng=SeededRandom(1), rounds=10)
    assert sorted(_codes(picks)) == ["AA", "BB", "CC"]


def test_empty_set_and_zero_rounds() -> None:
    assert select_sequence([], rng=SeededRandom(1)) == []
    assert Sequencer([], rng=SeededRandom(1)).next_pick(0) is None
    rows = [Country(code="AA", name="A", continent="Europe", difficulty=1)]
    assert select_sequence(rows, rng=SeededRandom(1), rounds=0) == []
    with pytest.raises(ValueError):
        select_sequence(rows, rng=SeededRandom(1), rounds=-1)

