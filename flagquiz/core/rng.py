from __future__ import annotations

import random
from typing import MutableSequence, Protocol, TypeVar

T = TypeVar("T")

_MASK32 = 0xFFFFFFFF


def _imul(a: int, b: int) -> int:
    return (a * b) & _MASK32


class RandomSource(Protocol):
    """What the sequencer and hint engine need from a random source."""

    def next(self) -> float: ...

    def next_int(self, max_value: int) -> int: ...

    def shuffle(self, items: MutableSequence[T]) -> MutableSequence[T]: ...


class SeededRandom:
    """Mulberry32 generator.

    The arithmetic is done on unsigned 32-bit integers so the stream of values is
    bit-for-bit identical on every client that runs the same algorithm from the
    same seed (daily puzzles and challenge links depend on it).
    """

    __slots__ = ("_state",)

    def __init__(self, seed: int) -> None:
        self._state = seed & _MASK32

    def next(self) -> float:
        self._state = (self._state + 0x6D2B79F5) & _MASK32
        t = self._state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK32
        return ((t ^ (t >> 14)) & _MASK32) / 4294967296

    def next_int(self, max_value: int) -> int:
        return int(self.next() * max_value)

    def shuffle(self, items: MutableSequence[T]) -> MutableSequence[T]:
        # Fisher-Yates, walking from the end.
        for i in range(len(items) - 1, 0, -1):
            j = self.next_int(i + 1)
            items[i], items[j] = items[j], items[i]
        return items


class UnseededRandom:
    """Free-play source: OS entropy, same interface as SeededRandom."""

    __slots__ = ("_rng",)

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def next(self) -> float:
        return self._rng.random()

    def next_int(self, max_value: int) -> int:
        return int(self.next() * max_value)

    def shuffle(self, items: MutableSequence[T]) -> MutableSequence[T]:
        for i in range(len(items) - 1, 0, -1):
            j = self.next_int(i + 1)
            items[i], items[j] = items[j], items[i]
        return items


def string_to_seed(text: str) -> int:
    """Fold a string into a non-negative 32-bit seed.

    Polynomial rolling hash over UTF-16 code units (`h = h*31 + unit`), clipped to
    a signed 32-bit value at each step, absolute value at the end. The result can
    be 2**31 when the hash lands on the minimum signed value.
    """

    h = 0
    data = text.encode("utf-16-le")
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = (h * 31 + unit) & _MASK32
    if h & 0x80000000:
        h -= 0x100000000
    return abs(h)
