"""Seeded pseudo-random source shared by dice rolls and task picks."""

from __future__ import annotations

import time
from typing import Protocol, runtime_checkable

UINT32_MASK = 0xFFFFFFFF
UINT32_SCALE = 4294967296.0  # 2**32


@runtime_checkable
class RandomSource(Protocol):
    """Anything that yields floats in [0, 1)."""

    def next(self) -> float: ...


class Mulberry32:
    """mulberry32 generator. Same seed, same stream, bit for bit.

    All arithmetic is done on unsigned 32-bit ints; ``_imul`` mirrors a
    32-bit wrapping multiply.
    """

    def __init__(self, seed: int):
        self.seed = seed & UINT32_MASK
        self._state = self.seed

    def next(self) -> float:
        self._state = (self._state + 0x6D2B79F5) & UINT32_MASK
        a = self._state
        t = _imul(a ^ (a >> 15), 1 | a)
        t = ((t + _imul(t ^ (t >> 7), 61 | t)) & UINT32_MASK) ^ t
        return ((t ^ (t >> 14)) & UINT32_MASK) / UINT32_SCALE


def _imul(a: int, b: int) -> int:
    return (a * b) & UINT32_MASK


def time_seed() -> int:
    """Seed from the wall clock, for sessions that don't need replay."""
    return int(time.time() * 1000) & UINT32_MASK


def roll_die(rng: RandomSource) -> int:
    """One six-sided die: consumes exactly one ``next()``."""
    return 1 + int(rng.next() * 6)
