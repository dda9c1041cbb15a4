"""
Step 1 — Seeded pseudo-random sequence

Linear congruential generator driving every randomized decision of one
variant. Output depends only on (seed, number of prior calls), so a variant
can be regenerated from its stored seed on any platform.

    state = (state * 1664525 + 1013904223) mod 2^32
    next() = state / 2^32
"""

from typing import List, Sequence, TypeVar

from generation.errors import InsufficientPoolError

T = TypeVar("T")

LCG_MULTIPLIER = 1664525
LCG_INCREMENT = 1013904223
MODULUS = 2 ** 32
_MASK = MODULUS - 1


class SeededRandom:
    """Deterministic number stream built from a 32-bit unsigned seed."""

    def __init__(self, seed: int):
        if not isinstance(seed, int) or isinstance(seed, bool):
            raise TypeError(f"seed must be an int, got {type(seed).__name__}")
        if seed < 0 or seed > _MASK:
            raise ValueError(f"seed must be a 32-bit unsigned integer, got {seed}")
        self.seed = seed
        self.state = seed
        self.calls = 0

    def next_state(self) -> int:
        self.state = (self.state * LCG_MULTIPLIER + LCG_INCREMENT) & _MASK
        self.calls += 1
        return self.state

    def next(self) -> float:
        """Advance the stream; returns a float in [0, 1)."""
        return self.next_state() / MODULUS

    def shuffle(self, items: Sequence[T]) -> List[T]:
        """Fisher–Yates over a copy, last index down to 1. The input is left untouched."""
        result = list(items)
        for i in range(len(result) - 1, 0, -1):
            j = int(self.next() * (i + 1))
            result[i], result[j] = result[j], result[i]
        return result

    def sample(self, items: Sequence[T], k: int) -> List[T]:
        """Shuffle, then take the first k. Never truncates silently."""
        if k < 0:
            raise ValueError(f"sample size must be >= 0, got {k}")
        if k > len(items):
            raise InsufficientPoolError(required=k, available=len(items))
        return self.shuffle(items)[:k]

    def __repr__(self):
        return f"<SeededRandom(seed={self.seed}, calls={self.calls})>"
