"""
Random Source
=============

Every randomized decision (chunk variance, delays, wallet shuffling, relay
endpoint choice, round jitter) goes through one RandomSource so tests can
script the sequence.

Usage:
    rng = RandomSource(seed=42)
    rng.uniform(200, 2000)
"""

import random
from typing import List, Optional, Sequence, TypeVar

T = TypeVar("T")


class RandomSource:
    """Thin wrapper over random.Random."""

    def __init__(self, seed: Optional[int] = None):
        self._rng = random.Random(seed)

    def uniform(self, low: float, high: float) -> float:
        return self._rng.uniform(low, high)

    def random(self) -> float:
        """Float in [0, 1)."""
        return self._rng.random()

    def choice(self, items: Sequence[T]) -> T:
        return self._rng.choice(items)

    def shuffle(self, items: List[T]) -> None:
        self._rng.shuffle(items)


DEFAULT_RANDOM = RandomSource()
