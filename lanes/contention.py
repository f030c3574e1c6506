"""
Randomness source for simulated lock contention in the thread lane.

This is the only non-deterministic input to the simulation; tests and
replays substitute a seeded or fixed source.
"""

from __future__ import annotations

import random
from typing import Protocol


class ContentionSource(Protocol):
    """Port for the thread lane's weighted coin and worker choice."""

    def chance(self, probability: float) -> bool:
        """Return True with the given probability."""

    def pick(self, count: int) -> int:
        """Return a uniformly chosen index in [0, count)."""


class RandomContention:
    """Contention source backed by a private, optionally seeded PRNG."""

    __slots__ = ("_rng", "seed")

    def __init__(self, seed: int | None = None) -> None:
        self.seed = seed
        self._rng = random.Random(seed)

    def chance(self, probability: float) -> bool:
        return self._rng.random() < probability

    def pick(self, count: int) -> int:
        if count < 1:
            raise ValueError("count must be >= 1")
        return self._rng.randrange(count)


class FixedContention:
    """Deterministic source: always the same coin outcome and worker index."""

    __slots__ = ("outcome", "index", "calls")

    def __init__(self, outcome: bool = False, index: int = 0) -> None:
        self.outcome = outcome
        self.index = index
        self.calls = 0

    def chance(self, probability: float) -> bool:
        self.calls += 1
        return self.outcome

    def pick(self, count: int) -> int:
        return self.index % count
