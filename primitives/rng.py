"""Seeded uniform random source used by every randomize() call."""

from typing import Protocol

import numpy as np


class UniformSource(Protocol):
    def next(self) -> float:
        """Return a float in [0, 1)."""
        ...


class SeededRandom:
    """Uniform [0, 1) generator. Same seed, same sequence."""

    def __init__(self, seed: int = 0):
        self.seed = seed
        self._rng = np.random.default_rng(seed)

    def next(self) -> float:
        return float(self._rng.random())

    def uniform(self, low: float, high: float) -> float:
        """Float in [low, high)."""
        return low + self.next() * (high - low)
