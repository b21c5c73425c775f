"""
Randomness sources for the Cell Chain Simulator.

Everything random in the simulation (initial placement, tick order
shuffling, tie-breaking among equally valid moves) draws uniform integers
from a `RandomSource`. The production default wraps a NumPy Generator;
tests inject a seeded generator or a scripted sequence to get
reproducible grids.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, MutableSequence, Optional, Sequence, TypeVar

import numpy as np

T = TypeVar("T")


class RandomSource(ABC):
    """Uniform integer generator."""

    @abstractmethod
    def randint(self, n: int) -> int:
        """Return a uniformly random integer in [0, n). `n` must be >= 1."""

    def shuffle(self, items: MutableSequence[T]) -> None:
        """Fisher-Yates shuffle `items` in place."""
        for i in range(len(items) - 1, 0, -1):
            j = self.randint(i + 1)
            items[i], items[j] = items[j], items[i]

    def choice(self, items: Sequence[T]) -> T:
        """Pick one element uniformly. `items` must be non-empty."""
        return items[self.randint(len(items))]


class NumpyRandomSource(RandomSource):
    """
    RandomSource backed by `np.random.default_rng`.

    Args:
        seed: Integer seed for reproducible runs. None = seeded from OS entropy.
    """

    def __init__(self, seed: Optional[int] = None):
        self.seed = seed
        self.rng = np.random.default_rng(seed)

    def randint(self, n: int) -> int:
        if n < 1:
            raise ValueError(f"randint bound must be >= 1, got {n}")
        return int(self.rng.integers(0, n))

    def __repr__(self) -> str:
        return f"NumpyRandomSource(seed={self.seed})"


class ScriptedRandomSource(RandomSource):
    """
    Deterministic source replaying a fixed sequence of integers.

    Each draw takes the next scripted value modulo the requested bound, so
    any script is valid for any call. The script repeats when exhausted;
    an empty script always returns 0.

    Args:
        values: Integers to replay in order.
    """

    def __init__(self, values: Iterable[int] = ()):
        self.values = list(values)
        self.calls = 0

    def randint(self, n: int) -> int:
        if n < 1:
            raise ValueError(f"randint bound must be >= 1, got {n}")
        if not self.values:
            self.calls += 1
            return 0
        raw = self.values[self.calls % len(self.values)]
        self.calls += 1
        return raw % n

    def __repr__(self) -> str:
        return f"ScriptedRandomSource(values={self.values}, calls={self.calls})"


def default_random_source(seed: Optional[int] = None) -> RandomSource:
    """Production default: NumPy generator, OS-seeded unless `seed` is given."""
    return NumpyRandomSource(seed)
