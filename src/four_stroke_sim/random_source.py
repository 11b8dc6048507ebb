"""
Random Source Module
Seedable random-number source injected into the particle simulator.
"""

from typing import Optional, Sequence, TypeVar

import numpy as np

T = TypeVar("T")


class RandomSource:
    """Thin wrapper over :class:`numpy.random.Generator`.

    Every random draw made by the simulation goes through one instance, so a
    fixed seed reproduces a run exactly.

    Parameters
    ----------
    seed : int or None
        Seed for ``numpy.random.default_rng``; ``None`` draws fresh entropy.
    generator : numpy.random.Generator, optional
        Use an existing generator instead of seeding a new one.
    """

    def __init__(
        self,
        seed: Optional[int] = None,
        generator: Optional[np.random.Generator] = None,
    ) -> None:
        self.seed = seed
        self._rng = generator if generator is not None else np.random.default_rng(seed)

    def random(self) -> float:
        """Uniform draw in [0, 1)."""
        return float(self._rng.random())

    def uniform(self, low: float, high: float) -> float:
        """Uniform draw in [low, high)."""
        return float(self._rng.uniform(low, high))

    def integer(self, high: int) -> int:
        """Uniform integer in [0, high)."""
        return int(self._rng.integers(0, high))

    def choice(self, options: Sequence[T]) -> T:
        return options[self.integer(len(options))]
