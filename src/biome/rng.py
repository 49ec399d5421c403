from __future__ import annotations

import math
import random
from typing import Optional, Sequence, TypeVar

from pygame.math import Vector3

T = TypeVar("T")


class DeterministicRng:
    def __init__(self, seed: int):
        self._seed = seed
        self._random = random.Random(seed)

    @property
    def seed(self) -> int:
        return self._seed

    def reset(self, seed: Optional[int] = None) -> None:
        if seed is not None:
            self._seed = seed
        self._random.seed(self._seed)

    def next_range(self, low: float, high: float) -> float:
        return self._random.uniform(low, high)

    def next_ground_direction(self) -> Vector3:
        """Unit vector in the x/z plane."""
        angle = self._random.uniform(0, 2 * math.pi)
        return Vector3(math.cos(angle), 0.0, math.sin(angle))

    def chance(self, probability: float) -> bool:
        return self._random.random() < probability

    def sample_choice(self, items: Sequence[T]) -> Optional[T]:
        if not items:
            return None
        return items[self._random.randrange(len(items))]
