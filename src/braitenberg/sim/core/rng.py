from __future__ import annotations

import math
import random
from typing import Optional

from pygame.math import Vector2


class DeterministicRng:
    """Seedable random stream; ``seed=None`` draws a fresh sequence per reset."""

    def __init__(self, seed: Optional[int]):
        self._seed = seed
        self._random = random.Random(seed)

    def reset(self) -> None:
        self._random.seed(self._seed)

    def next_angle(self) -> float:
        return self._random.uniform(0.0, 2.0 * math.pi)

    def next_point(self, width: float, height: float) -> Vector2:
        return Vector2(self._random.uniform(0.0, width), self._random.uniform(0.0, height))
