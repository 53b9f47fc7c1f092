from __future__ import annotations

import math
import random
from typing import Optional


class SimulationRng:
    def __init__(self, seed: Optional[int] = None):
        self._seed = seed
        self._random = random.Random(seed)

    @property
    def seed(self) -> Optional[int]:
        return self._seed

    def reset(self) -> None:
        self._random.seed(self._seed)

    def next_range(self, low: float, high: float) -> float:
        return self._random.uniform(low, high)

    def next_index(self, count: int) -> int:
        return math.floor(self._random.random() * count)

    def next_angle(self) -> float:
        return self._random.uniform(-math.pi, math.pi)

    def chance(self, probability: float) -> bool:
        return self._random.random() < probability
