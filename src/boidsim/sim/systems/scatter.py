from __future__ import annotations

import logging

from ..core.rng import SimulationRng

logger = logging.getLogger(__name__)


class ScatterTimer:
    """Interval clock that periodically redraws the system-wide scatter flag.

    While ``scattering`` is set, every boid inverts its cohesion term for the
    rest of the interval.
    """

    def __init__(self, interval: float, rng: SimulationRng):
        self.interval = interval
        self.interval_timer = interval
        self.scattering = False
        self.rollovers = 0
        self._rng = rng

    def reset(self) -> None:
        self.interval_timer = self.interval
        self.scattering = False
        self.rollovers = 0

    def update(self, dt: float, scatter_chance: float) -> bool:
        self.interval_timer -= dt
        if self.interval_timer <= 0:
            self.interval_timer = self.interval
            self.rollovers += 1
            self.scattering = self._rng.chance(scatter_chance)
            if self.scattering:
                logger.debug("Scatter burst started (rollover %d)", self.rollovers)
        return self.scattering
