from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class FlockMetrics:
    tick: int
    population: int
    boids: int
    bouncy: int
    removed: int
    scattering: bool
    average_speed: float
    neighbor_checks: int
    tick_duration_ms: float = 0.0
