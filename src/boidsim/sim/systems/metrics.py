from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

from ..core.agent import ParticleTag
from ..types.metrics import FlockMetrics

if TYPE_CHECKING:
    from ..core.agent import Particle


def create_metrics(
    tick: int,
    agents: Iterable["Particle"],
    removed: int,
    scattering: bool,
    neighbor_checks: int,
    duration_ms: float,
) -> FlockMetrics:
    population = 0
    boids = 0
    speed_sum = 0.0
    for agent in agents:
        population += 1
        if agent.has_tag(ParticleTag.BOID):
            boids += 1
        speed_sum += agent.velocity.mag()
    return FlockMetrics(
        tick=tick,
        population=population,
        boids=boids,
        bouncy=population - boids,
        removed=removed,
        scattering=scattering,
        average_speed=speed_sum / population if population else 0.0,
        neighbor_checks=neighbor_checks,
        tick_duration_ms=duration_ms,
    )
