from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List

from ..core.config import WALL_AVOID_SCALE
from ..utils.vector import Vec2

if TYPE_CHECKING:
    from ..core.agent import Boid, BouncyParticle, MoveContext, Particle


@dataclass(slots=True)
class NeighborScan:
    separation: Vec2 = field(default_factory=Vec2)
    cohesion: Vec2 = field(default_factory=Vec2)
    alignment: Vec2 = field(default_factory=Vec2)
    flock_count: int = 0
    too_close: List["Particle"] = field(default_factory=list)
    flockmates: List["Particle"] = field(default_factory=list)


def scan_neighbors(agent: "Particle", agents: List["Particle"], view_range: float, min_distance: float) -> NeighborScan:
    """Classify every other agent within ``view_range`` of ``agent``.

    A neighbor closer than ``min_distance`` only feeds separation; every other
    neighbor feeds cohesion and alignment. Both comparisons are strict.
    """
    scan = NeighborScan()
    view_sq = view_range * view_range
    min_sq = min_distance * min_distance
    pos = agent.position
    for other in agents:
        if other is agent:
            continue
        dist_sq = pos.dist_sq(other.position)
        if dist_sq >= view_sq:
            continue
        if dist_sq < min_sq:
            scan.separation.add(pos).sub(other.position)
            scan.too_close.append(other)
        else:
            scan.cohesion.add(other.position).sub(pos)
            scan.alignment.add(other.velocity)
            scan.flock_count += 1
            scan.flockmates.append(other)
    return scan


def flocking_force(scan: NeighborScan, context: "MoveContext", dt: float) -> Vec2:
    params = context.params
    delta = scan.separation.copy().mult(params.separation_factor * dt)
    k = scan.flock_count
    if k > 0:
        delta.add(scan.alignment.copy().div(k).mult(params.alignment_factor * dt))
        sign = -1.0 if context.scattering else 1.0
        delta.add(scan.cohesion.copy().div(k).mult(params.cohesion_factor * dt * sign))
    return delta


def wall_avoidance(position: Vec2, context: "MoveContext", dt: float) -> Vec2:
    params = context.params
    push = params.wall_avoid_factor * WALL_AVOID_SCALE * dt
    margin = params.wall_margin
    steer = Vec2()
    if position.x < margin:
        steer.x = push
    elif position.x > context.width - margin:
        steer.x = -push
    if position.y < margin:
        steer.y = push
    elif position.y > context.height - margin:
        steer.y = -push
    return steer


def bounce(position: Vec2, velocity: Vec2, width: float, height: float) -> None:
    # Only flip a component that still points out of the surface.
    if position.x < 0:
        position.x = 0.0
        if velocity.x < 0:
            velocity.x = -velocity.x
    elif position.x > width:
        position.x = width
        if velocity.x > 0:
            velocity.x = -velocity.x
    if position.y < 0:
        position.y = 0.0
        if velocity.y < 0:
            velocity.y = -velocity.y
    elif position.y > height:
        position.y = height
        if velocity.y > 0:
            velocity.y = -velocity.y


def step_boid(boid: "Boid", dt: float, context: "MoveContext") -> None:
    params = context.params
    agents = context.agents
    context.neighbor_checks += max(0, len(agents) - 1)
    scan = scan_neighbors(boid, agents, params.view_range, params.min_distance)

    velocity = boid.velocity
    velocity.add(flocking_force(scan, context, dt))
    velocity.add(wall_avoidance(boid.position, context, dt))

    velocity.limit(params.min_velocity, params.max_velocity)
    if velocity.is_zero():
        velocity.add(Vec2.from_polar(boid.heading, params.min_velocity))

    boid.position.add(velocity.copy().mult(dt))
    bounce(boid.position, velocity, context.width, context.height)
    boid.heading = velocity.heading()


def step_bouncy(particle: "BouncyParticle", dt: float, context: "MoveContext") -> None:
    position = particle.position
    velocity = particle.velocity
    position.add(velocity.copy().mult(dt))
    if position.x < 0:
        position.x = 0.0
        velocity.x = -velocity.x
    if position.x > context.width:
        position.x = context.width
        velocity.x = -velocity.x
    if position.y < 0:
        position.y = 0.0
        velocity.y = -velocity.y
    if position.y > context.height:
        position.y = context.height
        velocity.y = -velocity.y
