from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, List, Tuple, Union

from ..systems import flocking, render
from ..utils.vector import Vec2
from .config import FlockParams

if TYPE_CHECKING:
    import pygame


class ParticleTag(str, Enum):
    BOID = "Boid"
    BOUNCY_PARTICLE = "BouncyParticle"


@dataclass(slots=True)
class MoveContext:
    """Everything an agent may read while moving, handed over at call time."""

    params: FlockParams
    agents: List["Particle"]
    width: float
    height: float
    scattering: bool = False
    neighbor_checks: int = 0


@dataclass(slots=True)
class Boid:
    position: Vec2
    velocity: Vec2
    heading: float = 0.0
    mark_for_remove: bool = False
    tags: Tuple[ParticleTag, ...] = (ParticleTag.BOID,)

    def __post_init__(self) -> None:
        if not self.velocity.is_zero():
            self.heading = self.velocity.heading()

    def has_tag(self, tag: ParticleTag) -> bool:
        return tag in self.tags

    def move(self, dt: float, context: MoveContext) -> None:
        flocking.step_boid(self, dt, context)

    def render(self, surface: "pygame.Surface", highlight: bool = False) -> None:
        render.draw_boid(surface, self, highlight)


@dataclass(slots=True)
class BouncyParticle:
    position: Vec2
    velocity: Vec2 = field(default_factory=Vec2)
    mark_for_remove: bool = False
    tags: Tuple[ParticleTag, ...] = (ParticleTag.BOUNCY_PARTICLE,)

    def has_tag(self, tag: ParticleTag) -> bool:
        return tag in self.tags

    def move(self, dt: float, context: MoveContext) -> None:
        flocking.step_bouncy(self, dt, context)

    def render(self, surface: "pygame.Surface", highlight: bool = False) -> None:
        render.draw_bouncy(surface, self, highlight)


Particle = Union[Boid, BouncyParticle]
