from __future__ import annotations

import math
from typing import TYPE_CHECKING, List

import pygame

from ..utils.vector import Vec2

if TYPE_CHECKING:
    from ..core.agent import Boid, BouncyParticle, Particle
    from ..core.config import FlockParams

BACKGROUND_COLOR = (19, 21, 21)
BOID_COLOR = (214, 222, 235)
BOUNCY_COLOR = (252, 231, 171)
HIGHLIGHT_COLOR = (255, 196, 0)
TOO_CLOSE_COLOR = (255, 84, 84)
FLOCKMATE_COLOR = (92, 224, 128)
VIEW_RANGE_COLOR = (92, 140, 224)
PROTECTED_COLOR = (224, 92, 92)
VELOCITY_COLOR = (255, 255, 255)

BOID_LENGTH = 12.0
BOID_HALF_WIDTH = 4.5
BOUNCY_SIZE = 6


def boid_outline(position: Vec2, heading: float) -> List[tuple[float, float]]:
    cos_h = math.cos(heading)
    sin_h = math.sin(heading)
    nose = (position.x + cos_h * BOID_LENGTH * 0.6, position.y + sin_h * BOID_LENGTH * 0.6)
    back_x = position.x - cos_h * BOID_LENGTH * 0.4
    back_y = position.y - sin_h * BOID_LENGTH * 0.4
    left = (back_x - sin_h * BOID_HALF_WIDTH, back_y + cos_h * BOID_HALF_WIDTH)
    right = (back_x + sin_h * BOID_HALF_WIDTH, back_y - cos_h * BOID_HALF_WIDTH)
    return [nose, left, right]


def draw_boid(surface: pygame.Surface, boid: "Boid", highlight: bool = False) -> None:
    color = HIGHLIGHT_COLOR if highlight else BOID_COLOR
    pygame.draw.polygon(surface, color, boid_outline(boid.position, boid.heading))


def draw_bouncy(surface: pygame.Surface, particle: "BouncyParticle", highlight: bool = False) -> None:
    half = BOUNCY_SIZE // 2
    rect = pygame.Rect(int(particle.position.x) - half, int(particle.position.y) - half, BOUNCY_SIZE, BOUNCY_SIZE)
    pygame.draw.rect(surface, HIGHLIGHT_COLOR if highlight else BOUNCY_COLOR, rect)


def draw_debug_overlay(
    surface: pygame.Surface,
    subject: "Particle",
    too_close: List["Particle"],
    flockmates: List["Particle"],
    params: "FlockParams",
) -> None:
    """Mark the subject's neighbors and draw its sensing radii and velocity."""
    center = (int(subject.position.x), int(subject.position.y))
    for other in too_close:
        pygame.draw.line(surface, TOO_CLOSE_COLOR, center, other.position.as_tuple())
        pygame.draw.circle(surface, TOO_CLOSE_COLOR, other.position.as_tuple(), 7, 1)
    for other in flockmates:
        pygame.draw.circle(surface, FLOCKMATE_COLOR, other.position.as_tuple(), 7, 1)
    if params.view_range >= 1:
        pygame.draw.circle(surface, VIEW_RANGE_COLOR, center, int(params.view_range), 1)
    if params.min_distance >= 1:
        pygame.draw.circle(surface, PROTECTED_COLOR, center, int(params.min_distance), 1)
    # velocity drawn at a quarter second of travel
    tip = subject.position + subject.velocity * 0.25
    pygame.draw.line(surface, VELOCITY_COLOR, center, tip.as_tuple(), 2)
