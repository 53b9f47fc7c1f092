"""Interactive pygame window driving a :class:`ParticleSystem` once per frame.

Keys: ``S`` slow motion, ``D`` debug overlay, ``+``/``-`` add or remove a boid,
``C`` clear, ``P`` repopulate, ``Esc`` quit. A mouse click spawns a bouncy
particle at the cursor.
"""
from __future__ import annotations

import argparse
import logging
from collections import deque
from pathlib import Path
from typing import Optional

import pygame

from ..sim.core.config import SimulationConfig
from ..sim.core.particle_system import ParticleSystem
from ..sim.systems.render import BACKGROUND_COLOR
from .logging_setup import setup_logging

logger = logging.getLogger(__name__)

FPS_BUFFER_SIZE = 30
TARGET_FPS = 100
FPS_TEXT_COLOR = (0, 255, 0)
FPS_PANEL_COLOR = (0, 0, 0, 160)


class FpsCounter:
    """Frame rate averaged over the last few frames so the readout does not jitter."""

    def __init__(self, size: int = FPS_BUFFER_SIZE):
        self._samples: deque[float] = deque(maxlen=max(1, size))

    def push(self, fps: float) -> float:
        self._samples.append(fps)
        return self.average()

    def average(self) -> float:
        if not self._samples:
            return 0.0
        return sum(self._samples) / len(self._samples)


def load_font(path: Optional[Path], size: int = 16) -> pygame.font.Font:
    if path is not None:
        try:
            font = pygame.font.Font(str(path), size)
        except (OSError, pygame.error) as exc:
            logger.warning("Failed to load font %s: %s", path, exc)
        else:
            logger.info("Loaded font %s", path)
            return font
    return pygame.font.SysFont("monospace", size)


class Viewer:
    def __init__(self, system: ParticleSystem, font_path: Optional[Path] = None):
        self.system = system
        self.fps = FpsCounter()
        self.running = False
        pygame.init()
        self.screen = pygame.display.set_mode((int(system.width), int(system.height)))
        pygame.display.set_caption("Boids")
        self.clock = pygame.time.Clock()
        self.font = load_font(font_path)

    def handle_event(self, event: pygame.event.Event) -> None:
        system = self.system
        if event.type == pygame.QUIT:
            self.running = False
        elif event.type == pygame.MOUSEBUTTONDOWN:
            x, y = event.pos
            system.add_bouncy(float(x), float(y))
        elif event.type == pygame.KEYDOWN:
            if event.key == pygame.K_ESCAPE:
                self.running = False
            elif event.key == pygame.K_s:
                logger.info("time_scale -> %.2f", system.toggle_slow_motion())
            elif event.key == pygame.K_d:
                system.debug = not system.debug
            elif event.key in (pygame.K_PLUS, pygame.K_EQUALS, pygame.K_KP_PLUS):
                system.add_particle()
            elif event.key in (pygame.K_MINUS, pygame.K_KP_MINUS):
                system.remove_particle()
            elif event.key == pygame.K_c:
                system.remove_all()
            elif event.key == pygame.K_p:
                system.remove_all()
                system.populate(system.config.initial_population)

    def draw_fps(self, average: float) -> None:
        label = self.font.render(f"{int(average)} FPS", True, FPS_TEXT_COLOR)
        panel = pygame.Surface((label.get_width() + 10, label.get_height()), pygame.SRCALPHA)
        panel.fill(FPS_PANEL_COLOR)
        x = self.screen.get_width() - panel.get_width()
        self.screen.blit(panel, (x, 0))
        self.screen.blit(label, (x + 5, 0))

    def frame(self, elapsed_seconds: float) -> None:
        average = self.fps.push(self.clock.get_fps())
        self.system.move_all(self.system.frame_dt(elapsed_seconds))
        self.screen.fill(BACKGROUND_COLOR)
        self.system.render_all(self.screen)
        self.draw_fps(average)
        pygame.display.flip()

    def run(self, max_frames: Optional[int] = None) -> None:
        self.running = True
        frames = 0
        logger.info("Viewer started with %d particles", self.system.num_particles())
        try:
            while self.running:
                elapsed_ms = self.clock.tick(TARGET_FPS)
                for event in pygame.event.get():
                    self.handle_event(event)
                self.frame(elapsed_ms / 1000.0)
                frames += 1
                if max_frames is not None and frames >= max_frames:
                    break
        finally:
            pygame.quit()
            logger.info("Viewer closed after %d frames", frames)


def main() -> None:
    parser = argparse.ArgumentParser(description="Interactive boids viewer")
    parser.add_argument("--config", type=Path, default=None, help="YAML configuration file")
    parser.add_argument("--population", type=int, default=None)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--font", type=Path, default=None, help="TTF font for the FPS counter")
    parser.add_argument("--debug", action="store_true", help="Start with the debug overlay enabled")
    args = parser.parse_args()

    config = SimulationConfig.from_yaml(args.config) if args.config else SimulationConfig()
    if args.population is not None:
        config.initial_population = args.population
    if args.seed is not None:
        config.seed = args.seed
    setup_logging(config.logging)

    system = ParticleSystem(config)
    system.debug = args.debug
    Viewer(system, font_path=args.font).run()


if __name__ == "__main__":
    main()
