from __future__ import annotations

import logging
import math
from dataclasses import asdict, replace
from time import perf_counter
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Union

from ..systems import flocking, metrics as metrics_system, render
from ..systems.scatter import ScatterTimer
from ..types.metrics import FlockMetrics
from ..types.snapshot import Snapshot, SnapshotMetadata, SnapshotWorld
from ..utils.vector import Vec2
from .agent import Boid, BouncyParticle, MoveContext, Particle, ParticleTag
from .config import SLOW_MOTION_SCALE, FlockParams, SimulationConfig
from .rng import SimulationRng

if TYPE_CHECKING:
    import pygame

logger = logging.getLogger(__name__)


class ParticleSystem:
    """Owns the agents and the tunable flocking parameters.

    The host calls :meth:`move_all` once per frame and then :meth:`render_all`.
    Agents are updated in list order against the live list, so an agent sees
    the already-moved state of every agent before it in the same pass.
    """

    def __init__(self, config: SimulationConfig, populate: bool = True):
        config.validate()
        self._config = config
        self._params = replace(config.flock)
        self._width = float(config.width)
        self._height = float(config.height)
        self._rng = SimulationRng(config.seed)
        self._scatter = ScatterTimer(config.scatter_interval, self._rng)
        self._agents: List[Particle] = []
        self._metrics: FlockMetrics | None = None
        self.tick = 0
        self.debug = False
        logger.info(
            "ParticleSystem created on a %.0fx%.0f surface (seed=%s)", self._width, self._height, config.seed
        )
        if populate:
            self.populate(config.initial_population)

    @property
    def agents(self) -> List[Particle]:
        return self._agents

    @property
    def config(self) -> SimulationConfig:
        return self._config

    @property
    def params(self) -> FlockParams:
        return replace(self._params)

    @property
    def width(self) -> float:
        return self._width

    @property
    def height(self) -> float:
        return self._height

    @property
    def scattering(self) -> bool:
        return self._scatter.scattering

    @property
    def scatter_timer(self) -> ScatterTimer:
        return self._scatter

    @property
    def metrics(self) -> FlockMetrics | None:
        return self._metrics

    def reset(self) -> None:
        self._agents.clear()
        self._rng.reset()
        self._scatter.reset()
        self._metrics = None
        self.tick = 0
        self.populate(self._config.initial_population)

    # -- parameters -----------------------------------------------------

    def set_param(self, name: str, value: float) -> None:
        self.update_params(**{name: value})

    def update_params(self, **values: float) -> FlockParams:
        unknown = set(values) - set(FlockParams.names())
        if unknown:
            raise ValueError(f"Unknown parameter(s): {', '.join(sorted(unknown))}")
        candidate = replace(self._params, **values)
        candidate.validate()
        self._params = candidate
        logger.debug("Parameters updated: %s", values)
        return replace(candidate)

    def toggle_slow_motion(self) -> float:
        time_scale = 1.0 if self._params.time_scale != 1.0 else SLOW_MOTION_SCALE
        self.set_param("time_scale", time_scale)
        return time_scale

    def frame_dt(self, elapsed_seconds: float) -> float:
        """Simulation delta for a real frame lasting ``elapsed_seconds``."""
        return elapsed_seconds * self._params.time_scale * self._config.dt_damping

    # -- population -----------------------------------------------------

    def num_particles(self) -> int:
        return len(self._agents)

    def populate(self, count: int) -> None:
        for _ in range(max(0, int(count))):
            self.add_particle()
        if count > 0:
            logger.info("Populated %d boids (total %d)", count, len(self._agents))

    def add_particle(
        self,
        x: Union[float, Particle, None] = None,
        y: Optional[float] = None,
        angle: Optional[float] = None,
        speed: Optional[float] = None,
    ) -> Particle:
        """Spawn a boid; any argument left out is drawn at random.

        Passing an already-built agent as the only argument adds that agent
        and returns it unchanged.
        """
        if isinstance(x, (Boid, BouncyParticle)):
            if y is not None or angle is not None or speed is not None:
                raise TypeError("add_particle(agent) takes no further arguments")
            return self.add(x)
        rng = self._rng
        params = self._params
        if x is None:
            x = rng.next_range(0.0, self._width)
        if y is None:
            y = rng.next_range(0.0, self._height)
        if angle is None:
            angle = rng.next_angle()
        if speed is None:
            speed = rng.next_range(params.min_velocity, params.max_velocity)
        boid = Boid(position=Vec2(x, y), velocity=Vec2.from_polar(angle, speed), heading=angle)
        self._agents.append(boid)
        return boid

    def add_bouncy(self, x: float, y: float) -> BouncyParticle:
        velocity = Vec2.from_polar(self._rng.next_angle(), self._config.bouncy_speed)
        return self.add(BouncyParticle(position=Vec2(x, y), velocity=velocity))

    def add(self, agent: Particle) -> Particle:
        self._agents.append(agent)
        return agent

    def remove_particle(self) -> Particle | None:
        if not self._agents:
            return None
        return self._agents.pop(self._rng.next_index(len(self._agents)))

    def remove_all(self) -> None:
        removed = len(self._agents)
        self._agents = []
        logger.info("Removed all %d particles", removed)

    def remove_if(self, predicate: Callable[[Particle], bool]) -> int:
        before = len(self._agents)
        self._agents = [agent for agent in self._agents if not predicate(agent)]
        return before - len(self._agents)

    def remove_tagged(self, tag: ParticleTag) -> int:
        return self.remove_if(lambda agent: agent.has_tag(tag))

    def get_all(self) -> List[Particle]:
        return list(self._agents)

    def get_if(self, predicate: Callable[[Particle], bool]) -> List[Particle]:
        return [agent for agent in self._agents if predicate(agent)]

    def get_tagged(self, tag: ParticleTag) -> List[Particle]:
        return self.get_if(lambda agent: agent.has_tag(tag))

    # -- frame passes ---------------------------------------------------

    def move_all(self, dt: float) -> FlockMetrics:
        start = perf_counter()
        context = MoveContext(
            params=self._params,
            agents=self._agents,
            width=self._width,
            height=self._height,
        )
        removed = 0
        if dt > 0 and math.isfinite(dt):
            dt = min(dt, self._config.max_frame_time)
            context.scattering = self._scatter.update(dt, self._params.scatter_chance)
            for agent in self._agents:
                agent.move(dt, context)
            removed = self._remove_marked()
            self.tick += 1
        else:
            logger.debug("Skipping frame with dt=%r", dt)
            context.scattering = self._scatter.scattering

        elapsed_ms = (perf_counter() - start) * 1000.0
        metrics = metrics_system.create_metrics(
            self.tick, self._agents, removed, context.scattering, context.neighbor_checks, elapsed_ms
        )
        self._metrics = metrics
        return metrics

    def render_all(self, surface: "pygame.Surface", debug: Optional[bool] = None) -> None:
        show_debug = self.debug if debug is None else debug
        subject = self._agents[0] if show_debug and self._agents else None
        if subject is not None:
            scan = flocking.scan_neighbors(
                subject, self._agents, self._params.view_range, self._params.min_distance
            )
            render.draw_debug_overlay(surface, subject, scan.too_close, scan.flockmates, self._params)
        for agent in self._agents:
            agent.render(surface, highlight=agent is subject)

    def _remove_marked(self) -> int:
        before = len(self._agents)
        if any(agent.mark_for_remove for agent in self._agents):
            self._agents = [agent for agent in self._agents if not agent.mark_for_remove]
        return before - len(self._agents)

    # -- snapshots ------------------------------------------------------

    def snapshot(self, tick: Optional[int] = None) -> Snapshot:
        tick = self.tick if tick is None else tick
        metrics = self._metrics
        if metrics is None:
            metrics = metrics_system.create_metrics(tick, self._agents, 0, self.scattering, 0, 0.0)
        return Snapshot(
            tick=tick,
            metrics=metrics,
            agents=[self._agent_snapshot(agent) for agent in self._agents],
            world=SnapshotWorld(width=self._width, height=self._height),
            metadata=SnapshotMetadata(
                sim_dt=self._config.time_step,
                seed=self._config.seed,
                config_version=self._config.config_version,
                scattering=self.scattering,
                debug=self.debug,
            ),
            params=asdict(self._params),
        )

    @staticmethod
    def _agent_snapshot(agent: Particle) -> Dict[str, Any]:
        kind = ParticleTag.BOID if agent.has_tag(ParticleTag.BOID) else ParticleTag.BOUNCY_PARTICLE
        return {
            "kind": kind.value,
            "x": agent.position.x,
            "y": agent.position.y,
            "vx": agent.velocity.x,
            "vy": agent.velocity.y,
            "heading": agent.velocity.heading(),
            "speed": agent.velocity.mag(),
        }
