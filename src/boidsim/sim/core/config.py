from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Optional

import yaml

# Scales the UI-facing wall avoidance factor up to a force in px/s^2.
WALL_AVOID_SCALE = 1000.0

SLOW_MOTION_SCALE = 0.25


@dataclass
class FlockParams:
    view_range: float = 60.0
    min_distance: float = 18.0
    separation_factor: float = 6.0
    cohesion_factor: float = 1.0
    alignment_factor: float = 1.2
    wall_avoid_factor: float = 1.0
    wall_margin: float = 80.0
    scatter_chance: float = 0.1
    time_scale: float = 1.0
    min_velocity: float = 90.0
    max_velocity: float = 180.0

    def validate(self) -> None:
        for item in fields(self):
            value = getattr(self, item.name)
            if not isinstance(value, (int, float)) or isinstance(value, bool) or not math.isfinite(value):
                raise ValueError(f"{item.name} must be a finite number, got {value!r}")
        if self.view_range < 0 or self.min_distance < 0 or self.wall_margin < 0:
            raise ValueError("view_range, min_distance and wall_margin must be non-negative")
        if not 0.0 <= self.scatter_chance <= 1.0:
            raise ValueError(f"scatter_chance must lie in [0, 1], got {self.scatter_chance}")
        if self.time_scale <= 0:
            raise ValueError(f"time_scale must be positive, got {self.time_scale}")
        if not 0 < self.min_velocity <= self.max_velocity:
            raise ValueError(
                f"velocity range must satisfy 0 < min <= max, got [{self.min_velocity}, {self.max_velocity}]"
            )

    @classmethod
    def names(cls) -> list[str]:
        return [item.name for item in fields(cls)]


@dataclass
class LoggingConfig:
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_file: Optional[str] = None
    # Steps between progress lines in long loops.
    throttle_steps: int = 500


@dataclass
class SimulationConfig:
    width: float = 750.0
    height: float = 750.0
    initial_population: int = 60
    # Upper bound for population requests coming from the control surface.
    max_population: int = 2000
    seed: Optional[int] = None
    # Fixed step used by the headless runner and the server loop.
    time_step: float = 1.0 / 60.0
    dt_damping: float = 0.75
    max_frame_time: float = 0.1
    scatter_interval: float = 1.5
    bouncy_speed: float = 300.0
    config_version: str = "v1"
    flock: FlockParams = field(default_factory=FlockParams)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def validate(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"surface must have positive size, got {self.width}x{self.height}")
        if not 0 <= self.initial_population <= self.max_population:
            raise ValueError(
                f"initial_population must lie in [0, max_population={self.max_population}], got {self.initial_population}"
            )
        if self.time_step <= 0 or self.max_frame_time <= 0 or self.scatter_interval <= 0:
            raise ValueError("time_step, max_frame_time and scatter_interval must be positive")
        if self.dt_damping <= 0:
            raise ValueError("dt_damping must be positive")
        self.flock.validate()

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)


def load_config(raw: dict) -> SimulationConfig:
    flock = FlockParams(**raw.get("flock", {}))
    logging_config = LoggingConfig(**raw.get("logging", {}))
    sim_values = {k: v for k, v in raw.items() if k not in {"flock", "logging"}}
    config = SimulationConfig(flock=flock, logging=logging_config, **sim_values)
    config.validate()
    return config


def dump_config(config: SimulationConfig) -> str:
    return yaml.safe_dump(asdict(config), sort_keys=False)
