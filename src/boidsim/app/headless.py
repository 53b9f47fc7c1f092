from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from pathlib import Path
from typing import Optional

from ..sim.core.agent import ParticleTag
from ..sim.core.config import SimulationConfig
from ..sim.core.particle_system import ParticleSystem
from ..sim.types.metrics import FlockMetrics
from .logging_setup import setup_logging

logger = logging.getLogger(__name__)


_BASIC_HEADER = [
    "tick",
    "population",
    "boids",
    "bouncy",
    "removed",
    "scattering",
    "avg_speed",
    "neighbor_checks",
    "tick_ms",
]

_DETAILED_HEADER = [
    *_BASIC_HEADER,
    "min_speed",
    "max_speed",
    "speed_violations",
    "out_of_bounds",
    "polarization",
    "centroid_x",
    "centroid_y",
    "avg_view_neighbors",
    "neighbor_checks_per_agent",
    "tick_ms_per_agent",
]


def _format_basic_row(metrics: FlockMetrics, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        metrics.population,
        metrics.boids,
        metrics.bouncy,
        metrics.removed,
        int(metrics.scattering),
        f"{metrics.average_speed:.4f}",
        metrics.neighbor_checks,
        f"{tick_ms:.3f}",
    ]


def _format_detailed_row(system: ParticleSystem, metrics: FlockMetrics, tick_ms: float) -> list[object]:
    params = system.params
    agents = system.agents
    population = len(agents)
    if population <= 0:
        min_speed = max_speed = 0.0
        speed_violations = out_of_bounds = 0
        polarization = centroid_x = centroid_y = 0.0
        avg_view_neighbors = neighbor_checks_per_agent = tick_ms_per_agent = 0.0
    else:
        speeds = [agent.velocity.mag() for agent in agents]
        min_speed = min(speeds)
        max_speed = max(speeds)
        # bouncy particles keep their own speed and are not held to the flock range
        speed_violations = sum(
            1
            for agent, speed in zip(agents, speeds)
            if agent.has_tag(ParticleTag.BOID)
            and not params.min_velocity - 1e-6 <= speed <= params.max_velocity + 1e-6
        )
        out_of_bounds = sum(
            1
            for agent in agents
            if not (0.0 <= agent.position.x <= system.width and 0.0 <= agent.position.y <= system.height)
        )

        heading_x = 0.0
        heading_y = 0.0
        moving = 0
        for agent, speed in zip(agents, speeds):
            if speed > 1e-6:
                heading_x += agent.velocity.x / speed
                heading_y += agent.velocity.y / speed
                moving += 1
        polarization = math.hypot(heading_x, heading_y) / population if moving else 0.0

        centroid_x = sum(agent.position.x for agent in agents) / population
        centroid_y = sum(agent.position.y for agent in agents) / population

        view_sq = params.view_range * params.view_range
        pairs = 0
        for index, agent in enumerate(agents):
            for other in agents[index + 1 :]:
                if agent.position.dist_sq(other.position) < view_sq:
                    pairs += 1
        avg_view_neighbors = 2.0 * pairs / population
        neighbor_checks_per_agent = metrics.neighbor_checks / population
        tick_ms_per_agent = tick_ms / population

    return [
        *_format_basic_row(metrics, tick_ms),
        f"{min_speed:.4f}",
        f"{max_speed:.4f}",
        speed_violations,
        out_of_bounds,
        f"{polarization:.4f}",
        f"{centroid_x:.4f}",
        f"{centroid_y:.4f}",
        f"{avg_view_neighbors:.4f}",
        f"{neighbor_checks_per_agent:.4f}",
        f"{tick_ms_per_agent:.4f}",
    ]


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0, "p99": 0.0}
    sorted_values = sorted(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(sum(values) / len(values)),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
        "p99": _percentile(sorted_values, 0.99),
    }


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    log_format: str = "detailed",
    summary_path: Optional[Path] = None,
    summary_window: int = 500,
    config: Optional[SimulationConfig] = None,
) -> ParticleSystem:
    config = config if config is not None else SimulationConfig()
    if seed is not None:
        config.seed = seed

    log_mode = log_format.lower().strip()
    if log_mode not in {"basic", "detailed"}:
        raise ValueError(f"Unknown log format: {log_format}")

    system = ParticleSystem(config)
    dt = system.frame_dt(config.time_step)
    throttle = max(1, config.logging.throttle_steps)

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_DETAILED_HEADER if log_mode == "detailed" else _BASIC_HEADER)

    tick_ms_series: list[float] = []
    speed_series: list[float] = []
    scatter_ticks = 0

    try:
        for step in range(steps):
            metrics = system.move_all(dt)
            tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms
            tick_ms_series.append(tick_ms)
            speed_series.append(metrics.average_speed)
            if metrics.scattering:
                scatter_ticks += 1

            if writer:
                if log_mode == "detailed":
                    writer.writerow(_format_detailed_row(system, metrics, tick_ms))
                else:
                    writer.writerow(_format_basic_row(metrics, tick_ms))

            if (step + 1) % throttle == 0:
                logger.info("Step %d/%d population=%d", step + 1, steps, metrics.population)
    finally:
        if csv_file:
            csv_file.close()

    if summary_path:
        window = max(1, int(summary_window))
        tail_slice = slice(max(0, len(tick_ms_series) - window), len(tick_ms_series))
        summary = {
            "steps": steps,
            "seed": config.seed,
            "log_format": log_mode,
            "deterministic_log": deterministic_log,
            "population": system.num_particles(),
            "scatter_ticks": scatter_ticks,
            "scatter_rollovers": system.scatter_timer.rollovers,
            "tick_ms": _summary_stats(tick_ms_series),
            "avg_speed": _summary_stats(speed_series),
            "tail_window": {
                "window": window,
                "tick_ms": _summary_stats(tick_ms_series[tail_slice]),
                "avg_speed": _summary_stats(speed_series[tail_slice]),
            },
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))
        logger.info("Wrote run summary to %s", summary_path)

    return system


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless boids simulation")
    parser.add_argument("--steps", type=int, default=3000)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML configuration file")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write metrics")
    parser.add_argument(
        "--log-format",
        choices=["basic", "detailed"],
        default="detailed",
        help="CSV format to write when --log is provided.",
    )
    parser.add_argument("--summary", type=Path, default=None, help="Optional JSON file for run summary stats.")
    parser.add_argument("--summary-window", type=int, default=500, help="Tail window size (ticks) for summary stats.")
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    args = parser.parse_args()

    config = SimulationConfig.from_yaml(args.config) if args.config else SimulationConfig()
    setup_logging(config.logging)
    run_headless(
        args.steps,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        log_format=args.log_format,
        summary_path=args.summary,
        summary_window=args.summary_window,
        config=config,
    )


if __name__ == "__main__":
    main()
