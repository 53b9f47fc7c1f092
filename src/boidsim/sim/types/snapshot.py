from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

from .metrics import FlockMetrics


@dataclass(slots=True)
class Snapshot:
    tick: int
    metrics: FlockMetrics
    agents: List[Dict[str, Any]]
    world: "SnapshotWorld"
    metadata: "SnapshotMetadata"
    params: Dict[str, float]


@dataclass(slots=True)
class SnapshotWorld:
    width: float
    height: float


@dataclass(slots=True)
class SnapshotMetadata:
    sim_dt: float
    seed: int | None
    config_version: str
    scattering: bool
    debug: bool
