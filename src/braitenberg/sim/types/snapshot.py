from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .metrics import TickMetrics


@dataclass(slots=True)
class Snapshot:
    tick: int
    metrics: TickMetrics
    vehicles: List[Dict[str, Any]]
    sources: List[Dict[str, Any]]
    world: "SnapshotWorld"
    metadata: "SnapshotMetadata"


@dataclass(slots=True)
class SnapshotWorld:
    width: float
    height: float


@dataclass(slots=True)
class SnapshotMetadata:
    width: float
    height: float
    sim_dt: float
    tick_rate: float
    seed: Optional[int]
    config_version: str
    behavior: str
    behavior_description: str
    max_sources: int
