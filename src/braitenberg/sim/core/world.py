from __future__ import annotations

import logging
from time import perf_counter
from typing import Any, Dict, List, Sequence

from pygame.math import Vector2

from .config import SimulationConfig
from .rng import DeterministicRng
from .source import LightSource
from .vehicle import BehaviorType, Vehicle
from ..systems import kinematics, metrics as metrics_system
from ..types.metrics import TickMetrics
from ..types.snapshot import Snapshot, SnapshotMetadata, SnapshotWorld

log = logging.getLogger(__name__)


class World:
    """Light sources and the vehicle population, advanced one frame per ``step``."""

    def __init__(self, config: SimulationConfig):
        self._config = config
        self._rng = DeterministicRng(config.seed)
        self._sources: List[LightSource] = []
        self._vehicles: List[Vehicle] = []
        self._behavior = BehaviorType(config.default_behavior)
        self._next_id = 0
        self._metrics: TickMetrics | None = None
        self.reset()

    @property
    def sources(self) -> List[LightSource]:
        return self._sources

    @property
    def vehicles(self) -> List[Vehicle]:
        return self._vehicles

    @property
    def behavior(self) -> BehaviorType:
        return self._behavior

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    @property
    def center(self) -> Vector2:
        return Vector2(self._config.width / 2.0, self._config.height / 2.0)

    def reset(self) -> None:
        self._rng.reset()
        self._next_id = 0
        self._metrics = None
        self._sources.clear()
        self._sources.append(self._make_source(self.center))
        log.debug("world reset: single source at %s", tuple(self.center))
        self.set_behavior(self._config.default_behavior)

    def add_source(self, point: Vector2 | Sequence[float]) -> LightSource:
        source = self._make_source(Vector2(point))
        self._sources.append(source)
        while len(self._sources) > self._config.source.max_sources:
            evicted = self._sources.pop(0)
            log.debug("evicted oldest source at %s", tuple(evicted.position))
        return source

    def set_behavior(self, behavior: BehaviorType | str) -> None:
        behavior = BehaviorType(behavior)
        self._behavior = behavior
        self._vehicles.clear()
        for _ in range(self._config.vehicle_count):
            self._vehicles.append(
                Vehicle(
                    id=self._next_id,
                    position=self._rng.next_point(self._config.width, self._config.height),
                    heading=self._rng.next_angle(),
                    behavior=behavior,
                    radius=self._config.vehicle_radius,
                )
            )
            self._next_id += 1
        log.debug("spawned %d %s vehicles", len(self._vehicles), behavior.value)

    def step(self, tick: int) -> TickMetrics:
        start = perf_counter()
        for vehicle in self._vehicles:
            kinematics.update_vehicle(vehicle, self._sources, self._config)
        elapsed_ms = (perf_counter() - start) * 1000.0
        metrics = metrics_system.create_metrics(tick, self._vehicles, len(self._sources), elapsed_ms)
        self._metrics = metrics
        return metrics

    def snapshot(self, tick: int) -> Snapshot:
        metrics = self._metrics
        if metrics is None:
            metrics = metrics_system.create_metrics(tick, self._vehicles, len(self._sources), 0.0)
        config = self._config
        metadata = SnapshotMetadata(
            width=config.width,
            height=config.height,
            sim_dt=config.time_step,
            tick_rate=0.0 if config.time_step <= 0 else 1.0 / config.time_step,
            seed=config.seed,
            config_version=config.config_version,
            behavior=self._behavior.value,
            behavior_description=self._behavior.description,
            max_sources=config.source.max_sources,
        )
        return Snapshot(
            tick=tick,
            metrics=metrics,
            vehicles=[self._vehicle_snapshot(vehicle) for vehicle in self._vehicles],
            sources=[self._source_snapshot(source) for source in self._sources],
            world=SnapshotWorld(width=config.width, height=config.height),
            metadata=metadata,
        )

    def _make_source(self, position: Vector2) -> LightSource:
        return LightSource(
            position=position,
            radius=self._config.source.radius,
            intensity=self._config.source.intensity,
        )

    @staticmethod
    def _vehicle_snapshot(vehicle: Vehicle) -> Dict[str, Any]:
        return {
            "id": vehicle.id,
            "x": vehicle.position.x,
            "y": vehicle.position.y,
            "heading": vehicle.heading,
            "behavior": vehicle.behavior.value,
            "left_speed": vehicle.left_speed,
            "right_speed": vehicle.right_speed,
            "left_input": vehicle.left_input,
            "right_input": vehicle.right_input,
            "speed": vehicle.speed,
            "radius": vehicle.radius,
        }

    @staticmethod
    def _source_snapshot(source: LightSource) -> Dict[str, Any]:
        return {
            "x": source.position.x,
            "y": source.position.y,
            "radius": source.radius,
            "intensity": source.intensity,
        }
