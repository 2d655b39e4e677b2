from __future__ import annotations

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml


@dataclass
class SensorConfig:
    offset: float = 15.0
    angle_degrees: float = 45.0
    # Saturation level for summed stimulation; keeps near-coincident sources finite.
    input_cap: float = 5.0

    @property
    def angle(self) -> float:
        return math.radians(self.angle_degrees)


@dataclass
class MotorConfig:
    max_speed: float = 4.0
    gain: float = 2.0


@dataclass
class SourceConfig:
    intensity: float = 10000.0
    radius: float = 10.0
    max_sources: int = 5


@dataclass
class SimulationConfig:
    time_step: float = 1.0 / 60.0
    width: float = 800.0
    height: float = 600.0
    vehicle_count: int = 5
    vehicle_radius: float = 12.0
    default_behavior: str = "fear"
    seed: Optional[int] = None
    config_version: str = "v1"
    sensor: SensorConfig = field(default_factory=SensorConfig)
    motor: MotorConfig = field(default_factory=MotorConfig)
    source: SourceConfig = field(default_factory=SourceConfig)

    @property
    def wheelbase(self) -> float:
        return 2.0 * self.sensor.offset

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text())
        return load_config(data or {})


@dataclass
class AppConfig:
    simulation: SimulationConfig = field(default_factory=SimulationConfig)
    broadcast_interval: int = 1


def load_config(raw: dict) -> SimulationConfig:
    sensor = SensorConfig(**raw.get("sensor", {}))
    motor = MotorConfig(**raw.get("motor", {}))
    source = SourceConfig(**raw.get("source", {}))
    sim_values = {k: v for k, v in raw.items() if k not in {"sensor", "motor", "source"}}
    return SimulationConfig(sensor=sensor, motor=motor, source=source, **sim_values)
