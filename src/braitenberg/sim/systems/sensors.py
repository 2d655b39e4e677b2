from __future__ import annotations

import math
from typing import Iterable

from pygame.math import Vector2

from ..core.config import SensorConfig
from ..core.source import LightSource
from ..core.vehicle import Vehicle
from ..utils.math2d import _offset_xy


def sensor_positions(
    position: Vector2, heading: float, sensor: SensorConfig
) -> tuple[Vector2, Vector2]:
    """World positions of the (left, right) sensors for a body at ``position``/``heading``."""
    angle = sensor.angle
    left = _offset_xy(position.x, position.y, heading - angle, sensor.offset)
    right = _offset_xy(position.x, position.y, heading + angle, sensor.offset)
    return left, right


def stimulation(point: Vector2, sources: Iterable[LightSource]) -> float:
    """Inverse-square intensity summed over ``sources``, uncapped.

    A source sitting exactly on ``point`` contributes ``inf``.
    """
    total = 0.0
    for source in sources:
        dx = source.position.x - point.x
        dy = source.position.y - point.y
        dist_sq = dx * dx + dy * dy
        if dist_sq <= 0.0:
            return math.inf
        total += source.intensity / dist_sq
    return total


def read_sensors(
    vehicle: Vehicle, sources: Iterable[LightSource], sensor: SensorConfig
) -> tuple[float, float]:
    sources = list(sources)
    left_point, right_point = sensor_positions(vehicle.position, vehicle.heading, sensor)
    left_input = min(stimulation(left_point, sources), sensor.input_cap)
    right_input = min(stimulation(right_point, sources), sensor.input_cap)
    return left_input, right_input
