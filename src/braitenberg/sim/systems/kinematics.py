from __future__ import annotations

import math
from typing import Iterable

from ..core.config import SimulationConfig
from ..core.source import LightSource
from ..core.vehicle import Vehicle
from ..utils.math2d import _wrap_coordinate
from . import behavior, sensors


def integrate(vehicle: Vehicle, left_speed: float, right_speed: float, wheelbase: float) -> None:
    """One Euler step of differential drive.

    The frame is screen-like (y down): a faster left wheel turns the body
    clockwise, which is a positive heading change. This is the opposite sign
    to the y-up textbook form ``(vr - vl) / wheelbase``.
    """
    forward = 0.5 * (left_speed + right_speed)
    omega = (left_speed - right_speed) / wheelbase
    vehicle.position.update(
        vehicle.position.x + math.cos(vehicle.heading) * forward,
        vehicle.position.y + math.sin(vehicle.heading) * forward,
    )
    vehicle.heading += omega


def wrap(vehicle: Vehicle, width: float, height: float) -> None:
    vehicle.position.update(
        _wrap_coordinate(vehicle.position.x, width),
        _wrap_coordinate(vehicle.position.y, height),
    )


def update_vehicle(vehicle: Vehicle, sources: Iterable[LightSource], config: SimulationConfig) -> None:
    """Sense, map to wheel speeds, move and wrap ``vehicle`` in place.

    Reads only ``sources``, never other vehicles.
    """
    left_input, right_input = sensors.read_sensors(vehicle, sources, config.sensor)
    left_speed, right_speed = behavior.wheel_speeds(vehicle.behavior, left_input, right_input, config.motor)
    vehicle.left_input = left_input
    vehicle.right_input = right_input
    vehicle.left_speed = left_speed
    vehicle.right_speed = right_speed
    integrate(vehicle, left_speed, right_speed, config.wheelbase)
    wrap(vehicle, config.width, config.height)
