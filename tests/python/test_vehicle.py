from __future__ import annotations

from pygame.math import Vector2

from braitenberg.sim.core.source import LightSource
from braitenberg.sim.core.vehicle import BehaviorType, Vehicle


def _make_vehicle(vehicle_id: int) -> Vehicle:
    return Vehicle(id=vehicle_id, position=Vector2(), heading=0.0, behavior=BehaviorType.FEAR)


def test_vehicle_and_source_use_slots():
    vehicle = _make_vehicle(1)
    source = LightSource(position=Vector2())

    assert not hasattr(vehicle, "__dict__")
    assert not hasattr(source, "__dict__")
    assert hasattr(Vehicle, "__slots__")
    assert hasattr(LightSource, "__slots__")


def test_vehicle_defaults_start_at_rest():
    vehicle = _make_vehicle(2)

    assert vehicle.left_speed == vehicle.right_speed == 0.0
    assert vehicle.left_input == vehicle.right_input == 0.0
    assert vehicle.speed == 0.0
    assert vehicle.radius == 12.0


def test_speed_is_mean_of_wheels():
    vehicle = _make_vehicle(3)
    vehicle.left_speed = 1.0
    vehicle.right_speed = 3.0

    assert vehicle.speed == 2.0
