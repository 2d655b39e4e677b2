from __future__ import annotations

from typing import Sequence

from ..core.vehicle import Vehicle
from ..types.metrics import TickMetrics

_STOPPED_EPSILON = 1e-9


def create_metrics(
    tick: int,
    vehicles: Sequence[Vehicle],
    source_count: int,
    duration_ms: float,
) -> TickMetrics:
    count = len(vehicles)
    speed_sum = 0.0
    left_sum = 0.0
    right_sum = 0.0
    stopped = 0
    for vehicle in vehicles:
        speed_sum += vehicle.speed
        left_sum += vehicle.left_input
        right_sum += vehicle.right_input
        if vehicle.left_speed <= _STOPPED_EPSILON and vehicle.right_speed <= _STOPPED_EPSILON:
            stopped += 1
    return TickMetrics(
        tick=tick,
        vehicles=count,
        sources=source_count,
        average_speed=0.0 if count == 0 else speed_sum / count,
        average_left_input=0.0 if count == 0 else left_sum / count,
        average_right_input=0.0 if count == 0 else right_sum / count,
        stopped=stopped,
        tick_duration_ms=duration_ms,
    )
