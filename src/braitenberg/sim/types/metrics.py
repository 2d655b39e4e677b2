from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TickMetrics:
    tick: int
    vehicles: int
    sources: int
    average_speed: float
    average_left_input: float
    average_right_input: float
    stopped: int
    tick_duration_ms: float = 0.0
