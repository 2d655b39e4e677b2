from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pygame.math import Vector2


class BehaviorType(str, Enum):
    FEAR = "fear"
    AGGRESSION = "aggression"
    LOVE = "love"
    EXPLORER = "explorer"

    @property
    def description(self) -> str:
        return _DESCRIPTIONS[self]


_DESCRIPTIONS = {
    BehaviorType.FEAR: (
        '"Fear": Sensors connected directly to same-side wheels. '
        "Gets faster closer to light, turning away from it."
    ),
    BehaviorType.AGGRESSION: (
        '"Aggression": Crossed connections. Gets faster closer to light, turning towards it.'
    ),
    BehaviorType.LOVE: (
        '"Love": Inhibitory connections. Slows down closer to light, turning towards it and stopping.'
    ),
    BehaviorType.EXPLORER: (
        '"Explorer": Crossed inhibitory. Slows down closer to light, turning away from it (prefers the dark).'
    ),
}


@dataclass(slots=True)
class Vehicle:
    id: int
    position: Vector2
    heading: float
    behavior: BehaviorType
    left_speed: float = 0.0
    right_speed: float = 0.0
    left_input: float = 0.0
    right_input: float = 0.0
    radius: float = 12.0

    @property
    def speed(self) -> float:
        return 0.5 * (self.left_speed + self.right_speed)
