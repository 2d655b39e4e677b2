from __future__ import annotations

from dataclasses import dataclass

from pygame.math import Vector2


@dataclass(slots=True)
class LightSource:
    position: Vector2
    radius: float = 10.0
    intensity: float = 10000.0
