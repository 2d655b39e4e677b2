from __future__ import annotations

import math

from pygame.math import Vector2


def _clamp_value(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(max_value, value))


def _offset_xy(x: float, y: float, angle: float, distance: float) -> Vector2:
    return Vector2(x + math.cos(angle) * distance, y + math.sin(angle) * distance)


def _wrap_coordinate(value: float, limit: float) -> float:
    # Teleport to the opposite edge; a single crossing per tick is assumed.
    if value < 0.0:
        return limit
    if value > limit:
        return 0.0
    return value
