from __future__ import annotations

import argparse
import logging
import math
from pathlib import Path
from typing import Dict, Optional, Sequence

import pygame
from pygame.math import Vector2

from ..sim.core.config import SimulationConfig
from ..sim.core.vehicle import BehaviorType
from ..sim.core.world import World
from ..sim.types.snapshot import Snapshot

log = logging.getLogger(__name__)

BACKGROUND = (34, 34, 34)
TRAIL_ALPHA = 77
SOURCE_COLOR = (255, 255, 0)
SENSOR_COLOR = (0, 255, 0)
WHEEL_COLOR = (136, 136, 136)
OUTLINE_COLOR = (255, 255, 255)
BEHAVIOR_COLORS: Dict[str, tuple[int, int, int]] = {
    BehaviorType.FEAR.value: (255, 68, 68),
    BehaviorType.AGGRESSION.value: (255, 136, 0),
    BehaviorType.LOVE.value: (255, 105, 180),
    BehaviorType.EXPLORER.value: (68, 68, 255),
}

BEHAVIOR_KEYS: Dict[int, BehaviorType] = {
    pygame.K_1: BehaviorType.FEAR,
    pygame.K_2: BehaviorType.AGGRESSION,
    pygame.K_3: BehaviorType.LOVE,
    pygame.K_4: BehaviorType.EXPLORER,
}


def _rotated_rect(center: Vector2, heading: float, x0: float, y0: float, w: float, h: float) -> list[Vector2]:
    corners = (Vector2(x0, y0), Vector2(x0 + w, y0), Vector2(x0 + w, y0 + h), Vector2(x0, y0 + h))
    return [center + corner.rotate_rad(heading) for corner in corners]


class Renderer:
    """Draws snapshots onto a surface, leaving fading trails behind vehicles."""

    def __init__(self, size: Sequence[int], sensor_offset: float = 15.0, sensor_angle: float = math.pi / 4):
        self.sensor_offset = sensor_offset
        self.sensor_angle = sensor_angle
        self._overlay = pygame.Surface(size, pygame.SRCALPHA)
        self._overlay.fill((*BACKGROUND, TRAIL_ALPHA))

    def draw(self, surface: pygame.Surface, snapshot: Snapshot) -> None:
        surface.blit(self._overlay, (0, 0))
        for source in snapshot.sources:
            pygame.draw.circle(surface, SOURCE_COLOR, (round(source["x"]), round(source["y"])), round(source["radius"]))
        for vehicle in snapshot.vehicles:
            self.draw_vehicle(surface, vehicle)

    def draw_vehicle(self, surface: pygame.Surface, vehicle: Dict[str, object]) -> None:
        center = Vector2(vehicle["x"], vehicle["y"])
        heading = float(vehicle["heading"])
        color = BEHAVIOR_COLORS.get(str(vehicle["behavior"]), OUTLINE_COLOR)

        body = _rotated_rect(center, heading, -10, -8, 20, 16)
        pygame.draw.polygon(surface, color, body)
        pygame.draw.polygon(surface, OUTLINE_COLOR, body, 1)

        for angle in (-self.sensor_angle, self.sensor_angle):
            sensor = center + Vector2(self.sensor_offset, 0).rotate_rad(heading + angle)
            pygame.draw.circle(surface, SENSOR_COLOR, (round(sensor.x), round(sensor.y)), 3)

        pygame.draw.polygon(surface, WHEEL_COLOR, _rotated_rect(center, heading, -5, -12, 10, 4))
        pygame.draw.polygon(surface, WHEEL_COLOR, _rotated_rect(center, heading, -5, 8, 10, 4))


def handle_event(world: World, event: pygame.event.Event) -> bool:
    """Apply one input event to ``world``. Returns False when the viewer should quit."""
    if event.type == pygame.QUIT:
        return False
    if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
        world.add_source(event.pos)
    elif event.type == pygame.KEYDOWN:
        if event.key == pygame.K_ESCAPE:
            return False
        if event.key in BEHAVIOR_KEYS:
            world.set_behavior(BEHAVIOR_KEYS[event.key])
        elif event.key == pygame.K_r:
            world.reset()
    return True


def run_viewer(config: SimulationConfig, fps: int = 60, max_frames: Optional[int] = None) -> World:
    pygame.init()
    try:
        size = (int(config.width), int(config.height))
        screen = pygame.display.set_mode(size)
        world = World(config)
        renderer = Renderer(size, config.sensor.offset, config.sensor.angle)
        clock = pygame.time.Clock()
        screen.fill(BACKGROUND)
        tick = 0
        running = True
        while running and (max_frames is None or tick < max_frames):
            for event in pygame.event.get():
                if not handle_event(world, event):
                    running = False
            world.step(tick)
            renderer.draw(screen, world.snapshot(tick))
            pygame.display.set_caption(f"Braitenberg - {world.behavior.description}")
            pygame.display.flip()
            clock.tick(fps)
            tick += 1
        log.info("viewer closed after %d frames", tick)
        return world
    finally:
        pygame.quit()


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Braitenberg vehicles desktop viewer")
    parser.add_argument("--config", type=Path, default=None, help="YAML simulation config")
    parser.add_argument("--fps", type=int, default=60)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")
    config = SimulationConfig.from_yaml(args.config) if args.config else SimulationConfig()
    if args.seed is not None:
        config.seed = args.seed
    run_viewer(config, fps=args.fps)


if __name__ == "__main__":
    main()
