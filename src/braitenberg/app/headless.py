from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from dataclasses import replace
from pathlib import Path
from typing import Optional

from ..sim.core.config import SimulationConfig
from ..sim.core.vehicle import BehaviorType
from ..sim.core.world import World
from ..sim.types.metrics import TickMetrics

log = logging.getLogger(__name__)

_BASIC_HEADER = [
    "tick",
    "vehicles",
    "sources",
    "avg_speed",
    "avg_left_input",
    "avg_right_input",
    "stopped",
    "tick_ms",
]


def _format_basic_row(metrics: TickMetrics, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        metrics.vehicles,
        metrics.sources,
        f"{metrics.average_speed:.4f}",
        f"{metrics.average_left_input:.4f}",
        f"{metrics.average_right_input:.4f}",
        metrics.stopped,
        f"{tick_ms:.3f}",
    ]


_DETAILED_HEADER = [
    "tick",
    "vehicle_id",
    "behavior",
    "x",
    "y",
    "heading",
    "left_input",
    "right_input",
    "left_speed",
    "right_speed",
]


def _format_detailed_rows(world: World, tick: int) -> list[list[object]]:
    rows: list[list[object]] = []
    for vehicle in world.vehicles:
        rows.append(
            [
                tick,
                vehicle.id,
                vehicle.behavior.value,
                f"{vehicle.position.x:.4f}",
                f"{vehicle.position.y:.4f}",
                f"{vehicle.heading:.6f}",
                f"{vehicle.left_input:.4f}",
                f"{vehicle.right_input:.4f}",
                f"{vehicle.left_speed:.4f}",
                f"{vehicle.right_speed:.4f}",
            ]
        )
    return rows


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0, "p95": 0.0, "p99": 0.0}
    sorted_values = sorted(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(sum(values) / len(values)),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
        "p95": _percentile(sorted_values, 0.95),
        "p99": _percentile(sorted_values, 0.99),
    }


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    behavior: Optional[str] = None,
    summary_path: Optional[Path] = None,
    summary_window: int = 600,
    config: Optional[SimulationConfig] = None,
    log_format: str = "basic",
) -> World:
    config = config if config is not None else SimulationConfig()
    if seed is not None:
        config = replace(config, seed=seed)
    if behavior is not None:
        config = replace(config, default_behavior=BehaviorType(behavior).value)

    log_mode = log_format.lower().strip()
    if log_mode not in {"basic", "detailed"}:
        raise ValueError(f"Unknown log format: {log_format}")
    world = World(config)

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_DETAILED_HEADER if log_mode == "detailed" else _BASIC_HEADER)

    tick_ms_series: list[float] = []
    speed_series: list[float] = []
    try:
        for tick in range(steps):
            metrics = world.step(tick)
            tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms
            tick_ms_series.append(tick_ms)
            speed_series.append(metrics.average_speed)
            if writer:
                if log_mode == "detailed":
                    writer.writerows(_format_detailed_rows(world, tick))
                else:
                    writer.writerow(_format_basic_row(metrics, tick_ms))
    finally:
        if csv_file:
            csv_file.close()

    log.info("ran %d ticks of %s (seed=%s)", steps, world.behavior.value, config.seed)

    if summary_path:
        window = max(1, int(summary_window))
        tail_slice = slice(max(0, len(tick_ms_series) - window), len(tick_ms_series))
        summary = {
            "steps": steps,
            "seed": config.seed,
            "behavior": world.behavior.value,
            "log_format": log_mode,
            "deterministic_log": deterministic_log,
            "tick_ms": _summary_stats(tick_ms_series),
            "avg_speed": _summary_stats(speed_series),
            "tail_window": {
                "window": window,
                "tick_ms": _summary_stats(tick_ms_series[tail_slice]),
                "avg_speed": _summary_stats(speed_series[tail_slice]),
            },
            "final_vehicles": world.snapshot(steps).vehicles,
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))
    return world


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Headless Braitenberg vehicle simulation")
    parser.add_argument("--steps", type=int, default=3000)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--behavior", choices=[b.value for b in BehaviorType], default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML simulation config")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write metrics")
    parser.add_argument(
        "--log-format",
        choices=["basic", "detailed"],
        default="basic",
        help="CSV format to write when --log is provided (detailed writes one row per vehicle per tick).",
    )
    parser.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Optional JSON file to write summary stats for the run.",
    )
    parser.add_argument(
        "--summary-window",
        type=int,
        default=600,
        help="Tail window size (ticks) for summary stats.",
    )
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--log-level", default="WARNING")
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")
    config = SimulationConfig.from_yaml(args.config) if args.config else None
    run_headless(
        args.steps,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        behavior=args.behavior,
        summary_path=args.summary,
        summary_window=args.summary_window,
        config=config,
        log_format=args.log_format,
    )


if __name__ == "__main__":
    main()
