from __future__ import annotations

import argparse
import asyncio
import json
import logging
import math
from collections import deque
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Dict, Optional, Set

import uvicorn
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from ..sim.core.config import AppConfig, SimulationConfig
from ..sim.core.vehicle import BehaviorType
from ..sim.core.world import World

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueuedSnapshot:
    tick: int
    payload: str


class SimulationController:
    def __init__(self, config: SimulationConfig, broadcast_interval: int = 1):
        self.config = config
        self.world = World(config)
        self.broadcast_interval = max(1, broadcast_interval)
        self.running = False
        self.tick = 0
        self.speed_multiplier = 1.0
        self.clients: Set[WebSocket] = set()
        self._client_last_sent: Dict[WebSocket, int] = {}
        self._snapshot_queue: deque[QueuedSnapshot] = deque()
        self._lock = asyncio.Lock()
        self._queue_lock = asyncio.Lock()
        self._broadcast_task: asyncio.Task | None = None

    async def start(self) -> None:
        if self._broadcast_task is None:
            self._broadcast_task = asyncio.create_task(self._loop())
            log.info("simulation loop started (dt=%.4f)", self.config.time_step)
        self.running = True

    async def stop(self) -> None:
        self.running = False

    async def reset(self) -> None:
        async with self._lock:
            self.world.reset()
            self.tick = 0
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in self._client_last_sent:
            self._client_last_sent[client] = -1
        await self._broadcast_snapshot()

    async def add_source(self, x: float, y: float) -> int:
        async with self._lock:
            self.world.add_source((x, y))
            count = len(self.world.sources)
        await self._broadcast_snapshot()
        return count

    async def set_behavior(self, behavior: BehaviorType | str) -> BehaviorType:
        async with self._lock:
            self.world.set_behavior(behavior)
            current = self.world.behavior
        await self._broadcast_snapshot()
        return current

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.time_step / self.speed_multiplier)
            if not self.running:
                continue
            async with self._lock:
                self.world.step(self.tick)
                self.tick += 1
            if self.tick % self.broadcast_interval == 0:
                await self._broadcast_snapshot()

    async def acknowledge(self, tick: int) -> None:
        async with self._queue_lock:
            while self._snapshot_queue and self._snapshot_queue[0].tick <= tick:
                self._snapshot_queue.popleft()

    def _serialize_snapshot(self) -> QueuedSnapshot:
        snapshot = self.world.snapshot(self.tick)
        payload = {
            "type": "snapshot",
            "tick": snapshot.tick,
            "payload": {
                "tick": snapshot.tick,
                "metrics": asdict(snapshot.metrics),
                "vehicles": snapshot.vehicles,
                "sources": snapshot.sources,
                "world": asdict(snapshot.world),
                "metadata": asdict(snapshot.metadata),
            },
        }
        return QueuedSnapshot(tick=snapshot.tick, payload=json.dumps(payload))

    async def _send_pending_snapshots(self, client: WebSocket) -> None:
        last_sent = self._client_last_sent.get(client, -1)
        async with self._queue_lock:
            pending = [item for item in self._snapshot_queue if item.tick > last_sent]
        for item in pending:
            await client.send_text(item.payload)
            last_sent = item.tick
        self._client_last_sent[client] = last_sent

    async def _broadcast_snapshot(self) -> None:
        queued = self._serialize_snapshot()
        async with self._queue_lock:
            # Mutations between ticks re-broadcast the same tick; keep only the latest.
            while self._snapshot_queue and self._snapshot_queue[-1].tick >= queued.tick:
                self._snapshot_queue.pop()
            self._snapshot_queue.append(queued)
        for client in list(self.clients):
            if self._client_last_sent.get(client, -1) >= queued.tick:
                self._client_last_sent[client] = queued.tick - 1
        stale: Set[WebSocket] = set()
        # Handlers may drop clients while a send is awaiting.
        for client in list(self.clients):
            try:
                await self._send_pending_snapshots(client)
            except WebSocketDisconnect:
                stale.add(client)
        for client in stale:
            log.info("dropping disconnected client")
            self.clients.discard(client)
            self._client_last_sent.pop(client, None)


def _bad_request(message: str, **extra: object) -> JSONResponse:
    log.warning("rejected request: %s", message)
    return JSONResponse({"error": message, **extra}, status_code=400)


def build_controller(app_config: AppConfig) -> SimulationController:
    return SimulationController(app_config.simulation, broadcast_interval=app_config.broadcast_interval)


app = FastAPI(title="Braitenberg Vehicles")
controller = build_controller(AppConfig())
static_dir = Path(__file__).parent / "static"
app.mount("/static", StaticFiles(directory=static_dir), name="static")


@app.on_event("startup")
async def _startup() -> None:
    await controller.start()


@app.get("/")
async def index() -> FileResponse:
    return FileResponse(static_dir / "index.html")


@app.get("/api/status")
async def status() -> JSONResponse:
    snapshot = controller.world.snapshot(controller.tick)
    return JSONResponse(
        {
            "running": controller.running,
            "tick": controller.tick,
            "vehicles": len(controller.world.vehicles),
            "sources": len(controller.world.sources),
            "behavior": controller.world.behavior.value,
            "metrics": asdict(snapshot.metrics),
        }
    )


@app.get("/api/behaviors")
async def behaviors() -> JSONResponse:
    return JSONResponse([{"name": b.value, "description": b.description} for b in BehaviorType])


@app.post("/api/control/start")
async def start_simulation() -> JSONResponse:
    controller.running = True
    return JSONResponse({"running": True})


@app.post("/api/control/stop")
async def stop_simulation() -> JSONResponse:
    controller.running = False
    return JSONResponse({"running": False})


@app.post("/api/control/reset")
async def reset_simulation() -> JSONResponse:
    await controller.reset()
    return JSONResponse({"running": controller.running, "tick": controller.tick})


@app.post("/api/control/speed")
async def set_speed(payload: dict) -> JSONResponse:
    speed = float(payload.get("multiplier", 1.0))
    controller.speed_multiplier = max(0.1, min(5.0, speed))
    return JSONResponse({"multiplier": controller.speed_multiplier})


@app.post("/api/sources")
async def add_source(payload: dict) -> JSONResponse:
    try:
        x = float(payload["x"])
        y = float(payload["y"])
    except (KeyError, TypeError, ValueError):
        return _bad_request("x and y must be numbers")
    if not (math.isfinite(x) and math.isfinite(y)):
        return _bad_request("x and y must be finite")
    count = await controller.add_source(x, y)
    return JSONResponse({"sources": count})


@app.post("/api/behavior")
async def set_behavior(payload: dict) -> JSONResponse:
    try:
        behavior = await controller.set_behavior(payload.get("behavior"))
    except ValueError:
        return _bad_request(
            f"unknown behavior: {payload.get('behavior')!r}",
            valid=[b.value for b in BehaviorType],
        )
    return JSONResponse({"behavior": behavior.value, "description": behavior.description})


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    log.info("client connected (%d total)", len(controller.clients) + 1)
    controller.clients.add(websocket)
    controller._client_last_sent[websocket] = -1
    await controller._send_pending_snapshots(websocket)
    try:
        while True:
            message = await websocket.receive_text()
            try:
                payload = json.loads(message)
            except json.JSONDecodeError:
                continue
            if payload.get("type") == "ack":
                tick = payload.get("tick")
                if isinstance(tick, int):
                    await controller.acknowledge(tick)
    except WebSocketDisconnect:
        log.info("client disconnected")
        controller.clients.discard(websocket)
        controller._client_last_sent.pop(websocket, None)


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Braitenberg vehicles web simulation")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--config", type=Path, default=None, help="YAML simulation config")
    parser.add_argument(
        "--broadcast-interval",
        type=int,
        default=AppConfig.broadcast_interval,
        help="Ticks between websocket snapshots.",
    )
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    global controller
    simulation = SimulationConfig.from_yaml(args.config) if args.config is not None else SimulationConfig()
    controller = build_controller(AppConfig(simulation=simulation, broadcast_interval=args.broadcast_interval))
    uvicorn.run(app, host=args.host, port=args.port, log_level=args.log_level.lower())


__all__ = ["app", "controller", "main"]
