import asyncio
import json

import pytest
from fastapi import WebSocketDisconnect

from braitenberg.app import server
from braitenberg.app.server import SimulationController
from braitenberg.sim.core.config import AppConfig, SimulationConfig


def test_snapshot_queue_ack_cleanup() -> None:
    controller = SimulationController(SimulationConfig(seed=1))

    async def exercise() -> None:
        controller.tick = 1
        await controller._broadcast_snapshot()
        controller.tick = 2
        await controller._broadcast_snapshot()
        async with controller._queue_lock:
            queued_ticks = [item.tick for item in controller._snapshot_queue]
        assert queued_ticks == [1, 2]
        await controller.acknowledge(1)
        async with controller._queue_lock:
            remaining_ticks = [item.tick for item in controller._snapshot_queue]
        assert remaining_ticks == [2]

    asyncio.run(exercise())


def test_mutations_between_ticks_replace_the_queued_snapshot() -> None:
    controller = SimulationController(SimulationConfig(seed=1))

    async def exercise() -> None:
        controller.tick = 3
        await controller._broadcast_snapshot()
        count = await controller.add_source(10.0, 20.0)
        assert count == 2
        async with controller._queue_lock:
            queued = list(controller._snapshot_queue)
        assert [item.tick for item in queued] == [3]
        payload = json.loads(queued[0].payload)
        assert payload["type"] == "snapshot"
        assert len(payload["payload"]["sources"]) == 2

        behavior = await controller.set_behavior("aggression")
        assert behavior.value == "aggression"
        async with controller._queue_lock:
            latest = json.loads(controller._snapshot_queue[-1].payload)
        assert latest["payload"]["metadata"]["behavior"] == "aggression"
        assert {v["behavior"] for v in latest["payload"]["vehicles"]} == {"aggression"}

    asyncio.run(exercise())


def test_reset_clears_queue_and_restores_world() -> None:
    controller = SimulationController(SimulationConfig(seed=2))

    async def exercise() -> None:
        for i in range(6):
            await controller.add_source(float(i), float(i))
        controller.tick = 9
        await controller.reset()
        assert controller.tick == 0
        assert len(controller.world.sources) == 1
        async with controller._queue_lock:
            assert [item.tick for item in controller._snapshot_queue] == [0]

    asyncio.run(exercise())


def test_unknown_behavior_propagates_from_controller() -> None:
    controller = SimulationController(SimulationConfig(seed=2))

    with pytest.raises(ValueError):
        asyncio.run(controller.set_behavior("grumpy"))


def test_behavior_endpoint_returns_400_for_unknown_names() -> None:
    response = asyncio.run(server.set_behavior({"behavior": "grumpy"}))

    assert response.status_code == 400
    body = json.loads(response.body)
    assert body["valid"] == ["fear", "aggression", "love", "explorer"]


def test_source_endpoint_validates_coordinates() -> None:
    bad = asyncio.run(server.add_source({"x": "left"}))
    assert bad.status_code == 400

    good = asyncio.run(server.add_source({"x": 5, "y": 6}))
    assert good.status_code == 200
    assert json.loads(good.body)["sources"] == len(server.controller.world.sources)


def test_behaviors_endpoint_lists_descriptions() -> None:
    response = asyncio.run(server.behaviors())

    body = json.loads(response.body)
    assert [item["name"] for item in body] == ["fear", "aggression", "love", "explorer"]
    assert all(item["description"] for item in body)


class _RecordingClient:
    def __init__(self, on_send=None) -> None:
        self.messages: list[dict] = []
        self._on_send = on_send

    async def send_text(self, text: str) -> None:
        await asyncio.sleep(0)
        if self._on_send is not None:
            self._on_send()
        self.messages.append(json.loads(text))


class _DisconnectedClient:
    async def send_text(self, text: str) -> None:
        raise WebSocketDisconnect()


def _connect(controller: SimulationController, client) -> None:
    controller.clients.add(client)
    controller._client_last_sent[client] = -1


def test_client_that_saw_a_tick_receives_its_rebroadcast() -> None:
    controller = SimulationController(SimulationConfig(seed=1))
    client = _RecordingClient()
    _connect(controller, client)

    async def exercise() -> None:
        controller.tick = 3
        await controller._broadcast_snapshot()
        await controller.add_source(40.0, 50.0)

    asyncio.run(exercise())

    assert [message["tick"] for message in client.messages] == [3, 3]
    assert len(client.messages[0]["payload"]["sources"]) == 1
    assert len(client.messages[1]["payload"]["sources"]) == 2
    assert controller._client_last_sent[client] == 3


def test_disconnected_clients_are_dropped() -> None:
    controller = SimulationController(SimulationConfig(seed=1))
    alive = _RecordingClient()
    gone = _DisconnectedClient()
    _connect(controller, alive)
    _connect(controller, gone)

    asyncio.run(controller._broadcast_snapshot())

    assert controller.clients == {alive}
    assert gone not in controller._client_last_sent
    assert len(alive.messages) == 1


def test_client_leaving_during_a_send_does_not_break_broadcast() -> None:
    controller = SimulationController(SimulationConfig(seed=1))
    leaving = _RecordingClient()
    sender = _RecordingClient(on_send=lambda: controller.clients.discard(leaving))
    _connect(controller, sender)
    _connect(controller, leaving)

    async def exercise() -> None:
        controller.tick = 1
        await controller._broadcast_snapshot()
        controller.tick = 2
        await controller._broadcast_snapshot()

    asyncio.run(exercise())

    assert leaving not in controller.clients
    assert [message["tick"] for message in sender.messages] == [1, 2]


@pytest.mark.parametrize("x,y", [("nan", 5), (1.0, "inf"), (float("-inf"), 0.0)])
def test_source_endpoint_rejects_non_finite_coordinates(x, y) -> None:
    before = len(server.controller.world.sources)

    response = asyncio.run(server.add_source({"x": x, "y": y}))

    assert response.status_code == 400
    assert len(server.controller.world.sources) == before
    json.loads(server.controller._serialize_snapshot().payload, parse_constant=_reject_constant)


def _reject_constant(name: str) -> None:
    raise ValueError(f"non-standard JSON constant {name}")


def test_build_controller_uses_app_config() -> None:
    app_config = AppConfig(simulation=SimulationConfig(seed=5, vehicle_count=2), broadcast_interval=4)

    controller = server.build_controller(app_config)

    assert controller.broadcast_interval == 4
    assert controller.config is app_config.simulation
    assert len(controller.world.vehicles) == 2


def test_main_passes_broadcast_interval_and_config(tmp_path, monkeypatch) -> None:
    config_path = tmp_path / "sim.yaml"
    config_path.write_text("vehicle_count: 3\n")
    calls = []
    monkeypatch.setattr(server, "controller", server.controller)
    monkeypatch.setattr(server.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))

    server.main(["--broadcast-interval", "3", "--config", str(config_path), "--port", "9001"])

    assert server.controller.broadcast_interval == 3
    assert len(server.controller.world.vehicles) == 3
    assert calls[0][0] is server.app
    assert calls[0][1]["port"] == 9001
