from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from dataclasses import asdict, dataclass
from time import perf_counter
from typing import Dict, Set

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from ..config import ConfigError, SimulationConfig, update_section
from ..logging_config import configure_logging
from ..sim.core.scheduler import TickScheduler
from ..sim.core.simulation import Simulation

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueuedSnapshot:
    tick: int
    payload: str


class SimulationController:
    """Drives the scheduler from an asyncio frame loop and fans out snapshots."""

    def __init__(self, config: SimulationConfig, broadcast_interval: int = 1, max_queued_snapshots: int = 64):
        self.config = config
        self.simulation = Simulation(config)
        self.scheduler = TickScheduler(self.simulation)
        self.broadcast_interval = max(1, broadcast_interval)
        self.overlay_visible = False
        self.clients: Set[WebSocket] = set()
        self._client_last_sent: Dict[WebSocket, int] = {}
        # Oldest unacknowledged snapshots fall off once the queue is full.
        self._snapshot_queue: deque[QueuedSnapshot] = deque(maxlen=max(1, max_queued_snapshots))
        self._lock = asyncio.Lock()
        self._queue_lock = asyncio.Lock()
        self._frame_task: asyncio.Task | None = None
        self._last_broadcast_tick = -1

    @property
    def running(self) -> bool:
        return self.scheduler.running

    async def start(self) -> None:
        if self._frame_task is None:
            self._frame_task = asyncio.create_task(self._loop())
        async with self._lock:
            self.scheduler.start()

    async def stop(self) -> None:
        async with self._lock:
            self.scheduler.stop()

    async def reset(self) -> None:
        async with self._lock:
            self.scheduler.reset()
        async with self._queue_lock:
            self._snapshot_queue.clear()
        for client in self._client_last_sent:
            self._client_last_sent[client] = -1
        self._last_broadcast_tick = -1
        await self._broadcast_snapshot()

    async def update_config(self, section: str, values: dict) -> None:
        async with self._lock:
            update_section(self.config, section, values)
        logger.info("Configuration section %s updated: %s", section, sorted(values))

    async def advance_frame(self, elapsed_ms: float) -> int:
        async with self._lock:
            ran = self.scheduler.advance(elapsed_ms, overlay_visible=self.overlay_visible)
        tick = self.simulation.tick
        if ran and tick - self._last_broadcast_tick >= self.broadcast_interval:
            await self._broadcast_snapshot()
        return ran

    async def _loop(self) -> None:
        last = perf_counter()
        while True:
            await asyncio.sleep(self.config.frame_interval_ms / 1000.0)
            now = perf_counter()
            elapsed_ms = (now - last) * 1000.0
            last = now
            await self.advance_frame(elapsed_ms)

    async def acknowledge(self, tick: int) -> None:
        async with self._queue_lock:
            while self._snapshot_queue and self._snapshot_queue[0].tick <= tick:
                self._snapshot_queue.popleft()

    def _serialize_snapshot(self) -> QueuedSnapshot:
        snapshot = self.simulation.snapshot(running=self.running)
        payload = {
            "type": "snapshot",
            "tick": snapshot.tick,
            "payload": asdict(snapshot),
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
        self._last_broadcast_tick = queued.tick
        async with self._queue_lock:
            self._snapshot_queue.append(queued)
        stale: Set[WebSocket] = set()
        for client in self.clients:
            try:
                await self._send_pending_snapshots(client)
            except WebSocketDisconnect:
                stale.add(client)
        for client in stale:
            self.clients.discard(client)
            self._client_last_sent.pop(client, None)


app = FastAPI(title="Biome Ecosystem Simulation")
controller = SimulationController(SimulationConfig())


@app.on_event("startup")
async def _startup() -> None:
    configure_logging(include_uvicorn=True)
    await controller.start()


@app.get("/api/status")
async def status() -> JSONResponse:
    return JSONResponse(
        {
            "running": controller.running,
            "tick": controller.simulation.tick,
            "creatures": len(controller.simulation.creatures),
            "food": len(controller.simulation.food),
            "water_bodies": len(controller.simulation.obstacles),
        }
    )


@app.get("/api/stats")
async def stats() -> JSONResponse:
    return JSONResponse(asdict(controller.simulation.stats))


@app.post("/api/control/start")
async def start_simulation() -> JSONResponse:
    await controller.start()
    return JSONResponse({"running": True})


@app.post("/api/control/stop")
async def stop_simulation() -> JSONResponse:
    await controller.stop()
    return JSONResponse({"running": False})


@app.post("/api/control/reset")
async def reset_simulation() -> JSONResponse:
    await controller.reset()
    return JSONResponse({"running": controller.running, "tick": controller.simulation.tick})


@app.post("/api/control/overlay")
async def set_overlay(payload: dict) -> JSONResponse:
    controller.overlay_visible = bool(payload.get("visible", False))
    return JSONResponse({"visible": controller.overlay_visible})


@app.post("/api/config")
async def patch_config(payload: dict) -> JSONResponse:
    section = str(payload.get("section", "simulation"))
    values = payload.get("values", {})
    if not isinstance(values, dict):
        return JSONResponse({"error": "values must be an object"}, status_code=422)
    try:
        await controller.update_config(section, values)
    except ConfigError as exc:
        return JSONResponse({"error": str(exc)}, status_code=422)
    return JSONResponse({"section": section, "values": values})


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
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
        controller.clients.discard(websocket)
        controller._client_last_sent.pop(websocket, None)


__all__ = ["app", "controller"]
