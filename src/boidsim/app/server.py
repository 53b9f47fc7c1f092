from __future__ import annotations

import asyncio
import json
import logging
from collections import deque
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse

from ..sim.core.config import SimulationConfig
from ..sim.core.particle_system import ParticleSystem
from ..sim.types.snapshot import Snapshot

logger = logging.getLogger(__name__)

FEED_CAPACITY = 256


@dataclass(frozen=True, slots=True)
class FeedFrame:
    tick: int
    text: str


def encode_snapshot(snapshot: Snapshot) -> FeedFrame:
    body = {
        "tick": snapshot.tick,
        "metrics": asdict(snapshot.metrics),
        "agents": snapshot.agents,
        "world": asdict(snapshot.world),
        "metadata": asdict(snapshot.metadata),
        "params": snapshot.params,
    }
    message = {"type": "snapshot", "tick": snapshot.tick, "payload": body}
    return FeedFrame(snapshot.tick, json.dumps(message))


class SnapshotFeed:
    """Snapshot frames kept until a client acknowledges them.

    Each subscriber has a read cursor (the last tick it was sent), so a client
    that joins late or falls behind receives every frame still held.
    """

    def __init__(self, capacity: int = FEED_CAPACITY):
        self._frames: deque[FeedFrame] = deque(maxlen=max(1, capacity))
        self._cursors: Dict[WebSocket, int] = {}
        self._guard = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._frames)

    def ticks(self) -> List[int]:
        return [frame.tick for frame in self._frames]

    def subscribers(self) -> List[WebSocket]:
        return list(self._cursors)

    def subscribe(self, client: WebSocket) -> None:
        self._cursors.setdefault(client, -1)

    def unsubscribe(self, client: WebSocket) -> None:
        self._cursors.pop(client, None)

    async def rewind(self) -> None:
        async with self._guard:
            self._frames.clear()
            self._cursors = dict.fromkeys(self._cursors, -1)

    async def acknowledge(self, tick: int) -> int:
        dropped = 0
        async with self._guard:
            while self._frames and self._frames[0].tick <= tick:
                self._frames.popleft()
                dropped += 1
        return dropped

    async def publish(self, frame: FeedFrame) -> None:
        async with self._guard:
            self._frames.append(frame)
        for client in self.subscribers():
            if not await self.deliver(client):
                self.unsubscribe(client)

    async def deliver(self, client: WebSocket) -> bool:
        """Send ``client`` every held frame past its cursor; False once it has gone away."""
        cursor = self._cursors.get(client, -1)
        async with self._guard:
            backlog = [frame for frame in self._frames if frame.tick > cursor]
        try:
            for frame in backlog:
                await client.send_text(frame.text)
                self._cursors[client] = frame.tick
        except (WebSocketDisconnect, RuntimeError) as exc:
            logger.info("Dropping websocket subscriber: %r", exc)
            return False
        return True


class SimulationController:
    """Runs one particle system on an asyncio task and publishes its snapshots."""

    def __init__(self, config: SimulationConfig, broadcast_interval: int = 1):
        self.config = config
        self.system = ParticleSystem(config)
        self.feed = SnapshotFeed()
        self.broadcast_interval = max(1, broadcast_interval)
        self.running = False
        self.tick = 0
        self._lock = asyncio.Lock()
        self._task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        if self._task is None:
            self._task = asyncio.create_task(self._loop())
        self.running = True
        logger.info("Simulation started")

    async def stop(self) -> None:
        self.running = False
        logger.info("Simulation stopped")

    async def reset(self) -> None:
        async with self._lock:
            self.system.reset()
            self.tick = 0
        await self.feed.rewind()
        await self.publish()

    async def step(self) -> None:
        async with self._lock:
            self.system.move_all(self.system.frame_dt(self.config.time_step))
            self.tick += 1

    async def publish(self) -> None:
        async with self._lock:
            frame = encode_snapshot(self.system.snapshot(self.tick))
        await self.feed.publish(frame)

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.config.time_step)
            if not self.running:
                continue
            await self.step()
            if self.tick % self.broadcast_interval == 0:
                await self.publish()

    async def update_params(self, values: Dict[str, Any]) -> Dict[str, float]:
        async with self._lock:
            params = self.system.update_params(**values)
        return asdict(params)

    async def toggle_slow_motion(self) -> float:
        async with self._lock:
            return self.system.toggle_slow_motion()

    async def change_population(self, action: str, count: int = 1) -> int:
        if count < 0:
            raise ValueError(f"count must be non-negative, got {count}")
        limit = self.config.max_population
        async with self._lock:
            system = self.system
            if action == "add":
                if system.num_particles() + count > limit:
                    raise ValueError(f"adding {count} would exceed max_population={limit}")
                for _ in range(count):
                    system.add_particle()
            elif action == "remove":
                for _ in range(min(count, system.num_particles())):
                    system.remove_particle()
            elif action == "clear":
                system.remove_all()
            elif action == "populate":
                if count > limit:
                    raise ValueError(f"count {count} exceeds max_population={limit}")
                system.remove_all()
                system.populate(count)
            else:
                raise ValueError(f"Unknown population action: {action}")
            return system.num_particles()

    async def spawn_bouncy(self, x: float, y: float) -> int:
        async with self._lock:
            if not (0.0 <= x <= self.system.width and 0.0 <= y <= self.system.height):
                raise ValueError(f"Spawn point ({x}, {y}) lies outside the surface")
            if self.system.num_particles() >= self.config.max_population:
                raise ValueError(f"population already at max_population={self.config.max_population}")
            self.system.add_bouncy(x, y)
            return self.system.num_particles()

    async def handle_message(self, message: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """Apply one websocket message; the returned dict, if any, is the reply."""
        kind = message.get("type")
        if kind == "ack":
            tick = message.get("tick")
            if not isinstance(tick, int):
                return {"type": "error", "error": "ack needs an integer tick"}
            await self.feed.acknowledge(tick)
            return None
        if kind == "params":
            try:
                params = await self.update_params(dict(message.get("values") or {}))
            except (TypeError, ValueError) as exc:
                return {"type": "error", "error": str(exc)}
            return {"type": "params", "params": params}
        return {"type": "error", "error": f"unsupported message type {kind!r}"}



app = FastAPI(title="Boids Flocking Simulation")
controller = SimulationController(SimulationConfig())


def _bad_request(exc: Exception) -> JSONResponse:
    return JSONResponse({"error": str(exc)}, status_code=400)


@app.on_event("startup")
async def _startup() -> None:
    await controller.start()


@app.get("/api/status")
async def status() -> JSONResponse:
    snapshot = controller.system.snapshot(controller.tick)
    return JSONResponse(
        {
            "running": controller.running,
            "tick": controller.tick,
            "population": controller.system.num_particles(),
            "scattering": controller.system.scattering,
            "metrics": asdict(snapshot.metrics),
        }
    )


@app.get("/api/params")
async def get_params() -> JSONResponse:
    return JSONResponse(asdict(controller.system.params))


@app.post("/api/params")
async def set_params(payload: dict) -> JSONResponse:
    try:
        params = await controller.update_params(payload)
    except (TypeError, ValueError) as exc:
        return _bad_request(exc)
    return JSONResponse(params)


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


@app.post("/api/control/slowmo")
async def toggle_slow_motion() -> JSONResponse:
    time_scale = await controller.toggle_slow_motion()
    return JSONResponse({"time_scale": time_scale})


@app.post("/api/population")
async def change_population(payload: dict) -> JSONResponse:
    try:
        population = await controller.change_population(
            str(payload.get("action", "")), int(payload.get("count", 1))
        )
    except (TypeError, ValueError, OverflowError) as exc:
        return _bad_request(exc)
    return JSONResponse({"population": population})


@app.post("/api/spawn/bouncy")
async def spawn_bouncy(payload: dict) -> JSONResponse:
    try:
        population = await controller.spawn_bouncy(float(payload["x"]), float(payload["y"]))
    except KeyError as exc:
        return _bad_request(ValueError(f"missing coordinate {exc}"))
    except (TypeError, ValueError) as exc:
        return _bad_request(exc)
    return JSONResponse({"population": population})


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await websocket.accept()
    feed = controller.feed
    feed.subscribe(websocket)
    try:
        await feed.deliver(websocket)
        while True:
            text = await websocket.receive_text()
            try:
                message = json.loads(text)
            except json.JSONDecodeError:
                await websocket.send_json({"type": "error", "error": "malformed JSON"})
                continue
            if not isinstance(message, dict):
                await websocket.send_json({"type": "error", "error": "expected a JSON object"})
                continue
            reply = await controller.handle_message(message)
            if reply is not None:
                await websocket.send_json(reply)
    except WebSocketDisconnect:
        logger.info("Websocket client disconnected")
    finally:
        feed.unsubscribe(websocket)
