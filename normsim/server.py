"""
Normative Emergence — Server

Copyright (c) 2026 SolisHQ (github.com/solishq). MIT License.

FastAPI + WebSocket. Control and query API for a single World.
Every control command of the engine, plus streaming tick updates.
"""

import asyncio
import json
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .config import SimConfig
from .narrator import Narrator
from .scenarios import SCENARIO_NAMES
from .world import World


# ─── State ──────────────────────────────────────────────

world: Optional[World] = None
narrator = Narrator()
ws_clients: set[WebSocket] = set()
auto_running = False
auto_task = None
_world_lock = asyncio.Lock()

NO_SIM = {"error": "No simulation. POST /sim/create first."}


# ─── App ────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    global auto_running
    auto_running = False

app = FastAPI(title="Normative Emergence", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health():
    return {"status": "ok", "engine": "normsim", "scenarios": SCENARIO_NAMES}


# ─── Models ─────────────────────────────────────────────

class CreateRequest(BaseModel):
    population: int = Field(default=100, ge=0, le=1000)
    max_agents: int = Field(default=1000, ge=0, le=5000)
    generation_interval: int = Field(default=100, ge=1, le=10_000)
    scenario: str = "pluralist"
    seed: Optional[int] = None
    moral_repair: bool = True

class ScenarioRequest(BaseModel):
    scenario: str

class FlagRequest(BaseModel):
    flag: str
    value: bool

class RunRequest(BaseModel):
    ticks: int = Field(default=0, ge=0, le=100_000)
    generations: int = Field(default=0, ge=0, le=1000)


def _bad_request(exc: ValueError):
    return HTTPException(status_code=400, detail=str(exc))


def _frame(events: list[dict], narration: Optional[dict]) -> dict:
    """One WebSocket update after the world has advanced."""
    return {
        "type": "tick",
        "generation": world.generation,
        "tick": world.tick_count,
        "population": len(world.agents),
        "agents": world.agents_view(),
        "obligations": world.obligations_view(),
        "stats": world.latest_snapshot().to_dict(),
        "events": [e for e in events if e["type"] != "obligation"][:20],
        "narration": narration,
    }


def _narrate(events: list[dict]) -> Optional[dict]:
    closed = any(e["type"] == "generation" for e in events)
    return narrator.narrate(events, world.latest_snapshot() if closed else None)


# ─── Simulation Control ────────────────────────────────

@app.post("/sim/create")
async def create_sim(req: CreateRequest):
    global world, narrator, auto_running
    auto_running = False
    try:
        config = SimConfig(
            num_agents=req.population,
            max_agents=req.max_agents,
            generation_interval=req.generation_interval,
            scenario=req.scenario,
            seed=req.seed,
            moral_repair=req.moral_repair,
        )
        world = World(config)
    except ValueError as e:
        raise _bad_request(e)
    narrator = Narrator()
    world.pop_events()
    await broadcast({"type": "created", "data": world.get_state()})
    return {"status": "created", "agents": len(world.agents), "scenario": world.scenario.value}


@app.post("/sim/scenario")
async def set_scenario(req: ScenarioRequest):
    if not world:
        return NO_SIM
    async with _world_lock:
        try:
            world.set_scenario(req.scenario)
        except ValueError as e:
            raise _bad_request(e)
        events = world.pop_events()
    narration = narrator.narrate(events)
    await broadcast({"type": "scenario", "data": world.get_state(), "narration": narration})
    return {"scenario": world.scenario.value, "agents": len(world.agents)}


@app.post("/sim/reset")
async def reset_sim():
    if not world:
        return NO_SIM
    async with _world_lock:
        world.reset()
        events = world.pop_events()
    await broadcast({"type": "reset", "data": world.get_state(), "events": events})
    return {"status": "reset", "agents": len(world.agents)}


@app.post("/sim/pause")
async def pause_sim():
    if not world:
        return NO_SIM
    world.pause()
    world.pop_events()
    return {"paused": world.paused}


@app.post("/sim/resume")
async def resume_sim():
    if not world:
        return NO_SIM
    world.resume()
    world.pop_events()
    return {"paused": world.paused}


@app.post("/sim/stop")
async def stop_sim():
    global auto_running
    if not world:
        return NO_SIM
    auto_running = False
    async with _world_lock:
        summary = world.stop()
        world.pop_events()
    await broadcast({"type": "summary", "summary": summary})
    return summary


@app.post("/sim/flag")
async def set_flag(req: FlagRequest):
    if not world:
        return NO_SIM
    try:
        world.set_flag(req.flag, req.value)
    except ValueError as e:
        raise _bad_request(e)
    events = world.pop_events()
    await broadcast({"type": "flag", "events": events, "flags": world.flags})
    return {"flags": world.flags}


@app.post("/sim/step")
async def step_sim():
    if not world:
        return NO_SIM
    async with _world_lock:
        advanced = world.step()
        events = world.pop_events()
        narration = _narrate(events)
        frame = _frame(events, narration)
    await broadcast(frame)
    return {
        "advanced": advanced,
        "generation": world.generation,
        "tick": world.tick_count,
        "narration": narration,
    }


@app.post("/sim/run")
async def run_multi(req: RunRequest):
    """Run a batch of ticks, or whole generations."""
    if not world:
        return NO_SIM
    async with _world_lock:
        if req.generations:
            world.run_generations(req.generations)
        else:
            world.run(req.ticks)
        events = world.pop_events()
        narration = _narrate(events)
        frame = _frame(events, narration)
    await broadcast(frame)
    return {
        "generation": world.generation,
        "tick": world.tick_count,
        "population": len(world.agents),
        "paused": world.paused,
        "narration": narration,
    }


@app.post("/sim/auto")
async def toggle_auto():
    """Toggle continuous running (ten ticks per frame)."""
    global auto_running, auto_task

    if auto_running:
        auto_running = False
        if auto_task:
            auto_task.cancel()
            try:
                await auto_task
            except asyncio.CancelledError:
                pass
            auto_task = None
        return {"auto": False}

    if not world:
        return NO_SIM

    auto_running = True

    async def auto_loop():
        global auto_running
        try:
            while auto_running and world and not world.paused:
                async with _world_lock:
                    world.run(10)
                    events = world.pop_events()
                    narration = _narrate(events)
                    frame = _frame(events, narration)
                await broadcast(frame)
                await asyncio.sleep(0.1)
        except asyncio.CancelledError:
            pass
        finally:
            auto_running = False

    auto_task = asyncio.create_task(auto_loop())
    return {"auto": True}


# ─── Query ──────────────────────────────────────────────

@app.get("/sim/state")
async def get_state():
    if not world:
        return NO_SIM
    return world.get_state()


@app.get("/sim/agents")
async def get_agents():
    if not world:
        return NO_SIM
    return {"agents": world.agents_view()}


@app.get("/sim/agents/{agent_id}")
async def get_agent(agent_id: int):
    if not world:
        return NO_SIM
    agent = world.get_agent(agent_id)
    if agent is None:
        raise HTTPException(status_code=404, detail=f"no living agent {agent_id}")
    return {"agent": agent.to_dict(), "biography": list(agent.biography)}


@app.get("/sim/obligations")
async def get_obligations():
    if not world:
        return NO_SIM
    return {"obligations": world.obligations_view()}


@app.get("/sim/generations")
async def get_generations(limit: int = 0):
    if not world:
        return NO_SIM
    history = world.generation_history()
    return {"generations": history[-limit:] if limit > 0 else history}


@app.get("/sim/agent-log")
async def get_agent_log(limit: int = 1000):
    if not world:
        return NO_SIM
    return {"records": world.agent_records()[-limit:]}


@app.get("/sim/history")
async def get_history():
    if not world:
        return NO_SIM
    return {"history": world.agent_history()}


@app.get("/sim/obligation-log")
async def get_obligation_log(limit: int = 1000):
    if not world:
        return NO_SIM
    return {"events": world.obligation_events()[-limit:]}


@app.get("/sim/flags")
async def get_flags():
    if not world:
        return NO_SIM
    return {"flags": world.flags_view(), "toggles": world.flags}


@app.get("/sim/summary")
async def get_summary():
    if not world:
        return NO_SIM
    return world.summary()


# ─── WebSocket ──────────────────────────────────────────

@app.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    await ws.accept()
    ws_clients.add(ws)
    try:
        if world:
            await ws.send_json({"type": "init", "data": world.get_state()})
        while True:
            data = await ws.receive_text()
            if len(data) > 10_000:
                continue
            try:
                msg = json.loads(data)
            except json.JSONDecodeError:
                continue
            if msg.get("type") == "get_state" and world:
                await ws.send_json({"type": "state", "data": world.get_state()})
    except WebSocketDisconnect:
        ws_clients.discard(ws)
    except Exception:
        ws_clients.discard(ws)


async def broadcast(message: dict):
    """Send to all connected WebSocket clients."""
    dead = set()
    for ws in ws_clients:
        try:
            await ws.send_json(message)
        except Exception:
            dead.add(ws)
    ws_clients.difference_update(dead)


# ─── Run ────────────────────────────────────────────────

def start(host: str = "0.0.0.0", port: int = 8000):
    import uvicorn
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    start()
