"""FastAPI server exposing a running corpus over REST.

Provides:
- World control: play, pause, single steps, reset, corpus loading
- Agent inspection: state, position, pending actions, diagnostic messages
- Navigation inspection: graph/table summary and path queries
"""

from __future__ import annotations

import logging
import threading
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, HTTPException, Query, status
from pydantic import BaseModel, Field

from senseact import __version__
from senseact.corpora import DEFAULT_CORPUS, available_corpora, load_corpus
from senseact.errors import UnknownCorpusError
from senseact.navigation import path_length

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from senseact.engine import AgentManager
    from senseact.model import Agent

logger = logging.getLogger(__name__)


class SimulationState:
    """Thread-safe owner of the running manager.

    The background thread and the request handlers both go through the same
    lock, so a request never observes a half-finished tick.
    """

    def __init__(self, corpus_name: str = DEFAULT_CORPUS) -> None:
        self._corpus_name = corpus_name
        self._manager = load_corpus(corpus_name)
        self._running = False
        self._paused = True
        self._speed = 1.0
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def lock(self) -> threading.Lock:
        return self._lock

    @property
    def manager(self) -> AgentManager:
        with self._lock:
            return self._manager

    @property
    def corpus_name(self) -> str:
        with self._lock:
            return self._corpus_name

    @property
    def paused(self) -> bool:
        with self._lock:
            return self._paused

    @paused.setter
    def paused(self, value: bool) -> None:
        with self._lock:
            self._paused = value

    @property
    def speed(self) -> float:
        with self._lock:
            return self._speed

    @speed.setter
    def speed(self, value: float) -> None:
        """Set simulation speed (clamped to 0.1-10.0)."""
        with self._lock:
            self._speed = max(0.1, min(10.0, value))

    def tick(self, ticks: int = 1) -> None:
        with self._lock:
            self._manager.run(ticks)

    def reset(self) -> None:
        """Rebuild the current corpus from scratch."""
        with self._lock:
            self._manager = load_corpus(self._corpus_name)

    def load_corpus(self, corpus_name: str) -> None:
        """Replace the running corpus.

        Raises:
            UnknownCorpusError: If the corpus name is not recognized.
        """
        manager = load_corpus(corpus_name)
        with self._lock:
            self._manager = manager
            self._corpus_name = corpus_name

    def start(self) -> None:
        """Start the background simulation thread."""
        if self._running:
            return
        self._running = True
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._simulation_loop, daemon=True)
        self._thread.start()
        logger.info("Simulation thread started")

    def stop(self) -> None:
        """Stop the background simulation thread."""
        if not self._running:
            return
        self._running = False
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=2.0)
        logger.info("Simulation thread stopped")

    def _simulation_loop(self) -> None:
        """Tick at the manager's own rate (1 / default_delta_time), scaled by speed."""
        while self._running and not self._stop_event.is_set():
            if not self.paused:
                self.tick()
            manager = self.manager
            sleep_time = manager.config.default_delta_time / self.speed
            self._stop_event.wait(timeout=sleep_time)


# Global simulation state
_sim_state: SimulationState | None = None


def get_sim_state() -> SimulationState:
    """Get or create the global simulation state."""
    global _sim_state
    if _sim_state is None:
        _sim_state = SimulationState()
    return _sim_state


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager: start/stop simulation thread."""
    sim = get_sim_state()
    sim.start()
    yield
    sim.stop()


app = FastAPI(
    title="SenseAct",
    description="Agent cognition framework: sense, decide, act, navigate",
    version=__version__,
    lifespan=lifespan,
)


# Pydantic models for REST responses


class WorldStateResponse(BaseModel):
    corpus: str = Field(description="Name of the loaded corpus")
    tick: int = Field(description="Ticks run so far")
    elapsed: float = Field(description="Simulated seconds so far")
    paused: bool = Field(description="Whether the background loop is paused")
    speed: float = Field(description="Simulation speed multiplier")
    agent_count: int = Field(description="Number of registered agents")
    failures: int = Field(description="Agent steps that raised and were skipped")
    mean_tick_ms: float = Field(description="Mean wall-clock duration of a tick")
    best_agent: str | None = Field(default=None, description="Agent with the highest performance")


class AgentResponse(BaseModel):
    id: str = Field(description="Agent ID")
    name: str = Field(description="Display name")
    state: str | None = Field(description="Current state")
    previous_state: str | None = Field(description="State before the current one")
    global_state: str | None = Field(description="Global state, if any")
    position: list[float] = Field(description="Position as [x, y, z]")
    destination: list[float] | None = Field(description="Movement target, if navigating")
    waypoints: int = Field(description="Waypoints left on the current path")
    pending_actions: list[str] = Field(description="Actions not yet completed")
    performance: float = Field(description="Latest performance score")
    tick: int = Field(description="Ticks this agent has been stepped")


class MessagesResponse(BaseModel):
    agent_id: str
    messages: list[str] = Field(description="Diagnostic messages, newest first")


class NavigationResponse(BaseModel):
    node_count: int
    connection_count: int
    entry_count: int = Field(description="Lookup table entries (0 without a table)")
    fingerprint: str = Field(description="Fingerprint of the published graph")
    built_at: str | None = Field(default=None, description="When the lookup table was built")
    table_hits: int
    fallback_searches: int


class PathResponse(BaseModel):
    found: bool
    waypoints: list[list[float]] = Field(default_factory=list)
    length: float | None = None


class ControlCommandResponse(BaseModel):
    success: bool = Field(description="Whether command succeeded")
    message: str = Field(description="Status message")


def _agent_response(agent: Agent) -> AgentResponse:
    return AgentResponse(
        id=agent.id,
        name=agent.name,
        state=str(agent.state) if agent.state is not None else None,
        previous_state=str(agent.previous_state) if agent.previous_state is not None else None,
        global_state=str(agent.global_state) if agent.global_state is not None else None,
        position=list(agent.position),
        destination=list(agent.destination) if agent.destination is not None else None,
        waypoints=len(agent.path) if agent.path else 0,
        pending_actions=[str(action) for action in agent.pending_actions],
        performance=agent.performance,
        tick=agent.tick,
    )


def _find_agent(manager: AgentManager, agent_id: str) -> Agent:
    agent = manager.get_agent(agent_id)
    if agent is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Agent '{agent_id}' not found",
        )
    return agent


# REST endpoints


@app.get("/api/world", response_model=WorldStateResponse, tags=["world"])
async def get_world() -> WorldStateResponse:
    sim = get_sim_state()
    with sim.lock:
        manager = sim._manager
        best = manager.best_agent()
        return WorldStateResponse(
            corpus=sim._corpus_name,
            tick=manager.tick_count,
            elapsed=manager.elapsed,
            paused=sim._paused,
            speed=sim._speed,
            agent_count=len(manager.agents),
            failures=manager.metrics.failures,
            mean_tick_ms=manager.metrics.mean_duration * 1000,
            best_agent=best.id if best is not None else None,
        )


@app.get("/api/agents", response_model=list[AgentResponse], tags=["agents"])
async def get_agents() -> list[AgentResponse]:
    sim = get_sim_state()
    with sim.lock:
        return [_agent_response(agent) for agent in sim._manager.agents]


@app.get("/api/agents/{agent_id}", response_model=AgentResponse, tags=["agents"])
async def get_agent(agent_id: str) -> AgentResponse:
    sim = get_sim_state()
    with sim.lock:
        return _agent_response(_find_agent(sim._manager, agent_id))


@app.get("/api/agents/{agent_id}/messages", response_model=MessagesResponse, tags=["agents"])
async def get_agent_messages(
    agent_id: str, limit: int = Query(default=50, ge=1, le=10000)
) -> MessagesResponse:
    sim = get_sim_state()
    with sim.lock:
        agent = _find_agent(sim._manager, agent_id)
        return MessagesResponse(agent_id=agent.id, messages=list(agent.messages)[:limit])


@app.get("/api/navigation", response_model=NavigationResponse, tags=["navigation"])
async def get_navigation() -> NavigationResponse:
    sim = get_sim_state()
    with sim.lock:
        navigator = sim._manager.navigator
        table = navigator.table
        return NavigationResponse(
            node_count=len(navigator.graph),
            connection_count=len({c.key for c in navigator.graph.connections}),
            entry_count=len(table.entries) if table is not None else 0,
            fingerprint=navigator.graph.fingerprint(),
            built_at=table.built_at if table is not None else None,
            table_hits=navigator.table_hits,
            fallback_searches=navigator.fallback_searches,
        )


@app.get("/api/navigation/path", response_model=PathResponse, tags=["navigation"])
async def get_path(
    sx: float, sy: float, gx: float, gy: float, sz: float = 0.0, gz: float = 0.0
) -> PathResponse:
    """Plan a path between two positions with the published navigation data."""
    sim = get_sim_state()
    with sim.lock:
        path = sim._manager.lookup_path((sx, sy, sz), (gx, gy, gz))
    if path is None:
        return PathResponse(found=False)
    return PathResponse(
        found=True,
        waypoints=[list(point) for point in path],
        length=path_length(path),
    )


@app.post("/api/world/play", response_model=ControlCommandResponse, tags=["world"])
async def play_simulation() -> ControlCommandResponse:
    sim = get_sim_state()
    sim.paused = False
    return ControlCommandResponse(success=True, message="Simulation playing")


@app.post("/api/world/pause", response_model=ControlCommandResponse, tags=["world"])
async def pause_simulation() -> ControlCommandResponse:
    sim = get_sim_state()
    sim.paused = True
    return ControlCommandResponse(success=True, message="Simulation paused")


@app.post("/api/world/step", response_model=ControlCommandResponse, tags=["world"])
async def step_simulation(ticks: int = Query(default=1, ge=1, le=10000)) -> ControlCommandResponse:
    """Run ticks immediately, whether or not the loop is paused."""
    sim = get_sim_state()
    sim.tick(ticks)
    return ControlCommandResponse(success=True, message=f"Stepped {ticks} tick(s)")


@app.post("/api/world/speed", response_model=ControlCommandResponse, tags=["world"])
async def set_speed(speed: float = 1.0) -> ControlCommandResponse:
    """Set simulation speed multiplier (0.1-10.0)."""
    sim = get_sim_state()
    sim.speed = speed
    return ControlCommandResponse(success=True, message=f"Speed set to {sim.speed}")


@app.post("/api/world/reset", response_model=ControlCommandResponse, tags=["world"])
async def reset_world() -> ControlCommandResponse:
    sim = get_sim_state()
    sim.reset()
    logger.info("World reset to initial state")
    return ControlCommandResponse(success=True, message="World reset to initial state")


@app.post("/api/world/load_corpus", response_model=ControlCommandResponse, tags=["world"])
async def load_corpus_endpoint(corpus_name: str = DEFAULT_CORPUS) -> ControlCommandResponse:
    sim = get_sim_state()
    try:
        sim.load_corpus(corpus_name)
    except UnknownCorpusError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from e
    logger.info("Loaded corpus: %s", corpus_name)
    return ControlCommandResponse(success=True, message=f"Loaded corpus: {corpus_name}")


@app.get("/api/corpora", response_model=list[str], tags=["world"])
async def get_corpora() -> list[str]:
    return available_corpora()


@app.get("/health", tags=["health"])
async def health_check() -> dict[str, str]:
    return {"status": "healthy"}
