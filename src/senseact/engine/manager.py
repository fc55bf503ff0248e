"""AgentManager: owns the navigation singletons and ticks every agent."""

from __future__ import annotations

import logging
import time
from collections.abc import Hashable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from senseact.components.state import StateRegistry
from senseact.config import EngineConfig, get_engine_config
from senseact.engine.loop import step_agent
from senseact.engine.navigator import Navigator
from senseact.errors import LookupTableError, SearchInvariantError
from senseact.model.agent import Agent
from senseact.model.event import AIEvent
from senseact.model.messages import MessageLog
from senseact.navigation.graph import NodeGraph, Vec3
from senseact.navigation.lookup import LookupTable

logger = logging.getLogger(__name__)


@runtime_checkable
class World(Protocol):
    """Environment collaborator advanced once per tick, before any agent."""

    def update(self, delta_time: float) -> None: ...


@dataclass
class TickMetrics:
    """Aggregate timing and health counters for the tick loop."""

    ticks: int = 0
    agents_stepped: int = 0
    failures: int = 0
    last_duration: float = 0.0
    total_duration: float = 0.0

    @property
    def mean_duration(self) -> float:
        return self.total_duration / self.ticks if self.ticks else 0.0


class AgentManager:
    """Drives all agents, one tick at a time, in registration order.

    The manager is the only owner of the graph and lookup table. Agents read
    them through the published :class:`Navigator` and mutate only themselves,
    so the single-threaded tick needs no locking. A navigation rebuild is
    finished completely before the new navigator is published.
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        graph: NodeGraph | None = None,
        world: Any = None,
    ) -> None:
        self.config = config if config is not None else get_engine_config()
        self.world = world
        self.states = StateRegistry()
        self.messages = MessageLog(
            max_messages=self.config.max_messages, mode=self.config.message_mode
        )
        self.metrics = TickMetrics()
        self.tick_count = 0
        self.elapsed = 0.0
        self._agents: list[Agent] = []
        self._next_index = 0
        # Keyed by agent object; ids are not required to be unique
        self._unstepped_time: dict[Agent, float] = {}
        self._navigator = Navigator()
        if graph is not None:
            self.setup_navigation(graph)

    # Navigation singletons

    @property
    def navigator(self) -> Navigator:
        return self._navigator

    @property
    def graph(self) -> NodeGraph:
        return self._navigator.graph

    @property
    def lookup_table(self) -> LookupTable | None:
        return self._navigator.table

    def _publish(self, navigator: Navigator) -> None:
        self._navigator = navigator
        # Paths planned on the old graph may cross nodes that no longer exist
        for agent in self._agents:
            if agent.navigating:
                agent.path = None
        self.add_global_message(
            f"Navigation ready: {len(navigator.graph)} nodes, "
            f"{len(navigator.table.entries) if navigator.table else 0} lookups."
        )

    def rebuild_navigation(self, graph: NodeGraph) -> LookupTable:
        """Build a fresh lookup table for ``graph`` and publish both together."""
        table = LookupTable.build(graph)
        self._publish(Navigator(graph, table))
        return table

    def load_navigation(self, path: str | Path) -> LookupTable:
        """Publish a persisted lookup table and the graph it carries.

        Raises:
            LookupTableError: If the file cannot be loaded.
        """
        table = LookupTable.load(path)
        self._publish(Navigator(table.graph(), table))
        return table

    def setup_navigation(self, graph: NodeGraph) -> LookupTable | None:
        """Reuse the configured table file when it matches ``graph``, otherwise build one.

        With ``build_lookup_on_start`` disabled and no usable file, the graph
        is published without a table and every query is searched directly.
        """
        path = self.config.lookup_table_path
        if path is not None and Path(path).exists():
            try:
                table = LookupTable.load(path)
            except LookupTableError:
                logger.warning("Ignoring unreadable lookup table at %s", path)
            else:
                if table.covers(graph):
                    self._publish(Navigator(graph, table))
                    return table
                logger.info("Lookup table at %s is stale for the current graph", path)

        if not self.config.build_lookup_on_start:
            self._publish(Navigator(graph))
            return None

        table = self.rebuild_navigation(graph)
        if path is not None:
            table.save(path)
        return table

    def lookup_path(self, start: Any, goal: Any) -> list[Vec3] | None:
        return self._navigator.plan(start, goal)

    # Registry

    @property
    def agents(self) -> tuple[Agent, ...]:
        return tuple(self._agents)

    def get_agent(self, agent_id: str) -> Agent | None:
        for agent in self._agents:
            if agent.id == agent_id:
                return agent
        return None

    def add_agent(self, agent: Agent) -> None:
        """Register an agent (once) and enter its initial state."""
        if agent in self._agents:
            return
        agent.manager = self
        agent.messages.max_messages = self.config.max_messages
        agent.messages.mode = self.config.message_mode
        self._agents.append(agent)
        self._unstepped_time[agent] = 0.0
        agent.setup()
        logger.debug("Added agent '%s'", agent.id)

    def remove_agent(self, agent: Agent) -> None:
        """Deregister an agent; the round-robin cursor keeps pointing at the same next agent."""
        if agent not in self._agents:
            return
        index = self._agents.index(agent)
        self._agents.remove(agent)
        if self._next_index > index:
            self._next_index -= 1
        if self._next_index >= len(self._agents):
            self._next_index = 0
        self._unstepped_time.pop(agent, None)
        agent.manager = None
        logger.debug("Removed agent '%s'", agent.id)

    # Tick

    def tick(self, delta_time: float | None = None) -> None:
        """Advance the world by one tick.

        Every agent is stepped in registration order, or at most
        ``max_agents_per_tick`` agents in round-robin order. Agents that are
        skipped accumulate the time they missed.
        """
        dt = self.config.default_delta_time if delta_time is None else delta_time
        started = time.perf_counter()
        navigator = self._navigator

        if isinstance(self.world, World):
            self.world.update(dt)

        for agent in self._agents:
            self._unstepped_time[agent] = self._unstepped_time.get(agent, 0.0) + dt

        stepped = 0
        for agent in self._select_agents():
            agent_dt = self._unstepped_time.get(agent, dt)
            self._unstepped_time[agent] = 0.0
            try:
                step_agent(agent, navigator, agent_dt, self.config.seek_acceptable_distance)
            except SearchInvariantError:
                raise
            except Exception:
                logger.exception(
                    "Agent '%s' failed during tick %d (state=%s). Continuing with next agent.",
                    agent.id,
                    self.tick_count,
                    agent.state,
                )
                self.metrics.failures += 1
            stepped += 1

        self.tick_count += 1
        self.elapsed += dt
        duration = time.perf_counter() - started
        self.metrics.ticks += 1
        self.metrics.agents_stepped += stepped
        self.metrics.last_duration = duration
        self.metrics.total_duration += duration

        if self.tick_count % 100 == 0:
            logger.debug(
                "Tick %d: agents=%d, mean tick %.3f ms",
                self.tick_count,
                len(self._agents),
                self.metrics.mean_duration * 1000,
            )

    def _select_agents(self) -> list[Agent]:
        limit = self.config.max_agents_per_tick
        if limit <= 0 or limit >= len(self._agents):
            return list(self._agents)
        selected = []
        for _ in range(limit):
            selected.append(self._agents[self._next_index])
            self._next_index = (self._next_index + 1) % len(self._agents)
        return selected

    def run(self, ticks: int, delta_time: float | None = None) -> None:
        for _ in range(ticks):
            self.tick(delta_time)

    # Events

    def fire_event(
        self, sender: Agent | None, receiver_id: str, event_id: Hashable, details: Any = None
    ) -> bool:
        receiver = self.get_agent(receiver_id)
        if receiver is None or receiver is sender:
            return False
        return receiver.handle_event(AIEvent(event_id, sender, details))

    def broadcast(
        self,
        sender: Agent | None,
        event_id: Hashable,
        details: Any = None,
        require_all: bool = False,
    ) -> bool:
        """Offer an event to every agent except the sender.

        Returns:
            With ``require_all``, True only if every receiver handled it;
            otherwise True if at least one did.
        """
        handled_all = True
        handled_one = False
        for agent in list(self._agents):
            if agent is sender:
                continue
            if agent.handle_event(AIEvent(event_id, sender, details)):
                handled_one = True
            else:
                handled_all = False
        return handled_all if require_all else handled_one

    # Diagnostics

    def add_global_message(self, message: str) -> None:
        self.messages.add(message, self.tick_count)
        logger.debug("%s", message)

    def performance_by_agent(self) -> dict[str, float]:
        return {
            agent.id: agent.performance
            for agent in self._agents
            if agent.performance_measure is not None
        }

    def best_agent(self) -> Agent | None:
        """The agent with the highest performance, among those that have a measure."""
        scored = [a for a in self._agents if a.performance_measure is not None]
        if not scored:
            return None
        return max(scored, key=lambda a: a.performance)
