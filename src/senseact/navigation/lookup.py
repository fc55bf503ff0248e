"""Precomputed navigation lookup table.

The table is built once by running A* over (origin, goal) node pairs and
stores, per hop, which node to move to next and the optimal remaining cost.
At runtime a path is recovered by following next-hop pointers, so agents
never search while ticking. The table is self-contained: it carries the
nodes and connections it was built from and can be persisted as JSON and
reloaded without the world that produced it.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError

from senseact.errors import LookupTableError
from senseact.navigation.astar import find_node_path
from senseact.navigation.graph import Connection, NodeGraph, Vec3

logger = logging.getLogger(__name__)


class LookupEntry(BaseModel):
    """From ``current``, heading for ``goal``, step to ``next``.

    Attributes:
        current: Node index the agent is at.
        goal: Node index the agent is heading for.
        next: Node index to move to from ``current``.
        cost: Optimal remaining cost from ``current`` to ``goal``.
    """

    model_config = ConfigDict(frozen=True)

    current: int = Field(ge=0)
    goal: int = Field(ge=0)
    next: int = Field(ge=0)
    cost: float = Field(ge=0)


class LookupTable(BaseModel):
    """Immutable (origin, goal) -> next hop/cost table for one graph topology."""

    model_config = ConfigDict(frozen=True)

    nodes: list[tuple[float, float, float]] = Field(default_factory=list)
    connections: list[tuple[int, int]] = Field(default_factory=list)
    entries: list[LookupEntry] = Field(default_factory=list)
    fingerprint: str = Field(default="", description="Fingerprint of the source graph")
    built_at: str = Field(default="", description="ISO timestamp of the build")

    _index: dict[tuple[int, int], LookupEntry] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context: Any) -> None:
        self._index = {(e.current, e.goal): e for e in self.entries}

    @classmethod
    def build(
        cls,
        graph: NodeGraph,
        origins: Iterable[int] | None = None,
        goals: Iterable[int] | None = None,
    ) -> LookupTable:
        """Run A* for every ordered (origin, goal) pair and record each hop.

        Args:
            graph: Graph to precompute.
            origins: Origin node indices (all nodes if None).
            goals: Goal node indices (all nodes if None).

        Returns:
            A new table. Unreachable pairs simply have no entry.
        """
        origin_list = list(range(len(graph))) if origins is None else list(origins)
        goal_list = list(range(len(graph))) if goals is None else list(goals)

        entries: dict[tuple[int, int], LookupEntry] = {}
        searches = 0
        for goal in goal_list:
            for origin in origin_list:
                if origin == goal or (origin, goal) in entries:
                    continue
                path = find_node_path(graph, origin, goal)
                searches += 1
                if path is None:
                    continue
                # Every suffix of an optimal path is optimal, so each hop gets an entry
                remaining = 0.0
                hops: list[LookupEntry] = []
                for current, nxt in zip(reversed(path[:-1]), reversed(path[1:])):
                    remaining += graph.edge_cost(current, nxt)
                    hops.append(LookupEntry(current=current, goal=goal, next=nxt, cost=remaining))
                for entry in hops:
                    entries.setdefault((entry.current, entry.goal), entry)

        table = cls(
            nodes=[tuple(n) for n in graph.nodes],
            connections=sorted({c.key for c in graph.connections}),
            entries=sorted(entries.values(), key=lambda e: (e.current, e.goal)),
            fingerprint=graph.fingerprint(),
            built_at=datetime.now(UTC).isoformat(),
        )
        logger.info(
            "Built lookup table: %d nodes, %d entries from %d searches",
            len(table.nodes),
            len(table.entries),
            searches,
        )
        return table

    def graph(self) -> NodeGraph:
        """Re-derive the graph this table was built from."""
        return NodeGraph(
            tuple(Vec3(*n) for n in self.nodes),
            tuple(Connection(a, b) for a, b in self.connections),
        )

    def covers(self, graph: NodeGraph) -> bool:
        """Whether this table was built from ``graph``'s exact topology."""
        return self.fingerprint == graph.fingerprint()

    def next_hop(self, current: int, goal: int) -> int | None:
        """Node to move to from ``current`` toward ``goal``, if covered."""
        entry = self._index.get((current, goal))
        return entry.next if entry is not None else None

    def lookup_cost(self, origin: int, goal: int) -> float | None:
        """Optimal cost between two nodes, or None for pairs the build did not cover."""
        if origin == goal:
            return 0.0
        entry = self._index.get((origin, goal))
        return entry.cost if entry is not None else None

    def lookup_path(self, origin: int, goal: int) -> list[int] | None:
        """Node path from ``origin`` to ``goal`` by following next hops.

        Returns:
            Node indices including both ends, ``[origin]`` if they are equal,
            or None if the pair is not covered.
        """
        path = [origin]
        current = origin
        # Each hop strictly lowers the remaining cost, so the walk is bounded by the node count
        for _ in range(len(self.nodes)):
            if current == goal:
                return path
            entry = self._index.get((current, goal))
            if entry is None:
                return None
            current = entry.next
            path.append(current)
        return path if current == goal else None

    def positions(self, indices: Iterable[int]) -> list[Vec3]:
        """Node positions for a sequence of node indices."""
        return [Vec3(*self.nodes[i]) for i in indices]

    def save(self, path: str | Path) -> None:
        """Write the table wholesale as JSON.

        Raises:
            LookupTableError: If the file cannot be written.
        """
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(self.model_dump(mode="json"), f)
        except OSError as e:
            raise LookupTableError(f"Failed to save lookup table to '{path}': {e}") from e
        logger.info("Saved lookup table (%d entries) to %s", len(self.entries), path)

    @classmethod
    def load(cls, path: str | Path) -> LookupTable:
        """Read a table previously written by :meth:`save`.

        Raises:
            LookupTableError: If the file is missing, unreadable or malformed.
        """
        path = Path(path)
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            table = cls.model_validate(data)
        except json.JSONDecodeError as e:
            raise LookupTableError(f"Invalid JSON in lookup table '{path}': {e}") from e
        except (OSError, ValidationError) as e:
            raise LookupTableError(f"Failed to load lookup table from '{path}': {e}") from e
        logger.info("Loaded lookup table (%d entries) from %s", len(table.entries), path)
        return table
