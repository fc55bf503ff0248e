"""Navigator: answers path queries from the published graph and lookup table."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from senseact.navigation.astar import find_node_path, path_length
from senseact.navigation.graph import NodeGraph, Vec3, as_vec3
from senseact.navigation.lookup import LookupTable

logger = logging.getLogger(__name__)


class Navigator:
    """Read-only path service shared by every agent.

    Queries are answered from the lookup table. A pair the table does not
    cover falls back to one direct A* search whose result is memoized here,
    never written into the table.
    """

    def __init__(self, graph: NodeGraph | None = None, table: LookupTable | None = None) -> None:
        self.graph = graph if graph is not None else NodeGraph()
        if table is not None and not table.covers(self.graph):
            raise ValueError("Lookup table was built for a different graph")
        self.table = table
        self._fallback: dict[tuple[int, int], list[int] | None] = {}
        self.table_hits = 0
        self.fallback_searches = 0

    def node_path(self, origin: int, goal: int) -> list[int] | None:
        """Node indices from ``origin`` to ``goal``, or None if unreachable."""
        if self.table is not None:
            path = self.table.lookup_path(origin, goal)
            if path is not None:
                self.table_hits += 1
                return path

        key = (origin, goal)
        if key not in self._fallback:
            self.fallback_searches += 1
            logger.debug("Lookup miss for %d -> %d, searching directly", origin, goal)
            self._fallback[key] = find_node_path(self.graph, origin, goal)
        return self._fallback[key]

    def plan(self, start: Sequence[float], goal: Sequence[float]) -> list[Vec3] | None:
        """Waypoints from ``start`` to ``goal``.

        Both ends are snapped to their nearest nodes; the raw positions are
        kept as first and last waypoints. Without any nodes the path is a
        straight line.

        Returns:
            The waypoints, or None if the goal cannot be reached.
        """
        start_pos = as_vec3(start)
        goal_pos = as_vec3(goal)
        if start_pos == goal_pos:
            return [start_pos]
        if len(self.graph) == 0:
            return [start_pos, goal_pos]

        origin = self.graph.nearest(start_pos)
        target = self.graph.nearest(goal_pos)
        indices = self.node_path(origin, target)
        if indices is None:
            return None

        points = [self.graph.nodes[i] for i in indices]
        if points[0] != start_pos:
            points.insert(0, start_pos)
        if points[-1] != goal_pos:
            points.append(goal_pos)
        return points

    def cost(self, start: Sequence[float], goal: Sequence[float]) -> float | None:
        """Length of the planned path, or None if unreachable."""
        path = self.plan(start, goal)
        return path_length(path) if path is not None else None

    def nearest_reachable(
        self, start: Sequence[float], candidates: Sequence[Sequence[float]]
    ) -> Vec3 | None:
        """The candidate with the cheapest path from ``start``."""
        best: Vec3 | None = None
        best_cost = float("inf")
        for candidate in candidates:
            cost = self.cost(start, candidate)
            if cost is not None and cost < best_cost:
                best, best_cost = as_vec3(candidate), cost
        return best
