"""A* path search over a NodeGraph.

Expansion order: lowest F first; equal F is broken by lower H (the node
closer to the goal), then by lower node index, so symmetric graphs always
yield the same path.
"""

from __future__ import annotations

import heapq
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from senseact.errors import SearchInvariantError
from senseact.navigation.graph import Vec3, as_vec3, distance

if TYPE_CHECKING:
    from senseact.navigation.graph import NodeGraph

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class SearchNode:
    """Working state for one graph node during a single search.

    ``h`` is fixed when the node is discovered; ``g`` changes whenever a
    cheaper predecessor is found.
    """

    index: int
    position: Vec3
    h: float
    g: float = 0.0
    previous: SearchNode | None = None
    is_open: bool = True

    @property
    def f(self) -> float:
        return self.g + self.h

    def set_previous(self, previous: SearchNode | None) -> None:
        """Re-parent this node and recompute its accumulated cost."""
        if previous is self or (previous is not None and previous.position == self.position):
            raise SearchInvariantError(
                f"Search node {self.index} at {self.position} cannot precede itself"
            )
        self.previous = previous
        if previous is None:
            self.g = 0.0
        else:
            self.g = previous.g + distance(previous.position, self.position)

    def open(self) -> None:
        self.is_open = True

    def close(self) -> None:
        self.is_open = False


def find_node_path(graph: NodeGraph, start: int, goal: int) -> list[int] | None:
    """Shortest path between two node indices.

    Args:
        graph: The graph to search.
        start: Index of the starting node.
        goal: Index of the goal node.

    Returns:
        Node indices from start to goal inclusive, ``[start]`` when they are
        the same node, or None when the goal is unreachable.
    """
    if start == goal:
        return [start]

    goal_position = graph.nodes[goal]
    root = SearchNode(start, graph.nodes[start], distance(graph.nodes[start], goal_position))
    discovered: dict[int, SearchNode] = {start: root}
    frontier: list[tuple[float, float, int]] = [(root.f, root.h, start)]
    expansions = 0

    while frontier:
        f, _h, index = heapq.heappop(frontier)
        node = discovered[index]
        if not node.is_open or f > node.f:
            continue  # superseded entry

        node.close()
        expansions += 1

        if index == goal:
            path: list[int] = []
            current: SearchNode | None = node
            while current is not None:
                path.append(current.index)
                current = current.previous
            path.reverse()
            logger.debug(
                "A* %d -> %d: %d hops, cost %.3f, %d expansions",
                start,
                goal,
                len(path) - 1,
                node.g,
                expansions,
            )
            return path

        for neighbor in graph.neighbors(index):
            tentative = node.g + graph.edge_cost(index, neighbor)
            existing = discovered.get(neighbor)
            if existing is None:
                position = graph.nodes[neighbor]
                successor = SearchNode(neighbor, position, distance(position, goal_position))
                successor.set_previous(node)
                discovered[neighbor] = successor
                heapq.heappush(frontier, (successor.f, successor.h, neighbor))
            elif tentative < existing.g:
                # Closed nodes may be reopened when a strictly cheaper route appears
                existing.set_previous(node)
                existing.open()
                heapq.heappush(frontier, (existing.f, existing.h, neighbor))

    logger.debug("A* %d -> %d: no path after %d expansions", start, goal, expansions)
    return None


def find_path(
    graph: NodeGraph,
    start: Sequence[float],
    goal: Sequence[float],
) -> list[Vec3] | None:
    """Shortest path between two arbitrary positions.

    Positions that are not graph nodes are snapped to their nearest node; the
    raw positions are kept as first and last waypoints.

    Returns:
        Waypoints from start to goal, ``[start]`` if start equals goal, or
        None if no path exists (including an empty graph).
    """
    start_pos = as_vec3(start)
    goal_pos = as_vec3(goal)
    if start_pos == goal_pos:
        return [start_pos]

    start_node = graph.nearest(start_pos)
    goal_node = graph.nearest(goal_pos)
    if start_node is None or goal_node is None:
        return None

    indices = find_node_path(graph, start_node, goal_node)
    if indices is None:
        return None

    points = [graph.nodes[i] for i in indices]
    if points[0] != start_pos:
        points.insert(0, start_pos)
    if points[-1] != goal_pos:
        points.append(goal_pos)
    return points


def path_length(points: Sequence[Sequence[float]]) -> float:
    """Total length of a polyline."""
    return sum(distance(a, b) for a, b in zip(points, points[1:]))
