"""Node graph: static positions and undirected connections between them."""

from __future__ import annotations

import hashlib
import itertools
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import NamedTuple


class Vec3(NamedTuple):
    """An immutable 3D position."""

    x: float
    y: float
    z: float = 0.0


def distance(a: Sequence[float], b: Sequence[float]) -> float:
    """Euclidean distance between two positions."""
    return math.dist(a, b)


def as_vec3(position: Sequence[float]) -> Vec3:
    """Coerce a 2- or 3-element sequence to a Vec3."""
    return Vec3(*(float(c) for c in position))


@dataclass(frozen=True)
class Connection:
    """An undirected edge between two node indices."""

    a: int
    b: int

    def __post_init__(self) -> None:
        if self.a == self.b:
            raise ValueError(f"Node {self.a} cannot connect to itself")

    @property
    def key(self) -> tuple[int, int]:
        """Order-independent identity of the connection."""
        return (self.a, self.b) if self.a < self.b else (self.b, self.a)

    def other(self, index: int) -> int:
        """The node on the other end from ``index``."""
        return self.b if index == self.a else self.a


@dataclass(frozen=True)
class NodeGraph:
    """Process-wide, read-only navigation graph.

    Traversal cost of a connection is the Euclidean distance between its two
    nodes in both directions. Duplicate connections are accepted and collapse
    to one adjacency entry. A changed layout means building a new graph.
    """

    nodes: tuple[Vec3, ...] = ()
    connections: tuple[Connection, ...] = ()
    _adjacency: tuple[tuple[int, ...], ...] = field(default=(), init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        nodes = tuple(as_vec3(n) for n in self.nodes)
        connections = tuple(
            c if isinstance(c, Connection) else Connection(*c) for c in self.connections
        )
        adjacency: list[set[int]] = [set() for _ in nodes]
        for connection in connections:
            for index in (connection.a, connection.b):
                if not 0 <= index < len(nodes):
                    raise ValueError(
                        f"Connection {connection.key} references missing node {index}"
                    )
            adjacency[connection.a].add(connection.b)
            adjacency[connection.b].add(connection.a)

        object.__setattr__(self, "nodes", nodes)
        object.__setattr__(self, "connections", connections)
        object.__setattr__(self, "_adjacency", tuple(tuple(sorted(s)) for s in adjacency))

    def __len__(self) -> int:
        return len(self.nodes)

    def neighbors(self, index: int) -> tuple[int, ...]:
        """Indices connected to ``index``, ascending."""
        return self._adjacency[index]

    def edge_cost(self, a: int, b: int) -> float:
        """Traversal cost between two nodes."""
        return distance(self.nodes[a], self.nodes[b])

    def index_of(self, position: Sequence[float]) -> int | None:
        """Index of the node exactly at ``position``, if any."""
        target = as_vec3(position)
        for index, node in enumerate(self.nodes):
            if node == target:
                return index
        return None

    def nearest(self, position: Sequence[float]) -> int | None:
        """Index of the node closest to ``position``; ties go to the lower index."""
        if not self.nodes:
            return None
        target = as_vec3(position)
        return min(range(len(self.nodes)), key=lambda i: (distance(self.nodes[i], target), i))

    def fingerprint(self) -> str:
        """Stable identity of this topology, used to detect stale lookup tables."""
        digest = hashlib.sha256()
        for node in self.nodes:
            digest.update(f"{node.x!r},{node.y!r},{node.z!r};".encode())
        digest.update(b"|")
        for a, b in sorted({c.key for c in self.connections}):
            digest.update(f"{a}-{b};".encode())
        return digest.hexdigest()


def grid_graph(
    width: int,
    depth: int,
    spacing: float = 1.0,
    blocked: Iterable[tuple[int, int]] = (),
    diagonal: bool = False,
    origin: Sequence[float] = (0.0, 0.0, 0.0),
) -> NodeGraph:
    """Place a node on every open cell of a width x depth grid.

    Cells are laid out on the x/y plane at ``origin + (col, row) * spacing``.
    Neighbouring open cells are connected (4-connectivity, or 8 with
    ``diagonal``).

    Args:
        width: Number of columns.
        depth: Number of rows.
        spacing: Distance between neighbouring cells.
        blocked: (col, row) cells that get no node.
        diagonal: Also connect diagonal neighbours.
        origin: Position of cell (0, 0).

    Returns:
        The generated graph; node order is row-major over open cells.
    """
    closed = set(blocked)
    ox, oy, oz = as_vec3(origin)
    cells: dict[tuple[int, int], int] = {}
    nodes: list[Vec3] = []
    for row in range(depth):
        for col in range(width):
            if (col, row) in closed:
                continue
            cells[(col, row)] = len(nodes)
            nodes.append(Vec3(ox + col * spacing, oy + row * spacing, oz))

    offsets = [(1, 0), (0, 1)]
    if diagonal:
        offsets += [(1, 1), (-1, 1)]

    connections: list[Connection] = []
    for (col, row), index in cells.items():
        for dc, dr in offsets:
            neighbor = cells.get((col + dc, row + dr))
            if neighbor is not None:
                connections.append(Connection(index, neighbor))

    return NodeGraph(tuple(nodes), tuple(connections))


def proximity_graph(
    points: Iterable[Sequence[float]],
    max_distance: float | None = None,
) -> NodeGraph:
    """Connect freely placed points that are within ``max_distance`` of each other.

    Duplicate points are merged. Points left without any connection are
    dropped, since they cannot take part in a path.
    """
    unique: list[Vec3] = []
    for point in points:
        vec = as_vec3(point)
        if vec not in unique:
            unique.append(vec)

    limited = max_distance is not None and max_distance > 0
    pairs = [
        (i, j)
        for i, j in itertools.combinations(range(len(unique)), 2)
        if not limited or distance(unique[i], unique[j]) <= max_distance
    ]

    connected = sorted({i for pair in pairs for i in pair})
    remap = {old: new for new, old in enumerate(connected)}
    return NodeGraph(
        tuple(unique[i] for i in connected),
        tuple(Connection(remap[i], remap[j]) for i, j in pairs),
    )
