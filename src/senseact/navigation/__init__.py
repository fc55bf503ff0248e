"""Navigation: node graph, A* search, lookup table, path following."""

from senseact.navigation.astar import SearchNode, find_node_path, find_path, path_length
from senseact.navigation.graph import (
    Connection,
    NodeGraph,
    Vec3,
    as_vec3,
    distance,
    grid_graph,
    proximity_graph,
)
from senseact.navigation.lookup import LookupEntry, LookupTable
from senseact.navigation.movement import advance

__all__ = [
    "Connection",
    "LookupEntry",
    "LookupTable",
    "NodeGraph",
    "SearchNode",
    "Vec3",
    "advance",
    "as_vec3",
    "distance",
    "find_node_path",
    "find_path",
    "grid_graph",
    "path_length",
    "proximity_graph",
]
