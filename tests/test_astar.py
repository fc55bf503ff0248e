"""Tests for A* path search."""

import pytest

from senseact.errors import SearchInvariantError
from senseact.navigation.astar import SearchNode, find_node_path, find_path, path_length
from senseact.navigation.graph import NodeGraph, Vec3, grid_graph


def make_detour_graph() -> NodeGraph:
    """Start and goal with a dead end in between and two detours of different length.

    0 = start (0, 0), 1 = goal (4, 0), 2 = dead end (3, 0),
    3 = short detour (2, 2), 4 = long detour (2, -5).
    """
    nodes = [(0, 0), (4, 0), (3, 0), (2, 2), (2, -5)]
    connections = [(0, 2), (0, 3), (3, 1), (0, 4), (4, 1)]
    return NodeGraph(nodes, connections)


def node_path_cost(graph: NodeGraph, path: list[int]) -> float:
    return sum(graph.edge_cost(a, b) for a, b in zip(path, path[1:]))


def cheapest_by_enumeration(graph: NodeGraph, start: int, goal: int) -> float | None:
    """Lowest cost over every simple path from ``start`` to ``goal``."""
    best = None
    stack = [(start, (start,), 0.0)]
    while stack:
        node, visited, cost = stack.pop()
        if node == goal:
            best = cost if best is None else min(best, cost)
            continue
        for neighbor in graph.neighbors(node):
            if neighbor not in visited:
                step = graph.edge_cost(node, neighbor)
                stack.append((neighbor, visited + (neighbor,), cost + step))
    return best


class TestSearchNode:
    """Tests for SearchNode bookkeeping."""

    def test_g_accumulates_from_predecessor(self):
        """G is the predecessor's G plus the step between them."""
        root = SearchNode(0, Vec3(0, 0, 0), h=5.0)
        child = SearchNode(1, Vec3(3, 4, 0), h=0.0)
        child.set_previous(root)
        assert child.g == pytest.approx(5.0)
        assert child.f == pytest.approx(5.0)

    def test_clearing_predecessor_resets_g(self):
        """A node without predecessor has G = 0."""
        node = SearchNode(1, Vec3(1, 0, 0), h=1.0, g=7.0)
        node.set_previous(None)
        assert node.g == 0.0

    def test_self_predecessor_is_fatal(self):
        """A node cannot precede itself."""
        node = SearchNode(0, Vec3(0, 0, 0), h=0.0)
        with pytest.raises(SearchInvariantError):
            node.set_previous(node)

    def test_same_position_predecessor_is_fatal(self):
        """A different node at the same position cannot be a predecessor."""
        a = SearchNode(0, Vec3(1, 1, 0), h=0.0)
        b = SearchNode(1, Vec3(1, 1, 0), h=0.0)
        with pytest.raises(SearchInvariantError):
            b.set_previous(a)

    def test_invariant_error_is_an_assertion(self):
        """The invariant error is also an AssertionError."""
        assert issubclass(SearchInvariantError, AssertionError)


class TestFindNodePath:
    """Tests for find_node_path()."""

    def test_start_equals_goal(self):
        """Searching for the start node returns just that node."""
        graph = grid_graph(2, 2)
        assert find_node_path(graph, 3, 3) == [3]

    def test_grid_corner_to_corner(self):
        """Opposite corners of a 3x3 grid are four unit steps apart."""
        graph = grid_graph(3, 3)
        path = find_node_path(graph, 0, 8)

        assert path is not None
        assert path[0] == 0
        assert path[-1] == 8
        assert len(path) == 5
        assert node_path_cost(graph, path) == pytest.approx(4.0)
        for a, b in zip(path, path[1:]):
            assert b in graph.neighbors(a)

    def test_avoids_dead_end_and_long_detour(self):
        """The cheapest route is found even when the greedy step leads nowhere."""
        graph = make_detour_graph()
        assert find_node_path(graph, 0, 1) == [0, 3, 1]

    def test_unreachable_goal(self):
        """Disconnected components yield None."""
        graph = NodeGraph([(0, 0), (1, 0), (5, 0), (6, 0)], [(0, 1), (2, 3)])
        assert find_node_path(graph, 0, 3) is None

    def test_deterministic_on_symmetric_graph(self):
        """Equal-cost alternatives always resolve to the same path."""
        graph = grid_graph(4, 4)
        first = find_node_path(graph, 0, 15)
        assert all(find_node_path(graph, 0, 15) == first for _ in range(5))

    def test_optimal_on_diagonal_grid(self):
        """With diagonals the corner path is the straight diagonal."""
        graph = grid_graph(3, 3, diagonal=True)
        path = find_node_path(graph, 0, 8)
        assert path == [0, 4, 8]

    def test_blocked_wall_forces_detour(self):
        """A wall across the grid except one gap is routed around."""
        # 5x3 grid, column 2 blocked except the top row
        graph = grid_graph(5, 3, blocked=[(2, 0), (2, 1)])
        start = graph.index_of((0, 0))
        goal = graph.index_of((4, 0))
        path = find_node_path(graph, start, goal)

        assert path is not None
        assert graph.index_of((2, 2)) in path
        assert node_path_cost(graph, path) == pytest.approx(8.0)

    @pytest.mark.parametrize(
        "graph",
        [
            make_detour_graph(),
            grid_graph(4, 2),
            grid_graph(3, 3, diagonal=True, blocked=[(1, 1)]),
            grid_graph(3, 3, diagonal=True, blocked=[(1, 0)]),
        ],
        ids=["detour", "grid", "diagonal-ring", "diagonal-notch"],
    )
    def test_no_cheaper_path_exists(self, graph):
        """For every pair, no simple path is cheaper than the one found."""
        for start in range(len(graph)):
            for goal in range(len(graph)):
                path = find_node_path(graph, start, goal)
                best = cheapest_by_enumeration(graph, start, goal)
                if best is None:
                    assert path is None
                    continue
                assert path[0] == start
                assert path[-1] == goal
                assert node_path_cost(graph, path) == pytest.approx(best)

    def test_coincident_nodes_raise(self):
        """Two connected nodes at one position are a corrupted graph."""
        graph = NodeGraph([(0, 0), (0, 0)], [(0, 1)])
        with pytest.raises(SearchInvariantError):
            find_node_path(graph, 0, 1)


class TestFindPath:
    """Tests for find_path() between arbitrary positions."""

    def test_same_position(self):
        """Start equal to goal is a one-point path."""
        graph = grid_graph(2, 2)
        assert find_path(graph, (0.3, 0.3), (0.3, 0.3)) == [Vec3(0.3, 0.3, 0.0)]

    def test_snaps_and_keeps_raw_endpoints(self):
        """Off-node positions are snapped, with the raw positions at both ends."""
        graph = grid_graph(3, 3)
        path = find_path(graph, (0.2, 0.1), (2.0, 2.1))

        assert path is not None
        assert path[0] == Vec3(0.2, 0.1, 0.0)
        assert path[1] == Vec3(0.0, 0.0, 0.0)
        assert path[-2] == Vec3(2.0, 2.0, 0.0)
        assert path[-1] == Vec3(2.0, 2.1, 0.0)

    def test_node_positions_not_duplicated(self):
        """A start exactly on a node is not repeated."""
        graph = grid_graph(2, 1)
        assert find_path(graph, (0, 0), (1, 0)) == [Vec3(0, 0, 0), Vec3(1, 0, 0)]

    def test_empty_graph(self):
        """Without nodes there is no path."""
        assert find_path(NodeGraph(), (0, 0), (1, 1)) is None


class TestPathLength:
    """Tests for path_length()."""

    def test_polyline_length(self):
        assert path_length([(0, 0), (3, 4), (3, 0)]) == pytest.approx(9.0)

    def test_single_point(self):
        assert path_length([(1, 1)]) == 0.0
