"""Tests for the Navigator service and kinematic path following."""

import pytest

from senseact.engine.navigator import Navigator
from senseact.navigation.graph import NodeGraph, Vec3, grid_graph
from senseact.navigation.lookup import LookupTable
from senseact.navigation.movement import advance


def make_navigator(width: int = 3, depth: int = 3, with_table: bool = True) -> Navigator:
    graph = grid_graph(width, depth)
    table = LookupTable.build(graph) if with_table else None
    return Navigator(graph, table)


class TestNavigatorPlan:
    """Tests for Navigator.plan()."""

    def test_plan_uses_table(self):
        """Covered pairs are answered from the table without searching."""
        navigator = make_navigator()
        path = navigator.plan((0, 0), (2, 2))

        assert path[0] == Vec3(0, 0, 0)
        assert path[-1] == Vec3(2, 2, 0)
        assert navigator.table_hits == 1
        assert navigator.fallback_searches == 0

    def test_fallback_is_memoized(self):
        """Without a table each pair is searched once and then remembered."""
        navigator = make_navigator(with_table=False)
        first = navigator.plan((0, 0), (2, 2))
        second = navigator.plan((0, 0), (2, 2))

        assert first == second
        assert navigator.fallback_searches == 1

    def test_fallback_does_not_touch_table(self):
        """A miss on a partial table is searched but never written back."""
        graph = grid_graph(3, 1)
        table = LookupTable.build(graph, goals=[2])
        navigator = Navigator(graph, table)
        entries_before = list(table.entries)

        path = navigator.plan((2, 0), (0, 0))

        assert path == [Vec3(2, 0, 0), Vec3(1, 0, 0), Vec3(0, 0, 0)]
        assert navigator.fallback_searches == 1
        assert table.entries == entries_before

    def test_same_position(self):
        navigator = make_navigator()
        assert navigator.plan((1, 1), (1, 1)) == [Vec3(1, 1, 0)]

    def test_unreachable(self):
        graph = NodeGraph([(0, 0), (1, 0), (5, 0), (6, 0)], [(0, 1), (2, 3)])
        navigator = Navigator(graph, LookupTable.build(graph))
        assert navigator.plan((0, 0), (6, 0)) is None
        assert navigator.cost((0, 0), (6, 0)) is None

    def test_empty_graph_is_straight_line(self):
        """With no nodes the agent walks straight at its goal."""
        navigator = Navigator()
        assert navigator.plan((0, 0), (3, 4)) == [Vec3(0, 0, 0), Vec3(3, 4, 0)]
        assert navigator.cost((0, 0), (3, 4)) == pytest.approx(5.0)

    def test_rejects_stale_table(self):
        """A table built for another layout cannot be published with this graph."""
        table = LookupTable.build(grid_graph(2, 2))
        with pytest.raises(ValueError):
            Navigator(grid_graph(3, 3), table)

    def test_nearest_reachable_uses_path_cost(self):
        """The winner is the cheapest to walk to, not the closest in a straight line."""
        # A wall at column 1 except the top row: (2, 0) is close but far to walk
        graph = grid_graph(3, 3, blocked=[(1, 0), (1, 1)])
        navigator = Navigator(graph, LookupTable.build(graph))
        best = navigator.nearest_reachable((0, 0), [(2, 0), (0, 2)])
        assert best == Vec3(0, 2, 0)

    def test_nearest_reachable_none(self):
        navigator = make_navigator()
        assert navigator.nearest_reachable((0, 0), []) is None


class TestAdvance:
    """Tests for advance()."""

    def test_moves_partially_toward_waypoint(self):
        position, remaining = advance((0, 0), [(4, 0)], max_step=1.0)
        assert position == Vec3(1, 0, 0)
        assert remaining == [Vec3(4, 0, 0)]

    def test_passes_through_waypoints(self):
        """Leftover movement carries on to the next waypoint."""
        position, remaining = advance((0, 0), [(1, 0), (1, 3)], max_step=2.0)
        assert position == Vec3(1, 1, 0)
        assert remaining == [Vec3(1, 3, 0)]

    def test_arrives(self):
        position, remaining = advance((0, 0), [(1, 0)], max_step=5.0)
        assert position == Vec3(1, 0, 0)
        assert remaining == []

    def test_acceptable_distance_consumes_waypoint(self):
        """A waypoint already within range is dropped without moving."""
        position, remaining = advance((0.95, 0), [(1, 0)], max_step=0.0, acceptable_distance=0.1)
        assert position == Vec3(0.95, 0, 0)
        assert remaining == []

    def test_zero_step_does_not_move(self):
        position, remaining = advance((0, 0), [(1, 0)], max_step=0.0)
        assert position == Vec3(0, 0, 0)
        assert remaining == [Vec3(1, 0, 0)]
