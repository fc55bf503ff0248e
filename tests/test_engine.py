"""Tests for the agent tick: states, events, sensing, action contention, movement."""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from senseact.components import Actuator, PerformanceMeasure, Sensor, State
from senseact.engine.loop import offer_actions, step_agent
from senseact.engine.navigator import Navigator
from senseact.model import Action, Agent, AIEvent, Percept
from senseact.navigation import LookupTable, NodeGraph, Vec3, grid_graph

DT = 0.5


# Test components


class TraceState(State):
    """Appends every hook call to the agent's trace."""

    def __init__(self, label: str, handles: tuple = ()) -> None:
        self.label = label
        self.handles = handles

    def enter(self, agent):
        trace(agent).append(f"enter:{self.label}")

    def execute(self, agent):
        trace(agent).append(f"execute:{self.label}")

    def exit(self, agent):
        trace(agent).append(f"exit:{self.label}")

    def handle_event(self, agent, event):
        if event.event_id not in self.handles:
            return False
        trace(agent).append(f"event:{self.label}:{event.event_id}")
        return True

    def __str__(self):
        return self.label


class SwitchingGlobal(TraceState):
    """Global state that moves the agent into ``target`` if it is elsewhere."""

    def __init__(self, target: State) -> None:
        super().__init__("global")
        self.target = target

    def execute(self, agent):
        super().execute(agent)
        if agent.state is not self.target:
            agent.change_state(self.target)


class EmitState(State):
    """Emits whatever the test queued in ``memory['to_emit']``."""

    def execute(self, agent):
        queued = agent.memory.get("to_emit", [])
        agent.memory["to_emit"] = []
        return queued


@dataclass(eq=False)
class MoveCrate(Action):
    pass


@dataclass(eq=False)
class Paint(Action):
    pass


class RecordingActuator(Actuator):
    def __init__(self, handles: type[Action], succeed_after: int = 1) -> None:
        self.handles = handles
        self.succeed_after = succeed_after
        self.seen: list[Action] = []

    def act(self, agent, action):
        if not isinstance(action, self.handles):
            return False
        self.seen.append(action)
        return len(self.seen) >= self.succeed_after


class CraneActuator(Actuator):
    """Handles MoveCrate on the first try; unrelated to RecordingActuator."""

    def __init__(self) -> None:
        self.lifted: list[Action] = []

    def act(self, agent, action):
        if not isinstance(action, MoveCrate):
            return False
        self.lifted.append(action)
        return True


@dataclass(eq=False)
class CountedMoveCrate(MoveCrate):
    """Counts how often the engine marks it complete."""

    completions: int = 0

    def mark_complete(self) -> None:
        self.completions += 1
        super().mark_complete()


class SelfCompletingActuator(Actuator):
    """Marks the action complete itself before reporting success."""

    def act(self, agent, action):
        action.mark_complete()
        return True


@dataclass(frozen=True)
class Reading(Percept):
    value: int


class CountingSensor(Sensor):
    def __init__(self) -> None:
        self.calls = 0

    def sense(self, agent):
        self.calls += 1
        return Reading(self.calls)


class PreciseCountingSensor(CountingSensor):
    pass


class UnusedSensor(Sensor):
    def __init__(self) -> None:
        self.calls = 0

    def sense(self, agent):
        self.calls += 1
        return Reading(-self.calls)


class BlindSensor(Sensor):
    def sense(self, agent):
        return None


class ReadTwiceState(State):
    def execute(self, agent):
        first = agent.sense(CountingSensor)
        second = agent.sense(CountingSensor)
        agent.memory["readings"] = (first, second)


class TickPerformance(PerformanceMeasure):
    def calculate_performance(self, agent):
        return float(agent.tick * 10)


def trace(agent: Agent) -> list[str]:
    return agent.memory.setdefault("trace", [])


def make_agent(**kwargs) -> Agent:
    """Create a test agent; keyword arguments are passed through."""
    kwargs.setdefault("id", "test_agent")
    return Agent(**kwargs)


def step(agent: Agent, navigator: Navigator | None = None) -> list[Action]:
    return step_agent(agent, navigator or Navigator(), DT)


def make_line_navigator(length: int = 3) -> Navigator:
    graph = grid_graph(length, 1)
    return Navigator(graph, LookupTable.build(graph))


# Tests


class TestStateMachine:
    """Tests for state transitions."""

    def test_setup_enters_initial_state_once(self):
        state = TraceState("idle")
        agent = make_agent(initial_state=state)
        agent.setup()
        agent.setup()
        assert agent.state is state
        assert trace(agent) == ["enter:idle"]

    def test_first_step_runs_setup(self):
        agent = make_agent(initial_state=TraceState("idle"))
        step(agent)
        assert trace(agent) == ["enter:idle", "execute:idle"]

    def test_exit_runs_before_enter(self):
        a, b = TraceState("a"), TraceState("b")
        agent = make_agent(initial_state=a)
        agent.setup()
        agent.change_state(b)
        assert trace(agent) == ["enter:a", "exit:a", "enter:b"]
        assert agent.previous_state is a

    def test_reentering_same_state(self):
        """Changing to the current state exits and enters it again."""
        a = TraceState("a")
        agent = make_agent(initial_state=a)
        agent.setup()
        agent.change_state(a)
        assert trace(agent) == ["enter:a", "exit:a", "enter:a"]

    def test_revert_state(self):
        a, b = TraceState("a"), TraceState("b")
        agent = make_agent(initial_state=a)
        agent.setup()
        agent.change_state(b)
        assert agent.revert_state() is True
        assert agent.state is a

    def test_revert_without_history(self):
        agent = make_agent()
        assert agent.revert_state() is False

    def test_state_change_is_logged(self):
        agent = make_agent(initial_state=TraceState("a"))
        agent.setup()
        assert "Changed state from None to a." in list(agent.messages)

    def test_global_executes_before_current(self):
        current = TraceState("current")
        agent = make_agent(initial_state=current, global_state=TraceState("global"))
        step(agent)
        assert trace(agent) == ["enter:current", "execute:global", "execute:current"]

    def test_global_switch_takes_effect_same_tick(self):
        """A state chosen by the global state executes in the same tick."""
        start, target = TraceState("start"), TraceState("target")
        agent = make_agent(initial_state=start, global_state=SwitchingGlobal(target))
        step(agent)
        assert trace(agent) == [
            "enter:start",
            "execute:global",
            "exit:start",
            "enter:target",
            "execute:target",
        ]

    def test_get_state_without_manager(self):
        agent = make_agent()
        assert isinstance(agent.get_state(EmitState), EmitState)


class TestEvents:
    """Tests for event routing."""

    def test_current_state_handles_first(self):
        agent = make_agent(
            initial_state=TraceState("current", handles=("ping",)),
            global_state=TraceState("global", handles=("ping",)),
        )
        agent.setup()
        assert agent.handle_event(AIEvent("ping")) is True
        assert trace(agent)[-1] == "event:current:ping"
        assert "event:global:ping" not in trace(agent)

    def test_global_state_is_fallback(self):
        agent = make_agent(
            initial_state=TraceState("current"),
            global_state=TraceState("global", handles=("ping",)),
        )
        agent.setup()
        assert agent.handle_event(AIEvent("ping")) is True
        assert trace(agent)[-1] == "event:global:ping"

    def test_unhandled_event_is_dropped(self):
        agent = make_agent(initial_state=TraceState("current"))
        agent.setup()
        assert agent.handle_event(AIEvent("unknown")) is False

    def test_fire_event_to_other_agent(self):
        sender = make_agent(id="sender")
        receiver = make_agent(id="receiver", initial_state=TraceState("r", handles=("hi",)))
        receiver.setup()
        assert sender.fire_event(receiver, "hi") is True
        assert trace(receiver)[-1] == "event:r:hi"

    def test_fire_event_to_self_or_nobody(self):
        agent = make_agent(initial_state=TraceState("a", handles=("hi",)))
        agent.setup()
        assert agent.fire_event(agent, "hi") is False
        assert agent.fire_event(None, "hi") is False

    def test_broadcast_without_manager(self):
        assert make_agent().broadcast_event("hi") is False


class TestSensing:
    """Tests for lazy, per-tick sensing."""

    def test_sensor_runs_once_per_tick(self):
        sensor = CountingSensor()
        agent = make_agent(initial_state=ReadTwiceState(), sensors=[sensor])
        step(agent)
        assert sensor.calls == 1
        first, second = agent.memory["readings"]
        assert first is second

        step(agent)
        assert sensor.calls == 2

    def test_base_and_subclass_queries_share_a_reading(self):
        sensor = PreciseCountingSensor()
        agent = make_agent(sensors=[sensor])

        by_base = agent.sense(CountingSensor)
        by_subclass = agent.sense(PreciseCountingSensor)

        assert sensor.calls == 1
        assert by_base is by_subclass
        assert agent.sense_all(Sensor) == [by_base]

    def test_unread_sensor_never_runs(self):
        unused = UnusedSensor()
        agent = make_agent(initial_state=ReadTwiceState(), sensors=[CountingSensor(), unused])
        step(agent)
        assert unused.calls == 0

    def test_missing_sensor_type(self):
        agent = make_agent()
        assert agent.sense(CountingSensor) is None

    def test_nothing_perceived(self):
        agent = make_agent(sensors=[BlindSensor()])
        assert agent.sense(BlindSensor) is None
        assert "BlindSensor: did not perceive anything." in list(agent.messages)

    def test_sense_all_returns_every_sensor(self):
        agent = make_agent(sensors=[CountingSensor(), CountingSensor()])
        readings = agent.sense_all(CountingSensor)
        assert readings == [Reading(1), Reading(1)]


class TestActions:
    """Tests for action merging and actuator contention."""

    def test_first_successful_actuator_wins(self):
        first = RecordingActuator(MoveCrate)
        second = RecordingActuator(MoveCrate)
        action = MoveCrate()
        agent = make_agent(initial_state=EmitState(), actuators=[first, second])
        agent.memory["to_emit"] = [action]

        completed = step(agent)

        assert completed == [action]
        assert action.complete
        assert first.seen == [action]
        assert second.seen == []
        assert agent.pending_actions == []

    @pytest.mark.parametrize("order", [("forklift", "crane"), ("crane", "forklift")])
    def test_one_actuator_completes_in_either_order(self, order):
        forklift = RecordingActuator(MoveCrate)
        crane = CraneActuator()
        attached = {"forklift": forklift, "crane": crane}
        action = CountedMoveCrate()
        agent = make_agent(
            initial_state=EmitState(), actuators=[attached[name] for name in order]
        )
        agent.memory["to_emit"] = [action]

        completed = step(agent)
        step(agent)

        assert completed == [action]
        assert action.completions == 1
        assert agent.pending_actions == []
        handled = {"forklift": forklift.seen, "crane": crane.lifted}
        assert handled[order[0]] == [action]
        assert handled[order[1]] == []

    def test_failed_actuator_passes_action_on(self):
        """An actuator that cannot finish it yet does not stop the next one."""
        slow = RecordingActuator(MoveCrate, succeed_after=99)
        fast = RecordingActuator(MoveCrate)
        agent = make_agent(initial_state=EmitState(), actuators=[slow, fast])
        agent.memory["to_emit"] = [MoveCrate()]

        completed = step(agent)

        assert len(completed) == 1
        assert len(slow.seen) == 1
        assert len(fast.seen) == 1

    def test_unfinished_action_is_retried_next_tick(self):
        actuator = RecordingActuator(MoveCrate, succeed_after=2)
        action = MoveCrate()
        agent = make_agent(initial_state=EmitState(), actuators=[actuator])
        agent.memory["to_emit"] = [action]

        assert step(agent) == []
        assert agent.pending_actions == [action]

        assert step(agent) == [action]
        assert actuator.seen == [action, action]
        assert agent.pending_actions == []

    def test_unrecognized_action_stays_pending(self):
        action = Paint()
        agent = make_agent(
            initial_state=EmitState(), actuators=[RecordingActuator(MoveCrate)]
        )
        agent.memory["to_emit"] = [action]
        step(agent)
        step(agent)
        assert agent.pending_actions == [action]
        assert not action.complete

    def test_new_action_replaces_pending_of_same_type(self):
        """Other pending actions carry over; a new one of the same type replaces the old."""
        agent = make_agent(initial_state=EmitState())
        crate1, paint, crate2 = MoveCrate(), Paint(), MoveCrate()

        agent.memory["to_emit"] = [crate1]
        step(agent)
        agent.memory["to_emit"] = [paint]
        step(agent)
        assert agent.pending_actions == [paint, crate1]

        agent.memory["to_emit"] = [crate2]
        step(agent)
        assert agent.pending_actions == [crate2, paint]

    def test_self_completing_actuator(self):
        """An actuator may flag completion itself; it is not completed twice."""
        action = MoveCrate()
        agent = make_agent(actuators=[SelfCompletingActuator()])
        agent.pending_actions = [action]
        assert offer_actions(agent) == [action]
        assert action.complete

    def test_completed_action_not_offered_again(self):
        action = MoveCrate()
        action.mark_complete()
        actuator = RecordingActuator(MoveCrate)
        agent = make_agent(actuators=[actuator])
        agent.pending_actions = [action]
        assert offer_actions(agent) == []
        assert actuator.seen == []

    def test_stop_all_actions(self):
        agent = make_agent()
        agent.pending_actions = [MoveCrate()]
        agent.emit(Paint())
        agent.stop_all_actions()
        assert agent.pending_actions == []
        assert agent.emitted_actions == []


class TestMovement:
    """Tests for navigation during the tick."""

    def test_walks_to_destination_and_arrives(self):
        navigator = make_line_navigator(3)
        agent = make_agent(move_speed=1.0)
        assert agent.navigate((2, 0)) is True

        for _ in range(4):
            step(agent, navigator)

        assert agent.position == Vec3(2, 0, 0)
        assert not agent.navigating
        assert agent.path is None
        assert "Arrived at (2.0, 0.0, 0.0)." in list(agent.messages)

    def test_moves_at_speed(self):
        navigator = make_line_navigator(3)
        agent = make_agent(move_speed=1.0)
        agent.navigate((2, 0))
        step(agent, navigator)
        assert agent.position == Vec3(0.5, 0, 0)
        assert agent.navigating

    def test_same_destination_is_not_replanned(self):
        agent = make_agent()
        assert agent.navigate((2, 0)) is True
        assert agent.navigate((2, 0)) is False

    def test_clearing_target_cancels_navigation(self):
        navigator = make_line_navigator(3)
        agent = make_agent(move_speed=1.0)
        agent.navigate((2, 0))
        step(agent, navigator)
        agent.stop_navigating()
        step(agent, navigator)
        assert agent.position == Vec3(0.5, 0, 0)

    def test_unreachable_destination_is_dropped(self):
        graph = NodeGraph([(0, 0), (1, 0), (5, 0), (6, 0)], [(0, 1), (2, 3)])
        navigator = Navigator(graph, LookupTable.build(graph))
        agent = make_agent()
        agent.navigate((6, 0))
        step(agent, navigator)
        assert agent.position == Vec3(0, 0, 0)
        assert not agent.navigating
        assert "No path to (6.0, 0.0, 0.0)." in list(agent.messages)

    def test_empty_graph_walks_straight(self):
        agent = make_agent(move_speed=2.0)
        agent.navigate((3, 4))
        for _ in range(6):
            step(agent)
        assert agent.position == Vec3(3, 4, 0)


class TestTickBookkeeping:
    """Tests for timers, performance and counters."""

    def test_timers_tick_each_step(self):
        agent = make_agent()
        timer = agent.timer("cooldown", 1.0)
        timer.start()
        step(agent)
        assert timer.remaining == pytest.approx(0.5)
        step(agent)
        assert timer.expired

    def test_timer_created_once(self):
        agent = make_agent()
        assert agent.timer("t", 1.0) is agent.timer("t")

    def test_performance_recomputed_after_step(self):
        agent = make_agent(performance_measure=TickPerformance())
        step(agent)
        assert agent.performance == 0.0
        step(agent)
        assert agent.performance == 10.0

    def test_tick_and_delta_recorded(self):
        agent = make_agent()
        step(agent)
        step(agent)
        assert agent.tick == 2
        assert agent.delta_time == DT
