"""Agent: an individual that senses, decides through a state machine, and acts."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import InitVar, dataclass, field
from typing import TYPE_CHECKING, Any, TypeVar

from senseact.model.event import AIEvent
from senseact.model.messages import MessageLog
from senseact.model.timer import Timer
from senseact.navigation.graph import Vec3, as_vec3

if TYPE_CHECKING:
    from collections.abc import Hashable

    from senseact.components.actuator import Actuator
    from senseact.components.performance import PerformanceMeasure
    from senseact.components.sensor import Sensor
    from senseact.components.state import State
    from senseact.engine.manager import AgentManager
    from senseact.model.action import Action
    from senseact.model.percept import Percept

logger = logging.getLogger(__name__)

S = TypeVar("S", bound="State")


@dataclass(eq=False)
class Agent:
    """An individual entity that senses, decides, and acts within a world.

    Sensors and actuators are fixed at setup. The current state is swapped at
    runtime through :meth:`change_state`; the optional global state runs
    every tick before it and is never entered or exited.
    """

    # Identity
    id: str
    name: str = ""

    # Kinematics
    position: Vec3 = Vec3(0.0, 0.0, 0.0)
    move_speed: float = 1.0

    # Mind
    initial_state: InitVar[State | None] = None
    global_state: State | None = None
    sensors: list[Sensor] = field(default_factory=list)
    actuators: list[Actuator] = field(default_factory=list)
    performance_measure: PerformanceMeasure | None = None

    # Per-agent data used by shared, stateless states
    memory: dict[str, Any] = field(default_factory=dict)
    timers: dict[str, Timer] = field(default_factory=dict)
    messages: MessageLog = field(default_factory=MessageLog)

    # Runtime, managed by the engine
    state: State | None = field(default=None, init=False)
    previous_state: State | None = field(default=None, init=False)
    pending_actions: list[Action] = field(default_factory=list, init=False)
    emitted_actions: list[Action] = field(default_factory=list, init=False, repr=False)
    # Readings for this tick, keyed by id() of the sensor that produced them
    percepts: dict[int, Percept | None] = field(default_factory=dict, init=False, repr=False)
    destination: Vec3 | None = field(default=None, init=False)
    path: list[Vec3] | None = field(default=None, init=False)
    performance: float = field(default=0.0, init=False)
    delta_time: float = field(default=0.0, init=False)
    tick: int = field(default=0, init=False)
    started: bool = field(default=False, init=False)
    manager: AgentManager | None = field(default=None, init=False, repr=False)

    def __post_init__(self, initial_state: State | None) -> None:
        self.position = as_vec3(self.position)
        if not self.name:
            self.name = self.id
        if self.messages.owner_id is None:
            self.messages.owner_id = self.id
        self._initial_state = initial_state

    def __str__(self) -> str:
        return self.name

    # State machine

    def setup(self) -> None:
        """Enter the initial state. Runs once; later calls do nothing."""
        if self.started:
            return
        self.started = True
        if self._initial_state is not None:
            self.change_state(self._initial_state)

    def change_state(self, new_state: State | None) -> None:
        """Exit the current state, then enter ``new_state``.

        Re-entering the state the agent is already in is legal and runs both
        exit and enter again.
        """
        old_state = self.state
        if old_state is not None:
            old_state.exit(self)
        self.previous_state = old_state
        self.state = new_state
        self.add_message(f"Changed state from {old_state} to {new_state}.")
        if new_state is not None:
            new_state.enter(self)

    def revert_state(self) -> bool:
        """Return to the previous state, if there is one."""
        if self.previous_state is None:
            return False
        self.change_state(self.previous_state)
        return True

    def is_in_state(self, state_type: type[State]) -> bool:
        return isinstance(self.state, state_type)

    def get_state(self, state_type: type[S]) -> S:
        """Shared instance of ``state_type`` from the manager's registry."""
        if self.manager is None:
            return state_type()
        return self.manager.states.get(state_type)

    # Events

    def handle_event(self, event: AIEvent) -> bool:
        """Offer an event to the current state, then the global state.

        Returns:
            True if a state handled it. Unhandled events are dropped.
        """
        if self.state is not None and self.state.handle_event(self, event):
            return True
        if self.global_state is not None and self.global_state.handle_event(self, event):
            return True
        return False

    def fire_event(self, receiver: Agent | None, event_id: Hashable, details: Any = None) -> bool:
        """Send an event to another agent.

        Returns:
            True if the receiver handled it; False for no receiver, self, or unhandled.
        """
        if receiver is None or receiver is self:
            return False
        return receiver.handle_event(AIEvent(event_id, self, details))

    def broadcast_event(
        self, event_id: Hashable, details: Any = None, require_all: bool = False
    ) -> bool:
        """Send an event to every other agent registered with the manager."""
        if self.manager is None:
            return False
        return self.manager.broadcast(self, event_id, details, require_all=require_all)

    # Sensing

    def sense(self, sensor_type: type[Sensor]) -> Percept | None:
        """Read the first attached sensor of ``sensor_type``.

        Sensors run only when asked; a reading is cached until the end of the
        current tick.
        """
        readings = self.sense_all(sensor_type)
        for reading in readings:
            if reading is not None:
                return reading
        return None

    def sense_all(self, sensor_type: type[Sensor]) -> list[Percept | None]:
        """Read every attached sensor of ``sensor_type``.

        Each sensor runs at most once per tick, however many base or
        subclass queries match it.
        """
        readings = []
        for sensor in self.sensors:
            if not isinstance(sensor, sensor_type):
                continue
            key = id(sensor)
            if key not in self.percepts:
                self.percepts[key] = sensor.read(self)
            readings.append(self.percepts[key])
        return readings

    # Acting

    def emit(self, action: Action) -> None:
        """Queue an action decided during this tick."""
        self.emitted_actions.append(action)

    def stop_all_actions(self) -> None:
        self.pending_actions.clear()
        self.emitted_actions.clear()

    def timer(self, name: str, duration: float = 0.0) -> Timer:
        """The named timer, created idle on first use."""
        if name not in self.timers:
            self.timers[name] = Timer(duration)
        return self.timers[name]

    # Navigation

    def navigate(self, goal: Sequence[float]) -> bool:
        """Set the movement target.

        Returns:
            False if the agent was already heading to ``goal``.
        """
        target = as_vec3(goal)
        if self.destination == target:
            return False
        self.destination = target
        self.path = None
        return True

    def stop_navigating(self) -> None:
        """Clear the movement target; this cancels any in-progress navigation."""
        self.destination = None
        self.path = None

    @property
    def navigating(self) -> bool:
        return self.destination is not None

    # Diagnostics

    def add_message(self, message: str) -> None:
        self.messages.add(message, self.tick)
