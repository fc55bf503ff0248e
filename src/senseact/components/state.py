"""State contract and the per-type state registry.

A state is a policy object with ``enter``/``execute``/``exit``/
``handle_event`` hooks. States hold no per-agent data, so one instance is
shared by every agent in it; anything an agent must remember lives on the
agent (``memory``, ``timers``).
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from senseact.model.action import Action
    from senseact.model.agent import Agent
    from senseact.model.event import AIEvent

S = TypeVar("S", bound="State")


class State:
    """Base class for states; every hook defaults to doing nothing."""

    def enter(self, agent: Agent) -> None:
        """Called once when the state becomes the agent's current state."""

    def execute(self, agent: Agent) -> Iterable[Action] | Action | None:
        """Called every tick the state is current (or every tick as a global state).

        May return actions for the agent's actuators, or queue them with
        ``agent.emit``.
        """
        return None

    def exit(self, agent: Agent) -> None:
        """Called once when the agent leaves this state."""

    def handle_event(self, agent: Agent, event: AIEvent) -> bool:
        """Return True if the event was handled."""
        return False

    def __str__(self) -> str:
        return type(self).__name__


class StateRegistry:
    """Creates each state type once and hands out the shared instance."""

    def __init__(self) -> None:
        self._states: dict[type[State], State] = {}

    def get(self, state_type: type[S]) -> S:
        state = self._states.get(state_type)
        if state is None:
            state = state_type()
            self._states[state_type] = state
        return state  # type: ignore[return-value]

    def register(self, state: State) -> None:
        """Use a pre-built instance for its type."""
        self._states[type(state)] = state

    def __contains__(self, state_type: object) -> bool:
        return state_type in self._states

    def __len__(self) -> int:
        return len(self._states)
