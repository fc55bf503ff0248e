"""Agent tick: advances one agent through Sense -> Decide -> Act -> Move."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import TYPE_CHECKING

from senseact.model.action import Action
from senseact.navigation.movement import advance

if TYPE_CHECKING:
    from senseact.engine.navigator import Navigator
    from senseact.model.agent import Agent

logger = logging.getLogger(__name__)


def step_agent(
    agent: Agent,
    navigator: Navigator,
    delta_time: float,
    seek_acceptable_distance: float = 0.0,
) -> list[Action]:
    """Run one full cycle for an agent.

    Tick sequence:
    1. Clear last tick's percepts and advance the agent's timers
    2. Execute the global state, then the current state (sensors are read
       lazily from inside the states)
    3. Merge newly emitted actions into the pending set
    4. Offer pending actions to the actuators
    5. Follow the path toward the movement target, if any
    6. Recompute performance

    Args:
        agent: The agent to step.
        navigator: Published navigation service.
        delta_time: Seconds since the agent last stepped.
        seek_acceptable_distance: Distance at which a waypoint counts as reached.

    Returns:
        Actions completed during this tick.

    Side effects:
        Mutates the agent only.
    """
    agent.setup()
    agent.delta_time = delta_time
    agent.percepts.clear()
    for timer in agent.timers.values():
        timer.tick(delta_time)

    _decide(agent)
    _merge_actions(agent)
    completed = offer_actions(agent)
    _move(agent, navigator, delta_time, seek_acceptable_distance)

    if agent.performance_measure is not None:
        agent.performance = agent.performance_measure.calculate_performance(agent)

    agent.tick += 1
    return completed


def _decide(agent: Agent) -> None:
    """Global state first, so the current state can override its intent."""
    if agent.global_state is not None:
        _collect(agent, agent.global_state.execute(agent))
    # Read after the global state ran: it may have switched the current state
    if agent.state is not None:
        _collect(agent, agent.state.execute(agent))


def _collect(agent: Agent, decided: Iterable[Action] | Action | None) -> None:
    if decided is None:
        return
    if isinstance(decided, Action):
        agent.emit(decided)
        return
    for action in decided:
        if action is not None:
            agent.emit(action)


def _merge_actions(agent: Agent) -> None:
    """New actions replace pending ones of the same type; other pending actions carry over."""
    emitted = agent.emitted_actions
    agent.emitted_actions = []
    emitted_types = {type(action) for action in emitted}
    carried = [
        action
        for action in agent.pending_actions
        if not action.complete and type(action) not in emitted_types
    ]
    agent.pending_actions = emitted + carried


def offer_actions(agent: Agent) -> list[Action]:
    """Offer each pending action to the actuators in attachment order.

    The first actuator to report success completes the action; later
    actuators never see it. Incomplete actions stay pending for the next
    tick.

    Returns:
        The actions completed by this call.
    """
    completed: list[Action] = []
    for action in agent.pending_actions:
        for actuator in agent.actuators:
            if action.complete:
                break
            if actuator.act(agent, action):
                if not action.complete:
                    action.mark_complete()
                agent.add_message(f"{actuator}: completed {action}.")
                completed.append(action)
                break
    agent.pending_actions = [action for action in agent.pending_actions if not action.complete]
    return completed


def _move(
    agent: Agent,
    navigator: Navigator,
    delta_time: float,
    seek_acceptable_distance: float,
) -> None:
    if agent.destination is None:
        return

    if agent.path is None:
        agent.path = navigator.plan(agent.position, agent.destination)
        if agent.path is None:
            agent.add_message(f"No path to {tuple(agent.destination)}.")
            logger.debug("Agent '%s' has no path to %s", agent.id, agent.destination)
            agent.stop_navigating()
            return

    agent.position, agent.path = advance(
        agent.position,
        agent.path,
        agent.move_speed * delta_time,
        seek_acceptable_distance,
    )
    if not agent.path:
        agent.add_message(f"Arrived at {tuple(agent.destination)}.")
        agent.stop_navigating()
