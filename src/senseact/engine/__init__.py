"""Simulation engine: agent tick loop, navigator, agent manager."""

from senseact.engine.loop import offer_actions, step_agent
from senseact.engine.manager import AgentManager, TickMetrics, World
from senseact.engine.navigator import Navigator

__all__ = [
    "AgentManager",
    "Navigator",
    "TickMetrics",
    "World",
    "offer_actions",
    "step_agent",
]
