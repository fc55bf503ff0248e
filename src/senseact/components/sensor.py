"""Sensor contract: a pure, per-tick read of agent or world state."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from senseact.model.agent import Agent
    from senseact.model.percept import Percept


class Sensor(ABC):
    """Base class for sensors.

    ``sense`` must not mutate the agent or the world and must return within
    the tick. Returning None ("nothing to perceive") is a normal outcome.
    """

    @abstractmethod
    def sense(self, agent: Agent) -> Percept | None:
        """Produce this tick's percept for ``agent``, or None."""

    def read(self, agent: Agent) -> Percept | None:
        """Run :meth:`sense` and record what was perceived."""
        percept = self.sense(agent)
        if percept is None:
            agent.add_message(f"{self}: did not perceive anything.")
        else:
            agent.add_message(f"{self}: perceived {percept}.")
        return percept

    def __str__(self) -> str:
        return type(self).__name__
