"""Actuator contract: attempt an action against the world."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from senseact.model.action import Action
    from senseact.model.agent import Agent


class Actuator(ABC):
    """Base class for actuators.

    Several specialised actuators can sit on one agent; each recognises the
    action types it handles and ignores the rest.
    """

    @abstractmethod
    def act(self, agent: Agent, action: Action) -> bool:
        """Try to carry out ``action``.

        Returns:
            True once the action is finished. False if it is not finished
            yet, or if this actuator does not handle it (no side effects in
            that case).
        """

    def __str__(self) -> str:
        return type(self).__name__
