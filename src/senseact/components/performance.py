"""Performance measure contract."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from senseact.model.agent import Agent


class PerformanceMeasure(ABC):
    """Scores how well an agent is doing; recomputed after every tick."""

    @abstractmethod
    def calculate_performance(self, agent: Agent) -> float:
        """Current score for ``agent`` (higher is better)."""

    def __str__(self) -> str:
        return type(self).__name__
