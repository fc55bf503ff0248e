"""AIEvent: a typed message handed from one agent to another's states."""

from __future__ import annotations

from collections.abc import Hashable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from senseact.model.agent import Agent


@dataclass(frozen=True)
class AIEvent:
    """An event routed to an agent's current state, then its global state.

    Attributes:
        event_id: What kind of message this is (receivers switch on it).
        sender: The agent that sent it, or None for the manager/world.
        details: Optional payload.
    """

    event_id: Hashable
    sender: Agent | None = None
    details: Any = None
