"""Domain model: Agent, Action, Percept, AIEvent, Timer, MessageLog."""

from senseact.model.action import Action
from senseact.model.agent import Agent
from senseact.model.event import AIEvent
from senseact.model.messages import MessageLog
from senseact.model.percept import Percept
from senseact.model.timer import Timer

__all__ = [
    "AIEvent",
    "Action",
    "Agent",
    "MessageLog",
    "Percept",
    "Timer",
]
