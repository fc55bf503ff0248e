"""Rolling diagnostic message log (newest first)."""

from __future__ import annotations

from dataclasses import dataclass, field

from senseact.config import MessageMode
from senseact.logging_config import log_agent_message


@dataclass
class MessageLog:
    """Bounded, newest-first list of human-readable messages.

    Writing is fire-and-forget: messages are also forwarded to the agents
    logger when the log has an owner, and nothing in the simulation reads
    them back as input.
    """

    max_messages: int = 100
    mode: MessageMode = MessageMode.COMPACT
    owner_id: str | None = None
    messages: list[str] = field(default_factory=list)

    def add(self, message: str, tick: int | None = None) -> None:
        if self.mode == MessageMode.COMPACT and self.messages and self.messages[0] == message:
            return
        if self.mode == MessageMode.UNIQUE:
            self.messages = [m for m in self.messages if m != message]

        self.messages.insert(0, message)
        del self.messages[self.max_messages :]

        if self.owner_id is not None:
            log_agent_message(self.owner_id, message, tick)

    def clear(self) -> None:
        self.messages.clear()

    def __len__(self) -> int:
        return len(self.messages)

    def __iter__(self):
        return iter(self.messages)
