"""Action: an intent emitted by a state for an actuator to fulfil."""

from __future__ import annotations

from dataclasses import dataclass, field

from senseact.errors import ActionAlreadyCompleteError


@dataclass(eq=False)
class Action:
    """Base class for actions.

    Subclasses add the data their actuator needs (which tile to clean, which
    part to pick). Identity equality: two actions with the same data are
    still different intents.
    """

    complete: bool = field(default=False, init=False)

    def mark_complete(self) -> None:
        """Flag the action as done. An action completes at most once."""
        if self.complete:
            raise ActionAlreadyCompleteError(f"{self} was already completed")
        self.complete = True

    def __str__(self) -> str:
        return type(self).__name__
