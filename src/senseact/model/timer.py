"""Countdown timers stored on the entity they delay.

Delayed effects (cleaning takes a while, a pickup cooldown) are modelled as
explicit timer state that the owning agent decrements once per tick, instead
of suspended execution.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Timer:
    """A countdown that is idle, running or expired.

    Attributes:
        duration: Default length in seconds used by :meth:`start`.
        remaining: Seconds left, or None while idle.
    """

    duration: float = 0.0
    remaining: float | None = None

    @property
    def running(self) -> bool:
        return self.remaining is not None and self.remaining > 0

    @property
    def expired(self) -> bool:
        return self.remaining is not None and self.remaining <= 0

    @property
    def idle(self) -> bool:
        return self.remaining is None

    def start(self, duration: float | None = None) -> None:
        """(Re)start the countdown."""
        self.remaining = self.duration if duration is None else duration

    def tick(self, delta_time: float) -> None:
        """Advance by one tick's worth of time. Idle timers are unaffected."""
        if self.remaining is not None and self.remaining > 0:
            self.remaining = max(0.0, self.remaining - delta_time)

    def cancel(self) -> None:
        """Return to idle."""
        self.remaining = None
