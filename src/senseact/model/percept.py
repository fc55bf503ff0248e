"""Percept: the immutable value one sensor produces for one tick."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Percept:
    """Base class for sensor output. Subclasses must also be frozen dataclasses."""

    def __str__(self) -> str:
        return type(self).__name__
