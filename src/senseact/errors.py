"""Exception hierarchy for SenseAct.

Absence is not an error here: a missing path, an empty percept, an action no
actuator recognizes or a pair the lookup table does not cover are reported as
``None``/``False``. Only programming-logic faults and persistence failures
raise.
"""

from __future__ import annotations


class SenseActError(Exception):
    """Base class for all SenseAct errors."""


class SearchInvariantError(SenseActError, AssertionError):
    """A search node was given itself, or a node at its own position, as predecessor.

    Indicates a corrupted graph or a search bug. The engine never recovers
    from it.
    """


class LookupTableError(SenseActError):
    """A lookup table could not be read or written."""


class ActionAlreadyCompleteError(SenseActError):
    """An action was marked complete a second time."""


class UnknownCorpusError(SenseActError, ValueError):
    """Raised when a corpus name is not registered."""
