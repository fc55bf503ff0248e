"""Pluggable agent components: sensors, actuators, states, performance measures."""

from senseact.components.actuator import Actuator
from senseact.components.performance import PerformanceMeasure
from senseact.components.sensor import Sensor
from senseact.components.state import State, StateRegistry

__all__ = [
    "Actuator",
    "PerformanceMeasure",
    "Sensor",
    "State",
    "StateRegistry",
]
