"""Hardware and simulated providers for Hotpot."""

from .ds18x20 import DS18x20
from .gpio import SysfsGpio
from .simulator import SimulatedService, Simulator

__all__ = [
    "DS18x20",
    "SimulatedService",
    "Simulator",
    "SysfsGpio",
]
