"""Radio drivers."""

from gwbroker.drivers.base import FIRMWARE_VERSION_UNKNOWN, RadioDriver
from gwbroker.drivers.simulated import SimulatedRadio

__all__ = ["FIRMWARE_VERSION_UNKNOWN", "RadioDriver", "SimulatedRadio"]
