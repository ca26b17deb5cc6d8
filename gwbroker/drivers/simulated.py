"""Simulated radio driver.

Stands in for the radio network stack when no hardware is attached.
"""

from __future__ import annotations

from typing import Any

import structlog

from gwbroker.drivers.base import FIRMWARE_VERSION_UNKNOWN, RadioDriver

logger = structlog.get_logger()


class SimulatedRadio(RadioDriver):
    """In-process radio with settable state."""

    def __init__(
        self,
        *,
        firmware_version: int = FIRMWARE_VERSION_UNKNOWN,
        in_network: bool = True,
        touchlink_active: bool = False,
        accept_network_state: bool = True,
    ) -> None:
        self.version = firmware_version
        self.in_network = in_network
        self.touchlink_active = touchlink_active
        self.accept_network_state = accept_network_state
        self.permit_join_seconds = 0
        self.otau_busy = False
        self.light_inventory: dict[str, Any] = {}
        self.group_inventory: dict[str, Any] = {}

    def firmware_version(self) -> int:
        return self.version

    def is_in_network(self) -> bool:
        return self.in_network

    def set_network_state(self, connected: bool) -> bool:
        if not self.accept_network_state:
            logger.warning("radio.network_state.rejected", connected=connected)
            return False
        self.in_network = connected
        return True

    def is_touchlink_active(self) -> bool:
        return self.touchlink_active

    def set_permit_join(self, seconds: int) -> None:
        self.permit_join_seconds = seconds

    def is_otau_busy(self) -> bool:
        return self.otau_busy

    def lights(self) -> dict[str, Any]:
        return dict(self.light_inventory)

    def groups(self) -> dict[str, Any]:
        return dict(self.group_inventory)
