"""Radio driver abstract base class.

The driver is the broker's only view of the radio network stack. Calls are
synchronous, non-blocking, best-effort queries: failures and timeouts are
reported as sentinel values, never raised.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

# Firmware version reported while the radio has not answered yet
FIRMWARE_VERSION_UNKNOWN = 0


class RadioDriver(ABC):
    """Abstract driver for the radio network stack."""

    @abstractmethod
    def firmware_version(self) -> int:
        """Firmware version word of the attached radio.

        Returns:
            Version word, or FIRMWARE_VERSION_UNKNOWN if not known yet
        """
        ...

    @abstractmethod
    def is_in_network(self) -> bool:
        """Whether the radio is currently joined to its network."""
        ...

    @abstractmethod
    def set_network_state(self, connected: bool) -> bool:
        """Request a network join or leave.

        Returns:
            True if the request was accepted
        """
        ...

    @abstractmethod
    def is_touchlink_active(self) -> bool:
        """Whether the exclusive touchlink mode is running."""
        ...

    @abstractmethod
    def set_permit_join(self, seconds: int) -> None:
        """Open (seconds > 0) or close the join window for new devices."""
        ...

    def is_otau_busy(self) -> bool:
        """Whether an over-the-air device update is in progress."""
        return False

    def lights(self) -> dict[str, Any]:
        """Light inventory, exposed unchanged in the full state."""
        return {}

    def groups(self) -> dict[str, Any]:
        """Group inventory, exposed unchanged in the full state."""
        return {}
