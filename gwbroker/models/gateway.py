"""Gateway configuration models.

``GatewayState`` is the in-memory configuration record mutated by the
broker. ``ConfigEntry`` is its persisted key/value form (config partition).
"""

import json
import uuid
from dataclasses import dataclass, field
from typing import Any

from sqlmodel import Field, SQLModel

from gwbroker.config import GatewayConfig

UPDATE_CHANNELS = ("stable", "alpha", "beta")

# Firmware version text while the radio has not reported one
UNKNOWN_FW_VERSION = "0x00000000"


class ConfigEntry(SQLModel, table=True):
    """One persisted gateway setting (JSON encoded value)."""

    __tablename__ = "gateway_config"

    key: str = Field(primary_key=True)
    value: str = Field(default="null")

    def decoded(self) -> Any:
        return json.loads(self.value)


@dataclass
class GatewayState:
    """Mutable runtime configuration of the gateway."""

    name: str
    sw_version: str
    uuid: str = field(default_factory=lambda: str(uuid.uuid4()))
    update_channel: str = "stable"
    update_version: str = ""
    permit_join: int = 0
    group_delay: int = 0
    otau_active: bool = False
    announce_interval: int = 0
    announce_url: str = ""
    rf_connected: bool = False
    rf_connected_expected: bool = False
    link_button: bool = False
    fw_version: str = UNKNOWN_FW_VERSION
    fw_version_update: str = UNKNOWN_FW_VERSION
    fw_need_update: bool = False

    @classmethod
    def defaults(cls, config: GatewayConfig) -> "GatewayState":
        return cls(
            name=config.default_name,
            sw_version=config.sw_version,
            update_version=config.sw_version,
            announce_interval=config.announce_interval,
            announce_url=config.announce_url,
        )

    # Persisted settings: stored key -> attribute
    PERSISTED = {
        "name": "name",
        "uuid": "uuid",
        "updatechannel": "update_channel",
        "groupdelay": "group_delay",
        "otauactive": "otau_active",
        "announceinterval": "announce_interval",
        "announceurl": "announce_url",
        "rfconnected": "rf_connected_expected",
        "fwversion": "fw_version",
    }

    def to_entries(self) -> dict[str, Any]:
        """Settings of the config partition."""
        return {key: getattr(self, attr) for key, attr in self.PERSISTED.items()}

    def apply_entries(self, entries: dict[str, Any]) -> None:
        """Restore persisted settings; unknown keys are ignored."""
        for key, attr in self.PERSISTED.items():
            if key in entries and entries[key] is not None:
                setattr(self, attr, entries[key])
        if self.update_channel not in UPDATE_CHANNELS:
            self.update_channel = "stable"
