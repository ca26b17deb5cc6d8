"""Gateway broker configuration management.

Configuration sources (in priority order):
1. Environment variables (GW_ prefix)
2. Config file (config.yaml)
3. Defaults
"""

from __future__ import annotations

import platform
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = "0.0.0.0"
    port: int = 80


class DatabaseConfig(BaseModel):
    """Database configuration."""

    url: str = "sqlite+aiosqlite:///./gwbroker.db"
    echo: bool = False


class GatewayConfig(BaseModel):
    """Gateway defaults and limits."""

    default_name: str = "Gateway"
    name_max_length: int = 16

    # Version string of the running build, compared against the announced
    # update version to decide whether a software update is pending.
    sw_version: str = "2.0.0"

    # Minutes between internet discovery announcements when discovery is on
    announce_interval: int = 45
    announce_url: str = "https://discovery.example.invalid/announce"

    # Reported as-is in the config snapshot
    router_address: str = "192.168.178.1"

    max_group_delay_ms: int = 5000
    max_unlock_seconds: int = 600

    # Periodic reconciliation of the radio network state
    rf_check_interval_seconds: float = 5.0


class PersistenceConfig(BaseModel):
    """Debounced persistence delays."""

    short_delay_seconds: float = 5.0
    long_delay_seconds: float = 900.0


class AuthConfig(BaseModel):
    """Admin credentials and key issuance."""

    default_username: str = "delight"
    default_password: str = "delight"

    # Salt for the keyed hash of the client-hashed admin secret
    hash_salt: str = "gwbroker"

    # Password reset is only accepted this long after process start
    reset_window_seconds: float = 600.0


class UpdateConfig(BaseModel):
    """Firmware and software update configuration.

    Update triggers hand control to an external supervisor by exiting the
    process with one of the exit codes below.
    """

    # None = auto detect (ARM hosts only)
    enabled: bool | None = None

    # Set when the gateway runs under the autostart supervisor script
    auto_connect: bool = False

    firmware_dir: str = "~/gateway_firmware"
    image_prefix: str = "gateway_fw_"
    image_suffix: str = ".bin.GCF"
    script_path: str = "/var/tmp/gateway-update-firmware.sh"
    flasher_command: str = "sudo GCFFlasher -f"

    # Hardware platform is encoded in the firmware version word
    platform_mask: int = 0x0000FF00
    platform_id: int = 0x00000500
    min_firmware_version: int = 0x261F0500

    poll_interval_seconds: float = 1.0
    unknown_version_grace_seconds: float = 60.0
    exit_delay_seconds: float = 5.0

    exit_code_update: int = 40
    exit_code_restart: int = 41
    exit_code_update_beta: int = 42
    exit_code_update_alpha: int = 45
    exit_code_update_firmware: int = 46

    def is_platform_supported(self) -> bool:
        """Whether update triggers are active on this host."""
        if self.enabled is not None:
            return self.enabled
        machine = platform.machine().lower()
        return machine.startswith(("arm", "aarch64"))


class RadioConfig(BaseModel):
    """Radio driver configuration."""

    type: Literal["simulated"] = "simulated"

    # Simulated driver behavior
    firmware_version: int = 0x26390500
    in_network: bool = True


class Settings(BaseSettings):
    """Gateway broker application settings."""

    model_config = SettingsConfigDict(
        env_prefix="GW_",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    server: ServerConfig = Field(default_factory=ServerConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    persistence: PersistenceConfig = Field(default_factory=PersistenceConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    update: UpdateConfig = Field(default_factory=UpdateConfig)
    radio: RadioConfig = Field(default_factory=RadioConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Earlier sources win; nested sections are merged key by key
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=_config_file_path()),
            file_secret_settings,
        )


def _config_file_path() -> Path | None:
    """Locate the YAML config file.

    Looks for config file in order:
    1. GW_CONFIG_FILE environment variable
    2. ./config.yaml
    3. /etc/gwbroker/config.yaml
    """
    import os

    config_paths = [
        os.environ.get("GW_CONFIG_FILE"),
        Path("config.yaml"),
        Path("/etc/gwbroker/config.yaml"),
    ]

    for path in config_paths:
        if path is None:
            continue
        path = Path(path)
        if path.exists():
            return path

    return None


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Configuration is loaded from:
    1. Environment variables (override)
    2. YAML config file (if exists)
    3. Defaults
    """
    return Settings()
