"""Data models."""

from gwbroker.models.api_key import ApiKey
from gwbroker.models.gateway import ConfigEntry, GatewayState

__all__ = [
    "ApiKey",
    "ConfigEntry",
    "GatewayState",
]
