"""Config and full-state snapshots.

Renders the gateway state into the wire maps returned by
``GET /api/{key}/config`` and ``GET /api/{key}``.
"""

from __future__ import annotations

import socket
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import psutil
import structlog

from gwbroker.utils.datetime import format_wire, utcnow

if TYPE_CHECKING:
    from gwbroker.context import GatewayContext

logger = structlog.get_logger()


@dataclass(frozen=True)
class NetworkInfo:
    """Address of the primary network interface."""

    mac: str
    ipaddress: str
    netmask: str


FALLBACK_NETWORK = NetworkInfo(
    mac="38:60:77:7c:53:18",
    ipaddress="127.0.0.1",
    netmask="255.0.0.0",
)


def _is_loopback(name: str, stats: Any) -> bool:
    flags = getattr(stats, "flags", "") or ""
    if flags:
        return "loopback" in flags.split(",")
    return name == "lo"


def _is_running(stats: Any) -> bool:
    flags = getattr(stats, "flags", "") or ""
    if flags:
        return "running" in flags.split(",")
    return True


def primary_interface() -> NetworkInfo | None:
    """First up, running, non-loopback interface with an IPv4 address.

    Returns:
        NetworkInfo, or None if no such interface exists
    """
    try:
        stats = psutil.net_if_stats()
        addrs = psutil.net_if_addrs()
    except (OSError, AttributeError) as e:
        logger.warning("network.interfaces.query_failed", error=str(e))
        return None

    for name, iface_addrs in addrs.items():
        iface_stats = stats.get(name)
        if iface_stats is None or not iface_stats.isup:
            continue
        if not _is_running(iface_stats) or _is_loopback(name, iface_stats):
            continue

        ipv4 = next((a for a in iface_addrs if a.family == socket.AF_INET), None)
        if ipv4 is None:
            continue

        link = next((a for a in iface_addrs if a.family == psutil.AF_LINK), None)
        return NetworkInfo(
            mac=link.address.lower() if link is not None else "",
            ipaddress=ipv4.address,
            netmask=ipv4.netmask or "",
        )

    return None


def whitelist_to_map(ctx: "GatewayContext") -> dict[str, Any]:
    return {
        api_key.key: {
            "name": api_key.device_label,
            "create date": format_wire(api_key.created_at),
            "last use date": format_wire(api_key.last_used_at),
        }
        for api_key in ctx.credentials.whitelist.values()
    }


def otau_state(ctx: "GatewayContext") -> str:
    if ctx.radio.is_otau_busy():
        return "busy"
    return "idle" if ctx.state.otau_active else "off"


def config_to_map(ctx: "GatewayContext") -> dict[str, Any]:
    """Render the config snapshot."""
    state = ctx.state
    update = ctx.firmware.update_state()
    network = primary_interface()
    if network is None:
        logger.error("network.interface.not_found")
        network = FALLBACK_NETWORK

    return {
        "name": state.name,
        "uuid": state.uuid,
        "port": ctx.settings.server.port,
        "ipaddress": network.ipaddress,
        "netmask": network.netmask,
        "mac": network.mac,
        "dhcp": True,
        "gateway": ctx.settings.gateway.router_address,
        "proxyaddress": "",
        "proxyport": 0,
        "utc": format_wire(utcnow()),
        "whitelist": whitelist_to_map(ctx),
        "swversion": state.sw_version,
        "fwversion": update.current_version,
        "fwneedupdate": update.update_available,
        "fwminversion": update.required_min_version,
        "announceurl": state.announce_url,
        "announceinterval": state.announce_interval,
        "rfconnected": state.rf_connected,
        "permitjoin": state.permit_join,
        "otauactive": state.otau_active,
        "otaustate": otau_state(ctx),
        "groupdelay": state.group_delay,
        "discovery": state.announce_interval > 0,
        "updatechannel": update.channel,
        "swupdate": {
            "version": state.update_version,
            "updatestate": 0,
            "url": "",
            "text": "",
            "notify": False,
        },
        "linkbutton": state.link_button,
        "portalservices": False,
    }


def full_state(ctx: "GatewayContext") -> dict[str, Any]:
    """Render the full state: inventory, config and schedules."""
    return {
        "lights": ctx.radio.lights(),
        "groups": ctx.radio.groups(),
        "config": config_to_map(ctx),
        "schedules": {},
    }
