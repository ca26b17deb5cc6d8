"""Gateway lifecycle management for FastAPI lifespan integration."""

from __future__ import annotations

import structlog

from gwbroker.config import Settings, get_settings
from gwbroker.context import GatewayContext
from gwbroker.drivers.base import RadioDriver
from gwbroker.drivers.simulated import SimulatedRadio
from gwbroker.services.restart import ProcessRestarter
from gwbroker.services.scheduler import AsyncioScheduler
from gwbroker.services.store import GatewayStore

logger = structlog.get_logger()

# Global gateway instance
_gateway: GatewayContext | None = None


def create_radio(settings: Settings) -> RadioDriver:
    """Build the radio driver selected in settings."""
    radio = settings.radio
    if radio.type == "simulated":
        return SimulatedRadio(
            firmware_version=radio.firmware_version,
            in_network=radio.in_network,
        )
    raise ValueError(f"Unsupported radio type: {radio.type}")


async def init_gateway(settings: Settings | None = None) -> GatewayContext:
    """Create the gateway context, restore persisted state and start timers.

    Called during FastAPI lifespan startup, after database initialization.
    """
    global _gateway

    settings = settings or get_settings()
    logger.info(
        "gateway.init",
        radio=settings.radio.type,
        update_platform=settings.update.is_platform_supported(),
    )

    ctx = GatewayContext(
        settings=settings,
        scheduler=AsyncioScheduler(),
        radio=create_radio(settings),
        restarter=ProcessRestarter(),
        store=GatewayStore(),
    )
    await ctx.load()
    ctx.start()

    _gateway = ctx
    return ctx


async def shutdown_gateway() -> None:
    """Stop timers and flush pending saves.

    Called during FastAPI lifespan shutdown.
    """
    global _gateway

    if _gateway is not None:
        await _gateway.stop()
        scheduler = _gateway.scheduler
        if isinstance(scheduler, AsyncioScheduler):
            scheduler.cancel_all()
        _gateway = None


def get_gateway() -> GatewayContext | None:
    """Get the current gateway instance (for testing/monitoring)."""
    return _gateway
