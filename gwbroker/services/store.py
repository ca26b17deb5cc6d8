"""Gateway store - persistence of the auth and config partitions."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import structlog
from sqlmodel import select

from gwbroker.db.session import get_async_session
from gwbroker.models.api_key import ApiKey
from gwbroker.models.gateway import ConfigEntry
from gwbroker.utils.datetime import as_utc

logger = structlog.get_logger()


@dataclass
class StoredState:
    """Snapshot of both persisted partitions."""

    api_keys: list[ApiKey] = field(default_factory=list)
    config: dict[str, Any] = field(default_factory=dict)


class GatewayStore:
    """SQLModel-backed store.

    The auth partition is the ``api_keys`` table, the config partition the
    ``gateway_config`` key/value table. Saves write whole partitions.
    Timestamps are written and returned as aware UTC datetimes.
    """

    async def load(self) -> StoredState:
        async with get_async_session() as db:
            keys = (await db.execute(select(ApiKey))).scalars().all()
            entries = (await db.execute(select(ConfigEntry))).scalars().all()

        for api_key in keys:
            api_key.created_at = as_utc(api_key.created_at)
            api_key.last_used_at = as_utc(api_key.last_used_at)

        config: dict[str, Any] = {}
        for entry in entries:
            try:
                config[entry.key] = entry.decoded()
            except ValueError:
                logger.warning("store.config.undecodable", key=entry.key)

        logger.info("store.loaded", api_keys=len(keys), config_entries=len(config))
        return StoredState(api_keys=list(keys), config=config)

    async def save_auth(self, api_keys: list[ApiKey]) -> None:
        async with get_async_session() as db:
            for api_key in api_keys:
                await db.merge(
                    ApiKey(
                        key=api_key.key,
                        device_label=api_key.device_label,
                        created_at=as_utc(api_key.created_at),
                        last_used_at=as_utc(api_key.last_used_at),
                    )
                )
        logger.debug("store.auth.saved", count=len(api_keys))

    async def save_config(self, entries: dict[str, Any]) -> None:
        async with get_async_session() as db:
            for key, value in entries.items():
                await db.merge(ConfigEntry(key=key, value=json.dumps(value)))
        logger.debug("store.config.saved", count=len(entries))
