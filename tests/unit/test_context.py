"""Unit tests for GatewayContext load/start/stop wiring."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from gwbroker.config import Settings
from gwbroker.models.api_key import ApiKey
from gwbroker.services.firmware import FirmwareState
from gwbroker.services.persistence import CONFIG
from gwbroker.services.rf_state import RfStateReconciler
from tests.fakes import FakeScheduler, MemoryStore, make_context


class TestLoad:
    """Tests for GatewayContext.load()."""

    @pytest.mark.asyncio
    async def test_restores_both_partitions(self):
        created = datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)
        store = MemoryStore(
            api_keys=[
                ApiKey(
                    key="ABCDEF0123",
                    device_label="app#phone",
                    created_at=created,
                    last_used_at=created,
                )
            ],
            config={
                "name": "Attic",
                "uuid": "5f1c0d1e-0000-4000-8000-000000000000",
                "updatechannel": "beta",
                "groupdelay": 70,
                "rfconnected": True,
                "gwusername": "operator",
                "gwpassword": "stored-hash",
            },
        )
        ctx = make_context(store=store)

        await ctx.load()

        assert ctx.state.name == "Attic"
        assert ctx.state.update_channel == "beta"
        assert ctx.state.group_delay == 70
        assert ctx.state.rf_connected_expected is True
        assert ctx.state.rf_connected is True
        assert ctx.credentials.admin_username == "operator"
        assert ctx.credentials.admin_password_hash == "stored-hash"
        assert "ABCDEF0123" in ctx.credentials

    @pytest.mark.asyncio
    async def test_invalid_channel_falls_back(self):
        ctx = make_context(store=MemoryStore(config={"updatechannel": "nightly"}))

        await ctx.load()

        assert ctx.state.update_channel == "stable"

    @pytest.mark.asyncio
    async def test_empty_store_uses_defaults(self):
        ctx = make_context(Settings())

        await ctx.load()

        assert ctx.state.name == "Gateway"
        assert ctx.credentials.admin_username == "delight"
        assert len(ctx.credentials) == 0


class TestStartStop:
    """Tests for GatewayContext.start() and stop()."""

    @pytest.mark.asyncio
    async def test_start_schedules_ticks(self):
        scheduler = FakeScheduler()
        ctx = make_context(scheduler=scheduler)

        ctx.start()

        assert scheduler.is_scheduled(RfStateReconciler.TICK_KEY)
        assert ctx.firmware.state == FirmwareState.POLLING

    @pytest.mark.asyncio
    async def test_stop_flushes_pending_saves(self):
        scheduler = FakeScheduler()
        store = MemoryStore()
        ctx = make_context(scheduler=scheduler, store=store)
        ctx.start()
        ctx.gate.unlock(60)
        ctx.persistence.queue_long(CONFIG)

        await ctx.stop()

        assert store.config_saves == 1
        assert scheduler.pending == []

    def test_uptime_follows_scheduler_clock(self):
        scheduler = FakeScheduler(start=50.0)
        ctx = make_context(scheduler=scheduler)

        scheduler.now = 80.0

        assert ctx.uptime() == 30.0
