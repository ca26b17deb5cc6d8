"""Unit tests for the SQLModel-backed gateway store (temporary SQLite file)."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine

import gwbroker.db.session as db_session_module
from gwbroker.db import close_db, init_db
from gwbroker.models.api_key import ApiKey
from gwbroker.services.store import GatewayStore


@pytest_asyncio.fixture
async def database(tmp_path, monkeypatch):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'gateway.db'}")
    monkeypatch.setattr(db_session_module, "_engine", engine)
    monkeypatch.setattr(db_session_module, "_async_session_factory", None)
    await init_db()
    yield
    await close_db()


class TestGatewayStore:
    """Tests for GatewayStore."""

    @pytest.mark.asyncio
    async def test_empty_database(self, database):
        state = await GatewayStore().load()

        assert state.api_keys == []
        assert state.config == {}

    @pytest.mark.asyncio
    async def test_config_round_trip(self, database):
        store = GatewayStore()

        await store.save_config({"name": "Attic", "groupdelay": 70, "rfconnected": True})
        await store.save_config({"name": "Cellar"})
        state = await store.load()

        assert state.config == {"name": "Cellar", "groupdelay": 70, "rfconnected": True}

    @pytest.mark.asyncio
    async def test_api_keys_are_upserted(self, database):
        store = GatewayStore()
        created = datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC)
        key = ApiKey(
            key="ABCDEF0123",
            device_label="app#phone",
            created_at=created,
            last_used_at=created,
        )

        await store.save_auth([key])
        key.last_used_at = datetime(2024, 5, 2, 8, 30, 0, tzinfo=UTC)
        await store.save_auth([key])
        state = await store.load()

        assert len(state.api_keys) == 1
        loaded = state.api_keys[0]
        assert loaded.device_label == "app#phone"
        assert loaded.created_at == created
        assert loaded.last_used_at == datetime(2024, 5, 2, 8, 30, 0, tzinfo=UTC)
        assert loaded.created_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_issued_key_with_default_timestamps_is_saved(self, database):
        store = GatewayStore()

        await store.save_auth([ApiKey(key="1234567890", device_label="app#tablet")])
        state = await store.load()

        assert [api_key.key for api_key in state.api_keys] == ["1234567890"]
        assert state.api_keys[0].last_used_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_timestamps_are_stored_as_utc(self, database):
        store = GatewayStore()
        local = datetime(2024, 5, 1, 14, 0, 0, tzinfo=timezone(timedelta(hours=2)))

        await store.save_auth(
            [ApiKey(key="FEDCBA9876", created_at=local, last_used_at=local)]
        )
        state = await store.load()

        assert state.api_keys[0].created_at == datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC)
