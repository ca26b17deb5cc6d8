"""Shared fixtures for gateway unit tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from gwbroker.config import Settings, UpdateConfig
from gwbroker.context import GatewayContext
from tests.fakes import FakeRadio, FakeRestarter, FakeScheduler, MemoryStore


@pytest.fixture
def firmware_dir(tmp_path: Path) -> Path:
    path = tmp_path / "firmware"
    path.mkdir()
    return path


@pytest.fixture
def settings(tmp_path: Path, firmware_dir: Path) -> Settings:
    """Settings with update triggers enabled and paths under tmp_path."""
    return Settings(
        update=UpdateConfig(
            enabled=True,
            firmware_dir=str(firmware_dir),
            script_path=str(tmp_path / "update-firmware.sh"),
        ),
    )


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def radio() -> FakeRadio:
    return FakeRadio()


@pytest.fixture
def restarter() -> FakeRestarter:
    return FakeRestarter()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def ctx(
    settings: Settings,
    scheduler: FakeScheduler,
    radio: FakeRadio,
    restarter: FakeRestarter,
    store: MemoryStore,
) -> GatewayContext:
    return GatewayContext(
        settings=settings,
        scheduler=scheduler,
        radio=radio,
        restarter=restarter,
        store=store,
    )
