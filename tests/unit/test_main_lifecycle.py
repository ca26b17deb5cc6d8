"""Unit tests for app lifecycle wiring in gwbroker.main."""

from __future__ import annotations

from types import SimpleNamespace

import pytest

from gwbroker import main as main_module


@pytest.mark.asyncio
async def test_lifespan_wires_startup_and_shutdown_in_order(monkeypatch: pytest.MonkeyPatch):
    events: list[str] = []
    gateway = object()

    async def init_db() -> None:
        events.append("init_db")

    async def close_db() -> None:
        events.append("close_db")

    async def init_gateway():
        events.append("init_gateway")
        return gateway

    async def shutdown_gateway() -> None:
        events.append("shutdown_gateway")

    monkeypatch.setattr(main_module, "init_db", init_db)
    monkeypatch.setattr(main_module, "close_db", close_db)
    monkeypatch.setattr(main_module, "init_gateway", init_gateway)
    monkeypatch.setattr(main_module, "shutdown_gateway", shutdown_gateway)

    app = SimpleNamespace(state=SimpleNamespace())
    async with main_module.lifespan(app):
        assert app.state.gateway is gateway
        events.append("inside")

    assert app.state.gateway is None
    assert events == [
        "init_db",
        "init_gateway",
        "inside",
        "shutdown_gateway",
        "close_db",
    ]


def test_routes_registered():
    paths = main_module.app.openapi()["paths"]

    assert "/health" in paths
    assert "/api" in paths
    assert "/api/{api_key}/config" in paths
    assert "/api/config/password" in paths
