"""Fake implementations for testing.

These fakes allow unit tests to run without a radio, a database or real
timers.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any

from gwbroker.config import Settings
from gwbroker.context import GatewayContext
from gwbroker.drivers.base import FIRMWARE_VERSION_UNKNOWN, RadioDriver
from gwbroker.models.api_key import ApiKey
from gwbroker.services.restart import Restarter
from gwbroker.services.scheduler import Scheduler, TimerCallback
from gwbroker.services.store import GatewayStore, StoredState


@dataclass
class _Timer:
    due: float
    seq: int
    callback: TimerCallback


class FakeScheduler(Scheduler):
    """Scheduler driven by a manual clock.

    Timers only fire from ``advance()``; awaitable callback results are
    awaited in place so tests observe their effects deterministically.
    """

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self._timers: dict[str, _Timer] = {}
        self._seq = 0
        self.fired: list[str] = []

    def time(self) -> float:
        return self.now

    def schedule_once(self, key: str, delay: float, callback: TimerCallback) -> None:
        self._seq += 1
        self._timers[key] = _Timer(self.now + max(0.0, delay), self._seq, callback)

    def cancel(self, key: str) -> bool:
        return self._timers.pop(key, None) is not None

    def is_scheduled(self, key: str) -> bool:
        return key in self._timers

    def remaining(self, key: str) -> float | None:
        timer = self._timers.get(key)
        if timer is None:
            return None
        return max(0.0, timer.due - self.now)

    @property
    def pending(self) -> list[str]:
        return sorted(self._timers, key=lambda k: (self._timers[k].due, self._timers[k].seq))

    async def advance(self, seconds: float) -> None:
        """Move the clock forward, firing due timers in order."""
        target = self.now + seconds
        while True:
            due = [
                (t.due, t.seq, key)
                for key, t in self._timers.items()
                if t.due <= target
            ]
            if not due:
                break
            when, _, key = min(due)
            timer = self._timers.pop(key)
            self.now = max(self.now, when)
            self.fired.append(key)
            result = timer.callback()
            if inspect.isawaitable(result):
                await result
        self.now = target


class FakeRadio(RadioDriver):
    """Fake radio recording requests for assertion."""

    def __init__(
        self,
        *,
        firmware_version: int = FIRMWARE_VERSION_UNKNOWN,
        in_network: bool = True,
    ) -> None:
        self.version = firmware_version
        self.in_network = in_network
        self.touchlink_active = False
        self.accept_network_state = True
        self.otau_busy = False
        self.version_error: Exception | None = None
        self.light_inventory: dict[str, Any] = {}
        self.group_inventory: dict[str, Any] = {}

        # Call records
        self.version_calls = 0
        self.network_state_calls: list[bool] = []
        self.permit_join_calls: list[int] = []

    def firmware_version(self) -> int:
        self.version_calls += 1
        if self.version_error is not None:
            raise self.version_error
        return self.version

    def is_in_network(self) -> bool:
        return self.in_network

    def set_network_state(self, connected: bool) -> bool:
        self.network_state_calls.append(connected)
        if not self.accept_network_state:
            return False
        self.in_network = connected
        return True

    def is_touchlink_active(self) -> bool:
        return self.touchlink_active

    def set_permit_join(self, seconds: int) -> None:
        self.permit_join_calls.append(seconds)

    def is_otau_busy(self) -> bool:
        return self.otau_busy

    def lights(self) -> dict[str, Any]:
        return dict(self.light_inventory)

    def groups(self) -> dict[str, Any]:
        return dict(self.group_inventory)


class FakeRestarter(Restarter):
    """Records restart requests instead of exiting."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, int]] = []

    def request_restart(self, reason: str, exit_code: int) -> None:
        self.calls.append((reason, exit_code))

    @property
    def exit_codes(self) -> list[int]:
        return [code for _, code in self.calls]


class MemoryStore(GatewayStore):
    """In-memory store counting saves per partition."""

    def __init__(
        self,
        api_keys: list[ApiKey] | None = None,
        config: dict[str, Any] | None = None,
    ) -> None:
        self.api_keys: dict[str, ApiKey] = {k.key: k for k in api_keys or []}
        self.config: dict[str, Any] = dict(config or {})
        self.auth_saves = 0
        self.config_saves = 0
        self.fail_saves = False

    async def load(self) -> StoredState:
        return StoredState(api_keys=list(self.api_keys.values()), config=dict(self.config))

    async def save_auth(self, api_keys: list[ApiKey]) -> None:
        if self.fail_saves:
            raise OSError("disk full")
        self.auth_saves += 1
        self.api_keys = {k.key: k for k in api_keys}

    async def save_config(self, entries: dict[str, Any]) -> None:
        if self.fail_saves:
            raise OSError("disk full")
        self.config_saves += 1
        self.config.update(entries)


def make_context(
    settings: Settings | None = None,
    *,
    scheduler: FakeScheduler | None = None,
    radio: FakeRadio | None = None,
    restarter: FakeRestarter | None = None,
    store: MemoryStore | None = None,
) -> GatewayContext:
    """Build a GatewayContext wired to fakes."""
    return GatewayContext(
        settings=settings or Settings(),
        scheduler=scheduler or FakeScheduler(),
        radio=radio or FakeRadio(),
        restarter=restarter or FakeRestarter(),
        store=store or MemoryStore(),
    )
