"""RF state reconciler.

Keeps the reported ``rfconnected`` flag in line with the radio:

- while touchlink is active the gateway always reports connected;
- otherwise it mirrors the radio's "in network" state;
- once connected, the persisted expectation is upgraded (never downgraded).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from gwbroker.services.persistence import CONFIG

if TYPE_CHECKING:
    from gwbroker.context import GatewayContext

logger = structlog.get_logger()


class RfStateReconciler:
    """Reconciles the radio network state on reads and on a periodic tick."""

    TICK_KEY = "rf-check"

    def __init__(self, ctx: "GatewayContext") -> None:
        self._ctx = ctx
        self._running = False
        self._log = logger.bind(component="rf_state")

    @property
    def is_running(self) -> bool:
        return self._running

    def check(self) -> bool:
        """Reconcile once.

        Returns:
            True if the reported connection state changed
        """
        state = self._ctx.state
        radio = self._ctx.radio
        changed = False

        if radio.is_touchlink_active():
            connected = True
        else:
            connected = bool(radio.is_in_network())

        if connected != state.rf_connected:
            state.rf_connected = connected
            self._ctx.token.bump()
            changed = True
            self._log.info("rf.state.changed", connected=connected)

        if state.rf_connected and not state.rf_connected_expected:
            state.rf_connected_expected = True
            self._ctx.persistence.queue_long(CONFIG)
            self._log.info("rf.expected.upgraded")

        return changed

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._schedule()

    def stop(self) -> None:
        self._running = False
        self._ctx.scheduler.cancel(self.TICK_KEY)

    def _schedule(self) -> None:
        interval = self._ctx.settings.gateway.rf_check_interval_seconds
        self._ctx.scheduler.schedule_once(self.TICK_KEY, interval, self._tick)

    def _tick(self) -> None:
        if not self._running:
            return
        try:
            self.check()
        finally:
            self._schedule()
