"""Gateway context.

One explicit owner of all mutable gateway state. Components receive the
context by reference; nothing here is module level.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from gwbroker.models.gateway import GatewayState
from gwbroker.services.auth_gate import AuthorizationGate
from gwbroker.services.config_engine import ConfigMutationEngine
from gwbroker.services.credentials import CredentialStore
from gwbroker.services.etag import ChangeToken
from gwbroker.services.firmware import UpdateOrchestrator
from gwbroker.services.persistence import AUTH, CONFIG, PersistenceQueue
from gwbroker.services.rf_state import RfStateReconciler

if TYPE_CHECKING:
    from gwbroker.config import Settings
    from gwbroker.drivers.base import RadioDriver
    from gwbroker.services.restart import Restarter
    from gwbroker.services.scheduler import Scheduler
    from gwbroker.services.store import GatewayStore

logger = structlog.get_logger()

# Admin credentials live in the config partition
_ADMIN_USER_KEY = "gwusername"
_ADMIN_PASSWORD_KEY = "gwpassword"


class GatewayContext:
    """Process-wide gateway state and its components.

    Usage:
        ctx = GatewayContext(
            settings=settings,
            scheduler=AsyncioScheduler(),
            radio=SimulatedRadio(),
            restarter=ProcessRestarter(),
            store=GatewayStore(),
        )
        await ctx.load()
        ctx.start()
        ...
        await ctx.stop()
    """

    def __init__(
        self,
        *,
        settings: "Settings",
        scheduler: "Scheduler",
        radio: "RadioDriver",
        restarter: "Restarter",
        store: "GatewayStore",
    ) -> None:
        self.settings = settings
        self.scheduler = scheduler
        self.radio = radio
        self.restarter = restarter
        self.store = store
        self.started_at = scheduler.time()

        self.state = GatewayState.defaults(settings.gateway)
        self.credentials = CredentialStore(settings.auth)
        self.token = ChangeToken()
        self.persistence = PersistenceQueue(
            scheduler,
            self._save_partition,
            short_delay=settings.persistence.short_delay_seconds,
            long_delay=settings.persistence.long_delay_seconds,
        )

        self.gate = AuthorizationGate(self)
        self.rf = RfStateReconciler(self)
        self.engine = ConfigMutationEngine(self)
        self.firmware = UpdateOrchestrator(self)

        self._log = logger.bind(component="gateway")

    def uptime(self) -> float:
        """Seconds since the context was created."""
        return self.scheduler.time() - self.started_at

    def config_entries(self) -> dict[str, Any]:
        entries = self.state.to_entries()
        entries[_ADMIN_USER_KEY] = self.credentials.admin_username
        entries[_ADMIN_PASSWORD_KEY] = self.credentials.admin_password_hash
        return entries

    async def load(self) -> None:
        """Restore both partitions from the store."""
        stored = await self.store.load()
        self.state.apply_entries(stored.config)
        self.state.rf_connected = self.state.rf_connected_expected
        self.credentials.init_authentication(
            stored.config.get(_ADMIN_USER_KEY),
            stored.config.get(_ADMIN_PASSWORD_KEY),
        )
        self.credentials.load_keys(stored.api_keys)
        self._log.info(
            "gateway.loaded",
            name=self.state.name,
            api_keys=len(self.credentials),
            update_channel=self.state.update_channel,
        )

    def start(self) -> None:
        """Start the periodic RF check and firmware discovery."""
        self.rf.start()
        self.firmware.start()
        self._log.info("gateway.started")

    async def stop(self) -> None:
        """Stop timers and write pending saves."""
        self.firmware.stop()
        self.rf.stop()
        self.gate.stop()
        await self.persistence.flush_pending()
        self._log.info("gateway.stopped")

    async def _save_partition(self, partition: str) -> None:
        if partition == AUTH:
            await self.store.save_auth(list(self.credentials.whitelist.values()))
        elif partition == CONFIG:
            await self.store.save_config(self.config_entries())
