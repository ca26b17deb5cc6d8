"""Debounced persistence queue.

Save requests are keyed by partition. A request for a partition that already
has a pending save restarts its delay, so a burst of changes results in one
write. A request never postpones a pending save with a shorter delay.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable

import structlog

from gwbroker.services.scheduler import Scheduler

logger = structlog.get_logger()

AUTH = "auth"
CONFIG = "config"
PARTITIONS = (AUTH, CONFIG)

SaveFunc = Callable[[str], Awaitable[None]]


class PersistenceQueue:
    """Coalesces partition saves behind restartable timers."""

    def __init__(
        self,
        scheduler: Scheduler,
        save: SaveFunc,
        *,
        short_delay: float,
        long_delay: float,
    ) -> None:
        self._scheduler = scheduler
        self._save = save
        self.short_delay = short_delay
        self.long_delay = long_delay
        # Delay of the pending save per partition
        self._pending: dict[str, float] = {}
        self._log = logger.bind(component="persistence")

    @staticmethod
    def timer_key(partition: str) -> str:
        return f"persist:{partition}"

    def queue(self, partition: str, delay: float) -> None:
        """Schedule a save of ``partition`` after ``delay`` seconds."""
        if partition not in PARTITIONS:
            raise ValueError(f"Unknown partition: {partition}")

        key = self.timer_key(partition)
        pending = self._pending.get(partition) if self._scheduler.is_scheduled(key) else None
        if pending is not None and pending < delay:
            return

        self._pending[partition] = delay
        self._scheduler.schedule_once(key, delay, lambda: self.flush(partition))

    def queue_short(self, partition: str) -> None:
        self.queue(partition, self.short_delay)

    def queue_long(self, partition: str) -> None:
        self.queue(partition, self.long_delay)

    def is_pending(self, partition: str) -> bool:
        return self._scheduler.is_scheduled(self.timer_key(partition))

    async def flush(self, partition: str) -> None:
        """Write one partition now. Failures are logged, not raised."""
        self._scheduler.cancel(self.timer_key(partition))
        self._pending.pop(partition, None)
        try:
            await self._save(partition)
        except Exception as e:
            self._log.exception("persist.failed", partition=partition, error=str(e))
            return
        self._log.debug("persist.saved", partition=partition)

    async def flush_pending(self) -> None:
        """Write every partition with a pending save."""
        for partition in PARTITIONS:
            if self.is_pending(partition):
                await self.flush(partition)

    async def save_now(self) -> None:
        """Write all partitions immediately, dropping pending timers."""
        for partition in PARTITIONS:
            await self.flush(partition)
