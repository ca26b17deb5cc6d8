"""Process restart capability.

Updates are performed by an external supervisor that watches the gateway's
exit code. The broker never exits directly; it asks its host through a
Restarter.
"""

from __future__ import annotations

import os
import sys
from abc import ABC, abstractmethod

import structlog

logger = structlog.get_logger()


class Restarter(ABC):
    """Capability to end the process with a supervisor exit code."""

    @abstractmethod
    def request_restart(self, reason: str, exit_code: int) -> None:
        ...


class ProcessRestarter(Restarter):
    """Terminates the current process with the given exit code."""

    def request_restart(self, reason: str, exit_code: int) -> None:
        logger.warning("gateway.exit", reason=reason, exit_code=exit_code)
        sys.stdout.flush()
        sys.stderr.flush()
        os._exit(exit_code)
