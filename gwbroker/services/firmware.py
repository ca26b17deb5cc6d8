"""Firmware and software update orchestrator.

Discovers the radio firmware version by polling, compares it against the
minimum version for the detected hardware platform, and triggers software or
firmware updates by asking the host to exit with a supervisor exit code.

Both triggers are no-ops outside the supported platform but still report
success; callers cannot tell "will update" from "not supported" by the
response alone.
"""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from gwbroker.drivers.base import FIRMWARE_VERSION_UNKNOWN
from gwbroker.services.persistence import CONFIG

if TYPE_CHECKING:
    from gwbroker.context import GatewayContext

logger = structlog.get_logger()


class FirmwareState(str, Enum):
    """Orchestrator lifecycle."""

    UNKNOWN = "unknown"
    POLLING = "polling"
    VERSION_KNOWN = "version_known"
    UP_TO_DATE = "up_to_date"
    UPDATE_AVAILABLE = "update_available"
    UPDATE_TRIGGERED = "update_triggered"


@dataclass
class UpdateState:
    """Snapshot of the update situation."""

    current_version: str
    required_min_version: str | None
    update_available: bool
    channel: str


def format_version(version: int) -> str:
    return f"0x{version:08x}"


class UpdateOrchestrator:
    """Firmware version discovery and update triggers."""

    POLL_KEY = "firmware-poll"
    EXIT_KEY = "update-exit"

    def __init__(self, ctx: "GatewayContext") -> None:
        self._ctx = ctx
        self._config = ctx.settings.update
        self.state = FirmwareState.UNKNOWN
        self.poll_count = 0
        self._log = logger.bind(component="firmware")

    @property
    def platform_supported(self) -> bool:
        return self._config.is_platform_supported()

    @property
    def version_known(self) -> bool:
        return self.state in (
            FirmwareState.VERSION_KNOWN,
            FirmwareState.UP_TO_DATE,
            FirmwareState.UPDATE_AVAILABLE,
        ) and not self.is_polling

    @property
    def is_polling(self) -> bool:
        return self._ctx.scheduler.is_scheduled(self.POLL_KEY)

    def update_state(self) -> UpdateState:
        gw = self._ctx.state
        return UpdateState(
            current_version=gw.fw_version,
            required_min_version=(
                format_version(self._config.min_firmware_version)
                if self.platform_supported
                else None
            ),
            update_available=gw.fw_need_update,
            channel=gw.update_channel,
        )

    # ---- Version discovery ----

    def start(self) -> None:
        """Begin polling the radio for its firmware version."""
        if self.state is not FirmwareState.UNKNOWN:
            return
        self.state = FirmwareState.POLLING
        self._schedule_poll()
        self._log.info("firmware.polling.started")

    def stop(self) -> None:
        self._ctx.scheduler.cancel(self.POLL_KEY)

    def _schedule_poll(self) -> None:
        self._ctx.scheduler.schedule_once(
            self.POLL_KEY, self._config.poll_interval_seconds, self.poll
        )

    def _read_version(self) -> int:
        try:
            return int(self._ctx.radio.firmware_version())
        except Exception as e:
            self._log.warning("firmware.version.query_failed", error=str(e))
            return FIRMWARE_VERSION_UNKNOWN

    def poll(self) -> None:
        """Query the firmware version once.

        Reschedules itself while the version is unknown.
        """
        if self.state is FirmwareState.UPDATE_TRIGGERED:
            return

        self.poll_count += 1
        version = self._read_version()

        if version == FIRMWARE_VERSION_UNKNOWN:
            self._schedule_poll()
            self._check_unknown_timeout()
            return

        self._on_version(version)

    def _check_unknown_timeout(self) -> None:
        gw = self._ctx.state
        if gw.fw_need_update:
            return
        if self._ctx.uptime() < self._config.unknown_version_grace_seconds:
            return
        # Running under the autostart script: assume the reference hardware
        if not self._config.auto_connect:
            return

        self._check_min_version_file()
        if gw.fw_need_update:
            self.state = FirmwareState.UPDATE_AVAILABLE
            self._ctx.token.bump()
            self._log.info(
                "firmware.update.assumed",
                version=gw.fw_version_update,
                reason="version unknown",
            )

    def _on_version(self, version: int) -> None:
        gw = self._ctx.state
        text = format_version(version)

        gw.fw_version = text
        gw.fw_version_update = text
        gw.fw_need_update = False
        self.state = FirmwareState.VERSION_KNOWN

        platform = version & self._config.platform_mask
        if platform == self._config.platform_id and version < self._config.min_firmware_version:
            self._log.info(
                "firmware.update.required",
                version=text,
                min_version=format_version(self._config.min_firmware_version),
            )
            self._check_min_version_file()

        self.state = (
            FirmwareState.UPDATE_AVAILABLE if gw.fw_need_update else FirmwareState.UP_TO_DATE
        )
        self._ctx.token.bump()
        self._ctx.persistence.queue_short(CONFIG)
        self._log.info("firmware.version", version=text, state=self.state.value)

    def image_path(self, version_text: str) -> Path:
        """Location of the update image for a firmware version."""
        cfg = self._config
        directory = Path(os.path.expanduser(cfg.firmware_dir))
        return directory / f"{cfg.image_prefix}{version_text}{cfg.image_suffix}"

    def _check_min_version_file(self) -> None:
        """Flag an update if the image for the minimum version is present."""
        if not self.platform_supported:
            return

        gw = self._ctx.state
        target = format_version(self._config.min_firmware_version)
        path = self.image_path(target)

        if path.exists():
            gw.fw_version_update = target
            gw.fw_need_update = True
        else:
            self._log.error("firmware.image.missing", path=str(path))
            gw.fw_version_update = gw.fw_version

    # ---- Software update ----

    def record_available_update(self, version: str) -> None:
        """Announce the software version available on the current channel."""
        gw = self._ctx.state
        if gw.update_version != version:
            gw.update_version = version
            self._ctx.token.bump()
            self._log.info("software.update.available", version=version, channel=gw.update_channel)

    async def trigger_software_update(self) -> str:
        """Request a software update on the configured channel.

        Returns:
            The version the update targets (echoed to the caller)
        """
        gw = self._ctx.state
        target = gw.update_version

        if not self.platform_supported:
            self._log.info("software.update.unsupported_platform")
            return target

        if target == gw.sw_version or self.state is FirmwareState.UPDATE_TRIGGERED:
            return target

        await self._ctx.persistence.save_now()
        self.state = FirmwareState.UPDATE_TRIGGERED
        self.stop()
        self._ctx.scheduler.schedule_once(
            self.EXIT_KEY, self._config.exit_delay_seconds, self._fire_software_update
        )
        self._log.info("software.update.scheduled", version=target, channel=gw.update_channel)
        return target

    def _software_exit_code(self, channel: str) -> int:
        cfg = self._config
        return {
            "stable": cfg.exit_code_update,
            "alpha": cfg.exit_code_update_alpha,
            "beta": cfg.exit_code_update_beta,
        }.get(channel, cfg.exit_code_restart)

    def _fire_software_update(self) -> None:
        gw = self._ctx.state
        exit_code = self._software_exit_code(gw.update_channel)
        self._log.info("software.update.exit", version=gw.update_version, exit_code=exit_code)
        self._ctx.restarter.request_restart(f"software update to {gw.update_version}", exit_code)

    # ---- Firmware update ----

    async def trigger_firmware_update(self) -> str:
        """Request a radio firmware update.

        Returns:
            The firmware version the update targets
        """
        gw = self._ctx.state
        target = gw.fw_version_update

        if not self.platform_supported:
            self._log.info("firmware.update.unsupported_platform")
            return target

        if not gw.fw_need_update or self.state is FirmwareState.UPDATE_TRIGGERED:
            return target

        self.write_flash_script(self.image_path(target))
        await self._ctx.persistence.save_now()
        self.state = FirmwareState.UPDATE_TRIGGERED
        self.stop()
        self._ctx.scheduler.schedule_once(
            self.EXIT_KEY, self._config.exit_delay_seconds, self._fire_firmware_update
        )
        self._log.info("firmware.update.scheduled", version=target)
        return target

    def write_flash_script(self, image: Path) -> Path | None:
        """Write the helper script the supervisor runs to flash ``image``.

        The script exits with 1 if the image is missing.
        """
        script = Path(self._config.script_path)
        image_arg = shlex.quote(str(image))
        content = (
            "#!/bin/bash\n"
            f"if [ ! -e {image_arg} ]; then\n"
            "    exit 1\n"
            "fi\n"
            f"{self._config.flasher_command} {image_arg}\n"
        )

        try:
            if script.exists():
                script.unlink()
            script.write_text(content)
            script.chmod(0o755)
        except OSError as e:
            self._log.error("firmware.script.write_failed", path=str(script), error=str(e))
            return None

        self._log.info("firmware.script.written", path=str(script), image=str(image))
        return script

    def _fire_firmware_update(self) -> None:
        gw = self._ctx.state
        if not gw.fw_need_update:
            self._log.info("firmware.update.not_needed")
            return

        exit_code = self._config.exit_code_update_firmware
        self._log.info("firmware.update.exit", version=gw.fw_version_update, exit_code=exit_code)
        self._ctx.restarter.request_restart(
            f"firmware update to {gw.fw_version_update}", exit_code
        )
