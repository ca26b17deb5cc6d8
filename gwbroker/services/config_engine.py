"""Config mutation engine.

Applies a batch of named config fields. Each recognized field is validated,
applied and reported on its own: a failing field yields an error element and
leaves the other fields untouched. Unrecognized fields are ignored. The
change token is bumped once per batch if anything changed.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Annotated, Any, Literal

import structlog
from pydantic import Field, StrictBool, StrictInt, StrictStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from gwbroker.errors import (
    BridgeBusyError,
    DeviceOffError,
    GatewayError,
    InvalidValueError,
)
from gwbroker.services.persistence import CONFIG

if TYPE_CHECKING:
    from gwbroker.context import GatewayContext

logger = structlog.get_logger()

PERMIT_JOIN_MAX = 255


@dataclass
class FieldOutcome:
    """Result of one field in a batch."""

    path: str
    value: Any = None
    error: GatewayError | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        if self.error is not None:
            return self.error.to_dict()
        return {"success": {self.path: self.value}}


@dataclass
class BatchResult:
    """Ordered per-field outcomes of a batch."""

    outcomes: list[FieldOutcome] = field(default_factory=list)
    changed: bool = False

    def to_list(self) -> list[dict[str, Any]]:
        return [o.to_dict() for o in self.outcomes]

    @property
    def errors(self) -> list[GatewayError]:
        return [o.error for o in self.outcomes if o.error is not None]


class _Changed:
    """Mutable flag shared by the field handlers of one batch."""

    __slots__ = ("value",)

    def __init__(self) -> None:
        self.value = False


class ConfigMutationEngine:
    """Validates and applies config batches."""

    def __init__(self, ctx: "GatewayContext") -> None:
        self._ctx = ctx
        gw = ctx.settings.gateway
        self._log = logger.bind(component="config_engine")

        self._validators: dict[str, TypeAdapter] = {
            "name": TypeAdapter(
                Annotated[StrictStr, Field(max_length=gw.name_max_length)]
            ),
            "rfconnected": TypeAdapter(StrictBool),
            "updatechannel": TypeAdapter(Literal["stable", "alpha", "beta"]),
            "permitjoin": TypeAdapter(
                Annotated[StrictInt, Field(ge=0, le=PERMIT_JOIN_MAX)]
            ),
            "groupdelay": TypeAdapter(
                Annotated[StrictInt, Field(ge=0, le=gw.max_group_delay_ms)]
            ),
            "otauactive": TypeAdapter(StrictBool),
            "discovery": TypeAdapter(StrictBool),
            "unlock": TypeAdapter(
                Annotated[StrictInt, Field(ge=0, le=gw.max_unlock_seconds)]
            ),
        }

        # Processing order of recognized fields
        self._handlers: dict[str, Callable[[Any, _Changed], FieldOutcome]] = {
            "name": self._apply_name,
            "rfconnected": self._apply_rfconnected,
            "updatechannel": self._apply_updatechannel,
            "permitjoin": self._apply_permitjoin,
            "groupdelay": self._apply_groupdelay,
            "otauactive": self._apply_otauactive,
            "discovery": self._apply_discovery,
            "unlock": self._apply_unlock,
        }

    @property
    def fields(self) -> tuple[str, ...]:
        return tuple(self._handlers)

    def apply_batch(self, fields: Mapping[str, Any]) -> BatchResult:
        """Apply a batch of field updates.

        Args:
            fields: Parsed request body (field name -> value)

        Returns:
            BatchResult with one outcome per recognized field
        """
        result = BatchResult()
        changed = _Changed()

        for name, handler in self._handlers.items():
            if name not in fields:
                continue

            raw = fields[name]
            path = f"/config/{name}"
            try:
                value = self._validators[name].validate_python(raw)
            except (PydanticValidationError, TypeError):
                self._log.info("config.field.invalid", field=name, value=repr(raw))
                result.outcomes.append(
                    FieldOutcome(path, error=InvalidValueError.for_parameter(path, name, raw))
                )
                continue

            result.outcomes.append(handler(value, changed))

        if changed.value:
            self._ctx.token.bump()
            result.changed = True

        self._log.debug(
            "config.batch.applied",
            fields=len(result.outcomes),
            errors=len(result.errors),
            changed=result.changed,
        )
        return result

    # ---- Field handlers ----

    def _apply_name(self, name: str, changed: _Changed) -> FieldOutcome:
        state = self._ctx.state
        new_name = name or self._ctx.settings.gateway.default_name

        if state.name != new_name:
            state.name = new_name
            changed.value = True
            self._ctx.persistence.queue_short(CONFIG)

        return FieldOutcome("/config/name", state.name)

    def _apply_rfconnected(self, connected: bool, changed: _Changed) -> FieldOutcome:
        path = "/config/rfconnected"
        state = self._ctx.state
        radio = self._ctx.radio

        # Network state must not change while touchlink owns the radio
        if radio.is_touchlink_active():
            return FieldOutcome(path, error=BridgeBusyError(path))

        if state.rf_connected != connected:
            state.rf_connected = connected
            changed.value = True

        if state.rf_connected_expected != connected:
            state.rf_connected_expected = connected
            self._ctx.persistence.queue_long(CONFIG)

        if radio.set_network_state(connected):
            return FieldOutcome(path, connected)

        return FieldOutcome(
            path,
            error=DeviceOffError(
                path, "Error, rfconnected, is not modifiable. Device is set to off."
            ),
        )

    def _apply_updatechannel(self, channel: str, changed: _Changed) -> FieldOutcome:
        state = self._ctx.state

        if state.update_channel != channel:
            state.update_channel = channel
            # A new discovery cycle announces the channel's version
            state.update_version = state.sw_version
            changed.value = True
            self._ctx.persistence.queue_short(CONFIG)

        return FieldOutcome("/config/updatechannel", channel)

    def _apply_permitjoin(self, seconds: int, changed: _Changed) -> FieldOutcome:
        state = self._ctx.state

        if state.permit_join != seconds:
            changed.value = True

        state.permit_join = seconds
        self._ctx.radio.set_permit_join(seconds)
        return FieldOutcome("/config/permitjoin", seconds)

    def _apply_groupdelay(self, milliseconds: int, changed: _Changed) -> FieldOutcome:
        state = self._ctx.state

        if state.group_delay != milliseconds:
            state.group_delay = milliseconds
            changed.value = True
            self._ctx.persistence.queue_short(CONFIG)

        return FieldOutcome("/config/groupdelay", milliseconds)

    def _apply_otauactive(self, active: bool, changed: _Changed) -> FieldOutcome:
        state = self._ctx.state

        if state.otau_active != active:
            state.otau_active = active
            changed.value = True

        return FieldOutcome("/config/otauactive", active)

    def _apply_discovery(self, enabled: bool, changed: _Changed) -> FieldOutcome:
        state = self._ctx.state
        previous = state.announce_interval
        state.announce_interval = (
            self._ctx.settings.gateway.announce_interval if enabled else 0
        )

        if previous != state.announce_interval:
            changed.value = True
            self._ctx.persistence.queue_short(CONFIG)

        return FieldOutcome("/config/discovery", enabled)

    def _apply_unlock(self, seconds: int, changed: _Changed) -> FieldOutcome:
        self._ctx.gate.unlock(seconds, touch_token=False)
        changed.value = True
        return FieldOutcome("/config/unlock", seconds)
