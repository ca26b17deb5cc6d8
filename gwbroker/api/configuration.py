"""Configuration API endpoints.

API keys, the config snapshot and batch updates, update triggers and the
admin password. Response bodies follow the gateway wire format: a JSON array
of ``{"success": {...}}`` and ``{"error": {...}}`` elements (or a plain map
for snapshot reads).
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Header, Request, Response
from fastapi.responses import JSONResponse

from gwbroker.api.dependencies import AuthDep, GatewayDep, read_json_object
from gwbroker.context import GatewayContext
from gwbroker.errors import MethodNotAvailableError, MissingParameterError
from gwbroker.services.auth_gate import PASSWORD_ADDRESS
from gwbroker.services.snapshot import config_to_map, full_state

logger = structlog.get_logger()

router = APIRouter()


def _respond(ctx: GatewayContext, content: Any, status_code: int = 200) -> JSONResponse:
    """JSON response carrying the current change token as ETag."""
    return JSONResponse(
        status_code=status_code,
        content=content,
        headers={"ETag": ctx.token.value},
    )


def _not_modified(ctx: GatewayContext, if_none_match: str | None) -> Response | None:
    if ctx.token.matches(if_none_match):
        return Response(status_code=304, headers={"ETag": ctx.token.value})
    return None


def _success(path: str, value: Any) -> dict[str, Any]:
    return {"success": {path: value}}


# ---- Admin password reset (no API key) ----


@router.delete("/api/config/password")
async def reset_password(gateway: GatewayDep) -> JSONResponse:
    """Reset the admin secret to the default.

    Only accepted shortly after process start (physical access to the
    gateway is assumed).
    """
    gateway.gate.reset_admin_password()
    return _respond(gateway, [_success(PASSWORD_ADDRESS, "reset")])


# ---- API keys ----


@router.post("/api")
async def create_api_key(
    request: Request,
    gateway: GatewayDep,
    authorization: str | None = Header(default=None),
) -> JSONResponse:
    """Issue an API key.

    Requires an open unlock window or admin basic credentials.
    """
    gate = gateway.gate
    preauthorized = gate.is_preauthorized(authorization)
    gate.ensure_may_issue(preauthorized)

    body = await read_json_object(request, address="")
    if "devicetype" not in body:
        raise MissingParameterError("")

    device_label = body["devicetype"]
    if not isinstance(device_label, str):
        device_label = str(device_label)

    api_key = gate.issue_api_key(
        device_label,
        body.get("username"),
        preauthorized=preauthorized,
    )
    return _respond(gateway, [_success("username", api_key.key)])


# ---- Snapshots ----


@router.get("/api/{api_key}")
async def get_full_state(
    gateway: GatewayDep,
    _auth: AuthDep,
    if_none_match: str | None = Header(default=None),
) -> Response:
    """Lights, groups, config and schedules."""
    gateway.rf.check()
    not_modified = _not_modified(gateway, if_none_match)
    if not_modified is not None:
        return not_modified
    return _respond(gateway, full_state(gateway))


@router.get("/api/{api_key}/config")
async def get_config(
    gateway: GatewayDep,
    _auth: AuthDep,
    if_none_match: str | None = Header(default=None),
) -> Response:
    """Config snapshot."""
    gateway.rf.check()
    not_modified = _not_modified(gateway, if_none_match)
    if not_modified is not None:
        return not_modified
    return _respond(gateway, config_to_map(gateway))


# ---- Config updates ----


@router.put("/api/{api_key}/config")
async def modify_config(
    request: Request,
    gateway: GatewayDep,
    _auth: AuthDep,
) -> JSONResponse:
    """Apply a batch of config fields.

    Each recognized field yields one success or error element; the batch as
    a whole succeeds even if some fields fail.
    """
    body = await read_json_object(request, address="")
    result = gateway.engine.apply_batch(body)
    return _respond(gateway, result.to_list())


@router.delete("/api/{api_key}/config/whitelist/{key2}")
async def delete_api_key(
    key2: str,
    gateway: GatewayDep,
    _auth: AuthDep,
) -> JSONResponse:
    """Whitelist removal is not supported."""
    raise MethodNotAvailableError(f"/config/whitelist/{key2}")


@router.post("/api/{api_key}/config/update")
async def update_software(gateway: GatewayDep, _auth: AuthDep) -> JSONResponse:
    """Trigger a software update on the configured channel."""
    version = await gateway.firmware.trigger_software_update()
    return _respond(gateway, [_success("/config/update", version)])


@router.post("/api/{api_key}/config/updatefirmware")
async def update_firmware(gateway: GatewayDep, _auth: AuthDep) -> JSONResponse:
    """Trigger a radio firmware update."""
    version = await gateway.firmware.trigger_firmware_update()
    return _respond(gateway, [_success("/config/updatefirmware", version)])


@router.put("/api/{api_key}/config/password")
async def change_password(
    request: Request,
    gateway: GatewayDep,
    _auth: AuthDep,
) -> JSONResponse:
    """Change the admin secret."""
    body = await read_json_object(request, address=PASSWORD_ADDRESS)
    if not all(k in body for k in ("username", "oldhash", "newhash")):
        raise MissingParameterError(PASSWORD_ADDRESS)

    gateway.gate.change_admin_password(body["username"], body["oldhash"], body["newhash"])
    return _respond(gateway, [_success(PASSWORD_ADDRESS, "changed")])
