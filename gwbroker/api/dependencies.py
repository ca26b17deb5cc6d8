"""FastAPI dependencies for the gateway API.

Provides dependency injection for:
- The gateway context
- API key authentication
- JSON request bodies
"""

from __future__ import annotations

import json
from typing import Annotated, Any

import structlog
from fastapi import Depends, Request

from gwbroker.context import GatewayContext
from gwbroker.errors import InternalError, InvalidJsonError
from gwbroker.models.api_key import ApiKey

logger = structlog.get_logger()


def get_gateway_context(request: Request) -> GatewayContext:
    """Get the gateway context created during lifespan startup."""
    ctx = getattr(request.app.state, "gateway", None)
    if ctx is None:
        raise InternalError(request.url.path, "gateway not initialized")
    return ctx


GatewayDep = Annotated[GatewayContext, Depends(get_gateway_context)]


def authenticate(api_key: str, gateway: GatewayDep) -> ApiKey:
    """Resolve the API key from the request path.

    Raises:
        UnauthorizedError: Key is not whitelisted
    """
    return gateway.gate.authenticate(api_key)


AuthDep = Annotated[ApiKey, Depends(authenticate)]


async def read_json_object(request: Request, address: str = "/") -> dict[str, Any]:
    """Parse the request body as a non-empty JSON object.

    Raises:
        InvalidJsonError: Body is missing, malformed, not an object or empty
    """
    body = await request.body()
    try:
        data = json.loads(body) if body else None
    except (ValueError, UnicodeDecodeError):
        data = None

    if not isinstance(data, dict) or not data:
        logger.debug("api.body.invalid", path=request.url.path)
        raise InvalidJsonError(address)
    return data
