"""Gateway error types.

Error types are the stable numeric codes of the REST API wire format.
Each error renders as one ``{"error": {...}}`` element of a response array.
"""

from __future__ import annotations

from typing import Any


class GatewayError(Exception):
    """Base error for all gateway API failures."""

    type: int = 901
    description: str = "Internal error"
    status_code: int = 500

    def __init__(
        self,
        address: str = "",
        description: str | None = None,
        status_code: int | None = None,
    ) -> None:
        self.address = address
        self.description = description or self.__class__.description
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.description)

    def to_dict(self) -> dict[str, Any]:
        """Render as a response array element."""
        return {
            "error": {
                "type": self.type,
                "address": self.address,
                "description": self.description,
            }
        }


class UnauthorizedError(GatewayError):
    """Unknown API key (403)."""

    type = 1
    description = "unauthorized user"
    status_code = 403


class CredentialsRejectedError(UnauthorizedError):
    """Admin user name or secret does not match (401)."""

    type = 7
    description = "invalid credentials"
    status_code = 401


class ForbiddenError(UnauthorizedError):
    """Operation not permitted in the current gateway state (403)."""

    description = "unauthorized user"
    status_code = 403


class InvalidJsonError(GatewayError):
    """Request body is not a non-empty JSON object (400)."""

    type = 2
    description = "body contains invalid JSON"
    status_code = 400


class MethodNotAvailableError(GatewayError):
    """Route is declared but not implemented (501)."""

    type = 4
    description = "method not available for resource"
    status_code = 501


class MissingParameterError(GatewayError):
    """Required parameter missing from body (400)."""

    type = 5
    description = "missing parameters in body"
    status_code = 400


class InvalidValueError(GatewayError):
    """Parameter has the wrong type or is out of range (400)."""

    type = 7
    description = "invalid value"
    status_code = 400

    @classmethod
    def for_parameter(cls, address: str, parameter: str, value: Any) -> "InvalidValueError":
        """Build the standard message echoing the offending value."""
        return cls(
            address,
            f"invalid value, {render_value(value)}, for parameter, {parameter}",
        )


class LinkButtonNotPressedError(GatewayError):
    """No unlock window open and caller not pre-authorized (403)."""

    type = 101
    description = "link button not pressed"
    status_code = 403


class DeviceOffError(GatewayError):
    """Radio refused the requested state (400)."""

    type = 201
    description = "device is set to off"
    status_code = 400


class InternalError(GatewayError):
    """Unexpected failure (500)."""

    type = 901
    description = "Internal error"
    status_code = 500


class BridgeBusyError(InternalError):
    """Radio is in exclusive touchlink mode.

    Reported on the wire as an internal error carrying the busy code.
    """

    busy_code = 208
    description = f"Internal error, {busy_code}"
    status_code = 400


def render_value(value: Any) -> str:
    """Render a request value the way it appeared in the JSON body."""
    if isinstance(value, str):
        return value
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
