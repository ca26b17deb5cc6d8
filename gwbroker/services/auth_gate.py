"""Authorization gate.

Decides who may obtain an API key and manages the admin secret:

- API keys are issued while the unlock window ("link button") is open, or to
  a caller that presents the admin credentials.
- The unlock window closes itself after the requested number of seconds.
- The admin secret can be changed with the old secret, or reset to the
  default within a short window after process start (physical access).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog

from gwbroker.errors import (
    CredentialsRejectedError,
    ForbiddenError,
    InvalidValueError,
    LinkButtonNotPressedError,
    UnauthorizedError,
)
from gwbroker.models.api_key import ApiKey
from gwbroker.services.credentials import MIN_KEY_LENGTH
from gwbroker.services.persistence import AUTH, CONFIG
from gwbroker.utils.datetime import utcnow

if TYPE_CHECKING:
    from gwbroker.context import GatewayContext

logger = structlog.get_logger()

PASSWORD_ADDRESS = "/config/password"


class AuthorizationGate:
    """API key issuance, unlock window and admin secret."""

    RELOCK_KEY = "gateway-relock"

    def __init__(self, ctx: "GatewayContext") -> None:
        self._ctx = ctx
        self._log = logger.bind(component="auth_gate")

    @property
    def is_unlocked(self) -> bool:
        return self._ctx.state.link_button

    # ---- API keys ----

    def is_preauthorized(self, authorization: str | None) -> bool:
        """Whether an Authorization header carries valid admin credentials."""
        if not authorization or not authorization.startswith("Basic "):
            return False
        return self._ctx.credentials.verify_basic_token(authorization[6:].strip())

    def ensure_may_issue(self, preauthorized: bool = False) -> None:
        """Raise LinkButtonNotPressedError unless a key may be issued now."""
        if not self.is_unlocked and not preauthorized:
            raise LinkButtonNotPressedError()

    def issue_api_key(
        self,
        device_label: str,
        requested_key: Any = None,
        *,
        preauthorized: bool = False,
    ) -> ApiKey:
        """Issue (or echo) an API key.

        Args:
            device_label: Free-form label of the client device
            requested_key: Key chosen by the client, or None to generate one
            preauthorized: Caller presented admin credentials

        Returns:
            The whitelisted ApiKey record

        Raises:
            LinkButtonNotPressedError: Unlock window closed and not pre-authorized
            InvalidValueError: Requested key is not a string of >= 10 chars
        """
        self.ensure_may_issue(preauthorized)

        if requested_key is not None:
            if not isinstance(requested_key, str) or len(requested_key) < MIN_KEY_LENGTH:
                raise InvalidValueError.for_parameter("/", "username", requested_key)
            key = requested_key
        else:
            key = self._ctx.credentials.generate_key()

        existing = self._ctx.credentials.get(key)
        if existing is not None:
            self._log.info("auth.key.exists", key=key, device_label=device_label)
            return existing

        now = utcnow()
        api_key = ApiKey(
            key=key,
            device_label=device_label,
            created_at=now,
            last_used_at=now,
        )
        self._ctx.credentials.add(api_key)
        self._ctx.persistence.queue_short(AUTH)
        self._ctx.token.bump()
        self._log.info("auth.key.created", key=key, device_label=device_label)
        return api_key

    def authenticate(self, key: str) -> ApiKey:
        """Resolve a whitelisted key and record its use.

        Raises:
            UnauthorizedError: Key is not whitelisted
        """
        api_key = self._ctx.credentials.get(key)
        if api_key is None:
            self._log.debug("auth.key.rejected", key=key)
            raise UnauthorizedError(f"/{key}" if key else "/")

        api_key.last_used_at = utcnow()
        self._ctx.persistence.queue_long(AUTH)
        return api_key

    # ---- Unlock window ----

    def unlock(self, seconds: int, *, touch_token: bool = True) -> None:
        """Open (seconds > 0) or close (0) the unlock window.

        Any pending auto-relock is replaced. Always counts as a configuration
        change; batch callers pass ``touch_token=False`` and bump once.
        """
        max_seconds = self._ctx.settings.gateway.max_unlock_seconds
        if isinstance(seconds, bool) or not isinstance(seconds, int) or not 0 <= seconds <= max_seconds:
            raise InvalidValueError.for_parameter("/config/unlock", "unlock", seconds)

        self._ctx.scheduler.cancel(self.RELOCK_KEY)

        if seconds > 0:
            self._ctx.state.link_button = True
            self._ctx.scheduler.schedule_once(self.RELOCK_KEY, seconds, self._relock)
            self._log.info("gateway.unlocked", seconds=seconds)
        else:
            self._ctx.state.link_button = False
            self._log.info("gateway.locked", reason="request")

        if touch_token:
            self._ctx.token.bump()

    def _relock(self) -> None:
        if self._ctx.state.link_button:
            self._ctx.state.link_button = False
            self._ctx.token.bump()
            self._log.info("gateway.locked", reason="timeout")

    def stop(self) -> None:
        self._ctx.scheduler.cancel(self.RELOCK_KEY)

    # ---- Admin secret ----

    def change_admin_password(self, username: Any, old_hash: Any, new_hash: Any) -> None:
        """Replace the admin secret.

        Raises:
            CredentialsRejectedError: Wrong user name or old secret
            InvalidValueError: A secret is empty or not a string
        """
        credentials = self._ctx.credentials

        if not isinstance(username, str) or username != credentials.admin_username:
            raise CredentialsRejectedError(
                PASSWORD_ADDRESS,
                f"invalid value, {username} for parameter, username",
            )

        if not isinstance(old_hash, str) or not old_hash:
            raise InvalidValueError(
                PASSWORD_ADDRESS,
                f"invalid value, {old_hash} for parameter, oldhash",
                status_code=401,
            )

        if not isinstance(new_hash, str) or not new_hash:
            raise InvalidValueError(
                PASSWORD_ADDRESS,
                f"invalid value, {new_hash} for parameter, newhash",
            )

        if not credentials.verify_secret(old_hash):
            raise CredentialsRejectedError(
                PASSWORD_ADDRESS,
                f"invalid value, {old_hash} for parameter, oldhash",
            )

        credentials.set_admin_secret(new_hash)
        self._ctx.persistence.queue_short(CONFIG)
        self._log.info("auth.password.changed", username=username)

    def reset_admin_password(self) -> None:
        """Fall back to the default admin credentials.

        Raises:
            ForbiddenError: Process has been up longer than the reset window
        """
        uptime = self._ctx.uptime()
        if uptime > self._ctx.settings.auth.reset_window_seconds:
            self._log.warning("auth.password.reset_rejected", uptime=round(uptime, 1))
            raise ForbiddenError(PASSWORD_ADDRESS)

        self._ctx.credentials.init_authentication()
        self._ctx.persistence.queue_short(CONFIG)
        self._log.info("auth.password.reset")
