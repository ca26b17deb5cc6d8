"""Unit tests for admin secret change and reset."""

from __future__ import annotations

import pytest

from gwbroker.errors import CredentialsRejectedError, ForbiddenError, InvalidValueError
from gwbroker.services.credentials import CredentialStore
from gwbroker.services.persistence import CONFIG


def _secret(user: str, password: str) -> str:
    return CredentialStore.client_secret(user, password)


DEFAULT = _secret("delight", "delight")
NEW = _secret("delight", "s3cret")


class TestChangeAdminPassword:
    """Tests for change_admin_password()."""

    def test_change_succeeds_with_correct_hashes(self, ctx):
        ctx.gate.change_admin_password("delight", DEFAULT, NEW)

        assert ctx.credentials.verify_secret(NEW)
        assert not ctx.credentials.verify_secret(DEFAULT)
        assert ctx.persistence.is_pending(CONFIG)

    def test_old_hash_fails_after_change(self, ctx):
        ctx.gate.change_admin_password("delight", DEFAULT, NEW)

        with pytest.raises(CredentialsRejectedError) as exc_info:
            ctx.gate.change_admin_password("delight", DEFAULT, _secret("delight", "x"))

        assert exc_info.value.status_code == 401
        assert exc_info.value.type == 7
        assert exc_info.value.address == "/config/password"

    @pytest.mark.parametrize("username", ["admin", "", None, 42])
    def test_wrong_user_always_fails(self, ctx, username):
        with pytest.raises(CredentialsRejectedError):
            ctx.gate.change_admin_password(username, DEFAULT, NEW)

        assert ctx.credentials.verify_secret(DEFAULT)

    @pytest.mark.parametrize("old_hash", ["", None, 5])
    def test_invalid_old_hash_is_unauthorized(self, ctx, old_hash):
        with pytest.raises(InvalidValueError) as exc_info:
            ctx.gate.change_admin_password("delight", old_hash, NEW)

        assert exc_info.value.status_code == 401

    @pytest.mark.parametrize("new_hash", ["", None, []])
    def test_invalid_new_hash_is_bad_request(self, ctx, new_hash):
        with pytest.raises(InvalidValueError) as exc_info:
            ctx.gate.change_admin_password("delight", DEFAULT, new_hash)

        assert exc_info.value.status_code == 400
        assert ctx.credentials.verify_secret(DEFAULT)

    def test_stored_hash_is_not_the_client_secret(self, ctx):
        ctx.gate.change_admin_password("delight", DEFAULT, NEW)

        assert ctx.credentials.admin_password_hash != NEW


class TestResetAdminPassword:
    """Tests for reset_admin_password()."""

    @pytest.mark.asyncio
    async def test_reset_within_window_restores_default(self, ctx, scheduler):
        ctx.gate.change_admin_password("delight", DEFAULT, NEW)
        await scheduler.advance(599)

        ctx.gate.reset_admin_password()

        assert ctx.credentials.admin_username == "delight"
        assert ctx.credentials.verify_secret(DEFAULT)
        assert ctx.persistence.is_pending(CONFIG)

    @pytest.mark.asyncio
    async def test_reset_after_window_forbidden(self, ctx, scheduler):
        ctx.gate.change_admin_password("delight", DEFAULT, NEW)
        await scheduler.advance(601)

        with pytest.raises(ForbiddenError) as exc_info:
            ctx.gate.reset_admin_password()

        assert exc_info.value.type == 1
        assert exc_info.value.status_code == 403
        assert ctx.credentials.verify_secret(NEW)

    @pytest.mark.asyncio
    async def test_reset_succeeds_regardless_of_earlier_failures(self, ctx):
        for _ in range(3):
            with pytest.raises(CredentialsRejectedError):
                ctx.gate.change_admin_password("intruder", DEFAULT, NEW)

        ctx.gate.reset_admin_password()

        assert ctx.credentials.verify_secret(DEFAULT)
