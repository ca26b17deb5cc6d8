"""Credential store.

Holds the admin identity and the API key whitelist.

The admin secret arrives already hashed by the client (base64 of
``user:password``); the store keeps a keyed hash of that value, so the
stored form is a double hash and cannot be reversed.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import secrets

from gwbroker.config import AuthConfig
from gwbroker.models.api_key import ApiKey

# Generated keys: 5 random bytes as uppercase hex
_KEY_BYTES = 5
MIN_KEY_LENGTH = 10


class CredentialStore:
    """Admin credentials and whitelisted API keys."""

    def __init__(self, config: AuthConfig) -> None:
        self._config = config
        self.whitelist: dict[str, ApiKey] = {}
        self.admin_username = ""
        self.admin_password_hash = ""
        self.init_authentication()

    @staticmethod
    def generate_key() -> str:
        """Generate a new API key.

        No collision retry: uniqueness against the whitelist is
        probabilistic (40 random bits).
        """
        return secrets.token_hex(_KEY_BYTES).upper()

    @staticmethod
    def client_secret(username: str, password: str) -> str:
        """Client-side hash of a user name and password (basic auth token)."""
        return base64.b64encode(f"{username}:{password}".encode()).decode()

    def hash_secret(self, secret: str) -> str:
        """Keyed hash of a client-hashed secret."""
        return hmac.new(
            self._config.hash_salt.encode(),
            secret.encode(),
            hashlib.sha256,
        ).hexdigest()

    def verify_secret(self, secret: str) -> bool:
        """Verify a client-hashed secret against the stored hash."""
        return hmac.compare_digest(self.hash_secret(secret), self.admin_password_hash)

    def init_authentication(
        self,
        username: str | None = None,
        password_hash: str | None = None,
    ) -> None:
        """Set the admin identity, falling back to the built-in defaults."""
        if username and password_hash:
            self.admin_username = username
            self.admin_password_hash = password_hash
            return

        self.admin_username = self._config.default_username
        self.admin_password_hash = self.hash_secret(
            self.client_secret(self._config.default_username, self._config.default_password)
        )

    def set_admin_secret(self, secret: str) -> None:
        self.admin_password_hash = self.hash_secret(secret)

    def verify_basic_token(self, token: str) -> bool:
        """Check a basic auth token (base64 ``user:password``) for the admin."""
        try:
            decoded = base64.b64decode(token, validate=True).decode()
        except (binascii.Error, UnicodeDecodeError):
            return False

        username, _, _ = decoded.partition(":")
        if not hmac.compare_digest(username.encode(), self.admin_username.encode()):
            return False
        return self.verify_secret(token)

    # Whitelist

    def get(self, key: str) -> ApiKey | None:
        return self.whitelist.get(key)

    def add(self, api_key: ApiKey) -> None:
        self.whitelist[api_key.key] = api_key

    def load_keys(self, api_keys: list[ApiKey]) -> None:
        for api_key in api_keys:
            self.whitelist[api_key.key] = api_key

    def __len__(self) -> int:
        return len(self.whitelist)

    def __contains__(self, key: object) -> bool:
        return key in self.whitelist
