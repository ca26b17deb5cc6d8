"""Configuration change token (ETag)."""

from __future__ import annotations

import hashlib
import uuid


class ChangeToken:
    """Opaque, strictly changing marker of the current configuration version.

    Rendered as a quoted md5 hex string so it can be used as an HTTP ETag.
    The per-process seed keeps tokens from repeating across restarts.
    """

    def __init__(self, seed: str | None = None) -> None:
        self._seed = seed or uuid.uuid4().hex
        self._counter = 0
        self._value = self._render()

    @property
    def value(self) -> str:
        return self._value

    @property
    def counter(self) -> int:
        """Number of bumps since start."""
        return self._counter

    def bump(self) -> str:
        """Advance to a new token and return it."""
        self._counter += 1
        self._value = self._render()
        return self._value

    def matches(self, candidate: str | None) -> bool:
        """Whether a client supplied token equals the current one."""
        if not candidate:
            return False
        return candidate.strip() == self._value

    def _render(self) -> str:
        digest = hashlib.md5(f"{self._seed}:{self._counter}".encode()).hexdigest()
        return f'"{digest}"'

    def __str__(self) -> str:
        return self._value
