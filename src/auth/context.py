"""Request-scoped identity resolved before any file operation runs."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AuthContext:
    tenant_id: str
    user_id: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None
