from __future__ import annotations

from typing import Protocol

from auth.context import AuthContext
from schema.files import FileRecord


class DeletePolicy(Protocol):
    """Decides whether the caller may delete a file."""

    def can_delete(self, context: AuthContext, record: FileRecord) -> bool: ...


class AllowAllDeletePolicy:
    """
    Grants every delete, authenticated or anonymous.
    Placeholder until files carry an owner; swap the policy on ``app.state``.
    """

    def can_delete(self, context: AuthContext, record: FileRecord) -> bool:
        return True
