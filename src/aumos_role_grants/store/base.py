"""Store abstraction for persisted permissions."""
from __future__ import annotations

from typing import Protocol

from aumos_role_grants.mutations import MutationResult, PermissionBatch
from aumos_role_grants.permissions.params import MatchParams
from aumos_role_grants.permissions.record import PermissionRecord
from aumos_role_grants.scope import UNSET, Scope, Wildcard


class PermissionStore(Protocol):
    """Protocol for permission persistence backends."""

    def grant(self, role: str, to: Scope | Wildcard, on: Scope | Wildcard) -> MutationResult:
        """Insert a grant, or flip an existing deny with the same key."""

    def deny(self, role: str, to: Scope | Wildcard, on: Scope | Wildcard) -> MutationResult:
        """Insert a deny, or flip an existing grant with the same key."""

    def revoke(
        self,
        params: MatchParams | None = None,
        *,
        role: str | Wildcard | None = None,
        from_: Scope | Wildcard | None = UNSET,
        on: Scope | Wildcard | None = UNSET,
    ) -> MutationResult:
        """Delete every permission that literally matches."""

    def execute(self, batch: PermissionBatch) -> list[MutationResult]:
        """Apply every operation of ``batch`` atomically."""

    def all(self) -> list[PermissionRecord]:
        """Return every stored permission."""

    def roles_granted(self, params: MatchParams | None = None) -> list[str]:
        """Return the sorted role names granted under ``params``."""

    def granted(self, params: MatchParams | None = None) -> bool:
        """Return True if any role is granted under ``params``."""

    def load_applicable_to(self, subject: Scope | Wildcard) -> list[PermissionRecord]:
        """Return every grant and deny that applies to ``subject``."""
