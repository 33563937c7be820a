"""In-memory implementation of the permission store."""
from __future__ import annotations

import logging
import threading

from aumos_role_grants.errors import ValidationError
from aumos_role_grants.mutations import (
    DeletePermissions,
    MutationResult,
    Operation,
    PermissionBatch,
    UpsertPermission,
    plan_deny,
    plan_grant,
    plan_revoke,
)
from aumos_role_grants.permissions.params import MatchParams
from aumos_role_grants.permissions.record import PermissionRecord, validate_record
from aumos_role_grants.resolvers import collection
from aumos_role_grants.scope import UNSET, Scope, Wildcard, exact_equal

logger = logging.getLogger(__name__)


class InMemoryPermissionStore:
    """Keep permissions in a local list.

    Useful for tests or when no database is configured.  Data is not
    persisted across process restarts.  All access goes through a lock, so
    the store may be shared between threads.

    Parameters
    ----------
    records:
        Optional initial permissions; later duplicates of the same key
        replace earlier ones.

    Raises
    ------
    ValidationError
        If an initial record cannot be stored.
    """

    def __init__(self, records: list[PermissionRecord] | None = None) -> None:
        self._records: list[PermissionRecord] = []
        self._lock = threading.Lock()
        for record in records or []:
            validate_record(record)
            self._upsert(self._records, record)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def grant(self, role: str, to: Scope | Wildcard, on: Scope | Wildcard) -> MutationResult:
        try:
            operation = plan_grant(role, to, on)
        except ValidationError as exc:
            return MutationResult.failure(exc)
        return self._apply_one(operation)

    def deny(self, role: str, to: Scope | Wildcard, on: Scope | Wildcard) -> MutationResult:
        try:
            operation = plan_deny(role, to, on)
        except ValidationError as exc:
            return MutationResult.failure(exc)
        return self._apply_one(operation)

    def revoke(
        self,
        params: MatchParams | None = None,
        *,
        role: str | Wildcard | None = None,
        from_: Scope | Wildcard | None = UNSET,
        on: Scope | Wildcard | None = UNSET,
    ) -> MutationResult:
        try:
            operation = plan_revoke(params, role=role, from_=from_, on=on)
        except ValidationError as exc:
            return MutationResult.failure(exc)
        return self._apply_one(operation)

    def execute(self, batch: PermissionBatch) -> list[MutationResult]:
        """Apply ``batch`` to a copy and swap it in once every step succeeded.

        Raises
        ------
        ValidationError
            If any upsert holds a record that cannot be stored; nothing is changed.
        """
        for operation in batch:
            if isinstance(operation, UpsertPermission):
                validate_record(operation.record)
        with self._lock:
            working = list(self._records)
            results = [self._apply(working, operation) for operation in batch]
            self._records = working
        logger.info("Executed batch of %d permission operations", len(results))
        return results

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def all(self) -> list[PermissionRecord]:
        with self._lock:
            return list(self._records)

    def roles_granted(self, params: MatchParams | None = None) -> list[str]:
        return collection.roles_granted(self.all(), params)

    def granted(self, params: MatchParams | None = None) -> bool:
        return collection.granted(self.all(), params)

    def load_applicable_to(self, subject: Scope | Wildcard) -> list[PermissionRecord]:
        return collection.filter_applicable(self.all(), MatchParams.build(subject=subject))

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _apply_one(self, operation: Operation) -> MutationResult:
        with self._lock:
            return self._apply(self._records, operation)

    def _apply(self, records: list[PermissionRecord], operation: Operation) -> MutationResult:
        match operation:
            case UpsertPermission(record=record):
                stored = self._upsert(records, record)
                logger.info("Stored permission: %s", stored)
                return MutationResult.success(record=stored, count=1)
            case DeletePermissions(params=params):
                count = self._delete(records, params)
                logger.info("Revoked %d permission(s) matching %r", count, params)
                return MutationResult.success(count=count)
        raise TypeError(f"Unknown permission operation: {operation!r}")

    @staticmethod
    def _upsert(records: list[PermissionRecord], record: PermissionRecord) -> PermissionRecord:
        for index, existing in enumerate(records):
            if existing.key == record.key:
                records[index] = existing.with_verb(record.verb)
                return records[index]
        records.append(record)
        return record

    @staticmethod
    def _delete(records: list[PermissionRecord], params: MatchParams) -> int:
        constrained = params.constrained()
        keep = [
            record
            for record in records
            if not all(
                exact_equal(record.field(name), value) for name, value in constrained.items()
            )
        ]
        count = len(records) - len(keep)
        records[:] = keep
        return count
