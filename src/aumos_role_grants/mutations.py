"""Grant, deny and revoke as store-independent operation descriptors.

Every mutation is planned here first, producing either an
:class:`UpsertPermission` (grant/deny: insert, or flip the verb of the row
with the same role and scopes) or a :class:`DeletePermissions` (revoke:
delete rows that literally equal the supplied fields).  Stores execute the
descriptors; :class:`PermissionBatch` collects several of them for a store
to run as one transaction.

Example
-------
::

    batch = (
        PermissionBatch()
        .grant("editor", to=Entity("User", 7), on=TypeWildcard("Task"))
        .deny("editor", to=Entity("User", 7), on=Entity("Task", 99))
        .revoke(role="viewer", from_=Entity("User", 7))
    )
    results = store.execute(batch)
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from aumos_role_grants.errors import RoleGrantsError, ValidationError
from aumos_role_grants.permissions.params import MatchParams
from aumos_role_grants.permissions.record import PermissionRecord, Verb, validate_record
from aumos_role_grants.scope import UNSET, Scope, Wildcard, as_scope


@dataclass(frozen=True)
class UpsertPermission:
    """Insert ``record``, or set its verb on the row with the same key."""

    record: PermissionRecord


@dataclass(frozen=True)
class DeletePermissions:
    """Delete every row that literally equals the constrained ``params``."""

    params: MatchParams


Operation = Union[UpsertPermission, DeletePermissions]


# ---------------------------------------------------------------------------
# MutationResult
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MutationResult:
    """Outcome of a grant, deny or revoke.

    Attributes
    ----------
    ok:
        Whether the mutation was carried out.
    record:
        The stored record for a successful grant/deny.
    count:
        Rows written (grant/deny) or deleted (revoke).  A revoke that
        matches nothing is a success with ``count == 0``.
    error:
        The failure, when ``ok`` is ``False``.
    """

    ok: bool
    record: PermissionRecord | None = None
    count: int = 0
    error: RoleGrantsError | None = None

    @classmethod
    def success(cls, record: PermissionRecord | None = None, count: int = 0) -> MutationResult:
        return cls(ok=True, record=record, count=count)

    @classmethod
    def failure(cls, error: RoleGrantsError) -> MutationResult:
        return cls(ok=False, error=error)

    def __bool__(self) -> bool:
        """Return True if the mutation succeeded."""
        return self.ok

    def unwrap(self) -> PermissionRecord | int:
        """Return the stored record (grant/deny) or the count (revoke).

        Raises
        ------
        RoleGrantsError
            The carried error, if the mutation failed.
        """
        if not self.ok:
            raise self.error or RoleGrantsError("mutation failed without an error")
        return self.record if self.record is not None else self.count


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------


def plan_upsert(
    verb: Verb,
    role: str,
    to: Scope | Wildcard,
    on: Scope | Wildcard,
) -> UpsertPermission:
    """Validate and describe a grant or deny.

    Raises
    ------
    ValidationError
        If the role is reserved or either scope is query-only.
    TypeError
        If ``to`` or ``on`` is not a scope value at all.
    """
    record = PermissionRecord(verb=verb, role=role, subject=as_scope(to), object=as_scope(on))
    validate_record(record)
    return UpsertPermission(record)


def plan_grant(role: str, to: Scope | Wildcard, on: Scope | Wildcard) -> UpsertPermission:
    """Describe granting ``role`` to ``to`` on ``on``."""
    return plan_upsert(Verb.GRANT, role, to, on)


def plan_deny(role: str, to: Scope | Wildcard, on: Scope | Wildcard) -> UpsertPermission:
    """Describe denying ``role`` to ``to`` on ``on``."""
    return plan_upsert(Verb.DENY, role, to, on)


def plan_revoke(
    params: MatchParams | None = None,
    *,
    role: str | Wildcard | None = None,
    from_: Scope | Wildcard | None = UNSET,
    on: Scope | Wildcard | None = UNSET,
) -> DeletePermissions:
    """Describe revoking every permission that literally matches.

    Either pass ready-made ``params`` or the ``role``/``from_``/``on``
    keywords.  Unset and ``ANY`` fields do not constrain; ``ALL`` only
    matches rows stored as ``ALL``.  Grant/deny precedence plays no part.
    """
    if params is None:
        params = MatchParams.build(role=role, subject=from_, object=on)
    elif role is not None or from_ is not UNSET or on is not UNSET:
        raise ValidationError("pass either params or role/from_/on keywords, not both")
    return DeletePermissions(params)


# ---------------------------------------------------------------------------
# PermissionBatch
# ---------------------------------------------------------------------------


@dataclass
class PermissionBatch:
    """Ordered list of operations to be executed atomically by a store.

    Builder methods validate eagerly and return the batch for chaining.
    """

    operations: list[Operation] = field(default_factory=list)

    def grant(self, role: str, to: Scope | Wildcard, on: Scope | Wildcard) -> PermissionBatch:
        self.operations.append(plan_grant(role, to, on))
        return self

    def deny(self, role: str, to: Scope | Wildcard, on: Scope | Wildcard) -> PermissionBatch:
        self.operations.append(plan_deny(role, to, on))
        return self

    def revoke(
        self,
        params: MatchParams | None = None,
        *,
        role: str | Wildcard | None = None,
        from_: Scope | Wildcard | None = UNSET,
        on: Scope | Wildcard | None = UNSET,
    ) -> PermissionBatch:
        self.operations.append(plan_revoke(params, role=role, from_=from_, on=on))
        return self

    def add(self, operation: Operation) -> PermissionBatch:
        """Append an already-planned operation."""
        self.operations.append(operation)
        return self

    def __len__(self) -> int:
        return len(self.operations)

    def __iter__(self):  # type: ignore[no-untyped-def]
        return iter(self.operations)
