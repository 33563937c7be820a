"""Collection resolver — grant/deny resolution over an in-memory list.

This is the reference semantics.  :mod:`aumos_role_grants.resolvers.predicate`
expresses the same rules as a SQL predicate and must agree with this module
on every input.

Resolution
----------
1. A record *applies* to a filter when every filter field is met or
   superseded by the record's stored field (see
   :func:`~aumos_role_grants.scope.meets_or_supersedes`).
2. An applicable grant survives unless some deny record of the same role
   covers the point at which the grant is being evaluated.  For each scope
   field that point is the filter value when the grant is stored as ``ALL``
   and the filter names something, otherwise the grant's own stored value.
   A deny on ``User 7`` therefore suppresses a type-wide ``User`` grant for
   User 7 only, and never a grant recorded for User 8.

Example
-------
::

    records = [
        PermissionRecord(Verb.GRANT, "viewer", TypeWildcard("User"), ALL_SCOPE),
        PermissionRecord(Verb.DENY, "viewer", Entity("User", 7), ALL_SCOPE),
    ]
    roles_granted(records, MatchParams.build(subject=Entity("User", 7)))  # []
    roles_granted(records, MatchParams.build(subject=Entity("User", 8)))  # ['viewer']
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from aumos_role_grants.permissions.params import MatchParams
from aumos_role_grants.permissions.record import SCOPE_FIELDS, PermissionRecord, Verb
from aumos_role_grants.scope import (
    ALL,
    ANY,
    UNSET,
    FieldValue,
    Scope,
    Wildcard,
    meets_or_supersedes,
)

logger = logging.getLogger(__name__)

ParamsLike = MatchParams | Mapping[str, FieldValue] | None


def _as_params(params: ParamsLike) -> MatchParams:
    if isinstance(params, MatchParams):
        return params
    return MatchParams(params or {})


def _applies(record: PermissionRecord, params: MatchParams) -> bool:
    return all(
        meets_or_supersedes(record.field(name), wanted) for name, wanted in params.items()
    )


def evaluation_point(stored: FieldValue, wanted: FieldValue) -> FieldValue:
    """Return the value a grant is evaluated at for one scope field.

    ``stored`` is the grant's field, ``wanted`` the filter's (or ``ANY``).
    The grant must already apply to the filter.
    """
    if wanted is ANY or stored is not ALL:
        return stored
    return wanted


def _overrides(deny: PermissionRecord, grant: PermissionRecord, params: MatchParams) -> bool:
    if deny.verb is not Verb.DENY or deny.role != grant.role:
        return False
    return all(
        meets_or_supersedes(
            deny.field(name), evaluation_point(grant.field(name), params.get(name))
        )
        for name in SCOPE_FIELDS
    )


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------


def filter_applicable(
    records: Iterable[PermissionRecord], params: ParamsLike = None
) -> list[PermissionRecord]:
    """Return the records that apply to ``params``, grants and denies alike."""
    match_params = _as_params(params)
    return [record for record in records if _applies(record, match_params)]


def filter_granted(
    records: Iterable[PermissionRecord], params: ParamsLike = None
) -> list[PermissionRecord]:
    """Return applicable grant records not overridden by a deny.

    Deny records are drawn from the full ``records`` collection, not only
    from the applicable subset.
    """
    match_params = _as_params(params)
    all_records = list(records)
    denies = [record for record in all_records if record.verb is Verb.DENY]

    granted: list[PermissionRecord] = []
    for grant in filter_applicable(all_records, match_params):
        if grant.verb is not Verb.GRANT:
            continue
        overriding = next(
            (deny for deny in denies if _overrides(deny, grant, match_params)), None
        )
        if overriding is not None:
            logger.debug("Grant overridden: %s by %s", grant, overriding)
            continue
        granted.append(grant)
    return granted


def roles_granted(
    records: Iterable[PermissionRecord], params: ParamsLike = None
) -> list[str]:
    """Return the sorted, de-duplicated role names granted under ``params``."""
    return sorted({record.role for record in filter_granted(records, params)})


def granted(records: Iterable[PermissionRecord], params: ParamsLike = None) -> bool:
    """Return True if any grant survives under ``params``."""
    return bool(filter_granted(records, params))


# ---------------------------------------------------------------------------
# Convenience forms
# ---------------------------------------------------------------------------


def granted_role(
    records: Iterable[PermissionRecord],
    role: str | Wildcard,
    to: Scope | Wildcard | None = UNSET,
    on: Scope | Wildcard | None = UNSET,
) -> bool:
    """Return True if ``role`` is granted, optionally to/on the given scopes."""
    return granted(records, MatchParams.build(role=role, subject=to, object=on))


def granted_to(
    records: Iterable[PermissionRecord],
    subject: Scope | Wildcard,
    role: str | Wildcard | None = None,
    on: Scope | Wildcard | None = UNSET,
) -> bool:
    """Return True if anything (or ``role``) is granted to ``subject``."""
    return granted(records, MatchParams.build(role=role, subject=subject, object=on))


def granted_on(
    records: Iterable[PermissionRecord],
    object: Scope | Wildcard,
    role: str | Wildcard | None = None,
    to: Scope | Wildcard | None = UNSET,
) -> bool:
    """Return True if anything (or ``role``) is granted on ``object``."""
    return granted(records, MatchParams.build(role=role, subject=to, object=object))


def roles_granted_to(
    records: Iterable[PermissionRecord],
    subject: Scope | Wildcard,
    on: Scope | Wildcard | None = UNSET,
) -> list[str]:
    """Return the roles granted to ``subject``."""
    return roles_granted(records, MatchParams.build(subject=subject, object=on))


def roles_granted_on(
    records: Iterable[PermissionRecord],
    object: Scope | Wildcard,
    to: Scope | Wildcard | None = UNSET,
) -> list[str]:
    """Return the roles granted on ``object``."""
    return roles_granted(records, MatchParams.build(subject=to, object=object))
