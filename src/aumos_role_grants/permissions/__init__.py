"""Permission records, match parameters and YAML snapshots.

Example
-------
::

    from aumos_role_grants.permissions import MatchParams, PermissionLoader

    records = PermissionLoader().load("permissions.yaml")
    params = MatchParams.build(role="editor", subject=Entity("User", 7))
"""
from __future__ import annotations

from aumos_role_grants.permissions.loader import PermissionLoader
from aumos_role_grants.permissions.params import MatchParams
from aumos_role_grants.permissions.record import (
    MATCH_FIELDS,
    ROLE_FIELD,
    SCOPE_FIELDS,
    PermissionRecord,
    Verb,
    validate_record,
)

__all__ = [
    # Core types
    "MATCH_FIELDS",
    "ROLE_FIELD",
    "SCOPE_FIELDS",
    "PermissionRecord",
    "Verb",
    "validate_record",
    # Filters
    "MatchParams",
    # Loader
    "PermissionLoader",
]
