"""Permission stores: an in-memory list and a SQLAlchemy-backed table."""
from __future__ import annotations

from aumos_role_grants.store.base import PermissionStore
from aumos_role_grants.store.memory import InMemoryPermissionStore
from aumos_role_grants.store.schema import (
    ScopeValueType,
    build_permission_table,
    record_from_row,
    record_to_values,
)
from aumos_role_grants.store.sql import SqlPermissionStore

__all__ = [
    "InMemoryPermissionStore",
    "PermissionStore",
    "ScopeValueType",
    "SqlPermissionStore",
    "build_permission_table",
    "record_from_row",
    "record_to_values",
]
