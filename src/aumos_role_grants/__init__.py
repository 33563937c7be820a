"""aumos-role-grants — Role-based grant/deny authorization engine.

Permissions are atomic facts: a ROLE is granted or denied to a SUBJECT scope
on an OBJECT scope.  Questions are answered either over an in-memory list of
records or as a SQL predicate over a permissions table; both paths apply the
same rules.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import aumos_role_grants as rg
>>> rg.__version__
'0.1.0'
>>> store = rg.InMemoryPermissionStore()
>>> _ = store.grant("editor", to=rg.TypeWildcard("User"), on=rg.Entity("Task", 3))
>>> _ = store.deny("editor", to=rg.Entity("User", 7), on=rg.ALL)
>>> store.roles_granted(rg.MatchParams.build(subject=rg.Entity("User", 8), object=rg.Entity("Task", 3)))
['editor']
>>> store.roles_granted(rg.MatchParams.build(subject=rg.Entity("User", 7), object=rg.Entity("Task", 3)))
[]
"""
from __future__ import annotations

__version__: str = "0.1.0"

# ---------------------------------------------------------------------------
# Scopes
# ---------------------------------------------------------------------------
from aumos_role_grants.scope import (
    ALL,
    ALL_SCOPE,
    ANY,
    ANY_SCOPE,
    UNSET,
    AllScope,
    AnyOfType,
    AnyScope,
    Entity,
    Scope,
    TypeWildcard,
    Unset,
    Wildcard,
    meets_or_supersedes,
    scope_meets_or_supersedes,
)

# ---------------------------------------------------------------------------
# Permissions
# ---------------------------------------------------------------------------
from aumos_role_grants.permissions.record import PermissionRecord, Verb
from aumos_role_grants.permissions.params import MatchParams
from aumos_role_grants.permissions.loader import PermissionLoader

# ---------------------------------------------------------------------------
# Resolvers
# ---------------------------------------------------------------------------
from aumos_role_grants.resolvers.collection import (
    filter_applicable,
    filter_granted,
    granted,
    granted_on,
    granted_role,
    granted_to,
    roles_granted,
    roles_granted_on,
    roles_granted_to,
)
from aumos_role_grants.resolvers.predicate import PredicateResolver, build_granted_predicate

# ---------------------------------------------------------------------------
# Mutations and stores
# ---------------------------------------------------------------------------
from aumos_role_grants.mutations import (
    DeletePermissions,
    MutationResult,
    PermissionBatch,
    UpsertPermission,
)
from aumos_role_grants.store.memory import InMemoryPermissionStore
from aumos_role_grants.store.sql import SqlPermissionStore

# ---------------------------------------------------------------------------
# Configuration and errors
# ---------------------------------------------------------------------------
from aumos_role_grants.config import ConfigLoader, RoleGrantsConfig, StoreConfig
from aumos_role_grants.errors import (
    ConflictError,
    PermissionConfigError,
    RoleGrantsError,
    StoreConfigurationError,
    ValidationError,
)

__all__ = [
    "__version__",
    # Scopes
    "ALL",
    "ALL_SCOPE",
    "ANY",
    "ANY_SCOPE",
    "AllScope",
    "AnyOfType",
    "AnyScope",
    "Entity",
    "Scope",
    "TypeWildcard",
    "UNSET",
    "Unset",
    "Wildcard",
    "meets_or_supersedes",
    "scope_meets_or_supersedes",
    # Permissions
    "MatchParams",
    "PermissionLoader",
    "PermissionRecord",
    "Verb",
    # Resolvers
    "PredicateResolver",
    "build_granted_predicate",
    "filter_applicable",
    "filter_granted",
    "granted",
    "granted_on",
    "granted_role",
    "granted_to",
    "roles_granted",
    "roles_granted_on",
    "roles_granted_to",
    # Mutations and stores
    "DeletePermissions",
    "InMemoryPermissionStore",
    "MutationResult",
    "PermissionBatch",
    "SqlPermissionStore",
    "UpsertPermission",
    # Configuration and errors
    "ConfigLoader",
    "ConflictError",
    "PermissionConfigError",
    "RoleGrantsConfig",
    "RoleGrantsError",
    "StoreConfig",
    "StoreConfigurationError",
    "ValidationError",
]
