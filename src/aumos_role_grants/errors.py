"""Exception hierarchy for aumos-role-grants.

Expected outcomes (no matching permission, a revoke that deletes nothing)
are ordinary return values.  Exceptions are reserved for input that can
never be stored and for store configuration problems.
"""
from __future__ import annotations


class RoleGrantsError(Exception):
    """Base class for all aumos-role-grants errors."""


class ValidationError(RoleGrantsError, ValueError):
    """Raised when a permission or filter uses a value it may not hold.

    Examples are a grant scoped with a query-only marker (``ANY`` or
    ``AnyOfType``), or a role spelled as one of the reserved sentinels.

    Attributes
    ----------
    field_name:
        The offending field, when known.
    """

    def __init__(self, message: str, field_name: str | None = None) -> None:
        self.field_name = field_name
        prefix = f"{field_name}: " if field_name else ""
        super().__init__(f"{prefix}{message}")


class ConflictError(RoleGrantsError):
    """Raised when the store rejects a write on the uniqueness constraint.

    Grants and denies are always written as upserts, so this only surfaces
    when the backing table does not carry the expected unique constraint.
    """


class StoreConfigurationError(RoleGrantsError):
    """Raised when a store cannot support the operations the engine needs."""


class PermissionConfigError(ValidationError):
    """Raised when a permission snapshot file is malformed or invalid.

    Attributes
    ----------
    config_path:
        The path to the file that caused the error, if known.
    """

    def __init__(self, message: str, config_path: str | None = None) -> None:
        self.config_path = config_path
        prefix = f"[{config_path}] " if config_path else ""
        super().__init__(f"{prefix}{message}")
