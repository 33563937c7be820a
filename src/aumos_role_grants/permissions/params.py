"""MatchParams — the canonical filter consumed by both resolvers.

A MatchParams maps any of the five match fields (``role``,
``subject_type``, ``subject_id``, ``object_type``, ``object_id``) to a
concrete value, ``ALL`` or ``ANY``.  Fields that are absent behave exactly
like ``ANY``.

Example
-------
::

    params = MatchParams.build(role="editor", subject=Entity("User", 7), object=AnyOfType("Task"))
    dict(params)
    # {'role': 'editor', 'subject_type': 'User', 'subject_id': 7, 'object_type': 'Task'}
"""
from __future__ import annotations

from collections.abc import Iterator, Mapping

from aumos_role_grants.errors import ValidationError
from aumos_role_grants.permissions.record import MATCH_FIELDS, PermissionRecord
from aumos_role_grants.scope import (
    ANY,
    UNSET,
    FieldValue,
    Scope,
    Wildcard,
    as_scope,
    scope_fields,
)


class MatchParams(Mapping[str, FieldValue]):
    """Immutable mapping from match field name to filter value."""

    __slots__ = ("_fields",)

    def __init__(
        self,
        mapping: Mapping[str, FieldValue] | None = None,
        **fields: FieldValue,
    ) -> None:
        merged: dict[str, FieldValue] = dict(mapping or {})
        merged.update(fields)
        unknown = set(merged) - set(MATCH_FIELDS)
        if unknown:
            raise ValidationError(
                f"unknown match fields {sorted(unknown)}; known fields: {list(MATCH_FIELDS)}"
            )
        # Keep declaration order so predicates and reprs are stable.
        self._fields: dict[str, FieldValue] = {
            name: merged[name] for name in MATCH_FIELDS if name in merged
        }

    @classmethod
    def build(
        cls,
        role: str | Wildcard | None = None,
        subject: Scope | Wildcard | None = UNSET,
        object: Scope | Wildcard | None = UNSET,
    ) -> MatchParams:
        """Build params from a role and two scopes, dropping ``ANY`` fields."""
        fields: dict[str, FieldValue] = {}
        if role is not None:
            fields["role"] = role
        for prefix, value in (("subject", subject), ("object", object)):
            pair = scope_fields(as_scope(value))
            if pair is None:
                continue
            fields[f"{prefix}_type"], fields[f"{prefix}_id"] = pair
        return cls({name: value for name, value in fields.items() if value is not ANY})

    @classmethod
    def for_record(cls, record: PermissionRecord) -> MatchParams:
        """Return params that target exactly ``record``'s fields."""
        return cls(dict(zip(MATCH_FIELDS, record.key)))

    def with_fields(self, **fields: FieldValue) -> MatchParams:
        """Return a copy with ``fields`` added or replaced."""
        return MatchParams(self._fields, **fields)

    def get(self, name: str, default: FieldValue = ANY) -> FieldValue:  # type: ignore[override]
        return self._fields.get(name, default)

    def constrained(self) -> dict[str, FieldValue]:
        """Return only the fields that actually constrain (not ``ANY``)."""
        return {name: value for name, value in self._fields.items() if value is not ANY}

    # ------------------------------------------------------------------
    # Mapping protocol
    # ------------------------------------------------------------------

    def __getitem__(self, name: str) -> FieldValue:
        return self._fields[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __repr__(self) -> str:
        inner = ", ".join(f"{name}={value!r}" for name, value in self._fields.items())
        return f"MatchParams({inner})"
