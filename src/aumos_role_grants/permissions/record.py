"""PermissionRecord — the atomic grant/deny fact.

A permission is the intersection of four pieces of information:

- verb    — ``grant`` or ``deny``
- role    — the role being granted or denied
- subject — the scope holding the role ("who")
- object  — the scope the role is held on ("what")

For example, "grant admin to User 42 on all Tasks" is::

    PermissionRecord(
        verb=Verb.GRANT,
        role="admin",
        subject=Entity("User", 42),
        object=TypeWildcard("Task"),
    )

A deny record of the same role overrides any grant it covers.  Given the
grant above and ``deny admin to all on Task 99``, User 42 holds ``admin`` on
Task 123 but never on Task 99.
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from aumos_role_grants.errors import ValidationError
from aumos_role_grants.scope import (
    ALL,
    Entity,
    FieldValue,
    Scope,
    TypeWildcard,
    Wildcard,
    is_storable,
    scope_fields,
    scope_from_fields,
)

ROLE_FIELD = "role"
SCOPE_FIELDS: tuple[str, ...] = ("subject_type", "subject_id", "object_type", "object_id")
MATCH_FIELDS: tuple[str, ...] = (ROLE_FIELD, *SCOPE_FIELDS)

# Plain-data spelling of the ALL sentinel; reserved, so no real type or id may use it.
ALL_SPELLING = "all"


class Verb(str, Enum):
    """The two kinds of permission fact."""

    GRANT = "grant"
    DENY = "deny"


@dataclass(frozen=True)
class PermissionRecord:
    """A single stored grant or deny.

    Attributes
    ----------
    verb:
        ``Verb.GRANT`` or ``Verb.DENY``.
    role:
        Role name token.
    subject:
        Stored scope the role is granted/denied to.
    object:
        Stored scope the role is granted/denied on.
    """

    verb: Verb
    role: str
    subject: Scope
    object: Scope

    # ------------------------------------------------------------------
    # Field access
    # ------------------------------------------------------------------

    @property
    def subject_type(self) -> FieldValue:
        return self._fields(self.subject)[0]

    @property
    def subject_id(self) -> FieldValue:
        return self._fields(self.subject)[1]

    @property
    def object_type(self) -> FieldValue:
        return self._fields(self.object)[0]

    @property
    def object_id(self) -> FieldValue:
        return self._fields(self.object)[1]

    def field(self, name: str) -> FieldValue:
        """Return the value of one of the five match fields by name."""
        if name == ROLE_FIELD:
            return self.role
        if name not in SCOPE_FIELDS:
            raise KeyError(name)
        return getattr(self, name)

    @property
    def key(self) -> tuple[FieldValue, ...]:
        """Upsert identity: everything except the verb."""
        return tuple(self.field(name) for name in MATCH_FIELDS)

    @property
    def identity(self) -> tuple[FieldValue, ...]:
        """The full six-field tuple."""
        return (self.verb, *self.key)

    def with_verb(self, verb: Verb) -> PermissionRecord:
        """Return a copy carrying ``verb``."""
        return replace(self, verb=verb)

    @staticmethod
    def _fields(scope: Scope) -> tuple[FieldValue, FieldValue]:
        fields = scope_fields(scope)
        if fields is None:
            raise ValidationError("stored scope must not be unset")
        return fields

    # ------------------------------------------------------------------
    # Plain-data form
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, object]:
        """Return a plain dict; the ``ALL`` sentinel is spelled :data:`ALL_SPELLING`."""
        data: dict[str, object] = {"verb": self.verb.value}
        for name in MATCH_FIELDS:
            value = self.field(name)
            data[name] = ALL_SPELLING if value is ALL else value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> PermissionRecord:
        """Build and validate a record from a plain dict.

        Scope fields missing from ``data`` default to ``"all"``; a type with
        no id is a type-wide scope.

        Raises
        ------
        ValidationError
            If the verb is unknown or the result fails :func:`validate_record`.
        """
        raw_verb = str(data.get("verb", ""))
        try:
            verb = Verb(raw_verb.lower())
        except ValueError as exc:
            raise ValidationError(
                f"must be 'grant' or 'deny'; got {raw_verb!r}", "verb"
            ) from exc

        role = data.get("role")
        subject = _scope_from_plain(data.get("subject_type"), data.get("subject_id"), "subject")
        object_ = _scope_from_plain(data.get("object_type"), data.get("object_id"), "object")
        record = cls(verb=verb, role=role, subject=subject, object=object_)  # type: ignore[arg-type]
        validate_record(record)
        return record

    def __str__(self) -> str:
        return f"{self.verb.value} {self.role} to {self.subject} on {self.object}"


def _scope_from_plain(type_value: object, id_value: object, prefix: str) -> Scope:
    type_value = ALL if type_value in (None, ALL_SPELLING) else type_value
    id_value = ALL if id_value in (None, ALL_SPELLING) else id_value
    try:
        return scope_from_fields(type_value, id_value)  # type: ignore[arg-type]
    except ValueError as exc:
        raise ValidationError(str(exc), prefix) from exc


def validate_record(record: PermissionRecord) -> None:
    """Check that ``record`` may be stored.

    Raises
    ------
    ValidationError
        If the verb is not a :class:`Verb`, the role is not a plain non-empty
        string, either scope uses a query-only marker, or a type or id is the
        reserved :data:`ALL_SPELLING`.
    """
    if not isinstance(record.verb, Verb):
        raise ValidationError(f"must be a Verb; got {record.verb!r}", "verb")

    if isinstance(record.role, Wildcard):
        raise ValidationError(f"{record.role!r} is reserved and cannot name a role", "role")
    if not isinstance(record.role, str) or not record.role:
        raise ValidationError(f"must be a non-empty string; got {record.role!r}", "role")

    for name, scope in (("subject", record.subject), ("object", record.object)):
        if not is_storable(scope):
            raise ValidationError(
                f"{scope!r} is query-only; stored scopes must be ALL, a type or an entity",
                name,
            )
        if isinstance(scope, (TypeWildcard, Entity)) and not scope.type:
            raise ValidationError("type must be a non-empty string", name)
        if isinstance(scope, (TypeWildcard, Entity)) and scope.type == ALL_SPELLING:
            raise ValidationError(f"type {ALL_SPELLING!r} is reserved for ALL", name)
        if isinstance(scope, Entity) and scope.id == ALL_SPELLING:
            raise ValidationError(f"id {ALL_SPELLING!r} is reserved for ALL", name)

