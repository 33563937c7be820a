"""Scope values and the matching primitive shared by both resolvers.

A permission applies to a SUBJECT scope ("who") and an OBJECT scope ("what").
Each scope is stored as two fields, a type and an id, either of which may be
the ``ALL`` sentinel.  Filters may additionally use ``ANY`` to leave a field
unconstrained.

Stored scopes
-------------
- ``AllScope``          — ``(ALL, ALL)``: every identity of every type
- ``TypeWildcard(T)``   — ``(T, ALL)``: every identity of type ``T``
- ``Entity(T, id)``     — ``(T, id)``: exactly one identity

Query-only scopes
-----------------
- ``AnyScope``          — ``(ANY, ANY)``: ignore this dimension
- ``AnyOfType(T)``      — ``(T, ANY)``: any breadth of scope within ``T``
- ``Unset``             — no fields at all; behaves like ``AnyScope`` in filters

Example
-------
::

    from aumos_role_grants.scope import Entity, TypeWildcard, scope_meets_or_supersedes

    assert scope_meets_or_supersedes(TypeWildcard("User"), Entity("User", 7))
    assert not scope_meets_or_supersedes(Entity("User", 7), Entity("User", 8))
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Union


class Wildcard(Enum):
    """Field-level sentinels.

    A plain ``Enum`` (not ``str``-based) so that neither member compares
    equal to any type token, id or role name.
    """

    ALL = "all"
    ANY = "any"

    def __repr__(self) -> str:
        return self.name


ALL = Wildcard.ALL
ANY = Wildcard.ANY

ScopeId = Union[int, str, uuid.UUID]
FieldValue = Union[str, int, uuid.UUID, Wildcard]


# ---------------------------------------------------------------------------
# Scope variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Unset:
    """No constraint; contributes no fields."""

    def __str__(self) -> str:
        return "unset"


@dataclass(frozen=True)
class AllScope:
    """Every identity of every type."""

    def __str__(self) -> str:
        return "all"


@dataclass(frozen=True)
class AnyScope:
    """Query-only: do not constrain this dimension."""

    def __str__(self) -> str:
        return "any"


@dataclass(frozen=True)
class AnyOfType:
    """Query-only: constrain to ``type`` but accept any breadth within it."""

    type: str

    def __str__(self) -> str:
        return f"any {self.type}"


@dataclass(frozen=True)
class TypeWildcard:
    """Every identity of ``type``."""

    type: str

    def __str__(self) -> str:
        return self.type


@dataclass(frozen=True)
class Entity:
    """Exactly one identity."""

    type: str
    id: ScopeId

    def __str__(self) -> str:
        return f"{self.type} {self.id}"


Scope = Union[Unset, AllScope, AnyScope, AnyOfType, TypeWildcard, Entity]

UNSET = Unset()
ALL_SCOPE = AllScope()
ANY_SCOPE = AnyScope()


# ---------------------------------------------------------------------------
# Conversions
# ---------------------------------------------------------------------------


def as_scope(value: Scope | Wildcard | None) -> Scope:
    """Return ``value`` as a Scope, accepting the bare sentinels and ``None``.

    Raises
    ------
    TypeError
        If ``value`` is neither a Scope variant, a sentinel, nor ``None``.
    """
    match value:
        case None:
            return UNSET
        case Wildcard.ALL:
            return ALL_SCOPE
        case Wildcard.ANY:
            return ANY_SCOPE
        case Unset() | AllScope() | AnyScope() | AnyOfType() | TypeWildcard() | Entity():
            return value
        case _:
            raise TypeError(
                f"Expected a scope value (Entity, TypeWildcard, ALL, ...); got {value!r}."
            )


def scope_fields(scope: Scope) -> tuple[FieldValue, FieldValue] | None:
    """Split a scope into its ``(type, id)`` field values.

    Returns ``None`` for ``Unset``, which contributes nothing to a filter.
    """
    match scope:
        case Unset():
            return None
        case AllScope():
            return (ALL, ALL)
        case AnyScope():
            return (ANY, ANY)
        case AnyOfType(type=type_):
            return (type_, ANY)
        case TypeWildcard(type=type_):
            return (type_, ALL)
        case Entity(type=type_, id=id_):
            return (type_, id_)
    raise TypeError(f"Not a scope: {scope!r}")


def scope_from_fields(type_value: FieldValue, id_value: FieldValue) -> Scope:
    """Rebuild a stored scope from its two field values.

    Raises
    ------
    ValueError
        If the pair is not a storable combination (e.g. ``(ALL, 7)`` or
        anything containing ``ANY``).
    """
    match (type_value, id_value):
        case (Wildcard.ALL, Wildcard.ALL):
            return ALL_SCOPE
        case (str() as type_, Wildcard.ALL):
            return TypeWildcard(type_)
        case (str() as type_, int() | str() | uuid.UUID() as id_):
            return Entity(type_, id_)
    raise ValueError(f"Not a storable scope: type={type_value!r} id={id_value!r}")


def is_storable(scope: Scope) -> bool:
    """Return True if ``scope`` may appear on a stored permission."""
    match scope:
        case AllScope() | TypeWildcard() | Entity():
            return True
        case _:
            return False


# ---------------------------------------------------------------------------
# Matching primitive
# ---------------------------------------------------------------------------


def exact_equal(stored: FieldValue, wanted: FieldValue) -> bool:
    """Literal equality; ``ALL`` is compared as an ordinary value."""
    return stored == wanted


def meets_or_supersedes(stored: FieldValue, wanted: FieldValue) -> bool:
    """Return True if a stored field value applies to a wanted value.

    The comparison is asymmetric: the stored value may be broader than the
    wanted one, never narrower.
    """
    if wanted is ANY:
        return True
    if stored is ALL:
        return True
    return stored == wanted


def scope_meets_or_supersedes(stored: Scope, wanted: Scope) -> bool:
    """Scope-level form of :func:`meets_or_supersedes`.

    ``TypeWildcard(T)`` covers ``Entity(T, id)`` and ``AnyOfType(T)``;
    ``AllScope`` covers everything; ``Unset``/``AnyScope`` are covered by
    everything.
    """
    wanted_fields = scope_fields(wanted)
    if wanted_fields is None:
        return True
    stored_fields = scope_fields(stored)
    if stored_fields is None:
        return False
    return all(
        meets_or_supersedes(s, w) for s, w in zip(stored_fields, wanted_fields)
    )
