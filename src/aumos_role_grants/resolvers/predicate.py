"""Predicate resolver — the collection resolver's rules as a SQL clause.

Builds SQLAlchemy boolean clauses over a permissions table with the row
shape ``verb, role, subject_type, subject_id, object_type, object_id``.
The clauses are plain ``ColumnElement[bool]`` values: they can be passed to
``select().where()``, ``delete().where()``, or embedded inside further
joins and subqueries.

The deny check is a correlated ``NOT EXISTS`` over an alias of the same
table.  Each scope field of a deny is compared against the grant's
evaluation point, not just the grant row: the filter value is bound as a
literal wherever the filter is set, and the correlated row column is used
only where the filter is ``ANY``.  A deny of ``User 7`` therefore hides a
``User``-wide grant when asking about User 7, while the same grant stays
listed when asking about every user.  The results match
:mod:`aumos_role_grants.resolvers.collection` for the same filter, and the
clause still references its outer query only through the correlated row, so
it stays valid when wrapped by an outer query or by ``where_granted_to`` /
``where_granted_on``.

Example
-------
::

    resolver = PredicateResolver(permissions_table)
    query = (
        select(permissions_table.c.role)
        .where(resolver.granted(MatchParams.build(subject=Entity("User", 7))))
        .distinct()
    )
"""
from __future__ import annotations

import logging
from collections.abc import Mapping

from sqlalchemy import ColumnElement, Select, String, Table, and_, cast, or_, select, true
from sqlalchemy.sql.expression import FromClause

from aumos_role_grants.permissions.params import MatchParams
from aumos_role_grants.permissions.record import MATCH_FIELDS, SCOPE_FIELDS, Verb
from aumos_role_grants.resolvers.collection import ParamsLike
from aumos_role_grants.scope import ALL, ANY

logger = logging.getLogger(__name__)


def _as_params(params: ParamsLike) -> MatchParams:
    if isinstance(params, MatchParams):
        return params
    return MatchParams(params or {})


def _meets(column: ColumnElement, wanted: object) -> ColumnElement[bool] | None:
    """SQL form of ``meets_or_supersedes(column, wanted)``.

    ``wanted`` may be a literal, a sentinel, or another column expression.
    """
    if wanted is ANY:
        return None
    if wanted is ALL:
        return column == ALL
    return or_(column == ALL, column == wanted)


class PredicateResolver:
    """Builds grant/deny predicates for one permissions table.

    Parameters
    ----------
    table:
        The permissions table (see
        :func:`aumos_role_grants.store.schema.build_permission_table`).
    """

    def __init__(self, table: Table) -> None:
        self._table = table

    @property
    def table(self) -> Table:
        return self._table

    # ------------------------------------------------------------------
    # Public predicates
    # ------------------------------------------------------------------

    def applicable(self, params: ParamsLike = None, row: FromClause | None = None) -> ColumnElement[bool]:
        """Rows whose stored fields meet or supersede every filter field."""
        return self._applicable(_as_params(params), self._row(row))

    def granted(self, params: ParamsLike = None, row: FromClause | None = None) -> ColumnElement[bool]:
        """Applicable grant rows not overridden by a deny row.

        Parameters
        ----------
        params:
            Filter fields; absent fields behave as ``ANY``.
        row:
            The table or alias the predicate is evaluated against. Defaults
            to the resolver's table.
        """
        match_params = _as_params(params)
        logger.debug("Building granted predicate for %r", match_params)
        return self._granted(match_params, self._row(row))

    def equal(self, params: ParamsLike = None) -> ColumnElement[bool]:
        """Rows whose fields literally equal every constrained filter field.

        ``ANY`` fields do not constrain; ``ALL`` is matched literally.
        """
        match_params = _as_params(params)
        clauses = [
            self._table.c[name] == value for name, value in match_params.constrained().items()
        ]
        return and_(true(), *clauses)

    # ------------------------------------------------------------------
    # Query helpers
    # ------------------------------------------------------------------

    def select_granted(self, params: ParamsLike = None) -> Select:
        """Select every surviving grant row."""
        return select(self._table).where(self.granted(params))

    def select_roles_granted(self, params: ParamsLike = None) -> Select:
        """Select the distinct granted role names in ascending order."""
        role = self._table.c.role
        return select(role).where(self.granted(params)).distinct().order_by(role)

    def where_granted_to(
        self,
        query: Select,
        id_column: ColumnElement,
        subject_type: str,
        params: ParamsLike = None,
    ) -> Select:
        """Narrow ``query`` to entities that are the subject of a granted role.

        Each row of ``query`` is treated as ``Entity(subject_type, id)``, with
        its id taken from ``id_column``.  Role and object scope come from
        ``params``.

        Example
        -------
        ::

            # users holding "editor" on task 3
            resolver.where_granted_to(
                select(users), users.c.id, "User",
                MatchParams.build(role="editor", object=Entity("Task", 3)),
            )
        """
        return self._where_granted_entity(query, id_column, "subject", subject_type, params)

    def where_granted_on(
        self,
        query: Select,
        id_column: ColumnElement,
        object_type: str,
        params: ParamsLike = None,
    ) -> Select:
        """Narrow ``query`` to entities that are the object of a granted role."""
        return self._where_granted_entity(query, id_column, "object", object_type, params)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _row(self, row: FromClause | None) -> FromClause:
        return self._table if row is None else row

    def _where_granted_entity(
        self,
        query: Select,
        id_column: ColumnElement,
        prefix: str,
        entity_type: str,
        params: ParamsLike,
    ) -> Select:
        values: dict[str, object] = dict(_as_params(params))
        values[f"{prefix}_type"] = entity_type
        # Stored ids are strings; compare against the entity id rendered the same way.
        values[f"{prefix}_id"] = cast(id_column, String)
        permission = self._table
        matching = (
            select(permission.c.id)
            .where(self._granted(values, permission))
            .correlate_except(permission)
        )
        return query.where(matching.exists())

    def _applicable(self, values: Mapping[str, object], row: FromClause) -> ColumnElement[bool]:
        clauses = [
            clause
            for name in MATCH_FIELDS
            if (clause := _meets(row.c[name], values.get(name, ANY))) is not None
        ]
        return and_(true(), *clauses)

    def _granted(self, values: Mapping[str, object], row: FromClause) -> ColumnElement[bool]:
        return and_(
            row.c.verb == Verb.GRANT,
            self._applicable(values, row),
            ~self._overriding_deny(values, row),
        )

    def _overriding_deny(self, values: Mapping[str, object], row: FromClause) -> ColumnElement[bool]:
        """``EXISTS`` a deny of the row's role covering the row's evaluation point."""
        deny = self._table.alias("deny")
        conditions: list[ColumnElement[bool]] = [
            deny.c.verb == Verb.DENY,
            deny.c.role == row.c.role,
        ]
        for name in SCOPE_FIELDS:
            wanted = values.get(name, ANY)
            # ANY leaves the grant's own value as the point; otherwise the grant
            # already applies, so the filter value is the narrower of the two.
            target = row.c[name] if wanted is ANY else wanted
            clause = _meets(deny.c[name], target)
            if clause is not None:
                conditions.append(clause)
        return select(deny.c.id).where(*conditions).correlate_except(deny).exists()


def build_granted_predicate(table: Table, params: ParamsLike = None) -> ColumnElement[bool]:
    """Module-level shortcut for ``PredicateResolver(table).granted(params)``."""
    return PredicateResolver(table).granted(params)
