"""SQLAlchemy implementation of the permission store.

Grants and denies are written as ``INSERT ... ON CONFLICT DO UPDATE SET
verb = excluded.verb`` against the unique constraint over (role,
subject_type, subject_id, object_type, object_id), so at most one row exists
per fact and re-granting a denied fact flips it in place.  Revokes are a
single ``DELETE`` with the exact-match predicate.  Reads go through
:class:`~aumos_role_grants.resolvers.predicate.PredicateResolver`.

Database errors are not retried or translated, except that an integrity
error raised by an upsert is re-raised as :class:`ConflictError`.
"""
from __future__ import annotations

import logging
from collections.abc import Callable

from sqlalchemy import ColumnElement, MetaData, Select, Table, create_engine, delete, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError

from aumos_role_grants.config import StoreConfig
from aumos_role_grants.errors import ConflictError, StoreConfigurationError, ValidationError
from aumos_role_grants.mutations import (
    DeletePermissions,
    MutationResult,
    Operation,
    PermissionBatch,
    UpsertPermission,
    plan_deny,
    plan_grant,
    plan_revoke,
)
from aumos_role_grants.permissions.params import MatchParams
from aumos_role_grants.permissions.record import MATCH_FIELDS, PermissionRecord, validate_record
from aumos_role_grants.resolvers.predicate import PredicateResolver
from aumos_role_grants.scope import ALL, UNSET, Scope, Wildcard
from aumos_role_grants.store.schema import (
    build_permission_table,
    record_from_row,
    record_to_values,
)

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS: dict[str, Callable] = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class SqlPermissionStore:
    """Persist permissions in a relational table.

    Parameters
    ----------
    engine:
        SQLAlchemy engine.  Its dialect must support ``ON CONFLICT DO
        UPDATE`` (SQLite or PostgreSQL).
    config:
        Store configuration (table name, id type, ALL marker).
    metadata:
        Optional ``MetaData`` to declare the table on, for applications that
        manage their own schema.

    Raises
    ------
    StoreConfigurationError
        If the engine's dialect has no conflict clause support.
    """

    def __init__(
        self,
        engine: Engine,
        config: StoreConfig | None = None,
        metadata: MetaData | None = None,
    ) -> None:
        self._engine = engine
        self._config = config or StoreConfig()
        self._metadata = metadata if metadata is not None else MetaData()
        self._table = build_permission_table(self._metadata, self._config)
        self._resolver = PredicateResolver(self._table)

        dialect = engine.dialect.name
        if dialect not in _UPSERT_DIALECTS:
            raise StoreConfigurationError(
                f"Dialect {dialect!r} has no supported upsert clause. "
                f"Supported: {sorted(_UPSERT_DIALECTS)}."
            )
        self._insert = _UPSERT_DIALECTS[dialect]

    @classmethod
    def from_config(cls, config: StoreConfig) -> SqlPermissionStore:
        """Create an engine from ``config.url`` and wrap it."""
        engine = create_engine(config.url, echo=config.echo)
        return cls(engine, config)

    @property
    def table(self) -> Table:
        return self._table

    @property
    def resolver(self) -> PredicateResolver:
        return self._resolver

    def create_schema(self) -> None:
        """Create the permissions table if it does not exist."""
        self._metadata.create_all(self._engine, tables=[self._table])

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def grant(self, role: str, to: Scope | Wildcard, on: Scope | Wildcard) -> MutationResult:
        try:
            operation = plan_grant(role, to, on)
            self._check(operation)
        except ValidationError as exc:
            return MutationResult.failure(exc)
        return self._apply_one(operation)

    def deny(self, role: str, to: Scope | Wildcard, on: Scope | Wildcard) -> MutationResult:
        try:
            operation = plan_deny(role, to, on)
            self._check(operation)
        except ValidationError as exc:
            return MutationResult.failure(exc)
        return self._apply_one(operation)

    def revoke(
        self,
        params: MatchParams | None = None,
        *,
        role: str | Wildcard | None = None,
        from_: Scope | Wildcard | None = UNSET,
        on: Scope | Wildcard | None = UNSET,
    ) -> MutationResult:
        try:
            operation = plan_revoke(params, role=role, from_=from_, on=on)
            self._check(operation)
        except ValidationError as exc:
            return MutationResult.failure(exc)
        return self._apply_one(operation)

    def execute(self, batch: PermissionBatch) -> list[MutationResult]:
        """Run every operation of ``batch`` in a single transaction.

        Raises
        ------
        ValidationError
            If any operation cannot be stored; nothing is written.
        """
        for operation in batch:
            self._check(operation)
        with self._engine.begin() as conn:
            results = [self._apply(conn, operation) for operation in batch]
        logger.info("Executed batch of %d permission operations", len(results))
        return results

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def all(self) -> list[PermissionRecord]:
        query = select(self._table).order_by(self._table.c.id)
        with self._engine.connect() as conn:
            return [record_from_row(row) for row in conn.execute(query)]

    def filter_granted(self, params: MatchParams | None = None) -> list[PermissionRecord]:
        """Return the surviving grant records under ``params``."""
        query = self._resolver.select_granted(params).order_by(self._table.c.id)
        with self._engine.connect() as conn:
            return [record_from_row(row) for row in conn.execute(query)]

    def roles_granted(self, params: MatchParams | None = None) -> list[str]:
        with self._engine.connect() as conn:
            return list(conn.execute(self._resolver.select_roles_granted(params)).scalars())

    def granted(self, params: MatchParams | None = None) -> bool:
        query = select(self._resolver.select_granted(params).exists())
        with self._engine.connect() as conn:
            return bool(conn.execute(query).scalar())

    def load_applicable_to(self, subject: Scope | Wildcard) -> list[PermissionRecord]:
        """Fetch every grant and deny that applies to ``subject``.

        Denies are included so that later in-memory checks with
        :mod:`aumos_role_grants.resolvers.collection` resolve precedence
        exactly as the database would for that subject.
        """
        query = (
            select(self._table)
            .where(self._resolver.applicable(MatchParams.build(subject=subject)))
            .order_by(self._table.c.id)
        )
        with self._engine.connect() as conn:
            return [record_from_row(row) for row in conn.execute(query)]

    def where_granted_to(
        self,
        query: Select,
        id_column: ColumnElement,
        subject_type: str,
        params: MatchParams | None = None,
    ) -> Select:
        """See :meth:`PredicateResolver.where_granted_to`."""
        return self._resolver.where_granted_to(query, id_column, subject_type, params)

    def where_granted_on(
        self,
        query: Select,
        id_column: ColumnElement,
        object_type: str,
        params: MatchParams | None = None,
    ) -> Select:
        """See :meth:`PredicateResolver.where_granted_on`."""
        return self._resolver.where_granted_on(query, id_column, object_type, params)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _check(self, operation: Operation) -> None:
        """Reject values the columns cannot hold (bad id type, the ALL marker)."""
        match operation:
            case UpsertPermission(record=record):
                validate_record(record)
                values = dict(zip(MATCH_FIELDS, record.key))
            case DeletePermissions(params=params):
                values = params.constrained()
            case _:
                raise TypeError(f"Unknown permission operation: {operation!r}")
        for name, value in values.items():
            if value is ALL:
                continue
            try:
                self._table.c[name].type.process_bind_param(value, self._engine.dialect)
            except (AttributeError, TypeError, ValueError) as exc:
                raise ValidationError(f"cannot store {value!r}: {exc}", name) from exc

    def _apply_one(self, operation: Operation) -> MutationResult:
        with self._engine.begin() as conn:
            return self._apply(conn, operation)

    def _apply(self, conn: Connection, operation: Operation) -> MutationResult:
        match operation:
            case UpsertPermission(record=record):
                return self._upsert(conn, record)
            case DeletePermissions(params=params):
                result = conn.execute(delete(self._table).where(self._resolver.equal(params)))
                logger.info("Revoked %d permission(s) matching %r", result.rowcount, params)
                return MutationResult.success(count=result.rowcount)
        raise TypeError(f"Unknown permission operation: {operation!r}")

    def _upsert(self, conn: Connection, record: PermissionRecord) -> MutationResult:
        insert = self._insert(self._table).values(**record_to_values(record))
        statement = insert.on_conflict_do_update(
            index_elements=list(MATCH_FIELDS),
            set_={"verb": insert.excluded.verb, "updated_at": func.now()},
        ).returning(*self._table.c)
        try:
            row = conn.execute(statement).one()
        except IntegrityError as exc:
            raise ConflictError(f"Could not upsert permission {record}: {exc.orig}") from exc
        stored = record_from_row(row)
        logger.info("Stored permission: %s", stored)
        return MutationResult.success(record=stored, count=1)
