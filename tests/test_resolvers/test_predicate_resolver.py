"""Tests for the predicate resolver against a SQLite database.

The collection resolver is the reference: every query here is checked
against what it answers for the same records.
"""
from __future__ import annotations

import itertools
import random

import pytest
from sqlalchemy import Column, Integer, MetaData, String, Table, select
from sqlalchemy.engine import Engine

from aumos_role_grants.mutations import PermissionBatch
from aumos_role_grants.permissions.params import MatchParams
from aumos_role_grants.permissions.record import PermissionRecord, Verb
from aumos_role_grants.resolvers import collection
from aumos_role_grants.resolvers.predicate import PredicateResolver, build_granted_predicate
from aumos_role_grants.scope import (
    ALL_SCOPE,
    ANY_SCOPE,
    UNSET,
    AnyOfType,
    Entity,
    TypeWildcard,
)
from aumos_role_grants.store.memory import InMemoryPermissionStore
from aumos_role_grants.store.sql import SqlPermissionStore

_ROLES = ["r1", "r2"]
_STORED_SUBJECTS = [ALL_SCOPE, TypeWildcard("User"), Entity("User", 1), Entity("User", 2)]
_STORED_OBJECTS = [ALL_SCOPE, TypeWildcard("Task"), Entity("Task", 1)]

_FILTER_ROLES = [None, "r1", "r2"]
_FILTER_SUBJECTS = [
    UNSET,
    ALL_SCOPE,
    ANY_SCOPE,
    AnyOfType("User"),
    TypeWildcard("User"),
    Entity("User", 1),
    Entity("User", 2),
    Entity("User", 3),
    Entity("Task", 1),
]
_FILTER_OBJECTS = [
    UNSET,
    ALL_SCOPE,
    AnyOfType("Task"),
    TypeWildcard("Task"),
    Entity("Task", 1),
    Entity("Task", 2),
]


def _record_sets(count: int, seed: int = 20240818) -> list[list[PermissionRecord]]:
    """Deterministic pseudo-random permission sets, one record per key."""
    rng = random.Random(seed)
    universe = list(itertools.product(Verb, _ROLES, _STORED_SUBJECTS, _STORED_OBJECTS))
    sets = []
    for _ in range(count):
        picked = rng.sample(universe, rng.randint(1, 6))
        store = InMemoryPermissionStore([PermissionRecord(*fields) for fields in picked])
        sets.append(store.all())
    return sets


def _load(store: SqlPermissionStore, records: list[PermissionRecord]) -> None:
    store.revoke()
    batch = PermissionBatch()
    for record in records:
        if record.verb is Verb.GRANT:
            batch.grant(record.role, record.subject, record.object)
        else:
            batch.deny(record.role, record.subject, record.object)
    store.execute(batch)


# ---------------------------------------------------------------------------
# Equivalence
# ---------------------------------------------------------------------------


class TestEquivalence:
    @pytest.mark.parametrize("records", _record_sets(20), ids=lambda records: f"{len(records)}-records")
    def test_roles_granted_agree(self, sql_store: SqlPermissionStore, records) -> None:  # type: ignore[no-untyped-def]
        _load(sql_store, records)
        assert sorted(sql_store.all(), key=str) == sorted(records, key=str)

        for role, subject, object_ in itertools.product(_FILTER_ROLES, _FILTER_SUBJECTS, _FILTER_OBJECTS):
            params = MatchParams.build(role=role, subject=subject, object=object_)
            expected = collection.roles_granted(records, params)
            assert sql_store.roles_granted(params) == expected, params

    def test_filter_granted_agrees_on_records(self, sql_store: SqlPermissionStore, check_records) -> None:  # type: ignore[no-untyped-def]
        _load(sql_store, check_records)
        params = MatchParams.build(subject=Entity("User", 2))
        expected = collection.filter_granted(check_records, params)
        assert sorted(sql_store.filter_granted(params), key=str) == sorted(expected, key=str)

    def test_documented_scenario(self, sql_store: SqlPermissionStore) -> None:
        sql_store.grant("r1", to=ALL_SCOPE, on=TypeWildcard("Task"))
        sql_store.grant("r2", to=TypeWildcard("User"), on=Entity("Task", 1))
        sql_store.grant("r3", to=Entity("User", 1), on=ALL_SCOPE)
        user_on_task = MatchParams.build(subject=Entity("User", 1), object=Entity("Task", 1))

        assert sql_store.roles_granted(user_on_task) == ["r1", "r2", "r3"]
        sql_store.deny("r1", to=Entity("User", 1), on=Entity("Task", 1))
        assert sql_store.roles_granted(user_on_task) == ["r2", "r3"]


# ---------------------------------------------------------------------------
# Clause construction
# ---------------------------------------------------------------------------


class TestPredicateResolver:
    def test_granted_clause_is_usable_in_plain_selects(
        self, engine: Engine, sql_store: SqlPermissionStore
    ) -> None:
        sql_store.grant("editor", to=TypeWildcard("User"), on=ALL_SCOPE)
        sql_store.deny("editor", to=Entity("User", 7), on=ALL_SCOPE)
        table = sql_store.table
        clause = build_granted_predicate(table, MatchParams.build(subject=Entity("User", 7)))

        with engine.connect() as conn:
            assert conn.execute(select(table.c.role).where(clause)).all() == []

    def test_accepts_plain_mappings(self, engine: Engine, sql_store: SqlPermissionStore) -> None:
        sql_store.grant("editor", to=Entity("User", 7), on=ALL_SCOPE)
        resolver = PredicateResolver(sql_store.table)
        query = resolver.select_roles_granted({"subject_type": "User", "subject_id": 7})

        with engine.connect() as conn:
            assert list(conn.execute(query).scalars()) == ["editor"]

    def test_applicable_includes_denies(self, engine: Engine, sql_store: SqlPermissionStore) -> None:
        sql_store.grant("editor", to=TypeWildcard("User"), on=ALL_SCOPE)
        sql_store.deny("editor", to=Entity("User", 7), on=ALL_SCOPE)
        table = sql_store.table
        clause = sql_store.resolver.applicable(MatchParams.build(subject=Entity("User", 7)))

        with engine.connect() as conn:
            verbs = sorted(conn.execute(select(table.c.verb).where(clause)).scalars())
        assert verbs == [Verb.DENY, Verb.GRANT]

    def test_equal_matches_literally(self, engine: Engine, sql_store: SqlPermissionStore) -> None:
        sql_store.grant("editor", to=TypeWildcard("User"), on=ALL_SCOPE)
        sql_store.grant("editor", to=Entity("User", 7), on=ALL_SCOPE)
        table = sql_store.table
        clause = sql_store.resolver.equal(MatchParams.build(subject=TypeWildcard("User")))

        with engine.connect() as conn:
            rows = conn.execute(select(table.c.subject_id).where(clause)).scalars().all()
        assert len(rows) == 1


# ---------------------------------------------------------------------------
# Narrowing entity queries
# ---------------------------------------------------------------------------


@pytest.fixture()
def entity_tables(engine: Engine) -> tuple[Table, Table]:
    metadata = MetaData()
    users = Table("users", metadata, Column("id", Integer, primary_key=True), Column("name", String(50)))
    tasks = Table("tasks", metadata, Column("id", Integer, primary_key=True), Column("title", String(50)))
    metadata.create_all(engine)
    with engine.begin() as conn:
        conn.execute(users.insert(), [{"id": i, "name": f"user-{i}"} for i in range(1, 5)])
        conn.execute(tasks.insert(), [{"id": i, "title": f"task-{i}"} for i in range(1, 5)])
    return users, tasks


class TestWhereGranted:
    @pytest.fixture()
    def records(self, sql_store: SqlPermissionStore) -> list[PermissionRecord]:
        batch = (
            PermissionBatch()
            .grant("editor", to=TypeWildcard("User"), on=TypeWildcard("Task"))
            .deny("editor", to=Entity("User", 2), on=ALL_SCOPE)
            .deny("editor", to=ALL_SCOPE, on=Entity("Task", 3))
            .grant("viewer", to=Entity("User", 3), on=Entity("Task", 1))
            .grant("owner", to=ALL_SCOPE, on=Entity("Task", 4))
        )
        sql_store.execute(batch)
        return sql_store.all()

    @pytest.mark.parametrize(
        "params",
        [
            MatchParams(),
            MatchParams.build(role="editor"),
            MatchParams.build(role="editor", object=Entity("Task", 3)),
            MatchParams.build(role="viewer", object=Entity("Task", 1)),
            MatchParams.build(object=Entity("Task", 4)),
            MatchParams.build(role="owner"),
        ],
        ids=repr,
    )
    def test_where_granted_to_matches_collection(
        self, engine: Engine, sql_store, entity_tables, records, params
    ) -> None:  # type: ignore[no-untyped-def]
        users, _ = entity_tables
        query = sql_store.where_granted_to(select(users.c.id).order_by(users.c.id), users.c.id, "User", params)
        with engine.connect() as conn:
            found = list(conn.execute(query).scalars())

        expected = [
            user_id
            for user_id in range(1, 5)
            if collection.granted(records, params.with_fields(subject_type="User", subject_id=user_id))
        ]
        assert found == expected

    @pytest.mark.parametrize(
        "params",
        [
            MatchParams(),
            MatchParams.build(role="editor", subject=Entity("User", 1)),
            MatchParams.build(role="editor", subject=Entity("User", 2)),
            MatchParams.build(subject=Entity("User", 3)),
            MatchParams.build(role="owner", subject=Entity("User", 4)),
        ],
        ids=repr,
    )
    def test_where_granted_on_matches_collection(
        self, engine: Engine, sql_store, entity_tables, records, params
    ) -> None:  # type: ignore[no-untyped-def]
        _, tasks = entity_tables
        query = sql_store.where_granted_on(select(tasks.c.id).order_by(tasks.c.id), tasks.c.id, "Task", params)
        with engine.connect() as conn:
            found = list(conn.execute(query).scalars())

        expected = [
            task_id
            for task_id in range(1, 5)
            if collection.granted(records, params.with_fields(object_type="Task", object_id=task_id))
        ]
        assert found == expected

    def test_editors_of_a_task(self, engine: Engine, sql_store, entity_tables, records) -> None:  # type: ignore[no-untyped-def]
        users, _ = entity_tables
        params = MatchParams.build(role="editor", object=Entity("Task", 1))
        query = sql_store.where_granted_to(select(users.c.name).order_by(users.c.id), users.c.id, "User", params)
        with engine.connect() as conn:
            assert list(conn.execute(query).scalars()) == ["user-1", "user-3", "user-4"]
