"""Shared fixtures for the aumos-role-grants test suite."""
from __future__ import annotations

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from aumos_role_grants.permissions.record import PermissionRecord, Verb
from aumos_role_grants.scope import ALL_SCOPE, Entity, TypeWildcard
from aumos_role_grants.store.sql import SqlPermissionStore

USER = Entity("User", 1)
TASK = Entity("Task", 1)


@pytest.fixture()
def engine() -> Engine:
    return create_engine("sqlite://")


@pytest.fixture()
def sql_store(engine: Engine) -> SqlPermissionStore:
    store = SqlPermissionStore(engine)
    store.create_schema()
    return store


@pytest.fixture()
def check_records() -> list[PermissionRecord]:
    """Four roles granted at different breadths; role_4 granted then denied."""
    return [
        PermissionRecord(Verb.GRANT, "role_1", ALL_SCOPE, TypeWildcard("Task")),
        PermissionRecord(Verb.GRANT, "role_2", TypeWildcard("User"), TASK),
        PermissionRecord(Verb.GRANT, "role_3", USER, ALL_SCOPE),
        PermissionRecord(Verb.DENY, "role_4", ALL_SCOPE, ALL_SCOPE),
    ]
