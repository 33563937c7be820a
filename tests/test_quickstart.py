"""Test that the quickstart API exported from the package root works."""
from __future__ import annotations


def test_quickstart_import() -> None:
    import aumos_role_grants as rg

    assert rg.__version__ == "0.1.0"


def test_quickstart_grant_and_check() -> None:
    import aumos_role_grants as rg

    store = rg.InMemoryPermissionStore()
    store.grant("editor", to=rg.TypeWildcard("User"), on=rg.Entity("Task", 3))
    store.deny("editor", to=rg.Entity("User", 7), on=rg.ALL)

    task = rg.Entity("Task", 3)
    assert store.roles_granted(rg.MatchParams.build(subject=rg.Entity("User", 8), object=task)) == ["editor"]
    assert store.roles_granted(rg.MatchParams.build(subject=rg.Entity("User", 7), object=task)) == []


def test_quickstart_collection_helpers() -> None:
    import aumos_role_grants as rg

    records = [rg.PermissionRecord(rg.Verb.GRANT, "viewer", rg.ALL_SCOPE, rg.TypeWildcard("Task"))]
    assert rg.granted_on(records, rg.Entity("Task", 1))
    assert rg.roles_granted_to(records, rg.Entity("User", 1)) == ["viewer"]


def test_quickstart_errors_share_a_base() -> None:
    import aumos_role_grants as rg

    for error in (rg.ValidationError, rg.ConflictError, rg.StoreConfigurationError, rg.PermissionConfigError):
        assert issubclass(error, rg.RoleGrantsError)
