"""Tests for the role-grants CLI."""
from __future__ import annotations

import pathlib

import pytest
from click.testing import CliRunner

from aumos_role_grants.cli.main import cli, parse_scope
from aumos_role_grants.permissions.loader import PermissionLoader
from aumos_role_grants.permissions.record import Verb
from aumos_role_grants.scope import ALL_SCOPE, ANY_SCOPE, AnyOfType, Entity, TypeWildcard

_SNAPSHOT = """\
version: "1.0"
permissions:
  - verb: grant
    role: editor
    subject_type: User
    object_type: Task
  - verb: deny
    role: editor
    subject_type: User
    subject_id: 7
"""


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def snapshot(tmp_path: pathlib.Path) -> str:
    path = tmp_path / "permissions.yaml"
    path.write_text(_SNAPSHOT, encoding="utf-8")
    return str(path)


@pytest.fixture()
def db_config(tmp_path: pathlib.Path) -> str:
    path = tmp_path / "role_grants.yaml"
    path.write_text(f"store:\n  url: sqlite:///{tmp_path / 'permissions.db'}\n", encoding="utf-8")
    return str(path)


# ---------------------------------------------------------------------------
# Scope spelling
# ---------------------------------------------------------------------------


class TestParseScope:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("all", ALL_SCOPE),
            ("ALL", ALL_SCOPE),
            ("any", ANY_SCOPE),
            ("User", TypeWildcard("User")),
            ("User:*", AnyOfType("User")),
            ("User:7", Entity("User", 7)),
            ("User:alice", Entity("User", "alice")),
        ],
    )
    def test_spellings(self, text: str, expected) -> None:  # type: ignore[no-untyped-def]
        assert parse_scope(text) == expected

    @pytest.mark.parametrize("text", ["", ":7", "User:"])
    def test_invalid(self, text: str) -> None:
        with pytest.raises(ValueError):
            parse_scope(text)


# ---------------------------------------------------------------------------
# Snapshot-backed commands
# ---------------------------------------------------------------------------


class TestSnapshotCommands:
    def test_roles(self, runner: CliRunner, snapshot: str) -> None:
        result = runner.invoke(cli, ["roles", "--to", "User:8", "--on", "Task:1", "-p", snapshot])
        assert result.exit_code == 0
        assert "editor" in result.output

    def test_roles_none_granted(self, runner: CliRunner, snapshot: str) -> None:
        result = runner.invoke(cli, ["roles", "--to", "User:7", "--on", "Task:1", "-p", snapshot])
        assert result.exit_code == 0
        assert "No roles granted" in result.output

    def test_check_granted(self, runner: CliRunner, snapshot: str) -> None:
        result = runner.invoke(cli, ["check", "editor", "--to", "User:8", "--on", "Task:1", "-p", snapshot])
        assert result.exit_code == 0
        assert "GRANTED" in result.output

    def test_check_denied(self, runner: CliRunner, snapshot: str) -> None:
        result = runner.invoke(cli, ["check", "editor", "--to", "User:7", "--on", "Task:1", "-p", snapshot])
        assert result.exit_code == 1
        assert "NOT GRANTED" in result.output

    def test_grant_rewrites_snapshot(self, runner: CliRunner, snapshot: str) -> None:
        result = runner.invoke(cli, ["grant", "viewer", "--to", "User:7", "--on", "all", "-p", snapshot])
        assert result.exit_code == 0
        assert "Granted" in result.output

        records = PermissionLoader().load(snapshot)
        assert len(records) == 3
        assert records[-1].role == "viewer"
        assert records[-1].object == ALL_SCOPE

    def test_deny_flips_existing_grant(self, runner: CliRunner, snapshot: str) -> None:
        result = runner.invoke(cli, ["deny", "editor", "--to", "User", "--on", "Task", "-p", snapshot])
        assert result.exit_code == 0
        records = PermissionLoader().load(snapshot)
        assert [record.verb for record in records] == [Verb.DENY, Verb.DENY]

    def test_grant_with_query_only_scope_fails(self, runner: CliRunner, snapshot: str) -> None:
        result = runner.invoke(cli, ["grant", "viewer", "--to", "any", "--on", "all", "-p", snapshot])
        assert result.exit_code == 1
        assert "failed" in result.output
        assert len(PermissionLoader().load(snapshot)) == 2

    def test_reserved_all_id_is_rejected(self, runner: CliRunner, snapshot: str) -> None:
        result = runner.invoke(cli, ["grant", "viewer", "--to", "User:all", "--on", "all", "-p", snapshot])
        assert result.exit_code == 1
        assert "reserved" in result.output
        assert len(PermissionLoader().load(snapshot)) == 2

    def test_bad_scope_spelling_is_a_usage_error(self, runner: CliRunner, snapshot: str) -> None:
        result = runner.invoke(cli, ["grant", "viewer", "--to", "User:", "--on", "all", "-p", snapshot])
        assert result.exit_code == 2

    def test_revoke(self, runner: CliRunner, snapshot: str) -> None:
        result = runner.invoke(cli, ["revoke", "--role", "editor", "--from", "User:*", "-p", snapshot])
        assert result.exit_code == 0
        assert "Revoked" in result.output
        assert PermissionLoader().load(snapshot) == []

    def test_list(self, runner: CliRunner, snapshot: str) -> None:
        result = runner.invoke(cli, ["list", "-p", snapshot])
        assert result.exit_code == 0
        assert "Total permissions" in result.output
        assert "grant" in result.output
        assert "deny" in result.output

    def test_missing_snapshot_starts_empty(self, runner: CliRunner, tmp_path: pathlib.Path) -> None:
        path = str(tmp_path / "new.yaml")
        result = runner.invoke(cli, ["list", "-p", path])
        assert result.exit_code == 0
        assert "No permissions stored" in result.output


# ---------------------------------------------------------------------------
# Database-backed commands
# ---------------------------------------------------------------------------


class TestDatabaseCommands:
    def test_grant_then_check(self, runner: CliRunner, db_config: str) -> None:
        granted = runner.invoke(cli, ["grant", "owner", "--to", "User:1", "--on", "Task", "-c", db_config])
        assert granted.exit_code == 0

        check = runner.invoke(cli, ["check", "owner", "--to", "User:1", "--on", "Task:5", "-c", db_config])
        assert check.exit_code == 0

        other = runner.invoke(cli, ["check", "owner", "--to", "User:2", "--on", "Task:5", "-c", db_config])
        assert other.exit_code == 1

    def test_seed_from_files(
        self, runner: CliRunner, db_config: str, snapshot: str
    ) -> None:
        result = runner.invoke(cli, ["seed", snapshot, "-c", db_config])
        assert result.exit_code == 0
        assert "Seeded" in result.output

        roles = runner.invoke(cli, ["roles", "--to", "User:8", "--on", "Task:1", "-c", db_config])
        assert "editor" in roles.output

    def test_seed_from_configured_files(
        self, runner: CliRunner, tmp_path: pathlib.Path, snapshot: str
    ) -> None:
        config = tmp_path / "seeded.yaml"
        config.write_text(
            f"store:\n  url: sqlite:///{tmp_path / 'seeded.db'}\npermission_files:\n  - {snapshot}\n",
            encoding="utf-8",
        )
        result = runner.invoke(cli, ["seed", "-c", str(config)])
        assert result.exit_code == 0

        listing = runner.invoke(cli, ["list", "-c", str(config)])
        assert listing.exit_code == 0
        assert "grant" in listing.output
        assert "deny" in listing.output

    def test_seed_without_files(self, runner: CliRunner, db_config: str) -> None:
        result = runner.invoke(cli, ["seed", "-c", db_config])
        assert result.exit_code == 1


class TestVersion:
    def test_version_command(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["version"])
        assert result.exit_code == 0
        assert "aumos-role-grants" in result.output
