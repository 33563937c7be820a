"""CLI entry point for aumos-role-grants.

Invoked as::

    role-grants [OPTIONS] COMMAND [ARGS]...

or during development::

    python -m aumos_role_grants.cli.main

Commands
--------
- roles    List the roles granted to/on a scope
- check    Exit 0 if a role is granted, 1 otherwise
- grant    Grant a role
- deny     Deny a role
- revoke   Delete permissions that literally match
- list     Show every stored permission
- seed     Load permission snapshot files into the database
- version  Show version information

Permissions come either from a YAML snapshot (``--permissions``), which
mutating commands rewrite in place, or from the database configured in
``role_grants.yaml`` (``--config``).

Scopes are spelled ``all``, ``any``, ``Type`` (every Type), ``Type:*`` (any
breadth within Type) or ``Type:id``.
"""
from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from pathlib import Path

import click
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from aumos_role_grants.config import ConfigLoader, RoleGrantsConfig
from aumos_role_grants.errors import RoleGrantsError
from aumos_role_grants.mutations import MutationResult, PermissionBatch, UpsertPermission
from aumos_role_grants.permissions.loader import PermissionLoader
from aumos_role_grants.permissions.params import MatchParams
from aumos_role_grants.permissions.record import Verb
from aumos_role_grants.scope import (
    ALL_SCOPE,
    ANY_SCOPE,
    UNSET,
    AnyOfType,
    Entity,
    Scope,
    TypeWildcard,
)
from aumos_role_grants.store.memory import InMemoryPermissionStore
from aumos_role_grants.store.sql import SqlPermissionStore

console = Console()
err_console = Console(stderr=True)

_DEFAULT_CONFIG = Path("role_grants.yaml")


# ---------------------------------------------------------------------------
# Scope parsing
# ---------------------------------------------------------------------------


def parse_scope(text: str) -> Scope:
    """Parse a command-line scope spelling.

    Digit-only ids become integers; anything else stays a string.
    """
    value = text.strip()
    if not value:
        raise ValueError("scope must not be empty")
    if value.lower() == "all":
        return ALL_SCOPE
    if value.lower() == "any":
        return ANY_SCOPE
    type_, sep, id_ = value.partition(":")
    if not type_:
        raise ValueError(f"scope {text!r} has no type")
    if not sep:
        return TypeWildcard(type_)
    if id_ == "*":
        return AnyOfType(type_)
    if not id_:
        raise ValueError(f"scope {text!r} has an empty id")
    return Entity(type_, int(id_) if id_.isdigit() else id_)


class ScopeParamType(click.ParamType):
    """Click parameter type wrapping :func:`parse_scope`."""

    name = "scope"

    def convert(self, value, param, ctx):  # type: ignore[no-untyped-def]
        if not isinstance(value, str):
            return value
        try:
            return parse_scope(value)
        except ValueError as exc:
            self.fail(str(exc), param, ctx)


SCOPE = ScopeParamType()


# ---------------------------------------------------------------------------
# Permission sources
# ---------------------------------------------------------------------------


def _source_options(func: Callable) -> Callable:
    func = click.option(
        "--config",
        "-c",
        "config_path",
        default=str(_DEFAULT_CONFIG),
        show_default=True,
        type=click.Path(),
        help="Path to role_grants.yaml (database store).",
    )(func)
    func = click.option(
        "--permissions",
        "-p",
        "permissions_path",
        default=None,
        type=click.Path(dir_okay=False),
        help="YAML permission snapshot to use instead of the database.",
    )(func)
    return func


def _load_config(config_path: str) -> RoleGrantsConfig:
    loader = ConfigLoader()
    cfg_path = Path(config_path)
    return loader.load(cfg_path) if cfg_path.exists() else loader.defaults()


def _open_store(
    permissions_path: str | None, config_path: str
) -> InMemoryPermissionStore | SqlPermissionStore:
    if permissions_path is not None:
        path = Path(permissions_path)
        records = PermissionLoader().load(path) if path.exists() else []
        return InMemoryPermissionStore(records)

    config = _load_config(config_path)
    store = SqlPermissionStore.from_config(config.store)
    store.create_schema()
    return store


def _save(store: InMemoryPermissionStore | SqlPermissionStore, permissions_path: str | None) -> None:
    """Write an in-memory store back to its snapshot file."""
    if permissions_path is None:
        return
    path = Path(permissions_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(PermissionLoader.dump(store.all()), encoding="utf-8")


def _report(result: MutationResult, action: str) -> None:
    if not result:
        err_console.print(f"[red]{action} failed:[/red] {escape(str(result.error))}")
        sys.exit(1)
    if result.record is not None:
        console.print(f"[green]{action}[/green] {escape(str(result.record))}")
    else:
        console.print(f"[green]{action}[/green] {result.count} permission(s)")


# ---------------------------------------------------------------------------
# Root command group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(package_name="aumos-role-grants")
@click.option(
    "--log-level",
    default="WARNING",
    show_default=True,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    help="Logging level for the aumos_role_grants loggers.",
)
def cli(log_level: str) -> None:
    """Role grants CLI: grant, deny, revoke and check roles."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ---------------------------------------------------------------------------
# version
# ---------------------------------------------------------------------------


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from aumos_role_grants import __version__

    console.print(
        Panel(
            f"[bold]aumos-role-grants[/bold]  v[cyan]{__version__}[/cyan]\n"
            "Role-based grant/deny authorization engine.",
            title="Version",
            border_style="blue",
        )
    )


# ---------------------------------------------------------------------------
# roles / check
# ---------------------------------------------------------------------------


@cli.command(name="roles")
@click.option("--to", "subject", type=SCOPE, default=None, help="Subject scope.")
@click.option("--on", "object_", type=SCOPE, default=None, help="Object scope.")
@_source_options
def roles_command(
    subject: Scope | None,
    object_: Scope | None,
    permissions_path: str | None,
    config_path: str,
) -> None:
    """List the roles granted to/on the given scopes."""
    store = _open_store(permissions_path, config_path)
    params = MatchParams.build(subject=subject or UNSET, object=object_ or UNSET)
    roles = store.roles_granted(params)

    if not roles:
        console.print("[yellow]No roles granted.[/yellow]")
        return

    table = Table(title="Granted Roles", box=box.SIMPLE)
    table.add_column("Role", style="cyan")
    for role in roles:
        table.add_row(role)
    console.print(table)


@cli.command(name="check")
@click.argument("role")
@click.option("--to", "subject", type=SCOPE, default=None, help="Subject scope.")
@click.option("--on", "object_", type=SCOPE, default=None, help="Object scope.")
@_source_options
def check_command(
    role: str,
    subject: Scope | None,
    object_: Scope | None,
    permissions_path: str | None,
    config_path: str,
) -> None:
    """Exit 0 if ROLE is granted to/on the given scopes, 1 otherwise."""
    store = _open_store(permissions_path, config_path)
    params = MatchParams.build(role=role, subject=subject or UNSET, object=object_ or UNSET)
    allowed = store.granted(params)

    status_str = "[green]GRANTED[/green]" if allowed else "[red]NOT GRANTED[/red]"
    console.print(Panel(status_str, title=f"Role Check: {role}", border_style="blue"))
    sys.exit(0 if allowed else 1)


# ---------------------------------------------------------------------------
# grant / deny / revoke
# ---------------------------------------------------------------------------


@cli.command(name="grant")
@click.argument("role")
@click.option("--to", "subject", type=SCOPE, required=True, help="Subject scope.")
@click.option("--on", "object_", type=SCOPE, required=True, help="Object scope.")
@_source_options
def grant_command(
    role: str,
    subject: Scope,
    object_: Scope,
    permissions_path: str | None,
    config_path: str,
) -> None:
    """Grant ROLE to a subject scope on an object scope."""
    store = _open_store(permissions_path, config_path)
    result = store.grant(role, to=subject, on=object_)
    _report(result, "Granted")
    _save(store, permissions_path)


@cli.command(name="deny")
@click.argument("role")
@click.option("--to", "subject", type=SCOPE, required=True, help="Subject scope.")
@click.option("--on", "object_", type=SCOPE, required=True, help="Object scope.")
@_source_options
def deny_command(
    role: str,
    subject: Scope,
    object_: Scope,
    permissions_path: str | None,
    config_path: str,
) -> None:
    """Deny ROLE to a subject scope on an object scope."""
    store = _open_store(permissions_path, config_path)
    result = store.deny(role, to=subject, on=object_)
    _report(result, "Denied")
    _save(store, permissions_path)


@cli.command(name="revoke")
@click.option("--role", "-r", default=None, help="Role to revoke (default: every role).")
@click.option("--from", "subject", type=SCOPE, default=None, help="Subject scope.")
@click.option("--on", "object_", type=SCOPE, default=None, help="Object scope.")
@_source_options
def revoke_command(
    role: str | None,
    subject: Scope | None,
    object_: Scope | None,
    permissions_path: str | None,
    config_path: str,
) -> None:
    """Delete every grant and deny that literally matches the options."""
    store = _open_store(permissions_path, config_path)
    result = store.revoke(role=role, from_=subject or UNSET, on=object_ or UNSET)
    _report(result, "Revoked")
    _save(store, permissions_path)


# ---------------------------------------------------------------------------
# list / seed
# ---------------------------------------------------------------------------


@cli.command(name="list")
@_source_options
def list_command(permissions_path: str | None, config_path: str) -> None:
    """Show every stored permission."""
    store = _open_store(permissions_path, config_path)
    records = store.all()

    if not records:
        console.print("[yellow]No permissions stored.[/yellow]")
        return

    table = Table(title="Permissions", box=box.SIMPLE)
    table.add_column("Verb", style="magenta")
    table.add_column("Role", style="cyan")
    table.add_column("Subject")
    table.add_column("Object")
    for record in records:
        colour = "green" if record.verb is Verb.GRANT else "red"
        table.add_row(
            f"[{colour}]{record.verb.value}[/{colour}]",
            record.role,
            str(record.subject),
            str(record.object),
        )
    console.print(table)
    console.print(f"  Total permissions: [cyan]{len(records)}[/cyan]")


@cli.command(name="seed")
@click.argument("files", nargs=-1, type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--config",
    "-c",
    "config_path",
    default=str(_DEFAULT_CONFIG),
    show_default=True,
    type=click.Path(),
    help="Path to role_grants.yaml.",
)
def seed_command(files: tuple[str, ...], config_path: str) -> None:
    """Load permission snapshots into the database in one transaction.

    Without FILES, the config's ``permission_files`` are used.
    """
    config = _load_config(config_path)
    paths = [Path(f) for f in files] or list(config.permission_files)
    if not paths:
        err_console.print("[yellow]No permission files given or configured.[/yellow]")
        sys.exit(1)

    loader = PermissionLoader()
    batch = PermissionBatch()
    try:
        for path in paths:
            for record in loader.load(path):
                batch.add(UpsertPermission(record))
        store = SqlPermissionStore.from_config(config.store)
        store.create_schema()
        store.execute(batch)
    except (RoleGrantsError, FileNotFoundError) as exc:
        err_console.print(f"[red]Seeding failed:[/red] {escape(str(exc))}")
        sys.exit(1)

    console.print(
        f"[green]Seeded[/green] {len(batch)} permission(s) from {len(paths)} file(s) "
        f"into [bold]{config.store.url}[/bold]"
    )


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    cli()
