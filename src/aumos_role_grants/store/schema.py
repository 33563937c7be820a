"""Table declaration for persisted permissions.

The ``ALL`` sentinel is stored as a reserved marker string rather than
``NULL`` so that the unique constraint over the upsert identity holds for
wildcard scopes too (``NULL`` values never conflict in a unique index).
Role, type and id columns all use :class:`ScopeValueType`, which maps the
sentinel to and from the marker and restores ids to the configured type.
"""
from __future__ import annotations

import uuid

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    Integer,
    MetaData,
    String,
    Table,
    UniqueConstraint,
    func,
)
from sqlalchemy.types import TypeDecorator

from aumos_role_grants.config import StoreConfig
from aumos_role_grants.permissions.record import MATCH_FIELDS, PermissionRecord, Verb
from aumos_role_grants.scope import ALL, ANY, FieldValue, scope_from_fields


def _parse_uuid(value: object) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value))


_ID_PARSERS = {
    "integer": int,
    "string": str,
    "uuid": _parse_uuid,
}


class ScopeValueType(TypeDecorator):
    """String column that understands the ``ALL`` sentinel.

    Parameters
    ----------
    all_marker:
        Reserved string stored in place of ``ALL``.
    value_kind:
        ``"integer"``, ``"string"`` or ``"uuid"``: how non-sentinel values
        are parsed when read back and normalised when written.
    """

    impl = String(255)
    cache_ok = True

    def __init__(self, all_marker: str = "*", value_kind: str = "string") -> None:
        super().__init__()
        if value_kind not in _ID_PARSERS:
            raise ValueError(
                f"Unknown value kind {value_kind!r}. Known kinds: {sorted(_ID_PARSERS)}."
            )
        self.all_marker = all_marker
        self.value_kind = value_kind

    def process_bind_param(self, value: object, dialect: object) -> str | None:
        if value is None:
            return None
        if value is ALL:
            return self.all_marker
        if value is ANY:
            raise ValueError("ANY is a filter marker and cannot be bound to a column")
        text = str(_ID_PARSERS[self.value_kind](value))
        if text == self.all_marker:
            raise ValueError(f"{value!r} collides with the reserved ALL marker")
        return text

    def process_result_value(self, value: str | None, dialect: object) -> FieldValue | None:
        if value is None:
            return None
        if value == self.all_marker:
            return ALL
        return _ID_PARSERS[self.value_kind](value)


def build_permission_table(metadata: MetaData, config: StoreConfig | None = None) -> Table:
    """Declare the permissions table on ``metadata``.

    Parameters
    ----------
    metadata:
        The ``MetaData`` collection to attach the table to.
    config:
        Store configuration (table name, id type, ALL marker). Defaults to
        ``StoreConfig()``.
    """
    config = config or StoreConfig()
    marker = config.all_marker

    def scope_column(name: str, kind: str) -> Column:
        return Column(name, ScopeValueType(marker, kind), nullable=False)

    return Table(
        config.table_name,
        metadata,
        Column("id", Integer, primary_key=True, autoincrement=True),
        Column(
            "verb",
            Enum(
                Verb,
                name="permission_verb",
                native_enum=False,
                values_callable=lambda enum: [member.value for member in enum],
            ),
            nullable=False,
        ),
        scope_column("role", "string"),
        scope_column("subject_type", "string"),
        scope_column("subject_id", config.id_type),
        scope_column("object_type", "string"),
        scope_column("object_id", config.id_type),
        Column("inserted_at", DateTime(timezone=True), server_default=func.now(), nullable=False),
        Column(
            "updated_at",
            DateTime(timezone=True),
            server_default=func.now(),
            onupdate=func.now(),
            nullable=False,
        ),
        UniqueConstraint(*MATCH_FIELDS, name=f"{config.table_name}_unique_index"),
    )


def record_from_row(row: object) -> PermissionRecord:
    """Convert a result row (with the table's columns) to a PermissionRecord."""
    mapping = row._mapping  # type: ignore[attr-defined]
    return PermissionRecord(
        verb=Verb(mapping["verb"]),
        role=mapping["role"],
        subject=scope_from_fields(mapping["subject_type"], mapping["subject_id"]),
        object=scope_from_fields(mapping["object_type"], mapping["object_id"]),
    )


def record_to_values(record: PermissionRecord) -> dict[str, object]:
    """Return the column values for inserting ``record``."""
    values: dict[str, object] = {"verb": record.verb}
    values.update(zip(MATCH_FIELDS, record.key))
    return values
