"""YAML snapshot loader for permission records.

A snapshot is a plain list of grant/deny facts.  It can be checked directly
with :mod:`aumos_role_grants.resolvers.collection`, used to seed a store, or
passed to the ``role-grants`` CLI.

Schema
------
::

    version: "1.0"
    permissions:
      - verb: grant
        role: editor
        subject_type: User
        subject_id: 7
        object_type: Task          # no object_id: every Task
      - verb: deny
        role: editor
        subject_type: all          # "all" (or omitted) is the ALL sentinel
        object_type: Task
        object_id: 99

Example
-------
::

    loader = PermissionLoader()
    records = loader.load("permissions.yaml")
    roles_granted_to(records, Entity("User", 7), on=Entity("Task", 3))
    # ['editor']
"""
from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

import yaml

from aumos_role_grants.errors import PermissionConfigError, ValidationError
from aumos_role_grants.permissions.record import PermissionRecord

logger = logging.getLogger(__name__)

_SUPPORTED_VERSIONS: frozenset[str] = frozenset(["1.0", "1"])


class PermissionLoader:
    """Loads permission records from YAML files or dicts.

    Parameters
    ----------
    strict:
        When ``True``, unknown top-level keys are treated as an error.
        Default ``False`` (unknown keys are ignored).
    """

    _KNOWN_TOP_KEYS: frozenset[str] = frozenset(
        ["version", "permissions", "metadata", "description"]
    )

    def __init__(self, strict: bool = False) -> None:
        self._strict = strict

    def load(self, config_path: str | Path) -> list[PermissionRecord]:
        """Load permission records from a YAML file on disk.

        Raises
        ------
        PermissionConfigError
            If the file cannot be parsed or is structurally invalid.
        FileNotFoundError
            If the file does not exist.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Permission snapshot not found: {config_path}")

        try:
            with config_path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise PermissionConfigError(f"Failed to parse YAML: {exc}", str(config_path)) from exc

        return self._build_records(raw, config_path=str(config_path))

    def load_from_dict(
        self,
        config: dict[str, object],
        config_path: str | None = None,
    ) -> list[PermissionRecord]:
        """Load permission records from an already-parsed dictionary."""
        return self._build_records(config, config_path=config_path)

    def load_from_yaml_string(
        self,
        yaml_string: str,
        config_path: str | None = None,
    ) -> list[PermissionRecord]:
        """Load permission records from a YAML string."""
        try:
            raw = yaml.safe_load(yaml_string) or {}
        except yaml.YAMLError as exc:
            raise PermissionConfigError(f"Failed to parse YAML string: {exc}", config_path) from exc
        return self._build_records(raw, config_path=config_path)

    @staticmethod
    def dump(records: Iterable[PermissionRecord]) -> str:
        """Serialise ``records`` back into the snapshot format."""
        document = {
            "version": "1.0",
            "permissions": [record.to_dict() for record in records],
        }
        return yaml.safe_dump(document, sort_keys=False)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _build_records(
        self,
        raw: object,
        config_path: str | None = None,
    ) -> list[PermissionRecord]:
        document = self._validate_structure(raw, config_path)

        version = str(document.get("version", "1.0"))
        if version not in _SUPPORTED_VERSIONS:
            raise PermissionConfigError(
                f"Unsupported snapshot version {version!r}. "
                f"Supported: {sorted(_SUPPORTED_VERSIONS)}.",
                config_path,
            )

        records: list[PermissionRecord] = []
        for index, entry in enumerate(document["permissions"]):
            if not isinstance(entry, dict):
                raise PermissionConfigError(
                    f"Permission at index {index} must be a mapping.", config_path
                )
            try:
                records.append(PermissionRecord.from_dict(entry))
            except ValidationError as exc:
                raise PermissionConfigError(
                    f"Error in permission at index {index}: {exc}", config_path
                ) from exc

        logger.info("Loaded %d permissions from %s", len(records), config_path or "<dict>")
        return records

    def _validate_structure(self, raw: object, config_path: str | None) -> dict[str, object]:
        if not isinstance(raw, dict):
            raise PermissionConfigError("Permission snapshot must be a YAML mapping.", config_path)

        if not isinstance(raw.get("permissions"), list):
            raise PermissionConfigError(
                "Permission snapshot must contain a 'permissions' list.", config_path
            )

        if self._strict:
            unknown_keys = set(raw) - self._KNOWN_TOP_KEYS
            if unknown_keys:
                raise PermissionConfigError(
                    f"Unknown top-level keys: {sorted(unknown_keys)}. "
                    f"Known keys: {sorted(self._KNOWN_TOP_KEYS)}.",
                    config_path,
                )

        return raw
