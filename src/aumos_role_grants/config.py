"""Configuration loader with Pydantic v2 validation.

Loads and validates a ``role_grants.yaml`` file into a typed
:class:`RoleGrantsConfig`.  Configuration is handed explicitly to the
components that need it (the SQL store and table declaration); nothing in
the package reads it from a global.

Example
-------
::

    loader = ConfigLoader()
    config = loader.load_string('''
    store:
      url: sqlite:///permissions.db
      id_type: integer
    ''')
    config.store.table_name
    # 'permissions'
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, field_validator

_LOG_LEVELS = frozenset(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])


class StoreConfig(BaseModel):
    """Configuration for the persisted permission store."""

    model_config = {"extra": "allow"}

    url: str = Field(default="sqlite:///permissions.db")
    table_name: str = Field(default="permissions", min_length=1)
    id_type: Literal["integer", "string", "uuid"] = Field(default="integer")
    all_marker: str = Field(default="*", min_length=1)
    echo: bool = Field(default=False)


class RoleGrantsConfig(BaseModel):
    """Top-level configuration schema.

    All sections are optional and fall back to defaults.
    """

    model_config = {"extra": "allow"}

    version: str = Field(default="1")
    log_level: str = Field(default="INFO")
    store: StoreConfig = Field(default_factory=StoreConfig)
    permission_files: list[Path] = Field(default_factory=list)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level '{value}'. Valid: {sorted(_LOG_LEVELS)}")
        return level

    def configure_logging(self) -> None:
        """Apply ``log_level`` to the package logger."""
        logging.getLogger("aumos_role_grants").setLevel(self.log_level)


class ConfigLoader:
    """Loads and validates role-grants YAML configuration."""

    def load(self, config_path: Path) -> RoleGrantsConfig:
        """Load and validate a YAML file.

        Raises
        ------
        FileNotFoundError:
            When the config file does not exist.
        ValueError:
            When the YAML content fails Pydantic validation.
        """
        if not config_path.exists():
            raise FileNotFoundError(f"Role grants config not found: {config_path}")

        with config_path.open("r", encoding="utf-8") as fh:
            raw: dict[str, object] = yaml.safe_load(fh) or {}

        return RoleGrantsConfig.model_validate(raw)

    def load_string(self, yaml_content: str) -> RoleGrantsConfig:
        """Load and validate a YAML string directly."""
        raw: dict[str, object] = yaml.safe_load(yaml_content) or {}
        return RoleGrantsConfig.model_validate(raw)

    def defaults(self) -> RoleGrantsConfig:
        """Return a configuration with all defaults applied."""
        return RoleGrantsConfig()
