"""Configuration management for linked_records stores.

Configuration Resolution Order:
1. Environment variables (highest priority)
2. TOML config file ([store] table)
3. Built-in defaults
"""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from linked_records.exceptions import ConfigurationError

ENV_PREFIX = "LINKED_RECORDS_"
CONFIG_PATH_ENV = f"{ENV_PREFIX}CONFIG"
DEFAULT_ID_ATTRIBUTE = "id"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def load_toml_config(config_path: Path) -> dict[str, Any]:
    """Load configuration from TOML file.

    Args:
        config_path: Path to the TOML file

    Returns:
        Dictionary with configuration sections

    Raises:
        FileNotFoundError: If config file doesn't exist
        ConfigurationError: If config file is invalid TOML
    """
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "rb") as f:
        try:
            return tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigurationError(
                f"Invalid TOML in {config_path}: {e}",
                details={"path": str(config_path)},
            ) from e


def parse_bool(name: str, value: Any) -> bool:
    """Coerce a config or environment value to a boolean."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
    raise ConfigurationError(
        f"Setting '{name}' expects a boolean, got {value!r}",
        details={"setting": name, "value": value},
    )


@dataclass
class StoreSettings:
    """Store-wide settings.

    Attributes:
        unlink_on_destroy: Clear a record's own link fields after the adapter
            confirms it was destroyed.
        id_attribute: Identifier field used by mappers that don't name one.
    """

    unlink_on_destroy: bool = True
    id_attribute: str = DEFAULT_ID_ATTRIBUTE

    @classmethod
    def load(
        cls,
        config_path: Path | str | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> StoreSettings:
        """Resolve settings from the environment, a TOML file and defaults.

        Args:
            config_path: Optional TOML file. Falls back to the file named by
                LINKED_RECORDS_CONFIG when omitted.
            environ: Environment mapping (defaults to os.environ)

        Returns:
            Resolved StoreSettings

        Raises:
            ConfigurationError: On unknown keys or malformed values
        """
        env = os.environ if environ is None else environ
        values: dict[str, Any] = {}

        if config_path is None and env.get(CONFIG_PATH_ENV):
            config_path = env[CONFIG_PATH_ENV]
        if config_path is not None:
            config = load_toml_config(Path(config_path))
            values.update(config.get("store", {}))

        for setting in fields(cls):
            env_name = f"{ENV_PREFIX}{setting.name.upper()}"
            if env_name in env:
                values[setting.name] = env[env_name]

        known = {setting.name for setting in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ConfigurationError(
                f"Unknown store settings: {', '.join(unknown)}",
                details={"unknown": unknown},
            )

        if "unlink_on_destroy" in values:
            values["unlink_on_destroy"] = parse_bool(
                "unlink_on_destroy", values["unlink_on_destroy"]
            )
        if "id_attribute" in values:
            id_attribute = values["id_attribute"]
            if not isinstance(id_attribute, str) or not id_attribute:
                raise ConfigurationError(
                    f"Setting 'id_attribute' expects a field name, got {id_attribute!r}",
                    details={"setting": "id_attribute", "value": id_attribute},
                )

        return cls(**values)
