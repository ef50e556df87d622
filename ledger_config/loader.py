"""
Configuration Loader (``ledger_config.loader``).

Responsibility
--------------
Loads the YAML configuration file and environment overrides and parses
them into the typed ``ledger_config.schema`` dataclasses.  Runtime code
obtains configuration through ``ledger_config.get_active_config()``.

Invariants enforced
-------------------
* Unknown sections or keys raise ``ValueError``; a typo never silently
  falls back to a default.
* Decimal settings are parsed from their text form; binary floats never
  reach ``PostingConfig``.
* ``LEDGER_DATABASE_URL`` overrides ``database.url`` from the file.

Failure modes
-------------
* Missing YAML file -> ``FileNotFoundError`` propagates.
* Malformed YAML -> ``yaml.YAMLError`` propagates.
* Wrong value types or out-of-range values -> ``ValueError``.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import fields
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from ledger_config.schema import (
    DatabaseConfig,
    LedgerConfig,
    LoggingSection,
    PostingConfig,
    ReportingSection,
)

ENV_CONFIG_PATH = "LEDGER_CONFIG"
ENV_DATABASE_URL = "LEDGER_DATABASE_URL"

_SECTIONS = {
    "database": DatabaseConfig,
    "posting": PostingConfig,
    "reporting": ReportingSection,
    "logging": LoggingSection,
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top-level YAML value must be a mapping")
    return data


def parse_decimal(value: Any, name: str) -> Decimal:
    """Parse a decimal setting from YAML (string, int or float text)."""
    if isinstance(value, bool):
        raise ValueError(f"{name} must be a decimal amount, got {value!r}")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float, str)):
        try:
            parsed = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"{name} must be a decimal amount, got {value!r}") from None
        if not parsed.is_finite():
            raise ValueError(f"{name} must be finite, got {value!r}")
        return parsed
    raise ValueError(f"{name} must be a decimal amount, got {value!r}")


def _coerce(value: Any, default: Any, name: str) -> Any:
    """Coerce a YAML scalar to the type of the field's default."""
    if isinstance(default, Decimal):
        return parse_decimal(value, name)
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise ValueError(f"{name} must be true or false, got {value!r}")
        return value
    if isinstance(default, int):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{name} must be an integer, got {value!r}")
        return value
    if isinstance(default, float):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"{name} must be a number, got {value!r}")
        return float(value)
    if not isinstance(value, str):
        raise ValueError(f"{name} must be a string, got {value!r}")
    return value


def parse_section(section: str, data: Mapping[str, Any] | None):
    """Parse one top-level section into its dataclass."""
    cls = _SECTIONS[section]
    if data is None:
        return cls()
    if not isinstance(data, Mapping):
        raise ValueError(f"{section} must be a mapping")

    defaults = {f.name: f.default for f in fields(cls)}
    unknown = sorted(set(data) - set(defaults))
    if unknown:
        raise ValueError(f"Unknown keys in {section}: {unknown}")

    kwargs = {
        key: _coerce(value, defaults[key], f"{section}.{key}")
        for key, value in data.items()
    }
    return cls(**kwargs)


def parse_config(
    data: Mapping[str, Any],
    source: str | None = None,
    env: Mapping[str, str] | None = None,
) -> LedgerConfig:
    """
    Build a LedgerConfig from a parsed YAML mapping plus environment overrides.

    Preconditions:
        - ``data`` holds only the known top-level sections.
    Raises:
        ValueError: unknown sections/keys or invalid values.
    """
    unknown = sorted(set(data) - set(_SECTIONS))
    if unknown:
        raise ValueError(f"Unknown configuration sections: {unknown}")

    env = os.environ if env is None else env
    database_data = dict(data.get("database") or {})
    if env.get(ENV_DATABASE_URL):
        database_data["url"] = env[ENV_DATABASE_URL]

    return LedgerConfig(
        database=parse_section("database", database_data),
        posting=parse_section("posting", data.get("posting")),
        reporting=parse_section("reporting", data.get("reporting")),
        logging=parse_section("logging", data.get("logging")),
        source=source,
    )


def load_config(
    path: Path | str | None = None,
    env: Mapping[str, str] | None = None,
) -> LedgerConfig:
    """
    Load configuration from ``path``, or from ``$LEDGER_CONFIG``.

    With neither set, built-in defaults apply (still subject to
    ``LEDGER_DATABASE_URL``).
    """
    env = os.environ if env is None else env
    if path is None and env.get(ENV_CONFIG_PATH):
        path = env[ENV_CONFIG_PATH]

    if path is None:
        return parse_config({}, source=None, env=env)

    path = Path(path)
    return parse_config(load_yaml_file(path), source=str(path), env=env)
