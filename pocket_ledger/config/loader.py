"""
Configuration Loader (``pocket_ledger.config.loader``).

Responsibility
--------------
Reads YAML settings files and environment overrides and folds them into a
flat mapping of ``LedgerSettings`` field names.  Callers use
``pocket_ledger.config.get_settings()``; nothing else should read the
files or the environment directly.

Failure modes
-------------
* Missing explicit YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown section or key  -> ``ValueError``.
* Environment value of the wrong type  -> ``ValueError``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

import yaml

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"

CONFIG_PATH_ENV = "POCKET_LEDGER_CONFIG"

# (section, key) in YAML -> LedgerSettings field
_FIELD_MAP: dict[tuple[str, str], str] = {
    ("database", "url"): "database_url",
    ("database", "echo_sql"): "echo_sql",
    ("database", "pool_size"): "pool_size",
    ("database", "max_overflow"): "max_overflow",
    ("database", "pool_timeout"): "pool_timeout",
    ("database", "pool_recycle"): "pool_recycle",
    ("pagination", "default_page_size"): "default_page_size",
    ("pagination", "max_page_size"): "max_page_size",
    ("logging", "level"): "log_level",
    ("money", "decimal_places"): "money_decimal_places",
}

# field -> (env var, parser)
_ENV_OVERRIDES: dict[str, tuple[str, Any]] = {
    "database_url": ("POCKET_LEDGER_DATABASE_URL", str),
    "echo_sql": ("POCKET_LEDGER_ECHO_SQL", "bool"),
    "pool_size": ("POCKET_LEDGER_POOL_SIZE", int),
    "max_overflow": ("POCKET_LEDGER_MAX_OVERFLOW", int),
    "default_page_size": ("POCKET_LEDGER_DEFAULT_PAGE_SIZE", int),
    "max_page_size": ("POCKET_LEDGER_MAX_PAGE_SIZE", int),
    "log_level": ("POCKET_LEDGER_LOG_LEVEL", str),
}

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def flatten_sections(data: Mapping[str, Any], source: str) -> dict[str, Any]:
    """Map nested ``section: {key: value}`` YAML onto settings field names."""
    flat: dict[str, Any] = {}
    for section, body in data.items():
        if not isinstance(body, Mapping):
            raise ValueError(f"{source}: section {section!r} must be a mapping")
        for key, value in body.items():
            field_name = _FIELD_MAP.get((section, key))
            if field_name is None:
                raise ValueError(f"{source}: unknown setting {section}.{key}")
            flat[field_name] = value
    return flat


def _parse_env(name: str, raw: str, parser: Any) -> Any:
    if parser == "bool":
        lowered = raw.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
        raise ValueError(f"{name}: expected a boolean, got {raw!r}")
    try:
        return parser(raw)
    except ValueError as exc:
        raise ValueError(f"{name}: {exc}") from exc


def env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    """Collect settings overridden through POCKET_LEDGER_* variables."""
    overrides: dict[str, Any] = {}
    for field_name, (env_name, parser) in _ENV_OVERRIDES.items():
        if env_name in environ:
            overrides[field_name] = _parse_env(env_name, environ[env_name], parser)
    return overrides


def load_settings_dict(
    environ: Mapping[str, str],
    config_path: Path | None = None,
) -> dict[str, Any]:
    """
    Resolve settings in precedence order: defaults, file, environment.

    ``config_path`` wins over ``POCKET_LEDGER_CONFIG`` when both are given.
    """
    values = flatten_sections(load_yaml_file(DEFAULTS_PATH), str(DEFAULTS_PATH))

    path = config_path
    if path is None and environ.get(CONFIG_PATH_ENV):
        path = Path(environ[CONFIG_PATH_ENV])
    if path is not None:
        values.update(flatten_sections(load_yaml_file(path), str(path)))

    values.update(env_overrides(environ))
    return values
