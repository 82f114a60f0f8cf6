"""
Tests for settings resolution: defaults, YAML file, environment.
"""

import pytest
import yaml

from pocket_ledger.config import LedgerSettings, get_settings
from pocket_ledger.config.loader import CONFIG_PATH_ENV, flatten_sections


def _write(tmp_path, data, name="ledger.yaml"):
    path = tmp_path / name
    path.write_text(yaml.safe_dump(data))
    return path


def test_defaults_without_file_or_env():
    settings = get_settings(environ={})

    assert settings.database_url == "sqlite+pysqlite:///:memory:"
    assert settings.echo_sql is False
    assert settings.default_page_size == 20
    assert settings.max_page_size == 100
    assert settings.log_level == "INFO"
    assert settings.money_decimal_places == 2


def test_file_overrides_defaults(tmp_path):
    path = _write(tmp_path, {
        "database": {"url": "postgresql://ledger@localhost/ledger", "pool_size": 5},
        "pagination": {"default_page_size": 50},
    })

    settings = get_settings(config_path=path, environ={})

    assert settings.database_url == "postgresql://ledger@localhost/ledger"
    assert settings.pool_size == 5
    assert settings.default_page_size == 50
    assert settings.max_overflow == 10


def test_file_named_by_environment(tmp_path):
    path = _write(tmp_path, {"logging": {"level": "DEBUG"}})

    settings = get_settings(environ={CONFIG_PATH_ENV: str(path)})

    assert settings.log_level == "DEBUG"


def test_environment_beats_file(tmp_path):
    path = _write(tmp_path, {"pagination": {"default_page_size": 50}})

    settings = get_settings(
        config_path=path,
        environ={
            "POCKET_LEDGER_DEFAULT_PAGE_SIZE": "15",
            "POCKET_LEDGER_ECHO_SQL": "yes",
            "POCKET_LEDGER_DATABASE_URL": "sqlite:///ledger.db",
        },
    )

    assert settings.default_page_size == 15
    assert settings.echo_sql is True
    assert settings.database_url == "sqlite:///ledger.db"


def test_unknown_key_rejected(tmp_path):
    path = _write(tmp_path, {"database": {"uri": "sqlite://"}})

    with pytest.raises(ValueError, match="database.uri"):
        get_settings(config_path=path, environ={})


def test_section_must_be_mapping():
    with pytest.raises(ValueError, match="must be a mapping"):
        flatten_sections({"database": "sqlite://"}, "inline")


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        get_settings(config_path=tmp_path / "absent.yaml", environ={})


@pytest.mark.parametrize(
    "name, value",
    [
        ("POCKET_LEDGER_ECHO_SQL", "sometimes"),
        ("POCKET_LEDGER_POOL_SIZE", "twenty"),
    ],
)
def test_malformed_environment_value(name, value):
    with pytest.raises(ValueError, match=name):
        get_settings(environ={name: value})


@pytest.mark.parametrize(
    "overrides",
    [
        {"max_page_size": 0},
        {"default_page_size": 500},
        {"log_level": "CHATTY"},
        {"money_decimal_places": 4},
    ],
)
def test_settings_validation(overrides):
    with pytest.raises(ValueError):
        LedgerSettings(database_url="sqlite://", **overrides)
