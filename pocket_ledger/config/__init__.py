"""
pocket_ledger.config -- single public entrypoint for runtime settings.

``get_settings()`` is the only way services, scripts and the engine module
obtain configuration.  The result is a frozen ``LedgerSettings``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from pocket_ledger.config.loader import load_settings_dict
from pocket_ledger.logging_config import get_logger

_logger = get_logger("config")

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


@dataclass(frozen=True)
class LedgerSettings:
    """Resolved runtime settings."""

    database_url: str
    echo_sql: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800
    default_page_size: int = 20
    max_page_size: int = 100
    log_level: str = "INFO"
    money_decimal_places: int = 2

    def __post_init__(self) -> None:
        if self.max_page_size < 1:
            raise ValueError("max_page_size must be at least 1")
        if not 1 <= self.default_page_size <= self.max_page_size:
            raise ValueError(
                "default_page_size must be between 1 and max_page_size"
            )
        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level: {self.log_level}")
        if self.money_decimal_places != 2:
            # Money columns are NUMERIC(15, 2).
            raise ValueError("money_decimal_places must be 2")


def get_settings(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> LedgerSettings:
    """Resolve settings from defaults.yaml, an optional file, and the environment."""
    values = load_settings_dict(
        os.environ if environ is None else environ,
        config_path=config_path,
    )
    settings = LedgerSettings(**values)
    _logger.debug(
        "settings_loaded",
        extra={
            "dialect": settings.database_url.split(":", 1)[0],
            "default_page_size": settings.default_page_size,
            "max_page_size": settings.max_page_size,
        },
    )
    return settings


__all__ = ["LedgerSettings", "get_settings"]
