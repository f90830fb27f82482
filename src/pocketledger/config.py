"""Configuration for pocketledger.

Settings come from environment variables with CLI options layered on top.
Archive settings are not here: they are persisted in the store.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from pocketledger.domain.errors import ValidationError

ENV_DB_PATH = "POCKETLEDGER_DB_PATH"
ENV_STRICT_ASSETS = "POCKETLEDGER_STRICT_ASSETS"
ENV_HISTORY_MAX_ENTRIES = "POCKETLEDGER_HISTORY_MAX_ENTRIES"
ENV_HISTORY_MAX_AGE_DAYS = "POCKETLEDGER_HISTORY_MAX_AGE_DAYS"
ENV_LOG_LEVEL = "POCKETLEDGER_LOG_LEVEL"

DEFAULT_DB_DIR = Path.home() / ".pocketledger"
DEFAULT_DB_NAME = "pocketledger.db"

UNDO_CAPACITY = 5

DEFAULT_ARCHIVE_PAGE_SIZE = 50

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class LedgerSettings:
    """Runtime settings for the ledger engine."""

    database_path: Optional[str] = None
    strict_assets: bool = False
    undo_capacity: int = UNDO_CAPACITY
    history_max_entries: Optional[int] = None
    history_max_age_days: Optional[int] = None
    log_level: str = "INFO"

    @property
    def history_retention_enabled(self) -> bool:
        return self.history_max_entries is not None or self.history_max_age_days is not None


def _parse_bool(name: str, value: str) -> bool:
    normalized = value.strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ValidationError(f"{name} must be a boolean, got '{value}'")


def _parse_positive_int(name: str, value: Optional[str]) -> Optional[int]:
    if value is None or value.strip() == "":
        return None
    try:
        parsed = int(value)
    except ValueError:
        raise ValidationError(f"{name} must be an integer, got '{value}'")
    if parsed <= 0:
        raise ValidationError(f"{name} must be positive, got {parsed}")
    return parsed


def load_settings(environ: Optional[Mapping[str, str]] = None, **overrides) -> LedgerSettings:
    """Build settings from environment variables.

    Args:
        environ: Mapping to read from. Defaults to ``os.environ``
        **overrides: Explicit values (e.g. from CLI options); ``None`` values are ignored

    Returns:
        LedgerSettings instance

    Raises:
        ValidationError: If an environment value cannot be parsed
    """
    if environ is None:
        environ = os.environ

    values = {
        "database_path": environ.get(ENV_DB_PATH) or None,
        "strict_assets": _parse_bool(ENV_STRICT_ASSETS, environ.get(ENV_STRICT_ASSETS, "")),
        "history_max_entries": _parse_positive_int(
            ENV_HISTORY_MAX_ENTRIES, environ.get(ENV_HISTORY_MAX_ENTRIES)
        ),
        "history_max_age_days": _parse_positive_int(
            ENV_HISTORY_MAX_AGE_DAYS, environ.get(ENV_HISTORY_MAX_AGE_DAYS)
        ),
        "log_level": environ.get(ENV_LOG_LEVEL, "INFO").upper(),
    }
    values.update({key: value for key, value in overrides.items() if value is not None})
    return LedgerSettings(**values)


def resolve_database_path(database_path: Optional[str] = None) -> str:
    """Resolve the SQLite file path: argument, then environment, then home directory."""
    if database_path is None:
        database_path = os.environ.get(ENV_DB_PATH)

    if database_path is None:
        DEFAULT_DB_DIR.mkdir(parents=True, exist_ok=True)
        database_path = str(DEFAULT_DB_DIR / DEFAULT_DB_NAME)

    return database_path


def configure_logging(level: str = "INFO") -> None:
    """Install a single stream handler on the root logger."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        force=True,
    )
