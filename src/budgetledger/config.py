"""Runtime settings read from the environment."""

import logging
import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Mapping, Optional

from budgetledger.domain.errors import ValidationError

ENV_PREFIX = "BUDGETLEDGER_"


def default_db_path() -> str:
    """Default database location: ~/.budgetledger/budgetledger.db"""
    return str(Path.home() / ".budgetledger" / "budgetledger.db")


@dataclass(frozen=True)
class LedgerSettings:
    """Settings shared by the ledger services, the scheduler and the CLI."""

    db_path: str
    fixed_debit_amount: Decimal = Decimal("965")
    rollover_day: int = 6
    rollover_hour: int = 0
    debit_interval_days: int = 30
    log_retention_hours: int = 48
    max_retries: int = 5
    require_both_protected: bool = False
    log_level: str = "INFO"


def _int(env: Mapping[str, str], name: str, default: int, minimum: int, maximum: Optional[int] = None) -> int:
    raw = env.get(ENV_PREFIX + name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"{ENV_PREFIX}{name} must be an integer, got '{raw}'")
    if value < minimum or (maximum is not None and value > maximum):
        upper = f" and {maximum}" if maximum is not None else ""
        raise ValidationError(f"{ENV_PREFIX}{name} must be between {minimum}{upper}, got {value}")
    return value


def _bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(ENV_PREFIX + name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off"):
        return False
    raise ValidationError(f"{ENV_PREFIX}{name} must be a boolean, got '{raw}'")


def _decimal(env: Mapping[str, str], name: str, default: Decimal) -> Decimal:
    raw = env.get(ENV_PREFIX + name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = Decimal(raw.strip())
    except InvalidOperation:
        raise ValidationError(f"{ENV_PREFIX}{name} must be a number, got '{raw}'")
    if not value.is_finite() or value < 0:
        raise ValidationError(f"{ENV_PREFIX}{name} must be a non-negative number, got '{raw}'")
    return value


def _log_level(env: Mapping[str, str]) -> str:
    raw = env.get(ENV_PREFIX + "LOG_LEVEL")
    if raw is None or raw.strip() == "":
        return "INFO"
    level = raw.strip().upper()
    if not level.isdigit() and level not in logging.getLevelNamesMapping():
        raise ValidationError(f"{ENV_PREFIX}LOG_LEVEL must be a logging level name, got '{raw}'")
    return level


def load_settings(env: Optional[Mapping[str, str]] = None) -> LedgerSettings:
    """Build settings from environment variables.

    Args:
        env: Mapping to read from. Defaults to os.environ.

    Raises:
        ValidationError: If a variable is set to an unusable value
    """
    if env is None:
        env = os.environ

    return LedgerSettings(
        db_path=env.get(ENV_PREFIX + "DB_PATH") or default_db_path(),
        fixed_debit_amount=_decimal(env, "FIXED_DEBIT_AMOUNT", Decimal("965")),
        rollover_day=_int(env, "ROLLOVER_DAY", 6, 1, 31),
        rollover_hour=_int(env, "ROLLOVER_HOUR", 0, 0, 23),
        debit_interval_days=_int(env, "DEBIT_INTERVAL_DAYS", 30, 1),
        log_retention_hours=_int(env, "LOG_RETENTION_HOURS", 48, 1),
        max_retries=_int(env, "MAX_RETRIES", 5, 1),
        require_both_protected=_bool(env, "REQUIRE_BOTH_PROTECTED", False),
        log_level=_log_level(env),
    )
