"""Central configuration for tele_rate_monitor."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Set

logger = logging.getLogger(__name__)


def _split_ints(s: str) -> Set[int]:
    """Parse comma-separated string into a set of integers.

    Args:
        s: Comma-separated string of integers (e.g., "123,456,789")

    Returns:
        Set of parsed integers. Invalid entries are silently skipped.

    Example:
        >>> _split_ints("123,456,invalid,789")
        {123, 456, 789}
    """
    out = set()
    for part in (s or "").split(","):
        p = part.strip()
        if p.lstrip("-").isdigit():
            out.add(int(p))
    return out


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.environ.get(name, "") or default)
    except ValueError:
        return default


def _int_env(name: str, default: int) -> int:
    raw = (os.environ.get(name) or "").strip()
    try:
        return int(raw) if raw else default
    except ValueError:
        return default


@dataclass
class Settings:
    """Configuration settings for tele_rate_monitor.

    All settings are loaded from environment variables with sensible defaults.
    """

    BOT_TOKEN: str | None
    ALLOWED_CHAT_IDS: Set[int]
    RATE_LIMIT_S: float
    BOT_AUTH_TOTP_SECRET: str | None
    RATE_BASE: str
    RATE_QUOTE: str
    RATE_API_URL: str
    RATE_HISTORY_URL: str
    RATE_TIMEOUT_S: float
    RATE_MAX_RETRIES: int
    REFRESH_INTERVAL_S: float
    HISTORY_REFRESH_INTERVAL_S: float
    HISTORY_DAYS: int
    SYNTHETIC_SEED: int
    STATE_FILE: str
    API_HOST: str
    API_PORT: int


def _read_settings() -> Settings:
    """Read all configuration from environment variables.

    Returns:
        Settings object with all configuration values.

    Note:
        Invalid numeric values fall back to sensible defaults.
    """
    token = os.environ.get("BOT_TOKEN") or None
    allowed = _split_ints(os.environ.get("ALLOWED_CHAT_IDS", ""))
    rate_limit = _float_env("RATE_LIMIT_S", 1.0)
    totp_secret = os.environ.get("BOT_AUTH_TOTP_SECRET") or None

    # Upstream rate source
    base = (os.environ.get("RATE_BASE") or "THB").strip().upper()
    quote = (os.environ.get("RATE_QUOTE") or "USD").strip().upper()
    api_url = os.environ.get("RATE_API_URL") or (
        "https://api.exchangerate-api.com/v4/latest/{quote}"
    )
    history_url = os.environ.get("RATE_HISTORY_URL") or (
        "https://api.frankfurter.app/{start}..{end}"
    )
    timeout = _float_env("RATE_TIMEOUT_S", 10.0)
    max_retries = max(0, _int_env("RATE_MAX_RETRIES", 2))

    # Refresh cadence
    refresh_interval = max(5.0, _float_env("REFRESH_INTERVAL_S", 5 * 60))
    history_interval = max(60.0, _float_env("HISTORY_REFRESH_INTERVAL_S", 60 * 60))
    history_days = max(1, _int_env("HISTORY_DAYS", 365))
    seed = _int_env("SYNTHETIC_SEED", 2750)

    state_file = os.environ.get("STATE_FILE") or "data/alert_state.json"
    api_host = os.environ.get("API_HOST") or "0.0.0.0"
    api_port = _int_env("API_PORT", 3001)

    return Settings(
        BOT_TOKEN=token,
        ALLOWED_CHAT_IDS=allowed,
        RATE_LIMIT_S=rate_limit,
        BOT_AUTH_TOTP_SECRET=totp_secret,
        RATE_BASE=base,
        RATE_QUOTE=quote,
        RATE_API_URL=api_url,
        RATE_HISTORY_URL=history_url,
        RATE_TIMEOUT_S=timeout,
        RATE_MAX_RETRIES=max_retries,
        REFRESH_INTERVAL_S=refresh_interval,
        HISTORY_REFRESH_INTERVAL_S=history_interval,
        HISTORY_DAYS=history_days,
        SYNTHETIC_SEED=seed,
        STATE_FILE=state_file,
        API_HOST=api_host,
        API_PORT=api_port,
    )


settings = _read_settings()


def validate_settings() -> None:
    """Validate critical configuration and log warnings for issues."""
    if settings.BOT_TOKEN is None:
        logger.warning("BOT_TOKEN is not set; alerts will run in demo mode.")
    if not settings.ALLOWED_CHAT_IDS:
        logger.warning(
            "ALLOWED_CHAT_IDS is empty; guarded commands will be unauthorized."
        )
    if settings.BOT_AUTH_TOTP_SECRET is None:
        logger.warning("BOT_AUTH_TOTP_SECRET is not set; /auth will be unavailable.")


# Exported constants
TOKEN: str | None = settings.BOT_TOKEN
ALLOWED: set[int] = settings.ALLOWED_CHAT_IDS
RATE_LIMIT_S: float = settings.RATE_LIMIT_S
BOT_AUTH_TOTP_SECRET: str | None = settings.BOT_AUTH_TOTP_SECRET
RATE_BASE: str = settings.RATE_BASE
RATE_QUOTE: str = settings.RATE_QUOTE
REFRESH_INTERVAL_S: float = settings.REFRESH_INTERVAL_S
HISTORY_REFRESH_INTERVAL_S: float = settings.HISTORY_REFRESH_INTERVAL_S
HISTORY_DAYS: int = settings.HISTORY_DAYS
STATE_FILE: str = settings.STATE_FILE

validate_settings()
