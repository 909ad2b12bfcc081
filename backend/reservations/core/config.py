"""
Centralized configuration module for application-wide settings.

Values are read from environment variables (a local ``.env`` file is loaded
first when present). Each setting has a getter that re-reads the environment,
so tests can override a value with ``monkeypatch.setenv`` and call the getter
again; the module-level constants hold the values seen at import time.
"""

import logging
import os
from decimal import Decimal, InvalidOperation
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Only load .env outside of test runs so test env vars stay authoritative
if os.getenv("TESTING", "").lower() not in ("1", "true", "yes"):
    load_dotenv()

_TRUTHY = ("true", "1", "yes")

# ===========================
# Timezone Configuration
# ===========================


def get_app_timezone() -> ZoneInfo:
    """
    Get the application timezone from environment variable.

    Returns:
        ZoneInfo: Application timezone (defaults to UTC if not configured)

    Environment Variables:
        TZ: Timezone identifier (e.g., 'Asia/Kolkata', 'UTC')
            Default: 'UTC'
    """
    tz_name = os.getenv("TZ", "UTC")

    try:
        return ZoneInfo(tz_name)
    except Exception as e:
        logger.warning(
            f"Invalid timezone '{tz_name}' specified in TZ environment variable. "
            f"Falling back to UTC. Error: {e}"
        )
        return ZoneInfo("UTC")


# Global timezone instance - initialized once at import time
APP_TZ = get_app_timezone()


# ===========================
# Database Configuration
# ===========================


def get_database_url() -> str:
    """
    Get the database URL.

    Environment Variables:
        DATABASE_URL: SQLAlchemy URL
            Default: 'sqlite:///./reservations.db'
            Production: a PostgreSQL URL (row locks need a real server)
    """
    return os.getenv("DATABASE_URL", "sqlite:///./reservations.db")


# ===========================
# Locking Configuration
# ===========================


def get_lock_timeout_seconds() -> float:
    """
    Get the bounded wait for acquiring a resource lock.

    A reservation that cannot lock its resource row within this many seconds
    fails with ``BusyError`` instead of blocking indefinitely.

    Environment Variables:
        LOCK_TIMEOUT_SECONDS: positive number of seconds
            Default: 5
    """
    raw = os.getenv("LOCK_TIMEOUT_SECONDS", "5")
    try:
        value = float(raw)
        if value <= 0:
            raise ValueError("must be positive")
        return value
    except ValueError as e:
        logger.warning(
            f"Invalid LOCK_TIMEOUT_SECONDS '{raw}'. Falling back to 5 seconds. Error: {e}"
        )
        return 5.0


# ===========================
# Commission Configuration
# ===========================

COMMISSION_POLICY_UPSERT = "upsert"
COMMISSION_POLICY_APPEND = "append"


def get_commission_rate() -> Decimal:
    """
    Get the marketplace commission rate as a fraction of monthly sales.

    Environment Variables:
        COMMISSION_RATE: decimal between 0 and 1
            Default: '0.10'
    """
    raw = os.getenv("COMMISSION_RATE", "0.10")
    try:
        rate = Decimal(raw)
        if rate < 0 or rate > 1:
            raise InvalidOperation
        return rate
    except InvalidOperation:
        logger.warning(f"Invalid COMMISSION_RATE '{raw}'. Falling back to 0.10")
        return Decimal("0.10")


def get_commission_policy() -> str:
    """
    Get how repeated commission calculations for the same vendor/month are stored.

    Environment Variables:
        COMMISSION_POLICY:
            'upsert' - keep one row per vendor/month holding the latest value
            'append' - insert a new row on every calculation (history)
            Default: 'upsert'
    """
    policy = os.getenv("COMMISSION_POLICY", COMMISSION_POLICY_UPSERT).strip().lower()
    if policy not in (COMMISSION_POLICY_UPSERT, COMMISSION_POLICY_APPEND):
        logger.warning(
            f"Unknown COMMISSION_POLICY '{policy}'. Falling back to '{COMMISSION_POLICY_UPSERT}'"
        )
        return COMMISSION_POLICY_UPSERT
    return policy


# ===========================
# Audit Configuration
# ===========================

AUDIT_POLICY_STRICT = "strict"
AUDIT_POLICY_BEST_EFFORT = "best_effort"


def get_audit_failure_policy() -> str:
    """
    Get what happens when an audit entry cannot be appended.

    Environment Variables:
        AUDIT_FAILURE_POLICY:
            'strict'      - abort the enclosing transaction
            'best_effort' - log a warning and continue
            Default: 'strict'
    """
    policy = os.getenv("AUDIT_FAILURE_POLICY", AUDIT_POLICY_STRICT).strip().lower()
    if policy not in (AUDIT_POLICY_STRICT, AUDIT_POLICY_BEST_EFFORT):
        logger.warning(
            f"Unknown AUDIT_FAILURE_POLICY '{policy}'. Falling back to '{AUDIT_POLICY_STRICT}'"
        )
        return AUDIT_POLICY_STRICT
    return policy


# ===========================
# Logging Configuration
# ===========================


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()


def get_log_json() -> bool:
    return os.getenv("LOG_JSON", "false").strip().lower() in _TRUTHY


def get_log_to_file() -> bool:
    return os.getenv("LOG_TO_FILE", "false").strip().lower() in _TRUTHY


def get_slow_query_threshold_ms() -> int:
    try:
        return int(os.getenv("ALERT_QUERY_MS_THRESHOLD", "100"))
    except (TypeError, ValueError):
        return 100


def get_slow_query_alerts_enabled() -> bool:
    return os.getenv("ALERT_SLOW_QUERY_ENABLED", "true").strip().lower() in _TRUTHY


def log_config():
    """
    Log the active configuration.

    Should be called during startup to provide visibility into the
    policies in effect.
    """
    logger.info(
        "Configuration initialized",
        extra={
            "context": {
                "timezone": str(APP_TZ),
                "lock_timeout_seconds": get_lock_timeout_seconds(),
                "commission_rate": str(get_commission_rate()),
                "commission_policy": get_commission_policy(),
                "audit_failure_policy": get_audit_failure_policy(),
            }
        },
    )
