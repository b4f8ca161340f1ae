"""Environment configuration for the contact endpoint."""

import math
import os
from dataclasses import dataclass
from typing import Optional


DEFAULT_RATE_LIMIT_WINDOW_MS = 10 * 60 * 1000  # 10 minutes
DEFAULT_RATE_LIMIT_MAX = 6
DEFAULT_RATE_LIMIT_MAX_CLIENTS = 10000
DEFAULT_SUBJECT = "Richiesta info"
DEFAULT_TRANSPORT_TIMEOUT_SECONDS = 10.0


def _env_str(name: str) -> Optional[str]:
    """Returns the stripped value of an environment variable, or None if unset/blank."""
    value = os.environ.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _env_positive_number(name: str, fallback: float) -> float:
    """Parses a positive finite number, falling back on anything else."""
    raw = os.environ.get(name)
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return fallback
    if not math.isfinite(value) or value <= 0:
        return fallback
    return value


def _env_non_negative_int(name: str, fallback: int) -> int:
    raw = os.environ.get(name)
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return fallback
    return value if value >= 0 else fallback


@dataclass(frozen=True)
class ContactSettings:
    """Snapshot of the contact endpoint configuration."""

    rate_limit_disabled: bool = False
    rate_limit_window_ms: float = DEFAULT_RATE_LIMIT_WINDOW_MS
    rate_limit_max: int = DEFAULT_RATE_LIMIT_MAX
    rate_limit_max_clients: int = DEFAULT_RATE_LIMIT_MAX_CLIENTS
    rate_limit_redis_url: Optional[str] = None

    from_email: Optional[str] = None
    to_email: Optional[str] = None
    subject: str = DEFAULT_SUBJECT

    resend_api_key: Optional[str] = None
    resend_timeout_seconds: float = DEFAULT_TRANSPORT_TIMEOUT_SECONDS

    smtp_host: Optional[str] = None
    smtp_port: Optional[int] = None
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_timeout_seconds: float = DEFAULT_TRANSPORT_TIMEOUT_SECONDS

    @property
    def rate_limit_window_seconds(self) -> float:
        return self.rate_limit_window_ms / 1000


def _env_port(name: str) -> Optional[int]:
    raw = _env_str(name)
    if raw is None:
        return None
    try:
        port = int(raw)
    except ValueError:
        return None
    return port if port > 0 else None


def load_contact_settings() -> ContactSettings:
    """
    Reads the contact configuration from environment variables.

    Called per request so that deployments (and tests) can change the
    environment without restarting the process.
    """
    return ContactSettings(
        rate_limit_disabled=(os.environ.get("RATE_LIMIT_DISABLED") or "").strip().lower() == "true",
        rate_limit_window_ms=_env_positive_number("RATE_LIMIT_WINDOW_MS", DEFAULT_RATE_LIMIT_WINDOW_MS),
        rate_limit_max=math.ceil(_env_positive_number("RATE_LIMIT_MAX", DEFAULT_RATE_LIMIT_MAX)),
        rate_limit_max_clients=_env_non_negative_int("RATE_LIMIT_MAX_CLIENTS", DEFAULT_RATE_LIMIT_MAX_CLIENTS),
        rate_limit_redis_url=_env_str("RATE_LIMIT_REDIS_URL"),
        from_email=_env_str("FROM_EMAIL"),
        to_email=_env_str("TO_EMAIL"),
        subject=_env_str("CONTACT_SUBJECT") or DEFAULT_SUBJECT,
        resend_api_key=_env_str("RESEND_API_KEY"),
        resend_timeout_seconds=_env_positive_number("RESEND_TIMEOUT_SECONDS", DEFAULT_TRANSPORT_TIMEOUT_SECONDS),
        smtp_host=_env_str("SMTP_HOST"),
        smtp_port=_env_port("SMTP_PORT"),
        smtp_user=_env_str("SMTP_USER"),
        smtp_password=_env_str("SMTP_PASS"),
        smtp_timeout_seconds=_env_positive_number("SMTP_TIMEOUT_SECONDS", DEFAULT_TRANSPORT_TIMEOUT_SECONDS),
    )
