"""
Compliance Engine - Configuration

Regulation F defaults, overridable through environment variables.
"""
import os
from dataclasses import dataclass
from typing import Tuple

from .errors import ComplianceValidationError


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./compliance_engine.db")

# Used when a debtor's timezone is unknown: a send must be allowed in all of them.
US_FALLBACK_TIMEZONES = (
    "America/New_York",
    "America/Chicago",
    "America/Denver",
    "America/Phoenix",
    "America/Los_Angeles",
    "America/Anchorage",
    "Pacific/Honolulu",
)


@dataclass(frozen=True)
class EngineSettings:
    max_contacts_per_week: int = 7
    window_days: int = 7
    retention_days: int = 30
    earliest_hour: int = 8   # 8:00 AM debtor local time
    latest_hour: int = 21    # 9:00 PM debtor local time
    warning_remaining: int = 2
    channels_in_limit: Tuple[str, ...] = ("phone", "sms", "platform")
    default_timezone: str = "America/New_York"
    fallback_timezones: Tuple[str, ...] = US_FALLBACK_TIMEZONES
    lock_stripes: int = 64
    rule_set_version: str = "fdcpa-2024.1"

    def __post_init__(self):
        if self.max_contacts_per_week < 1:
            raise ComplianceValidationError("max_contacts_per_week must be at least 1")
        if self.window_days < 1 or self.retention_days < self.window_days:
            raise ComplianceValidationError(
                "retention_days must be >= window_days and window_days >= 1"
            )
        if not 0 <= self.earliest_hour < self.latest_hour <= 24:
            raise ComplianceValidationError(
                f"Invalid contact window {self.earliest_hour}-{self.latest_hour}"
            )
        if self.lock_stripes < 1:
            raise ComplianceValidationError("lock_stripes must be at least 1")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ComplianceValidationError(f"{name} must be an integer, got {value!r}")


def _env_list(name: str, default: Tuple[str, ...]) -> Tuple[str, ...]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return tuple(item.strip() for item in value.split(",") if item.strip())


def load_settings() -> EngineSettings:
    """Build settings from the environment."""
    default_timezone = os.getenv("COMPLIANCE_DEFAULT_TIMEZONE", "America/New_York")
    return EngineSettings(
        max_contacts_per_week=_env_int("COMPLIANCE_MAX_CONTACTS_PER_WEEK", 7),
        window_days=_env_int("COMPLIANCE_WINDOW_DAYS", 7),
        retention_days=_env_int("COMPLIANCE_RETENTION_DAYS", 30),
        earliest_hour=_env_int("COMPLIANCE_EARLIEST_HOUR", 8),
        latest_hour=_env_int("COMPLIANCE_LATEST_HOUR", 21),
        warning_remaining=_env_int("COMPLIANCE_WARNING_REMAINING", 2),
        channels_in_limit=_env_list("COMPLIANCE_CHANNELS_IN_LIMIT", ("phone", "sms", "platform")),
        default_timezone=default_timezone,
        fallback_timezones=_env_list("COMPLIANCE_FALLBACK_TIMEZONES", US_FALLBACK_TIMEZONES),
        lock_stripes=_env_int("COMPLIANCE_LOCK_STRIPES", 64),
        rule_set_version=os.getenv("COMPLIANCE_RULE_SET_VERSION", "fdcpa-2024.1"),
    )
