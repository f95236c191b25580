"""
Clock Source

Supplies the current instant and resolves a debtor's local timezone.

All instants handled by the engine are timezone-aware UTC datetimes.
Local wall-clock times exist only inside the time restriction checker.
"""
import logging
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ...errors import ComplianceValidationError

logger = logging.getLogger(__name__)


def ensure_utc(value: datetime) -> datetime:
    """Normalize a datetime to aware UTC. Naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def load_zone(name: Optional[str]) -> Optional[ZoneInfo]:
    """Return the ZoneInfo for an IANA name, or None if it is empty or unknown."""
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return None


class ClockSource(ABC):
    """Source of "now" for every temporal decision in the engine."""

    @abstractmethod
    def now(self) -> datetime:
        """Current instant as aware UTC."""


class SystemClock(ClockSource):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(ClockSource):
    """Manually driven clock for deterministic tests and replays."""

    def __init__(self, start: datetime):
        self._now = ensure_utc(start)
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._now

    def set(self, value: datetime) -> None:
        with self._lock:
            self._now = ensure_utc(value)

    def advance(self, **kwargs) -> datetime:
        """Move the clock forward by timedelta(**kwargs) and return the new instant."""
        with self._lock:
            self._now = self._now + timedelta(**kwargs)
            return self._now


class DebtorTimezoneResolver:
    """
    Resolves the zones a debtor's local time must be evaluated in.

    Known debtor → [their zone].
    Unset or invalid zone → every zone in the fallback set. Callers must
    treat a send as allowed only when it is allowed in all returned zones,
    so an unknown location never relaxes the restriction.
    """

    def __init__(self, store, default_timezone: str, fallback_timezones: Sequence[str]):
        self.store = store
        self.default_timezone = default_timezone
        zones = [load_zone(name) for name in fallback_timezones]
        self.fallback_zones: List[ZoneInfo] = [z for z in zones if z is not None]
        if not self.fallback_zones:
            default_zone = load_zone(default_timezone)
            if default_zone is None:
                raise ComplianceValidationError(f"Invalid default timezone: {default_timezone}")
            self.fallback_zones = [default_zone]

    def set_timezone(self, debtor_id: str, timezone_name: str) -> None:
        if load_zone(timezone_name) is None:
            raise ComplianceValidationError(f"Invalid timezone: {timezone_name}")
        self.store.set_debtor_timezone(debtor_id, timezone_name)

    def get_timezone(self, debtor_id: str) -> str:
        """The debtor's stored zone name, or the configured default."""
        return self.store.get_debtor_timezone(debtor_id) or self.default_timezone

    def resolve(self, debtor_id: str) -> List[ZoneInfo]:
        name = self.store.get_debtor_timezone(debtor_id)
        zone = load_zone(name)
        if zone is not None:
            return [zone]
        if name:
            logger.warning(f"Invalid timezone '{name}' stored for debtor {debtor_id}, using fallback zones")
        else:
            logger.warning(f"No timezone for debtor {debtor_id}, using fallback zones")
        return list(self.fallback_zones)
