"""
Time Restriction Checker

Quiet-hours enforcement under 15 U.S.C. § 1692c(a)(1).

Key behaviors:
- Allowed iff the debtor's local hour is in [earliest_hour, latest_hour)
- Before earliest_hour: next allowed time is today at earliest_hour local,
  otherwise the next local calendar day at earliest_hour
- Local wall time -> instant goes through zoneinfo with fold=0 (no offset math),
  so spring-forward and fall-back days resolve to the correct UTC instant
- Unknown debtor timezone: the send must be allowed in every fallback zone,
  and next_allowed_time is the first instant allowed in all of them
"""
import logging
import math
from datetime import datetime, time, timedelta, timezone
from typing import List, Optional

from zoneinfo import ZoneInfo

from ...config import EngineSettings
from ...models.compliance import TimeCheckResult
from .clock import ClockSource, DebtorTimezoneResolver, ensure_utc

logger = logging.getLogger(__name__)

# Upper bound on the multi-zone search; US zones converge in two steps
MAX_ZONE_SEARCH_STEPS = 16


def _format_hour(value: datetime) -> str:
    hour = value.hour % 12 or 12
    suffix = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {suffix}"


class TimeRestrictionChecker:
    def __init__(self, resolver: DebtorTimezoneResolver, clock: ClockSource, settings: EngineSettings):
        self.resolver = resolver
        self.clock = clock
        self.earliest_hour = settings.earliest_hour
        self.latest_hour = settings.latest_hour

    # ===== TIMEZONE =====

    def set_debtor_timezone(self, debtor_id: str, timezone_name: str) -> None:
        self.resolver.set_timezone(debtor_id, timezone_name)

    def get_debtor_timezone(self, debtor_id: str) -> str:
        return self.resolver.get_timezone(debtor_id)

    # ===== CORE PREDICATE =====

    def _hour_allowed(self, zone: ZoneInfo, instant: datetime) -> bool:
        local_hour = instant.astimezone(zone).hour
        return self.earliest_hour <= local_hour < self.latest_hour

    def _next_allowed_in_zone(self, zone: ZoneInfo, instant: datetime) -> datetime:
        local = instant.astimezone(zone)
        target_date = local.date()
        if local.hour >= self.earliest_hour:
            target_date = target_date + timedelta(days=1)
        local_open = datetime.combine(target_date, time(self.earliest_hour), tzinfo=zone)
        return local_open.astimezone(timezone.utc)

    def _next_allowed_all(self, zones: List[ZoneInfo], instant: datetime) -> Optional[datetime]:
        candidate = instant
        for _ in range(MAX_ZONE_SEARCH_STEPS):
            blocked = [z for z in zones if not self._hour_allowed(z, candidate)]
            if not blocked:
                return candidate
            candidate = max(self._next_allowed_in_zone(z, candidate) for z in blocked)
        logger.warning(f"No common contact window found across {len(zones)} zones")
        return None

    def evaluate_at(self, debtor_id: str, instant: datetime) -> TimeCheckResult:
        instant = ensure_utc(instant)
        zones = self.resolver.resolve(debtor_id)
        blocked = [z for z in zones if not self._hour_allowed(z, instant)]
        allowed = not blocked

        # Report in the zone that decided the outcome
        reporting_zone = blocked[0] if blocked else zones[0]
        local = instant.astimezone(reporting_zone)

        return TimeCheckResult(
            allowed=allowed,
            current_hour=local.hour,
            timezone=reporting_zone.key,
            debtor_local_time=local,
            next_allowed_time=None if allowed else self._next_allowed_all(zones, instant),
            restriction_start=f"{self.latest_hour:02d}:00",
            restriction_end=f"{self.earliest_hour:02d}:00",
        )

    def is_allowed(self, debtor_id: str) -> TimeCheckResult:
        return self.evaluate_at(debtor_id, self.clock.now())

    def would_be_allowed_at(self, debtor_id: str, instant: datetime) -> bool:
        """Same decision is_allowed would make if called at `instant`."""
        return self.evaluate_at(debtor_id, instant).allowed

    # ===== DISPLAY HELPERS =====

    def restriction_message(self, debtor_id: str) -> str:
        result = self.is_allowed(debtor_id)
        if result.allowed:
            return "Communication is currently allowed."

        if result.next_allowed_time:
            next_time = _format_hour(result.next_allowed_time.astimezone(ZoneInfo(result.timezone)))
        else:
            next_time = _format_hour(datetime.combine(self.clock.now().date(), time(self.earliest_hour)))
        return f"Communication is restricted until {next_time} in the debtor's timezone ({result.timezone})."

    def hours_until_allowed(self, debtor_id: str) -> int:
        """Whole hours (rounded up) until the next allowed instant, 0 when allowed."""
        result = self.is_allowed(debtor_id)
        if result.allowed or result.next_allowed_time is None:
            return 0
        delta = result.next_allowed_time - self.clock.now()
        return math.ceil(delta.total_seconds() / 3600)
