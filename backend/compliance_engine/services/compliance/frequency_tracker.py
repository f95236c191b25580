"""
Frequency Tracker

Rolling-window contact counting under Regulation F (12 CFR § 1006.14(b)(2)).

Key behaviors:
- The window is trailing from "now", not calendar-aligned
- Only OUTBOUND events on channels in channels_in_limit count
- An event is in the window when now - window < timestamp <= now
- next_reset_date = oldest in-window timestamp + window; events tied on the
  oldest timestamp all leave the window at that same instant
- Events older than the retention horizon are purged lazily on write
"""
import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional
from uuid import uuid4

from ...config import EngineSettings
from ...models.compliance import (
    CommunicationChannel,
    CommunicationDirection,
    ContactEvent,
    FrequencyResult,
)
from .clock import ClockSource, ensure_utc
from .store import ComplianceStore

logger = logging.getLogger(__name__)


class FrequencyTracker:
    """Per-debtor contact history with trailing-window limits."""

    def __init__(self, store: ComplianceStore, clock: ClockSource, settings: EngineSettings):
        self.store = store
        self.clock = clock
        self.limit = settings.max_contacts_per_week
        self.window = timedelta(days=settings.window_days)
        self.retention = timedelta(days=settings.retention_days)
        self.warning_remaining = settings.warning_remaining
        self.channels_in_limit = frozenset(settings.channels_in_limit)

    def record(
        self,
        debtor_id: str,
        case_id: str,
        channel: CommunicationChannel,
        timestamp: Optional[datetime] = None,
        direction: CommunicationDirection = CommunicationDirection.OUTBOUND,
        event_id: Optional[str] = None,
    ) -> ContactEvent:
        """Append a contact event and drop this debtor's expired history."""
        event = ContactEvent(
            id=event_id or str(uuid4()),
            debtor_id=debtor_id,
            case_id=case_id,
            direction=direction,
            channel=channel,
            timestamp=ensure_utc(timestamp) if timestamp else self.clock.now(),
        )
        self.store.add_contact_event(event)
        removed = self.store.purge_contact_events(
            self.clock.now() - self.retention, debtor_id=debtor_id
        )
        if removed:
            logger.debug(f"Purged {removed} expired contact events for debtor {debtor_id}")
        return event

    def _events_in_window(self, debtor_id: str, case_id: str, now: datetime) -> List[ContactEvent]:
        window_start = now - self.window
        events = [
            e for e in self.store.list_contact_events(debtor_id)
            if e.case_id == case_id
            and e.direction == CommunicationDirection.OUTBOUND
            and e.channel.value in self.channels_in_limit
            and window_start < e.timestamp <= now
        ]
        events.sort(key=lambda e: e.timestamp)
        return events

    def check(self, debtor_id: str, case_id: str) -> FrequencyResult:
        now = self.clock.now()
        events = self._events_in_window(debtor_id, case_id, now)

        used = len(events)
        remaining = max(0, self.limit - used)
        next_reset = events[0].timestamp + self.window if events else now + self.window

        return FrequencyResult(
            compliant=remaining > 0,
            used=used,
            limit=self.limit,
            remaining=remaining,
            warning_threshold=0 < remaining <= self.warning_remaining,
            next_reset_date=next_reset,
            recent_communications=events,
        )

    def status(self, debtor_id: str, case_id: str) -> Dict[str, object]:
        """Compact usage figure for dashboards."""
        result = self.check(debtor_id, case_id)
        if result.remaining == 0:
            status = "exceeded"
        elif result.warning_threshold:
            status = "warning"
        else:
            status = "ok"
        return {
            "used": result.used,
            "limit": result.limit,
            "percentage": round(result.used / result.limit * 100),
            "status": status,
        }

    def purge_expired(self) -> int:
        """Global sweep of events past the retention horizon."""
        removed = self.store.purge_contact_events(self.clock.now() - self.retention)
        logger.debug(f"Purged {removed} expired contact events")
        return removed

    def clear(self, debtor_id: str) -> None:
        self.store.clear_contact_events(debtor_id)
