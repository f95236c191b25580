"""
Compliance Store

Narrow storage interface used by every enforcement component.

Two implementations:
- InMemoryComplianceStore: process-local dicts, one instance per test
- SqlAlchemyComplianceStore: relational persistence via the ORM models

Concurrency:
- lock(key) returns a re-entrant lock striped by key. The audit log holds
  the case lock across check + write, so concurrent attempts on one case
  serialize while unrelated cases proceed in parallel.
- Communication records are insert-only. There is no update or delete.
"""
import logging
import threading
import zlib
from abc import ABC, abstractmethod
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional

from ...models.compliance import (
    CeaseDesistRecord,
    CommunicationRecord,
    ComplianceFlag,
    ComplianceFlagType,
    ComplianceIssue,
    ContactEvent,
    FlagSeverity,
)
from ...models.db_models import (
    CeaseDesistDB,
    CommunicationLogDB,
    ComplianceFlagDB,
    ContactEventDB,
    DebtorTimezoneDB,
)
from .clock import ensure_utc

logger = logging.getLogger(__name__)


class KeyedLocks:
    """Fixed table of re-entrant locks, selected by a stable hash of the key."""

    def __init__(self, stripes: int = 64):
        self._locks = [threading.RLock() for _ in range(stripes)]

    def for_key(self, key: str) -> threading.RLock:
        return self._locks[zlib.crc32(key.encode("utf-8")) % len(self._locks)]

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        lock = self.for_key(key)
        with lock:
            yield


class ComplianceStore(ABC):
    """Storage operations the engine depends on."""

    def __init__(self, lock_stripes: int = 64):
        self._locks = KeyedLocks(lock_stripes)

    def lock(self, key: str):
        """Context manager serializing work on one debtor/case key."""
        return self._locks.hold(key)

    # Contact events ---------------------------------------------------------

    @abstractmethod
    def add_contact_event(self, event: ContactEvent) -> None: ...

    @abstractmethod
    def list_contact_events(self, debtor_id: str) -> List[ContactEvent]: ...

    @abstractmethod
    def purge_contact_events(self, older_than: datetime, debtor_id: Optional[str] = None) -> int: ...

    @abstractmethod
    def clear_contact_events(self, debtor_id: str) -> None: ...

    # Debtor timezones -------------------------------------------------------

    @abstractmethod
    def get_debtor_timezone(self, debtor_id: str) -> Optional[str]: ...

    @abstractmethod
    def set_debtor_timezone(self, debtor_id: str, timezone_name: str) -> None: ...

    # Cease and desist -------------------------------------------------------

    @abstractmethod
    def get_cease_desist(self, case_id: str) -> Optional[CeaseDesistRecord]: ...

    @abstractmethod
    def save_cease_desist(self, record: CeaseDesistRecord) -> None: ...

    @abstractmethod
    def list_cease_desist(self) -> List[CeaseDesistRecord]: ...

    # Communication log (append-only) ----------------------------------------

    @abstractmethod
    def append_communication(self, record: CommunicationRecord) -> None: ...

    @abstractmethod
    def get_communication(self, record_id: str) -> Optional[CommunicationRecord]: ...

    @abstractmethod
    def list_communications(self, case_id: Optional[str] = None) -> List[CommunicationRecord]: ...

    # Flags ------------------------------------------------------------------

    @abstractmethod
    def add_flag(self, flag: ComplianceFlag) -> None: ...

    @abstractmethod
    def update_flag_resolution(self, flag: ComplianceFlag) -> None: ...

    @abstractmethod
    def get_flag(self, flag_id: str) -> Optional[ComplianceFlag]: ...

    @abstractmethod
    def list_flags(self, case_id: Optional[str] = None) -> List[ComplianceFlag]: ...


# =============================================================================
# IN-MEMORY STORE
# =============================================================================

class InMemoryComplianceStore(ComplianceStore):
    """Dict-backed store. Returned objects are copies; records are frozen."""

    def __init__(self, lock_stripes: int = 64):
        super().__init__(lock_stripes)
        self._guard = threading.RLock()
        self._events: Dict[str, List[ContactEvent]] = defaultdict(list)
        self._timezones: Dict[str, str] = {}
        self._cease_desist: Dict[str, CeaseDesistRecord] = {}
        self._communications: Dict[str, CommunicationRecord] = {}
        self._flags: Dict[str, ComplianceFlag] = {}

    def add_contact_event(self, event: ContactEvent) -> None:
        with self._guard:
            self._events[event.debtor_id].append(event)

    def list_contact_events(self, debtor_id: str) -> List[ContactEvent]:
        with self._guard:
            return list(self._events.get(debtor_id, []))

    def purge_contact_events(self, older_than: datetime, debtor_id: Optional[str] = None) -> int:
        removed = 0
        with self._guard:
            keys = [debtor_id] if debtor_id is not None else list(self._events.keys())
            for key in keys:
                events = self._events.get(key)
                if not events:
                    continue
                kept = [e for e in events if e.timestamp >= older_than]
                removed += len(events) - len(kept)
                if kept:
                    self._events[key] = kept
                else:
                    del self._events[key]
        return removed

    def clear_contact_events(self, debtor_id: str) -> None:
        with self._guard:
            self._events.pop(debtor_id, None)

    def get_debtor_timezone(self, debtor_id: str) -> Optional[str]:
        with self._guard:
            return self._timezones.get(debtor_id)

    def set_debtor_timezone(self, debtor_id: str, timezone_name: str) -> None:
        with self._guard:
            self._timezones[debtor_id] = timezone_name

    def get_cease_desist(self, case_id: str) -> Optional[CeaseDesistRecord]:
        with self._guard:
            record = self._cease_desist.get(case_id)
            return replace(record) if record else None

    def save_cease_desist(self, record: CeaseDesistRecord) -> None:
        with self._guard:
            self._cease_desist[record.case_id] = replace(record)

    def list_cease_desist(self) -> List[CeaseDesistRecord]:
        with self._guard:
            return [replace(r) for r in self._cease_desist.values()]

    def append_communication(self, record: CommunicationRecord) -> None:
        with self._guard:
            if record.id in self._communications:
                raise ValueError(f"Communication record {record.id} already exists")
            self._communications[record.id] = record

    def get_communication(self, record_id: str) -> Optional[CommunicationRecord]:
        with self._guard:
            return self._communications.get(record_id)

    def list_communications(self, case_id: Optional[str] = None) -> List[CommunicationRecord]:
        with self._guard:
            return [
                r for r in self._communications.values()
                if case_id is None or r.case_id == case_id
            ]

    def add_flag(self, flag: ComplianceFlag) -> None:
        with self._guard:
            self._flags[flag.id] = replace(flag, details=dict(flag.details))

    def update_flag_resolution(self, flag: ComplianceFlag) -> None:
        with self._guard:
            existing = self._flags.get(flag.id)
            if existing is None:
                raise KeyError(flag.id)
            self._flags[flag.id] = replace(
                existing,
                resolved=flag.resolved,
                resolution_notes=flag.resolution_notes,
                resolved_by=flag.resolved_by,
                resolved_at=flag.resolved_at,
            )

    def get_flag(self, flag_id: str) -> Optional[ComplianceFlag]:
        with self._guard:
            flag = self._flags.get(flag_id)
            return replace(flag, details=dict(flag.details)) if flag else None

    def list_flags(self, case_id: Optional[str] = None) -> List[ComplianceFlag]:
        with self._guard:
            return [
                replace(f, details=dict(f.details)) for f in self._flags.values()
                if case_id is None or f.case_id == case_id
            ]


# =============================================================================
# SQLALCHEMY STORE
# =============================================================================

def _to_db_time(value: Optional[datetime]) -> Optional[datetime]:
    """Aware datetime -> naive UTC for storage."""
    if value is None:
        return None
    return ensure_utc(value).replace(tzinfo=None)


def _from_db_time(value: Optional[datetime]) -> Optional[datetime]:
    """Stored naive UTC -> aware UTC."""
    if value is None:
        return None
    return value.replace(tzinfo=timezone.utc)


class SqlAlchemyComplianceStore(ComplianceStore):
    """
    Relational store over the ORM models.

    Each operation runs in its own session and commits before returning.
    The keyed locks serialize check + write within this process; deployments
    running several processes against one database need a database-level
    guard in addition.
    """

    def __init__(self, session_factory, lock_stripes: int = 64):
        super().__init__(lock_stripes)
        self.session_factory = session_factory

    @contextmanager
    def _session(self):
        db = self.session_factory()
        try:
            yield db
            db.commit()
        except Exception as e:
            db.rollback()
            logger.error(f"Compliance store transaction rolled back: {e}")
            raise
        finally:
            db.close()

    # Contact events ---------------------------------------------------------

    @staticmethod
    def _event_from_row(row) -> ContactEvent:
        return ContactEvent(
            id=row.id,
            debtor_id=row.debtor_id,
            case_id=row.case_id,
            direction=row.direction,
            channel=row.channel,
            timestamp=_from_db_time(row.timestamp),
        )

    def add_contact_event(self, event: ContactEvent) -> None:
        with self._session() as db:
            db.add(ContactEventDB(
                id=event.id,
                debtor_id=event.debtor_id,
                case_id=event.case_id,
                direction=event.direction,
                channel=event.channel,
                timestamp=_to_db_time(event.timestamp),
            ))

    def list_contact_events(self, debtor_id: str) -> List[ContactEvent]:
        with self._session() as db:
            rows = (
                db.query(ContactEventDB)
                .filter(ContactEventDB.debtor_id == debtor_id)
                .order_by(ContactEventDB.timestamp.asc())
                .all()
            )
            return [self._event_from_row(r) for r in rows]

    def purge_contact_events(self, older_than: datetime, debtor_id: Optional[str] = None) -> int:
        with self._session() as db:
            query = db.query(ContactEventDB).filter(
                ContactEventDB.timestamp < _to_db_time(older_than)
            )
            if debtor_id is not None:
                query = query.filter(ContactEventDB.debtor_id == debtor_id)
            return query.delete(synchronize_session=False)

    def clear_contact_events(self, debtor_id: str) -> None:
        with self._session() as db:
            db.query(ContactEventDB).filter(
                ContactEventDB.debtor_id == debtor_id
            ).delete(synchronize_session=False)

    # Debtor timezones -------------------------------------------------------

    def get_debtor_timezone(self, debtor_id: str) -> Optional[str]:
        with self._session() as db:
            row = db.get(DebtorTimezoneDB, debtor_id)
            return row.timezone if row else None

    def set_debtor_timezone(self, debtor_id: str, timezone_name: str) -> None:
        with self._session() as db:
            row = db.get(DebtorTimezoneDB, debtor_id)
            if row is None:
                db.add(DebtorTimezoneDB(debtor_id=debtor_id, timezone=timezone_name))
            else:
                row.timezone = timezone_name

    # Cease and desist -------------------------------------------------------

    @staticmethod
    def _cease_desist_from_row(row) -> CeaseDesistRecord:
        return CeaseDesistRecord(
            case_id=row.case_id,
            debtor_id=row.debtor_id,
            active=row.active,
            requested_at=_from_db_time(row.requested_at),
            request_method=row.request_method,
            notes=row.notes,
            acknowledged_at=_from_db_time(row.acknowledged_at),
            acknowledged_by=row.acknowledged_by,
            lifted_at=_from_db_time(row.lifted_at),
            lifted_by=row.lifted_by,
            lift_reason=row.lift_reason,
        )

    def get_cease_desist(self, case_id: str) -> Optional[CeaseDesistRecord]:
        with self._session() as db:
            row = db.get(CeaseDesistDB, case_id)
            return self._cease_desist_from_row(row) if row else None

    def save_cease_desist(self, record: CeaseDesistRecord) -> None:
        with self._session() as db:
            db.merge(CeaseDesistDB(
                case_id=record.case_id,
                debtor_id=record.debtor_id,
                active=record.active,
                requested_at=_to_db_time(record.requested_at),
                request_method=record.request_method,
                notes=record.notes,
                acknowledged_at=_to_db_time(record.acknowledged_at),
                acknowledged_by=record.acknowledged_by,
                lifted_at=_to_db_time(record.lifted_at),
                lifted_by=record.lifted_by,
                lift_reason=record.lift_reason,
            ))

    def list_cease_desist(self) -> List[CeaseDesistRecord]:
        with self._session() as db:
            return [self._cease_desist_from_row(r) for r in db.query(CeaseDesistDB).all()]

    # Communication log ------------------------------------------------------

    @staticmethod
    def _communication_from_row(row) -> CommunicationRecord:
        issues = tuple(
            ComplianceIssue(
                type=ComplianceFlagType(i["type"]),
                severity=FlagSeverity(i["severity"]),
                description=i["description"],
                section=i.get("section"),
            )
            for i in (row.compliance_issues or [])
        )
        return CommunicationRecord(
            id=row.id,
            case_id=row.case_id,
            debtor_id=row.debtor_id,
            creditor_id=row.creditor_id,
            communication_type=row.communication_type,
            direction=row.direction,
            channel=row.channel,
            message_id=row.message_id,
            content=row.content,
            original_content=row.original_content,
            tone_score=row.tone_score,
            compliant=row.compliant,
            compliance_issues=issues,
            timestamp=_from_db_time(row.timestamp),
            supersedes_id=row.supersedes_id,
        )

    def append_communication(self, record: CommunicationRecord) -> None:
        with self._session() as db:
            db.add(CommunicationLogDB(
                id=record.id,
                case_id=record.case_id,
                debtor_id=record.debtor_id,
                creditor_id=record.creditor_id,
                communication_type=record.communication_type,
                direction=record.direction,
                channel=record.channel,
                message_id=record.message_id,
                content=record.content,
                original_content=record.original_content,
                tone_score=record.tone_score,
                compliant=record.compliant,
                compliance_issues=[i.to_dict() for i in record.compliance_issues],
                timestamp=_to_db_time(record.timestamp),
                supersedes_id=record.supersedes_id,
            ))

    def get_communication(self, record_id: str) -> Optional[CommunicationRecord]:
        with self._session() as db:
            row = db.get(CommunicationLogDB, record_id)
            return self._communication_from_row(row) if row else None

    def list_communications(self, case_id: Optional[str] = None) -> List[CommunicationRecord]:
        with self._session() as db:
            query = db.query(CommunicationLogDB)
            if case_id is not None:
                query = query.filter(CommunicationLogDB.case_id == case_id)
            return [self._communication_from_row(r) for r in query.all()]

    # Flags ------------------------------------------------------------------

    @staticmethod
    def _flag_from_row(row) -> ComplianceFlag:
        return ComplianceFlag(
            id=row.id,
            case_id=row.case_id,
            message_id=row.message_id,
            flag_type=row.flag_type,
            severity=row.severity,
            details=dict(row.details or {}),
            created_at=_from_db_time(row.created_at),
            resolved=row.resolved,
            resolution_notes=row.resolution_notes,
            resolved_by=row.resolved_by,
            resolved_at=_from_db_time(row.resolved_at),
        )

    def add_flag(self, flag: ComplianceFlag) -> None:
        with self._session() as db:
            db.add(ComplianceFlagDB(
                id=flag.id,
                case_id=flag.case_id,
                message_id=flag.message_id,
                flag_type=flag.flag_type,
                severity=flag.severity,
                details=dict(flag.details),
                resolved=flag.resolved,
                resolution_notes=flag.resolution_notes,
                resolved_by=flag.resolved_by,
                created_at=_to_db_time(flag.created_at),
                resolved_at=_to_db_time(flag.resolved_at),
            ))

    def update_flag_resolution(self, flag: ComplianceFlag) -> None:
        with self._session() as db:
            row = db.get(ComplianceFlagDB, flag.id)
            if row is None:
                raise KeyError(flag.id)
            row.resolved = flag.resolved
            row.resolution_notes = flag.resolution_notes
            row.resolved_by = flag.resolved_by
            row.resolved_at = _to_db_time(flag.resolved_at)

    def get_flag(self, flag_id: str) -> Optional[ComplianceFlag]:
        with self._session() as db:
            row = db.get(ComplianceFlagDB, flag_id)
            return self._flag_from_row(row) if row else None

    def list_flags(self, case_id: Optional[str] = None) -> List[ComplianceFlag]:
        with self._session() as db:
            query = db.query(ComplianceFlagDB)
            if case_id is not None:
                query = query.filter(ComplianceFlagDB.case_id == case_id)
            return [self._flag_from_row(r) for r in query.all()]
