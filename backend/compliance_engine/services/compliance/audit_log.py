"""
Compliance Audit Log

Immutable record of every communication attempt plus the flags raised by it.

Key behaviors:
- log() holds the case lock across gate evaluation, record append, and
  frequency write, so concurrent sends on one case cannot overshoot the cap
- A record's compliance_issues is exactly the issue set of the evaluation
  made at send time; one flag is raised per issue
- Only allowed OUTBOUND sends count toward the frequency limit
- Records are never edited or deleted; corrections are new records with
  supersedes_id pointing at the record they correct
- Flags change only through resolve_flag, which requires notes and a resolver
"""
import csv
import io
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Union
from uuid import uuid4

from ...errors import ComplianceValidationError, require_non_blank
from ...models.compliance import (
    CaseComplianceStatus,
    CommunicationChannel,
    CommunicationDetails,
    CommunicationDirection,
    CommunicationRecord,
    CommunicationType,
    ComplianceFlag,
    ComplianceFlagType,
    ComplianceIssue,
    ComplianceOverview,
    ComplianceSummary,
    FlagSeverity,
)
from .cease_desist import CeaseDesistRegistry
from .clock import ClockSource, ensure_utc
from .flag_state_machine import FlagStateMachine
from .frequency_tracker import FrequencyTracker
from .pre_send_gate import PreSendGate, coerce_communication_type
from .store import ComplianceStore
from .time_restriction import TimeRestrictionChecker

logger = logging.getLogger(__name__)

CSV_HEADER = "timestamp,case_id,debtor_id,direction,channel,content_preview,tone_score,compliant,flags"
CONTENT_PREVIEW_LENGTH = 50


def _coerce_enum(enum_cls, value, field_name: str):
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        raise ComplianceValidationError(f"Invalid {field_name}: {value}")


class ComplianceAuditLog:
    def __init__(
        self,
        store: ComplianceStore,
        clock: ClockSource,
        gate: PreSendGate,
        frequency: FrequencyTracker,
        time_checker: TimeRestrictionChecker,
        cease_desist: CeaseDesistRegistry,
    ):
        self.store = store
        self.clock = clock
        self.gate = gate
        self.frequency = frequency
        self.time_checker = time_checker
        self.cease_desist = cease_desist
        self.state_machine = FlagStateMachine()

    # =========================================================================
    # COMMUNICATION LOG
    # =========================================================================

    def log(self, details: CommunicationDetails) -> CommunicationRecord:
        """
        Evaluate and record one communication attempt.

        Raises:
            ComplianceValidationError: missing ids, bad enum values, or a
                supersedes_id that names no existing record
        """
        require_non_blank(case_id=details.case_id, debtor_id=details.debtor_id)
        direction = _coerce_enum(CommunicationDirection, details.direction, "direction")
        channel = _coerce_enum(CommunicationChannel, details.channel, "channel")
        communication_type = coerce_communication_type(details.communication_type) or CommunicationType.MESSAGE
        if direction is None or channel is None:
            raise ComplianceValidationError("direction and channel are required")

        with self.store.lock(f"case:{details.case_id}"):
            if details.supersedes_id and self.store.get_communication(details.supersedes_id) is None:
                raise ComplianceValidationError(
                    f"supersedes_id {details.supersedes_id} does not reference an existing record"
                )

            # Inbound messages are not sends; only outbound attempts pass the gate
            if direction == CommunicationDirection.OUTBOUND:
                gate_result = self.gate.evaluate(
                    details.case_id,
                    details.debtor_id,
                    details.creditor_id,
                    communication_type,
                )
                issues = tuple(gate_result.issues)
                allowed = gate_result.allowed
            else:
                issues = ()
                allowed = True

            timestamp = self.clock.now()
            record = CommunicationRecord(
                id=str(uuid4()),
                case_id=details.case_id,
                debtor_id=details.debtor_id,
                creditor_id=details.creditor_id,
                communication_type=communication_type,
                direction=direction,
                channel=channel,
                message_id=details.message_id,
                content=details.content,
                original_content=details.original_content,
                tone_score=details.tone_score,
                compliant=not any(i.severity == FlagSeverity.VIOLATION for i in issues),
                compliance_issues=issues,
                timestamp=timestamp,
                supersedes_id=details.supersedes_id,
            )
            self.store.append_communication(record)

            for issue in issues:
                self._flag_issue(record, issue)

            if direction == CommunicationDirection.OUTBOUND and allowed:
                self.frequency.record(
                    details.debtor_id,
                    details.case_id,
                    channel,
                    timestamp=timestamp,
                    direction=direction,
                    event_id=record.id,
                )

        return record

    def _flag_issue(self, record: CommunicationRecord, issue: ComplianceIssue) -> ComplianceFlag:
        return self.create_flag(
            case_id=record.case_id,
            flag_type=issue.type,
            severity=issue.severity,
            details={
                "description": issue.description,
                "section": issue.section,
                "communication_log_id": record.id,
            },
            message_id=record.message_id,
        )

    def get_logs(
        self,
        case_id: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        direction: Union[CommunicationDirection, str, None] = None,
        compliant: Optional[bool] = None,
    ) -> List[CommunicationRecord]:
        """Records matching the filters, newest first."""
        direction = _coerce_enum(CommunicationDirection, direction, "direction")
        logs = self.store.list_communications(case_id)

        if start_date is not None:
            start = ensure_utc(start_date)
            logs = [r for r in logs if r.timestamp >= start]
        if end_date is not None:
            end = ensure_utc(end_date)
            logs = [r for r in logs if r.timestamp <= end]
        if direction is not None:
            logs = [r for r in logs if r.direction == direction]
        if compliant is not None:
            logs = [r for r in logs if r.compliant == compliant]

        return sorted(logs, key=lambda r: r.timestamp, reverse=True)

    # =========================================================================
    # FLAGS
    # =========================================================================

    def create_flag(
        self,
        case_id: str,
        flag_type: Union[ComplianceFlagType, str],
        severity: Union[FlagSeverity, str],
        details: Optional[Dict[str, Any]] = None,
        message_id: Optional[str] = None,
    ) -> ComplianceFlag:
        require_non_blank(case_id=case_id, flag_type=flag_type, severity=severity)
        flag = ComplianceFlag(
            id=str(uuid4()),
            case_id=case_id,
            message_id=message_id,
            flag_type=_coerce_enum(ComplianceFlagType, flag_type, "flag_type"),
            severity=_coerce_enum(FlagSeverity, severity, "severity"),
            details=dict(details or {}),
            created_at=self.clock.now(),
        )
        self.store.add_flag(flag)
        logger.info(f"Compliance flag {flag.id} raised for case {case_id}: {flag.flag_type.value} ({flag.severity.value})")
        return flag

    def resolve_flag(self, flag_id: str, notes: str, by: str) -> Optional[ComplianceFlag]:
        """
        OPEN -> RESOLVED. Resolving a resolved flag returns it unchanged.

        Returns None for an unknown flag id.
        """
        require_non_blank(flag_id=flag_id, notes=notes, by=by)

        with self.store.lock(f"flag:{flag_id}"):
            flag = self.store.get_flag(flag_id)
            if flag is None:
                return None

            new_status = self.state_machine.transition(flag.status, "resolve", notes, by)
            if new_status == flag.status:
                return flag

            flag.resolved = True
            flag.resolution_notes = notes
            flag.resolved_by = by
            flag.resolved_at = self.clock.now()
            self.store.update_flag_resolution(flag)

        logger.info(f"Compliance flag {flag_id} resolved by {by}")
        return flag

    def get_flags(
        self,
        case_id: Optional[str] = None,
        resolved: Optional[bool] = None,
        severity: Union[FlagSeverity, str, None] = None,
        flag_type: Union[ComplianceFlagType, str, None] = None,
    ) -> List[ComplianceFlag]:
        """Flags matching the filters, newest first."""
        severity = _coerce_enum(FlagSeverity, severity, "severity")
        flag_type = _coerce_enum(ComplianceFlagType, flag_type, "flag_type")
        flags = self.store.list_flags(case_id)

        if resolved is not None:
            flags = [f for f in flags if f.resolved == resolved]
        if severity is not None:
            flags = [f for f in flags if f.severity == severity]
        if flag_type is not None:
            flags = [f for f in flags if f.flag_type == flag_type]

        return sorted(flags, key=lambda f: f.created_at, reverse=True)

    # =========================================================================
    # SUMMARY / EXPORT
    # =========================================================================

    @staticmethod
    def _compliance_rate(logs: List[CommunicationRecord]) -> float:
        if not logs:
            return 100.0
        return round(sum(1 for r in logs if r.compliant) / len(logs) * 100, 2)

    def summary(self, case_id: str, debtor_id: Optional[str] = None) -> ComplianceSummary:
        """
        Point-in-time compliance picture for a case.

        The debtor defaults to the one on the newest record; with no records
        and no debtor given, frequency and time status are reported as clear.
        """
        require_non_blank(case_id=case_id)
        logs = self.get_logs(case_id)
        flags = self.get_flags(case_id)
        debtor_id = debtor_id or (logs[0].debtor_id if logs else None)

        if debtor_id:
            frequency_result = self.frequency.check(debtor_id, case_id)
            frequency_used = frequency_result.used
            time_restricted = not self.time_checker.is_allowed(debtor_id).allowed
        else:
            frequency_used = 0
            time_restricted = False

        return self._build_summary(
            logs,
            flags,
            frequency_used=frequency_used,
            time_restricted=time_restricted,
            cease_desist_active=self.cease_desist.check(case_id).active,
        )

    def _build_summary(
        self,
        logs: List[CommunicationRecord],
        flags: List[ComplianceFlag],
        frequency_used: int = 0,
        time_restricted: bool = False,
        cease_desist_active: bool = False,
    ) -> ComplianceSummary:
        return ComplianceSummary(
            total_communications=len(logs),
            violations=sum(1 for f in flags if f.severity == FlagSeverity.VIOLATION),
            warnings=sum(1 for f in flags if f.severity == FlagSeverity.WARNING),
            compliance_rate=self._compliance_rate(logs),
            unresolved_flags=sum(1 for f in flags if not f.resolved),
            frequency_used=frequency_used,
            frequency_limit=self.frequency.limit,
            time_restricted=time_restricted,
            cease_desist_active=cease_desist_active,
        )

    def status(self, case_id: str, debtor_id: str) -> CaseComplianceStatus:
        """
        Live status of a case: limits, quiet hours, open flags, and whether a
        message could be sent right now. Records nothing.
        """
        require_non_blank(case_id=case_id, debtor_id=debtor_id)
        frequency_result = self.frequency.check(debtor_id, case_id)
        time_result = self.time_checker.is_allowed(debtor_id)
        violations = self.get_flags(case_id, severity=FlagSeverity.VIOLATION)

        return CaseComplianceStatus(
            case_id=case_id,
            debtor_id=debtor_id,
            frequency_used=frequency_result.used,
            frequency_limit=frequency_result.limit,
            frequency_remaining=frequency_result.remaining,
            frequency_warning=frequency_result.warning_threshold,
            time_restricted=not time_result.allowed,
            time_restriction_message=(
                None if time_result.allowed else self.time_checker.restriction_message(debtor_id)
            ),
            next_allowed_time=time_result.next_allowed_time,
            cease_desist_active=self.cease_desist.check(case_id).active,
            active_flags=len(self.get_flags(case_id, resolved=False)),
            last_violation=violations[0].created_at if violations else None,
            can_send_message=self.gate.evaluate(case_id, debtor_id).allowed,
        )

    def overview(self, recent_limit: int = 5) -> ComplianceOverview:
        """Flag totals across all cases with the newest violations."""
        flags = self.get_flags()
        violations = [f for f in flags if f.severity == FlagSeverity.VIOLATION]
        return ComplianceOverview(
            total_flags=len(flags),
            unresolved_flags=sum(1 for f in flags if not f.resolved),
            violations=len(violations),
            recent_violations=violations[:recent_limit],
        )

    def export(
        self,
        case_id: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        include_flags: bool = True,
    ) -> Dict[str, Any]:
        """
        Structured audit export. Reads only; takes no locks.

        include_flags only drops the flag list from the payload; the summary
        always counts every flag in scope.
        """
        logs = self.get_logs(case_id, start_date=start_date, end_date=end_date)
        flags = self.get_flags(case_id)

        if case_id:
            summary = self.summary(case_id)
        else:
            summary = self._build_summary(logs, flags)

        return {
            "communications": [r.to_dict() for r in logs],
            "flags": [f.to_dict() for f in flags] if include_flags else [],
            "summary": summary.to_dict(),
            "exported_at": self.clock.now().isoformat(),
        }

    def export_csv(
        self,
        case_id: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> str:
        """Flattened export, one row per communication record."""
        output = io.StringIO()
        writer = csv.writer(output, lineterminator="\n")
        writer.writerow(CSV_HEADER.split(","))
        for record in self.get_logs(case_id, start_date=start_date, end_date=end_date):
            preview = f"{record.content[:CONTENT_PREVIEW_LENGTH]}..." if record.content else ""
            writer.writerow([
                record.timestamp.isoformat(),
                record.case_id,
                record.debtor_id,
                record.direction.value,
                record.channel.value,
                preview,
                "" if record.tone_score is None else record.tone_score,
                "true" if record.compliant else "false",
                ";".join(i.type.value for i in record.compliance_issues),
            ])
        return output.getvalue()
