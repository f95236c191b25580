"""
Tests for the compliance audit log.

Covers recording, flag creation and resolution, corrections through
supersedes_id, summaries, exports, and concurrent sends on one case.
"""
import csv
import dataclasses
import io
import threading
from datetime import datetime, timedelta, timezone

import pytest

from compliance_engine.errors import ComplianceValidationError
from compliance_engine.models.compliance import (
    CeaseDesistMethod,
    CommunicationChannel,
    CommunicationDetails,
    CommunicationDirection,
    CommunicationType,
    ComplianceFlagType,
    FlagSeverity,
)
from compliance_engine.services.compliance.audit_log import CSV_HEADER
from conftest import CASE_ID

QUIET_HOUR = datetime(2024, 1, 16, 3, 0, tzinfo=timezone.utc)


def outbound(debtor_id, **overrides):
    values = dict(
        case_id=CASE_ID,
        debtor_id=debtor_id,
        direction=CommunicationDirection.OUTBOUND,
        channel=CommunicationChannel.PLATFORM,
        content="Hello, this is a reminder about your account.",
    )
    values.update(overrides)
    return CommunicationDetails(**values)


def inbound(debtor_id, **overrides):
    return outbound(debtor_id, direction=CommunicationDirection.INBOUND, **overrides)


class TestLogCommunication:

    def test_compliant_outbound(self, engine, debtor_id, fixed_now):
        record = engine.audit_log.log(outbound(debtor_id, tone_score=0.9, message_id="msg_1"))

        assert record.compliant is True
        assert record.compliance_issues == ()
        assert record.timestamp == fixed_now
        assert record.communication_type == CommunicationType.MESSAGE
        assert engine.frequency.check(debtor_id, CASE_ID).used == 1
        assert engine.audit_log.get_flags(CASE_ID) == []

    def test_frequency_event_carries_record_id(self, engine, store, debtor_id):
        record = engine.audit_log.log(outbound(debtor_id))
        assert [e.id for e in store.list_contact_events(debtor_id)] == [record.id]

    def test_blocked_send_is_recorded_and_flagged(self, engine, clock, debtor_id):
        clock.set(QUIET_HOUR)

        record = engine.audit_log.log(outbound(debtor_id, message_id="msg_late"))

        assert record.compliant is False
        assert [i.type for i in record.compliance_issues] == [ComplianceFlagType.TIME_RESTRICTION]

        flags = engine.audit_log.get_flags(CASE_ID)
        assert len(flags) == 1
        assert flags[0].flag_type == ComplianceFlagType.TIME_RESTRICTION
        assert flags[0].severity == FlagSeverity.VIOLATION
        assert flags[0].message_id == "msg_late"
        assert flags[0].details == {
            "description": "Communication outside allowed hours (22:00 in debtor timezone)",
            "section": "15 U.S.C. § 1692c(a)(1)",
            "communication_log_id": record.id,
        }

    def test_blocked_send_does_not_count(self, engine, clock, debtor_id):
        clock.set(QUIET_HOUR)
        engine.audit_log.log(outbound(debtor_id))
        assert engine.frequency.check(debtor_id, CASE_ID).used == 0

    def test_one_flag_per_issue(self, engine, clock, debtor_id):
        clock.set(QUIET_HOUR)
        engine.cease_desist.register(CASE_ID, debtor_id, CeaseDesistMethod.WRITTEN)

        record = engine.audit_log.log(outbound(debtor_id))

        flag_types = {f.flag_type for f in engine.audit_log.get_flags(CASE_ID)}
        assert flag_types == {i.type for i in record.compliance_issues}
        assert flag_types == {ComplianceFlagType.CEASE_DESIST_ACTIVE, ComplianceFlagType.TIME_RESTRICTION}

    def test_warning_is_flagged_but_compliant(self, engine, debtor_id, fixed_now):
        for i in range(5):
            engine.frequency.record(debtor_id, CASE_ID, CommunicationChannel.SMS, fixed_now - timedelta(hours=i + 1))

        record = engine.audit_log.log(outbound(debtor_id))

        assert record.compliant is True
        assert record.compliance_issues[0].type == ComplianceFlagType.FREQUENCY_WARNING
        assert engine.audit_log.get_flags(CASE_ID, severity=FlagSeverity.WARNING)[0].flag_type == (
            ComplianceFlagType.FREQUENCY_WARNING
        )
        assert engine.frequency.check(debtor_id, CASE_ID).used == 6

    def test_inbound_skips_gate(self, engine, clock, debtor_id):
        clock.set(QUIET_HOUR)

        record = engine.audit_log.log(inbound(debtor_id, content="I will pay next week"))

        assert record.compliant is True
        assert record.compliance_issues == ()
        assert engine.audit_log.get_flags(CASE_ID) == []
        assert engine.frequency.check(debtor_id, CASE_ID).used == 0

    def test_email_logged_but_not_counted(self, engine, debtor_id):
        engine.audit_log.log(outbound(debtor_id, channel=CommunicationChannel.EMAIL))
        assert engine.frequency.check(debtor_id, CASE_ID).used == 0

    def test_string_enums_accepted(self, engine, debtor_id):
        record = engine.audit_log.log(outbound(
            debtor_id, direction="outbound", channel="sms", communication_type="notification",
        ))
        assert record.channel == CommunicationChannel.SMS
        assert record.communication_type == CommunicationType.NOTIFICATION

    def test_records_are_immutable(self, engine, debtor_id):
        record = engine.audit_log.log(outbound(debtor_id))
        with pytest.raises(dataclasses.FrozenInstanceError):
            record.compliant = False

    @pytest.mark.parametrize("overrides", [
        {"case_id": ""},
        {"debtor_id": "   "},
        {"channel": "carrier_pigeon"},
        {"direction": "sideways"},
        {"communication_type": "fax"},
    ])
    def test_invalid_input_records_nothing(self, engine, store, debtor_id, overrides):
        with pytest.raises(ComplianceValidationError):
            engine.audit_log.log(outbound(**{"debtor_id": debtor_id, **overrides}))
        assert store.list_communications() == []


class TestCorrections:

    def test_supersedes_existing_record(self, engine, debtor_id, clock):
        original = engine.audit_log.log(outbound(debtor_id, content="Typo in amount"))
        clock.advance(minutes=5)

        correction = engine.audit_log.log(outbound(
            debtor_id, content="Corrected amount", supersedes_id=original.id,
        ))

        assert correction.supersedes_id == original.id
        logs = engine.audit_log.get_logs(CASE_ID)
        assert [r.id for r in logs] == [correction.id, original.id]
        assert logs[1].content == "Typo in amount"

    def test_supersedes_unknown_record(self, engine, store, debtor_id):
        with pytest.raises(ComplianceValidationError):
            engine.audit_log.log(outbound(debtor_id, supersedes_id="does-not-exist"))
        assert store.list_communications() == []


class TestFlagResolution:

    def test_resolve(self, engine, clock, debtor_id):
        clock.set(QUIET_HOUR)
        engine.audit_log.log(outbound(debtor_id))
        flag = engine.audit_log.get_flags(CASE_ID)[0]
        resolved_at = clock.advance(hours=1)

        resolved = engine.audit_log.resolve_flag(flag.id, "Agent retrained", "supervisor_1")

        assert resolved.resolved is True
        assert resolved.resolution_notes == "Agent retrained"
        assert resolved.resolved_by == "supervisor_1"
        assert resolved.resolved_at == resolved_at
        assert engine.audit_log.get_flags(CASE_ID, resolved=True)[0].id == flag.id

    def test_resolve_is_idempotent(self, engine, clock):
        flag = engine.audit_log.create_flag(CASE_ID, ComplianceFlagType.MANUAL_REVIEW, FlagSeverity.WARNING)
        first = engine.audit_log.resolve_flag(flag.id, "Reviewed", "reviewer_1")
        clock.advance(days=1)

        second = engine.audit_log.resolve_flag(flag.id, "Reviewed again", "reviewer_2")

        assert second.resolved_at == first.resolved_at
        assert second.resolution_notes == "Reviewed"
        assert second.resolved_by == "reviewer_1"

    @pytest.mark.parametrize("notes,by", [("", "reviewer_1"), ("Reviewed", ""), ("   ", "reviewer_1")])
    def test_resolve_requires_notes_and_resolver(self, engine, notes, by):
        flag = engine.audit_log.create_flag(CASE_ID, "manual_review", "warning")

        with pytest.raises(ComplianceValidationError):
            engine.audit_log.resolve_flag(flag.id, notes, by)
        assert engine.audit_log.get_flags(CASE_ID)[0].resolved is False

    def test_resolve_unknown_flag(self, engine):
        assert engine.audit_log.resolve_flag("missing", "notes", "reviewer_1") is None

    def test_manual_flag(self, engine, fixed_now):
        flag = engine.audit_log.create_flag(
            CASE_ID, "tone_blocked", "violation", details={"reason": "hostile"}, message_id="msg_9",
        )

        assert flag.flag_type == ComplianceFlagType.TONE_BLOCKED
        assert flag.severity == FlagSeverity.VIOLATION
        assert flag.created_at == fixed_now
        assert flag.details == {"reason": "hostile"}

    def test_manual_flag_invalid_type(self, engine):
        with pytest.raises(ComplianceValidationError):
            engine.audit_log.create_flag(CASE_ID, "not_a_type", "warning")


class TestQueries:

    def test_logs_newest_first_and_filtered(self, engine, clock, debtor_id):
        first = engine.audit_log.log(outbound(debtor_id))
        clock.advance(hours=1)
        second = engine.audit_log.log(inbound(debtor_id))
        clock.set(QUIET_HOUR + timedelta(days=200))
        third = engine.audit_log.log(outbound(debtor_id))

        audit = engine.audit_log
        assert [r.id for r in audit.get_logs(CASE_ID)] == [third.id, second.id, first.id]
        assert [r.id for r in audit.get_logs(CASE_ID, direction="inbound")] == [second.id]
        assert [r.id for r in audit.get_logs(CASE_ID, compliant=False)] == [third.id]
        assert [r.id for r in audit.get_logs(CASE_ID, end_date=first.timestamp)] == [first.id]
        assert [r.id for r in audit.get_logs(CASE_ID, start_date=second.timestamp)] == [third.id, second.id]

    def test_logs_scoped_to_case(self, engine, debtor_id):
        engine.audit_log.log(outbound(debtor_id))
        engine.audit_log.log(outbound(debtor_id, case_id="case_other"))

        assert len(engine.audit_log.get_logs(CASE_ID)) == 1
        assert len(engine.audit_log.get_logs()) == 2

    def test_flag_filters(self, engine):
        engine.audit_log.create_flag(CASE_ID, "manual_review", "warning")
        engine.audit_log.create_flag(CASE_ID, "tone_blocked", "violation")
        engine.audit_log.create_flag("case_other", "tone_blocked", "violation")

        audit = engine.audit_log
        assert len(audit.get_flags()) == 3
        assert len(audit.get_flags(CASE_ID)) == 2
        assert len(audit.get_flags(CASE_ID, severity="violation")) == 1
        assert len(audit.get_flags(flag_type=ComplianceFlagType.TONE_BLOCKED)) == 2
        assert audit.get_flags(CASE_ID, resolved=True) == []


class TestSummary:

    def test_empty_case(self, engine):
        summary = engine.audit_log.summary(CASE_ID)

        assert summary.total_communications == 0
        assert summary.compliance_rate == 100.0
        assert summary.frequency_used == 0
        assert summary.time_restricted is False
        assert summary.cease_desist_active is False

    def test_mixed_case(self, engine, clock, debtor_id):
        engine.audit_log.log(outbound(debtor_id))
        engine.audit_log.log(outbound(debtor_id))
        clock.set(QUIET_HOUR + timedelta(days=200))
        engine.audit_log.log(outbound(debtor_id))
        engine.cease_desist.register(CASE_ID, debtor_id, CeaseDesistMethod.WRITTEN)

        summary = engine.audit_log.summary(CASE_ID)

        assert summary.total_communications == 3
        assert summary.violations == 1
        assert summary.warnings == 0
        assert summary.compliance_rate == 66.67
        assert summary.unresolved_flags == 1
        assert summary.frequency_used == 0
        assert summary.time_restricted is True
        assert summary.cease_desist_active is True
        assert summary.to_dict()["frequency_status"] == {"used": 0, "limit": 7}

    def test_frequency_uses_latest_debtor(self, engine, debtor_id):
        engine.audit_log.log(outbound(debtor_id))
        assert engine.audit_log.summary(CASE_ID).frequency_used == 1


class TestExport:

    def test_json_export(self, engine, clock, debtor_id, fixed_now):
        engine.audit_log.log(outbound(debtor_id))
        clock.set(QUIET_HOUR + timedelta(days=200))
        engine.audit_log.log(outbound(debtor_id))

        export = engine.audit_log.export(CASE_ID)

        assert len(export["communications"]) == 2
        assert len(export["flags"]) == 1
        assert export["summary"]["total_communications"] == 2
        assert export["exported_at"] == (QUIET_HOUR + timedelta(days=200)).isoformat()

        assert engine.audit_log.export(CASE_ID, include_flags=False)["flags"] == []
        windowed = engine.audit_log.export(CASE_ID, end_date=fixed_now)
        assert len(windowed["communications"]) == 1

    def test_export_all_cases(self, engine, debtor_id):
        engine.audit_log.log(outbound(debtor_id))
        engine.audit_log.log(outbound(debtor_id, case_id="case_other"))

        export = engine.audit_log.export()

        assert export["summary"]["total_communications"] == 2
        assert export["summary"]["compliance_rate"] == 100.0

    def test_csv_export(self, engine, clock, debtor_id, fixed_now):
        engine.audit_log.log(outbound(debtor_id, content='He said "pay now"', tone_score=0.5))
        clock.set(QUIET_HOUR + timedelta(days=200))
        late = engine.audit_log.log(outbound(debtor_id, content=None))

        lines = engine.audit_log.export_csv(CASE_ID).split("\n")

        assert lines[0] == CSV_HEADER
        assert lines[1] == (
            f"{late.timestamp.isoformat()},{CASE_ID},{debtor_id},outbound,platform,"
            ',,false,time_restriction'
        )
        assert lines[2] == (
            f"{fixed_now.isoformat()},{CASE_ID},{debtor_id},outbound,platform,"
            '"He said ""pay now""...",0.5,true,'
        )

    def test_csv_truncates_content(self, engine, debtor_id):
        engine.audit_log.log(outbound(debtor_id, content="x" * 80))
        row = engine.audit_log.export_csv(CASE_ID).split("\n")[1]
        assert row.endswith("," + "x" * 50 + "...,,true,")

    def test_csv_ids_with_commas(self, engine):
        engine.time_restriction.set_debtor_timezone("debtor,9", "America/New_York")
        engine.audit_log.log(outbound("debtor,9", case_id="case,42", channel=CommunicationChannel.SMS))

        rows = list(csv.reader(io.StringIO(engine.audit_log.export_csv("case,42"))))

        assert rows[0] == CSV_HEADER.split(",")
        assert len(rows) == 2
        assert len(rows[1]) == len(rows[0])
        assert rows[1][1:5] == ["case,42", "debtor,9", "outbound", "sms"]
        assert rows[1][5] == "Hello, this is a reminder about your account...."

    def test_csv_empty_content(self, engine, debtor_id):
        engine.audit_log.log(inbound(debtor_id, content=None))

        rows = list(csv.reader(io.StringIO(engine.audit_log.export_csv(CASE_ID))))

        assert rows[1][5] == ""
        assert rows[1][7] == "true"

    def test_summary_counts_flags_when_excluded(self, engine, clock, debtor_id):
        clock.set(QUIET_HOUR)
        engine.audit_log.log(outbound(debtor_id))

        full = engine.audit_log.export()
        without_flags = engine.audit_log.export(include_flags=False)

        assert without_flags["flags"] == []
        assert full["summary"]["violations"] == 1
        assert without_flags["summary"] == full["summary"]


class TestCaseStatus:

    def test_clear_case(self, engine, debtor_id):
        status = engine.audit_log.status(CASE_ID, debtor_id)

        assert status.frequency_used == 0
        assert status.frequency_remaining == 7
        assert status.frequency_warning is False
        assert status.time_restricted is False
        assert status.time_restriction_message is None
        assert status.next_allowed_time is None
        assert status.active_flags == 0
        assert status.last_violation is None
        assert status.can_send_message is True

    def test_quiet_hours_after_blocked_send(self, engine, clock, debtor_id):
        clock.set(QUIET_HOUR)
        engine.audit_log.log(outbound(debtor_id))

        status = engine.audit_log.status(CASE_ID, debtor_id)

        assert status.time_restricted is True
        assert status.time_restriction_message == (
            "Communication is restricted until 8:00 AM in the debtor's timezone (America/New_York)."
        )
        assert status.next_allowed_time == datetime(2024, 1, 16, 13, 0, tzinfo=timezone.utc)
        assert status.active_flags == 1
        assert status.last_violation == QUIET_HOUR
        assert status.can_send_message is False

    def test_records_nothing(self, engine, clock, debtor_id):
        clock.set(QUIET_HOUR)
        engine.audit_log.status(CASE_ID, debtor_id)

        assert engine.audit_log.get_logs(CASE_ID) == []
        assert engine.audit_log.get_flags(CASE_ID) == []

    def test_approaching_limit(self, engine, debtor_id):
        for _ in range(5):
            engine.audit_log.log(outbound(debtor_id))

        status = engine.audit_log.status(CASE_ID, debtor_id)

        assert status.frequency_used == 5
        assert status.frequency_remaining == 2
        assert status.frequency_warning is True
        assert status.can_send_message is True

    def test_cease_desist_blocks(self, engine, debtor_id):
        engine.cease_desist.register(CASE_ID, debtor_id, CeaseDesistMethod.WRITTEN)

        status = engine.audit_log.status(CASE_ID, debtor_id)

        assert status.cease_desist_active is True
        assert status.can_send_message is False

    def test_blank_debtor(self, engine):
        with pytest.raises(ComplianceValidationError):
            engine.audit_log.status(CASE_ID, " ")


class TestOverview:

    def test_totals_across_cases(self, engine, clock, debtor_id):
        clock.set(QUIET_HOUR)
        engine.audit_log.log(outbound(debtor_id))
        clock.advance(minutes=1)
        engine.audit_log.log(outbound(debtor_id, case_id="case_other"))
        review = engine.audit_log.create_flag(
            "case_other", ComplianceFlagType.MANUAL_REVIEW, FlagSeverity.WARNING,
        )
        engine.audit_log.resolve_flag(review.id, "Checked", "reviewer_1")

        overview = engine.audit_log.overview(recent_limit=1)

        assert overview.total_flags == 3
        assert overview.unresolved_flags == 2
        assert overview.violations == 2
        assert [f.case_id for f in overview.recent_violations] == ["case_other"]

    def test_empty(self, engine):
        assert engine.audit_log.overview().to_dict() == {
            "total_flags": 0,
            "unresolved_flags": 0,
            "violations": 0,
            "recent_violations": [],
        }


class TestConcurrency:

    def test_concurrent_sends_respect_cap(self, engine, debtor_id):
        """Twenty simultaneous sends on one case: exactly seven go through"""
        barrier = threading.Barrier(20)
        errors = []

        def send():
            try:
                barrier.wait()
                engine.audit_log.log(outbound(debtor_id, channel=CommunicationChannel.PHONE))
            except Exception as e:
                errors.append(e)

        threads = [threading.Thread(target=send) for _ in range(20)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        logs = engine.audit_log.get_logs(CASE_ID)
        assert len(logs) == 20
        assert sum(1 for r in logs if r.compliant) == 7
        assert engine.frequency.check(debtor_id, CASE_ID).used == 7
