"""
Tests for the pre-send gate.

All three checks run on every evaluation; the block reason follows the
priority cease-and-desist, time restriction, frequency.
"""
from datetime import datetime, timedelta, timezone

import pytest

from compliance_engine.errors import ComplianceValidationError
from compliance_engine.models.compliance import (
    CeaseDesistMethod,
    CommunicationChannel,
    CommunicationType,
    ComplianceFlagType,
    FlagSeverity,
)
from conftest import CASE_ID

CEASE_DESIST_REASON = "Cannot send message: cease and desist is active."
TIME_REASON = "Cannot send message: outside allowed hours (8 AM - 9 PM in debtor's timezone)."
FREQUENCY_REASON = "Cannot send message: weekly communication limit reached (7 per week)."

# 22:00 EST
QUIET_HOUR = datetime(2024, 1, 16, 3, 0, tzinfo=timezone.utc)


def fill_contacts(engine, debtor_id, count, now):
    for i in range(count):
        engine.frequency.record(debtor_id, CASE_ID, CommunicationChannel.PHONE, now - timedelta(hours=i + 1))


class TestAllowedSend:

    def test_clean_send(self, engine, debtor_id):
        result = engine.gate.evaluate(CASE_ID, debtor_id)

        assert result.allowed is True
        assert result.issues == []
        assert result.warnings == []
        assert result.block_reason is None

    def test_frequency_warning_does_not_block(self, engine, debtor_id, fixed_now):
        fill_contacts(engine, debtor_id, 5, fixed_now)

        result = engine.gate.evaluate(CASE_ID, debtor_id)

        assert result.allowed is True
        assert result.block_reason is None
        assert len(result.issues) == 1
        issue = result.issues[0]
        assert issue.type == ComplianceFlagType.FREQUENCY_WARNING
        assert issue.severity == FlagSeverity.WARNING
        assert issue.section == "12 CFR § 1006.14(b)(2)"
        assert result.warnings == ["Approaching communication limit: 2 remaining this week."]

    def test_permitted_type_under_cease_desist(self, engine, debtor_id):
        engine.cease_desist.register(CASE_ID, debtor_id, CeaseDesistMethod.WRITTEN)

        result = engine.gate.evaluate(CASE_ID, debtor_id, communication_type=CommunicationType.LAWSUIT_NOTICE)

        assert result.allowed is True


class TestBlockedSend:

    def test_cease_desist_blocks(self, engine, debtor_id):
        engine.cease_desist.register(CASE_ID, debtor_id, CeaseDesistMethod.WRITTEN)

        result = engine.gate.evaluate(CASE_ID, debtor_id, communication_type="message")

        assert result.allowed is False
        assert result.block_reason == CEASE_DESIST_REASON
        assert result.issues[0].type == ComplianceFlagType.CEASE_DESIST_ACTIVE
        assert result.issues[0].section == "15 U.S.C. § 1692c(c)"

    def test_unspecified_type_blocked_under_cease_desist(self, engine, debtor_id):
        engine.cease_desist.register(CASE_ID, debtor_id, CeaseDesistMethod.WRITTEN)
        assert engine.gate.evaluate(CASE_ID, debtor_id).allowed is False

    def test_quiet_hours_block(self, engine, clock, debtor_id):
        clock.set(QUIET_HOUR)

        result = engine.gate.evaluate(CASE_ID, debtor_id)

        assert result.allowed is False
        assert result.block_reason == TIME_REASON
        assert result.issues[0].type == ComplianceFlagType.TIME_RESTRICTION
        assert result.issues[0].description == "Communication outside allowed hours (22:00 in debtor timezone)"
        assert result.issues[0].section == "15 U.S.C. § 1692c(a)(1)"

    def test_frequency_block(self, engine, debtor_id, fixed_now):
        fill_contacts(engine, debtor_id, 7, fixed_now)

        result = engine.gate.evaluate(CASE_ID, debtor_id)

        assert result.allowed is False
        assert result.block_reason == FREQUENCY_REASON
        assert result.issues[0].type == ComplianceFlagType.FREQUENCY_EXCEEDED
        assert result.issues[0].description == "Communication frequency limit exceeded (7/7 this week)"
        assert result.warnings == []

    def test_all_checks_reported_with_priority(self, engine, clock, debtor_id):
        clock.set(QUIET_HOUR)
        engine.cease_desist.register(CASE_ID, debtor_id, CeaseDesistMethod.WRITTEN)
        fill_contacts(engine, debtor_id, 7, QUIET_HOUR)

        result = engine.gate.evaluate(CASE_ID, debtor_id)

        assert [i.type for i in result.issues] == [
            ComplianceFlagType.CEASE_DESIST_ACTIVE,
            ComplianceFlagType.TIME_RESTRICTION,
            ComplianceFlagType.FREQUENCY_EXCEEDED,
        ]
        assert result.block_reason == CEASE_DESIST_REASON

    def test_time_before_frequency(self, engine, clock, debtor_id):
        clock.set(QUIET_HOUR)
        fill_contacts(engine, debtor_id, 7, QUIET_HOUR)

        assert engine.gate.evaluate(CASE_ID, debtor_id).block_reason == TIME_REASON

    def test_unknown_debtor_fails_closed(self, engine):
        # 16:00 UTC is 06:00 in Honolulu
        result = engine.gate.evaluate(CASE_ID, "debtor_without_zone")
        assert result.allowed is False
        assert result.block_reason == TIME_REASON


class TestGateInput:

    def test_evaluation_records_nothing(self, engine, store, debtor_id):
        engine.gate.evaluate(CASE_ID, debtor_id)

        assert store.list_communications() == []
        assert store.list_flags() == []
        assert store.list_contact_events(debtor_id) == []

    @pytest.mark.parametrize("case_id,debtor", [("", "debtor_001"), ("case_001", None), ("  ", "  ")])
    def test_missing_ids_raise(self, engine, case_id, debtor):
        with pytest.raises(ComplianceValidationError):
            engine.gate.evaluate(case_id, debtor)

    def test_invalid_type_raises(self, engine, debtor_id):
        with pytest.raises(ComplianceValidationError):
            engine.gate.evaluate(CASE_ID, debtor_id, communication_type="fax")

    def test_to_dict(self, engine, debtor_id):
        assert engine.gate.evaluate(CASE_ID, debtor_id).to_dict() == {
            "allowed": True,
            "issues": [],
            "warnings": [],
            "block_reason": None,
        }
