"""
Tests for quiet-hours enforcement in the debtor's local time.

Covers:
- Allowed window [08:00, 21:00) local
- Next allowed time on the same day vs the next day
- Spring-forward and fall-back days in America/New_York
- Unknown timezone: allowed only when allowed in every fallback zone
"""
from datetime import datetime, timedelta, timezone

import pytest

from compliance_engine.config import EngineSettings
from compliance_engine.errors import ComplianceValidationError
from compliance_engine.services.compliance import build_compliance_engine
from conftest import DEBTOR_ID


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


class TestAllowedWindow:

    def test_midday_is_allowed(self, engine, debtor_id):
        result = engine.time_restriction.is_allowed(debtor_id)

        assert result.allowed is True
        assert result.current_hour == 12
        assert result.timezone == "America/New_York"
        assert result.next_allowed_time is None
        assert result.restriction_start == "21:00"
        assert result.restriction_end == "08:00"

    def test_window_edges(self, engine, clock, debtor_id):
        checker = engine.time_restriction
        # June: New York is UTC-4
        assert checker.would_be_allowed_at(debtor_id, utc(2024, 6, 12, 12, 0)) is True     # 08:00
        assert checker.would_be_allowed_at(debtor_id, utc(2024, 6, 12, 11, 59)) is False   # 07:59
        assert checker.would_be_allowed_at(debtor_id, utc(2024, 6, 13, 0, 59)) is True     # 20:59
        assert checker.would_be_allowed_at(debtor_id, utc(2024, 6, 13, 1, 0)) is False     # 21:00

    def test_late_evening_utc_minus_five(self, engine, clock):
        """22:00 local at UTC-5 opens at 08:00 local the next day"""
        engine.time_restriction.set_debtor_timezone("debtor_bogota", "America/Bogota")
        clock.set(utc(2024, 6, 13, 3, 0))  # 22:00 on June 12 in Bogota

        result = engine.time_restriction.is_allowed("debtor_bogota")

        assert result.allowed is False
        assert result.current_hour == 22
        assert result.next_allowed_time == utc(2024, 6, 13, 13, 0)

    def test_late_evening_new_york_winter(self, engine, clock, debtor_id):
        clock.set(utc(2024, 1, 16, 3, 0))  # 22:00 EST on Jan 15

        result = engine.time_restriction.is_allowed(debtor_id)

        assert result.allowed is False
        assert result.current_hour == 22
        assert result.next_allowed_time == utc(2024, 1, 16, 13, 0)

    def test_early_morning_opens_same_day(self, engine, clock, debtor_id):
        clock.set(utc(2024, 6, 12, 10, 30))  # 06:30 EDT

        result = engine.time_restriction.is_allowed(debtor_id)

        assert result.allowed is False
        assert result.next_allowed_time == utc(2024, 6, 12, 12, 0)


class TestDaylightSavingTransitions:
    """America/New_York: 2024-03-10 springs forward, 2024-11-03 falls back"""

    @pytest.mark.parametrize("instant", [
        utc(2024, 3, 10, 6, 59),  # 01:59 EST
        utc(2024, 3, 10, 7, 1),   # 03:01 EDT
    ])
    def test_spring_forward_night(self, engine, clock, debtor_id, instant):
        clock.set(instant)
        checker = engine.time_restriction

        result = checker.is_allowed(debtor_id)

        assert result.allowed is False
        assert checker.would_be_allowed_at(debtor_id, instant) == result.allowed
        # 08:00 EDT
        assert result.next_allowed_time == utc(2024, 3, 10, 12, 0)

    def test_spring_forward_opening(self, engine, debtor_id):
        checker = engine.time_restriction
        assert checker.would_be_allowed_at(debtor_id, utc(2024, 3, 10, 12, 0)) is True
        assert checker.would_be_allowed_at(debtor_id, utc(2024, 3, 10, 11, 59)) is False

    def test_fall_back_evening(self, engine, clock, debtor_id):
        clock.set(utc(2024, 11, 4, 2, 0))  # 21:00 EST on Nov 3

        result = engine.time_restriction.is_allowed(debtor_id)

        assert result.allowed is False
        assert result.current_hour == 21
        # 08:00 EST
        assert result.next_allowed_time == utc(2024, 11, 4, 13, 0)

    def test_is_allowed_matches_would_be_allowed_at(self, engine, clock, debtor_id):
        checker = engine.time_restriction
        instant = utc(2024, 3, 9, 0, 0)
        while instant < utc(2024, 3, 12, 0, 0):
            clock.set(instant)
            assert checker.is_allowed(debtor_id).allowed == checker.would_be_allowed_at(debtor_id, instant)
            instant += timedelta(minutes=30)

    def test_next_allowed_time_is_allowed(self, engine, clock, debtor_id):
        checker = engine.time_restriction
        instant = utc(2024, 11, 2, 0, 0)
        while instant < utc(2024, 11, 5, 0, 0):
            clock.set(instant)
            result = checker.is_allowed(debtor_id)
            if not result.allowed:
                assert result.next_allowed_time > instant
                assert checker.would_be_allowed_at(debtor_id, result.next_allowed_time) is True
            instant += timedelta(minutes=45)


class TestUnknownTimezone:

    def test_blocked_when_any_fallback_zone_is_quiet(self, engine):
        # 16:00 UTC: noon in New York, 06:00 in Honolulu
        result = engine.time_restriction.is_allowed("debtor_unknown")

        assert result.allowed is False
        assert result.timezone == "Pacific/Honolulu"
        assert result.next_allowed_time == utc(2024, 6, 12, 18, 0)

    def test_allowed_when_all_fallback_zones_open(self, engine, clock):
        clock.set(utc(2024, 6, 12, 20, 0))
        assert engine.time_restriction.is_allowed("debtor_unknown").allowed is True

    def test_invalid_stored_zone_uses_fallback(self, engine, store):
        store.set_debtor_timezone("debtor_bad", "Mars/Olympus_Mons")
        result = engine.time_restriction.is_allowed("debtor_bad")

        assert result.allowed is False
        assert result.timezone == "Pacific/Honolulu"

    def test_set_invalid_zone_raises(self, engine):
        with pytest.raises(ComplianceValidationError):
            engine.time_restriction.set_debtor_timezone(DEBTOR_ID, "Not/AZone")

    def test_get_timezone_defaults(self, engine, debtor_id):
        assert engine.time_restriction.get_debtor_timezone(debtor_id) == "America/New_York"
        assert engine.time_restriction.get_debtor_timezone("nobody") == "America/New_York"


class TestDisplayHelpers:

    def test_message_when_allowed(self, engine, debtor_id):
        assert engine.time_restriction.restriction_message(debtor_id) == "Communication is currently allowed."
        assert engine.time_restriction.hours_until_allowed(debtor_id) == 0

    def test_message_when_restricted(self, engine, clock, debtor_id):
        clock.set(utc(2024, 1, 16, 3, 0))  # 22:00 EST

        message = engine.time_restriction.restriction_message(debtor_id)

        assert message == (
            "Communication is restricted until 8:00 AM in the debtor's timezone (America/New_York)."
        )
        assert engine.time_restriction.hours_until_allowed(debtor_id) == 10

    def test_hours_round_up(self, engine, clock, debtor_id):
        clock.set(utc(2024, 1, 16, 3, 30))  # 22:30 EST, opens in 9.5 hours
        assert engine.time_restriction.hours_until_allowed(debtor_id) == 10

    def test_message_without_common_window(self, store, clock):
        """Tokyo and New York never share a 9-to-5 hour; the message falls back to the opening hour"""
        settings = EngineSettings(
            earliest_hour=9,
            latest_hour=17,
            fallback_timezones=("Asia/Tokyo", "America/New_York"),
        )
        engine = build_compliance_engine(store=store, clock=clock, settings=settings)

        result = engine.time_restriction.is_allowed("debtor_abroad")
        message = engine.time_restriction.restriction_message("debtor_abroad")

        assert result.allowed is False
        assert result.next_allowed_time is None
        assert message == (
            "Communication is restricted until 9:00 AM in the debtor's timezone (Asia/Tokyo)."
        )
        assert engine.time_restriction.hours_until_allowed("debtor_abroad") == 0
