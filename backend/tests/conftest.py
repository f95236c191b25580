"""
Shared fixtures for the compliance engine tests.

Every test gets a fresh in-memory store and a FixedClock, so no state leaks
between tests and every temporal decision is deterministic.
"""
from datetime import date, datetime, timezone

import pytest

from compliance_engine.config import EngineSettings
from compliance_engine.models.compliance import DebtDetails, ValidationContext
from compliance_engine.services.compliance import (
    FixedClock,
    InMemoryComplianceStore,
    build_compliance_engine,
)


# Wednesday 2024-06-12 16:00 UTC = 12:00 EDT in New York, 06:00 HST in Honolulu
FIXED_NOW = datetime(2024, 6, 12, 16, 0, 0, tzinfo=timezone.utc)

CASE_ID = "case_001"
DEBTOR_ID = "debtor_001"
CREDITOR_ID = "creditor_001"


COMPLIANT_LETTER = """
Dear John Doe,

This is an attempt to collect a debt and any information obtained will be used for that purpose.
This communication is from a debt collector.

This debt is owed to ABC Credit Services. The original creditor was Original Bank Corp.

The amount owed is $5,350.00.
Principal: $5,000.00
Interest: $250.00
Fees: $100.00

Within 30 days of receiving this notice, you may dispute the validity of this debt. If you notify us
in writing within the thirty (30) day period that you dispute the debt, we will obtain verification
of the debt and mail it to you. If you do not dispute this debt within 30 days, the debt will be
assumed valid. Upon your written request, we will provide the name and address of the original creditor.

Sincerely,
Collections Department
"""

NON_COMPLIANT_LETTER = """
Dear Customer,

Please pay your outstanding balance to ABC Credit Services as soon as possible.
Contact us at 555-0100.
"""

# Has creditor, original creditor, and dispute-rights language, but no
# mini-Miranda, no validation notice, and no debt amount
PARTIAL_LETTER = """
Dear John Doe,

This debt is owed to ABC Credit Services. The original creditor was Original Bank Corp.
If you write us within 30 days, we will send you a verification and a copy of the judgment.
"""


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def clock(fixed_now):
    return FixedClock(fixed_now)


@pytest.fixture
def settings():
    return EngineSettings()


@pytest.fixture
def store():
    return InMemoryComplianceStore()


@pytest.fixture
def engine(store, clock, settings):
    return build_compliance_engine(store=store, clock=clock, settings=settings)


@pytest.fixture
def debtor_id(engine):
    """Debtor located in New York."""
    engine.time_restriction.set_debtor_timezone(DEBTOR_ID, "America/New_York")
    return DEBTOR_ID


@pytest.fixture
def case_id():
    return CASE_ID


@pytest.fixture
def debt_details():
    return DebtDetails(
        principal=5000,
        interest=250,
        fees=100,
        origin_date=date(2024, 1, 15),
        creditor_name="ABC Credit Services",
        original_creditor="Original Bank Corp",
        account_number="****1234",
    )


@pytest.fixture
def context(debt_details):
    return ValidationContext(state="NY", debt_details=debt_details)


@pytest.fixture
def time_barred_context(debt_details):
    """NY debt originating in 2015: past the 6-year statute on FIXED_NOW."""
    return ValidationContext(
        state="NY",
        debt_details=debt_details.model_copy(update={"origin_date": date(2015, 1, 15)}),
    )
