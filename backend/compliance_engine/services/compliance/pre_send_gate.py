"""
Pre-Send Gate

Single allow/block decision for an outbound communication.

Key behaviors:
- Runs cease-and-desist, quiet-hours and frequency checks independently
- allowed = no issue has severity VIOLATION
- block_reason priority: cease-and-desist, then time restriction, then frequency
- Approaching the frequency cap adds a WARNING issue and never blocks
"""
import logging
from typing import List, Optional, Union

from ...errors import ComplianceValidationError, require_non_blank
from ...models.compliance import (
    CommunicationType,
    ComplianceFlagType,
    ComplianceIssue,
    FlagSeverity,
    PreSendCheckResult,
)
from .cease_desist import CeaseDesistRegistry
from .frequency_tracker import FrequencyTracker
from .regulatory_sections import (
    SECTION_CEASE_DESIST,
    SECTION_FREQUENCY,
    SECTION_TIME_RESTRICTION,
    resolve_section,
)
from .time_restriction import TimeRestrictionChecker

logger = logging.getLogger(__name__)


def _hour_label(hour: int) -> str:
    display = hour % 12 or 12
    return f"{display} {'AM' if hour % 24 < 12 else 'PM'}"


def coerce_communication_type(
    communication_type: Union[CommunicationType, str, None],
) -> Optional[CommunicationType]:
    if communication_type is None or isinstance(communication_type, CommunicationType):
        return communication_type
    try:
        return CommunicationType(communication_type)
    except ValueError:
        raise ComplianceValidationError(f"Invalid communication type: {communication_type}")


class PreSendGate:
    def __init__(
        self,
        cease_desist: CeaseDesistRegistry,
        time_checker: TimeRestrictionChecker,
        frequency: FrequencyTracker,
    ):
        self.cease_desist = cease_desist
        self.time_checker = time_checker
        self.frequency = frequency

    def evaluate(
        self,
        case_id: str,
        debtor_id: str,
        creditor_id: Optional[str] = None,
        communication_type: Union[CommunicationType, str, None] = None,
    ) -> PreSendCheckResult:
        require_non_blank(case_id=case_id, debtor_id=debtor_id)
        communication_type = coerce_communication_type(communication_type)

        issues: List[ComplianceIssue] = []
        warnings: List[str] = []
        block_reason: Optional[str] = None

        # 1. Cease and desist
        if not self.cease_desist.is_communication_allowed(case_id, communication_type):
            issues.append(ComplianceIssue(
                type=ComplianceFlagType.CEASE_DESIST_ACTIVE,
                severity=FlagSeverity.VIOLATION,
                description="Cease and desist is active for this case",
                section=resolve_section(SECTION_CEASE_DESIST),
            ))
            block_reason = "Cannot send message: cease and desist is active."

        # 2. Quiet hours
        time_result = self.time_checker.is_allowed(debtor_id)
        if not time_result.allowed:
            issues.append(ComplianceIssue(
                type=ComplianceFlagType.TIME_RESTRICTION,
                severity=FlagSeverity.VIOLATION,
                description=(
                    f"Communication outside allowed hours "
                    f"({time_result.current_hour}:00 in debtor timezone)"
                ),
                section=resolve_section(SECTION_TIME_RESTRICTION),
            ))
            if block_reason is None:
                earliest = _hour_label(self.time_checker.earliest_hour)
                latest = _hour_label(self.time_checker.latest_hour)
                block_reason = (
                    f"Cannot send message: outside allowed hours "
                    f"({earliest} - {latest} in debtor's timezone)."
                )

        # 3. Frequency
        frequency_result = self.frequency.check(debtor_id, case_id)
        if not frequency_result.compliant:
            issues.append(ComplianceIssue(
                type=ComplianceFlagType.FREQUENCY_EXCEEDED,
                severity=FlagSeverity.VIOLATION,
                description=(
                    f"Communication frequency limit exceeded "
                    f"({frequency_result.used}/{frequency_result.limit} this week)"
                ),
                section=resolve_section(SECTION_FREQUENCY),
            ))
            if block_reason is None:
                block_reason = (
                    f"Cannot send message: weekly communication limit reached "
                    f"({frequency_result.limit} per week)."
                )
        elif frequency_result.warning_threshold:
            message = f"Approaching communication limit: {frequency_result.remaining} remaining this week."
            issues.append(ComplianceIssue(
                type=ComplianceFlagType.FREQUENCY_WARNING,
                severity=FlagSeverity.WARNING,
                description=message,
                section=resolve_section(SECTION_FREQUENCY),
            ))
            warnings.append(message)

        allowed = not any(i.severity == FlagSeverity.VIOLATION for i in issues)
        if not allowed:
            logger.warning(f"Send blocked for case {case_id}: {block_reason}")

        return PreSendCheckResult(
            allowed=allowed,
            issues=issues,
            warnings=warnings,
            block_reason=block_reason,
        )
