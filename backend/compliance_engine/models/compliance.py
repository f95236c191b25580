"""
Compliance Engine - Core Models

Value objects passed between the enforcement components.

- Records (CommunicationRecord, ComplianceIssue) are frozen once created
- Results (FrequencyResult, TimeCheckResult, ...) are computed per request
- Every model exposes to_dict() for direct JSON serialization
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# ENUMS
# =============================================================================

class ComplianceFlagType(str, Enum):
    FDCPA_VIOLATION = "fdcpa_violation"
    FREQUENCY_WARNING = "frequency_warning"
    FREQUENCY_EXCEEDED = "frequency_exceeded"
    TIME_RESTRICTION = "time_restriction"
    DISCLOSURE_MISSING = "disclosure_missing"
    TONE_BLOCKED = "tone_blocked"
    CEASE_DESIST_ACTIVE = "cease_desist_active"
    MANUAL_REVIEW = "manual_review"


class FlagSeverity(str, Enum):
    WARNING = "warning"
    VIOLATION = "violation"


class FlagStatus(str, Enum):
    OPEN = "open"
    RESOLVED = "resolved"


class CommunicationDirection(str, Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"


class CommunicationChannel(str, Enum):
    PLATFORM = "platform"
    EMAIL = "email"
    SMS = "sms"
    PHONE = "phone"


class CommunicationType(str, Enum):
    """What kind of communication is being sent."""
    MESSAGE = "message"
    EMAIL = "email"
    SYSTEM = "system"
    NOTIFICATION = "notification"
    # Still permitted while a cease-and-desist is active (15 U.S.C. § 1692c(c))
    CEASE_DESIST_ACKNOWLEDGMENT = "cease_desist_acknowledgment"
    LAWSUIT_NOTICE = "lawsuit_notice"
    SPECIFIC_REMEDY_NOTICE = "specific_remedy_notice"


class CeaseDesistMethod(str, Enum):
    WRITTEN = "written"
    VERBAL = "verbal"
    PLATFORM = "platform"


class RuleRequirement(str, Enum):
    """Declared requiredness of a letter rule."""
    REQUIRED = "required"
    OPTIONAL = "optional"
    CONDITIONAL = "conditional"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


# =============================================================================
# FREQUENCY / TIME / CEASE-DESIST RESULTS
# =============================================================================

@dataclass(frozen=True)
class ContactEvent:
    """A single contact event as stored by the frequency tracker."""
    id: str
    debtor_id: str
    case_id: str
    direction: CommunicationDirection
    channel: CommunicationChannel
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "debtor_id": self.debtor_id,
            "case_id": self.case_id,
            "direction": self.direction.value,
            "channel": self.channel.value,
            "timestamp": _iso(self.timestamp),
        }


@dataclass
class FrequencyResult:
    """Trailing-window contact usage for one case."""
    compliant: bool
    used: int
    limit: int
    remaining: int
    warning_threshold: bool
    next_reset_date: datetime
    recent_communications: List[ContactEvent] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "compliant": self.compliant,
            "used": self.used,
            "limit": self.limit,
            "remaining": self.remaining,
            "warning_threshold": self.warning_threshold,
            "next_reset_date": _iso(self.next_reset_date),
            "recent_communications": [
                {"id": e.id, "timestamp": _iso(e.timestamp), "channel": e.channel.value}
                for e in self.recent_communications
            ],
        }


@dataclass
class TimeCheckResult:
    """Quiet-hours decision in the debtor's local time."""
    allowed: bool
    current_hour: int
    timezone: str
    debtor_local_time: datetime
    next_allowed_time: Optional[datetime]
    restriction_start: str
    restriction_end: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allowed": self.allowed,
            "current_hour": self.current_hour,
            "timezone": self.timezone,
            "debtor_local_time": _iso(self.debtor_local_time),
            "next_allowed_time": _iso(self.next_allowed_time),
            "restriction_start": self.restriction_start,
            "restriction_end": self.restriction_end,
        }


@dataclass
class CeaseDesistRecord:
    """Opt-out state for one case. Mutated only by the registry."""
    case_id: str
    debtor_id: str
    active: bool
    requested_at: datetime
    request_method: CeaseDesistMethod
    notes: Optional[str] = None
    acknowledged_at: Optional[datetime] = None
    acknowledged_by: Optional[str] = None
    lifted_at: Optional[datetime] = None
    lifted_by: Optional[str] = None
    lift_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "case_id": self.case_id,
            "debtor_id": self.debtor_id,
            "active": self.active,
            "requested_at": _iso(self.requested_at),
            "request_method": self.request_method.value,
            "notes": self.notes,
            "acknowledged_at": _iso(self.acknowledged_at),
            "acknowledged_by": self.acknowledged_by,
            "lifted_at": _iso(self.lifted_at),
            "lifted_by": self.lifted_by,
            "lift_reason": self.lift_reason,
        }


@dataclass
class CeaseDesistCheckResult:
    active: bool
    record: Optional[CeaseDesistRecord]
    allowed_types: List[str]
    blocked_actions: List[str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "active": self.active,
            "record": self.record.to_dict() if self.record else None,
            "allowed_types": list(self.allowed_types),
            "blocked_actions": list(self.blocked_actions),
        }


# =============================================================================
# PRE-SEND / AUDIT RECORDS
# =============================================================================

@dataclass(frozen=True)
class ComplianceIssue:
    """A single failed (or near-failing) check, citing its regulatory section."""
    type: ComplianceFlagType
    severity: FlagSeverity
    description: str
    section: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "severity": self.severity.value,
            "description": self.description,
            "section": self.section,
        }


@dataclass
class PreSendCheckResult:
    allowed: bool
    issues: List[ComplianceIssue] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    block_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "allowed": self.allowed,
            "issues": [i.to_dict() for i in self.issues],
            "warnings": list(self.warnings),
            "block_reason": self.block_reason,
        }


@dataclass(frozen=True)
class CommunicationDetails:
    """Caller-supplied description of a communication attempt."""
    case_id: str
    debtor_id: str
    direction: CommunicationDirection
    channel: CommunicationChannel
    communication_type: CommunicationType = CommunicationType.MESSAGE
    creditor_id: Optional[str] = None
    message_id: Optional[str] = None
    content: Optional[str] = None
    original_content: Optional[str] = None
    tone_score: Optional[float] = None
    supersedes_id: Optional[str] = None


@dataclass(frozen=True)
class CommunicationRecord:
    """
    Immutable audit record of one communication attempt.

    compliance_issues is exactly the issue set produced by the pre-send
    evaluation at send time.
    """
    id: str
    case_id: str
    debtor_id: str
    creditor_id: Optional[str]
    communication_type: CommunicationType
    direction: CommunicationDirection
    channel: CommunicationChannel
    message_id: Optional[str]
    content: Optional[str]
    original_content: Optional[str]
    tone_score: Optional[float]
    compliant: bool
    compliance_issues: Tuple[ComplianceIssue, ...]
    timestamp: datetime
    supersedes_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "case_id": self.case_id,
            "debtor_id": self.debtor_id,
            "creditor_id": self.creditor_id,
            "communication_type": self.communication_type.value,
            "direction": self.direction.value,
            "channel": self.channel.value,
            "message_id": self.message_id,
            "content": self.content,
            "original_content": self.original_content,
            "tone_score": self.tone_score,
            "compliant": self.compliant,
            "compliance_issues": [i.to_dict() for i in self.compliance_issues],
            "timestamp": _iso(self.timestamp),
            "supersedes_id": self.supersedes_id,
        }


@dataclass
class ComplianceFlag:
    """Durable record of a detected violation or warning."""
    id: str
    case_id: str
    message_id: Optional[str]
    flag_type: ComplianceFlagType
    severity: FlagSeverity
    details: Dict[str, Any]
    created_at: datetime
    resolved: bool = False
    resolution_notes: Optional[str] = None
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None

    @property
    def status(self) -> FlagStatus:
        return FlagStatus.RESOLVED if self.resolved else FlagStatus.OPEN

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "case_id": self.case_id,
            "message_id": self.message_id,
            "flag_type": self.flag_type.value,
            "severity": self.severity.value,
            "details": dict(self.details),
            "resolved": self.resolved,
            "resolution_notes": self.resolution_notes,
            "resolved_by": self.resolved_by,
            "created_at": _iso(self.created_at),
            "resolved_at": _iso(self.resolved_at),
        }


@dataclass
class ComplianceSummary:
    total_communications: int
    violations: int
    warnings: int
    compliance_rate: float
    unresolved_flags: int
    frequency_used: int
    frequency_limit: int
    time_restricted: bool
    cease_desist_active: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_communications": self.total_communications,
            "violations": self.violations,
            "warnings": self.warnings,
            "compliance_rate": self.compliance_rate,
            "unresolved_flags": self.unresolved_flags,
            "frequency_status": {
                "used": self.frequency_used,
                "limit": self.frequency_limit,
            },
            "time_restricted": self.time_restricted,
            "cease_desist_active": self.cease_desist_active,
        }


@dataclass
class CaseComplianceStatus:
    """Live status of one case for one debtor. Computed without recording anything."""
    case_id: str
    debtor_id: str
    frequency_used: int
    frequency_limit: int
    frequency_remaining: int
    frequency_warning: bool
    time_restricted: bool
    time_restriction_message: Optional[str]
    next_allowed_time: Optional[datetime]
    cease_desist_active: bool
    active_flags: int
    last_violation: Optional[datetime]
    can_send_message: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "case_id": self.case_id,
            "debtor_id": self.debtor_id,
            "frequency_used": self.frequency_used,
            "frequency_limit": self.frequency_limit,
            "frequency_remaining": self.frequency_remaining,
            "frequency_warning": self.frequency_warning,
            "time_restricted": self.time_restricted,
            "time_restriction_message": self.time_restriction_message,
            "next_allowed_time": _iso(self.next_allowed_time),
            "cease_desist_active": self.cease_desist_active,
            "active_flags": self.active_flags,
            "last_violation": _iso(self.last_violation),
            "can_send_message": self.can_send_message,
        }


@dataclass
class ComplianceOverview:
    """Flag totals across every case."""
    total_flags: int
    unresolved_flags: int
    violations: int
    recent_violations: List[ComplianceFlag] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_flags": self.total_flags,
            "unresolved_flags": self.unresolved_flags,
            "violations": self.violations,
            "recent_violations": [f.to_dict() for f in self.recent_violations],
        }


# =============================================================================
# LETTER VALIDATION
# =============================================================================

class DebtDetails(BaseModel):
    """Debt facts a letter must disclose. Read-only input to the validator."""
    model_config = ConfigDict(frozen=True)

    principal: float = Field(..., ge=0)
    interest: float = Field(default=0.0, ge=0)
    fees: float = Field(default=0.0, ge=0)
    origin_date: date
    creditor_name: str = Field(..., min_length=1)
    original_creditor: Optional[str] = None
    account_number: Optional[str] = None

    @property
    def total(self) -> float:
        return round(self.principal + self.interest + self.fees, 2)


class ValidationContext(BaseModel):
    """Jurisdiction and debt details for one letter validation run."""
    model_config = ConfigDict(frozen=True)

    state: str = Field(..., min_length=2, max_length=2)
    debt_details: DebtDetails

    @field_validator("state")
    @classmethod
    def _upper_state(cls, value: str) -> str:
        return value.upper()


@dataclass
class ComplianceCheckResult:
    """Outcome of one rule for one validation run. Never persisted."""
    id: str
    section: str
    name: str
    passed: bool
    required: bool
    details: str
    requirement: RuleRequirement = RuleRequirement.REQUIRED
    suggestion: Optional[str] = None
    matched_text: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "section": self.section,
            "name": self.name,
            "passed": self.passed,
            "required": self.required,
            "requirement": self.requirement.value,
            "details": self.details,
            "suggestion": self.suggestion,
            "matched_text": self.matched_text,
        }


@dataclass
class LetterValidationResult:
    is_compliant: bool
    score: int
    checks: List[ComplianceCheckResult]
    missing_requirements: List[str]
    warnings: List[str]
    suggestions: List[str]
    rule_set_version: str
    validated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_compliant": self.is_compliant,
            "score": self.score,
            "checks": [c.to_dict() for c in self.checks],
            "missing_requirements": list(self.missing_requirements),
            "warnings": list(self.warnings),
            "suggestions": list(self.suggestions),
            "rule_set_version": self.rule_set_version,
            "validated_at": _iso(self.validated_at),
        }
