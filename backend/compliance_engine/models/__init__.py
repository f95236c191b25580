"""Compliance Engine - Data Models"""
from .compliance import (
    # Enums
    ComplianceFlagType, FlagSeverity, FlagStatus, CommunicationDirection,
    CommunicationChannel, CommunicationType, CeaseDesistMethod, RuleRequirement,
    # Frequency / time / cease-desist
    ContactEvent, FrequencyResult, TimeCheckResult, CeaseDesistRecord, CeaseDesistCheckResult,
    # Pre-send and audit
    ComplianceIssue, PreSendCheckResult, CommunicationDetails, CommunicationRecord,
    ComplianceFlag, ComplianceSummary, CaseComplianceStatus, ComplianceOverview,
    # Letter validation
    DebtDetails, ValidationContext, ComplianceCheckResult, LetterValidationResult,
)

__all__ = [
    "ComplianceFlagType", "FlagSeverity", "FlagStatus", "CommunicationDirection",
    "CommunicationChannel", "CommunicationType", "CeaseDesistMethod", "RuleRequirement",
    "ContactEvent", "FrequencyResult", "TimeCheckResult", "CeaseDesistRecord", "CeaseDesistCheckResult",
    "ComplianceIssue", "PreSendCheckResult", "CommunicationDetails", "CommunicationRecord",
    "ComplianceFlag", "ComplianceSummary", "CaseComplianceStatus", "ComplianceOverview",
    "DebtDetails", "ValidationContext", "ComplianceCheckResult", "LetterValidationResult",
]
