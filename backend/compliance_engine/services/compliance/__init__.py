"""
Communication Compliance Services

Pre-send enforcement for debtor communications (FDCPA / Regulation F):
- FrequencyTracker: trailing-window contact limits
- TimeRestrictionChecker: quiet hours in the debtor's local time
- CeaseDesistRegistry: per-case opt-out state
- LetterComplianceValidator: versioned letter rule sets
- PreSendGate: single allow/block decision
- ComplianceAuditLog: immutable records and flag resolution
"""
from .audit_log import ComplianceAuditLog
from .cease_desist import ALLOWED_WHEN_CEASE_DESIST, CeaseDesistRegistry
from .clock import ClockSource, DebtorTimezoneResolver, FixedClock, SystemClock
from .engine import ComplianceEngine, build_compliance_engine
from .flag_state_machine import FlagStateMachine
from .frequency_tracker import FrequencyTracker
from .letter_validator import LetterComplianceValidator
from .pre_send_gate import PreSendGate
from .rule_sets import DEFAULT_RULE_SET, RULE_SETS, RuleDefinition, RuleSet, get_rule_set
from .store import ComplianceStore, InMemoryComplianceStore, SqlAlchemyComplianceStore
from .time_restriction import TimeRestrictionChecker

__all__ = [
    "ComplianceAuditLog",
    "ALLOWED_WHEN_CEASE_DESIST",
    "CeaseDesistRegistry",
    "ClockSource",
    "DebtorTimezoneResolver",
    "FixedClock",
    "SystemClock",
    "ComplianceEngine",
    "build_compliance_engine",
    "FlagStateMachine",
    "FrequencyTracker",
    "LetterComplianceValidator",
    "PreSendGate",
    "DEFAULT_RULE_SET",
    "RULE_SETS",
    "RuleDefinition",
    "RuleSet",
    "get_rule_set",
    "ComplianceStore",
    "InMemoryComplianceStore",
    "SqlAlchemyComplianceStore",
    "TimeRestrictionChecker",
]
