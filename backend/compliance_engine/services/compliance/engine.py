"""
Compliance Engine

Wires every enforcement component from one store, one clock, and one
settings object. There are no module-level singletons: each engine owns its
state, so tests build a fresh engine over an in-memory store and a FixedClock.
"""
from dataclasses import dataclass
from typing import Optional

from ...config import EngineSettings, load_settings
from .audit_log import ComplianceAuditLog
from .cease_desist import CeaseDesistRegistry
from .clock import ClockSource, DebtorTimezoneResolver, SystemClock
from .disclosure_generator import complete_disclosure, required_disclosures
from .frequency_tracker import FrequencyTracker
from .letter_validator import LetterComplianceValidator, coerce_context
from .pre_send_gate import PreSendGate
from .rule_sets import RuleSet, get_rule_set
from .store import ComplianceStore, InMemoryComplianceStore
from .time_restriction import TimeRestrictionChecker


@dataclass
class ComplianceEngine:
    settings: EngineSettings
    store: ComplianceStore
    clock: ClockSource
    timezones: DebtorTimezoneResolver
    frequency: FrequencyTracker
    time_restriction: TimeRestrictionChecker
    cease_desist: CeaseDesistRegistry
    letter_validator: LetterComplianceValidator
    gate: PreSendGate
    audit_log: ComplianceAuditLog

    def disclosures(self, context) -> list:
        """Disclosure blocks a letter for this context must carry."""
        return required_disclosures(coerce_context(context), self.clock.now().date())

    def complete_disclosure(self, context) -> str:
        return complete_disclosure(coerce_context(context), self.clock.now().date())


def build_compliance_engine(
    store: Optional[ComplianceStore] = None,
    clock: Optional[ClockSource] = None,
    settings: Optional[EngineSettings] = None,
    rule_set: Optional[RuleSet] = None,
) -> ComplianceEngine:
    settings = settings or load_settings()
    rule_set = rule_set or get_rule_set(settings.rule_set_version)
    store = store or InMemoryComplianceStore(lock_stripes=settings.lock_stripes)
    clock = clock or SystemClock()

    timezones = DebtorTimezoneResolver(store, settings.default_timezone, settings.fallback_timezones)
    frequency = FrequencyTracker(store, clock, settings)
    time_restriction = TimeRestrictionChecker(timezones, clock, settings)
    cease_desist = CeaseDesistRegistry(store, clock)
    gate = PreSendGate(cease_desist, time_restriction, frequency)

    return ComplianceEngine(
        settings=settings,
        store=store,
        clock=clock,
        timezones=timezones,
        frequency=frequency,
        time_restriction=time_restriction,
        cease_desist=cease_desist,
        letter_validator=LetterComplianceValidator(clock, rule_set=rule_set),
        gate=gate,
        audit_log=ComplianceAuditLog(store, clock, gate, frequency, time_restriction, cease_desist),
    )
