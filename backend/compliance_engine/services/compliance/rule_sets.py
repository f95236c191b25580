"""
Letter Rule Sets

Rules are data: a RuleSet is a versioned, immutable list of RuleDefinitions.
Evaluator code is looked up by rule id. A new jurisdiction update ships as a
new RuleSet version; previously certified versions are left untouched.

Conditional rules carry an applicability predicate. When it is false the
rule is recorded as passed and not required; when true the rule is evaluated
as required.
"""
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, Optional, Tuple

from ...errors import ComplianceValidationError
from ...models.compliance import RuleRequirement, ValidationContext
from .regulatory_sections import resolve_section
from .state_rules import is_debt_time_barred, requires_time_barred_disclosure

# (context, as_of) -> does the conditional rule apply
ApplicabilityPredicate = Callable[[ValidationContext, date], bool]


@dataclass(frozen=True)
class RuleDefinition:
    id: str
    section: str
    name: str
    description: str
    requirement: RuleRequirement = RuleRequirement.REQUIRED
    applies: Optional[ApplicabilityPredicate] = None
    condition_description: Optional[str] = None
    not_applicable_details: str = "Not applicable"

    def is_applicable(self, context: ValidationContext, as_of: date) -> bool:
        if self.requirement != RuleRequirement.CONDITIONAL or self.applies is None:
            return True
        return self.applies(context, as_of)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "section": self.section,
            "name": self.name,
            "description": self.description,
            "requirement": self.requirement.value,
            "condition_description": self.condition_description,
        }


@dataclass(frozen=True)
class RuleSet:
    version: str
    rules: Tuple[RuleDefinition, ...]

    def get(self, rule_id: str) -> Optional[RuleDefinition]:
        return next((r for r in self.rules if r.id == rule_id), None)


# ===== APPLICABILITY PREDICATES =====

def time_barred_disclosure_applies(context: ValidationContext, as_of: date) -> bool:
    """Debt is past the state's statute of limitations AND the state mandates disclosure."""
    return (
        is_debt_time_barred(context.debt_details.origin_date, context.state, as_of)
        and requires_time_barred_disclosure(context.state)
    )


def original_creditor_applies(context: ValidationContext, as_of: date) -> bool:
    """An original creditor is given and differs from the current creditor."""
    original = (context.debt_details.original_creditor or "").strip()
    current = context.debt_details.creditor_name.strip()
    return bool(original) and original.lower() != current.lower()


# ===== FDCPA 2024.1 =====

FDCPA_2024_1 = RuleSet(
    version="fdcpa-2024.1",
    rules=(
        RuleDefinition(
            id="validation_notice",
            section=resolve_section("1006.34"),
            name="Validation Notice",
            description="Must include validation information within 5 days of initial communication",
        ),
        RuleDefinition(
            id="mini_miranda",
            section=resolve_section("1692e(11)"),
            name="Mini-Miranda Warning",
            description=(
                "Must disclose that this is an attempt to collect a debt and any "
                "information obtained will be used for that purpose"
            ),
        ),
        RuleDefinition(
            id="creditor_identification",
            section=resolve_section("1692g(a)(2)"),
            name="Creditor Identification",
            description="Must identify the name of the creditor to whom the debt is owed",
        ),
        RuleDefinition(
            id="debt_amount",
            section=resolve_section("1692g(a)(1)"),
            name="Debt Amount Statement",
            description="Must state the amount of the debt",
        ),
        RuleDefinition(
            id="dispute_rights",
            section=resolve_section("1692g(a)(3-5)"),
            name="Dispute Rights Disclosure",
            description="Must inform debtor of 30-day dispute window and verification rights",
        ),
        RuleDefinition(
            id="time_barred_disclosure",
            section=resolve_section("state"),
            name="Time-Barred Debt Disclosure",
            description="Must disclose if debt is beyond statute of limitations (state-specific requirement)",
            requirement=RuleRequirement.CONDITIONAL,
            applies=time_barred_disclosure_applies,
            condition_description="Required if debt exceeds state statute of limitations and the state mandates disclosure",
            not_applicable_details="Not applicable - debt is not time-barred or state does not require disclosure",
        ),
        RuleDefinition(
            id="original_creditor",
            section=resolve_section("1692g(a)(5)"),
            name="Original Creditor Information",
            description="Must identify the original creditor when different from the current creditor",
            requirement=RuleRequirement.CONDITIONAL,
            applies=original_creditor_applies,
            condition_description="Required if original creditor differs from current",
            not_applicable_details="Not applicable - original creditor same as current",
        ),
    ),
)

DEFAULT_RULE_SET = FDCPA_2024_1

RULE_SETS: Dict[str, RuleSet] = {
    FDCPA_2024_1.version: FDCPA_2024_1,
}


def get_rule_set(version: str) -> RuleSet:
    """Look up a certified rule set by version id."""
    try:
        return RULE_SETS[version]
    except KeyError:
        raise ComplianceValidationError(
            f"Unknown rule set version {version!r}; available: {', '.join(sorted(RULE_SETS))}"
        )
