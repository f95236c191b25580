"""
Validation Notice - 12 CFR § 1006.34 (Regulation F)

Core components: 30-day window, right to dispute, verification.
Original creditor language is reported but not required here; it has its
own conditional rule.
"""
from datetime import date

from ....models.compliance import ValidationContext
from .base import RuleOutcome, any_match, compile_patterns

THIRTY_DAY_PATTERNS = compile_patterns(
    r"within\s+(?:the\s+)?(?:30|thirty)\s*(?:\((?:30|thirty)\))?\s*days?",
    r"(?:30|thirty)\s*(?:\((?:30|thirty)\))?\s*[\-–]?\s*day\s+(?:period|window|time(?:frame)?)",
    r"(?:30|thirty)\s*(?:\((?:30|thirty)\))?\s*days?\s+(?:from|after|of)",
)

DISPUTE_PATTERNS = compile_patterns(
    r"dispute\s+(?:the\s+)?(?:debt|validity|accuracy)",
    r"right\s+to\s+(?:dispute|contest|challenge)",
    r"may\s+(?:dispute|contest)\s+(?:the\s+|this\s+)?debt",
    r"dispute\s+this\s+debt",
)

VERIFICATION_PATTERNS = compile_patterns(
    r"verification\s+of\s+(?:the\s+)?debt",
    r"request\s+(?:verification|validation)",
    r"provide\s+(?:you\s+with\s+)?(?:verification|validation|proof)",
    r"obtain\s+verification",
)

ORIGINAL_CREDITOR_PATTERNS = compile_patterns(
    r"name\s+(?:and\s+address\s+)?of\s+(?:the\s+)?original\s+creditor",
    r"original\s+creditor(?:'s)?\s+(?:name|information|identity)",
    r"(?:provide|disclose)\s+(?:the\s+)?original\s+creditor",
)


def check_validation_notice(content: str, context: ValidationContext, as_of: date) -> RuleOutcome:
    found = {
        "30-day dispute window": any_match(THIRTY_DAY_PATTERNS, content),
        "dispute rights": any_match(DISPUTE_PATTERNS, content),
        "verification rights": any_match(VERIFICATION_PATTERNS, content),
        "original creditor disclosure": any_match(ORIGINAL_CREDITOR_PATTERNS, content),
    }
    missing = [name for name, present in found.items() if not present]
    core_missing = [m for m in missing if m != "original creditor disclosure"]

    if not core_missing:
        if not missing:
            return RuleOutcome(True, "Complete validation notice present")
        return RuleOutcome(True, f"Validation notice present ({', '.join(missing)} optional/conditional)")

    suggestions = []
    if "30-day dispute window" in core_missing:
        suggestions.append('Add: "Within 30 days of receiving this notice, you may dispute this debt."')
    if "dispute rights" in core_missing:
        suggestions.append("Add language explaining the right to dispute the debt validity.")
    if "verification rights" in core_missing:
        suggestions.append('Add: "If you dispute this debt, we will provide verification."')

    return RuleOutcome(
        False,
        f"Validation notice incomplete - missing: {', '.join(core_missing)}",
        suggestion=" ".join(suggestions),
    )
