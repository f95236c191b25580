"""
Dispute Rights Disclosure - 15 U.S.C. § 1692g(a)(3-5)

(3) unless disputed within 30 days the debt is assumed valid
(4) if disputed, verification will be obtained and mailed
(5) on written request, the original creditor will be identified

The 30-day window and verification provision are required; the other two
are reported in details when absent.
"""
from datetime import date
from typing import List

from ....models.compliance import ValidationContext
from .base import RuleOutcome, any_match, compile_patterns

THIRTY_DAY_PATTERNS = compile_patterns(
    r"within\s+(?:the\s+)?(?:30|thirty)\s*(?:\((?:30|thirty)\))?\s*days?",
    r"(?:30|thirty)\s*(?:\((?:30|thirty)\))?\s*[\-–]?\s*day",
)

ASSUME_VALID_PATTERNS = compile_patterns(
    r"(?:assumed|presumed|considered)\s+(?:to\s+be\s+)?valid",
    r"debt\s+(?:will\s+be\s+)?(?:assumed|presumed)\s+valid",
    r"not\s+disputed.*(?:valid|owed)",
)

VERIFICATION_PATTERNS = compile_patterns(
    r"(?:obtain|provide|mail|send)\s+(?:you\s+)?(?:a\s+)?(?:verification|validation)",
    r"verification.*(?:mailed|sent|provided)",
    r"(?:copy|proof)\s+of\s+(?:the\s+)?(?:debt|judgment)",
)

WRITTEN_REQUEST_PATTERNS = compile_patterns(
    r"written\s+request",
    r"request\s+in\s+writing",
    r"write\s+(?:to\s+)?us",
    r"in\s+writing",
)


def _dispute_suggestion(missing: List[str]) -> str:
    suggestions = []
    if "30-day dispute window" in missing:
        suggestions.append('"You have 30 days from receipt of this notice to dispute this debt."')
    if "verification provision" in missing:
        suggestions.append('"If you dispute this debt in writing, we will provide verification."')
    if "validity assumption statement" in missing:
        suggestions.append('"If not disputed within 30 days, the debt will be assumed valid."')
    return f"Add: {' '.join(suggestions)}" if suggestions else ""


def check_dispute_rights(content: str, context: ValidationContext, as_of: date) -> RuleOutcome:
    found = {
        "30-day dispute window": any_match(THIRTY_DAY_PATTERNS, content),
        "verification provision": any_match(VERIFICATION_PATTERNS, content),
        "validity assumption statement": any_match(ASSUME_VALID_PATTERNS, content),
        "written request instruction": any_match(WRITTEN_REQUEST_PATTERNS, content),
    }
    missing = [name for name, present in found.items() if not present]
    passed = found["30-day dispute window"] and found["verification provision"]

    if passed:
        if not missing:
            return RuleOutcome(True, "Complete dispute rights disclosure present")
        return RuleOutcome(True, f"Core dispute rights present (consider adding: {', '.join(missing)})")

    return RuleOutcome(
        False,
        f"Dispute rights incomplete - missing: {', '.join(missing[:2])}",
        suggestion=_dispute_suggestion(missing),
    )
