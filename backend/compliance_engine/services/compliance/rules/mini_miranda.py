"""
Mini-Miranda Warning - 15 U.S.C. § 1692e(11)

Required language (or substantial equivalent):
"This is an attempt to collect a debt and any information obtained will be
used for that purpose."

Both halves are needed: debt collector identification AND purpose statement.
"""
from datetime import date

from ....models.compliance import ValidationContext
from .base import RuleOutcome, compile_patterns, first_match

DEBT_COLLECTOR_PATTERNS = compile_patterns(
    r"this\s+is\s+an?\s+attempt\s+to\s+collect\s+a\s+debt",
    r"this\s+communication\s+is\s+from\s+a\s+debt\s+collector",
    r"we\s+are\s+(?:a\s+)?debt\s+collectors?",
    r"acting\s+as\s+(?:a\s+)?debt\s+collector",
)

INFORMATION_PURPOSE_PATTERNS = compile_patterns(
    r"any\s+information\s+(?:obtained|received|provided)\s+will\s+be\s+used\s+for\s+that\s+purpose",
    r"information\s+(?:obtained|collected)\s+(?:will\s+be|may\s+be)\s+used\s+(?:for|in)\s+(?:that\s+purpose|debt\s+collection)",
)


def check_mini_miranda(content: str, context: ValidationContext, as_of: date) -> RuleOutcome:
    collector_match = first_match(DEBT_COLLECTOR_PATTERNS, content)
    purpose_match = first_match(INFORMATION_PURPOSE_PATTERNS, content)

    if collector_match and purpose_match:
        return RuleOutcome(True, "Mini-Miranda warning present", matched_text=collector_match)

    if collector_match:
        return RuleOutcome(
            False,
            "Debt collector identification found, but purpose statement missing",
            suggestion='Add: "any information obtained will be used for that purpose"',
        )
    if purpose_match:
        return RuleOutcome(
            False,
            "Purpose statement found, but debt collector identification missing",
            suggestion='Add: "This is an attempt to collect a debt" or similar language',
        )
    return RuleOutcome(
        False,
        "Mini-Miranda warning not detected",
        suggestion=(
            'Add: "This is an attempt to collect a debt and any information obtained '
            'will be used for that purpose."'
        ),
    )
