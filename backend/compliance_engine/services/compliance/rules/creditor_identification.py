"""Creditor Identification - 15 U.S.C. § 1692g(a)(2)"""
import re
from datetime import date

from ....models.compliance import ValidationContext
from .base import RuleOutcome

CREDITOR_LANGUAGE = re.compile(
    r"(?:creditor|owed\s+to|debt\s+(?:is\s+)?(?:owed\s+)?to|behalf\s+of)",
    re.IGNORECASE,
)


def check_creditor_identification(content: str, context: ValidationContext, as_of: date) -> RuleOutcome:
    creditor_name = context.debt_details.creditor_name
    lowered = content.lower()

    creditor_mentioned = creditor_name.lower() in lowered
    has_creditor_language = CREDITOR_LANGUAGE.search(content) is not None

    if creditor_mentioned and has_creditor_language:
        return RuleOutcome(
            True,
            f'Creditor "{creditor_name}" identified in letter',
            matched_text=creditor_name,
        )

    if not creditor_mentioned:
        return RuleOutcome(
            False,
            "Creditor name not found in letter content",
            suggestion=f'Ensure the creditor name "{creditor_name}" appears in the letter',
        )
    return RuleOutcome(
        False,
        "Creditor name present but context unclear",
        suggestion='Add clear language like "debt owed to [creditor name]" or "on behalf of [creditor name]"',
    )
