"""Original Creditor Information - 15 U.S.C. § 1692g(a)(5)"""
from datetime import date

from ....models.compliance import ValidationContext
from .base import RuleOutcome, first_match
from .validation_notice import ORIGINAL_CREDITOR_PATTERNS


def check_original_creditor(content: str, context: ValidationContext, as_of: date) -> RuleOutcome:
    original = context.debt_details.original_creditor or ""

    if original and original.lower() in content.lower():
        return RuleOutcome(
            True,
            f'Original creditor "{original}" identified in letter',
            matched_text=original,
        )

    offer = first_match(ORIGINAL_CREDITOR_PATTERNS, content)
    if offer:
        return RuleOutcome(True, "Letter offers the name of the original creditor on request", matched_text=offer)

    return RuleOutcome(
        False,
        f'Original creditor "{original}" not identified',
        suggestion=(
            f'Add: "The original creditor of this debt is {original}." or state that the name '
            "and address of the original creditor will be provided upon written request."
        ),
    )
