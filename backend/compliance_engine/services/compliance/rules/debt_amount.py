"""
Debt Amount Statement - 15 U.S.C. § 1692g(a)(1)

Passes when a currency amount appears AND either it is framed as an amount
owed, or it equals the debt's principal or total.
"""
import re
from datetime import date

from ....models.compliance import ValidationContext
from .base import RuleOutcome, any_match, compile_patterns, format_currency, parse_currency

CURRENCY_PATTERN = re.compile(r"\$[\d,]+(?:\.\d{2})?")

AMOUNT_CONTEXT_PATTERNS = compile_patterns(
    r"(?:amount|balance|total|sum)\s+(?:owed|due|of)\s*:?\s*\$?[\d,]+(?:\.\d{2})?",
    r"you\s+owe\s*\$?[\d,]+(?:\.\d{2})?",
    r"debt\s+(?:amount|balance|total)\s*:?\s*\$?[\d,]+(?:\.\d{2})?",
    r"\$[\d,]+(?:\.\d{2})?\s+(?:is\s+)?(?:owed|due)",
    r"(?:principal|interest|fees?)\s*:?\s*\$?[\d,]+(?:\.\d{2})?",
)


def _has_itemization(content: str, context: ValidationContext) -> bool:
    debt = context.debt_details
    has_principal = re.search(r"principal", content, re.IGNORECASE) is not None
    has_interest = not debt.interest or re.search(r"interest", content, re.IGNORECASE) is not None
    has_fees = not debt.fees or re.search(r"fees?", content, re.IGNORECASE) is not None
    return has_principal and has_interest and has_fees


def check_debt_amount(content: str, context: ValidationContext, as_of: date) -> RuleOutcome:
    debt = context.debt_details
    expected_total = debt.total
    expected_formatted = format_currency(expected_total)

    currency_matches = CURRENCY_PATTERN.findall(content)
    has_amount_context = any_match(AMOUNT_CONTEXT_PATTERNS, content)

    matching_amount = next(
        (
            m for m in currency_matches
            if parse_currency(m) in (expected_total, round(debt.principal, 2))
        ),
        None,
    )

    passed = bool(currency_matches) and (has_amount_context or matching_amount is not None)

    if passed and matching_amount:
        details = f"Debt amount stated ({expected_formatted})"
        if (debt.interest or debt.fees) and not _has_itemization(content, context):
            details += " - Consider adding itemized breakdown"
        return RuleOutcome(True, details, matched_text=matching_amount)

    if passed:
        suggestion = None
        if expected_total > 0:
            suggestion = f"Verify the stated amount matches the debt total of {expected_formatted}"
        return RuleOutcome(True, "Debt amount stated", suggestion=suggestion, matched_text=currency_matches[0])

    if currency_matches:
        return RuleOutcome(
            False,
            "Currency amounts found but context unclear",
            suggestion=(
                f'Add clear language such as "the amount owed is {expected_formatted}" '
                f'or "total balance due: {expected_formatted}"'
            ),
        )
    return RuleOutcome(
        False,
        "No debt amount found in letter",
        suggestion=f"Add the debt amount: {expected_formatted}",
    )
