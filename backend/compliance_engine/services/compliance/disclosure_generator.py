"""
Disclosure Generator

Produces the standard disclosure blocks for letter templates. A letter built
from complete_disclosure() passes every applicable rule in the default rule
set.
"""
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, List, Optional

from ...models.compliance import ValidationContext
from .regulatory_sections import resolve_section
from .rules.base import format_currency
from .rules.time_barred import DEFAULT_TIME_BARRED_DISCLOSURE
from .state_rules import get_state_rule, is_debt_time_barred

BLOCK_SEPARATOR = "\n\n---\n\n"


@dataclass(frozen=True)
class DisclosureBlock:
    id: str
    name: str
    section: str
    required: bool
    content: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "section": self.section,
            "required": self.required,
            "content": self.content,
        }


def mini_miranda() -> DisclosureBlock:
    return DisclosureBlock(
        id="mini_miranda",
        name="Mini-Miranda Warning",
        section=resolve_section("1692e(11)"),
        required=True,
        content=(
            "This is an attempt to collect a debt. Any information obtained will be used "
            "for that purpose. This communication is from a debt collector."
        ),
    )


def validation_notice() -> DisclosureBlock:
    return DisclosureBlock(
        id="validation_notice",
        name="Debt Validation Notice",
        section=resolve_section("1006.34"),
        required=True,
        content=(
            "IMPORTANT NOTICE REGARDING YOUR RIGHTS\n\n"
            "Unless you dispute the validity of this debt, or any portion thereof, within thirty (30) "
            "days after receipt of this notice, this debt will be assumed to be valid by us. If you "
            "notify us in writing within the thirty (30) day period that the debt, or any portion "
            "thereof, is disputed, we will obtain verification of the debt or a copy of a judgment "
            "against you and mail a copy of such verification or judgment to you. Upon your written "
            "request within the thirty (30) day period, we will provide you with the name and address "
            "of the original creditor, if different from the current creditor."
        ),
    )


def dispute_rights() -> DisclosureBlock:
    return DisclosureBlock(
        id="dispute_rights",
        name="Dispute Rights",
        section=resolve_section("1692g(a)(3-5)"),
        required=True,
        content=(
            "YOUR RIGHTS UNDER FEDERAL LAW\n\n"
            "You have the right to dispute this debt. Within 30 days of receiving this notice:\n\n"
            "- If you dispute the debt in writing, we will provide verification of the debt.\n"
            "- If you request in writing, we will provide the name and address of the original "
            "creditor if different from the current creditor.\n"
            "- If you do not dispute this debt within 30 days, we will assume the debt is valid.\n\n"
            "To dispute this debt or request verification, send your written request to the address above."
        ),
    )


def time_barred_disclosure(state: str) -> DisclosureBlock:
    rule = get_state_rule(state)
    if rule is None:
        return DisclosureBlock(
            id="time_barred_disclosure",
            name="Time-Barred Debt Disclosure",
            section=resolve_section("state"),
            required=False,
            content=(
                f"{DEFAULT_TIME_BARRED_DISCLOSURE} If you make a payment on this debt, "
                "the debt may become enforceable against you."
            ),
        )

    content = rule.additional_disclosures[0] if rule.additional_disclosures else DEFAULT_TIME_BARRED_DISCLOSURE
    return DisclosureBlock(
        id="time_barred_disclosure",
        name=f"Time-Barred Debt Disclosure ({rule.state_code})",
        section=resolve_section("state"),
        required=rule.time_barred_disclosure_required,
        content=content,
    )


def creditor_block(creditor_name: str, original_creditor: Optional[str] = None) -> DisclosureBlock:
    content = f"This debt is owed to {creditor_name}."
    if original_creditor and original_creditor != creditor_name:
        content += f" The original creditor was {original_creditor}."
    return DisclosureBlock(
        id="creditor_identification",
        name="Creditor Identification",
        section=resolve_section("1692g(a)(2)"),
        required=True,
        content=content,
    )


def debt_amount_block(principal: float, interest: float = 0.0, fees: float = 0.0) -> DisclosureBlock:
    total = round(principal + interest + fees, 2)
    content = f"The amount owed is {format_currency(total)}."

    # Itemize when anything beyond principal is charged
    if interest or fees:
        items = [f"Principal: {format_currency(principal)}"]
        if interest:
            items.append(f"Interest: {format_currency(interest)}")
        if fees:
            items.append(f"Fees: {format_currency(fees)}")
        items.append(f"Total: {format_currency(total)}")
        content += "\n\nItemized breakdown:\n" + "\n".join(items)

    return DisclosureBlock(
        id="debt_amount",
        name="Debt Amount Statement",
        section=resolve_section("1692g(a)(1)"),
        required=True,
        content=content,
    )


def required_disclosures(context: ValidationContext, as_of: date) -> List[DisclosureBlock]:
    debt = context.debt_details
    blocks = [
        mini_miranda(),
        validation_notice(),
        dispute_rights(),
        creditor_block(debt.creditor_name, debt.original_creditor),
        debt_amount_block(debt.principal, debt.interest, debt.fees),
    ]
    if is_debt_time_barred(debt.origin_date, context.state, as_of):
        blocks.append(time_barred_disclosure(context.state))
    return blocks


def complete_disclosure(context: ValidationContext, as_of: date) -> str:
    """All applicable disclosure blocks joined into one letter section."""
    return BLOCK_SEPARATOR.join(block.content for block in required_disclosures(context, as_of))
