"""
State Rules

Per-jurisdiction statute of limitations, time-barred disclosure mandates,
and extra requirements that surface as validator warnings.

Unknown states fall back to a 6-year statute with no disclosure mandate.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

from dateutil.relativedelta import relativedelta

logger = logging.getLogger(__name__)

DEFAULT_STATUTE_OF_LIMITATIONS = 6


@dataclass(frozen=True)
class StateRule:
    state_code: str
    state_name: str
    statute_of_limitations: int  # years
    time_barred_disclosure_required: bool = False
    additional_requirements: List[str] = field(default_factory=list)
    additional_disclosures: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "state_code": self.state_code,
            "state_name": self.state_name,
            "statute_of_limitations": self.statute_of_limitations,
            "time_barred_disclosure_required": self.time_barred_disclosure_required,
            "additional_requirements": list(self.additional_requirements),
            "additional_disclosures": list(self.additional_disclosures),
        }


# (name, statute of limitations in years) for states without extra obligations
_BASIC_STATES = {
    "AL": ("Alabama", 6),
    "AK": ("Alaska", 3),
    "AZ": ("Arizona", 6),
    "AR": ("Arkansas", 5),
    "CO": ("Colorado", 6),
    "CT": ("Connecticut", 6),
    "DE": ("Delaware", 3),
    "GA": ("Georgia", 6),
    "HI": ("Hawaii", 6),
    "ID": ("Idaho", 5),
    "IL": ("Illinois", 5),
    "IN": ("Indiana", 6),
    "IA": ("Iowa", 5),
    "KS": ("Kansas", 5),
    "KY": ("Kentucky", 5),
    "LA": ("Louisiana", 3),
    "ME": ("Maine", 6),
    "MD": ("Maryland", 3),
    "MA": ("Massachusetts", 6),
    "MI": ("Michigan", 6),
    "MN": ("Minnesota", 6),
    "MS": ("Mississippi", 3),
    "MO": ("Missouri", 5),
    "MT": ("Montana", 5),
    "NE": ("Nebraska", 5),
    "NV": ("Nevada", 6),
    "NH": ("New Hampshire", 3),
    "NJ": ("New Jersey", 6),
    "NC": ("North Carolina", 3),
    "ND": ("North Dakota", 6),
    "OH": ("Ohio", 6),
    "OK": ("Oklahoma", 5),
    "OR": ("Oregon", 6),
    "PA": ("Pennsylvania", 4),
    "RI": ("Rhode Island", 10),
    "SC": ("South Carolina", 3),
    "SD": ("South Dakota", 6),
    "TN": ("Tennessee", 6),
    "UT": ("Utah", 6),
    "VT": ("Vermont", 6),
    "VA": ("Virginia", 5),
    "WA": ("Washington", 6),
    "WV": ("West Virginia", 10),
    "WI": ("Wisconsin", 6),
    "WY": ("Wyoming", 8),
    "DC": ("District of Columbia", 3),
}

STATE_RULES: Dict[str, StateRule] = {
    code: StateRule(state_code=code, state_name=name, statute_of_limitations=years)
    for code, (name, years) in _BASIC_STATES.items()
}

STATE_RULES.update({
    "CA": StateRule(
        state_code="CA",
        state_name="California",
        statute_of_limitations=4,
        time_barred_disclosure_required=True,
        additional_requirements=["Rosenthal Fair Debt Collection Practices Act compliance"],
        additional_disclosures=[
            "The law limits how long you can be sued on a debt. "
            "Because of the age of your debt, we will not sue you for it.",
        ],
    ),
    "FL": StateRule(
        state_code="FL",
        state_name="Florida",
        statute_of_limitations=5,
        time_barred_disclosure_required=True,
        additional_requirements=["Florida Consumer Collection Practices Act compliance"],
    ),
    "NM": StateRule(
        state_code="NM",
        state_name="New Mexico",
        statute_of_limitations=6,
        time_barred_disclosure_required=True,
        additional_requirements=["New Mexico time-barred debt disclosure"],
    ),
    "NY": StateRule(
        state_code="NY",
        state_name="New York",
        statute_of_limitations=6,
        time_barred_disclosure_required=True,
        additional_requirements=["NYC specific disclosure requirements"],
        additional_disclosures=[
            "The law limits how long you can be sued on a debt. "
            "Because of the age of your debt, we will not sue you for it, "
            "and we will not report it to any credit reporting agency.",
        ],
    ),
    "TX": StateRule(
        state_code="TX",
        state_name="Texas",
        statute_of_limitations=4,
        time_barred_disclosure_required=True,
        additional_requirements=["Texas time-barred debt notice"],
        additional_disclosures=[
            "This debt is too old for you to be sued on it. If you pay any amount "
            "on this debt or promise to pay, the debt may become enforceable again.",
        ],
    ),
})


def get_state_rule(state_code: str) -> Optional[StateRule]:
    return STATE_RULES.get(state_code.strip().upper())


def get_statute_of_limitations(state_code: str) -> int:
    """Statute of limitations in years, 6 for an unknown state."""
    rule = get_state_rule(state_code)
    if rule is None:
        logger.warning(f"Unknown state '{state_code}', using {DEFAULT_STATUTE_OF_LIMITATIONS}-year statute of limitations")
        return DEFAULT_STATUTE_OF_LIMITATIONS
    return rule.statute_of_limitations


def is_debt_time_barred(origin_date: date, state_code: str, as_of: date) -> bool:
    """True once the debt is older than the state's statute of limitations."""
    expires = origin_date + relativedelta(years=get_statute_of_limitations(state_code))
    return as_of > expires


def requires_time_barred_disclosure(state_code: str) -> bool:
    rule = get_state_rule(state_code)
    return rule.time_barred_disclosure_required if rule else False
