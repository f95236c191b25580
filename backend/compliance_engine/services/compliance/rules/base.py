"""
Letter Rule Primitives

Each evaluator inspects letter text for a set of alternative phrasings and
returns a RuleOutcome. Rule identity (id, section, name, requiredness) lives
in the rule set, not in the evaluator.
"""
import re
from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional, Sequence

from ....models.compliance import ValidationContext


@dataclass(frozen=True)
class RuleOutcome:
    passed: bool
    details: str
    suggestion: Optional[str] = None
    matched_text: Optional[str] = None


# (content, context, as_of) -> RuleOutcome
RuleEvaluator = Callable[[str, ValidationContext, date], RuleOutcome]


def compile_patterns(*patterns: str) -> Sequence[re.Pattern]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


def first_match(patterns: Sequence[re.Pattern], content: str) -> Optional[str]:
    """Text of the first pattern that matches, or None."""
    for pattern in patterns:
        match = pattern.search(content)
        if match:
            return match.group(0)
    return None


def any_match(patterns: Sequence[re.Pattern], content: str) -> bool:
    return first_match(patterns, content) is not None


def format_currency(amount: float) -> str:
    return f"${amount:,.2f}"


def parse_currency(text: str) -> Optional[float]:
    try:
        return float(text.replace("$", "").replace(",", ""))
    except ValueError:
        return None
