"""
Time-Barred Debt Disclosure - state-specific

Evaluated only when the debt is past the state's statute of limitations and
the state mandates disclosure. A revival warning and the state's own
disclosure wording are recommended, not required.
"""
from datetime import date

from ....models.compliance import ValidationContext
from ..state_rules import get_state_rule, get_statute_of_limitations
from .base import RuleOutcome, any_match, compile_patterns

TIME_BARRED_PATTERNS = compile_patterns(
    r"(?:law\s+)?limits\s+how\s+long\s+(?:you\s+)?can\s+(?:be\s+)?sued",
    r"statute\s+of\s+limitations",
    r"time[\-\s]?barred",
    r"too\s+old\s+(?:for\s+you\s+)?(?:to\s+)?(?:be\s+)?(?:sue|sued|enforce)",
    r"(?:will\s+)?not\s+sue\s+(?:you\s+)?(?:for|on)\s+(?:this|it)",
    r"debt\s+(?:is\s+)?(?:beyond|past|outside)\s+(?:the\s+)?(?:legal|statute)",
    r"cannot\s+(?:legally\s+)?sue",
    r"legal\s+time\s+(?:limit|period)\s+(?:has\s+)?(?:expired|passed)",
)

REVIVAL_WARNING_PATTERNS = compile_patterns(
    r"(?:paying|payment|promise)\s+(?:may|could|will)\s+(?:restart|revive|renew)",
    r"(?:may\s+)?become\s+enforceable(?:\s+again)?",
    r"reset\s+(?:the\s+)?(?:clock|limitation)",
)

DEFAULT_TIME_BARRED_DISCLOSURE = (
    "The law limits how long you can be sued on a debt. "
    "Because of the age of your debt, we will not sue you for it."
)


def _has_state_wording(content: str, state: str) -> bool:
    rule = get_state_rule(state)
    if rule is None or not rule.additional_disclosures:
        return True
    lowered = content.lower()
    for disclosure in rule.additional_disclosures:
        phrases = [p.strip() for p in disclosure.lower().replace(";", ".").replace(",", ".").split(".")]
        if any(len(p) > 10 and p in lowered for p in phrases):
            return True
    return False


def check_time_barred(content: str, context: ValidationContext, as_of: date) -> RuleOutcome:
    state = context.state
    sol = get_statute_of_limitations(state)

    if not any_match(TIME_BARRED_PATTERNS, content):
        rule = get_state_rule(state)
        if rule and rule.additional_disclosures:
            suggestion = f'Add {state}-required disclosure: "{rule.additional_disclosures[0]}"'
        else:
            suggestion = f'Add disclosure: "{DEFAULT_TIME_BARRED_DISCLOSURE}"'
        return RuleOutcome(
            False,
            f"Missing required time-barred debt disclosure for {state} (SOL: {sol} years)",
            suggestion=suggestion,
        )

    details = f"Time-barred debt disclosure present for {state}"
    if not any_match(REVIVAL_WARNING_PATTERNS, content):
        details += " (consider adding revival warning)"
    if not _has_state_wording(content, state):
        details += f" ({state} may require specific language)"
    return RuleOutcome(True, details)
