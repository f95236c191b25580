"""
Letter Rule Evaluators

Evaluators are registered by rule id. A rule set names which ids it uses;
adding a rule means adding an evaluator here and a definition to a new rule
set version.
"""
from typing import Dict

from .base import RuleEvaluator, RuleOutcome
from .creditor_identification import check_creditor_identification
from .debt_amount import check_debt_amount
from .dispute_rights import check_dispute_rights
from .mini_miranda import check_mini_miranda
from .original_creditor import check_original_creditor
from .time_barred import check_time_barred
from .validation_notice import check_validation_notice

RULE_EVALUATORS: Dict[str, RuleEvaluator] = {
    "validation_notice": check_validation_notice,
    "mini_miranda": check_mini_miranda,
    "creditor_identification": check_creditor_identification,
    "debt_amount": check_debt_amount,
    "dispute_rights": check_dispute_rights,
    "time_barred_disclosure": check_time_barred,
    "original_creditor": check_original_creditor,
}

__all__ = ["RULE_EVALUATORS", "RuleEvaluator", "RuleOutcome"]
