"""
Letter Compliance Validator

Evaluates letter text against a versioned rule set.

Key behaviors:
- Compliant iff every effectively required rule passes, independent of score
- Score = round(required_pass_ratio * 80 + optional_pass_ratio * 20), where a
  group with no members counts as fully passed
- Non-applicable conditional rules are recorded as passed, required=False
- Per-state additional requirements are warnings and never affect the score
"""
import logging
from typing import Any, Dict, List, Mapping, Optional, Union

from pydantic import ValidationError

from ...errors import ComplianceValidationError
from ...models.compliance import (
    ComplianceCheckResult,
    LetterValidationResult,
    RuleRequirement,
    ValidationContext,
)
from .clock import ClockSource
from .rule_sets import DEFAULT_RULE_SET, RuleDefinition, RuleSet
from .rules import RULE_EVALUATORS, RuleEvaluator
from .state_rules import get_state_rule

logger = logging.getLogger(__name__)

REQUIRED_WEIGHT = 80
OPTIONAL_WEIGHT = 20


def coerce_context(context: Union[ValidationContext, Mapping[str, Any]]) -> ValidationContext:
    """Accept a ValidationContext or its dict form; reject malformed input."""
    if isinstance(context, ValidationContext):
        return context
    try:
        return ValidationContext.model_validate(context)
    except ValidationError as e:
        raise ComplianceValidationError(f"Invalid validation context: {e}") from e


class LetterComplianceValidator:
    def __init__(
        self,
        clock: ClockSource,
        rule_set: RuleSet = DEFAULT_RULE_SET,
        evaluators: Optional[Dict[str, RuleEvaluator]] = None,
    ):
        self.clock = clock
        self.rule_set = rule_set
        self.evaluators = evaluators if evaluators is not None else RULE_EVALUATORS

    def _evaluate(self, rule: RuleDefinition, content: str, context: ValidationContext, as_of) -> Optional[ComplianceCheckResult]:
        evaluator = self.evaluators.get(rule.id)
        if evaluator is None:
            logger.warning(f"No evaluator registered for rule '{rule.id}' in {self.rule_set.version}")
            return None

        if not rule.is_applicable(context, as_of):
            return ComplianceCheckResult(
                id=rule.id,
                section=rule.section,
                name=rule.name,
                passed=True,
                required=False,
                details=rule.not_applicable_details,
                requirement=rule.requirement,
            )

        outcome = evaluator(content, context, as_of)
        return ComplianceCheckResult(
            id=rule.id,
            section=rule.section,
            name=rule.name,
            passed=outcome.passed,
            required=rule.requirement != RuleRequirement.OPTIONAL,
            details=outcome.details,
            requirement=rule.requirement,
            suggestion=None if outcome.passed else outcome.suggestion,
            matched_text=outcome.matched_text,
        )

    @staticmethod
    def _check_content(content: str) -> str:
        if not isinstance(content, str):
            raise ComplianceValidationError("Letter content must be a string")
        return content

    def validate(self, content: str, context: Union[ValidationContext, Mapping[str, Any]]) -> LetterValidationResult:
        content = self._check_content(content)
        context = coerce_context(context)
        now = self.clock.now()
        as_of = now.date()

        checks: List[ComplianceCheckResult] = []
        missing_requirements: List[str] = []
        warnings: List[str] = []
        suggestions: List[str] = []

        for rule in self.rule_set.rules:
            result = self._evaluate(rule, content, context, as_of)
            if result is None:
                continue
            checks.append(result)

            if not result.passed:
                if result.required:
                    missing_requirements.append(result.id)
                else:
                    warnings.append(f"{result.name}: {result.details}")
                if result.suggestion:
                    suggestions.append(result.suggestion)

        state_rule = get_state_rule(context.state)
        if state_rule is not None:
            for requirement in state_rule.additional_requirements:
                warnings.append(f"State requirement: {requirement}")

        required_checks = [c for c in checks if c.required]
        optional_checks = [c for c in checks if not c.required]
        required_ratio = (
            sum(c.passed for c in required_checks) / len(required_checks) if required_checks else 1.0
        )
        optional_ratio = (
            sum(c.passed for c in optional_checks) / len(optional_checks) if optional_checks else 1.0
        )
        score = round(required_ratio * REQUIRED_WEIGHT + optional_ratio * OPTIONAL_WEIGHT)

        is_compliant = not missing_requirements
        if not is_compliant:
            logger.info(f"Letter failed {len(missing_requirements)} required rule(s): {missing_requirements}")

        return LetterValidationResult(
            is_compliant=is_compliant,
            score=score,
            checks=checks,
            missing_requirements=missing_requirements,
            warnings=warnings,
            suggestions=suggestions,
            rule_set_version=self.rule_set.version,
            validated_at=now,
        )

    def quick_validate(self, content: str, context: Union[ValidationContext, Mapping[str, Any]]) -> bool:
        """Pass/fail only; stops at the first failing required rule."""
        content = self._check_content(content)
        context = coerce_context(context)
        as_of = self.clock.now().date()

        for rule in self.rule_set.rules:
            if rule.requirement == RuleRequirement.OPTIONAL:
                continue
            if not rule.is_applicable(context, as_of):
                continue
            evaluator = self.evaluators.get(rule.id)
            if evaluator is None:
                continue
            if not evaluator(content, context, as_of).passed:
                return False
        return True

    def available_rules(self) -> List[Dict[str, Any]]:
        return [rule.to_dict() for rule in self.rule_set.rules]
