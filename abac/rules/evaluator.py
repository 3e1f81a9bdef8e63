"""
ABAC Rules - Rule Group Evaluator
=================================
Recursive AND/OR evaluation of a rule group tree against one
EvaluationContext.

Rules:
- Children (rules and sub-groups together) run in ascending priority.
- Inactive children are skipped as if absent.
- AND stops at the first failing child; OR stops at the first passing one.
- A group with no active children yields the operator identity
  (AND -> allow, OR -> deny).
- A leaf never raises: bad configuration and unexpected predicate
  errors fail the leaf and are logged.

Evaluation is pure computation over the given tree and context.
"""

from __future__ import annotations

import logging
from typing import Callable, Union

from abac.context.evaluation_context import EvaluationContext
from abac.exceptions import RuleConfigurationError
from abac.rules.config import parse_rule_config
from abac.rules.models import LogicalOperator, RuleGroup, RuleLeaf
from abac.rules.predicates import evaluate_predicate
from abac.rules.result import GroupOutcome, RuleEvaluation

logger = logging.getLogger("abac.rules")

LeafEvaluator = Callable[[RuleLeaf, EvaluationContext], RuleEvaluation]


def generic_rule_reason(rule: RuleLeaf) -> str:
    return f"Rule '{rule.name}' denied access"


def evaluate_rule_leaf(rule: RuleLeaf, context: EvaluationContext) -> RuleEvaluation:
    try:
        config = parse_rule_config(rule)
    except RuleConfigurationError as exc:
        logger.warning(
            f"rule '{rule.rule_id}' ({rule.name}) in workstream "
            f"'{rule.workstream_id}' failed closed: {exc.detail}"
        )
        return RuleEvaluation(
            rule_id=rule.rule_id,
            rule_name=rule.name,
            rule_type=rule.rule_type,
            passed=False,
            reason=rule.failure_message or generic_rule_reason(rule),
            detail=f"configuration error: {exc.detail}",
            configuration_error=True,
        )

    try:
        result = evaluate_predicate(config, context)
    except Exception as exc:
        logger.error(
            f"rule '{rule.rule_id}' ({rule.name}) in workstream "
            f"'{rule.workstream_id}' raised during evaluation; failed closed",
            exc_info=True,
        )
        return RuleEvaluation(
            rule_id=rule.rule_id,
            rule_name=rule.name,
            rule_type=rule.rule_type,
            passed=False,
            reason=rule.failure_message or generic_rule_reason(rule),
            detail=f"evaluation error: {type(exc).__name__}",
        )

    reason = None
    if not result.passed:
        reason = rule.failure_message or result.message or generic_rule_reason(rule)
    return RuleEvaluation(
        rule_id=rule.rule_id,
        rule_name=rule.name,
        rule_type=rule.rule_type,
        passed=result.passed,
        reason=reason,
        detail=result.detail,
        missing=result.missing,
    )


class RuleGroupEvaluator:
    """
    Usage:
        evaluator = RuleGroupEvaluator()
        outcome = evaluator.evaluate(group, context)
        if not outcome.allowed:
            print(outcome.reason)
    """

    def __init__(self, leaf_evaluator: LeafEvaluator | None = None):
        self._evaluate_leaf = leaf_evaluator or evaluate_rule_leaf

    def evaluate(self, group: RuleGroup, context: EvaluationContext) -> GroupOutcome:
        trail: list[RuleEvaluation] = []
        allowed, reason = self._evaluate_group(group, context, trail)
        if not allowed:
            logger.debug(
                f"rule group '{group.name}' denied subject={context.subject_id} "
                f"resource={context.resource} action={context.action}: {reason}"
            )
        return GroupOutcome(
            group_id=group.group_id,
            group_name=group.name,
            allowed=allowed,
            reason=reason,
            evaluations=tuple(trail),
        )

    def _evaluate_group(
        self,
        group: RuleGroup,
        context: EvaluationContext,
        trail: list[RuleEvaluation],
    ) -> tuple[bool, str | None]:
        children = [child for child in group.ordered_children() if child.is_active]

        if group.logical_operator == LogicalOperator.AND:
            for child in children:
                passed, reason = self._evaluate_child(child, context, trail)
                if not passed:
                    return False, reason
            return True, None

        first_failure: str | None = None
        for child in children:
            passed, reason = self._evaluate_child(child, context, trail)
            if passed:
                return True, None
            if first_failure is None:
                first_failure = reason
        return False, (
            group.description
            or first_failure
            or f"No rule in group '{group.name}' matched"
        )

    def _evaluate_child(
        self,
        child: Union[RuleLeaf, RuleGroup],
        context: EvaluationContext,
        trail: list[RuleEvaluation],
    ) -> tuple[bool, str | None]:
        if isinstance(child, RuleGroup):
            return self._evaluate_group(child, context, trail)
        evaluation = self._evaluate_leaf(child, context)
        trail.append(evaluation)
        if evaluation.passed:
            return True, None
        return False, evaluation.reason or generic_rule_reason(child)
