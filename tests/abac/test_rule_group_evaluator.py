from __future__ import annotations

from datetime import datetime, timezone

import pytest

from abac.context.evaluation_context import EvaluationContext
from abac.rules.evaluator import RuleGroupEvaluator
from abac.rules.models import LogicalOperator, RuleGroup, RuleLeaf, RuleType
from abac.rules.result import RuleEvaluation

WORKSTREAM = "loans"
FIXED_TIME = datetime(2026, 2, 13, 12, 0, 0, tzinfo=timezone.utc)

CONTEXT = EvaluationContext(
    subject_id="alice",
    workstream_id=WORKSTREAM,
    resource="Loan",
    action="approve",
    request_time=FIXED_TIME,
)


class SpyLeafEvaluator:
    """
    Leaf outcome is encoded in the rule configuration as
    {"result": true|false}; every invocation is recorded.
    """

    def __init__(self):
        self.invoked: list[str] = []

    def __call__(self, rule: RuleLeaf, context: EvaluationContext) -> RuleEvaluation:
        self.invoked.append(rule.name)
        passed = '"result": true' in rule.configuration
        return RuleEvaluation(
            rule_id=rule.rule_id,
            rule_name=rule.name,
            rule_type=rule.rule_type,
            passed=passed,
            reason=None if passed else (rule.failure_message or f"{rule.name} failed"),
        )


def _leaf(name: str, result: bool, priority: int = 0, is_active: bool = True, failure_message=None) -> RuleLeaf:
    return RuleLeaf(
        rule_id=f"rule-{name}",
        workstream_id=WORKSTREAM,
        name=name,
        rule_type=RuleType.ATTRIBUTE_VALUE,
        configuration={"result": result},
        priority=priority,
        is_active=is_active,
        failure_message=failure_message,
    )


def _group(name: str, operator: str, rules=(), child_groups=(), priority=0, is_active=True, description=None) -> RuleGroup:
    return RuleGroup(
        group_id=f"group-{name}",
        workstream_id=WORKSTREAM,
        name=name,
        logical_operator=operator,
        rules=tuple(rules),
        child_groups=tuple(child_groups),
        priority=priority,
        is_active=is_active,
        description=description,
    )


@pytest.fixture
def spy() -> SpyLeafEvaluator:
    return SpyLeafEvaluator()


@pytest.fixture
def evaluator(spy) -> RuleGroupEvaluator:
    return RuleGroupEvaluator(leaf_evaluator=spy)


class TestAnd:
    def test_short_circuits_on_first_false(self, evaluator, spy):
        group = _group(
            "and",
            LogicalOperator.AND,
            rules=[
                _leaf("first", True, priority=1),
                _leaf("second", False, priority=2, failure_message="second says no"),
                _leaf("third", True, priority=3),
            ],
        )
        outcome = evaluator.evaluate(group, CONTEXT)
        assert outcome.allowed is False
        assert outcome.reason == "second says no"
        assert spy.invoked == ["first", "second"]
        assert [e.rule_name for e in outcome.evaluations] == ["first", "second"]

    def test_all_true_allows(self, evaluator):
        group = _group("and", LogicalOperator.AND, rules=[_leaf("a", True), _leaf("b", True)])
        outcome = evaluator.evaluate(group, CONTEXT)
        assert outcome.allowed is True
        assert outcome.reason is None


class TestOr:
    def test_short_circuits_on_first_true(self, evaluator, spy):
        group = _group(
            "or",
            LogicalOperator.OR,
            rules=[
                _leaf("first", False, priority=1),
                _leaf("second", True, priority=2),
                _leaf("third", False, priority=3),
            ],
        )
        assert evaluator.evaluate(group, CONTEXT).allowed is True
        assert spy.invoked == ["first", "second"]

    def test_all_false_reports_first_failure(self, evaluator):
        group = _group(
            "or",
            LogicalOperator.OR,
            rules=[
                _leaf("a", False, priority=1, failure_message="a failed"),
                _leaf("b", False, priority=2, failure_message="b failed"),
            ],
        )
        outcome = evaluator.evaluate(group, CONTEXT)
        assert outcome.allowed is False
        assert outcome.reason == "a failed"

    def test_group_description_used_as_denial_reason(self, evaluator):
        group = _group(
            "or",
            LogicalOperator.OR,
            rules=[_leaf("a", False)],
            description="Requires manager or senior analyst",
        )
        assert evaluator.evaluate(group, CONTEXT).reason == "Requires manager or senior analyst"


class TestInactiveAndEmpty:
    def test_inactive_false_rule_is_ignored(self, evaluator, spy):
        group = _group(
            "and",
            LogicalOperator.AND,
            rules=[_leaf("disabled", False, is_active=False), _leaf("enabled", True)],
        )
        assert evaluator.evaluate(group, CONTEXT).allowed is True
        assert spy.invoked == ["enabled"]

    def test_inactive_subgroup_is_ignored(self, evaluator):
        disabled = _group("disabled", LogicalOperator.AND, rules=[_leaf("x", False)], is_active=False)
        group = _group("or", LogicalOperator.OR, rules=[_leaf("y", True)], child_groups=[disabled])
        assert evaluator.evaluate(group, CONTEXT).allowed is True

    def test_empty_and_is_true(self, evaluator):
        assert evaluator.evaluate(_group("empty", LogicalOperator.AND), CONTEXT).allowed is True

    def test_empty_or_is_false_with_reason(self, evaluator):
        outcome = evaluator.evaluate(_group("empty", LogicalOperator.OR), CONTEXT)
        assert outcome.allowed is False
        assert "empty" in outcome.reason

    def test_or_with_only_inactive_children_is_false(self, evaluator):
        group = _group("or", LogicalOperator.OR, rules=[_leaf("x", True, is_active=False)])
        assert evaluator.evaluate(group, CONTEXT).allowed is False


class TestNesting:
    def test_nested_groups_and_leaves_interleave_by_priority(self, evaluator, spy):
        inner = _group(
            "inner",
            LogicalOperator.OR,
            rules=[_leaf("inner-a", False), _leaf("inner-b", True, priority=1)],
            priority=2,
        )
        outer = _group(
            "outer",
            LogicalOperator.AND,
            rules=[_leaf("outer-late", True, priority=3), _leaf("outer-early", True, priority=1)],
            child_groups=[inner],
        )
        assert evaluator.evaluate(outer, CONTEXT).allowed is True
        assert spy.invoked == ["outer-early", "inner-a", "inner-b", "outer-late"]

    def test_nested_denial_propagates_leaf_reason(self, evaluator, spy):
        inner = _group(
            "inner",
            LogicalOperator.AND,
            rules=[_leaf("limit", False, failure_message="Over limit")],
            priority=1,
        )
        outer = _group(
            "outer",
            LogicalOperator.AND,
            child_groups=[inner],
            rules=[_leaf("after", True, priority=5)],
        )
        outcome = evaluator.evaluate(outer, CONTEXT)
        assert outcome.allowed is False
        assert outcome.reason == "Over limit"
        assert "after" not in spy.invoked

    def test_rules_run_before_groups_on_equal_priority(self, evaluator, spy):
        inner = _group("inner", LogicalOperator.AND, rules=[_leaf("in-group", True)])
        outer = _group("outer", LogicalOperator.AND, rules=[_leaf("leaf", True)], child_groups=[inner])
        evaluator.evaluate(outer, CONTEXT)
        assert spy.invoked == ["leaf", "in-group"]


class TestDefaultLeafEvaluator:
    def test_real_predicates_inside_group(self):
        context = EvaluationContext(
            subject_id="alice",
            workstream_id=WORKSTREAM,
            resource="Loan",
            action="approve",
            request_time=FIXED_TIME,
            attributes={"Region": "EU"},
        )
        rule = RuleLeaf(
            rule_id="r1",
            workstream_id=WORKSTREAM,
            name="region",
            rule_type=RuleType.ATTRIBUTE_VALUE,
            configuration={"attribute": "Region", "value": "US"},
            failure_message="Wrong region",
        )
        outcome = RuleGroupEvaluator().evaluate(_group("g", LogicalOperator.AND, rules=[rule]), context)
        assert outcome.allowed is False
        assert outcome.reason == "Wrong region"


class TestModels:
    def test_unknown_logical_operator_rejected(self):
        with pytest.raises(ValueError, match="logical_operator"):
            _group("bad", "XOR")

    def test_operator_normalized(self):
        assert _group("g", "or").logical_operator == LogicalOperator.OR

    def test_mapping_configuration_is_frozen_as_json(self):
        leaf = _leaf("x", True)
        assert isinstance(leaf.configuration, str)
        assert '"result": true' in leaf.configuration

    def test_binding_wildcards(self):
        group = RuleGroup(group_id="g", workstream_id=WORKSTREAM, name="g", resource="Loan")
        assert group.binds("loan", "approve")
        assert group.binds("Loan", "delete")
        assert not group.binds("Payment", "approve")
