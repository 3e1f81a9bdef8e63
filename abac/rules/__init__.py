"""
ABAC Rules - Declarative Rule Groups
====================================
Closed set of typed rule leaves combined by nested AND/OR groups.
"""

from abac.rules.config import RuleConfig, parse_rule_config, referenced_attributes
from abac.rules.db_provider import DbRuleRepository
from abac.rules.evaluator import RuleGroupEvaluator, evaluate_rule_leaf
from abac.rules.models import LogicalOperator, RuleGroup, RuleLeaf, RuleType
from abac.rules.provider import InMemoryRuleRepository, RuleRepository
from abac.rules.result import GroupOutcome, RuleEvaluation

__all__ = [
    "DbRuleRepository",
    "GroupOutcome",
    "InMemoryRuleRepository",
    "LogicalOperator",
    "RuleConfig",
    "RuleEvaluation",
    "RuleGroup",
    "RuleGroupEvaluator",
    "RuleLeaf",
    "RuleRepository",
    "RuleType",
    "evaluate_rule_leaf",
    "parse_rule_config",
    "referenced_attributes",
]
