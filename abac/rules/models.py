"""
ABAC Rules - Data Models
========================
RuleLeaf: one typed authorization predicate.
RuleGroup: AND/OR combinator over rule leaves and nested groups.

Both are frozen. Repositories hand out fully assembled trees; the
evaluator never fetches children on its own.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Mapping, Union


class RuleType:
    ATTRIBUTE_COMPARISON = "AttributeComparison"
    PROPERTY_MATCH = "PropertyMatch"
    VALUE_RANGE = "ValueRange"
    TIME_RESTRICTION = "TimeRestriction"
    LOCATION_RESTRICTION = "LocationRestriction"
    ATTRIBUTE_VALUE = "AttributeValue"

    ALL = frozenset({
        "AttributeComparison",
        "PropertyMatch",
        "ValueRange",
        "TimeRestriction",
        "LocationRestriction",
        "AttributeValue",
    })


class LogicalOperator:
    AND = "AND"
    OR = "OR"

    ALL = frozenset({"AND", "OR"})


def _require_text(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{field_name} must be a non-empty string.")
    return value.strip()


def _optional_text(value: Any, field_name: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"{field_name} must be a string or None.")
    value = value.strip()
    return value or None


def _require_priority(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError("priority must be an int.")
    return value


# ══════════════════════════════════════════════════════════════
# RULE LEAF
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RuleLeaf:
    """
    ``configuration`` is kept as JSON text. Mappings are serialized on
    construction so the leaf stays immutable; parsing into a typed
    config happens at evaluation time, where errors fail closed.
    ``rule_type`` is not restricted here: an unknown type is a
    configuration error reported by the evaluator.
    """

    rule_id: str
    workstream_id: str
    name: str
    rule_type: str
    configuration: Union[str, Mapping[str, Any]] = "{}"
    group_id: str | None = None
    is_active: bool = True
    priority: int = 0
    failure_message: str | None = None

    def __post_init__(self):
        object.__setattr__(self, "rule_id", _require_text(self.rule_id, "rule_id"))
        object.__setattr__(self, "workstream_id", _require_text(self.workstream_id, "workstream_id"))
        object.__setattr__(self, "name", _require_text(self.name, "name"))
        object.__setattr__(self, "rule_type", _require_text(self.rule_type, "rule_type"))
        object.__setattr__(self, "group_id", _optional_text(self.group_id, "group_id"))
        object.__setattr__(self, "failure_message", _optional_text(self.failure_message, "failure_message"))
        object.__setattr__(self, "priority", _require_priority(self.priority))

        if not isinstance(self.is_active, bool):
            raise ValueError("is_active must be a bool.")

        if isinstance(self.configuration, Mapping):
            object.__setattr__(
                self,
                "configuration",
                json.dumps(dict(self.configuration), sort_keys=True, default=str),
            )
        elif not isinstance(self.configuration, str):
            raise ValueError("configuration must be JSON text or a mapping.")

    def sort_key(self) -> tuple:
        return (self.priority, 0, self.name, self.rule_id)


# ══════════════════════════════════════════════════════════════
# RULE GROUP
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RuleGroup:
    group_id: str
    workstream_id: str
    name: str
    logical_operator: str = LogicalOperator.AND
    parent_group_id: str | None = None
    resource: str | None = None
    action: str | None = None
    is_active: bool = True
    priority: int = 0
    description: str | None = None
    child_groups: tuple["RuleGroup", ...] = ()
    rules: tuple[RuleLeaf, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "group_id", _require_text(self.group_id, "group_id"))
        object.__setattr__(self, "workstream_id", _require_text(self.workstream_id, "workstream_id"))
        object.__setattr__(self, "name", _require_text(self.name, "name"))
        object.__setattr__(self, "parent_group_id", _optional_text(self.parent_group_id, "parent_group_id"))
        object.__setattr__(self, "resource", _optional_text(self.resource, "resource"))
        object.__setattr__(self, "action", _optional_text(self.action, "action"))
        object.__setattr__(self, "description", _optional_text(self.description, "description"))
        object.__setattr__(self, "priority", _require_priority(self.priority))

        if not isinstance(self.is_active, bool):
            raise ValueError("is_active must be a bool.")

        operator = self.logical_operator
        if not isinstance(operator, str) or operator.strip().upper() not in LogicalOperator.ALL:
            raise ValueError(
                f"logical_operator '{operator}' not valid. "
                f"Must be one of: {sorted(LogicalOperator.ALL)}"
            )
        object.__setattr__(self, "logical_operator", operator.strip().upper())

        child_groups = tuple(self.child_groups)
        for child in child_groups:
            if not isinstance(child, RuleGroup):
                raise ValueError("child_groups entries must be RuleGroup instances.")
        rules = tuple(self.rules)
        for rule in rules:
            if not isinstance(rule, RuleLeaf):
                raise ValueError("rules entries must be RuleLeaf instances.")
        object.__setattr__(self, "child_groups", child_groups)
        object.__setattr__(self, "rules", rules)

    def sort_key(self) -> tuple:
        return (self.priority, 1, self.name, self.group_id)

    def binds(self, resource: str, action: str) -> bool:
        """A null resource or action on the group matches anything."""
        if self.resource is not None and self.resource.casefold() != resource.strip().casefold():
            return False
        if self.action is not None and self.action.casefold() != action.strip().casefold():
            return False
        return True

    def ordered_children(self) -> tuple[Union[RuleLeaf, "RuleGroup"], ...]:
        """
        Rules and sub-groups in evaluation order: ascending priority,
        rules before groups on equal priority, then name, then id.
        """
        children: list[Union[RuleLeaf, RuleGroup]] = [*self.rules, *self.child_groups]
        return tuple(sorted(children, key=lambda child: child.sort_key()))
