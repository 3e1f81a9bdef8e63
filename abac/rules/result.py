"""
ABAC Rules - Result Models
==========================
RuleEvaluation: outcome of one rule leaf.
GroupOutcome: outcome of one bound rule group, with the trail of leaves
that were actually evaluated (short-circuited leaves are absent).

Pure data structures. No side effects.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RuleEvaluation:
    """
    Fields:
        reason:   caller-facing denial reason (None when passed).
        detail:   internal explanation with concrete values, for
                  diagnostics and logs only.
        missing:  attribute references the rule needed but the
                  context did not have.
    """

    rule_id: str
    rule_name: str
    rule_type: str
    passed: bool
    reason: str | None = None
    detail: str = ""
    missing: tuple[str, ...] = ()
    configuration_error: bool = False

    def to_dict(self) -> dict:
        return {
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "rule_type": self.rule_type,
            "passed": self.passed,
            "reason": self.reason,
            "detail": self.detail,
            "missing": list(self.missing),
            "configuration_error": self.configuration_error,
        }


@dataclass(frozen=True)
class GroupOutcome:
    group_id: str
    group_name: str
    allowed: bool
    reason: str | None = None
    evaluations: tuple[RuleEvaluation, ...] = ()

    def __post_init__(self):
        if not isinstance(self.allowed, bool):
            raise ValueError("allowed must be a bool.")
        if not self.allowed and not self.reason:
            raise ValueError("denied outcome must carry a reason.")

    def to_dict(self) -> dict:
        return {
            "group_id": self.group_id,
            "group_name": self.group_name,
            "allowed": self.allowed,
            "reason": self.reason,
            "evaluations": [e.to_dict() for e in self.evaluations],
        }
