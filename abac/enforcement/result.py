"""
ABAC Enforcement - Decision Models
==================================
AuthorizationResult: final allow/deny with reason.
AuthorizationDiagnostics: full explanation of one decision.

Pure data structures. No side effects.
"""

from __future__ import annotations

from dataclasses import dataclass

from abac.evaluators.result import EvaluationResult
from abac.rules.result import GroupOutcome, RuleEvaluation


class DecisionStage:
    RBAC = "RBAC"
    RULE_GROUP = "RULE_GROUP"
    CUSTOM_EVALUATOR = "CUSTOM_EVALUATOR"

    ALL = frozenset({"RBAC", "RULE_GROUP", "CUSTOM_EVALUATOR"})


# ══════════════════════════════════════════════════════════════
# AUTHORIZATION RESULT
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class AuthorizationResult:
    """
    Fields:
        allowed:  final decision.
        reason:   human-readable denial reason (None when allowed).
        stage:    stage that produced a denial, or CUSTOM_EVALUATOR when
                  a custom evaluator explicitly allowed.
    """

    allowed: bool
    reason: str | None = None
    stage: str | None = None

    def __post_init__(self):
        if not isinstance(self.allowed, bool):
            raise ValueError("allowed must be a bool.")
        if not self.allowed and (not isinstance(self.reason, str) or not self.reason):
            raise ValueError("denied result must carry a non-empty reason.")
        if self.stage is not None and self.stage not in DecisionStage.ALL:
            raise ValueError(
                f"stage '{self.stage}' not valid. "
                f"Must be one of: {sorted(DecisionStage.ALL)}"
            )

    @classmethod
    def success(cls, stage: str | None = None) -> "AuthorizationResult":
        return cls(allowed=True, stage=stage)

    @classmethod
    def failure(cls, reason: str, stage: str) -> "AuthorizationResult":
        return cls(allowed=False, reason=reason, stage=stage)

    def to_dict(self) -> dict:
        return {"allowed": self.allowed, "reason": self.reason, "stage": self.stage}


# ══════════════════════════════════════════════════════════════
# DIAGNOSTICS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class AuthorizationDiagnostics:
    """
    Explanation of one decision. Unlike check(), every stage and every
    bound group is evaluated so the whole picture is visible; ``result``
    is still the decision check() would return.
    """

    result: AuthorizationResult
    subject_id: str
    workstream_id: str
    resource: str
    action: str
    rbac_allowed: bool
    group_outcomes: tuple[GroupOutcome, ...] = ()
    custom_result: EvaluationResult | None = None
    missing_attributes: tuple[str, ...] = ()
    suggestions: tuple[str, ...] = ()

    @property
    def evaluated_rules(self) -> tuple[RuleEvaluation, ...]:
        return tuple(
            evaluation
            for outcome in self.group_outcomes
            for evaluation in outcome.evaluations
        )

    def to_payload(self) -> dict:
        custom = None
        if self.custom_result is not None:
            custom = {
                "allowed": self.custom_result.allowed,
                "reason": self.custom_result.reason,
                "message": self.custom_result.message,
            }
        return {
            "result": self.result.to_dict(),
            "subject_id": self.subject_id,
            "workstream_id": self.workstream_id,
            "resource": self.resource,
            "action": self.action,
            "rbac_allowed": self.rbac_allowed,
            "matched_groups": [outcome.to_dict() for outcome in self.group_outcomes],
            "custom_result": custom,
            "missing_attributes": list(self.missing_attributes),
            "suggestions": list(self.suggestions),
        }
