"""
ABAC Evaluators - Evaluation Result
===================================
Definitive answer from a custom evaluator. Abstaining is expressed by
returning None, never by a result object.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class EvaluationResult:
    """
    Fields:
        allowed:  definitive decision.
        reason:   internal explanation (logs, diagnostics).
        message:  caller-facing text; falls back to reason when empty.
    """

    allowed: bool
    reason: str | None = None
    message: str | None = None

    def __post_init__(self):
        if not isinstance(self.allowed, bool):
            raise ValueError("allowed must be a bool.")
        if not self.allowed and not (self.reason or self.message):
            raise ValueError("deny result must carry a reason or message.")

    @property
    def display_reason(self) -> str | None:
        return self.message or self.reason

    @classmethod
    def allow(cls, reason: str | None = None) -> "EvaluationResult":
        return cls(allowed=True, reason=reason)

    @classmethod
    def deny(cls, reason: str, message: str | None = None) -> "EvaluationResult":
        return cls(allowed=False, reason=reason, message=message)
