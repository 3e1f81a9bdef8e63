"""
ABAC Evaluators - Custom Evaluator Contract
===========================================
Base class for workstream-specific authorization logic that does not
fit the declarative rule model.

Every evaluator must:
- Declare the single workstream it serves (workstream_id)
- Be pure over the given context (no store lookups)
- Return EvaluationResult for a definitive answer, None to abstain

Contract is validated at class creation time.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from abac.context.evaluation_context import EvaluationContext
from abac.evaluators.result import EvaluationResult


class CustomEvaluator(ABC):
    workstream_id: str = ""

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)

        if getattr(cls, "__abstractmethods__", None):
            return

        if not cls.workstream_id or not isinstance(cls.workstream_id, str):
            raise TypeError(
                f"Evaluator class {cls.__name__} must declare "
                f"workstream_id as non-empty string."
            )

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    def evaluate(
        self,
        context: EvaluationContext,
        resource: str,
        action: str,
    ) -> EvaluationResult | None:
        ...

    # ══════════════════════════════════════════════════════════
    # CONVENIENCE BUILDERS (for subclasses)
    # ══════════════════════════════════════════════════════════

    def allow(self, reason: str | None = None) -> EvaluationResult:
        return EvaluationResult.allow(reason or f"{self.name} allowed")

    def deny(self, reason: str, message: str | None = None) -> EvaluationResult:
        return EvaluationResult.deny(reason, message)
