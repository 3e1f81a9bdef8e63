"""
ABAC Evaluators - Workstream Evaluator Registry
===============================================
Custom evaluators keyed by workstream, consulted in registration order.

Dispatch:
- First non-None result wins.
- No evaluators, or all abstain -> None ("no custom constraint").
- An evaluator that raises, or returns something other than an
  EvaluationResult, produces a deny. Fail closed.

Lock after bootstrap.
"""

from __future__ import annotations

import logging
from threading import Lock

from abac.context.evaluation_context import EvaluationContext
from abac.evaluators.contracts import CustomEvaluator
from abac.evaluators.result import EvaluationResult
from abac.exceptions import DuplicateEvaluatorError, RegistryLockedError

logger = logging.getLogger("abac.evaluators")

EVALUATOR_FAILURE_MESSAGE = "Authorization could not be completed"


class WorkstreamEvaluatorRegistry:
    """
    Usage:
        registry = WorkstreamEvaluatorRegistry()
        registry.register(LoansEvaluator())
        registry.lock()

        result = registry.evaluate("loans", context, "Loan", "approve")
    """

    def __init__(self):
        self._evaluators: dict[str, list[CustomEvaluator]] = {}
        self._locked: bool = False
        self._lock = Lock()

    # ══════════════════════════════════════════════════════════
    # REGISTRATION
    # ══════════════════════════════════════════════════════════

    def register(self, evaluator: CustomEvaluator) -> None:
        if not isinstance(evaluator, CustomEvaluator):
            raise TypeError(
                f"Expected CustomEvaluator instance, got {type(evaluator).__name__}."
            )
        with self._lock:
            if self._locked:
                raise RegistryLockedError()

            registered = self._evaluators.setdefault(evaluator.workstream_id, [])
            if any(type(existing) is type(evaluator) for existing in registered):
                raise DuplicateEvaluatorError(evaluator.workstream_id, evaluator.name)
            registered.append(evaluator)

        logger.info(
            f"Registered evaluator {evaluator.name} for workstream '{evaluator.workstream_id}'"
        )

    def lock(self) -> None:
        with self._lock:
            self._locked = True
        logger.info(
            f"Evaluator registry locked with {self.evaluator_count} evaluators "
            f"across {len(self._evaluators)} workstreams"
        )

    @property
    def is_locked(self) -> bool:
        return self._locked

    @property
    def evaluator_count(self) -> int:
        return sum(len(items) for items in self._evaluators.values())

    def get_evaluators(self, workstream_id: str) -> tuple[CustomEvaluator, ...]:
        return tuple(self._evaluators.get(workstream_id, ()))

    # ══════════════════════════════════════════════════════════
    # DISPATCH
    # ══════════════════════════════════════════════════════════

    def evaluate(
        self,
        workstream_id: str,
        context: EvaluationContext,
        resource: str,
        action: str,
    ) -> EvaluationResult | None:
        for evaluator in self.get_evaluators(workstream_id):
            try:
                result = evaluator.evaluate(context, resource, action)
            except Exception:
                logger.error(
                    f"evaluator {evaluator.name} raised for workstream "
                    f"'{workstream_id}' resource={resource} action={action}; denying",
                    exc_info=True,
                )
                return EvaluationResult.deny(
                    f"evaluator {evaluator.name} raised",
                    EVALUATOR_FAILURE_MESSAGE,
                )

            if result is None:
                continue
            if not isinstance(result, EvaluationResult):
                logger.error(
                    f"evaluator {evaluator.name} returned {type(result).__name__} "
                    f"instead of EvaluationResult; denying"
                )
                return EvaluationResult.deny(
                    f"evaluator {evaluator.name} returned an invalid result",
                    EVALUATOR_FAILURE_MESSAGE,
                )

            logger.debug(
                f"evaluator {evaluator.name} decided allowed={result.allowed} "
                f"for resource={resource} action={action}"
            )
            return result
        return None
