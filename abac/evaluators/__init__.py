"""
ABAC Evaluators - Public API
============================
"""

from abac.evaluators.contracts import CustomEvaluator
from abac.evaluators.registry import WorkstreamEvaluatorRegistry
from abac.evaluators.result import EvaluationResult

__all__ = [
    "CustomEvaluator",
    "EvaluationResult",
    "WorkstreamEvaluatorRegistry",
]
