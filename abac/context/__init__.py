"""
ABAC Context - Public API
=========================
"""

from abac.context.builder import ContextBuilder
from abac.context.environment import EnvironmentContextProvider
from abac.context.evaluation_context import EvaluationContext
from abac.context.principal import Principal
from abac.context.resources import ResourceAttributeExtractor

__all__ = [
    "ContextBuilder",
    "EnvironmentContextProvider",
    "EvaluationContext",
    "Principal",
    "ResourceAttributeExtractor",
]
