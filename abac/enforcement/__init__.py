"""
ABAC Enforcement - Public API
=============================
"""

from abac.enforcement.enforcer import AuthorizationEnforcer, BoundEnforcer, RequestScope
from abac.enforcement.policy_engine import (
    InMemoryPolicyEngine,
    PolicyEngine,
    PolicyTuple,
    RoleAssignment,
)
from abac.enforcement.result import (
    AuthorizationDiagnostics,
    AuthorizationResult,
    DecisionStage,
)

__all__ = [
    "AuthorizationDiagnostics",
    "AuthorizationEnforcer",
    "AuthorizationResult",
    "BoundEnforcer",
    "DecisionStage",
    "InMemoryPolicyEngine",
    "PolicyEngine",
    "PolicyTuple",
    "RequestScope",
    "RoleAssignment",
]
