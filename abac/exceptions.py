"""
ABAC - Exceptions
=================
Structured errors for the decision engine.

These are engine errors, NOT denials.
Denials flow through AuthorizationResult; only ensure_authorized()
turns one into AccessDeniedError.
"""

from __future__ import annotations


class AbacError(Exception):
    """Base error for ABAC engine operations."""
    pass


# ══════════════════════════════════════════════════════════════
# COLLABORATOR FAILURES (surface to the caller)
# ══════════════════════════════════════════════════════════════

class CollaboratorError(AbacError):
    """A required collaborator could not answer; no safe default exists."""

    def __init__(self, collaborator: str, detail: str, cause: Exception | None = None):
        self.collaborator = collaborator
        self.detail = detail
        self.cause = cause
        message = f"{collaborator} failed: {detail}"
        if cause is not None:
            message = f"{message} ({type(cause).__name__}: {cause})"
        super().__init__(message)


class AttributeStoreError(CollaboratorError):
    def __init__(self, detail: str, cause: Exception | None = None):
        super().__init__("AttributeStore", detail, cause)


class RuleRepositoryError(CollaboratorError):
    def __init__(self, detail: str, cause: Exception | None = None):
        super().__init__("RuleRepository", detail, cause)


class PolicyEngineUnavailable(CollaboratorError):
    def __init__(self, detail: str, cause: Exception | None = None):
        super().__init__("PolicyEngine", detail, cause)


# ══════════════════════════════════════════════════════════════
# DENIAL (raised only by ensure_authorized)
# ══════════════════════════════════════════════════════════════

class AccessDeniedError(AbacError):
    """Negative authorization result converted to an exception."""

    def __init__(
        self,
        reason: str | None,
        resource: str | None = None,
        action: str | None = None,
    ):
        self.resource = resource
        self.action = action
        if not reason:
            reason = f"Access denied to {action} on {resource}"
        self.reason = reason
        super().__init__(reason)


# ══════════════════════════════════════════════════════════════
# CONFIGURATION / REGISTRATION
# ══════════════════════════════════════════════════════════════

class RuleConfigurationError(AbacError):
    """Rule configuration payload is malformed or names an unknown type."""

    def __init__(self, rule_id: str, detail: str):
        self.rule_id = rule_id
        self.detail = detail
        super().__init__(f"Rule '{rule_id}' has invalid configuration: {detail}")


class RuleGroupCycleError(RuleRepositoryError):
    """Parent/child relation of rule groups contains a cycle."""

    def __init__(self, workstream_id: str, group_ids: tuple[str, ...]):
        self.workstream_id = workstream_id
        self.group_ids = group_ids
        super().__init__(
            f"rule groups {list(group_ids)} in workstream '{workstream_id}' form a cycle"
        )


class DuplicateEvaluatorError(AbacError):
    def __init__(self, workstream_id: str, evaluator_name: str):
        self.workstream_id = workstream_id
        self.evaluator_name = evaluator_name
        super().__init__(
            f"Evaluator '{evaluator_name}' is already registered "
            f"for workstream '{workstream_id}'."
        )


class RegistryLockedError(AbacError):
    """Evaluator registry is locked; no modifications allowed."""

    def __init__(self):
        super().__init__(
            "Evaluator registry is locked after bootstrap. "
            "No dynamic evaluator registration allowed."
        )
