"""
ABAC Enforcement - Authorization Enforcer
=========================================
Single entry point. Combines three stages into one decision:

    1. Build the evaluation context (all fetching happens here)
    2. RBAC: policy engine must allow the subject, or one of its groups
    3. Declarative: every bound rule group must allow
    4. Custom: registry result is final when present; abstain keeps 2-3

Strict AND, short-circuited on the first denial. Denials are results;
only collaborator failures raise from check().
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from abac.context.builder import ContextBuilder
from abac.context.evaluation_context import EvaluationContext
from abac.context.principal import Principal
from abac.enforcement.policy_engine import PolicyEngine
from abac.enforcement.result import (
    AuthorizationDiagnostics,
    AuthorizationResult,
    DecisionStage,
)
from abac.evaluators.registry import WorkstreamEvaluatorRegistry
from abac.evaluators.result import EvaluationResult
from abac.exceptions import (
    AbacError,
    AccessDeniedError,
    PolicyEngineUnavailable,
    RuleRepositoryError,
)
from abac.rules.evaluator import RuleGroupEvaluator
from abac.rules.models import RuleGroup
from abac.rules.provider import RuleRepository
from abac.rules.result import GroupOutcome

logger = logging.getLogger("abac.enforcement")


def rbac_denial_reason(context: EvaluationContext) -> str:
    return (
        f"User '{context.subject_id}' is not authorized to '{context.action}' "
        f"on '{context.resource}' in workstream '{context.workstream_id}'"
    )


@dataclass(frozen=True)
class RequestScope:
    """Who is asking, and where. Supplied by the request pipeline."""

    principal: Principal
    workstream_id: str
    client_address: str | None = None

    def __post_init__(self):
        if not isinstance(self.principal, Principal):
            raise ValueError("principal must be a Principal.")
        if not isinstance(self.workstream_id, str) or not self.workstream_id.strip():
            raise ValueError("workstream_id must be a non-empty string.")
        object.__setattr__(self, "workstream_id", self.workstream_id.strip())


class AuthorizationEnforcer:
    def __init__(
        self,
        context_builder: ContextBuilder,
        policy_engine: PolicyEngine,
        rule_repository: RuleRepository,
        evaluator_registry: WorkstreamEvaluatorRegistry | None = None,
        rule_evaluator: RuleGroupEvaluator | None = None,
    ):
        self._builder = context_builder
        self._policy_engine = policy_engine
        self._rules = rule_repository
        self._registry = evaluator_registry or WorkstreamEvaluatorRegistry()
        self._rule_evaluator = rule_evaluator or RuleGroupEvaluator()

    def bind(self, scope: RequestScope) -> "BoundEnforcer":
        return BoundEnforcer(self, scope)

    # ══════════════════════════════════════════════════════════
    # PUBLIC API
    # ══════════════════════════════════════════════════════════

    def check(
        self,
        scope: RequestScope,
        resource: str,
        action: str,
        entity: Any = None,
    ) -> AuthorizationResult:
        context = self._build(scope, resource, action, entity)
        return self._decide(context)

    def ensure_authorized(
        self,
        scope: RequestScope,
        resource: str,
        action: str,
        entity: Any = None,
    ) -> None:
        result = self.check(scope, resource, action, entity)
        if not result.allowed:
            raise AccessDeniedError(result.reason, resource=resource, action=action)

    def check_entity(self, scope: RequestScope, entity: Any, action: str) -> AuthorizationResult:
        """Resource name is the entity's class name."""
        if entity is None:
            raise ValueError("entity must not be None.")
        return self.check(scope, type(entity).__name__, action, entity)

    def check_many(
        self,
        scope: RequestScope,
        requests: Iterable[Sequence[Any]],
    ) -> tuple[AuthorizationResult, ...]:
        """
        Evaluate several (resource, action[, entity]) requests for one
        scope. Subject attributes are fetched once and reused.
        """
        subject_attributes = self._builder.load_subject_attributes(
            scope.principal, scope.workstream_id
        )
        results: list[AuthorizationResult] = []
        for request in requests:
            if len(request) == 2:
                resource, action = request
                entity = None
            elif len(request) == 3:
                resource, action, entity = request
            else:
                raise ValueError("each request must be (resource, action) or (resource, action, entity).")
            context = self._build(scope, resource, action, entity, subject_attributes)
            results.append(self._decide(context))
        return tuple(results)

    def explain(
        self,
        scope: RequestScope,
        resource: str,
        action: str,
        entity: Any = None,
    ) -> AuthorizationDiagnostics:
        context = self._build(scope, resource, action, entity)

        rbac_allowed = self._rbac_allows(context)
        outcomes = tuple(
            self._rule_evaluator.evaluate(group, context)
            for group in self._bound_groups(context)
        )
        custom = self._registry.evaluate(context.workstream_id, context, resource, action)

        if not rbac_allowed:
            result = AuthorizationResult.failure(rbac_denial_reason(context), DecisionStage.RBAC)
        else:
            result = self._combine(outcomes, custom)

        missing = tuple(
            dict.fromkeys(
                reference
                for outcome in outcomes
                for evaluation in outcome.evaluations
                for reference in evaluation.missing
            )
        )
        return AuthorizationDiagnostics(
            result=result,
            subject_id=context.subject_id,
            workstream_id=context.workstream_id,
            resource=resource,
            action=action,
            rbac_allowed=rbac_allowed,
            group_outcomes=outcomes,
            custom_result=custom,
            missing_attributes=missing,
            suggestions=self._suggestions(context, rbac_allowed, outcomes, missing),
        )

    # ══════════════════════════════════════════════════════════
    # STAGES
    # ══════════════════════════════════════════════════════════

    def _build(
        self,
        scope: RequestScope,
        resource: str,
        action: str,
        entity: Any,
        subject_attributes=None,
    ) -> EvaluationContext:
        return self._builder.build_context(
            scope.principal,
            scope.workstream_id,
            resource,
            action,
            resource_entity=entity,
            client_address=scope.client_address,
            subject_attributes=subject_attributes,
        )

    def _decide(self, context: EvaluationContext) -> AuthorizationResult:
        if not self._rbac_allows(context):
            return self._denied(
                context,
                AuthorizationResult.failure(rbac_denial_reason(context), DecisionStage.RBAC),
            )

        for group in self._bound_groups(context):
            outcome = self._rule_evaluator.evaluate(group, context)
            if not outcome.allowed:
                return self._denied(
                    context,
                    AuthorizationResult.failure(outcome.reason, DecisionStage.RULE_GROUP),
                )

        custom = self._registry.evaluate(
            context.workstream_id, context, context.resource, context.action
        )
        result = self._combine((), custom)
        if not result.allowed:
            return self._denied(context, result)
        return result

    @staticmethod
    def _combine(
        outcomes: Sequence[GroupOutcome],
        custom: EvaluationResult | None,
    ) -> AuthorizationResult:
        for outcome in outcomes:
            if not outcome.allowed:
                return AuthorizationResult.failure(outcome.reason, DecisionStage.RULE_GROUP)
        if custom is None:
            return AuthorizationResult.success()
        if custom.allowed:
            return AuthorizationResult.success(DecisionStage.CUSTOM_EVALUATOR)
        return AuthorizationResult.failure(custom.display_reason, DecisionStage.CUSTOM_EVALUATOR)

    def _rbac_allows(self, context: EvaluationContext) -> bool:
        blob = context.to_json()
        subjects = (context.subject_id, *context.groups)
        try:
            for subject in subjects:
                if self._policy_engine.enforce(
                    subject,
                    context.workstream_id,
                    context.resource,
                    context.action,
                    blob,
                ):
                    return True
        except AbacError:
            raise
        except Exception as exc:
            raise PolicyEngineUnavailable(
                f"enforce failed for workstream '{context.workstream_id}'",
                cause=exc,
            ) from exc
        return False

    def _bound_groups(self, context: EvaluationContext) -> tuple[RuleGroup, ...]:
        try:
            return tuple(
                self._rules.get_bound_groups(
                    context.workstream_id,
                    context.resource,
                    context.action,
                )
            )
        except AbacError:
            raise
        except Exception as exc:
            raise RuleRepositoryError(
                f"could not load rule groups for workstream '{context.workstream_id}'",
                cause=exc,
            ) from exc

    @staticmethod
    def _denied(context: EvaluationContext, result: AuthorizationResult) -> AuthorizationResult:
        logger.info(
            f"denied subject={context.subject_id} workstream={context.workstream_id} "
            f"resource={context.resource} action={context.action} "
            f"stage={result.stage}: {result.reason}"
        )
        return result

    @staticmethod
    def _suggestions(
        context: EvaluationContext,
        rbac_allowed: bool,
        outcomes: Sequence[GroupOutcome],
        missing: Sequence[str],
    ) -> tuple[str, ...]:
        suggestions: list[str] = []
        if not rbac_allowed:
            suggestions.append(
                f"Grant '{context.action}' on '{context.resource}' to "
                f"'{context.subject_id}' or to one of the subject's roles in workstream "
                f"'{context.workstream_id}'"
            )
        for reference in missing:
            source, _, name = reference.partition(".")
            if source == "user":
                suggestions.append(
                    f"Define attribute '{name}' on the user record or on a role or group record"
                )
            elif source == "resource":
                suggestions.append(f"Resource '{context.resource}' does not expose '{name}'")
            else:
                suggestions.append(f"Request does not provide '{reference}'")
        for outcome in outcomes:
            for evaluation in outcome.evaluations:
                if evaluation.configuration_error:
                    suggestions.append(
                        f"Fix the configuration of rule '{evaluation.rule_name}' "
                        f"in group '{outcome.group_name}'"
                    )
        return tuple(dict.fromkeys(suggestions))


class BoundEnforcer:
    """AuthorizationEnforcer with the request scope fixed."""

    def __init__(self, enforcer: AuthorizationEnforcer, scope: RequestScope):
        self._enforcer = enforcer
        self._scope = scope

    @property
    def scope(self) -> RequestScope:
        return self._scope

    def check(self, resource: str, action: str, entity: Any = None) -> AuthorizationResult:
        return self._enforcer.check(self._scope, resource, action, entity)

    def ensure_authorized(self, resource: str, action: str, entity: Any = None) -> None:
        self._enforcer.ensure_authorized(self._scope, resource, action, entity)

    def check_entity(self, entity: Any, action: str) -> AuthorizationResult:
        return self._enforcer.check_entity(self._scope, entity, action)

    def check_many(self, requests: Iterable[Sequence[Any]]) -> tuple[AuthorizationResult, ...]:
        return self._enforcer.check_many(self._scope, requests)

    def explain(self, resource: str, action: str, entity: Any = None) -> AuthorizationDiagnostics:
        return self._enforcer.explain(self._scope, resource, action, entity)
