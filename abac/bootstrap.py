"""
ABAC Bootstrap - Enforcer Wiring
================================
Builds a DB-backed AuthorizationEnforcer from Django settings.

    attribute tables -> DbAttributeStore -> CachedAttributeStore
    rule tables      -> DbRuleRepository
    settings.ABAC    -> EnvironmentContextProvider, cache TTL/size

The policy engine and the evaluator registry come from the caller;
evaluators should be registered and the registry locked before the
first request.
"""

from __future__ import annotations

import logging

from abac.attributes.cache import CachedAttributeStore
from abac.attributes.db_provider import DbAttributeStore
from abac.clock import Clock, SystemClock
from abac.context.builder import ContextBuilder
from abac.context.environment import EnvironmentContextProvider
from abac.context.resources import ResourceAttributeExtractor
from abac.enforcement.enforcer import AuthorizationEnforcer
from abac.enforcement.policy_engine import PolicyEngine
from abac.evaluators.registry import WorkstreamEvaluatorRegistry
from abac.rules.db_provider import DbRuleRepository
from abac.settings import AbacSettings, load_settings

logger = logging.getLogger("abac.bootstrap")


def build_enforcer(
    policy_engine: PolicyEngine,
    evaluator_registry: WorkstreamEvaluatorRegistry | None = None,
    extractor: ResourceAttributeExtractor | None = None,
    settings: AbacSettings | None = None,
    clock: Clock | None = None,
) -> AuthorizationEnforcer:
    settings = settings or load_settings()
    clock = clock or SystemClock()

    if evaluator_registry is not None and not evaluator_registry.is_locked:
        logger.warning("Evaluator registry is not locked; evaluators may still be added at runtime")

    attribute_store = CachedAttributeStore(
        DbAttributeStore(),
        clock=clock,
        ttl_seconds=settings.attribute_cache_ttl_seconds,
        max_size=settings.attribute_cache_max_size,
    )
    builder = ContextBuilder(
        attribute_store,
        extractor=extractor,
        environment=EnvironmentContextProvider(settings),
        clock=clock,
    )
    logger.info(
        f"ABAC enforcer wired: business hours {settings.business_hours_start}-"
        f"{settings.business_hours_end} {settings.business_timezone}, "
        f"attribute cache ttl={settings.attribute_cache_ttl_seconds}s"
    )
    return AuthorizationEnforcer(
        builder,
        policy_engine,
        DbRuleRepository(),
        evaluator_registry=evaluator_registry,
    )
