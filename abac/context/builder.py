"""
ABAC Context - Context Builder
==============================
Collects everything one decision needs, up front:

    principal groups/roles
      → batch fetch group + role attribute records
      → fetch user attribute record
      → merge (User > Role > Group)
      → extract resource entity attributes
      → environment flags from injected clock + caller address
      → frozen EvaluationContext

All fetching happens here. Rule evaluation never goes back to a store.
"""

from __future__ import annotations

import logging
from typing import Any

from abac.attributes.merger import AttributeMerger
from abac.attributes.models import AttributeMap
from abac.attributes.provider import AttributeStore
from abac.clock import Clock, SystemClock
from abac.context.environment import EnvironmentContextProvider
from abac.context.evaluation_context import EvaluationContext
from abac.context.principal import Principal
from abac.context.resources import ResourceAttributeExtractor
from abac.exceptions import AbacError, AttributeStoreError

logger = logging.getLogger("abac.context")


class ContextBuilder:
    def __init__(
        self,
        attribute_store: AttributeStore,
        merger: AttributeMerger | None = None,
        extractor: ResourceAttributeExtractor | None = None,
        environment: EnvironmentContextProvider | None = None,
        clock: Clock | None = None,
    ):
        self._store = attribute_store
        self._merger = merger or AttributeMerger()
        self._extractor = extractor or ResourceAttributeExtractor()
        self._environment = environment or EnvironmentContextProvider()
        self._clock = clock or SystemClock()

    def build_context(
        self,
        principal: Principal,
        workstream_id: str,
        resource: str,
        action: str,
        resource_entity: Any = None,
        client_address: str | None = None,
        subject_attributes: AttributeMap | None = None,
    ) -> EvaluationContext:
        """
        ``subject_attributes`` short-circuits the store fetch with a map
        previously returned by ``load_subject_attributes`` for the same
        principal and workstream.
        """
        if not isinstance(principal, Principal):
            raise ValueError("principal must be a Principal.")

        merged = subject_attributes
        if merged is None:
            merged = self.load_subject_attributes(principal, workstream_id)
        resource_attributes = self._extractor.extract(resource_entity)

        now = self._clock.now_utc()
        context = EvaluationContext(
            subject_id=principal.subject_id,
            workstream_id=workstream_id,
            resource=resource,
            action=action,
            request_time=now,
            display_name=principal.display_name,
            email=principal.email,
            roles=principal.roles,
            groups=principal.groups,
            attributes=merged,
            resource_attributes=resource_attributes,
            client_address=client_address,
            is_business_hours=self._environment.is_within_business_hours(now),
            is_internal_network=self._environment.is_internal_network(client_address),
            business_timezone=self._environment.business_timezone,
        )
        logger.debug(
            f"context built subject={principal.subject_id} workstream={workstream_id} "
            f"resource={resource} action={action} attributes={len(merged)} "
            f"resource_attributes={len(resource_attributes)}"
        )
        return context

    def load_subject_attributes(self, principal: Principal, workstream_id: str) -> AttributeMap:
        """Fetch and merge group, role and user records for one principal."""
        group_records = self._fetch(
            "group attributes",
            self._store.get_group_attributes,
            principal.groups,
            workstream_id,
        ) if principal.groups else {}
        role_records = self._fetch(
            "role attributes",
            self._store.get_role_attributes,
            principal.roles,
            workstream_id,
        ) if principal.roles else {}
        user_record = self._fetch(
            "user attributes",
            self._store.get_user_attributes,
            principal.subject_id,
            workstream_id,
        )

        return self._merger.merge(group_records, role_records, user_record)

    @staticmethod
    def _fetch(what: str, fetch, subject, workstream_id: str):
        try:
            return fetch(subject, workstream_id)
        except AbacError:
            raise
        except Exception as exc:
            raise AttributeStoreError(
                f"could not load {what} for workstream '{workstream_id}'",
                cause=exc,
            ) from exc
