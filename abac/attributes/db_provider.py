"""
ABAC Attributes - DB-backed Store
=================================
Reads attribute records from the abac_attribute_store tables.
Group and role lookups are one query per scope.
"""

from __future__ import annotations

import logging
from typing import Iterable

from abac.attributes.models import AttributeRecord, AttributeScope

logger = logging.getLogger("abac.attributes")


def _clean_ids(subject_ids: Iterable[str]) -> list[str]:
    return sorted(
        {
            subject_id.strip()
            for subject_id in subject_ids
            if isinstance(subject_id, str) and subject_id.strip()
        }
    )


class DbAttributeStore:
    def get_user_attributes(
        self,
        user_id: str,
        workstream_id: str,
    ) -> AttributeRecord | None:
        if not isinstance(user_id, str) or not user_id.strip():
            return None

        from abac.attribute_store.models import UserAttribute

        row = UserAttribute.objects.filter(
            user_id=user_id.strip(),
            workstream_id=workstream_id,
        ).first()
        if row is None:
            return None
        return self._to_record(AttributeScope.USER, row.user_id, row.workstream_id, row.attributes)

    def get_group_attributes(
        self,
        group_ids: Iterable[str],
        workstream_id: str,
    ) -> dict[str, AttributeRecord]:
        ids = _clean_ids(group_ids)
        if not ids:
            return {}

        from abac.attribute_store.models import GroupAttribute

        rows = GroupAttribute.objects.filter(
            group_id__in=ids,
            workstream_id=workstream_id,
            is_active=True,
        ).order_by("group_id", "id")
        found: dict[str, AttributeRecord] = {}
        for row in rows:
            record = self._to_record(AttributeScope.GROUP, row.group_id, row.workstream_id, row.attributes)
            if record is not None:
                found[row.group_id] = record
        return found

    def get_role_attributes(
        self,
        role_ids: Iterable[str],
        workstream_id: str,
    ) -> dict[str, AttributeRecord]:
        ids = _clean_ids(role_ids)
        if not ids:
            return {}

        from abac.attribute_store.models import RoleAttribute

        rows = RoleAttribute.objects.filter(
            role_id__in=ids,
            workstream_id=workstream_id,
        ).order_by("role_id", "id")
        found: dict[str, AttributeRecord] = {}
        for row in rows:
            record = self._to_record(AttributeScope.ROLE, row.role_id, row.workstream_id, row.attributes)
            if record is not None:
                found[row.role_id] = record
        return found

    @staticmethod
    def _to_record(
        scope: str,
        subject_id: str,
        workstream_id: str,
        attributes,
    ) -> AttributeRecord | None:
        if not isinstance(attributes, dict):
            logger.warning(
                f"{scope} attribute row for '{subject_id}' in workstream "
                f"'{workstream_id}' is not a JSON object; ignored"
            )
            return None
        try:
            return AttributeRecord(scope, subject_id, workstream_id, attributes)
        except ValueError as exc:
            logger.warning(
                f"{scope} attribute row for '{subject_id}' in workstream "
                f"'{workstream_id}' rejected: {exc}"
            )
            return None
