"""
ABAC Attributes - Store Protocol and In-Memory Store
====================================================
"""

from __future__ import annotations

from typing import Iterable, Protocol

from abac.attributes.models import AttributeRecord, AttributeScope


class AttributeStore(Protocol):
    def get_user_attributes(
        self,
        user_id: str,
        workstream_id: str,
    ) -> AttributeRecord | None:
        ...

    def get_group_attributes(
        self,
        group_ids: Iterable[str],
        workstream_id: str,
    ) -> dict[str, AttributeRecord]:
        ...

    def get_role_attributes(
        self,
        role_ids: Iterable[str],
        workstream_id: str,
    ) -> dict[str, AttributeRecord]:
        ...


class InMemoryAttributeStore:
    """
    Deterministic in-memory store used for bootstrap/tests.
    """

    def __init__(self, records: Iterable[AttributeRecord] | None = None):
        self._records: dict[tuple[str, str, str], AttributeRecord] = {}
        for record in records or ():
            self.put(record)

    def put(self, record: AttributeRecord) -> None:
        key = (record.scope, record.subject_id, record.workstream_id)
        if key in self._records:
            raise ValueError(
                f"Duplicate {record.scope} attribute record for "
                f"'{record.subject_id}' in workstream '{record.workstream_id}'."
            )
        self._records[key] = record

    def get_user_attributes(
        self,
        user_id: str,
        workstream_id: str,
    ) -> AttributeRecord | None:
        return self._records.get((AttributeScope.USER, user_id, workstream_id))

    def get_group_attributes(
        self,
        group_ids: Iterable[str],
        workstream_id: str,
    ) -> dict[str, AttributeRecord]:
        return self._lookup(AttributeScope.GROUP, group_ids, workstream_id)

    def get_role_attributes(
        self,
        role_ids: Iterable[str],
        workstream_id: str,
    ) -> dict[str, AttributeRecord]:
        return self._lookup(AttributeScope.ROLE, role_ids, workstream_id)

    def _lookup(
        self,
        scope: str,
        subject_ids: Iterable[str],
        workstream_id: str,
    ) -> dict[str, AttributeRecord]:
        found: dict[str, AttributeRecord] = {}
        for subject_id in subject_ids:
            record = self._records.get((scope, subject_id, workstream_id))
            if record is not None:
                found[subject_id] = record
        return found
