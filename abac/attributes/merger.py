"""
ABAC Attributes - Precedence Merger
===================================
Merges scoped attribute records into one map.

Precedence: User > Role > Group.
Within a scope, records apply in ascending id order, so on a same-scope
collision the lexicographically greatest group/role id wins.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from abac.attributes.models import AttributeMap, AttributeRecord

logger = logging.getLogger("abac.attributes")


class AttributeMerger:
    def merge(
        self,
        group_attrs: Mapping[str, AttributeRecord] | None,
        role_attrs: Mapping[str, AttributeRecord] | None,
        user_attrs: AttributeRecord | None,
    ) -> AttributeMap:
        merged: dict[str, tuple[str, Any]] = {}

        self._apply_scope(merged, group_attrs)
        self._apply_scope(merged, role_attrs)
        if user_attrs is not None:
            self._apply_record(merged, user_attrs, same_scope_sources=None)

        return AttributeMap(merged.values())

    def _apply_scope(
        self,
        merged: dict[str, tuple[str, Any]],
        records: Mapping[str, AttributeRecord] | None,
    ) -> None:
        if not records:
            return
        # key (casefolded) -> id of the record in this scope that set it
        scope_sources: dict[str, str] = {}
        for record_id in sorted(records):
            record = records[record_id]
            if record is None:
                continue
            self._apply_record(merged, record, same_scope_sources=scope_sources, record_id=record_id)

    @staticmethod
    def _apply_record(
        merged: dict[str, tuple[str, Any]],
        record: AttributeRecord,
        same_scope_sources: dict[str, str] | None,
        record_id: str | None = None,
    ) -> None:
        for key, value in record.attributes.items():
            folded = key.casefold()
            if same_scope_sources is not None:
                previous = same_scope_sources.get(folded)
                if previous is not None and merged[folded][1] != value:
                    logger.debug(
                        f"{record.scope} attribute '{key}' defined by both "
                        f"'{previous}' and '{record_id}' in workstream "
                        f"'{record.workstream_id}'; '{record_id}' wins"
                    )
                same_scope_sources[folded] = record_id or record.subject_id
            original = merged[folded][0] if folded in merged else key
            merged[folded] = (original, value)
