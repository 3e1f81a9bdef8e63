"""
ABAC Rules - DB-backed Repository
=================================
Loads a workstream's groups in one query and its rules in one query,
then assembles the bound trees in memory.

Groups whose parent chain loops or points at a missing group are never
reachable from a top-level group; they are logged and ignored.
"""

from __future__ import annotations

import json
import logging

from abac.exceptions import RuleGroupCycleError, RuleRepositoryError
from abac.rules.models import RuleGroup, RuleLeaf
from abac.rules.provider import select_bound_groups

logger = logging.getLogger("abac.rules")


class DbRuleRepository:
    def get_bound_groups(
        self,
        workstream_id: str,
        resource: str,
        action: str,
    ) -> tuple[RuleGroup, ...]:
        from abac.rule_store.models import AbacRule, AbacRuleGroup

        group_rows = {
            str(row.id): row
            for row in AbacRuleGroup.objects.filter(workstream_id=workstream_id).order_by(
                "priority", "name", "id"
            )
        }
        if not group_rows:
            return tuple()

        roots = [
            row for row in group_rows.values()
            if row.parent_id is None
            and row.is_active
            and self._binding_row(row).binds(resource, action)
        ]
        if not roots:
            return tuple()

        rules_by_group: dict[str, list[RuleLeaf]] = {}
        for row in AbacRule.objects.filter(
            workstream_id=workstream_id,
            group__isnull=False,
        ).order_by("priority", "name", "id"):
            rules_by_group.setdefault(str(row.group_id), []).append(self._to_leaf(row))

        children_by_parent: dict[str, list[str]] = {}
        for group_id, row in group_rows.items():
            if row.parent_id is not None:
                children_by_parent.setdefault(str(row.parent_id), []).append(group_id)

        self._log_unreachable(workstream_id, group_rows)

        assembled = [
            self._assemble(str(root.id), group_rows, children_by_parent, rules_by_group, ())
            for root in roots
        ]
        return select_bound_groups(assembled, workstream_id, resource, action)

    # ══════════════════════════════════════════════════════════
    # ASSEMBLY
    # ══════════════════════════════════════════════════════════

    def _assemble(
        self,
        group_id: str,
        group_rows: dict,
        children_by_parent: dict[str, list[str]],
        rules_by_group: dict[str, list[RuleLeaf]],
        path: tuple[str, ...],
    ) -> RuleGroup:
        if group_id in path:
            raise RuleGroupCycleError(group_rows[group_id].workstream_id, path + (group_id,))
        path = path + (group_id,)

        children = tuple(
            self._assemble(child_id, group_rows, children_by_parent, rules_by_group, path)
            for child_id in children_by_parent.get(group_id, ())
        )
        row = group_rows[group_id]
        try:
            return RuleGroup(
                group_id=group_id,
                workstream_id=row.workstream_id,
                name=row.name or group_id,
                logical_operator=row.logical_operator,
                parent_group_id=str(row.parent_id) if row.parent_id is not None else None,
                resource=row.resource,
                action=row.action,
                is_active=bool(row.is_active),
                priority=int(row.priority),
                description=row.description,
                child_groups=children,
                rules=tuple(rules_by_group.get(group_id, ())),
            )
        except ValueError as exc:
            raise RuleRepositoryError(
                f"rule group '{group_id}' in workstream '{row.workstream_id}' is corrupt: {exc}",
                cause=exc,
            ) from exc

    @staticmethod
    def _binding_row(row) -> RuleGroup:
        """Lightweight group carrying only the binding, for root filtering."""
        return RuleGroup(
            group_id=str(row.id),
            workstream_id=row.workstream_id,
            name=row.name or str(row.id),
            resource=row.resource,
            action=row.action,
        )

    @staticmethod
    def _to_leaf(row) -> RuleLeaf:
        # Corrupt rows stay in the tree as leaves that fail closed.
        configuration = row.configuration
        if not isinstance(configuration, (dict, str)):
            configuration = json.dumps(configuration)
        return RuleLeaf(
            rule_id=str(row.id),
            workstream_id=row.workstream_id,
            name=(row.name or "").strip() or str(row.id),
            rule_type=(row.rule_type or "").strip() or "Unknown",
            configuration=configuration,
            group_id=str(row.group_id) if row.group_id is not None else None,
            is_active=bool(row.is_active),
            priority=int(row.priority),
            failure_message=row.failure_message,
        )

    @staticmethod
    def _log_unreachable(workstream_id: str, group_rows: dict) -> None:
        for group_id, row in group_rows.items():
            seen = {group_id}
            parent_id = row.parent_id
            while parent_id is not None:
                parent_key = str(parent_id)
                parent = group_rows.get(parent_key)
                if parent is None:
                    logger.warning(
                        f"rule group '{group_id}' in workstream '{workstream_id}' "
                        f"references missing parent '{parent_key}'; ignored"
                    )
                    break
                if parent_key in seen:
                    logger.warning(
                        f"rule group '{group_id}' in workstream '{workstream_id}' "
                        f"sits on a parent cycle; ignored"
                    )
                    break
                seen.add(parent_key)
                parent_id = parent.parent_id
