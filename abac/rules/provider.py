"""
ABAC Rules - Repository Protocol and In-Memory Repository
=========================================================
A group is bound to a (resource, action) pair when it is an active
top-level group (no parent) whose resource and action either match or
are null. Child groups are carried by their parent whatever their own
binding is.
"""

from __future__ import annotations

from typing import Iterable, Protocol

from abac.rules.models import RuleGroup


class RuleRepository(Protocol):
    def get_bound_groups(
        self,
        workstream_id: str,
        resource: str,
        action: str,
    ) -> tuple[RuleGroup, ...]:
        ...


def select_bound_groups(
    groups: Iterable[RuleGroup],
    workstream_id: str,
    resource: str,
    action: str,
) -> tuple[RuleGroup, ...]:
    bound = [
        group
        for group in groups
        if group.workstream_id == workstream_id
        and group.parent_group_id is None
        and group.is_active
        and group.binds(resource, action)
    ]
    return tuple(sorted(bound, key=lambda group: group.sort_key()))


class InMemoryRuleRepository:
    """
    Deterministic in-memory repository used for bootstrap/tests.
    Holds fully assembled top-level groups.
    """

    def __init__(self, groups: Iterable[RuleGroup] | None = None):
        self._groups: dict[str, RuleGroup] = {}
        for group in groups or ():
            self.add(group)

    def add(self, group: RuleGroup) -> None:
        if group.parent_group_id is not None:
            raise ValueError(
                f"Rule group '{group.group_id}' has a parent; add its top-level group instead."
            )
        if group.group_id in self._groups:
            raise ValueError(f"Duplicate group_id '{group.group_id}'.")
        self._groups[group.group_id] = group

    def get_bound_groups(
        self,
        workstream_id: str,
        resource: str,
        action: str,
    ) -> tuple[RuleGroup, ...]:
        return select_bound_groups(self._groups.values(), workstream_id, resource, action)
