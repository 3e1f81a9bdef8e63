"""
ABAC Enforcement - Policy Engine Protocol and In-Memory Engine
==============================================================
Coarse RBAC check consulted before any attribute rule.

InMemoryPolicyEngine holds (subject, workstream, resource, action)
allow tuples plus subject -> role assignments. Roles may be assigned
to roles, giving inheritance. ``*`` in a policy matches anything.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Protocol

WILDCARD = "*"


class PolicyEngine(Protocol):
    def enforce(
        self,
        subject: str,
        workstream_id: str,
        resource: str,
        action: str,
        context_blob: str | None = None,
    ) -> bool:
        ...

    def get_roles_for_subject(self, subject: str, workstream_id: str) -> tuple[str, ...]:
        ...

    def has_role(self, subject: str, role: str, workstream_id: str) -> bool:
        ...

    def get_subjects_for_role(self, role: str, workstream_id: str) -> tuple[str, ...]:
        ...


def _matches(pattern: str, value: str) -> bool:
    return pattern == WILDCARD or pattern.casefold() == value.casefold()


@dataclass(frozen=True)
class PolicyTuple:
    subject: str
    workstream_id: str
    resource: str
    action: str

    def __post_init__(self):
        for name in ("subject", "workstream_id", "resource", "action"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"{name} must be a non-empty string.")
            object.__setattr__(self, name, value.strip())

    def matches(self, subject: str, workstream_id: str, resource: str, action: str) -> bool:
        return (
            self.subject == subject
            and _matches(self.workstream_id, workstream_id)
            and _matches(self.resource, resource)
            and _matches(self.action, action)
        )


@dataclass(frozen=True)
class RoleAssignment:
    subject: str
    role: str
    workstream_id: str

    def __post_init__(self):
        for name in ("subject", "role", "workstream_id"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"{name} must be a non-empty string.")
            object.__setattr__(self, name, value.strip())


class InMemoryPolicyEngine:
    """
    Deterministic in-memory policy engine used for bootstrap/tests.
    """

    def __init__(
        self,
        policies: Iterable[PolicyTuple] | None = None,
        assignments: Iterable[RoleAssignment] | None = None,
    ):
        self._policies: tuple[PolicyTuple, ...] = tuple(policies or ())
        self._assignments: tuple[RoleAssignment, ...] = tuple(assignments or ())

    def enforce(
        self,
        subject: str,
        workstream_id: str,
        resource: str,
        action: str,
        context_blob: str | None = None,
    ) -> bool:
        subjects = {subject, *self.get_roles_for_subject(subject, workstream_id)}
        return any(
            policy.matches(candidate, workstream_id, resource, action)
            for policy in self._policies
            for candidate in subjects
        )

    def get_roles_for_subject(self, subject: str, workstream_id: str) -> tuple[str, ...]:
        """Direct and inherited roles, sorted."""
        found: set[str] = set()
        pending = [subject]
        while pending:
            current = pending.pop()
            for assignment in self._assignments:
                if assignment.subject != current:
                    continue
                if not _matches(assignment.workstream_id, workstream_id):
                    continue
                if assignment.role not in found and assignment.role != subject:
                    found.add(assignment.role)
                    pending.append(assignment.role)
        return tuple(sorted(found))

    def has_role(self, subject: str, role: str, workstream_id: str) -> bool:
        return role in self.get_roles_for_subject(subject, workstream_id)

    def get_subjects_for_role(self, role: str, workstream_id: str) -> tuple[str, ...]:
        return tuple(
            sorted(
                {
                    assignment.subject
                    for assignment in self._assignments
                    if assignment.role == role
                    and _matches(assignment.workstream_id, workstream_id)
                }
            )
        )
