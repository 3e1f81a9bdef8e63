"""
ABAC Context - Principal
========================
Authenticated caller as handed over by the request pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


def _normalize_ids(values: Iterable[str] | None, field_name: str) -> tuple[str, ...]:
    if values is None:
        return tuple()
    if isinstance(values, str):
        raise ValueError(f"{field_name} must be a collection of strings, not a string.")
    normalized: list[str] = []
    for value in values:
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"{field_name} entries must be non-empty strings.")
        normalized.append(value.strip())
    return tuple(sorted(set(normalized)))


@dataclass(frozen=True)
class Principal:
    subject_id: str
    display_name: str | None = None
    email: str | None = None
    roles: tuple[str, ...] = ()
    groups: tuple[str, ...] = ()

    def __post_init__(self):
        if not isinstance(self.subject_id, str) or not self.subject_id.strip():
            raise ValueError("subject_id must be a non-empty string.")
        object.__setattr__(self, "subject_id", self.subject_id.strip())
        object.__setattr__(self, "roles", _normalize_ids(self.roles, "roles"))
        object.__setattr__(self, "groups", _normalize_ids(self.groups, "groups"))
