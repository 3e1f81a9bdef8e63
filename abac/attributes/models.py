"""
ABAC Attributes - Data Models
=============================
AttributeRecord: one scoped key/value map per (scope, subject, workstream).
AttributeMap: read-only mapping with case-insensitive key lookup.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, Mapping


class AttributeScope:
    USER = "USER"
    GROUP = "GROUP"
    ROLE = "ROLE"

    ALL = frozenset({"USER", "GROUP", "ROLE"})


# ══════════════════════════════════════════════════════════════
# ATTRIBUTE MAP (case-insensitive, immutable)
# ══════════════════════════════════════════════════════════════

class AttributeMap(Mapping[str, Any]):
    """
    Immutable mapping whose keys compare case-insensitively.

    The first spelling seen for a key is kept for iteration and
    serialization; later writes replace the value only.
    """

    __slots__ = ("_data",)

    def __init__(self, items: Mapping[str, Any] | Iterable[tuple[str, Any]] | None = None):
        data: dict[str, tuple[str, Any]] = {}
        if items is not None:
            pairs = items.items() if isinstance(items, Mapping) else items
            for key, value in pairs:
                if not isinstance(key, str):
                    raise ValueError("attribute keys must be strings.")
                folded = key.casefold()
                if folded in data:
                    data[folded] = (data[folded][0], value)
                else:
                    data[folded] = (key, value)
        self._data = data

    def __getitem__(self, key: str) -> Any:
        if not isinstance(key, str):
            raise KeyError(key)
        try:
            return self._data[key.casefold()][1]
        except KeyError:
            raise KeyError(key) from None

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.casefold() in self._data

    def __iter__(self) -> Iterator[str]:
        return (original for original, _ in self._data.values())

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, AttributeMap):
            return {k: v[1] for k, v in self._data.items()} == {
                k: v[1] for k, v in other._data.items()
            }
        if isinstance(other, Mapping):
            try:
                return self == AttributeMap(other)
            except ValueError:
                return False
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"AttributeMap({dict(self.items())!r})"

    def merged_with(self, overrides: Mapping[str, Any]) -> "AttributeMap":
        """Return a new map where ``overrides`` win on key collision."""
        return AttributeMap(list(self.items()) + list(overrides.items()))

    def to_dict(self) -> dict[str, Any]:
        return dict(self.items())


EMPTY_ATTRIBUTES = AttributeMap()


# ══════════════════════════════════════════════════════════════
# ATTRIBUTE RECORD
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class AttributeRecord:
    scope: str
    subject_id: str
    workstream_id: str
    attributes: AttributeMap = field(default_factory=AttributeMap)

    def __post_init__(self):
        if self.scope not in AttributeScope.ALL:
            raise ValueError(
                f"scope '{self.scope}' not valid. "
                f"Must be one of: {sorted(AttributeScope.ALL)}"
            )
        if not isinstance(self.subject_id, str) or not self.subject_id.strip():
            raise ValueError("subject_id must be a non-empty string.")
        if not isinstance(self.workstream_id, str) or not self.workstream_id.strip():
            raise ValueError("workstream_id must be a non-empty string.")
        if not isinstance(self.attributes, AttributeMap):
            if not isinstance(self.attributes, Mapping):
                raise ValueError("attributes must be a mapping.")
            object.__setattr__(self, "attributes", AttributeMap(self.attributes))

    @classmethod
    def user(cls, user_id: str, workstream_id: str, attributes: Mapping[str, Any]) -> "AttributeRecord":
        return cls(AttributeScope.USER, user_id, workstream_id, attributes)

    @classmethod
    def group(cls, group_id: str, workstream_id: str, attributes: Mapping[str, Any]) -> "AttributeRecord":
        return cls(AttributeScope.GROUP, group_id, workstream_id, attributes)

    @classmethod
    def role(cls, role_id: str, workstream_id: str, attributes: Mapping[str, Any]) -> "AttributeRecord":
        return cls(AttributeScope.ROLE, role_id, workstream_id, attributes)
