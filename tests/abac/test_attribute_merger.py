from __future__ import annotations

import pytest

from abac.attributes.merger import AttributeMerger
from abac.attributes.models import AttributeMap, AttributeRecord, AttributeScope

WORKSTREAM = "loans"


def _group(group_id: str, **attrs) -> AttributeRecord:
    return AttributeRecord.group(group_id, WORKSTREAM, attrs)


def _role(role_id: str, **attrs) -> AttributeRecord:
    return AttributeRecord.role(role_id, WORKSTREAM, attrs)


def _user(**attrs) -> AttributeRecord:
    return AttributeRecord.user("alice", WORKSTREAM, attrs)


@pytest.fixture
def merger() -> AttributeMerger:
    return AttributeMerger()


class TestPrecedence:
    def test_user_overrides_role_and_group(self, merger):
        merged = merger.merge(
            {"g1": _group("g1", Region="EU")},
            {"r1": _role("r1", Region="US")},
            _user(Region="APAC"),
        )
        assert merged["Region"] == "APAC"

    def test_role_overrides_group_when_user_silent(self, merger):
        merged = merger.merge(
            {"g1": _group("g1", ApprovalLimit=1000)},
            {"r1": _role("r1", ApprovalLimit=50000)},
            _user(Department="Credit"),
        )
        assert merged["ApprovalLimit"] == 50000
        assert merged["Department"] == "Credit"

    def test_group_value_survives_when_nobody_overrides(self, merger):
        merged = merger.merge({"g1": _group("g1", CostCenter="CC-1")}, {}, None)
        assert merged["CostCenter"] == "CC-1"

    def test_user_override_is_case_insensitive(self, merger):
        merged = merger.merge(
            {"g1": _group("g1", region="EU")},
            {},
            _user(REGION="US"),
        )
        assert merged["Region"] == "US"
        assert len(merged) == 1


class TestSameScopeCollisions:
    def test_lexicographically_greatest_group_id_wins(self, merger):
        merged = merger.merge(
            {
                "group-b": _group("group-b", Region="B"),
                "group-a": _group("group-a", Region="A"),
                "group-c": _group("group-c", Region="C"),
            },
            {},
            None,
        )
        assert merged["Region"] == "C"

    def test_tie_break_does_not_depend_on_input_order(self, merger):
        first = merger.merge(
            {"r2": _role("r2", Level=2), "r1": _role("r1", Level=1)}, {}, None
        )
        second = merger.merge(
            {"r1": _role("r1", Level=1), "r2": _role("r2", Level=2)}, {}, None
        )
        assert first == second
        assert first["Level"] == 2


class TestMissingInputs:
    def test_all_scopes_absent_gives_empty_map(self, merger):
        merged = merger.merge({}, {}, None)
        assert isinstance(merged, AttributeMap)
        assert len(merged) == 0

    def test_none_mappings_accepted(self, merger):
        merged = merger.merge(None, None, _user(Level=3))
        assert merged["level"] == 3


class TestCaseInsensitiveLookup:
    def test_region_and_lowercase_region_resolve_identically(self, merger):
        merged = merger.merge({}, {"r1": _role("r1", Region="EU")}, None)
        assert merged["Region"] == merged["region"] == merged["REGION"] == "EU"
        assert "rEgIoN" in merged

    def test_first_spelling_is_kept_for_iteration(self, merger):
        merged = merger.merge(
            {"g1": _group("g1", Region="EU")},
            {},
            _user(region="US"),
        )
        assert list(merged) == ["Region"]
        assert merged.to_dict() == {"Region": "US"}


class TestAttributeRecord:
    def test_rejects_unknown_scope(self):
        with pytest.raises(ValueError, match="scope"):
            AttributeRecord("TEAM", "x", WORKSTREAM, {})

    def test_rejects_blank_subject(self):
        with pytest.raises(ValueError, match="subject_id"):
            AttributeRecord(AttributeScope.USER, " ", WORKSTREAM, {})

    def test_plain_dict_becomes_attribute_map(self):
        record = _user(Level=1)
        assert isinstance(record.attributes, AttributeMap)
        assert record.attributes["LEVEL"] == 1

    def test_attribute_map_missing_key_raises_key_error(self):
        with pytest.raises(KeyError):
            AttributeMap({"a": 1})["b"]

    def test_record_defaults_to_fresh_empty_map(self):
        first = AttributeRecord(AttributeScope.USER, "alice", "loans")
        second = AttributeRecord(AttributeScope.USER, "bob", "loans")
        assert first.attributes == {}
        assert isinstance(first.attributes, AttributeMap)
        assert first.attributes is not second.attributes


class TestAttributeMapEquality:
    def test_equal_to_plain_dict_ignoring_case(self):
        assert AttributeMap({"Region": "EU"}) == {"region": "EU"}

    def test_non_string_keys_compare_unequal(self):
        assert AttributeMap({"a": 1}) != {1: 2}
        assert (AttributeMap({"a": 1}) == {1: 2}) is False

    def test_non_mapping_is_not_equal(self):
        assert AttributeMap({"a": 1}) != [("a", 1)]
