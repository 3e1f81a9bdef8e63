from __future__ import annotations

from datetime import datetime, timezone

import pytest

from abac.attributes.models import AttributeRecord
from abac.attributes.provider import InMemoryAttributeStore
from abac.clock import FixedClock
from abac.context.builder import ContextBuilder
from abac.context.environment import EnvironmentContextProvider
from abac.context.principal import Principal
from abac.exceptions import AttributeStoreError
from abac.settings import AbacSettings

WORKSTREAM = "loans"
FIXED_TIME = datetime(2026, 2, 13, 12, 0, 0, tzinfo=timezone.utc)


class SpyAttributeStore:
    """Wraps an in-memory store and records every call."""

    def __init__(self, inner: InMemoryAttributeStore):
        self.inner = inner
        self.calls: list[tuple] = []

    def get_user_attributes(self, user_id, workstream_id):
        self.calls.append(("user", user_id, workstream_id))
        return self.inner.get_user_attributes(user_id, workstream_id)

    def get_group_attributes(self, group_ids, workstream_id):
        group_ids = tuple(group_ids)
        self.calls.append(("group", group_ids, workstream_id))
        return self.inner.get_group_attributes(group_ids, workstream_id)

    def get_role_attributes(self, role_ids, workstream_id):
        role_ids = tuple(role_ids)
        self.calls.append(("role", role_ids, workstream_id))
        return self.inner.get_role_attributes(role_ids, workstream_id)


class BrokenAttributeStore:
    def get_user_attributes(self, user_id, workstream_id):
        raise ConnectionError("attribute db down")

    def get_group_attributes(self, group_ids, workstream_id):
        return {}

    def get_role_attributes(self, role_ids, workstream_id):
        return {}


@pytest.fixture
def store() -> SpyAttributeStore:
    return SpyAttributeStore(
        InMemoryAttributeStore(
            [
                AttributeRecord.group("credit-team", WORKSTREAM, {"Region": "EU", "Level": 1}),
                AttributeRecord.group("risk-team", WORKSTREAM, {"Department": "Risk"}),
                AttributeRecord.role("approver", WORKSTREAM, {"ApprovalLimit": 50000, "Level": 2}),
                AttributeRecord.user("alice", WORKSTREAM, {"Level": 3}),
                AttributeRecord.user("alice", "payments", {"Level": 9}),
            ]
        )
    )


@pytest.fixture
def builder(store) -> ContextBuilder:
    return ContextBuilder(
        store,
        environment=EnvironmentContextProvider(AbacSettings()),
        clock=FixedClock(FIXED_TIME),
    )


ALICE = Principal(
    subject_id="alice",
    display_name="Alice",
    email="alice@example.com",
    roles=("approver",),
    groups=("risk-team", "credit-team"),
)


class TestBuildContext:
    def test_merges_scopes_with_precedence(self, builder):
        context = builder.build_context(ALICE, WORKSTREAM, "Loan", "approve")
        assert context.get_attribute("Level") == 3
        assert context.get_attribute("ApprovalLimit") == 50000
        assert context.get_attribute("region") == "EU"
        assert context.get_attribute("Department") == "Risk"

    def test_records_are_scoped_by_workstream(self, builder):
        context = builder.build_context(ALICE, "payments", "Payment", "send")
        assert context.get_attribute("Level") == 9
        assert context.get_attribute("ApprovalLimit") is None

    def test_group_and_role_records_fetched_in_one_batch_each(self, builder, store):
        builder.build_context(ALICE, WORKSTREAM, "Loan", "approve")
        kinds = [call[0] for call in store.calls]
        assert kinds.count("group") == 1
        assert kinds.count("role") == 1
        assert kinds.count("user") == 1
        group_call = next(call for call in store.calls if call[0] == "group")
        assert set(group_call[1]) == {"credit-team", "risk-team"}

    def test_principal_without_groups_skips_group_fetch(self, builder, store):
        builder.build_context(Principal("bob"), WORKSTREAM, "Loan", "view")
        assert [call[0] for call in store.calls] == ["user"]

    def test_identity_timestamp_and_environment(self, builder):
        context = builder.build_context(
            ALICE,
            WORKSTREAM,
            "Loan",
            "approve",
            resource_entity={"RequestedAmount": 40000},
            client_address="10.0.0.5",
        )
        assert context.subject_id == "alice"
        assert context.email == "alice@example.com"
        assert context.roles == ("approver",)
        assert context.groups == ("credit-team", "risk-team")
        assert context.request_time == FIXED_TIME
        assert context.is_business_hours is True
        assert context.is_internal_network is True
        assert context.get_resource_attribute("requestedAmount") == 40000

    def test_environment_hour_uses_configured_timezone(self, store):
        builder = ContextBuilder(
            store,
            environment=EnvironmentContextProvider(AbacSettings(business_timezone="America/New_York")),
            clock=FixedClock(FIXED_TIME),
        )
        context = builder.build_context(ALICE, WORKSTREAM, "Loan", "view")
        assert context.business_timezone == "America/New_York"
        assert context.resolve("env.hour") == 7

    def test_subject_attributes_reused_without_fetch(self, builder, store):
        merged = builder.load_subject_attributes(ALICE, WORKSTREAM)
        store.calls.clear()
        context = builder.build_context(
            ALICE, WORKSTREAM, "Loan", "approve", subject_attributes=merged
        )
        assert store.calls == []
        assert context.get_attribute("Level") == 3


class TestStoreFailure:
    def test_store_error_surfaces_as_attribute_store_error(self):
        builder = ContextBuilder(BrokenAttributeStore(), clock=FixedClock(FIXED_TIME))
        with pytest.raises(AttributeStoreError, match="user attributes") as excinfo:
            builder.build_context(Principal("alice"), WORKSTREAM, "Loan", "view")
        assert isinstance(excinfo.value.cause, ConnectionError)


class TestPrincipal:
    def test_ids_normalized_and_sorted(self):
        principal = Principal(" alice ", roles=["b", "a", "a"])
        assert principal.subject_id == "alice"
        assert principal.roles == ("a", "b")

    def test_string_roles_rejected(self):
        with pytest.raises(ValueError, match="roles"):
            Principal("alice", roles="admin")
