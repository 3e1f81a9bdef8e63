from __future__ import annotations

from datetime import datetime, timezone

import pytest

from abac.context.environment import EnvironmentContextProvider, hour_in_window
from abac.settings import AbacSettings


@pytest.fixture
def provider() -> EnvironmentContextProvider:
    return EnvironmentContextProvider(
        AbacSettings(
            business_hours_start=9,
            business_hours_end=17,
            business_timezone="America/New_York",
            internal_networks=("10.0.0.0/8", "192.168.1.0/24", "fd00::/8"),
        )
    )


class TestBusinessHours:
    def test_inside_window_in_configured_timezone(self, provider):
        # 15:00 UTC = 10:00 in New York (EST)
        assert provider.is_within_business_hours(datetime(2026, 1, 15, 15, 0, tzinfo=timezone.utc))

    def test_end_hour_is_exclusive(self, provider):
        # 22:00 UTC = 17:00 in New York
        assert not provider.is_within_business_hours(datetime(2026, 1, 15, 22, 0, tzinfo=timezone.utc))

    def test_start_hour_is_inclusive(self, provider):
        assert provider.is_within_business_hours(datetime(2026, 1, 15, 14, 0, tzinfo=timezone.utc))

    def test_naive_timestamp_treated_as_utc(self, provider):
        assert provider.is_within_business_hours(datetime(2026, 1, 15, 15, 0))

    def test_overnight_window_wraps(self):
        assert hour_in_window(23, 22, 6)
        assert hour_in_window(3, 22, 6)
        assert not hour_in_window(12, 22, 6)
        assert not hour_in_window(5, 5, 5)


class TestInternalNetwork:
    @pytest.mark.parametrize(
        "address",
        ["10.20.30.40", "192.168.1.200", "fd00::1", "10.0.0.1:8443", "::ffff:10.0.0.7"],
    )
    def test_internal_addresses(self, provider, address):
        assert provider.is_internal_network(address)

    @pytest.mark.parametrize(
        "address",
        ["192.168.2.1", "8.8.8.8", "2001:db8::1", None, "", "not-an-ip", "999.1.1.1"],
    )
    def test_external_or_unparseable(self, provider, address):
        assert not provider.is_internal_network(address)
